"""Prompt templates for the waypoint narrative pipeline."""
from __future__ import annotations

from textwrap import dedent
from typing import Sequence

SYSTEM_PROMPT = dedent(
    """
    You are an assistant specialized in analyzing tourist or historical places.
    You will receive a list of addresses or places. For EACH place in the list, you must produce an analysis, in the same order as the list.
    Always respond in English with a single JSON object of this shape:
    {
      "results": [
        {
          "address": "The original address of the analyzed place",
          "introduction": "A detailed introduction of the place, its history, why it's known and what happened there",
          "creationDate": "The creation date of the place (leave empty if unknown)",
          "placesToVisit": [
            {
              "name": "Name of the place to visit",
              "address": "Precise address or location",
              "context": "Description of what can be done, seen or experienced there",
              "paid": "Yes/No/Price (leave empty if unknown)"
            }
          ]
        }
      ]
    }
    """
).strip()

DEVELOPER_PROMPT = dedent(
    """
    Follow these rules strictly:
    - "results" must contain exactly one entry per input address, in input order.
    - Never merge, skip or reorder addresses, even when two are identical.
    - Give every place to visit an address precise enough to be found on a map.
    - Output JSON only.
    """
).strip()


def build_user_message(addresses: Sequence[str]) -> str:
    address_list = "\n".join(f"- {address}" for address in addresses)
    return f"Here is the list of addresses to analyze:\n{address_list}"
