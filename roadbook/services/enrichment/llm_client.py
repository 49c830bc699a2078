"""LLM adapter that asks OpenAI for per-waypoint narratives in JSON mode."""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional, Sequence

from roadbook.config import settings
from roadbook.errors import MalformedModelResponseError, UpstreamUnavailableError

from .prompts import DEVELOPER_PROMPT, SYSTEM_PROMPT, build_user_message


class NarrativeLLMClient:
    """Thin wrapper around the OpenAI chat completions API."""

    def __init__(
        self,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        system_prompt: str = SYSTEM_PROMPT,
        developer_prompt: str = DEVELOPER_PROMPT,
        client: Any = None,
    ) -> None:
        self._model = model or settings.openai_model
        self._temperature = (
            settings.openai_temperature if temperature is None else temperature
        )
        self._system_prompt = system_prompt
        self._developer_prompt = developer_prompt
        self._client = client or self._build_client()

    @staticmethod
    def _build_client() -> Any:
        api_key = settings.openai_api_key
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is not configured.")

        from openai import OpenAI

        return OpenAI(api_key=api_key, base_url=settings.openai_base_url or None)

    def generate(self, addresses: Sequence[str]) -> Dict[str, Any]:
        """Blocking call; run it in a thread pool from async code."""
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=list(self._build_chat_messages(addresses)),
                response_format={"type": "json_object"},
                temperature=self._temperature,
            )
        except Exception as exc:
            raise UpstreamUnavailableError(
                f"Language model request failed: {exc}", provider="openai"
            ) from exc

        return self._extract_json(response)

    def _build_chat_messages(self, addresses: Sequence[str]) -> Iterable[Dict[str, Any]]:
        system_prompt = self._system_prompt
        if self._developer_prompt:
            system_prompt = (
                f"{self._system_prompt}\n\nDeveloper instructions:\n{self._developer_prompt}"
            )

        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": build_user_message(addresses)},
        ]

    @staticmethod
    def _extract_json(response: Any) -> Dict[str, Any]:
        data = NarrativeLLMClient._response_to_dict(response)

        choices = data.get("choices", [])
        if choices:
            message = choices[0].get("message") or {}
            text_candidates: Iterable[str] = []

            content = message.get("content")
            if isinstance(content, str):
                text_candidates = [content]
            elif isinstance(content, list):
                extracted: list[str] = []
                for segment in content:
                    if isinstance(segment, dict):
                        text_value = NarrativeLLMClient._extract_text_from_block(segment)
                        if text_value:
                            extracted.append(text_value)
                    elif isinstance(segment, str):
                        extracted.append(segment)
                text_candidates = extracted

            for text in text_candidates:
                maybe = NarrativeLLMClient._safe_json_load(text)
                if maybe is not None:
                    return maybe

        raise MalformedModelResponseError("Unable to extract JSON from language model response")

    @staticmethod
    def _response_to_dict(response: Any) -> Dict[str, Any]:
        if isinstance(response, dict):
            return response
        for attr in ("model_dump", "dict", "to_dict"):
            if hasattr(response, attr):
                maybe = getattr(response, attr)()
                if isinstance(maybe, dict):
                    return maybe
        raise MalformedModelResponseError("Unexpected response type from OpenAI client")

    @staticmethod
    def _safe_json_load(text: str) -> Optional[Dict[str, Any]]:
        if not isinstance(text, str):
            return None
        candidate = text.strip()
        try:
            loaded = json.loads(candidate)
        except json.JSONDecodeError:
            start = candidate.find("{")
            end = candidate.rfind("}")
            if start == -1 or end == -1 or end <= start:
                return None
            try:
                loaded = json.loads(candidate[start : end + 1])
            except json.JSONDecodeError:
                return None
        if isinstance(loaded, dict):
            return loaded
        return None

    @staticmethod
    def _extract_text_from_block(block: Dict[str, Any]) -> Optional[str]:
        text_value = block.get("text")
        if isinstance(text_value, str):
            return text_value
        if isinstance(text_value, dict) and isinstance(text_value.get("value"), str):
            return text_value["value"]
        return None
