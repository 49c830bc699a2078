"""Error taxonomy shared by services and the HTTP layer.

Recoverable per-call failures (a single geocode, a single POI) are returned as
data and never raised. The classes below are for whole-operation failures that
the caller has to render as a visible notice.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class RoadbookError(Exception):
    """Base class for all domain errors."""

    code = "roadbook_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class InvalidInputError(RoadbookError):
    """Malformed or missing input. Never retried."""

    code = "invalid_input"
    status_code = 400


class UpstreamUnavailableError(RoadbookError):
    """A provider (geocoder, routing engine, model) failed or was unreachable."""

    code = "upstream_unavailable"
    status_code = 502

    def __init__(self, message: str, *, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.provider = provider

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.provider:
            data["provider"] = self.provider
        return data


class MalformedModelResponseError(UpstreamUnavailableError):
    """The language model answered, but not with the agreed JSON contract."""

    code = "malformed_model_response"

    def __init__(self, message: str, *, provider: str = "openai") -> None:
        super().__init__(message, provider=provider)


class EnrichmentMismatchError(MalformedModelResponseError):
    """The model returned a different number of narratives than addresses sent."""

    code = "enrichment_mismatch"

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"Language model returned {received} result(s) for {expected} address(es)"
        )
        self.expected = expected
        self.received = received

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"expected": self.expected, "received": self.received})
        return data


class AuthError(RoadbookError):
    code = "unauthorized"
    status_code = 401


class NotFoundOrForbiddenError(RoadbookError):
    """Record missing, or owned by someone else. The two are indistinguishable."""

    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "Route not found") -> None:
        super().__init__(message)
