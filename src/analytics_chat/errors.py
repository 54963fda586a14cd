from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    SERVICE_UNAVAILABLE = "service_unavailable"
    NETWORK_UNAVAILABLE = "network_unavailable"
    UPSTREAM = "upstream"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorEnvelope:
    """Normalized failure shape shared by the gateway, dispatcher and export paths."""

    kind: ErrorKind
    message: str
    http_status: int | None = None

    @classmethod
    def timeout(cls, seconds: float) -> ErrorEnvelope:
        return cls(ErrorKind.TIMEOUT, f"Request timeout after {seconds:g} seconds", 408)

    @classmethod
    def service_unavailable(cls) -> ErrorEnvelope:
        return cls(ErrorKind.SERVICE_UNAVAILABLE, SERVICE_UNAVAILABLE_MESSAGE, 503)

    @classmethod
    def network_unavailable(cls, detail: str = "") -> ErrorEnvelope:
        message = "Unable to connect to the analytics service"
        if detail:
            message = f"{message}: {detail}"
        return cls(ErrorKind.NETWORK_UNAVAILABLE, message)

    @classmethod
    def upstream(cls, status_code: int) -> ErrorEnvelope:
        return cls(ErrorKind.UPSTREAM, f"API responded with status: {status_code}", status_code)

    @classmethod
    def validation(cls, message: str) -> ErrorEnvelope:
        return cls(ErrorKind.VALIDATION, message, 400)

    @classmethod
    def unknown(cls, message: str = "Unknown error") -> ErrorEnvelope:
        return cls(ErrorKind.UNKNOWN, message)


SERVICE_UNAVAILABLE_MESSAGE = "AI service is currently unavailable"

_GENERIC_EXPLANATION = (
    "I encountered an error while processing your question. "
    "Please try again or rephrase your query."
)

_EXPLANATIONS: dict[ErrorKind, str] = {
    ErrorKind.TIMEOUT: (
        "Your query is taking longer than expected. "
        "Please try a simpler question or try again later."
    ),
    ErrorKind.SERVICE_UNAVAILABLE: (
        "The AI service is temporarily down. Please try again in a few moments."
    ),
    ErrorKind.NETWORK_UNAVAILABLE: (
        "Unable to connect to the analytics service. "
        "Please check if all services are running and try again."
    ),
}

_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.TIMEOUT: 408,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
    ErrorKind.NETWORK_UNAVAILABLE: 503,
    ErrorKind.VALIDATION: 400,
}


def explanation_for(kind: ErrorKind) -> str:
    """User-facing copy for a transport-level failure."""
    return _EXPLANATIONS.get(kind, _GENERIC_EXPLANATION)


def http_status_for(error: ErrorEnvelope) -> int:
    """Status the gateway surface answers with, independent of the backend's raw status."""
    return _HTTP_STATUS.get(error.kind, 500)


def error_message_for(error: str, status: int | None = None) -> str:
    """Copy for a backend that answered 2xx but reported ``success: false``."""
    if status == 503:
        return "The AI service is currently unavailable. Please try again in a few moments."
    if status == 408:
        return _EXPLANATIONS[ErrorKind.TIMEOUT]
    lowered = error.lower()
    if "timeout" in lowered:
        return "The request timed out. Please try a simpler query or check if all services are running."
    if "unavailable" in lowered:
        return "The AI service is temporarily unavailable. Please try again later."
    return _GENERIC_EXPLANATION


class TurnInProgressError(RuntimeError):
    """Raised when a new turn is submitted while another one is still awaiting the backend."""


class FullResultDownloadError(RuntimeError):
    def __init__(self, error: ErrorEnvelope):
        super().__init__(error.message)
        self.error = error
