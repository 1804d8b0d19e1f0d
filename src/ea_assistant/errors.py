"""
Error taxonomy shared by the vendor client, the handlers and the orchestrator.

Each error knows the HTTP status it maps to; handlers catch AssistantError at
the top and serialise it with ``to_body()``.  Extraction never raises: a
response that doesn't match the expected headings yields empty or fallback
data instead.
"""

from __future__ import annotations

from typing import Any, Optional


class AssistantError(Exception):
    """Base class for every error a handler turns into a JSON error body."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict[str, Any]:
        return {"success": False, "error": self.message}


class ValidationError(AssistantError):
    """A required request field is missing or malformed (HTTP 400)."""

    status_code = 400


class ConfigurationError(AssistantError):
    """An API key is absent from the environment (HTTP 500 with a remediation hint)."""

    status_code = 500

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.hint = hint

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        if self.hint:
            body["hint"] = self.hint
        return body


class UpstreamError(AssistantError):
    """A vendor API answered non-2xx; its status and message are passed through."""

    def __init__(self, vendor: str, status_code: int, details: Optional[str] = None) -> None:
        super().__init__(f"{vendor} API error: {status_code}")
        self.vendor = vendor
        self.status_code = status_code
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["details"] = self.details
        return body


class ExecutionError(AssistantError):
    """Any other failure inside a handler (HTTP 500 carrying the message)."""

    status_code = 500
