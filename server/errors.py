"""Error taxonomy for the bridge. HTTP mapping lives in server.app."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


class BridgeError(Exception):
    """Base class for bridge errors."""


class ValidationError(BridgeError):
    """Missing or empty required input. Rejected at the boundary with 400."""


class ExtractionError(BridgeError):
    """A page could not be read from Notion. Logged and skipped during a batch."""

    def __init__(self, page_id: str, message: str):
        super().__init__(f"{page_id}: {message}")
        self.page_id = page_id
        self.message = message


class TitleLookupError(BridgeError):
    """Page metadata lookup failed. Never surfaced; the title falls back to the sentinel."""


@dataclass
class UpstreamError(BridgeError):
    """Structured error from the model endpoint. Never expose raw tracebacks."""
    kind: str  # timeout | unavailable | provider_error
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message
