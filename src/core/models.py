"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the stream or HTTP client types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

DELIVERED = "delivered"
SKIPPED = "skipped"
FAILED = "failed"

REASON_NO_MATCH = "no-match"
REASON_INVALID_CONFIG = "invalid-config"
REASON_TRANSPORT_ERROR = "transport-error"
REASON_UNEXPECTED_ERROR = "unexpected-error"


@dataclass(frozen=True)
class Message:
    """One notification decoded from a stream frame."""

    title: str
    body: str
    extras: Optional[Mapping[str, Any]] = None
    priority: int = 0


@dataclass(frozen=True)
class MessageExtras:
    """Identifiers read from the top level of the same frame."""

    id: int = 0
    app_id: int = 0


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of offering one message to one webhook."""

    status: str
    reason: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def delivered(self) -> bool:
        return self.status == DELIVERED

    @classmethod
    def skipped(cls) -> "DispatchOutcome":
        return cls(status=SKIPPED, reason=REASON_NO_MATCH)

    @classmethod
    def failed(cls, reason: str) -> "DispatchOutcome":
        return cls(status=FAILED, reason=reason)
