"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the delivery adapter so that the core
can be reused with a different HTTP client or a test double.
"""

from __future__ import annotations

from typing import Protocol

from core.config import WebhookTarget
from core.models import DispatchOutcome, Message, MessageExtras


class NotifierPort(Protocol):
    """Delivery of one message to one webhook target."""

    async def send(self, message: Message, extras: MessageExtras, target: WebhookTarget) -> DispatchOutcome:
        ...
