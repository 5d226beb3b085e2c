"""Core message processing pipeline.

This module is transport-agnostic. It only relies on the notifier port for
delivery, so the stream adapter hands it decoded messages and nothing else.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from core.config import WebhookTarget
from core.models import FAILED, REASON_UNEXPECTED_ERROR, DispatchOutcome, Message, MessageExtras
from core.ports import NotifierPort

LOGGER = logging.getLogger(__name__)


class MessageProcessor:
    """Fans a decoded message out to every configured webhook, in order."""

    def __init__(self, targets: Iterable[WebhookTarget], notifier: NotifierPort) -> None:
        self._targets = list(targets)
        self._notifier = notifier

    async def handle(self, message: Message, extras: MessageExtras) -> List[DispatchOutcome]:
        """Offer one message to each webhook and collect the outcomes."""

        outcomes: List[DispatchOutcome] = []
        for index, target in enumerate(self._targets):
            # One webhook failing must not keep the message from the others.
            try:
                outcome = await self._notifier.send(message, extras, target)
            except Exception:
                LOGGER.exception("Dispatch to webhook #%s (%s) raised", index, target.url)
                outcome = DispatchOutcome.failed(REASON_UNEXPECTED_ERROR)
            if outcome.status == FAILED:
                LOGGER.warning("Webhook #%s (%s) failed: %s", index, target.url, outcome.reason)
            outcomes.append(outcome)
        return outcomes
