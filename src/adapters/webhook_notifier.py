"""HTTP webhook notification adapter.

Implements the core NotifierPort with an ``httpx.AsyncClient``. Every call
returns a DispatchOutcome; nothing is raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from adapters.notification_formatting import render_body, render_headers
from core.config import DEFAULT_WEBHOOK_TIMEOUT, WebhookTarget, resolve_target
from core.errors import DispatchError
from core.models import (
    DELIVERED,
    REASON_INVALID_CONFIG,
    REASON_TRANSPORT_ERROR,
    DispatchOutcome,
    Message,
    MessageExtras,
)
from core.rules_engine import matches

LOGGER = logging.getLogger(__name__)


def build_http_client(timeout: float = DEFAULT_WEBHOOK_TIMEOUT) -> httpx.AsyncClient:
    """Create the shared client used for all webhook calls of one session."""

    return httpx.AsyncClient(timeout=timeout)


class WebhookNotifier:
    """Notifier adapter that forwards messages to configured webhooks."""

    def __init__(self, client: httpx.AsyncClient, timeout: Optional[float] = None) -> None:
        self._client = client
        self._timeout = timeout

    async def send(self, message: Message, extras: MessageExtras, target: WebhookTarget) -> DispatchOutcome:
        """Match, render and deliver one message to one webhook."""

        if not matches(message, extras, target):
            LOGGER.debug("Message %r does not match %s, skip", message.title, target.url or "<no url>")
            return DispatchOutcome.skipped()

        if not target.url:
            LOGGER.error("Webhook url is empty, check the web_hooks config")
            return DispatchOutcome.failed(REASON_INVALID_CONFIG)

        effective = resolve_target(target)
        body = render_body(effective.body, message)
        headers = render_headers(effective.headers, message)
        LOGGER.debug("Webhook %s %s headers=%s body=%s", effective.method, effective.url, headers, body)

        try:
            response = await self._deliver(effective, headers, body)
        except DispatchError as exc:
            LOGGER.error("Webhook request to %s failed: %s", effective.url, exc)
            return DispatchOutcome.failed(REASON_TRANSPORT_ERROR)

        if not response.is_success:
            # Non-2xx is reported but still counts as delivered.
            LOGGER.warning(
                "Webhook %s responded with %s: %s",
                effective.url,
                response.status_code,
                response.text[:200],
            )
        else:
            LOGGER.debug("Webhook response: %s", response.text)
        LOGGER.info(
            "Forwarded %r (priority %s) to %s (%s)",
            message.title,
            message.priority,
            effective.url,
            response.status_code,
        )
        return DispatchOutcome(status=DELIVERED, status_code=response.status_code)

    async def _deliver(self, target: WebhookTarget, headers: dict, body: str) -> httpx.Response:
        kwargs = {}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        try:
            return await self._client.request(
                target.method,
                target.url,
                headers=headers,
                content=body.encode("utf-8"),
                **kwargs,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DispatchError(str(exc) or type(exc).__name__) from exc
        except (TypeError, ValueError) as exc:
            # Malformed method or header values surface here before any I/O.
            raise DispatchError(f"Malformed request: {exc}") from exc
