"""Relay lifecycle: the enable/disable boundary a host drives.

``enable()`` validates the connection settings, connects (with one retry) and
starts the session task; ``disable()`` signals that task and waits for it, so
when it returns the connection is closed and no background work remains.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from adapters.stream_consumer import IDLE, Connector, ErrorCallback, StreamConsumer
from adapters.webhook_notifier import WebhookNotifier, build_http_client
from client import build_stream_url
from core.config import RelayConfig, require_connection_settings
from core.processor import MessageProcessor

LOGGER = logging.getLogger(__name__)


class WebhookRelay:
    """One relay instance bound to a validated RelayConfig."""

    def __init__(
        self,
        config: RelayConfig,
        *,
        connector: Optional[Connector] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._config = config
        self._connector = connector
        self._http_client = http_client
        self._owns_http_client = False
        self._on_error = on_error
        self._consumer: Optional[StreamConsumer] = None
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> str:
        if self._consumer is None:
            return IDLE
        return self._consumer.state

    @property
    def enabled(self) -> bool:
        return self._task is not None

    async def enable(self, interrupt: Optional[asyncio.Event] = None) -> None:
        """Connect to the stream and start forwarding.

        Raises ConfigurationError for missing connection settings and
        StreamConnectionError when the handshake fails twice. In both cases
        nothing keeps running in the background.
        """

        if self._task is not None:
            raise RuntimeError("relay is already enabled")
        require_connection_settings(self._config)

        url = build_stream_url(self._config.host_server, self._config.client_token)
        LOGGER.info("Relay enabled, %s webhooks configured", len(self._config.web_hooks))
        LOGGER.debug("Websocket url: %s", url)

        if self._http_client is None:
            self._http_client = build_http_client(self._config.webhook_timeout)
            self._owns_http_client = True
        notifier = WebhookNotifier(self._http_client, timeout=self._config.webhook_timeout)
        processor = MessageProcessor(self._config.web_hooks, notifier)
        consumer = StreamConsumer(
            url,
            processor,
            heartbeat_interval=self._config.heartbeat_interval,
            reconnect_delay=self._config.reconnect_delay,
            connector=self._connector,
            on_error=self._on_error,
        )
        self._consumer = consumer

        try:
            await consumer.connect()
        except Exception:
            await self._close_http_client()
            raise

        self._stop = asyncio.Event()
        self._task = asyncio.create_task(consumer.run(self._stop, interrupt))

    async def wait_closed(self) -> None:
        """Wait until the session ends on its own or after ``disable()``."""

        if self._task is not None:
            await asyncio.wait({self._task})

    async def disable(self) -> None:
        """Stop the session and wait for a clean teardown.

        Precondition: called at most once per successful ``enable()``.
        """

        if self._task is None or self._stop is None:
            raise RuntimeError("relay is not enabled")
        LOGGER.info("Relay disabled")
        self._stop.set()
        task = self._task
        try:
            await task
        finally:
            self._task = None
            self._stop = None
            await self._close_http_client()

    async def _close_http_client(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_http_client = False
