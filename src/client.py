"""Stream client helpers for hookrelay.

The stream url is derived from the configured server and client token; the
connectivity check dials it once and closes immediately, independent of any
running relay session.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from adapters.stream_consumer import CONNECT_ERRORS, Connector, open_connection
from core.errors import ConfigurationError, StreamConnectionError


def build_stream_url(host_server: str, client_token: str) -> str:
    """Return ``<host_server>/stream?token=<client_token>``."""

    if not host_server:
        raise ConfigurationError("host_server is required")
    return f"{host_server.rstrip('/')}/stream?token={quote(client_token, safe='')}"


async def test_connection(url: str, connector: Optional[Connector] = None) -> None:
    """Dial ``url`` once; raise StreamConnectionError when it cannot be reached."""

    logger = logging.getLogger(__name__)
    dial = connector or open_connection
    try:
        connection = await dial(url)
    except CONNECT_ERRORS as exc:
        logger.warning("Test dial error: %s", exc)
        raise StreamConnectionError(f"Could not connect to {url}: {exc}") from exc
    await connection.close()
    logger.info("Test dial succeeded")
