"""Websocket stream adapter.

Owns the long-lived connection to the notification server. One reader task
decodes frames and hands them to the core processor, while the coordinating
loop sends heartbeats and watches the stop and interrupt tokens.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from adapters.stream_mapper import decode_frame, frame_text, is_message_frame
from core.config import DEFAULT_HEARTBEAT_INTERVAL, DEFAULT_RECONNECT_DELAY
from core.errors import DecodeError, StreamConnectionError
from core.processor import MessageProcessor

LOGGER = logging.getLogger(__name__)

IDLE = "idle"
CONNECTING = "connecting"
CONNECTED = "connected"
CLOSING = "closing"

CLOSE_NORMAL = 1000
CLOSE_INTERNAL_ERROR = 1011

CONNECT_ERRORS = (WebSocketException, OSError, asyncio.TimeoutError)

Connector = Callable[[str], Awaitable[Any]]
ErrorCallback = Callable[[Exception], None]


async def open_connection(url: str) -> Any:
    """Dial the stream; heartbeats are ours, so library pings are disabled."""

    return await connect(url, ping_interval=None)


def heartbeat_payload() -> str:
    return str(datetime.now().astimezone())


class StreamConsumer:
    """Connection state machine: idle, connecting, connected, closing."""

    def __init__(
        self,
        url: str,
        processor: MessageProcessor,
        *,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        connector: Optional[Connector] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._url = url
        self._processor = processor
        self._heartbeat_interval = heartbeat_interval
        self._reconnect_delay = reconnect_delay
        self._connector = connector or open_connection
        self._on_error = on_error
        self._connection: Any = None
        self.state = IDLE

    async def connect(self) -> None:
        """Open the connection, retrying exactly once after a short delay."""

        self.state = CONNECTING
        try:
            self._connection = await self._connector(self._url)
        except CONNECT_ERRORS as exc:
            LOGGER.warning("Dial error: %s, retry after %ss", exc, self._reconnect_delay)
            await asyncio.sleep(self._reconnect_delay)
            try:
                self._connection = await self._connector(self._url)
            except CONNECT_ERRORS as retry_exc:
                self.state = IDLE
                raise StreamConnectionError(f"Could not connect to the stream: {retry_exc}") from retry_exc
        self.state = CONNECTED
        LOGGER.info("Connected to the stream")

    async def run(self, stop: asyncio.Event, interrupt: Optional[asyncio.Event] = None) -> None:
        """Serve the connected session until stopped, interrupted or broken.

        The connection is always closed and the reader joined before this
        returns, so the caller can treat completion as "back to idle".
        """

        connection = self._connection
        if connection is None or self.state != CONNECTED:
            raise RuntimeError("connect() must succeed before run()")
        if interrupt is None:
            interrupt = asyncio.Event()

        reader = asyncio.create_task(self._read_loop(connection))
        stop_wait = asyncio.create_task(stop.wait())
        interrupt_wait = asyncio.create_task(interrupt.wait())
        graceful = False
        heartbeat_error: Optional[Exception] = None
        try:
            while True:
                done, _ = await asyncio.wait(
                    {stop_wait, interrupt_wait, reader},
                    timeout=self._heartbeat_interval,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if stop_wait in done:
                    LOGGER.info("Relay stopped")
                    graceful = True
                    break
                if interrupt_wait in done:
                    LOGGER.info("Relay interrupted")
                    graceful = True
                    break
                if reader in done:
                    break
                heartbeat_error = await self._heartbeat(connection)
                if heartbeat_error is not None:
                    break
        finally:
            self.state = CLOSING
            stop_wait.cancel()
            interrupt_wait.cancel()
            await self._release(connection, graceful)
            try:
                read_error = await reader
            finally:
                self._connection = None
                self.state = IDLE
                LOGGER.info("Stream session closed")

        if not graceful:
            self._report(heartbeat_error or read_error)

    async def _heartbeat(self, connection: Any) -> Optional[Exception]:
        try:
            await connection.send(heartbeat_payload())
        except (ConnectionClosed, OSError) as exc:
            LOGGER.warning("Heartbeat write failed: %s", exc)
            return StreamConnectionError(f"Heartbeat failed: {exc}")
        return None

    async def _release(self, connection: Any, graceful: bool) -> None:
        # After a heartbeat failure or a peer close the socket is already
        # closed, so close() only releases resources without a handshake.
        code = CLOSE_NORMAL if graceful else CLOSE_INTERNAL_ERROR
        try:
            await connection.close(code=code)
        except (WebSocketException, OSError) as exc:
            LOGGER.warning("Write close failed: %s", exc)

    async def _read_loop(self, connection: Any) -> Optional[Exception]:
        """Read frames until the connection closes; return the close error."""

        while True:
            try:
                frame = await connection.recv()
            except ConnectionClosed as exc:
                if self.state == CLOSING:
                    return None
                LOGGER.warning("Websocket read error: %s", exc)
                return StreamConnectionError(f"Connection closed by peer: {exc}")
            await self.handle_frame(frame)

    async def handle_frame(self, frame: Union[str, bytes]) -> None:
        """Decode one frame and fan it out; bad frames are logged and dropped."""

        try:
            text = frame_text(frame)
        except DecodeError as exc:
            LOGGER.warning("Dropping frame: %s", exc)
            return
        LOGGER.debug("Websocket read message: %s", text)

        if not is_message_frame(text):
            LOGGER.info("Unsupported message format, frame ignored")
            return
        try:
            message, extras = decode_frame(text)
        except DecodeError as exc:
            LOGGER.warning("Dropping frame: %s", exc)
            return
        await self._processor.handle(message, extras)

    def _report(self, error: Optional[Exception]) -> None:
        if error is None or self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            LOGGER.exception("Error callback raised")
