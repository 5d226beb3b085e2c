"""Stream-frame-to-core message mapping adapter.

This keeps the wire format details out of the core pipeline. Frames come from
an untrusted server, so every field is type-checked before it is used.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Tuple, Union

from core.errors import DecodeError
from core.models import Message, MessageExtras

LOGGER = logging.getLogger(__name__)


def frame_text(frame: Union[str, bytes]) -> str:
    """Return the frame as text, decoding binary frames as UTF-8."""

    if isinstance(frame, bytes):
        try:
            return frame.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Frame is not valid UTF-8: {exc}") from exc
    return frame


def is_message_frame(text: str) -> bool:
    """Only JSON objects carry messages; everything else is ignored."""

    return text.startswith("{")


def _load_object(text: str) -> dict:
    try:
        document = json.loads(text)
    except ValueError as exc:
        raise DecodeError(f"Invalid JSON frame: {exc}") from exc
    if not isinstance(document, dict):
        raise DecodeError("Frame is not a JSON object")
    return document


def _string_field(document: dict, key: str) -> str:
    value = document.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"Field {key!r} must be a string")
    return value


def _int_field(document: dict, key: str) -> int:
    value = document.get(key)
    if value is None:
        return 0
    # bool is an int subclass but is never a valid identifier.
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"Field {key!r} must be an integer")
    return value


def _priority(document: dict) -> int:
    try:
        return _int_field(document, "priority")
    except DecodeError as exc:
        LOGGER.warning("Ignoring message priority: %s", exc)
        return 0


def decode_message(document: dict) -> Message:
    """Decode the Message form of a frame."""

    extras: Any = document.get("extras")
    if extras is not None and not isinstance(extras, dict):
        raise DecodeError("Field 'extras' must be an object")
    return Message(
        title=_string_field(document, "title"),
        body=_string_field(document, "message"),
        extras=extras,
        priority=_priority(document),
    )


def decode_extras(document: dict) -> MessageExtras:
    """Decode the MessageExtras form; a malformed form yields zero values."""

    try:
        return MessageExtras(id=_int_field(document, "id"), app_id=_int_field(document, "appid"))
    except DecodeError as exc:
        LOGGER.warning("Message extras could not be decoded: %s", exc)
        return MessageExtras()


def decode_frame(text: str) -> Tuple[Message, MessageExtras]:
    """Decode a JSON text frame into its Message and MessageExtras forms."""

    document = _load_object(text)
    return decode_message(document), decode_extras(document)
