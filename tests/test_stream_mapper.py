from __future__ import annotations

import pytest

from adapters.stream_mapper import decode_frame, frame_text, is_message_frame
from core.errors import DecodeError
from core.models import MessageExtras


def test_decode_frame_reads_both_forms() -> None:
    frame = '{"id": 7, "appid": 42, "title": "Backup", "message": "done", "priority": 5, "extras": {"tag": "ops"}}'
    message, extras = decode_frame(frame)
    assert message.title == "Backup"
    assert message.body == "done"
    assert message.priority == 5
    assert message.extras == {"tag": "ops"}
    assert extras == MessageExtras(id=7, app_id=42)


def test_decode_frame_defaults_missing_fields() -> None:
    message, extras = decode_frame("{}")
    assert message.title == ""
    assert message.body == ""
    assert message.extras is None
    assert extras == MessageExtras()


def test_decode_frame_bad_extras_ids_yield_zero_values() -> None:
    message, extras = decode_frame('{"title": "t", "message": "m", "appid": "42", "id": 1}')
    assert message.title == "t"
    assert extras == MessageExtras()


@pytest.mark.parametrize(
    "frame",
    [
        "{not json",
        '{"title": 5, "message": "m"}',
        '{"title": "t", "extras": ["tag"]}',
    ],
)
def test_decode_frame_rejects_malformed_messages(frame: str) -> None:
    with pytest.raises(DecodeError):
        decode_frame(frame)


def test_frame_text_and_format_check() -> None:
    assert frame_text(b'{"title": "t"}') == '{"title": "t"}'
    with pytest.raises(DecodeError):
        frame_text(b"\xff\xfe")
    assert is_message_frame('{"title": "t"}')
    assert not is_message_frame("2024-01-01 00:00:00")
    assert not is_message_frame("")


def test_bad_priority_is_ignored_not_fatal() -> None:
    message, extras = decode_frame('{"title": "t", "message": "m", "priority": "high", "appid": 4}')
    assert message.title == "t"
    assert message.priority == 0
    assert extras.app_id == 4
