from __future__ import annotations

from adapters.notification_formatting import escape_value, render_body, render_headers
from core.config import DEFAULT_BODY
from core.models import Message


def test_render_body_escapes_only_substituted_values() -> None:
    template = '{"m":"$title\\n$message"}'
    message = Message(title="A", body="B\nC\r")
    body = render_body(template, message)
    assert body == '{"m":"A\\nB\\nC\\r"}'


def test_render_default_body_is_one_line_json() -> None:
    body = render_body(DEFAULT_BODY, Message(title="Backup", body="done\nin 3s"))
    assert body == '{"msg":"Backup\\ndone\\nin 3s"}'
    assert "\n" not in body


def test_render_body_replaces_every_placeholder_once() -> None:
    template = "$title|$title|$message"
    body = render_body(template, Message(title="$message", body="x"))
    assert body == "$message|$message|x"


def test_render_body_without_placeholders_is_unchanged() -> None:
    assert render_body("static", Message(title="t", body="b")) == "static"


def test_render_headers_substitutes_values() -> None:
    headers = render_headers({"X-Title": "$title", "Content-Type": "text/plain"}, Message(title="a\nb", body=""))
    assert headers == {"X-Title": "a\\nb", "Content-Type": "text/plain"}


def test_escape_value() -> None:
    assert escape_value("a\r\nb") == "a\\r\\nb"


def test_render_headers_percent_encodes_non_ascii_values() -> None:
    headers = render_headers({"X-Title": "[$title]"}, Message(title="磁盘告警 ok", body=""))
    assert headers == {"X-Title": "[%E7%A3%81%E7%9B%98%E5%91%8A%E8%AD%A6 ok]"}
    assert headers["X-Title"].isascii()


def test_render_body_keeps_non_ascii_values() -> None:
    assert render_body("$title", Message(title="磁盘告警", body="")) == "磁盘告警"
