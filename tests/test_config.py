from __future__ import annotations

import json

import pytest

import settings
from core.config import (
    DEFAULT_BODY,
    RelayConfig,
    WebhookTarget,
    build_config,
    default_config,
    require_connection_settings,
    resolve_target,
)
from core.errors import ConfigurationError


def test_build_config_reads_the_plugin_schema() -> None:
    config = build_config(
        {
            "client_token": "abc",
            "host_server": "ws://localhost/",
            "debug": True,
            "web_hooks": [
                {
                    "url": "http://hook",
                    "method": "PUT",
                    "body": "$title",
                    "header": {"X-Count": 3},
                    "tags": ["a", "b"],
                    "rules": [{"type": "title", "mode": "or", "texts": ["x"]}],
                }
            ],
        }
    )
    assert config.host_server == "ws://localhost"
    assert config.debug is True
    [hook] = config.web_hooks
    assert hook.method == "PUT"
    assert hook.headers == {"X-Count": "3"}
    assert hook.tags == ("a", "b")
    assert hook.rules[0].mode == "OR"
    assert config.heartbeat_interval == 1.0


def test_build_config_rejects_wrong_shapes() -> None:
    with pytest.raises(ConfigurationError):
        build_config({"web_hooks": {"url": "x"}})
    with pytest.raises(ConfigurationError):
        build_config({"web_hooks": [{"url": 5}]})
    with pytest.raises(ConfigurationError):
        build_config({"web_hooks": [{"url": "x", "header": ["a"]}]})
    with pytest.raises(ConfigurationError):
        build_config({"heartbeat_interval": 0})
    with pytest.raises(ConfigurationError):
        build_config({"web_hooks": [{"url": "http://x", "tags": 5}]})
    with pytest.raises(ConfigurationError):
        build_config({"web_hooks": [{"url": "http://x", "rules": [{"type": "appid", "texts": 42}]}]})
    with pytest.raises(ConfigurationError):
        build_config({"web_hooks": [{"url": "http://x", "rules": {"type": "appid"}}]})


def test_empty_url_is_kept_for_delivery_to_report() -> None:
    config = build_config({"web_hooks": [{"tags": ["a"]}]})
    assert config.web_hooks[0].url == ""


def test_resolve_target_fills_defaults_without_mutation() -> None:
    target = WebhookTarget(url="http://hook")
    resolved = resolve_target(target)

    assert resolved.method == "POST"
    assert resolved.headers == {"Content-Type": "application/json"}
    assert resolved.body == DEFAULT_BODY
    assert target.method is None
    assert target.headers is None
    assert resolve_target(target) == resolved


def test_resolve_target_keeps_explicit_empty_headers() -> None:
    resolved = resolve_target(WebhookTarget(url="http://hook", headers={}, method="get", body="x"))
    assert resolved.headers == {}
    assert resolved.method == "GET"
    assert resolved.body == "x"


def test_require_connection_settings() -> None:
    with pytest.raises(ConfigurationError):
        require_connection_settings(RelayConfig(client_token="abc", host_server=""))
    with pytest.raises(ConfigurationError):
        require_connection_settings(RelayConfig(client_token="", host_server="ws://localhost"))
    require_connection_settings(RelayConfig(client_token="abc", host_server="ws://localhost"))


def test_default_config_is_valid_but_not_ready() -> None:
    config = build_config(default_config())
    assert config.host_server == "ws://localhost"
    with pytest.raises(ConfigurationError):
        require_connection_settings(config)


def test_load_settings_applies_env_overrides(tmp_path, monkeypatch) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"client_token": "from-file", "host_server": "ws://file"}), encoding="utf-8")
    monkeypatch.setenv("HOOKRELAY_CLIENT_TOKEN", "from-env")
    monkeypatch.delenv("HOOKRELAY_HOST_SERVER", raising=False)

    raw, config = settings.load_settings(str(path))

    assert raw["client_token"] == "from-env"
    assert config.client_token == "from-env"
    assert config.host_server == "ws://file"


def test_load_settings_reports_missing_or_invalid_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        settings.load_settings(str(tmp_path / "missing.json"))
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        settings.load_settings(str(broken))


def test_debug_must_be_a_boolean() -> None:
    assert build_config({"debug": False}).debug is False
    assert build_config({"debug": True}).debug is True
    assert build_config({}).debug is False
    with pytest.raises(ConfigurationError):
        build_config({"debug": "false"})
    with pytest.raises(ConfigurationError):
        build_config({"debug": 1})


@pytest.mark.parametrize("value", ["inf", float("inf"), "nan", float("-inf")])
def test_intervals_must_be_finite(value) -> None:
    with pytest.raises(ConfigurationError):
        build_config({"heartbeat_interval": value})
    with pytest.raises(ConfigurationError):
        build_config({"webhook_timeout": value})
