"""Configuration file loading for hookrelay.

All user-editable settings (stream, webhooks, rules, logging) live in a single
JSON file. Secrets can be kept out of it: values from the environment (or a
``.env`` file) override the connection fields.
"""

import json
import os
from typing import Optional

from dotenv import load_dotenv

from core.config import RelayConfig, build_config
from core.errors import ConfigurationError

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Default location; HOOKRELAY_CONFIG or --config point elsewhere.
CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

# Environment variables that override fields of the JSON file.
ENV_OVERRIDES = {
    "HOOKRELAY_CLIENT_TOKEN": "client_token",
    "HOOKRELAY_HOST_SERVER": "host_server",
}


def resolve_config_path(path: Optional[str] = None) -> str:
    """Pick the config path: explicit argument, then env, then the default."""

    load_dotenv()
    return path or os.getenv("HOOKRELAY_CONFIG") or CONFIG_PATH


def load_json_config(path: str) -> dict:
    """Load the JSON config file with its flat, user-friendly schema."""

    if not os.path.exists(path):
        raise ConfigurationError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        try:
            raw = json.load(handle)
        except ValueError as exc:
            raise ConfigurationError(f"Config file is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError("Config file must contain a JSON object")
    return raw


def apply_env_overrides(raw: dict) -> dict:
    """Return a copy of ``raw`` with connection fields taken from the env."""

    merged = dict(raw)
    for env_name, key in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            merged[key] = value
    return merged


def load_settings(path: Optional[str] = None) -> tuple[dict, RelayConfig]:
    """Load the raw config (for logging setup) and the validated RelayConfig."""

    raw = apply_env_overrides(load_json_config(resolve_config_path(path)))
    return raw, build_config(raw)
