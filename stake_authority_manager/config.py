"""Configuration loading.

Settings come from an optional JSON file (``config.cfg`` by default) layered
over built-in defaults. Command-line flags are applied on top by the CLI.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .errors import ConfigurationError


CONFIG_FILENAME = "config.cfg"
DEFAULT_RPC_ENDPOINT = "https://rpc.mainnet.x1.xyz"
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")
DEFAULT_CONFIG: Dict[str, Any] = {
    "rpc_endpoint": DEFAULT_RPC_ENDPOINT,
    "commitment": "confirmed",
    "blockhash_commitment": "finalized",
    "confirmation_timeout_seconds": 60.0,
    "confirmation_poll_interval_seconds": 1.0,
    "submission_max_retries": 3,
    "skip_preflight": False,
    "request_timeout_seconds": 35.0,
    "rpc_max_retries": 3,
    "token_symbol": "XNT",
    "log_level": "INFO",
}


def safe_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def load_config(config_path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Load and normalize configuration.

    When ``config_path`` is None the default file is read if it exists.
    An explicitly named file that does not exist is an error.
    """
    config: Dict[str, Any] = dict(DEFAULT_CONFIG)

    explicit = config_path is not None
    path = config_path if explicit else Path.cwd() / CONFIG_FILENAME
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            try:
                loaded = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"Invalid JSON in configuration file: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigurationError("Configuration file must contain a JSON object.")
        config.update(loaded)
    elif explicit:
        raise ConfigurationError(f"Configuration file not found at {path}")

    for key, value in (overrides or {}).items():
        if value is not None:
            config[key] = value

    return normalize_config(config)


def normalize_config(config: Dict[str, Any]) -> Dict[str, Any]:
    endpoint = str(config.get("rpc_endpoint") or "").strip()
    parsed = urlparse(endpoint)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigurationError(f"'rpc_endpoint' must be an http(s) URL, got {endpoint!r}")
    config["rpc_endpoint"] = endpoint

    for key in ("commitment", "blockhash_commitment"):
        level = str(config.get(key) or "").strip().lower()
        if level not in COMMITMENT_LEVELS:
            raise ConfigurationError(f"'{key}' must be one of {', '.join(COMMITMENT_LEVELS)}.")
        config[key] = level

    for key in ("confirmation_timeout_seconds", "confirmation_poll_interval_seconds", "request_timeout_seconds"):
        value = safe_float(config.get(key))
        if value is None or value <= 0:
            raise ConfigurationError(f"'{key}' must be a positive number.")
        config[key] = value

    for key in ("submission_max_retries", "rpc_max_retries"):
        value = safe_int(config.get(key))
        if value is None or value < 0:
            raise ConfigurationError(f"'{key}' must be a non-negative integer.")
        config[key] = value
    config["rpc_max_retries"] = max(1, config["rpc_max_retries"])

    config["skip_preflight"] = bool(config.get("skip_preflight"))
    config["token_symbol"] = str(config.get("token_symbol") or DEFAULT_CONFIG["token_symbol"]).strip()

    log_level = str(config.get("log_level") or "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError(f"Unknown log level {log_level!r}")
    config["log_level"] = log_level

    return config
