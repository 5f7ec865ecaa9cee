"""
Linter configuration: optional YAML file plus environment overrides.

Lookup order for the file: explicit path, DQL_CONFIG, ./.dql.yaml. Missing file means defaults.
"""
import os

import yaml

from dql.config_validation import reject_plaintext_secrets, resolve_secret
from dql_core.analysis import DEFAULT_WRAPPER, METRIC_ORDERS, ORDER_POSITION

DEFAULT_CONFIG_FILENAME = ".dql.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARN", "WARNING", "ERROR")
LOG_FORMATS = ("console", "json")

_ENV_OVERRIDES = {
    "site": "DD_SITE",
    "log_level": "DQL_LOG_LEVEL",
    "log_format": "DQL_LOG_FORMAT",
    "metric_order": "DQL_METRIC_ORDER",
}


def _normalize_linter_config(payload):
    config = dict(payload or {})
    config.setdefault("site", "datadoghq.com")
    config.setdefault("api_key", None)
    config.setdefault("app_key", None)
    config.setdefault("window_sec", 60)
    config.setdefault("timeout_sec", 10.0)
    config.setdefault("retries", 2)
    config.setdefault("backoff_sec", 0.5)
    config.setdefault("wrapper", DEFAULT_WRAPPER)
    config.setdefault("metric_order", ORDER_POSITION)
    config.setdefault("log_level", "DEBUG")
    config.setdefault("log_format", "console")
    config.setdefault("pattern", "*")
    if isinstance(config.get("log_level"), str):
        config["log_level"] = config["log_level"].upper()
    return config


def _validate_linter_config(config):
    if not isinstance(config, dict):
        raise ValueError("linter config must be a mapping")
    if not isinstance(config.get("site"), str) or not config["site"].strip():
        raise ValueError("site must be a non-empty string")
    for field in ("window_sec", "timeout_sec", "backoff_sec"):
        value = config.get(field)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValueError(f"{field} must be a non-negative number")
    if config["window_sec"] <= 0:
        raise ValueError("window_sec must be > 0")
    retries = config.get("retries")
    if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
        raise ValueError("retries must be an integer >= 0")
    wrapper = config.get("wrapper")
    if not isinstance(wrapper, str) or not wrapper.isidentifier():
        raise ValueError("wrapper must be a function name")
    if config.get("metric_order") not in METRIC_ORDERS:
        raise ValueError(f"metric_order must be one of: {', '.join(METRIC_ORDERS)}")
    if config.get("log_level") not in LOG_LEVELS:
        raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
    if config.get("log_format") not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of: {', '.join(LOG_FORMATS)}")
    return config


def _apply_env_overrides(config, environ):
    merged = dict(config)
    for key, env_name in _ENV_OVERRIDES.items():
        value = (environ.get(env_name) or "").strip()
        if value:
            merged[key] = value
    return merged


def resolve_config_path(path=None, environ=None):
    environ = os.environ if environ is None else environ
    if path:
        return path
    if environ.get("DQL_CONFIG"):
        return environ["DQL_CONFIG"]
    if os.path.isfile(DEFAULT_CONFIG_FILENAME):
        return DEFAULT_CONFIG_FILENAME
    return None


def load_linter_config(path=None, environ=None):
    """Load, normalize and validate config; keys come from DD_CLIENT_* env or resolved refs."""
    environ = os.environ if environ is None else environ
    path = resolve_config_path(path, environ)
    payload = {}
    if path is not None:
        if not os.path.isfile(path):
            raise FileNotFoundError(f"config not found: {path}")
        with open(path, "r") as f:
            payload = yaml.safe_load(f) or {}
        if not isinstance(payload, dict):
            raise ValueError(f"config {path} must be a mapping")
        reject_plaintext_secrets(payload)
    config = _apply_env_overrides(payload, environ)
    config = _normalize_linter_config(config)
    _validate_linter_config(config)
    config["api_key"] = environ.get("DD_CLIENT_API_KEY") or resolve_secret(config.get("api_key"), environ)
    config["app_key"] = environ.get("DD_CLIENT_APP_KEY") or resolve_secret(config.get("app_key"), environ)
    config["config_path"] = path
    return config
