"""
Secure defaults: API/app keys in a config file must be env refs (${VAR}) or key file
paths, never plaintext. Refs are resolved when the config is loaded.
"""
import os
import re
from typing import Any


_SENSITIVE_KEYS = frozenset({
    "password", "secret", "api_key", "apikey", "app_key", "appkey",
    "application_key", "token", "private_key",
})
_SENSITIVE_NORMALIZED = frozenset(s.replace("-", "").replace("_", "") for s in _SENSITIVE_KEYS)
_ENV_REF = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


def _key_looks_sensitive(key: str) -> bool:
    k = key.lower().replace("-", "").replace("_", "")
    return k in _SENSITIVE_NORMALIZED


def _is_env_ref(value: str) -> bool:
    return bool(_ENV_REF.match(value.strip()))


def _is_file_ref(value: str) -> bool:
    s = value.strip()
    if not s:
        return False
    return s.startswith("/") or s.startswith("./") or s.startswith("~")


def reject_plaintext_secrets(payload: Any, path: str = "") -> None:
    """
    Recursively check for sensitive keys with plaintext string values.
    Raises ValueError if a sensitive key holds a string that is neither an env ref nor a file path.
    """
    if isinstance(payload, dict):
        for k, v in payload.items():
            p = f"{path}.{k}" if path else str(k)
            if isinstance(v, str) and v and _key_looks_sensitive(str(k)):
                if _is_env_ref(v) or _is_file_ref(v):
                    continue
                raise ValueError(
                    f"plaintext secret not allowed at {p}: use env ref (e.g. ${{VAR}}) or file path"
                )
            reject_plaintext_secrets(v, p)
    elif isinstance(payload, list):
        for i, v in enumerate(payload):
            reject_plaintext_secrets(v, f"{path}[{i}]")


def resolve_secret(value: str | None, environ=None) -> str | None:
    """${VAR} -> environ[VAR]; file path -> stripped file contents."""
    if not value:
        return None
    environ = os.environ if environ is None else environ
    value = value.strip()
    match = _ENV_REF.match(value)
    if match:
        return environ.get(match.group(1)) or None
    if _is_file_ref(value):
        path = os.path.expanduser(value)
        if not os.path.isfile(path):
            raise ValueError(f"secret file not found: {value}")
        with open(path, "r") as f:
            return f.read().strip() or None
    return value
