"""
Kernel settings (``rental_kernel.config``).

Responsibility
--------------
Resolves the runtime settings of the kernel into one frozen
``KernelSettings`` instance.  Sources are applied in order, later ones
winning:

1. built-in defaults;
2. a YAML file, given explicitly or through ``RENTAL_KERNEL_CONFIG``;
3. environment variables.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key in the YAML mapping  -> ``ValueError``.
* Non-numeric value for a numeric setting  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

CONFIG_PATH_ENV = "RENTAL_KERNEL_CONFIG"

_ENV_OVERRIDES = {
    "DATABASE_URL": "database_url",
    "RENTAL_KERNEL_STATEMENT_TIMEOUT_MS": "statement_timeout_ms",
    "RENTAL_KERNEL_ENFORCE_CAPACITY": "enforce_booking_capacity",
    "RENTAL_KERNEL_LOG_LEVEL": "log_level",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class KernelSettings:
    database_url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    statement_timeout_ms: int | None = None
    log_level: str = "INFO"
    enforce_booking_capacity: bool = False


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML mapping; an empty file yields ``{}``.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"{key}: cannot interpret {value!r} as a boolean")


def _parse_optional_int(value: Any, key: str) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key}: expected an integer, got {value!r}") from None


def _coerce(key: str, value: Any) -> Any:
    if key in ("echo", "enforce_booking_capacity"):
        return _parse_bool(value, key)
    if key == "statement_timeout_ms":
        return _parse_optional_int(value, key)
    if key in ("pool_size", "max_overflow", "pool_timeout"):
        parsed = _parse_optional_int(value, key)
        if parsed is None:
            raise ValueError(f"{key}: a value is required")
        return parsed
    if key == "log_level":
        return str(value).upper()
    return str(value)


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelSettings:
    """
    Resolve KernelSettings from defaults, YAML and the environment.

    Args:
        path: YAML file to read.  Defaults to ``$RENTAL_KERNEL_CONFIG`` when
            set; otherwise no file is read.
        environ: Environment mapping, ``os.environ`` if None.

    Raises:
        ValueError: Unknown key or unparseable value.
    """
    env = os.environ if environ is None else environ
    known = {f.name for f in fields(KernelSettings)}
    values: dict[str, Any] = {}

    config_path = path if path is not None else env.get(CONFIG_PATH_ENV)
    if config_path:
        data = load_yaml_file(Path(config_path))
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown settings in {config_path}: {', '.join(unknown)}")
        for key, value in data.items():
            values[key] = _coerce(key, value)

    for env_key, key in _ENV_OVERRIDES.items():
        if env_key in env:
            values[key] = _coerce(key, env[env_key])

    return replace(KernelSettings(), **values)
