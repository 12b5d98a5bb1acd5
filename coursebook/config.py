"""
Process configuration.

Settings are resolved once at process start, in this order (later wins):

    1. built-in defaults
    2. an optional JSON config file (--config or COURSEBOOK_CONFIG)
    3. environment variables

The resulting Settings object is passed explicitly to build_store() and
create_app(); nothing in the package reads the environment after that.

Example config file:

    {
        "backend": "firestore",
        "firebase_project_id": "fs-booking-app",
        "api_key": "...",
        "timezone": "Asia/Tokyo"
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from coursebook.errors import ConfigError


BACKENDS = ("firestore", "local")

# Flask session signing key used when none is configured (development only)
DEFAULT_SECRET_KEY = "coursebook-dev"

# env var -> Settings attribute
ENV_VARS: dict[str, str] = {
    "COURSEBOOK_BACKEND": "backend",
    "FIREBASE_PROJECT_ID": "firebase_project_id",
    "FIREBASE_API_KEY": "api_key",
    "FIREBASE_AUTH_TOKEN": "auth_token",
    "FIRESTORE_DATABASE": "database",
    "FIRESTORE_EMULATOR_HOST": "emulator_host",
    "COURSEBOOK_DATA_FILE": "data_file",
    "COURSEBOOK_OWNER_ID": "owner_id",
    "COURSEBOOK_TIMEZONE": "timezone",
    "COURSEBOOK_TIMEOUT": "timeout",
    "COURSEBOOK_SECRET_KEY": "secret_key",
    "COURSEBOOK_LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class Settings:
    backend: str = "firestore"
    firebase_project_id: Optional[str] = None
    api_key: Optional[str] = None
    auth_token: Optional[str] = None
    database: str = "(default)"
    emulator_host: Optional[str] = None
    data_file: Optional[str] = None
    owner_id: str = "super-admin-user-id"
    timezone: str = "Asia/Tokyo"
    timeout: float = 10.0
    secret_key: str = DEFAULT_SECRET_KEY
    log_level: str = "INFO"

    def validate(self) -> "Settings":
        if self.backend not in BACKENDS:
            raise ConfigError(f"Unknown backend {self.backend!r} (expected one of {', '.join(BACKENDS)})")
        if self.backend == "firestore" and not self.firebase_project_id:
            raise ConfigError("firebase_project_id is required for the firestore backend")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout!r}")
        return self


def _coerce(name: str, value: Any) -> Any:
    if name == "timeout":
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"timeout must be a number, got {value!r}") from None
    if value is None:
        return None
    return str(value).strip()


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_settings(
    config_path: str | Path | None = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> Settings:
    """
    Build and validate Settings from file, environment and keyword overrides.

    `environ` defaults to os.environ; tests pass a plain dict instead.
    """
    env = os.environ if environ is None else environ
    known = {f.name for f in fields(Settings)}
    values: dict[str, Any] = {}

    path = config_path or env.get("COURSEBOOK_CONFIG")
    if path:
        for key, value in _read_config_file(Path(path)).items():
            if key not in known:
                raise ConfigError(f"Unknown config key: {key!r}")
            values[key] = _coerce(key, value)

    for var, name in ENV_VARS.items():
        raw = env.get(var)
        if raw is not None and raw.strip():
            values[name] = _coerce(name, raw)

    for key, value in overrides.items():
        if value is None:
            continue
        if key not in known:
            raise ConfigError(f"Unknown setting: {key!r}")
        values[key] = _coerce(key, value)

    return replace(Settings(), **values).validate()
