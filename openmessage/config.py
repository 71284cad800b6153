from __future__ import annotations

import json
import os
import warnings
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from .errors import ConfigError

DEFAULT_CONFIG_PATH = Path("~/.config/openmessage/config.json").expanduser()
DEFAULT_DATA_DIR = "~/.local/share/openmessage"

CONFIG_ENV_OVERRIDES = {
    "data_dir": "OPENMESSAGES_DATA_DIR",
    "db_path": "OPENMESSAGES_DB",
    "log_level": "OPENMESSAGES_LOG_LEVEL",
    "demo": "OPENMESSAGES_DEMO",
    "supabase_url": "SUPABASE_URL",
    "supabase_key": "SUPABASE_KEY",
    "mirror_timeout_s": "OPENMESSAGES_MIRROR_TIMEOUT_S",
    "mirror_workers": "OPENMESSAGES_MIRROR_WORKERS",
    "mirror_queue_size": "OPENMESSAGES_MIRROR_QUEUE_SIZE",
}

_INT_KEYS = {
    "mirror_workers",
    "mirror_queue_size",
    "backfill_conversation_limit",
    "backfill_message_limit",
}
_FLOAT_KEYS = {"mirror_timeout_s"}
_BOOL_KEYS = {"demo"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("OPENMESSAGE_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ConfigError("config must be an object")
    return data


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class OpenMessageConfig:
    data_dir: str = DEFAULT_DATA_DIR
    # Empty paths resolve under data_dir.
    db_path: str = ""
    session_path: str = ""
    log_level: str = "INFO"
    demo: bool = False

    # Mirror is active only when both are set.
    supabase_url: str | None = None
    supabase_key: str | None = None
    mirror_timeout_s: float = 10.0
    mirror_workers: int = 2
    mirror_queue_size: int = 1000

    backfill_conversation_limit: int = 100
    backfill_message_limit: int = 20

    @property
    def mirror_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def resolved_db_path(self) -> Path:
        if self.db_path:
            return Path(self.db_path).expanduser()
        return self.data_path / "messages.db"

    @property
    def resolved_session_path(self) -> Path:
        if self.session_path:
            return Path(self.session_path).expanduser()
        return self.data_path / "session.json"

    def to_dict(self, *, redact: bool = True) -> dict[str, Any]:
        data = asdict(self)
        if redact and data.get("supabase_key"):
            data["supabase_key"] = "***"
        return data


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in {"1", "true", "yes", "on"}:
        return True
    if value.lower() in {"0", "false", "off", "no", ""}:
        return False
    return default


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if parsed <= 0:
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if parsed <= 0:
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> OpenMessageConfig:
    cfg = OpenMessageConfig()
    cfg = _apply_dict(cfg, read_config_file(path))
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: OpenMessageConfig, data: dict[str, Any]) -> OpenMessageConfig:
    known = {f.name for f in fields(cfg)}
    for key, value in data.items():
        if key not in known:
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _FLOAT_KEYS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key in _BOOL_KEYS:
            setattr(cfg, key, _coerce_bool(value, getattr(cfg, key), key=key))
            continue
        if value is not None and not isinstance(value, str):
            warnings.warn(f"Invalid string for {key}: {value!r}", RuntimeWarning, stacklevel=2)
            continue
        setattr(cfg, key, value)
    return cfg
