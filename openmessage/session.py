from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .errors import SessionError

logger = logging.getLogger(__name__)


def save_session(path: Path | str, data: dict[str, Any]) -> Path:
    """Write session credentials as JSON, readable only by the owner.

    The file is replaced atomically so a crash mid-write leaves the previous
    session intact.
    """

    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".session-", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False)
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("saved session to %s", target)
    return target


def load_session(path: Path | str) -> dict[str, Any]:
    target = Path(path).expanduser()
    try:
        raw = target.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SessionError(f"no session at {target}") from exc
    except OSError as exc:
        raise SessionError(f"cannot read session at {target}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SessionError(f"invalid session json at {target}") from exc
    if not isinstance(data, dict):
        raise SessionError(f"session at {target} must be an object")
    return data


def delete_session(path: Path | str) -> bool:
    target = Path(path).expanduser()
    if not target.exists():
        return False
    target.unlink()
    return True
