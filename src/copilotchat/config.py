"""Client settings.

Defaults can be overridden from ``~/.copilotchat/settings.json`` and then
from ``COPILOTCHAT_*`` environment variables (highest priority):

  - ``COPILOTCHAT_MODEL``           default chat model
  - ``COPILOTCHAT_TEMPERATURE``     sampling temperature
  - ``COPILOTCHAT_PROXY``           HTTP(S) proxy URL
  - ``COPILOTCHAT_ALLOW_INSECURE``  ``1``/``true`` disables TLS verification
  - ``COPILOTCHAT_TIMEOUT``         per-request timeout in seconds
  - ``COPILOTCHAT_HISTORY_DIR``     where ``save``/``load`` keep histories
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from copilotchat import __version__

log = logging.getLogger(__name__)

SETTINGS_DIR = Path.home() / ".copilotchat"
SETTINGS_FILE = SETTINGS_DIR / "settings.json"

DEFAULT_MODEL = "gpt-4o-2024-05-13"
DEFAULT_EMBEDDING_MODEL = "copilot-text-embedding-ada-002"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    model: str = DEFAULT_MODEL
    temperature: float = 0.1
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_chunk_size: int = 15
    timeout: float = DEFAULT_TIMEOUT
    proxy: str | None = None
    allow_insecure: bool = False
    history_dir: str = str(SETTINGS_DIR / "history")
    editor_version: str = "Neovim/0.10.0"
    plugin_version: str = f"copilotchat/{__version__}"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        log.warning("Ignoring invalid %s=%r", name, raw)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        log.warning("Ignoring unreadable settings file %s", path)
        return {}
    if not isinstance(data, dict):
        return {}

    kinds = {f.name: f.type for f in fields(Settings)}
    out: dict[str, Any] = {}
    for key, value in data.items():
        kind = kinds.get(key)
        if kind is None:
            continue
        if value is None and kind == "str | None":
            out[key] = None
            continue
        checked = _check_value(kind, value)
        if checked is None:
            log.warning("Ignoring invalid %s=%r in %s", key, value, path)
            continue
        out[key] = checked
    return out


def _check_value(kind: str, value: Any) -> Any:
    """Return *value* as the field's type, or None if it does not fit."""
    if isinstance(value, bool):
        return value if kind == "bool" else None
    if kind == "float" and isinstance(value, (int, float)):
        return float(value)
    if kind == "int" and isinstance(value, int) and value > 0:
        return value
    if kind in ("str", "str | None") and isinstance(value, str) and value.strip():
        return value.strip()
    return None


def load_settings(path: Path = SETTINGS_FILE) -> Settings:
    """Build ``Settings`` from defaults, the JSON file and the environment."""
    settings = replace(Settings(), **_read_file(path))

    overrides: dict[str, Any] = {}
    model = os.environ.get("COPILOTCHAT_MODEL", "").strip()
    if model:
        overrides["model"] = model
    proxy = os.environ.get("COPILOTCHAT_PROXY", "").strip()
    if proxy:
        overrides["proxy"] = proxy
    history_dir = os.environ.get("COPILOTCHAT_HISTORY_DIR", "").strip()
    if history_dir:
        overrides["history_dir"] = history_dir
    overrides["temperature"] = _env_float("COPILOTCHAT_TEMPERATURE", settings.temperature)
    overrides["timeout"] = _env_float("COPILOTCHAT_TIMEOUT", settings.timeout)
    overrides["allow_insecure"] = _env_bool("COPILOTCHAT_ALLOW_INSECURE", settings.allow_insecure)
    return replace(settings, **overrides)
