"""Conversation turns and their persistence.

Histories are stored as ``<path>/<name>.json``: a JSON list of
``{"role": ..., "content": ...}`` objects in conversation order.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Literal

from copilotchat.errors import CopilotError

log = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]

_ROLES = {"system", "user", "assistant"}


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "Turn":
        role = message.get("role")
        if role not in _ROLES:
            raise ValueError(f"Invalid role in history: {role!r}")
        return cls(role=role, content=str(message.get("content") or ""))


class ConversationState:
    """Ordered turns; evicted from the front, appended at the back."""

    def __init__(self, turns: Iterable[Turn] = ()) -> None:
        self._turns: list[Turn] = list(turns)

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def append(self, role: Role, content: str) -> None:
        self._turns.append(Turn(role, content))

    def evict(self, count: int) -> None:
        """Drop the *count* oldest turns."""
        if count > 0:
            del self._turns[:count]

    def clear(self) -> None:
        self._turns.clear()

    def replace(self, turns: Iterable[Turn]) -> None:
        self._turns = list(turns)


def history_file(name: str, path: str | Path) -> Path:
    return Path(path).expanduser() / f"{name}.json"


def save_history(turns: Iterable[Turn], name: str, path: str | Path) -> Path:
    target = history_file(name, path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps([t.to_message() for t in turns], indent=2))
    except OSError as exc:
        log.error("Failed to save history to %s", target)
        raise CopilotError(f"Failed to save history to {target}: {exc}") from exc
    log.info("Saved history to %s", target)
    return target


def load_history(name: str, path: str | Path) -> list[Turn] | None:
    """Read a saved history; ``None`` when no such history exists."""
    target = history_file(name, path)
    if not target.exists():
        return None
    try:
        data = json.loads(target.read_text())
        turns = [Turn.from_message(m) for m in data]
    except (json.JSONDecodeError, OSError, TypeError, AttributeError, ValueError):
        log.warning("Could not read history from %s", target)
        return None
    log.info("Loaded history from %s", target)
    return turns
