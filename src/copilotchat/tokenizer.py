"""Token counting backed by tiktoken.

The model catalog names a tokenizer per model (``cl100k_base``,
``o200k_base``, ...).  ``Tokenizer.load`` selects it; ``count`` is only
trustworthy after that.  Loading may download BPE files on first use.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import tiktoken

log = logging.getLogger(__name__)

DEFAULT_TOKENIZER = "cl100k_base"


class TokenCounter(Protocol):
    def load(self, name: str) -> None:
        ...

    def count(self, text: str) -> int:
        ...


class Tokenizer:
    """Caches tiktoken encodings by name and counts with the active one."""

    def __init__(self) -> None:
        self._encodings: dict[str, Any] = {}
        self._active: Any = None
        self.name: str | None = None

    def load(self, name: str) -> None:
        name = (name or DEFAULT_TOKENIZER).strip()
        encoding = self._encodings.get(name)
        if encoding is None:
            try:
                encoding = tiktoken.get_encoding(name)
            except ValueError:
                log.warning("Unknown tokenizer %s, using %s", name, DEFAULT_TOKENIZER)
                encoding = tiktoken.get_encoding(DEFAULT_TOKENIZER)
            self._encodings[name] = encoding
        self._active = encoding
        self.name = name

    def count(self, text: str) -> int:
        if not text:
            return 0
        if self._active is None:
            self.load(DEFAULT_TOKENIZER)
        return len(self._active.encode(text, disallowed_special=()))
