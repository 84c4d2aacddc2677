"""Tests for the tiktoken-backed tokenizer (encodings are faked)."""

from __future__ import annotations

import pytest

from copilotchat import tokenizer as tokenizer_module
from copilotchat.tokenizer import DEFAULT_TOKENIZER, Tokenizer


class _FakeEncoding:
    def __init__(self, name: str) -> None:
        self.name = name

    def encode(self, text: str, disallowed_special=()) -> list[int]:
        return list(range(len(text.split())))


@pytest.fixture
def loaded(monkeypatch) -> list[str]:
    names: list[str] = []

    def get_encoding(name: str) -> _FakeEncoding:
        names.append(name)
        if name not in ("cl100k_base", "o200k_base"):
            raise ValueError(f"Unknown encoding {name}")
        return _FakeEncoding(name)

    monkeypatch.setattr(tokenizer_module.tiktoken, "get_encoding", get_encoding)
    return names


def test_counts_with_loaded_encoding(loaded):
    tok = Tokenizer()
    tok.load("o200k_base")

    assert tok.count("three little words") == 3
    assert tok.count("") == 0
    assert tok.name == "o200k_base"


def test_encodings_are_cached(loaded):
    tok = Tokenizer()
    tok.load("o200k_base")
    tok.load("cl100k_base")
    tok.load("o200k_base")

    assert loaded == ["o200k_base", "cl100k_base"]


def test_unknown_tokenizer_falls_back_to_default(loaded):
    tok = Tokenizer()
    tok.load("mystery")

    assert loaded == ["mystery", DEFAULT_TOKENIZER]
    assert tok.count("a b") == 2


def test_count_before_load_uses_default(loaded):
    tok = Tokenizer()

    assert tok.count("one two") == 2
    assert loaded == [DEFAULT_TOKENIZER]
