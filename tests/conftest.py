"""Shared pytest fixtures: a character-count tokenizer and a fake Copilot API."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from copilotchat.auth import TOKEN_URL, CopilotAuth
from copilotchat.client import CHAT_URL, EMBEDDINGS_URL, Copilot
from copilotchat.config import Settings
from copilotchat.models import CLAUDE_POLICY_URL, MODELS_URL
from copilotchat.transport import Transport


class CharTokenizer:
    """One token per character; records which tokenizers were loaded."""

    def __init__(self) -> None:
        self.loaded: list[str] = []

    def load(self, name: str) -> None:
        self.loaded.append(name)

    def count(self, text: str) -> int:
        return len(text or "")


def sse(*deltas: str, usage: dict[str, Any] | None = None) -> list[str]:
    """Build the event-stream lines for a streamed completion."""
    lines = []
    for delta in deltas:
        lines.append("data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": delta}}]}))
        lines.append("")
    if usage is not None:
        lines.append("data: " + json.dumps({"choices": [{"index": 0, "delta": {}}], "usage": usage}))
        lines.append("")
    lines.append("data: [DONE]")
    return lines


def model_entry(model_id: str, version: str, max_prompt_tokens: int, tokenizer: str = "o200k_base", kind: str = "chat") -> dict:
    return {
        "id": model_id,
        "version": version,
        "capabilities": {
            "type": kind,
            "tokenizer": tokenizer,
            "limits": {"max_prompt_tokens": max_prompt_tokens},
        },
    }


class FakeCopilotService:
    """In-memory stand-in for the GitHub/Copilot endpoints."""

    def __init__(self) -> None:
        self.token_status = 200
        self.token_expires_at = 4_000_000_000
        self.models_status = 200
        # Raw 200 bodies that replace the JSON answers when set.
        self.token_body: str | None = None
        self.models_body: str | None = None
        self.models = [
            model_entry("gpt-4o-2024-05-13", "gpt-4o-2024-05-13", 100),
            model_entry("gpt-4o", "gpt-4o-2024-05-13", 100),
            model_entry("o1-preview", "o1-preview-2024-09-12", 1000),
            model_entry("claude-3.5-sonnet", "claude-3.5-sonnet", 1000, tokenizer="o200k_base"),
            model_entry("text-embedding-3-small", "text-embedding-3-small", 8191, kind="embeddings"),
        ]
        self.policy_status = 200
        self.policy_body = "{}"
        # Each chat request pops one (status, lines) pair.
        self.chat_responses: list[tuple[int, list[str]]] = []
        self.requests: list[httpx.Request] = []
        self.embedding_batches: list[list[str]] = []
        self.embedding_reverse = False

    # ── helpers ──────────────────────────────────────────────────────

    def reply(self, lines: list[str], status: int = 200) -> None:
        self.chat_responses.append((status, lines))

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def chat_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests_to(CHAT_URL)]

    # ── handler ──────────────────────────────────────────────────────

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url == TOKEN_URL:
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="unauthorized")
            if self.token_body is not None:
                return httpx.Response(200, text=self.token_body)
            return httpx.Response(
                200,
                json={"token": "copilot-token", "expires_at": self.token_expires_at},
            )

        if url == MODELS_URL:
            if self.models_status != 200:
                return httpx.Response(self.models_status, text="boom")
            if self.models_body is not None:
                return httpx.Response(200, text=self.models_body)
            return httpx.Response(200, json={"data": self.models})

        if url == CLAUDE_POLICY_URL:
            return httpx.Response(self.policy_status, text=self.policy_body)

        if url == CHAT_URL:
            status, lines = self.chat_responses.pop(0)
            return httpx.Response(status, content="\n".join(lines).encode("utf-8"))

        if url == EMBEDDINGS_URL:
            body = json.loads(request.content)
            inputs = body["input"]
            self.embedding_batches.append(inputs)
            data = [
                {"object": "embedding", "index": i, "embedding": [float(len(text)), float(i)]}
                for i, text in enumerate(inputs)
            ]
            if self.embedding_reverse:
                data.reverse()
            return httpx.Response(200, json={"data": data})

        return httpx.Response(404, text=f"unexpected {url}")


@pytest.fixture
def service() -> FakeCopilotService:
    return FakeCopilotService()


@pytest.fixture
def tokenizer() -> CharTokenizer:
    return CharTokenizer()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(history_dir=str(tmp_path / "history"))


@pytest.fixture
def make_copilot(service, tokenizer, settings) -> Callable[..., Copilot]:
    def factory(github_token: str | None = "gho_test") -> Copilot:
        transport = Transport(http_transport=httpx.MockTransport(service))
        auth = CopilotAuth(transport, settings, github_token=github_token)
        if github_token is None:
            auth.github_token = None
        return Copilot(settings, transport=transport, auth=auth, tokenizer=tokenizer)

    return factory


@pytest.fixture
def copilot(make_copilot) -> Copilot:
    client = make_copilot()
    yield client
    client.close()
