"""Wire payloads for the chat completion and embedding endpoints."""

from __future__ import annotations

from typing import Any, Sequence

from copilotchat.history import Turn
from copilotchat.render import EmbeddingItem, FileBlocks, render_embedding_input


def build_ask_request(
    history: Sequence[Turn],
    prompt: str,
    files: FileBlocks,
    selection: str,
    system_prompt: str,
    model: str,
    temperature: float,
    stream: bool,
) -> dict[str, Any]:
    """Assemble the chat completion body.

    Message order: system prompt, history, file blocks, selection, prompt.
    Context messages use the ``system`` role when streaming and ``user``
    otherwise.
    """
    context_role = "system" if stream else "user"
    messages: list[dict[str, str]] = []

    if system_prompt:
        messages.append({"content": system_prompt, "role": context_role})

    messages.extend(turn.to_message() for turn in history)

    if files.files:
        messages.append({"content": files.render(), "role": context_role})

    if selection:
        messages.append({"content": selection, "role": context_role})

    messages.append({"content": prompt, "role": "user"})

    if stream:
        return {
            "intent": True,
            "model": model,
            "n": 1,
            "stream": True,
            "temperature": temperature,
            "top_p": 1,
            "messages": messages,
        }
    return {
        "messages": messages,
        "stream": False,
        "model": model,
    }


def build_embedding_request(items: Sequence[EmbeddingItem], model: str) -> dict[str, Any]:
    return {
        "input": [render_embedding_input(item) for item in items],
        "model": model,
    }
