"""Streaming chat completion consumer.

Lines from the completion endpoint are decoded once into a tagged chunk
type and reduced into the accumulated answer::

    OPEN -> ACCUMULATING* -> DONE | ERRORED | ABANDONED

The job token is checked on every chunk: once a newer call (or ``stop``)
replaces it, the consumer is ABANDONED and ignores everything else.
"""

from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Union

from copilotchat.errors import EmptyResult, StreamParseFailure, StreamProtocolError
from copilotchat.jobs import JobSlot

log = logging.getLogger(__name__)

_FRAMING = re.compile(r"^\s*data: ")

ProgressCallback = Callable[[str], None]


# ── chunk variants ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Empty:
    """Keep-alive, end-of-stream marker or a message without choices."""


@dataclass(frozen=True)
class FullMessage:
    content: str | None
    payload: dict[str, Any]


@dataclass(frozen=True)
class Delta:
    content: str | None
    payload: dict[str, Any]


@dataclass(frozen=True)
class ErrorPayload:
    message: str
    parse_error: bool = False


StreamChunk = Union[Empty, FullMessage, Delta, ErrorPayload]


def decode_chunk(line: str) -> StreamChunk:
    if line.startswith('{"error"'):
        return ErrorPayload(f"Failed to get response: {line}")

    line = _FRAMING.sub("", line, count=1).strip()
    if line in ("", "[DONE]"):
        return Empty()

    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        return ErrorPayload(f"Failed to parse response: {exc}\n{line}", parse_error=True)

    if not isinstance(payload, dict):
        return ErrorPayload(f"Failed to parse response: not an object\n{line}", parse_error=True)

    if "error" in payload:
        return ErrorPayload(f"Failed to get response: {line}")

    choices = payload.get("choices")
    if not choices:
        return Empty()
    if not isinstance(choices, list) or not isinstance(choices[0], dict):
        return ErrorPayload(f"Failed to parse response: malformed choices\n{line}", parse_error=True)

    choice = choices[0]
    message = choice.get("message")
    if message is not None:
        if not isinstance(message, dict):
            return ErrorPayload(f"Failed to parse response: malformed message\n{line}", parse_error=True)
        return FullMessage(message.get("content"), payload)

    delta = choice.get("delta") or {}
    if not isinstance(delta, dict):
        return ErrorPayload(f"Failed to parse response: malformed delta\n{line}", parse_error=True)
    return Delta(delta.get("content"), payload)


# ── consumer ─────────────────────────────────────────────────────────

class StreamState(enum.Enum):
    OPEN = "open"
    ACCUMULATING = "accumulating"
    DONE = "done"
    ERRORED = "errored"
    ABANDONED = "abandoned"


class StreamConsumer:
    def __init__(
        self,
        job: str,
        jobs: JobSlot,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.job = job
        self.jobs = jobs
        self.on_progress = on_progress
        self.state = StreamState.OPEN
        self.text = ""
        self.error: str | None = None
        self.parse_error = False
        self.last_message: dict[str, Any] | None = None

    @property
    def tokens_used(self) -> int | None:
        if not self.last_message:
            return None
        usage = self.last_message.get("usage") or {}
        return usage.get("total_tokens")

    def feed(self, line: str) -> bool:
        """Consume one line; False once no more lines are wanted."""
        if self.state in (StreamState.ERRORED, StreamState.ABANDONED):
            return False

        if not self.jobs.is_current(self.job):
            self.state = StreamState.ABANDONED
            log.debug("Job %s superseded, abandoning stream", self.job)
            return False

        chunk = decode_chunk(line)

        if isinstance(chunk, Empty):
            return True

        if isinstance(chunk, ErrorPayload):
            self.state = StreamState.ERRORED
            self.error = chunk.message
            self.parse_error = chunk.parse_error
            return False

        self.last_message = chunk.payload
        if not chunk.content:
            return True

        self.state = StreamState.ACCUMULATING
        self.text += chunk.content
        if self.on_progress:
            self.on_progress(chunk.content)
        return True

    def finish(self) -> str | None:
        """Close the stream; the answer, ``None`` if abandoned, or raise."""
        if self.state is StreamState.ABANDONED or not self.jobs.is_current(self.job):
            self.state = StreamState.ABANDONED
            return None

        if self.state is StreamState.ERRORED:
            if self.parse_error:
                raise StreamParseFailure(self.error)
            raise StreamProtocolError(self.error)

        if not self.text:
            raise EmptyResult()

        self.state = StreamState.DONE
        return self.text
