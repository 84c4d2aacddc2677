"""Copilot chat client: conversation state, budgeting and streaming.

One ``Copilot`` instance owns one conversation.  ``ask`` may be called from
a worker thread while another thread calls ``stop``/``reset`` or starts a
newer ``ask``; the older call is then abandoned at its next stream chunk
and returns ``None`` without touching the history.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import NamedTuple, Sequence

from copilotchat.auth import CopilotAuth
from copilotchat.budget import plan_budget
from copilotchat.config import Settings, load_settings
from copilotchat.errors import CopilotError, TransportFailure
from copilotchat.history import ConversationState, Turn, load_history, save_history
from copilotchat.jobs import JobSlot
from copilotchat.models import ModelCatalog, supports_streaming
from copilotchat.prompts import COPILOT_INSTRUCTIONS
from copilotchat.render import EmbeddingItem, render_file_blocks, render_selection
from copilotchat.request import build_ask_request, build_embedding_request
from copilotchat.stream import ProgressCallback, StreamConsumer
from copilotchat.tokenizer import Tokenizer, TokenCounter
from copilotchat.transport import Transport

log = logging.getLogger(__name__)

CHAT_URL = "https://api.githubcopilot.com/chat/completions"
EMBEDDINGS_URL = "https://api.githubcopilot.com/embeddings"


class AskResult(NamedTuple):
    text: str
    tokens_used: int | None
    max_tokens: int


class Copilot:
    """Stateful client for Copilot chat."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: Transport | None = None,
        auth: CopilotAuth | None = None,
        tokenizer: TokenCounter | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.transport = transport or Transport(
            proxy=self.settings.proxy,
            allow_insecure=self.settings.allow_insecure,
            timeout=self.settings.timeout,
        )
        self.auth = auth or CopilotAuth(self.transport, self.settings)
        self.catalog = ModelCatalog(self.transport, self.auth)
        self.tokenizer = tokenizer or Tokenizer()
        self.history = ConversationState()
        self._jobs = JobSlot()

    def close(self) -> None:
        self.transport.close()

    # ── ask ──────────────────────────────────────────────────────────

    def ask(
        self,
        prompt: str,
        *,
        selection: str = "",
        embeddings: Sequence[EmbeddingItem] | None = None,
        filename: str = "",
        filetype: str = "",
        start_row: int = 0,
        end_row: int = 0,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> AskResult | None:
        """Send *prompt* with the conversation so far.

        Returns ``None`` if the call was superseded by ``stop``, ``reset`` or
        a newer ``ask`` before its stream closed.  Raises a ``CopilotError``
        on any failure; the history is only extended on success.
        """
        embeddings = list(embeddings or [])
        system_prompt = COPILOT_INSTRUCTIONS if system_prompt is None else system_prompt
        model = model or self.settings.model
        temperature = self.settings.temperature if temperature is None else temperature

        job = self._jobs.start()
        try:
            return self._ask(
                job,
                prompt,
                selection=selection,
                embeddings=embeddings,
                filename=filename,
                filetype=filetype,
                start_row=start_row,
                end_row=end_row,
                system_prompt=system_prompt,
                model=model,
                temperature=temperature,
                on_progress=on_progress,
            )
        finally:
            self._jobs.release(job)

    def _ask(
        self,
        job: str,
        prompt: str,
        *,
        selection: str,
        embeddings: list[EmbeddingItem],
        filename: str,
        filetype: str,
        start_row: int,
        end_row: int,
        system_prompt: str,
        model: str,
        temperature: float,
        on_progress: ProgressCallback | None,
    ) -> AskResult | None:
        log.debug("System prompt: %s", system_prompt)
        log.debug("Selection: %s", selection)
        log.debug("Prompt: %s", prompt)
        log.debug("Embeddings: %d", len(embeddings))
        log.debug("Filename: %s, filetype: %s", filename, filetype)
        log.debug("Model: %s, temperature: %s", model, temperature)

        capability = self.catalog.capability(model)
        log.debug("Max tokens: %d, tokenizer: %s", capability.max_input_tokens, capability.tokenizer)
        self.tokenizer.load(capability.tokenizer)

        selection_message = render_selection(filename, filetype, start_row, end_row, selection)
        files = render_file_blocks(embeddings)

        with self._jobs.guard(job) as current:
            if not current:
                return None
            plan = plan_budget(
                self.history.turns,
                prompt=prompt,
                system_prompt=system_prompt,
                selection=selection_message,
                files=files,
                capability=capability,
                counter=self.tokenizer,
            )
            self.history.evict(plan.evicted)

        log.debug(
            "Budget: required=%d reserved=%d history_limit=%d evicted=%d files=%d/%d",
            plan.required_tokens,
            plan.reserved_tokens,
            plan.history_limit,
            plan.evicted,
            len(plan.kept_files.files),
            len(files.files),
        )

        body = build_ask_request(
            plan.kept_history,
            prompt,
            plan.kept_files,
            selection_message,
            system_prompt,
            model,
            temperature,
            supports_streaming(model),
        )

        if model.startswith("claude"):
            self.catalog.enable_claude()

        consumer = StreamConsumer(job, self._jobs, on_progress=on_progress)
        try:
            response = self.transport.post(CHAT_URL, self.auth.headers(), body, on_line=consumer.feed)
        except TransportFailure:
            if not self._jobs.is_current(job):
                return None
            raise

        if not self._jobs.is_current(job):
            log.debug("Job %s superseded, discarding response", job)
            return None

        if not response.ok:
            raise TransportFailure(response.status, response.body)

        text = consumer.finish()
        if text is None:
            return None

        log.debug("Full response: %s", text)
        log.debug("Last message: %s", consumer.last_message)

        with self._jobs.guard(job) as current:
            if not current:
                return None
            self.history.append("user", prompt)
            self.history.append("assistant", text)

        return AskResult(text, consumer.tokens_used, capability.max_input_tokens)

    # ── embeddings ───────────────────────────────────────────────────

    def embed(
        self,
        items: Sequence[EmbeddingItem],
        *,
        model: str | None = None,
        chunk_size: int | None = None,
    ) -> list[EmbeddingItem]:
        """Attach embedding vectors to *items*, in batches of *chunk_size*."""
        model = model or self.settings.embedding_model
        chunk_size = chunk_size or self.settings.embedding_chunk_size
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")

        items = list(items)
        out: list[EmbeddingItem] = []
        for start in range(0, len(items), chunk_size):
            batch = items[start:start + chunk_size]
            response = self.transport.post(
                EMBEDDINGS_URL,
                self.auth.headers(),
                build_embedding_request(batch, model),
            )
            if not response.ok:
                raise TransportFailure(response.status, response.body)

            try:
                for entry in response.json()["data"]:
                    out.append(replace(batch[entry["index"]], embedding=entry["embedding"]))
            except (ValueError, KeyError, IndexError, TypeError) as exc:
                raise CopilotError(f"Failed to parse response: {exc}\n{response.body}") from exc

        return out

    # ── job control ──────────────────────────────────────────────────

    def stop(self) -> bool:
        """Abandon the running ask, if any."""
        return self._jobs.stop()

    def reset(self) -> bool:
        """Stop the running ask and forget the conversation."""
        stopped = self.stop()
        self.history.clear()
        return stopped

    def running(self) -> bool:
        return self._jobs.running

    def list_models(self) -> list[str]:
        return self.catalog.list_models()

    # ── persistence ──────────────────────────────────────────────────

    def save(self, name: str, path: str | Path | None = None) -> Path:
        return save_history(self.history.turns, name, path or self.settings.history_dir)

    def load(self, name: str, path: str | Path | None = None) -> list[Turn]:
        """Replace the conversation with a saved one; [] if none exists."""
        turns = load_history(name, path or self.settings.history_dir)
        if turns is None:
            return []
        self.history.replace(turns)
        return list(turns)
