"""Copilot model catalog.

The chat model list is fetched once per catalog and kept for its lifetime.
Each entry carries the prompt-token limit and the tokenizer name that the
budget planner needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from copilotchat.auth import CopilotAuth
from copilotchat.errors import CopilotError, ModelCatalogError
from copilotchat.tokenizer import DEFAULT_TOKENIZER
from copilotchat.transport import Transport

log = logging.getLogger(__name__)

MODELS_URL = "https://api.githubcopilot.com/models"
CLAUDE_POLICY_URL = "https://api.githubcopilot.com/models/claude-3.5-sonnet/policy"

DEFAULT_MAX_INPUT_TOKENS = 8192

_BUSINESS_CHECK = "cannot enable policy inline for business users"


@dataclass(frozen=True)
class ModelCapability:
    tokenizer: str = DEFAULT_TOKENIZER
    max_input_tokens: int = DEFAULT_MAX_INPUT_TOKENS


DEFAULT_CAPABILITY = ModelCapability()


def supports_streaming(model: str) -> bool:
    """The o1 family only answers non-streamed requests."""
    return not model.startswith("o1")


def _capability_from_entry(entry: dict[str, Any]) -> ModelCapability:
    capabilities = entry.get("capabilities") or {}
    limits = capabilities.get("limits") or {}
    max_tokens = limits.get("max_prompt_tokens")
    return ModelCapability(
        tokenizer=capabilities.get("tokenizer") or DEFAULT_TOKENIZER,
        max_input_tokens=int(max_tokens) if max_tokens else DEFAULT_MAX_INPUT_TOKENS,
    )


class ModelCatalog:
    def __init__(self, transport: Transport, auth: CopilotAuth) -> None:
        self.transport = transport
        self.auth = auth
        self._models: dict[str, dict[str, Any]] | None = None
        self._claude_enabled = False

    def fetch(self) -> dict[str, dict[str, Any]]:
        """Return chat models keyed by id, fetching them on first use."""
        if self._models is not None:
            return self._models

        response = self.transport.get(MODELS_URL, self.auth.headers())
        if response.status != 200:
            raise ModelCatalogError(response.status, response.body)

        try:
            entries = response.json().get("data", [])
        except (ValueError, AttributeError) as exc:
            raise ModelCatalogError(response.status, response.body) from exc
        if not isinstance(entries, list):
            raise ModelCatalogError(response.status, response.body)

        models: dict[str, dict[str, Any]] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            capabilities = entry.get("capabilities") or {}
            if capabilities.get("type") == "chat" and entry.get("id"):
                models[entry["id"]] = entry

        log.info("Models fetched")
        self._models = models
        return models

    def invalidate(self) -> None:
        self._models = None

    def capability(self, model: str) -> ModelCapability:
        entry = self.fetch().get(model)
        if entry is None:
            log.debug("Unknown model %s, using default capability", model)
            return DEFAULT_CAPABILITY
        return _capability_from_entry(entry)

    def list_models(self) -> list[str]:
        """One id per model version (the shortest), sorted."""
        by_version: dict[Any, str] = {}
        for model_id, entry in self.fetch().items():
            version = entry.get("version")
            current = by_version.get(version)
            if current is None or len(model_id) < len(current):
                by_version[version] = model_id
        return sorted(by_version.values())

    def enable_claude(self) -> bool:
        """Accept the Claude model policy for this account, once."""
        if self._claude_enabled:
            return True

        response = self.transport.post(
            CLAUDE_POLICY_URL,
            self.auth.headers(),
            {"state": "enabled"},
        )

        if response.status != 200 and _BUSINESS_CHECK in response.body:
            self._claude_enabled = True
            log.info("Claude is probably enabled (for business users needs to be enabled manually).")
            return True

        if response.status != 200:
            raise CopilotError(f"Failed to enable Claude: {response.status}")

        self._claude_enabled = True
        log.info("Claude enabled")
        return True
