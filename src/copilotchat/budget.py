"""Context budget planning.

Decides what survives into a request bounded by the model's prompt-token
limit.  Priorities, highest first:

  1. prompt, system prompt and selection: always sent, never truncated
  2. the first file block, if it is smaller than half the limit
  3. conversation history, newest turns first (oldest evicted)
  4. remaining file blocks, in caller order, until one does not fit

Planning is pure: ``plan_budget`` only reports how many turns to evict;
applying that to the conversation is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from copilotchat.history import Turn
from copilotchat.models import ModelCapability
from copilotchat.render import FileBlocks
from copilotchat.tokenizer import TokenCounter


@dataclass(frozen=True)
class BudgetPlan:
    required_tokens: int
    reserved_tokens: int
    history_limit: int
    history_tokens: int
    evicted: int
    kept_history: tuple[Turn, ...]
    kept_files: FileBlocks


def count_history_tokens(history: Sequence[Turn], counter: TokenCounter) -> int:
    return sum(counter.count(turn.content) for turn in history)


def plan_budget(
    history: Sequence[Turn],
    *,
    prompt: str,
    system_prompt: str,
    selection: str,
    files: FileBlocks,
    capability: ModelCapability,
    counter: TokenCounter,
) -> BudgetPlan:
    max_tokens = capability.max_input_tokens

    required = counter.count(prompt) + counter.count(system_prompt) + counter.count(selection)

    reserved = 0
    if files.files:
        first_tokens = counter.count(files.files[0])
        if first_tokens < max_tokens / 2:
            reserved = counter.count(files.header) + first_tokens

    # Oldest turns go first until the rest fits.
    history_limit = max_tokens - required - reserved
    costs = [counter.count(turn.content) for turn in history]
    history_tokens = sum(costs)
    evicted = 0
    while history_tokens > history_limit and evicted < len(costs):
        history_tokens -= costs[evicted]
        evicted += 1

    # Fill whatever is left with files; stop at the first that overflows.
    kept: list[str] = []
    if files.files:
        remaining = max_tokens - required - history_tokens - counter.count(files.header)
        for block in files.files:
            cost = counter.count(block)
            if remaining - cost < 0:
                break
            remaining -= cost
            kept.append(block)

    return BudgetPlan(
        required_tokens=required,
        reserved_tokens=reserved,
        history_limit=history_limit,
        history_tokens=history_tokens,
        evicted=evicted,
        kept_history=tuple(history[evicted:]),
        kept_files=FileBlocks(header=files.header, files=tuple(kept)),
    )
