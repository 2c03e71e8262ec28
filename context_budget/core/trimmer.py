"""Fit a conversation into a model's context budget."""

from __future__ import annotations

from collections.abc import Sequence
import logging

from langchain_core.messages import BaseMessage

from context_budget.core.tokenizer import Tokenizer
from context_budget.core.types import TrimConfig

logger = logging.getLogger(__name__)

__all__ = ["trim_conversation"]


def trim_conversation(
    history: Sequence[BaseMessage], config: TrimConfig, tokenizer: Tokenizer
) -> list[BaseMessage]:
    """Return ``config.fixed_prefix`` (if any) followed by the longest recent
    part of ``history`` that respects both ``max_steps`` and ``max_tokens``.

    The most recent message is always kept, even when it alone exceeds
    ``max_tokens``; a conversation cannot be sent with no turns at all.
    ``history`` is not modified.
    """
    total = 0
    if config.fixed_prefix is not None:
        total = tokenizer.count(config.fixed_prefix)

    start = len(history)
    while start > 0:
        kept = len(history) - start
        if kept >= config.max_steps:
            break
        tokens = tokenizer.count(history[start - 1])
        if kept > 0 and total + tokens > config.max_tokens:
            break
        total += tokens
        start -= 1

    selected = list(history[start:])
    logger.debug(
        "Kept %d of %d messages (%d tokens, limit %d)",
        len(selected),
        len(history),
        total,
        config.max_tokens,
    )
    if config.fixed_prefix is not None:
        return [config.fixed_prefix, *selected]
    return selected
