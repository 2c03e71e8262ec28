"""Conversation history kept by a chat session.

Stores every turn (up to ``max_history_length``) and produces, on demand, the
trimmed message list that is actually sent to the model.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging

from langchain_core.messages import BaseMessage
from langchain_core.messages import SystemMessage
from langchain_core.messages import ToolMessage

from context_budget.core.config import Settings
from context_budget.core.tokenizer import Tokenizer
from context_budget.core.trimmer import trim_conversation
from context_budget.core.types import TrimConfig

logger = logging.getLogger(__name__)


class ConversationHistory:
    """Message history plus the limits used to fit it into a context window."""

    def __init__(
        self,
        tokenizer: Tokenizer,
        personality: str | None = None,
        max_history_length: int | None = None,
        max_conversation_steps: int | None = None,
        max_conversation_tokens: int | None = None,
        cfg: Settings | None = None,
    ):
        """Initialize ConversationHistory.

        Args:
            tokenizer: Used to count message tokens when trimming
            personality: System prompt prepended to every trimmed conversation
            max_history_length: Messages stored before the oldest are dropped
            max_conversation_steps: Messages sent to the model per turn
            max_conversation_tokens: Token budget for personality + messages
            cfg: Settings providing defaults for anything not passed
        """
        cfg = cfg or Settings()
        self.tokenizer = tokenizer
        self.personality = personality if personality is not None else cfg.personality
        self.max_history_length = (
            cfg.max_history_length if max_history_length is None else max_history_length
        )
        self.max_conversation_steps = (
            cfg.max_conversation_steps
            if max_conversation_steps is None
            else max_conversation_steps
        )
        self.max_conversation_tokens = (
            cfg.max_conversation_tokens
            if max_conversation_tokens is None
            else max_conversation_tokens
        )
        self._messages: list[BaseMessage] = []

    # -------- Limits -----------------------------------------------------
    @property
    def max_history_length(self) -> int:
        return self._max_history_length

    @max_history_length.setter
    def max_history_length(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"max_history_length must be at least 1: {value}")
        self._max_history_length = value
        if hasattr(self, "_messages"):
            self._truncate()

    @property
    def max_conversation_steps(self) -> int:
        return self._max_conversation_steps

    @max_conversation_steps.setter
    def max_conversation_steps(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"Must keep at least 1 message: {value}")
        self._max_conversation_steps = value

    @property
    def max_conversation_tokens(self) -> int:
        return self._max_conversation_tokens

    @max_conversation_tokens.setter
    def max_conversation_tokens(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"Must keep at least 1 token: {value}")
        self._max_conversation_tokens = value

    @property
    def trim_config(self) -> TrimConfig:
        prefix = SystemMessage(content=self.personality) if self.personality else None
        return TrimConfig(
            max_steps=self.max_conversation_steps,
            max_tokens=self.max_conversation_tokens,
            fixed_prefix=prefix,
        )

    # -------- History ----------------------------------------------------
    @property
    def messages(self) -> list[BaseMessage]:
        """Copy of the stored messages, oldest first."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def add(self, message: BaseMessage) -> None:
        self._messages.append(message)
        self._truncate()

    def extend(self, messages: Iterable[BaseMessage]) -> None:
        self._messages.extend(messages)
        self._truncate()

    def clear(self) -> None:
        """Start a new conversation."""
        self._messages = []

    def _truncate(self) -> None:
        excess = len(self._messages) - self._max_history_length
        if excess > 0:
            self._messages = self._messages[excess:]

    # -------- Context ----------------------------------------------------
    def context(self, pending: BaseMessage | None = None) -> list[BaseMessage]:
        """Messages to send to the model: personality + trimmed history.

        ``pending`` is treated as the newest message without being stored.
        Tool results left at the start of the trimmed window lost their
        matching tool call and are dropped; providers reject them.
        """
        candidates = self.messages
        if pending is not None:
            candidates.append(pending)

        config = self.trim_config
        trimmed = trim_conversation(candidates, config, self.tokenizer)

        offset = 1 if config.fixed_prefix is not None else 0
        prefix, turns = trimmed[:offset], trimmed[offset:]
        orphans = 0
        while orphans < len(turns) and isinstance(turns[orphans], ToolMessage):
            orphans += 1
        if orphans:
            logger.debug("Dropping %d orphan tool result(s)", orphans)
            if orphans == len(turns):
                raise ValueError(
                    "Messages contain only tool call results without corresponding calls"
                )
            turns = turns[orphans:]

        return prefix + turns
