"""Token counting capabilities.

The splitting and trimming code only ever sees the ``Tokenizer`` protocol:
anything with a ``count`` method accepting either a string or a message will do.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from functools import lru_cache
import logging
from typing import Protocol

from langchain_core.language_models import BaseLanguageModel
from langchain_core.messages import BaseMessage
import tiktoken

from context_budget.core.config import Settings
from context_budget.core.types import message_text

logger = logging.getLogger(__name__)

__all__ = [
    "BaseTokenizer",
    "CharTokenizer",
    "ModelTokenizer",
    "TiktokenTokenizer",
    "Tokenizer",
    "get_tokenizer",
]


class Tokenizer(Protocol):
    """Counts tokens in a piece of text or in a whole chat message."""

    def count(self, text: str | BaseMessage) -> int: ...


class BaseTokenizer(ABC):
    """Shared message handling; subclasses only count plain text."""

    #: Fixed chat framing cost added to every message.
    tokens_per_message: int = 0

    def count(self, text: str | BaseMessage) -> int:
        if isinstance(text, BaseMessage):
            return self.count_message(text)
        return self.count_text(text)

    def count_message(self, message: BaseMessage) -> int:
        return self.tokens_per_message + self.count_text(message_text(message))

    @abstractmethod
    def count_text(self, text: str) -> int: ...


class CharTokenizer(BaseTokenizer):
    """One token per character; use it to express budgets in characters."""

    def count_text(self, text: str) -> int:
        return len(text)


class TiktokenTokenizer(BaseTokenizer):
    """Counts tokens the way OpenAI models do."""

    tokens_per_message = 3

    def __init__(self, model: str, fallback_encoding: str = "o200k_base"):
        self.model = model
        try:
            self.encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.warning(
                "No tiktoken encoding known for model %r; using %s",
                model,
                fallback_encoding,
            )
            self.encoding = tiktoken.get_encoding(fallback_encoding)

    def count_text(self, text: str) -> int:
        # Special-token markers in user text are counted as ordinary text.
        return len(self.encoding.encode(text, disallowed_special=()))

    def __repr__(self) -> str:
        return f"TiktokenTokenizer(model={self.model!r}, encoding={self.encoding.name!r})"


class ModelTokenizer(BaseTokenizer):
    """Delegates counting to a LangChain model's own tokenizer."""

    def __init__(self, llm: BaseLanguageModel):
        self.llm = llm

    def count_text(self, text: str) -> int:
        return self.llm.get_num_tokens(text)

    def count_message(self, message: BaseMessage) -> int:
        return self.llm.get_num_tokens_from_messages([message])


@lru_cache(maxsize=1)
def get_tokenizer() -> BaseTokenizer:
    """Tokenizer selected by ``Settings.tokenizer`` (cached)."""
    cfg = Settings()
    if cfg.tokenizer == "char":
        return CharTokenizer()
    return TiktokenTokenizer(cfg.tokenizer_model, cfg.fallback_encoding)
