from __future__ import annotations

import math

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import FakeListChatModel
from langchain_core.language_models import SimpleChatModel
from pydantic import Field

from context_budget.core.tokenizer import BaseTokenizer


class WordTokenizer(BaseTokenizer):
    """One token per whitespace-separated word."""

    def __init__(self, tokens_per_message: int = 0):
        self.tokens_per_message = tokens_per_message

    def count_text(self, text: str) -> int:
        return len(text.split())


class BoundaryTokenizer(WordTokenizer):
    """Words plus a 2 token surcharge once text spans several words.

    Counts are not additive: ``count(a + b) > count(a) + count(b)``.
    """

    def count_text(self, text: str) -> int:
        words = len(text.split())
        return words + 2 if words > 1 else words


class CountingTokenizer(WordTokenizer):
    """Records everything it was asked to count."""

    def __init__(self):
        super().__init__()
        self.calls: list = []

    def count(self, text):
        self.calls.append(text)
        return super().count(text)


class FakeEmbeddings(Embeddings):
    """Deterministic lightweight embeddings based on character codes."""

    def __init__(self, dim: int = 16):
        self.dim = dim
        self.calls: list[list[str]] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self._hash_embed(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._hash_embed(text)

    def _hash_embed(self, text: str) -> list[float]:
        vec = [0.0] * self.dim
        if not text:
            return vec
        for i, ch in enumerate(text.encode("utf-8")):
            vec[i % self.dim] += (ch % 53) / 53.0
        norm = math.sqrt(sum(v * v for v in vec)) or 1.0
        return [v / norm for v in vec]


class RecordingChatModel(FakeListChatModel):
    """Fake chat model that remembers the messages it was sent."""

    received: list = Field(default_factory=list)

    def _call(self, messages, *args, **kwargs) -> str:
        self.received.append(list(messages))
        return super()._call(messages, *args, **kwargs)


class FailingChatModel(SimpleChatModel):
    """Chat model whose every call fails."""

    @property
    def _llm_type(self) -> str:
        return "failing"

    def _call(self, messages, *args, **kwargs) -> str:
        raise RuntimeError("model unavailable")
