"""Chunk-and-embed on top of LangChain embeddings.

*Keeps the embedding model behind LangChain's ``Embeddings`` interface so you
can swap models later (e.g. Azure, local models) without rewiring callers.*
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache
import logging
import math
from pathlib import Path
from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings
from pydantic import BaseModel
from pydantic import Field
from pydantic import SecretStr

from context_budget.core.config import Settings
from context_budget.core.tokenizer import Tokenizer
from context_budget.core.types import Budget
from context_budget.utils.text_splitter import split_windowed

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_embeddings() -> Embeddings:
    """Singleton OpenAIEmbeddings instance.

    Cached so that repeated calls don't re-instantiate network clients.
    """
    cfg = Settings()
    kwargs: dict[str, Any] = {"model": cfg.embedding_model}
    if cfg.openai_api_key:
        kwargs["api_key"] = SecretStr(cfg.openai_api_key)
    return OpenAIEmbeddings(**kwargs)


class EmbeddedText(BaseModel):
    """A chunk of text with its embedding."""

    text: str
    embedding: list[float]
    model: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    def similarity(self, other: EmbeddedText) -> float:
        return similarity(self, other)


def similarity(a: EmbeddedText, b: EmbeddedText) -> float:
    """Cosine similarity in [-1, 1]; -1 when either vector has no magnitude."""
    if a.model != b.model:
        raise ValueError(f"Embeddings from two different models [{a.model}, {b.model}]")
    if len(a.embedding) != len(b.embedding):
        raise ValueError(
            f"Embeddings with different size [{len(a.embedding)}, {len(b.embedding)}]"
        )

    ab = sum(x * y for x, y in zip(a.embedding, b.embedding))
    a2 = sum(x * x for x in a.embedding)
    b2 = sum(y * y for y in b.embedding)
    try:
        value = ab / math.sqrt(a2 * b2)
    except ZeroDivisionError:
        return -1.0
    if not math.isfinite(value):
        return -1.0
    # Rounding can push the value just outside the range.
    return max(min(value, 1.0), -1.0)


class EmbeddingService:
    """Splits text within a token budget and embeds every chunk."""

    def __init__(
        self,
        embeddings: Embeddings,
        tokenizer: Tokenizer,
        model: str | None = None,
        default_budget: Budget | None = None,
        cfg: Settings | None = None,
    ):
        cfg = cfg or Settings()
        self.embeddings = embeddings
        self.tokenizer = tokenizer
        self.model = model or cfg.embedding_model
        self.default_budget = default_budget or cfg.budget()

    def embed(
        self, text: str | Iterable[str], budget: Budget | None = None
    ) -> list[EmbeddedText]:
        """Chunk ``text`` (one or many strings) and embed the chunks."""
        budget = budget or self.default_budget
        texts = [text] if isinstance(text, str) else list(text)

        chunks: list[str] = []
        for t in texts:
            chunks.extend(split_windowed(t, budget, self.tokenizer))
        return self.embed_chunks(chunks)

    def embed_chunks(self, chunks: list[str]) -> list[EmbeddedText]:
        """Embed texts that are already chunked, in a single request."""
        if not chunks:
            return []

        vectors = self.embeddings.embed_documents(chunks)
        logger.debug("Embedded %d chunks with %s", len(chunks), self.model)
        return [
            EmbeddedText(text=chunk, embedding=vector, model=self.model)
            for chunk, vector in zip(chunks, vectors, strict=True)
        ]

    def embed_file(self, path: str | Path, budget: Budget | None = None) -> list[EmbeddedText]:
        """Embed the content of a text file, tagging chunks with their source."""
        path = Path(path)
        result = self.embed(path.read_text(encoding="utf-8"), budget)
        for i, item in enumerate(result):
            item.metadata.update({"source": str(path), "chunk_index": i})
        return result

    def embed_folder(
        self, folder: str | Path, budget: Budget | None = None
    ) -> dict[Path, list[EmbeddedText]]:
        """Embed every file under ``folder`` (recursive)."""
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(f"Cannot read folder: {folder}")

        return {
            p: self.embed_file(p, budget)
            for p in sorted(folder.rglob("*"))
            if p.is_file()
        }
