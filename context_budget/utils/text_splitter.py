"""Token-budget chunking shared by loaders, embeddings & CLI.

Pipeline: ``split_pieces`` breaks oversized text at progressively weaker
separators, ``merge_pieces`` glues small neighbours back together without
exceeding the budget, and ``window_chunks`` optionally groups the result into
overlapping windows.

Text made of one token-dense run (no separator anywhere) cannot be broken and
is kept whole as an *oversized atomic* chunk; content is never truncated.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
import logging
import re
from typing import Any

from langchain_text_splitters import TextSplitter

from context_budget.core.config import Settings
from context_budget.core.tokenizer import Tokenizer
from context_budget.core.tokenizer import get_tokenizer
from context_budget.core.types import Budget

logger = logging.getLogger(__name__)

__all__ = [
    "TokenBudgetTextSplitter",
    "get_text_splitter",
    "merge_pieces",
    "split_pieces",
    "split_text",
    "split_windowed",
    "window_chunks",
]

# Strongest to weakest.
SEPARATORS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\n{2,}"),  # paragraphs
    re.compile(r"\.\s+"),  # sentences
    re.compile(r";\s+"),
    re.compile(r":\s+"),
    re.compile(r",\s+"),
    re.compile(r"\s+"),
)


def _break_at(text: str, separator: re.Pattern[str]) -> list[str]:
    """Break at every match, keeping the separator on the preceding fragment."""
    fragments = []
    start = 0
    for match in separator.finditer(text):
        fragments.append(text[start : match.end()])
        start = match.end()
    if start < len(text):
        fragments.append(text[start:])
    return fragments


def split_pieces(text: str, budget: Budget, tokenizer: Tokenizer) -> list[str]:
    """Split ``text`` into pieces of at most ``budget.chunk_size`` tokens.

    Pieces already within budget are left alone at every stage, so joining the
    result reproduces ``text`` exactly. A piece that still exceeds the budget
    after the last separator is returned as-is.
    """
    if tokenizer.count(text) <= budget.chunk_size:
        return [text]

    pieces = [text]
    for separator in SEPARATORS:
        oversized = False
        next_pieces: list[str] = []
        for piece in pieces:
            if tokenizer.count(piece) <= budget.chunk_size:
                next_pieces.append(piece)
                continue
            oversized = True
            next_pieces.extend(_break_at(piece, separator))
        pieces = next_pieces
        if not oversized:
            break

    return pieces


def merge_pieces(
    pieces: Sequence[str], budget: Budget, tokenizer: Tokenizer
) -> list[str]:
    """Greedily concatenate adjacent pieces while they fit in the budget.

    The combined text is always re-counted: tokenizers are not additive
    across a boundary, so summing piece counts can under- or over-estimate.
    """
    chunks: list[str] = []
    buffer = ""
    for piece in pieces:
        if tokenizer.count(piece) > budget.chunk_size:
            if buffer:
                chunks.append(buffer)
                buffer = ""
            logger.debug(
                "Keeping oversized piece of %d chars that has no separator left",
                len(piece),
            )
            chunks.append(piece)
            continue

        if buffer and tokenizer.count(buffer + piece) > budget.chunk_size:
            chunks.append(buffer)
            buffer = piece
        else:
            buffer = buffer + piece

    if buffer:
        chunks.append(buffer)
    return chunks


def window_chunks(chunks: Sequence[str], budget: Budget) -> list[str]:
    """Concatenate ``window_size`` consecutive chunks every ``stride`` chunks.

    With ``window_size == 1`` the chunks are returned unchanged. Windows are
    whitespace-trimmed and empty ones are dropped.
    """
    if budget.window_size == 1:
        return list(chunks)

    windows = []
    for i in range(0, len(chunks), budget.stride):
        window = "".join(chunks[i : i + budget.window_size]).strip()
        if window:
            windows.append(window)
    return windows


def split_windowed(text: str, budget: Budget, tokenizer: Tokenizer) -> list[str]:
    """Split ``text`` into trimmed chunks of ``budget.chunk_size`` tokens,
    grouped into overlapping windows when ``budget.window_size > 1``.

    Each returned string is therefore at most ``chunk_size * window_size``
    tokens, oversized atomic chunks excepted.
    """
    text = text.strip() if text else ""
    if not text:
        return []
    if tokenizer.count(text) <= budget.chunk_size:
        return [text]

    pieces = split_pieces(text, budget, tokenizer)
    chunks = merge_pieces(pieces, budget, tokenizer)
    windows = window_chunks(chunks, budget)
    result = [w.strip() for w in windows if w.strip()]

    logger.debug(
        "Split %d chars into %d pieces, %d chunks, %d results (budget=%s)",
        len(text),
        len(pieces),
        len(chunks),
        len(result),
        budget,
    )
    return result


def split_text(text: str, chunk_size: int, tokenizer: Tokenizer) -> list[str]:
    """Same as ``split_windowed`` with no windowing.

    The input is stripped first, so text that already fits comes back as
    ``[text.strip()]`` and blank text gives ``[]``. Use ``split_pieces`` when
    the exact input, surrounding whitespace included, must be preserved.
    """
    return split_windowed(text, Budget(chunk_size=chunk_size), tokenizer)


class TokenBudgetTextSplitter(TextSplitter):
    """LangChain splitter backed by ``split_windowed``.

    Gives access to ``create_documents`` / ``split_documents`` with metadata
    handling from LangChain while keeping the token-budget semantics.
    """

    def __init__(
        self,
        tokenizer: Tokenizer,
        chunk_size: int,
        window_size: int = 1,
        stride: int = 1,
        **kwargs: Any,
    ) -> None:
        # Validate before LangChain gets to see the numbers.
        self.budget = Budget(chunk_size=chunk_size, window_size=window_size, stride=stride)
        self.tokenizer = tokenizer
        super().__init__(
            chunk_size=chunk_size,
            chunk_overlap=0,
            length_function=tokenizer.count,
            **kwargs,
        )

    @classmethod
    def from_budget(
        cls, budget: Budget, tokenizer: Tokenizer, **kwargs: Any
    ) -> TokenBudgetTextSplitter:
        return cls(
            tokenizer,
            chunk_size=budget.chunk_size,
            window_size=budget.window_size,
            stride=budget.stride,
            **kwargs,
        )

    def split_text(self, text: str) -> list[str]:
        return split_windowed(text, self.budget, self.tokenizer)


@lru_cache(maxsize=1)
def get_text_splitter() -> TokenBudgetTextSplitter:
    """Splitter configured from ``Settings`` (cached)."""
    return TokenBudgetTextSplitter.from_budget(Settings().budget(), get_tokenizer())
