"""CLI helper - chunk (and optionally embed) a directory of ``.md`` / ``.txt`` files.

Usage::

    python -m scripts.chunk_folder ~/Notes --chunk-size 200 --output chunks.jsonl

Budget and tokenizer options default to the values in ``Settings``.
"""

from __future__ import annotations

import json
import pathlib
from typing import TextIO

import click
from pydantic import ValidationError

from context_budget.core.config import Settings
from context_budget.core.embeddings import EmbeddingService
from context_budget.core.embeddings import get_embeddings
from context_budget.core.logging_config import setup_logging
from context_budget.core.tokenizer import CharTokenizer
from context_budget.core.tokenizer import TiktokenTokenizer
from context_budget.core.tokenizer import Tokenizer
from context_budget.core.tokenizer import get_tokenizer
from context_budget.core.types import Budget
from context_budget.ingestion.markdown_loader import parse_markdown_file
from context_budget.utils.text_splitter import TokenBudgetTextSplitter

_SUFFIXES = {".md", ".markdown", ".txt"}


def _tokenizer(name: str | None, cfg: Settings) -> Tokenizer:
    if name == "char":
        return CharTokenizer()
    if name == "tiktoken":
        return TiktokenTokenizer(cfg.tokenizer_model, cfg.fallback_encoding)
    return get_tokenizer()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "directory", type=click.Path(exists=True, file_okay=False, path_type=pathlib.Path)
)
@click.option("--chunk-size", type=int, default=None, help="Tokens per chunk.")
@click.option("--window-size", type=int, default=None, help="Chunks per window.")
@click.option("--stride", type=int, default=None, help="Chunks between windows.")
@click.option(
    "--tokenizer",
    "tokenizer_name",
    type=click.Choice(["tiktoken", "char"]),
    default=None,
    help="How tokens are counted.",
)
@click.option(
    "--output",
    type=click.File("w", encoding="utf-8"),
    default="-",
    help="JSON lines destination (default: stdout).",
)
@click.option("--embed", is_flag=True, help="Also embed every chunk.")
@click.option("--log-level", default=None, help="Overrides LOG_LEVEL.")
def main(
    directory: pathlib.Path,
    chunk_size: int | None,
    window_size: int | None,
    stride: int | None,
    tokenizer_name: str | None,
    output: TextIO,
    embed: bool,
    log_level: str | None = None,
    embedding_service: EmbeddingService | None = None,
) -> None:
    """Chunk every text file under *DIRECTORY* (recursive) into JSON lines."""
    setup_logging(log_level)
    cfg = Settings()

    try:
        budget = Budget(
            chunk_size=cfg.chunk_size if chunk_size is None else chunk_size,
            window_size=cfg.window_size if window_size is None else window_size,
            stride=cfg.stride if stride is None else stride,
        )
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e

    tokenizer = _tokenizer(tokenizer_name, cfg)
    splitter = TokenBudgetTextSplitter.from_budget(budget, tokenizer)
    if embed and embedding_service is None:
        embedding_service = EmbeddingService(get_embeddings(), tokenizer, cfg=cfg)

    paths = sorted(
        p for p in directory.rglob("*") if p.is_file() and p.suffix.lower() in _SUFFIXES
    )
    if not paths:
        click.echo("No text files found - exiting.", err=True)
        raise SystemExit(0)

    total = 0
    for p in paths:
        chunks = parse_markdown_file(p, splitter=splitter)
        if embed and chunks:
            embedded = embedding_service.embed_chunks([c["content"] for c in chunks])
            for chunk, item in zip(chunks, embedded, strict=True):
                chunk["embedding"] = item.embedding
                chunk["embedding_model"] = item.model
        for chunk in chunks:
            output.write(json.dumps(chunk, default=str, ensure_ascii=False) + "\n")
        total += len(chunks)

    click.echo(f"Done: {total} chunks from {len(paths)} files.", err=True)


if __name__ == "__main__":  # pragma: no cover
    main()
