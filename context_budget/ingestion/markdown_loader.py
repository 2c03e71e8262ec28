"""Load a Markdown (or plain text) file → List[dict], one per token-budget chunk.

``created_at`` comes from the ``created:`` front-matter field when it parses,
otherwise from the file-system mtime. Other front-matter fields are copied
onto every chunk.
"""

from __future__ import annotations

from datetime import date
from datetime import datetime
from pathlib import Path
from typing import Any
import uuid

import frontmatter
from langchain_text_splitters import TextSplitter

from context_budget.utils.text_splitter import get_text_splitter

__all__ = ["parse_markdown_file"]


def _created_at(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 12)
    if isinstance(value, str):
        for parse in (
            datetime.fromisoformat,
            lambda s: datetime.strptime(s, "%b %d, %Y at %I:%M %p"),
            lambda s: datetime.strptime(s, "%b %d, %Y"),
        ):
            try:
                return parse(value)
            except ValueError:
                continue
    return None


def parse_markdown_file(
    path: str | Path, splitter: TextSplitter | None = None
) -> list[dict[str, Any]]:
    """Return *chunked* representation of one file."""
    path = Path(path)
    splitter = splitter or get_text_splitter()

    post = frontmatter.load(path)
    metadata = dict(post.metadata)
    created = _created_at(metadata.pop("created", None))
    if created is None:
        created = datetime.fromtimestamp(path.stat().st_mtime)

    return [
        {
            **metadata,
            "id": str(uuid.uuid4()),
            "content": chunk,
            "chunk_index": i,
            "created_at": created.isoformat(),
            "source": str(path),
        }
        for i, chunk in enumerate(splitter.split_text(post.content))
    ]
