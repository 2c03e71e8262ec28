"""Value types shared across the package.

Everything here is immutable and created fresh per call; validation happens at
construction so that a bad budget is rejected before any text is processed.
"""

from __future__ import annotations

from typing import Any

from langchain_core.messages import BaseMessage
from langchain_core.messages import convert_to_messages
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator


class Budget(BaseModel):
    """Token budget for splitting text, optionally into overlapping windows."""

    model_config = ConfigDict(frozen=True)

    chunk_size: int = Field(..., ge=1, description="Maximum tokens per chunk")
    window_size: int = Field(default=1, ge=1, description="Chunks per window")
    stride: int = Field(default=1, ge=1, description="Chunks the window advances by")

    @model_validator(mode="after")
    def _check_stride(self) -> Budget:
        if self.stride > self.window_size:
            raise ValueError(
                f"stride exceeds window size ({self.stride} > {self.window_size}); "
                "chunks would be skipped"
            )
        return self


class TrimConfig(BaseModel):
    """Limits applied when selecting the recent part of a conversation.

    Conversations are lists of LangChain messages, oldest first.

    ``fixed_prefix`` is always kept; it does not count against ``max_steps``
    but its tokens do count against ``max_tokens``.
    """

    model_config = ConfigDict(frozen=True)

    max_steps: int = Field(..., ge=1, description="Maximum history messages kept")
    max_tokens: int = Field(..., ge=1, description="Token budget for prefix + history")
    fixed_prefix: BaseMessage | None = None


def to_message(role: str, content: str, **extra: Any) -> BaseMessage:
    """Build a LangChain message from an OpenAI-style role name.

    ``role`` is one of ``system``, ``user``, ``assistant`` (``human`` and ``ai``
    are accepted too) or ``tool``; tool messages need a ``tool_call_id``.
    """
    return convert_to_messages([{"role": role, "content": content, **extra}])[0]


def message_text(message: BaseMessage) -> str:
    """Plain text of a message, flattening content blocks."""
    content = message.content
    if isinstance(content, str):
        return content

    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and isinstance(block.get("text"), str):
            parts.append(block["text"])
    return "".join(parts)
