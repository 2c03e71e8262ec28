"""Global configuration (12-factor style).

Environment variables understood (see `.env.example`):

* ``OPENAI_API_KEY``          - optional; only needed for embeddings / chat
* ``EMBEDDING_MODEL``         - default: ``"text-embedding-3-large"``
* ``CHAT_MODEL``              - default: ``"gpt-4.1-2025-04-14"``
* ``TOKENIZER``               - ``"tiktoken"`` (default) or ``"char"``
* ``TOKENIZER_MODEL``         - model whose tiktoken encoding is used for counting
* ``CHUNK_SIZE`` / ``WINDOW_SIZE`` / ``STRIDE`` - default splitting budget
* ``MAX_HISTORY_LENGTH``      - messages kept in a conversation history
* ``MAX_CONVERSATION_STEPS``  - messages sent to the model per turn
* ``MAX_CONVERSATION_TOKENS`` - token budget of the messages sent per turn
* ``PERSONALITY``             - optional system prompt prepended to every turn
* ``LOG_LEVEL``               - default: ``"INFO"``

Usage:

    from context_budget.core.config import Settings
    settings = Settings()  # auto-loads & validates env vars
    budget = settings.budget()
"""

from typing import Literal

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from context_budget.core.types import Budget


class Settings(BaseSettings):
    """Typed view over process environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: str | None = None

    embedding_model: str = "text-embedding-3-large"
    chat_model: str = "gpt-4.1-2025-04-14"

    # Token counting
    tokenizer: Literal["tiktoken", "char"] = "tiktoken"
    tokenizer_model: str = "gpt-4o"
    fallback_encoding: str = "o200k_base"

    # Default splitting budget (a page is ~500 words in 4 paragraphs)
    chunk_size: int = 150
    window_size: int = 1
    stride: int = 1

    # Conversation limits
    max_history_length: int = 100
    max_conversation_steps: int = 14
    max_conversation_tokens: int = 12_000
    personality: str | None = None

    log_level: str = "INFO"

    def budget(self) -> Budget:
        """Return the default splitting budget; raises if the values are invalid."""
        return Budget(
            chunk_size=self.chunk_size,
            window_size=self.window_size,
            stride=self.stride,
        )
