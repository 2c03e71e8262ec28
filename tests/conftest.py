"""
Shared pytest fixtures for all tests.
"""

from pathlib import Path

import pytest

from context_budget.core.embeddings import get_embeddings
from context_budget.core.tokenizer import CharTokenizer
from context_budget.core.tokenizer import get_tokenizer
from context_budget.utils.text_splitter import get_text_splitter
from tests.helpers import WordTokenizer

# ---------------------------------------------------------------------------
# Automatic test markers based on path
# ---------------------------------------------------------------------------
# Tests in ``tests/unit`` get the ``unit`` marker and tests in
# ``tests/integration`` get ``integration``, so ``pytest -m unit`` works
# without decorating every test.


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]):
    """Dynamically add pytest markers depending on filepath."""

    root_path = Path(config.rootdir)

    for item in items:
        rel_path = Path(item.fspath).resolve().relative_to(root_path).as_posix()

        if rel_path.startswith("tests/unit/"):
            item.add_marker("unit")
        elif rel_path.startswith("tests/integration/"):
            item.add_marker("integration")


# ---------------------------------------------------------------------------
# Hermetic settings
# ---------------------------------------------------------------------------
# Settings are read from the environment (and a local ``.env``).  Pin the
# values unit tests rely on so a developer's configuration cannot leak in, and
# reset the cached factories around every test.


@pytest.fixture(autouse=True)
def _hermetic_settings(monkeypatch):
    monkeypatch.setenv("TOKENIZER", "char")
    monkeypatch.setenv("CHUNK_SIZE", "150")
    monkeypatch.setenv("WINDOW_SIZE", "1")
    monkeypatch.setenv("STRIDE", "1")
    monkeypatch.setenv("PERSONALITY", "")
    monkeypatch.setenv("MAX_HISTORY_LENGTH", "100")
    monkeypatch.setenv("MAX_CONVERSATION_STEPS", "14")
    monkeypatch.setenv("MAX_CONVERSATION_TOKENS", "12000")
    for cached in (get_tokenizer, get_text_splitter, get_embeddings):
        cached.cache_clear()
    yield
    for cached in (get_tokenizer, get_text_splitter, get_embeddings):
        cached.cache_clear()


@pytest.fixture
def char_tokenizer() -> CharTokenizer:
    return CharTokenizer()


@pytest.fixture
def word_tokenizer() -> WordTokenizer:
    return WordTokenizer()
