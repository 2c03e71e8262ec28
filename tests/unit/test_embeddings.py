"""Unit tests for the chunk-and-embed service."""

from __future__ import annotations

from pathlib import Path

import pytest

from context_budget.core.embeddings import EmbeddedText
from context_budget.core.embeddings import EmbeddingService
from context_budget.core.embeddings import get_embeddings
from context_budget.core.embeddings import similarity
from context_budget.core.types import Budget
from tests.helpers import FakeEmbeddings

TEXT = "Alpha beta gamma. Delta epsilon zeta. Eta theta iota. Kappa lambda mu."


@pytest.fixture
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def service(fake_embeddings, word_tokenizer) -> EmbeddingService:
    return EmbeddingService(
        fake_embeddings, word_tokenizer, model="fake-model", default_budget=Budget(chunk_size=3)
    )


@pytest.mark.unit
class TestEmbeddingService:
    def test_embeds_every_chunk_in_one_call(self, service, fake_embeddings):
        result = service.embed(TEXT)
        assert [r.text for r in result] == [
            "Alpha beta gamma.",
            "Delta epsilon zeta.",
            "Eta theta iota.",
            "Kappa lambda mu.",
        ]
        assert len(fake_embeddings.calls) == 1
        assert all(r.model == "fake-model" and len(r.embedding) == 16 for r in result)

    def test_budget_override_with_windows(self, service):
        budget = Budget(chunk_size=3, window_size=2, stride=2)
        result = service.embed(TEXT, budget=budget)
        assert [r.text for r in result] == [
            "Alpha beta gamma. Delta epsilon zeta.",
            "Eta theta iota. Kappa lambda mu.",
        ]

    def test_embeds_many_texts(self, service):
        result = service.embed(["one two", "three four"])
        assert [r.text for r in result] == ["one two", "three four"]

    def test_blank_text_skips_model(self, service, fake_embeddings):
        assert service.embed("   ") == []
        assert fake_embeddings.calls == []

    def test_embed_chunks_keeps_chunks_as_given(self, service, fake_embeddings):
        chunks = ["  already chunked  ", "second chunk with many more words than the budget"]
        result = service.embed_chunks(chunks)
        assert [r.text for r in result] == chunks
        assert fake_embeddings.calls == [chunks]

    def test_embed_chunks_empty(self, service, fake_embeddings):
        assert service.embed_chunks([]) == []
        assert fake_embeddings.calls == []

    def test_default_budget_from_settings(self, fake_embeddings, word_tokenizer, monkeypatch):
        monkeypatch.setenv("CHUNK_SIZE", "7")
        monkeypatch.setenv("EMBEDDING_MODEL", "text-embedding-3-small")
        svc = EmbeddingService(fake_embeddings, word_tokenizer)
        assert svc.default_budget == Budget(chunk_size=7)
        assert svc.model == "text-embedding-3-small"

    def test_embed_file_tags_source(self, service, tmp_path: Path):
        p = tmp_path / "notes.txt"
        p.write_text(TEXT, encoding="utf-8")
        result = service.embed_file(p)
        assert len(result) == 4
        assert result[2].metadata == {"source": str(p), "chunk_index": 2}

    def test_embed_folder_is_recursive(self, service, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "a.txt").write_text("one two", encoding="utf-8")
        (tmp_path / "sub" / "b.md").write_text("three four", encoding="utf-8")
        result = service.embed_folder(tmp_path)
        assert set(result) == {tmp_path / "a.txt", tmp_path / "sub" / "b.md"}
        assert result[tmp_path / "sub" / "b.md"][0].text == "three four"

    def test_embed_folder_rejects_files(self, service, tmp_path: Path):
        p = tmp_path / "a.txt"
        p.write_text("x", encoding="utf-8")
        with pytest.raises(NotADirectoryError):
            service.embed_folder(p)


@pytest.mark.unit
class TestSimilarity:
    def test_identical_vectors(self):
        a = EmbeddedText(text="a", embedding=[1.0, 2.0, 3.0], model="m")
        assert a.similarity(a) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        a = EmbeddedText(text="a", embedding=[1.0, 0.0], model="m")
        b = EmbeddedText(text="b", embedding=[-1.0, 0.0], model="m")
        assert similarity(a, b) == pytest.approx(-1.0)

    def test_zero_vector(self):
        a = EmbeddedText(text="a", embedding=[0.0, 0.0], model="m")
        b = EmbeddedText(text="b", embedding=[1.0, 0.0], model="m")
        assert similarity(a, b) == -1.0

    def test_model_mismatch(self):
        a = EmbeddedText(text="a", embedding=[1.0], model="m1")
        b = EmbeddedText(text="b", embedding=[1.0], model="m2")
        with pytest.raises(ValueError, match="different models"):
            similarity(a, b)

    def test_size_mismatch(self):
        a = EmbeddedText(text="a", embedding=[1.0], model="m")
        b = EmbeddedText(text="b", embedding=[1.0, 2.0], model="m")
        with pytest.raises(ValueError, match="different size"):
            similarity(a, b)


@pytest.mark.unit
def test_get_embeddings_uses_settings(mocker, monkeypatch):
    monkeypatch.setenv("EMBEDDING_MODEL", "text-embedding-3-small")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    openai_embeddings = mocker.patch("context_budget.core.embeddings.OpenAIEmbeddings")

    assert get_embeddings() is get_embeddings()

    openai_embeddings.assert_called_once()
    assert openai_embeddings.call_args.kwargs["model"] == "text-embedding-3-small"
    assert openai_embeddings.call_args.kwargs["api_key"].get_secret_value() == "sk-test"
