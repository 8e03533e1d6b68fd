"""Unit tests for embedding providers."""
import pytest

from ragviz.exceptions import EmbeddingError
from ragviz.llm_client import OllamaClient
from ragviz.rag.embeddings import (
    Embedding,
    EmbeddingKind,
    MockEmbeddingProvider,
    OllamaEmbeddingProvider,
    build_embedding_provider,
)


class TestMockEmbeddingProvider:
    """Tests for the pseudo-random fallback provider."""

    @pytest.mark.asyncio
    async def test_shape_and_range(self, mock_provider):
        embeddings = await mock_provider.embed(["a", "b", "c"])

        assert len(embeddings) == 3
        for embedding in embeddings:
            assert embedding.dimension == 768
            assert embedding.is_fallback
            assert all(-1.0 <= v < 1.0 for v in embedding.vector)

    @pytest.mark.asyncio
    async def test_embed_one_is_fallback(self, mock_provider):
        embedding = await mock_provider.embed_one("query")
        assert embedding.kind is EmbeddingKind.FALLBACK
        assert not mock_provider.is_live

    @pytest.mark.asyncio
    async def test_seeded_provider_is_reproducible(self):
        first = await MockEmbeddingProvider(dimension=8, seed=7).embed(["x"])
        second = await MockEmbeddingProvider(dimension=8, seed=7).embed(["x"])
        assert first[0].vector == second[0].vector

    @pytest.mark.asyncio
    async def test_empty_batch(self, mock_provider):
        assert await mock_provider.embed([]) == []


class TestOllamaEmbeddingProvider:
    """Tests for the live provider against a fake backend."""

    @pytest.mark.asyncio
    async def test_real_vectors(self, fake_ollama):
        backend = fake_ollama()
        provider = OllamaEmbeddingProvider(backend.client(), model="nomic-embed-text")

        embeddings = await provider.embed(["cats", "paris"])

        assert [e.kind for e in embeddings] == [EmbeddingKind.REAL, EmbeddingKind.REAL]
        assert embeddings[0].vector[0] == 1.0
        assert embeddings[1].vector[2] == 1.0
        assert provider.is_live

    @pytest.mark.asyncio
    async def test_partial_batch_failure_substitutes_fallback(self, fake_ollama):
        backend = fake_ollama(fail_on={"beta text"})
        provider = OllamaEmbeddingProvider(backend.client())

        embeddings = await provider.embed(["alpha text", "beta text", "gamma text"])

        assert len(embeddings) == 3
        assert [e.dimension for e in embeddings] == [768, 768, 768]
        assert [e.is_fallback for e in embeddings] == [False, True, False]

    @pytest.mark.asyncio
    async def test_empty_vector_is_item_failure(self, fake_ollama):
        backend = fake_ollama(empty_on={"nothing"})
        provider = OllamaEmbeddingProvider(backend.client())

        embeddings = await provider.embed(["cats", "nothing"])

        assert embeddings[1].is_fallback
        assert embeddings[1].dimension == 768
        assert any(v != 0.0 for v in embeddings[1].vector)

    @pytest.mark.asyncio
    async def test_non_json_reply_is_item_failure(self, fake_ollama):
        backend = fake_ollama(raw_on={"beta": "<html>proxy error</html>"})
        provider = OllamaEmbeddingProvider(backend.client())

        embeddings = await provider.embed(["alpha", "beta", "gamma"])

        assert [e.kind for e in embeddings] == [
            EmbeddingKind.REAL, EmbeddingKind.FALLBACK, EmbeddingKind.REAL,
        ]
        assert [e.dimension for e in embeddings] == [768, 768, 768]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        "[1, 2, 3]",
        "{\"embedding\": \"nope\"}",
        "{\"embedding\": [0.1, \"x\", 0.3]}",
        "{\"embedding\": [0.1, null]}",
    ])
    async def test_malformed_reply_is_item_failure(self, fake_ollama, body):
        backend = fake_ollama(raw_on={"bad": body})
        provider = OllamaEmbeddingProvider(backend.client())

        embeddings = await provider.embed(["good", "bad"])

        assert [e.is_fallback for e in embeddings] == [False, True]

    @pytest.mark.asyncio
    async def test_non_json_query_reply_raises(self, fake_ollama):
        backend = fake_ollama(raw_on={"q": "<html>proxy error</html>"})
        provider = OllamaEmbeddingProvider(backend.client())

        with pytest.raises(EmbeddingError, match="non-JSON"):
            await provider.embed_one("q")

    @pytest.mark.asyncio
    async def test_dimension_fixed_once_fallbacks_handed_out(self, fake_ollama):
        backend = fake_ollama(embed=lambda text: [1.0, 2.0, 3.0, 4.0], fail_on={"a", "b"})
        provider = OllamaEmbeddingProvider(backend.client())

        embeddings = await provider.embed(["a", "b"])
        assert {e.dimension for e in embeddings} == {768}

        with pytest.raises(EmbeddingError, match="expected 768"):
            await provider.embed_one("q")

        later = await provider.embed(["c"])
        assert later[0].is_fallback
        assert later[0].dimension == 768
        assert provider.dimension == 768

    @pytest.mark.asyncio
    async def test_dimension_follows_backend(self, fake_ollama):
        backend = fake_ollama(embed=lambda text: [1.0, 2.0, 3.0, 4.0], fail_on={"first"})
        provider = OllamaEmbeddingProvider(backend.client())

        embeddings = await provider.embed(["first", "second", "third"])

        assert provider.dimension == 4
        assert [e.dimension for e in embeddings] == [4, 4, 4]
        assert embeddings[0].is_fallback

    @pytest.mark.asyncio
    async def test_wrong_dimension_is_item_failure(self, fake_ollama):
        backend = fake_ollama(embed=lambda text: [1.0] * len(text))
        provider = OllamaEmbeddingProvider(backend.client())

        embeddings = await provider.embed(["abc", "abcdef"])

        assert embeddings[0].dimension == 3
        assert embeddings[1].is_fallback
        assert embeddings[1].dimension == 3

    @pytest.mark.asyncio
    async def test_concurrent_batch_preserves_order(self, fake_ollama):
        backend = fake_ollama(embed=lambda text: [float(len(text)), 1.0], fail_on={"ccc"})
        provider = OllamaEmbeddingProvider(backend.client(), concurrency=4)

        texts = ["a", "bb", "ccc", "dddd", "eeeee"]
        embeddings = await provider.embed(texts)

        assert [e.is_fallback for e in embeddings] == [False, False, True, False, False]
        assert [e.vector[0] for i, e in enumerate(embeddings) if i != 2] == [1.0, 2.0, 4.0, 5.0]

    @pytest.mark.asyncio
    async def test_embed_one_failure_raises(self, fake_ollama):
        backend = fake_ollama(fail_on={"Where do cats live?"})
        provider = OllamaEmbeddingProvider(backend.client(), model="nomic-embed-text")

        with pytest.raises(EmbeddingError) as exc_info:
            await provider.embed_one("Where do cats live?")

        assert exc_info.value.status_code == 500
        assert exc_info.value.model == "nomic-embed-text"

    @pytest.mark.asyncio
    async def test_embed_one_empty_vector_raises(self, fake_ollama):
        backend = fake_ollama(empty_on={"q"})
        provider = OllamaEmbeddingProvider(backend.client())

        with pytest.raises(EmbeddingError, match="Empty embedding"):
            await provider.embed_one("q")

    @pytest.mark.asyncio
    async def test_requests_carry_model_and_prompt(self, fake_ollama):
        backend = fake_ollama()
        provider = OllamaEmbeddingProvider(backend.client(), model="my-embedder")

        await provider.embed_one("hello")

        request = backend.requests[0]
        assert request.url.path == "/api/embeddings"
        assert b'"model":"my-embedder"' in request.content.replace(b" ", b"")
        assert b'"prompt":"hello"' in request.content.replace(b" ", b"")


class TestBuildEmbeddingProvider:
    """Tests for provider selection."""

    def test_mock_without_backend(self, monkeypatch):
        monkeypatch.setattr("ragviz.config.OLLAMA_BASE_URL", "")
        provider = build_embedding_provider()
        assert isinstance(provider, MockEmbeddingProvider)
        assert provider.dimension == 768

    def test_live_with_client(self):
        provider = build_embedding_provider(OllamaClient(base_url="http://ollama.test"))
        assert isinstance(provider, OllamaEmbeddingProvider)


def test_embedding_defaults_to_real():
    assert not Embedding(vector=[1.0]).is_fallback
