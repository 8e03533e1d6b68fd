"""Pytest configuration and fixtures for unit tests."""
import json

import httpx
import pytest

from ragviz.llm_client import OllamaClient
from ragviz.rag.embeddings import MockEmbeddingProvider


BASE_URL = "http://ollama.test"
DIMENSION = 768
KEYWORDS = ["cat", "animal", "paris", "city"]


def keyword_vector(text: str, dimension: int = DIMENSION) -> list:
    """Bag-of-keywords vector: texts sharing keywords point the same way."""
    lower = text.lower()
    vector = [float(lower.count(k)) for k in KEYWORDS]
    vector += [0.0] * (dimension - len(KEYWORDS))
    vector[-1] = 0.1
    return vector


class FakeOllama:
    """Records requests and answers them like an Ollama server would."""

    def __init__(self, embed=keyword_vector, fail_on=(), empty_on=(), chat_reply="An answer.",
                 token_count=17, fail_chat=False, raw_on=None, raw_embed_body=None):
        self.embed = embed
        self.fail_on = set(fail_on)
        self.empty_on = set(empty_on)
        self.chat_reply = chat_reply
        self.token_count = token_count
        self.fail_chat = fail_chat
        self.raw_on = dict(raw_on or {})
        self.raw_embed_body = raw_embed_body
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "nomic-embed-text:latest"}]})

        body = json.loads(request.content)

        if path == "/api/embeddings":
            prompt = body["prompt"]
            if prompt in self.fail_on:
                return httpx.Response(500, json={"error": "model crashed"})
            if prompt in self.raw_on:
                return httpx.Response(200, text=self.raw_on[prompt])
            if prompt in self.empty_on:
                return httpx.Response(200, json={"embedding": []})
            return httpx.Response(200, json={"embedding": self.embed(prompt)})

        if path == "/api/embed":
            if self.raw_embed_body is not None:
                return httpx.Response(200, text=self.raw_embed_body)
            payload = {"embeddings": [[0.0]]}
            if self.token_count is not None:
                payload["prompt_eval_count"] = self.token_count
            return httpx.Response(200, json=payload)

        if path == "/api/chat":
            if self.fail_chat:
                return httpx.Response(503, json={"error": "overloaded"})
            return httpx.Response(200, json={"message": {"role": "assistant", "content": self.chat_reply}})

        return httpx.Response(404, json={"error": "not found"})

    def client(self) -> OllamaClient:
        return OllamaClient(base_url=BASE_URL, timeout=5.0, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_ollama():
    """Factory for fake Ollama backends."""
    return FakeOllama


@pytest.fixture
def mock_provider() -> MockEmbeddingProvider:
    """Seeded mock provider for reproducible placeholder vectors."""
    return MockEmbeddingProvider(dimension=DIMENSION, seed=1234)


@pytest.fixture
def two_sentence_corpus() -> str:
    """Two sentences long enough to land in separate chunks of 14 words."""
    return (
        "Cats are small furry animals that many people keep as loyal pets at home. "
        "Paris is a large city in France known for museums and its tall tower."
    )
