"""Embedding providers for the retrieval pipeline.

Handles:
- Tagging vectors as real or fallback
- Live embeddings through the Ollama backend
- Pseudo-random fallback vectors when no backend is available
- Per-item fallback substitution inside a batch
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import httpx
import numpy as np
import structlog

from ragviz import config
from ragviz.exceptions import EmbeddingError
from ragviz.llm_client import OllamaClient, build_ollama_client

logger = structlog.get_logger()


class EmbeddingKind(str, Enum):
    REAL = "real"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Embedding:
    """A vector plus whether it came from the backend or is a placeholder."""

    vector: List[float]
    kind: EmbeddingKind = EmbeddingKind.REAL

    @property
    def is_fallback(self) -> bool:
        return self.kind is EmbeddingKind.FALLBACK

    @property
    def dimension(self) -> int:
        return len(self.vector)


class EmbeddingProvider(ABC):
    """Turns texts into fixed-length vectors.

    Every vector returned by one provider instance has the same length.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Nominal vector length."""

    @property
    def is_live(self) -> bool:
        """True when vectors come from a real embedding backend."""
        return False

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[Embedding]:
        """Embed a batch, one Embedding per text, in input order."""

    @abstractmethod
    async def embed_one(self, text: str) -> Embedding:
        """Embed a single text (used for queries)."""


class MockEmbeddingProvider(EmbeddingProvider):
    """Uniform pseudo-random vectors in [-1, 1).

    Shapes are right, values are meaningless: similarity scores computed from
    these vectors carry no signal.
    """

    def __init__(self, dimension: int = None, seed: Optional[int] = None):
        """Initialize the mock provider.

        Args:
            dimension: Vector length (default config.FALLBACK_EMBEDDING_DIM)
            seed: Optional seed for reproducible vectors
        """
        self._dimension = dimension or config.FALLBACK_EMBEDDING_DIM
        self._rng = np.random.default_rng(seed)

    @property
    def dimension(self) -> int:
        return self._dimension

    def fallback(self, dimension: int = None) -> Embedding:
        """Create one fallback embedding."""
        size = dimension or self._dimension
        vector = self._rng.uniform(-1.0, 1.0, size).tolist()
        return Embedding(vector=vector, kind=EmbeddingKind.FALLBACK)

    async def embed(self, texts: List[str]) -> List[Embedding]:
        return [self.fallback() for _ in texts]

    async def embed_one(self, text: str) -> Embedding:
        return self.fallback()


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Embeddings from an Ollama backend with per-item fallback in batches."""

    def __init__(
        self,
        client: OllamaClient,
        model: str = None,
        dimension: int = None,
        concurrency: int = None,
        fallback: Optional[MockEmbeddingProvider] = None,
    ):
        """Initialize the provider.

        Args:
            client: Ollama client used for every request
            model: Embedding model name (default from config)
            dimension: Nominal dimension until the backend reports its own
                (default config.FALLBACK_EMBEDDING_DIM)
            concurrency: Max simultaneous requests during a batch
                (default config.EMBEDDING_CONCURRENCY; 1 = sequential)
            fallback: Source of placeholder vectors for failed batch items
        """
        self.client = client
        self.model = model or config.EMBEDDING_MODEL
        self._dimension = dimension or config.FALLBACK_EMBEDDING_DIM
        self._dimension_confirmed = False
        self.concurrency = max(1, concurrency or config.EMBEDDING_CONCURRENCY)
        self._fallback = fallback or MockEmbeddingProvider(dimension=self._dimension)

        logger.info(
            "embedding_provider_initialized",
            model=self.model,
            base_url=client.base_url,
            concurrency=self.concurrency,
        )

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_live(self) -> bool:
        return True

    async def _request_vector(self, text: str) -> List[float]:
        """Fetch one vector, raising EmbeddingError on any failure."""
        try:
            response = await self.client.embeddings(prompt=text, model=self.model)
        except httpx.HTTPError as e:
            status_code = None
            if isinstance(e, httpx.HTTPStatusError):
                status_code = e.response.status_code
            raise EmbeddingError(
                f"Embedding backend request failed: {e}",
                model=self.model,
                status_code=status_code,
            ) from e
        except ValueError as e:
            raise EmbeddingError(
                f"Embedding backend returned a non-JSON body: {e}", model=self.model
            ) from e

        if not isinstance(response, dict):
            raise EmbeddingError("Embedding response is not a JSON object", model=self.model)

        raw = response.get("embedding") or []
        if not isinstance(raw, list):
            raise EmbeddingError("Embedding field is not a list", model=self.model)
        if not raw:
            raise EmbeddingError("Empty embedding returned by backend", model=self.model)
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in raw):
            raise EmbeddingError("Embedding contains non-numeric values", model=self.model)

        vector = [float(v) for v in raw]

        if not self._dimension_confirmed:
            # First real vector fixes the provider's dimensionality
            self._dimension = len(vector)
            self._dimension_confirmed = True
        elif len(vector) != self._dimension:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dimensions, expected {self._dimension}",
                model=self.model,
            )

        return vector

    async def _try_vector(self, index: int, text: str) -> Optional[List[float]]:
        try:
            return await self._request_vector(text)
        except EmbeddingError as e:
            logger.warning(
                "embedding_fallback_used",
                item_index=index,
                text_preview=text[:100],
                error=str(e),
            )
            return None

    async def embed(self, texts: List[str]) -> List[Embedding]:
        """Embed a batch of texts.

        Failed items get a fallback vector; the rest of the batch proceeds.

        Args:
            texts: Texts to embed

        Returns:
            One Embedding per text, in input order
        """
        if not texts:
            return []

        if self.concurrency == 1:
            vectors = [await self._try_vector(i, text) for i, text in enumerate(texts)]
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def bounded(i: int, text: str) -> Optional[List[float]]:
                async with semaphore:
                    return await self._try_vector(i, text)

            vectors = await asyncio.gather(
                *(bounded(i, text) for i, text in enumerate(texts))
            )

        # Fill after the batch so fallbacks match the confirmed dimension
        embeddings = [
            Embedding(vector=vector) if vector is not None
            else self._fallback.fallback(self._dimension)
            for vector in vectors
        ]

        if any(vector is None for vector in vectors):
            # Fallbacks have been handed out, later real vectors must match them
            self._dimension_confirmed = True

        fallback_count = sum(1 for e in embeddings if e.is_fallback)
        logger.info(
            "embeddings_batch_generated",
            batch_size=len(texts),
            fallback_count=fallback_count,
            dimension=self._dimension,
        )

        return embeddings

    async def embed_one(self, text: str) -> Embedding:
        """Embed a single text.

        Raises:
            EmbeddingError: If the backend fails; no fallback is substituted
        """
        vector = await self._request_vector(text)
        return Embedding(vector=vector)


def build_embedding_provider(client: Optional[OllamaClient] = None) -> EmbeddingProvider:
    """Pick the live provider when a backend is configured, else the mock.

    Args:
        client: Ollama client to use (default: built from config)

    Returns:
        EmbeddingProvider instance
    """
    client = client or build_ollama_client()
    if client is None:
        logger.warning(
            "mock_embeddings_enabled",
            dimension=config.FALLBACK_EMBEDDING_DIM,
            reason="no embedding backend configured",
        )
        return MockEmbeddingProvider()
    return OllamaEmbeddingProvider(client)
