"""Retrieval pipeline for the RAG visualizer.

Orchestrates:
- Chunking a corpus into word windows
- Batch embedding of every chunk
- Query embedding and cosine ranking
- 2D projection of the query and every chunk on one shared layout
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import structlog

from ragviz import config
from ragviz.exceptions import EmbeddingError, IndexNotBuiltError
from ragviz.rag.chunker import Chunk, WordChunker
from ragviz.rag.embeddings import Embedding, EmbeddingProvider
from ragviz.rag.vector_math import Projection2D, cosine_similarity, project_to_2d

logger = structlog.get_logger()


class PipelineState(str, Enum):
    EMPTY = "empty"
    INDEXED = "indexed"
    QUERYING = "querying"


@dataclass(frozen=True)
class EmbeddedChunk:
    """A chunk paired with its embedding."""

    chunk: Chunk
    embedding: Embedding

    @property
    def vector(self) -> List[float]:
        return self.embedding.vector

    def to_dict(self) -> dict:
        return {**self.chunk.to_dict(), "is_fallback": self.embedding.is_fallback}


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk ranked against one query."""

    chunk: Chunk
    score: float
    projection: Projection2D
    is_fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "chunk": self.chunk.to_dict(),
            "score": self.score,
            "projection": self.projection.to_dict(),
            "is_fallback": self.is_fallback,
        }


@dataclass(frozen=True)
class QueryResult:
    """Chunks ordered by descending similarity, plus the query's own point."""

    query: str
    seed: float
    query_projection: Projection2D
    results: List[ScoredChunk]
    query_is_fallback: bool = False

    def __len__(self) -> int:
        return len(self.results)

    def top(self, k: int) -> List[ScoredChunk]:
        """Get the k best-scoring chunks."""
        return self.results[: max(0, k)]

    @property
    def has_fallback(self) -> bool:
        """True if any score was computed from a placeholder vector."""
        return self.query_is_fallback or any(r.is_fallback for r in self.results)

    def to_payload(self) -> dict:
        """Everything needed to plot the query and every chunk in one scatter."""
        return {
            "query": self.query,
            "seed": self.seed,
            "query_projection": self.query_projection.to_dict(),
            "query_is_fallback": self.query_is_fallback,
            "results": [r.to_dict() for r in self.results],
        }


class RetrievalPipeline:
    """In-memory index over one corpus.

    Not safe for overlapping calls: callers must wait for index() or query()
    to finish before issuing the next one.
    """

    def __init__(self, provider: EmbeddingProvider):
        """Initialize the pipeline.

        Args:
            provider: Embedding provider used for chunks and queries
        """
        self.provider = provider
        self._state = PipelineState.EMPTY
        self._embedded_chunks: List[EmbeddedChunk] = []
        self._chunker: Optional[WordChunker] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def embedded_chunks(self) -> List[EmbeddedChunk]:
        return list(self._embedded_chunks)

    @property
    def chunk_size(self) -> Optional[int]:
        return self._chunker.chunk_size if self._chunker else None

    @property
    def chunk_overlap(self) -> Optional[int]:
        return self._chunker.chunk_overlap if self._chunker else None

    async def index(self, corpus_text: str, chunk_size: int, overlap: int) -> dict:
        """Chunk and embed a corpus, replacing any previous index.

        The new index is only swapped in once every chunk has an embedding,
        so a failure leaves the previous index intact.

        Args:
            corpus_text: Source document
            chunk_size: Words per chunk (clamped)
            overlap: Words of overlap (clamped)

        Returns:
            Dictionary with indexing statistics

        Raises:
            EmbeddingError: If the provider returns a malformed batch
        """
        chunker = WordChunker(chunk_size=chunk_size, chunk_overlap=overlap)
        chunks = chunker.chunk_text(corpus_text)

        embeddings = await self.provider.embed([chunk.text for chunk in chunks])

        if len(embeddings) != len(chunks):
            raise EmbeddingError(
                f"Provider returned {len(embeddings)} embeddings for {len(chunks)} chunks"
            )

        staged = [
            EmbeddedChunk(chunk=chunk, embedding=embedding)
            for chunk, embedding in zip(chunks, embeddings)
        ]

        self._embedded_chunks = staged
        self._chunker = chunker
        self._state = PipelineState.INDEXED

        stats = {
            "chunk_count": len(staged),
            "fallback_count": sum(1 for e in staged if e.embedding.is_fallback),
            "dimension": staged[0].embedding.dimension if staged else 0,
            "chunk_size": chunker.chunk_size,
            "chunk_overlap": chunker.chunk_overlap,
        }

        logger.info("pipeline_indexed", **stats)

        return stats

    async def query(self, text: str, seed: float = None) -> QueryResult:
        """Rank every indexed chunk against a query.

        Args:
            text: Query text
            seed: Projection seed shared by the query and all chunks
                (default config.PROJECTION_SEED)

        Returns:
            QueryResult ordered by descending score, ties in chunk order

        Raises:
            IndexNotBuiltError: If no corpus has been indexed
            ValueError: If the query text is empty
            EmbeddingError: If the query cannot be embedded
        """
        if self._state is PipelineState.EMPTY:
            raise IndexNotBuiltError()

        if not text or not text.strip():
            raise ValueError("Query text must not be empty")

        seed = config.PROJECTION_SEED if seed is None else seed

        self._state = PipelineState.QUERYING
        try:
            query_embedding = await self.provider.embed_one(text)

            scored = [
                ScoredChunk(
                    chunk=item.chunk,
                    score=cosine_similarity(query_embedding.vector, item.vector),
                    projection=project_to_2d(item.vector, seed),
                    is_fallback=item.embedding.is_fallback,
                )
                for item in self._embedded_chunks
            ]
            # sorted() is stable, so equal scores keep chunk order
            ranked = sorted(scored, key=lambda s: s.score, reverse=True)

            result = QueryResult(
                query=text,
                seed=seed,
                query_projection=project_to_2d(query_embedding.vector, seed),
                results=ranked,
                query_is_fallback=query_embedding.is_fallback,
            )
        finally:
            self._state = PipelineState.INDEXED

        logger.info(
            "pipeline_queried",
            query_length=len(text),
            results_returned=len(result),
            top_score=ranked[0].score if ranked else None,
            has_fallback=result.has_fallback,
        )

        return result
