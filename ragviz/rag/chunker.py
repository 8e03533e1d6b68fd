"""Word-window chunking with overlap for the RAG pipeline.

Chunk boundaries are word offsets into the whitespace-normalised text, so the
visualizer can highlight exactly which words each chunk covers.
"""
from typing import List
from dataclasses import dataclass
import structlog

from ragviz import config

logger = structlog.get_logger()

MIN_CHUNK_SIZE = 10


@dataclass(frozen=True)
class Chunk:
    """A contiguous word range of the source document."""

    id: str
    text: str
    start_word_index: int
    end_word_index: int

    @property
    def word_count(self) -> int:
        return self.end_word_index - self.start_word_index

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "start_word_index": self.start_word_index,
            "end_word_index": self.end_word_index,
        }


def split_words(text: str) -> List[str]:
    """Collapse whitespace runs and split into words.

    An empty or whitespace-only text has no words.
    """
    normalized = " ".join(text.split())
    if not normalized:
        return []
    return normalized.split(" ")


class WordChunker:
    """Word-based text chunker with overlap support.

    Parameters are clamped rather than validated, so any input produces a
    usable chunker.
    """

    def __init__(
        self,
        chunk_size: int = None,
        chunk_overlap: int = None,
    ):
        """Initialize the word chunker.

        Args:
            chunk_size: Words per chunk (default from config, at least 10)
            chunk_overlap: Words shared by consecutive chunks (default from
                config, clamped to [0, chunk_size - 1])
        """
        if chunk_size is None:
            chunk_size = config.CHUNK_SIZE
        if chunk_overlap is None:
            chunk_overlap = config.CHUNK_OVERLAP

        self.chunk_size = max(MIN_CHUNK_SIZE, chunk_size)
        self.chunk_overlap = min(self.chunk_size - 1, max(0, chunk_overlap))
        self.step = self.chunk_size - self.chunk_overlap

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            requested_size=chunk_size,
            requested_overlap=chunk_overlap,
        )

    def chunk_text(self, text: str) -> List[Chunk]:
        """Split text into overlapping word windows.

        Args:
            text: Text to chunk

        Returns:
            List of Chunk objects covering every word. An empty document
            yields a single empty chunk spanning [0, 0).
        """
        words = split_words(text)
        total_words = len(words)

        chunks = []
        start = 0

        while True:
            end = min(start + self.chunk_size, total_words)
            chunks.append(
                Chunk(
                    id=f"chunk-{len(chunks) + 1}",
                    text=" ".join(words[start:end]),
                    start_word_index=start,
                    end_word_index=end,
                )
            )

            # The window that reaches the last word is the final one
            if end >= total_words:
                break
            start += self.step

        logger.info(
            "text_chunked",
            total_words=total_words,
            chunk_count=len(chunks),
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

        return chunks

    def get_chunk_stats(self, chunks: List[Chunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of Chunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_words": 0,
                "avg_chunk_words": 0,
                "min_chunk_words": 0,
                "max_chunk_words": 0,
                "overlap": self.chunk_overlap,
            }

        chunk_words = [c.word_count for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_words": chunks[-1].end_word_index,
            "avg_chunk_words": sum(chunk_words) // len(chunks),
            "min_chunk_words": min(chunk_words),
            "max_chunk_words": max(chunk_words),
            "overlap": self.chunk_overlap,
        }


# Convenience function
def chunk_text(text: str, chunk_size: int, overlap: int) -> List[Chunk]:
    """Chunk text with the given (clamped) parameters.

    Args:
        text: Text to chunk
        chunk_size: Words per chunk
        overlap: Words shared by consecutive chunks

    Returns:
        List of Chunk objects
    """
    return WordChunker(chunk_size=chunk_size, chunk_overlap=overlap).chunk_text(text)
