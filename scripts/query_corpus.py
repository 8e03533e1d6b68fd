#!/usr/bin/env python
"""Index a text file and show how its chunks rank against a question.

Usage:
    python scripts/query_corpus.py "How do I descale?"                  # Sample corpus
    python scripts/query_corpus.py "Where do cats live?" -f notes.txt   # Your own file
    python scripts/query_corpus.py "..." --chunk-size 50 --overlap 10   # Other chunking
"""
import argparse
import asyncio
import sys
from pathlib import Path
from datetime import datetime

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ragviz import config
from ragviz.corpus import SAMPLE_CORPUS
from ragviz.exceptions import RagVizError
from ragviz.llm_client import build_ollama_client
from ragviz.rag.embeddings import build_embedding_provider
from ragviz.rag.pipeline import QueryResult, RetrievalPipeline
import structlog

logger = structlog.get_logger()


class ResultReporter:
    """Simple result reporter for CLI."""

    def __init__(self, preview_chars: int = 70):
        self.preview_chars = preview_chars
        self.start_time = None

    def start(self, message: str):
        """Start reporting."""
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def indexed(self, stats: dict):
        """Show indexing statistics."""
        print(f"  Chunks created:       {stats['chunk_count']}")
        print(f"  Fallback embeddings:  {stats['fallback_count']}")
        print(f"  Dimension:            {stats['dimension']}")
        print(f"  Chunk size / overlap: {stats['chunk_size']} / {stats['chunk_overlap']} words\n")

    def ranked(self, result: QueryResult, top_k: int):
        """Show ranked chunks with their 2D coordinates."""
        q = result.query_projection
        print(f"  Query point: ({q.x:8.3f}, {q.y:8.3f})  seed={result.seed:g}\n")

        for rank, item in enumerate(result.results, 1):
            marker = "*" if rank <= top_k else " "
            preview = item.chunk.text[: self.preview_chars]
            print(
                f" {marker}{rank:3d}. {item.chunk.id:<10} score={item.score:+.3f} "
                f"({item.projection.x:8.3f}, {item.projection.y:8.3f})  {preview}"
            )

        elapsed = (datetime.now() - self.start_time).total_seconds()
        print(f"\n  * = sent as context (top {top_k})")
        print(f"  Time elapsed: {elapsed:.1f}s")

        if result.has_fallback:
            print("\n  Warning: placeholder embeddings were used; scores are not meaningful.")

        print(f"\n{'=' * 60}\n")


async def main():
    """Main entry point for the query script."""
    parser = argparse.ArgumentParser(
        description="Chunk, embed and rank a corpus against a question",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("question", help="Question to rank chunks against")

    parser.add_argument(
        "--file",
        "-f",
        type=Path,
        default=None,
        help="Text file to index (default: bundled sample corpus)",
    )

    parser.add_argument(
        "--chunk-size",
        type=int,
        default=config.CHUNK_SIZE,
        help=f"Words per chunk (default: {config.CHUNK_SIZE})",
    )

    parser.add_argument(
        "--overlap",
        type=int,
        default=config.CHUNK_OVERLAP,
        help=f"Words of overlap (default: {config.CHUNK_OVERLAP})",
    )

    parser.add_argument(
        "--seed",
        type=float,
        default=config.PROJECTION_SEED,
        help=f"2D layout seed (default: {config.PROJECTION_SEED:g})",
    )

    parser.add_argument(
        "--top-k",
        type=int,
        default=config.RETRIEVAL_TOP_K,
        help=f"Chunks marked as context (default: {config.RETRIEVAL_TOP_K})",
    )

    args = parser.parse_args()

    reporter = ResultReporter()

    try:
        corpus = args.file.read_text(encoding="utf-8") if args.file else SAMPLE_CORPUS

        provider = build_embedding_provider(build_ollama_client())
        pipeline = RetrievalPipeline(provider)

        mode = "live" if provider.is_live else "mock"
        print("\n📋 Configuration:")
        print(f"   Corpus:           {args.file or 'sample corpus'}")
        print(f"   Embedding mode:   {mode}")
        print(f"   Embedding model:  {config.EMBEDDING_MODEL}")

        reporter.start("Indexing Corpus")
        stats = await pipeline.index(corpus, args.chunk_size, args.overlap)
        reporter.indexed(stats)

        result = await pipeline.query(args.question, seed=args.seed)
        reporter.ranked(result, args.top_k)

    except KeyboardInterrupt:
        print("\n\n⚠️  Cancelled by user.\n")
        sys.exit(1)

    except (FileNotFoundError, RagVizError, ValueError) as e:
        print(f"\n❌ Error: {e}\n")
        sys.exit(1)

    except Exception as e:
        print(f"\n❌ Error: {e}\n")
        logger.error("query_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
