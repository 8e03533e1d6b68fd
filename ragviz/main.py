"""Main Quart application for the RAG visualizer."""
import asyncio
import logging
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from quart import Quart, request, jsonify
import structlog

from ragviz import config
from ragviz.corpus import SAMPLE_CORPUS
from ragviz.exceptions import EmbeddingError, IndexNotBuiltError
from ragviz.llm_client import OllamaClient, build_ollama_client
from ragviz.rag.embeddings import build_embedding_provider
from ragviz.rag.generation import AnswerGenerator
from ragviz.rag.pipeline import RetrievalPipeline

# Configure structured logging
logging.basicConfig(level=config.LOG_LEVEL, format="%(message)s")
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

MOCK_ADVISORY = (
    "No embedding backend configured: embeddings are random placeholders, "
    "so similarity scores and rankings are meaningless."
)


class IndexRequest(BaseModel):
    corpus: Optional[str] = None
    chunk_size: int = config.CHUNK_SIZE
    overlap: int = config.CHUNK_OVERLAP


class QueryRequest(BaseModel):
    question: str = Field(min_length=1, max_length=config.MAX_QUESTION_LENGTH)
    seed: float = config.PROJECTION_SEED


class AskRequest(QueryRequest):
    top_k: int = Field(default=config.RETRIEVAL_TOP_K, ge=1, le=50)
    use_llm: bool = True


def _validation_response(error: ValidationError):
    details = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()]
    return jsonify({"error": "Invalid request", "details": details}), 400


def create_app(
    pipeline: Optional[RetrievalPipeline] = None,
    generator: Optional[AnswerGenerator] = None,
    client: Optional[OllamaClient] = None,
) -> Quart:
    """Build the app around one pipeline.

    Args:
        pipeline: Retrieval pipeline (default: provider chosen from config)
        generator: Answer generator (default: sharing the backend client)
        client: Ollama client (default: built from config, None if unset)

    Returns:
        Quart application
    """
    app = Quart(__name__)

    if client is None and (pipeline is None or generator is None):
        client = build_ollama_client()
    if pipeline is None:
        pipeline = RetrievalPipeline(build_embedding_provider(client))
    if generator is None:
        generator = AnswerGenerator(client)

    # One operation at a time against the pipeline
    busy = asyncio.Lock()

    def _mode() -> str:
        return "live" if pipeline.provider.is_live else "mock"

    def _busy_response():
        return jsonify({"error": "Another operation is in progress. Try again shortly."}), 409

    @app.route("/api/status", methods=["GET"])
    async def status():
        """Report backend mode, pipeline state and chunking parameters."""
        return jsonify({
            "mode": _mode(),
            "advisory": None if pipeline.provider.is_live else MOCK_ADVISORY,
            "state": pipeline.state.value,
            "chunk_count": len(pipeline.embedded_chunks),
            "chunk_size": pipeline.chunk_size,
            "chunk_overlap": pipeline.chunk_overlap,
            "embedding_dimension": pipeline.provider.dimension,
            "embedding_model": config.EMBEDDING_MODEL,
            "chat_model": generator.chat_model,
        })

    @app.route("/api/index", methods=["POST"])
    async def index_corpus():
        """Chunk and embed a corpus (the sample corpus if none is given).

        Expects JSON body:
        {
            "corpus": "optional text",
            "chunk_size": 150,
            "overlap": 30
        }
        """
        try:
            body = IndexRequest.model_validate(await request.get_json(silent=True) or {})
        except ValidationError as e:
            return _validation_response(e)

        if busy.locked():
            return _busy_response()

        async with busy:
            try:
                stats = await pipeline.index(
                    body.corpus if body.corpus is not None else SAMPLE_CORPUS,
                    body.chunk_size,
                    body.overlap,
                )
            except EmbeddingError as e:
                logger.error("index_failed", error=str(e))
                return jsonify({"error": f"Indexing failed: {e}"}), 502

        return jsonify({**stats, "mode": _mode()})

    @app.route("/api/chunks", methods=["GET"])
    async def list_chunks():
        """List the chunks of the current index."""
        return jsonify({
            "state": pipeline.state.value,
            "chunks": [item.to_dict() for item in pipeline.embedded_chunks],
        })

    async def _run_query(body: QueryRequest):
        try:
            return await pipeline.query(body.question.strip(), seed=body.seed), None
        except IndexNotBuiltError as e:
            return None, (jsonify({"error": str(e)}), 409)
        except ValueError as e:
            return None, (jsonify({"error": str(e)}), 400)
        except EmbeddingError as e:
            logger.error("query_embedding_failed", error=str(e), status_code=e.status_code)
            return None, (jsonify({"error": f"Could not embed the question: {e}"}), 502)

    @app.route("/api/query", methods=["POST"])
    async def query():
        """Rank chunks against a question and return the scatter payload.

        Expects JSON body:
        {
            "question": "text",
            "seed": 42  // optional layout seed
        }
        """
        try:
            body = QueryRequest.model_validate(await request.get_json(silent=True) or {})
        except ValidationError as e:
            return _validation_response(e)

        if busy.locked():
            return _busy_response()

        async with busy:
            result, error = await _run_query(body)
        if error:
            return error

        return jsonify({**result.to_payload(), "mode": _mode()})

    @app.route("/api/ask", methods=["POST"])
    async def ask():
        """Rank chunks, then compare pre-RAG and RAG answers.

        Expects JSON body:
        {
            "question": "text",
            "seed": 42,       // optional
            "top_k": 4,       // optional
            "use_llm": true   // optional
        }
        """
        try:
            body = AskRequest.model_validate(await request.get_json(silent=True) or {})
        except ValidationError as e:
            return _validation_response(e)

        if busy.locked():
            return _busy_response()

        async with busy:
            result, error = await _run_query(body)
            if error:
                return error
            comparison = await generator.compare(
                result, top_k=body.top_k, llm_enabled=body.use_llm
            )

        return jsonify({
            **result.to_payload(),
            "mode": _mode(),
            "comparison": comparison.to_dict(),
        })

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check the backend when one is configured."""
        checks = {"status": "healthy", "mode": _mode(), "backend": None}

        if client is None:
            return jsonify(checks), 200

        try:
            models = await client.list_models()
        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            checks.update(status="unhealthy", backend=False, error=str(e))
            return jsonify(checks), 503

        checks["backend"] = True
        if not any(m.split(":")[0] == config.EMBEDDING_MODEL.split(":")[0] for m in models):
            checks["status"] = "unhealthy"
            checks["error"] = f"Missing embedding model: {config.EMBEDDING_MODEL}"

        return jsonify(checks), 200 if checks["status"] == "healthy" else 503

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        """Handle 500 errors."""
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


app = create_app()


if __name__ == "__main__":
    # For development - use hypercorn in production
    app.run(host="0.0.0.0", port=5000, debug=True)
