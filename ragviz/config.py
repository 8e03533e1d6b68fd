"""Application configuration with sensible defaults."""
import os

# Ollama configuration (empty base URL = no backend, mock embeddings)
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "nomic-embed-text")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gemma3:4b")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60.0"))

# Embeddings
FALLBACK_EMBEDDING_DIM = int(os.getenv("FALLBACK_EMBEDDING_DIM", "768"))
EMBEDDING_CONCURRENCY = int(os.getenv("EMBEDDING_CONCURRENCY", "1"))  # 1 = sequential

# RAG parameters (word-based, matching what the visualizer highlights)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "150"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "30"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "4"))
PROJECTION_SEED = float(os.getenv("PROJECTION_SEED", "42"))

# Request guards
MAX_QUESTION_LENGTH = int(os.getenv("MAX_QUESTION_LENGTH", "2000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
