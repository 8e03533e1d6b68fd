"""RAG (Retrieval-Augmented Generation) visualizer components.

This package contains modules for:
- Word-window chunking with overlap
- Cosine similarity and 2D projection
- Embedding providers (live backend and mock fallback)
- The retrieval pipeline
- Pre-RAG vs RAG answer comparison
"""
