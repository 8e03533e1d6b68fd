"""RAG visualizer: chunking, embedding, ranking and 2D layout of a small corpus."""
