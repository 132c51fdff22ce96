"""Business logic services: embeddings, hybrid search and insight sync."""
