"""Vela ingest pipeline: answer normalisation, embedding text, embedding client."""

from vela.ingest.embeddings import EmbeddingClient, EmbeddingConfig, EmbeddingProvider
from vela.ingest.text import build_embedding_texts, embedding_text, normalize

__all__ = [
    "EmbeddingClient",
    "EmbeddingConfig",
    "EmbeddingProvider",
    "build_embedding_texts",
    "embedding_text",
    "normalize",
]
