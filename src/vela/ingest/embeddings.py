"""Embedding provider client: batched LiteLLM embeddings for Q&A chunks.

Contract relied on by the Q&A pipeline:
- ``embed(texts)`` returns one vector per input text, in input order.
- Every vector has exactly ``dimensions`` floats.
- Any failure is raised as a single UpstreamError for the whole batch; the
  caller writes nothing. No retries happen here (``num_retries=0``).
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import litellm

from vela.errors import UpstreamError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

# Provider → env var holding its API key. None = no key required.
_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "azure": "AZURE_API_KEY",
    "ollama": None,
}


class EmbeddingProvider(Protocol):
    """Anything that maps N texts to N vectors, order-preserving."""

    def embed(self, texts: Sequence[str]) -> list[list[float]]: ...


@dataclass
class EmbeddingConfig:
    """Configuration for embedding generation."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 128


class EmbeddingClient:
    """LiteLLM-backed EmbeddingProvider.

    Inputs larger than ``config.batch_size`` are sent as consecutive
    sub-requests and re-assembled in input order.

    Args:
        config: Embedding configuration (model, dimensions, batch_size).
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig()
        if self._config.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self._config.batch_size}")
        if self._config.dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {self._config.dimensions}")

    @property
    def config(self) -> EmbeddingConfig:
        return self._config

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts* and return their vectors in input order.

        Raises:
            UpstreamError: Missing API key, provider failure, or a response
                that breaks the length / dimension contract.
        """
        if not texts:
            return []
        self._check_api_key()

        vectors: list[list[float]] = []
        size = self._config.batch_size
        for start in range(0, len(texts), size):
            batch = list(texts[start : start + size])
            vectors.extend(self._embed_batch(batch))

        if len(vectors) != len(texts):
            raise UpstreamError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} texts."
            )
        return vectors

    # ------------------------------------------------------------------
    # Provider call
    # ------------------------------------------------------------------

    def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        """Call litellm.embedding() for one sub-batch."""
        try:
            response = litellm.embedding(
                model=self._config.model,
                input=batch,
                num_retries=0,
            )
        except Exception as exc:
            raise UpstreamError(
                f"Embedding provider call failed for model '{self._config.model}': {exc}"
            ) from exc

        items = list(response.data or [])
        if len(items) != len(batch):
            raise UpstreamError(
                f"Embedding provider returned {len(items)} vectors for {len(batch)} texts."
            )
        # Providers may return items out of order; "index" is authoritative when present.
        if all(_field(item, "index") is not None for item in items):
            items.sort(key=lambda item: _field(item, "index"))

        vectors = [list(map(float, _field(item, "embedding") or [])) for item in items]
        for vector in vectors:
            if len(vector) != self._config.dimensions:
                raise UpstreamError(
                    f"Embedding has {len(vector)} dimensions, expected {self._config.dimensions} "
                    f"for model '{self._config.model}'."
                )
        return vectors

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _check_api_key(self) -> None:
        """Raise UpstreamError if no API key is available for the embedding model."""
        provider = self._config.model.split("/")[0].lower() if "/" in self._config.model else "openai"
        env_var = _PROVIDER_ENV.get(provider)
        if env_var and not os.environ.get(env_var):
            raise UpstreamError(
                f"No API key found for provider '{provider}'. "
                f"Set the {env_var} environment variable."
            )


def _field(item: Any, name: str) -> Any:
    """Read *name* from a LiteLLM response item (dict or attribute object)."""
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)
