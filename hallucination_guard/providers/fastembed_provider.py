"""
Providers - FastEmbed Provider

Local dense embeddings using fastembed.
"""

import asyncio
from typing import List

from hallucination_guard.config import get_settings
from hallucination_guard.providers.base_provider import BaseEmbeddingProvider


class FastEmbedProvider(BaseEmbeddingProvider):
    """Embeds text with a local ONNX model."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self._model = None

    @property
    def model(self):
        """Lazy load embedding model."""
        if self._model is None:
            from fastembed import TextEmbedding
            self._model = TextEmbedding(
                model_name=self.settings.embedding.model,
                cache_dir=str(self.settings.embedding.cache_dir),
            )
        return self._model

    def embed_sync(self, text: str) -> List[float]:
        embeddings = list(self.model.embed([text]))
        return embeddings[0].tolist() if embeddings else []

    async def embed(self, text: str) -> List[float]:
        """Embed off the event loop; the model is CPU-bound."""
        return await asyncio.to_thread(self.embed_sync, text)
