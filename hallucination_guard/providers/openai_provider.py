"""
Providers - OpenAI Embedding Provider

OpenAI-compatible /embeddings endpoint over httpx.
"""

from typing import List
import httpx

from hallucination_guard.config import get_settings
from hallucination_guard.providers.base_provider import BaseEmbeddingProvider


class OpenAIEmbeddingProvider(BaseEmbeddingProvider):
    """OpenAI and compatible embedding APIs."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.embedding.base_url.rstrip("/")
        self.api_key = self.settings.embedding.api_key
        self.model = self.settings.embedding.model
        self.timeout = self.settings.semantic.embedding_timeout_ms / 1000

    async def embed(self, text: str) -> List[float]:
        """Embed text using the embeddings API."""
        url = f"{self.base_url}/embeddings"

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "model": self.model,
            "input": text,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()

            return data["data"][0]["embedding"]
