"""
Providers - Qdrant Retriever

Dense vector search over a Qdrant collection of documentation chunks.
"""

import asyncio
import logging
from typing import Any, Dict, List

from qdrant_client import QdrantClient

from hallucination_guard.config import get_settings
from hallucination_guard.providers.base_provider import BaseEmbeddingProvider, BaseRetriever
from hallucination_guard.schemas import RetrievalResult, Source

logger = logging.getLogger(__name__)


class QdrantRetriever(BaseRetriever):
    """Retrieves chunks by embedding the query and searching Qdrant."""

    def __init__(self, embedding_provider: BaseEmbeddingProvider, settings=None):
        self.settings = settings or get_settings()
        self.embedding_provider = embedding_provider
        self.collection = self.settings.qdrant.collection
        self._client = None

    @property
    def client(self) -> QdrantClient:
        """Lazy load Qdrant client."""
        if self._client is None:
            self._client = QdrantClient(
                host=self.settings.qdrant.host,
                port=self.settings.qdrant.port,
                api_key=self.settings.qdrant.api_key,
            )
        return self._client

    async def search(self, query: str, top_k: int = 5) -> List[RetrievalResult]:
        try:
            vector = await self.embedding_provider.embed(query)
            response = await asyncio.to_thread(
                self.client.query_points,
                collection_name=self.collection,
                query=vector,
                using=self.settings.qdrant.vector_name,
                limit=top_k,
                with_payload=True,
            )
        except Exception as e:
            logger.error(f"Qdrant search failed for collection {self.collection}: {e}")
            return []

        results = [self._to_result(point) for point in response.points]
        return sorted(results, key=lambda r: r.score, reverse=True)

    @staticmethod
    def _to_result(point) -> RetrievalResult:
        payload: Dict[str, Any] = dict(point.payload or {})
        score = min(1.0, max(0.0, float(point.score or 0.0)))
        point_id = str(point.id)

        chunk = Source.model_validate({
            **payload,
            "id": str(payload.get("id") or point_id),
            "title": payload.get("title") or "",
            "content": payload.get("content") or payload.get("text") or "",
            "score": score,
        })

        return RetrievalResult(id=point_id, score=score, chunk=chunk)
