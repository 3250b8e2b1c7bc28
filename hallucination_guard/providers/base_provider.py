"""
Providers - Base Interfaces

Abstract embedding provider and retriever consumed by the validation core.
"""

from abc import ABC, abstractmethod
from typing import List

from hallucination_guard.schemas import RetrievalResult


class BaseEmbeddingProvider(ABC):
    """Base class for embedding provider implementations."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed

        Returns:
            Fixed-dimension embedding vector
        """
        pass


class BaseRetriever(ABC):
    """Base class for documentation retrievers."""

    @abstractmethod
    async def search(self, query: str, top_k: int = 5) -> List[RetrievalResult]:
        """
        Retrieve documentation chunks for a query.

        Args:
            query: User query
            top_k: Maximum number of hits

        Returns:
            Hits sorted by score descending (empty on provider failure)
        """
        pass
