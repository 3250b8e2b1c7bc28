"""
Providers Module - External Collaborators

Embedding providers and documentation retrievers.
"""

from hallucination_guard.providers.base_provider import BaseEmbeddingProvider, BaseRetriever
from hallucination_guard.providers.fastembed_provider import FastEmbedProvider
from hallucination_guard.providers.openai_provider import OpenAIEmbeddingProvider
from hallucination_guard.providers.qdrant_retriever import QdrantRetriever

__all__ = [
    "BaseEmbeddingProvider",
    "BaseRetriever",
    "FastEmbedProvider",
    "OpenAIEmbeddingProvider",
    "QdrantRetriever",
]


def get_embedding_provider(settings=None):
    """Factory function to get configured embedding provider."""
    from hallucination_guard.config import get_settings
    settings = settings or get_settings()

    if settings.embedding.provider == "fastembed":
        return FastEmbedProvider(settings)
    elif settings.embedding.provider == "openai":
        return OpenAIEmbeddingProvider(settings)
    else:
        raise ValueError(f"Unknown embedding provider: {settings.embedding.provider}")


def get_retriever(embedding_provider=None, settings=None):
    """Factory function to get the documentation retriever."""
    from hallucination_guard.config import get_settings
    settings = settings or get_settings()
    return QdrantRetriever(embedding_provider or get_embedding_provider(settings), settings)
