"""
Services Module - Validation Logic Layer

Provides groundedness scoring, source tracking, pattern detection,
semantic verification, embedding caching and response sanitization.
"""

from hallucination_guard.services.cache_service import EmbeddingCache
from hallucination_guard.services.claim_extractor import ClaimExtractor
from hallucination_guard.services.groundedness import GroundednessCalculator, GroundednessScore
from hallucination_guard.services.hallucination_detector import HallucinationDetector, KnowledgeBase
from hallucination_guard.services.rag_validator import RAGValidator
from hallucination_guard.services.sanitizer import ResponseSanitizer
from hallucination_guard.services.semantic_verifier import SemanticVerifier
from hallucination_guard.services.source_tracker import SourceTracker

__all__ = [
    "EmbeddingCache",
    "ClaimExtractor",
    "GroundednessCalculator",
    "GroundednessScore",
    "HallucinationDetector",
    "KnowledgeBase",
    "RAGValidator",
    "ResponseSanitizer",
    "SemanticVerifier",
    "SourceTracker",
]
