"""
Services - Semantic Verifier

Embedding-based verification of extracted claims against source content.
"""

import asyncio
import logging
import threading
from typing import List, Optional, Sequence, Tuple

import numpy as np

from hallucination_guard.config import get_settings
from hallucination_guard.schemas import (
    Claim,
    ClaimVerification,
    RetrievalResult,
    RiskLevel,
    SemanticReport,
    VerificationMethod,
)
from hallucination_guard.services.cache_service import EmbeddingCache
from hallucination_guard.services.claim_extractor import ClaimExtractor

logger = logging.getLogger(__name__)


RISK_WEIGHTS = {
    RiskLevel.CRITICAL: 3.0,
    RiskLevel.HIGH: 2.0,
    RiskLevel.MEDIUM: 1.0,
    RiskLevel.LOW: 0.5,
}

# Literal presence in the sources dominates any similarity score
LITERAL_MATCH_SCORE = 0.95


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Cosine similarity of two vectors (0.0 for zero or mismatched vectors)."""
    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)

    if a.shape != b.shape or a.size == 0:
        return 0.0

    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0

    return float(np.dot(a, b) / norm)


class SemanticVerifier:
    """
    Verifies claims by comparing their embeddings with source embeddings.

    Each claim is embedded together with its type and context, every
    source is embedded from a bounded prefix of its content, and the
    best cosine similarity decides whether the claim is supported.
    Embedding calls go through the shared cache and are bounded by a
    per-call timeout; a failed call degrades only the claim it served.
    """

    def __init__(self, embedding_provider, settings=None, cache: Optional[EmbeddingCache] = None):
        self.settings = settings or get_settings()
        self.embedding_provider = embedding_provider
        self.embedding_cache = cache or EmbeddingCache(settings=self.settings)
        self.claim_extractor = ClaimExtractor(max_claims=self.settings.semantic.max_claims)

        self._stats_lock = threading.Lock()
        self._stats = self._empty_stats()

    async def verify_response(
        self,
        response: str,
        raw_results: Sequence[RetrievalResult],
    ) -> SemanticReport:
        """
        Verify every extractable claim of an answer.

        Args:
            response: Generated answer text
            raw_results: Retrieved hits whose chunks carry the source content

        Returns:
            SemanticReport (a vacuous pass when no claims are found)
        """
        claims = self.claim_extractor.extract_claims(response)

        if not claims:
            return SemanticReport(
                overall_confidence=1.0,
                passes_threshold=True,
                total_claims=0,
                verification_rate=100,
                summary="No verifiable technical claims extracted from response.",
            )

        sources = [
            r.chunk for r in raw_results
            if r.chunk is not None and r.chunk.content
        ]
        source_text = "\n\n".join(s.content for s in sources).lower()

        results = await asyncio.gather(*[
            self._verify_claim(claim, sources, source_text)
            for claim in claims
        ])

        verified = [r for r in results if r.is_verified]
        unverified = [r for r in results if not r.is_verified]
        overall = self._overall_confidence(results)
        passes = overall >= self.settings.semantic.minimum_overall_confidence

        with self._stats_lock:
            self._stats["total_verifications"] += 1
            if passes:
                self._stats["successful_verifications"] += 1
            else:
                self._stats["failed_verifications"] += 1

        return SemanticReport(
            verified_claims=verified,
            unverified_claims=unverified,
            overall_confidence=overall,
            passes_threshold=passes,
            total_claims=len(claims),
            verification_rate=round(len(verified) / len(claims) * 100),
            summary=self._summary(verified, unverified, overall),
        )

    async def _verify_claim(self, claim: Claim, sources, source_text: str) -> ClaimVerification:
        try:
            claim_text = f"{claim.type.value}: {claim.value}. Context: {claim.context}"
            claim_embedding = await self._get_embedding(claim_text)

            best_score, matched_source = await self._best_source_match(claim_embedding, sources)

            literal_match = claim.value.lower().strip() in source_text
            if literal_match:
                best_score = max(best_score, LITERAL_MATCH_SCORE)

            best_score = min(1.0, max(0.0, best_score))
            is_verified = best_score >= self.settings.semantic.verification_threshold

            return ClaimVerification(
                claim=claim,
                is_verified=is_verified,
                confidence_score=round(best_score, 2),
                matched_source=matched_source if is_verified else None,
                verification_method=(
                    VerificationMethod.LITERAL_MATCH if literal_match
                    else VerificationMethod.SEMANTIC_SIMILARITY
                ),
            )
        except Exception as e:
            logger.warning(f"Error verifying {claim.type.value} claim '{claim.value}': {e!r}")
            return ClaimVerification(
                claim=claim,
                is_verified=False,
                confidence_score=0.0,
                matched_source=None,
                verification_method=VerificationMethod.ERROR,
                error=str(e) or type(e).__name__,
            )

    async def _best_source_match(self, claim_embedding, sources) -> Tuple[float, Optional[str]]:
        prefix_chars = self.settings.semantic.source_prefix_chars

        embeddings = await asyncio.gather(
            *[self._get_embedding(s.content[:prefix_chars]) for s in sources],
            return_exceptions=True,
        )

        # Let every lookup settle before surfacing the first failure
        for embedding in embeddings:
            if isinstance(embedding, BaseException):
                raise embedding

        best_score = 0.0
        matched_source = None
        for source, embedding in zip(sources, embeddings):
            similarity = cosine_similarity(claim_embedding, embedding)
            if similarity > best_score:
                best_score = similarity
                matched_source = source.source_path if source.source_path != "unknown" else source.title

        return best_score, matched_source

    async def _get_embedding(self, text: str) -> List[float]:
        """Embedding for text, served from cache when possible."""
        key = EmbeddingCache.generate_key(text)
        embedding = self.embedding_cache.get(key)

        if embedding is None:
            timeout = self.settings.semantic.embedding_timeout_ms / 1000
            embedding = await asyncio.wait_for(
                self.embedding_provider.embed(text), timeout=timeout
            )
            self.embedding_cache.set(key, embedding)

        return embedding

    def _overall_confidence(self, results: Sequence[ClaimVerification]) -> float:
        """Risk-weighted average of claim confidences."""
        if not results:
            return 1.0

        weighted_sum = 0.0
        total_weight = 0.0
        for result in results:
            weight = RISK_WEIGHTS.get(result.claim.risk_level, 1.0)
            weighted_sum += result.confidence_score * weight
            total_weight += weight

        return round(weighted_sum / total_weight, 2) if total_weight > 0 else 0.0

    def _summary(self, verified, unverified, confidence: float) -> str:
        percent = round(confidence * 100)

        if not unverified:
            return f"All {len(verified)} claims verified with {percent}% confidence."

        critical = [r for r in unverified if r.claim.risk_level == RiskLevel.CRITICAL]
        if critical:
            return (
                f"⚠️ CRITICAL: {len(critical)} high-risk claims could not be verified. "
                f"Overall confidence: {percent}%."
            )

        total = len(verified) + len(unverified)
        return (
            f"{len(verified)}/{total} claims verified. "
            f"{len(unverified)} unverified claims detected. Confidence: {percent}%."
        )

    @staticmethod
    def _empty_stats() -> dict:
        return {
            "total_verifications": 0,
            "successful_verifications": 0,
            "failed_verifications": 0,
        }

    def get_stats(self) -> dict:
        """Get verification statistics."""
        with self._stats_lock:
            stats = dict(self._stats)

        total = stats["total_verifications"]
        stats["success_rate"] = (
            round(stats["successful_verifications"] / total * 100) if total else 0
        )
        stats["cache_stats"] = self.embedding_cache.get_stats()
        return stats

    def reset_stats(self) -> None:
        """Reset statistics and clear the embedding cache."""
        with self._stats_lock:
            self._stats = self._empty_stats()
        self.embedding_cache.clear()
