"""
Pipeline - Validation Pipeline

Multi-layer hallucination prevention around a RAG answer:
retrieval metadata, pattern detection, semantic verification,
sanitization and audit.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from hallucination_guard.audit import HallucinationAudit
from hallucination_guard.config import get_settings
from hallucination_guard.schemas import (
    ClaimType,
    DetectionSource,
    GroundednessLevel,
    Hallucination,
    HallucinationType,
    RAGMetadata,
    RetrievalResult,
    SanitizationAction,
    SanitizationResult,
    SemanticReport,
    ValidationResult,
    ValidationStatus,
)
from hallucination_guard.services import RAGValidator, ResponseSanitizer, SemanticVerifier
from hallucination_guard.services.constants import (
    GROUNDING_RULES,
    NO_DOCUMENTATION_CONTEXT,
    WarningMessages,
)

logger = logging.getLogger(__name__)


HALLUCINATION_TYPE_BY_CLAIM = {
    ClaimType.ENDPOINT: HallucinationType.FABRICATED_ENDPOINT,
    ClaimType.PRICE: HallucinationType.FABRICATED_PRICE,
    ClaimType.METHOD: HallucinationType.INCORRECT_METHOD,
    ClaimType.PARAMETER: HallucinationType.FABRICATED_PARAMETER,
    ClaimType.COUNTRY: HallucinationType.UNSUPPORTED_COUNTRY,
    ClaimType.FEATURE: HallucinationType.FABRICATED_FEATURE,
    ClaimType.RESPONSE: HallucinationType.CONFLICTING_INFO,
}

# Unverified claims at or below this confidence are too uncertain to report
SEMANTIC_MIN_CONFIDENCE = 0.5


def finding_key(hallucination_type: HallucinationType, detected: str):
    """Comparable form of a finding; "$1,200" and "1200" are the same price."""
    value = detected.strip().lower()
    if hallucination_type == HallucinationType.FABRICATED_PRICE:
        value = value.replace("$", "").replace(",", "").strip()
        try:
            value = float(value)
        except ValueError:
            pass
    return hallucination_type, value


@dataclass
class RetrievalContext:
    """Retrieved documentation for one query."""
    context: str
    metadata: RAGMetadata
    raw_results: List[RetrievalResult]


@dataclass
class PipelineResult:
    """Validated (and possibly sanitized) answer."""
    content: str
    was_modified: bool
    action: SanitizationAction
    hallucinations: List[Hallucination]
    metadata: RAGMetadata
    sanitization: SanitizationResult
    semantic_report: Optional[SemanticReport] = None
    audit_id: Optional[str] = None
    response_time_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "wasModified": self.was_modified,
            "action": self.action.value,
            "hallucinations": [h.to_wire() for h in self.hallucinations],
            "metadata": self.metadata.to_wire(),
            "semanticVerification": (
                self.semantic_report.to_wire() if self.semantic_report else None
            ),
            "sanitization": self.sanitization.to_wire(),
            "auditId": self.audit_id,
            "responseTimeMs": self.response_time_ms,
        }


class ValidationPipeline:
    """
    Retrieves documentation and validates answers generated from it.

    Layers:
    1. Pattern detection against the request's own sources
    2. Semantic verification of extracted claims (when an embedding
       provider is configured)
    3. Sanitization by the highest severity found
    4. Audit of the outcome

    Provider failures degrade the result (no sources, unverified
    claims) and never reach the caller as exceptions.
    """

    def __init__(
        self,
        settings=None,
        embedding_provider=None,
        retriever=None,
        audit: Optional[HallucinationAudit] = None,
        semantic_verifier: Optional[SemanticVerifier] = None,
    ):
        self.settings = settings or get_settings()
        self.retriever = retriever
        self.audit = audit
        self.validator = RAGValidator(self.settings)
        self.sanitizer = ResponseSanitizer(self.settings)

        if semantic_verifier is None and embedding_provider is not None:
            semantic_verifier = SemanticVerifier(embedding_provider, self.settings)
        self.semantic_verifier = semantic_verifier

        if self.semantic_verifier is not None:
            logger.info("Semantic verification enabled")

    # ─────────────────────────────────────────────
    #  Retrieval
    # ─────────────────────────────────────────────

    async def retrieve(self, query: str, top_k: Optional[int] = None) -> RetrievalContext:
        """
        Retrieve documentation for a query and build its metadata.

        Fetches twice the requested hits, drops duplicate chunks, keeps
        top_k and filters out hits below the minimum score.
        """
        top_k = top_k or self.settings.rag.top_k
        results = await self._search(query, top_k * 2)

        seen = set()
        unique = []
        for result in results:
            chunk = result.chunk
            signature = ((chunk.content or "")[:50] + (chunk.title or "")) if chunk else result.id
            if signature in seen:
                continue
            seen.add(signature)
            unique.append(result)
        unique = unique[:top_k]

        min_score = self.settings.rag.min_score_threshold
        valid = [r for r in unique if r.score >= min_score]

        if not valid:
            return RetrievalContext(
                context=NO_DOCUMENTATION_CONTEXT,
                metadata=self.empty_metadata(len(unique)),
                raw_results=[],
            )

        metadata = self.validator.process_results(valid)
        logger.info(
            f"Retrieved {len(metadata.sources)} source(s) for query "
            f"(groundedness: {metadata.groundedness.value}, confidence: {metadata.confidence}%)"
        )

        return RetrievalContext(
            context=self.format_context(valid, metadata),
            metadata=metadata,
            raw_results=valid,
        )

    async def _search(self, query: str, limit: int) -> List[RetrievalResult]:
        if self.retriever is None:
            logger.warning("No retriever configured, treating query as ungrounded")
            return []

        timeout = self.settings.rag.retrieval_timeout_ms / 1000
        try:
            results = await asyncio.wait_for(self.retriever.search(query, limit), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Retrieval timed out after {timeout}s")
            return []
        except Exception as e:
            logger.warning(f"Retrieval failed: {e}")
            return []

        return sorted(results or [], key=lambda r: r.score, reverse=True)

    @staticmethod
    def empty_metadata(total_considered: int = 0) -> RAGMetadata:
        """Metadata for a query nothing could be retrieved for."""
        return RAGMetadata(
            sources=[],
            groundedness=GroundednessLevel.UNGROUNDED,
            avg_score=0,
            confidence=0,
            validation_result=ValidationResult(
                is_grounded=False,
                warnings=[WarningMessages.NO_SOURCES],
                detected_hallucinations=[],
                status=ValidationStatus.UNVERIFIABLE,
            ),
            total_sources_considered=total_considered,
        )

    @staticmethod
    def format_context(results: Sequence[RetrievalResult], metadata: RAGMetadata) -> str:
        """Render retrieved chunks as prompt context for the answering model."""
        parts = [
            "## RELEVANT DOCUMENTATION\n",
            f"> **Sources Found:** {len(metadata.sources)} | "
            f"**Confidence:** {metadata.confidence}% | "
            f"**Groundedness:** {metadata.groundedness.value.upper()}\n",
        ]

        for result in results:
            chunk = result.chunk
            if chunk is None:
                continue

            section = [
                f"### {chunk.title or 'Untitled'}",
                f"**Relevance Score:** {result.score * 100:.1f}%",
                f"**Source:** `{chunk.source_path}`",
                "",
                chunk.content,
                "",
            ]
            if chunk.endpoint:
                section.append(f"**Endpoint:** `{chunk.endpoint}`")
            if chunk.method:
                section.append(f"**Method:** {chunk.method}")
            if chunk.parameters:
                section.append(f"**Parameters:** {', '.join(chunk.parameter_names())}")
            if chunk.price is not None:
                section.append(f"**Price:** ${chunk.price}")
            section.append("\n---\n")
            parts.append("\n".join(section))

        parts.append(GROUNDING_RULES)
        return "\n".join(parts)

    # ─────────────────────────────────────────────
    #  Validation
    # ─────────────────────────────────────────────

    async def validate(
        self,
        answer: str,
        raw_results: Optional[Sequence[RetrievalResult]],
        query: str = "",
        metadata: Optional[RAGMetadata] = None,
        session_id: str = "unknown",
    ) -> PipelineResult:
        """
        Validate and sanitize a generated answer.

        Args:
            answer: Generated answer text
            raw_results: Hits the answer was generated from
            query: Original user query
            metadata: Retrieval metadata (rebuilt from raw_results when omitted)
            session_id: Caller session for the audit trail

        Returns:
            PipelineResult with the final content and everything found
        """
        start = time.perf_counter()
        raw_results = list(raw_results or [])
        metadata = metadata or (
            self.validator.process_results(raw_results) if raw_results else self.empty_metadata()
        )

        if not metadata.sources and self.settings.rag.fallback_on_no_sources:
            sanitization = self.sanitizer.generate_fallback(metadata)
            return self._finish(
                query, answer, sanitization, [], metadata, None, start, session_id,
            )

        pattern_result = self.validator.validate_response(answer, raw_results)
        semantic_report = await self._semantic_verify(answer, raw_results)

        hallucinations = self.combine_hallucinations(
            pattern_result.detected_hallucinations, semantic_report,
        )

        extra_warnings = []
        if semantic_report is not None and not semantic_report.passes_threshold:
            extra_warnings.append(semantic_report.summary)

        combined = self.validator.build_result(hallucinations, extra_warnings)
        final_metadata = self.validator.apply_validation(metadata, combined)

        if self.settings.rag.enable_response_sanitization:
            sanitization = self.sanitizer.sanitize(
                answer, final_metadata.validation_result, final_metadata, query,
            )
        else:
            sanitization = SanitizationResult(
                content=answer, action=SanitizationAction.PASSED,
            )

        if hallucinations:
            logger.warning(f"{len(hallucinations)} hallucination(s) detected")

        return self._finish(
            query, answer, sanitization, hallucinations, final_metadata,
            semantic_report, start, session_id,
        )

    async def _semantic_verify(
        self,
        answer: str,
        raw_results: Sequence[RetrievalResult],
    ) -> Optional[SemanticReport]:
        if self.semantic_verifier is None or not self.settings.rag.enable_semantic_verification:
            return None

        try:
            report = await self.semantic_verifier.verify_response(answer, raw_results)
        except Exception as e:
            logger.warning(f"Semantic verification error: {e}")
            return None

        logger.info(
            f"Semantic: {len(report.verified_claims)}/{report.total_claims} claims verified"
        )
        return report

    @staticmethod
    def combine_hallucinations(
        pattern_hallucinations: Sequence[Hallucination],
        semantic_report: Optional[SemanticReport],
    ) -> List[Hallucination]:
        """
        Fold confident semantic rejections into the pattern findings.

        An unverified claim whose confidence is above 0.5 becomes a
        hallucination of severity 1 - confidence. Claims that errored
        carry confidence 0 and are never reported.
        """
        combined = list(pattern_hallucinations)
        if semantic_report is None:
            return combined

        seen = {finding_key(h.type, h.detected) for h in combined}

        for verification in semantic_report.unverified_claims:
            if verification.confidence_score <= SEMANTIC_MIN_CONFIDENCE:
                continue

            claim = verification.claim
            hallucination_type = HALLUCINATION_TYPE_BY_CLAIM[claim.type]
            key = finding_key(hallucination_type, claim.value)
            if key in seen:
                continue
            seen.add(key)

            combined.append(Hallucination(
                type=hallucination_type,
                detected=claim.value,
                context=claim.context,
                severity=round(1 - verification.confidence_score, 2),
                source=DetectionSource.SEMANTIC_VERIFIER,
            ))

        return combined

    def _finish(
        self,
        query: str,
        answer: str,
        sanitization: SanitizationResult,
        hallucinations: List[Hallucination],
        metadata: RAGMetadata,
        semantic_report: Optional[SemanticReport],
        start: float,
        session_id: str,
    ) -> PipelineResult:
        response_time_ms = round((time.perf_counter() - start) * 1000)
        audit_id = self._audit(
            query, answer, sanitization, hallucinations, metadata, response_time_ms, session_id,
        )

        return PipelineResult(
            content=sanitization.content,
            was_modified=sanitization.was_modified,
            action=sanitization.action,
            hallucinations=hallucinations,
            metadata=metadata,
            sanitization=sanitization,
            semantic_report=semantic_report,
            audit_id=audit_id,
            response_time_ms=response_time_ms,
        )

    def _audit(
        self, query, answer, sanitization, hallucinations, metadata, response_time_ms, session_id,
    ) -> Optional[str]:
        if self.audit is None:
            return None

        try:
            return self.audit.record(
                query=query,
                response=answer,
                hallucinations=hallucinations,
                action=sanitization.action,
                sources=metadata.sources[:3],
                confidence=metadata.confidence / 100,
                response_time_ms=response_time_ms,
                session_id=session_id,
            )
        except Exception as e:
            logger.error(f"Audit record failed: {e}")
            return None

    async def full_validation(
        self,
        query: str,
        answer: str,
        top_k: Optional[int] = None,
        session_id: str = "unknown",
    ) -> PipelineResult:
        """Retrieve context for the query, then validate the answer against it."""
        retrieval = await self.retrieve(query, top_k)
        return await self.validate(
            answer,
            retrieval.raw_results,
            query=query,
            metadata=retrieval.metadata,
            session_id=session_id,
        )
