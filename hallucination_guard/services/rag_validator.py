"""
Services - RAG Validator

Facade combining source tracking, groundedness scoring and pattern-based
hallucination detection into retrieval metadata and validation results.
"""

import logging
from typing import List, Optional, Sequence

from hallucination_guard.config import get_settings
from hallucination_guard.schemas import (
    GroundednessLevel,
    Hallucination,
    RAGMetadata,
    RetrievalResult,
    Source,
    ValidationResult,
    ValidationStatus,
)
from hallucination_guard.services.constants import HIGH_SEVERITY, WarningMessages
from hallucination_guard.services.groundedness import GroundednessCalculator
from hallucination_guard.services.hallucination_detector import HallucinationDetector
from hallucination_guard.services.source_tracker import SourceTracker

logger = logging.getLogger(__name__)


class RAGValidator:
    """Builds retrieval metadata and validates generated answers."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self.groundedness_calculator = GroundednessCalculator(self.settings)

    def process_results(self, raw_results: Optional[Sequence[RetrievalResult]]) -> RAGMetadata:
        """
        Process raw retriever hits into retrieval metadata.

        Args:
            raw_results: Scored hits from the retriever (may be empty)

        Returns:
            RAGMetadata with sources, groundedness and baseline warnings
        """
        tracker = SourceTracker(raw_results, self.settings)
        sources = tracker.get_sources()
        score = self.groundedness_calculator.calculate(sources)

        warnings = self._generate_warnings(sources, score.level)

        return RAGMetadata(
            sources=sources,
            groundedness=score.level,
            avg_score=round(score.avg_score * 100),
            confidence=score.confidence,
            validation_result=ValidationResult(
                is_grounded=score.level != GroundednessLevel.UNGROUNDED,
                warnings=warnings,
                detected_hallucinations=[],
                status=self._determine_status(score.level, []),
            ),
            total_sources_considered=tracker.get_total_considered(),
        )

    def validate_response(
        self,
        response: str,
        raw_results: Optional[Sequence[RetrievalResult]],
    ) -> ValidationResult:
        """
        Validate a generated answer against the sources it was built from.

        Grounded means no hallucination reaches high severity.
        """
        if not self.settings.rag.enable_post_generation_validation:
            return ValidationResult(
                is_grounded=True,
                warnings=[],
                detected_hallucinations=[],
                status=ValidationStatus.VALID,
            )

        detector = HallucinationDetector(raw_results)
        hallucinations = detector.detect(response or "")

        if hallucinations:
            logger.info(
                f"Pattern detector flagged {len(hallucinations)} fragment(s): "
                f"{[h.type.value for h in hallucinations]}"
            )

        return self.build_result(hallucinations)

    def build_result(
        self,
        hallucinations: Sequence[Hallucination],
        extra_warnings: Sequence[str] = (),
    ) -> ValidationResult:
        """Validation result for a set of detected hallucinations."""
        warnings = []
        if hallucinations:
            warnings.append(WarningMessages.POTENTIAL_HALLUCINATION)
            warnings.append(
                f"Detected {len(hallucinations)} potential fabrication(s) in response."
            )
        warnings.extend(extra_warnings)

        is_grounded = not any(h.severity >= HIGH_SEVERITY for h in hallucinations)
        level = GroundednessLevel.MEDIUM if is_grounded else GroundednessLevel.LOW

        return ValidationResult(
            is_grounded=is_grounded,
            warnings=warnings,
            detected_hallucinations=list(hallucinations),
            status=self._determine_status(level, hallucinations),
        )

    def full_validation(
        self,
        raw_results: Optional[Sequence[RetrievalResult]],
        response: str,
    ) -> RAGMetadata:
        """Process results, validate the answer and downgrade groundedness."""
        metadata = self.process_results(raw_results)
        return self.apply_validation(metadata, self.validate_response(response, raw_results))

    def apply_validation(
        self,
        metadata: RAGMetadata,
        response_validation: ValidationResult,
    ) -> RAGMetadata:
        """Merge an answer's validation into retrieval metadata."""
        hallucinations = response_validation.detected_hallucinations

        groundedness = metadata.groundedness
        if hallucinations:
            groundedness = self.adjust_groundedness(groundedness, hallucinations)

        return metadata.model_copy(update={
            "groundedness": groundedness,
            "validation_result": ValidationResult(
                is_grounded=metadata.validation_result.is_grounded
                and response_validation.is_grounded,
                warnings=metadata.validation_result.warnings + response_validation.warnings,
                detected_hallucinations=hallucinations,
                status=response_validation.status,
            ),
        })

    @staticmethod
    def adjust_groundedness(
        level: GroundednessLevel,
        hallucinations: Sequence[Hallucination],
    ) -> GroundednessLevel:
        """Downgrade a groundedness level by the total severity found."""
        severity_sum = sum(h.severity for h in hallucinations)

        if severity_sum >= 1.5:
            return GroundednessLevel.UNGROUNDED

        if severity_sum >= 0.8:
            return GroundednessLevel.LOW

        if level == GroundednessLevel.HIGH and severity_sum > 0:
            return GroundednessLevel.MEDIUM

        return level

    def _generate_warnings(self, sources: List[Source], level: GroundednessLevel) -> List[str]:
        warnings = []

        if not sources:
            warnings.append(WarningMessages.NO_SOURCES)
        elif len(sources) == 1:
            warnings.append(WarningMessages.SINGLE_SOURCE)

        if level in (GroundednessLevel.LOW, GroundednessLevel.UNGROUNDED):
            warnings.append(WarningMessages.LOW_CONFIDENCE)

        return warnings

    def _determine_status(
        self,
        level: GroundednessLevel,
        hallucinations: Sequence[Hallucination],
    ) -> ValidationStatus:
        if level == GroundednessLevel.UNGROUNDED:
            return ValidationStatus.INVALID

        if hallucinations:
            if any(h.severity >= HIGH_SEVERITY for h in hallucinations):
                if self.settings.rag.strict_mode:
                    return ValidationStatus.INVALID
            return ValidationStatus.WARNING

        if level == GroundednessLevel.LOW:
            return ValidationStatus.WARNING

        return ValidationStatus.VALID
