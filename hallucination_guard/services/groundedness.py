"""
Services - Groundedness Calculator

Turns a list of scored sources into a groundedness level and confidence.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from hallucination_guard.config import get_settings
from hallucination_guard.schemas import GroundednessLevel, Source


@dataclass
class GroundednessScore:
    """Groundedness of a source set."""
    level: GroundednessLevel
    avg_score: float  # 0.0 - 1.0, after adjustments
    confidence: int  # 0 - 100


class GroundednessCalculator:
    """
    Scores how well a set of sources can support an answer.

    Uses a quadratic-weighted average so that a couple of highly relevant
    passages outweigh a long tail of weak ones, then penalises answers
    that would rest on a single source.
    """

    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    def calculate(self, sources: Optional[Sequence[Source]]) -> GroundednessScore:
        """
        Calculate groundedness for the given sources.

        Args:
            sources: Deduplicated, scored sources (may be empty or None)

        Returns:
            GroundednessScore with level, adjusted average and confidence
        """
        if not sources:
            return GroundednessScore(
                level=GroundednessLevel.UNGROUNDED,
                avg_score=0.0,
                confidence=0,
            )

        avg_score = self._weighted_average(sources)
        adjusted = self._apply_source_count_adjustment(avg_score, len(sources))
        level = self._determine_level(adjusted, len(sources))

        return GroundednessScore(
            level=level,
            avg_score=adjusted,
            confidence=round(adjusted * 100),
        )

    def _weighted_average(self, sources: Sequence[Source]) -> float:
        """Average where each score is weighted by its own square."""
        weights = [s.score * s.score for s in sources]
        total_weight = sum(weights)

        if total_weight == 0:
            return 0.0

        weighted_sum = sum(s.score * w for s, w in zip(sources, weights))
        return weighted_sum / total_weight

    def _apply_source_count_adjustment(self, score: float, source_count: int) -> float:
        adjusted = score
        if source_count < self.settings.rag.min_sources_for_high:
            adjusted += self.settings.rag.low_source_penalty

        return max(0.0, min(1.0, adjusted))

    def _determine_level(self, score: float, source_count: int) -> GroundednessLevel:
        rag = self.settings.rag

        # High confidence needs corroboration from several sources
        if score >= rag.high_threshold and source_count >= rag.min_sources_for_high:
            return GroundednessLevel.HIGH

        if score >= rag.medium_threshold:
            return GroundednessLevel.MEDIUM

        if score >= rag.low_threshold:
            return GroundednessLevel.LOW

        return GroundednessLevel.UNGROUNDED
