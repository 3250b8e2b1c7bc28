"""
Services - Response Sanitizer

Policy engine that passes, warns, redacts or blocks a generated answer
depending on the severity of what validation found in it.
"""

import logging
import re
import threading
from typing import List, Optional, Sequence, Tuple

from hallucination_guard.config import get_settings
from hallucination_guard.schemas import (
    Hallucination,
    HallucinationType,
    RAGMetadata,
    SanitizationAction,
    SanitizationResult,
    Source,
    ValidationResult,
)

logger = logging.getLogger(__name__)


INLINE_WARNING_MARKER = "[⚠️ Unverified]"
CITATION_HEADER = "📚 **Sources:**"
FOOTER_SEPARATOR = "\n\n---\n\n"

REPLACEMENTS = {
    HallucinationType.FABRICATED_ENDPOINT: "[endpoint information not available in documentation]",
    HallucinationType.FABRICATED_PRICE: "[pricing information not available - please check official pricing]",
    HallucinationType.FABRICATED_PARAMETER: "[parameter details not verified]",
    HallucinationType.UNSUPPORTED_COUNTRY: "[country availability not confirmed]",
    HallucinationType.INCORRECT_METHOD: "[HTTP method not verified]",
    HallucinationType.FABRICATED_FEATURE: "[feature not confirmed in documentation]",
    HallucinationType.CONFLICTING_INFO: "[information requires verification]",
}


class ClaimRedactor:
    """Replaces fabricated fragments with safe placeholders."""

    def redact_claim(self, text: str, hallucination: Hallucination) -> Tuple[str, Optional[str]]:
        """
        Replace every occurrence of a flagged fragment (case-insensitive).

        Returns:
            (new text, redaction note or None when the fragment is absent)
        """
        if not hallucination.detected:
            return text, None

        pattern = re.compile(re.escape(hallucination.detected), re.IGNORECASE)
        if not pattern.search(text):
            return text, None

        replacement = self.replacement_for(hallucination)
        redacted = pattern.sub(lambda _: replacement, text)
        note = f'Redacted {hallucination.type.value}: "{hallucination.detected}" → "{replacement}"'
        return redacted, note

    def redact_multiple(
        self,
        text: str,
        hallucinations: Sequence[Hallucination],
    ) -> Tuple[str, List[str]]:
        """Redact all fragments, highest severity first."""
        redactions = []
        for hallucination in sorted(hallucinations, key=lambda h: h.severity, reverse=True):
            text, note = self.redact_claim(text, hallucination)
            if note:
                redactions.append(note)
        return text, redactions

    @staticmethod
    def replacement_for(hallucination: Hallucination) -> str:
        return REPLACEMENTS.get(
            hallucination.type,
            f"{INLINE_WARNING_MARKER} {hallucination.detected}",
        )


class WarningInjector:
    """Inline markers and the verification footer."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    def add_inline_warnings(self, text: str, hallucinations: Sequence[Hallucination]) -> str:
        """Prefix the first occurrence of each flagged fragment with a marker."""
        if not self.settings.sanitizer.enable_inline_warnings:
            return text

        for hallucination in hallucinations:
            if not hallucination.detected:
                continue
            pattern = re.compile(re.escape(hallucination.detected), re.IGNORECASE)
            text = pattern.sub(
                lambda m: f"{INLINE_WARNING_MARKER} {m.group(0)}", text, count=1
            )

        return text

    def add_warning_footer(self, text: str, validation: ValidationResult) -> str:
        if not self.settings.sanitizer.enable_footer_warning:
            return text

        if not validation.warnings and not validation.detected_hallucinations:
            return text

        return f"{text}{FOOTER_SEPARATOR}{self._build_footer(validation)}"

    @staticmethod
    def _build_footer(validation: ValidationResult) -> str:
        parts = []

        count = len(validation.detected_hallucinations)
        if count:
            parts.append(
                f"⚠️ **Verification Notice:** {count} claim(s) in this response "
                f"could not be verified against official documentation."
            )

        if validation.warnings:
            notes = "\n".join(f"- {w}" for w in validation.warnings)
            parts.append(f"**Notes:**\n{notes}")

        parts.append("*Please verify critical technical details before implementation.*")
        return "\n\n".join(parts)


class SafeFallbackGenerator:
    """Builds the message returned in place of a blocked answer."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    def generate_full_fallback(self, sources: Optional[Sequence[Source]] = None) -> str:
        message = (
            "I apologize, but I cannot provide a reliable answer based on the "
            "available documentation.\n\n"
            "**What you can do:**\n"
            f"- Check the official documentation at {self.settings.rag.docs_base_url}\n"
            "- Contact support for specific technical questions\n"
            "- Try rephrasing your question with more specific details\n\n"
            "This helps ensure you receive accurate information."
        )

        limit = self.settings.sanitizer.max_fallback_sources
        titles = [s.title or s.source_path for s in (sources or [])][:limit]
        if titles:
            related = "\n".join(f"- {t}" for t in titles)
            message += f"\n\n**Related documentation that may help:**\n{related}"

        return message


class SourceCitationInjector:
    """Appends a numbered source list to an answer."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()

    def add_sources_citation(self, text: str, sources: Optional[Sequence[Source]]) -> str:
        config = self.settings.sanitizer
        if not config.enable_source_citation or not sources:
            return text

        # Already cited, e.g. content sanitized twice
        if CITATION_HEADER in text:
            return text

        top = [s for s in sources if s.score >= config.min_citation_score][:config.max_citations]
        if not top:
            return text

        return f"{text}\n\n{self._build_citation_block(top)}"

    @staticmethod
    def _build_citation_block(sources: Sequence[Source]) -> str:
        lines = [
            f"{i}. **{s.title or 'Documentation'}** - `{s.source_path}` "
            f"({round(s.score * 100)}% relevance)"
            for i, s in enumerate(sources, start=1)
        ]
        return CITATION_HEADER + "\n" + "\n".join(lines)


class ResponseSanitizer:
    """
    Applies the action ladder to a generated answer.

    The action is chosen from the highest hallucination severity:
    at or above the block threshold the answer is replaced by a safe
    fallback, at or above the redact threshold flagged fragments are
    replaced by placeholders, at or above the warn threshold they are
    marked inline, and below that the answer passes with citations.
    """

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self.redactor = ClaimRedactor()
        self.warning_injector = WarningInjector(self.settings)
        self.fallback_generator = SafeFallbackGenerator(self.settings)
        self.citation_injector = SourceCitationInjector(self.settings)

        self._stats_lock = threading.Lock()
        self._stats = self._empty_stats()

    def sanitize(
        self,
        content: str,
        validation_result: Optional[ValidationResult],
        metadata: Optional[RAGMetadata] = None,
        query: str = "",
    ) -> SanitizationResult:
        """
        Sanitize an answer according to its validation result.

        Args:
            content: Generated answer
            validation_result: Result of validating the answer
            metadata: Retrieval metadata (sources are used for citations)
            query: Original user query

        Returns:
            SanitizationResult; invalid input passes through unchanged
        """
        if not content or validation_result is None:
            self._count(SanitizationAction.PASSED)
            return SanitizationResult(
                content=content or "",
                action=SanitizationAction.PASSED,
                metadata={"reason": "invalid input"},
            )

        metadata = metadata or RAGMetadata()
        max_severity = validation_result.max_severity
        action = self.determine_action(max_severity)

        if action == SanitizationAction.BLOCKED:
            result = self._execute_block(metadata)
        elif action == SanitizationAction.REDACTED:
            result = self._execute_redact(content, validation_result, metadata)
        elif action == SanitizationAction.WARNED:
            result = self._execute_warn(content, validation_result, metadata)
        else:
            result = self._execute_pass(content, metadata)

        self._count(action)

        if action != SanitizationAction.PASSED:
            logger.info(
                f"Response {action.value} (max severity {max_severity:.2f}, "
                f"{len(validation_result.detected_hallucinations)} hallucination(s))"
                + (f" for query: {query[:50]}..." if query else "")
            )

        return result

    def determine_action(self, max_severity: float) -> SanitizationAction:
        """Action for the highest hallucination severity; groundedness never overrides it."""
        config = self.settings.sanitizer

        if max_severity >= config.block_threshold:
            return SanitizationAction.BLOCKED
        if max_severity >= config.redact_threshold:
            return SanitizationAction.REDACTED
        if max_severity >= config.warn_threshold:
            return SanitizationAction.WARNED
        return SanitizationAction.PASSED

    def generate_fallback(self, metadata: Optional[RAGMetadata] = None) -> SanitizationResult:
        """Blocked result without any generated content."""
        self._count(SanitizationAction.BLOCKED)
        return self._execute_block(metadata or RAGMetadata(), reason="No documentation sources")

    def _execute_block(self, metadata: RAGMetadata, reason: Optional[str] = None) -> SanitizationResult:
        return SanitizationResult(
            content=self.fallback_generator.generate_full_fallback(metadata.sources),
            action=SanitizationAction.BLOCKED,
            modifications=["Response blocked due to high-severity unverified claims"],
            was_modified=True,
            metadata={
                "reason": reason or "High-severity hallucinations detected",
                "original_blocked": True,
            },
        )

    def _execute_redact(
        self,
        content: str,
        validation: ValidationResult,
        metadata: RAGMetadata,
    ) -> SanitizationResult:
        hallucinations = validation.detected_hallucinations
        redacted, redactions = self.redactor.redact_multiple(content, hallucinations)

        redacted = self.warning_injector.add_warning_footer(redacted, validation)
        redacted = self.citation_injector.add_sources_citation(redacted, metadata.sources)

        return SanitizationResult(
            content=redacted,
            action=SanitizationAction.REDACTED,
            modifications=redactions,
            was_modified=True,
            metadata={
                "redacted_count": len(redactions),
                "hallucinations": [
                    {"type": h.type.value, "detected": h.detected} for h in hallucinations
                ],
            },
        )

    def _execute_warn(
        self,
        content: str,
        validation: ValidationResult,
        metadata: RAGMetadata,
    ) -> SanitizationResult:
        hallucinations = validation.detected_hallucinations

        warned = self.warning_injector.add_inline_warnings(content, hallucinations)
        warned = self.warning_injector.add_warning_footer(warned, validation)
        warned = self.citation_injector.add_sources_citation(warned, metadata.sources)

        return SanitizationResult(
            content=warned,
            action=SanitizationAction.WARNED,
            modifications=[f"Added warnings for {len(hallucinations)} unverified claims"],
            was_modified=True,
            metadata={"warnings_added": len(hallucinations)},
        )

    def _execute_pass(self, content: str, metadata: RAGMetadata) -> SanitizationResult:
        cited = self.citation_injector.add_sources_citation(content, metadata.sources)

        return SanitizationResult(
            content=cited,
            action=SanitizationAction.PASSED,
            modifications=[],
            was_modified=cited != content,
            metadata={"confidence": metadata.confidence},
        )

    def _count(self, action: SanitizationAction) -> None:
        with self._stats_lock:
            self._stats["total_sanitizations"] += 1
            self._stats[action.value] += 1

    @staticmethod
    def _empty_stats() -> dict:
        return {
            "total_sanitizations": 0,
            "passed": 0,
            "warned": 0,
            "redacted": 0,
            "blocked": 0,
        }

    def get_stats(self) -> dict:
        """Per-action counts plus pass, block and modification rates (percent)."""
        with self._stats_lock:
            stats = dict(self._stats)

        total = stats["total_sanitizations"]
        modified = stats["warned"] + stats["redacted"] + stats["blocked"]
        stats["pass_rate"] = round(stats["passed"] / total * 100) if total else 0
        stats["block_rate"] = round(stats["blocked"] / total * 100) if total else 0
        stats["modification_rate"] = round(modified / total * 100) if total else 0
        return stats

    def reset_stats(self) -> None:
        with self._stats_lock:
            self._stats = self._empty_stats()
