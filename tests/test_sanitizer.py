"""
Unit Tests for Response Sanitization
"""

import pytest

from hallucination_guard.schemas import (
    GroundednessLevel,
    Hallucination,
    HallucinationType,
    RAGMetadata,
    SanitizationAction,
    Source,
    ValidationResult,
)
from hallucination_guard.services import ResponseSanitizer
from hallucination_guard.services.sanitizer import (
    CITATION_HEADER,
    INLINE_WARNING_MARKER,
    ClaimRedactor,
    SafeFallbackGenerator,
    SourceCitationInjector,
)


def hallucination(detected, severity, type_=HallucinationType.FABRICATED_PRICE):
    return Hallucination(type=type_, detected=detected, severity=severity)


def validation(*hallucinations, warnings=None):
    return ValidationResult(
        is_grounded=all(h.severity < 0.7 for h in hallucinations),
        warnings=warnings or [],
        detected_hallucinations=list(hallucinations),
    )


@pytest.fixture
def metadata():
    return RAGMetadata(
        sources=[
            Source(title="Pricing", source_path="docs/pricing.md", score=0.9),
            Source(title="Overview", source_path="docs/overview.md", score=0.4),
        ],
        groundedness=GroundednessLevel.HIGH,
        confidence=85,
    )


class TestActionLadder:
    """Tests for ResponseSanitizer.determine_action."""

    @pytest.mark.parametrize("severity,expected", [
        (1.0, SanitizationAction.BLOCKED),
        (0.8, SanitizationAction.BLOCKED),
        (0.79, SanitizationAction.REDACTED),
        (0.5, SanitizationAction.REDACTED),
        (0.49, SanitizationAction.WARNED),
        (0.3, SanitizationAction.WARNED),
        (0.29, SanitizationAction.PASSED),
        (0.0, SanitizationAction.PASSED),
    ])
    def test_thresholds(self, settings, severity, expected):
        assert ResponseSanitizer(settings).determine_action(severity) == expected

    @pytest.mark.parametrize("level", list(GroundednessLevel))
    def test_blocked_regardless_of_groundedness(self, settings, level):
        result = ResponseSanitizer(settings).sanitize(
            "The cost is $999.99",
            validation(hallucination("$999.99", 0.9)),
            RAGMetadata(groundedness=level),
        )

        assert result.action == SanitizationAction.BLOCKED

    @pytest.mark.parametrize("level", list(GroundednessLevel))
    def test_groundedness_does_not_escalate(self, settings, level):
        result = ResponseSanitizer(settings).sanitize(
            "Plain answer.", validation(), RAGMetadata(groundedness=level)
        )

        assert result.action == SanitizationAction.PASSED


class TestResponseSanitizer:
    """Tests for ResponseSanitizer.sanitize."""

    def test_block_replaces_content(self, settings, metadata):
        result = ResponseSanitizer(settings).sanitize(
            "Use endpoint /v99/fake-endpoint",
            validation(hallucination("/v99/fake-endpoint", 1.0, HallucinationType.FABRICATED_ENDPOINT)),
            metadata,
        )

        assert result.action == SanitizationAction.BLOCKED
        assert result.was_modified is True
        assert "/v99/fake-endpoint" not in result.content
        assert result.content.startswith("I apologize, but I cannot provide a reliable answer")
        assert "https://docs.example.com" in result.content
        assert "- Pricing" in result.content
        assert result.metadata["original_blocked"] is True

    def test_redact_replaces_fragment(self, settings, metadata):
        content = "Pricing starts at $12.50 per month."

        result = ResponseSanitizer(settings).sanitize(
            content, validation(hallucination("$12.50", 0.6)), metadata
        )

        assert result.action == SanitizationAction.REDACTED
        assert "$12.50" not in result.content
        assert "[pricing information not available - please check official pricing]" in result.content
        assert "**Verification Notice:** 1 claim(s)" in result.content
        assert result.metadata["redacted_count"] == 1
        assert len(result.modifications) == 1

    def test_warn_marks_first_occurrence(self, settings, metadata):
        content = "It costs $5 today and $5 tomorrow."

        result = ResponseSanitizer(settings).sanitize(
            content, validation(hallucination("$5", 0.4)), metadata
        )

        assert result.action == SanitizationAction.WARNED
        assert result.content.count(INLINE_WARNING_MARKER) == 1
        assert result.content.startswith(f"It costs {INLINE_WARNING_MARKER} $5 today and $5 tomorrow.")
        assert "Please verify critical technical details" in result.content

    def test_pass_without_sources_is_unchanged(self, settings):
        content = "Plain answer."

        result = ResponseSanitizer(settings).sanitize(content, validation(), RAGMetadata())

        assert result.action == SanitizationAction.PASSED
        assert result.content == content
        assert result.was_modified is False

    def test_pass_adds_citations(self, settings, metadata):
        result = ResponseSanitizer(settings).sanitize("Plain answer.", validation(), metadata)

        assert result.action == SanitizationAction.PASSED
        assert result.was_modified is True
        assert CITATION_HEADER in result.content
        assert "1. **Pricing** - `docs/pricing.md` (90% relevance)" in result.content
        assert "Overview" not in result.content

    def test_citations_are_idempotent(self, settings, metadata):
        sanitizer = ResponseSanitizer(settings)

        first = sanitizer.sanitize("Plain answer.", validation(), metadata)
        second = sanitizer.sanitize(first.content, validation(), metadata)

        assert second.content == first.content
        assert second.content.count(CITATION_HEADER) == 1

    @pytest.mark.parametrize("content,result_validation", [
        ("", ValidationResult()),
        ("Some answer", None),
    ])
    def test_invalid_input_passes(self, settings, content, result_validation):
        result = ResponseSanitizer(settings).sanitize(content, result_validation)

        assert result.action == SanitizationAction.PASSED
        assert result.content == content
        assert result.was_modified is False

    def test_missing_severity_never_escalates(self, settings):
        record = Hallucination.model_validate(
            {"type": "fabricated_price", "detected": "$5", "severity": None}
        )

        result = ResponseSanitizer(settings).sanitize(
            "It costs $5.", validation(record), RAGMetadata()
        )

        assert result.action == SanitizationAction.PASSED

    def test_generate_fallback(self, settings, metadata):
        result = ResponseSanitizer(settings).generate_fallback(metadata)

        assert result.action == SanitizationAction.BLOCKED
        assert result.metadata["reason"] == "No documentation sources"

    def test_stats(self, settings, metadata):
        sanitizer = ResponseSanitizer(settings)

        sanitizer.sanitize("a", validation(), metadata)
        sanitizer.sanitize("b $5", validation(hallucination("$5", 0.4)), metadata)
        sanitizer.sanitize("c $5", validation(hallucination("$5", 0.9)), metadata)
        sanitizer.sanitize("d", validation(), metadata)
        stats = sanitizer.get_stats()

        assert stats["total_sanitizations"] == 4
        assert stats["passed"] == 2
        assert stats["warned"] == 1
        assert stats["blocked"] == 1
        assert stats["pass_rate"] == 50
        assert stats["block_rate"] == 25
        assert stats["modification_rate"] == 50

        sanitizer.reset_stats()
        assert sanitizer.get_stats()["total_sanitizations"] == 0


class TestClaimRedactor:
    """Tests for ClaimRedactor."""

    def test_redacts_all_occurrences_case_insensitive(self):
        text, note = ClaimRedactor().redact_claim(
            "Peru is supported. PERU has coverage.",
            hallucination("peru", 0.6, HallucinationType.UNSUPPORTED_COUNTRY),
        )

        assert text == (
            "[country availability not confirmed] is supported. "
            "[country availability not confirmed] has coverage."
        )
        assert note.startswith("Redacted unsupported_country")

    def test_absent_fragment(self):
        text, note = ClaimRedactor().redact_claim("Nothing here.", hallucination("$5", 0.6))

        assert text == "Nothing here."
        assert note is None

    def test_highest_severity_first(self):
        redactor = ClaimRedactor()

        _, notes = redactor.redact_multiple(
            "$5 at /v2/x",
            [
                hallucination("$5", 0.6),
                hallucination("/v2/x", 0.7, HallucinationType.FABRICATED_ENDPOINT),
            ],
        )

        assert notes[0].startswith("Redacted fabricated_endpoint")


class TestFallbackAndCitations:
    """Tests for the fallback and citation helpers."""

    def test_fallback_lists_at_most_three_sources(self, settings):
        sources = [Source(title=f"Doc {i}", score=0.9) for i in range(5)]

        message = SafeFallbackGenerator(settings).generate_full_fallback(sources)

        assert "**Related documentation that may help:**" in message
        assert "- Doc 2" in message
        assert "- Doc 3" not in message

    def test_fallback_without_sources(self, settings):
        message = SafeFallbackGenerator(settings).generate_full_fallback([])

        assert "Related documentation" not in message

    def test_citations_capped(self, settings):
        sources = [Source(title=f"Doc {i}", score=0.9) for i in range(7)]

        text = SourceCitationInjector(settings).add_sources_citation("Answer.", sources)

        assert "5. **Doc 4**" in text
        assert "Doc 5" not in text

    def test_citations_disabled(self, settings):
        settings.sanitizer.enable_source_citation = False
        sources = [Source(title="Doc", score=0.9)]

        assert SourceCitationInjector(settings).add_sources_citation("Answer.", sources) == "Answer."
