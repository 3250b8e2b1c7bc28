"""
Unit Tests for Retrieval Validation
"""

import pytest

from conftest import make_result
from hallucination_guard.schemas import (
    GroundednessLevel,
    Hallucination,
    HallucinationType,
    Source,
    ValidationStatus,
)
from hallucination_guard.services import (
    GroundednessCalculator,
    HallucinationDetector,
    RAGValidator,
    SourceTracker,
)
from hallucination_guard.services.constants import WarningMessages
from hallucination_guard.services.hallucination_detector import (
    build_knowledge_base,
    normalize_endpoint,
)


class TestGroundednessCalculator:
    """Tests for GroundednessCalculator."""

    def test_empty_sources_are_ungrounded(self, settings):
        """No sources means ungrounded with zero confidence."""
        score = GroundednessCalculator(settings).calculate([])

        assert score.level == GroundednessLevel.UNGROUNDED
        assert score.confidence == 0

    def test_none_sources_are_ungrounded(self, settings):
        score = GroundednessCalculator(settings).calculate(None)

        assert score.level == GroundednessLevel.UNGROUNDED
        assert score.confidence == 0

    def test_two_strong_sources_are_high(self, settings):
        """Two strong sources reach high groundedness."""
        sources = [Source(title="a", score=0.90), Source(title="b", score=0.85)]

        score = GroundednessCalculator(settings).calculate(sources)

        assert score.level == GroundednessLevel.HIGH
        assert score.confidence == 88

    def test_single_source_is_penalized(self, settings):
        """A single source never reaches high groundedness."""
        score = GroundednessCalculator(settings).calculate([Source(score=0.90)])

        assert score.level != GroundednessLevel.HIGH
        assert score.level == GroundednessLevel.MEDIUM
        assert score.confidence == 80

    def test_weak_sources_levels(self, settings):
        calculator = GroundednessCalculator(settings)

        low = calculator.calculate([Source(title="a", score=0.2), Source(title="b", score=0.2)])
        none = calculator.calculate([Source(title="a", score=0.1), Source(title="b", score=0.1)])

        assert low.level == GroundednessLevel.LOW
        assert none.level == GroundednessLevel.UNGROUNDED

    def test_weighting_favours_strong_sources(self, settings):
        """Quadratic weighting pulls the average toward the best score."""
        sources = [Source(title="a", score=0.9), Source(title="b", score=0.3)]

        score = GroundednessCalculator(settings).calculate(sources)

        assert score.avg_score > 0.6


class TestSourceTracker:
    """Tests for SourceTracker."""

    def test_filters_below_threshold(self, settings):
        results = [
            make_result(0.9, title="Kept", source_path="docs/a.md"),
            make_result(0.1, title="Dropped", source_path="docs/b.md"),
        ]

        tracker = SourceTracker(results, settings)

        assert [s.title for s in tracker.get_sources()] == ["Kept"]
        assert tracker.get_total_considered() == 2
        assert tracker.has_sufficient_sources() is True

    def test_nothing_above_threshold(self, settings):
        tracker = SourceTracker([make_result(0.1)], settings)

        assert tracker.get_sources() == []
        assert tracker.has_sufficient_sources() is False

    def test_dedupes_by_url_keeping_best_score(self, settings):
        results = [
            make_result(0.6, title="Guide", source_path="docs/guide.md"),
            make_result(0.8, title="Guide", source_path="docs/guide.md"),
        ]

        sources = SourceTracker(results, settings).get_sources()

        assert len(sources) == 1
        assert sources[0].score == 0.8

    def test_sorted_descending(self, settings):
        results = [
            make_result(0.5, title="B", source_path="docs/b.md"),
            make_result(0.9, title="A", source_path="docs/a.md"),
        ]

        sources = SourceTracker(results, settings).get_sources()

        assert [s.score for s in sources] == [0.9, 0.5]

    def test_builds_url_with_anchor(self, settings):
        results = [
            make_result(
                0.9,
                title="undefined - Colombia API - Eligibility",
                source_path="docs/api/colombia.md",
            )
        ]

        source = SourceTracker(results, settings).get_sources()[0]

        assert source.title == "Colombia API - Eligibility"
        assert source.url == "https://docs.example.com/api/colombia#eligibility"

    def test_generic_section_has_no_anchor(self, settings):
        results = [make_result(0.9, title="Users - Parameters", source_path="docs/users.md")]

        source = SourceTracker(results, settings).get_sources()[0]

        assert source.url == "https://docs.example.com/users"

    def test_intro_title_falls_back_to_filename(self, settings):
        results = [make_result(0.9, title="Intro", source_path="docs/getting-started.md")]

        source = SourceTracker(results, settings).get_sources()[0]

        assert source.title == "Getting Started"


class TestHallucinationDetector:
    """Tests for HallucinationDetector."""

    def test_fabricated_endpoint(self):
        """An endpoint absent from the sources is flagged with full severity."""
        results = [make_result(0.9, endpoint="/v2/colombian-citizens")]

        found = HallucinationDetector(results).detect("Use endpoint /v99/fake-endpoint")

        assert len(found) == 1
        assert found[0].type == HallucinationType.FABRICATED_ENDPOINT
        assert found[0].severity == 1.0
        assert found[0].detected == "/v99/fake-endpoint"

    def test_known_endpoint_passes(self):
        results = [make_result(0.9, endpoint="/v2/colombian-citizens")]

        found = HallucinationDetector(results).detect(
            "Call the endpoint /v2/colombian-citizens with a document number."
        )

        assert found == []

    def test_endpoint_with_host_and_params_matches_known(self):
        results = [make_result(0.9, endpoint="/v2/users/{id}")]

        found = HallucinationDetector(results).detect(
            "Send a request to https://api.example.com/v2/users/{userId}"
        )

        assert found == []

    def test_fabricated_price(self):
        """A price absent from the sources is flagged."""
        results = [make_result(0.9, price=0.25)]

        found = HallucinationDetector(results).detect("The cost is $999.99")

        assert len(found) == 1
        assert found[0].type == HallucinationType.FABRICATED_PRICE
        assert found[0].severity == 0.8
        assert found[0].detected == "$999.99"

    def test_known_price_passes(self):
        results = [make_result(0.9, content="Each query costs $0.25.")]

        assert HallucinationDetector(results).detect("The price is $0.25") == []

    @pytest.mark.parametrize("answer", [
        "The rate is 100 requests per minute.",
        "Requests are accepted at a rate of 5 per second.",
    ])
    def test_rate_limits_are_not_prices(self, answer):
        results = [make_result(0.9, price=0.25)]

        assert HallucinationDetector(results).detect(answer) == []

    def test_price_with_currency_unit(self):
        """A keyword price without a dollar sign needs a currency unit."""
        results = [make_result(0.9, price=0.25)]

        found = HallucinationDetector(results).detect("The fee is 2500 COP per lookup.")

        assert [h.detected for h in found] == ["2500"]
        assert found[0].type == HallucinationType.FABRICATED_PRICE

    def test_no_technical_content(self):
        """Plain prose yields no hallucinations."""
        results = [make_result(0.9, endpoint="/v2/users", price=0.25)]

        found = HallucinationDetector(results).detect(
            "Hello, this service validates identity documents quickly."
        )

        assert found == []

    def test_unsupported_country(self):
        results = [make_result(0.9, content="Available in Colombia and Mexico.")]

        found = HallucinationDetector(results).detect("It also works in Peru and Colombia.")

        assert [h.detected for h in found] == ["peru"]
        assert found[0].severity == 0.9

    def test_countries_ignored_without_known_countries(self):
        results = [make_result(0.9, content="Document validation service.")]

        assert HallucinationDetector(results).detect("Available in Peru.") == []

    def test_empty_response(self):
        assert HallucinationDetector([]).detect("") == []

    def test_normalize_endpoint(self):
        assert normalize_endpoint("https://api.example.com/v2/Users/{id}/?x=1") == "/v2/users/{param}"
        assert normalize_endpoint("/v2/users/:id.") == "/v2/users/{param}"
        assert normalize_endpoint(None) == ""

    def test_knowledge_base_from_structured_fields(self):
        results = [
            make_result(
                0.9,
                endpoint="/v2/users",
                method="get",
                price=1.5,
                parameters=["documentType", {"name": "documentNumber"}],
                country="Colombia",
            )
        ]

        kb = build_knowledge_base(results)

        assert "/v2/users" in kb.endpoints
        assert kb.has_price(1.5)
        assert kb.parameters == {"documenttype", "documentnumber"}
        assert ("/v2/users", "GET") in kb.methods
        assert "colombia" in kb.countries


class TestRAGValidator:
    """Tests for RAGValidator."""

    def test_process_results(self, settings, citizen_results):
        metadata = RAGValidator(settings).process_results(citizen_results)

        assert metadata.groundedness == GroundednessLevel.HIGH
        assert metadata.confidence == 88
        assert metadata.avg_score == 88
        assert metadata.total_sources_considered == 2
        assert metadata.validation_result.status == ValidationStatus.VALID
        assert metadata.validation_result.is_grounded is True

    def test_process_empty_results(self, settings):
        metadata = RAGValidator(settings).process_results([])

        assert metadata.groundedness == GroundednessLevel.UNGROUNDED
        assert metadata.confidence == 0
        assert WarningMessages.NO_SOURCES in metadata.validation_result.warnings

    def test_single_source_warning(self, settings):
        metadata = RAGValidator(settings).process_results([make_result(0.9, title="Only")])

        assert WarningMessages.SINGLE_SOURCE in metadata.validation_result.warnings

    def test_validate_response_strict_mode(self, settings, citizen_results):
        result = RAGValidator(settings).validate_response(
            "Use endpoint /v99/fake-endpoint", citizen_results
        )

        assert result.is_grounded is False
        assert result.status == ValidationStatus.INVALID
        assert WarningMessages.POTENTIAL_HALLUCINATION in result.warnings
        assert "Detected 1 potential fabrication(s) in response." in result.warnings

    def test_validate_response_lenient_mode(self, settings, citizen_results):
        settings.rag.strict_mode = False

        result = RAGValidator(settings).validate_response(
            "Use endpoint /v99/fake-endpoint", citizen_results
        )

        assert result.status == ValidationStatus.WARNING

    def test_validation_disabled(self, settings, citizen_results):
        settings.rag.enable_post_generation_validation = False

        result = RAGValidator(settings).validate_response(
            "Use endpoint /v99/fake-endpoint", citizen_results
        )

        assert result.is_grounded is True
        assert result.status == ValidationStatus.VALID
        assert result.detected_hallucinations == []

    def test_full_validation_downgrades(self, settings, citizen_results):
        metadata = RAGValidator(settings).full_validation(
            citizen_results, "Use endpoint /v99/fake-endpoint"
        )

        assert metadata.groundedness == GroundednessLevel.LOW
        assert metadata.validation_result.is_grounded is False
        assert len(metadata.validation_result.detected_hallucinations) == 1

    def test_adjust_groundedness(self):
        def h(severity):
            return Hallucination(
                type=HallucinationType.FABRICATED_PRICE, detected="$1", severity=severity
            )

        adjust = RAGValidator.adjust_groundedness
        assert adjust(GroundednessLevel.HIGH, [h(1.0), h(0.8)]) == GroundednessLevel.UNGROUNDED
        assert adjust(GroundednessLevel.HIGH, [h(0.8)]) == GroundednessLevel.LOW
        assert adjust(GroundednessLevel.HIGH, [h(0.3)]) == GroundednessLevel.MEDIUM
        assert adjust(GroundednessLevel.MEDIUM, [h(0.3)]) == GroundednessLevel.MEDIUM

    def test_metadata_wire_shape(self, settings, citizen_results):
        wire = RAGValidator(settings).process_results(citizen_results).to_wire()

        assert set(wire) >= {
            "sources", "groundedness", "avgScore", "confidence",
            "validationResult", "retrievedAt", "totalSourcesConsidered",
        }
        assert wire["sources"][0]["sourcePath"] == "docs/api/colombian-citizens.md"
        assert wire["validationResult"]["detectedHallucinations"] == []


class TestHallucinationRecord:
    """Tests for the Hallucination model."""

    @pytest.mark.parametrize("payload", [
        {"type": "fabricated_price", "detected": "$5"},
        {"type": "fabricated_price", "detected": "$5", "severity": None},
    ])
    def test_missing_severity_variants(self, payload):
        assert Hallucination.model_validate(payload).severity == 0.0

    def test_wire_shape(self):
        hallucination = Hallucination(
            type=HallucinationType.FABRICATED_PRICE, detected="$5", severity=0.8
        )

        assert set(hallucination.to_wire()) == {"type", "detected", "context", "severity", "source"}
