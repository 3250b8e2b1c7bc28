"""
Unit Tests for Semantic Verification
"""

import asyncio
import threading
from unittest.mock import AsyncMock

import pytest

from conftest import make_result
from hallucination_guard.schemas import ClaimType, RiskLevel, VerificationMethod
from hallucination_guard.services import ClaimExtractor, EmbeddingCache, SemanticVerifier
from hallucination_guard.services.semantic_verifier import cosine_similarity


def claim_aware_provider():
    """Embeds claims and sources onto orthogonal axes."""
    async def embed(text):
        if ": " in text and "Context:" in text:
            return [1.0, 0.0]
        return [0.0, 1.0]

    provider = AsyncMock()
    provider.embed = AsyncMock(side_effect=embed)
    return provider


@pytest.fixture
def price_results():
    return [make_result(0.9, title="Pricing", content="Price: $0.25 per query.")]


class TestClaimExtractor:
    """Tests for ClaimExtractor."""

    def test_endpoint_claim(self):
        claims = ClaimExtractor().extract_claims("Call the endpoint /v2/users to list users.")

        assert [(c.type, c.value) for c in claims] == [(ClaimType.ENDPOINT, "/v2/users")]
        assert claims[0].risk_level == RiskLevel.CRITICAL

    def test_method_claim(self):
        claims = ClaimExtractor().extract_claims("Use GET /v2/users")

        assert [(c.type, c.value) for c in claims] == [(ClaimType.METHOD, "GET /v2/users")]

    def test_lowercase_verb_is_not_a_method(self):
        assert ClaimExtractor().extract_claims("You can get started quickly.") == []

    def test_price_claim(self):
        claims = ClaimExtractor().extract_claims("The price is $0.25")

        assert [(c.type, c.value) for c in claims] == [(ClaimType.PRICE, "0.25")]

    def test_rate_limit_is_not_a_price_claim(self):
        claims = ClaimExtractor().extract_claims("The rate is 100 requests per minute.")

        assert [c for c in claims if c.type == ClaimType.PRICE] == []

    def test_price_claim_with_currency_unit(self):
        claims = ClaimExtractor().extract_claims("The price is 2500 COP")

        assert [(c.type, c.value) for c in claims] == [(ClaimType.PRICE, "2500")]

    def test_country_claim(self):
        claims = ClaimExtractor().extract_claims("Available in Colombia, Mexico")

        assert [(c.type, c.value) for c in claims] == [(ClaimType.COUNTRY, "Colombia, Mexico")]
        assert claims[0].risk_level == RiskLevel.MEDIUM

    def test_duplicates_collapse(self):
        text = "Call the endpoint /v2/users first. Then call the endpoint /V2/users again."

        claims = ClaimExtractor().extract_claims(text)

        assert len(claims) == 1

    def test_max_claims(self):
        text = " ".join(f"The price is ${i}.50" for i in range(1, 8))

        claims = ClaimExtractor(max_claims=3).extract_claims(text)

        assert len(claims) == 3

    def test_context_is_captured(self):
        claims = ClaimExtractor().extract_claims("The price is $0.25 per query")

        assert "price is $0.25" in claims[0].context

    def test_empty_text(self):
        assert ClaimExtractor().extract_claims("") == []

    def test_categorize_risk(self):
        assert ClaimExtractor.categorize_risk(ClaimType.PRICE) == RiskLevel.CRITICAL
        assert ClaimExtractor.categorize_risk(ClaimType.PARAMETER) == RiskLevel.HIGH
        assert ClaimExtractor.categorize_risk("RESPONSE") == RiskLevel.LOW


class TestEmbeddingCache:
    """Tests for EmbeddingCache."""

    def test_lru_eviction(self, settings):
        """Reading an entry protects it from eviction."""
        cache = EmbeddingCache(max_size=2, ttl_seconds=60, settings=settings)

        cache.set("a", [1.0])
        cache.set("b", [2.0])
        assert cache.get("a") == [1.0]
        cache.set("c", [3.0])

        assert cache.get("b") is None
        assert cache.get("a") == [1.0]
        assert cache.get("c") == [3.0]

    def test_ttl_expiry(self, settings):
        clock = [0.0]
        cache = EmbeddingCache(
            max_size=10, ttl_seconds=10, settings=settings, timer=lambda: clock[0]
        )

        cache.set("a", [1.0])
        clock[0] = 5.0
        assert cache.get("a") == [1.0]

        clock[0] = 11.0
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_concurrent_access_stays_bounded(self, settings):
        cache = EmbeddingCache(max_size=50, ttl_seconds=60, settings=settings)
        barrier = threading.Barrier(8)

        def worker(n):
            barrier.wait()
            for i in range(200):
                key = f"{n}-{i}"
                cache.set(key, [float(i)])
                cache.get(key)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 50

    def test_disabled_cache(self, settings):
        settings.cache.enabled = False
        cache = EmbeddingCache(settings=settings)

        cache.set("a", [1.0])

        assert cache.get("a") is None

    def test_generate_key(self):
        key = EmbeddingCache.generate_key("hello")

        assert key.startswith("emb_")
        assert len(key) == 36
        assert key == EmbeddingCache.generate_key("hello")
        assert key != EmbeddingCache.generate_key("hello!")

    def test_stats(self, settings):
        cache = EmbeddingCache(max_size=4, ttl_seconds=60, settings=settings)
        cache.set("a", [1.0])

        stats = cache.get_stats()

        assert stats["size"] == 1
        assert stats["max_size"] == 4
        assert stats["utilization_percent"] == 25
        assert stats["enabled"] is True

    def test_clear(self, settings):
        cache = EmbeddingCache(settings=settings)
        cache.set("a", [1.0])

        cache.clear()

        assert len(cache) == 0


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_degenerate_vectors(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([1.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([], []) == 0.0


class TestSemanticVerifier:
    """Tests for SemanticVerifier."""

    @pytest.mark.asyncio
    async def test_literal_match_verifies(self, settings, price_results):
        """A value present verbatim in the sources is verified regardless of similarity."""
        verifier = SemanticVerifier(claim_aware_provider(), settings)

        report = await verifier.verify_response("The price is $0.25", price_results)

        assert report.total_claims == 1
        assert len(report.verified_claims) == 1
        verification = report.verified_claims[0]
        assert verification.confidence_score == 0.95
        assert verification.verification_method == VerificationMethod.LITERAL_MATCH
        assert report.passes_threshold is True
        assert report.summary == "All 1 claims verified with 95% confidence."

    @pytest.mark.asyncio
    async def test_similarity_match_verifies(self, settings, price_results):
        provider = AsyncMock()
        provider.embed = AsyncMock(return_value=[1.0, 1.0])
        verifier = SemanticVerifier(provider, settings)

        report = await verifier.verify_response("The price is $9.99", price_results)

        verification = report.verified_claims[0]
        assert verification.verification_method == VerificationMethod.SEMANTIC_SIMILARITY
        assert verification.confidence_score == 1.0
        assert verification.matched_source == "Pricing"

    @pytest.mark.asyncio
    async def test_unverified_critical_claim(self, settings, price_results):
        verifier = SemanticVerifier(claim_aware_provider(), settings)

        report = await verifier.verify_response("The price is $999.99", price_results)

        assert len(report.unverified_claims) == 1
        assert report.unverified_claims[0].matched_source is None
        assert report.overall_confidence == 0.0
        assert report.passes_threshold is False
        assert report.verification_rate == 0
        assert report.summary.startswith("⚠️ CRITICAL: 1 high-risk claims")

    @pytest.mark.asyncio
    async def test_mixed_summary(self, settings):
        results = [make_result(0.9, content="Available in Colombia. Returns JSON.")]
        verifier = SemanticVerifier(claim_aware_provider(), settings)

        report = await verifier.verify_response(
            "Available in Colombia. The response: XML", results
        )

        assert report.total_claims == 2
        assert report.summary.startswith("1/2 claims verified. 1 unverified claims detected.")

    @pytest.mark.asyncio
    async def test_provider_failure_degrades_claim(self, settings, price_results):
        provider = AsyncMock()
        provider.embed = AsyncMock(side_effect=RuntimeError("embedding service down"))
        verifier = SemanticVerifier(provider, settings)

        report = await verifier.verify_response("The price is $0.25", price_results)

        verification = report.unverified_claims[0]
        assert verification.verification_method == VerificationMethod.ERROR
        assert verification.confidence_score == 0.0
        assert verification.error == "embedding service down"

    @pytest.mark.asyncio
    async def test_provider_timeout_degrades_claim(self, settings, price_results):
        settings.semantic.embedding_timeout_ms = 10

        async def slow_embed(text):
            await asyncio.sleep(1)
            return [1.0, 0.0]

        provider = AsyncMock()
        provider.embed = AsyncMock(side_effect=slow_embed)
        verifier = SemanticVerifier(provider, settings)

        report = await verifier.verify_response("The price is $0.25", price_results)

        assert report.unverified_claims[0].verification_method == VerificationMethod.ERROR

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, settings, price_results):
        """Cancelling a verification is not reported as a failed claim."""
        settings.semantic.embedding_timeout_ms = 10_000
        started = asyncio.Event()

        async def hanging_embed(text):
            started.set()
            await asyncio.sleep(60)
            return [1.0, 0.0]

        provider = AsyncMock()
        provider.embed = AsyncMock(side_effect=hanging_embed)
        verifier = SemanticVerifier(provider, settings)

        task = asyncio.create_task(verifier.verify_response("The price is $0.25", price_results))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert verifier.get_stats()["total_verifications"] == 0

    @pytest.mark.asyncio
    async def test_no_claims_is_vacuous_pass(self, settings, price_results):
        provider = claim_aware_provider()
        verifier = SemanticVerifier(provider, settings)

        report = await verifier.verify_response("Thanks for asking.", price_results)

        assert report.total_claims == 0
        assert report.overall_confidence == 1.0
        assert report.passes_threshold is True
        assert report.verification_rate == 100
        provider.embed.assert_not_called()

    @pytest.mark.asyncio
    async def test_cache_avoids_repeat_embedding(self, settings, price_results):
        provider = claim_aware_provider()
        verifier = SemanticVerifier(provider, settings)

        await verifier.verify_response("The price is $0.25", price_results)
        calls = provider.embed.call_count
        await verifier.verify_response("The price is $0.25", price_results)

        assert calls == 2
        assert provider.embed.call_count == calls

    @pytest.mark.asyncio
    async def test_stats_and_reset(self, settings, price_results):
        verifier = SemanticVerifier(claim_aware_provider(), settings)

        await verifier.verify_response("The price is $0.25", price_results)
        await verifier.verify_response("The price is $999.99", price_results)
        stats = verifier.get_stats()

        assert stats["total_verifications"] == 2
        assert stats["successful_verifications"] == 1
        assert stats["failed_verifications"] == 1
        assert stats["success_rate"] == 50
        assert stats["cache_stats"]["size"] > 0

        verifier.reset_stats()
        stats = verifier.get_stats()
        assert stats["total_verifications"] == 0
        assert stats["cache_stats"]["size"] == 0
