"""
Tests for the rates module: feed parsing, the lazily populated cache and
the exact / lookback / latest / unresolved lookup order.
"""

import threading
import time
from datetime import date, timedelta
from decimal import Decimal

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from construction_kernel.domain.currency import RateSource
from construction_kernel.domain.records import ExchangeRateSample
from construction_kernel.exceptions import RateFeedError
from construction_modules.rates import (
    UNRESOLVED,
    HttpRateFeed,
    RateResolver,
    StaticRateFeed,
    parse_samples,
)


class FailingFeed:
    """Fails ``failures`` times, then serves ``samples``."""

    def __init__(self, failures=1, samples=()):
        self.failures = failures
        self.samples = tuple(samples)
        self.fetch_count = 0

    def fetch_all(self):
        self.fetch_count += 1
        if self.fetch_count <= self.failures:
            raise RateFeedError("failing", "connection refused")
        return self.samples


class SlowFeed(StaticRateFeed):
    """Holds the first fetch open long enough for other threads to queue up."""

    def __init__(self, rates):
        super().__init__(StaticRateFeed.from_mapping(rates).fetch_all())

    def fetch_all(self):
        time.sleep(0.05)
        return super().fetch_all()


# =============================================================================
# Feed parsing
# =============================================================================


class TestParseSamples:
    def test_canonical_keys(self):
        samples = parse_samples([{"date": "2025-01-01", "sellRate": 1000}], "test")
        assert samples == (ExchangeRateSample(date=date(2025, 1, 1), rate=Decimal("1000")),)

    def test_spanish_keys(self):
        samples = parse_samples([{"fecha": "2025-01-10", "venta": "1100.5"}], "test")
        assert samples[0].rate == Decimal("1100.5")

    def test_float_rates_parse_through_str(self):
        samples = parse_samples([{"fecha": "2025-01-10", "venta": 1100.1}], "test")
        assert samples[0].rate == Decimal("1100.1")

    def test_malformed_entries_are_skipped(self, captured_logs):
        payload = [
            {"fecha": "2025-01-01", "venta": 1000},
            {"fecha": "2025-01-02", "venta": 0},
            {"fecha": "2025-01-03"},
            {"venta": 900},
            {"fecha": "not-a-date", "venta": 900},
            "garbage",
        ]
        samples = parse_samples(payload, "test")
        assert [s.date for s in samples] == [date(2025, 1, 1)]
        skipped = [r for r in captured_logs() if r["message"] == "rate_feed_entries_skipped"]
        assert skipped and skipped[0]["skipped"] == 5

    def test_non_list_payload_raises(self):
        with pytest.raises(RateFeedError):
            parse_samples({"error": "down"}, "test")


class TestHttpRateFeed:
    def test_transport_error_becomes_feed_error(self, monkeypatch):
        def _boom(url, timeout):
            raise httpx.ConnectError("refused")

        monkeypatch.setattr(httpx, "get", _boom)
        with pytest.raises(RateFeedError) as exc_info:
            HttpRateFeed("https://rates.invalid/v1").fetch_all()
        assert exc_info.value.code == "RATE_FEED_FAILURE"

    def test_success_parses_body(self, monkeypatch):
        request = httpx.Request("GET", "https://rates.invalid/v1")

        def _ok(url, timeout):
            return httpx.Response(
                200, json=[{"fecha": "2025-01-01", "venta": 1000}], request=request,
            )

        monkeypatch.setattr(httpx, "get", _ok)
        samples = HttpRateFeed("https://rates.invalid/v1").fetch_all()
        assert samples[0].rate == Decimal("1000")

    def test_http_status_error_becomes_feed_error(self, monkeypatch):
        request = httpx.Request("GET", "https://rates.invalid/v1")
        monkeypatch.setattr(
            httpx, "get", lambda url, timeout: httpx.Response(503, request=request),
        )
        with pytest.raises(RateFeedError):
            HttpRateFeed("https://rates.invalid/v1").fetch_all()


# =============================================================================
# Resolver
# =============================================================================


class TestRateResolver:
    def test_exact_date(self, rate_resolver):
        assert rate_resolver.resolve(date(2025, 1, 10)) == Decimal("1100")

    def test_lookback_within_window(self, rate_resolver):
        assert rate_resolver.resolve(date(2025, 1, 5)) == Decimal("1000")

    def test_after_latest_uses_latest(self, rate_resolver):
        assert rate_resolver.resolve(date(2025, 1, 15)) == Decimal("1100")
        assert rate_resolver.resolve(date(2030, 1, 1)) == Decimal("1100")

    def test_before_history_is_unresolved(self, rate_resolver):
        assert rate_resolver.resolve(date(2024, 12, 1)) == UNRESOLVED

    def test_gap_beyond_lookback_is_unresolved(self):
        resolver = RateResolver(StaticRateFeed.from_mapping({
            date(2025, 1, 1): "1000",
            date(2025, 3, 1): "1200",
        }))
        assert resolver.resolve(date(2025, 1, 8)) == Decimal("1000")
        assert resolver.resolve(date(2025, 1, 9)) == UNRESOLVED

    def test_empty_history_is_unresolved(self):
        resolver = RateResolver(StaticRateFeed())
        assert resolver.resolve(date(2025, 1, 1)) == UNRESOLVED
        assert resolver.latest() is None

    def test_feed_fetched_once(self, static_feed, rate_resolver):
        for day in range(1, 20):
            rate_resolver.resolve(date(2025, 1, day))
        assert static_feed.fetch_count == 1
        assert rate_resolver.known_dates == 2

    def test_lazy_population(self, static_feed, rate_resolver):
        assert not rate_resolver.is_loaded
        assert static_feed.fetch_count == 0
        rate_resolver.resolve(date(2025, 1, 1))
        assert rate_resolver.is_loaded

    def test_failed_population_is_retried(self, captured_logs):
        feed = FailingFeed(
            failures=1,
            samples=[ExchangeRateSample(date=date(2025, 1, 1), rate=Decimal("1000"))],
        )
        resolver = RateResolver(feed)
        with pytest.raises(RateFeedError):
            resolver.resolve(date(2025, 1, 1))
        assert not resolver.is_loaded
        assert resolver.resolve(date(2025, 1, 1)) == Decimal("1000")
        assert feed.fetch_count == 2

        messages = [r["message"] for r in captured_logs()]
        assert "rate_cache_population_failed" in messages
        assert "rate_cache_populated" in messages

    def test_concurrent_first_use_populates_once(self):
        feed = SlowFeed({date(2025, 1, 1): "1000", date(2025, 1, 10): "1100"})
        resolver = RateResolver(feed)
        workers = 8
        barrier = threading.Barrier(workers)
        results = []
        errors = []

        def lookup():
            barrier.wait()
            try:
                results.append(resolver.resolve(date(2025, 1, 12)))
            except Exception as exc:  # collected for the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=lookup) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []
        assert feed.fetch_count == 1
        assert results == [Decimal("1100")] * workers
        assert resolver.is_loaded

    def test_resolve_or_default_degrades(self):
        resolver = RateResolver(FailingFeed(failures=10))
        quote = resolver.resolve_or_default(date(2025, 1, 1), Decimal("950"))
        assert quote.rate == Decimal("950")
        assert quote.source is RateSource.DEFAULT
        assert quote.is_fallback

    def test_resolve_or_default_prefers_feed(self, rate_resolver):
        quote = rate_resolver.resolve_or_default(date(2025, 1, 10), Decimal("950"))
        assert quote.source is RateSource.FEED
        assert quote.rate == Decimal("1100")

    def test_negative_lookback_rejected(self, static_feed):
        with pytest.raises(ValueError):
            RateResolver(static_feed, lookback_days=-1)


_histories = st.dictionaries(
    st.dates(min_value=date(2020, 1, 1), max_value=date(2026, 12, 31)),
    st.decimals(min_value=1, max_value=5000, places=2),
    min_size=1,
    max_size=30,
)


class TestResolverProperties:
    @settings(max_examples=75, deadline=None)
    @given(history=_histories, day=st.dates(min_value=date(2019, 1, 1), max_value=date(2028, 1, 1)))
    def test_result_is_zero_or_a_published_rate(self, history, day):
        resolver = RateResolver(StaticRateFeed.from_mapping(history))
        rate = resolver.resolve(day)
        assert rate == UNRESOLVED or rate in history.values()

    @settings(max_examples=75, deadline=None)
    @given(history=_histories)
    def test_published_dates_resolve_exactly(self, history):
        resolver = RateResolver(StaticRateFeed.from_mapping(history))
        for day, rate in history.items():
            assert resolver.resolve(day) == rate

    @settings(max_examples=75, deadline=None)
    @given(history=_histories, offset=st.integers(min_value=0, max_value=7))
    def test_days_shortly_after_first_sample_resolve(self, history, offset):
        resolver = RateResolver(StaticRateFeed.from_mapping(history))
        first = min(history)
        day = first + timedelta(days=offset)
        assert resolver.resolve(day) != UNRESOLVED
