"""Integration test: full search pipeline with a fake Session Driver (no browser)."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from ucc_scraper.core.config import JurisdictionConfig
from ucc_scraper.core.schemas import FilingStatus, FilingType, SearchOutcome
from ucc_scraper.pipeline.orchestrator import (
    JurisdictionScraper,
    export_outcomes_json,
    run_searches,
    validate_query,
)
from ucc_scraper.pipeline.rate_limiter import RateLimiter
from ucc_scraper.platforms.california.adapter import CaliforniaAdapter
from ucc_scraper.platforms.california.searcher import CA_BASE_URL

# ---------------------------------------------------------------------------
# Fake driver
# ---------------------------------------------------------------------------


@dataclass
class PagePlan:
    """What one attempt's page does."""

    open_error: Exception | None = None
    navigate_error: Exception | None = None
    signal: str | None = ".search-results"
    page_state: Any = field(default_factory=lambda: {"text": "UCC Search Results", "frames": []})
    page_state_hangs: bool = False
    extraction: Any = field(default_factory=lambda: {"candidates": [], "errors": []})
    extraction_error: Exception | None = None
    close_error: Exception | None = None


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds


class FakeSession:
    def __init__(self, driver: "FakeDriver", plan: PagePlan) -> None:
        self._driver = driver
        self._plan = plan

    async def navigate(self, url: str, *, wait_until: str, timeout_ms: int) -> None:
        self._driver.navigations.append(url)
        self._driver.navigation_times.append(self._driver.clock())
        if self._plan.navigate_error is not None:
            raise self._plan.navigate_error

    async def wait_for_any(self, selectors: tuple[str, ...], timeout_ms: int) -> str | None:
        return self._plan.signal

    async def evaluate(self, script: str) -> Any:
        if script == self._driver.adapter.page_state_script:
            if self._plan.page_state_hangs:
                await asyncio.Event().wait()
            return self._plan.page_state
        if self._plan.extraction_error is not None:
            raise self._plan.extraction_error
        return self._plan.extraction

    async def close(self) -> None:
        self._driver.sessions_closed += 1
        if self._plan.close_error is not None:
            raise self._plan.close_error


class FakeDriver:
    """Hands out FakeSessions following a per-attempt plan (last plan repeats)."""

    def __init__(self, plans: list[PagePlan], adapter: CaliforniaAdapter, clock: FakeClock) -> None:
        self._plans = list(plans)
        self.adapter = adapter
        self.clock = clock
        self.opens = 0
        self.sessions_closed = 0
        self.driver_closes = 0
        self.navigations: list[str] = []
        self.navigation_times: list[float] = []

    async def open(self) -> FakeSession:
        plan = self._plans[min(self.opens, len(self._plans) - 1)]
        self.opens += 1
        if plan.open_error is not None:
            raise plan.open_error
        return FakeSession(self, plan)

    async def close(self) -> None:
        self.driver_closes += 1


def _row(**overrides: str) -> dict[str, str]:
    row = {
        "filingNumber": "U210012345",
        "debtorName": "Acme Corp",
        "securedParty": "First Capital Bank",
        "filingDate": "01/15/2024",
        "collateral": "All assets",
        "status": "Active",
        "filingType": "",
    }
    row.update(overrides)
    return row


def _scraper(
    plans: list[PagePlan],
    *,
    max_attempts: int = 3,
    interval: float = 12.0,
    timeout_ms: int = 30000,
) -> tuple[JurisdictionScraper, FakeDriver]:
    adapter = CaliforniaAdapter()
    clock = FakeClock()
    driver = FakeDriver(plans, adapter, clock)
    config = JurisdictionConfig(
        code="CA",
        base_url=CA_BASE_URL,
        requests_per_minute=60.0 / interval,
        max_attempts=max_attempts,
        timeout_ms=timeout_ms,
        backoff_base_s=0.0,
        backoff_max_s=0.0,
    )
    limiter = RateLimiter(interval, clock=clock, sleep=clock.sleep)
    return JurisdictionScraper(adapter, config, driver, rate_limiter=limiter), driver


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class TestInputValidation:
    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    async def test_empty_query_no_network(self, query: str) -> None:
        scraper, driver = _scraper([PagePlan()])
        outcome = await scraper.search(query)

        assert outcome.success is False
        assert outcome.error is not None
        assert outcome.error.startswith("Invalid search query")
        assert "must not be empty" in outcome.error
        assert outcome.retry_count == 0
        assert driver.opens == 0
        assert driver.navigations == []

    async def test_too_long_query_no_network(self) -> None:
        scraper, driver = _scraper([PagePlan()])
        outcome = await scraper.search("x" * 500)
        assert outcome.success is False
        assert "Invalid search query" in (outcome.error or "")
        assert driver.navigations == []

    async def test_non_string_query_is_input_error(self) -> None:
        scraper, driver = _scraper([PagePlan()])
        outcome = await scraper.search(None)  # type: ignore[arg-type]
        assert outcome.success is False
        assert outcome.query == "None"
        assert driver.opens == 0

    async def test_blank_bytes_query_no_network(self) -> None:
        scraper, driver = _scraper([PagePlan()])
        outcome = await scraper.search(b"   ")  # type: ignore[arg-type]
        assert outcome.success is False
        assert "must not be empty" in (outcome.error or "")
        assert driver.navigations == []

    def test_validate_query_strips(self) -> None:
        assert validate_query("  Acme Corp ") == "Acme Corp"


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    async def test_scenario_a_noise_row_dropped_silently(self) -> None:
        """Two good rows plus one row missing both identifiers."""
        extraction = {
            "candidates": [
                _row(),
                _row(filingNumber="", debtorName="", securedParty="Decorative"),
                _row(filingNumber="UCC-3 U220000001", status="Terminated"),
            ],
            "errors": [],
        }
        scraper, driver = _scraper([PagePlan(extraction=extraction)])

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is True
        assert len(outcome.filings) == 2
        assert outcome.validation_errors is None
        assert outcome.retry_count == 1
        assert outcome.filings[0].filing_type is FilingType.PRIMARY_FILING
        assert outcome.filings[1].filing_type is FilingType.AMENDMENT
        assert outcome.filings[1].status is FilingStatus.TERMINATED
        assert outcome.search_url == scraper.build_search_url("Acme Corp")
        assert driver.sessions_closed == 1

    async def test_scenario_b_recaptcha_blocks_without_retry(self) -> None:
        plan = PagePlan(
            signal='iframe[src*="recaptcha"]',
            page_state={"text": "", "frames": ["https://www.google.com/recaptcha/api2/anchor"]},
        )
        scraper, driver = _scraper([plan], max_attempts=3)

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is False
        assert "CAPTCHA" in (outcome.error or "")
        assert "manual intervention required" in (outcome.error or "")
        assert outcome.blocked is True
        assert outcome.retry_count == 1
        assert len(driver.navigations) == 1
        assert driver.sessions_closed == 1
        assert outcome.search_url.startswith(CA_BASE_URL)

    async def test_scenario_c_timeouts_then_success(self) -> None:
        plans = [
            PagePlan(navigate_error=TimeoutError("Navigation timeout of 30000 ms exceeded")),
            PagePlan(navigate_error=TimeoutError("Navigation timeout of 30000 ms exceeded")),
            PagePlan(extraction={"candidates": [_row()], "errors": []}),
        ]
        scraper, driver = _scraper(plans, max_attempts=3)

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is True
        assert outcome.retry_count == 3
        assert len(outcome.filings) == 1
        assert len(driver.navigations) == 3
        assert driver.sessions_closed == 3


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


class TestFailureHandling:
    async def test_exhaustion_reports_last_error(self) -> None:
        plans = [PagePlan(navigate_error=TimeoutError(f"timeout #{i}")) for i in range(1, 4)]
        scraper, driver = _scraper(plans, max_attempts=3)

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is False
        assert outcome.error == "timeout #3"
        assert outcome.retry_count == 3
        assert outcome.blocked is False
        assert len(driver.navigations) == 3
        assert driver.sessions_closed == 3

    async def test_session_open_failure_is_retried(self) -> None:
        plans = [
            PagePlan(open_error=RuntimeError("browser crashed")),
            PagePlan(extraction={"candidates": [_row()], "errors": []}),
        ]
        scraper, driver = _scraper(plans, max_attempts=2)

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is True
        assert outcome.retry_count == 2
        assert driver.opens == 2
        assert driver.sessions_closed == 1

    async def test_hanging_page_state_times_out_and_retries(self) -> None:
        plans = [
            PagePlan(page_state_hangs=True),
            PagePlan(extraction={"candidates": [_row()], "errors": []}),
        ]
        scraper, driver = _scraper(plans, max_attempts=2, timeout_ms=1000)

        outcome = await asyncio.wait_for(scraper.search("Acme Corp"), 5)

        assert outcome.success is True
        assert len(outcome.filings) == 1
        assert outcome.retry_count == 2
        assert driver.sessions_closed == 2

    async def test_hanging_page_state_exhausts_as_failure(self) -> None:
        scraper, driver = _scraper([PagePlan(page_state_hangs=True)], max_attempts=1, timeout_ms=1000)

        outcome = await asyncio.wait_for(scraper.search("Acme Corp"), 5)

        assert outcome.success is False
        assert outcome.blocked is False
        assert outcome.error == "Page state check timed out after 1s"
        assert outcome.retry_count == 1
        assert driver.sessions_closed == 1

    async def test_session_close_failure_swallowed(self) -> None:
        plan = PagePlan(
            extraction={"candidates": [_row()], "errors": []},
            close_error=RuntimeError("page already closed"),
        )
        scraper, driver = _scraper([plan])

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is True
        assert len(outcome.filings) == 1
        assert driver.sessions_closed == 1

    async def test_extraction_failure_becomes_error_entry(self) -> None:
        plan = PagePlan(extraction_error=RuntimeError("Execution context was destroyed"))
        scraper, driver = _scraper([plan])

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is True
        assert outcome.filings == []
        assert outcome.validation_errors == [
            "Extraction aborted: Execution context was destroyed",
        ]
        assert outcome.retry_count == 1

    async def test_partial_success_keeps_good_rows(self) -> None:
        extraction = {
            "candidates": [_row(), _row(debtorName=["bad"]), _row(filingNumber="U2")],  # type: ignore[arg-type]
            "errors": ["Error parsing element 7: Cannot read properties of null"],
        }
        scraper, _ = _scraper([PagePlan(extraction=extraction)])

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is True
        assert [f.filing_number for f in outcome.filings] == ["U210012345", "U2"]
        assert outcome.validation_errors is not None
        assert outcome.validation_errors[0].startswith("Error parsing element 7")
        assert outcome.validation_errors[1].startswith("Error validating candidate 1")

    async def test_unexpected_failure_converted(self) -> None:
        scraper, _ = _scraper([PagePlan()])
        with patch(
            "ucc_scraper.pipeline.orchestrator.run_with_backoff",
            AsyncMock(side_effect=RuntimeError("event loop hiccup")),
        ):
            outcome = await scraper.search("Acme Corp")

        assert outcome.success is False
        assert outcome.error == "event loop hiccup"
        assert outcome.search_url == scraper.build_search_url("Acme Corp")
        datetime.fromisoformat(outcome.timestamp)


# ---------------------------------------------------------------------------
# Degraded pages
# ---------------------------------------------------------------------------


class TestDegradedPages:
    async def test_missing_signal_still_extracts(self) -> None:
        plan = PagePlan(signal=None, extraction={"candidates": [_row()], "errors": []})
        scraper, driver = _scraper([plan])

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is True
        assert outcome.degraded is True
        assert len(outcome.filings) == 1
        assert outcome.retry_count == 1

    async def test_empty_degraded_page_is_retried(self) -> None:
        plans = [
            PagePlan(signal=None),
            PagePlan(extraction={"candidates": [_row()], "errors": []}),
        ]
        scraper, driver = _scraper(plans, max_attempts=3)

        outcome = await scraper.search("Acme Corp")

        assert outcome.success is True
        assert outcome.degraded is False
        assert outcome.retry_count == 2
        assert len(driver.navigations) == 2

    async def test_no_results_page_is_not_retried(self) -> None:
        scraper, driver = _scraper([PagePlan(signal=".no-results")], max_attempts=3)

        outcome = await scraper.search("Nobody Inc")

        assert outcome.success is True
        assert outcome.filings == []
        assert outcome.retry_count == 1
        assert len(driver.navigations) == 1


# ---------------------------------------------------------------------------
# Rate limiting and lifecycle
# ---------------------------------------------------------------------------


class TestRateAndLifecycle:
    async def test_dispatches_spaced_across_searches_and_retries(self) -> None:
        plans = [
            PagePlan(navigate_error=TimeoutError("t")),
            PagePlan(extraction={"candidates": [_row()], "errors": []}),
        ]
        scraper, driver = _scraper(plans, interval=12.0)

        await scraper.search("Acme Corp")
        await scraper.search("Beta LLC")

        times = driver.navigation_times
        assert len(times) == 3
        assert all(b - a >= 12.0 for a, b in zip(times, times[1:]))

    async def test_concurrent_searches_share_gate(self) -> None:
        scraper, driver = _scraper(
            [PagePlan(extraction={"candidates": [_row()], "errors": []})], interval=5.0,
        )

        outcomes = await asyncio.gather(
            scraper.search("Acme Corp"), scraper.search("Beta LLC"), scraper.search("Gamma Co"),
        )

        assert all(o.success for o in outcomes)
        times = sorted(driver.navigation_times)
        assert all(b - a >= 5.0 for a, b in zip(times, times[1:]))

    async def test_build_search_url_idempotent(self) -> None:
        scraper, _ = _scraper([PagePlan()])
        assert scraper.build_search_url("Acme Corp") == scraper.build_search_url("Acme Corp")
        assert scraper.build_search_url("  Acme Corp ") == scraper.build_search_url("Acme Corp")

    async def test_close_delegates_to_driver(self) -> None:
        scraper, driver = _scraper([PagePlan()])
        await scraper.close()
        await scraper.close()
        assert driver.driver_closes == 2

    async def test_async_context_manager_closes(self) -> None:
        scraper, driver = _scraper([PagePlan()])
        async with scraper as s:
            await s.search("Acme Corp")
        assert driver.driver_closes == 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    async def test_run_searches_in_order(self) -> None:
        scraper, _ = _scraper([PagePlan(extraction={"candidates": [_row()], "errors": []})])
        outcomes = await run_searches(scraper, ["Acme Corp", "", "Beta LLC"])
        assert [o.query for o in outcomes] == ["Acme Corp", "", "Beta LLC"]
        assert [o.success for o in outcomes] == [True, False, True]

    def test_export_outcomes_json(self) -> None:
        outcomes = [
            SearchOutcome(success=False, jurisdiction="CA", query="Acme", error="boom"),
        ]
        data = json.loads(export_outcomes_json(outcomes))
        assert data[0]["success"] is False
        assert data[0]["error"] == "boom"
        assert data[0]["filings"] == []
