"""Orchestrator: one shared search pipeline for every jurisdiction.

Per search (ordered, never concurrent within one call):
  1. Query validation (no network on failure)
  2. Retry loop, each attempt:
     a. Rate-limit gate
     b. Open session
     c. Navigate to the search URL
     d. Wait for a results / no-results / challenge signal (soft)
     e. Block check (bounded) -> terminal failure
     f. In-page extraction
     g. Validation
     h. Close session (always)
  3. Outcome assembly; every failure becomes a SearchOutcome
"""

import asyncio
import json
import logging
from collections.abc import Iterable
from types import TracebackType

from pydantic import ValidationError

from ucc_scraper.browser.driver import Session, SessionDriver
from ucc_scraper.core.config import JurisdictionConfig
from ucc_scraper.core.errors import (
    BlockDetectedError,
    InvalidQueryError,
    RetryError,
    TransientScrapeError,
)
from ucc_scraper.core.schemas import ExtractionResult, PageState, SearchOutcome, SearchQuery
from ucc_scraper.pipeline.rate_limiter import RateLimiter
from ucc_scraper.pipeline.retry import run_with_backoff
from ucc_scraper.pipeline.validator import validate
from ucc_scraper.platforms.base import JurisdictionAdapter

logger = logging.getLogger(__name__)


def validate_query(query: str) -> str:
    """Return the stripped query or raise InvalidQueryError."""
    try:
        return SearchQuery(text=query).text
    except ValidationError as e:
        reason = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise InvalidQueryError(reason) from e


class JurisdictionScraper:
    """Runs searches for one jurisdiction against a Session Driver.

    Usage::

        async with JurisdictionScraper(CaliforniaAdapter(), config, driver) as scraper:
            outcome = await scraper.search("Acme Corp")
    """

    def __init__(
        self,
        adapter: JurisdictionAdapter,
        config: JurisdictionConfig,
        driver: SessionDriver,
        *,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._adapter = adapter
        self._config = config
        self._driver = driver
        self._rate_limiter = rate_limiter or RateLimiter(config.min_interval_seconds)

    @property
    def config(self) -> JurisdictionConfig:
        return self._config

    @property
    def adapter(self) -> JurisdictionAdapter:
        return self._adapter

    def build_search_url(self, query: str) -> str:
        """Manual search link for a query. Pure and idempotent."""
        return self._adapter.build_search_url(query.strip(), self._config.base_url)

    async def search(self, query: str) -> SearchOutcome:
        """Search the registry for ``query``. Never raises."""
        code = self._config.code
        try:
            text = validate_query(query)
        except InvalidQueryError as e:
            logger.error("[%s] Invalid search query %r: %s", code, query, e)
            return SearchOutcome(
                success=False,
                jurisdiction=code,
                query=query if isinstance(query, str) else repr(query),
                error=f"Invalid search query: {e}",
            )

        search_url = self.build_search_url(text)
        logger.info("[%s] Starting UCC search for '%s'", code, text)

        try:
            result = await run_with_backoff(
                lambda: self._attempt(text, search_url),
                f"{code} UCC search for '{text}'",
                self._config.max_attempts,
                base_delay=self._config.backoff_base_s,
                max_delay=self._config.backoff_max_s,
                retry_on_result=_is_empty_degraded,
            )
        except RetryError as e:
            return SearchOutcome(
                success=False,
                jurisdiction=code,
                query=text,
                search_url=search_url,
                retry_count=e.attempts,
                error=str(e.last_error) or type(e.last_error).__name__,
                blocked=isinstance(e.last_error, BlockDetectedError),
            )
        except Exception as e:
            logger.exception("[%s] Unexpected failure searching '%s'", code, text)
            return SearchOutcome(
                success=False,
                jurisdiction=code,
                query=text,
                search_url=search_url,
                error=str(e) or type(e).__name__,
            )

        outcome = result.value.model_copy(update={"retry_count": result.attempts})
        logger.info(
            "[%s] UCC search for '%s' completed: %d filing(s), %d error(s), %d attempt(s)",
            code,
            text,
            len(outcome.filings),
            len(outcome.validation_errors or []),
            result.attempts,
        )
        return outcome

    async def close(self) -> None:
        """Tear down the browser. Do not call while a search is in flight."""
        await self._driver.close()

    async def __aenter__(self) -> "JurisdictionScraper":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # --- Private helpers ---

    async def _attempt(self, query: str, search_url: str) -> SearchOutcome:
        code = self._config.code
        await self._rate_limiter.throttle(code)

        session = await self._driver.open()
        try:
            logger.info("[%s] Navigating to %s", code, search_url)
            await session.navigate(
                search_url,
                wait_until=self._adapter.wait_until,
                timeout_ms=self._config.timeout_ms,
            )

            signal = await session.wait_for_any(
                self._adapter.content_selectors, self._config.content_timeout_ms,
            )
            if signal is None:
                logger.warning("[%s] No content signal for '%s', proceeding anyway", code, query)

            state = await self._read_page_state(session)
            reason = self._adapter.detect_block(state)
            if reason is not None:
                logger.error("[%s] CAPTCHA detected for '%s': %s", code, query, reason)
                raise BlockDetectedError(reason)

            extraction = await self._extract(session)
            checked = validate(
                extraction.candidates, extraction.errors, jurisdiction=code,
            )
            if checked.validation_errors:
                logger.warning(
                    "[%s] %d parsing/validation error(s) for '%s': %s",
                    code, len(checked.validation_errors), query, checked.validation_errors,
                )
            logger.info(
                "[%s] Filings scraped and validated: %d raw, %d valid, %d dropped",
                code, len(extraction.candidates), len(checked.validated), checked.dropped,
            )

            return SearchOutcome(
                success=True,
                jurisdiction=code,
                query=query,
                filings=checked.validated,
                search_url=search_url,
                validation_errors=checked.validation_errors or None,
                degraded=signal is None,
            )
        finally:
            await _close_session(session, code)

    async def _read_page_state(self, session: Session) -> PageState:
        """Evaluate the block probe, bounded by ``timeout_ms``."""
        timeout_s = self._config.timeout_ms / 1000
        try:
            payload = await asyncio.wait_for(
                session.evaluate(self._adapter.page_state_script),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError as e:
            msg = f"Page state check timed out after {timeout_s:g}s"
            raise TransientScrapeError(msg) from e
        return self._adapter.parse_page_state(payload)

    async def _extract(self, session: Session) -> ExtractionResult:
        """Run the extraction script; a timeout or script error becomes an error entry."""
        try:
            payload = await asyncio.wait_for(
                session.evaluate(self._adapter.extraction_script),
                timeout=self._config.timeout_ms / 1000,
            )
        except Exception as e:
            detail = str(e) or type(e).__name__
            logger.warning("[%s] Extraction aborted: %s", self._config.code, detail)
            return ExtractionResult(errors=[f"Extraction aborted: {detail}"])
        return self._adapter.parse_extraction(payload)


def _is_empty_degraded(outcome: SearchOutcome) -> bool:
    """No content signal and nothing extracted: likely a page that never rendered."""
    return outcome.degraded and not outcome.filings and not outcome.validation_errors


async def _close_session(session: Session, code: str) -> None:
    try:
        await session.close()
    except Exception as e:
        logger.warning("[%s] Error closing session: %s", code, e)


async def run_searches(
    scraper: JurisdictionScraper,
    queries: Iterable[str],
) -> list[SearchOutcome]:
    """Run queries one after another; one outcome per query, in order."""
    outcomes: list[SearchOutcome] = []
    for query in queries:
        outcomes.append(await scraper.search(query))
    return outcomes


def export_outcomes_json(outcomes: list[SearchOutcome]) -> str:
    """Export search outcomes as a JSON string."""
    data = [outcome.model_dump(mode="json") for outcome in outcomes]
    return json.dumps(data, indent=2)
