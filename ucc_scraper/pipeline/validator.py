"""Result validator: raw page records -> ValidatedFiling.

Rules:
  - Whitespace in every field is collapsed to single spaces.
  - No filing number and no debtor name -> dropped silently (decorative rows
    matched by a loose selector), counted but never reported.
  - Status and filing type come from the rule tables below; first match wins.
  - Unparseable dates are flagged on the filing, not reported as errors.
  - A record that fails to normalize becomes one error string; the rest of
    the batch is still returned.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from ucc_scraper.core.schemas import (
    FilingStatus,
    FilingType,
    RawFilingCandidate,
    ValidatedFiling,
    ValidationResult,
)

logger = logging.getLogger(__name__)

# Lower-cased marker substring -> status. Order matters.
STATUS_RULES: tuple[tuple[str, FilingStatus], ...] = (
    ("active", FilingStatus.ACTIVE),
    ("terminated", FilingStatus.TERMINATED),
    ("lapsed", FilingStatus.LAPSED),
)
DEFAULT_STATUS = FilingStatus.ACTIVE

# Upper-cased marker substring in the filing number (or type hint) -> type.
FILING_TYPE_RULES: tuple[tuple[str, FilingType], ...] = (
    ("UCC-3", FilingType.AMENDMENT),
    ("UCC3", FilingType.AMENDMENT),
)
DEFAULT_FILING_TYPE = FilingType.PRIMARY_FILING

DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%m-%d-%Y",
    "%m/%d/%y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
)


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def classify_status(token: str) -> FilingStatus:
    """Map a free-text status token onto FilingStatus (default: active)."""
    lowered = token.lower()
    for marker, status in STATUS_RULES:
        if marker in lowered:
            return status
    return DEFAULT_STATUS


def classify_filing_type(filing_number: str, hint: str = "") -> FilingType:
    """Map a filing number (and optional type hint) onto FilingType."""
    haystack = f"{filing_number} {hint}".upper()
    for marker, filing_type in FILING_TYPE_RULES:
        if marker in haystack:
            return filing_type
    return DEFAULT_FILING_TYPE


def parse_filing_date(text: str) -> date | None:
    """Parse a filing date in any of DATE_FORMATS; None if none match."""
    if not text:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def validate(
    raw_candidates: Sequence[Any],
    extraction_errors: Iterable[str] = (),
    *,
    jurisdiction: str = "",
) -> ValidationResult:
    """Validate a batch of raw candidates.

    Args:
        raw_candidates: Dicts (or RawFilingCandidate) in page order.
        extraction_errors: Errors already collected by the extraction step;
            they lead the returned error list.
        jurisdiction: Code stamped on every ValidatedFiling.

    Returns:
        ValidationResult where validated + dropped + len(new errors)
        equals len(raw_candidates).
    """
    errors = [str(e) for e in extraction_errors]
    validated: list[ValidatedFiling] = []
    dropped = 0

    for index, raw in enumerate(raw_candidates):
        try:
            filing = _normalize(raw, jurisdiction)
        except Exception as e:
            errors.append(f"Error validating candidate {index}: {_describe(e)}")
            continue
        if filing is None:
            dropped += 1
            continue
        validated.append(filing)

    if dropped:
        logger.debug("Dropped %d candidate(s) with no filing number or debtor", dropped)

    return ValidationResult(validated=validated, validation_errors=errors, dropped=dropped)


def _normalize(raw: Any, jurisdiction: str) -> ValidatedFiling | None:
    if isinstance(raw, RawFilingCandidate):
        candidate = raw
    else:
        candidate = RawFilingCandidate.model_validate(raw)

    filing_number = normalize_whitespace(candidate.filing_number)
    debtor_name = normalize_whitespace(candidate.debtor_name)
    if not filing_number and not debtor_name:
        return None

    date_text = normalize_whitespace(candidate.filing_date)
    parsed = parse_filing_date(date_text)

    return ValidatedFiling(
        filing_number=filing_number,
        debtor_name=debtor_name,
        secured_party=normalize_whitespace(candidate.secured_party),
        collateral=normalize_whitespace(candidate.collateral),
        filing_date_raw=date_text,
        filing_date=parsed,
        date_unparsed=bool(date_text) and parsed is None,
        status=classify_status(normalize_whitespace(candidate.status)),
        filing_type=classify_filing_type(
            filing_number, normalize_whitespace(candidate.filing_type),
        ),
        jurisdiction=jurisdiction,
    )


def _describe(exc: Exception) -> str:
    """One-line description of a normalization failure."""
    if isinstance(exc, ValidationError):
        parts = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err["loc"]) or "record"
            parts.append(f"{loc}: {err['msg']}")
        return "; ".join(parts)
    return str(exc) or type(exc).__name__
