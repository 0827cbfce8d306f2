"""Core data models for the UCC lien scraper."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_QUERY_LENGTH = 200


class FilingStatus(str, Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"
    LAPSED = "lapsed"


class FilingType(str, Enum):
    PRIMARY_FILING = "UCC-1"
    AMENDMENT = "UCC-3"


class SearchQuery(BaseModel):
    """Free-text search term (usually a company name)."""

    text: str = Field(max_length=MAX_QUERY_LENGTH)

    @field_validator("text", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("text")
    @classmethod
    def text_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "query must not be empty"
            raise ValueError(msg)
        return v


class RawFilingCandidate(BaseModel):
    """Unvalidated record as emitted by the in-page extraction script.

    Keys arrive in camelCase (``filingNumber``) from the browser; snake_case
    is accepted too. Values must be strings.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    filing_number: str = ""
    debtor_name: str = ""
    secured_party: str = ""
    filing_date: str = ""
    collateral: str = ""
    status: str = ""
    filing_type: str = ""


class ValidatedFiling(BaseModel):
    """A filing after normalization and enum coercion.

    Frozen: produced once per search and handed to the caller as-is.
    """

    model_config = ConfigDict(frozen=True)

    filing_number: str = ""
    debtor_name: str = ""
    secured_party: str = ""
    collateral: str = ""
    filing_date_raw: str = ""
    filing_date: date | None = None
    date_unparsed: bool = False
    status: FilingStatus = FilingStatus.ACTIVE
    filing_type: FilingType = FilingType.PRIMARY_FILING
    jurisdiction: str = ""


class ValidationResult(BaseModel):
    """Validator output: well-formed filings plus per-record error strings."""

    validated: list[ValidatedFiling] = Field(default_factory=list)
    validation_errors: list[str] = Field(default_factory=list)
    dropped: int = 0


class PageState(BaseModel):
    """Snapshot of the page used for block detection."""

    text: str = ""
    frames: list[str] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    """Raw candidates and per-element errors from one extraction pass."""

    candidates: list[Any] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string in UTC."""
    return datetime.now(timezone.utc).isoformat()


class SearchOutcome(BaseModel):
    """Result of one ``search`` call, successful or not."""

    model_config = ConfigDict(frozen=True)

    success: bool
    jurisdiction: str
    query: str
    filings: list[ValidatedFiling] = Field(default_factory=list)
    search_url: str = ""
    timestamp: str = Field(default_factory=utc_timestamp)
    retry_count: int = Field(default=0, ge=0)
    validation_errors: list[str] | None = None
    error: str | None = None
    blocked: bool = False
    degraded: bool = False
