"""Abstract base class for jurisdiction adapters.

An adapter holds everything that differs between filing registries: the URL
shape, the selectors, the in-page extraction script, and the block policy.
The retry/rate-limit/validate pipeline lives in the orchestrator and is
shared by all of them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from ucc_scraper.core.config import JurisdictionConfig
from ucc_scraper.core.schemas import ExtractionResult, PageState

logger = logging.getLogger(__name__)

# Collects the visible text and every iframe src for block detection.
PAGE_STATE_SCRIPT = """() => ({
  text: document.body ? document.body.innerText : '',
  frames: Array.from(document.querySelectorAll('iframe')).map((f) => f.src || '')
})"""


class JurisdictionAdapter(ABC):
    """Base class that every jurisdiction adapter must implement."""

    # Lower-cased substrings of the page text that indicate a challenge page.
    block_text_markers: tuple[str, ...] = ("captcha", "not a robot")
    # Substrings of iframe src values that indicate a challenge widget.
    block_frame_markers: tuple[str, ...] = ("recaptcha",)

    page_state_script: str = PAGE_STATE_SCRIPT
    wait_until: str = "networkidle"

    @property
    @abstractmethod
    def code(self) -> str:
        """Jurisdiction code (e.g. 'CA')."""

    @abstractmethod
    def default_config(self) -> JurisdictionConfig:
        """Built-in configuration for this jurisdiction."""

    @abstractmethod
    def build_search_url(self, query: str, base_url: str) -> str:
        """Build the search URL for an already-validated query. Pure."""

    @property
    @abstractmethod
    def content_selectors(self) -> tuple[str, ...]:
        """Selectors signalling results, no results, or a challenge."""

    @property
    @abstractmethod
    def extraction_script(self) -> str:
        """JS function returning ``{candidates: [...], errors: [...]}``."""

    def detect_block(self, state: PageState) -> str | None:
        """Return the reason the page is a challenge page, or None."""
        text = state.text.lower()
        for marker in self.block_text_markers:
            if marker in text:
                return f"page text mentions '{marker}'"
        for src in state.frames:
            lowered = src.lower()
            for marker in self.block_frame_markers:
                if marker in lowered:
                    return f"{marker} iframe present"
        return None

    def parse_page_state(self, payload: Any) -> PageState:
        """Coerce the page-state evaluate payload; malformed -> empty state."""
        if not isinstance(payload, dict):
            logger.debug("Unexpected page state payload: %r", type(payload))
            return PageState()
        text = payload.get("text")
        frames = payload.get("frames")
        return PageState(
            text=text if isinstance(text, str) else "",
            frames=[f for f in frames if isinstance(f, str)] if isinstance(frames, list) else [],
        )

    def parse_extraction(self, payload: Any) -> ExtractionResult:
        """Map the extraction payload to candidate dicts plus errors.

        Never raises: a malformed payload becomes a single extraction error.
        """
        if not isinstance(payload, dict):
            return ExtractionResult(
                errors=[f"Unexpected extraction payload: {type(payload).__name__}"],
            )
        candidates = payload.get("candidates", [])
        errors = payload.get("errors", [])
        result = ExtractionResult()
        if isinstance(candidates, list):
            result.candidates = [self.map_record(c) for c in candidates]
        else:
            result.errors.append("Extraction payload 'candidates' is not a list")
        if isinstance(errors, list):
            result.errors.extend(str(e) for e in errors)
        return result

    def map_record(self, record: Any) -> Any:
        """Rename jurisdiction-specific keys to RawFilingCandidate fields."""
        return record
