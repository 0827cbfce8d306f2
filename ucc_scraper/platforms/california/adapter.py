"""California Secretary of State UCC adapter."""

import json

from ucc_scraper.core.config import JurisdictionConfig
from ucc_scraper.platforms.base import JurisdictionAdapter
from ucc_scraper.platforms.california.searcher import CA_BASE_URL, build_search_url
from ucc_scraper.platforms.california.selectors import (
    BLOCK_FRAME_MARKERS,
    BLOCK_TEXT_MARKERS,
    CONTENT_SELECTORS,
    FIELD_SELECTORS,
    RECORD_SELECTORS,
)

# __SELECTORS__ is replaced with a JSON object; the rest is plain JS.
_EXTRACTION_TEMPLATE = """() => {
  const config = __SELECTORS__;
  const candidates = [];
  const errors = [];
  const textOf = (element, selector) => {
    const node = element.querySelector(selector);
    return node && node.textContent ? node.textContent.trim() : '';
  };
  document.querySelectorAll(config.record).forEach((element, index) => {
    try {
      const record = {};
      for (const [field, selector] of Object.entries(config.fields)) {
        record[field] = textOf(element, selector);
      }
      if (record.filingNumber || record.debtorName) {
        candidates.push(record);
      }
    } catch (err) {
      errors.push(`Error parsing element ${index}: ${err && err.message ? err.message : String(err)}`);
    }
  });
  return { candidates, errors };
}"""


def build_extraction_script() -> str:
    selectors = {
        "record": ", ".join(RECORD_SELECTORS),
        "fields": {field: ", ".join(sels) for field, sels in FIELD_SELECTORS.items()},
    }
    return _EXTRACTION_TEMPLATE.replace("__SELECTORS__", json.dumps(selectors))


class CaliforniaAdapter(JurisdictionAdapter):
    """California SOS business search, UCC mode.

    The portal allows roughly five automated searches a minute before it
    starts serving challenges.
    """

    block_text_markers = BLOCK_TEXT_MARKERS
    block_frame_markers = BLOCK_FRAME_MARKERS

    def __init__(self) -> None:
        self._script = build_extraction_script()

    @property
    def code(self) -> str:
        return "CA"

    def default_config(self) -> JurisdictionConfig:
        return JurisdictionConfig(
            code="CA",
            base_url=CA_BASE_URL,
            requests_per_minute=5,
            timeout_ms=30000,
            max_attempts=2,
        )

    def build_search_url(self, query: str, base_url: str) -> str:
        return build_search_url(query, base_url)

    @property
    def content_selectors(self) -> tuple[str, ...]:
        return CONTENT_SELECTORS

    @property
    def extraction_script(self) -> str:
        return self._script
