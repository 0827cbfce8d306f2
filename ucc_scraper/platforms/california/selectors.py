"""California SOS DOM selector constants with fallbacks.

Each constant is a tuple; the extraction script joins them into one CSS
selector list so any of the variants matches.
"""

# --- Filing record container ---
RECORD_SELECTORS: tuple[str, ...] = (
    ".ucc-filing",
    "tr.filing-row",
    ".result-item",
)

# --- Fields inside a record (keys are RawFilingCandidate aliases) ---
FIELD_SELECTORS: dict[str, tuple[str, ...]] = {
    "filingNumber": (".filing-number", ".filing-id"),
    "debtorName": (".debtor-name", ".debtor"),
    "securedParty": (".secured-party", ".creditor"),
    "filingDate": (".filing-date", ".date"),
    "collateral": (".collateral",),
    "status": (".status",),
    "filingType": (".filing-type",),
}

# --- Content signals (results / no results / challenge) ---
RESULTS_SELECTORS: tuple[str, ...] = (".search-results",)
NO_RESULTS_SELECTORS: tuple[str, ...] = (".no-results",)
CHALLENGE_SELECTORS: tuple[str, ...] = (".captcha", 'iframe[src*="recaptcha"]')

CONTENT_SELECTORS: tuple[str, ...] = (
    RESULTS_SELECTORS + NO_RESULTS_SELECTORS + CHALLENGE_SELECTORS
)

# --- Block markers ---
BLOCK_TEXT_MARKERS: tuple[str, ...] = ("captcha", "not a robot", "are you a robot")
BLOCK_FRAME_MARKERS: tuple[str, ...] = ("recaptcha", "hcaptcha")
