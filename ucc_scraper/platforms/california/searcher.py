"""California SOS search URL builder.

Pure functions, no browser dependency.
"""

from urllib.parse import quote, urlencode

CA_BASE_URL = "https://businesssearch.sos.ca.gov/"

# Characters left unescaped, matching JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "!'()*"


def build_search_url(query: str, base_url: str = CA_BASE_URL) -> str:
    """Build the UCC search URL for a company name.

    Args:
        query: Search text (will be percent-encoded; spaces become %20).
        base_url: Portal root, normally CA_BASE_URL.

    Returns:
        Fully qualified search URL.
    """
    params = {
        "SearchType": "UCC",
        "SearchCriteria": query,
    }
    return f"{base_url}?{urlencode(params, safe=_URI_COMPONENT_SAFE, quote_via=quote)}"
