"""Jurisdiction registry with lazy loading.

Usage:
    from ucc_scraper.platforms.registry import build_scraper

    scraper = build_scraper("CA", settings)
    outcome = await scraper.search("Acme Corp")
    await scraper.close()
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

from ucc_scraper.core.config import JurisdictionConfig, Settings

if TYPE_CHECKING:
    from ucc_scraper.browser.driver import SessionDriver
    from ucc_scraper.pipeline.orchestrator import JurisdictionScraper
    from ucc_scraper.platforms.base import JurisdictionAdapter

# Lazy registry: maps jurisdiction code → (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "CA": ("ucc_scraper.platforms.california.adapter", "CaliforniaAdapter"),
}


def get_adapter(code: str) -> JurisdictionAdapter:
    """Instantiate and return the adapter for a jurisdiction code.

    Raises:
        ValueError: If the code is unknown.
    """
    key = code.strip().upper()
    if key not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown jurisdiction '{code}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[key]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls()  # type: ignore[no-any-return]


def available_jurisdictions() -> list[str]:
    """Return sorted list of registered jurisdiction codes."""
    return sorted(_REGISTRY)


def check_overrides(settings: Settings) -> None:
    """Raise ValueError if settings override an unregistered jurisdiction."""
    unknown = sorted(set(settings.jurisdictions) - set(_REGISTRY))
    if unknown:
        msg = f"Unknown jurisdiction(s) in config: {', '.join(unknown)}"
        raise ValueError(msg)


def resolve_config(adapter: JurisdictionAdapter, settings: Settings) -> JurisdictionConfig:
    """Adapter defaults with any YAML overrides applied."""
    return settings.overrides_for(adapter.code).apply(adapter.default_config())


def build_scraper(
    code: str,
    settings: Settings | None = None,
    driver: SessionDriver | None = None,
) -> JurisdictionScraper:
    """Build a ready-to-use scraper for a jurisdiction.

    When no driver is given, a PatchrightDriver is created from
    ``settings.browser``; the scraper owns it and closes it on close().
    """
    from ucc_scraper.pipeline.orchestrator import JurisdictionScraper

    settings = settings or Settings()
    adapter = get_adapter(code)
    config = resolve_config(adapter, settings)
    if driver is None:
        from ucc_scraper.browser.session import PatchrightDriver

        driver = PatchrightDriver(settings.browser)
    return JurisdictionScraper(adapter, config, driver)
