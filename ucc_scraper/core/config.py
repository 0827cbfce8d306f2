"""Configuration models and YAML loader for the UCC lien scraper."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)

DEFAULT_LAUNCH_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--window-size=1920,1080",
]


class JurisdictionConfig(BaseModel):
    """Static per-scraper configuration.

    Frozen: set once at construction and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    base_url: str
    requests_per_minute: float = Field(default=5.0, gt=0)
    timeout_ms: int = Field(default=30000, ge=1000)
    max_attempts: int = Field(default=2, ge=1, le=10)
    content_timeout_ms: int = Field(default=10000, ge=0)
    backoff_base_s: float = Field(default=2.0, ge=0.0)
    backoff_max_s: float = Field(default=30.0, ge=0.0)

    @field_validator("code")
    @classmethod
    def code_upper(cls, v: str) -> str:
        if not v.strip():
            msg = "jurisdiction code must not be empty"
            raise ValueError(msg)
        return v.strip().upper()

    @property
    def min_interval_seconds(self) -> float:
        """Minimum gap between two dispatched requests."""
        return 60.0 / self.requests_per_minute


class JurisdictionOverrides(BaseModel):
    """Optional YAML overrides on top of a jurisdiction's built-in defaults."""

    base_url: str | None = None
    requests_per_minute: float | None = Field(default=None, gt=0)
    timeout_ms: int | None = Field(default=None, ge=1000)
    max_attempts: int | None = Field(default=None, ge=1, le=10)
    content_timeout_ms: int | None = Field(default=None, ge=0)
    backoff_base_s: float | None = Field(default=None, ge=0.0)
    backoff_max_s: float | None = Field(default=None, ge=0.0)

    def apply(self, config: JurisdictionConfig) -> JurisdictionConfig:
        """Return a new, re-validated config with these overrides applied."""
        merged = config.model_dump()
        merged.update(self.model_dump(exclude_none=True))
        return JurisdictionConfig.model_validate(merged)


class BrowserConfig(BaseModel):
    """Browser session configuration (fingerprint normalization lives here)."""

    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = Field(default=1920, ge=320)
    viewport_height: int = Field(default=1080, ge=240)
    timeout_ms: int = Field(default=30000, ge=1000)
    launch_args: list[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    jurisdictions: dict[str, JurisdictionOverrides] = Field(default_factory=dict)
    log_level: str = "INFO"

    @field_validator("jurisdictions")
    @classmethod
    def upper_codes(
        cls, v: dict[str, JurisdictionOverrides],
    ) -> dict[str, JurisdictionOverrides]:
        return {code.strip().upper(): overrides for code, overrides in v.items()}

    @field_validator("log_level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"unknown log_level '{v}'"
            raise ValueError(msg)
        return level

    def overrides_for(self, code: str) -> JurisdictionOverrides:
        return self.jurisdictions.get(code.upper(), JurisdictionOverrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
