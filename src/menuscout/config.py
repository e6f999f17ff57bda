"""Configuration management using pydantic-settings."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MENUSCOUT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Job store (required – there is no sensible default broker address)
    database_url: str = Field(
        ...,
        description="SQLAlchemy URL of the job store, e.g. postgresql+psycopg://...",
    )

    # Target site
    site_base_url: str = Field(
        default="https://www.talabat.com",
        description="Base URL of the delivery site",
    )
    country_slug: str = Field(
        default="oman",
        description="Country path segment used in listing and restaurant URLs",
    )
    start_url: str = Field(
        default="https://www.talabat.com/oman/city/muscat",
        description="City landing page or an area listing URL to start from",
    )
    source_name: str = Field(
        default="Talabat",
        description="Identifier reported as the result source",
    )
    area_text: str = Field(
        default="Al Mawalih South , Al Mazoon Street",
        description="Delivery area typed into the landing page location search",
    )
    fallback_area: str = Field(
        default="Bawshar",
        description="Area typed when a restaurant page asks to re-confirm delivery area",
    )

    # Playwright settings
    headless: bool = Field(
        default=True,
        description="Run browser in headless mode",
    )
    browser_timeout: int = Field(
        default=60000,
        description="Timeout for the initial page load in milliseconds",
    )
    navigation_timeout: int = Field(
        default=30000,
        description="Timeout for navigation after clicking a restaurant link (ms)",
    )
    area_wait_timeout: int = Field(
        default=45000,
        description="Timeout waiting for redirect to an area listing page (ms)",
    )
    results_wait_timeout: int = Field(
        default=20000,
        description="Timeout waiting for restaurant search results (ms)",
    )
    menu_wait_timeout: int = Field(
        default=30000,
        description="Timeout waiting for menu categories to render (ms)",
    )
    selector_timeout: int = Field(
        default=3000,
        description="Per-candidate timeout for required inputs (ms)",
    )
    probe_timeout: int = Field(
        default=1500,
        description="Per-candidate timeout for optional controls (ms)",
    )
    typing_delay: int = Field(
        default=20,
        description="Delay between key presses when typing (ms)",
    )

    # Worker settings
    job_timeout_seconds: float = Field(
        default=300.0,
        description="Outermost bound on a single job run",
    )
    visibility_timeout_seconds: float = Field(
        default=600.0,
        description="Active jobs claimed longer ago than this are considered abandoned",
    )
    max_attempts: int = Field(
        default=3,
        description="Claims allowed before an abandoned job is failed instead of requeued",
    )
    poll_interval_seconds: float = Field(
        default=2.0,
        description="Sleep between polls when the queue is empty",
    )
    worker_concurrency: int = Field(
        default=1,
        description="Number of concurrent job loops per worker process",
    )

    @property
    def restaurant_path(self) -> str:
        """Path fragment that identifies a restaurant detail link."""
        return f"/{self.country_slug}/restaurant/"

    @property
    def area_path_pattern(self) -> str:
        """Regex matching the path of an area listing page."""
        return rf"/{self.country_slug}/restaurants/\d+/[\w-]+"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
