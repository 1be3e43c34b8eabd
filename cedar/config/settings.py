"""
Configuration Management for Cedar Budget

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The LBP exchange rate is NOT configuration - it is a fixed constant in
cedar.budget.currency and cannot be changed at runtime.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini model configuration for the assistant and media studio."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )

    # Chat models, one per assistant mode
    fast_model: str = Field(
        default="gemini-flash-lite-latest",
        description="Model for quick answers"
    )
    smart_model: str = Field(
        default="gemini-3-pro-preview",
        description="Default chat model"
    )
    genius_model: str = Field(
        default="gemini-3-pro-preview",
        description="Model for long, considered answers"
    )
    search_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used with Google Search grounding"
    )

    # Task models
    receipt_model: str = Field(
        default="gemini-3-pro-preview",
        description="Vision model for receipt analysis"
    )
    tts_model: str = Field(
        default="gemini-2.5-flash-preview-tts",
        description="Text-to-speech model"
    )
    tts_voice: str = Field(
        default="Kore",
        description="Prebuilt voice for speech synthesis"
    )
    image_model: str = Field(
        default="gemini-3-pro-image-preview",
        description="Image generation model"
    )
    video_model: str = Field(
        default="veo-3.1-fast-generate-preview",
        description="Video generation model"
    )

    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature for chat"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Receipt upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum receipt upload size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp",
        description="Comma-separated list of supported receipt formats"
    )
    min_receipt_quality_score: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Minimum receipt image quality score to send for analysis"
    )

    # Validation thresholds
    large_amount_warning_usd: float = Field(
        default=100000.0,
        gt=0,
        description="Reference amount above which a transaction is flagged"
    )

    # Dashboard
    top_expense_count: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many expense categories the summary ranks"
    )

    # Video generation polling
    video_poll_interval_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="Seconds between video status checks"
    )
    video_max_poll_attempts: int = Field(
        default=60,
        ge=1,
        description="Status checks before video generation times out"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept standard logging level names."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the ledger works without an API key

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries describing each failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
