"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from portfolio_analytics import constants


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Heatmap merge
    heatmap_max_cells: int = Field(
        default=constants.HEATMAP_MAX_CELLS, ge=0, description="Cells retained per daily heatmap"
    )
    heatmap_value_weight: float = Field(
        default=constants.HEATMAP_VALUE_WEIGHT,
        ge=0.0,
        le=1.0,
        description="Relevance weight of normalized cell intensity",
    )
    heatmap_ratio_weight: float = Field(
        default=constants.HEATMAP_RATIO_WEIGHT,
        ge=0.0,
        le=1.0,
        description="Relevance weight of normalized intensity per visit",
    )

    # Baseline / z-scores
    baseline_window_days: int = Field(
        default=constants.BASELINE_WINDOW_DAYS, ge=1, description="Prior days used as baseline"
    )

    # Quality visit thresholds
    quality_ttfi_min_ms: int = Field(
        default=constants.QUALITY_TTFI_MIN_MS,
        ge=0,
        description="TTFI strictly above this marks a quality visit",
    )
    quality_scroll_score_min: int = Field(
        default=constants.QUALITY_SCROLL_SCORE_MIN, ge=0, description="Minimum scroll score"
    )
    quality_scroll_time_min: int = Field(
        default=constants.QUALITY_SCROLL_TIME_MIN, ge=0, description="Minimum scroll time"
    )

    # Legacy EMA merge
    ema_alpha: float = Field(
        default=constants.EMA_ALPHA, gt=0.0, le=1.0, description="EMA smoothing factor"
    )

    # Heatmap blob storage
    heatmap_blob_version: int = Field(
        default=constants.HEATMAP_BLOB_VERSION, ge=1, le=255, description="Blob format version"
    )
    heatmap_blob_checksum: bool = Field(default=False, description="Append CRC32 to heatmap blobs")
    heatmap_index_bits: int = Field(default=constants.HEATMAP_INDEX_BITS, description="Index width")
    heatmap_value_bits: int = Field(default=constants.HEATMAP_VALUE_BITS, description="Value width")
    heatmap_count_bits: int = Field(default=constants.HEATMAP_COUNT_BITS, description="Count width")

    # Units
    time_unit_ms: int = Field(
        default=constants.TIME_UNIT_MS, ge=1, description="Milliseconds per stored time unit"
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")
    testing: bool = Field(default=False, description="Testing mode")

    @field_validator("heatmap_index_bits", "heatmap_value_bits", "heatmap_count_bits")
    @classmethod
    def validate_bit_width(cls, v: int) -> int:
        """Bit widths must be packable by the fixed-width codec."""
        if not 1 <= v <= 32:
            raise ValueError("Bit width must be between 1 and 32")
        return v

    @model_validator(mode="after")
    def validate_heatmap_weights(self) -> "Settings":
        """Relevance weights must sum to 1.0."""
        total = self.heatmap_value_weight + self.heatmap_ratio_weight
        if abs(total - 1.0) > 0.01:
            raise ValueError(f"Heatmap weights must sum to 1.0, got {total:.4f}")
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
