"""
CropFresh Assessment Configuration
==================================
Centralized settings using Pydantic Settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ═══════════════════════════════════════════════════════════════
    # Latency budgets
    # ═══════════════════════════════════════════════════════════════
    deadline_ms: int = Field(default=800, gt=0)
    collaborator_timeout_ms: int = Field(default=500, gt=0)
    min_retry_budget_ms: int = Field(default=20, ge=0)

    # ═══════════════════════════════════════════════════════════════
    # Confidence weights
    # ═══════════════════════════════════════════════════════════════
    fallback_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    default_confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    # ═══════════════════════════════════════════════════════════════
    # Pricing rules
    # ═══════════════════════════════════════════════════════════════
    bulk_quantity_kg: float = 100.0
    bulk_discount: float = 0.05
    high_value_price_per_kg: float = 100.0

    # ═══════════════════════════════════════════════════════════════
    # Logistics rules
    # ═══════════════════════════════════════════════════════════════
    capacity_buffer: float = 1.10
    max_driver_distance_km: float = 500.0
    premium_min_rating: float = 3.0
    max_driver_candidates: int = 5
    min_driver_candidates: int = 3

    # ═══════════════════════════════════════════════════════════════
    # Weather
    # ═══════════════════════════════════════════════════════════════
    forecast_lead_hours_high: int = 12
    forecast_lead_hours_medium: int = 24
    forecast_lead_hours_low: int = 48

    # ═══════════════════════════════════════════════════════════════
    # Data sources
    # ═══════════════════════════════════════════════════════════════
    crop_catalog_path: Optional[str] = None
    agmarknet_api_key: str = ""
    weather_api_key: str = ""
    use_mock_data: bool = True

    log_level: str = "INFO"

    @property
    def deadline_sec(self) -> float:
        return self.deadline_ms / 1000

    @property
    def collaborator_timeout_sec(self) -> float:
        return self.collaborator_timeout_ms / 1000

    def lead_hours_for(self, urgency: str) -> int:
        """Forecast lead time for an urgency level (LOW/MEDIUM/HIGH)."""
        return {
            "HIGH": self.forecast_lead_hours_high,
            "MEDIUM": self.forecast_lead_hours_medium,
            "LOW": self.forecast_lead_hours_low,
        }.get(str(getattr(urgency, "value", urgency)).upper(), self.forecast_lead_hours_medium)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
