from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NavigationSettings(BaseSettings):
    arrival_threshold_m: float = Field(
        default=50.0,
        gt=0.0,
        le=500.0,
        description="Remaining distance in meters below which the trip counts as arrived",
    )
    off_route_threshold_m: float = Field(
        default=100.0,
        gt=0.0,
        description="Distance from the nearest route vertex beyond which a sample is off-route",
    )

    # Simulated vehicle clock
    simulation_base_interval_seconds: float = Field(default=1.0, gt=0.0, le=60.0)
    default_speed_multiplier: int = Field(default=1, ge=1)
    allowed_speed_multipliers: tuple[int, ...] = (1, 2, 5, 10)

    # Current-speed smoothing: new = old * (1 - factor) + measured * factor
    speed_smoothing_factor: float = Field(default=0.3, gt=0.0, le=1.0)
    max_speed_kph: float = Field(default=120.0, gt=0.0)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["text", "json"] = "text"

    model_config = SettingsConfigDict(env_prefix="NAV_")

    @field_validator("allowed_speed_multipliers")
    @classmethod
    def validate_multipliers(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v or any(m < 1 for m in v):
            raise ValueError("Speed multipliers must be positive integers")
        return tuple(sorted(set(v)))

    @model_validator(mode="after")
    def validate_default_multiplier(self) -> "NavigationSettings":
        if self.default_speed_multiplier not in self.allowed_speed_multipliers:
            raise ValueError(
                f"Default speed multiplier {self.default_speed_multiplier} is not one of "
                f"{self.allowed_speed_multipliers}"
            )
        return self


class RoutingSettings(BaseSettings):
    base_url: str = "https://maps.vietmap.vn/api"
    api_key: str = ""
    timeout_seconds: float = Field(default=5.0, gt=0.0)
    default_vehicle: Literal["car", "bike", "foot", "motorcycle"] = "car"
    locale: str = "vi"

    max_retries: int = Field(default=3, ge=1, le=10)
    retry_base_delay: float = Field(default=0.5, ge=0.1, le=5.0)
    retry_multiplier: float = Field(default=2.0, ge=1.0, le=5.0)

    model_config = SettingsConfigDict(env_prefix="ROUTING_")

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Routing base URL must start with http:// or https://")
        return v.rstrip("/")


class Settings(BaseSettings):
    navigation: NavigationSettings = Field(default_factory=NavigationSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables."""
    return Settings()
