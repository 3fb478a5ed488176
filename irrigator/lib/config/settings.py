"""Settings models and configuration loading for the irrigation controller."""

from functools import cached_property, lru_cache
from typing import Annotated, Any, Self

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    ValidationError,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from irrigator.lib.config.constants import (
    ADC_MAX_LIMIT,
    DEFAULT_BLYNK_BASE_URL,
    PERCENT_MAX,
    PERCENT_MIN,
)
from irrigator.lib.exceptions import InvalidConfiguration

_Percent = Annotated[int, Field(ge=PERCENT_MIN, le=PERCENT_MAX)]


def _parse_bool(v: Any) -> bool:
    """Parse boolean from string '1'/'0' or actual bool."""
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "on")
    return bool(v)


def _validate_http_url(v: str) -> str:
    """Validate HTTP URL format and drop any trailing slash."""
    HttpUrl(v)
    return v.rstrip("/")


_BoolFromStr = Annotated[bool, BeforeValidator(_parse_bool)]
_HttpUrlStr = Annotated[str, AfterValidator(_validate_http_url)]


class CalibrationConfig(BaseModel):
    """Raw sensor range and the percentage bands used for classification."""

    model_config = ConfigDict(frozen=True)

    adc_max: int = Field(default=1023, gt=0, le=ADC_MAX_LIMIT)
    invert: bool = False
    dry_threshold: _Percent = 20
    wet_threshold: _Percent = 80

    @model_validator(mode="after")
    def check_threshold_order(self) -> Self:
        if self.dry_threshold >= self.wet_threshold:
            raise ValueError(
                f"dry_threshold ({self.dry_threshold}) must be less than "
                f"wet_threshold ({self.wet_threshold})"
            )
        return self


class PumpSettings(BaseModel):
    """Pump policy and safety limits.

    ``auto_mode`` and ``pump_duration_seconds`` are informational: the
    device's own auto flag decides the mode and the device times its runs.
    """

    model_config = ConfigDict(frozen=True)

    auto_mode: bool = True
    moisture_threshold: _Percent = 30
    pump_duration_seconds: int = Field(default=300, gt=0)
    max_daily_runs: int = Field(default=3, gt=0)
    power_limit_amps: float = Field(default=5.0, gt=0)


class BlynkSettings(BaseModel):
    """Bridge connection settings."""

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BLYNK_BASE_URL
    token: SecretStr = SecretStr("")
    timeout_sec: float = 10.0
    max_retries: int = 3
    initial_backoff_sec: float = 2.0


class PollingSettings(BaseModel):
    """Polling service settings."""

    model_config = ConfigDict(frozen=True)

    frequency_sec: int = 2


class EventBusSettings(BaseModel):
    """Redis event bus settings."""

    model_config = ConfigDict(frozen=True)

    redis_url: str = "redis://localhost:6379/0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sensors
    mock_sensors: _BoolFromStr = False

    # Bridge
    blynk_token: SecretStr = SecretStr("")
    blynk_base_url: _HttpUrlStr = DEFAULT_BLYNK_BASE_URL
    blynk_timeout_sec: float = Field(default=10.0, gt=0)
    command_max_retries: int = Field(default=3, ge=1)
    command_initial_backoff_sec: float = Field(default=2.0, ge=0)

    # Polling
    poll_frequency_sec: int = Field(default=2, ge=1)

    # Calibration
    adc_max: int = Field(default=1023, gt=0, le=ADC_MAX_LIMIT)
    invert_moisture: _BoolFromStr = False
    dry_threshold: _Percent = 20
    wet_threshold: _Percent = 80

    # Pump
    auto_mode: _BoolFromStr = True
    moisture_threshold: _Percent = 30
    pump_duration_sec: int = Field(default=300, gt=0)
    max_daily_runs: int = Field(default=3, gt=0)
    power_limit_amps: float = Field(default=5.0, gt=0)

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    @cached_property
    def calibration(self) -> CalibrationConfig:
        """Get calibration settings as nested object."""
        return CalibrationConfig(
            adc_max=self.adc_max,
            invert=self.invert_moisture,
            dry_threshold=self.dry_threshold,
            wet_threshold=self.wet_threshold,
        )

    @cached_property
    def pump(self) -> PumpSettings:
        """Get pump policy settings as nested object."""
        return PumpSettings(
            auto_mode=self.auto_mode,
            moisture_threshold=self.moisture_threshold,
            pump_duration_seconds=self.pump_duration_sec,
            max_daily_runs=self.max_daily_runs,
            power_limit_amps=self.power_limit_amps,
        )

    @cached_property
    def blynk(self) -> BlynkSettings:
        """Get bridge connection settings."""
        return BlynkSettings(
            base_url=self.blynk_base_url,
            token=self.blynk_token,
            timeout_sec=self.blynk_timeout_sec,
            max_retries=self.command_max_retries,
            initial_backoff_sec=self.command_initial_backoff_sec,
        )

    @cached_property
    def polling(self) -> PollingSettings:
        """Get polling settings."""
        return PollingSettings(frequency_sec=self.poll_frequency_sec)

    @cached_property
    def eventbus(self) -> EventBusSettings:
        """Get event bus settings."""
        return EventBusSettings(redis_url=self.redis_url)

    @model_validator(mode="after")
    def validate_settings(self) -> Self:
        """Validate cross-field configuration constraints."""
        errors: list[str] = []

        if self.dry_threshold >= self.wet_threshold:
            errors.append(
                f"DRY_THRESHOLD ({self.dry_threshold}) must be less than "
                f"WET_THRESHOLD ({self.wet_threshold})"
            )

        if not self.mock_sensors and not self.blynk_token.get_secret_value():
            errors.append("BLYNK_TOKEN is not set (or set MOCK_SENSORS=1)")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n  - "
                + "\n  - ".join(errors)
            )

        return self


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Raises:
        InvalidConfiguration: If any value or cross-field constraint fails.
    """
    try:
        return Settings()
    except ValidationError as e:
        raise InvalidConfiguration(str(e)) from e


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    return load_settings()


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, otherwise loads from environment
    variables (cached after first load). For testing, use set_settings()
    from irrigator.lib.config.testing to override.
    """
    if _settings_override is not None:
        return _settings_override
    return _load_settings()
