"""Shared pytest fixtures for the test suite."""

import logging
from datetime import UTC, datetime, timedelta

import pytest

from irrigator.engine.models import TelemetrySample
from irrigator.lib.config import CalibrationConfig, PumpSettings, Settings
from irrigator.lib.config.testing import set_settings


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the irrigator namespace."""
    caplog.set_level(logging.INFO, logger="irrigator")


@pytest.fixture(autouse=True)
def test_settings():
    """Use mock-bridge settings so no test needs a real token.

    Reset after each test to avoid cross-test pollution.
    """
    settings = Settings(mock_sensors=True)
    set_settings(settings)
    yield settings
    set_settings(None)


@pytest.fixture
def frozen_time():
    """Return a fixed datetime for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def later(frozen_time):
    """Return a function giving frozen_time plus N seconds."""

    def _later(seconds: float) -> datetime:
        return frozen_time + timedelta(seconds=seconds)

    return _later


@pytest.fixture
def calibration():
    """Calibration used throughout the engine tests (10-bit ADC)."""
    return CalibrationConfig(
        adc_max=1023, invert=False, dry_threshold=25, wet_threshold=70
    )


@pytest.fixture
def pump_settings():
    """Default pump policy: 30% threshold, three runs a day."""
    return PumpSettings(moisture_threshold=30, max_daily_runs=3)


@pytest.fixture
def make_sample():
    """Build TelemetrySamples with sensible defaults."""

    def _make(
        raw: int | float = 512,
        *,
        manual: bool = False,
        auto: bool = False,
        online: bool = True,
    ) -> TelemetrySample:
        return TelemetrySample(
            raw_moisture=raw,
            manual_flag=manual,
            auto_flag=auto,
            device_online=online,
        )

    return _make
