"""Centralized configuration for the irrigation controller.

This package provides:
- Enums for pump phases, moisture status, virtual pins and advisories
- Pydantic models for calibration, pump policy and service settings
- Cached access to environment-backed settings
"""

from .constants import (
    HISTORY_CAPACITY,
    POWER_DRAW_IDLE_AMPS,
    POWER_DRAW_RUNNING_AMPS,
)
from .enums import (
    Advisory,
    MoistureStatus,
    PumpPhase,
    RunReason,
    VirtualPin,
)
from .settings import (
    BlynkSettings,
    CalibrationConfig,
    EventBusSettings,
    PollingSettings,
    PumpSettings,
    Settings,
    get_settings,
    load_settings,
)

__all__ = [
    # Enums
    "Advisory",
    "MoistureStatus",
    "PumpPhase",
    "RunReason",
    "VirtualPin",
    # Settings models
    "BlynkSettings",
    "CalibrationConfig",
    "EventBusSettings",
    "PollingSettings",
    "PumpSettings",
    "Settings",
    # Constants
    "HISTORY_CAPACITY",
    "POWER_DRAW_IDLE_AMPS",
    "POWER_DRAW_RUNNING_AMPS",
    # Functions
    "get_settings",
    "load_settings",
]
