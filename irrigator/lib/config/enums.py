"""Enumerations for the irrigation controller."""

from enum import StrEnum


class MoistureStatus(StrEnum):
    """Soil classification derived from the calibrated percentage."""

    DRY = "dry"
    OPTIMAL = "optimal"
    WET = "wet"


class PumpPhase(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    MAINTENANCE = "maintenance"
    ERROR = "error"


class VirtualPin(StrEnum):
    """Bridge virtual pins."""

    MOISTURE = "V0"
    MANUAL_CONTROL = "V1"
    AUTO_CONTROL = "V2"


class RunReason(StrEnum):
    """Why a pump run started."""

    AUTO = "auto"
    MANUAL = "manual"


class Advisory(StrEnum):
    """Non-fatal conditions reported alongside a pump transition."""

    RUN_LIMIT_REACHED = "run_limit_reached"
    POWER_LIMIT_EXCEEDED = "power_limit_exceeded"
