"""Custom exceptions for the irrigation controller.

Only configuration errors are fatal. Everything raised during a poll cycle
is recovered by the engine or the poller and never stops the loop.
"""


class IrrigatorError(Exception):
    """Base exception for all application errors."""


class InvalidReading(IrrigatorError):
    """Raised when a raw moisture value cannot be calibrated.

    The engine keeps the previous reading (marked stale) instead of
    propagating this.
    """

    def __init__(self, raw: object, reason: str) -> None:
        self.raw = raw
        super().__init__(f"Invalid raw moisture {raw!r}: {reason}")


class InvalidConfiguration(IrrigatorError):
    """Raised when calibration or pump settings fail validation at load."""


class TelemetryError(IrrigatorError):
    """Raised when the bridge could not be polled for a full sample."""
