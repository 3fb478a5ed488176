"""Decide whether the pump should be running right now."""

from irrigator.engine.models import MoistureReading, TelemetrySample
from irrigator.lib.config import PumpSettings


def decide(
    reading: MoistureReading | None,
    sample: TelemetrySample,
    settings: PumpSettings,
) -> bool:
    """Return True if the pump should run for this sample.

    The device's auto flag selects the mode, not ``settings.auto_mode``.
    In auto mode the pump runs while the soil is below the moisture
    threshold; with no reading yet it stays off. In manual mode it
    follows the manual flag.
    """
    if sample.auto_flag:
        if reading is None:
            return False
        return reading.percent < settings.moisture_threshold
    return sample.manual_flag
