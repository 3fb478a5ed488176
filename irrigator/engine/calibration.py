"""Raw sensor magnitude to moisture percentage and status."""

import math
from datetime import datetime

from irrigator.engine.models import MoistureReading
from irrigator.lib.config import CalibrationConfig, MoistureStatus
from irrigator.lib.config.constants import PERCENT_MAX, PERCENT_MIN
from irrigator.lib.exceptions import InvalidReading


def _round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; sensor percentages round .5 up
    return math.floor(value + 0.5)


def _validate_raw(raw: object) -> int | float:
    """Return ``raw`` unchanged or raise InvalidReading.

    Ints are never converted to float here: arbitrarily large payloads must
    not overflow.
    """
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise InvalidReading(raw, f"expected a number, got {type(raw).__name__}")
    if isinstance(raw, float) and not math.isfinite(raw):
        raise InvalidReading(raw, "value is not finite")
    if raw < 0:
        raise InvalidReading(raw, "value is negative")
    return raw


def classify(percent: int, cfg: CalibrationConfig) -> MoistureStatus:
    """Bucket a percentage using the configured dry/wet thresholds."""
    if percent < cfg.dry_threshold:
        return MoistureStatus.DRY
    if percent > cfg.wet_threshold:
        return MoistureStatus.WET
    return MoistureStatus.OPTIMAL


def to_percent(raw: int | float, cfg: CalibrationConfig) -> int:
    """Map a raw magnitude onto 0-100, honouring inversion.

    Raises:
        InvalidReading: If ``raw`` is non-numeric, non-finite or negative.
    """
    # Clamp before dividing; anything past full scale reads as full scale
    value = min(_validate_raw(raw), cfg.adc_max)
    mapped = cfg.adc_max - value if cfg.invert else value
    percent = _round_half_up(mapped / max(cfg.adc_max, 1) * 100)
    return max(PERCENT_MIN, min(PERCENT_MAX, percent))


def map_reading(
    raw: int | float,
    cfg: CalibrationConfig,
    observed_at: datetime,
) -> MoistureReading:
    """Calibrate a raw sensor value into a fresh MoistureReading.

    Raises:
        InvalidReading: If ``raw`` is non-numeric, non-finite or negative.
    """
    percent = to_percent(raw, cfg)
    return MoistureReading(
        percent=percent,
        status=classify(percent, cfg),
        observed_at=observed_at,
        raw=raw,
    )
