"""Irrigation control reconciliation engine.

Pure, synchronous domain logic: calibration, mode arbitration and the pump
state machine, composed by ReconciliationEngine.
"""

from .arbiter import decide
from .calibration import classify, map_reading, to_percent
from .models import (
    ControlCommand,
    HistoryEntry,
    IrrigationState,
    MoistureReading,
    PumpState,
    PumpTransitionResult,
    TelemetrySample,
)
from .pump import PumpStateMachine
from .reconcile import ReconciliationEngine

__all__ = [
    # Models
    "ControlCommand",
    "HistoryEntry",
    "IrrigationState",
    "MoistureReading",
    "PumpState",
    "PumpTransitionResult",
    "TelemetrySample",
    # Components
    "PumpStateMachine",
    "ReconciliationEngine",
    "classify",
    "decide",
    "map_reading",
    "to_percent",
]
