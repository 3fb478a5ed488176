"""Domain models for the irrigation reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from irrigator.lib.config import (
    POWER_DRAW_IDLE_AMPS,
    POWER_DRAW_RUNNING_AMPS,
    Advisory,
    MoistureStatus,
    PumpPhase,
    RunReason,
    VirtualPin,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True, slots=True)
class TelemetrySample:
    """One polled snapshot of the bridge's pins."""

    raw_moisture: int | float
    manual_flag: bool
    auto_flag: bool
    device_online: bool = True


@dataclass(frozen=True, slots=True)
class MoistureReading:
    """A calibrated moisture value.

    ``stale`` is set when the reading was carried over from an earlier
    sample because the latest one was invalid or the device was offline.
    """

    percent: int
    status: MoistureStatus
    observed_at: datetime
    raw: int | float
    stale: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "percent": self.percent,
            "status": self.status,
            "raw": self.raw,
            "observed_at": self.observed_at.isoformat(),
            "stale": self.stale,
        }


@dataclass(frozen=True, slots=True)
class ControlCommand:
    """A pin write to forward to the bridge."""

    pin: VirtualPin
    value: bool

    def __str__(self) -> str:
        return f"{self.pin}={int(self.value)}"


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """A pump run. ``ended_at`` is None while the run is still open."""

    started_at: datetime
    reason: RunReason
    ended_at: datetime | None = None
    duration_seconds: int = 0

    def close(self, ended_at: datetime) -> HistoryEntry:
        """Return a completed copy of this entry ending at ``ended_at``."""
        duration = max(0, int((ended_at - self.started_at).total_seconds()))
        return HistoryEntry(
            started_at=self.started_at,
            reason=self.reason,
            ended_at=ended_at,
            duration_seconds=duration,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "ended_at": _iso(self.ended_at),
            "duration_seconds": self.duration_seconds,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class PumpState:
    """Immutable snapshot of the pump. Only the pump state machine builds these."""

    phase: PumpPhase = PumpPhase.IDLE
    total_runtime_seconds: int = 0
    daily_runs: int = 0
    last_run_started_at: datetime | None = None
    history: tuple[HistoryEntry, ...] = ()
    pending_run: HistoryEntry | None = None
    error_reason: str | None = None

    @property
    def running(self) -> bool:
        return self.phase == PumpPhase.RUNNING

    @property
    def power_draw_amps(self) -> float:
        """Estimated current draw for the current phase."""
        return POWER_DRAW_RUNNING_AMPS if self.running else POWER_DRAW_IDLE_AMPS

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "running": self.running,
            "total_runtime_seconds": self.total_runtime_seconds,
            "daily_runs": self.daily_runs,
            "last_run_started_at": _iso(self.last_run_started_at),
            "power_draw_amps": self.power_draw_amps,
            "history": [entry.to_dict() for entry in self.history],
            "error_reason": self.error_reason,
        }


@dataclass(frozen=True, slots=True)
class PumpTransitionResult:
    """Outcome of one pump state machine step."""

    state: PumpState
    advisories: tuple[Advisory, ...] = ()
    command: ControlCommand | None = None

    @property
    def run_limit_reached(self) -> bool:
        return Advisory.RUN_LIMIT_REACHED in self.advisories


@dataclass(frozen=True, slots=True)
class IrrigationState:
    """Everything downstream consumers need after a tick."""

    reading: MoistureReading | None
    pump: PumpState
    online: bool
    advisories: tuple[Advisory, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "reading": self.reading.to_dict() if self.reading else None,
            "pump": self.pump.to_dict(),
            "online": self.online,
            "advisories": list(self.advisories),
        }
