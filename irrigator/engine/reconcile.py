"""Reconciliation engine: one telemetry sample in, one irrigation state out.

Composes calibration, arbitration and the pump state machine. The engine
does no I/O and has no timers; a poller calls tick() once per cycle and
forwards the returned command to the bridge.
"""

import threading
from dataclasses import replace
from datetime import datetime

from irrigator.engine.arbiter import decide
from irrigator.engine.calibration import map_reading
from irrigator.engine.models import (
    ControlCommand,
    IrrigationState,
    MoistureReading,
    PumpState,
    TelemetrySample,
)
from irrigator.engine.pump import PumpStateMachine
from irrigator.lib.config import CalibrationConfig, PumpSettings
from irrigator.lib.exceptions import InvalidReading
from irrigator.logging import get_logger

logger = get_logger("engine.reconcile")


class ReconciliationEngine:
    """Drives the pump from telemetry samples.

    tick() calls are serialized; the pump state is not designed for
    concurrent mutation.
    """

    def __init__(self, machine: PumpStateMachine | None = None) -> None:
        self._machine = machine or PumpStateMachine()
        self._lock = threading.Lock()
        self._last_reading: MoistureReading | None = None
        self._last_tick_at: datetime | None = None
        self._maintenance_requested = False
        self._device_auto = False

    @property
    def state(self) -> PumpState:
        return self._machine.state

    @property
    def last_reading(self) -> MoistureReading | None:
        return self._last_reading

    @property
    def maintenance_requested(self) -> bool:
        return self._maintenance_requested

    def tick(
        self,
        sample: TelemetrySample,
        now: datetime,
        cfg: CalibrationConfig,
        settings: PumpSettings,
        *,
        elapsed_seconds: int | None = None,
    ) -> tuple[IrrigationState, ControlCommand | None]:
        """Reconcile one sample.

        Args:
            sample: Telemetry polled from the bridge.
            now: Tick timestamp. Must not decrease between calls.
            cfg: Calibration used to map the raw moisture value.
            settings: Pump policy and limits.
            elapsed_seconds: Runtime to accrue if the pump keeps running.
                Derived from the previous tick's ``now`` when omitted.

        Returns:
            The new irrigation state and the command to forward, if any.
        """
        with self._lock:
            elapsed = self._elapsed(now, elapsed_seconds)
            reading = self._reconcile_reading(sample, now, cfg)

            if sample.device_online:
                desired = decide(reading, sample, settings)
                self._device_auto = sample.auto_flag
            else:
                # Flags from an unreachable device are not trusted
                desired = self._machine.state.running

            result = self._machine.advance(
                desired,
                now,
                settings,
                self._maintenance_requested,
                elapsed_seconds=elapsed,
                device_auto=self._device_auto,
            )
            state = IrrigationState(
                reading=reading,
                pump=result.state,
                online=sample.device_online,
                advisories=result.advisories,
            )
            return state, result.command

    def _elapsed(self, now: datetime, elapsed_seconds: int | None) -> int:
        previous, self._last_tick_at = self._last_tick_at, now
        if elapsed_seconds is not None:
            return max(0, elapsed_seconds)
        if previous is None:
            return 0
        delta = (now - previous).total_seconds()
        if delta < 0:
            logger.warning(
                "Tick time went backwards by %.1fs, accruing nothing", -delta
            )
            return 0
        return round(delta)

    def _reconcile_reading(
        self,
        sample: TelemetrySample,
        now: datetime,
        cfg: CalibrationConfig,
    ) -> MoistureReading | None:
        """Map the sample's moisture, falling back to the last good reading."""
        if not sample.device_online:
            logger.debug("Device offline, keeping last known reading")
            return self._stale_reading()

        try:
            reading = map_reading(sample.raw_moisture, cfg, now)
        except InvalidReading as e:
            logger.warning("Ignoring sample: %s", e)
            return self._stale_reading()

        self._last_reading = reading
        return reading

    def _stale_reading(self) -> MoistureReading | None:
        if self._last_reading is None:
            return None
        return replace(self._last_reading, stale=True)

    # ---- external commands ----

    def request_maintenance(self, enabled: bool) -> None:
        """Request (or release) the maintenance lockout from the next tick."""
        with self._lock:
            if enabled != self._maintenance_requested:
                logger.info(
                    "Maintenance %s", "requested" if enabled else "released"
                )
            self._maintenance_requested = enabled

    def maintenance_reset(self) -> bool:
        with self._lock:
            return self._machine.maintenance_reset()

    def reset_daily_runs(self) -> None:
        with self._lock:
            self._machine.reset_daily_runs()

    def fault(self, reason: str, now: datetime) -> None:
        with self._lock:
            self._machine.fault(reason, now)

    def clear_error(self) -> bool:
        with self._lock:
            return self._machine.clear_error()
