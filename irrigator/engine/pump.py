"""Pump state machine.

Owns the only PumpState in the process and replaces it with a new snapshot
on every step. Each step applies the arbiter's decision subject to the
maintenance lockout and the daily run cap, keeps the runtime and history
bookkeeping, and emits a ControlCommand when the intended pump state
changes from what was last commanded, or when a maintenance or error
lockout starts or ends.

The daily run cap affects bookkeeping and advisories only. When the device
runs the pump on its own (auto relay or manual pin) the machine never sends
a command to override it.
"""

from dataclasses import replace
from datetime import datetime

from irrigator.engine.models import (
    ControlCommand,
    HistoryEntry,
    PumpState,
    PumpTransitionResult,
)
from irrigator.lib.config import (
    HISTORY_CAPACITY,
    Advisory,
    PumpPhase,
    PumpSettings,
    RunReason,
    VirtualPin,
)
from irrigator.logging import get_logger

logger = get_logger("engine.pump")

_FORCED_OFF = (PumpPhase.MAINTENANCE, PumpPhase.ERROR)


def _push_history(
    history: tuple[HistoryEntry, ...], entry: HistoryEntry
) -> tuple[HistoryEntry, ...]:
    """Prepend a completed run, keeping at most HISTORY_CAPACITY entries."""
    return (entry, *history)[:HISTORY_CAPACITY]


def _close_pending(state: PumpState, now: datetime) -> PumpState:
    """Move the open run, if any, into history."""
    if state.pending_run is None:
        return state
    completed = state.pending_run.close(now)
    logger.info(
        "Pump run finished after %ds (%s)",
        completed.duration_seconds,
        completed.reason,
    )
    return replace(
        state,
        history=_push_history(state.history, completed),
        pending_run=None,
    )


class PumpStateMachine:
    """Idle/Running/Maintenance/Error state machine for a single pump."""

    def __init__(self, state: PumpState | None = None) -> None:
        self._state = state or PumpState()
        self._last_commanded = self._state.running
        self._forced_off_sent = False
        self._auto_suspended = False

    @property
    def state(self) -> PumpState:
        return self._state

    def advance(
        self,
        desired_running: bool,
        now: datetime,
        settings: PumpSettings,
        maintenance_requested: bool,
        *,
        elapsed_seconds: int = 0,
        device_auto: bool = False,
    ) -> PumpTransitionResult:
        """Apply one tick.

        Args:
            desired_running: The arbiter's decision for this tick.
            now: Timestamp of the tick (caller supplied).
            settings: Pump policy and limits.
            maintenance_requested: Whether maintenance lockout is requested.
            elapsed_seconds: Time since the previous tick, accrued as runtime
                while the pump keeps running.
            device_auto: Whether the device is in auto mode. Decides which
                pin is written when the pump has to be forced off.
        """
        previous = self._state
        advisories: list[Advisory] = []
        state = self._step(
            previous,
            desired_running,
            now,
            settings,
            maintenance_requested,
            max(0, elapsed_seconds),
            device_auto,
            advisories,
        )

        if state.power_draw_amps > settings.power_limit_amps:
            logger.warning(
                "Estimated draw %.1fA exceeds limit %.1fA",
                state.power_draw_amps,
                settings.power_limit_amps,
            )
            advisories.append(Advisory.POWER_LIMIT_EXCEEDED)

        if state.phase != previous.phase:
            logger.info("Pump %s -> %s", previous.phase, state.phase)

        self._state = state
        return PumpTransitionResult(
            state=state,
            advisories=tuple(advisories),
            command=self._command_for(state, device_auto),
        )

    def _step(
        self,
        state: PumpState,
        desired_running: bool,
        now: datetime,
        settings: PumpSettings,
        maintenance_requested: bool,
        elapsed_seconds: int,
        device_auto: bool,
        advisories: list[Advisory],
    ) -> PumpState:
        """Compute the next snapshot. Rules are evaluated in order."""
        if state.phase == PumpPhase.ERROR:
            return state

        if maintenance_requested:
            if state.phase == PumpPhase.MAINTENANCE:
                return state
            return replace(_close_pending(state, now), phase=PumpPhase.MAINTENANCE)

        if state.phase == PumpPhase.MAINTENANCE:
            # One tick in Idle before the pump may start again
            return replace(state, phase=PumpPhase.IDLE)

        if state.phase == PumpPhase.IDLE:
            if not desired_running:
                return state
            if state.daily_runs >= settings.max_daily_runs:
                logger.warning(
                    "Daily run limit reached (%d/%d), not counting run",
                    state.daily_runs,
                    settings.max_daily_runs,
                )
                advisories.append(Advisory.RUN_LIMIT_REACHED)
                return state
            reason = RunReason.AUTO if device_auto else RunReason.MANUAL
            return replace(
                state,
                phase=PumpPhase.RUNNING,
                daily_runs=state.daily_runs + 1,
                last_run_started_at=now,
                pending_run=HistoryEntry(started_at=now, reason=reason),
            )

        # Running
        if not desired_running:
            return replace(_close_pending(state, now), phase=PumpPhase.IDLE)
        return replace(
            state,
            total_runtime_seconds=state.total_runtime_seconds + elapsed_seconds,
        )

    def _command_for(
        self, state: PumpState, device_auto: bool
    ) -> ControlCommand | None:
        """Return the pin write this step calls for, if any.

        Entering maintenance or error forces the pump off once, whatever it
        was last commanded. In device auto mode that means switching auto
        off (V1 is ignored there), and auto is switched back on on the first
        step after the lockout ends. Otherwise a command is sent only when
        the intended pump state changes, and never in device auto mode.
        """
        if state.phase in _FORCED_OFF:
            if self._forced_off_sent:
                return None
            self._forced_off_sent = True
            self._last_commanded = False
            if device_auto:
                self._auto_suspended = True
                return self._emit(ControlCommand(VirtualPin.AUTO_CONTROL, False))
            return self._emit(ControlCommand(VirtualPin.MANUAL_CONTROL, False))

        self._forced_off_sent = False
        if self._auto_suspended:
            self._auto_suspended = False
            logger.info("Lockout over, restoring device auto mode")
            return self._emit(ControlCommand(VirtualPin.AUTO_CONTROL, True))

        intended = state.running
        if intended == self._last_commanded:
            return None
        self._last_commanded = intended
        if device_auto:
            # The device's relay logic already follows the threshold
            return None
        return self._emit(ControlCommand(VirtualPin.MANUAL_CONTROL, intended))

    @staticmethod
    def _emit(command: ControlCommand) -> ControlCommand:
        logger.info("Commanding pump %s", command)
        return command

    # ---- external commands ----

    def reset_daily_runs(self) -> None:
        """Start a new counting period (day rollover)."""
        self._state = replace(self._state, daily_runs=0)
        logger.info("Daily run counter reset")

    def maintenance_reset(self) -> bool:
        """Clear run counters. Only allowed in maintenance; history is kept.

        Returns:
            True if the counters were cleared.
        """
        if self._state.phase != PumpPhase.MAINTENANCE:
            logger.warning(
                "Maintenance reset ignored, pump is %s", self._state.phase
            )
            return False
        self._state = replace(
            self._state, daily_runs=0, total_runtime_seconds=0
        )
        logger.info("Pump counters reset during maintenance")
        return True

    def fault(self, reason: str, now: datetime) -> None:
        """Latch the error phase until clear_error() is called."""
        closed = _close_pending(self._state, now)
        self._state = replace(closed, phase=PumpPhase.ERROR, error_reason=reason)
        logger.error("Pump fault: %s", reason)

    def clear_error(self) -> bool:
        """Leave the error phase for Idle.

        Returns:
            True if the machine was in the error phase.
        """
        if self._state.phase != PumpPhase.ERROR:
            return False
        self._state = replace(
            self._state, phase=PumpPhase.IDLE, error_reason=None
        )
        logger.info("Pump fault cleared")
        return True
