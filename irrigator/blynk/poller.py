"""Poll the Blynk bridge and drive the pump.

Each cycle fetches a telemetry sample, ticks the reconciliation engine,
forwards any resulting command to the bridge and publishes the new state
on the event bus.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import override

from irrigator.blynk.client import BlynkClient, BridgeProtocol
from irrigator.engine.models import ControlCommand, IrrigationState, TelemetrySample
from irrigator.engine.reconcile import ReconciliationEngine
from irrigator.lib.config import get_settings
from irrigator.lib.eventbus import (
    EventPublisher,
    IrrigationStateEvent,
    PumpCommandEvent,
)
from irrigator.lib.exceptions import InvalidConfiguration, TelemetryError
from irrigator.lib.polling import PollingService
from irrigator.logging import configure, get_logger

logger = get_logger("blynk.poller")


@dataclass(frozen=True, slots=True)
class CycleOutcome:
    """What one reconciled sample produced."""

    state: IrrigationState
    command: ControlCommand | None
    recording_time: datetime


class IrrigationPollingService(
    PollingService[TelemetrySample, CycleOutcome]
):
    """Polling service hosting the reconciliation engine."""

    def __init__(
        self,
        bridge: BridgeProtocol,
        engine: ReconciliationEngine | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        super().__init__(name="Irrigation")
        self._bridge = bridge
        self._engine = engine or ReconciliationEngine()
        self._publisher = publisher or EventPublisher()
        self._day: date | None = None

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @override
    async def initialize(self) -> None:
        """Connect the event publisher."""
        self._publisher.connect()

    @override
    async def cleanup(self) -> None:
        """Close the bridge and the event publisher."""
        self._bridge.close()
        self._publisher.close()

    @override
    async def poll(self) -> TelemetrySample | None:
        """Fetch a sample, skipping the cycle if the bridge is unreachable."""
        try:
            return await self._bridge.fetch_sample()
        except TelemetryError as e:
            self._logger.warning("Skipping cycle: %s", e)
            return None

    def _roll_day(self, now: datetime) -> None:
        """Reset the daily run counter when the local date changes."""
        today = now.astimezone().date()
        if self._day is not None and today != self._day:
            self._logger.info("New day %s, resetting daily runs", today)
            self._engine.reset_daily_runs()
        self._day = today

    @override
    async def reconcile(self, sample: TelemetrySample) -> CycleOutcome:
        """Tick the engine with the configured calibration and pump policy."""
        now = datetime.now(UTC)
        self._roll_day(now)

        settings = get_settings()
        state, command = self._engine.tick(
            sample, now, settings.calibration, settings.pump
        )

        if state.reading is not None:
            self._logger.debug(
                "Moisture %d%% (%s%s), pump %s",
                state.reading.percent,
                state.reading.status,
                ", stale" if state.reading.stale else "",
                state.pump.phase,
            )
        if not state.online:
            self._logger.info("Device offline, holding pump %s", state.pump.phase)

        return CycleOutcome(state=state, command=command, recording_time=now)

    @override
    async def dispatch(self, outcome: CycleOutcome) -> None:
        """Forward the command, if any, then publish the new state."""
        if outcome.command is not None:
            delivered = await self._bridge.send_command(outcome.command)
            if not delivered:
                self._logger.error("Could not deliver %s", outcome.command)
            self._publisher.publish(
                PumpCommandEvent(
                    command=outcome.command,
                    delivered=delivered,
                    recording_time=outcome.recording_time,
                )
            )

        self._publisher.publish(
            IrrigationStateEvent(
                state=outcome.state, recording_time=outcome.recording_time
            )
        )


def _create_bridge() -> BridgeProtocol:
    """Create the bridge based on configuration."""
    if get_settings().mock_sensors:
        from irrigator.lib.mock import MockBridge

        logger.info("Using mock bridge")
        return MockBridge()
    return BlynkClient()


def main() -> None:
    """Start the irrigation polling service."""
    configure()
    try:
        bridge = _create_bridge()
    except InvalidConfiguration as e:
        logger.error("%s", e)
        raise SystemExit(1) from e
    service = IrrigationPollingService(bridge)
    service.run()


if __name__ == "__main__":
    main()
