"""Tests for the irrigation polling service."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from irrigator.blynk.client import BlynkClient
from irrigator.blynk.poller import (
    IrrigationPollingService,
    _create_bridge,
    main,
)
from irrigator.engine.models import ControlCommand, PumpState, TelemetrySample
from irrigator.engine.pump import PumpStateMachine
from irrigator.engine.reconcile import ReconciliationEngine
from irrigator.lib.config import PumpPhase, Settings, VirtualPin
from irrigator.lib.config.testing import set_settings
from irrigator.lib.eventbus import IrrigationStateEvent, PumpCommandEvent
from irrigator.lib.exceptions import InvalidConfiguration, TelemetryError
from irrigator.lib.mock import MockBridge


@pytest.fixture
def publisher():
    return MagicMock()


def _published(publisher):
    return [c.args[0] for c in publisher.publish.call_args_list]


class TestRunCycle:
    """Tests for a single poll -> reconcile -> dispatch cycle."""

    @pytest.mark.asyncio
    async def test_manual_request_is_forwarded(self, publisher):
        bridge = MockBridge(raw_moisture=600, auto=False, manual=True, drift=0)
        service = IrrigationPollingService(bridge, publisher=publisher)

        await service.run_cycle()

        assert bridge.commands == [
            ControlCommand(VirtualPin.MANUAL_CONTROL, True)
        ]
        assert service.engine.state.phase == PumpPhase.RUNNING

        command_event, state_event = _published(publisher)
        assert isinstance(command_event, PumpCommandEvent)
        assert command_event.delivered is True
        assert isinstance(state_event, IrrigationStateEvent)
        assert state_event.state.reading.raw == 639
        assert state_event.state.pump.running is True

    @pytest.mark.asyncio
    async def test_no_command_publishes_state_only(self, publisher):
        bridge = MockBridge(raw_moisture=600, auto=False, drift=0)
        service = IrrigationPollingService(bridge, publisher=publisher)

        await service.run_cycle()

        assert bridge.commands == []
        (event,) = _published(publisher)
        assert isinstance(event, IrrigationStateEvent)
        assert event.state.pump.phase == PumpPhase.IDLE

    @pytest.mark.asyncio
    async def test_bridge_failure_skips_cycle(self, publisher, caplog):
        bridge = MagicMock()
        bridge.fetch_sample = AsyncMock(side_effect=TelemetryError("refused"))
        service = IrrigationPollingService(bridge, publisher=publisher)

        await service.run_cycle()

        publisher.publish.assert_not_called()
        assert "Skipping cycle" in caplog.text

    @pytest.mark.asyncio
    async def test_undelivered_command_is_reported(self, publisher, caplog):
        bridge = MagicMock()
        bridge.fetch_sample = AsyncMock(
            return_value=TelemetrySample(
                raw_moisture=600, manual_flag=True, auto_flag=False
            )
        )
        bridge.send_command = AsyncMock(return_value=False)
        service = IrrigationPollingService(bridge, publisher=publisher)

        await service.run_cycle()

        assert "Could not deliver V1=1" in caplog.text
        command_event = _published(publisher)[0]
        assert command_event.delivered is False

    @pytest.mark.asyncio
    async def test_offline_device(self, publisher, caplog):
        bridge = MockBridge(online=False)
        service = IrrigationPollingService(bridge, publisher=publisher)

        await service.run_cycle()

        (event,) = _published(publisher)
        assert event.state.online is False
        assert event.state.reading is None
        assert "Device offline" in caplog.text

    @pytest.mark.asyncio
    async def test_uses_configured_policy(self, publisher):
        set_settings(Settings(mock_sensors=True, max_daily_runs=2))
        engine = ReconciliationEngine(PumpStateMachine(PumpState(daily_runs=2)))
        bridge = MockBridge(raw_moisture=600, auto=False, manual=True, drift=0)
        service = IrrigationPollingService(
            bridge, engine=engine, publisher=publisher
        )

        await service.run_cycle()

        (event,) = _published(publisher)
        assert event.state.pump.phase == PumpPhase.IDLE
        assert event.state.advisories


class TestDayRollover:
    def test_resets_daily_runs_on_new_day(self, publisher):
        engine = ReconciliationEngine(PumpStateMachine(PumpState(daily_runs=3)))
        service = IrrigationPollingService(
            MockBridge(), engine=engine, publisher=publisher
        )

        service._roll_day(datetime(2024, 6, 15, 12, 0, tzinfo=UTC))
        assert engine.state.daily_runs == 3

        service._roll_day(datetime(2024, 6, 15, 12, 30, tzinfo=UTC))
        assert engine.state.daily_runs == 3

        service._roll_day(datetime(2024, 6, 17, 12, 0, tzinfo=UTC))
        assert engine.state.daily_runs == 0


class TestRunLoop:
    """Tests for the service lifecycle."""

    @pytest.mark.asyncio
    async def test_runs_until_shutdown(self, publisher):
        bridge = MockBridge(raw_moisture=600, auto=False, drift=0)
        bridge.close = MagicMock()
        service = IrrigationPollingService(bridge, publisher=publisher)

        async def fetch():
            service.request_shutdown()
            return TelemetrySample(
                raw_moisture=600, manual_flag=False, auto_flag=False
            )

        bridge.fetch_sample = fetch

        await service.run_loop()

        publisher.connect.assert_called_once()
        publisher.close.assert_called_once()
        bridge.close.assert_called_once()
        assert publisher.publish.call_count == 1

    @pytest.mark.asyncio
    @patch("irrigator.lib.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_recovers_from_cycle_error(self, mock_sleep, publisher, caplog):
        bridge = MagicMock()
        service = IrrigationPollingService(bridge, publisher=publisher)
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")
            service.request_shutdown()
            return TelemetrySample(
                raw_moisture=600, manual_flag=False, auto_flag=False
            )

        bridge.fetch_sample = fetch

        await service.run_loop()

        assert calls == 2
        assert "Irrigation cycle failed: boom" in caplog.text
        mock_sleep.assert_awaited_once()
        bridge.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_cleans_up_on_cancellation(self, publisher):
        bridge = MagicMock()
        bridge.fetch_sample = AsyncMock(side_effect=asyncio.CancelledError)
        service = IrrigationPollingService(bridge, publisher=publisher)

        with pytest.raises(asyncio.CancelledError):
            await service.run_loop()

        bridge.close.assert_called_once()
        publisher.close.assert_called_once()


class TestEntryPoint:
    def test_mock_bridge_when_configured(self):
        assert isinstance(_create_bridge(), MockBridge)

    def test_blynk_bridge_otherwise(self):
        set_settings(Settings(blynk_token="abc123"))
        assert isinstance(_create_bridge(), BlynkClient)

    @patch("irrigator.blynk.poller.configure")
    @patch("irrigator.blynk.poller._create_bridge")
    def test_exits_on_bad_configuration(self, mock_create, _configure):
        mock_create.side_effect = InvalidConfiguration("BLYNK_TOKEN is not set")

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1

    @patch("irrigator.blynk.poller.configure")
    @patch("irrigator.blynk.poller.IrrigationPollingService")
    def test_runs_service(self, mock_service_cls, _configure):
        main()

        mock_service_cls.return_value.run.assert_called_once()
