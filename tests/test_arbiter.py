"""Tests for the mode arbiter."""

from irrigator.engine.arbiter import decide
from irrigator.engine.models import MoistureReading
from irrigator.lib.config import MoistureStatus, PumpSettings


def _reading(percent: int, when) -> MoistureReading:
    return MoistureReading(
        percent=percent,
        status=MoistureStatus.OPTIMAL,
        observed_at=when,
        raw=percent,
    )


class TestAutoMode:
    """Device auto flag set: the moisture threshold decides."""

    def test_dry_soil_runs(self, make_sample, pump_settings, frozen_time):
        sample = make_sample(auto=True)
        assert decide(_reading(20, frozen_time), sample, pump_settings) is True

    def test_at_threshold_does_not_run(
        self, make_sample, pump_settings, frozen_time
    ):
        sample = make_sample(auto=True)
        assert decide(_reading(30, frozen_time), sample, pump_settings) is False

    def test_manual_flag_ignored(self, make_sample, pump_settings, frozen_time):
        sample = make_sample(auto=True, manual=True)
        assert decide(_reading(80, frozen_time), sample, pump_settings) is False

    def test_local_auto_mode_setting_does_not_gate(
        self, make_sample, frozen_time
    ):
        settings = PumpSettings(auto_mode=False, moisture_threshold=30)
        sample = make_sample(auto=True)
        assert decide(_reading(10, frozen_time), sample, settings) is True

    def test_no_reading_does_not_run(self, make_sample, pump_settings):
        assert decide(None, make_sample(auto=True), pump_settings) is False


class TestManualMode:
    """Device auto flag clear: the manual flag decides."""

    def test_manual_off_never_runs(self, make_sample, pump_settings, frozen_time):
        sample = make_sample(auto=False, manual=False)
        assert decide(_reading(0, frozen_time), sample, pump_settings) is False

    def test_manual_on_runs_even_when_wet(
        self, make_sample, pump_settings, frozen_time
    ):
        sample = make_sample(auto=False, manual=True)
        assert decide(_reading(95, frozen_time), sample, pump_settings) is True

    def test_manual_on_without_reading(self, make_sample, pump_settings):
        assert decide(None, make_sample(manual=True), pump_settings) is True
