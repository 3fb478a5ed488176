"""Mock bridge for development.

Simulates the device behind the Blynk bridge without any hardware. Used by
the poller when MOCK_SENSORS=1 is set.
"""

import random

from irrigator.engine.models import ControlCommand, TelemetrySample
from irrigator.lib.config import VirtualPin

# Device-side auto relay threshold on the raw scale (dry below this)
_DEVICE_DRY_RAW = 250
_ADC_MAX = 1023


def _random_walk(
    current: float, drift: float, min_val: float, max_val: float
) -> float:
    """Generate next value using random walk with bounds."""
    change = random.gauss(0, drift)
    new_val = current + change
    return max(min_val, min(max_val, new_val))


class MockBridge:
    """Simulated sensor/pump device.

    Soil slowly dries out on a random walk and gets wetter while the pump
    runs. In auto mode the simulated device runs the pump below its own raw
    threshold, like the real firmware does.
    """

    def __init__(
        self,
        *,
        raw_moisture: float | None = None,
        auto: bool = True,
        manual: bool = False,
        online: bool = True,
        drift: float = 8.0,
        watering_rate: float = 40.0,
    ) -> None:
        self._raw = (
            raw_moisture
            if raw_moisture is not None
            else random.uniform(300.0, 600.0)
        )
        self.auto = auto
        self.manual = manual
        self.online = online
        self._drift = drift
        self._watering_rate = watering_rate
        self.commands: list[ControlCommand] = []

    @property
    def pump_on(self) -> bool:
        if self.auto:
            return self._raw < _DEVICE_DRY_RAW
        return self.manual

    def _advance(self) -> None:
        # Soil dries by about one raw unit per poll on average
        self._raw = _random_walk(
            self._raw - 1.0, drift=self._drift, min_val=0.0, max_val=_ADC_MAX
        )
        if self.pump_on:
            self._raw = min(_ADC_MAX, self._raw + self._watering_rate)

    async def fetch_sample(self) -> TelemetrySample:
        """Produce the next simulated sample."""
        self._advance()
        return TelemetrySample(
            raw_moisture=round(self._raw),
            manual_flag=self.manual,
            auto_flag=self.auto,
            device_online=self.online,
        )

    async def send_command(self, command: ControlCommand) -> bool:
        """Apply a pin write to the simulated device."""
        self.commands.append(command)
        if command.pin == VirtualPin.MANUAL_CONTROL:
            self.manual = command.value
        elif command.pin == VirtualPin.AUTO_CONTROL:
            self.auto = command.value
        return True

    def close(self) -> None:
        """No-op for mock bridge."""
