"""Blynk cloud bridge client.

Reads the moisture and control pins plus the device's reachability, and
writes control pins. Requests are plain HTTP GETs run in worker threads so
the poll loop never blocks.
"""

import asyncio
import math
import urllib.parse
import urllib.request
from typing import Protocol

from irrigator.engine.models import ControlCommand, TelemetrySample
from irrigator.lib.config import BlynkSettings, VirtualPin, get_settings
from irrigator.lib.exceptions import TelemetryError
from irrigator.lib.retry import with_retry
from irrigator.logging import get_logger

logger = get_logger("blynk.client")


class BridgeProtocol(Protocol):
    """Protocol for telemetry sources that also accept commands."""

    async def fetch_sample(self) -> TelemetrySample: ...
    async def send_command(self, command: ControlCommand) -> bool: ...
    def close(self) -> None: ...


def parse_raw_moisture(text: str) -> int | float:
    """Parse the V0 payload. Unparseable text becomes NaN."""
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        logger.debug("Unparseable moisture payload %r", text)
        return math.nan


def parse_flag(text: str) -> bool:
    """Parse a switch pin payload ('1' means on)."""
    return text.strip() == "1"


class BlynkClient:
    """HTTP client for the Blynk external API."""

    def __init__(self, settings: BlynkSettings | None = None) -> None:
        cfg = settings or get_settings().blynk
        self._base_url = cfg.base_url.rstrip("/")
        self._token = cfg.token
        self._timeout = cfg.timeout_sec
        self._max_retries = cfg.max_retries
        self._initial_backoff_sec = cfg.initial_backoff_sec

    def _url(self, endpoint: str, query: str = "") -> str:
        token = urllib.parse.quote(self._token.get_secret_value(), safe="")
        url = f"{self._base_url}/{endpoint}?token={token}"
        return f"{url}&{query}" if query else url

    def _get(self, url: str) -> str:
        """Blocking GET returning the response body.

        Raises:
            OSError: On transport errors or a non-200 status.
        """
        with urllib.request.urlopen(url, timeout=self._timeout) as resp:
            if resp.status != 200:
                raise OSError(f"Blynk API returned status {resp.status}")
            return resp.read().decode("utf-8")

    def read_pin(self, pin: VirtualPin) -> str:
        return self._get(self._url("get", pin))

    def write_pin(self, pin: VirtualPin, value: bool) -> None:
        self._get(self._url("update", f"{pin}={int(value)}"))

    def is_hardware_connected(self) -> bool:
        text = self._get(self._url("isHardwareConnected"))
        return text.strip().lower() == "true"

    def _probe_online(self) -> bool:
        try:
            return self.is_hardware_connected()
        except OSError as e:
            logger.debug("Connectivity probe failed: %s", e)
            return False

    async def fetch_sample(self) -> TelemetrySample:
        """Read V0/V1/V2 concurrently and probe reachability.

        Raises:
            TelemetryError: If any pin could not be read.
        """
        try:
            raw_text, manual_text, auto_text = await asyncio.gather(
                asyncio.to_thread(self.read_pin, VirtualPin.MOISTURE),
                asyncio.to_thread(self.read_pin, VirtualPin.MANUAL_CONTROL),
                asyncio.to_thread(self.read_pin, VirtualPin.AUTO_CONTROL),
            )
        except OSError as e:
            raise TelemetryError(f"Failed to read bridge pins: {e}") from e

        online = await asyncio.to_thread(self._probe_online)
        return TelemetrySample(
            raw_moisture=parse_raw_moisture(raw_text),
            manual_flag=parse_flag(manual_text),
            auto_flag=parse_flag(auto_text),
            device_online=online,
        )

    async def send_command(self, command: ControlCommand) -> bool:
        """Write a command pin with retry. Returns True if delivered."""
        success = await with_retry(
            lambda: self.write_pin(command.pin, command.value),
            name=f"Blynk write {command}",
            logger=logger,
            max_retries=self._max_retries,
            initial_backoff_sec=self._initial_backoff_sec,
            retryable_exceptions=(OSError,),
            run_in_thread=True,
        )
        if success:
            logger.info("Wrote %s to bridge", command)
        return success

    def close(self) -> None:
        """Nothing to release; requests do not share a connection."""
