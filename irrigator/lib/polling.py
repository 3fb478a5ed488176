"""Generic async polling service.

Runs a poll -> reconcile -> dispatch cycle at a fixed cadence until SIGTERM
or SIGINT. One cycle runs at a time, so whatever reconcile() drives never
sees overlapping calls.
"""

import asyncio
import signal
from abc import ABC, abstractmethod
from types import FrameType

from irrigator.lib.config import get_settings
from irrigator.logging import get_logger


class PollingService[T, R](ABC):
    """Abstract base class for async polling services.

    Implements the common polling loop pattern with:
    - Configurable polling frequency
    - Graceful shutdown handling
    - Error recovery (a failed cycle is logged and the loop continues)
    """

    def __init__(
        self,
        name: str,
        frequency_sec: int | None = None,
    ) -> None:
        """Initialize the polling service.

        Args:
            name: Service name for logging.
            frequency_sec: Polling frequency in seconds.
        """
        self.name = name
        self.frequency_sec = (
            frequency_sec or get_settings().polling.frequency_sec
        )
        self._shutdown_requested = False
        self._logger = get_logger(f"polling.{name}")

    @abstractmethod
    async def initialize(self) -> None:
        """Acquire resources before the first cycle."""

    @abstractmethod
    async def cleanup(self) -> None:
        """Release resources when the loop exits."""

    @abstractmethod
    async def poll(self) -> T | None:
        """Fetch the next sample.

        Returns:
            A sample, or None if this cycle should be skipped.
        """

    @abstractmethod
    async def reconcile(self, sample: T) -> R | None:
        """Turn a sample into an outcome.

        Returns:
            The outcome to dispatch, or None to skip dispatching.
        """

    @abstractmethod
    async def dispatch(self, outcome: R) -> None:
        """Deliver an outcome (commands, events)."""

    def on_poll_error(self, error: Exception) -> None:
        """Handle an error raised during a cycle. Default logs it."""
        self._logger.warning("%s cycle failed: %s", self.name, error)

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        """Handle shutdown signals gracefully."""
        signal_name = signal.Signals(signum).name
        self._logger.info("Received %s, initiating graceful shutdown...", signal_name)
        self.request_shutdown()

    def _setup_signal_handlers(self) -> None:
        """Register signal handlers for graceful shutdown."""
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)

    async def run_cycle(self) -> None:
        """Execute a single poll -> reconcile -> dispatch cycle."""
        sample = await self.poll()
        if sample is None:
            return
        outcome = await self.reconcile(sample)
        if outcome is not None:
            await self.dispatch(outcome)

    async def run_loop(self) -> None:
        """Run cycles at a fixed cadence until shutdown is requested."""
        await self.initialize()
        self._logger.info("%s polling service started", self.name)

        loop = asyncio.get_running_loop()

        try:
            while not self._shutdown_requested:
                cycle_start = loop.time()

                try:
                    await self.run_cycle()
                except Exception as e:
                    self.on_poll_error(e)

                # Sleep only the remaining time to keep a steady cadence
                elapsed = loop.time() - cycle_start
                sleep_time = max(0, self.frequency_sec - elapsed)
                if sleep_time > 0 and not self._shutdown_requested:
                    await asyncio.sleep(sleep_time)
        finally:
            self._logger.info("Cleaning up resources...")
            await self.cleanup()
            self._logger.info("%s shutdown complete", self.name)

    def run(self) -> None:
        """Run the polling loop (blocking entry point)."""
        self._setup_signal_handlers()
        asyncio.run(self.run_loop())
