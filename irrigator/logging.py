"""Logging setup for the irrigation controller.

Every module logs under the ``irrigator`` namespace (engine, poller, bridge
client, event bus), so one handler on that logger covers the whole process.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s - %(message)s"

_handler: logging.Handler | None = None


def configure(level: int | str = logging.INFO) -> None:
    """Attach a stderr handler to the ``irrigator`` logger.

    Calling it again only changes the level; the handler is added once.

    Args:
        level: Level number or name. DEBUG adds a moisture line per cycle.
    """
    global _handler
    root = logging.getLogger("irrigator")
    root.setLevel(level)
    if _handler is not None:
        return

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(_handler)

    # redis-py logs every reconnect attempt at INFO
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the ``irrigator.<name>`` logger, e.g. ``get_logger("engine.pump")``."""
    return logging.getLogger(f"irrigator.{name}")
