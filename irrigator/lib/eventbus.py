"""Redis-based event bus for irrigation state broadcasting.

The poller publishes every reconciled state and every dispatched command so
dashboards and other consumers can follow the pump without polling the
bridge themselves.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal, Self

import redis

from irrigator.engine.models import ControlCommand, IrrigationState
from irrigator.lib.config import get_settings
from irrigator.logging import get_logger

logger = get_logger("lib.eventbus")


class Topic(StrEnum):
    """Event bus topics."""

    IRRIGATION_STATE = "irrigation.state"
    PUMP_COMMAND = "pump.command"


@dataclass(frozen=True, slots=True)
class Event(ABC):
    """Base class for all event bus payloads."""

    @property
    @abstractmethod
    def event_type(self) -> str:
        """Discriminator field for event type identification."""

    @property
    @abstractmethod
    def topic(self) -> Topic:
        """Topic this event is published on."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for JSON serialization."""


@dataclass(frozen=True, slots=True)
class IrrigationStateEvent(Event):
    """Irrigation state after a tick."""

    state: IrrigationState
    recording_time: datetime

    @property
    def event_type(self) -> Literal["irrigation_state"]:
        return "irrigation_state"

    @property
    def topic(self) -> Topic:
        return Topic.IRRIGATION_STATE

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            **self.state.to_dict(),
            "recording_time": self.recording_time.strftime(
                "%Y-%m-%d %H:%M:%S"
            ),
            "epoch": int(self.recording_time.timestamp() * 1000),
        }


@dataclass(frozen=True, slots=True)
class PumpCommandEvent(Event):
    """A command forwarded to the bridge and whether it was delivered."""

    command: ControlCommand
    delivered: bool
    recording_time: datetime

    @property
    def event_type(self) -> Literal["pump_command"]:
        return "pump_command"

    @property
    def topic(self) -> Topic:
        return Topic.PUMP_COMMAND

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "pin": self.command.pin,
            "value": self.command.value,
            "delivered": self.delivered,
            "recording_time": self.recording_time.strftime(
                "%Y-%m-%d %H:%M:%S"
            ),
        }


class EventPublisher:
    """Publishes irrigation events to the event bus."""

    def __init__(self) -> None:
        self._redis_url = get_settings().eventbus.redis_url
        self._client: redis.Redis | None = None

    def connect(self) -> None:
        """Connect to Redis."""
        self._client = redis.from_url(self._redis_url)
        logger.info("Event publisher connected to Redis")

    def publish(self, event: Event) -> None:
        """Publish an event on its topic.

        Publishing is best effort: a Redis failure is logged and dropped so
        it never interrupts pump control.
        """
        if self._client is None:
            return

        message = json.dumps(event.to_dict())
        try:
            self._client.publish(event.topic, message)
        except redis.RedisError as e:
            logger.warning("Failed to publish to %s: %s", event.topic, e)
            return
        logger.debug("Published to %s: %s", event.topic, message)

    def close(self) -> None:
        """Close the publisher connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
        logger.info("Event publisher closed")

    def __enter__(self) -> Self:
        self.connect()
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
