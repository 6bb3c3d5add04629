"""Sinks for feature delivery workflow events.

The workflow hands every WorkflowEvent to one EventEmitter. Which sinks
receive it is decided once at startup by create_event_emitter; a failing
sink is logged and the remaining sinks still receive the event.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Sequence

from src.delivery.events.models import EventType, WorkflowEvent


logger = logging.getLogger(__name__)

EVENT_LOG_LEVELS = {
    EventType.STEP_STARTED: logging.DEBUG,
    EventType.STEP_COMPLETED: logging.DEBUG,
    EventType.COMPLETION: logging.INFO,
    EventType.STEP_FAILED: logging.WARNING,
    EventType.FAILURE: logging.ERROR,
}


class EventSinkType(str, Enum):
    """Event sinks that can be enabled at startup."""

    LOGGING = "logging"
    METRICS = "metrics"


class EventEmitter(ABC):
    """Receives workflow events."""

    @abstractmethod
    async def emit(self, event: WorkflowEvent) -> None:
        ...


class LoggingEventEmitter(EventEmitter):
    """Writes each event as one log record, event fields in ``extra``."""

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = logging.getLogger(logger_name) if logger_name else logger

    async def emit(self, event: WorkflowEvent) -> None:
        self._logger.log(
            EVENT_LOG_LEVELS.get(event.event_type, logging.INFO),
            "Workflow event: %s for %s",
            event.event_type.value,
            event.workflow_id,
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Fans an event out to several sinks, isolating their failures."""

    def __init__(self, emitters: Sequence[EventEmitter]):
        self._emitters = list(emitters)

    async def emit(self, event: WorkflowEvent) -> None:
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                logger.error(
                    "Event sink %s failed",
                    type(emitter).__name__,
                    extra={
                        "event_type": event.event_type.value,
                        "workflow_id": event.workflow_id,
                        "error": str(e),
                    },
                )


class NullEventEmitter(EventEmitter):
    """Discards every event; used when no sink is wired."""

    async def emit(self, event: WorkflowEvent) -> None:
        pass


def create_event_emitter(
    sink_types: Optional[List[EventSinkType]] = None,
    logger_name: Optional[str] = None,
) -> EventEmitter:
    """Build the emitter for the requested sinks.

    No sinks means logging only. A single sink is returned as is; several
    are wrapped in a CompositeEventEmitter.
    """
    emitters: List[EventEmitter] = []
    for sink_type in sink_types or [EventSinkType.LOGGING]:
        if sink_type == EventSinkType.LOGGING:
            emitters.append(LoggingEventEmitter(logger_name=logger_name))
        elif sink_type == EventSinkType.METRICS:
            # metrics.py imports this module
            from src.delivery.events.metrics import MetricsEventEmitter
            emitters.append(MetricsEventEmitter())

    if len(emitters) == 1:
        return emitters[0]
    return CompositeEventEmitter(emitters)
