"""Progress events for analysis runs.

A small in-process publish/subscribe bus. The orchestrator and the
analysis service emit events as models start, finish and fail, so a UI
or log sink can follow a run without polling.
"""

import json
import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

Subscriber = Callable[["Event"], None]


class EventType(str, Enum):
    ANALYSIS_STARTED = "analysis_started"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"

    MODEL_STARTED = "model_started"
    MODEL_COMPLETED = "model_completed"
    MODEL_FAILED = "model_failed"

    CONSENSUS_COMPLETED = "consensus_completed"


@dataclass
class Event:
    type: EventType
    analysis_id: str
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "analysis_id": self.analysis_id,
            "timestamp": self.timestamp,
            "data": self.data,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class EventBus:
    """
    Per-type and wildcard subscribers plus a bounded history.

    Delivery is synchronous on the publishing thread. Subscriber errors
    are logged and never reach the publisher.
    """

    def __init__(self, max_history: int = 1000):
        self._subscribers: Dict[Optional[EventType], List[Subscriber]] = defaultdict(list)
        self._history: Deque[Event] = deque(maxlen=max_history)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Optional[EventType], callback: Subscriber):
        """Register ``callback`` for one event type, or for all events if ``event_type`` is None."""
        with self._lock:
            self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: Optional[EventType], callback: Subscriber):
        with self._lock:
            if callback in self._subscribers.get(event_type, []):
                self._subscribers[event_type].remove(callback)

    def publish(self, event: Event):
        with self._lock:
            self._history.append(event)
            targets = list(self._subscribers.get(None, [])) + list(self._subscribers.get(event.type, []))

        logger.debug(f"{event.type.value} for analysis {event.analysis_id} -> {len(targets)} subscribers")
        for callback in targets:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber {getattr(callback, '__name__', callback)} failed on {event.type.value}: {e}")

    def get_history(self, analysis_id: Optional[str] = None, event_type: Optional[EventType] = None) -> List[Event]:
        """Recorded events, oldest first, optionally filtered by analysis and type."""
        with self._lock:
            events = list(self._history)
        return [
            e for e in events
            if (analysis_id is None or e.analysis_id == analysis_id)
            and (event_type is None or e.type == event_type)
        ]

    def clear_history(self, analysis_id: Optional[str] = None):
        with self._lock:
            if analysis_id is None:
                self._history.clear()
                return
            kept = [e for e in self._history if e.analysis_id != analysis_id]
            self._history.clear()
            self._history.extend(kept)


_global_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Process-wide bus used when no bus is injected."""
    global _global_event_bus
    if _global_event_bus is None:
        _global_event_bus = EventBus()
    return _global_event_bus


class EventEmitter:
    """Emits the progress events of one analysis run."""

    def __init__(self, analysis_id: str, event_bus: Optional[EventBus] = None):
        self.analysis_id = analysis_id
        self.event_bus = event_bus or get_event_bus()

    def emit(self, event_type: EventType, data: Optional[Dict[str, Any]] = None):
        self.event_bus.publish(Event(type=event_type, analysis_id=self.analysis_id, data=data or {}))

    def analysis_started(self, contract_name: str, model_count: int, mode: str):
        self.emit(EventType.ANALYSIS_STARTED, {
            "contract_name": contract_name,
            "model_count": model_count,
            "mode": mode,
        })

    def model_started(self, model_id: str, model_name: str, focus: str):
        self.emit(EventType.MODEL_STARTED, {
            "model_id": model_id,
            "model_name": model_name,
            "focus": focus,
        })

    def model_completed(self, model_id: str, findings_count: int, latency_ms: int, parse_method: str):
        self.emit(EventType.MODEL_COMPLETED, {
            "model_id": model_id,
            "findings_count": findings_count,
            "latency_ms": latency_ms,
            "parse_method": parse_method,
        })

    def model_failed(self, model_id: str, error: str, latency_ms: int):
        self.emit(EventType.MODEL_FAILED, {
            "model_id": model_id,
            "error": error,
            "latency_ms": latency_ms,
        })

    def consensus_completed(self, total_findings: int, verified_findings: int, duplicates_removed: int):
        self.emit(EventType.CONSENSUS_COMPLETED, {
            "total_findings": total_findings,
            "verified_findings": verified_findings,
            "duplicates_removed": duplicates_removed,
        })

    def analysis_completed(self, report_id: str, overall_score: int, duration_ms: int):
        self.emit(EventType.ANALYSIS_COMPLETED, {
            "report_id": report_id,
            "overall_score": overall_score,
            "duration_ms": duration_ms,
        })

    def analysis_failed(self, error: str):
        self.emit(EventType.ANALYSIS_FAILED, {"error": error})
