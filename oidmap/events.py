"""
OIDMap - Walk Event System.

Structured events emitted while a walk runs. The CLI subscribes a console
or JSON-lines printer; anything else (a GUI, a test) can subscribe its own
callback. Events are observability only and never change control flow.

Event Flow:
    walk_started -> (batch_received -> record_discovered* / record_skipped*
    -> progress?)* -> walk_complete | walk_failed | walk_cancelled
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

log = logging.getLogger("oidmap.events")


class EventType(str, Enum):
    """Walk event types."""
    # Walk lifecycle
    WALK_STARTED = "walk_started"
    WALK_COMPLETE = "walk_complete"
    WALK_FAILED = "walk_failed"
    WALK_CANCELLED = "walk_cancelled"

    # Per batch / per record
    BATCH_RECEIVED = "batch_received"
    RECORD_DISCOVERED = "record_discovered"
    RECORD_SKIPPED = "record_skipped"
    TRANSLATION_FAILED = "translation_failed"

    # Periodic
    PROGRESS = "progress"


@dataclass
class WalkStats:
    """Running counters for one walk."""
    processed: int = 0
    failed: int = 0
    untranslated: int = 0
    batches: int = 0
    status: str = "Ready"


@dataclass
class WalkEvent:
    """
    Event emitted during a walk.

    All events have a type, timestamp, and event-specific data.
    """
    event_type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def oid(self) -> str:
        return self.data.get("oid", "")


EventCallback = Callable[[WalkEvent], None]


class EventEmitter:
    """
    Event emitter for walks.

    Usage:
        emitter = EventEmitter()
        emitter.subscribe(printer.handle_event)
        emitter.subscribe(on_progress, EventType.PROGRESS)
    """

    def __init__(self):
        self._listeners: List[tuple[EventCallback, Optional[EventType]]] = []
        self._stats = WalkStats()

    @property
    def stats(self) -> WalkStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats = WalkStats()

    def subscribe(
        self,
        callback: EventCallback,
        event_type: Optional[EventType] = None
    ) -> None:
        """
        Subscribe to events.

        Args:
            callback: Function to call with WalkEvent
            event_type: If specified, only receive this event type
        """
        self._listeners.append((callback, event_type))

    def unsubscribe(self, callback: EventCallback) -> None:
        self._listeners = [
            (cb, et) for cb, et in self._listeners if cb != callback
        ]

    def emit(self, event_type: EventType, **data) -> WalkEvent:
        """Emit an event to all subscribed listeners."""
        event = WalkEvent(
            event_type=event_type,
            timestamp=datetime.now(),
            data=data
        )

        for callback, filter_type in self._listeners:
            if filter_type is None or filter_type == event_type:
                try:
                    callback(event)
                except Exception as e:
                    # A broken listener must not break the walk
                    log.warning(f"Event listener error: {e}")

        return event

    # =========================================================================
    # Convenience methods
    # =========================================================================

    def walk_started(self, target: str, root: str, batch_size: int) -> None:
        """Emit walk started event and reset stats."""
        self.reset_stats()
        self._stats.status = "Walking"
        self.emit(
            EventType.WALK_STARTED,
            target=target,
            root=root,
            batch_size=batch_size,
        )

    def batch_received(self, after: str, count: int) -> None:
        self._stats.batches += 1
        self.emit(
            EventType.BATCH_RECEIVED,
            after=after,
            count=count,
            batch=self._stats.batches,
        )

    def record_discovered(self, oid: str, name: str, type_name: str, value: Any) -> None:
        self._stats.processed += 1
        self.emit(
            EventType.RECORD_DISCOVERED,
            oid=oid,
            name=name,
            type_name=type_name,
            value=value,
        )

    def record_skipped(self, oid: str, type_name: str, reason: str) -> None:
        self._stats.failed += 1
        self.emit(
            EventType.RECORD_SKIPPED,
            oid=oid,
            type_name=type_name,
            reason=reason,
        )

    def translation_failed(self, oid: str, error: str) -> None:
        self._stats.untranslated += 1
        self.emit(
            EventType.TRANSLATION_FAILED,
            oid=oid,
            error=error,
        )

    def progress(self, processed: int, failed: int) -> None:
        self.emit(
            EventType.PROGRESS,
            processed=processed,
            failed=failed,
        )

    def walk_complete(self, processed: int, failed: int, duration_seconds: float) -> None:
        self._stats.status = "Complete"
        self.emit(
            EventType.WALK_COMPLETE,
            processed=processed,
            failed=failed,
            untranslated=self._stats.untranslated,
            duration_seconds=duration_seconds,
        )

    def walk_failed(self, error: str, processed: int, failed: int, duration_seconds: float) -> None:
        self._stats.status = "Failed"
        self.emit(
            EventType.WALK_FAILED,
            error=error,
            processed=processed,
            failed=failed,
            duration_seconds=duration_seconds,
        )

    def walk_cancelled(self, processed: int, failed: int) -> None:
        self._stats.status = "Cancelled"
        self.emit(
            EventType.WALK_CANCELLED,
            processed=processed,
            failed=failed,
        )


# =========================================================================
# Printers (for CLI)
# =========================================================================

class ConsoleEventPrinter:
    """
    Prints walk events to the console.

    Usage:
        printer = ConsoleEventPrinter(verbose=True, color=True)
        emitter.subscribe(printer.handle_event)
    """

    COLORS = {
        "reset": "\033[0m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "red": "\033[31m",
        "green": "\033[32m",
        "yellow": "\033[33m",
        "blue": "\033[34m",
        "cyan": "\033[36m",
    }

    def __init__(
        self,
        verbose: bool = False,
        color: bool = True,
        show_timestamps: bool = False,
        show_records: bool = True,
    ):
        self.verbose = verbose
        self.color = color
        self.show_timestamps = show_timestamps
        self.show_records = show_records

    def _c(self, text: str, *colors: str) -> str:
        if not self.color:
            return text
        codes = "".join(self.COLORS.get(c, "") for c in colors)
        return f"{codes}{text}{self.COLORS['reset']}"

    def _timestamp(self, event: WalkEvent) -> str:
        if not self.show_timestamps:
            return ""
        return f"[{event.timestamp.strftime('%H:%M:%S')}] "

    def handle_event(self, event: WalkEvent) -> None:
        handler = getattr(self, f"_handle_{event.event_type.value}", None)
        if handler:
            handler(event)
        elif self.verbose:
            print(f"{self._timestamp(event)}[{event.event_type.value}] {event.data}")

    def _handle_walk_started(self, event: WalkEvent) -> None:
        data = event.data
        print(self._c("=" * 60, "cyan", "bold"))
        print(self._c(f"SNMP WALK: {data['target']}", "cyan", "bold"))
        print(self._c("=" * 60, "cyan", "bold"))
        print(f"Root OID: {data['root']}")
        print(f"Batch size: {data['batch_size']}")
        print()

    def _handle_batch_received(self, event: WalkEvent) -> None:
        if self.verbose:
            data = event.data
            print(f"{self._timestamp(event)}  batch {data['batch']}: "
                  f"{data['count']} varbinds after {data['after']}")

    def _handle_record_discovered(self, event: WalkEvent) -> None:
        if self.show_records:
            data = event.data
            print(f"{self._timestamp(event)}OID: {data['name']}, "
                  f"Type: {data['type_name']}, Value: {data['value']}")

    def _handle_record_skipped(self, event: WalkEvent) -> None:
        data = event.data
        print(f"{self._timestamp(event)}{self._c('SKIPPED', 'yellow')}: "
              f"{data['oid']} ({data['reason']})")

    def _handle_translation_failed(self, event: WalkEvent) -> None:
        if self.verbose:
            data = event.data
            print(f"{self._timestamp(event)}{self._c('UNRESOLVED', 'dim')}: "
                  f"{data['oid']} ({data['error']})")

    def _handle_progress(self, event: WalkEvent) -> None:
        data = event.data
        print(f"{self._timestamp(event)}{self._c('PROGRESS', 'blue')}: "
              f"{data['processed']} records ({data['failed']} skipped)")

    def _handle_walk_complete(self, event: WalkEvent) -> None:
        data = event.data
        print()
        print(self._c("SNMP walk completed.", "green", "bold"))
        print(f"Processed: {self._c(str(data['processed']), 'green')}")
        print(f"Failed: {self._c(str(data['failed']), 'red')}")
        if data.get("untranslated"):
            print(f"Untranslated: {data['untranslated']}")
        print(f"Duration: {data['duration_seconds']:.1f}s")

    def _handle_walk_failed(self, event: WalkEvent) -> None:
        data = event.data
        print()
        print(self._c(f"SNMP walk failed: {data['error']}", "red", "bold"))
        print(f"Processed before failure: {data['processed']}")
        print(f"Failed: {data['failed']}")
        print(f"Duration: {data['duration_seconds']:.1f}s")

    def _handle_walk_cancelled(self, event: WalkEvent) -> None:
        data = event.data
        print()
        print(self._c("SNMP walk cancelled", "yellow", "bold"))
        print(f"Processed before cancel: {data['processed']}")


class JsonEventPrinter:
    """
    Prints events as JSON lines.

    Each event is one line that another process can parse from stdout.
    """

    def handle_event(self, event: WalkEvent) -> None:
        output = {
            "type": event.event_type.value,
            "timestamp": event.timestamp.isoformat(),
            "data": event.data,
        }
        print(json.dumps(output, default=str), flush=True)
