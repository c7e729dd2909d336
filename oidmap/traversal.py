"""
OIDMap - Traversal Engine.

Drives a bounded GETBULK walk over one subtree. Strictly sequential: one
batch request outstanding, each batch processed in arrival order before the
next is requested.

A walk ends when:
- an OID outside the root subtree arrives, the agent reports endOfMibView,
  or a batch comes back empty / flagged end-of-subtree  -> DONE
- the protocol engine raises TransportError             -> FAILED
- the cancel event is set (checked before each request) -> CANCELLED

Records already passed to the sink stay there whatever the outcome.

Usage:
    engine = TraversalEngine(PysnmpEngine(), batch_size=20)
    outcome = await engine.run(session, Identifier.parse("1.3.6.1"), sink)
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

from .config import SessionConfig
from .events import EventEmitter
from .exceptions import RecordError, TransportError
from .models import ERROR_TAGS, BatchResult, Record, WalkOutcome
from .oid import Identifier

log = logging.getLogger("oidmap.traversal")

DEFAULT_BATCH_SIZE = 20
DEFAULT_PROGRESS_INTERVAL = 100

RecordSink = Callable[[Record], None]


class ProtocolEngine(Protocol):
    """What the traversal needs from the SNMP layer."""

    async def begin_session(self, config: SessionConfig) -> Any:
        ...

    async def next_batch(self, session: Any, after: Identifier, max_count: int) -> BatchResult:
        ...

    async def close_session(self, session: Any) -> None:
        ...


class TraversalEngine:
    """
    GETBULK subtree walker.

    Attributes:
        protocol: Protocol engine used for next_batch calls
        batch_size: Max records per request
        progress_interval: Emit a progress event every N sunk records
        events: Optional EventEmitter for batch/skip/progress events
    """

    def __init__(
        self,
        protocol: ProtocolEngine,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
        events: Optional[EventEmitter] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if progress_interval < 1:
            raise ValueError("progress_interval must be at least 1")
        self.protocol = protocol
        self.batch_size = batch_size
        self.progress_interval = progress_interval
        self.events = events

    async def run(
        self,
        session: Any,
        root: Identifier,
        sink: RecordSink,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> WalkOutcome:
        """
        Walk the subtree under root, passing each usable record to sink.

        Exceptions raised by sink propagate to the caller.
        """
        processed = 0
        failed = 0
        after = root
        last: Optional[Identifier] = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                log.info(f"Walk of {root} cancelled after {processed} records")
                return WalkOutcome.cancelled(processed, failed)

            try:
                batch = await self.protocol.next_batch(session, after, self.batch_size)
            except TransportError as e:
                log.error(f"Walk of {root} failed after {processed} records: {e}")
                return WalkOutcome.failed_with(e, processed, failed)

            if self.events:
                self.events.batch_received(str(after), len(batch.records))

            for record in batch.records:
                identifier = record.identifier

                if not root.is_prefix_of(identifier) or record.is_end_of_view:
                    log.debug(f"{identifier} ends subtree {root}")
                    return WalkOutcome.done(processed, failed)

                if last is not None and identifier <= last:
                    error = TransportError(f"OID not increasing: {identifier} after {last}")
                    log.error(f"Walk of {root} failed: {error}")
                    return WalkOutcome.failed_with(error, processed, failed)
                last = identifier
                after = identifier

                if record.is_error:
                    failed += 1
                    error = RecordError(record.type_name if record.type_tag in ERROR_TAGS else "empty value")
                    log.debug(f"Skipping {identifier}: {error}")
                    if self.events:
                        self.events.record_skipped(str(identifier), record.type_name, str(error))
                    continue

                sink(record)
                processed += 1

                if processed % self.progress_interval == 0:
                    log.info(f"Walk of {root}: {processed} records")
                    if self.events:
                        self.events.progress(processed, failed)

            if batch.end_of_subtree or not batch.records:
                return WalkOutcome.done(processed, failed)
