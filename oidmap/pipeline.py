"""
OIDMap - Walk Pipeline.

Wires one walk together: open a session, run the traversal, and for every
usable varbind resolve its name, add it to the OID tree and append it to the
result sink. The sink and session are closed on every exit path, including
connect failures and cancellation.

Usage:
    from oidmap.pipeline import walk_device
    from oidmap.config import load_config

    report = await walk_device(load_config("walk.yaml"))
    print(report.outcome.status, report.outcome.processed)
    for line in report.tree.render():
        print(line)
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .config import SessionConfig, WalkConfig
from .events import EventEmitter
from .exceptions import ConnectError
from .models import Record, WalkOutcome, WalkStatus
from .oid import Identifier
from .sink import CsvSink
from .traversal import DEFAULT_BATCH_SIZE, DEFAULT_PROGRESS_INTERVAL, ProtocolEngine, TraversalEngine
from .tree import OidTree

log = logging.getLogger("oidmap.pipeline")


@dataclass
class WalkReport:
    """Outcome of one walk plus the tree it built."""
    target: str
    root: Identifier
    outcome: WalkOutcome
    tree: OidTree
    untranslated: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": self.target,
            "root": str(self.root),
            "outcome": self.outcome.to_dict(),
            "untranslated": self.untranslated,
            "duration_seconds": self.duration_seconds,
            "tree": self.tree.to_dict(),
        }


class WalkPipeline:
    """
    Resolve -> tree -> sink pipeline around a TraversalEngine.

    Attributes:
        protocol: Protocol engine (PysnmpEngine or a test double)
        resolver: Object with translate(identifier) -> Translation
        sink: CsvSink or None to keep results in memory only
        events: EventEmitter for console/JSON output
    """

    def __init__(
        self,
        protocol: ProtocolEngine,
        resolver: Any,
        sink: Optional[CsvSink] = None,
        events: Optional[EventEmitter] = None,
    ):
        self.protocol = protocol
        self.resolver = resolver
        self.sink = sink
        self.events = events or EventEmitter()

    async def walk(
        self,
        session_config: SessionConfig,
        root: Identifier,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> WalkReport:
        """Run one walk. Never leaves the sink or session open."""
        target = f"{session_config.target}:{session_config.port}"
        tree = OidTree(root)
        untranslated = 0
        start = datetime.now()

        def on_record(record: Record) -> None:
            nonlocal untranslated
            translation = self.resolver.translate(record.identifier)
            if not translation.resolved:
                untranslated += 1
                log.debug(f"Translation failed for {record.identifier}: {translation.error}")
                self.events.translation_failed(str(record.identifier), str(translation.error))

            tree.insert(record.identifier, translation.name if translation.resolved else None)
            if self.sink is not None:
                self.sink.append(record, translation.name)
            self.events.record_discovered(
                str(record.identifier), translation.name, record.type_name, record.value,
            )

        self.events.walk_started(target, str(root), batch_size)
        session = None
        try:
            try:
                session = await self.protocol.begin_session(session_config)
            except ConnectError as e:
                log.error(f"Cannot connect to {target}: {e}")
                outcome = WalkOutcome.failed_with(e, 0, 0)
            else:
                traversal = TraversalEngine(
                    self.protocol,
                    batch_size=batch_size,
                    progress_interval=progress_interval,
                    events=self.events,
                )
                outcome = await traversal.run(session, root, on_record, cancel_event)
        finally:
            try:
                if self.sink is not None:
                    self.sink.close()
            finally:
                if session is not None:
                    await self.protocol.close_session(session)

        duration = (datetime.now() - start).total_seconds()

        if outcome.status == WalkStatus.DONE:
            self.events.walk_complete(outcome.processed, outcome.failed, duration)
        elif outcome.status == WalkStatus.CANCELLED:
            self.events.walk_cancelled(outcome.processed, outcome.failed)
        else:
            self.events.walk_failed(str(outcome.error), outcome.processed, outcome.failed, duration)

        log.info(
            f"Walk {target} {root}: {outcome.status.value}, "
            f"{outcome.processed} processed, {outcome.failed} failed in {duration:.1f}s"
        )

        return WalkReport(
            target=target,
            root=root,
            outcome=outcome,
            tree=tree,
            untranslated=untranslated,
            duration_seconds=duration,
        )


async def walk_device(
    config: WalkConfig,
    protocol: Optional[ProtocolEngine] = None,
    resolver: Optional[Any] = None,
    events: Optional[EventEmitter] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> WalkReport:
    """
    Build resolver, sink and protocol engine from config and run one walk.

    Example:
        config = WalkConfig(session=SessionConfig(target="10.87.1.32"),
                            root_oid="1.3.6.1.4.1.41112")
        report = await walk_device(config)
    """
    if protocol is None:
        from .snmp.engine import PysnmpEngine
        protocol = PysnmpEngine()

    if resolver is None:
        from .snmp.mib import load_schema_set
        resolver = load_schema_set(config.mib_sources, config.mib_modules or None, config.mib_cache_dir)

    sink = CsvSink(config.output, append=config.append, escape=config.escape) if config.output else None

    pipeline = WalkPipeline(protocol, resolver, sink=sink, events=events)
    return await pipeline.walk(
        config.session,
        config.root,
        batch_size=config.batch_size,
        progress_interval=config.progress_interval,
        cancel_event=cancel_event,
    )
