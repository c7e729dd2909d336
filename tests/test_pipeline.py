import asyncio
import errno

import pytest

from oidmap.config import SessionConfig, WalkConfig
from oidmap.events import EventEmitter, EventType
from oidmap.exceptions import SinkClosed, TransportError
from oidmap.models import BatchResult, TypeTag, WalkStatus
from oidmap.oid import Identifier
from oidmap.pipeline import WalkPipeline, walk_device
from oidmap.sink import CsvSink, read_rows

from helpers import FakeProtocol, FakeResolver, rec


def system_batches():
    return [
        BatchResult([rec("1.3.6.1.2.1.1.1.0", "Linux ubnt"), rec("1.3.6.1.2.1.1.3.0", 4242, TypeTag.TIME_TICKS)]),
        BatchResult([rec("1.3.6.1.2.1.1.5.0", "ap-lobby"), rec("1.3.6.1.2.1.2.1.0", 3, TypeTag.INTEGER)]),
    ]


def walk(pipeline, session_config, root="1.3.6.1.2.1.1", **kwargs):
    return asyncio.run(pipeline.walk(session_config, Identifier.parse(root), batch_size=2, **kwargs))


class TestWalkPipeline:

    def test_end_to_end(self, tmp_path, session_config, resolver):
        protocol = FakeProtocol(system_batches())
        sink = CsvSink(tmp_path / "out.csv")

        report = walk(WalkPipeline(protocol, resolver, sink=sink), session_config)

        assert report.outcome.status == WalkStatus.DONE
        assert report.outcome.processed == 3
        assert report.target == "192.0.2.10:161"
        assert read_rows(tmp_path / "out.csv") == [
            ["1.3.6.1.2.1.1.1.0", "system.1.0", "OctetString", "Linux ubnt"],
            ["1.3.6.1.2.1.1.3.0", "system.3.0", "TimeTicks", "4242"],
            ["1.3.6.1.2.1.1.5.0", "system.5.0", "OctetString", "ap-lobby"],
        ]
        assert report.tree.record_count == 3
        assert sink.closed
        assert protocol.opened == 1 and protocol.closed == 1

    def test_untranslated_records_keep_raw_oid(self, tmp_path, session_config):
        protocol = FakeProtocol([BatchResult([rec("1.3.6.1.4.1.41112.1.0")], end_of_subtree=True)])
        sink = CsvSink(tmp_path / "out.csv")
        events = EventEmitter()
        failures = []
        events.subscribe(failures.append, EventType.TRANSLATION_FAILED)

        report = walk(WalkPipeline(protocol, FakeResolver(), sink=sink, events=events),
                      session_config, root="1.3.6.1.4.1")

        assert report.untranslated == 1
        assert [e.oid for e in failures] == ["1.3.6.1.4.1.41112.1.0"]
        row = read_rows(tmp_path / "out.csv")[0]
        assert row[0] == row[1] == "1.3.6.1.4.1.41112.1.0"

    def test_tree_uses_resolved_names(self, session_config, resolver):
        protocol = FakeProtocol(system_batches())
        report = walk(WalkPipeline(protocol, resolver), session_config)
        node = report.tree.get(Identifier.parse("1.3.6.1.2.1.1.5.0"))
        assert node is not None
        assert node.is_record
        assert node.name == "system.5.0"

    def test_failed_walk_closes_everything(self, tmp_path, session_config, resolver):
        protocol = FakeProtocol([
            BatchResult([rec("1.3.6.1.2.1.1.1.0")]),
            TransportError("Timeout after 4.0s"),
        ])
        sink = CsvSink(tmp_path / "out.csv")

        report = walk(WalkPipeline(protocol, resolver, sink=sink), session_config)

        assert report.outcome.status == WalkStatus.FAILED
        assert report.outcome.processed == 1
        assert len(read_rows(tmp_path / "out.csv")) == 1
        assert sink.closed
        assert protocol.closed == 1

    def test_connect_error_closes_sink(self, tmp_path, session_config, resolver):
        protocol = FakeProtocol([], connect_error=True)
        sink = CsvSink(tmp_path / "out.csv")

        report = walk(WalkPipeline(protocol, resolver, sink=sink), session_config)

        assert report.outcome.status == WalkStatus.FAILED
        assert "refused" in str(report.outcome.error)
        assert sink.closed
        assert protocol.requests == []
        assert protocol.closed == 0

    def test_sink_error_propagates_after_cleanup(self, tmp_path, session_config, resolver):
        protocol = FakeProtocol(system_batches())
        sink = CsvSink(tmp_path / "out.csv")
        sink.close()

        with pytest.raises(SinkClosed):
            walk(WalkPipeline(protocol, resolver, sink=sink), session_config)
        assert protocol.closed == 1

    def test_session_closed_when_sink_close_fails(self, tmp_path, session_config, resolver):
        class FullDiskSink(CsvSink):
            def append(self, record, resolved_name=None):
                raise OSError(errno.ENOSPC, "No space left on device")

            def close(self):
                super().close()
                raise OSError(errno.ENOSPC, "No space left on device")

        protocol = FakeProtocol(system_batches())
        sink = FullDiskSink(tmp_path / "out.csv")

        with pytest.raises(OSError):
            walk(WalkPipeline(protocol, resolver, sink=sink), session_config)
        assert protocol.opened == 1
        assert protocol.closed == 1

    def test_cancelled_walk(self, session_config, resolver):
        protocol = FakeProtocol(system_batches())
        cancel = asyncio.Event()
        cancel.set()
        events = EventEmitter()
        seen = []
        events.subscribe(lambda e: seen.append(e.event_type))

        report = walk(WalkPipeline(protocol, resolver, events=events), session_config,
                      cancel_event=cancel)

        assert report.outcome.status == WalkStatus.CANCELLED
        assert seen == [EventType.WALK_STARTED, EventType.WALK_CANCELLED]
        assert protocol.closed == 1

    def test_event_sequence(self, session_config, resolver):
        protocol = FakeProtocol(system_batches())
        events = EventEmitter()
        seen = []
        events.subscribe(lambda e: seen.append(e.event_type))

        walk(WalkPipeline(protocol, resolver, events=events), session_config)

        assert seen[0] == EventType.WALK_STARTED
        assert seen[-1] == EventType.WALK_COMPLETE
        assert seen.count(EventType.RECORD_DISCOVERED) == 3
        assert events.stats.processed == 3
        assert events.stats.status == "Complete"

    def test_report_to_dict(self, session_config, resolver):
        report = walk(WalkPipeline(FakeProtocol(system_batches()), resolver), session_config)
        data = report.to_dict()
        assert data["root"] == "1.3.6.1.2.1.1"
        assert data["outcome"]["status"] == "done"
        assert data["tree"]["oid"] == "1.3.6.1.2.1.1"


class TestWalkDevice:

    def test_builds_sink_from_config(self, tmp_path, resolver):
        config = WalkConfig(
            session=SessionConfig(target="192.0.2.10"),
            root_oid="1.3.6.1.2.1.1",
            batch_size=2,
            output=str(tmp_path / "walk" / "data.csv"),
        )
        protocol = FakeProtocol(system_batches())

        report = asyncio.run(walk_device(config, protocol=protocol, resolver=resolver))

        assert report.outcome.ok
        assert protocol.requests[0] == ("1.3.6.1.2.1.1", 2)
        assert len(read_rows(tmp_path / "walk" / "data.csv")) == 3

    def test_append_mode_keeps_previous_rows(self, tmp_path, resolver):
        output = tmp_path / "data.csv"
        config = WalkConfig(
            session=SessionConfig(target="192.0.2.10"),
            root_oid="1.3.6.1.2.1.1",
            output=str(output),
            append=True,
        )
        asyncio.run(walk_device(config, protocol=FakeProtocol(system_batches()), resolver=resolver))
        asyncio.run(walk_device(config, protocol=FakeProtocol(system_batches()), resolver=resolver))
        assert len(read_rows(output)) == 6

    def test_no_output(self, tmp_path, resolver, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = WalkConfig(session=SessionConfig(target="192.0.2.10"), root_oid="1.3.6.1.2.1.1", output=None)
        report = asyncio.run(walk_device(config, protocol=FakeProtocol(system_batches()), resolver=resolver))
        assert report.outcome.processed == 3
        assert list(tmp_path.iterdir()) == []
