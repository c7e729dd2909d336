"""
OIDMap - SNMP OID Walker and Tree Builder.

Walks an agent's OID subtree with GETBULK, resolves names from loaded MIBs,
builds an OID tree and logs every varbind to a durable CSV file.

Architecture:
    oidmap/
    ├── oid.py         # Identifier (dotted OID) model
    ├── models.py      # Record, TypeTag, WalkOutcome
    ├── tree.py        # OID tree builder
    ├── sink.py        # Durable CSV result log
    ├── traversal.py   # GETBULK walk loop
    ├── pipeline.py    # Session + resolve + tree + sink wiring
    ├── events.py      # Walk events and console printers
    ├── config.py      # pydantic settings, YAML loading
    ├── cli.py         # CLI interface
    └── snmp/
        ├── engine.py  # pysnmp protocol engine
        └── mib.py     # MIB name resolver

Quick Start:
    from oidmap import WalkConfig, SessionConfig, walk_device

    config = WalkConfig(session=SessionConfig(target="192.168.1.1"),
                        root_oid="1.3.6.1.2.1.1")
    report = await walk_device(config)
"""

__version__ = "0.3.0"

from .exceptions import (
    OIDMapError,
    FormatError,
    ResolveError,
    RecordError,
    TransportError,
    ConnectError,
    LoadError,
    SinkClosed,
)
from .oid import Identifier, components_after, is_prefix_of
from .models import (
    TypeTag,
    Record,
    BatchResult,
    Translation,
    WalkStatus,
    WalkOutcome,
    resolve_type,
)
from .tree import OidTree, TreeNode
from .sink import CsvSink
from .traversal import TraversalEngine, ProtocolEngine
from .pipeline import WalkPipeline, WalkReport, walk_device
from .events import EventEmitter, EventType, WalkEvent
from .config import SessionConfig, SNMPv3Auth, WalkConfig, load_config


__all__ = [
    # Errors
    'OIDMapError',
    'FormatError',
    'ResolveError',
    'RecordError',
    'TransportError',
    'ConnectError',
    'LoadError',
    'SinkClosed',
    # Model
    'Identifier',
    'components_after',
    'is_prefix_of',
    'TypeTag',
    'Record',
    'BatchResult',
    'Translation',
    'WalkStatus',
    'WalkOutcome',
    'resolve_type',
    # Core
    'OidTree',
    'TreeNode',
    'CsvSink',
    'TraversalEngine',
    'ProtocolEngine',
    'WalkPipeline',
    'WalkReport',
    'walk_device',
    # Events
    'EventEmitter',
    'EventType',
    'WalkEvent',
    # Config
    'SessionConfig',
    'SNMPv3Auth',
    'WalkConfig',
    'load_config',
]
