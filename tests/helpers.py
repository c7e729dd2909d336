"""
Test doubles for walks.

In-memory stand-ins for the SNMP protocol engine and the MIB resolver so
walks can be tested without a network or compiled MIBs.
"""

from typing import Dict, List, Optional, Union

from oidmap.config import SessionConfig
from oidmap.exceptions import ConnectError, ResolveError
from oidmap.models import BatchResult, Record, Translation, TypeTag
from oidmap.oid import Identifier


def rec(oid: str, value="v", tag: TypeTag = TypeTag.OCTET_STRING) -> Record:
    return Record(Identifier.parse(oid), tag, value)


class FakeProtocol:
    """Replays scripted batches; an Exception entry is raised instead."""

    def __init__(self, batches: List[Union[BatchResult, Exception]], connect_error: bool = False):
        self.batches = list(batches)
        self.connect_error = connect_error
        self.requests: List[tuple] = []
        self.opened = 0
        self.closed = 0

    async def begin_session(self, config: SessionConfig):
        if self.connect_error:
            raise ConnectError(f"refused: {config.target}")
        self.opened += 1
        return {"target": config.target}

    async def next_batch(self, session, after: Identifier, max_count: int) -> BatchResult:
        self.requests.append((str(after), max_count))
        if not self.batches:
            return BatchResult([], end_of_subtree=True)
        item = self.batches.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close_session(self, session) -> None:
        self.closed += 1


class FakeResolver:
    """Translates from a fixed prefix->label table."""

    def __init__(self, names: Optional[Dict[str, str]] = None):
        self.names = names or {}

    def translate(self, identifier: Identifier) -> Translation:
        text = str(identifier)
        for prefix, label in self.names.items():
            if text == prefix or text.startswith(prefix + "."):
                return Translation(label + text[len(prefix):])
        return Translation(text, False, ResolveError(f"{text}: unknown"))
