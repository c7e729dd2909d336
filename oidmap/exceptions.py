"""
OIDMap - Error Taxonomy.

Local errors (FormatError, ResolveError, RecordError, LoadError) never end a
walk. TransportError ends the current walk with a FAILED outcome.
"""


class OIDMapError(Exception):
    """Base exception for oidmap."""
    pass


class FormatError(OIDMapError, ValueError):
    """Raised when OID text is not a dotted sequence of non-negative integers."""
    pass


class ResolveError(OIDMapError):
    """MIB translation failed for one OID."""
    pass


class RecordError(OIDMapError):
    """Agent flagged a varbind as an error or returned an empty value."""
    pass


class TransportError(OIDMapError):
    """Session-level failure (timeout exhaustion, bad response, socket error)."""
    pass


class ConnectError(TransportError):
    """Raised when a session to the agent cannot be opened."""
    pass


class LoadError(OIDMapError):
    """A MIB module failed to compile or load."""

    def __init__(self, module: str, reason: str):
        super().__init__(f"{module}: {reason}")
        self.module = module
        self.reason = reason


class SinkClosed(OIDMapError):
    """Raised when appending to a closed result sink."""
    pass
