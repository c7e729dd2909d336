"""
OIDMap - SNMP Layer.

pysnmp-backed pieces of a walk:
- engine: GETBULK protocol engine (sessions, batches, value conversion)
- mib: MIB loading and OID-to-name translation

Usage:
    from oidmap.snmp import PysnmpEngine, load_schema_set

    resolver = load_schema_set(["MIBs/ubnt"])
    engine = PysnmpEngine()
"""

from .engine import (
    PysnmpEngine,
    SnmpSession,
    AuthData,
    build_credentials,
    classify_value,
    native_value,
    to_record,
)
from .mib import SchemaResolver, load_schema_set


__all__ = [
    'PysnmpEngine',
    'SnmpSession',
    'AuthData',
    'build_credentials',
    'classify_value',
    'native_value',
    'to_record',
    'SchemaResolver',
    'load_schema_set',
]
