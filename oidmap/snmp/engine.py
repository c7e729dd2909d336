"""
OIDMap - SNMP Protocol Engine.

The traversal engine talks to agents only through three calls:

    session = await engine.begin_session(config)
    batch = await engine.next_batch(session, after, max_count)
    await engine.close_session(session)

PysnmpEngine implements them with pysnmp's asyncio GETBULK. Retries and
per-request timeouts are configured on SessionConfig and handled here, never
in the traversal loop.

Usage:
    from oidmap.config import SessionConfig
    from oidmap.snmp.engine import PysnmpEngine

    engine = PysnmpEngine()
    session = await engine.begin_session(SessionConfig(target="192.168.1.1"))
    try:
        batch = await engine.next_batch(session, Identifier.parse("1.3.6.1.2.1.1"), 20)
    finally:
        await engine.close_session(session)
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pyasn1.type import univ
from pysnmp.error import PySnmpError
from pysnmp.hlapi.v3arch.asyncio import (
    bulk_cmd,
    SnmpEngine, CommunityData, UsmUserData,
    UdpTransportTarget, ContextData,
    ObjectType, ObjectIdentity,
    usmHMACMD5AuthProtocol, usmHMACSHAAuthProtocol,
    usmHMAC128SHA224AuthProtocol, usmHMAC192SHA256AuthProtocol,
    usmHMAC256SHA384AuthProtocol, usmHMAC384SHA512AuthProtocol,
    usmDESPrivProtocol, usm3DESEDEPrivProtocol, usmAesCfb128Protocol,
    usmAesCfb192Protocol, usmAesCfb256Protocol,
    usmNoAuthProtocol, usmNoPrivProtocol,
)
from pysnmp.proto import rfc1902, rfc1905

from ..config import SessionConfig, SNMPv3Auth
from ..exceptions import ConnectError, FormatError, TransportError
from ..models import BatchResult, Record, TypeTag
from ..oid import Identifier

log = logging.getLogger("oidmap.snmp")

AuthData = Union[CommunityData, UsmUserData]


# =============================================================================
# SNMPv3 Protocol Mappings
# =============================================================================

AUTH_PROTOCOLS = {
    "MD5": usmHMACMD5AuthProtocol,
    "SHA": usmHMACSHAAuthProtocol,
    "SHA224": usmHMAC128SHA224AuthProtocol,
    "SHA256": usmHMAC192SHA256AuthProtocol,
    "SHA384": usmHMAC256SHA384AuthProtocol,
    "SHA512": usmHMAC384SHA512AuthProtocol,
    "NONE": usmNoAuthProtocol,
}

PRIV_PROTOCOLS = {
    "DES": usmDESPrivProtocol,
    "3DES": usm3DESEDEPrivProtocol,
    "AES": usmAesCfb128Protocol,
    "AES128": usmAesCfb128Protocol,
    "AES192": usmAesCfb192Protocol,
    "AES256": usmAesCfb256Protocol,
    "NONE": usmNoPrivProtocol,
}


def build_credentials(version: str, community: str, v3_auth: Optional[SNMPv3Auth] = None) -> AuthData:
    """Build pysnmp credentials based on SNMP version"""
    if version == "3":
        if v3_auth is None:
            raise ConnectError("SNMPv3 requires v3_auth settings")
        auth_proto = AUTH_PROTOCOLS.get(v3_auth.auth_protocol.upper(), usmHMACSHAAuthProtocol)
        priv_proto = PRIV_PROTOCOLS.get(v3_auth.priv_protocol.upper(), usmAesCfb128Protocol)

        return UsmUserData(
            v3_auth.username,
            authKey=v3_auth.auth_password,
            privKey=v3_auth.priv_password,
            authProtocol=auth_proto if v3_auth.auth_password else usmNoAuthProtocol,
            privProtocol=priv_proto if v3_auth.priv_password else usmNoPrivProtocol,
        )

    # v1 or v2c
    mp_model = 1 if version == "2c" else 0
    return CommunityData(community, mpModel=mp_model)


# =============================================================================
# Value Conversion
# =============================================================================

# Built once; varbinds are classified by ASN.1 tag, not by scanning types
TAG_TYPES: Dict[Any, TypeTag] = {
    univ.Boolean.tagSet: TypeTag.BOOLEAN,
    rfc1902.Integer32.tagSet: TypeTag.INTEGER,
    rfc1902.OctetString.tagSet: TypeTag.OCTET_STRING,
    univ.Null.tagSet: TypeTag.NULL,
    rfc1902.ObjectName.tagSet: TypeTag.OID,
    rfc1902.IpAddress.tagSet: TypeTag.IP_ADDRESS,
    rfc1902.Counter32.tagSet: TypeTag.COUNTER,
    rfc1902.Gauge32.tagSet: TypeTag.GAUGE,
    rfc1902.TimeTicks.tagSet: TypeTag.TIME_TICKS,
    rfc1902.Opaque.tagSet: TypeTag.OPAQUE,
    rfc1902.Counter64.tagSet: TypeTag.COUNTER64,
    rfc1905.NoSuchObject.tagSet: TypeTag.NO_SUCH_OBJECT,
    rfc1905.NoSuchInstance.tagSet: TypeTag.NO_SUCH_INSTANCE,
    rfc1905.EndOfMibView.tagSet: TypeTag.END_OF_MIB_VIEW,
}

NUMERIC_TYPES = frozenset({
    TypeTag.INTEGER,
    TypeTag.COUNTER,
    TypeTag.GAUGE,
    TypeTag.TIME_TICKS,
    TypeTag.COUNTER64,
})

NULL_TYPES = frozenset({
    TypeTag.NULL,
    TypeTag.NO_SUCH_OBJECT,
    TypeTag.NO_SUCH_INSTANCE,
    TypeTag.END_OF_MIB_VIEW,
})


def classify_value(value: Any) -> Union[TypeTag, int]:
    """TypeTag for a pysnmp value (raw tag id if not a known SNMP type)."""
    tag_set = getattr(value, "tagSet", None)
    if tag_set is None:
        return 0
    tag = TAG_TYPES.get(tag_set)
    if tag is not None:
        return tag
    try:
        return tag_set[-1].tagId
    except (IndexError, AttributeError):
        return 0


def native_value(value: Any, tag: Union[TypeTag, int]) -> Any:
    """Convert a pysnmp value to an int, text, or None."""
    if value is None or tag in NULL_TYPES:
        return None
    if tag in NUMERIC_TYPES:
        try:
            return int(value)
        except (TypeError, ValueError):
            pass
    if tag == TypeTag.BOOLEAN:
        return bool(value)
    if hasattr(value, "prettyPrint"):
        return value.prettyPrint()
    return str(value)


def to_record(var_bind: Any) -> Record:
    """Build a Record from one (ObjectName, value) varbind."""
    oid, value = var_bind[0], var_bind[1]
    identifier = Identifier.parse(str(oid))
    tag = classify_value(value)
    return Record(identifier, tag, native_value(value, tag))


# =============================================================================
# Protocol Engine
# =============================================================================

@dataclass
class SnmpSession:
    """Open pysnmp session to one agent."""
    config: SessionConfig
    engine: Any
    auth: Any
    transport: Any
    requests: int = 0

    @property
    def target(self) -> str:
        return f"{self.config.target}:{self.config.port}"


class PysnmpEngine:
    """
    GETBULK protocol engine on pysnmp's asyncio hlapi.

    Attributes:
        snmp_engine: Shared SnmpEngine (a new one per session if None)
        slack: Extra seconds allowed on top of timeout * (retries + 1)
    """

    def __init__(self, snmp_engine: Optional[Any] = None, slack: float = 2.0):
        self.snmp_engine = snmp_engine
        self.slack = slack

    async def begin_session(self, config: SessionConfig) -> SnmpSession:
        """
        Open a session to the agent.

        Raises:
            ConnectError: bad credentials settings or unresolvable target
        """
        auth = build_credentials(config.version, config.community, config.v3_auth)
        try:
            transport = await UdpTransportTarget.create(
                (config.target, config.port),
                timeout=config.timeout,
                retries=config.retries,
            )
        except Exception as e:
            raise ConnectError(f"Cannot open transport to {config.target}:{config.port}: {e}") from e

        engine = self.snmp_engine or SnmpEngine()
        log.debug(f"Session opened to {config.target}:{config.port} (v{config.version})")
        return SnmpSession(config=config, engine=engine, auth=auth, transport=transport)

    async def next_batch(self, session: SnmpSession, after: Identifier, max_count: int) -> BatchResult:
        """
        One GETBULK round trip for up to max_count successors of ``after``.

        Raises:
            TransportError: timeout exhaustion, pysnmp error, error indication
                or error status
        """
        config = session.config
        budget = config.timeout * (config.retries + 1) + self.slack
        session.requests += 1

        try:
            error_indication, error_status, error_index, var_binds = await asyncio.wait_for(
                bulk_cmd(
                    session.engine,
                    session.auth,
                    session.transport,
                    ContextData(),
                    0,  # non-repeaters
                    max_count,  # max-repetitions
                    ObjectType(ObjectIdentity(str(after))),
                    lookupMib=False,
                ),
                timeout=budget,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timeout after {budget:.1f}s waiting for {session.target}") from e
        except PySnmpError as e:
            raise TransportError(f"{session.target}: {e}") from e

        if error_indication:
            raise TransportError(f"{session.target}: {error_indication}")

        if error_status:
            raise TransportError(
                f"{session.target}: {error_status.prettyPrint()} at {error_index}"
            )

        records: List[Record] = []
        end_of_subtree = False
        for var_bind in _flatten(var_binds):
            try:
                record = to_record(var_bind)
            except FormatError as e:
                raise TransportError(f"{session.target}: bad OID in response: {e}") from e
            if record.is_end_of_view:
                end_of_subtree = True
                break
            records.append(record)

        log.debug(f"GETBULK {session.target} after {after}: {len(records)} varbinds")
        return BatchResult(records=records, end_of_subtree=end_of_subtree or not records)

    async def close_session(self, session: SnmpSession) -> None:
        """Release the session's transport. Safe on a shared engine."""
        if self.snmp_engine is not None:
            return
        try:
            session.engine.close_dispatcher()
        except Exception as e:
            log.debug(f"close_dispatcher on {session.target}: {e}")


def _flatten(var_binds: Any) -> List[Any]:
    """GETBULK results are a flat list in pysnmp 7, a table in older releases."""
    flat: List[Any] = []
    for item in var_binds or ():
        if isinstance(item, (list, tuple)) and item and isinstance(item[0], (list, tuple, ObjectType)):
            flat.extend(item)
        else:
            flat.append(item)
    return flat
