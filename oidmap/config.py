"""
OIDMap - Configuration Models.

One pydantic model tree holds everything a walk needs: how to reach the
agent (SessionConfig), how to walk it, where MIBs live, and where results go.
The CLI builds it from a YAML file plus command-line overrides.

Example YAML:
    session:
      target: 10.87.1.32
      community: public
      version: 2c
      timeout: 1.0
      retries: 1
    root_oid: 1.3.6.1.4.1.41112
    batch_size: 20
    mib_sources:
      - MIBs/ubnt/UBNT-MIB.txt
    output: snmp_data.csv
    append: true
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from .exceptions import FormatError
from .oid import Identifier

log = logging.getLogger("oidmap.config")

SNMP_VERSIONS = ("1", "2c", "3")


class SNMPv3Auth(BaseModel):
    """SNMPv3 authentication parameters"""
    username: str = Field(..., description="SNMPv3 username")
    auth_protocol: str = Field(default="SHA", description="Auth protocol: MD5, SHA, SHA224, SHA256, SHA384, SHA512")
    auth_password: Optional[str] = Field(default=None, description="Auth password")
    priv_protocol: str = Field(default="AES", description="Privacy protocol: DES, 3DES, AES, AES192, AES256")
    priv_password: Optional[str] = Field(default=None, description="Privacy password")


class SessionConfig(BaseModel):
    """How to reach one SNMP agent"""
    target: str = Field(..., description="Target IP address or hostname")
    port: int = Field(default=161, ge=1, le=65535, description="SNMP port")
    community: str = Field(default="public", description="SNMP community string (v1/v2c)")
    version: str = Field(default="2c", description="SNMP version: 1, 2c, or 3")
    timeout: float = Field(default=1.0, gt=0, le=60, description="Per-request timeout in seconds")
    retries: int = Field(default=1, ge=0, le=10, description="Retries per request on timeout")
    v3_auth: Optional[SNMPv3Auth] = Field(default=None, description="SNMPv3 authentication")

    @field_validator("version", mode="before")
    @classmethod
    def _check_version(cls, value: Any) -> str:
        value = str(value).lower().lstrip("v")
        if value not in SNMP_VERSIONS:
            raise ValueError(f"version must be one of {', '.join(SNMP_VERSIONS)}")
        return value


class WalkConfig(BaseModel):
    """Everything needed to run one walk"""
    session: SessionConfig

    root_oid: str = Field(default="1.3.6.1", description="Subtree to walk")
    batch_size: int = Field(default=20, ge=1, le=1000, description="Max-repetitions per GETBULK")
    progress_interval: int = Field(default=100, ge=1, description="Records between progress events")

    mib_sources: List[str] = Field(default_factory=list, description="MIB files or directories")
    mib_modules: List[str] = Field(default_factory=list, description="MIB modules to load (default: all in sources)")
    mib_cache_dir: Optional[str] = Field(default=None, description="Where compiled MIBs are kept")

    output: Optional[str] = Field(default="snmp_data.csv", description="CSV log path (None disables)")
    append: bool = Field(default=False, description="Append to output instead of truncating")
    escape: bool = Field(default=False, description="Quote CSV fields that contain the delimiter")

    tree_output: Optional[str] = Field(default=None, description="Write the OID tree as JSON here")
    print_tree: bool = Field(default=True, description="Print the OID tree when the walk ends")

    @field_validator("root_oid", mode="before")
    @classmethod
    def _check_root(cls, value: Any) -> str:
        try:
            return str(Identifier.parse(str(value)))
        except FormatError as e:
            raise ValueError(str(e)) from e

    @property
    def root(self) -> Identifier:
        return Identifier.parse(self.root_oid)


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> WalkConfig:
    """
    Build a WalkConfig from a YAML file and/or override values.

    Override keys that belong to SessionConfig may be given flat
    (``target``, ``community``...) and are folded into ``session``.
    None values in overrides are ignored so unset CLI flags keep
    file values.

    Raises:
        FileNotFoundError, yaml.YAMLError, pydantic.ValidationError
    """
    data: Dict[str, Any] = {}
    if path:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: top level must be a mapping")
        log.debug(f"Loaded config from {path}")

    session = dict(data.get("session") or {})
    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key in SessionConfig.model_fields:
            session[key] = value
        else:
            data[key] = value

    data["session"] = session
    return WalkConfig.model_validate(data)
