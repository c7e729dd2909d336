"""
OIDMap - MIB Name Resolver.

Best-effort translation of numeric OIDs into MIB label paths using pysnmp's
MIB builder and view controller. Raw MIB text (e.g. UBNT-MIB.txt) is compiled
on first use through pysmi.

Translation never raises: an OID that cannot be resolved comes back as its
dotted text with ``resolved=False`` so the walk can log it and move on.

Usage:
    resolver = load_schema_set(["MIBs/ubnt/UBNT-MIB.txt"])
    for err in resolver.load_errors:
        print(err)

    result = resolver.translate(Identifier.parse("1.3.6.1.2.1.1.5.0"))
    result.name      # "iso.org.dod.internet.mgmt.mib-2.system.sysName.0"
"""

import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union

from pysnmp.proto.rfc1902 import ObjectName
from pysnmp.smi import builder, view
from pysnmp.smi.compiler import add_mib_compiler

from ..exceptions import LoadError, ResolveError
from ..models import Translation, TypeTag, resolve_type
from ..oid import Identifier

log = logging.getLogger("oidmap.snmp.mib")

# File suffixes pysmi's file reader looks for
MIB_SUFFIXES = ("", ".txt", ".mib", ".my")


class SchemaResolver:
    """
    Wraps a pysnmp MIB view for OID-to-name translation.

    Attributes:
        mib_builder: pysnmp MibBuilder (None when no MIBs are loaded)
        mib_view: MibViewController over mib_builder
        loaded_modules: Modules that loaded successfully
        load_errors: One LoadError per module that did not
    """

    def __init__(self, mib_builder: Optional[Any] = None, mib_view: Optional[Any] = None):
        self.mib_builder = mib_builder
        if mib_view is None and mib_builder is not None:
            mib_view = view.MibViewController(mib_builder)
        self.mib_view = mib_view
        self.loaded_modules: List[str] = []
        self.load_errors: List[LoadError] = []

    @property
    def is_loaded(self) -> bool:
        return self.mib_view is not None

    def translate(self, identifier: Identifier) -> Translation:
        """Resolve identifier to a label path, falling back to dotted text."""
        raw = str(identifier)
        if self.mib_view is None:
            return Translation(raw, False, ResolveError("no MIB view loaded"))

        try:
            _, label, suffix = self.mib_view.get_node_name(ObjectName(identifier.components))
        except Exception as e:
            return Translation(raw, False, ResolveError(f"{raw}: {e}"))

        if not label:
            return Translation(raw, False, ResolveError(f"{raw}: no matching MIB node"))

        name = ".".join(str(part) for part in label)
        suffix = tuple(suffix or ())
        if suffix:
            name = f"{name}.{'.'.join(str(c) for c in suffix)}"
        return Translation(name)

    def resolve_type(self, tag: Union[TypeTag, int, None]) -> str:
        return resolve_type(tag)


def _expand_sources(
    sources: Iterable[Union[str, Path]],
) -> Tuple[List[Path], List[str]]:
    """Split sources into search directories and module names."""
    directories: List[Path] = []
    modules: List[str] = []
    for source in sources:
        path = Path(source).expanduser()
        if path.is_dir():
            directories.append(path)
            for entry in sorted(path.iterdir()):
                if entry.is_file() and not entry.name.startswith(".") and entry.suffix.lower() in MIB_SUFFIXES:
                    modules.append(entry.stem)
        elif path.is_file():
            directories.append(path.parent)
            modules.append(path.stem)
        else:
            log.warning(f"MIB source not found: {path}")

    # De-duplicate, keeping order
    directories = list(dict.fromkeys(directories))
    modules = list(dict.fromkeys(modules))
    return directories, modules


def load_schema_set(
    sources: Iterable[Union[str, Path]] = (),
    modules: Optional[Iterable[str]] = None,
    cache_dir: Optional[Union[str, Path]] = None,
) -> SchemaResolver:
    """
    Load MIB modules from files and directories.

    Each module is loaded independently. A module that fails to compile or
    load is recorded in ``load_errors`` and the rest still load; OIDs under
    the broken module fall back to their raw text.

    Args:
        sources: MIB files or directories containing MIB files
        modules: Module names to load (default: one per source file)
        cache_dir: Destination for compiled modules (pysnmp default if None)
    """
    directories, discovered = _expand_sources(sources)
    wanted = list(modules) if modules else discovered

    mib_builder = builder.MibBuilder()

    if directories:
        compiler_options = {"sources": [d.resolve().as_uri() for d in directories]}
        if cache_dir:
            cache = Path(cache_dir).expanduser()
            cache.mkdir(parents=True, exist_ok=True)
            compiler_options["destination"] = str(cache)
            mib_builder.add_mib_sources(builder.DirMibSource(str(cache)))
        add_mib_compiler(mib_builder, **compiler_options)

    resolver = SchemaResolver(mib_builder)

    # Base SMI modules give names to the standard tree
    try:
        mib_builder.load_modules("SNMPv2-SMI", "SNMPv2-MIB")
    except Exception as e:
        log.warning(f"Could not load base MIB modules: {e}")

    for module in wanted:
        try:
            mib_builder.load_modules(module)
        except Exception as e:
            error = LoadError(module, str(e) or type(e).__name__)
            resolver.load_errors.append(error)
            log.warning(f"MIB load failed: {error}")
            continue
        resolver.loaded_modules.append(module)
        log.info(f"Loaded MIB module {module}")

    return resolver
