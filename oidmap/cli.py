#!/usr/bin/env python3
"""
OIDMap - Command Line Interface.

Usage:
    # Walk a subtree, log to snmp_data.csv, print the OID tree
    python -m oidmap walk 10.87.1.32 --root 1.3.6.1 -c public

    # Walk with vendor MIBs and append to an existing log
    python -m oidmap walk 10.87.1.32 --mib MIBs/ubnt --append -o ubnt.csv

    # Settings from YAML, flags override
    python -m oidmap walk --config walk.yaml -b 50

    # Resolve OIDs offline
    python -m oidmap translate 1.3.6.1.2.1.1.5.0 --mib MIBs/ubnt

    # Rebuild the tree from a previous walk's CSV log
    python -m oidmap tree snmp_data.csv --root 1.3.6.1.2.1
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from . import __version__
from .config import load_config
from .events import ConsoleEventPrinter, EventEmitter, JsonEventPrinter
from .exceptions import FormatError
from .models import WalkStatus
from .oid import Identifier
from .sink import read_rows
from .tree import OidTree

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def setup_logging(level: str = "WARNING", color: bool = True):
    """Configure oidmap logging with optional colors"""

    # Color codes (disabled on Windows unless using Windows Terminal)
    use_color = color and (sys.platform != 'win32' or 'WT_SESSION' in os.environ)

    class ColorFormatter(logging.Formatter):
        COLORS = {
            'DEBUG': '\033[36m',    # Cyan
            'INFO': '\033[32m',     # Green
            'WARNING': '\033[33m',  # Yellow
            'ERROR': '\033[31m',    # Red
            'CRITICAL': '\033[35m', # Magenta
        }
        RESET = '\033[0m'

        def format(self, record):
            if use_color:
                color_code = self.COLORS.get(record.levelname, self.RESET)
                record.levelname = f"{color_code}{record.levelname:8}{self.RESET}"
            else:
                record.levelname = f"{record.levelname:8}"
            return super().format(record)

    log_level = getattr(logging, level.upper(), logging.WARNING)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    logger = logging.getLogger("oidmap")
    logger.setLevel(log_level)
    logger.handlers = [handler]
    logger.propagate = False


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog='oidmap',
        description='SNMP OID walker and tree builder',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  oidmap walk 192.168.1.1 --root 1.3.6.1.2.1 -c public
  oidmap walk --config walk.yaml --json-events
  oidmap translate 1.3.6.1.2.1.1.1.0
  oidmap tree snmp_data.csv
        """
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'oidmap {__version__}'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='WARNING',
        help='Log level (default: WARNING)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Walk command
    walk_parser = subparsers.add_parser('walk', help='Walk an OID subtree on a device')
    walk_parser.add_argument('target', nargs='?', help='IP address or hostname')
    walk_parser.add_argument('--config', type=Path, help='YAML config file')
    walk_parser.add_argument('-r', '--root', dest='root_oid', help='Root OID (default: 1.3.6.1)')
    walk_parser.add_argument('-c', '--community', help='SNMP community string (default: public)')
    walk_parser.add_argument(
        '--snmp-version',
        dest='version',
        choices=['1', '2c', '3'],
        help='SNMP version (default: 2c)'
    )
    walk_parser.add_argument('-p', '--port', type=int, help='SNMP port (default: 161)')
    walk_parser.add_argument(
        '-t', '--timeout',
        type=float,
        help='Per-request timeout in seconds (default: 1)'
    )
    walk_parser.add_argument('--retries', type=int, help='Retries per request (default: 1)')
    walk_parser.add_argument(
        '-b', '--batch-size',
        dest='batch_size',
        type=int,
        help='Max varbinds per GETBULK (default: 20)'
    )
    walk_parser.add_argument(
        '--progress',
        dest='progress_interval',
        type=int,
        help='Progress line every N records (default: 100)'
    )
    walk_parser.add_argument(
        '--mib',
        action='append',
        dest='mib_sources',
        help='MIB file or directory (repeatable)'
    )
    walk_parser.add_argument(
        '--module',
        action='append',
        dest='mib_modules',
        help='MIB module name to load (repeatable)'
    )
    walk_parser.add_argument('--mib-cache', dest='mib_cache_dir', help='Compiled MIB cache directory')
    walk_parser.add_argument('-o', '--output', help='CSV log path (default: snmp_data.csv)')
    walk_parser.add_argument(
        '--append',
        action='store_true',
        default=None,
        help='Append to the CSV log instead of truncating it'
    )
    walk_parser.add_argument(
        '--escape',
        action='store_true',
        default=None,
        help='Quote CSV fields containing commas'
    )
    walk_parser.add_argument('--tree-json', dest='tree_output', help='Write the OID tree as JSON')
    walk_parser.add_argument(
        '--no-tree',
        action='store_false',
        dest='print_tree',
        default=None,
        help='Do not print the OID tree at the end'
    )
    walk_parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Do not print a line per record'
    )
    walk_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')
    walk_parser.add_argument(
        '--no-color',
        action='store_true',
        dest='no_color',
        help='Disable colored output'
    )
    walk_parser.add_argument('--timestamps', action='store_true', help='Show timestamps in output')
    walk_parser.add_argument(
        '--json-events',
        action='store_true',
        dest='json_events',
        help='Output events as JSON lines'
    )

    # Translate command
    translate_parser = subparsers.add_parser('translate', help='Resolve OIDs to MIB names')
    translate_parser.add_argument('oids', nargs='+', help='Numeric OIDs')
    translate_parser.add_argument('--mib', action='append', dest='mib_sources', help='MIB file or directory')
    translate_parser.add_argument('--module', action='append', dest='mib_modules', help='MIB module name')
    translate_parser.add_argument('--mib-cache', dest='mib_cache_dir', help='Compiled MIB cache directory')

    # Tree command
    tree_parser = subparsers.add_parser('tree', help='Rebuild the OID tree from a CSV log')
    tree_parser.add_argument('csv', type=Path, help='CSV log written by walk')
    tree_parser.add_argument('-r', '--root', default='', help='Only include OIDs under this root')
    tree_parser.add_argument('--escaped', action='store_true', help='Log was written with --escape')
    tree_parser.add_argument('--json', dest='json_output', type=Path, help='Write the tree as JSON')

    return parser


async def cmd_walk(args) -> int:
    """Run one walk with event-driven console output."""
    from .pipeline import walk_device

    overrides = {
        key: getattr(args, key)
        for key in (
            'target', 'community', 'version', 'port', 'timeout', 'retries',
            'root_oid', 'batch_size', 'progress_interval', 'mib_sources',
            'mib_modules', 'mib_cache_dir', 'output', 'append', 'escape',
            'tree_output', 'print_tree',
        )
    }

    try:
        config = load_config(args.config, overrides)
    except FileNotFoundError as e:
        print(f"ERROR: Config file not found: {e}")
        return EXIT_FAILED
    except yaml.YAMLError as e:
        print(f"ERROR: YAML parsing error: {e}")
        return EXIT_FAILED
    except (ValidationError, ValueError) as e:
        print(f"ERROR: Invalid configuration: {e}")
        return EXIT_FAILED

    emitter = EventEmitter()
    if args.json_events:
        emitter.subscribe(JsonEventPrinter().handle_event)
    else:
        printer = ConsoleEventPrinter(
            verbose=args.verbose,
            color=not args.no_color,
            show_timestamps=args.timestamps,
            show_records=not args.quiet,
        )
        emitter.subscribe(printer.handle_event)

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no signal handlers
        pass

    try:
        report = await walk_device(config, events=emitter, cancel_event=cancel_event)
    except OSError as e:
        print(f"ERROR: Walk aborted: {e}")
        return EXIT_FAILED
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    if config.tree_output:
        with open(config.tree_output, 'w') as f:
            json.dump(report.to_dict(), f, indent=2)
        if not args.json_events:
            print(f"\nTree saved to: {config.tree_output}")

    if config.print_tree and not args.json_events:
        print("\nOID Tree:")
        for line in report.tree.render():
            print(line)

    if report.outcome.status == WalkStatus.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_OK if report.outcome.ok else EXIT_FAILED


def cmd_translate(args) -> int:
    """Resolve each OID argument and print oid = name."""
    from .snmp.mib import load_schema_set

    resolver = load_schema_set(args.mib_sources or [], args.mib_modules, args.mib_cache_dir)
    for error in resolver.load_errors:
        print(f"WARNING: {error}")

    rc = EXIT_OK
    for text in args.oids:
        try:
            identifier = Identifier.parse(text)
        except FormatError as e:
            print(f"ERROR: {e}")
            rc = EXIT_FAILED
            continue
        result = resolver.translate(identifier)
        suffix = "" if result.resolved else "  (unresolved)"
        print(f"{identifier} = {result.name}{suffix}")
    return rc


def cmd_tree(args) -> int:
    """Rebuild and print the OID tree from a CSV log."""
    try:
        root = Identifier.parse(args.root) if args.root else Identifier(())
    except FormatError as e:
        print(f"ERROR: {e}")
        return EXIT_FAILED

    tree = build_tree_from_csv(args.csv, root, escaped=args.escaped)
    if tree is None:
        return EXIT_FAILED

    for line in tree.render():
        print(line)

    if args.json_output:
        with open(args.json_output, 'w') as f:
            json.dump(tree.to_dict(), f, indent=2)
        print(f"\nTree saved to: {args.json_output}")
    return EXIT_OK


def build_tree_from_csv(path: Path, root: Identifier, escaped: bool = False) -> Optional[OidTree]:
    """OidTree from a sink file; rows outside root or with bad OIDs are skipped."""
    try:
        rows = read_rows(path, escaped=escaped)
    except OSError as e:
        print(f"ERROR: Cannot read {path}: {e}")
        return None

    tree = OidTree(root)
    skipped = 0
    for row in rows:
        try:
            identifier = Identifier.parse(row[0])
        except FormatError:
            skipped += 1
            continue
        if not root.is_prefix_of(identifier):
            continue
        name = row[1] if len(row) > 1 and row[1] != row[0] else None
        tree.insert(identifier, name)

    if skipped:
        logging.getLogger("oidmap.cli").warning(f"{path}: skipped {skipped} rows with malformed OIDs")
    return tree


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return EXIT_FAILED

    setup_logging(args.log_level, color=not getattr(args, 'no_color', False))

    if args.command == 'walk':
        return asyncio.run(cmd_walk(args))
    elif args.command == 'translate':
        return cmd_translate(args)
    elif args.command == 'tree':
        return cmd_tree(args)
    else:
        parser.print_help()
        return EXIT_FAILED


if __name__ == '__main__':
    sys.exit(main())
