"""
OIDMap - Durable CSV Result Sink.

Append-only log of every usable varbind, written as the walk runs so a crash
mid-walk never loses rows that were already reported.

File format (no header row):
    identifier,resolvedName,typeName,value

Fields are written as-is by default. A value or name containing the delimiter
makes that row ambiguous to parse; the sink logs a warning when it sees one.
Pass ``escape=True`` to quote such fields with the csv module instead.

Opening policy is explicit: ``append=False`` truncates an existing file,
``append=True`` keeps it and adds rows at the end.
"""

import csv
import logging
import os
from pathlib import Path
from typing import Any, List, Optional, Union

from .exceptions import SinkClosed
from .models import Record

log = logging.getLogger("oidmap.sink")


class CsvSink:
    """
    Flushed, fsync'd CSV writer for walk results.

    Usage:
        with CsvSink("snmp_data.csv", append=True) as sink:
            sink.append(record, "sysName.0")
    """

    def __init__(
        self,
        path: Union[str, Path],
        append: bool = False,
        escape: bool = False,
        delimiter: str = ",",
    ):
        self.path = Path(path)
        self.append_mode = append
        self.escape = escape
        self.delimiter = delimiter
        self.rows_written = 0

        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)

        mode = "a" if append else "w"
        self._file = open(self.path, mode, encoding="utf-8", newline="")
        self._writer = csv.writer(self._file, delimiter=delimiter, lineterminator="\n") if escape else None
        log.debug(f"Opened sink {self.path} (mode={mode}, escape={escape})")

    @property
    def closed(self) -> bool:
        return self._file is None

    def append(self, record: Record, resolved_name: Optional[str] = None) -> None:
        """Write one row and make it durable before returning."""
        if self._file is None:
            raise SinkClosed(f"Sink {self.path} is closed")

        fields = self.format_fields(record, resolved_name)

        if self._writer is not None:
            self._writer.writerow(fields)
        else:
            ambiguous = [f for f in fields[1:] if self.delimiter in f]
            if ambiguous:
                log.warning(
                    f"{fields[0]}: field contains delimiter {self.delimiter!r}, "
                    f"row will not parse cleanly (use escape=True to quote)"
                )
            self._file.write(self.delimiter.join(fields) + "\n")

        self._file.flush()
        os.fsync(self._file.fileno())
        self.rows_written += 1

    def format_fields(self, record: Record, resolved_name: Optional[str] = None) -> List[str]:
        oid_text = str(record.identifier)
        return [
            oid_text,
            resolved_name or oid_text,
            record.type_name,
            _value_text(record.value),
        ]

    def close(self) -> None:
        """Flush and close. Further calls are no-ops."""
        if self._file is None:
            return
        try:
            self._file.flush()
            os.fsync(self._file.fileno())
        finally:
            self._file.close()
            self._file = None
            log.debug(f"Closed sink {self.path} ({self.rows_written} rows)")

    def __enter__(self) -> "CsvSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _value_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.hex()
    text = str(value)
    # Newlines would split the row
    return text.replace("\r", "\\r").replace("\n", "\\n")


def read_rows(path: Union[str, Path], escaped: bool = False, delimiter: str = ",") -> List[List[str]]:
    """
    Read a sink file back as rows of four fields.

    Unescaped rows split on the first three delimiters; anything after the
    third stays in the value field.
    """
    rows: List[List[str]] = []
    with open(path, encoding="utf-8", newline="") as f:
        if escaped:
            for row in csv.reader(f, delimiter=delimiter):
                if row:
                    rows.append(row)
            return rows

        for line in f:
            line = line.rstrip("\n")
            if not line:
                continue
            parts = line.split(delimiter, 3)
            rows.append(parts + [""] * (4 - len(parts)))
    return rows
