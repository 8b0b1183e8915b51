# Output writers. Outfile strings like csv:out.txt or devices.json.gz pick the writer.

from __future__ import annotations

import csv
import enum
import gzip
import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, TextIO, Union

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import PatternFill
from openpyxl.utils.exceptions import IllegalCharacterError

from .config import InventoryOptions
from .exceptions import CompressionError, UnsupportedSinkError, WriterError
from .models import CSV_COLUMNS, ResultAggregate

logger = logging.getLogger(__name__)

# Per hue a light and a slightly darker shade, alternated row by row inside a device.
XLSX_COLORS = (
    ("F2F2F2", "E6E6E6"),  # grey
    ("FFFFE6", "FFFFCC"),  # yellow
    ("E6FFE6", "CCFFCC"),  # green
    ("E6FFFF", "CCFFFF"),  # turquoise
    ("E6E6FF", "CCCCFF"),  # blue
    ("FFE6FF", "FFCCFF"),  # purple
    ("FFE6E6", "FFCCCC"),  # red
)


class SinkType(enum.Enum):
    CSV = "csv"
    JSON = "json"
    STDOUT = "stdout"
    XLSX = "xlsx"


@dataclass(frozen=True)
class SinkDescriptor:
    kind: SinkType
    path: str
    compress: bool = False

    @property
    def is_file(self) -> bool:
        return self.kind is not SinkType.STDOUT


def parse_sink(descriptor: str, compress: bool = False) -> SinkDescriptor:
    # ".gz" is stripped first; a "type:" prefix wins over a ".type" suffix.
    path = descriptor
    if path.endswith(".gz"):
        compress = True
        path = path[: -len(".gz")]

    for kind in SinkType:
        prefix = f"{kind.value}:"
        if path.startswith(prefix):
            return SinkDescriptor(kind, path[len(prefix):], compress)
    for kind in SinkType:
        if path.endswith(f".{kind.value}"):
            return SinkDescriptor(kind, path, compress)
    raise UnsupportedSinkError(descriptor)


def _write_lines(path: str, lines: Iterable[str]) -> int:
    written = 0
    with open(path, "w", encoding="utf-8", newline="") as f:
        for line in lines:
            f.write(line + "\n")
            f.flush()
            written += 1
        os.fsync(f.fileno())
    return written


def _write_csv_rows(out: TextIO, results: ResultAggregate) -> int:
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    written = 0
    for row in [list(CSV_COLUMNS)] + results.to_rows():
        writer.writerow(row)
        out.flush()
        written += 1
    return written


def write_csv(path: str, results: ResultAggregate, options: InventoryOptions) -> int:
    with open(path, "w", encoding="utf-8", newline="") as f:
        written = _write_csv_rows(f, results)
        os.fsync(f.fileno())
    return written


def write_json(path: str, results: ResultAggregate, options: InventoryOptions) -> int:
    data = json.dumps(results.to_dict(), indent=4)
    return _write_lines(path, data.split("\n"))


def write_stdout(path: str, results: ResultAggregate, options: InventoryOptions, stream: Optional[TextIO] = None) -> int:
    return _write_csv_rows(stream or sys.stdout, results)


def _sheet_title(now: datetime) -> str:
    # Sheet titles may not contain ":" and are limited to 31 characters.
    return now.strftime("%Y-%m-%dT%H.%M.%S")


def write_xlsx(path: str, results: ResultAggregate, options: InventoryOptions) -> int:
    wb = Workbook()
    ws = wb.active
    ws.title = _sheet_title(datetime.now())

    fills = None
    if not options.no_color:
        fills = [
            [PatternFill(start_color=shade, end_color=shade, fill_type="solid") for shade in hue]
            for hue in XLSX_COLORS
        ]

    ws.append(list(CSV_COLUMNS))
    written = 1
    for dev_index, dev in enumerate(results):
        for row_index, row in enumerate(dev.to_rows()):
            ws.append([ILLEGAL_CHARACTERS_RE.sub("", value) for value in row])
            written += 1
            for cell in ws[ws.max_row]:
                # Device strings are text, never formulas.
                if cell.data_type == "f":
                    cell.data_type = "s"
            if fills is None:
                continue
            hue = fills[dev_index % len(fills)]
            fill = hue[row_index % len(hue)]
            for cell in ws[ws.max_row]:
                cell.fill = fill

    wb.save(path)
    return written


WRITERS: Dict[SinkType, Callable[[str, ResultAggregate, InventoryOptions], int]] = {
    SinkType.CSV: write_csv,
    SinkType.JSON: write_json,
    SinkType.STDOUT: write_stdout,
    SinkType.XLSX: write_xlsx,
}


def compress_file(path: str) -> str:
    # Gzip path into path.gz and remove the original.
    target = f"{path}.gz"
    with open(path, "rb") as src:
        data = src.read()
    with gzip.open(target, "wb", compresslevel=9) as dst:
        dst.write(data)
    os.remove(path)
    return target


def write_results(
    sink: Union[str, SinkDescriptor],
    results: ResultAggregate,
    options: Optional[InventoryOptions] = None,
) -> int:
    options = options or InventoryOptions()
    if isinstance(sink, str):
        sink = parse_sink(sink, compress=options.compress_output)

    writer = WRITERS[sink.kind]
    try:
        rows = writer(sink.path, results, options)
    except (OSError, IllegalCharacterError) as e:
        raise WriterError(f"Could not write <{sink.path}>: {e}") from e

    if sink.compress and sink.is_file:
        try:
            target = compress_file(sink.path)
        except OSError as e:
            raise CompressionError(f"Could not compress <{sink.path}>: {e}", rows) from e
        logger.debug("Compressed <%s> to <%s>", sink.path, target)
    return rows
