"""CSV decoding and encoding for source tables."""

import csv
import io
from collections.abc import Iterable
from typing import Any

Row = dict[str, Any]


def parse_csv(text: str) -> list[Row]:
    """Decode CSV text into rows keyed by the header row.

    Records whose first cell starts with ``#`` and blank lines are skipped;
    quoted cells may span lines. Values are kept as raw strings; empty cells
    become None. Extra cells beyond the header are dropped, missing cells are
    None.
    """
    records = (
        cells
        for cells in csv.reader(io.StringIO(text.lstrip("\ufeff"), newline=""))
        if not _is_blank(cells) and not cells[0].lstrip().startswith("#")
    )
    header = next(records, None)
    if header is None:
        return []
    header = [name.strip() for name in header]

    rows: list[Row] = []
    for cells in records:
        row: Row = {}
        for index, name in enumerate(header):
            if not name:
                continue
            value = cells[index] if index < len(cells) else None
            row[name] = value if value not in ("", None) else None
        rows.append(row)
    return rows


def _is_blank(cells: list[str]) -> bool:
    return not cells or (len(cells) == 1 and not cells[0].strip())


def encode_csv(rows: Iterable[Row]) -> str:
    """Encode rows as CSV; the header lists columns in first-seen order."""
    rows = list(rows)
    columns: list[str] = []
    for row in rows:
        for name in row:
            if name not in columns:
                columns.append(name)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "" if v is None else v for k, v in row.items()})
    return buffer.getvalue()
