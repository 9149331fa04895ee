"""Delimited-text parsing for uploaded exports."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Final

from storemigrate.domain.errors import ParseError
from storemigrate.domain.text import collapse_whitespace

log = logging.getLogger(__name__)

BOM: Final[str] = "\ufeff"
CANDIDATE_DELIMITERS: Final[tuple[str, ...]] = (",", ";", "\t")

type RawRow = dict[str, str]


@dataclass(slots=True)
class Table:
    headers: tuple[str, ...]
    rows: list[RawRow] = field(default_factory=list[RawRow])

    def __len__(self) -> int:
        return len(self.rows)


def sniff_delimiter(text: str) -> str:
    """Pick the candidate delimiter that occurs most often on the header line."""

    header_line = text.split("\n", 1)[0]
    counts = {
        delimiter: _count_unquoted(header_line, delimiter) for delimiter in CANDIDATE_DELIMITERS
    }
    best = max(CANDIDATE_DELIMITERS, key=lambda delimiter: counts[delimiter])
    return best if counts[best] > 0 else ","


def parse_table(text: str, *, delimiter: str | None = None) -> Table:
    """Parse RFC 4180 style text into one mapping per data row.

    Every mapping carries every header; short rows are padded with ``""`` and
    surplus cells are dropped. Blank lines are skipped. Raises ``ParseError``
    for unterminated quotes and stray characters after a closing quote.
    """

    if text.startswith(BOM):
        text = text[len(BOM) :]
    if not text.strip():
        return Table(headers=())

    effective_delimiter = delimiter or sniff_delimiter(text)
    reader = csv.reader(
        io.StringIO(text, newline=""),
        delimiter=effective_delimiter,
        quotechar='"',
        doublequote=True,
        strict=True,
    )

    headers: tuple[str, ...] | None = None
    rows: list[RawRow] = []
    try:
        for record in reader:
            if _is_blank(record):
                continue
            if headers is None:
                headers = tuple(collapse_whitespace(cell) for cell in record)
                continue
            rows.append(_to_row(headers, record))
    except csv.Error as exc:
        raise ParseError(f"Malformed delimited text: {exc}", line=reader.line_num) from exc

    if headers is None:
        return Table(headers=())

    log.debug(
        "Parsed %d rows with %d columns (delimiter=%r)",
        len(rows),
        len(headers),
        effective_delimiter,
    )
    return Table(headers=headers, rows=rows)


def _to_row(headers: tuple[str, ...], record: list[str]) -> RawRow:
    cells = record[: len(headers)]
    cells.extend("" for _ in range(len(headers) - len(cells)))
    return dict(zip(headers, cells, strict=True))


def _is_blank(record: list[str]) -> bool:
    return not record or all(not cell.strip() for cell in record)


def _count_unquoted(line: str, delimiter: str) -> int:
    count = 0
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            count += 1
    return count
