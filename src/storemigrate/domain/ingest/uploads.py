"""Turn uploaded bytes into raw records tagged with their source shape."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Final, cast

from storemigrate.domain.errors import ParseError
from storemigrate.domain.ingest.detection import detect_source_shape
from storemigrate.domain.ingest.tabular import BOM, parse_table
from storemigrate.domain.model import SourceShape

log = logging.getLogger(__name__)

# UTF-8 Portuguese accents read back as Latin-1 (ç, ã, á, é, ê, í, ó, ô, õ, ú)
MOJIBAKE_PATTERN: Final = re.compile("Ã§|Ã£|Ã¡|Ã©|Ãª|Ã\xad|Ã³|Ã´|Ãµ|Ãº")
MOJIBAKE_THRESHOLD: Final[int] = 3
JSON_WRAPPER_KEYS: Final[tuple[str, ...]] = (
    "data",
    "items",
    "products",
    "customers",
    "orders",
)

type RawRecord = dict[str, object]


@dataclass(slots=True)
class ParsedUpload:
    shape: SourceShape
    records: list[RawRecord] = field(default_factory=list[RawRecord])
    headers: tuple[str, ...] = ()


def decode_upload(data: bytes) -> str:
    """Decode upload bytes as UTF-8, recovering Latin-1 exports.

    Bytes that are not valid UTF-8 are read as Latin-1. Text that decodes but
    shows at least ``MOJIBAKE_THRESHOLD`` double-encoded accents is repaired by
    reversing the Latin-1 round trip.
    """

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        log.info("Upload is not valid UTF-8; decoding as Latin-1")
        text = data.decode("latin-1")
    else:
        hits = len(MOJIBAKE_PATTERN.findall(text))
        if hits >= MOJIBAKE_THRESHOLD:
            log.info("Detected %d mojibake sequences; repairing encoding", hits)
            text = _repair_mojibake(text)
    return text.removeprefix(BOM)


def load_upload(data: bytes, *, filename: str | None = None) -> ParsedUpload:
    """Decode and parse an upload, detecting its shape exactly once."""

    text = decode_upload(data)
    if _looks_like_json(text, filename):
        return ParsedUpload(shape=SourceShape.STRUCTURED, records=parse_json_records(text))

    table = parse_table(text)
    shape = detect_source_shape(table.headers)
    records = [cast(RawRecord, row) for row in table.rows]
    log.info("Loaded %d %s rows from %s", len(records), shape, filename or "upload")
    return ParsedUpload(shape=shape, records=records, headers=table.headers)


def parse_json_records(text: str) -> list[RawRecord]:
    """Accept a JSON array, a single object, or an array wrapped under a known key."""

    try:
        payload: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc.msg}", line=exc.lineno) from exc

    if isinstance(payload, dict):
        mapping = cast(dict[str, Any], payload)
        for key in JSON_WRAPPER_KEYS:
            wrapped = mapping.get(key)
            if isinstance(wrapped, list):
                payload = wrapped
                break
        else:
            return [mapping]

    if not isinstance(payload, list):
        raise ParseError("JSON upload must contain an object or an array of objects")

    records: list[RawRecord] = []
    for index, item in enumerate(cast(list[Any], payload)):
        if not isinstance(item, dict):
            log.warning("Skipping non-object JSON entry at index %d", index)
            continue
        records.append(cast(RawRecord, item))
    return records


def _repair_mojibake(text: str) -> str:
    try:
        return text.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        # mixed content; fix the known sequences one by one
        return MOJIBAKE_PATTERN.sub(lambda match: _fix_sequence(match.group(0)), text)


def _fix_sequence(sequence: str) -> str:
    return sequence.encode("latin-1").decode("utf-8")


def _looks_like_json(text: str, filename: str | None) -> bool:
    if filename:
        suffix = PurePath(filename).suffix.lower()
        if suffix == ".json":
            return True
        if suffix in {".csv", ".tsv", ".txt"}:
            return False
    return text.lstrip().startswith(("{", "["))
