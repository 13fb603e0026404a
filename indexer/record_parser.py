"""Record parser for decision records.

A record is a YAML front matter header delimited by ``---`` lines followed
by free text. The header is decoded into a typed ``RecordHeader``; whatever
follows the closing delimiter is returned verbatim as the body.
"""

import io
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ParseError, RecordIOError
from .models import Document

logger = logging.getLogger(__name__)

BOM = b'\xef\xbb\xbf'
OPENING_DELIMITER = b'---'
CLOSING_DELIMITERS = (b'---', b'...')


class RecordHeader(BaseModel):
    """Typed view of the metadata header."""
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra='ignore')

    number: int = Field(..., strict=True)
    title: str = ""
    status: str = ""
    date: Optional[datetime] = None

    @field_validator('date', mode='before')
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        # YAML yields date objects for bare dates, pydantic wants datetimes
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time())
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip())
            except ValueError:
                return value
        return value

    @field_validator('title', 'status', mode='before')
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


@dataclass
class ParsedRecord:
    header: RecordHeader
    body: bytes


def _split_front_matter(data: bytes, source: Optional[str]) -> tuple:
    """Return (header bytes, body bytes) or raise ParseError."""
    if data.startswith(BOM):
        data = data[len(BOM):]

    lines = data.splitlines(keepends=True)
    i = 0
    while i < len(lines) and not lines[i].strip():
        i += 1

    if i >= len(lines) or lines[i].rstrip() != OPENING_DELIMITER:
        raise ParseError("missing front matter header", source=source)

    start = i + 1
    for j in range(start, len(lines)):
        if lines[j].rstrip() in CLOSING_DELIMITERS:
            header = b''.join(lines[start:j])
            body = b''.join(lines[j + 1:])
            return header, body

    raise ParseError("unterminated front matter header", source=source)


def parse_record(stream: BinaryIO, source: Optional[str] = None) -> ParsedRecord:
    """Parse one record from a byte stream.

    Args:
        stream: Binary stream positioned at the start of the record
        source: Optional name used in error messages

    Returns:
        ParsedRecord holding the decoded header and the raw body bytes

    Raises:
        ParseError: If the header is missing, malformed or mistyped
    """
    header_bytes, body = _split_front_matter(stream.read(), source)

    try:
        raw = yaml.safe_load(header_bytes)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML header: {e}", source=source) from e

    if not isinstance(raw, dict):
        raise ParseError("front matter header is not a mapping", source=source)

    try:
        header = RecordHeader.model_validate(raw)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err['loc']) for err in e.errors())
        raise ParseError(f"invalid header fields: {fields}", source=source) from e

    return ParsedRecord(header=header, body=body)


def parse_record_bytes(data: bytes, source: Optional[str] = None) -> ParsedRecord:
    return parse_record(io.BytesIO(data), source=source)


def to_document(parsed: ParsedRecord, identifier: str) -> Document:
    """Attach an identifier and decoded body to a parsed header."""
    try:
        body = parsed.body.decode('utf-8')
    except UnicodeDecodeError as e:
        raise ParseError("body is not valid UTF-8", source=identifier) from e

    return Document(
        identifier=identifier,
        number=parsed.header.number,
        title=parsed.header.title,
        date=parsed.header.date,
        status=parsed.header.status,
        body=body
    )


def read_record(path: Union[str, Path], identifier: Optional[str] = None) -> Document:
    """Open a record file and turn it into a Document.

    The identifier defaults to the file name.
    """
    path = Path(path)
    identifier = identifier or path.name

    try:
        with open(path, 'rb') as f:
            parsed = parse_record(f, source=identifier)
    except OSError as e:
        raise RecordIOError(f"cannot read record: {e}", source=identifier) from e

    document = to_document(parsed, identifier)
    logger.debug(f"Parsed record {identifier} (number={document.number})")
    return document
