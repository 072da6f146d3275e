"""Decoding JSON and Extended JSON documents from text and files."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Iterable, Iterator, TextIO

from bson import json_util
from bson.codec_options import DatetimeConversion
from bson.errors import BSONError

from .errors import DecodeError, DecodeReason


logger = logging.getLogger(__name__)

_JSON_OPTIONS = json_util.RELAXED_JSON_OPTIONS.with_options(
    datetime_conversion=DatetimeConversion.DATETIME_AUTO
)
_DECODER = json.JSONDecoder(object_pairs_hook=partial(json_util.object_pairs_hook, json_options=_JSON_OPTIONS))
_DECODE_ERRORS = (ValueError, TypeError, BSONError)

# What the array reader accepts next.
_OPEN, _FIRST, _VALUE, _SEPARATOR = "open", "first", "value", "separator"


def decode_document(text: str | bytes) -> Mapping[str, Any]:
    """Decode a single JSON or Extended JSON object, preserving key order.

    Extended JSON wrappers such as ``{"$oid": ...}`` or ``{"$date": ...}`` are
    turned into the matching ``bson`` types. Dates outside the range of
    ``datetime.datetime`` decode to ``bson.DatetimeMS`` instead of failing.
    """

    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8")
    try:
        value = _DECODER.decode(text)
    except _DECODE_ERRORS as error:
        raise DecodeError(f"invalid JSON: {error}", reason=DecodeReason.INVALID_JSON) from error
    return _require_document(value)


def _require_document(value: Any, record: int | None = None) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DecodeError(
            f"expected a JSON object, got {type(value).__name__!r}",
            reason=DecodeReason.NOT_A_DOCUMENT,
            record=record,
        )
    return value


@dataclass(slots=True)
class ChunkingConfig:
    """Configuration for document streaming."""

    size: int = 1000
    format: str | None = None
    max_records: int | None = None
    skip_invalid: bool = False

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError("chunk size must be positive")
        if self.format is not None and self.format not in {"json_array", "jsonl", "json_object"}:
            raise ValueError("format must be 'json_array', 'json_object', 'jsonl', or None")
        if self.max_records is not None and self.max_records <= 0:
            raise ValueError("max_records must be positive")


class DocumentStream:
    """Stream documents from a JSON, JSONL or Extended JSON file in chunks."""

    def __init__(self, path: Path, config: ChunkingConfig | None = None) -> None:
        self.path = Path(path)
        self.config = config or ChunkingConfig()
        self.skipped = 0

    def iter_chunks(self) -> Iterator[list[Mapping[str, Any]]]:
        """Yield successive chunks of documents.

        Supports newline-delimited JSON (JSONL), a single top-level object and
        JSON arrays. Arrays are parsed one element at a time instead of being
        materialised whole.
        """

        if not self.path.exists():
            raise FileNotFoundError(self.path)

        detected_format = self._detect_format()
        logger.debug("Reading %s as %s", self.path, detected_format)

        if detected_format == "jsonl":
            yield from self._iter_jsonl()
            return

        if detected_format == "json_object":
            with self.open() as handle:
                yield [self._decode(handle.read(), record=1)]
            return

        yield from self._iter_json_array()

    def iter_documents(self) -> Iterator[Mapping[str, Any]]:
        for chunk in self.iter_chunks():
            yield from chunk

    def open(self) -> TextIO:
        """Open the underlying file."""

        return self.path.open("r", encoding="utf-8")

    def __iter__(self) -> Iterable[list[Mapping[str, Any]]]:
        return self.iter_chunks()

    def _decode(self, text: str, record: int) -> Mapping[str, Any]:
        try:
            return decode_document(text)
        except DecodeError as error:
            error.record = record
            raise

    def _iter_jsonl(self) -> Iterator[list[Mapping[str, Any]]]:
        with self.open() as handle:
            chunk: list[Mapping[str, Any]] = []
            record_count = 0
            line_number = 0
            for line in handle:
                line_number += 1
                line = line.strip()
                if not line:
                    continue
                try:
                    document = self._decode(line, record=line_number)
                except DecodeError as error:
                    if not self.config.skip_invalid:
                        raise
                    self.skipped += 1
                    logger.warning("Skipping %s line %s: %s", self.path, line_number, error)
                    continue
                chunk.append(document)
                record_count += 1
                if len(chunk) >= self.config.size:
                    yield chunk
                    chunk = []
                if self._should_stop(record_count):
                    break
            if chunk:
                yield chunk

    def _detect_format(self) -> str:
        if self.config.format:
            return self.config.format

        suffix = self.path.suffix.lower()
        if suffix in {".jsonl", ".ndjson"}:
            return "jsonl"

        with self.open() as handle:
            while True:
                char = handle.read(1)
                if not char:
                    break
                if char.isspace():
                    continue
                if char == "[":
                    return "json_array"
                if char == "{":
                    return "json_object"
                break
        raise DecodeError(
            f"unable to detect JSON format of {self.path}",
            reason=DecodeReason.INVALID_JSON,
        )

    def _iter_json_array(self) -> Iterator[list[Mapping[str, Any]]]:
        chunk: list[Mapping[str, Any]] = []
        record_count = 0
        for element, value in enumerate(self._iter_array_elements(), start=1):
            try:
                chunk.append(_require_document(value, record=element))
            except DecodeError as error:
                if not self.config.skip_invalid:
                    raise
                self.skipped += 1
                logger.warning("Skipping %s element %s: %s", self.path, element, error)
                continue
            record_count += 1
            if len(chunk) >= self.config.size:
                yield chunk
                chunk = []
            if self._should_stop(record_count):
                break
        if chunk:
            yield chunk

    def _iter_array_elements(self) -> Iterator[Any]:
        """Yield the elements of a top-level JSON array, reading it incrementally.

        Elements must be separated by exactly one comma; a leading, doubled or
        trailing comma, or two elements with no comma between them, is an
        ``INVALID_JSON`` error naming the element where it occurred.
        """

        expect = _OPEN
        element = 0
        buffer = ""
        with self.open() as handle:
            while True:
                data = handle.read(65536)
                eof = not data
                buffer += data
                idx = 0

                while True:
                    idx = _consume_whitespace(buffer, idx)
                    if idx >= len(buffer):
                        break
                    char = buffer[idx]

                    if expect == _OPEN:
                        if char != "[":
                            raise _syntax_error("expected JSON array start", element + 1)
                        expect = _FIRST
                        idx += 1
                        continue

                    if expect == _SEPARATOR:
                        if char == "]":
                            return
                        if char != ",":
                            raise _syntax_error(f"expected ',' or ']' after element {element}", element + 1)
                        expect = _VALUE
                        idx += 1
                        continue

                    if char == "]" and expect == _FIRST:
                        return
                    if char in ",]":
                        raise _syntax_error(f"expected an array element, found {char!r}", element + 1)

                    try:
                        value, end = _DECODER.raw_decode(buffer, idx)
                    except _DECODE_ERRORS as error:
                        if eof:
                            raise _syntax_error(f"invalid JSON: {error}", element + 1) from error
                        # Element may be split across reads.
                        break
                    if end >= len(buffer) and not eof:
                        # A bare number may continue in the next read.
                        break
                    element += 1
                    idx = end
                    expect = _SEPARATOR
                    yield value

                buffer = buffer[idx:]
                if eof:
                    raise _syntax_error("unterminated JSON array", element + 1)

    def _should_stop(self, record_count: int) -> bool:
        return self.config.max_records is not None and record_count >= self.config.max_records


def _consume_whitespace(buffer: str, idx: int) -> int:
    while idx < len(buffer) and buffer[idx].isspace():
        idx += 1
    return idx


def _syntax_error(message: str, record: int) -> DecodeError:
    return DecodeError(message, reason=DecodeReason.INVALID_JSON, record=record)
