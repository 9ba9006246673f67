"""Building many documents from a long stream of items."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from .compress import Compress
from .document import NewDocument
from .layout import (
    _ARRAY_FIX,
    _ARRAY_MARKERS,
    MAX_DOC_SIZE,
    Hash,
    _encode,
    _write_len,
)

_HEADER_BASE = 5
_ARRAY_HEADER_MAX = 4
_UNSET = object()


class VecDocumentBuilder:
    """Turn an iterable of items into a series of documents holding arrays.

    Each produced document holds an array of consecutive items and stays at
    or below half of the maximum document size, so large data sets can be
    split across several documents.
    """

    def __init__(
        self,
        items: Iterable[Any],
        schema: Hash | None = None,
        *,
        ordered: bool = False,
    ) -> None:
        self._items: Iterator[Any] = iter(items)
        self._schema = schema
        self._ordered = ordered
        self._buf = bytearray()
        self._done = False
        self._setting: Any = _UNSET

    @classmethod
    def new(cls, items: Iterable[Any], schema: Hash | None = None) -> "VecDocumentBuilder":
        """Build documents from items, sorting any map keys while encoding."""
        return cls(items, schema)

    @classmethod
    def new_ordered(
        cls, items: Iterable[Any], schema: Hash | None = None
    ) -> "VecDocumentBuilder":
        """Build documents from items whose map keys must already be ordered.

        Encoding fails with ValueError if any map or dataclass has keys that
        are not in lexicographic order.
        """
        return cls(items, schema, ordered=True)

    def compression(self, setting: int | Compress | None) -> "VecDocumentBuilder":
        """Override compression for all produced documents.

        None disables compression; an integer sets the zstd level.
        """
        self._setting = setting
        return self

    def __iter__(self) -> "VecDocumentBuilder":
        return self

    def __next__(self) -> NewDocument:
        if self._done:
            raise StopIteration
        try:
            doc = self._next_doc()
        except Exception:
            self._done = True
            raise
        if doc is None:
            raise StopIteration
        return doc

    def _data_len(self) -> int:
        header_len = _HEADER_BASE + (len(self._schema.raw) if self._schema is not None else 0)
        return (MAX_DOC_SIZE >> 1) - header_len - _ARRAY_HEADER_MAX

    def _next_item(self) -> tuple[bool, Any]:
        try:
            return True, next(self._items)
        except StopIteration:
            self._items = iter(())
            return False, None

    def _next_doc(self) -> NewDocument | None:
        data_len = self._data_len()
        buf = self._buf

        prev_len = len(buf)
        array_len = 1 if buf else 0
        while len(buf) <= data_len:
            found, item = self._next_item()
            if not found:
                break
            prev_len = len(buf)
            buf += _encode(item, ordered=self._ordered)
            array_len += 1

        if not buf:
            self._done = True
            return None

        leftover = b""
        if len(buf) > data_len:
            leftover = bytes(buf[prev_len:])
            del buf[prev_len:]
            array_len -= 1

        header = bytearray()
        _write_len(header, array_len, _ARRAY_FIX, _ARRAY_MARKERS, "array")
        doc = NewDocument.from_encoded(self._schema, bytes(header) + bytes(buf))
        if self._setting is not _UNSET:
            doc = doc.compression(self._setting)

        self._buf = bytearray(leftover)
        if not leftover:
            self._done = True
        return doc