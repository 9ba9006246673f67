"""Hashes, the raw document layout, and encoding of values into element bytes."""

from __future__ import annotations

import dataclasses
import hashlib
import struct
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .depth import DepthTracker, ElementKind
from .errors import BadHeader, LengthTooShort

MAX_DOC_SIZE = 1 << 20

HASH_VERSION = 1
HASH_DIGEST_SIZE = 32
HASH_ENCODED_SIZE = HASH_DIGEST_SIZE + 1

_EXT8 = 0xC7
_EXT_TYPE_HASH = 0x01

_NULL = 0xC0
_FALSE = 0xC2
_TRUE = 0xC3
_F64 = 0xCB

_STR_FIX = (0xA0, 32)
_STR_MARKERS = (0xD4, 0xD5, 0xD6)
_BIN_MARKERS = (0xC4, 0xC5, 0xC6)
_ARRAY_FIX = (0x90, 16)
_ARRAY_MARKERS = (0xD7, 0xD8, 0xD9)
_MAP_FIX = (0x80, 16)
_MAP_MARKERS = (0xDA, 0xDB, 0xDC)

_UINT_FORMS = ((1 << 8, 0xCC, 1), (1 << 16, 0xCD, 2), (1 << 32, 0xCE, 4), (1 << 64, 0xCF, 8))
_INT_FORMS = (
    (-(1 << 7), 0xD0, 1),
    (-(1 << 15), 0xD1, 2),
    (-(1 << 31), 0xD2, 4),
    (-(1 << 63), 0xD3, 8),
)


@dataclass(frozen=True)
class Hash:
    """A versioned cryptographic hash: a version byte followed by the digest."""

    raw: bytes

    def __post_init__(self) -> None:
        raw = self.raw
        if not raw:
            raise BadHeader("Hash is empty")
        if raw[0] != HASH_VERSION:
            raise BadHeader(f"Unsupported hash version {raw[0]}")
        if len(raw) != HASH_ENCODED_SIZE:
            raise BadHeader(
                f"Hash version {HASH_VERSION} must be {HASH_ENCODED_SIZE} bytes, got {len(raw)}"
            )

    @classmethod
    def new(cls, data: bytes | str) -> "Hash":
        """Hash the given data with BLAKE2b (32-byte digest)."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        digest = hashlib.blake2b(bytes(data), digest_size=HASH_DIGEST_SIZE).digest()
        return cls(bytes([HASH_VERSION]) + digest)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Hash":
        """Parse an encoded hash, raising BadHeader if it is malformed."""
        return cls(bytes(raw))

    @property
    def version(self) -> int:
        return self.raw[0]

    @property
    def digest(self) -> bytes:
        return self.raw[1:]

    def __bytes__(self) -> bytes:
        return self.raw

    def __len__(self) -> int:
        return len(self.raw)

    def __str__(self) -> str:
        return self.raw.hex()


@dataclass(frozen=True)
class SplitDoc:
    """The parts of a raw encoded document.

    Layout: compression marker, hash length (0-127), schema hash,
    3-byte little-endian data length, data, then an optional signature.
    """

    compress_raw: int
    hash_raw: bytes
    data: bytes
    signature_raw: bytes

    @classmethod
    def split(cls, buf: bytes) -> "SplitDoc":
        """Split a raw document into its parts, checking the header lengths."""
        buf = bytes(buf)
        if len(buf) < 1:
            raise LengthTooShort("get compress type", 0, 1)
        compress_raw, rest = buf[0], buf[1:]
        if len(rest) < 1:
            raise LengthTooShort("get hash length", 0, 1)
        hash_len, rest = rest[0], rest[1:]
        if hash_len > 127:
            raise BadHeader(f"Hash length must be 0-127, marked as {hash_len}")
        if len(rest) < hash_len + 3:
            raise LengthTooShort("get hash then data length", len(rest), hash_len + 3)
        hash_raw, rest = rest[:hash_len], rest[hash_len:]
        data_len = int.from_bytes(rest[:3], "little")
        rest = rest[3:]
        if data_len > len(rest):
            raise LengthTooShort("get document data", len(rest), data_len)
        return cls(compress_raw, hash_raw, rest[:data_len], rest[data_len:])


def get_doc_schema(doc: bytes) -> Hash | None:
    """Return the schema hash of a raw document, or None if it has none."""
    hash_raw = SplitDoc.split(doc).hash_raw
    if not hash_raw:
        return None
    return Hash.from_bytes(hash_raw)


def encode_value(value: Any) -> bytes:
    """Encode a value into canonical element bytes, sorting map keys."""
    return _encode(value, ordered=False)


def _encode(value: Any, ordered: bool = False) -> bytes:
    """Encode a value; with ``ordered``, map keys must already be in order."""
    out = bytearray()
    _write(out, value, DepthTracker(), ordered)
    return bytes(out)


def _write_len(
    out: bytearray,
    length: int,
    fix: tuple[int, int] | None,
    markers: tuple[int, int, int],
    what: str,
) -> None:
    if fix is not None and length < fix[1]:
        out.append(fix[0] | length)
        return
    for width, marker in zip((1, 2, 3), markers):
        if length < 1 << (8 * width):
            out.append(marker)
            out += length.to_bytes(width, "little")
            return
    raise ValueError(f"{what} of length {length} is too long to encode")


def _write_int(out: bytearray, value: int) -> None:
    if value >= 0:
        if value < 128:
            out.append(value)
            return
        for limit, marker, width in _UINT_FORMS:
            if value < limit:
                out.append(marker)
                out += value.to_bytes(width, "little")
                return
        raise ValueError(f"integer {value} is too large to encode")
    if value >= -32:
        out.append(value & 0xFF)
        return
    for limit, marker, width in _INT_FORMS:
        if value >= limit:
            out.append(marker)
            out += value.to_bytes(width, "little", signed=True)
            return
    raise ValueError(f"integer {value} is too small to encode")


def _map_items(mapping: Mapping[Any, Any], ordered: bool) -> list[tuple[bytes, Any]]:
    items = []
    for key, val in mapping.items():
        if not isinstance(key, str):
            raise TypeError(f"map keys must be strings, got {type(key).__name__}")
        items.append((key.encode("utf-8"), val))
    if ordered:
        for (prev, _), (cur, _) in zip(items, items[1:]):
            if cur <= prev:
                raise ValueError(
                    f"map keys are unordered: {cur.decode('utf-8')} follows {prev.decode('utf-8')}"
                )
        return items
    return sorted(items, key=lambda item: item[0])


def _write(out: bytearray, value: Any, tracker: DepthTracker, ordered: bool) -> None:
    if value is None:
        tracker.update_elem(ElementKind.OTHER)
        out.append(_NULL)
    elif isinstance(value, bool):
        tracker.update_elem(ElementKind.OTHER)
        out.append(_TRUE if value else _FALSE)
    elif isinstance(value, Hash):
        tracker.update_elem(ElementKind.OTHER)
        out += bytes([_EXT8, len(value.raw), _EXT_TYPE_HASH])
        out += value.raw
    elif isinstance(value, int):
        tracker.update_elem(ElementKind.OTHER)
        _write_int(out, value)
    elif isinstance(value, float):
        tracker.update_elem(ElementKind.OTHER)
        out.append(_F64)
        out += struct.pack("<d", value)
    elif isinstance(value, str):
        tracker.update_elem(ElementKind.OTHER)
        data = value.encode("utf-8")
        _write_len(out, len(data), _STR_FIX, _STR_MARKERS, "string")
        out += data
    elif isinstance(value, (bytes, bytearray, memoryview)):
        tracker.update_elem(ElementKind.OTHER)
        data = bytes(value)
        _write_len(out, len(data), None, _BIN_MARKERS, "binary")
        out += data
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        _write_map(out, fields, tracker, ordered)
    elif isinstance(value, Mapping):
        _write_map(out, value, tracker, ordered)
    elif isinstance(value, (list, tuple)):
        _write_len(out, len(value), _ARRAY_FIX, _ARRAY_MARKERS, "array")
        tracker.update_elem(ElementKind.ARRAY, len(value))
        for item in value:
            _write(out, item, tracker, ordered)
    else:
        raise TypeError(f"cannot encode value of type {type(value).__name__}")


def _write_map(
    out: bytearray, mapping: Mapping[Any, Any], tracker: DepthTracker, ordered: bool
) -> None:
    items = _map_items(mapping, ordered)
    _write_len(out, len(items), _MAP_FIX, _MAP_MARKERS, "map")
    tracker.update_elem(ElementKind.MAP, len(items))
    for key, val in items:
        tracker.update_elem(ElementKind.OTHER)
        _write_len(out, len(key), _STR_FIX, _STR_MARKERS, "string")
        out += key
        _write(out, val, tracker, ordered)