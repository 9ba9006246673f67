"""Compression settings and zstd compression of document payloads."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Mapping

import zstandard

from .errors import BadHeader, FailDecompress

ALGORITHM_ZSTD = 0

_RECORD_FIELDS = frozenset({"algorithm", "level", "dict"})


class CompressType(enum.IntEnum):
    """The compression marker stored in an encoded header."""

    NONE = 0
    GENERAL = 1
    DICT = 2

    @staticmethod
    def of(compress: "Compress") -> "CompressType":
        """Return the marker that a compression setting produces."""
        return compress.kind


def _compressor(level: int, dict_data: Any = None) -> zstandard.ZstdCompressor:
    return zstandard.ZstdCompressor(
        level=min(level, zstandard.MAX_COMPRESSION_LEVEL),
        dict_data=dict_data,
        write_content_size=True,
    )


def _frame_content_size(src: bytes) -> int:
    try:
        size = zstandard.frame_content_size(src)
    except zstandard.ZstdError as exc:
        raise FailDecompress("Compression frame header is invalid") from exc
    if size < 0:
        raise FailDecompress("Compression frame header is invalid")
    return size


@dataclass(frozen=True)
class Dictionary:
    """A compression dictionary with its algorithm and compression level."""

    algorithm: int
    level: int
    data: bytes

    @classmethod
    def new_zstd(cls, level: int, data: bytes) -> "Dictionary":
        """Create a zstd dictionary used at the given compression level."""
        return cls(ALGORITHM_ZSTD, level, bytes(data))

    @property
    def is_zstd(self) -> bool:
        return self.algorithm == ALGORITHM_ZSTD

    @cached_property
    def _zstd_dict(self) -> zstandard.ZstdCompressionDict:
        return zstandard.ZstdCompressionDict(self.data)

    def to_record(self) -> dict[str, Any]:
        """Return the serialisable form of this dictionary."""
        return {"algorithm": self.algorithm, "level": self.level, "dict": self.data}

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Dictionary":
        """Build a dictionary from its serialised form, rejecting unknown fields."""
        keys = set(record)
        unknown = keys - _RECORD_FIELDS
        if unknown:
            raise ValueError(f"unknown dictionary fields: {sorted(unknown)}")
        missing = _RECORD_FIELDS - keys
        if missing:
            raise ValueError(f"missing dictionary fields: {sorted(missing)}")
        return cls(int(record["algorithm"]), int(record["level"]), bytes(record["dict"]))


@dataclass(frozen=True)
class Compress:
    """Compression setting for documents and entries."""

    kind: CompressType
    algorithm: int = ALGORITHM_ZSTD
    level: int = 0
    dictionary: Dictionary | None = None

    def __post_init__(self) -> None:
        if (self.kind is CompressType.DICT) != (self.dictionary is not None):
            raise ValueError("a dictionary is required exactly for dictionary compression")

    @classmethod
    def none(cls) -> "Compress":
        """Do not compress."""
        return cls(CompressType.NONE)

    @classmethod
    def general(cls, algorithm: int, level: int) -> "Compress":
        """Compress with the given algorithm identifier and level."""
        return cls(CompressType.GENERAL, algorithm, level)

    @classmethod
    def new_zstd_general(cls, level: int) -> "Compress":
        """Compress with zstd at the given level."""
        return cls.general(ALGORITHM_ZSTD, level)

    @classmethod
    def new_zstd_dict(cls, level: int, data: bytes) -> "Compress":
        """Compress with a zstd dictionary at the given level."""
        return cls(CompressType.DICT, dictionary=Dictionary.new_zstd(level, data))

    @classmethod
    def default(cls) -> "Compress":
        """The default setting: zstd at level 3."""
        return cls.general(ALGORITHM_ZSTD, 3)

    def compress(self, dest: bytes, src: bytes) -> bytes | None:
        """Return ``dest`` followed by the compressed ``src``.

        Returns None when this setting does not compress, when compression
        fails, or when the result would not be shorter than ``src``.
        """
        if self.kind is CompressType.NONE:
            return None
        if self.kind is CompressType.GENERAL:
            compressor = _compressor(self.level)
        else:
            dictionary = self.dictionary
            dict_data = dictionary._zstd_dict if dictionary.is_zstd else None
            compressor = _compressor(dictionary.level, dict_data)
        try:
            out = compressor.compress(bytes(src))
        except zstandard.ZstdError:
            return None
        if len(out) >= len(src):
            return None
        return bytes(dest) + out

    def decompress(
        self,
        dest: bytes,
        src: bytes,
        marker: CompressType,
        extra_size: int,
        max_size: int,
    ) -> bytes:
        """Return ``dest`` followed by ``src`` decoded according to ``marker``.

        Raises FailDecompress if the result would exceed ``max_size`` or the
        data cannot be decompressed, and BadHeader if dictionary compression is
        marked but this setting has no supported dictionary.
        """
        dest = bytes(dest)
        src = bytes(src)
        marker = CompressType(marker)

        if marker is CompressType.NONE:
            total = len(dest) + len(src) + extra_size
            if total > max_size:
                raise FailDecompress(
                    f"Decompressed length {total} would be larger than maximum of {max_size}"
                )
            return dest + src

        if marker is CompressType.DICT:
            dictionary = self.dictionary
            if dictionary is None or not dictionary.is_zstd:
                raise BadHeader(
                    "Header uses dictionary compression, but this has no matching "
                    "supported dictionary"
                )
            decompressor = zstandard.ZstdDecompressor(dict_data=dictionary._zstd_dict)
        else:
            decompressor = zstandard.ZstdDecompressor()

        expected = _frame_content_size(src)
        if expected > max_size - len(dest):
            raise FailDecompress(
                f"Decompressed length {len(dest) + len(src)} would be larger "
                f"than maximum of {max_size}"
            )
        try:
            out = decompressor.decompress(src)
        except zstandard.ZstdError as exc:
            raise FailDecompress(f"Failed Decompression, zstd error = {exc}") from exc
        return dest + out