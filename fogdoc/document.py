"""Documents: serialized data with an optional schema hash and a small header."""

from __future__ import annotations

from typing import Any

from .compress import Compress, CompressType
from .errors import BadHeader, LengthTooLong
from .layout import MAX_DOC_SIZE, Hash, SplitDoc, encode_value

_HEADER_BASE = 5


def _hash_prefix(schema: Hash | None) -> bytes:
    return b"\x00" if schema is None else schema.raw


def _doc_hash(schema: Hash | None, data: bytes) -> Hash:
    return Hash.new(_hash_prefix(schema) + data)


def _as_override(setting: int | Compress | None) -> Compress:
    if setting is None:
        return Compress.none()
    if isinstance(setting, Compress):
        return setting
    return Compress.new_zstd_general(int(setting))


class _DocumentBase:
    __slots__ = ("_buf", "_schema", "_hash", "_compress")

    def __init__(
        self,
        buf: bytes,
        schema: Hash | None,
        this_hash: Hash,
        compress: Compress | None,
    ) -> None:
        self._buf = buf
        self._schema = schema
        self._hash = this_hash
        self._compress = compress

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(hash={self._hash}, schema={self._schema}, "
            f"size={len(self._buf)})"
        )

    def _payload(self) -> bytes:
        return SplitDoc.split(self._buf).data

    def _with_compression(self, setting: int | Compress | None):
        return type(self)(self._buf, self._schema, self._hash, _as_override(setting))


class NewDocument(_DocumentBase):
    """A newly created document that has not yet been validated."""

    __slots__ = ()

    @classmethod
    def from_encoded(cls, schema: Hash | None, encoded: bytes) -> "NewDocument":
        """Wrap already-encoded element bytes in a document header."""
        encoded = bytes(encoded)
        header = bytearray([int(CompressType.NONE)])
        if schema is None:
            header.append(0)
        else:
            if len(schema.raw) >= 128:
                raise BadHeader(f"Schema hash is too long: {len(schema.raw)} bytes")
            header.append(len(schema.raw))
            header += schema.raw
        total = len(header) + 3 + len(encoded)
        if total > MAX_DOC_SIZE:
            raise LengthTooLong(MAX_DOC_SIZE, total)
        buf = bytes(header) + len(encoded).to_bytes(3, "little") + encoded
        return cls(buf, schema, _doc_hash(schema, encoded), None)

    @classmethod
    def new(cls, schema: Hash | None, data: Any) -> "NewDocument":
        """Create a document from any encodable value, optionally with a schema."""
        return cls.from_encoded(schema, encode_value(data))

    def schema_hash(self) -> Hash | None:
        """The hash of the schema this document adheres to, if any."""
        return self._schema

    def hash(self) -> Hash:
        """What the document's hash will be, given its current state."""
        return self._hash

    def data(self) -> bytes:
        """The encoded data payload of the document."""
        return self._payload()

    def compression(self, setting: int | Compress | None) -> "NewDocument":
        """Override compression: None disables it, an integer sets the zstd level."""
        return self._with_compression(setting)


class Document(_DocumentBase):
    """Serialized data, optionally adhering to a schema."""

    __slots__ = ()

    @classmethod
    def from_new(cls, doc: NewDocument) -> "Document":
        """Accept a new document as a complete one."""
        return cls(doc._buf, doc._schema, doc._hash, doc._compress)

    @classmethod
    def from_bytes(cls, buf: bytes) -> "Document":
        """Read a raw encoded document without validating its data."""
        buf = bytes(buf)
        if len(buf) > MAX_DOC_SIZE:
            raise LengthTooLong(MAX_DOC_SIZE, len(buf))
        split = SplitDoc.split(buf)
        schema = Hash.from_bytes(split.hash_raw) if split.hash_raw else None
        if split.signature_raw:
            raise BadHeader("Signed documents are not supported")
        return cls(buf, schema, _doc_hash(schema, split.data), None)

    def data(self) -> bytes:
        """The encoded data payload of the document."""
        return self._payload()

    def schema_hash(self) -> Hash | None:
        """The hash of the schema this document adheres to, if any."""
        return self._schema

    def hash(self) -> Hash:
        """The hash of the complete document."""
        return self._hash

    def compression(self, setting: int | Compress | None) -> "Document":
        """Override compression used when the document is re-encoded."""
        return self._with_compression(setting)

    def complete(self) -> tuple[Hash, bytes, Compress | None]:
        """Return the hash, the raw bytes, and any compression override."""
        return self._hash, self._buf, self._compress