# fogdoc

`fogdoc` builds compact binary documents. Each document has a small header
that records a compression marker, the hash of an optional schema and the
length of its data. The data is a canonical, MessagePack-style encoding of a
single value.

## Installation

```
pip install fogdoc
```

To run the test suite:

```
pip install "fogdoc[test]"
pytest
```

## Encoding values

`fogdoc.layout.encode_value(value)` turns a value into canonical element
bytes. It accepts `None`, `bool`, `int` (from -2**63 up to 2**64 - 1),
`float` (stored as a 64-bit float), `str`, `bytes`/`bytearray`/`memoryview`,
`Hash`, lists and tuples, mappings with string keys, and dataclass instances
(encoded as maps of their fields). Map keys are sorted by their UTF-8 bytes.
Integers always take their shortest form. Nesting deeper than 100 levels
raises `ParseLimit`. Any other type raises `TypeError`.

## Hashes

`fogdoc.layout.Hash` is a versioned hash: a version byte (1) followed by a
32-byte BLAKE2b digest.

```python
from fogdoc.layout import Hash

h = Hash.new(b"some data")       # str is also accepted, encoded as UTF-8
same = Hash.from_bytes(h.raw)    # raises BadHeader if malformed
assert same == h
```

## Documents

```python
from fogdoc.document import NewDocument, Document

new_doc = NewDocument.new(None, 1)
print(new_doc.hash())        # hash over the schema marker and the data
print(new_doc.data())        # b"\x01"

doc = Document.from_new(new_doc)
doc_hash, raw, compress_setting = doc.complete()

again = Document.from_bytes(raw)
assert again.hash() == doc_hash
```

`NewDocument.from_encoded(schema, encoded)` wraps element bytes that have
already been encoded.

To tie a document to a schema, pass that schema's `Hash`:

```python
from fogdoc.layout import Hash, get_doc_schema

schema = Hash.new(b"my schema")
doc = NewDocument.new(schema, {"title": "hello"})
raw = Document.from_new(doc).complete()[1]
assert get_doc_schema(raw) == schema
```

`fogdoc.layout.SplitDoc.split(raw)` splits a raw document into its
compression marker, schema hash bytes, data and any trailing signature bytes.

A document may be at most 1 MiB. The exceptions in `fogdoc.errors` cover
oversized documents, headers that are too short and malformed headers:
`LengthTooLong`, `LengthTooShort` and `BadHeader`. All of them subclass
`FogError`.

`compression(setting)` returns a copy of a document that carries a
compression override. `None` means no compression, an integer means zstd at
that level, and a `Compress` instance is used as given. `complete()` returns
the override as its third item. The document bytes stay as they were.

## Splitting large lists

`fogdoc.builder.VecDocumentBuilder` is an iterator. It takes any iterable and
yields `NewDocument`s, each holding an array of consecutive encoded items. It
fills each document until its data reaches about half the maximum document
size.

```python
from fogdoc.builder import VecDocumentBuilder

items = ({"a": i, "b": "Ok"} for i in range(100_000))
docs = list(VecDocumentBuilder.new(items, None))
```

`VecDocumentBuilder.new_ordered` does not sort map keys. It requires them,
and dataclass fields, to be in lexicographic order already, and raises
`ValueError` when they are not. `compression(setting)` sets an override on
every document the builder produces. Once an error is raised, the builder
stops.

## Compression

`fogdoc.compress.Compress` describes a compression setting. The choices are
none, general zstd at a given level, or zstd with a `Dictionary`.
`Compress.default()` gives general zstd at level 3.

```python
from fogdoc.compress import Compress, CompressType

setting = Compress.new_zstd_general(3)
packed = setting.compress(b"", b"x" * 1000)
unpacked = setting.decompress(b"", packed, CompressType.GENERAL, 0, 1 << 20)
```

`compress` returns `None` if the setting is "none", if compression fails, or
if the result would not be shorter than the input. `decompress` raises
`FailDecompress` if the output would exceed the limit or the frame is
invalid. It raises `BadHeader` when dictionary compression is marked but the
setting has no zstd dictionary. `Dictionary.to_record` and
`Dictionary.from_record` convert a dictionary to and from a plain mapping.

## What fogdoc does not do

- It does not decode document data back into Python values. `data()` returns
  the encoded bytes.
- It does not sign documents. `Document.from_bytes` rejects documents that
  carry signature bytes.
- It does not validate documents against a schema. The schema is recorded
  only as a hash.
- Compression overrides are only recorded. Documents are never stored in
  compressed form.