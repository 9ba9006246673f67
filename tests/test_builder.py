import itertools
import random
from dataclasses import dataclass

import pytest

from fogdoc.builder import VecDocumentBuilder
from fogdoc.compress import Compress
from fogdoc.document import Document
from fogdoc.layout import MAX_DOC_SIZE, Hash, encode_value


def _raw(doc):
    return Document.from_new(doc).complete()[1]


def _split_array(data):
    marker = data[0]
    if marker & 0xF0 == 0x90:
        return marker & 0x0F, data[1:]
    width = {0xD7: 1, 0xD8: 2, 0xD9: 3}[marker]
    return int.from_bytes(data[1 : 1 + width], "little"), data[1 + width :]


def _size_ok(doc):
    n = len(_raw(doc))
    return (MAX_DOC_SIZE >> 2) < n <= (MAX_DOC_SIZE >> 1)


def test_small_items_single_document():
    docs = list(VecDocumentBuilder.new([1, 2, 3], None))
    assert len(docs) == 1
    data = docs[0].data()
    assert data == b"\x93\x01\x02\x03"
    assert docs[0].hash() == Hash.new(b"\x00" + data)
    assert docs[0].schema_hash() is None


def test_empty_iterable_yields_nothing():
    assert list(VecDocumentBuilder.new([], None)) == []


def test_exhausted_builder_stays_exhausted():
    builder = VecDocumentBuilder.new(["a"], None)
    first = next(builder)
    assert first.data() == b"\x91\xa1a"
    with pytest.raises(StopIteration):
        next(builder)
    with pytest.raises(StopIteration):
        next(builder)


def test_vec_document_encode():
    builder = VecDocumentBuilder.new(itertools.repeat({"a": 234235, "b": "Ok"}), None)
    docs = [next(builder) for _ in range(4)]
    assert all(_size_ok(doc) for doc in docs)


def test_vec_document_encode_all():
    count = MAX_DOC_SIZE + 12
    item = {"a": 23456, "b": "Ok"}
    docs = list(VecDocumentBuilder.new(itertools.repeat(item, count), None))
    assert all(_size_ok(doc) for doc in docs[:-1])
    assert docs[-1].data()
    item_bytes = encode_value(item)
    total = 0
    for doc in docs:
        n, body = _split_array(doc.data())
        assert len(body) == n * len(item_bytes)
        total += n
    assert total == count


def test_schema_is_applied_to_every_document():
    schema = Hash.new(b"I'm totally a real schema, trust me")
    items = itertools.repeat("some text here", 60_000)
    docs = list(VecDocumentBuilder.new(items, schema))
    assert len(docs) > 1
    assert all(doc.schema_hash() == schema for doc in docs)
    assert all(_raw(doc)[1] == len(schema.raw) for doc in docs)
    assert all(len(_raw(doc)) <= MAX_DOC_SIZE >> 1 for doc in docs)


def test_compression_override_level():
    docs = list(VecDocumentBuilder.new([1, 2], None).compression(5))
    assert Document.from_new(docs[0]).complete()[2] == Compress.new_zstd_general(5)


def test_compression_override_disabled():
    docs = list(VecDocumentBuilder.new([1], None).compression(None))
    assert Document.from_new(docs[0]).complete()[2] == Compress.none()


def test_no_compression_override_by_default():
    docs = list(VecDocumentBuilder.new([1], None))
    assert Document.from_new(docs[0]).complete()[2] is None


def test_unordered_keys_sorted_by_new():
    docs = list(VecDocumentBuilder.new([{"b": 1, "a": 2}], None))
    assert docs[0].data() == b"\x91\x82\xa1a\x02\xa1b\x01"


def test_new_ordered_rejects_unordered_keys_and_stops():
    builder = VecDocumentBuilder.new_ordered([{"b": 1, "a": 2}, {"a": 1}], None)
    with pytest.raises(ValueError):
        next(builder)
    assert list(builder) == []


def test_unencodable_item_raises_type_error():
    builder = VecDocumentBuilder.new([object(), 1], None)
    with pytest.raises(TypeError):
        next(builder)
    assert list(builder) == []


@dataclass
class Address:
    x0: int
    x1: int
    x2: int
    x3: int


@dataclass
class Log:
    address: Address
    code: int
    date: str
    identity: str
    request: str
    size: int
    userid: str


USERID = ["-", "alice", "bob", "carmen", "david", "eric", "frank", "george", "harry"]
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
TIMEZONE = [f"{sign}{h:02d}00" for sign, h in [("-", h) for h in range(12, 0, -1)]] + [
    f"+{h:02d}00" for h in range(0, 13)
]
CODES = [
    100, 101, 102, 103, 200, 201, 202, 203, 204, 205, 206, 207, 208, 226, 300, 301, 302,
    303, 304, 305, 306, 307, 308, 400, 401, 402, 403, 404, 405, 406, 407, 408, 409, 410,
    411, 412, 413, 414, 415, 416, 417, 418, 421, 422, 423, 424, 425, 426, 428, 429, 431,
    451, 500, 501, 502, 503, 504, 505, 506, 507, 508, 510, 511,
]
METHODS = ["GET", "POST", "PUT", "UPDATE", "DELETE"]
ROUTES = [
    "/favicon.ico",
    "/css/index.css",
    "/css/font-awsome.min.css",
    "/img/logo-full.svg",
    "/img/splash.jpg",
    "/api/login",
    "/api/logout",
]
PROTOCOLS = ["HTTP/1.0", "HTTP/1.1", "HTTP/2", "HTTP/3"]


def _generate_log(rng):
    date = (
        f"{rng.randrange(1, 29)}/{rng.choice(MONTHS)}/{rng.randrange(1970, 2022)}:"
        f"{rng.randrange(24)}:{rng.randrange(60)}:{rng.randrange(60)} {rng.choice(TIMEZONE)}"
    )
    request = f"{rng.choice(METHODS)} {rng.choice(ROUTES)} {rng.choice(PROTOCOLS)}"
    return Log(
        address=Address(*(rng.randrange(256) for _ in range(4))),
        code=rng.choice(CODES),
        date=date,
        identity="-",
        request=request,
        size=rng.randrange(100_000_000),
        userid=rng.choice(USERID),
    )


@pytest.fixture(scope="module")
def logs():
    rng = random.Random(1234)
    return [_generate_log(rng) for _ in range(10_000)]


@pytest.mark.parametrize("factory", [VecDocumentBuilder.new, VecDocumentBuilder.new_ordered])
def test_logs_encode(logs, factory):
    docs = list(factory(logs, None))
    assert len(docs) > 1
    assert all(_size_ok(doc) for doc in docs[:-1])
    counts = []
    bodies = []
    for doc in docs:
        n, body = _split_array(doc.data())
        counts.append(n)
        bodies.append(body)
    assert sum(counts) == len(logs)
    assert b"".join(bodies) == b"".join(encode_value(log) for log in logs)


def test_logs_documents_read_back(logs):
    docs = [Document.from_new(d) for d in VecDocumentBuilder.new_ordered(logs, None)]
    for doc in docs:
        reread = Document.from_bytes(doc.complete()[1])
        assert reread.hash() == doc.hash()
        assert reread.data() == doc.data()