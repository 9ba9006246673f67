"""Errors raised while encoding, decoding and validating documents."""

from __future__ import annotations


class FogError(Exception):
    """Base class for every error raised by this package."""


class FailDecompress(FogError):
    """Decompression failed or would exceed the allowed size."""


class BadHeader(FogError):
    """A header is malformed or refers to something unsupported."""


class ParseLimit(FogError):
    """A parsing limit, such as the nesting depth, was exceeded."""


class LengthTooShort(FogError):
    """Fewer bytes were available than a decoding step needed."""

    def __init__(self, step: str, actual: int, expected: int) -> None:
        self.step = step
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Expected at least {expected} bytes but had {actual} at step '{step}'"
        )


class LengthTooLong(FogError):
    """Encoded data is longer than the permitted maximum."""

    def __init__(self, max_size: int, actual: int) -> None:
        self.max_size = max_size
        self.actual = actual
        super().__init__(
            f"Length {actual} is larger than the maximum of {max_size}"
        )