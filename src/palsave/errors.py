"""
Palworld Save Codec - Errors
==============================
Exception hierarchy shared by the envelope, tree and record codecs.
Everything raised on purpose by this package derives from SaveError, so
callers can surface a failed decode/encode as a single message.
"""


class SaveError(Exception):
    """Base class for every error raised by the codec."""


# ============================================================================
# ENVELOPE
# ============================================================================

class EnvelopeError(SaveError):
    """Truncated header, unknown magic or unsupported save type."""


class DecompressionError(SaveError):
    """Corrupt compressed payload, or no decoder for the framing."""


# ============================================================================
# PROPERTY TREE
# ============================================================================

class MalformedTreeError(SaveError):
    """The GVAS stream does not have the expected structure."""


class TruncatedDataError(MalformedTreeError, EOFError):
    """The stream ended in the middle of a value."""

    def __init__(self, wanted: int, got: int, offset: int | None = None):
        self.wanted = wanted
        self.got = got
        self.offset = offset
        where = f' at offset 0x{offset:X}' if offset is not None else ''
        super().__init__(f'Unexpected end of data{where}: wanted {wanted} bytes, got {got}')


class InvalidStringError(MalformedTreeError):
    """An FString length prefix that cannot be valid."""


class InvalidUuidError(MalformedTreeError, ValueError):
    """A 16-byte identifier given in a form that is not 32 hex digits."""


class TreeDepthError(MalformedTreeError):
    """Nested scopes deeper than the configured maximum."""


# ============================================================================
# RECORDS / ENCODING
# ============================================================================

class RecordDecodeError(SaveError):
    """A group or character blob could not be unpacked."""


class EncodeError(SaveError):
    """The tree handed to the writer is missing fields or has the wrong shape."""
