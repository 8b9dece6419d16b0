"""
Palworld Save Codec - SAV Envelope
====================================
Strips and rebuilds the compression container around the GVAS stream.

SAV Header Layout:
    uint32  UncompressedLength
    uint32  CompressedLength    (for PlZ 0x32: length after the FIRST pass)
    char[3] Magic               ("PlZ" / "PlM" / "CNK")
    uint8   SaveType            (0x30 zlib, 0x31 Oodle, 0x32 double zlib)

A "CNK" header is an outer wrapper: a second standalone header follows at
offset 12 and the compressed payload starts at offset 24.

Only zlib framings can be written. PlM (Oodle) saves are re-written as
PlZ 0x32; the game loads either framing.
"""

import logging
import struct
import zlib

from . import oodle
from .config import (
    CNK_HEADER_SIZE, GVAS_MAGIC_BYTES, MAGIC_CNK, MAGIC_PLZ, SAV_HEADER_SIZE,
    SAVE_TYPE_DOUBLE_ZLIB, SAVE_TYPE_OODLE, SAVE_TYPE_ZLIB,
)
from .errors import DecompressionError, EnvelopeError

logger = logging.getLogger(__name__)

_SAV_HEADER = struct.Struct('<II3sB')


class SavHeader:
    """Parsed 12-byte SAV envelope header."""
    def __init__(self, uncompressed_len: int, compressed_len: int, magic: bytes, save_type: int):
        self.uncompressed_len = uncompressed_len
        self.compressed_len = compressed_len
        self.magic = magic
        self.save_type = save_type

    def __repr__(self):
        return (
            f'SavHeader(magic={self.magic!r}, save_type=0x{self.save_type:02X}, '
            f'uncompressed={self.uncompressed_len}, compressed={self.compressed_len})'
        )


def parse_sav_header(data: bytes) -> tuple[SavHeader, int]:
    """Parse the envelope header. Returns (header, payload_offset)."""
    if len(data) < SAV_HEADER_SIZE:
        raise EnvelopeError(f'SAV file too small: {len(data)} bytes')

    header = SavHeader(*_SAV_HEADER.unpack_from(data, 0))
    if header.magic != MAGIC_CNK:
        return header, SAV_HEADER_SIZE

    if len(data) < CNK_HEADER_SIZE:
        raise EnvelopeError('CNK file too small for inner header')
    inner = SavHeader(*_SAV_HEADER.unpack_from(data, SAV_HEADER_SIZE))
    return inner, CNK_HEADER_SIZE


def _inflate(data: bytes, label: str) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error as e:
        raise DecompressionError(f'{label}: {e}') from e


def decompress(data: bytes, oodle_lib: str | None = None) -> tuple[bytes, int]:
    """Decompress a .sav file into raw GVAS bytes.

    Returns (gvas_bytes, save_type).
    """
    header, offset = parse_sav_header(data)
    payload = data[offset:]
    save_type = header.save_type
    logger.debug('SAV envelope: %r (payload at %d)', header, offset)

    if save_type == SAVE_TYPE_DOUBLE_ZLIB:
        first = _inflate(payload, 'zlib pass-1 decompress')
        gvas = _inflate(first, 'zlib pass-2 decompress')
    elif save_type == SAVE_TYPE_OODLE:
        compressed = payload
        if 0 < header.compressed_len <= len(payload):
            compressed = payload[:header.compressed_len]
        gvas = oodle.decompress(compressed, header.uncompressed_len, oodle_lib)
        if gvas[:4] != GVAS_MAGIC_BYTES:
            raise DecompressionError(
                f'Oodle decompressed data does not start with GVAS magic (got {gvas[:4].hex().upper()})'
            )
    elif save_type == SAVE_TYPE_ZLIB:
        gvas = _inflate(payload, 'zlib decompress')
    else:
        raise EnvelopeError(f'Unsupported save_type 0x{save_type:02X}')

    if len(gvas) != header.uncompressed_len:
        logger.warning('Uncompressed length mismatch: header says %d, got %d',
                       header.uncompressed_len, len(gvas))
    return gvas, save_type


def compress(gvas: bytes, save_type: int) -> bytes:
    """Compress raw GVAS bytes back into .sav format.

    PlM (0x31) is written as PlZ (0x32): Oodle compression needs the
    proprietary SDK, and the game reads PlZ files regardless.
    """
    if save_type == SAVE_TYPE_OODLE:
        logger.info('Oodle save re-written as double-zlib PlZ (0x32)')
        save_type = SAVE_TYPE_DOUBLE_ZLIB

    if save_type == SAVE_TYPE_DOUBLE_ZLIB:
        compressed_once = zlib.compress(gvas)
        payload = zlib.compress(compressed_once)
        compressed_len = len(compressed_once)
    elif save_type == SAVE_TYPE_ZLIB:
        payload = zlib.compress(gvas)
        compressed_len = len(payload)
    else:
        raise EnvelopeError(f'Unsupported save_type 0x{save_type:02X}')

    return _SAV_HEADER.pack(len(gvas), compressed_len, MAGIC_PLZ, save_type) + payload
