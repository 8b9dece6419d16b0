"""
Palworld Save Codec - Core Utilities
======================================
Primitive readers/writers shared by every layer of the codec:
fixed-width integers, UE FStrings, swizzled 16-byte GUIDs, the base64
wrapper used for opaque blobs, save file I/O and player id helpers.

All readers take a binary stream (normally io.BytesIO) positioned at the
value; all writers append to a binary stream.
"""

import base64
import binascii
import io
import os
import re
import struct

from .errors import InvalidStringError, InvalidUuidError, TruncatedDataError


# ============================================================================
# FIXED-WIDTH VALUES
# ============================================================================

_U8 = struct.Struct('<B')
_I16 = struct.Struct('<h')
_U16 = struct.Struct('<H')
_I32 = struct.Struct('<i')
_U32 = struct.Struct('<I')
_I64 = struct.Struct('<q')
_U64 = struct.Struct('<Q')
_F32 = struct.Struct('<f')
_F64 = struct.Struct('<d')
_GUID = struct.Struct('<4I')


def read_exact(stream: io.BytesIO, n: int) -> bytes:
    """Read exactly `n` bytes or raise TruncatedDataError."""
    offset = stream.tell()
    data = stream.read(n)
    if len(data) != n:
        raise TruncatedDataError(n, len(data), offset)
    return data


def remaining(stream: io.BytesIO) -> int:
    """Number of bytes left between the stream position and its end."""
    pos = stream.tell()
    end = stream.seek(0, io.SEEK_END)
    stream.seek(pos)
    return end - pos


def read_u8(stream: io.BytesIO) -> int:
    return read_exact(stream, 1)[0]


def read_i16(stream: io.BytesIO) -> int:
    return _I16.unpack(read_exact(stream, 2))[0]


def read_u16(stream: io.BytesIO) -> int:
    return _U16.unpack(read_exact(stream, 2))[0]


def read_i32(stream: io.BytesIO) -> int:
    return _I32.unpack(read_exact(stream, 4))[0]


def read_u32(stream: io.BytesIO) -> int:
    return _U32.unpack(read_exact(stream, 4))[0]


def read_i64(stream: io.BytesIO) -> int:
    return _I64.unpack(read_exact(stream, 8))[0]


def read_u64(stream: io.BytesIO) -> int:
    return _U64.unpack(read_exact(stream, 8))[0]


def read_f32(stream: io.BytesIO) -> float:
    return _F32.unpack(read_exact(stream, 4))[0]


def read_f64(stream: io.BytesIO) -> float:
    return _F64.unpack(read_exact(stream, 8))[0]


def write_u8(out: io.BytesIO, value: int) -> None:
    out.write(_U8.pack(value))


def write_i16(out: io.BytesIO, value: int) -> None:
    out.write(_I16.pack(value))


def write_u16(out: io.BytesIO, value: int) -> None:
    out.write(_U16.pack(value))


def write_i32(out: io.BytesIO, value: int) -> None:
    out.write(_I32.pack(value))


def write_u32(out: io.BytesIO, value: int) -> None:
    out.write(_U32.pack(value))


def write_i64(out: io.BytesIO, value: int) -> None:
    out.write(_I64.pack(value))


def write_u64(out: io.BytesIO, value: int) -> None:
    out.write(_U64.pack(value))


def write_f32(out: io.BytesIO, value: float) -> None:
    out.write(_F32.pack(value))


def write_f64(out: io.BytesIO, value: float) -> None:
    out.write(_F64.pack(value))


# ============================================================================
# FSTRING
# ============================================================================

def read_fstring(stream: io.BytesIO) -> str:
    """Read a UE FString (int32 length + data + null terminator).

    Positive length: that many single-byte characters, NUL included.
    Negative length: -length UTF-16LE code units, NUL pair included.
    Zero: the empty string, no payload at all.
    """
    length = read_i32(stream)
    if length == 0:
        return ''
    if length == -0x80000000:
        raise InvalidStringError(f'Invalid FString length {length} at offset 0x{stream.tell() - 4:X}')
    if length < 0:
        raw = read_exact(stream, -length * 2)
        if raw[-2:] == b'\x00\x00':
            raw = raw[:-2]
        return raw.decode('utf-16-le', errors='surrogatepass')
    raw = read_exact(stream, length)
    if raw[-1:] == b'\x00':
        raw = raw[:-1]
    return raw.decode('utf-8', errors='replace')


def encode_fstring(value: str) -> bytes:
    """Encode `value` the way the game writes FStrings.

    ASCII goes out as single bytes, anything else as UTF-16LE with a
    negative length. The empty string is a bare zero length.
    """
    if not value:
        return _I32.pack(0)
    if value.isascii():
        raw = value.encode('ascii') + b'\x00'
        return _I32.pack(len(raw)) + raw
    raw = value.encode('utf-16-le', errors='surrogatepass') + b'\x00\x00'
    return _I32.pack(-(len(raw) // 2)) + raw


def write_fstring(out: io.BytesIO, value: str) -> None:
    out.write(encode_fstring(value))


# ============================================================================
# GUID
# ============================================================================
# Unreal stores an FGuid as four little-endian uint32s. Reading each word
# back as big-endian hex gives the canonical text form, e.g. bytes
#   01 00 00 00 00 00 00 00 00 00 00 00 00 00 00 00
# read as "00000001-0000-0000-0000-000000000000".

_HEX32_RE = re.compile(r'^[0-9a-fA-F]{32}$')


def format_uuid(hex32: str) -> str:
    """Insert dashes into 32 hex digits (8-4-4-4-12), lowercased."""
    h = hex32.lower()
    return f'{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}'


def uuid_from_bytes(raw: bytes) -> str:
    """Canonical string for 16 wire bytes."""
    if len(raw) != 16:
        raise InvalidUuidError(f'GUID must be 16 bytes, got {len(raw)}')
    a, b, c, d = _GUID.unpack(raw)
    return format_uuid(f'{a:08x}{b:08x}{c:08x}{d:08x}')


def uuid_to_bytes(value: str) -> bytes:
    """Wire bytes for a GUID given dashed or flat hex."""
    hex32 = value.replace('-', '') if isinstance(value, str) else ''
    if not _HEX32_RE.match(hex32):
        raise InvalidUuidError(f'Invalid UUID: {value!r}')
    words = [int(hex32[i:i + 8], 16) for i in range(0, 32, 8)]
    return _GUID.pack(*words)


def read_uuid(stream: io.BytesIO) -> str:
    return uuid_from_bytes(read_exact(stream, 16))


def write_uuid(out: io.BytesIO, value: str) -> None:
    out.write(uuid_to_bytes(value))


def read_optional_uuid(stream: io.BytesIO) -> str | None:
    """Read the flag byte and, when set, the GUID that follows it."""
    if read_u8(stream):
        return read_uuid(stream)
    return None


def write_optional_uuid(out: io.BytesIO, value: str | None) -> None:
    if value is None:
        out.write(b'\x00')
    else:
        out.write(b'\x01')
        write_uuid(out, value)


# ============================================================================
# OPAQUE BLOBS
# ============================================================================

def b64encode(data: bytes) -> str:
    """Text-safe form of raw bytes (standard alphabet, '=' padding)."""
    return base64.b64encode(data).decode('ascii')


def b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f'Invalid base64 data: {e}') from e


# ============================================================================
# PLAYER IDS
# ============================================================================
# Player saves are named after the player uid as 32 flat hex digits
# (Players/00000001000000000000000000000000.sav); inside the tree the same
# uid is a dashed GUID.

def normalize_id(value: str) -> str:
    """Flat, lowercase hex form of a player id (dashes and .sav dropped)."""
    value = value.strip()
    if value.lower().endswith('.sav'):
        value = value[:-4]
    return value.replace('-', '').lower()


def is_hex_id(value: str) -> bool:
    return bool(_HEX32_RE.match(value))


def uuid_to_filename(uuid: str) -> str:
    return normalize_id(uuid)


def filename_to_uuid(filename: str) -> str:
    """Dashed GUID for a player file name; non-id names come back lowercased."""
    flat = normalize_id(filename)
    if not is_hex_id(flat):
        return flat
    return format_uuid(flat)


# ============================================================================
# SAVE FILE I/O
# ============================================================================

def load_save(filepath: str) -> bytes:
    """Load a save file and return its raw bytes."""
    if not os.path.exists(filepath):
        raise FileNotFoundError(f'Save file not found: {filepath}')
    with open(filepath, 'rb') as f:
        return f.read()


def write_save(filepath: str, data: bytes) -> None:
    """Write raw bytes to a save file."""
    with open(filepath, 'wb') as f:
        f.write(data)
