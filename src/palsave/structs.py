"""
Palworld Save Codec - Fixed-Layout Structs
============================================
StructProperty values whose layout is fixed by the engine rather than
written as a nested property scope. Everything not listed here is read as
a scope of named properties.

    Vector, Rotator            3 x double
    Quat, Vector4, Plane       4 x double
    Vector2D                   2 x double
    Vector2f, Vector2D_f       2 x float
    Vector3f                   3 x float
    IntVector                  3 x int32
    IntPoint                   2 x int32
    LinearColor                4 x float (RGBA)
    Color                      4 x uint8 (BGRA on disk)
    Box                        2 x Vector + uint8 IsValid
    DateTime                   uint64 ticks
    Timespan                   int64 ticks
    Guid                       16-byte GUID
"""

import io
import struct

from .properties import Box, Color, LinearColor, Vector, Vector2D, Vector4
from .utils import read_exact, read_i64, read_u64, read_uuid, write_i64, write_u64, write_uuid

_3D = struct.Struct('<3d')
_4D = struct.Struct('<4d')
_2D = struct.Struct('<2d')
_2F = struct.Struct('<2f')
_3F = struct.Struct('<3f')
_4F = struct.Struct('<4f')
_3I = struct.Struct('<3i')
_2I = struct.Struct('<2i')
_BGRA = struct.Struct('<4B')


def _read_vector(stream: io.BytesIO) -> Vector:
    return Vector(*_3D.unpack(read_exact(stream, _3D.size)))


def _write_vector(out: io.BytesIO, v: Vector) -> None:
    out.write(_3D.pack(v.x, v.y, v.z))


def _read_vector4(stream: io.BytesIO) -> Vector4:
    return Vector4(*_4D.unpack(read_exact(stream, _4D.size)))


def _write_vector4(out: io.BytesIO, v: Vector4) -> None:
    out.write(_4D.pack(v.x, v.y, v.z, v.w))


def _read_vector2d(stream: io.BytesIO) -> Vector2D:
    return Vector2D(*_2D.unpack(read_exact(stream, _2D.size)))


def _write_vector2d(out: io.BytesIO, v: Vector2D) -> None:
    out.write(_2D.pack(v.x, v.y))


def _read_vector2f(stream: io.BytesIO) -> Vector2D:
    return Vector2D(*_2F.unpack(read_exact(stream, _2F.size)))


def _write_vector2f(out: io.BytesIO, v: Vector2D) -> None:
    out.write(_2F.pack(v.x, v.y))


def _read_vector3f(stream: io.BytesIO) -> Vector:
    return Vector(*_3F.unpack(read_exact(stream, _3F.size)))


def _write_vector3f(out: io.BytesIO, v: Vector) -> None:
    out.write(_3F.pack(v.x, v.y, v.z))


def _read_int_vector(stream: io.BytesIO) -> Vector:
    return Vector(*_3I.unpack(read_exact(stream, _3I.size)))


def _write_int_vector(out: io.BytesIO, v: Vector) -> None:
    out.write(_3I.pack(int(v.x), int(v.y), int(v.z)))


def _read_int_point(stream: io.BytesIO) -> Vector2D:
    return Vector2D(*_2I.unpack(read_exact(stream, _2I.size)))


def _write_int_point(out: io.BytesIO, v: Vector2D) -> None:
    out.write(_2I.pack(int(v.x), int(v.y)))


def _read_linear_color(stream: io.BytesIO) -> LinearColor:
    return LinearColor(*_4F.unpack(read_exact(stream, _4F.size)))


def _write_linear_color(out: io.BytesIO, c: LinearColor) -> None:
    out.write(_4F.pack(c.r, c.g, c.b, c.a))


def _read_color(stream: io.BytesIO) -> Color:
    b, g, r, a = _BGRA.unpack(read_exact(stream, _BGRA.size))
    return Color(r, g, b, a)


def _write_color(out: io.BytesIO, c: Color) -> None:
    out.write(_BGRA.pack(c.b, c.g, c.r, c.a))


def _read_box(stream: io.BytesIO) -> Box:
    lo = _read_vector(stream)
    hi = _read_vector(stream)
    return Box(lo, hi, bool(read_exact(stream, 1)[0]))


def _write_box(out: io.BytesIO, box: Box) -> None:
    _write_vector(out, box.min)
    _write_vector(out, box.max)
    out.write(b'\x01' if box.valid else b'\x00')


# struct_type -> (reader, writer)
FIXED_STRUCTS = {
    'Vector': (_read_vector, _write_vector),
    'Rotator': (_read_vector, _write_vector),
    'Quat': (_read_vector4, _write_vector4),
    'Vector4': (_read_vector4, _write_vector4),
    'Plane': (_read_vector4, _write_vector4),
    'Vector2D': (_read_vector2d, _write_vector2d),
    'Vector2f': (_read_vector2f, _write_vector2f),
    'Vector2D_f': (_read_vector2f, _write_vector2f),
    'Vector3f': (_read_vector3f, _write_vector3f),
    'IntVector': (_read_int_vector, _write_int_vector),
    'IntPoint': (_read_int_point, _write_int_point),
    'LinearColor': (_read_linear_color, _write_linear_color),
    'Color': (_read_color, _write_color),
    'Box': (_read_box, _write_box),
    'DateTime': (read_u64, write_u64),
    'Timespan': (read_i64, write_i64),
    'Guid': (read_uuid, write_uuid),
}


def is_fixed_struct(struct_type: str) -> bool:
    return struct_type in FIXED_STRUCTS


def read_struct_value(stream: io.BytesIO, struct_type: str):
    reader, _ = FIXED_STRUCTS[struct_type]
    return reader(stream)


def write_struct_value(out: io.BytesIO, struct_type: str, value) -> None:
    _, writer = FIXED_STRUCTS[struct_type]
    writer(out, value)
