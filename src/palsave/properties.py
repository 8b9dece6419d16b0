"""
Palworld Save Codec - Property Model
======================================
In-memory form of a decoded GVAS property tree.

A scope (the root, a generic struct, a map key/value, a set element) is a
dict of property name -> Property, in file order. Decoded scopes are
Scope dicts that also remember their on-disk terminator; a plain dict is
written with "None". Each Property subclass corresponds to one on-wire type
tag and carries the fields needed to write it back; `id` is the optional
per-property GUID that precedes most payloads.

Containers:
    StructProperty.value   fixed struct value (Vector, Quat, ...), int, str
                           (Guid) or a nested scope dict
    ArrayProperty.value    StructArray | ByteBlob | ValueList | RawArray,
                           or a decoded GroupRecord / CharacterRecord
    MapProperty.entries    [MapEntry(key, value)]
    SetProperty.entries    [element]

RawProperty holds anything captured without decoding: its header fields
and payload bytes are written back unchanged.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from .config import NONE_NAME


@dataclass
class Property:
    """Base of all tagged properties."""
    type_name: ClassVar[str] = ''

    id: str | None = field(default=None, kw_only=True)


class Scope(dict):
    """A decoded scope. `terminator` is the name that closed it: "None", or
    the empty string some writers use instead."""
    terminator = NONE_NAME


# ============================================================================
# SCALARS
# ============================================================================

@dataclass
class IntProperty(Property):
    type_name: ClassVar[str] = 'IntProperty'
    value: int = 0


@dataclass
class Int64Property(Property):
    type_name: ClassVar[str] = 'Int64Property'
    value: int = 0


@dataclass
class UInt16Property(Property):
    type_name: ClassVar[str] = 'UInt16Property'
    value: int = 0


@dataclass
class UInt32Property(Property):
    type_name: ClassVar[str] = 'UInt32Property'
    value: int = 0


@dataclass
class UInt64Property(Property):
    type_name: ClassVar[str] = 'UInt64Property'
    value: int = 0


@dataclass
class FixedPoint64Property(Property):
    # Palworld stores these as a bare int32 despite the name.
    type_name: ClassVar[str] = 'FixedPoint64Property'
    value: int = 0


@dataclass
class FloatProperty(Property):
    type_name: ClassVar[str] = 'FloatProperty'
    value: float = 0.0


@dataclass
class DoubleProperty(Property):
    type_name: ClassVar[str] = 'DoubleProperty'
    value: float = 0.0


@dataclass
class BoolProperty(Property):
    type_name: ClassVar[str] = 'BoolProperty'
    value: bool = False


@dataclass
class StrProperty(Property):
    type_name: ClassVar[str] = 'StrProperty'
    value: str = ''


@dataclass
class NameProperty(Property):
    type_name: ClassVar[str] = 'NameProperty'
    value: str = ''


@dataclass
class ObjectProperty(Property):
    type_name: ClassVar[str] = 'ObjectProperty'
    value: str = ''


@dataclass
class EnumProperty(Property):
    type_name: ClassVar[str] = 'EnumProperty'
    enum_type: str = ''
    value: str = ''


@dataclass
class ByteProperty(Property):
    """A byte, or an enum name when enum_type is not "None"."""
    type_name: ClassVar[str] = 'ByteProperty'
    enum_type: str = 'None'
    value: int | str = 0


@dataclass
class SoftObjectProperty(Property):
    type_name: ClassVar[str] = 'SoftObjectProperty'
    path: str = ''
    sub_path: str = ''


@dataclass
class TextProperty(Property):
    # FText has many history variants; kept as raw payload bytes.
    type_name: ClassVar[str] = 'TextProperty'
    raw: bytes = b''


# ============================================================================
# FIXED-LAYOUT STRUCT VALUES
# ============================================================================

@dataclass
class Vector:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class Vector2D:
    x: float = 0.0
    y: float = 0.0


@dataclass
class Vector4:
    """Quat, Vector4 and Plane."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 0.0


@dataclass
class LinearColor:
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 0.0


@dataclass
class Color:
    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 0


@dataclass
class Box:
    min: Vector = field(default_factory=Vector)
    max: Vector = field(default_factory=Vector)
    valid: bool = False


# ============================================================================
# CONTAINERS
# ============================================================================

@dataclass
class StructProperty(Property):
    type_name: ClassVar[str] = 'StructProperty'
    struct_type: str = ''
    struct_id: str = '00000000-0000-0000-0000-000000000000'
    value: Any = None


@dataclass
class StructArray:
    """Elements of an ArrayProperty of StructProperty, plus the inner tag."""
    prop_name: str = ''
    prop_type: str = 'StructProperty'
    type_name: str = ''
    id: str = '00000000-0000-0000-0000-000000000000'
    extra_id: str | None = None
    values: list = field(default_factory=list)


@dataclass
class ByteBlob:
    """ArrayProperty of bytes read in one piece."""
    data: bytes = b''


@dataclass
class ValueList:
    """ArrayProperty of simple elements (numbers, strings, guids)."""
    values: list = field(default_factory=list)


@dataclass
class RawArray:
    """ArrayProperty whose element type is not understood."""
    count: int = 0
    data: bytes = b''


@dataclass
class ArrayProperty(Property):
    type_name: ClassVar[str] = 'ArrayProperty'
    array_type: str = ''
    value: Any = field(default_factory=ValueList)


@dataclass
class MapEntry:
    key: Any = None
    value: Any = None


@dataclass
class MapProperty(Property):
    type_name: ClassVar[str] = 'MapProperty'
    key_type: str = ''
    value_type: str = ''
    # Struct layout of keys/values; the wire format does not record it.
    key_struct_type: str | None = None
    value_struct_type: str | None = None
    reserved: int = 0
    entries: list[MapEntry] = field(default_factory=list)


@dataclass
class SetProperty(Property):
    type_name: ClassVar[str] = 'SetProperty'
    set_type: str = ''
    reserved: int = 0
    entries: list = field(default_factory=list)


# ============================================================================
# OPAQUE
# ============================================================================

# Header fields written between the size and the optional id, per type.
RAW_HEADER_FIELDS = {
    'ArrayProperty': ('array_type',),
    'SetProperty': ('set_type',),
    'MapProperty': ('key_type', 'value_type'),
    'StructProperty': ('struct_type', 'struct_id'),
    'EnumProperty': ('enum_type',),
    'ByteProperty': ('enum_type',),
}


@dataclass
class RawProperty(Property):
    """A property captured as header + payload bytes without decoding."""
    type_name: str = ''
    header: dict[str, str] = field(default_factory=dict)
    data: bytes = b''


def get_value(prop: Any) -> Any:
    """Unwrap nested `.value` attributes down to a plain value.

    get_value(StructProperty(struct_type='Guid', value='...')) -> '...'
    """
    while isinstance(prop, Property) and hasattr(prop, 'value'):
        prop = prop.value
    return prop
