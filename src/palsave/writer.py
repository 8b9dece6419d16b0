"""
Palworld Save Codec - GVAS Writer
===================================
Inverse of reader.py: serializes a header, a root property scope and the
trailer back into a raw GVAS stream.

Every property body is built as two parts, the type metadata (including
the HasId flag) and the payload, so the Size field can be set to the
measured payload length. Sizes are never copied from the decoded input.
"""

import io
import struct

from .config import MAX_DEPTH, NONE_NAME
from .errors import EncodeError, InvalidUuidError, TreeDepthError
from .properties import (
    RAW_HEADER_FIELDS, ArrayProperty, BoolProperty, ByteBlob, ByteProperty,
    EnumProperty, MapProperty, Property, RawArray, RawProperty, SetProperty,
    SoftObjectProperty, StructArray, StructProperty, TextProperty, ValueList,
)
from .records import CharacterRecord, GroupRecord, encode_character_record, encode_group_record
from .structs import is_fixed_struct, write_struct_value
from .utils import (
    write_f32, write_f64, write_fstring, write_i32, write_i64,
    write_optional_uuid, write_u8, write_u16, write_u32, write_u64, write_uuid,
)


def _write_bool(out: io.BytesIO, value: bool) -> None:
    write_u8(out, 1 if value else 0)


def _write_soft_object(out: io.BytesIO, value: SoftObjectProperty) -> None:
    write_fstring(out, value.path)
    write_fstring(out, value.sub_path)


ELEMENT_WRITERS = {
    'IntProperty': write_i32,
    'UInt16Property': write_u16,
    'UInt32Property': write_u32,
    'Int64Property': write_i64,
    'UInt64Property': write_u64,
    'FloatProperty': write_f32,
    'DoubleProperty': write_f64,
    'BoolProperty': _write_bool,
    'StrProperty': write_fstring,
    'NameProperty': write_fstring,
    'EnumProperty': write_fstring,
    'ObjectProperty': write_fstring,
    'SoftObjectProperty': _write_soft_object,
    'Guid': write_uuid,
}

_SCALAR_WRITERS = {
    'IntProperty': write_i32,
    'Int64Property': write_i64,
    'UInt16Property': write_u16,
    'UInt32Property': write_u32,
    'UInt64Property': write_u64,
    'FixedPoint64Property': write_i32,
    'FloatProperty': write_f32,
    'DoubleProperty': write_f64,
    'StrProperty': write_fstring,
    'NameProperty': write_fstring,
    'ObjectProperty': write_fstring,
}


def _write_raw_meta(meta: io.BytesIO, prop: RawProperty) -> None:
    for field_name in RAW_HEADER_FIELDS.get(prop.type_name, ()):
        value = prop.header.get(field_name)
        if value is None:
            raise EncodeError(f'Raw {prop.type_name} is missing header field {field_name!r}')
        if field_name == 'struct_id':
            write_uuid(meta, value)
        else:
            write_fstring(meta, value)
    write_optional_uuid(meta, prop.id)


def raw_body(prop: RawProperty) -> bytes:
    """Metadata + payload of a raw property as they appear after its Size."""
    out = io.BytesIO()
    _write_raw_meta(out, prop)
    out.write(prop.data)
    return out.getvalue()


class GvasWriter:
    """Serializer for header, property scopes and trailer."""

    def __init__(self, max_depth: int = MAX_DEPTH):
        self.max_depth = max_depth
        self.depth = 0

    def write_header(self, out: io.BytesIO, header) -> None:
        write_u32(out, header.magic)
        write_i32(out, header.save_game_version)
        write_i32(out, header.package_file_version_ue4)
        write_i32(out, header.package_file_version_ue5)
        write_u16(out, header.engine_version_major)
        write_u16(out, header.engine_version_minor)
        write_u16(out, header.engine_version_patch)
        write_u32(out, header.engine_version_changelist)
        write_fstring(out, header.engine_version_branch)
        write_i32(out, header.custom_version_format)
        write_u32(out, len(header.custom_versions))
        for guid, version in header.custom_versions:
            write_uuid(out, guid)
            write_i32(out, version)
        write_fstring(out, header.save_game_class_name)

    def write_properties(self, out: io.BytesIO, props: dict, path: str = '') -> None:
        """Write a scope of properties followed by its terminator, "None" by default."""
        self.depth += 1
        if self.depth > self.max_depth:
            raise TreeDepthError(f'Property nesting deeper than {self.max_depth} at {path or "<root>"}')
        try:
            for name, prop in props.items():
                prop_path = f'{path}.{name}' if path else name
                try:
                    self.write_property(out, name, prop, prop_path)
                except (struct.error, InvalidUuidError, TypeError, AttributeError) as e:
                    raise EncodeError(f'property {prop_path}: {e}') from e
            write_fstring(out, getattr(props, 'terminator', NONE_NAME))
        finally:
            self.depth -= 1

    def write_property(self, out: io.BytesIO, name: str, prop: Property, path: str = '') -> None:
        if not isinstance(prop, Property):
            raise EncodeError(f'property {path or name}: expected a Property, got {type(prop).__name__}')
        meta = io.BytesIO()
        body = io.BytesIO()
        self._write_body(meta, body, prop, path)

        write_fstring(out, name)
        write_fstring(out, prop.type_name)
        write_u64(out, body.tell())
        out.write(meta.getvalue())
        out.write(body.getvalue())

    # ------------------------------------------------------------------------
    # Property bodies
    # ------------------------------------------------------------------------

    def _write_body(self, meta: io.BytesIO, body: io.BytesIO, prop: Property, path: str) -> None:
        if isinstance(prop, RawProperty):
            _write_raw_meta(meta, prop)
            body.write(prop.data)
        elif isinstance(prop, BoolProperty):
            # Value byte sits in front of the id and is not counted in Size.
            _write_bool(meta, prop.value)
            write_optional_uuid(meta, prop.id)
        elif prop.type_name in _SCALAR_WRITERS:
            write_optional_uuid(meta, prop.id)
            _SCALAR_WRITERS[prop.type_name](body, prop.value)
        elif isinstance(prop, EnumProperty):
            write_fstring(meta, prop.enum_type)
            write_optional_uuid(meta, prop.id)
            write_fstring(body, prop.value)
        elif isinstance(prop, ByteProperty):
            write_fstring(meta, prop.enum_type)
            write_optional_uuid(meta, prop.id)
            if prop.enum_type == NONE_NAME:
                write_u8(body, prop.value)
            else:
                write_fstring(body, prop.value)
        elif isinstance(prop, SoftObjectProperty):
            write_optional_uuid(meta, prop.id)
            _write_soft_object(body, prop)
        elif isinstance(prop, TextProperty):
            write_optional_uuid(meta, prop.id)
            body.write(prop.raw)
        elif isinstance(prop, StructProperty):
            write_fstring(meta, prop.struct_type)
            write_uuid(meta, prop.struct_id)
            write_optional_uuid(meta, prop.id)
            self._write_struct_value(body, prop.struct_type, prop.value, path)
        elif isinstance(prop, ArrayProperty):
            write_fstring(meta, prop.array_type)
            write_optional_uuid(meta, prop.id)
            self._write_array(body, prop, path)
        elif isinstance(prop, MapProperty):
            write_fstring(meta, prop.key_type)
            write_fstring(meta, prop.value_type)
            write_optional_uuid(meta, prop.id)
            self._write_map(body, prop, path)
        elif isinstance(prop, SetProperty):
            write_fstring(meta, prop.set_type)
            write_optional_uuid(meta, prop.id)
            write_u32(body, prop.reserved)
            write_u32(body, len(prop.entries))
            for element in prop.entries:
                self._write_element(body, prop.set_type, '', element, path)
        else:
            raise EncodeError(f'property {path}: cannot encode {type(prop).__name__}')

    def _write_struct_value(self, out: io.BytesIO, struct_type: str, value, path: str) -> None:
        if isinstance(value, dict):
            self.write_properties(out, value, path)
        elif is_fixed_struct(struct_type):
            write_struct_value(out, struct_type, value)
        else:
            raise EncodeError(
                f'property {path}: struct {struct_type or "<generic>"} needs a property dict, '
                f'got {type(value).__name__}')

    def _write_array(self, out: io.BytesIO, prop: ArrayProperty, path: str) -> None:
        value = prop.value
        if isinstance(value, StructArray):
            elements = io.BytesIO()
            for element in value.values:
                self._write_struct_value(elements, value.type_name, element, path)
            write_u32(out, len(value.values))
            write_fstring(out, value.prop_name)
            write_fstring(out, value.prop_type)
            write_u64(out, elements.tell())
            write_fstring(out, value.type_name)
            write_uuid(out, value.id)
            write_optional_uuid(out, value.extra_id)
            out.write(elements.getvalue())
        elif isinstance(value, (ByteBlob, GroupRecord, CharacterRecord)):
            if isinstance(value, GroupRecord):
                data = encode_group_record(value)
            elif isinstance(value, CharacterRecord):
                data = encode_character_record(
                    value, lambda stream, scope: self.write_properties(stream, scope, path))
            else:
                data = value.data
            write_u32(out, len(data))
            out.write(data)
        elif isinstance(value, ValueList):
            write_u32(out, len(value.values))
            if prop.array_type == 'ByteProperty':
                for element in value.values:
                    write_fstring(out, element)
                return
            write_element = ELEMENT_WRITERS.get(prop.array_type)
            if write_element is None:
                raise EncodeError(f'property {path}: no element encoder for {prop.array_type}')
            for element in value.values:
                write_element(out, element)
        elif isinstance(value, RawArray):
            write_u32(out, value.count)
            out.write(value.data)
        else:
            raise EncodeError(f'property {path}: unsupported array value {type(value).__name__}')

    def _write_element(self, out: io.BytesIO, type_name: str, struct_type: str | None, value, path: str) -> None:
        if type_name == 'StructProperty':
            self._write_struct_value(out, struct_type or '', value, path)
            return
        write_element = ELEMENT_WRITERS.get(type_name)
        if write_element is not None:
            write_element(out, value)
        elif isinstance(value, dict):
            self.write_properties(out, value, path)
        else:
            raise EncodeError(f'property {path}: no element encoder for {type_name}')

    def _write_map(self, out: io.BytesIO, prop: MapProperty, path: str) -> None:
        write_u32(out, prop.reserved)
        write_u32(out, len(prop.entries))
        key_path = f'{path}.Key'
        value_path = f'{path}.Value'
        for entry in prop.entries:
            self._write_element(out, prop.key_type, prop.key_struct_type, entry.key, key_path)
            self._write_element(out, prop.value_type, prop.value_struct_type, entry.value, value_path)
