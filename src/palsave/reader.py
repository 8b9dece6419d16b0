"""
Palworld Save Codec - GVAS Reader
===================================
Decodes a raw GVAS stream (the decompressed .sav payload) into a header,
a root property scope and the trailing bytes after it.

Property Layout (UE5 tagged property):
    FString  Name                 ("None" ends the scope)
    FString  Type                 ("IntProperty", "StructProperty", ...)
    uint64   Size                 (payload bytes only, see below)
    ...      type metadata        (struct type + struct id, array element type, ...)
    uint8    HasId  [+ GUID Id]
    ...      payload              (Size bytes)

BoolProperty is the exception: Size is 0 and the value byte comes before
the HasId flag.

Palworld-specific paths (see policy.py) are captured raw, given explicit
map key/value struct types, or have their RawData blobs decoded into
group and character records.
"""

import io
import logging

from .config import GVAS_MAGIC, MAX_DEPTH, NONE_NAME
from .errors import MalformedTreeError, RecordDecodeError, TreeDepthError
from .policy import DEFAULT_POLICY, EMPTY_POLICY, PathPolicy
from .properties import (
    RAW_HEADER_FIELDS, ArrayProperty, BoolProperty, ByteBlob, ByteProperty,
    DoubleProperty, EnumProperty, FixedPoint64Property, FloatProperty,
    Int64Property, IntProperty, MapEntry, MapProperty, NameProperty,
    ObjectProperty, Property, RawArray, RawProperty, Scope, SetProperty,
    SoftObjectProperty, StrProperty, StructArray, StructProperty, TextProperty,
    UInt16Property, UInt32Property, UInt64Property, ValueList,
)
from .records import decode_character_record, decode_group_record
from .structs import is_fixed_struct, read_struct_value
from .utils import (
    read_exact, read_f32, read_f64, read_fstring, read_i32, read_i64,
    read_optional_uuid, read_u8, read_u16, read_u32, read_u64, read_uuid,
)
from .writer import raw_body

logger = logging.getLogger(__name__)


class GvasHeader:
    """Parsed GVAS (UE5 save file) header."""
    def __init__(self):
        self.magic = GVAS_MAGIC
        self.save_game_version = 0
        self.package_file_version_ue4 = 0
        self.package_file_version_ue5 = 0
        self.engine_version_major = 0
        self.engine_version_minor = 0
        self.engine_version_patch = 0
        self.engine_version_changelist = 0
        self.engine_version_branch = ''
        self.custom_version_format = 0
        self.custom_versions = []           # [(guid, version)]
        self.save_game_class_name = ''
        self.header_size = 0

    def __eq__(self, other):
        return isinstance(other, GvasHeader) and vars(self) == vars(other)

    def __repr__(self):
        return (
            f'GvasHeader(magic=0x{self.magic:08X}, '
            f'save_ver={self.save_game_version}, '
            f'pkg_ver={self.package_file_version_ue4}/{self.package_file_version_ue5}, '
            f'engine={self.engine_version_major}.{self.engine_version_minor}.{self.engine_version_patch}, '
            f'class="{self.save_game_class_name}")'
        )


# ============================================================================
# ELEMENT CODECS
# ============================================================================
# Array, map and set elements carry no per-element tag; these are the
# element types that are read as bare values.

def _read_bool(stream: io.BytesIO) -> bool:
    return read_u8(stream) != 0


def _read_soft_object(stream: io.BytesIO) -> SoftObjectProperty:
    return SoftObjectProperty(read_fstring(stream), read_fstring(stream))


ELEMENT_READERS = {
    'IntProperty': read_i32,
    'UInt16Property': read_u16,
    'UInt32Property': read_u32,
    'Int64Property': read_i64,
    'UInt64Property': read_u64,
    'FloatProperty': read_f32,
    'DoubleProperty': read_f64,
    'BoolProperty': _read_bool,
    'StrProperty': read_fstring,
    'NameProperty': read_fstring,
    'EnumProperty': read_fstring,
    'ObjectProperty': read_fstring,
    'SoftObjectProperty': _read_soft_object,
    'Guid': read_uuid,
}

# Scalar property types: type name -> (class, payload reader)
_SCALARS = {
    'IntProperty': (IntProperty, read_i32),
    'Int64Property': (Int64Property, read_i64),
    'UInt16Property': (UInt16Property, read_u16),
    'UInt32Property': (UInt32Property, read_u32),
    'UInt64Property': (UInt64Property, read_u64),
    'FixedPoint64Property': (FixedPoint64Property, read_i32),
    'FloatProperty': (FloatProperty, read_f32),
    'DoubleProperty': (DoubleProperty, read_f64),
    'StrProperty': (StrProperty, read_fstring),
    'NameProperty': (NameProperty, read_fstring),
    'ObjectProperty': (ObjectProperty, read_fstring),
}


# ============================================================================
# READER
# ============================================================================

class GvasReader:
    """Stateful reader over one GVAS byte stream."""

    def __init__(self, data: bytes | io.BytesIO, policy: PathPolicy = DEFAULT_POLICY,
                 max_depth: int = MAX_DEPTH):
        self.stream = data if isinstance(data, io.BytesIO) else io.BytesIO(data)
        self.policy = policy
        self.max_depth = max_depth
        self.depth = 0

    def read_header(self) -> GvasHeader:
        """Parse the GVAS header.

        GVAS Header Layout (UE5):
            uint32  Magic                   (0x53415647 = "GVAS")
            int32   SaveGameVersion
            int32   PackageFileVersionUE4
            int32   PackageFileVersionUE5
            uint16  EngineMajor / EngineMinor / EnginePatch
            uint32  EngineChangelist
            FString EngineBranch
            int32   CustomVersionFormat
            uint32  CustomVersionCount
            [CustomVersionCount x (GUID + int32)]
            FString SaveGameClassName
        """
        s = self.stream
        h = GvasHeader()
        h.magic = read_u32(s)
        if h.magic != GVAS_MAGIC:
            raise MalformedTreeError(
                f'Invalid GVAS magic: 0x{h.magic:08X} (expected 0x{GVAS_MAGIC:08X})')
        h.save_game_version = read_i32(s)
        h.package_file_version_ue4 = read_i32(s)
        h.package_file_version_ue5 = read_i32(s)
        h.engine_version_major = read_u16(s)
        h.engine_version_minor = read_u16(s)
        h.engine_version_patch = read_u16(s)
        h.engine_version_changelist = read_u32(s)
        h.engine_version_branch = read_fstring(s)
        h.custom_version_format = read_i32(s)
        count = read_u32(s)
        h.custom_versions = [(read_uuid(s), read_i32(s)) for _ in range(count)]
        h.save_game_class_name = read_fstring(s)
        h.header_size = s.tell()
        return h

    def read_trailer(self) -> bytes:
        """Everything after the root scope (normally 4 zero bytes)."""
        return self.stream.read()

    def read_properties(self, path: str = '') -> dict[str, Property]:
        """Read one scope of properties up to its "None" (or empty) terminator."""
        self.depth += 1
        if self.depth > self.max_depth:
            raise TreeDepthError(f'Property nesting deeper than {self.max_depth} at {path or "<root>"}')
        try:
            props = Scope()
            while True:
                name = read_fstring(self.stream)
                if name == NONE_NAME or not name:
                    props.terminator = name
                    break
                type_name = read_fstring(self.stream)
                size = read_u64(self.stream)
                prop_path = f'{path}.{name}' if path else name
                try:
                    props[name] = self.read_property(type_name, size, prop_path)
                except MalformedTreeError as e:
                    _annotate(e, prop_path, type_name, size)
                    raise
            return props
        finally:
            self.depth -= 1

    def read_property(self, type_name: str, size: int, path: str) -> Property:
        """Decode one property body (everything after its size field)."""
        if type_name != 'BoolProperty' and self.policy.is_skipped(path):
            return self._read_raw(type_name, size, path)

        if type_name == 'MapProperty' and self.policy.has_group_records(path):
            prop = self._read_map(path)
            self._decode_group_records(prop, path)
            return prop

        s = self.stream
        if type_name in _SCALARS:
            cls, read_value = _SCALARS[type_name]
            prop_id = read_optional_uuid(s)
            return cls(read_value(s), id=prop_id)
        if type_name == 'BoolProperty':
            value = read_u8(s) != 0
            return BoolProperty(value, id=read_optional_uuid(s))
        if type_name == 'EnumProperty':
            enum_type = read_fstring(s)
            prop_id = read_optional_uuid(s)
            return EnumProperty(enum_type, read_fstring(s), id=prop_id)
        if type_name == 'ByteProperty':
            enum_type = read_fstring(s)
            prop_id = read_optional_uuid(s)
            value = read_u8(s) if enum_type == NONE_NAME else read_fstring(s)
            return ByteProperty(enum_type, value, id=prop_id)
        if type_name == 'SoftObjectProperty':
            prop_id = read_optional_uuid(s)
            return SoftObjectProperty(read_fstring(s), read_fstring(s), id=prop_id)
        if type_name == 'TextProperty':
            prop_id = read_optional_uuid(s)
            return TextProperty(read_exact(s, size), id=prop_id)
        if type_name == 'StructProperty':
            struct_type = read_fstring(s)
            struct_id = read_uuid(s)
            prop_id = read_optional_uuid(s)
            value = self._read_struct_value(struct_type, path)
            return StructProperty(struct_type, struct_id, value, id=prop_id)
        if type_name == 'ArrayProperty':
            return self._read_array(size, path)
        if type_name == 'MapProperty':
            return self._read_map(path)
        if type_name == 'SetProperty':
            return self._read_set(path)

        logger.debug('Unknown property type %s at %s: keeping %d raw bytes', type_name, path, size)
        prop_id = read_optional_uuid(s)
        return RawProperty(type_name, {}, read_exact(s, size), id=prop_id)

    # ------------------------------------------------------------------------
    # Raw capture
    # ------------------------------------------------------------------------

    def _read_raw(self, type_name: str, size: int, path: str) -> RawProperty:
        header = {}
        for field_name in RAW_HEADER_FIELDS.get(type_name, ()):
            if field_name == 'struct_id':
                header[field_name] = read_uuid(self.stream)
            else:
                header[field_name] = read_fstring(self.stream)
        prop_id = read_optional_uuid(self.stream)
        logger.debug('Skipping %s at %s (%d bytes)', type_name, path, size)
        return RawProperty(type_name, header, read_exact(self.stream, size), id=prop_id)

    # ------------------------------------------------------------------------
    # Structs
    # ------------------------------------------------------------------------

    def _read_struct_value(self, struct_type: str, path: str):
        if is_fixed_struct(struct_type):
            return read_struct_value(self.stream, struct_type)
        return self.read_properties(path)

    # ------------------------------------------------------------------------
    # Arrays
    # ------------------------------------------------------------------------

    def _read_array(self, size: int, path: str) -> ArrayProperty:
        s = self.stream
        array_type = read_fstring(s)
        prop_id = read_optional_uuid(s)
        count = read_u32(s)

        if array_type == 'StructProperty':
            value = StructArray(
                prop_name=read_fstring(s),
                prop_type=read_fstring(s),
            )
            read_u64(s)   # element byte length, recomputed on write
            value.type_name = read_fstring(s)
            value.id = read_uuid(s)
            value.extra_id = read_optional_uuid(s)
            value.values = [self._read_struct_value(value.type_name, path) for _ in range(count)]
            return ArrayProperty(array_type, value, id=prop_id)

        if array_type == 'ByteProperty':
            if self.policy.has_character_record(path):
                return ArrayProperty(array_type, self._read_character_blob(count, path), id=prop_id)
            if size == count + 4:
                return ArrayProperty(array_type, ByteBlob(read_exact(s, count)), id=prop_id)
            # Enum byte arrays store each element as its name.
            return ArrayProperty(array_type, ValueList([read_fstring(s) for _ in range(count)]), id=prop_id)

        read_element = ELEMENT_READERS.get(array_type)
        if read_element is None:
            if size < 4:
                raise MalformedTreeError(
                    f'{array_type} array at {path}: size {size} cannot hold its element count')
            logger.debug('Unknown array element type %s at %s: keeping raw bytes', array_type, path)
            return ArrayProperty(array_type, RawArray(count, read_exact(s, size - 4)), id=prop_id)
        return ArrayProperty(array_type, ValueList([read_element(s) for _ in range(count)]), id=prop_id)

    def _read_character_blob(self, count: int, path: str):
        data = read_exact(self.stream, count)
        try:
            return decode_character_record(data, self._scope_reader(path))
        except RecordDecodeError as e:
            logger.warning('Leaving character RawData at %s undecoded: %s', path, e)
            return ByteBlob(data)

    def _scope_reader(self, path: str):
        """Callable reading one nested scope from another stream at `path`."""
        def read_scope(stream: io.BytesIO) -> dict:
            sub = GvasReader(stream, self.policy, self.max_depth)
            sub.depth = self.depth
            return sub.read_properties(path)
        return read_scope

    # ------------------------------------------------------------------------
    # Maps / sets
    # ------------------------------------------------------------------------

    def _read_element(self, type_name: str, struct_type: str, path: str):
        if type_name == 'StructProperty':
            return self._read_struct_value(struct_type, path)
        read_element = ELEMENT_READERS.get(type_name)
        if read_element is None:
            return self.read_properties(path)
        return read_element(self.stream)

    def _read_map(self, path: str) -> MapProperty:
        s = self.stream
        prop = MapProperty(read_fstring(s), read_fstring(s))
        prop.id = read_optional_uuid(s)
        prop.reserved = read_u32(s)
        count = read_u32(s)

        key_path = f'{path}.Key'
        value_path = f'{path}.Value'
        key_hint = self.policy.struct_hint(key_path)
        value_hint = self.policy.struct_hint(value_path)
        if prop.key_type == 'StructProperty':
            prop.key_struct_type = key_hint
        if prop.value_type == 'StructProperty':
            prop.value_struct_type = value_hint

        for _ in range(count):
            key = self._read_element(prop.key_type, key_hint, key_path)
            value = self._read_element(prop.value_type, value_hint, value_path)
            prop.entries.append(MapEntry(key, value))
        return prop

    def _read_set(self, path: str) -> SetProperty:
        s = self.stream
        prop = SetProperty(read_fstring(s))
        prop.id = read_optional_uuid(s)
        prop.reserved = read_u32(s)
        count = read_u32(s)
        prop.entries = [self._read_element(prop.set_type, '', path) for _ in range(count)]
        return prop

    # ------------------------------------------------------------------------
    # Group records
    # ------------------------------------------------------------------------

    def _decode_group_records(self, prop: MapProperty, path: str) -> None:
        """Replace each entry's RawData byte blob with its decoded GroupRecord."""
        for entry in prop.entries:
            value = entry.value
            if not isinstance(value, dict):
                continue
            raw = value.get('RawData')
            if not isinstance(raw, ArrayProperty) or not isinstance(raw.value, ByteBlob):
                continue
            group_type = value.get('GroupType')
            group_type = group_type.value if isinstance(group_type, EnumProperty) else ''
            try:
                raw.value = decode_group_record(raw.value.data, group_type)
            except RecordDecodeError as e:
                logger.warning('Leaving group RawData in %s undecoded (%s): %s', path, entry.key, e)


def _annotate(e: MalformedTreeError, path: str, type_name: str, size: int) -> None:
    """Attach the innermost property path to a read error, once."""
    if getattr(e, 'path', None) is not None:
        return
    e.path = path
    e.args = (f'property {path} ({type_name}, size={size}): {e}',)


def expand_raw(prop: RawProperty, path: str = '') -> Property:
    """Decode a skipped property's captured bytes without any path rules."""
    reader = GvasReader(raw_body(prop), EMPTY_POLICY)
    return reader.read_property(prop.type_name, len(prop.data), path)
