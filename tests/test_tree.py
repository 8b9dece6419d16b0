import io
import struct

import pytest

from palsave.errors import EncodeError, MalformedTreeError, TreeDepthError, TruncatedDataError
from palsave.properties import (
    BoolProperty, Box, ByteBlob, ByteProperty, Color, EnumProperty, IntProperty,
    MapEntry, RawArray, RawProperty, SetProperty, StrProperty, StructArray,
    StructProperty, TextProperty, ValueList, Vector, Vector4, get_value,
)
from palsave.reader import GvasReader
from palsave.savefile import decode_gvas, encode_gvas
from palsave.writer import GvasWriter

from builders import (
    HOST, NO_ID, ZERO, bool_prop, byte_array, byte_prop, enum_prop, float_prop,
    fstr, guid, gvas, header, int64_prop, int_prop, map_prop, name_prop, prop,
    scope, str_prop, struct_prop,
)


def _round_trip(raw: bytes):
    save = decode_gvas(raw)
    assert encode_gvas(save) == raw
    return save


def _size_after(data: bytes, name: str, type_name: str) -> int:
    tag = fstr(name) + fstr(type_name)
    at = data.index(tag) + len(tag)
    return struct.unpack_from('<Q', data, at)[0]


# ============================================================================
# Scalars and header
# ============================================================================

SCALARS = gvas(
    int_prop('Int', -5),
    int64_prop('Ticks', 638000000000000000),
    float_prop('Rate', 1.5),
    bool_prop('IsPlayer', True),
    str_prop('NickName', 'Anakin'),
    name_prop('Name', 'Pal_Lamball'),
    enum_prop('GroupType', 'EPalGroupType', 'EPalGroupType::Guild'),
    byte_prop('Level', 55),
    prop('Title', 'TextProperty', NO_ID, b'\x00\x00\x00\x00\xff'),
)


def test_scalar_round_trip():
    save = _round_trip(SCALARS)
    p = save.properties
    assert p['Int'] == IntProperty(-5)
    assert p['Ticks'].value == 638000000000000000
    assert p['Rate'].value == 1.5
    assert p['IsPlayer'] == BoolProperty(True)
    assert p['NickName'] == StrProperty('Anakin')
    assert p['Name'].value == 'Pal_Lamball'
    assert p['GroupType'] == EnumProperty('EPalGroupType', 'EPalGroupType::Guild')
    assert p['Level'] == ByteProperty('None', 55)
    assert p['Title'] == TextProperty(b'\x00\x00\x00\x00\xff')
    assert save.trailer == b'\x00\x00\x00\x00'


def test_header_fields():
    save = decode_gvas(SCALARS)
    h = save.header
    assert h.magic == 0x53415647
    assert h.save_game_version == 3
    assert (h.package_file_version_ue4, h.package_file_version_ue5) == (522, 1009)
    assert (h.engine_version_major, h.engine_version_minor, h.engine_version_patch) == (5, 1, 1)
    assert h.engine_version_branch == '++UE5+Release-5.1'
    assert h.custom_version_format == 3
    assert h.custom_versions == [('22d5549c-be4f-26a8-4607-21947d7e7e9a', 1)]
    assert h.save_game_class_name == '/Script/Pal.PalWorldSaveGame'
    assert h.header_size == len(header())


def test_bad_magic():
    with pytest.raises(MalformedTreeError, match='GVAS magic'):
        decode_gvas(b'XXXX' + SCALARS[4:])


def test_bool_size_is_zero_and_value_precedes_id():
    data = encode_gvas(decode_gvas(SCALARS))
    tag = fstr('IsPlayer') + fstr('BoolProperty')
    at = data.index(tag) + len(tag)
    assert data[at:at + 10] == struct.pack('<Q', 0) + b'\x01\x00'


def test_size_is_recomputed_after_edit():
    save = decode_gvas(SCALARS)
    save.properties['NickName'].value = 'A much longer nickname'
    save.properties['Name'].value = 'Paleé'

    data = encode_gvas(save)
    assert _size_after(data, 'NickName', 'StrProperty') == len(fstr('A much longer nickname'))
    assert _size_after(data, 'Name', 'NameProperty') == len(fstr('Paleé'))

    again = decode_gvas(data)
    assert again.properties['NickName'].value == 'A much longer nickname'
    assert again.properties['Name'].value == 'Paleé'
    assert again.properties['Level'].value == 55


def test_property_id_preserved():
    raw = gvas(prop('Tagged', 'IntProperty', b'\x01' + guid(HOST), struct.pack('<i', 9)))
    save = _round_trip(raw)
    assert save.properties['Tagged'] == IntProperty(9, id=HOST)


# ============================================================================
# Structs
# ============================================================================

def test_fixed_structs():
    raw = gvas(
        struct_prop('Pos', 'Vector', struct.pack('<3d', 1.0, 2.0, 3.0)),
        struct_prop('Rot', 'Quat', struct.pack('<4d', 0.0, 0.0, 0.5, 1.0)),
        struct_prop('Tint', 'Color', bytes([1, 2, 3, 4])),
        struct_prop('When', 'DateTime', struct.pack('<Q', 123456789)),
        struct_prop('Span', 'Timespan', struct.pack('<q', -5)),
        struct_prop('Cell', 'IntPoint', struct.pack('<2i', -1, 2)),
        struct_prop('Bounds', 'Box', struct.pack('<6d', 0, 0, 0, 1, 1, 1) + b'\x01'),
        struct_prop('Id', 'Guid', guid(HOST)),
    )
    p = _round_trip(raw).properties
    assert p['Pos'].value == Vector(1.0, 2.0, 3.0)
    assert p['Rot'].value == Vector4(0.0, 0.0, 0.5, 1.0)
    assert p['Tint'].value == Color(r=3, g=2, b=1, a=4)
    assert p['When'].value == 123456789
    assert p['Span'].value == -5
    assert p['Cell'].value.x == -1
    assert p['Bounds'].value == Box(Vector(0, 0, 0), Vector(1, 1, 1), True)
    assert get_value(p['Id']) == HOST


def test_nested_struct_and_get():
    raw = gvas(struct_prop('SaveData', 'PalWorldPlayerSaveData', scope(
        int_prop('Version', 2),
        struct_prop('Inner', 'PalInner', scope(str_prop('Leaf', 'x'))),
    )))
    save = _round_trip(raw)
    assert save.get('SaveData.Version') == IntProperty(2)
    assert save.get('SaveData.Inner.Leaf') == StrProperty('x')
    assert save.get('SaveData.Missing') is None
    assert save.get('SaveData.Version.Deeper') is None


# ============================================================================
# Arrays
# ============================================================================

def test_struct_array_with_extra_id():
    elements = struct.pack('<3d', 1, 2, 3) + struct.pack('<3d', 4, 5, 6)
    body = (
        struct.pack('<I', 2) + fstr('Points') + fstr('StructProperty')
        + struct.pack('<Q', len(elements)) + fstr('Vector') + guid(ZERO)
        + b'\x01' + guid(HOST) + elements
    )
    raw = gvas(prop('Points', 'ArrayProperty', fstr('StructProperty') + NO_ID, body))
    value = _round_trip(raw).properties['Points'].value
    assert isinstance(value, StructArray)
    assert value.type_name == 'Vector'
    assert value.extra_id == HOST
    assert value.values == [Vector(1, 2, 3), Vector(4, 5, 6)]


def test_struct_array_length_recomputed():
    body = (
        struct.pack('<I', 1) + fstr('Slots') + fstr('StructProperty')
        + struct.pack('<Q', 999) + fstr('PalSlot') + guid(ZERO) + NO_ID
        + scope(int_prop('Index', 1))
    )
    raw = gvas(prop('Slots', 'ArrayProperty', fstr('StructProperty') + NO_ID, body))
    save = decode_gvas(raw)
    save.properties['Slots'].value.values.append({'Index': IntProperty(2)})

    data = encode_gvas(save)
    element_bytes = scope(int_prop('Index', 1)) + scope(int_prop('Index', 2))
    at = data.index(fstr('Slots') + fstr('StructProperty')) + len(fstr('Slots') + fstr('StructProperty'))
    assert struct.unpack_from('<Q', data, at)[0] == len(element_bytes)
    assert decode_gvas(data).properties['Slots'].value.values[1] == {'Index': IntProperty(2)}


def test_byte_arrays():
    enum_body = struct.pack('<I', 2) + fstr('EPalX::A') + fstr('EPalX::B')
    raw = gvas(
        byte_array('Blob', b'\x01\x02\x03'),
        prop('Unlocked', 'ArrayProperty', fstr('ByteProperty') + NO_ID, enum_body),
    )
    p = _round_trip(raw).properties
    assert p['Blob'].value == ByteBlob(b'\x01\x02\x03')
    assert p['Unlocked'].value == ValueList(['EPalX::A', 'EPalX::B'])


def test_enum_byte_array_reads_names():
    names = ['EPalX::A', 'EPalX::Longer']
    body = struct.pack('<I', 2) + b''.join(fstr(n) for n in names)
    raw = gvas(prop('Unlocked', 'ArrayProperty', fstr('ByteProperty') + NO_ID, body))
    save = _round_trip(raw)
    unlocked = save.properties['Unlocked']
    assert unlocked.value == ValueList(names)

    unlocked.value.values.append('EPalX::C')
    data = encode_gvas(save)
    assert _size_after(data, 'Unlocked', 'ArrayProperty') == len(body) + len(fstr('EPalX::C'))
    assert decode_gvas(data).properties['Unlocked'].value == ValueList(names + ['EPalX::C'])


def test_simple_and_unknown_arrays():
    raw = gvas(
        prop('Ints', 'ArrayProperty', fstr('IntProperty') + NO_ID, struct.pack('<I3i', 3, 1, 2, 3)),
        prop('Names', 'ArrayProperty', fstr('NameProperty') + NO_ID, struct.pack('<I', 1) + fstr('a')),
        prop('Odd', 'ArrayProperty', fstr('DelegateProperty') + NO_ID, struct.pack('<I', 1) + b'abcdef'),
    )
    p = _round_trip(raw).properties
    assert p['Ints'].value == ValueList([1, 2, 3])
    assert p['Names'].value == ValueList(['a'])
    assert p['Odd'].value == RawArray(1, b'abcdef')


def test_unknown_array_too_small_for_count():
    raw = gvas(prop('Odd', 'ArrayProperty', fstr('DelegateProperty') + NO_ID, b'\x01\x00\x00'))
    with pytest.raises(MalformedTreeError) as exc:
        decode_gvas(raw)
    assert type(exc.value) is MalformedTreeError
    assert exc.value.path == 'Odd'
    assert 'size 3' in str(exc.value)


# ============================================================================
# Maps / sets
# ============================================================================

def test_map_of_names():
    raw = gvas(map_prop('Counts', 'NameProperty', 'IntProperty', [
        fstr('a') + struct.pack('<i', 1),
        fstr('b') + struct.pack('<i', 2),
    ]))
    counts = _round_trip(raw).properties['Counts']
    assert counts.entries == [MapEntry('a', 1), MapEntry('b', 2)]
    assert counts.reserved == 0


def test_map_reserved_field_preserved():
    body = struct.pack('<I', 7) + struct.pack('<I', 1) + fstr('k') + b'\x01'
    raw = gvas(prop('Flags', 'MapProperty', fstr('StrProperty') + fstr('BoolProperty') + NO_ID, body))
    flags = _round_trip(raw).properties['Flags']
    assert flags.reserved == 7
    assert flags.entries == [MapEntry('k', True)]


def test_map_of_generic_structs():
    entry = scope(int_prop('K', 1)) + scope(str_prop('V', 'one'))
    raw = gvas(map_prop('Things', 'StructProperty', 'StructProperty', [entry]))
    things = _round_trip(raw).properties['Things']
    assert things.key_struct_type == ''
    assert things.entries[0].key == {'K': IntProperty(1)}
    assert things.entries[0].value == {'V': StrProperty('one')}


def test_set():
    body = struct.pack('<II', 0, 2) + fstr('x') + fstr('y')
    raw = gvas(prop('Tags', 'SetProperty', fstr('NameProperty') + NO_ID, body))
    tags = _round_trip(raw).properties['Tags']
    assert tags == SetProperty('NameProperty', 0, ['x', 'y'])


# ============================================================================
# Raw capture
# ============================================================================

def test_skipped_path_kept_verbatim():
    garbage = b'\xde\xad\xbe\xef not a property scope'
    raw = gvas(struct_prop('worldSaveData', 'PalWorldSaveData', scope(
        struct_prop('GameTimeSaveData', 'PalGameTimeSaveData', garbage),
        prop('WorkSaveData', 'ArrayProperty', fstr('StructProperty') + NO_ID, b'\x00' * 11),
    )))
    world = _round_trip(raw).properties['worldSaveData'].value
    game_time = world['GameTimeSaveData']
    assert isinstance(game_time, RawProperty)
    assert game_time.type_name == 'StructProperty'
    assert game_time.header == {'struct_type': 'PalGameTimeSaveData', 'struct_id': ZERO}
    assert game_time.data == garbage
    assert world['WorkSaveData'].header == {'array_type': 'StructProperty'}


def test_unknown_type_kept_verbatim():
    raw = gvas(prop('Mystery', 'InterfaceProperty', NO_ID, b'\x01\x02\x03'))
    mystery = _round_trip(raw).properties['Mystery']
    assert mystery == RawProperty('InterfaceProperty', {}, b'\x01\x02\x03')


def test_empty_name_terminator_kept():
    inner = int_prop('X', 1) + fstr('')
    raw = header() + int_prop('A', 1) + struct_prop('S', 'PalThing', inner) + fstr('') + b'\x00' * 4
    save = _round_trip(raw)
    assert save.properties.terminator == ''
    assert save.properties['S'].value.terminator == ''
    assert _round_trip(gvas(int_prop('A', 1))).properties.terminator == 'None'


# ============================================================================
# Failures
# ============================================================================

def test_truncated_stream_names_property():
    raw = gvas(int_prop('Version', 1), str_prop('NickName', 'hello'))
    with pytest.raises(TruncatedDataError) as exc:
        decode_gvas(raw[:-15])
    assert exc.value.path == 'NickName'
    assert 'NickName' in str(exc.value)


def test_truncated_nested_keeps_innermost_path():
    raw = gvas(struct_prop('Outer', 'PalOuter', scope(str_prop('Inner', 'hello'))))
    with pytest.raises(TruncatedDataError) as exc:
        decode_gvas(raw[:-24])
    assert exc.value.path == 'Outer.Inner'


def _deep(levels: int) -> bytes:
    body = scope(int_prop('X', 1))
    for _ in range(levels):
        body = scope(struct_prop('N', 'PalDeep', body))
    return body


def test_depth_bound_on_read():
    reader = GvasReader(_deep(5), max_depth=3)
    with pytest.raises(TreeDepthError):
        reader.read_properties()
    assert GvasReader(_deep(5), max_depth=6).read_properties()['N'].struct_type == 'PalDeep'


def test_depth_bound_on_write():
    props = GvasReader(_deep(5)).read_properties()
    with pytest.raises(TreeDepthError):
        GvasWriter(max_depth=3).write_properties(io.BytesIO(), props)


def test_encode_rejects_bad_values():
    writer = GvasWriter()
    with pytest.raises(EncodeError, match='Owner'):
        writer.write_properties(io.BytesIO(), {'Owner': StructProperty('Guid', ZERO, 'not-a-guid')})
    with pytest.raises(EncodeError, match='property dict'):
        writer.write_properties(io.BytesIO(), {'S': StructProperty('PalThing', ZERO, 5)})
    with pytest.raises(EncodeError):
        writer.write_properties(io.BytesIO(), {'Plain': 5})
