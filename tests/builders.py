"""Hand-assembled GVAS byte streams for the tests.

Built with struct directly (not with palsave's writer) so the reader is
checked against an independent rendition of the format.
"""

import struct
import zlib

ZERO = '00000000-0000-0000-0000-000000000000'
HOST = '00000001-0000-0000-0000-000000000000'
NO_ID = b'\x00'


def fstr(s: str) -> bytes:
    if not s:
        return struct.pack('<i', 0)
    if s.isascii():
        raw = s.encode('ascii') + b'\x00'
        return struct.pack('<i', len(raw)) + raw
    raw = s.encode('utf-16-le') + b'\x00\x00'
    return struct.pack('<i', -(len(raw) // 2)) + raw


def guid(u: str) -> bytes:
    flat = u.replace('-', '')
    return b''.join(struct.pack('<I', int(flat[i:i + 8], 16)) for i in range(0, 32, 8))


# ----------------------------------------------------------------------------
# Properties
# ----------------------------------------------------------------------------

def prop(name: str, type_name: str, meta: bytes, body: bytes) -> bytes:
    return fstr(name) + fstr(type_name) + struct.pack('<Q', len(body)) + meta + body


def scope(*props: bytes) -> bytes:
    return b''.join(props) + fstr('None')


def int_prop(name, value):
    return prop(name, 'IntProperty', NO_ID, struct.pack('<i', value))


def int64_prop(name, value):
    return prop(name, 'Int64Property', NO_ID, struct.pack('<q', value))


def float_prop(name, value):
    return prop(name, 'FloatProperty', NO_ID, struct.pack('<f', value))


def bool_prop(name, value):
    return fstr(name) + fstr('BoolProperty') + struct.pack('<Q', 0) + bytes([1 if value else 0]) + NO_ID


def str_prop(name, value):
    return prop(name, 'StrProperty', NO_ID, fstr(value))


def name_prop(name, value):
    return prop(name, 'NameProperty', NO_ID, fstr(value))


def enum_prop(name, enum_type, value):
    return prop(name, 'EnumProperty', fstr(enum_type) + NO_ID, fstr(value))


def byte_prop(name, value):
    return prop(name, 'ByteProperty', fstr('None') + NO_ID, bytes([value]))


def struct_prop(name, struct_type, body):
    return prop(name, 'StructProperty', fstr(struct_type) + guid(ZERO) + NO_ID, body)


def guid_struct(name, value):
    return struct_prop(name, 'Guid', guid(value))


def byte_array(name, data):
    return prop(name, 'ArrayProperty', fstr('ByteProperty') + NO_ID,
                struct.pack('<I', len(data)) + data)


def map_prop(name, key_type, value_type, entries):
    """`entries` is a list of already-encoded (key + value) byte strings."""
    body = struct.pack('<I', 0) + struct.pack('<I', len(entries)) + b''.join(entries)
    return prop(name, 'MapProperty', fstr(key_type) + fstr(value_type) + NO_ID, body)


# ----------------------------------------------------------------------------
# Whole streams
# ----------------------------------------------------------------------------

def header(class_name='/Script/Pal.PalWorldSaveGame'):
    return (
        struct.pack('<I', 0x53415647)
        + struct.pack('<iii', 3, 522, 1009)
        + struct.pack('<HHH', 5, 1, 1)
        + struct.pack('<I', 0)
        + fstr('++UE5+Release-5.1')
        + struct.pack('<i', 3)
        + struct.pack('<I', 1)
        + guid('22d5549c-be4f-26a8-4607-21947d7e7e9a') + struct.pack('<i', 1)
        + fstr(class_name)
    )


def gvas(*props, trailer=b'\x00\x00\x00\x00'):
    return header() + scope(*props) + trailer


def sav(raw: bytes, save_type: int = 0x32) -> bytes:
    if save_type == 0x32:
        once = zlib.compress(raw)
        return struct.pack('<II', len(raw), len(once)) + b'PlZ' + bytes([save_type]) + zlib.compress(once)
    payload = zlib.compress(raw)
    return struct.pack('<II', len(raw), len(payload)) + b'PlZ' + bytes([save_type]) + payload


# ----------------------------------------------------------------------------
# Palworld records
# ----------------------------------------------------------------------------

def guild_blob(group_id, handles, admin, members, guild_name='Pals Inc', trailing=b'\x00' * 8,
               last_modifier=None):
    """`handles` = [(guid, instance_id)], `members` = [(uid, last_online, name)]"""
    out = guid(group_id) + fstr('')
    out += struct.pack('<I', len(handles))
    for h_guid, h_instance in handles:
        out += guid(h_guid) + guid(h_instance)
    out += b'\x01'                                    # org_type
    out += b'\x00\x00\x00\x00'                        # leading bytes
    out += struct.pack('<I', 1) + guid('0000000b-0000-0000-0000-000000000000')
    out += struct.pack('<ii', 0, 7)                   # unknown_1, base_camp_level
    out += struct.pack('<I', 0)                       # map object ids
    out += fstr(guild_name)
    out += guid(last_modifier or admin)               # last name modifier
    out += b'\x00\x00\x00\x00'
    out += guid(admin)
    out += struct.pack('<I', len(members))
    for uid, last_online, name in members:
        out += guid(uid) + struct.pack('<q', last_online) + fstr(name)
    return out + trailing


def character_blob(save_parameter_props, group_id=ZERO):
    body = scope(struct_prop('SaveParameter', 'PalIndividualCharacterSaveParameter',
                             scope(*save_parameter_props)))
    return body + b'\x00\x00\x00\x00' + guid(group_id) + b'\x00\x00\x00\x00'


def group_entry(group_id, group_type, blob):
    return guid(group_id) + scope(
        enum_prop('GroupType', 'EPalGroupType', group_type),
        byte_array('RawData', blob),
    )


def character_entry(player_uid, instance_id, save_parameter_props, group_id=ZERO):
    key = scope(guid_struct('PlayerUId', player_uid), guid_struct('InstanceId', instance_id))
    value = scope(byte_array('RawData', character_blob(save_parameter_props, group_id)))
    return key + value


def level_gvas(group_entries=(), character_entries=(), extra=()):
    world = scope(
        map_prop('CharacterSaveParameterMap', 'StructProperty', 'StructProperty', list(character_entries)),
        map_prop('GroupSaveDataMap', 'StructProperty', 'StructProperty', list(group_entries)),
        *extra,
    )
    return gvas(struct_prop('worldSaveData', 'PalWorldSaveData', world))


def player_gvas(player_uid, instance_id):
    individual = scope(guid_struct('PlayerUId', player_uid), guid_struct('InstanceId', instance_id))
    save_data = scope(
        guid_struct('PlayerUId', player_uid),
        struct_prop('IndividualId', 'PalInstanceID', individual),
    )
    return gvas(struct_prop('SaveData', 'PalWorldPlayerSaveData', save_data))
