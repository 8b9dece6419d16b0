"""
Palworld Save Codec - Group and Character Records
===================================================
Decoders for the two opaque byte blobs Palworld nests inside the property
tree:

  * GroupSaveDataMap[*].value.RawData      -> GroupRecord (guild membership)
  * CharacterSaveParameterMap[*].value.RawData -> CharacterRecord

Group RawData Layout (all variants):
    GUID        GroupId
    FString     GroupName
    uint32      HandleCount
    [HandleCount x (GUID PlayerUId + GUID InstanceId)]
    uint8       OrgType                 (Guild / IndependentGuild / Organization only)

  Organization:
    byte[12]    (unknown, kept verbatim)

  IndependentGuild:
    int32       BaseCampLevel
    uint32 + [GUID]  MapObjectInstanceIds (base camp points)
    FString     GuildName
    GUID        PlayerUId
    FString     GuildName2
    int64       LastOnlineRealTime
    FString     PlayerName

  Guild:
    byte[4]     (unknown)
    uint32 + [GUID]  BaseIds
    int32       Unknown1
    int32       BaseCampLevel
    uint32 + [GUID]  MapObjectInstanceIds
    FString     GuildName
    GUID        LastGuildNameModifierPlayerUId
    byte[4]     (unknown)
    GUID        AdminPlayerUId
    uint32      PlayerCount
    [PlayerCount x (GUID PlayerUId + int64 LastOnlineRealTime + FString PlayerName)]
    ...         (not understood, kept verbatim)

Character RawData Layout:
    Properties  (scope terminated by "None")
    byte[4]     (unknown)
    GUID        GroupId
    byte[4]     (unknown)

Any bytes these layouts do not describe are carried in `trailing_bytes`
so an untouched record re-encodes to the exact original blob.
"""

import io
from dataclasses import dataclass, field
from typing import Callable

from .config import (
    GROUP_TYPE_GUILD, GROUP_TYPE_INDEPENDENT_GUILD, GROUP_TYPE_ORGANIZATION,
    ORG_GROUP_TYPES,
)
from .errors import MalformedTreeError, RecordDecodeError
from .utils import (
    read_exact, read_fstring, read_i32, read_i64, read_u8, read_u32, read_uuid,
    write_fstring, write_i32, write_i64, write_u8, write_u32, write_uuid,
)


# ============================================================================
# GROUP RECORDS
# ============================================================================

@dataclass
class CharacterHandle:
    guid: str
    instance_id: str


@dataclass
class PlayerInfo:
    last_online_real_time: int = 0
    player_name: str = ''


@dataclass
class GuildMember:
    player_uid: str
    player_info: PlayerInfo = field(default_factory=PlayerInfo)


@dataclass
class GroupRecord:
    """Common prefix of every group; also used as-is for unknown group types."""
    group_type: str
    group_id: str
    group_name: str = ''
    handles: list[CharacterHandle] = field(default_factory=list)
    org_type: int | None = None
    trailing_bytes: bytes = b''


@dataclass
class OrganizationRecord(GroupRecord):
    pass


@dataclass
class IndependentGuildRecord(GroupRecord):
    base_camp_level: int = 0
    map_object_ids: list[str] = field(default_factory=list)
    guild_name: str = ''
    player_uid: str = ''
    guild_name_2: str = ''
    player_info: PlayerInfo = field(default_factory=PlayerInfo)


@dataclass
class GuildRecord(GroupRecord):
    leading_bytes: bytes = b'\x00\x00\x00\x00'
    base_ids: list[str] = field(default_factory=list)
    unknown_1: int = 0
    base_camp_level: int = 0
    map_object_ids: list[str] = field(default_factory=list)
    guild_name: str = ''
    last_modifier_uid: str = '00000000-0000-0000-0000-000000000000'
    unknown_2: bytes = b'\x00\x00\x00\x00'
    admin_player_uid: str = '00000000-0000-0000-0000-000000000000'
    players: list[GuildMember] = field(default_factory=list)


def _read_uuid_list(stream: io.BytesIO) -> list[str]:
    count = read_u32(stream)
    return [read_uuid(stream) for _ in range(count)]


def _write_uuid_list(out: io.BytesIO, ids: list[str]) -> None:
    write_u32(out, len(ids))
    for uid in ids:
        write_uuid(out, uid)


def decode_group_record(data: bytes, group_type: str) -> GroupRecord:
    """Unpack a group's RawData blob according to its GroupType."""
    stream = io.BytesIO(data)
    try:
        group_id = read_uuid(stream)
        group_name = read_fstring(stream)
        handle_count = read_u32(stream)
        handles = [CharacterHandle(read_uuid(stream), read_uuid(stream))
                   for _ in range(handle_count)]
        org_type = read_u8(stream) if group_type in ORG_GROUP_TYPES else None
        prefix = dict(group_type=group_type, group_id=group_id, group_name=group_name,
                      handles=handles, org_type=org_type)

        if group_type == GROUP_TYPE_ORGANIZATION:
            trailing = stream.read()
            if len(trailing) < 12:
                raise RecordDecodeError(
                    f'Organization record too short: {len(trailing)} trailing bytes, expected 12')
            return OrganizationRecord(**prefix, trailing_bytes=trailing)

        if group_type == GROUP_TYPE_INDEPENDENT_GUILD:
            base_camp_level = read_i32(stream)
            map_object_ids = _read_uuid_list(stream)
            guild_name = read_fstring(stream)
            player_uid = read_uuid(stream)
            guild_name_2 = read_fstring(stream)
            player_info = PlayerInfo(read_i64(stream), read_fstring(stream))
            return IndependentGuildRecord(
                **prefix,
                base_camp_level=base_camp_level,
                map_object_ids=map_object_ids,
                guild_name=guild_name,
                player_uid=player_uid,
                guild_name_2=guild_name_2,
                player_info=player_info,
                trailing_bytes=stream.read(),
            )

        if group_type == GROUP_TYPE_GUILD:
            record = GuildRecord(**prefix)
            record.leading_bytes = read_exact(stream, 4)
            record.base_ids = _read_uuid_list(stream)
            record.unknown_1 = read_i32(stream)
            record.base_camp_level = read_i32(stream)
            record.map_object_ids = _read_uuid_list(stream)
            record.guild_name = read_fstring(stream)
            record.last_modifier_uid = read_uuid(stream)
            record.unknown_2 = read_exact(stream, 4)
            record.admin_player_uid = read_uuid(stream)
            player_count = read_u32(stream)
            for _ in range(player_count):
                uid = read_uuid(stream)
                info = PlayerInfo(read_i64(stream), read_fstring(stream))
                record.players.append(GuildMember(uid, info))
            record.trailing_bytes = stream.read()
            return record

        return GroupRecord(**prefix, trailing_bytes=stream.read())
    except MalformedTreeError as e:
        raise RecordDecodeError(f'{group_type or "group"} RawData: {e}') from e


def encode_group_record(record: GroupRecord) -> bytes:
    """Pack a GroupRecord back into its RawData blob."""
    out = io.BytesIO()
    write_uuid(out, record.group_id)
    write_fstring(out, record.group_name)
    write_u32(out, len(record.handles))
    for handle in record.handles:
        write_uuid(out, handle.guid)
        write_uuid(out, handle.instance_id)

    if record.group_type in ORG_GROUP_TYPES:
        write_u8(out, record.org_type or 0)

    if isinstance(record, IndependentGuildRecord):
        write_i32(out, record.base_camp_level)
        _write_uuid_list(out, record.map_object_ids)
        write_fstring(out, record.guild_name)
        write_uuid(out, record.player_uid)
        write_fstring(out, record.guild_name_2)
        write_i64(out, record.player_info.last_online_real_time)
        write_fstring(out, record.player_info.player_name)
    elif isinstance(record, GuildRecord):
        out.write(record.leading_bytes)
        _write_uuid_list(out, record.base_ids)
        write_i32(out, record.unknown_1)
        write_i32(out, record.base_camp_level)
        _write_uuid_list(out, record.map_object_ids)
        write_fstring(out, record.guild_name)
        write_uuid(out, record.last_modifier_uid)
        out.write(record.unknown_2)
        write_uuid(out, record.admin_player_uid)
        write_u32(out, len(record.players))
        for member in record.players:
            write_uuid(out, member.player_uid)
            write_i64(out, member.player_info.last_online_real_time)
            write_fstring(out, member.player_info.player_name)

    out.write(record.trailing_bytes)
    return out.getvalue()


# ============================================================================
# CHARACTER RECORDS
# ============================================================================

@dataclass
class CharacterRecord:
    """Decoded CharacterSaveParameterMap RawData."""
    properties: dict = field(default_factory=dict)
    unknown_bytes: bytes = b''
    group_id: str | None = None
    trailing_bytes: bytes = b''

    @property
    def save_parameter(self) -> dict:
        """The SaveParameter struct's fields (IsPlayer, Level, OwnerPlayerUId, ...)."""
        sp = self.properties.get('SaveParameter')
        if sp is not None and isinstance(getattr(sp, 'value', None), dict):
            return sp.value
        return self.properties


def decode_character_record(data: bytes,
                            read_scope: Callable[[io.BytesIO], dict]) -> CharacterRecord:
    """Unpack a character RawData blob.

    `read_scope` decodes one property scope from the stream (supplied by
    the GVAS reader so the nested scope gets the same handling as the
    rest of the tree).
    """
    stream = io.BytesIO(data)
    try:
        properties = read_scope(stream)
    except MalformedTreeError as e:
        raise RecordDecodeError(f'character RawData: {e}') from e

    rest = stream.read()
    if len(rest) < 24:
        return CharacterRecord(properties, trailing_bytes=rest)

    tail = io.BytesIO(rest)
    unknown = read_exact(tail, 4)
    group_id = read_uuid(tail)
    return CharacterRecord(properties, unknown, group_id, tail.read())


def encode_character_record(record: CharacterRecord,
                            write_scope: Callable[[io.BytesIO, dict], None]) -> bytes:
    out = io.BytesIO()
    write_scope(out, record.properties)
    out.write(record.unknown_bytes)
    if record.group_id is not None:
        write_uuid(out, record.group_id)
    out.write(record.trailing_bytes)
    return out.getvalue()
