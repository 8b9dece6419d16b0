"""
Palworld Save Codec - Player Listing
======================================
Builds a per-player summary of a decoded Level.sav from the guild records
(name, last online, guild) and the character records (level, nickname,
number of owned pals).
"""

import logging
from dataclasses import dataclass

from .config import GROUP_TYPE_GUILD, TICKS_PER_SECOND, ZERO_UUID
from .errors import SaveError
from .properties import EnumProperty, MapProperty, RawProperty, StructProperty, get_value
from .reader import expand_raw
from .records import CharacterRecord, GuildRecord
from .savefile import SaveFile
from .utils import normalize_id, uuid_to_filename

logger = logging.getLogger(__name__)


@dataclass
class LevelPlayer:
    uid: str
    filename: str
    name: str
    level: int = 0
    pals_count: int = 0
    last_online: str = 'Unknown'
    guild_name: str = ''


def format_last_seen(last_online_ticks: int, current_ticks: int) -> str:
    """Human-readable time since a player was last online.

    Both values are FDateTime ticks (100 ns). A missing timestamp gives
    "Unknown"; anything under a minute, or in the future, is "Online now".
    """
    if last_online_ticks <= 0:
        return 'Unknown'
    diff = current_ticks - last_online_ticks
    if diff < 0:
        return 'Online now'
    seconds = diff // TICKS_PER_SECOND
    if seconds < 60:
        return 'Online now'
    minutes = seconds // 60
    if minutes < 60:
        return f'{minutes} min ago'
    hours = minutes // 60
    if hours < 24:
        return f'{hours}h ago'
    return f'{hours // 24}d ago'


def current_game_ticks(world: dict) -> int:
    """GameTimeSaveData.RealDateTimeTicks, or 0 when it cannot be read.

    GameTimeSaveData is normally captured raw, so it is expanded here.
    """
    prop = world.get('GameTimeSaveData')
    if isinstance(prop, RawProperty):
        try:
            prop = expand_raw(prop, 'worldSaveData.GameTimeSaveData')
        except SaveError as e:
            logger.warning('Cannot read GameTimeSaveData: %s', e)
            return 0
    if not isinstance(prop, StructProperty) or not isinstance(prop.value, dict):
        return 0
    ticks = get_value(prop.value.get('RealDateTimeTicks'))
    return ticks if isinstance(ticks, int) else 0


def _guild_members(world: dict) -> dict[str, tuple[str, int, str]]:
    """uid -> (player name, last online ticks, guild name)"""
    members = {}
    gsm = world.get('GroupSaveDataMap')
    if not isinstance(gsm, MapProperty):
        return members
    for entry in gsm.entries:
        value = entry.value
        if not isinstance(value, dict):
            continue
        group_type = value.get('GroupType')
        if not isinstance(group_type, EnumProperty) or group_type.value != GROUP_TYPE_GUILD:
            continue
        record = getattr(value.get('RawData'), 'value', None)
        if not isinstance(record, GuildRecord):
            continue
        for member in record.players:
            if member.player_uid:
                members[member.player_uid] = (
                    member.player_info.player_name,
                    member.player_info.last_online_real_time,
                    record.guild_name,
                )
    return members


def extract_players(save: SaveFile, current_ticks: int | None = None) -> list[LevelPlayer]:
    """List every player known to a decoded Level.sav."""
    world = get_value(save.get('worldSaveData'))
    if not isinstance(world, dict):
        return []

    guild_info = _guild_members(world)
    levels = {}
    nicknames = {}
    pals = {}

    cspm = world.get('CharacterSaveParameterMap')
    entries = cspm.entries if isinstance(cspm, MapProperty) else []
    for entry in entries:
        if not isinstance(entry.key, dict) or not isinstance(entry.value, dict):
            continue
        uid = get_value(entry.key.get('PlayerUId'))
        record = getattr(entry.value.get('RawData'), 'value', None)
        if not isinstance(record, CharacterRecord):
            continue
        params = record.save_parameter
        if get_value(params.get('IsPlayer')) is True:
            if not isinstance(uid, str):
                continue
            level = get_value(params.get('Level'))
            levels[uid] = level if isinstance(level, int) else 1
            nick = get_value(params.get('NickName'))
            if nick:
                nicknames[uid] = nick
        else:
            owner = get_value(params.get('OwnerPlayerUId'))
            if isinstance(owner, str) and owner and owner != ZERO_UUID:
                pals[owner] = pals.get(owner, 0) + 1

    if current_ticks is None:
        current_ticks = current_game_ticks(world)

    players = []
    for uid in dict.fromkeys([*guild_info, *levels]):
        filename = uuid_to_filename(uid)
        if uid in guild_info:
            name, last_online, guild_name = guild_info[uid]
            last_seen = format_last_seen(last_online, current_ticks)
        else:
            name, last_seen, guild_name = '', 'Unknown', ''
        players.append(LevelPlayer(
            uid=uid,
            filename=filename,
            name=name or nicknames.get(uid) or filename,
            level=levels.get(uid, 0),
            pals_count=pals.get(uid, 0),
            last_online=last_seen,
            guild_name=guild_name,
        ))
    return players


def find_player(players: list[LevelPlayer], player_id: str) -> LevelPlayer | None:
    """Match a player by uid or file name, ignoring dashes and case."""
    wanted = normalize_id(player_id)
    for player in players:
        if player.filename == wanted:
            return player
    return None
