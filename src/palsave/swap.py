"""
Palworld Save Codec - Identity Swap
=====================================
Exchanges two player uids throughout a decoded save.

A co-op host always occupies player slot 00000001-0000-0000-0000-000000000000;
moving a world to a different host means swapping that slot's uid with
another player's, in the player saves and everywhere Level.sav refers to
either player.

    swap_identity(tree, a, b)          ownership fields anywhere in a tree
    swap_level_players(level, ...)     full Level.sav swap (characters,
                                       guild records, ownership fields)
    patch_player_uid(player_save, ...) the uid stored in a player save
"""

import dataclasses
import logging
from typing import Any, Callable

from .config import GROUP_TYPE_GUILD, SWAP_KEYS
from .errors import MalformedTreeError
from .properties import EnumProperty, MapProperty, Property, get_value
from .records import GuildRecord
from .savefile import SaveFile
from .utils import format_uuid, is_hex_id, normalize_id

logger = logging.getLogger(__name__)


# ============================================================================
# TREE WALK
# ============================================================================

def _children(node: Any):
    if isinstance(node, dict):
        return node.values()
    if isinstance(node, (list, tuple)):
        return node
    if dataclasses.is_dataclass(node) and not isinstance(node, type):
        return [getattr(node, f.name) for f in dataclasses.fields(node)]
    return ()


def walk(node: Any, visit: Callable[[Any], None]) -> None:
    """Depth-first traversal of a decoded tree.

    `visit` is called for every dict and dataclass (properties, struct
    values, map entries, group/character records) before its children.
    Lists and tuples are descended into but not visited.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, (str, bytes, int, float)) or current is None:
            continue
        if isinstance(current, dict) or dataclasses.is_dataclass(current):
            visit(current)
        stack.extend(reversed(list(_children(current))))


# ============================================================================
# OWNERSHIP FIELDS
# ============================================================================

def _canon(uid: str) -> str:
    return normalize_id(uid)


def _dashed(uid: str) -> str:
    flat = normalize_id(uid)
    return format_uuid(flat) if is_hex_id(flat) else uid


def _styled(uid: str, like: Any) -> str:
    """Spell `uid` the way `like` is spelled: dashed or flat, lower or upper case."""
    if not isinstance(like, str) or not like:
        return _dashed(uid)
    text = _dashed(uid) if '-' in like else _canon(uid)
    return text.upper() if like != like.lower() else text


class _Swapper:
    """Maps either of two uids onto the other, ignoring case and dashes.

    A replacement keeps the spelling of the value it replaces.
    """

    def __init__(self, first_id: str, second_id: str):
        self.first = _canon(first_id)
        self.second = _canon(second_id)
        self.first_dashed = _dashed(first_id)
        self.second_dashed = _dashed(second_id)
        self.count = 0

    def other(self, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        canon = _canon(value)
        if canon == self.first:
            return _styled(self.second, value)
        if canon == self.second:
            return _styled(self.first, value)
        return None

    def swap_in(self, holder: Any, key: str) -> None:
        """Swap holder[key] / holder.key, or the `.value` of a property there."""
        if isinstance(holder, dict):
            current = holder.get(key)
        else:
            current = getattr(holder, key, None)

        if isinstance(current, Property):
            replacement = self.other(getattr(current, 'value', None))
            if replacement is not None:
                current.value = replacement
                self.count += 1
            return

        replacement = self.other(current)
        if replacement is None:
            return
        if isinstance(holder, dict):
            holder[key] = replacement
        else:
            setattr(holder, key, replacement)
        self.count += 1


def swap_identity(tree: Any, first_id: str, second_id: str) -> int:
    """Exchange two uids in every ownership field (SWAP_KEYS) of `tree`.

    Works on any decoded node: a SaveFile's properties, a struct scope, a
    record. Values that match neither uid are left alone. Returns the
    number of fields changed.
    """
    swapper = _Swapper(first_id, second_id)
    if swapper.first == swapper.second:
        return 0

    def visit(node):
        if isinstance(node, dict):
            for key in SWAP_KEYS & node.keys():
                swapper.swap_in(node, key)
        else:
            for key in SWAP_KEYS:
                if hasattr(node, key):
                    swapper.swap_in(node, key)

    walk(tree, visit)
    return swapper.count


# ============================================================================
# PLAYER SAVES
# ============================================================================

def read_player_instance_id(save: SaveFile) -> str:
    """InstanceId of the character owned by a player save."""
    instance_id = get_value(save.get('SaveData.IndividualId.InstanceId'))
    if not isinstance(instance_id, str) or not instance_id:
        raise MalformedTreeError('No SaveData.IndividualId.InstanceId in player save')
    return instance_id


def patch_player_uid(save: SaveFile, old_uid: str, new_uid: str) -> int:
    """Rewrite a player save's own uid fields from `old_uid` to `new_uid`."""
    count = 0
    for path in ('SaveData.PlayerUId', 'SaveData.IndividualId.PlayerUId'):
        prop = save.get(path)
        if isinstance(prop, Property) and isinstance(getattr(prop, 'value', None), str) \
                and _canon(prop.value) == _canon(old_uid):
            prop.value = _styled(new_uid, prop.value)
            count += 1
        else:
            logger.debug('%s not patched (missing or not %s)', path, old_uid)
    return count


# ============================================================================
# LEVEL SAVE
# ============================================================================

def _world_data(save: SaveFile) -> dict:
    world = save.get('worldSaveData')
    value = getattr(world, 'value', None)
    if not isinstance(value, dict):
        raise MalformedTreeError('Cannot navigate to worldSaveData')
    return value


def _swap_characters(world: dict, swapper: _Swapper, first_instance: str, second_instance: str) -> int:
    """Point each player's own character entry at the other player's uid."""
    cspm = world.get('CharacterSaveParameterMap')
    if not isinstance(cspm, MapProperty):
        return 0
    first_instance = _canon(first_instance)
    second_instance = _canon(second_instance)
    count = 0
    for entry in cspm.entries:
        key = entry.key
        if not isinstance(key, dict) or not isinstance(key.get('PlayerUId'), Property):
            continue
        instance = get_value(key.get('InstanceId'))
        if not isinstance(instance, str):
            continue
        current = key['PlayerUId'].value
        if _canon(instance) == first_instance:
            key['PlayerUId'].value = _styled(swapper.second, current)
        elif _canon(instance) == second_instance:
            key['PlayerUId'].value = _styled(swapper.first, current)
        else:
            continue
        count += 1
    return count


def _swap_guilds(world: dict, swapper: _Swapper, first_instance: str, second_instance: str) -> int:
    """Swap admin, member and handle uids in every decoded guild record."""
    gsm = world.get('GroupSaveDataMap')
    if not isinstance(gsm, MapProperty):
        return 0
    first_instance = _canon(first_instance)
    second_instance = _canon(second_instance)
    before = swapper.count
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

        swapper.swap_in(record, 'admin_player_uid')
        for member in record.players:
            swapper.swap_in(member, 'player_uid')
        for handle in record.handles:
            instance = _canon(handle.instance_id)
            if instance == first_instance:
                handle.guid = _styled(swapper.second, handle.guid)
            elif instance == second_instance:
                handle.guid = _styled(swapper.first, handle.guid)
            else:
                continue
            swapper.count += 1
    return swapper.count - before


def swap_level_players(save: SaveFile, first_uid: str, second_uid: str,
                       first_instance: str, second_instance: str) -> dict[str, int]:
    """Swap two players throughout a decoded Level.sav.

    1. CharacterSaveParameterMap: the two entries whose key InstanceId is a
       player's own character get the other player's PlayerUId. Pals and
       other players are untouched here.
    2. GroupSaveDataMap guilds: admin_player_uid, member player_uids and
       character handles (matched by instance id).
    3. Ownership fields (OwnerPlayerUId, build_player_uid, ...) across all
       of worldSaveData.

    Returns the number of changes made by each step.
    """
    world = _world_data(save)
    swapper = _Swapper(first_uid, second_uid)
    summary = {
        'characters': _swap_characters(world, swapper, first_instance, second_instance),
        'guild_fields': _swap_guilds(world, swapper, first_instance, second_instance),
        'owner_fields': swap_identity(world, first_uid, second_uid),
    }
    logger.info('Level swap %s <-> %s: %s', swapper.first_dashed, swapper.second_dashed, summary)
    return summary
