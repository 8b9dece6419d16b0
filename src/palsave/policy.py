"""
Palworld Save Codec - Path Policy
===================================
Per-path decoding rules for the property-tree reader.

Paths are dotted property names from the root, e.g.
    worldSaveData.GroupSaveDataMap
    worldSaveData.CharacterSaveParameterMap.Value.RawData
Map keys and values add a ".Key" / ".Value" component.

A rule pattern matches when the path ENDS with the pattern's components:
"GroupSaveDataMap" matches "worldSaveData.GroupSaveDataMap" but not
"worldSaveData.OldGroupSaveDataMap". The longest matching pattern wins.
"""

import enum
from dataclasses import dataclass


class Rule(enum.Enum):
    SKIP = 'skip'                           # keep header + payload bytes, do not decode
    STRUCT_HINT = 'struct_hint'             # struct layout of a map key/value
    GROUP_RECORDS = 'group_records'         # decode GroupSaveDataMap RawData blobs
    CHARACTER_RECORD = 'character_record'   # decode character RawData blob


@dataclass(frozen=True)
class PolicyRule:
    rule: Rule
    struct_type: str | None = None   # STRUCT_HINT only; '' = generic scope


# ============================================================================
# PALWORLD RULES
# ============================================================================

# High-volume world data the codec carries through untouched.
SKIP_PATHS = (
    'FoliageGridSaveDataMap',
    'MapObjectSpawnerInStageSaveData',
    'WorldLocation',
    'WorldRotation',
    'WorldScale3D',
    'EffectMap',
    'ItemContainerSaveData',
    'CharacterContainerSaveData',
    'DynamicItemSaveData',
    'MapObjectSaveData',
    'WorkSaveData',
    'BaseCampSaveData',
    'EnemyCampSaveData',
    'DungeonSaveData',
    'DungeonPointMarkerSaveData',
    'OilrigSaveData',
    'InvaderSaveData',
    'GameTimeSaveData',
    'WorkerDirectorSaveData',
    'GuildExtraSaveDataMap',
    'CharacterParameterStorageSaveData',
    'SupplySaveData',
    'InLockerCharacterInstanceIDArray',
)

# Maps keyed by a bare Guid struct.
GUID_KEYED_MAPS = (
    'GroupSaveDataMap',
    'GuildExtraSaveDataMap',
    'SupplyInfos',
    'RewardSaveDataMap',
    'SpawnerDataMapByLevelObjectInstanceId',
    'BaseCampSaveData',
    'InvaderSaveData',
)

# Maps whose keys and values are both generic property scopes.
GENERIC_MAPS = (
    'CharacterSaveParameterMap',
    'ItemContainerSaveData',
    'CharacterContainerSaveData',
    'DynamicItemSaveData',
    'FoliageGridSaveDataMap',
    'MapObjectSpawnerInStageSaveData',
    'InstanceDataMap',
)

GROUP_DATA_PATH = 'GroupSaveDataMap'
CHARACTER_RAW_DATA_PATH = 'CharacterSaveParameterMap.Value.RawData'


def _palworld_rules() -> dict[str, PolicyRule]:
    rules = {}
    for name in SKIP_PATHS:
        rules[name] = PolicyRule(Rule.SKIP)
    for name in GENERIC_MAPS:
        rules[f'{name}.Key'] = PolicyRule(Rule.STRUCT_HINT, '')
        rules[f'{name}.Value'] = PolicyRule(Rule.STRUCT_HINT, '')
    for name in GUID_KEYED_MAPS:
        rules[f'{name}.Key'] = PolicyRule(Rule.STRUCT_HINT, 'Guid')
        rules[f'{name}.Value'] = PolicyRule(Rule.STRUCT_HINT, '')
    rules[GROUP_DATA_PATH] = PolicyRule(Rule.GROUP_RECORDS)
    rules[CHARACTER_RAW_DATA_PATH] = PolicyRule(Rule.CHARACTER_RECORD)
    return rules


# ============================================================================
# LOOKUP
# ============================================================================

class PathPolicy:
    """Immutable table of path pattern -> PolicyRule."""

    def __init__(self, rules: dict[str, PolicyRule] | None = None):
        self._rules = dict(rules or {})
        self._max_parts = max((p.count('.') + 1 for p in self._rules), default=0)

    def __len__(self):
        return len(self._rules)

    def lookup(self, path: str) -> PolicyRule | None:
        """Rule for the longest pattern `path` ends with, or None."""
        parts = path.split('.')
        for n in range(min(len(parts), self._max_parts), 0, -1):
            rule = self._rules.get('.'.join(parts[-n:]))
            if rule is not None:
                return rule
        return None

    def is_skipped(self, path: str) -> bool:
        rule = self.lookup(path)
        return rule is not None and rule.rule is Rule.SKIP

    def struct_hint(self, path: str) -> str:
        """Struct layout for a map key/value at `path`; '' means generic scope.

        Unlisted maps ending in "SaveData" or "Map" hold generic scopes too,
        which is also the default for everything else.
        """
        rule = self.lookup(path)
        if rule is not None and rule.rule is Rule.STRUCT_HINT:
            return rule.struct_type or ''
        return ''

    def has_group_records(self, path: str) -> bool:
        rule = self.lookup(path)
        return rule is not None and rule.rule is Rule.GROUP_RECORDS

    def has_character_record(self, path: str) -> bool:
        rule = self.lookup(path)
        return rule is not None and rule.rule is Rule.CHARACTER_RECORD


DEFAULT_POLICY = PathPolicy(_palworld_rules())

# Decode everything generically (used to expand skipped nodes on request).
EMPTY_POLICY = PathPolicy()
