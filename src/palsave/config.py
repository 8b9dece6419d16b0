"""
Palworld Save Codec - Configuration
=====================================
Central constants for the .sav envelope, the GVAS stream and the
player/guild data the host-swap tools work with.
"""

import os

# ============================================================================
# SAV ENVELOPE
# ============================================================================
# Every .sav file starts with a 12-byte header:
#   uint32  UncompressedLength
#   uint32  CompressedLength
#   char[3] Magic               ("PlZ", "PlM" or "CNK")
#   uint8   SaveType
#
# "CNK" files wrap a second, standalone 12-byte header; the payload then
# starts at offset 24.

SAV_HEADER_SIZE = 12
CNK_HEADER_SIZE = 24

MAGIC_PLZ = b'PlZ'
MAGIC_PLM = b'PlM'
MAGIC_CNK = b'CNK'

SAVE_TYPE_ZLIB = 0x30          # single zlib pass
SAVE_TYPE_OODLE = 0x31         # Oodle (Mermaid), decode only
SAVE_TYPE_DOUBLE_ZLIB = 0x32   # zlib applied twice

WRITABLE_SAVE_TYPES = (SAVE_TYPE_ZLIB, SAVE_TYPE_DOUBLE_ZLIB)

SAVE_TYPE_NAMES = {
    SAVE_TYPE_ZLIB: 'zlib (CNK/PlZ 0x30)',
    SAVE_TYPE_OODLE: 'Oodle (PlM 0x31)',
    SAVE_TYPE_DOUBLE_ZLIB: 'double zlib (PlZ 0x32)',
}

# ============================================================================
# OODLE
# ============================================================================
# The Oodle decoder ships with the game (and many other UE titles) as
# oo2core_9_win64.dll. Point PALSAVE_OODLE_LIB at it, or drop it next to
# the save tools.

OODLE_LIB_ENV = 'PALSAVE_OODLE_LIB'

OODLE_LIB_NAMES = [
    'oo2core_9_win64.dll',
    'oo2core_8_win64.dll',
    'oo2core_7_win64.dll',
    'liboo2corelinux64.so.9',
    'liboo2corelinux64.so',
]

# Searched after the working directory.
OODLE_SEARCH_DIRS = [
    os.path.dirname(os.path.abspath(__file__)),
]

# ============================================================================
# GVAS STREAM
# ============================================================================

GVAS_MAGIC = 0x53415647   # "GVAS"
GVAS_MAGIC_BYTES = b'GVAS'

# Scope terminator written after the last property of every scope.
NONE_NAME = 'None'

ZERO_UUID = '00000000-0000-0000-0000-000000000000'

# Deepest allowed nesting of property scopes. Real saves stay well below 20.
MAX_DEPTH = 128

# ============================================================================
# GROUPS / PLAYERS
# ============================================================================

GROUP_TYPE_GUILD = 'EPalGroupType::Guild'
GROUP_TYPE_INDEPENDENT_GUILD = 'EPalGroupType::IndependentGuild'
GROUP_TYPE_ORGANIZATION = 'EPalGroupType::Organization'

# Group types whose record carries an org_type byte after the handle list.
ORG_GROUP_TYPES = (
    GROUP_TYPE_GUILD,
    GROUP_TYPE_INDEPENDENT_GUILD,
    GROUP_TYPE_ORGANIZATION,
)

# Field names holding a player uid that a host swap must exchange wherever
# they show up in the tree.
SWAP_KEYS = frozenset({
    'OwnerPlayerUId',
    'owner_player_uid',
    'build_player_uid',
    'private_lock_player_uid',
})

# The co-op host always lives in player slot FGuid{1,0,0,0}.
DEFAULT_HOST_ID = '00000001000000000000000000000000'
LEGACY_HOST_ID = '00000000000000000000000000000001'

LEVEL_SAV = 'Level.sav'
PLAYERS_DIR = 'Players'

# 1 tick = 100 ns (FDateTime)
TICKS_PER_SECOND = 10_000_000
