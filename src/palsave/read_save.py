"""
Palworld Save Codec - Save Analyzer
=====================================
Reads a Palworld Level.sav (or a player .sav) and reports:
  - Envelope framing and GVAS header details
  - Top-level properties
  - Guilds and their members
  - All players found, with level, pal count and last-online time

Usage:
    palsave-read <save_file> [--oodle <oo2core dll>] [--verbose]
"""

import argparse
import logging
import os
import sys

from .config import SAVE_TYPE_NAMES
from .errors import SaveError
from .players import extract_players
from .properties import EnumProperty, MapProperty, RawProperty
from .records import GuildRecord
from .savefile import SaveFile, decode
from .utils import load_save


def list_guilds(save: SaveFile) -> list[GuildRecord]:
    """Decoded guild records in GroupSaveDataMap order."""
    gsm = save.get('worldSaveData.GroupSaveDataMap')
    if not isinstance(gsm, MapProperty):
        return []
    guilds = []
    for entry in gsm.entries:
        value = entry.value if isinstance(entry.value, dict) else {}
        record = getattr(value.get('RawData'), 'value', None)
        if isinstance(record, GuildRecord):
            guilds.append(record)
    return guilds


def count_groups(save: SaveFile) -> dict[str, int]:
    gsm = save.get('worldSaveData.GroupSaveDataMap')
    counts = {}
    if not isinstance(gsm, MapProperty):
        return counts
    for entry in gsm.entries:
        value = entry.value if isinstance(entry.value, dict) else {}
        group_type = value.get('GroupType')
        name = group_type.value if isinstance(group_type, EnumProperty) else '?'
        counts[name] = counts.get(name, 0) + 1
    return counts


def print_report(filepath: str, size: int, save: SaveFile, save_type: int) -> None:
    """Print a formatted report of the save analysis."""
    header = save.header

    print('=' * 70)
    print('  Palworld Save File Analysis')
    print('=' * 70)
    print(f'  File:    {filepath}')
    print(f'  Size:    {size:,} bytes ({size / 1024 / 1024:.1f} MB)')
    print(f'  Framing: {SAVE_TYPE_NAMES.get(save_type, f"0x{save_type:02X}")}')
    print(f'  Format:  GVAS (magic 0x{header.magic:08X})')
    print(f'  Engine:  {header.engine_version_major}.{header.engine_version_minor}.'
          f'{header.engine_version_patch} ({header.engine_version_branch})')
    print(f'  Save Version: {header.save_game_version}')
    print(f'  Package Version: {header.package_file_version_ue4} / {header.package_file_version_ue5}')
    print(f'  Save Class: {header.save_game_class_name}')
    print()

    print('-' * 70)
    print('  Top-Level Properties')
    print('-' * 70)
    for name, prop in save.properties.items():
        print(f'  {name:<30s} {prop.type_name}')
    world = save.get('worldSaveData')
    if isinstance(getattr(world, 'value', None), dict):
        print()
        print('  worldSaveData:')
        for name, prop in world.value.items():
            note = ' (kept raw)' if isinstance(prop, RawProperty) else ''
            print(f'    {name:<40s} {prop.type_name}{note}')
    print()

    if world is None:
        return

    print('-' * 70)
    print('  Groups')
    print('-' * 70)
    for group_type, count in sorted(count_groups(save).items()):
        print(f'  {group_type:<40s} {count}')
    print()
    for guild in list_guilds(save):
        print(f'  Guild "{guild.guild_name}" ({guild.group_id})')
        print(f'    Admin:       {guild.admin_player_uid}')
        print(f'    Camp level:  {guild.base_camp_level}  |  Bases: {len(guild.base_ids)}')
        for member in guild.players:
            print(f'    - {member.player_info.player_name or "?":<20s} {member.player_uid}')
    print()

    print('-' * 70)
    print('  Players')
    print('-' * 70)
    players = extract_players(save)
    if not players:
        print('  No players found.')
    for i, p in enumerate(players):
        print(f'  [{i + 1}] {p.name:<20s} {p.filename}.sav')
        print(f'      Level: {p.level:<4d} Pals: {p.pals_count:<5d} '
              f'Last online: {p.last_online}  Guild: {p.guild_name or "-"}')
    print()


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description='Analyze a Palworld save file: header, guilds and players'
    )
    parser.add_argument('save_file', help='Path to Level.sav or a Players/<uid>.sav file')
    parser.add_argument('--oodle', default=None,
                        help='Path to oo2core_9_win64.dll for PlM (Oodle) saves')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='[%(levelname)s] %(message)s')

    if not os.path.exists(args.save_file):
        print(f'Error: Save file not found: {args.save_file}')
        sys.exit(1)

    data = load_save(args.save_file)
    try:
        save, save_type = decode(data, oodle_lib=args.oodle)
    except SaveError as e:
        print(f'Error: {e}')
        sys.exit(1)

    print_report(args.save_file, len(data), save, save_type)


if __name__ == '__main__':
    main()
