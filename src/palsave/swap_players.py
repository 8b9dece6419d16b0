"""
Palworld Save Codec - Player Swap
===================================
Swaps two players of a world, typically to hand the co-op host slot
(Players/00000001000000000000000000000000.sav) to another player.

Steps:
  1. Read the InstanceId of each player's character from their .sav
  2. Patch PlayerUId inside both player saves
  3. In Level.sav swap the two player characters, guild admin/member/handle
     entries and every ownership field (OwnerPlayerUId, build_player_uid, ...)
  4. Create a timestamped backup of every file before modifying
  5. Write all three saves and exchange the two player file names

Usage:
    palsave-swap <world_dir> <first_id> <second_id> [--dry-run] [--yes]
"""

import argparse
import logging
import os
import shutil
import sys
from datetime import datetime

from .config import DEFAULT_HOST_ID, LEGACY_HOST_ID, LEVEL_SAV, PLAYERS_DIR
from .errors import SaveError
from .players import extract_players, find_player
from .savefile import decode, encode
from .swap import patch_player_uid, read_player_instance_id, swap_level_players
from .utils import filename_to_uuid, is_hex_id, load_save, normalize_id, write_save


def make_backup(path: str, timestamp: str) -> str:
    """Copy `path` to `<path>.backup_<timestamp>`."""
    backup_path = f'{path}.backup_{timestamp}'
    shutil.copy2(path, backup_path)
    print(f'  Backup created: {backup_path}')
    return backup_path


def swap_file_names(first_path: str, second_path: str) -> None:
    """Exchange two file names through a temporary name."""
    temp_path = f'{first_path}.swap_tmp'
    os.replace(first_path, temp_path)
    os.replace(second_path, first_path)
    os.replace(temp_path, second_path)


def _describe(player_id: str, players: list) -> str:
    info = find_player(players, player_id)
    host = ' [host]' if player_id in (DEFAULT_HOST_ID, LEGACY_HOST_ID) else ''
    if info is None:
        return f'{player_id}{host}'
    return f'{info.name} (level {info.level}, {info.pals_count} pals) {player_id}{host}'


def swap_players(world_dir: str, first_id: str, second_id: str, dry_run: bool = False,
                 assume_yes: bool = False, oodle_lib: str | None = None) -> bool:
    """Run the full swap. Returns False if the user cancelled."""
    first = normalize_id(first_id)
    second = normalize_id(second_id)
    players_dir = os.path.join(world_dir, PLAYERS_DIR)
    level_path = os.path.join(world_dir, LEVEL_SAV)
    first_path = os.path.join(players_dir, f'{first}.sav')
    second_path = os.path.join(players_dir, f'{second}.sav')

    first_uid = filename_to_uuid(first)
    second_uid = filename_to_uuid(second)

    print(f'  Reading {first}.sav / {second}.sav ...')
    first_save, first_type = decode(load_save(first_path), oodle_lib=oodle_lib)
    second_save, second_type = decode(load_save(second_path), oodle_lib=oodle_lib)
    first_instance = read_player_instance_id(first_save)
    second_instance = read_player_instance_id(second_save)

    print(f'  Reading {LEVEL_SAV} ...')
    level_save, level_type = decode(load_save(level_path), oodle_lib=oodle_lib)
    players = extract_players(level_save)

    print()
    print(f'  First:  {_describe(first, players)}')
    print(f'  Second: {_describe(second, players)}')
    print()

    patched = patch_player_uid(first_save, first_uid, second_uid)
    patched += patch_player_uid(second_save, second_uid, first_uid)
    summary = swap_level_players(level_save, first_uid, second_uid, first_instance, second_instance)

    print(f'  Player save uid fields patched: {patched}')
    print(f'  Characters re-assigned:         {summary["characters"]}')
    print(f'  Guild fields swapped:           {summary["guild_fields"]}')
    print(f'  Ownership fields swapped:       {summary["owner_fields"]}')
    print()

    if dry_run:
        print('  Dry run: no files written.')
        return True

    if not assume_yes:
        confirm = input('  Apply swap? (y/n): ').strip().lower()
        if confirm != 'y':
            print('  Cancelled.')
            return False

    # Encode everything before touching the disk.
    level_bytes = encode(level_save, level_type)
    first_bytes = encode(first_save, first_type)
    second_bytes = encode(second_save, second_type)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    for path in (level_path, first_path, second_path):
        make_backup(path, timestamp)

    write_save(level_path, level_bytes)
    write_save(first_path, first_bytes)
    write_save(second_path, second_bytes)
    swap_file_names(first_path, second_path)

    print(f'  Done! {first}.sav and {second}.sav swapped.')
    return True


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description='Swap two players in a Palworld world (e.g. move the host slot)'
    )
    parser.add_argument('world_dir', help='World folder containing Level.sav and Players/')
    parser.add_argument('first_id', help=f'Player id or file name (host: {DEFAULT_HOST_ID})')
    parser.add_argument('second_id', help='Player id or file name to swap with')
    parser.add_argument('--dry-run', action='store_true', help='Decode and report without writing')
    parser.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation')
    parser.add_argument('--oodle', default=None,
                        help='Path to oo2core_9_win64.dll for PlM (Oodle) saves')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='[%(levelname)s] %(message)s')

    first = normalize_id(args.first_id)
    second = normalize_id(args.second_id)
    for player_id in (first, second):
        if not is_hex_id(player_id):
            print(f'Error: Not a player id: {player_id}')
            sys.exit(1)
    if first == second:
        print('Error: Both ids name the same player.')
        sys.exit(1)

    paths = [
        os.path.join(args.world_dir, LEVEL_SAV),
        os.path.join(args.world_dir, PLAYERS_DIR, f'{first}.sav'),
        os.path.join(args.world_dir, PLAYERS_DIR, f'{second}.sav'),
    ]
    for path in paths:
        if not os.path.exists(path):
            print(f'Error: Save file not found: {path}')
            sys.exit(1)

    print('=' * 60)
    print('  Palworld Player Swap')
    print('=' * 60)
    try:
        swap_players(args.world_dir, first, second, dry_run=args.dry_run,
                     assume_yes=args.yes, oodle_lib=args.oodle)
    except SaveError as e:
        print(f'Error: {e}')
        sys.exit(1)


if __name__ == '__main__':
    main()
