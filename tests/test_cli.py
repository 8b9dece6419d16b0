import pytest

from palsave import read_save, swap_players
from palsave.config import GROUP_TYPE_GUILD
from palsave.envelope import decompress
from palsave.savefile import decode_gvas

from builders import (
    HOST, ZERO, bool_prop, character_entry, group_entry, guid_struct, guild_blob,
    int_prop, level_gvas, player_gvas, sav, str_prop,
)

FRIEND = '00000002-0000-0000-0000-000000000000'
GROUP = '0000000a-0000-0000-0000-000000000000'
HOST_CHAR = '000000c1-0000-0000-0000-000000000000'
FRIEND_CHAR = '000000c2-0000-0000-0000-000000000000'
HOST_PAL = '000000f1-0000-0000-0000-000000000000'

HOST_FILE = '00000001000000000000000000000000'
FRIEND_FILE = '00000002000000000000000000000000'


@pytest.fixture
def world(tmp_path):
    blob = guild_blob(GROUP, [(HOST, HOST_CHAR), (FRIEND, FRIEND_CHAR)], admin=HOST,
                      members=[(HOST, 1, 'Host'), (FRIEND, 2, 'Friend')])
    level = level_gvas(
        group_entries=[group_entry(GROUP, GROUP_TYPE_GUILD, blob)],
        character_entries=[
            character_entry(HOST, HOST_CHAR, [bool_prop('IsPlayer', True), int_prop('Level', 20)]),
            character_entry(FRIEND, FRIEND_CHAR, [bool_prop('IsPlayer', True), str_prop('NickName', 'Pal')]),
            character_entry(ZERO, HOST_PAL, [guid_struct('OwnerPlayerUId', HOST)]),
        ],
    )
    (tmp_path / 'Players').mkdir()
    (tmp_path / 'Level.sav').write_bytes(sav(level))
    (tmp_path / 'Players' / f'{HOST_FILE}.sav').write_bytes(sav(player_gvas(HOST, HOST_CHAR)))
    (tmp_path / 'Players' / f'{FRIEND_FILE}.sav').write_bytes(sav(player_gvas(FRIEND, FRIEND_CHAR)))
    return tmp_path


def _load(path):
    raw, _ = decompress(path.read_bytes())
    return decode_gvas(raw)


def _snapshot(world):
    return {p.relative_to(world): p.read_bytes() for p in sorted(world.rglob('*')) if p.is_file()}


# ============================================================================
# palsave-swap
# ============================================================================

def test_swap(world, capsys):
    swap_players.main([str(world), HOST_FILE, FRIEND_FILE, '--yes'])
    assert 'Done!' in capsys.readouterr().out

    host_save = _load(world / 'Players' / f'{HOST_FILE}.sav')
    assert host_save.get('SaveData.PlayerUId').value == HOST
    assert host_save.get('SaveData.IndividualId.InstanceId').value == FRIEND_CHAR
    friend_save = _load(world / 'Players' / f'{FRIEND_FILE}.sav')
    assert friend_save.get('SaveData.PlayerUId').value == FRIEND
    assert friend_save.get('SaveData.IndividualId.InstanceId').value == HOST_CHAR

    level = _load(world / 'Level.sav')
    keys = {e.key['InstanceId'].value: e.key['PlayerUId'].value
            for e in level.get('worldSaveData.CharacterSaveParameterMap').entries}
    assert keys == {HOST_CHAR: FRIEND, FRIEND_CHAR: HOST, HOST_PAL: ZERO}
    guild = level.get('worldSaveData.GroupSaveDataMap').entries[0].value['RawData'].value
    assert guild.admin_player_uid == FRIEND

    assert len(list(world.glob('Level.sav.backup_*'))) == 1
    assert len(list((world / 'Players').glob('*.sav.backup_*'))) == 2
    assert not list((world / 'Players').glob('*.swap_tmp'))


def test_swap_dry_run_writes_nothing(world, capsys):
    before = _snapshot(world)
    swap_players.main([str(world), HOST_FILE, FRIEND_FILE, '--dry-run'])
    out = capsys.readouterr().out
    assert 'Dry run' in out
    assert 'Characters re-assigned' in out
    assert _snapshot(world) == before


def test_swap_cancelled(world, monkeypatch, capsys):
    before = _snapshot(world)
    monkeypatch.setattr('builtins.input', lambda prompt: 'n')
    assert swap_players.swap_players(str(world), HOST_FILE, FRIEND_FILE) is False
    assert 'Cancelled.' in capsys.readouterr().out
    assert _snapshot(world) == before


@pytest.mark.parametrize('ids', [
    ('Level', FRIEND_FILE),
    (HOST_FILE, HOST.upper()),
    (HOST_FILE, 'ffffffff000000000000000000000000'),
])
def test_swap_rejects_bad_arguments(world, ids, capsys):
    with pytest.raises(SystemExit) as exc:
        swap_players.main([str(world), *ids, '--yes'])
    assert exc.value.code == 1
    assert 'Error:' in capsys.readouterr().out


def test_swap_fails_cleanly_on_corrupt_save(world, capsys):
    (world / 'Players' / f'{FRIEND_FILE}.sav').write_bytes(b'garbage, not a save file')
    with pytest.raises(SystemExit):
        swap_players.main([str(world), HOST_FILE, FRIEND_FILE, '--yes'])
    assert 'Error:' in capsys.readouterr().out
    assert not list(world.glob('Level.sav.backup_*'))


# ============================================================================
# palsave-read
# ============================================================================

def test_read_report(world, capsys):
    read_save.main([str(world / 'Level.sav')])
    out = capsys.readouterr().out
    assert 'Palworld Save File Analysis' in out
    assert 'double zlib' in out
    assert 'Guild "Pals Inc"' in out
    assert f'{HOST_FILE}.sav' in out
    assert 'Level: 20' in out


def test_read_player_save(world, capsys):
    read_save.main([str(world / 'Players' / f'{HOST_FILE}.sav')])
    out = capsys.readouterr().out
    assert 'SaveData' in out
    assert 'Groups' not in out


def test_read_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        read_save.main([str(tmp_path / 'nope.sav')])
    assert exc.value.code == 1
    assert 'not found' in capsys.readouterr().out
