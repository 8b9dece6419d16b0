"""
Palworld Save Codec
=====================
Read, edit and write Palworld .sav files (Level.sav and player saves).

    from palsave import decode, encode, swap_identity

    save, save_type = decode(open('Level.sav', 'rb').read())
    swap_identity(save.properties, old_uid, new_uid)
    open('Level.sav', 'wb').write(encode(save, save_type))
"""

from .envelope import compress, decompress
from .errors import (
    DecompressionError, EncodeError, EnvelopeError, InvalidStringError,
    InvalidUuidError, MalformedTreeError, RecordDecodeError, SaveError,
    TreeDepthError, TruncatedDataError,
)
from .reader import GvasHeader, GvasReader
from .savefile import SaveFile, decode, decode_gvas, encode, encode_gvas
from .swap import swap_identity, swap_level_players, walk
from .writer import GvasWriter

__version__ = '0.1.0'
