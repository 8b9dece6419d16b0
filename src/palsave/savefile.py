"""
Palworld Save Codec - Save Files
==================================
Top-level decode/encode between .sav bytes and a SaveFile
(header + root property scope + trailer).

    data = load_save('Level.sav')
    save, save_type = decode(data)
    groups = save.get('worldSaveData.GroupSaveDataMap')
    ...
    write_save('Level.sav', encode(save, save_type))
"""

import io
import logging
from dataclasses import dataclass, field

from . import envelope
from .policy import DEFAULT_POLICY, PathPolicy
from .properties import Property
from .reader import GvasHeader, GvasReader
from .writer import GvasWriter

logger = logging.getLogger(__name__)


@dataclass
class SaveFile:
    header: GvasHeader
    properties: dict[str, Property] = field(default_factory=dict)
    trailer: bytes = b'\x00\x00\x00\x00'

    def get(self, path: str):
        """Look up a property by dotted path, descending through struct scopes.

        Returns None if any component is missing.
        """
        node = self.properties
        prop = None
        for name in path.split('.'):
            if isinstance(node, Property):
                node = getattr(node, 'value', None)
            if not isinstance(node, dict):
                return None
            prop = node.get(name)
            if prop is None:
                return None
            node = prop
        return prop


def decode_gvas(raw: bytes, policy: PathPolicy = DEFAULT_POLICY) -> SaveFile:
    """Decode an uncompressed GVAS stream."""
    reader = GvasReader(raw, policy)
    header = reader.read_header()
    logger.debug('%r', header)
    properties = reader.read_properties()
    trailer = reader.read_trailer()
    return SaveFile(header, properties, trailer)


def encode_gvas(save: SaveFile) -> bytes:
    """Encode a SaveFile back into an uncompressed GVAS stream."""
    out = io.BytesIO()
    writer = GvasWriter()
    writer.write_header(out, save.header)
    writer.write_properties(out, save.properties)
    out.write(save.trailer)
    return out.getvalue()


def decode(data: bytes, policy: PathPolicy = DEFAULT_POLICY,
           oodle_lib: str | None = None) -> tuple[SaveFile, int]:
    """Decode .sav bytes. Returns (save, save_type)."""
    raw, save_type = envelope.decompress(data, oodle_lib)
    return decode_gvas(raw, policy), save_type


def encode(save: SaveFile, save_type: int) -> bytes:
    """Encode a SaveFile into .sav bytes with the given framing."""
    return envelope.compress(encode_gvas(save), save_type)
