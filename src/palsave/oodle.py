"""
Palworld Save Codec - Oodle Decoder
=====================================
Decompresses PlM (save type 0x31) payloads with the game's own Oodle
library, loaded through ctypes. Only OodleLZ_Decompress is used; the
encoder needs the closed SDK, which is why PlM saves are written back as
double-zlib PlZ files.

Requirements:
    oo2core_9_win64.dll (shipped with Palworld) or a Linux build of
    oo2core, found via PALSAVE_OODLE_LIB, the working directory or the
    package directory.
"""

import ctypes
import logging
import os

from .config import OODLE_LIB_ENV, OODLE_LIB_NAMES, OODLE_SEARCH_DIRS
from .errors import DecompressionError

logger = logging.getLogger(__name__)

_decompress_fn = None


def find_oodle_lib(lib_path: str | None = None) -> str | None:
    """Return the path of the first Oodle library found, or None."""
    if lib_path:
        return lib_path if os.path.exists(lib_path) else None

    env_path = os.environ.get(OODLE_LIB_ENV)
    if env_path and os.path.exists(env_path):
        return env_path

    for path in [os.getcwd(), *OODLE_SEARCH_DIRS]:
        for name in OODLE_LIB_NAMES:
            full_path = os.path.join(path, name)
            if os.path.exists(full_path):
                return full_path

    return None


def _load_decompress(lib_path: str | None = None):
    global _decompress_fn
    if _decompress_fn is not None and lib_path is None:
        return _decompress_fn

    found = find_oodle_lib(lib_path)
    if found is None:
        raise DecompressionError(
            'Oodle decoder (oo2core) not available.\n'
            f'Set {OODLE_LIB_ENV} to the oo2core_9_win64.dll from your Palworld install.'
        )

    try:
        lib = ctypes.CDLL(found)
    except OSError as e:
        raise DecompressionError(f'Failed to load Oodle library {found}: {e}') from e

    fn = lib.OodleLZ_Decompress
    fn.restype = ctypes.c_int64
    fn.argtypes = [
        ctypes.c_void_p, ctypes.c_size_t,          # compressed buf, size
        ctypes.c_void_p, ctypes.c_size_t,          # output buf, size
        ctypes.c_int, ctypes.c_int, ctypes.c_int,  # fuzzSafe, checkCRC, verbosity
        ctypes.c_void_p, ctypes.c_size_t,          # decoder buf base, size
        ctypes.c_void_p, ctypes.c_void_p,          # callbacks
        ctypes.c_void_p, ctypes.c_size_t,          # decoder memory
        ctypes.c_int,                              # thread phase
    ]
    logger.debug('Loaded Oodle library %s', found)

    if lib_path is None:
        _decompress_fn = fn
    return fn


def decompress(compressed: bytes, uncompressed_len: int, lib_path: str | None = None) -> bytes:
    """Inflate an Oodle block to exactly `uncompressed_len` bytes."""
    fn = _load_decompress(lib_path)

    output = ctypes.create_string_buffer(uncompressed_len)
    comp_buf = ctypes.create_string_buffer(compressed, len(compressed))

    result = fn(
        comp_buf, len(compressed),
        output, uncompressed_len,
        1, 0, 0,
        None, 0,
        None, None,
        None, 0,
        3,
    )
    if result != uncompressed_len:
        raise DecompressionError(
            f'Oodle decompress failed: returned {result}, expected {uncompressed_len} bytes'
        )
    return output.raw[:result]
