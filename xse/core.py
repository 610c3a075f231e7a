#!/usr/bin/env python3
"""
Core save file helpers for Xenonauts Save Editor.

This module handles:
- Format constants shared by the save and soldier codecs
- The decode error taxonomy
- A bounds-checked reader over the raw save bytes
- Locating, loading and writing .sav files

The codecs themselves live in save.py and soldier.py.
"""

import logging
import struct
from pathlib import Path


LOGGER = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Opaque file header, copied verbatim
FILE_START_LENGTH = 8

# All length-prefixed fields use a u32 little-endian byte count
LENGTH_PREFIX = '<I'

# Sentinel closing the feature guards blob
FEATURE_GUARDS_END = b'FeatureGuards2'

# M A R K 7 NULL NULL NULL S o l d i e r
SOLDIER_START = b'MARK\x07\x00\x00\x00Soldier'

# M A R K 8 NULL NULL NULL S o l d i e r 2
SOLDIER_END = b'MARK\x08\x00\x00\x00Soldier2'

SAVE_SUFFIX = '.sav'
BACKUP_SUFFIX = '.OLD'


# =============================================================================
# Errors
# =============================================================================

class DecodeError(Exception):
    """Raised when save data does not match the expected layout."""

    def __init__(self, message: str, field: str = None, offset: int = None):
        self.field = field
        self.offset = offset
        details = []
        if field is not None:
            details.append(f"field '{field}'")
        if offset is not None:
            details.append(f"offset 0x{offset:X}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)


class TruncatedInput(DecodeError):
    """A length prefix or fixed-width read runs past the end of the data."""
    pass


class MarkerNotFound(DecodeError):
    """An expected marker or sentinel is absent."""
    pass


class InvalidEncoding(DecodeError):
    """A text field is not valid UTF-8."""
    pass


class InvalidEnum(DecodeError):
    """A flag byte is outside its legal values."""
    pass


# =============================================================================
# Reading
# =============================================================================

class ByteReader:
    """
    Sequential reader over an in-memory save buffer.

    Every read checks bounds and raises a DecodeError subclass carrying the
    field name and the absolute offset where the read started.
    """

    def __init__(self, data: bytes, offset: int = 0):
        self.data = bytes(data)
        self.offset = offset

    def remaining(self) -> int:
        return len(self.data) - self.offset

    def rest(self) -> bytes:
        """Consume and return everything up to end of data."""
        chunk = self.data[self.offset:]
        self.offset = len(self.data)
        return chunk

    def startswith(self, marker: bytes) -> bool:
        return self.data.startswith(marker, self.offset)

    def take(self, length: int, field: str) -> bytes:
        if length > self.remaining():
            raise TruncatedInput(
                f"Need {length} bytes, only {self.remaining()} left",
                field, self.offset
            )
        chunk = self.data[self.offset:self.offset + length]
        self.offset += length
        return chunk

    def unpack(self, fmt: str, field: str):
        """Read a single struct value, e.g. '<I', '<f', '<H'."""
        return struct.unpack(fmt, self.take(struct.calcsize(fmt), field))[0]

    def u8(self, field: str) -> int:
        return self.unpack('<B', field)

    def u32(self, field: str) -> int:
        return self.unpack('<I', field)

    def length_prefixed(self, field: str) -> bytes:
        """Read a u32 byte count followed by that many raw bytes."""
        start = self.offset
        length = self.unpack(LENGTH_PREFIX, field)
        if length > self.remaining():
            available = self.remaining()
            self.offset = start
            raise TruncatedInput(
                f"Declared length {length} exceeds {available} remaining bytes",
                field, start
            )
        return self.take(length, field)

    def string(self, field: str) -> str:
        """Read a length-prefixed UTF-8 string."""
        start = self.offset
        raw = self.length_prefixed(field)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise InvalidEncoding(f"Invalid UTF-8: {e.reason}", field, start) from e

    def flag(self, field: str, values: dict):
        """Read a u8 and map it through values; anything else is InvalidEnum."""
        start = self.offset
        raw = self.u8(field)
        if raw not in values:
            raise InvalidEnum(
                f"Unexpected value {raw}, expected one of {sorted(values)}",
                field, start
            )
        return values[raw]

    def expect(self, marker: bytes, field: str):
        """Consume marker, which must start at the current offset."""
        if not self.startswith(marker):
            raise MarkerNotFound(f"Expected marker {marker!r}", field, self.offset)
        self.offset += len(marker)

    def take_until(self, marker: bytes, field: str) -> bytes:
        """Consume bytes up to (not including) the next occurrence of marker."""
        idx = self.data.find(marker, self.offset)
        if idx == -1:
            raise MarkerNotFound(f"Marker {marker!r} not found", field, self.offset)
        chunk = self.data[self.offset:idx]
        self.offset = idx
        return chunk


# =============================================================================
# Writing
# =============================================================================

def pack_u32(value: int) -> bytes:
    return struct.pack('<I', value)


def pack_length_prefixed(payload: bytes) -> bytes:
    """Prefix payload with its current byte length."""
    return struct.pack(LENGTH_PREFIX, len(payload)) + payload


def pack_string(text: str) -> bytes:
    return pack_length_prefixed(text.encode('utf-8'))


# =============================================================================
# Path Resolution
# =============================================================================

def resolve_save_path(path_input: str | Path | None = None) -> Path:
    """
    Resolve a user-provided path to an actual save file.

    Accepts:
    - None or empty: uses current directory
    - A file path: returns it directly
    - A directory path: picks the most recently modified .sav inside

    Raises:
        FileNotFoundError: if path doesn't exist or no save file found
    """
    if path_input is None or (isinstance(path_input, str) and not path_input.strip()):
        path = Path('.').resolve()
    elif isinstance(path_input, str):
        # Windows-style paths from the game's save folder
        path = Path(path_input.replace('\\', '/')).resolve()
    else:
        path = Path(path_input).resolve()

    if not path.exists():
        raise FileNotFoundError(f"Path not found: {path}")

    if path.is_file():
        return path

    if path.is_dir():
        candidates = [p for p in path.iterdir() if p.is_file() and p.suffix.lower() == SAVE_SUFFIX]
        if not candidates:
            raise FileNotFoundError(
                f"No save file found in directory: {path}\n"
                f"Expected at least one '*{SAVE_SUFFIX}' file"
            )
        return max(candidates, key=lambda p: p.stat().st_mtime)

    raise FileNotFoundError(f"Path is neither file nor directory: {path}")


def backup_path_for(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def read_save_bytes(path_input: str | Path | None = None) -> bytes:
    """Resolve and read a save file whole."""
    path = resolve_save_path(path_input)
    with open(path, 'rb') as f:
        data = f.read()
    LOGGER.debug("Read %d bytes from %s", len(data), path)
    return data


def write_save_bytes(path: str | Path, data: bytes, backup: bool = True) -> Path | None:
    """
    Write encoded save data to path.

    If backup is set and the target exists, it is first renamed to
    '<name>.OLD'. An existing backup is never overwritten, so the oldest
    original survives repeated edits.

    Returns the backup path if one was created.
    """
    path = Path(path)
    backup_file = None

    if backup and path.exists():
        candidate = backup_path_for(path)
        if candidate.exists():
            LOGGER.info("Keeping existing backup %s", candidate)
        else:
            path.rename(candidate)
            backup_file = candidate
            LOGGER.info("Backed up %s -> %s", path.name, candidate.name)

    with open(path, 'wb') as f:
        f.write(data)
    LOGGER.debug("Wrote %d bytes to %s", len(data), path)

    return backup_file
