#!/usr/bin/env python3
"""
Save file codec for Xenonauts save files.

File Structure:
--------------
| Field            | Size              | Type                         |
|------------------|-------------------|------------------------------|
| file_start       | 8 bytes           | Opaque header                |
| save_name        | 4 + n             | Length-prefixed UTF-8        |
| feature_guards   | variable          | Opaque, up to "FeatureGuards2" |
| (sentinel)       | 14 bytes          | "FeatureGuards2"             |
| save_time        | 4 + n             | Length-prefixed bytes        |
| unknown          | 4 bytes           | u32                          |
| iron_man         | 1 byte            | 0 or 1                       |
| before_soldiers  | variable          | Opaque, up to first soldier  |
| soldiers         | variable          | Soldier records, no count    |
| after_soldiers   | variable          | Opaque, to end of file       |

Soldier records are found by peeking for SOLDIER_START; decoding stops at
the first position that does not start with the marker.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .core import (
    ByteReader,
    FILE_START_LENGTH,
    FEATURE_GUARDS_END,
    SOLDIER_START,
    pack_u32,
    pack_length_prefixed,
    pack_string,
    read_save_bytes,
    write_save_bytes,
)
from .soldier import (
    CURRENT_LAYOUT,
    Soldier,
    SoldierLayout,
    read_soldier,
    encode_soldier,
)


LOGGER = logging.getLogger(__name__)

IRON_MAN_VALUES = {0: False, 1: True}


@dataclass
class Save:
    file_start: bytes
    save_name: str
    feature_guards: bytes
    save_time: bytes
    unknown: int
    iron_man: bool
    before_soldiers: bytes = b''
    soldiers: list = field(default_factory=list)
    after_soldiers: bytes = b''

    @property
    def save_time_text(self) -> str:
        return self.save_time.decode('utf-8', errors='replace')

    def get_soldier(self, soldier_id: int) -> Soldier | None:
        """
        Find a soldier by id.

        Ids are not guaranteed unique; the last matching soldier wins.
        """
        found = None
        for soldier in self.soldiers:
            if soldier.id == soldier_id:
                found = soldier
        return found

    def get_soldier_mut(self, soldier_id: int) -> Soldier | None:
        """Same lookup as get_soldier; the returned soldier is edited in place."""
        return self.get_soldier(soldier_id)


def get_soldier(save: Save, soldier_id: int) -> Soldier | None:
    return save.get_soldier(soldier_id)


def get_soldier_mut(save: Save, soldier_id: int) -> Soldier | None:
    return save.get_soldier_mut(soldier_id)


# =============================================================================
# Decoding
# =============================================================================

def decode_save(data: bytes, layout: SoldierLayout = CURRENT_LAYOUT) -> tuple:
    """
    Decode a whole save file.

    Returns (remaining_data, save). after_soldiers runs to end of file, so
    remaining_data is always empty.

    Raises a DecodeError subclass on the first structural mismatch.
    """
    reader = ByteReader(data)

    file_start = reader.take(FILE_START_LENGTH, 'file_start')
    save_name = reader.string('save_name')
    feature_guards = reader.take_until(FEATURE_GUARDS_END, 'feature_guards')
    reader.expect(FEATURE_GUARDS_END, 'feature_guards_end')
    save_time = reader.length_prefixed('save_time')
    unknown = reader.u32('unknown')
    iron_man = reader.flag('iron_man', IRON_MAN_VALUES)
    before_soldiers = reader.take_until(SOLDIER_START, 'before_soldiers')

    soldiers = []
    while reader.startswith(SOLDIER_START):
        soldiers.append(read_soldier(reader, layout))

    save = Save(
        file_start=file_start,
        save_name=save_name,
        feature_guards=feature_guards,
        save_time=save_time,
        unknown=unknown,
        iron_man=iron_man,
        before_soldiers=before_soldiers,
        soldiers=soldiers,
        after_soldiers=reader.rest(),
    )

    LOGGER.debug(
        "Decoded save '%s': %d soldiers, %d bytes before, %d bytes after",
        save.save_name, len(soldiers), len(save.before_soldiers), len(save.after_soldiers)
    )
    return reader.rest(), save


def parse_save(data: bytes, layout: SoldierLayout = CURRENT_LAYOUT) -> Save:
    """Decode a whole save file, discarding the (empty) remainder."""
    return decode_save(data, layout)[1]


# =============================================================================
# Encoding
# =============================================================================

def encode_save(save: Save, layout: SoldierLayout = CURRENT_LAYOUT) -> bytes:
    """Encode a save back to file bytes. Length prefixes are recomputed."""
    return b''.join([
        save.file_start,
        pack_string(save.save_name),
        save.feature_guards,
        FEATURE_GUARDS_END,
        pack_length_prefixed(save.save_time),
        pack_u32(save.unknown),
        bytes([int(save.iron_man)]),
        save.before_soldiers,
        *(encode_soldier(soldier, layout) for soldier in save.soldiers),
        save.after_soldiers,
    ])


# =============================================================================
# Files
# =============================================================================

def load_save(path_input: str | Path | None = None, layout: SoldierLayout = CURRENT_LAYOUT) -> Save:
    """Read and decode a save file. Accepts a file, a folder, or None (cwd)."""
    return parse_save(read_save_bytes(path_input), layout)


def write_save(path: str | Path, save: Save, layout: SoldierLayout = CURRENT_LAYOUT,
               backup: bool = True) -> Path | None:
    """
    Encode and write a save. Returns the backup path if one was created.

    Encoding happens before the original is touched.
    """
    data = encode_save(save, layout)
    return write_save_bytes(path, data, backup=backup)
