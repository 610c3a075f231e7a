#!/usr/bin/env python3
"""
Soldier record codec for Xenonauts save files.

A soldier record sits between two markers:

    MARK\\x07\\0\\0\\0Soldier    (SOLDIER_START, 15 bytes)
    ... fixed fields ...
    ... remaining bytes (equipment, unlocks, not yet mapped) ...
    MARK\\x08\\0\\0\\0Soldier2   (SOLDIER_END, 16 bytes)

Field layout (little-endian throughout, "str" = u32 length + bytes):

    id              u32
    nationality     str (UTF-8)
    name            str (UTF-8)
    race            str
    face_number     u32
    nation          str
    stats           12 x u32
    xp              u32
    unknown_block   layout.filler_width bytes
    age             layout.age_format
    regiment        str
    experience      str
    unknown_block_two  4 bytes
    carrier         str
    unknown_number  u32
    another_unknown_number  u32
    gender          u8 (0 = Female, 1 = Male)
"""

import logging
import struct
from dataclasses import dataclass, field, fields
from enum import IntEnum

from .core import (
    ByteReader,
    SOLDIER_START,
    SOLDIER_END,
    pack_u32,
    pack_length_prefixed,
    pack_string,
)


LOGGER = logging.getLogger(__name__)

UNKNOWN_BLOCK_TWO_LENGTH = 4


class Gender(IntEnum):
    FEMALE = 0
    MALE = 1

    def __str__(self):
        return self.name.title()


GENDER_VALUES = {g.value: g for g in Gender}


# =============================================================================
# Format revisions
# =============================================================================

@dataclass(frozen=True)
class SoldierLayout:
    """
    Widths that differ between format revisions.

    filler_width: size of the opaque block after xp
    age_format: struct format of the age field
    """
    filler_width: int
    age_format: str


# f32 age in years
CURRENT_LAYOUT = SoldierLayout(filler_width=36, age_format='<f')

# u16 age in days, two extra filler bytes
LEGACY_LAYOUT = SoldierLayout(filler_width=38, age_format='<H')


# =============================================================================
# Stats
# =============================================================================

@dataclass
class SoldierStats:
    time_units_current: int = 0
    health_current: int = 0
    strength_current: int = 0
    accuracy_current: int = 0
    reflexes_current: int = 0
    bravery_current: int = 0
    time_units_original: int = 0
    health_original: int = 0
    strength_original: int = 0
    accuracy_original: int = 0
    reflexes_original: int = 0
    bravery_original: int = 0


# Wire order of the stat block
STAT_FIELDS = tuple(f.name for f in fields(SoldierStats))

STATS_FORMAT = '<' + 'I' * len(STAT_FIELDS)
STATS_LENGTH = struct.calcsize(STATS_FORMAT)

# Display names for the six stats, current/original pairs share a name
STAT_NAMES = ['Time Units', 'Health', 'Strength', 'Accuracy', 'Reflexes', 'Bravery']


def decode_stats(reader: ByteReader) -> SoldierStats:
    """Read the 48-byte stat block."""
    values = struct.unpack(STATS_FORMAT, reader.take(STATS_LENGTH, 'stats'))
    return SoldierStats(*values)


def encode_stats(stats: SoldierStats) -> bytes:
    return struct.pack(STATS_FORMAT, *(getattr(stats, name) for name in STAT_FIELDS))


# =============================================================================
# Soldier
# =============================================================================

@dataclass
class Soldier:
    id: int
    nationality: str
    name: str
    race: bytes
    face_number: int
    nation: bytes
    stats: SoldierStats
    xp: int
    unknown_block: bytes
    age: float
    regiment: bytes
    experience: bytes
    unknown_block_two: bytes
    carrier: bytes
    unknown_number: int
    another_unknown_number: int
    gender: Gender
    remaining_bytes: bytes = field(default=b'', repr=False)

    @property
    def is_assigned(self) -> bool:
        """Soldiers with a carrier are assigned to a dropship."""
        return bool(self.carrier)


def read_soldier(reader: ByteReader, layout: SoldierLayout = CURRENT_LAYOUT) -> Soldier:
    """
    Decode one soldier record starting at the reader's offset.

    The reader is left just past SOLDIER_END.
    """
    start = reader.offset
    reader.expect(SOLDIER_START, 'soldier_start')

    soldier = Soldier(
        id=reader.u32('id'),
        nationality=reader.string('nationality'),
        name=reader.string('name'),
        race=reader.length_prefixed('race'),
        face_number=reader.u32('face_number'),
        nation=reader.length_prefixed('nation'),
        stats=decode_stats(reader),
        xp=reader.u32('xp'),
        unknown_block=reader.take(layout.filler_width, 'unknown_block'),
        age=reader.unpack(layout.age_format, 'age'),
        regiment=reader.length_prefixed('regiment'),
        experience=reader.length_prefixed('experience'),
        unknown_block_two=reader.take(UNKNOWN_BLOCK_TWO_LENGTH, 'unknown_block_two'),
        carrier=reader.length_prefixed('carrier'),
        unknown_number=reader.u32('unknown_number'),
        another_unknown_number=reader.u32('another_unknown_number'),
        gender=reader.flag('gender', GENDER_VALUES),
    )
    soldier.remaining_bytes = reader.take_until(SOLDIER_END, 'remaining_bytes')
    reader.expect(SOLDIER_END, 'soldier_end')

    LOGGER.debug(
        "Decoded soldier %d (%s) at 0x%X, %d bytes, %d unmapped",
        soldier.id, soldier.name, start, reader.offset - start, len(soldier.remaining_bytes)
    )
    return soldier


def decode_soldier(data: bytes, layout: SoldierLayout = CURRENT_LAYOUT) -> tuple:
    """
    Decode a soldier record at the start of data.

    Returns (remaining_data, soldier).

    Raises:
        MarkerNotFound: data does not start with SOLDIER_START, or no SOLDIER_END follows
        TruncatedInput: a field runs past the end of data
        InvalidEncoding: nationality or name is not UTF-8
        InvalidEnum: gender byte is not 0 or 1
    """
    reader = ByteReader(data)
    soldier = read_soldier(reader, layout)
    return reader.rest(), soldier


def encode_soldier(soldier: Soldier, layout: SoldierLayout = CURRENT_LAYOUT) -> bytes:
    """Encode a soldier record, markers included. Length prefixes are recomputed."""
    return b''.join([
        SOLDIER_START,
        pack_u32(soldier.id),
        pack_string(soldier.nationality),
        pack_string(soldier.name),
        pack_length_prefixed(soldier.race),
        pack_u32(soldier.face_number),
        pack_length_prefixed(soldier.nation),
        encode_stats(soldier.stats),
        pack_u32(soldier.xp),
        _fixed_width(soldier.unknown_block, layout.filler_width),
        struct.pack(layout.age_format, soldier.age),
        pack_length_prefixed(soldier.regiment),
        pack_length_prefixed(soldier.experience),
        _fixed_width(soldier.unknown_block_two, UNKNOWN_BLOCK_TWO_LENGTH),
        pack_length_prefixed(soldier.carrier),
        pack_u32(soldier.unknown_number),
        pack_u32(soldier.another_unknown_number),
        bytes([int(soldier.gender)]),
        soldier.remaining_bytes,
        SOLDIER_END,
    ])


def _fixed_width(block: bytes, width: int) -> bytes:
    # Opaque blocks keep their captured bytes; zero-fill only to cover a short block
    return block[:width].ljust(width, b'\x00')
