#!/usr/bin/env python3
"""
Xenonauts Save File Explorer

A diagnostic tool for analyzing the binary structure of Xenonauts save files.
Useful for reverse-engineering the opaque regions or debugging a save that
no longer decodes after a game update.

Usage:
    python explore_save.py path/to/save.sav                    # Structure overview
    python explore_save.py path/to/save.sav --soldier 23       # Dump one soldier
    python explore_save.py path/to/save.sav --region after_soldiers
    python explore_save.py path/to/save.sav --hexdump 4096 256 # Hexdump region
    python explore_save.py path/to/save.sav --search "Soldier" # Search raw bytes
    python explore_save.py path/to/save.sav --markers          # List record markers
    python explore_save.py old.sav --legacy                    # 38-byte filler layout
"""

import argparse
import sys
from dataclasses import fields
from pathlib import Path

from xse.core import (
    DecodeError,
    FEATURE_GUARDS_END,
    SOLDIER_START,
    SOLDIER_END,
    read_save_bytes,
)
from xse.save import Save, parse_save
from xse.soldier import (
    CURRENT_LAYOUT,
    LEGACY_LAYOUT,
    STAT_FIELDS,
    encode_soldier,
)

OPAQUE_REGIONS = ['file_start', 'feature_guards', 'before_soldiers', 'after_soldiers']


def hexdump(data: bytes, start: int, length: int, base_offset: int = 0):
    """Print a formatted hexdump of a data region."""
    for i in range(0, length, 16):
        if start + i >= len(data):
            break
        offset = base_offset + start + i
        end = min(start + i + 16, start + length, len(data))
        chunk = data[start + i:end]
        hex_part = ' '.join(f'{b:02x}' for b in chunk)
        ascii_part = ''.join(chr(b) if 32 <= b <= 126 else '.' for b in chunk)
        print(f'{offset:06x}: {hex_part:<48} {ascii_part}')


def find_markers(data: bytes) -> list:
    """
    List every soldier start/end marker in the raw data as (offset, kind).

    Works on data that fails to decode, so a broken record can be located.
    """
    results = []
    for kind, marker in (('start', SOLDIER_START), ('end', SOLDIER_END)):
        idx = data.find(marker)
        while idx != -1:
            results.append((idx, kind))
            idx = data.find(marker, idx + 1)
    return sorted(results)


def region_offsets(save: Save, layout=CURRENT_LAYOUT) -> dict:
    """
    Compute absolute (offset, length) of each opaque region and soldier.

    Offsets follow the encoded layout, which matches the file for an
    unmodified save.
    """
    offsets = {}
    pos = 0

    offsets['file_start'] = (pos, len(save.file_start))
    pos += len(save.file_start) + 4 + len(save.save_name.encode('utf-8'))

    offsets['feature_guards'] = (pos, len(save.feature_guards))
    pos += len(save.feature_guards) + len(FEATURE_GUARDS_END)
    pos += 4 + len(save.save_time) + 4 + 1

    offsets['before_soldiers'] = (pos, len(save.before_soldiers))
    pos += len(save.before_soldiers)

    for index, soldier in enumerate(save.soldiers):
        length = len(encode_soldier(soldier, layout))
        offsets[f'soldier[{index}]'] = (pos, length)
        pos += length

    offsets['after_soldiers'] = (pos, len(save.after_soldiers))
    return offsets


def search_pattern(data: bytes, pattern: str, context_size: int = 20) -> list:
    """Search for a string pattern in the data."""
    pattern_bytes = pattern.encode('utf-8')
    results = []
    idx = 0

    while True:
        idx = data.find(pattern_bytes, idx)
        if idx == -1:
            break

        start = max(0, idx - context_size)
        end = min(len(data), idx + len(pattern_bytes) + context_size)
        results.append({
            'offset': idx,
            'context': data[start:end]
        })
        idx += 1

    return results


def analyze_structure(data: bytes, save: Save, layout):
    """Print the region map of a decoded save."""
    print("\n" + "=" * 60)
    print("SAVE STRUCTURE")
    print("=" * 60)
    print(f"Data size: {len(data)} bytes")
    print(f"Save name: {save.save_name}")
    print(f"Save time: {save.save_time_text}")
    print(f"Unknown: {save.unknown} (0x{save.unknown:08X})")
    print(f"Iron Man: {save.iron_man}")
    print()
    print(f"{'Region':<20} {'Offset':>10} {'Length':>10}")
    print("-" * 42)
    for name, (offset, length) in region_offsets(save, layout).items():
        print(f"{name:<20} {offset:>10} {length:>10}")


def analyze_soldier(save: Save, soldier_id: int):
    """Print every field of one soldier."""
    soldier = save.get_soldier(soldier_id)
    if soldier is None:
        print(f"No soldier with id {soldier_id}")
        return

    print("\n" + "=" * 60)
    print(f"SOLDIER {soldier.id}: {soldier.name}")
    print("=" * 60)
    for f in fields(soldier):
        value = getattr(soldier, f.name)
        if f.name == 'stats':
            for stat in STAT_FIELDS:
                print(f"  {stat:<24} {getattr(value, stat)}")
        elif f.name in ('unknown_block', 'unknown_block_two'):
            print(f"  {f.name:<24} {value.hex(' ')}")
        elif f.name == 'remaining_bytes':
            print(f"  {f.name:<24} {len(value)} bytes")
        else:
            print(f"  {f.name:<24} {value!r}")


def main():
    parser = argparse.ArgumentParser(
        description='Explore Xenonauts save file structure',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument('save_file', help='Path to a .sav file or save folder')
    parser.add_argument('--legacy', action='store_true',
                        help='Decode with the older 38-byte filler / u16 age layout')
    parser.add_argument('--soldier', type=int, metavar='ID', help='Dump all fields of a soldier')
    parser.add_argument('--region', choices=OPAQUE_REGIONS, help='Hexdump an opaque region')
    parser.add_argument('--markers', action='store_true',
                        help='List soldier marker offsets (works on undecodable files)')

    parser.add_argument(
        '--hexdump',
        nargs=2,
        type=int,
        metavar=('OFFSET', 'LENGTH'),
        help='Hexdump a region of the file'
    )

    parser.add_argument(
        '--search',
        metavar='PATTERN',
        help='Search for a string pattern in the file'
    )

    args = parser.parse_args()
    layout = LEGACY_LAYOUT if args.legacy else CURRENT_LAYOUT

    try:
        data = read_save_bytes(args.save_file)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Raw-byte tools don't need a decodable file
    if args.hexdump:
        offset, length = args.hexdump
        print(f"\nHexdump at offset {offset}, length {length}:")
        hexdump(data, offset, length)
        return

    if args.search:
        print(f"\nSearching for '{args.search}'...")
        results = search_pattern(data, args.search)
        if results:
            print(f"Found {len(results)} occurrences:")
            for r in results[:10]:
                print(f"  Offset {r['offset']}: {r['context']}")
            if len(results) > 10:
                print(f"  ... and {len(results) - 10} more")
        else:
            print("Pattern not found")
        return

    if args.markers:
        for offset, kind in find_markers(data):
            print(f"  {offset:>10}  {kind}")
        return

    try:
        save = parse_save(data, layout)
    except DecodeError as e:
        print(f"Error: {e}")
        print("Try --markers to locate soldier records, or --legacy for older saves.")
        sys.exit(1)

    if args.soldier is not None:
        analyze_soldier(save, args.soldier)
    elif args.region:
        offset, length = region_offsets(save, layout)[args.region]
        print(f"\n{args.region} at offset {offset}, length {length}:")
        hexdump(getattr(save, args.region), 0, length, base_offset=offset)
    else:
        analyze_structure(data, save, layout)


if __name__ == "__main__":
    main()
