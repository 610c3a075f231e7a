#!/usr/bin/env python3
"""
Xenonauts Save File Viewer

Displays the decoded structure of a Xenonauts save file without modifying
anything. Shows the save header, opaque region sizes, and the soldier roster.
"""

import argparse
import logging
import sys
from pathlib import Path

from .core import DecodeError, resolve_save_path, read_save_bytes
from .save import Save, parse_save
from .soldier import Soldier


def _text(raw: bytes) -> str:
    return raw.decode('utf-8', errors='replace')


def format_soldier_line(soldier: Soldier) -> str:
    """One roster line; assigned soldiers are marked with '*'."""
    marker = '*' if soldier.is_assigned else ' '
    return (
        f"{marker} {soldier.id:>5}  {soldier.name:<24} {str(soldier.gender):<7}"
        f" {_text(soldier.nation):<12} {soldier.xp:>6}  {_text(soldier.carrier)}"
    )


def display_save(save: Save, save_path: Path, file_length: int):
    """Print the decoded save structure."""
    print()
    print("=" * 60)
    print("XENONAUTS SAVE DATA")
    print("=" * 60)
    print(f"Save file: {save_path}")
    print(f"File length {file_length}")
    print(f"Save name: {save.save_name}")
    print(f"Save time: {save.save_time_text}")
    print(f"Iron Man: {'yes' if save.iron_man else 'no'}")
    print()

    print("REGIONS")
    print("-" * 40)
    print(f"  Feature guards length {len(save.feature_guards)}")
    print(f"  Before soldiers length {len(save.before_soldiers)}")
    print(f"  After soldiers length {len(save.after_soldiers)}")
    print()

    print(f"SOLDIERS ({len(save.soldiers)})")
    print("-" * 60)
    if save.soldiers:
        print(f"  {'ID':>5}  {'Name':<24} {'Gender':<7} {'Nation':<12} {'XP':>6}  Carrier")
        for soldier in save.soldiers:
            print(format_soldier_line(soldier))
        print()
        print("  * assigned to a dropship")
    print()
    print("=" * 60)


def main(args=None):
    """Main entry point for the viewer."""
    parser = argparse.ArgumentParser(description='View Xenonauts save file contents')
    parser.add_argument(
        'path',
        help='Path of the .sav file to load, or a save folder'
    )
    parsed_args = parser.parse_args(args)

    logging.basicConfig(level=logging.WARNING, format='%(levelname)s %(name)s: %(message)s')

    try:
        save_path = resolve_save_path(parsed_args.path)
        data = read_save_bytes(save_path)
        save = parse_save(data)
    except (FileNotFoundError, DecodeError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    display_save(save, save_path, len(data))


if __name__ == "__main__":
    main()
