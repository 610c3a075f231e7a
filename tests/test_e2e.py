#!/usr/bin/env python3
"""
End-to-end tests for XSE (Xenonauts Save Editor) using real save files.

Tests validate:
- A captured full save decodes to the expected header, regions and roster
- Re-encoding a captured save reproduces the file byte for byte
- A captured single-soldier record decodes to the known soldier

Captured game files are not redistributed; copy them into tests/fixtures/
to run these tests. Missing fixtures skip the affected tests.
"""

import unittest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from xse.save import decode_save, encode_save, parse_save
from xse.soldier import Gender, decode_soldier, encode_soldier


# Fixture paths
FIXTURES_DIR = Path(__file__).parent / "fixtures"
FULL_SAVE = FIXTURES_DIR / "full_save.sav"
SINGLE_SOLDIER = FIXTURES_DIR / "single_soldier.bin"


@unittest.skipUnless(FULL_SAVE.exists(), f"missing fixture {FULL_SAVE.name}")
class TestFullSave(unittest.TestCase):
    """Tests against a captured 22-soldier Iron Man save."""

    @classmethod
    def setUpClass(cls):
        cls.data = FULL_SAVE.read_bytes()
        cls.remaining, cls.save = decode_save(cls.data)

    def test_header(self):
        self.assertEqual(len(self.save.file_start), 8)
        self.assertEqual(self.save.save_name, "Iron Man (2024-07-06_20.46.00)")
        self.assertEqual(self.save.save_time, b"2024-07-06_20.46.00")
        self.assertIs(self.save.iron_man, True)

    def test_region_lengths(self):
        self.assertEqual(len(self.save.feature_guards), 416)
        self.assertEqual(len(self.save.before_soldiers), 1581)
        self.assertEqual(len(self.save.after_soldiers), 23740)

    def test_soldier_count(self):
        self.assertEqual(len(self.save.soldiers), 22)

    def test_nothing_left_over(self):
        self.assertEqual(self.remaining, b'')

    def test_round_trip(self):
        """Unmodified saves re-encode byte for byte."""
        self.assertEqual(encode_save(self.save), self.data)

    def test_redecode_is_stable(self):
        self.assertEqual(parse_save(encode_save(self.save)), self.save)


@unittest.skipUnless(SINGLE_SOLDIER.exists(), f"missing fixture {SINGLE_SOLDIER.name}")
class TestSingleSoldier(unittest.TestCase):
    """Tests against a captured soldier record."""

    @classmethod
    def setUpClass(cls):
        cls.data = SINGLE_SOLDIER.read_bytes()
        cls.remaining, cls.soldier = decode_soldier(cls.data)

    def test_known_soldier(self):
        s = self.soldier
        self.assertEqual(s.id, 23)
        self.assertEqual(s.nationality, "Japanese")
        self.assertEqual(s.name, "Ruri Yasuda")
        self.assertEqual(s.race, b"asi")
        self.assertEqual(s.face_number, 3)
        self.assertEqual(s.nation, b"japan")
        self.assertEqual(s.xp, 9)
        self.assertEqual(s.regiment, b"regiment.japan1")
        self.assertEqual(s.experience, b"experience.none")
        self.assertEqual(s.carrier, b"Charlie - 1/13")
        self.assertEqual(s.gender, Gender.FEMALE)

    def test_stats(self):
        stats = self.soldier.stats
        self.assertEqual(
            (stats.time_units_current, stats.health_current, stats.strength_current,
             stats.accuracy_current, stats.reflexes_current, stats.bravery_current),
            (54, 55, 49, 67, 63, 59)
        )

    def test_round_trip(self):
        consumed = self.data[:len(self.data) - len(self.remaining)]
        self.assertEqual(encode_soldier(self.soldier), consumed)


if __name__ == '__main__':
    unittest.main()
