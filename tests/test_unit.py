#!/usr/bin/env python3
"""
Unit tests for xse.core: the byte reader, packing helpers and errors.
"""

import unittest
import struct
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from xse.core import (
    ByteReader,
    DecodeError,
    TruncatedInput,
    MarkerNotFound,
    InvalidEncoding,
    InvalidEnum,
    pack_u32,
    pack_length_prefixed,
    pack_string,
    SOLDIER_START,
    SOLDIER_END,
    FEATURE_GUARDS_END,
)


class TestMarkers(unittest.TestCase):
    """Tests for the format constants."""

    def test_soldier_start_bytes(self):
        """Start marker is 'MARK', u32 7, 'Soldier'."""
        self.assertEqual(SOLDIER_START, bytes.fromhex('4D41524B07000000536F6C64696572'))
        self.assertEqual(len(SOLDIER_START), 15)

    def test_soldier_end_bytes(self):
        """End marker is 'MARK', u32 8, 'Soldier2'."""
        self.assertEqual(SOLDIER_END, bytes.fromhex('4D41524B08000000536F6C6469657232'))
        self.assertEqual(len(SOLDIER_END), 16)

    def test_feature_guards_sentinel(self):
        self.assertEqual(FEATURE_GUARDS_END, b'FeatureGuards2')


class TestByteReaderFixedWidth(unittest.TestCase):
    """Tests for fixed-width reads."""

    def test_u32_little_endian(self):
        reader = ByteReader(b'\x17\x00\x00\x00\xff')
        self.assertEqual(reader.u32('id'), 23)
        self.assertEqual(reader.offset, 4)
        self.assertEqual(reader.u8('flag'), 255)
        self.assertEqual(reader.remaining(), 0)

    def test_f32(self):
        reader = ByteReader(struct.pack('<f', 27.5))
        self.assertEqual(reader.unpack('<f', 'age'), 27.5)

    def test_take_past_end_raises(self):
        """A fixed-width take beyond the data is TruncatedInput."""
        reader = ByteReader(b'\x01\x02\x03')
        with self.assertRaises(TruncatedInput) as ctx:
            reader.u32('xp')
        self.assertEqual(ctx.exception.field, 'xp')
        self.assertEqual(ctx.exception.offset, 0)

    def test_failed_take_does_not_advance(self):
        reader = ByteReader(b'\x01\x02\x03', offset=1)
        with self.assertRaises(TruncatedInput):
            reader.take(5, 'block')
        self.assertEqual(reader.offset, 1)

    def test_rest_consumes_everything(self):
        reader = ByteReader(b'abcdef', offset=2)
        self.assertEqual(reader.rest(), b'cdef')
        self.assertEqual(reader.rest(), b'')


class TestByteReaderLengthPrefixed(unittest.TestCase):
    """Tests for length-prefixed fields."""

    def test_reads_payload(self):
        reader = ByteReader(b'\x03\x00\x00\x00asiXYZ')
        self.assertEqual(reader.length_prefixed('race'), b'asi')
        self.assertEqual(reader.offset, 7)

    def test_empty_payload(self):
        reader = ByteReader(b'\x00\x00\x00\x00')
        self.assertEqual(reader.length_prefixed('carrier'), b'')

    def test_declared_length_exceeds_input(self):
        """Declared length longer than the rest of the data is TruncatedInput."""
        reader = ByteReader(b'\xff\x00\x00\x00short')
        with self.assertRaises(TruncatedInput) as ctx:
            reader.length_prefixed('name')
        self.assertEqual(ctx.exception.field, 'name')
        self.assertEqual(ctx.exception.offset, 0)
        self.assertIn('255', str(ctx.exception))

    def test_truncated_prefix(self):
        reader = ByteReader(b'\x05\x00')
        with self.assertRaises(TruncatedInput):
            reader.length_prefixed('name')

    def test_string_utf8(self):
        payload = 'Zoë Ångström'.encode('utf-8')
        reader = ByteReader(pack_length_prefixed(payload))
        self.assertEqual(reader.string('name'), 'Zoë Ångström')

    def test_string_invalid_utf8(self):
        """Invalid UTF-8 in a text field is InvalidEncoding, not replaced."""
        reader = ByteReader(b'\x00' + pack_length_prefixed(b'Ruri\xff\xfe'), offset=1)
        with self.assertRaises(InvalidEncoding) as ctx:
            reader.string('name')
        self.assertEqual(ctx.exception.offset, 1)
        self.assertEqual(ctx.exception.field, 'name')


class TestByteReaderMarkers(unittest.TestCase):
    """Tests for marker scanning."""

    def test_take_until_returns_span(self):
        reader = ByteReader(b'opaque bytesFeatureGuards2rest')
        self.assertEqual(reader.take_until(FEATURE_GUARDS_END, 'guards'), b'opaque bytes')
        self.assertTrue(reader.startswith(FEATURE_GUARDS_END))

    def test_take_until_empty_span(self):
        reader = ByteReader(SOLDIER_START + b'x')
        self.assertEqual(reader.take_until(SOLDIER_START, 'before'), b'')
        self.assertEqual(reader.offset, 0)

    def test_take_until_missing(self):
        reader = ByteReader(b'no marker here')
        with self.assertRaises(MarkerNotFound) as ctx:
            reader.take_until(SOLDIER_END, 'remaining_bytes')
        self.assertEqual(ctx.exception.field, 'remaining_bytes')

    def test_take_until_ignores_earlier_occurrence(self):
        reader = ByteReader(b'XXab' + b'XX', offset=2)
        self.assertEqual(reader.take_until(b'XX', 'span'), b'ab')

    def test_expect(self):
        reader = ByteReader(SOLDIER_START + b'\x01')
        reader.expect(SOLDIER_START, 'soldier_start')
        self.assertEqual(reader.offset, len(SOLDIER_START))

    def test_expect_mismatch(self):
        reader = ByteReader(b'MARK\x09\x00\x00\x00Aircraft')
        with self.assertRaises(MarkerNotFound):
            reader.expect(SOLDIER_START, 'soldier_start')
        self.assertEqual(reader.offset, 0)


class TestByteReaderFlags(unittest.TestCase):
    """Tests for two-valued flag bytes."""

    VALUES = {0: False, 1: True}

    def test_valid_values(self):
        reader = ByteReader(b'\x00\x01')
        self.assertIs(reader.flag('iron_man', self.VALUES), False)
        self.assertIs(reader.flag('iron_man', self.VALUES), True)

    def test_invalid_value(self):
        reader = ByteReader(b'\x02')
        with self.assertRaises(InvalidEnum) as ctx:
            reader.flag('iron_man', self.VALUES)
        self.assertEqual(ctx.exception.field, 'iron_man')


class TestPacking(unittest.TestCase):
    """Tests for the encode-side helpers."""

    def test_pack_u32(self):
        self.assertEqual(pack_u32(23), b'\x17\x00\x00\x00')

    def test_length_prefix_recomputed(self):
        self.assertEqual(pack_length_prefixed(b'japan'), b'\x05\x00\x00\x00japan')

    def test_pack_string_counts_bytes_not_chars(self):
        """Length prefix is the UTF-8 byte length."""
        packed = pack_string('Zoë')
        self.assertEqual(packed[:4], b'\x04\x00\x00\x00')


class TestDecodeError(unittest.TestCase):
    """Tests for error context."""

    def test_message_includes_field_and_offset(self):
        err = MarkerNotFound("Marker missing", 'soldier_end', 0x1F4)
        self.assertIn("soldier_end", str(err))
        self.assertIn("0x1F4", str(err))

    def test_subclasses(self):
        for cls in (TruncatedInput, MarkerNotFound, InvalidEncoding, InvalidEnum):
            self.assertTrue(issubclass(cls, DecodeError))


if __name__ == '__main__':
    unittest.main()
