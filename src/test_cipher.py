#!/usr/bin/env python3

"""Tests for value ranges and the order-preserving cipher.

Tests cover:
- ValueRange construction, size and membership
- Cipher construction and configuration export
- Round trips and order preservation on equal and unequal domains
- Key separation of the keyed coin tapes
- Rejection of values outside the domains and of forged ciphertexts
"""

import unittest

import numpy as np

import opeproto.cipher
import opeproto.errors
from opeproto.cipher import Cipher, ValueRange


KEY = b'test_key'


class TestValueRange(unittest.TestCase):

    def test_new(self):
        with self.assertRaises(opeproto.errors.InvalidRangeLimitsError):
            ValueRange(5, 3)
        r = ValueRange(3, 5)
        self.assertEqual(r.start, 3)
        self.assertEqual(r.end, 5)
        self.assertEqual(r, ValueRange(3, 5))

    def test_size(self):
        self.assertEqual(ValueRange(3, 5).size(), 3)
        self.assertEqual(ValueRange(-3, -1).size(), 3)
        self.assertEqual(ValueRange(7, 7).size(), 1)

    def test_contains(self):
        r = ValueRange(3, 5)
        self.assertTrue(r.contains(4))
        self.assertTrue(r.contains(3))
        self.assertTrue(r.contains(5))
        self.assertFalse(r.contains(6))
        self.assertFalse(r.contains(2))

    def test_limits_must_fit_32_bits(self):
        ValueRange(-2 ** 31, 2 ** 31 - 1)
        with self.assertRaises(opeproto.errors.InvalidRangeLimitsError):
            ValueRange(0, 2 ** 31)
        with self.assertRaises(opeproto.errors.InvalidRangeLimitsError):
            ValueRange(-2 ** 31 - 1, 0)

    def test_limits_must_be_integers(self):
        with self.assertRaises(opeproto.errors.InvalidRangeLimitsError):
            ValueRange(0.5, 3)
        with self.assertRaises(opeproto.errors.InvalidRangeLimitsError):
            ValueRange(True, 3)

    def test_numpy_limits(self):
        r = ValueRange(np.int64(0), np.int32(9))
        self.assertEqual(r.size(), 10)
        self.assertIs(type(r.start), int)
        self.assertEqual(r, ValueRange(0, 9))
        with self.assertRaises(opeproto.errors.InvalidRangeLimitsError):
            ValueRange(np.float64(0.0), 9)

    def test_invalid_limits_is_value_error(self):
        with self.assertRaises(ValueError):
            ValueRange(5, 3)

    def test_copy_is_independent(self):
        r = ValueRange(1, 10)
        c = r.copy()
        c.end = 20
        self.assertEqual(r.end, 10)


class TestCipherConstruction(unittest.TestCase):

    def test_defaults(self):
        cipher = Cipher(KEY)
        self.assertEqual(cipher.in_range, ValueRange(0, 32767))
        self.assertEqual(cipher.out_range, ValueRange(0, 32767))
        self.assertTrue(cipher.keyed)

    def test_out_range_smaller_than_in_range(self):
        with self.assertRaises(opeproto.errors.OutOfRangeError):
            Cipher(KEY, ValueRange(0, 100), ValueRange(0, 99))

    def test_malformed_bounds(self):
        with self.assertRaises(opeproto.errors.InvalidRangeLimitsError):
            Cipher(KEY, ValueRange(5, 3), None)

    def test_key_must_be_bytes(self):
        with self.assertRaises(TypeError):
            Cipher('test_key')
        Cipher(bytearray(KEY))

    def test_ranges_are_read_only(self):
        cipher = Cipher(KEY, ValueRange(0, 9), ValueRange(0, 99))
        cipher.in_range.end = 50
        self.assertEqual(cipher.in_range, ValueRange(0, 9))

    def test_generate_key(self):
        k1 = Cipher.generate_key()
        k2 = Cipher.generate_key()
        self.assertEqual(len(k1), 32)
        self.assertNotEqual(k1, k2)
        self.assertEqual(len(Cipher.generate_key(16)), 16)
        with self.assertRaises(ValueError):
            Cipher.generate_key(0)

    def test_json_round_trip(self):
        cipher = Cipher(KEY, ValueRange(-50, 49), ValueRange(1000, 50999))
        text = cipher.to_json()
        self.assertNotIn('test_key', text)
        clone = Cipher.from_json(KEY, text)
        self.assertEqual(clone.in_range, cipher.in_range)
        self.assertEqual(clone.out_range, cipher.out_range)
        self.assertEqual(clone.keyed, cipher.keyed)
        for p in (-50, -1, 0, 49):
            self.assertEqual(clone.encrypt(p), cipher.encrypt(p))

    def test_from_json_defaults(self):
        cipher = Cipher.from_json(KEY, '{}')
        self.assertEqual(cipher.in_range, ValueRange(0, 32767))
        self.assertTrue(cipher.keyed)


class TestDefaultCipher(unittest.TestCase):

    def setUp(self):
        self.cipher = Cipher(KEY)

    def test_encrypt_decrypt(self):
        ciphertext = self.cipher.encrypt(5)
        self.assertTrue(self.cipher.out_range.contains(ciphertext))
        self.assertEqual(self.cipher.decrypt(ciphertext), 5)

    def test_order_preserving_encryption(self):
        plaintexts = [3, 1, 4, 5, 9, 2, 6, 5]
        ciphertexts = [self.cipher.encrypt(p) for p in plaintexts]

        plaintexts.sort()
        ciphertexts.sort()

        for index, plaintext in enumerate(plaintexts):
            self.assertEqual(self.cipher.encrypt(plaintext),
                             ciphertexts[index])

    def test_deterministic_across_instances(self):
        other = Cipher(KEY)
        for p in (0, 5, 1234, 32767):
            self.assertEqual(self.cipher.encrypt(p), other.encrypt(p))

    def test_equal_domains_map_by_offset(self):
        cipher = Cipher(KEY, ValueRange(0, 99), ValueRange(1000, 1099))
        for p in (0, 7, 50, 99):
            self.assertEqual(cipher.encrypt(p), 1000 + p)
            self.assertEqual(cipher.decrypt(1000 + p), p)

    def test_out_of_range(self):
        with self.assertRaises(opeproto.errors.OutOfRangeError):
            self.cipher.encrypt(-1)
        with self.assertRaises(opeproto.errors.OutOfRangeError):
            self.cipher.encrypt(32768)
        with self.assertRaises(opeproto.errors.OutOfRangeError):
            self.cipher.decrypt(32768)


class TestExpandingCipher(unittest.TestCase):
    """Ciphertext domain much larger than the plaintext domain."""

    def setUp(self):
        self.cipher = Cipher(KEY, ValueRange(0, 199), ValueRange(0, 9999))

    def test_strictly_increasing(self):
        ciphertexts = np.array([self.cipher.encrypt(p) for p in range(200)])
        self.assertTrue(np.all(np.diff(ciphertexts) > 0))
        self.assertGreaterEqual(ciphertexts[0], 0)
        self.assertLessEqual(ciphertexts[-1], 9999)

    def test_round_trip(self):
        for p in range(200):
            self.assertEqual(self.cipher.decrypt(self.cipher.encrypt(p)), p)

    def test_order_preserving_encryption(self):
        plaintexts = [3, 1, 4, 5, 9, 2, 6, 5]
        ciphertexts = sorted(self.cipher.encrypt(p) for p in plaintexts)
        for index, plaintext in enumerate(sorted(plaintexts)):
            self.assertEqual(self.cipher.encrypt(plaintext),
                             ciphertexts[index])

    def test_not_the_identity(self):
        ciphertexts = [self.cipher.encrypt(p) for p in range(200)]
        self.assertNotEqual(ciphertexts, list(range(200)))

    def test_large_domain_round_trip(self):
        cipher = Cipher(KEY, ValueRange(-1000, 999),
                        ValueRange(-2 ** 31, 2 ** 31 - 1))
        previous = None
        for p in range(-1000, 1000, 37):
            c = cipher.encrypt(p)
            if previous is not None:
                self.assertGreater(c, previous)
            previous = c
            self.assertEqual(cipher.decrypt(c), p)
        self.assertEqual(cipher.decrypt(cipher.encrypt(999)), 999)

    def test_different_keys_differ(self):
        other = Cipher(b'other_key', ValueRange(0, 199), ValueRange(0, 9999))
        mine = [self.cipher.encrypt(p) for p in range(200)]
        theirs = [other.encrypt(p) for p in range(200)]
        self.assertNotEqual(mine, theirs)

    def test_forged_ciphertexts_rejected(self):
        cipher = Cipher(KEY, ValueRange(0, 9), ValueRange(0, 999))
        image = set(cipher.encrypt(p) for p in range(10))
        self.assertEqual(len(image), 10)
        forged = [c for c in range(1000) if c not in image][:25]
        for c in forged:
            with self.assertRaises(opeproto.errors.InvalidCiphertextError):
                cipher.decrypt(c)

    def test_singleton_plaintext_domain(self):
        cipher = Cipher(KEY, ValueRange(42, 42), ValueRange(0, 999))
        c = cipher.encrypt(42)
        self.assertTrue(0 <= c <= 999)
        self.assertEqual(cipher.decrypt(c), 42)


class TestUnkeyedCipher(unittest.TestCase):

    def test_key_is_ignored(self):
        a = Cipher(b'key_a', ValueRange(0, 99), ValueRange(500, 599),
                   keyed=False)
        b = Cipher(b'key_b', ValueRange(0, 99), ValueRange(500, 599),
                   keyed=False)
        for p in range(0, 100, 9):
            self.assertEqual(a.encrypt(p), b.encrypt(p))

    def test_runs_out_of_coins_on_unequal_domains(self):
        # The rejection sampler needs two 32-bit draws; a node tape has one.
        cipher = Cipher(KEY, ValueRange(0, 99), ValueRange(0, 199),
                        keyed=False)
        with self.assertRaises(opeproto.errors.NotEnoughCoinsError):
            cipher.encrypt(50)


if __name__ == '__main__':
    unittest.main()
