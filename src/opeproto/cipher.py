#!/usr/bin/env python

r"""Order-preserving encryption of bounded integers.

The cipher lazily samples a random strictly increasing function from the
plaintext range into the ciphertext range.  Each step halves the current
ciphertext range at

    :math:`mid = (start_{out} - 1) + \lceil size_{out} / 2 \rceil`

and draws, from the hypergeometric distribution, how many of the current
plaintexts land at or below ``mid``.  The coins for that draw come from a
tape keyed by ``mid`` itself, so any later query that reaches the same node
makes the same split.  Once a single plaintext remains, its ciphertext is
picked uniformly from the remaining ciphertext range with a tape keyed by
the plaintext.

Decryption walks the same splits, choosing branches by the ciphertext, and
replays the final uniform pick to check that the ciphertext is genuine.
"""

import json
import logging
import numbers
import os

from .errors import (InvalidCiphertextError, InvalidRangeLimitsError,
                     OutOfRangeError)
from .stats import sample_hgd, sample_uniform
from .tape import tape_gen

logger = logging.getLogger(__name__)

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1

DEFAULT_IN_RANGE_START = 0
DEFAULT_IN_RANGE_END = 2 ** 15 - 1
DEFAULT_OUT_RANGE_START = 0
DEFAULT_OUT_RANGE_END = 2 ** 15 - 1


class ValueRange(object):
    """An inclusive range of signed 32-bit integers ``[start, end]``."""

    def __init__(self, start, end):
        for limit in (start, end):
            if (isinstance(limit, bool)
                    or not isinstance(limit, numbers.Integral)):
                raise InvalidRangeLimitsError(
                    "range limits must be integers, got %r" % (limit,))
            if not INT32_MIN <= limit <= INT32_MAX:
                raise InvalidRangeLimitsError(
                    "range limit %d does not fit 32 bits" % limit)
        start = int(start)
        end = int(end)
        if start > end:
            raise InvalidRangeLimitsError(
                "range start %d is greater than end %d" % (start, end))
        self.start = start
        self.end = end

    def size(self):
        return self.end - self.start + 1

    def contains(self, number):
        return self.start <= number <= self.end

    def copy(self):
        return ValueRange(self.start, self.end)

    def as_tuple(self):
        return (self.start, self.end)

    def __eq__(self, other):
        if not isinstance(other, ValueRange):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __hash__(self):
        return hash(self.as_tuple())

    def __repr__(self):
        return 'ValueRange(%d, %d)' % (self.start, self.end)


class Cipher(object):
    """Order-preserving cipher over a pair of integer ranges.

    Parameters
    ----------
    key : bytes
        Secret key.  See :meth:`generate_key`.
    in_range : ValueRange or None
        Plaintext domain, ``[0, 2**15 - 1]`` by default.
    out_range : ValueRange or None
        Ciphertext domain, ``[0, 2**15 - 1]`` by default.  Must hold at
        least as many values as ``in_range``.
    keyed : bool
        Mix the key into every coin tape (default).  With False the tapes
        depend on the node values alone and every key yields the same
        mapping.
    """

    def __init__(self, key, in_range=None, out_range=None, keyed=True):
        if not isinstance(key, (bytes, bytearray)):
            raise TypeError("key must be bytes")
        if in_range is None:
            in_range = ValueRange(DEFAULT_IN_RANGE_START, DEFAULT_IN_RANGE_END)
        if out_range is None:
            out_range = ValueRange(DEFAULT_OUT_RANGE_START,
                                   DEFAULT_OUT_RANGE_END)
        if in_range.size() > out_range.size():
            raise OutOfRangeError(
                "plaintext range %r is larger than ciphertext range %r"
                % (in_range, out_range))

        self._key = bytes(key)
        self._in_range = in_range.copy()
        self._out_range = out_range.copy()
        self._keyed = keyed
        logger.debug("cipher over %r -> %r (keyed=%s)",
                     self._in_range, self._out_range, keyed)

    @property
    def key(self):
        return self._key

    @property
    def in_range(self):
        return self._in_range.copy()

    @property
    def out_range(self):
        return self._out_range.copy()

    @property
    def keyed(self):
        return self._keyed

    @staticmethod
    def generate_key(block_size=32):
        """Return *block_size* random bytes from ``os.urandom``."""
        if block_size < 1:
            raise ValueError("block_size must be positive, got %d"
                             % block_size)
        return os.urandom(block_size)

    def _tape(self, node):
        return tape_gen(self._key, node, self._keyed)

    def _split(self, in_range, out_range):
        """Return ``(mid, x)``: the ciphertext and plaintext split points."""
        mid = out_range.start - 1 + (out_range.size() + 1) // 2
        x = sample_hgd(in_range, out_range, mid, self._tape(mid))
        return mid, x

    def encrypt(self, plaintext):
        """Encrypt an integer of the plaintext range.

        Raises
        ------
        OutOfRangeError
            If *plaintext* is outside ``in_range``.
        """
        if not self._in_range.contains(plaintext):
            raise OutOfRangeError("plaintext %d is not in %r"
                                  % (plaintext, self._in_range))

        in_range = self._in_range
        out_range = self._out_range
        depth = 0
        while in_range.size() > 1:
            mid, x = self._split(in_range, out_range)
            if plaintext <= x:
                in_range = ValueRange(in_range.start, x)
                out_range = ValueRange(out_range.start, mid)
            else:
                in_range = ValueRange(x + 1, in_range.end)
                out_range = ValueRange(mid + 1, out_range.end)
            depth += 1

        logger.debug("encrypt reached a leaf at depth %d", depth)
        return sample_uniform(out_range, self._tape(plaintext))

    def decrypt(self, ciphertext):
        """Decrypt an integer of the ciphertext range.

        Raises
        ------
        OutOfRangeError
            If *ciphertext* is outside ``out_range``.
        InvalidCiphertextError
            If no plaintext encrypts to *ciphertext*.
        """
        if not self._out_range.contains(ciphertext):
            raise OutOfRangeError("ciphertext %d is not in %r"
                                  % (ciphertext, self._out_range))

        in_range = self._in_range
        out_range = self._out_range
        depth = 0
        try:
            while in_range.size() > 1:
                mid, x = self._split(in_range, out_range)
                if ciphertext <= mid:
                    in_range = ValueRange(in_range.start, x)
                    out_range = ValueRange(out_range.start, mid)
                else:
                    in_range = ValueRange(x + 1, in_range.end)
                    out_range = ValueRange(mid + 1, out_range.end)
                depth += 1
        except InvalidRangeLimitsError:
            raise InvalidCiphertextError(
                "ciphertext %d falls in an empty plaintext range"
                % ciphertext) from None

        logger.debug("decrypt reached a leaf at depth %d", depth)
        plaintext = in_range.start
        if sample_uniform(out_range, self._tape(plaintext)) != ciphertext:
            raise InvalidCiphertextError("invalid ciphertext %d" % ciphertext)
        return plaintext

    def to_json(self):
        """Export the range configuration as JSON.  The key is not included."""
        return json.dumps({
            'in_range': list(self._in_range.as_tuple()),
            'out_range': list(self._out_range.as_tuple()),
            'keyed': self._keyed,
        })

    @staticmethod
    def from_json(key, option_string):
        """Create a new Cipher from *key* and an exported JSON string."""
        options = json.loads(option_string)
        in_range = options.get('in_range')
        out_range = options.get('out_range')
        return Cipher(
            key,
            ValueRange(*in_range) if in_range is not None else None,
            ValueRange(*out_range) if out_range is not None else None,
            keyed=options.get('keyed', True))
