#!/usr/bin/env python

r"""Deterministic coin tapes.

Every sampling step of the cipher consumes coins from a tape that is a pure
function of the cipher key and a single *node* value, a plaintext or
ciphertext integer met during the range-splitting descent.  Encrypt and
decrypt regenerate the same tape for the same node, which is what lets the
decrypt path replay the split decisions of the encrypt path.

Two tapes are provided:

``KeyedTape``
    The node is authenticated with ``HMAC-SHA256`` under the cipher key and
    the 32-byte tag seeds a counter-mode ``SHAKE-256`` expansion:

        block_i = SHAKE-256(tag || i),  i = 0, 1, ...

    with *i* an 8-byte big-endian counter.  The tape never runs out in
    practice.

``NodeTape``
    The 32 bits of the node's 4-byte little-endian encoding and nothing
    else.  The key plays no part, so two keys give the same mapping.  It is
    kept for bit-compatibility with the unkeyed reference mapping.

Bits are expanded most-significant first within each byte.
"""

import hashlib
import hmac
import struct

import numpy as np

from .errors import InvalidCoinError, NotEnoughCoinsError


def node_bytes(node):
    """Encode *node* as a 4-byte little-endian signed integer."""
    try:
        return struct.pack('<i', node)
    except struct.error:
        raise InvalidCoinError(
            "node %r does not fit a signed 32-bit integer" % (node,)) from None


class CoinTape(object):
    """A read-once cursor over a buffer of coin bits.

    Subclasses that can produce more coins override ``_extend``.  A tape is
    owned by exactly one sampling call and is never rewound.

    Parameters
    ----------
    bits : array-like of int/bool or None
        Initial buffer contents.
    """

    def __init__(self, bits=None):
        if bits is None:
            self._bits = np.zeros(0, dtype=np.uint8)
        else:
            self._bits = np.asarray(bits, dtype=np.uint8)
        self._pos = 0

    def _extend(self):
        """Append more bits to the buffer; return False if the tape is finite."""
        return False

    def take(self, n):
        """Consume the next *n* coins.

        Returns
        -------
        numpy.ndarray of uint8
            The coins, in tape order.

        Raises
        ------
        NotEnoughCoinsError
            If fewer than *n* coins are left on a finite tape.
        """
        while len(self._bits) - self._pos < n:
            if not self._extend():
                raise NotEnoughCoinsError(
                    "needed %d coins but only %d remain"
                    % (n, len(self._bits) - self._pos))
        out = self._bits[self._pos:self._pos + n]
        self._pos += n
        return out

    def next_bit(self):
        """Consume a single coin and return it as a bool."""
        return bool(self.take(1)[0])

    @property
    def consumed(self):
        """Number of coins consumed so far."""
        return self._pos

    @property
    def remaining(self):
        """Coins left in the buffer."""
        return len(self._bits) - self._pos


class NodeTape(CoinTape):
    """The 32-bit, key-independent tape of a node value."""

    def __init__(self, node):
        raw = np.frombuffer(node_bytes(node), dtype=np.uint8)
        super().__init__(np.unpackbits(raw))


class KeyedTape(CoinTape):
    """Unbounded tape keyed by ``HMAC-SHA256(key, node)``.

    Parameters
    ----------
    key : bytes
        The cipher key.
    node : int
        Signed 32-bit node value.
    """

    _BLOCK_SIZE = 64

    def __init__(self, key, node):
        super().__init__()
        self._seed = hmac.new(bytes(key), node_bytes(node),
                              hashlib.sha256).digest()
        self._block_index = 0
        self._consumed_before = 0

    def _extend(self):
        h = hashlib.shake_256(
            self._seed + self._block_index.to_bytes(8, 'big'))
        block = np.frombuffer(h.digest(self._BLOCK_SIZE), dtype=np.uint8)
        self._bits = np.concatenate([self._bits[self._pos:],
                                     np.unpackbits(block)])
        self._consumed_before += self._pos
        self._pos = 0
        self._block_index += 1
        return True

    @property
    def consumed(self):
        return self._consumed_before + self._pos

    @property
    def remaining(self):
        """Always None: a keyed tape is unbounded."""
        return None


def tape_gen(key, node, keyed=True):
    """Return a fresh tape for *node*, keyed under *key* unless *keyed* is
    False."""
    if keyed:
        return KeyedTape(key, node)
    return NodeTape(node)
