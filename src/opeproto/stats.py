#!/usr/bin/env python

"""Sampling over value ranges.

Bridges the hypergeometric sampler to the integer ranges the cipher works
with.
"""

from .errors import OutOfRangeError
from .hgd import rhyper


def sample_hgd(in_range, out_range, nsample, tape):
    """Map a ciphertext split point to the matching plaintext split point.

    Counts how many of the ``in_range.size()`` plaintexts land among the
    first ``nsample - out_range.start + 1`` ciphertexts of ``out_range``
    under a random strictly increasing embedding, and returns the last such
    plaintext.

    Parameters
    ----------
    in_range, out_range : ValueRange
        Plaintext and ciphertext ranges, ``in_range.size() <= out_range.size()``.
    nsample : int
        Split point inside ``out_range``.
    tape : CoinTape
        Coin source.  Left untouched when the two ranges have equal size.

    Returns
    -------
    int
        The plaintext split point.  A draw of zero plaintexts is clamped to
        ``in_range.start``.
    """
    in_size = in_range.size()
    out_size = out_range.size()
    if in_size > out_size:
        raise OutOfRangeError(
            "input range size %d exceeds output range size %d"
            % (in_size, out_size))
    if not out_range.contains(nsample):
        raise OutOfRangeError("split point %d is not in %r"
                              % (nsample, out_range))

    nsample_index = nsample - out_range.start + 1
    if in_size == out_size:
        return in_range.start + nsample_index - 1

    in_sample_num = rhyper(nsample_index, in_size, out_size - in_size, tape)
    if in_sample_num == 0:
        return in_range.start

    in_sample = in_range.start + in_sample_num - 1
    if not in_range.contains(in_sample):
        raise OutOfRangeError("sampled plaintext %d is not in %r"
                              % (in_sample, in_range))
    return in_sample


def sample_uniform(value_range, tape):
    """Pick one value of *value_range* by coin-driven bisection.

    Each coin selects the lower half ``[start, mid]`` (False) or the upper
    half ``[mid + 1, end]`` (True) with ``mid = (start + end) // 2``, so one
    coin is used per halving and none for a single-value range.
    """
    start = value_range.start
    end = value_range.end
    while start < end:
        mid = (start + end) // 2
        if tape.next_bit():
            start = mid + 1
        else:
            end = mid
    return start
