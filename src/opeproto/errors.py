#!/usr/bin/env python

"""Exception taxonomy for the order-preserving cipher.

Every failure raised by :mod:`opeproto` derives from :class:`OPEError`, so
callers can catch the whole family at once.  The range-related errors also
derive from ``ValueError`` because they are raised for bad argument values.
"""


class OPEError(Exception):
    """Base class for all order-preserving cipher errors."""


class InvalidRangeLimitsError(OPEError, ValueError):
    """A value range was built with ``start > end`` or non 32-bit limits."""


class OutOfRangeError(OPEError, ValueError):
    """A value, or a whole domain, does not fit the configured range."""


class InvalidCiphertextError(OPEError, ValueError):
    """The ciphertext lies in the ciphertext domain but was never produced
    by ``encrypt``."""


class InvalidCoinError(OPEError):
    """A coin tape could not be derived, or produced an impossible draw."""


class NotEnoughCoinsError(OPEError):
    """A coin tape ran dry before the sampler finished."""
