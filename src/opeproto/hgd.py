#!/usr/bin/env python

r"""Hypergeometric sampling driven by a deterministic coin tape.

``rhyper(sample, good, bad, tape)`` returns the number of *good* items in a
sample of ``sample`` items drawn without replacement from an urn holding
``good + bad`` items.  Two algorithms are used, both from Kachitvichyanukul
and Schmeiser (1985):

**HYP** (inversion, ``sample <= 10``)
    Draws the sample one item at a time, each draw taking one uniform.

**H2PE / HRUA** (ratio of uniforms, ``sample > 10``)
    Proposes candidates from a ratio-of-uniforms envelope around the mode
    and accepts them through a three-stage squeeze:

    1. quadratic lower bound on ``2 log x`` (accept),
    2. log-free upper bound (reject),
    3. the exact test ``2 log x <= t`` (accept).

    The stages must run in this order; later stages are reached only when
    the earlier ones are inconclusive.

Uniforms come from :func:`draw_uniform`, which consumes exactly 32 coins, and
log-factorials from :func:`loggam`, a Stirling-series approximation of
:math:`\ln\Gamma(x)`.
"""

import logging
import math

import numpy as np

from .errors import InvalidCoinError, NotEnoughCoinsError

logger = logging.getLogger(__name__)

# Samples larger than this use the rejection algorithm.
INVERSION_THRESHOLD = 10

# Rejected candidates tolerated by hypergeometric_hrua before giving up.
MAX_REJECTIONS = 100000

_UNIFORM_SCALE = float(2 ** 32 - 1)

_LOGGAM_COEFFS = (
    8.333333333333333e-02,
    -2.777777777777778e-03,
    7.936507936507937e-04,
    -5.952380952380952e-04,
    8.417508417508418e-04,
    -1.917526917526918e-03,
    6.410256410256410e-03,
    -2.955065359477124e-02,
    1.796443723688307e-01,
    -1.39243221690590,
)

_HALF_LOG_2PI = 0.5 * math.log(2.0 * math.pi)

# Ratio-of-uniforms envelope constants: 2 sqrt(2/e) and 3 - 2 sqrt(3/e).
_D1 = 1.7155277699214135
_D2 = 0.8989161620588988


def draw_uniform(tape):
    """Map the next 32 coins of *tape* to a float in [0, 1].

    The coins are packed most-significant first into an unsigned 32-bit
    integer which is divided by ``2**32 - 1``.

    Parameters
    ----------
    tape : CoinTape
        Coin source; exactly 32 coins are consumed.

    Returns
    -------
    float
        A value in the closed interval [0, 1].
    """
    bits = tape.take(32)
    word = int.from_bytes(np.packbits(bits).tobytes(), 'big')
    u = word / _UNIFORM_SCALE
    if not 0.0 <= u <= 1.0:
        raise InvalidCoinError("uniform draw %r outside [0, 1]" % u)
    return u


def loggam(x):
    """Natural logarithm of the gamma function, ``ln(Gamma(x))``.

    Arguments up to 7 are shifted above 7 where the series is accurate, and
    the shift is undone with ``Gamma(x + 1) = x Gamma(x)``.

    Parameters
    ----------
    x : float
        A positive real.

    Returns
    -------
    float
        ``ln(Gamma(x))``; exactly 0.0 at 1 and 2.
    """
    if x <= 0.0:
        raise ValueError("loggam is defined for x > 0, got %r" % (x,))
    x0 = float(x)
    if x0 == 1.0 or x0 == 2.0:
        return 0.0
    n = 0
    if x0 <= 7.0:
        n = int(7.0 - x0)
        x0 += n

    x2 = 1.0 / (x0 * x0)
    gl0 = _LOGGAM_COEFFS[9]
    for k in range(8, -1, -1):
        gl0 = gl0 * x2 + _LOGGAM_COEFFS[k]

    gl = gl0 / x0 + _HALF_LOG_2PI + (x0 - 0.5) * math.log(x0) - x0
    for _ in range(n):
        gl -= math.log(x0 - 1.0)
        x0 -= 1.0
    return gl


def _check_counts(good, bad, sample):
    if good < 0 or bad < 0 or sample < 0:
        raise ValueError("good, bad and sample must be non-negative, "
                         "got %r, %r, %r" % (good, bad, sample))
    if sample > good + bad:
        raise ValueError("sample (%r) exceeds the population (%r)"
                         % (sample, good + bad))


def hypergeometric_hyp(tape, good, bad, sample):
    """Hypergeometric variate by sequential inversion.

    Consumes one uniform per item drawn from the smaller of the two groups
    until that group is exhausted or the sample is complete.
    """
    _check_counts(good, bad, sample)
    good = float(good)
    bad = float(bad)
    sample = float(sample)

    d1 = bad + good - sample
    d2 = min(bad, good)

    y = d2
    k = sample
    while y > 0.0 and k > 0.0:
        u = draw_uniform(tape)
        y -= math.floor(u + y / (d1 + k))
        k -= 1.0
        if k == 0.0:
            break

    z = int(d2 - y)
    if good > bad:
        z = int(sample) - z
    return z


def hypergeometric_hrua(tape, good, bad, sample):
    """Hypergeometric variate by ratio-of-uniforms rejection.

    Works on the reduced problem ``m = min(sample, popsize - sample)`` draws
    from the smaller group and reflects the result back at the end.

    Raises
    ------
    NotEnoughCoinsError
        If the tape runs dry, or after ``MAX_REJECTIONS`` rejected
        candidates.
    """
    _check_counts(good, bad, sample)
    good = float(good)
    bad = float(bad)
    sample = float(sample)

    mingoodbad = min(good, bad)
    maxgoodbad = max(good, bad)
    popsize = good + bad
    m = min(sample, popsize - sample)

    d4 = mingoodbad / popsize
    d5 = 1.0 - d4
    d6 = m * d4 + 0.5
    d7 = math.sqrt((popsize - m) * sample * d4 * d5 / (popsize - 1.0) + 0.5)
    d8 = _D1 * d7 + _D2
    d9 = math.floor((m + 1.0) * (mingoodbad + 1.0) / (popsize + 2.0))
    d10 = (loggam(d9 + 1.0) + loggam(mingoodbad - d9 + 1.0)
           + loggam(m - d9 + 1.0) + loggam(maxgoodbad - m + d9 + 1.0))
    d11 = min(min(m, mingoodbad) + 1.0, math.floor(d6 + 16.0 * d7))

    rejections = 0
    while True:
        x = draw_uniform(tape)
        y = draw_uniform(tape)
        if x > 0.0:
            w = d6 + d8 * (y - 0.5) / x
            if 0.0 <= w < d11:
                z = math.floor(w)
                t = d10 - (loggam(z + 1.0) + loggam(mingoodbad - z + 1.0)
                           + loggam(m - z + 1.0)
                           + loggam(maxgoodbad - m + z + 1.0))

                # Squeeze: quadratic accept, log-free reject, exact accept.
                if x * (4.0 - x) - 3.0 <= t:
                    break
                if x * (x - t) < 1.0 and 2.0 * math.log(x) <= t:
                    break

        rejections += 1
        if rejections >= MAX_REJECTIONS:
            raise NotEnoughCoinsError(
                "rejection sampler gave up after %d candidates" % rejections)

    if rejections:
        logger.debug("hrua(good=%d, bad=%d, sample=%d): %d rejections",
                     good, bad, sample, rejections)

    result = int(z)
    if good > bad:
        result = int(m) - result
    if m < sample:
        result = int(good) - result
    return result


def rhyper(sample, good, bad, tape):
    """Draw a hypergeometric variate, choosing the algorithm by sample size.

    Parameters
    ----------
    sample : int
        Number of items drawn.
    good, bad : int
        Sizes of the two groups in the urn.
    tape : CoinTape
        Coin source, owned by this call.

    Returns
    -------
    int
        Number of good items in the sample.
    """
    if sample > INVERSION_THRESHOLD:
        return hypergeometric_hrua(tape, good, bad, sample)
    return hypergeometric_hyp(tape, good, bad, sample)
