"""
Multi-precision reduction of binned partial sums.

The exact accumulator hands its bins over as arbitrary-precision terms.
BinAdder sums them per exponent and moves a partial sum to its new bin
whenever cancellation (or growth) changes its exponent, so no residual is
truncated against a larger neighbour. MultiPrecisionKahan then combines the
bins from the most significant down.
"""

import logging
import math
from typing import List, Tuple

import mpmath

logger = logging.getLogger(__name__)


class MultiPrecisionKahan:
    """
    Kahan compensated summation carried out in mpmath arithmetic.

    Attributes:
        s: The accumulated sum
        c: The compensation term
    """

    def __init__(self, ctx: mpmath.MPContext):
        """
        Initialize the reducer.

        Args:
            ctx: mpmath context whose precision is used for every step
        """
        self.ctx = ctx
        self.s = ctx.mpf(0)
        self.c = ctx.mpf(0)

    def add(self, value: mpmath.mpf):
        """Add value with compensation."""
        y = value - self.c
        t = self.s + y
        self.c = (t - self.s) - y
        self.s = t

    def value(self) -> mpmath.mpf:
        return self.s


class BinAdder:
    """
    Exponent-binned adder for arbitrary-precision terms.

    A term with binary exponent e (as returned by frexp) is added into slot
    e of the non-negative list, or slot -e + 1 of the negative list. A slot
    always holds a value whose exponent matches its index (or zero).

    Attributes:
        nonneg: Partial sums for exponents >= 0, indexed by exponent
        neg: Partial sums for exponents < 0, indexed by -exponent + 1
        cascades: Number of partial sums moved to another slot
    """

    def __init__(self, ctx: mpmath.MPContext):
        """
        Initialize an empty adder.

        Args:
            ctx: mpmath context used for all slot arithmetic
        """
        self.ctx = ctx
        self.nonneg: List[mpmath.mpf] = []
        self.neg: List[mpmath.mpf] = []
        self.cascades = 0

    def _exponent(self, value: mpmath.mpf) -> int:
        return self.ctx.frexp(value)[1]

    def _slot(self, exponent: int) -> Tuple[List[mpmath.mpf], int]:
        if exponent < 0:
            bins, index = self.neg, -exponent + 1
        else:
            bins, index = self.nonneg, exponent
        while len(bins) <= index:
            bins.append(self.ctx.mpf(0))
        return bins, index

    def add(self, term: mpmath.mpf):
        """
        Add a term, moving any slot whose exponent drifts.

        Args:
            term: Finite mpf value
        """
        pending = [term]
        while pending:
            value = pending.pop()
            exponent = self._exponent(value)
            bins, index = self._slot(exponent)
            bins[index] = bins[index] + value
            if self._exponent(bins[index]) != exponent:
                pending.append(bins[index])
                bins[index] = self.ctx.mpf(0)
                self.cascades += 1

    def value(self) -> mpmath.mpf:
        """Sum all slots from the largest exponent to the smallest."""
        total = MultiPrecisionKahan(self.ctx)
        for partial in reversed(self.nonneg):
            total.add(partial)
        for partial in self.neg:
            total.add(partial)
        return total.value()


def to_double(value: mpmath.mpf) -> float:
    """
    Round an mpf to the nearest double, ties to even.

    Rounding is done once on the exact (mantissa, exponent) pair, so
    subnormal results are not double-rounded. Magnitudes beyond the double
    range become infinities.

    Args:
        value: mpf value (finite, infinite or NaN)

    Returns:
        Nearest double
    """
    if mpmath.isnan(value):
        return math.nan
    if mpmath.isinf(value):
        return math.inf if value > 0 else -math.inf

    man, exp = value.man_exp
    # The gmpy backend stores mpz, whose float conversion truncates
    man, exp = int(man), int(exp)
    # man_exp holds the magnitude only
    if value < 0:
        man = -man
    try:
        if exp >= 0:
            return float(man << exp)
        # int / int true division is correctly rounded
        return man / (1 << -exp)
    except OverflowError:
        logger.debug("Sum exceeds the double range, rounding to infinity")
        return math.copysign(math.inf, man)
