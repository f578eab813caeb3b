"""
Core exact summation implementations.

This module contains the IEEE-754 bit decoder, the exponent-binned exact
accumulator and the classical Kahan accumulator used as a baseline.
"""

import enum
import logging
import math
import os
import struct
from typing import Iterable, NamedTuple, Optional, Tuple, Union

import mpmath
import numpy as np
import torch

from .reduction import BinAdder, to_double

logger = logging.getLogger(__name__)

# IEEE-754 binary64 layout
EXPONENT_BITS = 11
MANTISSA_BITS = 52  # Not counting the implicit bit
EXPONENT_BIAS = (1 << (EXPONENT_BITS - 1)) - 1
NUM_BINS = 1 << EXPONENT_BITS

EXPONENT_MASK = NUM_BINS - 1
MANTISSA_MASK = (1 << MANTISSA_BITS) - 1
IMPLICIT_BIT = 1 << MANTISSA_BITS
SIGN_SHIFT = 63

# Wide enough to reduce any accumulator state without rounding
EXACT_PRECISION = 2176
# Narrower reductions can round intermediate sums
MIN_PRECISION = EXACT_PRECISION

_MASK64 = (1 << 64) - 1
_DOUBLE = struct.Struct("<d")
_UINT64 = struct.Struct("<Q")

# Mantissas are summed in two int64 halves per chunk in add_many
_CHUNK_SIZE = 1 << 20
_HALF_BITS = 32
_HALF_MASK = (1 << _HALF_BITS) - 1


class FloatCategory(enum.Enum):
    """IEEE-754 classification of a double."""

    ZERO = "zero"
    SUBNORMAL = "subnormal"
    NORMAL = "normal"
    INFINITE = "infinite"
    NAN = "nan"


class DecodedFloat(NamedTuple):
    """
    Decoded fields of a double.

    Attributes:
        sign: 0 for positive, 1 for negative
        biased_exponent: Stored exponent field (0 for zeros and subnormals)
        mantissa: Full mantissa, implicit bit included for normal values
        category: IEEE-754 category of the value
    """

    sign: int
    biased_exponent: int
    mantissa: int
    category: FloatCategory


def float_to_bits(value: float) -> int:
    """Return the 64-bit IEEE-754 pattern of a double."""
    return _UINT64.unpack(_DOUBLE.pack(float(value)))[0]


def decode_bits(bits: int) -> DecodedFloat:
    """
    Split a 64-bit IEEE-754 pattern into its fields.

    Every bit pattern is accepted, including signaling NaNs and both
    signed zeros.

    Args:
        bits: Raw 64-bit pattern (higher bits are ignored)

    Returns:
        DecodedFloat with the sign, biased exponent, full mantissa and category
    """
    bits &= _MASK64
    sign = bits >> SIGN_SHIFT
    exponent = (bits >> MANTISSA_BITS) & EXPONENT_MASK
    fraction = bits & MANTISSA_MASK

    if exponent == EXPONENT_MASK:
        category = FloatCategory.NAN if fraction else FloatCategory.INFINITE
        return DecodedFloat(sign, exponent, fraction, category)
    if exponent == 0:
        category = FloatCategory.SUBNORMAL if fraction else FloatCategory.ZERO
        return DecodedFloat(sign, 0, fraction, category)
    return DecodedFloat(sign, exponent, fraction | IMPLICIT_BIT, FloatCategory.NORMAL)


def decode(value: float) -> DecodedFloat:
    """Decode a double into sign, biased exponent, full mantissa and category."""
    return decode_bits(float_to_bits(value))


def default_precision() -> int:
    """
    Working precision (bits) used when an accumulator is created without one.

    Honors the EXACTSUM_PRECISION environment variable (which may only
    widen the reduction past EXACT_PRECISION), otherwise returns
    EXACT_PRECISION.
    """
    raw = os.environ.get("EXACTSUM_PRECISION", "").strip()
    if not raw:
        return EXACT_PRECISION
    try:
        precision = int(raw)
    except ValueError:
        raise ValueError(f"EXACTSUM_PRECISION must be an integer, got {raw!r}") from None
    if precision < MIN_PRECISION:
        raise ValueError(f"EXACTSUM_PRECISION must be at least {MIN_PRECISION}, got {precision}")
    return precision


def as_float64_array(values: Union[Iterable[float], torch.Tensor, np.ndarray]) -> np.ndarray:
    """Flatten lists, arrays and tensors into a contiguous float64 array."""
    if isinstance(values, torch.Tensor):
        values = values.detach().to(torch.float64).cpu().numpy()
    elif not isinstance(values, (np.ndarray, list, tuple)):
        values = list(values)
    return np.ascontiguousarray(np.asarray(values, dtype=np.float64).ravel())


class ExactAccumulator:
    """
    Order-independent exact accumulator for doubles.

    Every finite value is added into the bin of its biased exponent as an
    integer mantissa, so accumulation is exact, commutative and associative.
    The rounded result is only computed when requested.

    Each bin is a 96-bit signed integer: a uint64 low part that wraps like
    two's-complement arithmetic and an int32 carry counter holding the high
    part. Infinities and NaNs are tallied separately.

    Attributes:
        plus_infs: Number of +inf values added
        minus_infs: Number of -inf values added
        nan_count: Number of NaN values added
        precision: Working precision (bits) of the reduction
    """

    def __init__(self, precision: Optional[int] = None):
        """
        Initialize an empty accumulator.

        Args:
            precision: Working precision in bits for the reduction, at
                least EXACT_PRECISION (default: default_precision())
        """
        if precision is None:
            precision = default_precision()
        if precision < MIN_PRECISION:
            raise ValueError(f"precision must be at least {MIN_PRECISION} bits, got {precision}")

        self.precision = precision
        self._ctx = mpmath.MPContext()
        self._ctx.prec = precision

        self._lo = np.zeros(NUM_BINS, dtype=np.uint64)
        self._hi = np.zeros(NUM_BINS, dtype=np.int32)
        self.plus_infs = 0
        self.minus_infs = 0
        self.nan_count = 0

    def add(self, value: float):
        """
        Add a double to the sum.

        Args:
            value: Any double, including signed zeros, infinities and NaNs
        """
        sign, exponent, mantissa, category = decode(value)

        if category is FloatCategory.NORMAL or category is FloatCategory.SUBNORMAL:
            prev = int(self._lo[exponent])
            if sign:
                new = (prev - mantissa) & _MASK64
                self._lo[exponent] = new
                if new > prev:
                    self._hi[exponent] -= 1
            else:
                new = (prev + mantissa) & _MASK64
                self._lo[exponent] = new
                if new < prev:
                    self._hi[exponent] += 1
        elif category is FloatCategory.INFINITE:
            if sign:
                self.minus_infs += 1
            else:
                self.plus_infs += 1
        elif category is FloatCategory.NAN:
            self.nan_count += 1
        # Signed zeros leave the sum unchanged

    def add_many(self, values: Union[Iterable[float], torch.Tensor, np.ndarray]):
        """
        Add every element of a sequence, array or tensor.

        The resulting state is identical to calling add() on each element.

        Args:
            values: Values to add; arrays and tensors are flattened
        """
        data = as_float64_array(values)
        for start in range(0, data.size, _CHUNK_SIZE):
            self._add_chunk(data[start:start + _CHUNK_SIZE])

    def _add_chunk(self, chunk: np.ndarray):
        bits = chunk.view(np.uint64)
        signs = (bits >> np.uint64(SIGN_SHIFT)).astype(bool)
        exponents = ((bits >> np.uint64(MANTISSA_BITS)) & np.uint64(EXPONENT_MASK)).astype(np.int64)
        fractions = (bits & np.uint64(MANTISSA_MASK)).astype(np.int64)

        special = exponents == EXPONENT_MASK
        nans = special & (fractions != 0)
        infs = special & (fractions == 0)
        self.nan_count += int(np.count_nonzero(nans))
        self.plus_infs += int(np.count_nonzero(infs & ~signs))
        self.minus_infs += int(np.count_nonzero(infs & signs))

        finite = ~special & ((exponents != 0) | (fractions != 0))
        if not finite.any():
            return
        exponents = exponents[finite]
        signs = signs[finite]
        mantissas = np.where(exponents != 0, fractions[finite] | IMPLICIT_BIT, fractions[finite])

        low = mantissas & _HALF_MASK
        high = mantissas >> _HALF_BITS
        low_sums = np.zeros(NUM_BINS, dtype=np.int64)
        high_sums = np.zeros(NUM_BINS, dtype=np.int64)
        np.add.at(low_sums, exponents, np.where(signs, -low, low))
        np.add.at(high_sums, exponents, np.where(signs, -high, high))

        for index in np.flatnonzero((low_sums != 0) | (high_sums != 0)):
            delta = (int(high_sums[index]) << _HALF_BITS) + int(low_sums[index])
            self._add_to_bin(int(index), delta)

    def _add_to_bin(self, index: int, delta: int):
        total = self.bin_value(index) + delta
        self._lo[index] = total & _MASK64
        self._hi[index] = total >> 64

    def bin_value(self, index: int) -> int:
        """Exact signed sum of the full mantissas stored in one bin."""
        return (int(self._hi[index]) << 64) + int(self._lo[index])

    def populated_bins(self) -> np.ndarray:
        """Indices of the bins holding a nonzero sum."""
        return np.flatnonzero((self._lo != 0) | (self._hi != 0))

    def merge(self, other: "ExactAccumulator"):
        """
        Fold another accumulator's bins and tallies into this one.

        Args:
            other: Accumulator to merge; it is left unchanged
        """
        if not isinstance(other, ExactAccumulator):
            raise TypeError(f"Cannot merge {type(other).__name__} into ExactAccumulator")
        for index in other.populated_bins():
            self._add_to_bin(int(index), other.bin_value(int(index)))
        self.plus_infs += other.plus_infs
        self.minus_infs += other.minus_infs
        self.nan_count += other.nan_count

    def reset(self):
        """Reset the accumulator to zero."""
        self._lo.fill(0)
        self._hi.fill(0)
        self.plus_infs = 0
        self.minus_infs = 0
        self.nan_count = 0

    def _terms(self):
        ctx = self._ctx
        for index in self.populated_bins():
            index = int(index)
            total = self.bin_value(index)
            sign = -1 if total < 0 else 1
            magnitude = abs(total)
            # Subnormal mantissas sit at the smallest normal exponent
            exponent = max(index, 1) - EXPONENT_BIAS

            low = magnitude & MANTISSA_MASK
            if low:
                yield ctx.ldexp(ctx.mpf(sign * low), exponent - MANTISSA_BITS)
            high = magnitude >> MANTISSA_BITS
            if high:
                yield ctx.ldexp(ctx.mpf(sign * high), exponent)

    def exact_value(self) -> Tuple[Optional[mpmath.mpf], bool]:
        """
        Get the unrounded sum.

        Returns:
            Tuple of (sum, is_nan); sum is None when is_nan is True
        """
        if self.nan_count:
            return None, True
        if self.minus_infs:
            if self.plus_infs:
                # (+inf) + (-inf) is NaN
                return None, True
            return self._ctx.mpf("-inf"), False
        if self.plus_infs:
            return self._ctx.mpf("inf"), False

        adder = BinAdder(self._ctx)
        terms = 0
        for term in self._terms():
            adder.add(term)
            terms += 1
        logger.debug("Reduced %d populated bins as %d terms with %d cascades at %d bits",
                     len(self.populated_bins()), terms, adder.cascades, self.precision)
        return adder.value(), False

    def value(self) -> float:
        """Get the sum rounded to the nearest double."""
        total, is_nan = self.exact_value()
        if is_nan:
            return math.nan
        return to_double(total)

    def __float__(self) -> float:
        return self.value()

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(bins={len(self.populated_bins())}, "
                f"plus_infs={self.plus_infs}, minus_infs={self.minus_infs}, "
                f"nan_count={self.nan_count})")


class KahanAccumulator:
    """
    Kahan summation accumulator used as a precision baseline.

    Implements the classic compensated summation algorithm. Unlike
    ExactAccumulator it is order dependent and does not treat infinities
    specially: adding -inf then 0 yields NaN.

    Attributes:
        sum: The accumulated sum
        c: The compensation term tracking lost precision
    """

    def __init__(self, dtype=torch.float64, device=None):
        """
        Initialize Kahan accumulator.

        Args:
            dtype: Data type for the accumulator
            device: Device to place the tensors on
        """
        self.sum = torch.zeros((), dtype=dtype, device=device)
        self.c = torch.zeros((), dtype=dtype, device=device)  # Compensation
        self.dtype = dtype
        self.device = device or torch.device('cpu')

    def add(self, value: Union[torch.Tensor, float]):
        """
        Add value with Kahan compensation.

        Args:
            value: Value to add to the accumulator
        """
        if not isinstance(value, torch.Tensor):
            value = torch.tensor(float(value), dtype=self.dtype, device=self.device)

        y = value - self.c
        t = self.sum + y
        self.c = (t - self.sum) - y
        self.sum = t

    def get(self) -> torch.Tensor:
        """Get compensated sum."""
        return self.sum

    def value(self) -> float:
        """Get compensated sum as a Python float."""
        return self.sum.item()

    def reset(self):
        """Reset the accumulator to zero."""
        self.sum.zero_()
        self.c.zero_()


def kahan_add(a: float, b: float, c: float = 0.0) -> Tuple[float, float]:
    """
    Single-step Kahan addition.

    Args:
        a: Running sum
        b: Value to add
        c: Current compensation term

    Returns:
        Tuple of (new_sum, new_compensation)
    """
    y = b - c
    t = a + y
    new_c = (t - a) - y
    return t, new_c
