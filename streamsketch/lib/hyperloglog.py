from __future__ import annotations
import math
from typing import Any, Dict, Iterable, Optional
import numpy as np # type: ignore
from streamsketch.lib.abstractsketch import AbstractSketch
from streamsketch.lib.errors import InvalidParameterError
from streamsketch.lib.hashing import HashFunction

HASH_SIZE = 32
MIN_PRECISION = 1
MAX_PRECISION = HASH_SIZE - 1
DEFAULT_PRECISION = 12

TWO_TO_32 = float(1 << HASH_SIZE)
# floor(2^32 / 30), compared against a float estimate
LARGE_RANGE_THRESHOLD = (1 << HASH_SIZE) // 30

_MASK32 = (1 << HASH_SIZE) - 1


def get_alpha(num_registers: int) -> float:
    """Bias correction constant for a given number of registers."""
    if num_registers == 16:
        return 0.673
    elif num_registers == 32:
        return 0.697
    elif num_registers == 64:
        return 0.709
    else:
        return 0.7213 / (1 + 1.079 / num_registers)


def correct_estimate(raw: float, num_registers: int, num_zero_registers: int) -> float:
    """Apply the small- and large-range corrections to a raw estimate.

    Args:
        raw: Raw harmonic-mean estimate
        num_registers: Number of registers (m)
        num_zero_registers: How many registers are still zero

    Returns:
        Corrected cardinality estimate
    """
    m = float(num_registers)
    # Small range: linear counting, but only while some register is empty
    if raw <= 2.5 * m:
        if num_zero_registers > 0:
            return m * math.log(m / num_zero_registers)
        return raw

    # Large range: hash collisions start to matter
    if raw > LARGE_RANGE_THRESHOLD:
        log_arg = 1.0 - raw / TWO_TO_32
        if log_arg <= 0.0:
            # Every register saturated; the hash space is exhausted
            return math.inf
        return -TWO_TO_32 * math.log(log_arg)

    return raw


class HyperLogLog(AbstractSketch):
    def __init__(self,
                 elements: Iterable[str] = (),
                 precision: int = DEFAULT_PRECISION,
                 hash_fn: Optional[HashFunction] = None,
                 debug: bool = False):
        """Build a HyperLogLog sketch from a sequence of elements.

        Args:
            elements: Strings to count; duplicates do not change the estimate
            precision: Number of leading hash bits used as the register index
                      (1-31). Memory is 2^precision bytes; the standard
                      error is about 1.04 / sqrt(2^precision)
            hash_fn: Hash capability mapping an element to a 32-bit integer
            debug: Whether to print debug information

        Raises:
            InvalidParameterError: If precision is not a supported integer
        """
        super().__init__(hash_fn=hash_fn, debug=debug)

        if isinstance(precision, bool) or not isinstance(precision, (int, np.integer)):
            raise InvalidParameterError(f"Precision must be an integer, got {precision!r}")
        if precision < MIN_PRECISION:
            raise InvalidParameterError(f"Precision must be at least {MIN_PRECISION}")
        if precision > MAX_PRECISION:
            raise InvalidParameterError(f"Precision must be at most {MAX_PRECISION}")

        self.precision = int(precision)
        self.num_registers = 1 << self.precision
        self.alpha_mm = get_alpha(self.num_registers)
        self.item_count = 0
        self._registers = np.zeros(self.num_registers, dtype=np.uint8)

        self._add_batch(elements)
        self._freeze(self._registers)

        if self.debug:
            print(f"DEBUG: HyperLogLog precision={self.precision}, items={self.item_count}, "
                  f"zero registers={self.num_zero_registers()}")

    @property
    def registers(self) -> np.ndarray:
        """Read-only register array, one entry per bucket."""
        return self._registers

    def _rho(self, hash_val: int) -> int:
        """1 + number of leading zeros of the bits after the bucket index.

        The remainder is the hash shifted left by precision within a 32-bit
        word. An all-zero remainder counts 32 leading zeros.
        """
        remainder = (hash_val << self.precision) & _MASK32
        return HASH_SIZE - remainder.bit_length() + 1

    def _add_string(self, s: str) -> None:
        hash_val = self.hash_str(s) & _MASK32
        idx = hash_val >> (HASH_SIZE - self.precision)
        rank = self._rho(hash_val)
        if rank > self._registers[idx]:
            self._registers[idx] = rank
        self.item_count += 1

    def _register_counts(self) -> np.ndarray:
        """Get counts of registers, indexed by register value (0-33)."""
        return np.bincount(self._registers, minlength=HASH_SIZE + 2)

    def num_zero_registers(self) -> int:
        """Count registers no element has been routed to."""
        return int(self._register_counts()[0])

    def raw_estimate(self) -> float:
        """Calculate the cardinality estimate before range corrections.

        Returns:
            alpha * m^2 / sum(2^-register)
        """
        counts = self._register_counts()
        sum_inv = float(np.sum(counts * np.exp2(-np.arange(len(counts), dtype=np.float64))))
        m = float(self.num_registers)
        return self.alpha_mm * m * m / sum_inv

    def estimate_cardinality(self) -> float:
        """Estimate the number of distinct elements the sketch was built from."""
        return correct_estimate(self.raw_estimate(), self.num_registers, self.num_zero_registers())

    def is_empty(self) -> bool:
        """Check if sketch is empty."""
        return not self._registers.any()

    def stats(self) -> Dict[str, Any]:
        return {
            "precision": self.precision,
            "num_registers": self.num_registers,
            "alpha_mm": self.alpha_mm,
            "item_count": self.item_count,
            "zero_registers": self.num_zero_registers(),
            "max_register": int(self._registers.max()),
            "raw_estimate": self.raw_estimate(),
            "estimate": self.estimate_cardinality(),
        }


def estimate(elements: Iterable[str], b: int = DEFAULT_PRECISION,
             hash_fn: Optional[HashFunction] = None) -> float:
    """Estimate the distinct cardinality of a sequence of strings.

    Args:
        elements: Strings to count
        b: Number of bits used for the bucket index
        hash_fn: Hash capability; defaults to xxhash32

    Returns:
        Non-negative cardinality estimate; 0.0 for empty input
    """
    return HyperLogLog(elements, precision=b, hash_fn=hash_fn).estimate_cardinality()
