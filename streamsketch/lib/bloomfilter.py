from __future__ import annotations
import math
import numbers
import warnings
from typing import Any, Dict, Iterable, List, Optional, Set
import numpy as np # type: ignore
from streamsketch.lib.abstractsketch import AbstractSketch
from streamsketch.lib.errors import InvalidParameterError
from streamsketch.lib.hashing import HASH_FAMILY_RANGE, HashFunction, hash_family, is_degenerate


def optimal_num_hashes(epsilon: float) -> int:
    """Number of hash functions for a target false-positive rate.

    k = ceil(-log2(epsilon)), at least 1
    """
    return max(1, math.ceil(-math.log2(epsilon)))


def optimal_num_bits(n: int, epsilon: float) -> int:
    """Bit array size for n items at a target false-positive rate.

    m = ceil(-n * ln(epsilon) / ln(2)^2), at least 1
    """
    return max(1, math.ceil(-n * math.log(epsilon) / (math.log(2) ** 2)))


class BloomFilter(AbstractSketch):
    """Set membership filter with no false negatives.

    The filter is sized from the base set and a target false-positive rate,
    then filled once. Elements of the base set always test present; other
    elements test present with probability close to epsilon.

    All k bit positions of an element come from hash_family() applied to one
    base hash. An element whose hash has a zero low half gets k identical
    positions, which weakens the filter for that element. Such elements are
    counted in degenerate_count rather than rehashed.
    """

    def __init__(self,
                 base_set: Iterable[str],
                 epsilon: float,
                 hash_fn: Optional[HashFunction] = None,
                 debug: bool = False):
        """Build a Bloom filter over base_set.

        Args:
            base_set: Strings the filter must report as present
            epsilon: Target false-positive rate, 0 < epsilon <= 1
            hash_fn: Hash capability mapping an element to a 32-bit integer
            debug: Whether to print debug information

        Raises:
            InvalidParameterError: If epsilon is outside (0, 1]
        """
        super().__init__(hash_fn=hash_fn, debug=debug)

        if isinstance(epsilon, bool) or not isinstance(epsilon, numbers.Real):
            raise InvalidParameterError(f"epsilon must be a real number, got {epsilon!r}")
        if math.isnan(epsilon) or not 0 <= epsilon <= 1:
            raise InvalidParameterError(f"epsilon must be between 0 and 1, got {epsilon}")
        if epsilon == 0:
            raise InvalidParameterError("epsilon of 0 would need an unbounded bit array")

        base = set(base_set)
        self.epsilon = float(epsilon)
        self.num_items = len(base)
        self.num_hashes = optimal_num_hashes(self.epsilon)
        self.num_bits = optimal_num_bits(self.num_items, self.epsilon)
        self.degenerate_count = 0

        if self.num_bits > HASH_FAMILY_RANGE:
            warnings.warn(
                f"Bloom filter needs {self.num_bits} bits but hash family values only reach "
                f"{HASH_FAMILY_RANGE}; the false-positive rate will exceed {self.epsilon}",
                UserWarning
            )

        self._bits = np.zeros(self.num_bits, dtype=bool)
        self._add_batch(base)
        self._freeze(self._bits)

        if self.debug:
            print(f"DEBUG: BloomFilter n={self.num_items}, k={self.num_hashes}, m={self.num_bits}, "
                  f"fill={self.fill_ratio():.3f}, degenerate={self.degenerate_count}")

    @property
    def bits(self) -> np.ndarray:
        """Read-only bit array."""
        return self._bits

    def _indices(self, hash_val: int) -> List[int]:
        return [v % self.num_bits for v in hash_family(hash_val, self.num_hashes)]

    def _add_string(self, s: str) -> None:
        hash_val = self.hash_str(s)
        if is_degenerate(hash_val):
            self.degenerate_count += 1
        self._bits[self._indices(hash_val)] = True

    def contains(self, element: str) -> bool:
        """Check whether element is judged present (all k bits set)."""
        return bool(self._bits[self._indices(self.hash_str(element))].all())

    def __contains__(self, element: str) -> bool:
        return self.contains(element)

    def __len__(self) -> int:
        return self.num_bits

    def query(self, query_set: Iterable[str]) -> Set[str]:
        """Return the elements of query_set judged present.

        Args:
            query_set: Strings to test

        Returns:
            Subset of query_set; always includes any member of the base set
        """
        return {element for element in set(query_set) if self.contains(element)}

    def fill_ratio(self) -> float:
        """Fraction of bits that are set."""
        return float(np.count_nonzero(self._bits)) / self.num_bits

    def expected_false_positive_rate(self) -> float:
        """Theoretical false-positive rate (1 - e^(-kn/m))^k for the built filter."""
        k = self.num_hashes
        return (1.0 - math.exp(-k * self.num_items / self.num_bits)) ** k

    def stats(self) -> Dict[str, Any]:
        return {
            "num_items": self.num_items,
            "epsilon": self.epsilon,
            "num_hashes": self.num_hashes,
            "num_bits": self.num_bits,
            "set_bits": int(np.count_nonzero(self._bits)),
            "fill_ratio": self.fill_ratio(),
            "expected_false_positive_rate": self.expected_false_positive_rate(),
            "degenerate_count": self.degenerate_count,
        }


def build(base_set: Iterable[str], epsilon: float,
          hash_fn: Optional[HashFunction] = None) -> BloomFilter:
    """Build a Bloom filter; see BloomFilter."""
    return BloomFilter(base_set, epsilon, hash_fn=hash_fn)
