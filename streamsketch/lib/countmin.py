from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
import numpy as np # type: ignore
from streamsketch.lib.abstractsketch import AbstractSketch
from streamsketch.lib.errors import InvalidParameterError
from streamsketch.lib.hashing import HASH_FAMILY_BITS, HashFunction, hash_family, is_degenerate

# Hash family values are 16-bit, so wider rows would only add unreachable columns
MAX_BUCKET_EXPONENT = HASH_FAMILY_BITS


def _require_positive_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidParameterError(f"{name} must be positive, got {value}")


class CountMinSketch(AbstractSketch):
    """Frequency table that never undercounts.

    The grid has one row per hash and 2^bucket_exponent columns. Every
    occurrence of an element increments one cell per row; the estimate for
    an element is the smallest of its cells, so collisions can only inflate
    it.
    """

    def __init__(self,
                 array_to_count: Iterable[str],
                 bucket_exponent: int,
                 num_hashes: int,
                 hash_fn: Optional[HashFunction] = None,
                 debug: bool = False):
        """Build a Count-Min sketch from a multiset.

        Args:
            array_to_count: Non-empty sequence of strings; each occurrence counts once
            bucket_exponent: log2 of the number of columns, 1-16
            num_hashes: Number of rows (hash functions), at least 1
            hash_fn: Hash capability mapping an element to a 32-bit integer
            debug: Whether to print debug information

        Raises:
            InvalidParameterError: If the input is empty or a size parameter is out of range
        """
        super().__init__(hash_fn=hash_fn, debug=debug)

        _require_positive_int("bucket_exponent", bucket_exponent)
        _require_positive_int("num_hashes", num_hashes)
        if bucket_exponent > MAX_BUCKET_EXPONENT:
            raise InvalidParameterError(
                f"bucket_exponent must be at most {MAX_BUCKET_EXPONENT}, got {bucket_exponent}")
        items = list(array_to_count)
        if not items:
            raise InvalidParameterError("Cannot build a Count-Min sketch from an empty input")

        self.bucket_exponent = int(bucket_exponent)
        self.num_buckets = 1 << self.bucket_exponent
        self.num_hashes = int(num_hashes)
        self.total_count = 0
        self.degenerate_count = 0

        self._rows = np.arange(self.num_hashes)
        self._grid = np.zeros((self.num_hashes, self.num_buckets), dtype=np.int64)
        self._add_batch(items)
        self._freeze(self._grid)

        if self.debug:
            print(f"DEBUG: CountMinSketch rows={self.num_hashes}, buckets={self.num_buckets}, "
                  f"total={self.total_count}, degenerate={self.degenerate_count}")

    @property
    def grid(self) -> np.ndarray:
        """Read-only frequency grid of shape (num_hashes, num_buckets)."""
        return self._grid

    def _columns(self, hash_val: int) -> List[int]:
        return [v % self.num_buckets for v in hash_family(hash_val, self.num_hashes)]

    def _add_string(self, s: str) -> None:
        hash_val = self.hash_str(s)
        if is_degenerate(hash_val):
            self.degenerate_count += 1
        # Rows are distinct, so no cell is addressed twice in one update
        self._grid[self._rows, self._columns(hash_val)] += 1
        self.total_count += 1

    def estimate_frequency(self, element: str) -> int:
        """Estimated number of occurrences of element, never below the true count."""
        return int(self._grid[self._rows, self._columns(self.hash_str(element))].min())

    def query(self, elements: Iterable[str]) -> Dict[str, int]:
        """Estimate the frequency of each distinct element.

        Args:
            elements: Strings to look up; repeats are looked up once

        Returns:
            Mapping of element to estimated frequency
        """
        return {element: self.estimate_frequency(element) for element in dict.fromkeys(elements)}

    def stats(self) -> Dict[str, Any]:
        return {
            "bucket_exponent": self.bucket_exponent,
            "num_buckets": self.num_buckets,
            "num_hashes": self.num_hashes,
            "total_count": self.total_count,
            "nonzero_cells": int(np.count_nonzero(self._grid)),
            "max_cell": int(self._grid.max()),
            "degenerate_count": self.degenerate_count,
        }


def build(multiset: Iterable[str], bucket_exponent: int, num_hashes: int,
          hash_fn: Optional[HashFunction] = None) -> CountMinSketch:
    """Build a Count-Min sketch; see CountMinSketch."""
    return CountMinSketch(multiset, bucket_exponent, num_hashes, hash_fn=hash_fn)
