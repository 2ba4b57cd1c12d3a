from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional
import numpy as np # type: ignore
from streamsketch.lib.hashing import HashFunction, to_signed32, xxhash32

class AbstractSketch(ABC):
    """Base class for all sketch types.

    A sketch is filled exactly once, from a complete input collection, inside
    its constructor. Its tables are then frozen and every public method only
    reads them.
    """

    def __init__(self, hash_fn: Optional[HashFunction] = None, debug: bool = False):
        """Initialize shared sketch state.

        Args:
            hash_fn: Hash capability mapping an element to a 32-bit integer.
                     Defaults to xxhash32.
            debug: Whether to print debug information
        """
        self.hash_fn = hash_fn if hash_fn is not None else xxhash32
        self.debug = debug

    @abstractmethod
    def _add_string(self, s: str) -> None:
        """Route one element into the sketch's tables."""
        pass

    def _add_batch(self, strings: Iterable[str]) -> None:
        """Route every element of strings into the sketch's tables.

        Args:
            strings: Elements to add, consumed once
        """
        for s in strings:
            self._add_string(s)

    @abstractmethod
    def stats(self) -> Dict[str, Any]:
        """Summarize the built sketch.

        Returns:
            Dictionary of sizing parameters and table statistics
        """
        pass

    def hash_str(self, s: str) -> int:
        """Hash an element with the sketch's hash capability.

        Args:
            s: Element to hash

        Returns:
            Signed 32-bit hash value
        """
        return to_signed32(self.hash_fn(s))

    @staticmethod
    def _freeze(table: np.ndarray) -> np.ndarray:
        """Mark a finished table read-only and return it."""
        table.setflags(write=False)
        return table
