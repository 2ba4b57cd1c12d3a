"""Base hash capabilities and the shared hash family.

A hash capability is any callable mapping an element to an integer. Only the
low 32 bits of the result are used, read as a signed 32-bit value. Swapping
the capability is how the sketches are extended to other element types.
"""
from __future__ import annotations
from typing import Callable, List
import mmh3 # type: ignore
import xxhash # type: ignore
from streamsketch.lib.errors import InvalidParameterError

HashFunction = Callable[[str], int]

DEFAULT_SEED = 42
HASH_FAMILY_BITS = 16
HASH_FAMILY_RANGE = 1 << HASH_FAMILY_BITS
_LOW_MASK = HASH_FAMILY_RANGE - 1
_MASK32 = 0xFFFFFFFF


def to_signed32(value: int) -> int:
    """Reinterpret the low 32 bits of value as a two's-complement integer.

    Accepts any integral value, including numpy integer scalars.
    """
    value = int(value) & _MASK32
    if value & 0x80000000:
        return value - (1 << 32)
    return value


def xxhash32(element: str, seed: int = DEFAULT_SEED) -> int:
    """Hash a string with xxHash32.

    Args:
        element: String to hash (UTF-8 encoded before hashing)
        seed: Seed for the hasher

    Returns:
        Signed 32-bit hash value
    """
    hasher = xxhash.xxh32(seed=seed)
    hasher.update(element.encode())
    return to_signed32(hasher.intdigest())


def murmur3_32(element: str, seed: int = 0) -> int:
    """Hash a string with MurmurHash3 (x86, 32-bit) over its UTF-8 bytes.

    Codes differ from MurmurHash3 variants that hash UTF-16 code units or use
    another seed, so estimates are not comparable with sketches built that way.

    Returns:
        Signed 32-bit hash value
    """
    return mmh3.hash(element, seed=seed, signed=True)


def hash_family(base_hash: int, count: int) -> List[int]:
    """Derive count pseudo-independent 16-bit values from one 32-bit hash.

    Double hashing over the two halves of the hash: with high = H >>> 16 and
    low = H & 0xFFFF, value j is (high + j * low) mod 65536.

    If the low half is zero every value equals high, so the family collapses
    to a single hash. This is left as is; see is_degenerate().

    Args:
        base_hash: 32-bit hash (signed or unsigned)
        count: Number of values to derive

    Returns:
        List of count integers in [0, 65536)
    """
    if count < 0:
        raise InvalidParameterError(f"count must be non-negative, got {count}")
    unsigned = int(base_hash) & _MASK32
    high = unsigned >> HASH_FAMILY_BITS
    low = unsigned & _LOW_MASK
    return [(high + j * low) & _LOW_MASK for j in range(count)]


def is_degenerate(base_hash: int) -> bool:
    """True when hash_family() would return the same value for every index."""
    return (int(base_hash) & _LOW_MASK) == 0
