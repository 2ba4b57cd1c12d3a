from .errors import InvalidParameterError
from .hashing import hash_family, is_degenerate, murmur3_32, to_signed32, xxhash32
from .hyperloglog import HyperLogLog, estimate
from .bloomfilter import BloomFilter
from .countmin import CountMinSketch

__all__ = [
    'InvalidParameterError',
    'hash_family',
    'is_degenerate',
    'murmur3_32',
    'to_signed32',
    'xxhash32',
    'HyperLogLog',
    'estimate',
    'BloomFilter',
    'CountMinSketch',
]
