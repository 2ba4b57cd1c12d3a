"""
streamsketch - Approximate summaries of string streams: HyperLogLog, Bloom filter, Count-Min
"""

from streamsketch.lib.errors import InvalidParameterError
from streamsketch.lib.hashing import hash_family, murmur3_32, xxhash32
from streamsketch.lib.hyperloglog import HyperLogLog, estimate
from streamsketch.lib.bloomfilter import BloomFilter
from streamsketch.lib.countmin import CountMinSketch

__version__ = '0.1.0'

__all__ = [
    'InvalidParameterError',
    'hash_family',
    'murmur3_32',
    'xxhash32',
    'HyperLogLog',
    'estimate',
    'BloomFilter',
    'CountMinSketch',
]
