from __future__ import annotations
import math
import random
import string
import pytest # type: ignore
import numpy as np # type: ignore
from streamsketch.lib.errors import InvalidParameterError
from streamsketch.lib.hashing import murmur3_32
from streamsketch.lib.hyperloglog import (
    HyperLogLog,
    LARGE_RANGE_THRESHOLD,
    MAX_PRECISION,
    MIN_PRECISION,
    correct_estimate,
    estimate,
    get_alpha,
)

def fixed_hashes(table):
    """Hash capability returning preset codes, for bit-level checks."""
    return lambda s: table[s]

def random_strings(n: int, rng: random.Random, length: int = 12):
    return [''.join(rng.choices(string.ascii_letters + string.digits, k=length)) for _ in range(n)]

@pytest.mark.quick
class TestHyperLogLogQuick:
    """Quick tests for HyperLogLog class."""

    def test_init(self):
        """Test basic initialization."""
        sketch = HyperLogLog(precision=8)
        assert sketch.precision == 8
        assert sketch.num_registers == 256
        assert sketch.registers.shape == (256,)
        assert sketch.item_count == 0
        assert sketch.is_empty()

    def test_default_precision(self):
        sketch = HyperLogLog(["a"])
        assert sketch.precision == 12
        assert sketch.num_registers == 4096

    def test_precision_bounds(self):
        """Test precision bounds checking."""
        assert MIN_PRECISION == 1
        assert MAX_PRECISION == 31
        with pytest.raises(InvalidParameterError):
            HyperLogLog(precision=MIN_PRECISION - 1)
        with pytest.raises(InvalidParameterError):
            HyperLogLog(precision=MAX_PRECISION + 1)
        with pytest.raises(InvalidParameterError):
            estimate(["a"], b=-1)
        with pytest.raises(InvalidParameterError):
            estimate([], b=32)

    def test_low_precisions_accepted(self):
        """b = 1..3 fall through to the general alpha formula."""
        for b in (1, 2, 3):
            sketch = HyperLogLog(["a", "b", "c"], precision=b)
            assert sketch.num_registers == 1 << b
            assert sketch.alpha_mm == pytest.approx(0.7213 / (1 + 1.079 / (1 << b)))
            assert sketch.estimate_cardinality() > 0

    def test_single_bit_bucket_index(self):
        """With b = 1 the top bit picks the bucket and 31 bits remain."""
        hashes = {
            "a": -(1 << 31),   # 0x80000000: bucket 1, remainder 0 -> rank 33
            "b": 0x40000000,   # bucket 0, remainder 0x80000000 -> rank 1
        }
        sketch = HyperLogLog(["a", "b"], precision=1, hash_fn=fixed_hashes(hashes))
        assert sketch.registers.tolist() == [1, 33]

    def test_high_precision_bucket_index(self):
        """With b = 20 the remainder keeps only the low 12 bits."""
        hashes = {"a": 0x00000801}   # bucket 0, remainder 0x80100000 -> rank 1
        sketch = HyperLogLog(["a"], precision=20, hash_fn=fixed_hashes(hashes))
        assert sketch.registers[0] == 1
        assert int(np.count_nonzero(sketch.registers)) == 1

    def test_precision_type(self):
        with pytest.raises(InvalidParameterError):
            HyperLogLog(precision=8.5)
        with pytest.raises(InvalidParameterError):
            HyperLogLog(precision="8")
        with pytest.raises(InvalidParameterError):
            HyperLogLog(precision=True)

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            HyperLogLog(precision=0)

    def test_empty_input_estimates_zero(self):
        """Supported precisions estimate 0 for no input."""
        for b in range(MIN_PRECISION, 21):
            assert estimate([], b) == 0.0

    @pytest.mark.slow
    def test_empty_input_estimates_zero_large_precision(self):
        # Register memory is 2^b bytes, so stop short of the 2 GiB table at b = 31
        for b in range(21, 27):
            assert estimate([], b) == 0.0

    def test_numpy_hash_values(self):
        """Hash capabilities may return numpy 32-bit integers."""
        hashes = {"a": np.int32(-1), "b": np.uint32(0x10000000)}
        sketch = HyperLogLog(["a", "b"], precision=4, hash_fn=fixed_hashes(hashes))
        assert sketch.registers[15] == 1
        assert sketch.registers[1] == 33

    def test_alpha(self):
        assert get_alpha(16) == 0.673
        assert get_alpha(32) == 0.697
        assert get_alpha(64) == 0.709
        assert get_alpha(4096) == pytest.approx(0.7213 / (1 + 1.079 / 4096))
        assert HyperLogLog(precision=4).alpha_mm == 0.673

    def test_bucket_index_uses_top_bits(self):
        """Bucket is the top b bits; rank is 1 + leading zeros of the rest."""
        hashes = {
            "a": 0x10000000,   # bucket 1, remainder 0 -> 32 zeros
            "b": -1,           # bucket 15, remainder 0xFFFFFFF0 -> 0 zeros
            "c": 0x04000000,   # bucket 0, remainder 0x40000000 -> 1 zero
        }
        sketch = HyperLogLog(["a", "b", "c"], precision=4, hash_fn=fixed_hashes(hashes))
        expected = np.zeros(16, dtype=np.uint8)
        expected[1] = 33
        expected[15] = 1
        expected[0] = 2
        assert np.array_equal(sketch.registers, expected)

    def test_register_keeps_maximum(self):
        hashes = {
            "low": 0x08000000,   # bucket 0, rank 1
            "high": 0x00100000,  # bucket 0, remainder 0x01000000 -> rank 8
        }
        hash_fn = fixed_hashes(hashes)
        forward = HyperLogLog(["high", "low"], precision=4, hash_fn=hash_fn)
        backward = HyperLogLog(["low", "high"], precision=4, hash_fn=hash_fn)
        assert forward.registers[0] == 8
        assert backward.registers[0] == 8

    def test_single_element_uses_linear_counting(self):
        hashes = {"x": 0x08000000}
        value = estimate(["x"], b=4, hash_fn=fixed_hashes(hashes))
        assert value == pytest.approx(16 * math.log(16 / 15))

    def test_duplicates_do_not_change_estimate(self):
        assert estimate(["a"] * 100) == estimate(["a"])
        sketch = HyperLogLog(["a"] * 100)
        assert sketch.item_count == 100

    def test_order_independence(self):
        """Permuting the input yields identical registers."""
        rng = random.Random(7)
        items = random_strings(2000, rng)
        shuffled = list(items)
        rng.shuffle(shuffled)
        first = HyperLogLog(items, precision=10)
        second = HyperLogLog(shuffled, precision=10)
        assert np.array_equal(first.registers, second.registers)
        assert first.estimate_cardinality() == second.estimate_cardinality()

    def test_determinism(self):
        items = [f"item{i}" for i in range(500)]
        assert np.array_equal(HyperLogLog(items).registers, HyperLogLog(items).registers)
        assert estimate(items) == estimate(items)

    def test_accepts_generator(self):
        items = [f"item{i}" for i in range(100)]
        assert estimate(s for s in items) == estimate(items)

    def test_registers_read_only(self):
        sketch = HyperLogLog(["a", "b"])
        with pytest.raises(ValueError):
            sketch.registers[0] = 5

    def test_injected_hash(self):
        items = [f"item{i}" for i in range(1000)]
        default = HyperLogLog(items)
        murmur = HyperLogLog(items, hash_fn=murmur3_32)
        assert not np.array_equal(default.registers, murmur.registers)

    def test_stats(self):
        sketch = HyperLogLog(["a", "b", "c"], precision=6)
        stats = sketch.stats()
        assert stats["precision"] == 6
        assert stats["num_registers"] == 64
        assert stats["item_count"] == 3
        assert stats["zero_registers"] >= 61
        assert stats["estimate"] == sketch.estimate_cardinality()

    def test_debug_output(self, capsys):
        HyperLogLog(["a"], precision=4, debug=True)
        assert "DEBUG: HyperLogLog" in capsys.readouterr().out


@pytest.mark.quick
class TestRangeCorrection:
    """Tests for the small- and large-range corrections."""

    def test_small_range_with_empty_registers(self):
        assert correct_estimate(100.0, 4096, 4000) == pytest.approx(4096 * math.log(4096 / 4000))

    def test_small_range_without_empty_registers(self):
        assert correct_estimate(5000.0, 4096, 0) == 5000.0

    def test_small_range_boundary_is_inclusive(self):
        assert correct_estimate(2.5 * 4096, 4096, 100) == pytest.approx(4096 * math.log(4096 / 100))

    def test_mid_range_unchanged(self):
        assert correct_estimate(10241.0, 4096, 5) == 10241.0
        assert correct_estimate(float(LARGE_RANGE_THRESHOLD), 4096, 0) == float(LARGE_RANGE_THRESHOLD)

    def test_large_range(self):
        raw = 2e8
        assert raw > LARGE_RANGE_THRESHOLD
        expected = -(2 ** 32) * math.log(1 - raw / 2 ** 32)
        assert correct_estimate(raw, 4096, 0) == pytest.approx(expected)
        assert correct_estimate(raw, 4096, 0) > raw

    def test_large_range_saturated(self):
        assert correct_estimate(float(2 ** 33), 65536, 0) == math.inf

    def test_threshold_value(self):
        assert LARGE_RANGE_THRESHOLD == 143165576


@pytest.mark.full
class TestHyperLogLogFull:
    """Full tests for HyperLogLog class."""

    def test_cardinality_accuracy(self):
        """Estimates stay within 10% for b=12, n=10000 over repeated samples."""
        n = 10000
        for trial in range(5):
            rng = random.Random(trial)
            items = random_strings(n, rng)
            error = abs(estimate(items, b=12) - n) / n
            assert error < 0.1, f"trial {trial}: relative error {error:.3f}"

    def test_accuracy_with_duplicates(self):
        rng = random.Random(99)
        distinct = random_strings(5000, rng)
        stream = distinct * 3
        rng.shuffle(stream)
        error = abs(estimate(stream, b=12) - 5000) / 5000
        assert error < 0.1

    @pytest.mark.slow
    def test_accuracy_with_murmur(self):
        items = [f"user-{i}" for i in range(20000)]
        error = abs(estimate(items, b=14, hash_fn=murmur3_32) - 20000) / 20000
        assert error < 0.05

    def test_small_cardinalities(self):
        """Linear counting keeps small sets close to exact."""
        for n in (1, 10, 100):
            items = [f"key{i}" for i in range(n)]
            assert abs(estimate(items, b=12) - n) <= max(1.0, 0.05 * n)
