# tests/test_strategies.py
"""
The three value producers: trial division, full linear sieve, segmented sieve.

Run: pytest -v
"""

from __future__ import annotations

from math import gcd, isqrt

import pytest
from sympy import divisor_count, divisor_sigma, isprime, primerange

from sigmapairs.primes import PrimeList
from sigmapairs.registry import discover, resolve_strategy
from sigmapairs.strategies import SigmaStrategy
from sigmapairs.strategies.full_sieve import FullRangeSieve, estimated_bytes
from sigmapairs.strategies.naive import NaiveSigmaProvider
from sigmapairs.strategies.segmented import SegmentedSieve, block_ranges, sweep_block
from sigmapairs.utility import (
    SIGMA,
    TAU,
    InvalidInputError,
    ResourceExceededError,
    SigmaOverflowError,
    word_limit,
)

# ---------- helpers -----------------------------------------------------------


def _oracle(k: int, fn=SIGMA) -> list[int]:
    f = divisor_sigma if fn is SIGMA else divisor_count
    return [int(f(n)) for n in range(1, k + 1)]


@pytest.fixture(scope="module")
def sigma_1000():
    return _oracle(1000)


# ---------- naive -------------------------------------------------------------


@pytest.mark.parametrize("n,expected", [(1, 1), (2, 3), (12, 28), (14, 24), (15, 24),
                                        (16, 31), (36, 91), (97, 98), (100, 217)])
def test_naive_known_values(n, expected):
    assert NaiveSigmaProvider().sigma(n) == expected


def test_naive_square_counts_root_once():
    # 49: 1 + 7 + 49, not 1 + 7 + 7 + 49
    assert NaiveSigmaProvider().sigma(49) == 57
    assert NaiveSigmaProvider("tau").sigma(49) == 3


@pytest.mark.parametrize("bad", [0, -1, -100])
def test_naive_rejects_n_below_one(bad):
    with pytest.raises(InvalidInputError):
        NaiveSigmaProvider().sigma(bad)


def test_naive_is_stateless_and_restartable(sigma_1000):
    prov = NaiveSigmaProvider()
    assert list(prov.values(1000)) == sigma_1000
    assert prov.sigma(500) == sigma_1000[499]
    assert list(prov.values(20)) == sigma_1000[:20]


# ---------- full sieve --------------------------------------------------------


def test_full_sieve_table_layout():
    table = FullRangeSieve().compute(15)
    assert len(table) == 16
    assert table[0] == 0
    assert table[1] == 1
    assert table[14] == table[15] == 24


def test_full_sieve_matches_oracle(sigma_1000):
    assert list(FullRangeSieve().values(1000)) == sigma_1000


def test_full_sieve_prime_powers():
    table = FullRangeSieve().compute(1024)
    for e in range(1, 11):
        assert table[2**e] == 2**(e + 1) - 1
    assert table[729] == (3**7 - 1) // 2
    assert table[1000] == 15 * 156     # 2^3 * 5^3


@pytest.mark.parametrize("k", [0, 1, 2])
def test_full_sieve_tiny_ranges(k):
    assert list(FullRangeSieve().values(k)) == _oracle(k)


def test_full_sieve_memory_budget():
    with pytest.raises(ResourceExceededError):
        FullRangeSieve(memory_budget_mb=0.01).compute(10_000)
    # same K fits a normal budget
    assert len(FullRangeSieve(memory_budget_mb=16).compute(10_000)) == 10_001


def test_full_sieve_memory_budget_is_a_memory_error():
    with pytest.raises(MemoryError):
        FullRangeSieve(memory_budget_mb=0).compute(100)


def test_full_sieve_wide_words_use_plain_ints():
    table = FullRangeSieve(word_bits=128).compute(100)
    assert isinstance(table, list)
    assert table[100] == 217


def test_full_sieve_budget_counts_wide_words():
    k = 10_000
    narrow = estimated_bytes(k)
    wide = estimated_bytes(k, word_limit(128))
    assert wide > 2 * narrow
    between_mb = (narrow + wide) / 2 / (1024 * 1024)
    assert len(FullRangeSieve(word_bits=64, memory_budget_mb=between_mb).compute(k)) == k + 1
    with pytest.raises(ResourceExceededError):
        FullRangeSieve(word_bits=128, memory_budget_mb=between_mb).compute(k)


# ---------- segmented sieve ---------------------------------------------------


@pytest.mark.parametrize("block_size", [1, 7, 16, 1000, 100_000])
def test_segmented_matches_oracle(sigma_1000, block_size):
    assert list(SegmentedSieve(block_size=block_size).stream(1000)) == sigma_1000


def test_segmented_stream_block_size_override(sigma_1000):
    seg = SegmentedSieve(block_size=64)
    assert list(seg.stream(1000, 13)) == sigma_1000


@pytest.mark.parametrize("bad", [0, -5])
def test_segmented_rejects_bad_block_size(bad):
    with pytest.raises(InvalidInputError):
        SegmentedSieve(block_size=bad)
    with pytest.raises(InvalidInputError):
        SegmentedSieve(block_size=10).stream(100, bad)


@pytest.mark.parametrize("bad", [0, -2, 1.5, True])
def test_segmented_rejects_bad_worker_count(bad):
    with pytest.raises(InvalidInputError):
        SegmentedSieve(workers=bad)


def test_segmented_rejects_negative_k():
    with pytest.raises(InvalidInputError):
        SegmentedSieve().stream(-1)


def test_segmented_is_lazy():
    calls = []
    seg = SegmentedSieve(block_size=10, on_block=lambda last, k: calls.append(last))
    it = seg.stream(100)
    assert calls == []
    first = [next(it) for _ in range(10)]
    assert first == _oracle(10)
    rest = list(it)
    assert len(rest) == 90
    assert calls == list(range(10, 101, 10))


def test_segmented_blocks_cover_range_in_order():
    got = list(SegmentedSieve(block_size=30).blocks(100))
    assert [lo for lo, _ in got] == [1, 31, 61, 91]
    assert [len(v) for _, v in got] == [30, 30, 30, 10]
    assert list(block_ranges(0, 5)) == []
    assert list(block_ranges(5, 5)) == [(1, 6)]


def test_segmented_reuses_given_prime_list(sigma_1000):
    primes = PrimeList.build(40)
    seg = SegmentedSieve(block_size=97, primes=primes)
    assert seg._primes_for(1000) is primes
    assert list(seg.stream(1000)) == sigma_1000
    # too small for K: a fresh list is built instead
    assert seg._primes_for(5000) is not primes


def test_value_streams_agree_at_ten_thousand():
    k = 10_000
    expected = _oracle(k)
    assert list(NaiveSigmaProvider().values(k)) == expected
    assert list(FullRangeSieve().values(k)) == expected
    for b in (16, 1000, 100_000):
        assert list(SegmentedSieve(block_size=b).stream(k)) == expected, b


def test_segmented_parallel_matches_serial():
    serial = list(SegmentedSieve(block_size=250, workers=1).stream(3000))
    parallel = list(SegmentedSieve(block_size=250, workers=2).stream(3000))
    assert parallel == serial == _oracle(3000)


# ---------- large prime closure -----------------------------------------------


@pytest.mark.parametrize("lo,hi", [
    (40, 49),    # hi - 1 = 48, just below 7^2
    (40, 50),    # hi - 1 = 49 = 7^2
    (40, 51),    # hi - 1 = 50, just above
    (49, 50),    # the square alone
    (110, 121),  # hi - 1 = 120, just below 11^2
    (110, 122),  # hi - 1 = 121 = 11^2
    (1, 2),
])
def test_residual_cofactor_is_one_or_a_large_prime(lo, hi):
    primes = PrimeList.for_range(200)
    blk = sweep_block(lo, hi, primes)
    root = isqrt(hi - 1)
    for i, r in enumerate(blk.rem):
        assert r == 1 or (isprime(r) and r > root), f"N={lo + i}: residual {r}"
    assert blk.close() == _oracle(hi - 1)[lo - 1:]
    assert all(r == 1 for r in blk.rem)


def test_square_boundary_needs_its_root_prime():
    # 7 must be swept for the block ending at 49, otherwise 49 would survive as "prime"
    blk = sweep_block(40, 50, PrimeList.build(7))
    assert blk.rem[49 - 40] == 1
    assert blk.close()[49 - 40] == 57
    with pytest.raises(InvalidInputError):
        sweep_block(40, 50, PrimeList.build(6))


def test_closure_for_prime_blocks():
    primes = PrimeList.for_range(10_000)
    lo, hi = 9_900, 10_001
    vals = sweep_block(lo, hi, primes).close()
    for p in primerange(lo, hi):
        assert vals[p - lo] == p + 1


# ---------- overflow ----------------------------------------------------------


@pytest.mark.parametrize("make", [
    lambda: NaiveSigmaProvider(word_bits=8),
    lambda: FullRangeSieve(word_bits=8),
    lambda: SegmentedSieve(word_bits=8, block_size=16),
], ids=["naive", "full", "segmented"])
def test_overflow_is_reported_not_wrapped(make):
    # σ(120) = 360 does not fit in 8 bits
    with pytest.raises(SigmaOverflowError):
        list(make().values(200))


def test_overflow_for_smooth_n_near_the_width():
    # N = 2^20 * 3^12 fits in 40 bits, σ(N) = (2^21 - 1) * (3^13 - 1) / 2 does not
    n = 2**20 * 3**12
    sigma_n = (2**21 - 1) * (3**13 - 1) // 2
    assert n <= word_limit(40) < sigma_n
    primes = PrimeList.build(isqrt(n))
    with pytest.raises(SigmaOverflowError):
        sweep_block(n, n + 1, primes, limit=word_limit(40))
    assert sweep_block(n, n + 1, primes, limit=word_limit(48)).close() == [sigma_n]


def test_overflow_in_closure_step():
    # 1009 is prime; σ = 1010 > 2^9 - 1 only once the closure multiplies it in
    blk = sweep_block(1009, 1010, PrimeList.build(31), limit=(1 << 9) - 1)
    assert blk.rem == [1009]
    with pytest.raises(SigmaOverflowError):
        blk.close()


# ---------- tau -----------------------------------------------------------------


@pytest.mark.parametrize("make", [
    lambda: NaiveSigmaProvider(TAU),
    lambda: FullRangeSieve("tau"),
    lambda: SegmentedSieve("tau", block_size=33),
], ids=["naive", "full", "segmented"])
def test_tau_variant_matches_divisor_count(make):
    assert list(make().values(500)) == _oracle(500, TAU)


# ---------- registry ------------------------------------------------------------


def test_registry_discovers_all_strategies():
    index = discover()
    assert set(index.strategies) == {"naive", "full", "segmented"}
    for cls in index.strategies.values():
        assert isinstance(cls(), SigmaStrategy)


@pytest.mark.parametrize("name,cls", [
    ("naive", NaiveSigmaProvider),
    ("Full-Sieve", FullRangeSieve),
    ("sieve", FullRangeSieve),
    ("segmented", SegmentedSieve),
    ("seg", SegmentedSieve),
    (SegmentedSieve, SegmentedSieve),
])
def test_registry_resolves_names_and_aliases(name, cls):
    assert resolve_strategy(name) is cls


def test_registry_unknown_name():
    with pytest.raises(InvalidInputError):
        resolve_strategy("quantum")


# ---------- algebraic properties -----------------------------------------------


def test_multiplicativity(sigma_1000):
    s = [0, *sigma_1000]
    for a in range(1, 40):
        for b in range(1, 1000 // a + 1):
            if gcd(a, b) == 1:
                assert s[a * b] == s[a] * s[b]


def test_prime_fixed_point(sigma_1000):
    for p in primerange(2, 1001):
        assert sigma_1000[p - 1] == p + 1
