# -----------------------------------------------------------------------------
#  segmented.py
#  Block-by-block sieve with O(√K + block size) working memory
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from itertools import islice
from math import isqrt
from multiprocessing import Pool

from sigmapairs.primes import PrimeList
from sigmapairs.registry import strategy
from sigmapairs.runtime import CFG
from sigmapairs.utility import (
    SIGMA,
    DivisorFunction,
    InvalidInputError,
    checked_mul,
    require_bound,
    resolve_function,
    word_limit,
)

DEFAULT_BLOCK_SIZE = 65_536


@dataclass
class Block:
    """
    Working state of one half-open range [lo, hi).

      acc[i]  product of term(p, e) over the prime powers found so far in lo + i
      rem[i]  lo + i with those prime powers divided out
    """
    lo: int
    hi: int
    acc: list[int]
    rem: list[int]
    function: DivisorFunction = SIGMA
    limit: int = (1 << 64) - 1

    def close(self) -> list[int]:
        """
        Finish the block. After sweeping every prime <= isqrt(hi - 1) a
        cofactor > 1 cannot have two prime factors, so it is a single large
        prime and contributes term(q, 1).
        """
        term = self.function.term
        out = self.acc
        for i, q in enumerate(self.rem):
            if q > 1:
                out[i] = checked_mul(out[i], term(q, 1), self.limit,
                                     f"{self.function.symbol}({self.lo + i})")
                self.rem[i] = 1
        return out


def block_ranges(k: int, block_size: int) -> Iterator[tuple[int, int]]:
    lo = 1
    while lo <= k:
        hi = min(lo + block_size, k + 1)
        yield lo, hi
        lo = hi


def sweep_block(lo: int, hi: int, primes: PrimeList,
                function: DivisorFunction = SIGMA, limit: int | None = None) -> Block:
    """Initialise [lo, hi) and divide out every prime <= isqrt(hi - 1)."""
    if lo < 1 or hi < lo:
        raise InvalidInputError(f"bad block [{lo}, {hi})")
    if not primes.covers(hi - 1):
        raise InvalidInputError(
            f"prime list up to {primes.bound} cannot sieve a block ending at {hi - 1}"
        )
    if limit is None:
        limit = word_limit()

    size = hi - lo
    acc = [1] * size
    rem = list(range(lo, hi))
    term = function.term
    symbol = function.symbol

    for p in primes.upto(isqrt(hi - 1)):
        first = -(-lo // p) * p
        for idx in range(first - lo, size, p):
            r = rem[idx] // p
            e = 1
            while r % p == 0:
                r //= p
                e += 1
            rem[idx] = r
            acc[idx] = checked_mul(acc[idx], term(p, e), limit, f"{symbol}({lo + idx})")

    return Block(lo=lo, hi=hi, acc=acc, rem=rem, function=function, limit=limit)


# ---- worker side (multiprocessing) -------------------------------------------

_WORKER_STATE: dict[str, object] = {}


def _init_worker(primes: PrimeList, function: DivisorFunction, limit: int) -> None:
    _WORKER_STATE["primes"] = primes
    _WORKER_STATE["function"] = function
    _WORKER_STATE["limit"] = limit


def _worker_block(bounds: tuple[int, int]) -> list[int]:
    lo, hi = bounds
    blk = sweep_block(lo, hi, _WORKER_STATE["primes"],
                      _WORKER_STATE["function"], _WORKER_STATE["limit"])
    return blk.close()


@strategy(name="segmented",
          description="Sieve in blocks of B numbers. O(K log log K) time, O(√K + B) memory.",
          aliases=("seg", "segmented-sieve"))
class SegmentedSieve:
    """
    Lazy, forward-only producer of f(1..K), one block at a time.

    With workers > 1 the blocks are computed by a process pool and handed
    back in ascending order, a window of 2 * workers blocks at a time.
    """

    def __init__(self, function: str | DivisorFunction | None = None, *,
                 block_size: int | None = None,
                 word_bits: int | None = None,
                 workers: int | None = None,
                 primes: PrimeList | None = None,
                 on_block: Callable[[int, int], None] | None = None):
        self.function = resolve_function(function)
        self.limit = word_limit(word_bits)
        if block_size is None:
            block_size = CFG("SIEVE.BLOCK_SIZE", DEFAULT_BLOCK_SIZE)
        self.block_size = self._check_block_size(block_size)
        if workers is None:
            workers = CFG("SIEVE.WORKERS", 1)
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            raise InvalidInputError(f"workers must be a positive integer, got {workers!r}")
        self.workers = workers
        self.primes = primes
        self.on_block = on_block

    @staticmethod
    def _check_block_size(block_size: int) -> int:
        if isinstance(block_size, bool) or not isinstance(block_size, int):
            raise InvalidInputError(f"block size must be an integer, got {block_size!r}")
        if block_size < 1:
            raise InvalidInputError(f"block size must be at least 1, got {block_size}")
        return block_size

    def _primes_for(self, k: int) -> PrimeList:
        if self.primes is not None and self.primes.covers(k):
            return self.primes
        return PrimeList.for_range(k)

    def stream(self, k: int, block_size: int | None = None) -> Iterator[int]:
        """
        Yield f(N) for N = 1..k. Arguments are validated here, before the
        first value is requested.
        """
        k = require_bound(k)
        size = self.block_size if block_size is None else self._check_block_size(block_size)
        primes = self._primes_for(k)
        if self.workers > 1:
            blocks = self._parallel_blocks(k, size, primes)
        else:
            blocks = self._serial_blocks(k, size, primes)
        return self._flatten(blocks, k)

    def values(self, k: int) -> Iterator[int]:
        return self.stream(k)

    def blocks(self, k: int, block_size: int | None = None) -> Iterator[tuple[int, list[int]]]:
        """Yield (lo, [f(lo), ..., f(hi - 1)]) per block, in order."""
        k = require_bound(k)
        size = self.block_size if block_size is None else self._check_block_size(block_size)
        return self._serial_blocks(k, size, self._primes_for(k))

    def _serial_blocks(self, k: int, size: int,
                       primes: PrimeList) -> Iterator[tuple[int, list[int]]]:
        for lo, hi in block_ranges(k, size):
            blk = sweep_block(lo, hi, primes, self.function, self.limit)
            yield lo, blk.close()

    def _parallel_blocks(self, k: int, size: int,
                         primes: PrimeList) -> Iterator[tuple[int, list[int]]]:
        ranges = block_ranges(k, size)
        window = 2 * self.workers
        with Pool(processes=self.workers, initializer=_init_worker,
                  initargs=(primes, self.function, self.limit)) as pool:
            while True:
                batch = list(islice(ranges, window))
                if not batch:
                    break
                for (lo, _), vals in zip(batch, pool.map(_worker_block, batch)):
                    yield lo, vals

    def _flatten(self, blocks: Iterator[tuple[int, list[int]]], k: int) -> Iterator[int]:
        for lo, vals in blocks:
            yield from vals
            if self.on_block is not None:
                self.on_block(lo + len(vals) - 1, k)

    def __repr__(self) -> str:
        return (f"SegmentedSieve(function={self.function.name!r}, "
                f"block_size={self.block_size}, workers={self.workers})")
