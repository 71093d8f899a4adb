# -----------------------------------------------------------------------------
#  primes.py
#  Base primes for the sieve strategies
# -----------------------------------------------------------------------------

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from math import isqrt

from sigmapairs.utility import InvalidInputError


def sieve_isprime_upto(n: int) -> bytearray:
    """
    Simple bytearray sieve up to n (inclusive). 1 means 'prime'.
    """
    if n < 2:
        return bytearray(max(n + 1, 0))
    sieve = bytearray(b"\x01") * (n + 1)
    sieve[0:2] = b"\x00\x00"
    for p in range(2, isqrt(n) + 1):
        if sieve[p]:
            start = p * p
            sieve[start:n + 1:p] = b"\x00" * (((n - start) // p) + 1)
    return sieve


@dataclass(frozen=True)
class PrimeList(Sequence[int]):
    """
    Ascending primes <= bound. Built once, read-only afterwards, and passed
    explicitly to whoever needs it (blocks, worker processes).
    """
    bound: int
    primes: tuple[int, ...]

    @classmethod
    def build(cls, bound: int) -> PrimeList:
        if bound < 0:
            raise InvalidInputError(f"prime bound must be non-negative, got {bound}")
        sieve = sieve_isprime_upto(bound)
        return cls(bound=bound, primes=tuple(i for i in range(2, bound + 1) if sieve[i]))

    @classmethod
    def for_range(cls, k: int) -> PrimeList:
        """Primes needed to factor every N <= k: all p <= isqrt(k)."""
        return cls.build(isqrt(max(k, 0)))

    def upto(self, limit: int) -> Iterator[int]:
        """Iterate the primes <= limit (limit may exceed the bound)."""
        stop = bisect_right(self.primes, limit)
        for i in range(stop):
            yield self.primes[i]

    def covers(self, n: int) -> bool:
        """True when every prime <= isqrt(n) is in the list."""
        return isqrt(max(n, 0)) <= self.bound

    def __getitem__(self, i):
        return self.primes[i]

    def __len__(self) -> int:
        return len(self.primes)

    def __iter__(self) -> Iterator[int]:
        return iter(self.primes)
