# -----------------------------------------------------------------------------
#  full_sieve.py
#  Linear multiplicative sieve over the whole range [1, K]
# -----------------------------------------------------------------------------

from __future__ import annotations

from array import array
from collections.abc import Iterator, MutableSequence
from math import log

from sigmapairs.registry import strategy
from sigmapairs.runtime import CFG
from sigmapairs.utility import (
    DivisorFunction,
    ResourceExceededError,
    checked_mul,
    require_bound,
    resolve_function,
    word_limit,
)

DEFAULT_MEMORY_BUDGET_MB = 512
_U64_MAX = (1 << 64) - 1
# value (u64) + cofactor (u64) + exponent (u8)
_BYTES_PER_SLOT = 8 + 8 + 1
# list slot + int object in place of the u64 value
_BYTES_PER_WIDE_SLOT = (8 + 32) + 8 + 1
# list slot + small int object, per prime found
_BYTES_PER_PRIME = 8 + 32


def estimated_bytes(k: int, limit: int = _U64_MAX) -> int:
    """Rough peak memory of compute(k) for values bounded by limit."""
    n_primes = int(k / log(k)) + 1 if k > 2 else 1
    per_slot = _BYTES_PER_SLOT if limit <= _U64_MAX else _BYTES_PER_WIDE_SLOT
    return (k + 1) * per_slot + n_primes * _BYTES_PER_PRIME


@strategy(name="full",
          description="Linear sieve over [1, K] in one pass. O(K) time, O(K) memory.",
          aliases=("full-sieve", "fullsieve", "sieve"))
class FullRangeSieve:
    """
    Every N in [1, K] gets one slot. For composite N the sieve knows its
    smallest prime p, the exponent e of p in N and the cofactor N / p^e, so

        f(N) = f(N / p^e) * term(p, e)

    which only ever multiplies coprime parts.
    """

    def __init__(self, function: str | DivisorFunction | None = None, *,
                 word_bits: int | None = None,
                 memory_budget_mb: float | None = None):
        self.function = resolve_function(function)
        self.limit = word_limit(word_bits)
        if memory_budget_mb is None:
            memory_budget_mb = CFG("FULL_SIEVE.MEMORY_BUDGET_MB", DEFAULT_MEMORY_BUDGET_MB)
        self.memory_budget = int(float(memory_budget_mb) * 1024 * 1024)

    def _check_budget(self, k: int) -> None:
        need = estimated_bytes(k, self.limit)
        if need > self.memory_budget:
            raise ResourceExceededError(
                f"full sieve for K={k} needs about {need // (1024 * 1024)} MiB, "
                f"budget is {self.memory_budget // (1024 * 1024)} MiB; "
                "use the segmented strategy instead"
            )

    def _new_value_table(self, size: int) -> MutableSequence[int]:
        if self.limit <= _U64_MAX:
            return array("Q", bytes(8 * size))
        # Wider than 64 bits: plain list of ints
        return [0] * size

    def compute(self, k: int) -> MutableSequence[int]:
        """
        Return a table with table[N] = f(N) for 1 <= N <= k (table[0] is 0).
        """
        k = require_bound(k)
        self._check_budget(k)

        term = self.function.term
        limit = self.limit
        symbol = self.function.symbol

        vals = self._new_value_table(k + 1)
        rest = array("Q", bytes(8 * (k + 1)))
        expo = bytearray(k + 1)
        primes: list[int] = []

        if k >= 1:
            vals[1] = 1

        for i in range(2, k + 1):
            if vals[i] == 0:
                # untouched: i is prime
                vals[i] = checked_mul(1, term(i, 1), limit, f"{symbol}({i})")
                expo[i] = 1
                rest[i] = 1
                primes.append(i)

            vi = vals[i]
            for p in primes:
                n = i * p
                if n > k:
                    break
                if i % p == 0:
                    # p is also the smallest prime of i: extend its power
                    e = expo[i] + 1
                    r = rest[i]
                    expo[n] = e
                    rest[n] = r
                    vals[n] = checked_mul(vals[r], term(p, e), limit, f"{symbol}({n})")
                    break
                expo[n] = 1
                rest[n] = i
                vals[n] = checked_mul(vi, term(p, 1), limit, f"{symbol}({n})")

        return vals

    def values(self, k: int) -> Iterator[int]:
        vals = self.compute(k)
        for n in range(1, len(vals)):
            yield vals[n]

    def __repr__(self) -> str:
        return f"FullRangeSieve(function={self.function.name!r})"
