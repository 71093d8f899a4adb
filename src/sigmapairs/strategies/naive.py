# -----------------------------------------------------------------------------
#  naive.py
#  Trial-division baseline
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Iterator
from math import isqrt

from sigmapairs.registry import strategy
from sigmapairs.utility import (
    DivisorFunction,
    InvalidInputError,
    checked_add,
    require_bound,
    resolve_function,
    word_limit,
)


@strategy(name="naive",
          description="Trial division per N, O(K·√K). Correctness baseline only.",
          aliases=("trial", "trial-division"))
class NaiveSigmaProvider:
    """
    f(N) by testing every d in 1..isqrt(N). Stateless: any N can be asked
    for in any order, and values() can be restarted at will.
    """

    def __init__(self, function: str | DivisorFunction | None = None, *,
                 word_bits: int | None = None):
        self.function = resolve_function(function)
        self.limit = word_limit(word_bits)

    def sigma(self, n: int) -> int:
        if isinstance(n, bool) or not isinstance(n, int):
            raise InvalidInputError(f"N must be an integer, got {type(n).__name__}")
        if n < 1:
            raise InvalidInputError(f"N must be at least 1, got {n}")
        contrib = self.function.divisor
        what = f"{self.function.symbol}({n})"
        total = 0
        # Divisors above √N mirror the ones below: 16 = 1x16, 2x8, 4x4
        for d in range(1, isqrt(n) + 1):
            if n % d:
                continue
            total = checked_add(total, contrib(d), self.limit, what)
            q = n // d
            if q != d:
                total = checked_add(total, contrib(q), self.limit, what)
        return total

    def values(self, k: int) -> Iterator[int]:
        k = require_bound(k)
        for n in range(1, k + 1):
            yield self.sigma(n)

    def __repr__(self) -> str:
        return f"NaiveSigmaProvider(function={self.function.name!r})"
