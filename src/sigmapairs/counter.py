# -----------------------------------------------------------------------------
#  counter.py
#  Count N in [1, K] with f(N) == f(N + 1)
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from sigmapairs.registry import resolve_strategy
from sigmapairs.strategies import SigmaStrategy
from sigmapairs.utility import (
    DivisorFunction,
    InvalidInputError,
    checked_add,
    require_bound,
    word_limit,
)


class CounterState(Enum):
    AWAITING_FIRST = "awaiting-first"
    HAVE_PREVIOUS = "have-previous"
    DONE = "done"


class SequenceCounter:
    """
    Walk an ascending stream f(1), f(2), ... once, keeping only the previous
    value, and count the positions where two neighbours are equal.

    Works with any strategy: the only requirement is values(k).
    """

    def __init__(self, *, word_bits: int | None = None):
        self.limit = word_limit(word_bits)
        self.state = CounterState.AWAITING_FIRST
        self.count_so_far = 0
        self.matches: list[int] | None = None

    def count_values(self, values: Iterable[int], *, record: bool = False) -> int:
        """
        Count equal neighbours in `values`, read as f(1), f(2), ...
        With record=True the matching N are also kept in self.matches.
        """
        self.state = CounterState.AWAITING_FIRST
        self.count_so_far = 0
        self.matches = [] if record else None

        prev = None
        n = 0
        for v in values:
            n += 1
            if self.state is CounterState.AWAITING_FIRST:
                self.state = CounterState.HAVE_PREVIOUS
            elif v == prev:
                # pair (n - 1, n)
                self.count_so_far = checked_add(self.count_so_far, 1, self.limit, "count")
                if self.matches is not None:
                    self.matches.append(n - 1)
            prev = v

        self.state = CounterState.DONE
        return self.count_so_far

    def count(self, k: int, strategy: SigmaStrategy, *, record: bool = False) -> int:
        """Count N in [1, k] with f(N) == f(N + 1); needs f up to k + 1."""
        k = require_bound(k)
        if k == 0:
            self.state = CounterState.DONE
            self.count_so_far = 0
            self.matches = [] if record else None
            return 0
        if not isinstance(strategy, SigmaStrategy):
            raise InvalidInputError(f"{strategy!r} does not produce values(k)")
        return self.count_values(strategy.values(k + 1), record=record)

    def first_matches(self, limit: int = 20) -> list[int]:
        """The first `limit` matching N of the last recorded count."""
        if self.matches is None:
            raise InvalidInputError("matches were not recorded; count with record=True")
        return self.matches[:limit]


def make_strategy(strategy: str | type | SigmaStrategy = "segmented", *,
                  function: str | DivisorFunction | None = None,
                  block_size: int | None = None,
                  workers: int | None = None,
                  word_bits: int | None = None,
                  **extra) -> SigmaStrategy:
    """
    Build a strategy instance from its registered name (or return it unchanged).
    block_size is checked here for every strategy, used only by the segmented one.
    """
    if block_size is not None and (isinstance(block_size, bool)
                                   or not isinstance(block_size, int) or block_size < 1):
        raise InvalidInputError(f"block size must be a positive integer, got {block_size!r}")
    if isinstance(strategy, SigmaStrategy) and not isinstance(strategy, type):
        return strategy
    cls = resolve_strategy(strategy)
    kwargs = dict(extra)
    if cls.strategy_name == "segmented":
        kwargs.update(block_size=block_size, workers=workers)
    return cls(function, word_bits=word_bits, **kwargs)


def count_sequence(k: int, strategy: str | type | SigmaStrategy = "segmented",
                   block_size: int | None = None, *,
                   function: str | DivisorFunction | None = None,
                   workers: int | None = None,
                   word_bits: int | None = None) -> int:
    """
    Number of N in [1, k] with f(N) == f(N + 1), f = σ unless told otherwise.

    The strategy is resolved once; block_size and workers only matter for
    the segmented sieve.
    """
    k = require_bound(k)
    impl = make_strategy(strategy, function=function, block_size=block_size,
                         workers=workers, word_bits=word_bits)
    return SequenceCounter(word_bits=word_bits).count(k, impl)
