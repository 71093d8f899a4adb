# -----------------------------------------------------------------------------
#  verify.py
#  Cross-check the strategies against each other and against SymPy
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass, field

from sigmapairs.counter import SequenceCounter, make_strategy
from sigmapairs.registry import discover
from sigmapairs.utility import DivisorFunction, reference_value, require_bound, resolve_function

MAX_REFERENCE_N = 2_000     # factorint spot checks stop here


@dataclass
class Mismatch:
    n: int
    values: dict[str, int]           # strategy label -> f(n)
    reference: int | None = None


@dataclass
class VerifyReport:
    max_k: int
    function: str
    counts: dict[str, int] = field(default_factory=dict)
    mismatches: list[Mismatch] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.mismatches and len(set(self.counts.values())) <= 1


def _labels(block_sizes: tuple[int, ...]) -> list[tuple[str, str, int | None]]:
    out: list[tuple[str, str, int | None]] = []
    for name in discover().strategies:
        if name == "segmented":
            out.extend((f"segmented/{b}", name, b) for b in block_sizes)
        else:
            out.append((name, name, None))
    return out


def verify_strategies(max_k: int, *,
                      function: str | DivisorFunction | None = None,
                      block_sizes: tuple[int, ...] = (1, 7, 16, 1000),
                      word_bits: int | None = None,
                      max_mismatches: int = 10) -> VerifyReport:
    """
    Produce f(1..max_k+1) with every registered strategy and compare them
    value by value. Equal value streams give equal counts for every K <= max_k,
    so one pass replaces re-counting every K separately.
    """
    max_k = require_bound(max_k)
    fn = resolve_function(function)
    report = VerifyReport(max_k=max_k, function=fn.name)
    if max_k == 0:
        return report

    labels = _labels(block_sizes)
    streams = {}
    for label, name, bs in labels:
        impl = make_strategy(name, function=fn, block_size=bs, word_bits=word_bits, workers=1)
        streams[label] = list(impl.values(max_k + 1))
        report.counts[label] = SequenceCounter(word_bits=word_bits).count_values(streams[label])

    for i in range(max_k + 1):
        n = i + 1
        row = {label: vals[i] for label, vals in streams.items()}
        ref = reference_value(n, fn) if n <= MAX_REFERENCE_N else None
        distinct = set(row.values())
        if len(distinct) > 1 or (ref is not None and distinct != {ref}):
            report.mismatches.append(Mismatch(n=n, values=row, reference=ref))
            if len(report.mismatches) >= max_mismatches:
                break

    return report

