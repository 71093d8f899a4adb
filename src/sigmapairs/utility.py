# -----------------------------------------------------------------------------
#  Utility functions
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache

import gmpy2
from sympy import factorint

from sigmapairs.runtime import CFG

DEFAULT_WORD_BITS = 64


# --- Errors ------------------------------------------------------------------


class UserInputError(Exception):
    pass


class SigmaError(Exception):
    """Base class for every error raised by the counting core."""


class InvalidInputError(SigmaError, ValueError):
    pass


class ResourceExceededError(SigmaError, MemoryError):
    pass


class SigmaOverflowError(SigmaError, OverflowError):
    pass


# --- Fixed-width arithmetic -------------------------------------------------


def word_limit(word_bits: int | None = None) -> int:
    """
    Largest value representable in the configured unsigned width.

    word_bits=None reads LIMITS.WORD_BITS from the active profile.
    """
    if word_bits is None:
        word_bits = CFG("LIMITS.WORD_BITS", DEFAULT_WORD_BITS)
    try:
        bits = int(word_bits)
    except (TypeError, ValueError):
        raise InvalidInputError(f"word width must be an integer, got {word_bits!r}") from None
    if bits < 1:
        raise InvalidInputError(f"word width must be at least 1 bit, got {bits}")
    return (1 << bits) - 1


def checked_mul(a: int, b: int, limit: int, what: str = "value") -> int:
    r = a * b
    if r > limit:
        raise SigmaOverflowError(
            f"{what} overflow: {a} * {b} exceeds the {limit.bit_length()}-bit limit"
        )
    return r


def checked_add(a: int, b: int, limit: int, what: str = "value") -> int:
    r = a + b
    if r > limit:
        raise SigmaOverflowError(
            f"{what} overflow: {a} + {b} exceeds the {limit.bit_length()}-bit limit"
        )
    return r


def require_bound(k: int, name: str = "K") -> int:
    """Validate a non-negative integer bound and return it as int."""
    if isinstance(k, bool) or not isinstance(k, int):
        raise InvalidInputError(f"{name} must be an integer, got {type(k).__name__}")
    if k < 0:
        raise InvalidInputError(f"{name} must be non-negative, got {k}")
    return k


# --- Divisor functions --------------------------------------------------------


def sigma_term(p: int, e: int) -> int:
    return (p**(e + 1) - 1) // (p - 1)


def tau_term(p: int, e: int) -> int:
    return e + 1


def _sigma_divisor(d: int) -> int:
    return d


def _tau_divisor(d: int) -> int:
    return 1


@dataclass(frozen=True)
class DivisorFunction:
    """
    A multiplicative divisor function described by its prime-power factor.

      term(p, e)    value on p^e
      divisor(d)    what a single divisor d contributes to the naive sum
    """
    name: str
    symbol: str
    term: Callable[[int, int], int]
    divisor: Callable[[int], int]


SIGMA = DivisorFunction("sigma", "σ", sigma_term, _sigma_divisor)
TAU = DivisorFunction("tau", "τ", tau_term, _tau_divisor)

FUNCTIONS: dict[str, DivisorFunction] = {
    "sigma": SIGMA,
    "tau": TAU,
    # Common alternative spellings
    "σ": SIGMA,
    "τ": TAU,
    "d": TAU,
    "divisor-count": TAU,
}


def resolve_function(fn: str | DivisorFunction | None) -> DivisorFunction:
    if fn is None:
        return SIGMA
    if isinstance(fn, DivisorFunction):
        return fn
    key = str(fn).strip().lower()
    try:
        return FUNCTIONS[key]
    except KeyError:
        known = ", ".join(sorted(k for k in FUNCTIONS if k.isascii()))
        raise InvalidInputError(f"unknown divisor function {fn!r} (known: {known})") from None


# --- Reference values (factorization based) ---------------------------------


def _value_from_factors(fac: dict[int, int], fn: DivisorFunction) -> int:
    """∏ term(p, a) using gmpy2 bigints."""
    acc = gmpy2.mpz(1)
    for p, a in fac.items():
        acc *= fn.term(p, a)
    return int(acc)


@lru_cache(maxsize=100_000)
def reference_value(n: int, fn: DivisorFunction = SIGMA) -> int:
    """
    f(n) through a full SymPy factorization. Independent of every strategy,
    so `verify` can use it as a spot check.
    """
    if n < 1:
        raise InvalidInputError(f"N must be at least 1, got {n}")
    if n == 1:
        return 1
    return _value_from_factors(factorint(n), fn)


def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out
