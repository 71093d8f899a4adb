from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("sigmapairs")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .config import load_settings
from .counter import SequenceCounter, count_sequence, make_strategy
from .primes import PrimeList
from .registry import discover
from .runtime import APPLY, CFG
from .strategies.full_sieve import FullRangeSieve
from .strategies.naive import NaiveSigmaProvider
from .strategies.segmented import SegmentedSieve
from .utility import (
    SIGMA,
    TAU,
    DivisorFunction,
    InvalidInputError,
    ResourceExceededError,
    SigmaError,
    SigmaOverflowError,
)

__all__ = [
    "APPLY",
    "CFG",
    "SIGMA",
    "TAU",
    "DivisorFunction",
    "FullRangeSieve",
    "InvalidInputError",
    "NaiveSigmaProvider",
    "PrimeList",
    "ResourceExceededError",
    "SegmentedSieve",
    "SequenceCounter",
    "SigmaError",
    "SigmaOverflowError",
    "__version__",
    "count_sequence",
    "discover",
    "load_settings",
    "make_strategy",
]
