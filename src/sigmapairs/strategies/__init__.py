from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class SigmaStrategy(Protocol):
    """Anything that yields f(1), f(2), ..., f(k) in ascending order."""

    def values(self, k: int) -> Iterator[int]: ...
