# src/sigmapairs/registry.py
from __future__ import annotations

import inspect
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from functools import lru_cache
from importlib import import_module
from importlib.resources import as_file
from importlib.resources import files as pkg_files
from pathlib import Path

from sigmapairs.utility import InvalidInputError


@dataclass
class Index:
    strategies: dict[str, type]                # canonical name -> class
    descriptions: dict[str, str]               # canonical name -> short description
    aliases: dict[str, str] = field(default_factory=dict)   # token -> canonical name

    @staticmethod
    def to_token(name: str) -> str:
        return re.sub(r"[^A-Za-z0-9]+", "_", name).lower().strip("_")

    def resolve(self, name: str) -> type:
        tok = self.to_token(str(name))
        canonical = self.aliases.get(tok)
        if canonical is None:
            known = ", ".join(self.strategies)
            raise InvalidInputError(f"unknown strategy {name!r} (known: {known})")
        return self.strategies[canonical]


def _is_strategy(obj) -> bool:
    return inspect.isclass(obj) and getattr(obj, "__is_strategy__", False)


# ---------- Decorator (only tags the class; no side effects) ----------


def strategy(*, name: str, description: str = "", aliases: tuple[str, ...] = ()):
    def deco(cls: type):
        cls.__is_strategy__ = True
        cls.strategy_name = name
        cls.description = description
        cls.aliases = tuple(aliases)
        return cls
    return deco


@lru_cache(maxsize=1)
def discover() -> Index:
    """Collect every @strategy class from the packaged sigmapairs.strategies modules."""
    found: OrderedDict[str, type] = OrderedDict()
    desc: dict[str, str] = {}
    alias_map: dict[str, str] = {}

    pkg_dir = pkg_files("sigmapairs") / "strategies"
    with as_file(pkg_dir) as real:
        modules = sorted(p.stem for p in Path(real).glob("*.py") if p.name != "__init__.py")

    for stem in modules:
        mod = import_module(f"sigmapairs.strategies.{stem}")
        for _, obj in inspect.getmembers(mod, _is_strategy):
            # Re-exported classes show up in several modules; keep the first
            if obj.strategy_name in found:
                continue
            found[obj.strategy_name] = obj
            desc[obj.strategy_name] = obj.description
            for tok in (obj.strategy_name, *obj.aliases):
                alias_map[Index.to_token(tok)] = obj.strategy_name

    return Index(strategies=dict(found), descriptions=desc, aliases=alias_map)


def resolve_strategy(name: str | type) -> type:
    if inspect.isclass(name):
        return name
    return discover().resolve(name)
