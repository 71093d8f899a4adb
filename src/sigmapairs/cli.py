# src/sigmapairs/cli.py

"""
Adjacent divisor-sum counter

Description:
    Counts the N in [1, K] with σ(N) = σ(N + 1) (or τ(N) = τ(N + 1) with
    --function tau) using one of three interchangeable strategies:
    trial division, a full linear sieve, or a segmented sieve.

usage: see sigmapairs -h
"""

from __future__ import annotations

import argparse
import faulthandler
import re
import sys
import textwrap
import threading
import time
import traceback
from importlib.resources import files as pkg_files

from colorama import Fore, Style
from colorama import init as colorama_init

from sigmapairs import __version__ as _ver
from sigmapairs.config import list_profiles_with_descriptions, load_settings
from sigmapairs.counter import SequenceCounter, make_strategy
from sigmapairs.progress import Progress
from sigmapairs.registry import discover
from sigmapairs.runtime import APPLY, CFG, ensure_runtime_deps
from sigmapairs.runtime import current as _rt_current
from sigmapairs.utility import (
    SigmaError,
    UserInputError,
    flatten_dotted,
    resolve_function,
    typename,
)
from sigmapairs.verify import verify_strategies
from sigmapairs.workspace import ensure_workspace_seeded, seed_workspace, workspace_dir

COMMANDS = ("verify", "list", "where", "init")
_POWER_RE = re.compile(r"^(\d+)\s*(?:\^|\*\*)\s*(\d+)$")
_SCI_RE = re.compile(r"^(\d+)[eE](\d+)$")


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    # Always show full Python tracebacks
    faulthandler.enable()

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook

    # Also catch exceptions in threads
    def _thread_excepthook(args):
        sys.stderr.write("\n[UNCAUGHT THREAD EXCEPTION]\n")
        traceback.print_exception(args.exc_type, args.exc_value, args.exc_traceback, file=sys.stderr)
        sys.stderr.flush()
    threading.excepthook = _thread_excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if not (msg.startswith("Invalid input:") or msg.startswith("Error:")):
        msg = f"{prefix} {msg}"
    print(msg, file=sys.stderr)


def _debug(msg: str) -> None:
    if _rt_current().debug:
        print(f"{Fore.CYAN}[debug]{Style.RESET_ALL} {msg}", file=sys.stderr)


def parse_bound(text: str) -> int:
    """
    Accept 1000000, 1_000_000, 1,000,000, 10^6, 10**6 and 1e6.
    """
    s = text.strip().replace(",", "")
    m = _POWER_RE.match(s)
    if m:
        return int(m.group(1)) ** int(m.group(2))
    m = _SCI_RE.match(s)
    if m:
        return int(m.group(1)) * 10 ** int(m.group(2))
    try:
        value = int(s)
    except ValueError:
        raise UserInputError(f"Invalid input: '{text}' is not a non-negative integer.") from None
    if value < 0:
        raise UserInputError(f"Invalid input: K must be non-negative, got {value}.")
    return value


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent("""\
    commands:
      verify [MAX_K]
          Run every strategy up to MAX_K + 1 and check they agree with each
          other and with SymPy. MAX_K defaults to VERIFY.MAX_K of the profile.

      list
          List strategies and profiles.

      where
          Show the workspace and package paths.

      init [overwrite]
          Create the workspace and copy the packaged profiles if missing.
    """)

    p = argparse.ArgumentParser(
        prog="sigmapairs",
        description="Count N <= K with σ(N) = σ(N + 1)",
        usage=(
            "sigmapairs K [--strategy NAME] [--function sigma|tau] [--block-size B]\n"
            "                  [--workers N] [--profile NAME] [--time] [--show N] [--debug]\n"
            "       sigmapairs verify [MAX_K]\n"
            "       sigmapairs list | where | init [overwrite]\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("items", nargs="*", metavar="K | command",
                   help="upper bound K, or one of: " + ", ".join(COMMANDS))
    p.add_argument("--strategy", "-s", default="segmented",
                   help="naive, full or segmented (default: segmented)")
    p.add_argument("--function", "-f", default="sigma",
                   help="sigma (sum of divisors, default) or tau (number of divisors)")
    p.add_argument("--block-size", "-b", type=int, default=None,
                   help="block size for the segmented sieve (default from profile)")
    p.add_argument("--workers", "-w", type=int, default=None,
                   help="worker processes for the segmented sieve (default from profile)")
    p.add_argument("--profile", "-p", default=None, help="profile name or path to a .toml file")
    p.add_argument("--time", action="store_true", help="Also print the elapsed time")
    p.add_argument("--show", type=int, default=0, metavar="N",
                   help="Also print the first N matching values")
    p.add_argument("--quiet", action="store_true", help="No progress bar")
    p.add_argument("--debug", action="store_true", help="Show settings, timings and full tracebacks")
    p.add_argument("--version", action="version", version=f"%(prog)s {_ver}")
    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except (UserInputError, SigmaError) as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        debug = ("--debug" in (argv or sys.argv))
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


def _apply_profile(name: str | None, debug: bool) -> None:
    selected = load_settings(name)
    APPLY(selected)
    if debug:
        _rt_current().debug = True  # a profile must not switch off --debug
    _debug(f"active profile: {selected.name} ({selected._source})")
    for k, v in sorted(flatten_dotted(selected.as_dict()).items(), key=lambda kv: kv[0].lower()):
        _debug(f"    {k:.<40} {v!r} ({typename(v)})")


def _cmd_list() -> int:
    index = discover()
    print(f"{Style.BRIGHT}Strategies{Style.RESET_ALL}")
    for name, cls in index.strategies.items():
        aliases = ", ".join(cls.aliases)
        print(f"  {Fore.GREEN}{name:<10}{Style.RESET_ALL} {index.descriptions[name]}")
        if aliases:
            print(f"  {'':<10} aliases: {aliases}")
    print(f"{Style.BRIGHT}Profiles{Style.RESET_ALL}")
    for name, desc in list_profiles_with_descriptions():
        print(f"  {Fore.GREEN}{name:<10}{Style.RESET_ALL} {desc}")
    return 0


def _cmd_verify(args, rest: list[str]) -> int:
    max_k = parse_bound(rest[0]) if rest else int(CFG("VERIFY.MAX_K", 1000))
    fn = resolve_function(args.function)
    t = time.perf_counter()
    report = verify_strategies(max_k, function=fn)
    elapsed = (time.perf_counter() - t) * 1000
    _debug(f"verify took {elapsed:.0f}ms")

    for label, cnt in report.counts.items():
        print(f"  {label:<16} {cnt}")
    if report.ok:
        print(f"{Fore.GREEN}OK{Style.RESET_ALL}: all strategies agree on {fn.symbol}(N) for N <= {max_k + 1}")
        return 0
    for mm in report.mismatches:
        vals = ", ".join(f"{k}={v}" for k, v in mm.values.items())
        ref = f" (reference {mm.reference})" if mm.reference is not None else ""
        print(f"{Fore.RED}algorithms don't match{Style.RESET_ALL} at N={mm.n}: {vals}{ref}")
    return 1


def _cmd_count(args, k: int) -> int:
    rt = _rt_current()
    progress = Progress(k + 1, enabled=rt.progress and not args.quiet
                        and not args.show and not rt.debug)
    kwargs = {}
    if args.strategy and discover().resolve(args.strategy).strategy_name == "segmented":
        kwargs["on_block"] = progress.on_block
    impl = make_strategy(args.strategy, function=args.function, block_size=args.block_size,
                         workers=args.workers, **kwargs)
    _debug(f"strategy: {impl!r}, K={k:,}")

    counter = SequenceCounter()
    t = time.perf_counter()
    try:
        count = counter.count(k, impl, record=bool(args.show))
    finally:
        progress.done()
    elapsed_ms = (time.perf_counter() - t) * 1000

    print(count)
    if args.show and counter.matches:
        shown = counter.first_matches(args.show)
        print(", ".join(str(n) for n in shown) + (", ..." if len(counter.matches) > len(shown) else ""))
    if args.time or rt.debug:
        name = getattr(impl, "strategy_name", type(impl).__name__)
        print(f"the {name} one took {elapsed_ms:.0f}ms", file=sys.stderr if not args.time else sys.stdout)
    return 0


# ---- main ----
def _main_impl(argv=None) -> int:

    colorama_init(autoreset=True)

    parser = _build_parser()
    args = parser.parse_args(argv)
    rt = _rt_current()
    rt.debug = bool(args.debug)

    _install_loud_error_handlers(args.debug)

    if not ensure_runtime_deps(strict=True):
        return 1

    items = list(args.items)
    if not items:
        parser.print_usage(sys.stderr)
        return 2

    head = items[0].lower()
    if head == "where":
        print(f"Workspace: {workspace_dir()}")
        print(f"Package:   {pkg_files('sigmapairs')}")
        return 0
    if head == "init":
        overwrite = len(items) > 1 and items[1].lower() == "overwrite"
        if overwrite:
            ws, copied = seed_workspace(overwrite=True)
        else:
            ws, _, copied = ensure_workspace_seeded()
        print(f"Workspace ready at: {ws}")
        print(f"Copied -> profiles: {copied.get('profiles', 0)}")
        return 0

    _apply_profile(args.profile, args.debug)

    if head == "list":
        return _cmd_list()
    if head == "verify":
        return _cmd_verify(args, items[1:])

    if len(items) > 1:
        raise UserInputError(f"Invalid input: expected a single K, got {' '.join(items)}")
    return _cmd_count(args, parse_bound(items[0]))


if __name__ == "__main__":
    raise SystemExit(main())
