"""Command-line interface for Warden.

This module provides the CLI for checking an access request against a set
of policies from the command line.

Usage:
    warden evaluate --policies <path-or-json> --request <json> [options]

Commands:
    evaluate    Decide one access request against a JSON list of policies.

Exit codes:
    0: Access allowed
    2: Unknown command
    3: Access denied
    4: Policies or request could not be loaded
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .engine import Warden
from .errors import PolicyLoadError, RequestError
from .policy import load_policies
from .request import Request
from .store import MemoryStore


def _cmd_evaluate(argv: list[str]) -> int:
    """Execute the 'evaluate' command.

    Args:
        argv: Command-line arguments after 'evaluate'.

    Returns:
        int: Exit code (0 if allowed, 3 if denied, 4 on load errors).
    """
    p = argparse.ArgumentParser(prog="warden evaluate")
    p.add_argument("--policies", required=True, help="Policies JSON file path or inline JSON array")
    p.add_argument("--request", required=True, help="Inline JSON access request")
    p.add_argument("--explain", action="store_true")
    p.add_argument("--verbose", action="store_true", help="Log evaluation details to stderr")
    args = p.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        store = MemoryStore(load_policies(args.policies))
        request = Request.from_dict(json.loads(args.request))
    except (PolicyLoadError, RequestError, json.JSONDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 4

    decision = Warden(store).evaluate(request, explain=args.explain)
    if args.explain:
        print(json.dumps(decision.explanation, indent=2, sort_keys=True))
    else:
        print("allow" if decision.allowed else f"deny ({decision.outcome})")

    return 0 if decision.allowed else 3


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the warden CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        int: Exit code.
            - 0: Access allowed (or help shown)
            - 2: Unknown command
            - 3: Access denied
            - 4: Policies or request could not be loaded
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] in {"-h", "--help"}:
        print("Usage: warden <command> [args]\n\nCommands:\n  evaluate")
        return 0

    cmd, rest = argv[0], argv[1:]
    if cmd == "evaluate":
        return _cmd_evaluate(rest)

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
