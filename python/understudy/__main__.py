"""CLI entry point for ``python -m understudy``.

Subcommands:
    describe <module:Contract>  Show the signature keys of a contract
"""

from __future__ import annotations

import argparse
import json
import sys


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="understudy",
        description="understudy: programmable, observable test doubles",
    )
    sub = parser.add_subparsers(dest="command")

    # --- describe ---
    describe_p = sub.add_parser("describe", help="Show the signature keys of a contract")
    describe_p.add_argument("target", help="Contract to describe, as module:QualifiedName")
    describe_p.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        dest="fmt",
        help="Output format (default: table)",
    )

    return parser


def _resolve(target: str) -> object:
    import importlib

    module_name, sep, qualname = target.partition(":")
    if not sep or not module_name or not qualname:
        raise ValueError(f"expected module:QualifiedName, got '{target}'")
    obj: object = importlib.import_module(module_name)
    for part in qualname.split("."):
        obj = getattr(obj, part)
    return obj


def _cmd_describe(args: argparse.Namespace) -> None:
    from understudy.contract import describe_contract
    from understudy.errors import ConfigurationError

    try:
        contract = _resolve(args.target)
    except (ImportError, AttributeError, ValueError) as exc:
        print(f"Error: cannot resolve {args.target}: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        descriptor = describe_contract(contract)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    rows = [
        {
            "name": op.name,
            "kind": op.kind.value,
            "key": op.key,
            "returns": op.returns.shape.value,
        }
        for op in sorted(descriptor, key=lambda o: o.name)
    ]

    if args.fmt == "json":
        print(json.dumps({"contract": descriptor.name, "operations": rows}, indent=2))
        return

    if not rows:
        print(f"{descriptor.name}: no operations")
        return
    width = max(len(r["key"]) for r in rows)
    print(f"{descriptor.name} ({len(rows)} operations)")
    print(f"  {'KEY':<{width}}  {'KIND':<8}  RETURNS")
    for r in rows:
        print(f"  {r['key']:<{width}}  {r['kind']:<8}  {r['returns']}")


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "describe":
        _cmd_describe(args)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
