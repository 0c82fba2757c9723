# powerdump/cli/main.py
from __future__ import annotations

from typing import Optional

from powerdump.errors import PowerDumpError

from powerdump.cli.args import parse_args
from powerdump.cli.commands import cmd_brownout, cmd_report


def main(argv: Optional[list[str]] = None) -> int:
    try:
        args = parse_args(argv)

        if args.cmd == "report":
            return cmd_report(args)
        if args.cmd == "brownout":
            return cmd_brownout(args)

        return 2
    except PowerDumpError as e:
        print(f"ERROR: {e.message}")
        if e.hint:
            print(f"Hint: {e.hint}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
