"""CLI app entrypoint and error mapping."""

from __future__ import annotations

import sys

from duobudget import ConfigError, StoreError

_RUNNERS = {
    "watch": "_run_watch",
    "add": "_run_add",
    "delete": "_run_delete",
    "list": "_run_list",
    "summary": "_run_summary",
    "config show": "_run_config_show",
    "config set": "_run_config_set",
}


def main(argv: list[str] | None = None) -> int:
    import duobudget.cli as cli

    parser = cli.build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        cli.logging.basicConfig(level=cli.logging.DEBUG, format="%(name)s %(message)s", stream=sys.stderr)

    command = args.command if args.command != "config" else f"config {args.config_command}"
    runner = getattr(cli, _RUNNERS[command])

    try:
        cli.asyncio.run(runner(args))
        return 0
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 3
    except StoreError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 4
    except KeyboardInterrupt:
        return 130
    except Exception as exc:  # pragma: no cover - defensive fallback
        print(f"error: {exc}", file=sys.stderr)
        return 1


__all__ = ["main"]
