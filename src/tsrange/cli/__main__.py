#!/usr/bin/env python3
"""tsrange command line entry point."""

import sys

import click

from .cli_common import CONTEXT_SETTINGS
from .query import combine_command, range_command

EPILOG = """
Examples:
  tsrange range energy --from 2024-01-01 --to 2024-04-01 --agg sum --bucket month --tz Europe/Brussels
  tsrange range temperature --day 2025-03-09 --agg avg --bucket 3600000 --tz America/New_York
  tsrange combine heating cooling --month 2024-02 --agg sum --bucket day --policy keep_equal --op subtract
""".strip()


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="tsrange - calendar-aware range queries for RedisTimeSeries",
    epilog=EPILOG,
)
@click.option("--env-file", type=click.Path(dir_okay=False), help="Load settings from a .env file")
@click.option("--debug", is_flag=True, help="Log every command before it is sent")
@click.pass_context
def cli(ctx: click.Context, env_file: str | None, debug: bool) -> None:
    """Root command."""
    obj = ctx.ensure_object(dict)
    obj.setdefault("env_file", env_file)
    obj.setdefault("debug", debug)


cli.add_command(range_command, "range")
cli.add_command(combine_command, "combine")


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    try:
        normalized_args = list(args) if args is not None else None
        return cli.main(args=normalized_args, prog_name="tsrange", standalone_mode=False) or 0
    except click.exceptions.Exit as exc:  # pragma: no cover - click normalizes the exit code
        return exc.exit_code
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except SystemExit as exc:  # pragma: no cover
        return int(exc.code) if exc.code is not None else 0


if __name__ == "__main__":  # pragma: no cover - executable module
    sys.exit(main())
