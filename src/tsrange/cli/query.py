"""Range and combine commands."""

from __future__ import annotations

from datetime import datetime

import click

from ..rollups.planner import RangeCommand
from ..rollups.samples import MergePolicy, Samples
from ..rollups.time_windows import compute_day_boundaries, compute_month_boundaries
from .cli_common import (
    CONTEXT_SETTINGS,
    ExitCode,
    exit_code_for,
    log,
    open_context,
    render_samples,
    resolve_timezone,
)

REDUCTIONS = {
    "sum": Samples.sum_values,
    "avg": Samples.avg_values,
    "subtract": Samples.subtract_values,
    "min": Samples.min_values,
    "max": Samples.max_values,
}


def _window(start: str | None, end: str | None, day: str | None, month: str | None, zone: str) -> tuple:
    """Resolve --from/--to or the --day/--month shortcuts into range bounds."""
    if day:
        return compute_day_boundaries(datetime.strptime(day, "%Y-%m-%d"), zone)
    if month:
        return compute_month_boundaries(datetime.strptime(month, "%Y-%m"), zone)
    return _bound(start), _bound(end)


def _bound(value: str | None) -> int | str | None:
    if value is not None and value.isdigit():
        return int(value)
    return value


def _range_options(func):
    options = [
        click.option("--from", "start", help="Range start (ISO-8601 or epoch ms, default: oldest)"),
        click.option("--to", "end", help="Range end (ISO-8601 or epoch ms, default: newest)"),
        click.option("--day", help="Shortcut for one local day (YYYY-MM-DD)"),
        click.option("--month", help="Shortcut for one local month (YYYY-MM)"),
        click.option("--tz", "timezone", help="Timezone for calendar buckets and output"),
        click.option("--empty/--no-empty", default=True, show_default=True, help="Report empty buckets"),
        click.option("--json", "json_output", is_flag=True, help="JSON output"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.command("range", context_settings=CONTEXT_SETTINGS)
@click.argument("key")
@_range_options
@click.option("--agg", "agg_type", help="Aggregation type (avg, sum, min, max, ...)")
@click.option("--bucket", help="Bucket duration in ms, or month / day")
@click.option("--reverse", is_flag=True, help="Newest sample first")
@click.option("--count", type=click.IntRange(min=1), help="Maximum results per remote call")
@click.pass_context
def range_command(
    ctx: click.Context,
    key: str,
    start: str | None,
    end: str | None,
    day: str | None,
    month: str | None,
    timezone: str | None,
    empty: bool,
    json_output: bool,
    agg_type: str | None,
    bucket: str | None,
    reverse: bool,
    count: int | None,
) -> None:
    """Run one planned range query and print its samples."""
    try:
        redis_context = open_context(ctx)
        zone = resolve_timezone(timezone, redis_context)
        start, end = _window(start, end, day, month, zone)

        cmd = RangeCommand(redis_context, key, start, end, timezone=timezone).empty(empty)
        if agg_type or bucket:
            if not (agg_type and bucket):
                raise click.UsageError("--agg and --bucket must be given together")
            cmd.aggregation(agg_type, bucket)
        if count:
            cmd.count(count)
        if reverse:
            cmd.revrange()

        samples = cmd.execute()
    except click.UsageError:
        raise
    except Exception as exc:
        log.error(f"range {key} failed: {exc}")
        click.echo(f"❌ {exc}", err=True)
        ctx.exit(exit_code_for(exc))

    render_samples(samples, json_output=json_output, timezone=zone)
    ctx.exit(ExitCode.REMOTE_ERROR if samples.has_errors else ExitCode.SUCCESS)


@click.command("combine", context_settings=CONTEXT_SETTINGS)
@click.argument("keys", nargs=-1, required=True)
@_range_options
@click.option("--agg", "agg_type", required=True, help="Aggregation type per series")
@click.option("--bucket", required=True, help="Bucket duration in ms, or month / day")
@click.option(
    "--policy",
    type=click.Choice([p.value for p in MergePolicy]),
    default=MergePolicy.KEEP_ALL.value,
    show_default=True,
    help="Which timestamps survive the merge",
)
@click.option("--op", "operation", type=click.Choice(sorted(REDUCTIONS)), required=True, help="Reduction")
@click.option("--round", "ndigits", type=int, help="Round results to N decimal places")
@click.pass_context
def combine_command(
    ctx: click.Context,
    keys: tuple[str, ...],
    start: str | None,
    end: str | None,
    day: str | None,
    month: str | None,
    timezone: str | None,
    empty: bool,
    json_output: bool,
    agg_type: str,
    bucket: str,
    policy: str,
    operation: str,
    ndigits: int | None,
) -> None:
    """Fetch several keys with identical bucketing, merge and reduce them."""
    try:
        redis_context = open_context(ctx)
        zone = resolve_timezone(timezone, redis_context)
        start, end = _window(start, end, day, month, zone)

        sample_sets = [
            RangeCommand(redis_context, key, start, end, timezone=timezone)
            .aggregation(agg_type, bucket)
            .empty(empty)
            .execute()
            for key in keys
        ]
        failed = {key: samples.errors for key, samples in zip(keys, sample_sets) if samples.has_errors}
        if not failed:
            merged = REDUCTIONS[operation](Samples.merge(sample_sets, merge_policy=policy))
            if ndigits is not None:
                merged.round_values(ndigits)
    except Exception as exc:
        log.error(f"combine {' '.join(keys)} failed: {exc}")
        click.echo(f"❌ {exc}", err=True)
        ctx.exit(exit_code_for(exc))

    if failed:
        # A partial merge would reduce over the wrong set of series
        for key, errors in failed.items():
            log.error(f"combine: {key} returned {len(errors)} errors")
            for error in errors:
                click.echo(f"error: {key}: {error}", err=True)
        ctx.exit(ExitCode.REMOTE_ERROR)

    render_samples(merged, json_output=json_output, timezone=zone)
    ctx.exit(ExitCode.SUCCESS)
