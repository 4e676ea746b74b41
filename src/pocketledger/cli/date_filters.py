"""CLI helpers for date parsing and date range resolution."""

from datetime import date

import click

from pocketledger.utils.date_parser import get_date_range, parse_date


def parse_date_or_exit(ctx, value: str | None, label: str = "date") -> date | None:
    """Parse an optional CLI date, or exit with a CLI error."""
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from period flags or explicit dates."""
    period_count = sum(1 for is_set in period_flags.values() if is_set)

    if period_count > 1:
        click.echo(
            "Error: Only one period option (--this-month, --this-year, --last-month, --last-year) can be specified at a time.",
            err=True,
        )
        ctx.exit(1)

    if period_count > 0 and (start_date or end_date):
        click.echo(
            "Error: Period options (--this-month, --this-year, etc.) cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period_count == 1:
        for period, is_set in period_flags.items():
            if is_set:
                return get_date_range(period)

    return (
        parse_date_or_exit(ctx, start_date, "start date"),
        parse_date_or_exit(ctx, end_date, "end date"),
    )


def period_options(func):
    """Attach --this-month/--this-year/--last-month/--last-year flags."""
    for period in ("last-year", "last-month", "this-year", "this-month"):
        func = click.option(
            f"--{period}",
            is_flag=True,
            help=f"Limit to {period.replace('-', ' ')}",
        )(func)
    return func
