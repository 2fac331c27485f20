"""CLI commands for telemetry queries (query, prepare, health)."""

from __future__ import annotations

import string
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from enquery._internal.async_utils import run_async
from enquery._internal.durations import format_duration
from enquery.cli._client import get_telemetry_api
from enquery.cli._options import DATETIME, DURATION, global_options
from enquery.datasource import DataQuery, DataSource, QueryTimeRange
from enquery.telemetry.preparer import TimeRange, prepare_query

if TYPE_CHECKING:
    from datetime import datetime

    from enquery.cli.main import AppContext
    from enquery.datasource import DataResponse

DEFAULT_INTERVAL = timedelta(seconds=10)

_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


def ref_id_for(index: int) -> str:
    """Spreadsheet-style ref ids: ``A`` … ``Z``, ``AA``, ``AB`` …"""
    letters = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = string.ascii_uppercase[rem] + letters
    return letters


def _window_options(f: Any) -> Any:
    f = click.option(
        "--interval",
        type=DURATION,
        default=DEFAULT_INTERVAL,
        show_default="10s",
        help="Panel sampling interval; picks the default granularity",
    )(f)
    f = click.option("--to", "end", type=DATETIME, required=True, help="Window end (ISO 8601)")(f)
    f = click.option(
        "--from", "start", type=DATETIME, required=True, help="Window start (ISO 8601)"
    )(f)
    return f


def _check_window(start: datetime, end: datetime) -> None:
    if end < start:
        raise click.BadParameter("--to must not be earlier than --from", param_hint="--to")


# ---------------------------------------------------------------------------
# query
# ---------------------------------------------------------------------------


@click.command("query")
@click.argument("files", nargs=-1, required=True, type=_FILE)
@_window_options
@click.option("--user", default=None, help="Run the query on behalf of this user")
@global_options
def query_cmd(
    app_ctx: AppContext,
    files: tuple[Path, ...],
    start: datetime,
    end: datetime,
    interval: timedelta,
    user: str | None,
) -> None:
    """Run one sub-query per FILE and print the resulting frames.

    Each FILE holds a YAML query document.  Sub-queries get ref ids A, B, C
    in argument order and run concurrently.
    """
    _check_window(start, end)
    time_range = QueryTimeRange(start=start, end=end)
    interval_ms = int(interval / timedelta(milliseconds=1))
    queries = [
        DataQuery(
            ref_id=ref_id_for(i),
            time_range=time_range,
            interval_ms=interval_ms,
            text=path.read_text(encoding="utf-8"),
        )
        for i, path in enumerate(files)
    ]

    responses = run_async(_run_queries(app_ctx, queries, user or app_ctx.settings.user))

    formatter = app_ctx.formatter
    if formatter.format == "json":
        formatter.output(responses, command="query")
    elif formatter.format == "rich":
        formatter.rich.responses(responses)

    if any(resp.error is not None for resp in responses.values()):
        raise SystemExit(1)


async def _run_queries(
    app_ctx: AppContext, queries: list[DataQuery], user: str | None
) -> dict[str, DataResponse]:
    client, api = get_telemetry_api(app_ctx)
    async with client:
        return await DataSource(api).query_data(queries, user=user)


# ---------------------------------------------------------------------------
# prepare
# ---------------------------------------------------------------------------


@click.command("prepare")
@click.argument("file", type=_FILE)
@_window_options
@global_options
def prepare_cmd(
    app_ctx: AppContext,
    file: Path,
    start: datetime,
    end: datetime,
    interval: timedelta,
) -> None:
    """Print the wire query built from FILE without sending it."""
    _check_window(start, end)
    prepared = prepare_query(
        file.read_text(encoding="utf-8"),
        interval,
        TimeRange(start=start, end=end),
    )

    formatter = app_ctx.formatter
    if formatter.format == "json":
        formatter.output(
            {"query": prepared.text, "offset": format_duration(prepared.offset)},
            command="prepare",
        )
    elif formatter.format == "rich":
        formatter.rich.prepared_query(prepared)


# ---------------------------------------------------------------------------
# health
# ---------------------------------------------------------------------------


@click.command("health")
@global_options
def health_cmd(app_ctx: AppContext) -> None:
    """Check that the Enapter API is reachable and the token is accepted."""
    run_async(_check_health(app_ctx))

    formatter = app_ctx.formatter
    settings = app_ctx.settings
    if formatter.format == "json":
        formatter.output(
            {
                "status": "ok",
                "api_url": settings.api_url,
                "api_version": app_ctx.api_version or settings.api_version,
            },
            command="health",
        )
    elif formatter.format == "rich":
        formatter.rich.command_result(True, f"Enapter API at {settings.api_url} is ready.")


async def _check_health(app_ctx: AppContext) -> None:
    client, api = get_telemetry_api(app_ctx)
    async with client:
        await api.ready()
