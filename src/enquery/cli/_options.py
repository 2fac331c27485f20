"""Shared CLI decorator and parameter types."""

from __future__ import annotations

import functools
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import click

from enquery._internal.durations import parse_duration
from enquery.cli._logging import configure_logging

if TYPE_CHECKING:
    from enquery.cli.main import AppContext


class DateTimeParam(click.ParamType):
    """ISO 8601 timestamp; naive values are taken as UTC."""

    name = "datetime"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if isinstance(value, datetime):
            return value
        try:
            moment = datetime.fromisoformat(value)
        except ValueError:
            self.fail(f"{value!r} is not an ISO 8601 timestamp", param, ctx)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        return moment


class DurationParam(click.ParamType):
    """Duration such as ``10s``, ``1m30s`` or ``500ms``."""

    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if isinstance(value, timedelta):
            return value
        try:
            return parse_duration(value)
        except ValueError:
            self.fail(f"{value!r} is not a valid duration", param, ctx)


DATETIME = DateTimeParam()
DURATION = DurationParam()


def global_options(f: Any) -> Any:
    """Add global CLI options to a leaf command.

    Allows ``--format``, ``--quiet``, ``--verbose`` and ``--api-version`` to
    be given **after** the subcommand name (``enquery query q.yaml --verbose``).
    Command-level values override the root-group values stored in
    :class:`AppContext`.
    """

    @click.option(
        "--api-version",
        "local_api_version",
        type=click.Choice(["v1", "v3"]),
        default=None,
        help="Enapter API version",
    )
    @click.option(
        "--verbose",
        "local_verbose",
        is_flag=True,
        default=False,
        help="Enable verbose logging",
    )
    @click.option(
        "--quiet",
        "local_quiet",
        is_flag=True,
        default=False,
        help="Suppress normal output",
    )
    @click.option(
        "--format",
        "local_output_format",
        type=click.Choice(["rich", "json", "quiet"]),
        default=None,
        help="Output format (default: auto-detect)",
    )
    @click.pass_obj
    def wrapper(app_ctx: AppContext, /, **kwargs: Any) -> Any:
        local_output_format: str | None = kwargs.pop("local_output_format", None)
        local_quiet: bool = kwargs.pop("local_quiet", False)
        local_verbose: bool = kwargs.pop("local_verbose", False)
        local_api_version: str | None = kwargs.pop("local_api_version", None)

        # Command-level wins
        if local_output_format is not None:
            app_ctx.output_format = local_output_format
            app_ctx._formatter = None
        if local_quiet:
            app_ctx.quiet = True
            app_ctx._formatter = None
        if local_verbose and not app_ctx.verbose:
            app_ctx.verbose = True
            configure_logging(verbose=True)
        if local_api_version is not None:
            app_ctx.api_version = local_api_version

        return f(app_ctx, **kwargs)

    functools.update_wrapper(wrapper, f)
    return wrapper
