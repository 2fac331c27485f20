"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import dataclasses

import click
from pydantic import ValidationError

from enquery import __version__
from enquery.api.errors import APIError, ConfigError, QueryError
from enquery.cli._logging import configure_logging
from enquery.datasource import user_facing_error
from enquery.models.config import AppSettings
from enquery.output.formatter import OutputFormatter

# ---------------------------------------------------------------------------
# Application context (stored in ctx.obj)
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class AppContext:
    """Shared state passed to every Click command via ``@click.pass_obj``."""

    output_format: str | None
    quiet: bool
    verbose: bool
    api_version: str | None = None
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)
    _settings: AppSettings | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        if self._formatter is None:
            force = "quiet" if self.quiet else self.output_format
            self._formatter = OutputFormatter(force_format=force)
        return self._formatter

    @property
    def settings(self) -> AppSettings:
        if self._settings is None:
            try:
                self._settings = AppSettings()
            except ValidationError as exc:
                raise ConfigError(f"Invalid settings: {exc}") from exc
        return self._settings


# ---------------------------------------------------------------------------
# Root Click group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(__version__, prog_name="enquery")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["rich", "json", "quiet"]),
    default=None,
    help="Output format (default: auto-detect)",
)
@click.option("--quiet", is_flag=True, default=False, help="Suppress normal output")
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.option(
    "--api-version",
    type=click.Choice(["v1", "v3"]),
    default=None,
    help="Enapter API version (default: ENAPTER_API_VERSION or v3)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    output_format: str | None,
    quiet: bool,
    verbose: bool,
    api_version: str | None,
) -> None:
    """Run Enapter telemetry queries from the command line."""
    configure_logging(verbose=verbose)
    app_ctx = AppContext(
        output_format=output_format,
        quiet=quiet,
        verbose=verbose,
        api_version=api_version,
    )
    ctx.obj = app_ctx
    if output_format is None:
        app_ctx.output_format = app_ctx.settings.output_format


# ---------------------------------------------------------------------------
# Register subcommands (lazy imports keep startup fast)
# ---------------------------------------------------------------------------


def _register_commands() -> None:
    """Import and attach all subcommands to the root CLI."""
    from enquery.cli.query import health_cmd, prepare_cmd, query_cmd

    cli.add_command(query_cmd)
    cli.add_command(prepare_cmd)
    cli.add_command(health_cmd)


_register_commands()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the appropriate command handler."""
    try:
        cli(args=argv, prog_name="enquery", standalone_mode=False)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.exceptions.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except SystemExit:
        raise
    except Exception as exc:
        app_ctx = _extract_app_ctx()
        formatter = app_ctx.formatter if app_ctx else OutputFormatter()
        cmd_name = _get_command_name()

        if _handle_known_error(exc, formatter, cmd_name):
            raise SystemExit(1) from exc

        formatter.output_error(
            code=type(exc).__name__,
            message=str(exc),
            command=cmd_name,
        )
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# Helpers for error handling
# ---------------------------------------------------------------------------


def _extract_app_ctx() -> AppContext | None:
    """Try to extract AppContext from the current Click context."""
    ctx = click.get_current_context(silent=True)
    while ctx is not None:
        if isinstance(ctx.obj, AppContext):
            return ctx.obj
        ctx = ctx.parent
    return None


def _get_command_name() -> str:
    """Reconstruct a dotted command name from the Click context chain."""
    ctx = click.get_current_context(silent=True)
    parts: list[str] = []
    while ctx is not None:
        if ctx.info_name and ctx.info_name not in ("cli", "enquery"):
            parts.append(ctx.info_name)
        ctx = ctx.parent
    return ".".join(reversed(parts)) or "unknown"


def _handle_known_error(
    exc: Exception,
    formatter: OutputFormatter,
    cmd_name: str,
) -> bool:
    """Handle well-known errors with friendly output.

    Returns ``True`` if the error was handled and the caller should exit.
    """
    if isinstance(exc, ConfigError):
        _handle_config_error(exc, formatter, cmd_name)
        return True
    if isinstance(exc, (QueryError, APIError)):
        formatter.output_error(
            code=type(exc).__name__,
            message=user_facing_error(exc),
            command=cmd_name,
        )
        return True
    return False


def _handle_config_error(
    exc: ConfigError,
    formatter: OutputFormatter,
    cmd_name: str,
) -> None:
    """Show a configuration error with the environment variables to set."""
    message = str(exc)
    if formatter.format == "json":
        formatter.output_error(code="config_error", message=message, command=cmd_name)
        return

    formatter.rich.error(message)
    formatter.rich.info("")
    formatter.rich.info("Settings are read from the environment or a .env file:")
    formatter.rich.info("  [cyan]ENAPTER_API_URL[/cyan]      (default https://api.enapter.com)")
    formatter.rich.info("  [cyan]ENAPTER_API_TOKEN[/cyan]")
    formatter.rich.info("  [cyan]ENAPTER_API_VERSION[/cyan]  v1 or v3")
