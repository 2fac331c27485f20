"""Shared helpers for building API clients from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from enquery.api.client import EnapterAPIClient
from enquery.api.errors import ConfigError
from enquery.api.telemetry import TelemetryAPI

if TYPE_CHECKING:
    from enquery.api.telemetry import ApiVersion
    from enquery.cli.main import AppContext


def get_client(app_ctx: AppContext) -> EnapterAPIClient:
    """Build an authenticated :class:`EnapterAPIClient` from settings."""
    settings = app_ctx.settings

    if not settings.api_url:
        raise ConfigError("Enapter API URL empty or missing. Set ENAPTER_API_URL.")
    if not settings.api_token:
        raise ConfigError("No API token found. Set ENAPTER_API_TOKEN.")

    return EnapterAPIClient(settings.api_url, settings.api_token, timeout=settings.timeout)


def get_telemetry_api(app_ctx: AppContext) -> tuple[EnapterAPIClient, TelemetryAPI]:
    """Build an :class:`EnapterAPIClient` + :class:`TelemetryAPI`."""
    client = get_client(app_ctx)
    version = cast("ApiVersion", app_ctx.api_version or app_ctx.settings.api_version)
    return client, TelemetryAPI(client, version=version)
