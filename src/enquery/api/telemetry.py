"""Telemetry API: timeseries queries and the readiness probe."""

from __future__ import annotations

import io
import json
import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Literal, Protocol

from enquery._internal.durations import format_rfc3339
from enquery.api.errors import MultiError, NoValuesError, UnexpectedResponseError
from enquery.telemetry.codec import parse_data_types
from enquery.telemetry.decoder import TimeseriesDecoder

if TYPE_CHECKING:
    import httpx

    from enquery.api.client import EnapterAPIClient
    from enquery.api.errors import APIError
    from enquery.models.timeseries import Timeseries

logger = logging.getLogger(__name__)

ApiVersion = Literal["v1", "v3"]

TIMESERIES_PATHS: dict[str, str] = {
    "v1": "/telemetry/v1/timeseries",
    "v3": "/v3/telemetry/query_timeseries",
}

CSV_CONTENT_TYPE = "text/csv"
DATA_TYPES_HEADER = "X-Enapter-Timeseries-Data-Types"

READY_ERROR_CODE = "unprocessable_entity"
READY_ATTRIBUTE = "does_not_exist"


class TimeseriesFetcher(Protocol):
    """Anything that can run a wire query and return a decoded timeseries."""

    async def query_timeseries(self, query: str, *, user: str | None = None) -> Timeseries: ...


class TelemetryAPI:
    """Timeseries endpoint (composition over :class:`EnapterAPIClient`)."""

    def __init__(self, client: EnapterAPIClient, version: ApiVersion = "v3") -> None:
        if version not in TIMESERIES_PATHS:
            raise ValueError(f"unsupported API version: {version!r}")
        self._client = client
        self._version = version

    async def query_timeseries(self, query: str, *, user: str | None = None) -> Timeseries:
        """Run *query* (wire JSON text) and decode the CSV response.

        When the API reports several errors only the first one is raised;
        the rest are logged.

        Raises:
            APIError: The API rejected the query.
            NoValuesError: The query matched no samples.
            TimeseriesError: The response body is malformed.
        """
        try:
            return await self._fetch(query, user=user)
        except MultiError as exc:
            raise _first_error(exc) from exc

    async def ready(self) -> None:
        """Check that the API is reachable and accepts our token.

        Sends a query for an attribute that cannot exist and expects the API
        to reject it with exactly one ``unprocessable_entity`` error.

        Raises:
            UnexpectedResponseError: The probe query unexpectedly succeeded.
            EnqueryError: Any other failure, as raised by the transport.
        """
        now = datetime.now(UTC).replace(microsecond=0)
        query = {
            "from": format_rfc3339(now - timedelta(hours=1)),
            "to": format_rfc3339(now),
            "telemetry": [{"device": str(uuid.uuid4()), "attribute": READY_ATTRIBUTE}],
            "granularity": "1m",
            "aggregation": "auto",
        }
        user = READY_ATTRIBUTE if self._version == "v1" else None

        try:
            await self._fetch(json.dumps(query), user=user)
        except MultiError as exc:
            if len(exc.errors) == 1 and exc.errors[0].code == READY_ERROR_CODE:
                logger.debug("Readiness probe rejected as expected: %s", exc)
                return
            raise
        except NoValuesError:
            pass
        raise UnexpectedResponseError("unexpected absence of error")

    # -- Internals -------------------------------------------------------------

    async def _fetch(self, query: str, *, user: str | None) -> Timeseries:
        path = TIMESERIES_PATHS[self._version]
        response = await self._client.post_text(path, query, accept=CSV_CONTENT_TYPE, user=user)
        return _process_response(response)


def _process_response(response: httpx.Response) -> Timeseries:
    if response.headers.get("Content-Length") == "0":
        raise NoValuesError

    content_type = response.headers.get("Content-Type", "")
    media_type = content_type.split(";", 1)[0].strip()
    if media_type != CSV_CONTENT_TYPE:
        raise UnexpectedResponseError(
            f"unexpected content type: want {CSV_CONTENT_TYPE}, have {content_type}"
        )

    names = [n for n in response.headers.get_list(DATA_TYPES_HEADER, split_commas=True) if n]
    if not names:
        raise UnexpectedResponseError(f"empty header field: {DATA_TYPES_HEADER}")

    decoder = TimeseriesDecoder(parse_data_types(names))
    return decoder.decode_csv(io.StringIO(response.text, newline=""))


def _first_error(exc: MultiError) -> APIError:
    first = exc.errors[0]
    if len(exc.errors) > 1:
        logger.warning(
            "API returned %d errors, only the first is reported: %s",
            len(exc.errors),
            exc,
        )
    return first
