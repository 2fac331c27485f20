"""Request handling: run a batch of telemetry sub-queries.

A request is an ordered batch of :class:`DataQuery` objects keyed by ref id.
Every sub-query is prepared, fetched, decoded and assembled independently
and concurrently; a failure is reported on that sub-query's
:class:`DataResponse` only.  Once all of them have finished, labels are
deduplicated across the whole batch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from enquery.api.errors import (
    APIError,
    InvalidDocumentError,
    InvalidOffsetError,
    MultiError,
    NoValuesError,
    UnexpectedQueryTypeError,
    UnsupportedDataTypeError,
)
from enquery.telemetry.frames import assemble_frame
from enquery.telemetry.labels import make_labels_unique
from enquery.telemetry.preparer import TimeRange, prepare_query

if TYPE_CHECKING:
    from collections.abc import Sequence

    from enquery.api.telemetry import TimeseriesFetcher
    from enquery.telemetry.frames import Frame

logger = logging.getLogger(__name__)

TELEMETRY_QUERY_TYPES = frozenset({"", "telemetry"})

GENERIC_ERROR_MESSAGE = "Something went wrong. Try again later or contact Enapter support."
UNSUPPORTED_DATA_TYPE_MESSAGE = "The requested metric data type is currently not supported."
INVALID_OFFSET_MESSAGE = "The @offset value is not a valid duration."
INVALID_DOCUMENT_MESSAGE = "The query is not a valid YAML."


class QueryTimeRange(BaseModel):
    """The window a sub-query covers, as sent by the dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    start: datetime = Field(alias="from")
    end: datetime = Field(alias="to")

    def to_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)


class DataQuery(BaseModel):
    """One sub-query of a request."""

    model_config = ConfigDict(populate_by_name=True)

    ref_id: str = Field(alias="refId")
    query_type: str = Field(default="", alias="queryType")
    time_range: QueryTimeRange = Field(alias="timeRange")
    interval_ms: int = Field(default=0, ge=0, alias="intervalMs")
    text: str = ""
    hide: bool = False

    @property
    def interval(self) -> timedelta:
        return timedelta(milliseconds=self.interval_ms)


@dataclass
class DataResponse:
    """Result of one sub-query; ``error`` is the text shown to the user."""

    frames: list[Frame] = field(default_factory=list)
    error: str | None = None


def user_facing_error(exc: BaseException) -> str:
    """Map an internal error to the message shown to the dashboard user."""
    if isinstance(exc, UnsupportedDataTypeError):
        return UNSUPPORTED_DATA_TYPE_MESSAGE
    if isinstance(exc, InvalidOffsetError):
        return INVALID_OFFSET_MESSAGE
    if isinstance(exc, InvalidDocumentError):
        return INVALID_DOCUMENT_MESSAGE
    if isinstance(exc, APIError) and exc.message:
        return exc.message
    if isinstance(exc, MultiError):
        for err in exc.errors:
            if err.message:
                return err.message
    return GENERIC_ERROR_MESSAGE


class DataSource:
    """Serves telemetry sub-queries through a :class:`TimeseriesFetcher`."""

    def __init__(self, fetcher: TimeseriesFetcher) -> None:
        self._fetcher = fetcher

    async def query_data(
        self,
        queries: Sequence[DataQuery],
        *,
        user: str | None = None,
    ) -> dict[str, DataResponse]:
        """Run *queries* concurrently and return one response per ref id."""
        responses = await asyncio.gather(*(self._run_query(q, user) for q in queries))
        result = {q.ref_id: resp for q, resp in zip(queries, responses, strict=True)}
        _make_batch_labels_unique(responses)
        return result

    # -- Internals -------------------------------------------------------------

    async def _run_query(self, query: DataQuery, user: str | None) -> DataResponse:
        try:
            frames = await self._handle_query(query, user)
        except Exception as exc:
            logger.warning(
                "Failed to handle query %s: %s",
                query.ref_id,
                exc,
                exc_info=not isinstance(exc, (APIError, MultiError, InvalidDocumentError)),
            )
            return DataResponse(error=user_facing_error(exc))
        return DataResponse(frames=frames)

    async def _handle_query(self, query: DataQuery, user: str | None) -> list[Frame]:
        if query.query_type not in TELEMETRY_QUERY_TYPES:
            raise UnexpectedQueryTypeError(f"unexpected query type: {query.query_type!r}")

        if query.hide or not query.text:
            return []

        prepared = prepare_query(query.text, query.interval, query.time_range.to_range())
        logger.debug("Query %s prepared: %s", query.ref_id, prepared.text)

        try:
            timeseries = await self._fetcher.query_timeseries(prepared.text, user=user)
        except NoValuesError:
            logger.debug("Query %s returned no values", query.ref_id)
            return []

        return [assemble_frame(timeseries, prepared.offset)]


def _make_batch_labels_unique(responses: Sequence[DataResponse]) -> None:
    frames: list[Frame] = []
    for resp in responses:
        if resp.error is not None or not resp.frames:
            continue
        if len(resp.frames) > 1:
            logger.warning(
                "Response holds %d frames, skipping label deduplication",
                len(resp.frames),
            )
            return
        frames.append(resp.frames[0])
    make_labels_unique(frames)
