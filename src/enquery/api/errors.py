"""Exception hierarchy for enquery.

Every error raised by the package derives from :class:`EnqueryError` so that
callers (the CLI, :class:`~enquery.datasource.DataSource`) can catch one type
and still branch on the concrete subclass.
"""

from __future__ import annotations

from typing import Any


class EnqueryError(Exception):
    """Base class for all enquery errors."""

    def __init__(self, message: str = "", *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigError(EnqueryError):
    """Missing or invalid configuration (API URL, token, settings)."""


# ---------------------------------------------------------------------------
# Upstream (HTTP) errors
# ---------------------------------------------------------------------------


class APIError(EnqueryError):
    """A single error entry reported by the Enapter API."""

    def __init__(
        self,
        code: str,
        message: str = "",
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self._describe(), status_code=status_code)

    def _describe(self) -> str:
        text = f"code={self.code}"
        if self.message:
            text += f", message={self.message!r}"
        if self.details:
            text += f", details={self.details}"
        return text


class MultiError(EnqueryError):
    """The structured ``{"errors": [...]}`` body of an error response."""

    def __init__(self, errors: list[APIError], *, status_code: int | None = None) -> None:
        self.errors = errors
        if len(errors) == 1:
            message = str(errors[0])
        else:
            message = f"{len(errors)} errors: [{'; '.join(str(e) for e in errors)}]"
        super().__init__(message, status_code=status_code)


class UnexpectedStatusError(EnqueryError):
    """The API answered with a status code outside the documented set."""


class UnexpectedResponseError(EnqueryError):
    """The response is well-formed HTTP but not what the API promises."""


# ---------------------------------------------------------------------------
# Timeseries decoding errors
# ---------------------------------------------------------------------------


class TimeseriesError(EnqueryError):
    """Base class for failures while decoding a timeseries response."""


class UnknownDataTypeError(TimeseriesError):
    """A declared column type has no known wire name."""


class MalformedTagsError(TimeseriesError):
    """A header cell is not a space separated list of ``key=value`` pairs."""


class UnexpectedShapeError(TimeseriesError):
    """A CSV record does not have the expected width or layout."""

    def __init__(self, message: str, *, row: int | None = None) -> None:
        self.row = row
        if row is not None:
            message = f"record {row}: {message}"
        super().__init__(message)


class FieldParseError(TimeseriesError):
    """A single cell could not be parsed as its column's declared type."""

    def __init__(self, message: str, *, row: int | None = None, column: int | None = None) -> None:
        self.row = row
        self.column = column
        prefix = ""
        if row is not None:
            prefix += f"record {row}: "
        if column is not None:
            prefix += f"field {column}: "
        super().__init__(prefix + message)


class NoValuesError(TimeseriesError):
    """The response is valid but carries no data rows."""

    def __init__(self, message: str = "no values") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Query (user input) errors
# ---------------------------------------------------------------------------


class QueryError(EnqueryError):
    """Base class for problems attributable to the query author."""


class InvalidDocumentError(QueryError):
    """The query text is not a YAML mapping."""


class InvalidOffsetError(QueryError):
    """The ``@offset`` directive is not a duration string."""


class UnexpectedQueryTypeError(QueryError):
    """The sub-query asks for a query type this data source does not serve."""


# ---------------------------------------------------------------------------
# Frame assembly errors
# ---------------------------------------------------------------------------


class UnsupportedDataTypeError(EnqueryError):
    """A timeseries column type has no frame column representation."""

    def __init__(self, data_type: object) -> None:
        self.data_type = data_type
        super().__init__(f"unsupported timeseries data type: {data_type}")
