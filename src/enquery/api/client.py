"""Async HTTP client for the Enapter API.

The client owns an :class:`httpx.AsyncClient` configured with the base URL,
timeout and auth token.  Endpoint-specific wrappers
(:class:`~enquery.api.telemetry.TelemetryAPI`) compose it and only deal with
successful responses; every documented error status is turned into an
:class:`~enquery.api.errors.MultiError` here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from enquery.api.errors import (
    APIError,
    ConfigError,
    MultiError,
    UnexpectedResponseError,
    UnexpectedStatusError,
)

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0

AUTH_TOKEN_HEADER = "X-Enapter-Auth-Token"
AUTH_USER_HEADER = "X-Enapter-Auth-User"

# Statuses whose body is a JSON ``{"errors": [...]}`` document.
MULTI_ERROR_STATUSES = frozenset({400, 401, 403, 404, 409, 422, 429, 500})

EMPTY_ERROR_CODE = "<empty>"
BODY_DUMP_LIMIT = 200


class _ErrorEntry(BaseModel):
    code: str = ""
    message: str = ""
    details: dict[str, Any] | None = None


class _ErrorBody(BaseModel):
    errors: list[_ErrorEntry] = Field(default_factory=list)


class EnapterAPIClient:
    """Thin async wrapper around :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        api_url: str,
        token: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_url:
            raise ConfigError("Enapter API URL empty or missing")
        self._api_url = api_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._api_url,
            headers={AUTH_TOKEN_HEADER: token},
            timeout=timeout,
            transport=transport,
        )

    @property
    def api_url(self) -> str:
        return self._api_url

    # ---- public API ----------------------------------------------------------

    async def post_text(
        self,
        path: str,
        body: str,
        *,
        accept: str = "text/csv",
        user: str | None = None,
    ) -> httpx.Response:
        """POST *body* to *path* and return the successful response.

        Raises:
            MultiError: The API answered with a documented error status.
            UnexpectedResponseError: A documented error status came with an
                unreadable error body.
            UnexpectedStatusError: Any other non-200 status.
        """
        headers = {"Accept": accept}
        if user:
            headers[AUTH_USER_HEADER] = user

        logger.debug("POST %s%s (%d bytes)", self._api_url, path, len(body))
        response = await self._client.post(path, content=body.encode(), headers=headers)
        self._check_status(response)
        return response

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> EnapterAPIClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # -- Internals -------------------------------------------------------------

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status == 200:
            return
        if status in MULTI_ERROR_STATUSES:
            raise parse_multi_error(response.content, status_code=status)

        status_text = f"{status} {response.reason_phrase}".strip()
        try:
            dump = dump_body(response.content)
        except UnexpectedResponseError as exc:
            dump = f"<not available>: {exc}"
        raise UnexpectedStatusError(
            f"unexpected status: {status_text}: body dump: {dump}",
            status_code=status,
        )


def parse_multi_error(data: bytes, *, status_code: int | None = None) -> MultiError:
    """Decode a ``{"errors": [...]}`` body into a :class:`MultiError`.

    Entries without a code get ``"<empty>"``.

    Raises:
        UnexpectedResponseError: The body is empty, not valid JSON, or has
            an empty error list.
    """
    if not data:
        raise UnexpectedResponseError(
            "multi-error: <not available>: empty data", status_code=status_code
        )

    try:
        body = _ErrorBody.model_validate_json(data)
    except ValidationError as exc:
        raise UnexpectedResponseError(
            f"multi-error: <not available>: parse data: {exc}", status_code=status_code
        ) from exc

    if not body.errors:
        raise UnexpectedResponseError(
            "multi-error: <not available>: empty error list", status_code=status_code
        )

    errors = [
        APIError(
            entry.code or EMPTY_ERROR_CODE,
            entry.message,
            entry.details,
            status_code=status_code,
        )
        for entry in body.errors
    ]
    return MultiError(errors, status_code=status_code)


def dump_body(data: bytes) -> str:
    """Return a printable, length-capped rendition of a response body."""
    if not data:
        raise UnexpectedResponseError("empty data")

    text = data.decode(errors="replace")
    if len(data) < BODY_DUMP_LIMIT:
        return text
    head = data[:BODY_DUMP_LIMIT].decode(errors="replace")
    return f"{head}[...] (full len = {len(data)})"
