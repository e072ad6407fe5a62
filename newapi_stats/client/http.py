"""
Thin async HTTP layer for the New API server.

One GET per call, no retries. Status codes and transport failures are mapped
onto the error taxonomy in `newapi_stats.client.errors`, and JSON envelopes
are validated into typed models by `unwrap()` before anything downstream
reads them.
"""

import json
from typing import Any

import httpx
from pydantic import ValidationError

from newapi_stats.client.errors import (
    ApiError,
    AuthError,
    HttpError,
    MissingDataError,
    NetworkError,
    NotFoundError,
    ParseError,
)
from newapi_stats.observability.logger import get_logger
from newapi_stats.stats.models import ApiResponse

log = get_logger("client.http")

DEFAULT_TIMEOUT_SECONDS = 30.0
BASE_HEADERS = {
    "Content-Type": "application/json",
    "Pragma": "no-cache",
}


class HttpClient:
    """GET-and-decode client. Stateless per call apart from the pooled connection."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def get_json(
        self,
        url: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
    ) -> Any:
        request_headers = {**BASE_HEADERS, **headers}

        try:
            response = await self._client.get(url, headers=request_headers, params=params)
        except httpx.HTTPError as e:
            log.warning("http_transport_error", url=url[:100], error=str(e))
            raise NetworkError(str(e) or type(e).__name__) from e

        status = response.status_code
        log.debug("http_get", url=url[:100], status=status, size=len(response.content))

        if 200 <= status < 300:
            try:
                return response.json()
            except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
                raise ParseError() from e
        if status == 401:
            raise AuthError()
        if status == 404:
            raise NotFoundError(url)
        raise HttpError(status)


def unwrap(payload: Any, model: type, what: str):
    """Validate a `{success, data, message}` envelope and return its data.

    `model` is the expected type of `data`: a pydantic model class or a plain
    type such as `str`.
    """
    try:
        envelope = ApiResponse[model].model_validate(payload)
    except ValidationError as e:
        raise ParseError(f"unexpected shape for {what}") from e

    if not envelope.success:
        raise ApiError(envelope.message or f"Failed to fetch {what}")
    if envelope.data is None or envelope.data == "":
        raise MissingDataError(what)
    return envelope.data
