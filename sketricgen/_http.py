"""Internal HTTP layer shared by the workflow and upload operations.

Wraps a single ``httpx.AsyncClient`` and handles:
- the two API-key header conventions (``API-KEY`` and ``X-API-KEY``)
- per-request timeouts, including none at all for long-lived streams
- mapping error responses and transport failures onto SDK exceptions

This is an internal module and should not be imported directly by users.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Literal

import httpx

from sketricgen.exceptions import (
    APIError,
    AuthenticationError,
    NetworkError,
    RequestTimeoutError,
)

logger = logging.getLogger(__name__)

# Which header carries the API key. The workflow endpoint expects API-KEY,
# the upload endpoints expect X-API-KEY.
AuthMode = Literal["api-key", "x-api-key"]

_AUTH_HEADERS: dict[str, str] = {
    "api-key": "API-KEY",
    "x-api-key": "X-API-KEY",
}

UNKNOWN_ERROR = "Unknown error"


def _parse_body(response: httpx.Response) -> Any:
    """Return the JSON body when the response claims JSON, else the raw text.

    A body that claims JSON but does not parse becomes ``UNKNOWN_ERROR``.
    """
    text = response.text
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type and text:
        try:
            return response.json()
        except ValueError:
            return UNKNOWN_ERROR
    return text


def _error_message(body: Any, raw_text: str) -> str:
    if isinstance(body, dict):
        for key in ("message", "detail"):
            value = body.get(key)
            if isinstance(value, str):
                return value
    return raw_text or UNKNOWN_ERROR


def _request_id(body: Any) -> str | None:
    if isinstance(body, dict):
        value = body.get("requestId")
        if isinstance(value, str):
            return value
    return None


def _raise_for_status(response: httpx.Response, body: Any) -> None:
    """Raise AuthenticationError for 401 and APIError for any other status >= 400."""
    status_code = response.status_code
    if status_code < 400:
        return

    message = _error_message(body, response.text)
    request_id = _request_id(body)
    if status_code == 401:
        raise AuthenticationError(message, 401, body, request_id)
    raise APIError(message, status_code, body, request_id)


@contextmanager
def _transport_errors(url: str, timeout: float | None) -> Iterator[None]:
    """Translate httpx transport exceptions and expired deadlines raised inside the block."""
    try:
        yield
    except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
        raise RequestTimeoutError(f"Request to {url} timed out", timeout=timeout) from exc
    except httpx.HTTPError as exc:
        raise NetworkError(f"Request to {url} failed: {exc}", cause=exc) from exc


class Transport:
    """Sends authenticated requests through a shared ``httpx.AsyncClient``.

    Args:
        client: The HTTP client; its lifecycle belongs to the caller.
        api_key: Secret placed in the header chosen by each call's auth mode.
    """

    def __init__(self, client: httpx.AsyncClient, api_key: str) -> None:
        self._client = client
        self._api_key = api_key

    def _build_headers(self, auth: AuthMode, accept: str = "application/json") -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": accept,
            _AUTH_HEADERS[auth]: self._api_key,
        }

    async def request(
        self,
        method: str,
        url: str,
        *,
        auth: AuthMode,
        json: Any = None,
        timeout: float | None = None,
    ) -> Any:
        """Make a buffered request and return the parsed body.

        ``timeout`` bounds the whole exchange, from connecting to reading the
        last byte of the body, not just each individual network operation.

        Raises:
            RequestTimeoutError: If ``timeout`` elapsed.
            NetworkError: If the request failed for any other transport reason.
            AuthenticationError: If the API answered 401.
            APIError: If the API answered with any other status >= 400.
        """
        logger.debug("%s %s", method, url)
        with _transport_errors(url, timeout):
            response = await asyncio.wait_for(
                self._client.request(
                    method,
                    url,
                    json=json,
                    headers=self._build_headers(auth),
                    timeout=timeout,
                ),
                timeout=timeout,
            )

        body = _parse_body(response)
        logger.debug("%s %s -> %s", method, url, response.status_code)
        if response.status_code >= 400:
            logger.warning("%s %s failed with status %s", method, url, response.status_code)
        _raise_for_status(response, body)
        return body

    async def stream(
        self,
        method: str,
        url: str,
        *,
        auth: AuthMode,
        json: Any,
        timeout: float | None = None,
        no_timeout: bool = False,
    ) -> httpx.Response:
        """Send a request and return the response with its body still unread.

        The caller owns the returned response and must close it, which
        :meth:`iter_bytes` does. ``timeout`` bounds the time until the
        response headers arrive; reading the body is up to the caller. With
        ``no_timeout`` the call never times out, so an event feed can stay
        open indefinitely.
        """
        effective_timeout = None if no_timeout else timeout
        request = self._client.build_request(
            method,
            url,
            json=json,
            headers=self._build_headers(auth, accept="text/event-stream"),
            timeout=effective_timeout,
        )

        logger.debug("%s %s (stream)", method, url)
        with _transport_errors(url, effective_timeout):
            response = await asyncio.wait_for(
                self._client.send(request, stream=True), timeout=effective_timeout
            )

        if response.status_code >= 400:
            logger.warning("%s %s failed with status %s", method, url, response.status_code)
            with _transport_errors(url, effective_timeout):
                try:
                    await asyncio.wait_for(response.aread(), timeout=effective_timeout)
                finally:
                    await response.aclose()
            _raise_for_status(response, _parse_body(response))
        return response

    async def iter_bytes(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield body chunks of a streamed response, then close it."""
        url = str(response.url)
        try:
            with _transport_errors(url, None):
                async for chunk in response.aiter_bytes():
                    yield chunk
        finally:
            await response.aclose()
            logger.debug("Stream from %s closed", url)

    async def post_form(
        self,
        url: str,
        *,
        fields: Mapping[str, str],
        files: Mapping[str, tuple[str, bytes, str]],
        timeout: float | None = None,
    ) -> httpx.Response:
        """POST a multipart form without any API-key header.

        Form fields are encoded in mapping order, before the file parts.
        ``timeout`` bounds the whole exchange. Status codes are left for the
        caller to interpret.
        """
        logger.debug("POST %s (multipart)", url)
        with _transport_errors(url, timeout):
            return await asyncio.wait_for(
                self._client.post(
                    url,
                    data=dict(fields),
                    files=dict(files),
                    timeout=timeout,
                ),
                timeout=timeout,
            )
