# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging
from itertools import chain
from types import TracebackType
from typing import Protocol, Self

import aiohttp
from yarl import URL

from ._http import SigningRequest
from .exceptions import TransportError

logger = logging.getLogger(__name__)


class HTTPTransport(Protocol):
    """An asynchronous HTTP transport for signed requests."""

    async def send(
        self,
        *,
        request: SigningRequest,
        byte_range: tuple[int, int] | None = None,
    ) -> bytes:
        """Send a signed request and return the response body.

        :param request: The signed request. Its fields are sent exactly as they are.
        :param byte_range: Inclusive ``(start, end)`` offsets to request.
        :raises TransportError: On network failure or a non-success status.
        """
        ...


class AIOHTTPTransport(HTTPTransport):
    """Implementation of :py:class:`HTTPTransport` using aiohttp."""

    def __init__(
        self,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        :param session: Session to send requests with. When omitted one is created on
            first use and closed by :py:meth:`close`.
        :param timeout: Total timeout in seconds for each request.
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None

    async def send(
        self,
        *,
        request: SigningRequest,
        byte_range: tuple[int, int] | None = None,
    ) -> bytes:
        headers = list(chain.from_iterable(fld.as_tuples() for fld in request.fields))
        if byte_range is not None and "Range" not in request.fields:
            start, end = byte_range
            headers.append(("Range", f"bytes={start}-{end}"))

        # The path is already encoded and must reach the wire as it was signed.
        url = URL(request.destination.build(), encoded=True)
        logger.debug("Sending %s request to %s", request.method, url)

        options: dict[str, aiohttp.ClientTimeout] = {}
        if self._timeout is not None:
            options["timeout"] = self._timeout

        session = self._get_session()
        try:
            async with session.request(
                method=request.method,
                url=url,
                headers=headers,
                data=request.body,
                **options,
            ) as resp:
                status = resp.status
                reason = resp.reason
                body = await resp.read()
        except aiohttp.ClientError as e:
            raise TransportError(f"{request.method} {url} failed: {e}") from e

        logger.debug("Received response status %s for %s", status, url)
        if not 200 <= status < 300:
            raise TransportError(
                f"{request.method} {url} returned {status} {reason or ''}".rstrip(),
                status=status,
                reason=reason,
                body=body,
            )
        return body

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()
