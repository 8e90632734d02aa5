# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging
from types import TracebackType
from typing import Self

from ._http import URI, Field, Fields, SigningRequest
from .config import S3ClientConfig
from .signers import SigV4Signer, SigV4SigningProperties, hash_payload
from .transport import AIOHTTPTransport, HTTPTransport

logger = logging.getLogger(__name__)


class S3Client:
    """Reads, writes and deletes objects in one bucket.

    Every operation builds a :py:class:`SigningRequest`, resolves credentials, signs
    the request and sends it through the transport. Nothing is retried; a fresh
    call re-signs with a new timestamp.
    """

    def __init__(
        self, config: S3ClientConfig, *, signer: SigV4Signer | None = None
    ) -> None:
        self._config = config
        self._signer = signer or SigV4Signer()
        self._transport: HTTPTransport = config.transport or AIOHTTPTransport()
        self._owns_transport = config.transport is None

    @property
    def config(self) -> S3ClientConfig:
        return self._config

    async def get(self, key: str) -> bytes:
        """Download a whole object."""
        logger.debug("Getting object %s", key)
        return await self._send(method="GET", key=key, fields=Fields())

    async def get_range(self, key: str, start: int, end: int) -> bytes:
        """Download the bytes from ``start`` to ``end`` of an object, both inclusive."""
        if start < 0 or end < start:
            raise ValueError(
                f"Invalid byte range {start}-{end}: expected 0 <= start <= end."
            )
        logger.debug("Getting bytes %s-%s of object %s", start, end, key)
        fields = Fields([Field(name="Range", values=[f"bytes={start}-{end}"])])
        return await self._send(method="GET", key=key, fields=fields)

    async def put(self, key: str, data: bytes | str) -> None:
        """Upload an object. Text is encoded as UTF-8."""
        body = data.encode("utf-8") if isinstance(data, str) else data
        logger.debug("Putting object %s (%s bytes)", key, len(body))
        fields = Fields([Field(name="Content-Length", values=[str(len(body))])])
        if self._config.content_type is not None:
            fields.set_field(
                Field(name="Content-Type", values=[self._config.content_type])
            )
        await self._send(method="PUT", key=key, fields=fields, body=body)

    async def delete(self, key: str) -> None:
        """Delete an object."""
        logger.debug("Deleting object %s", key)
        await self._send(method="DELETE", key=key, fields=Fields())

    async def _send(
        self,
        *,
        method: str,
        key: str,
        fields: Fields,
        body: bytes | None = None,
    ) -> bytes:
        body_hash = hash_payload(body)
        fields.set_field(Field(name="X-Amz-Content-SHA256", values=[body_hash]))
        request = SigningRequest(
            destination=self._object_uri(key),
            method=method,
            fields=fields,
            body_hash=body_hash,
            body=body,
        )

        identity = await self._config.identity_resolver.get_identity()
        properties = SigV4SigningProperties(
            region=self._config.region,
            service=self._config.service,
        )
        signed_request = self._signer.sign(
            properties=properties, request=request, identity=identity
        )
        return await self._transport.send(request=signed_request)

    def _object_uri(self, key: str) -> URI:
        if not key:
            raise ValueError("An object key is required.")
        endpoint = self._config.endpoint_uri
        base_path = (endpoint.path or "").rstrip("/")
        return endpoint.with_path(f"{base_path}/{key}")

    async def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport and isinstance(self._transport, AIOHTTPTransport):
            await self._transport.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()
