# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
# ruff: noqa: S101
from dataclasses import dataclass, field

from ._http import URI
from .credentials_resolvers import EnvironmentCredentialsResolver, IdentityResolver
from .transport import HTTPTransport


@dataclass(kw_only=True, frozen=True)
class S3ClientConfig:
    """Settings for an :py:class:`~s3_sigv4.client.S3Client`.

    Set once when the client is created and read-only afterwards.
    """

    endpoint: URI | str
    """Bucket endpoint, for example ``https://examplebucket.s3.amazonaws.com``.

    Object keys are appended to its path.
    """

    region: str
    """The region requests are signed for, for example ``us-east-1``."""

    service: str = "s3"
    """The signing name of the service."""

    identity_resolver: IdentityResolver = field(
        default_factory=EnvironmentCredentialsResolver
    )
    """Where the credentials for each request come from."""

    transport: HTTPTransport | None = None
    """Transport to send requests with. An aiohttp transport is used if omitted."""

    content_type: str | None = None
    """``Content-Type`` sent with uploads."""

    def __post_init__(self) -> None:
        if isinstance(self.endpoint, str):
            object.__setattr__(self, "endpoint", URI.from_url(self.endpoint))
        if not self.region:
            raise ValueError("A region is required to sign requests.")
        if not self.service:
            raise ValueError("A service name is required to sign requests.")

    @property
    def endpoint_uri(self) -> URI:
        assert isinstance(self.endpoint, URI)
        return self.endpoint
