# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable


class Field(Protocol):
    """A single request header with one or more values.

    Names compare case-insensitively but keep the casing they were given, since
    that is what goes on the wire.
    """

    name: str
    values: list[str]

    def as_string(self) -> str:
        """The values joined into one header value."""
        ...

    def as_tuples(self) -> list[tuple[str, str]]:
        """A ``(name, value)`` pair for each value."""
        ...


class Fields(Protocol):
    """The headers of a request, keyed by lower-cased name."""

    entries: dict[str, Field]

    def set_field(self, field: Field) -> None:
        """Add a field, replacing any with the same case-insensitive name."""
        ...

    def as_mapping(self) -> dict[str, str]:
        """The headers as a plain ``name -> value`` dict."""
        ...

    def __getitem__(self, name: str) -> Field: ...

    def __delitem__(self, name: str) -> None: ...

    def __contains__(self, name: object) -> bool: ...

    def __iter__(self) -> Iterator[Field]: ...

    def __len__(self) -> int: ...


@runtime_checkable
class URI(Protocol):
    """Where a :py:class:`Request` is sent."""

    scheme: str
    """For example ``http`` or ``https``."""

    host: str
    """The hostname, for example ``examplebucket.s3.amazonaws.com``."""

    port: int | None
    """An explicit port number."""

    path: str | None
    """Decoded path component of the URI."""

    query: str | None
    """Already percent-encoded query component of the URI."""

    @property
    def netloc(self) -> str:
        """``{host}:{port}``, or just the host when no port is set."""
        ...

    @property
    def host_header(self) -> str:
        """The ``Host`` header value, without the scheme's default port."""
        ...

    def build(self) -> str:
        """The URL sent on the wire, with the path percent-encoded."""
        ...


class Request(Protocol):
    """A request that can be signed and sent to an object-storage endpoint."""

    destination: URI
    method: str
    fields: Fields
    body_hash: str
    """Hex SHA-256 of ``body``."""

    body: bytes | None
