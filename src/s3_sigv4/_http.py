# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from copy import deepcopy
from dataclasses import dataclass
from functools import cached_property
from urllib.parse import unquote, urlparse, urlunparse

import s3_sigv4.interfaces.http as interfaces_http

from .canonical import EMPTY_SHA256_HASH, compress_whitespace, url_encode

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}


class Field(interfaces_http.Field):
    """One request header: a name and its values, in the order they were given.

    The name keeps the casing it was created with. That casing is what a transport
    sends; signing lower-cases it separately.
    """

    def __init__(self, *, name: str, values: Iterable[str] | None = None):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []

    def as_string(self) -> str:
        """Join the values into the single string that gets signed.

        A lone value is returned untouched. Several values are trimmed and joined
        with a bare comma, the same way a server folds repeated header lines.
        """
        if len(self.values) == 1:
            return self.values[0]
        return ",".join(compress_whitespace(value) for value in self.values)

    def as_tuples(self) -> list[tuple[str, str]]:
        """One ``(name, value)`` pair per value, as a transport sends them."""
        return [(self.name, value) for value in self.values]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return False
        return (self.name, self.values) == (other.name, other.values)

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, values={self.values!r})"


class Fields(interfaces_http.Fields):
    """Request headers looked up by case-insensitive name.

    Every name appears once. Setting a field whose name differs only in case
    replaces the existing entry, together with its casing. Iteration follows
    insertion order.
    """

    def __init__(self, initial: Iterable[interfaces_http.Field] | None = None):
        """
        :param initial: Fields to start with. Their names must be unique ignoring
            case.
        """
        self.entries: dict[str, interfaces_http.Field] = {}
        for field in initial or ():
            key = _field_key(field.name)
            if key in self.entries:
                raise ValueError(
                    f"Header {field.name!r} appears more than once in the initial "
                    "fields. Combine its values into a single Field."
                )
            self.entries[key] = field

    @classmethod
    def from_mapping(cls, headers: Mapping[str, str]) -> Fields:
        """Build a collection from a plain ``name -> value`` mapping.

        Case variants of the same name collapse to a single entry; the last one wins.
        """
        fields = cls()
        for name, value in headers.items():
            fields.set_field(Field(name=name, values=[value]))
        return fields

    def set_field(self, field: interfaces_http.Field) -> None:
        """Add ``field``, replacing any entry with the same name."""
        self[field.name] = field

    def get(
        self, name: str, default: interfaces_http.Field | None = None
    ) -> interfaces_http.Field | None:
        return self.entries.get(_field_key(name), default)

    def as_mapping(self) -> dict[str, str]:
        """Get a ``name -> value`` dict with the names as they were supplied."""
        return {field.name: field.as_string() for field in self.entries.values()}

    def __setitem__(self, name: str, field: interfaces_http.Field) -> None:
        key = _field_key(name)
        if key != _field_key(field.name):
            raise ValueError(
                f"Cannot store Field {field.name!r} under the name {name!r}."
            )
        self.entries[key] = field

    def __getitem__(self, name: str) -> interfaces_http.Field:
        return self.entries[_field_key(name)]

    def __delitem__(self, name: str) -> None:
        del self.entries[_field_key(name)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and _field_key(name) in self.entries

    def __iter__(self) -> Iterator[interfaces_http.Field]:
        return iter(self.entries.values())

    def __len__(self) -> int:
        return len(self.entries)

    def __eq__(self, other: object) -> bool:
        """Entries must match in names, values and order."""
        if not isinstance(other, Fields):
            return False
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"Fields({list(self.entries.values())!r})"


def _field_key(name: str) -> str:
    return name.lower()


@dataclass(kw_only=True, frozen=True)
class URI(interfaces_http.URI):
    """Target location for a :py:class:`SigningRequest`."""

    scheme: str = "https"
    """For example ``http`` or ``https``."""

    host: str
    """The hostname, for example ``examplebucket.s3.amazonaws.com``."""

    port: int | None = None
    """An explicit port number."""

    path: str | None = None
    """Decoded path component of the URI. Encoding happens when the URI is built
    and when the request is canonicalized."""

    query: str | None = None
    """Query component of the URI, already percent-encoded by the caller."""

    @property
    def netloc(self) -> str:
        """Construct netloc string in format ``{host}:{port}``

        ``port`` is only included if set.
        """
        return self._netloc

    # cached_property does NOT behave like property, it actually allows for setting.
    # Therefore we need a layer of indirection.
    @cached_property
    def _netloc(self) -> str:
        if self.port is not None:
            return f"{self._host_literal}:{self.port}"
        return self._host_literal

    @property
    def _host_literal(self) -> str:
        # IPv6 literals are written in brackets in URLs and Host headers.
        if ":" in self.host and not self.host.startswith("["):
            return f"[{self.host}]"
        return self.host

    @property
    def host_header(self) -> str:
        """The value of the ``Host`` header for this URI.

        The port is only included when it is not the default for the scheme.
        """
        if self.port is None or DEFAULT_PORTS.get(self.scheme) == self.port:
            return self._host_literal
        return f"{self._host_literal}:{self.port}"

    def build(self) -> str:
        """Construct URI string representation.

        Returns a string of the form ``{scheme}://{host}:{port}{path}?{query}`` with
        the path percent-encoded.
        """
        components = (
            self.scheme,
            self.netloc,
            url_encode(self.path or "/", is_path=True),
            "",  # params
            self.query or "",
            "",  # fragment
        )
        return urlunparse(components)

    def with_path(self, path: str) -> URI:
        """Copy of this URI pointing at another decoded path, without a query."""
        return URI(scheme=self.scheme, host=self.host, port=self.port, path=path)

    @classmethod
    def from_url(cls, url: str) -> URI:
        """Parse an URL string, decoding its path and keeping its query as is."""
        parts = urlparse(url)
        if not parts.hostname:
            raise ValueError(f"URL {url!r} does not contain a host.")
        return cls(
            scheme=parts.scheme or "https",
            host=parts.hostname,
            port=parts.port,
            path=unquote(parts.path) or None,
            query=parts.query or None,
        )


class SigningRequest(interfaces_http.Request):
    """A request to be signed and then handed to a transport.

    :param destination: Where the request is sent. Its query must already be
        percent-encoded.
    :param method: The HTTP method, for example ``GET``. It is upper-cased here so
        the signed and the transmitted method are the same string.
    :param fields: Headers to sign and transmit.
    :param body_hash: Hex SHA-256 of the body, :py:data:`EMPTY_SHA256_HASH` when
        there is none.
    :param body: The body bytes, only read by the transport.
    """

    def __init__(
        self,
        *,
        destination: URI,
        method: str,
        fields: Fields | None = None,
        body_hash: str = EMPTY_SHA256_HASH,
        body: bytes | None = None,
    ):
        self.destination = destination
        self.method = method.upper()
        self.fields = fields if fields is not None else Fields()
        self.body_hash = body_hash
        self.body = body

    def __deepcopy__(
        self, memo: dict[int, SigningRequest] | None = None
    ) -> SigningRequest:
        if memo is None:
            memo = {}

        if id(self) in memo:
            return memo[id(self)]

        # the destination and body don't need to be copied because they're immutable
        new_instance = self.__class__(
            destination=self.destination,
            method=self.method,
            fields=deepcopy(self.fields, memo),
            body_hash=self.body_hash,
            body=self.body,
        )
        memo[id(self)] = new_instance
        return new_instance

    def __repr__(self) -> str:
        return (
            f"SigningRequest(method={self.method!r}, "
            f"destination={self.destination.build()!r})"
        )
