# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""String transforms that turn request attributes into the exact canonical forms
required by the AWS Signature Version 4 algorithm.

Every function here is pure. Sorting is always ordinal: comparing ``str`` values
compares code points, which orders the same way as the UTF-8 bytes they encode to,
and never depends on the process locale.
"""

from collections.abc import Mapping

from .exceptions import CanonicalizationError

EMPTY_SHA256_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

UNRESERVED_CHARACTERS: frozenset[int] = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)
PATH_SAFE_CHARACTERS: frozenset[int] = UNRESERVED_CHARACTERS | frozenset(b"/:")

# Only ASCII whitespace is collapsed. Other Unicode spaces pass through unchanged.
WHITESPACE_CHARACTERS: frozenset[str] = frozenset(" \t\n\r\x0b\x0c")


def url_encode(data: str, is_path: bool = False) -> str:
    """Percent-encode ``data`` byte-wise over its UTF-8 encoding.

    Bytes outside of ``A-Za-z0-9-_.~`` are written as upper-case ``%XX`` escapes, so
    a multi-byte character turns into several escapes. With ``is_path`` set, ``/``
    and ``:`` are left as they are.

    :param data: The text to encode.
    :param is_path: Whether ``data`` is a resource path.
    """
    if not isinstance(data, str):
        raise CanonicalizationError(
            f"Expected a str to percent-encode but received {type(data)}."
        )
    safe = PATH_SAFE_CHARACTERS if is_path else UNRESERVED_CHARACTERS
    return "".join(
        chr(byte) if byte in safe else f"%{byte:02X}" for byte in data.encode("utf-8")
    )


def compress_whitespace(value: str) -> str:
    """Collapse every run of whitespace in ``value`` to one space and trim the ends.

    ``"a   b\\t c"`` becomes ``"a b c"``.
    """
    output: list[str] = []
    pending_space = False
    for char in value:
        if char in WHITESPACE_CHARACTERS:
            pending_space = True
            continue
        if pending_space and output:
            output.append(" ")
        pending_space = False
        output.append(char)
    return "".join(output)


def canonicalize_header_names(headers: Mapping[str, str] | None) -> str:
    """Lower-case, sort and ``;``-join the names of all headers.

    The result is used both as the ``SignedHeaders`` value of the ``Authorization``
    header and as the signed-headers line of the canonical request. Every header of
    the request is signed.
    """
    if not headers:
        return ""
    names = {_lower_name(name) for name in headers}
    return ";".join(sorted(names))


def canonicalize_headers(headers: Mapping[str, str] | None) -> str:
    """Build the ``name:value\\n`` block of the canonical request.

    Names are lower-cased and sorted. When a name appears with different casings the
    last one wins. Values have their whitespace compressed.
    """
    if not headers:
        return ""

    normalized: dict[str, str] = {}
    for name, value in headers.items():
        if not isinstance(value, str):
            raise CanonicalizationError(
                f"Value of header {name!r} must be a str but received {type(value)}."
            )
        normalized[_lower_name(name)] = compress_whitespace(value)

    return "".join(f"{name}:{normalized[name]}\n" for name in sorted(normalized))


def canonicalize_query_parameters(query: str | None) -> str:
    """Sort the ``key=value`` pairs of an already percent-encoded query string.

    Pairs are split on the first ``=``; a pair without one gets an empty value.
    Keys and values are not re-encoded.
    """
    if not query:
        return ""
    if not isinstance(query, str):
        raise CanonicalizationError(
            f"Expected the query to be a str but received {type(query)}."
        )

    pairs: list[tuple[str, str]] = []
    for segment in query.split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        pairs.append((key, value))

    # Sorted by key; equal keys keep a stable order by value.
    return "&".join(f"{key}={value}" for key, value in sorted(pairs))


def canonicalize_resource_path(path: str | None) -> str:
    """Percent-encode a decoded resource path. An empty path is ``/``."""
    if not path:
        return "/"
    return url_encode(path, is_path=True)


def canonicalize_request(
    method: str,
    canonical_path: str,
    canonical_query: str,
    canonical_headers: str,
    signed_headers: str,
    body_hash: str,
) -> str:
    """Join the components of the canonical request.

    The SigV4 specification defines the canonical request to be:
        <HTTPMethod>\\n
        <CanonicalURI>\\n
        <CanonicalQueryString>\\n
        <CanonicalHeaders>\\n
        <SignedHeaders>\\n
        <HashedPayload>

    ``canonical_headers`` ends with its own newline, which leaves an empty line
    between the headers block and the signed-header names.
    """
    if not method:
        raise CanonicalizationError("The HTTP method must not be empty.")
    return "\n".join(
        (
            method,
            canonical_path,
            canonical_query,
            canonical_headers,
            signed_headers,
            body_hash,
        )
    )


def _lower_name(name: str) -> str:
    if not isinstance(name, str) or not name:
        raise CanonicalizationError(
            f"Header names must be non-empty strings, received {name!r}."
        )
    return name.lower()
