# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0


class BaseSigV4Exception(Exception):
    """Top-level exception to capture signing and object-storage errors."""


class MissingExpectedParameterException(BaseSigV4Exception, ValueError):
    """A request or identity is missing a value required for signing."""


class SigningError(BaseSigV4Exception):
    """A signing pass failed.

    ``stage`` names the part of the algorithm that raised, one of
    ``canonicalization``, ``key-derivation`` or ``signature``.
    """

    stage: str = "signing"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.stage} failed: {message}")


class CanonicalizationError(SigningError, ValueError):
    stage = "canonicalization"


class KeyDerivationError(SigningError):
    stage = "key-derivation"


class SignatureError(SigningError):
    stage = "signature"


class IdentityResolutionError(BaseSigV4Exception):
    """Credentials could not be loaded from the configured source."""


class TransportError(BaseSigV4Exception):
    """The HTTP exchange failed or returned a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        reason: str | None = None,
        body: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason
        self.body = body
