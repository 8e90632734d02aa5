# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class SigningIdentity(Protocol):
    """The credentials a request is signed with.

    Region and service are not part of the identity. They come from the signing
    properties, so one set of credentials can sign for any scope.
    """

    access_key_id: str
    """Public half of the key pair. It is sent in the ``Credential`` part of the
    ``Authorization`` header."""

    secret_access_key: str
    """Private half of the key pair. It only ever keys the first HMAC step."""

    session_token: str | None = None
    """Token of temporary credentials, sent as ``X-Amz-Security-Token``."""

    expiration: datetime | None = None
    """When temporary credentials stop being valid, in UTC."""

    @property
    def is_expired(self) -> bool:
        """Whether the credentials can no longer be used."""
        if self.expiration is None:
            return False
        return datetime.now(tz=UTC) >= self.expiration
