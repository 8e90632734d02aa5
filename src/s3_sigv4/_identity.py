# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass, field
from datetime import UTC, datetime

from .interfaces.identity import SigningIdentity


@dataclass(kw_only=True)
class AWSCredentialIdentity(SigningIdentity):
    """An access key pair, optionally with a session token and an expiry.

    Secrets are left out of the repr so credentials can be logged safely.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)
    expiration: datetime | None = None

    def __post_init__(self) -> None:
        # A naive expiry is taken to already be in UTC.
        if self.expiration is not None:
            if self.expiration.tzinfo is None:
                self.expiration = self.expiration.replace(tzinfo=UTC)
            else:
                self.expiration = self.expiration.astimezone(UTC)
