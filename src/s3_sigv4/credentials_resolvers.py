# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import os
from typing import Protocol

from ._identity import AWSCredentialIdentity
from .exceptions import IdentityResolutionError


class IdentityResolver(Protocol):
    """Used to load the credentials a request is signed with."""

    async def get_identity(self) -> AWSCredentialIdentity:
        """Load the credentials from this resolver."""
        ...


class StaticCredentialsResolver(IdentityResolver):
    """Resolve Static AWS Credentials."""

    def __init__(self, *, credentials: AWSCredentialIdentity) -> None:
        self._credentials = credentials

    async def get_identity(self) -> AWSCredentialIdentity:
        return self._credentials


class EnvironmentCredentialsResolver(IdentityResolver):
    """Resolves AWS Credentials from system environment variables.

    The environment is read on every call so rotated credentials are picked up.
    """

    async def get_identity(self) -> AWSCredentialIdentity:
        access_key_id = os.getenv("AWS_ACCESS_KEY_ID")
        secret_access_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        session_token = os.getenv("AWS_SESSION_TOKEN")

        if not access_key_id or not secret_access_key:
            raise IdentityResolutionError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY are required"
            )

        return AWSCredentialIdentity(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token or None,
        )
