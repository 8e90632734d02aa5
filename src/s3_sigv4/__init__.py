# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""S3 SigV4 provides AWS Signature Version 4 header signing for object-storage
requests, plus a small asynchronous S3 client built on top of it."""

from __future__ import annotations

from ._http import URI, Field, Fields, SigningRequest
from ._identity import AWSCredentialIdentity
from .canonical import EMPTY_SHA256_HASH
from .client import S3Client
from .config import S3ClientConfig
from .credentials_resolvers import (
    EnvironmentCredentialsResolver,
    StaticCredentialsResolver,
)
from .signers import (
    SigningResult,
    SigV4Signer,
    SigV4SigningProperties,
    derive_signing_key,
    hash_payload,
)
from .transport import AIOHTTPTransport

__license__ = "Apache-2.0"
__version__ = "0.1.0"

__all__ = (
    "EMPTY_SHA256_HASH",
    "URI",
    "AIOHTTPTransport",
    "AWSCredentialIdentity",
    "EnvironmentCredentialsResolver",
    "Field",
    "Fields",
    "S3Client",
    "S3ClientConfig",
    "SigV4Signer",
    "SigV4SigningProperties",
    "SigningRequest",
    "SigningResult",
    "StaticCredentialsResolver",
    "derive_signing_key",
    "hash_payload",
)
