# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import datetime
import hmac
import logging
from copy import deepcopy
from dataclasses import dataclass
from hashlib import sha256
from typing import Required, TypedDict

from ._http import Field, Fields, SigningRequest
from ._identity import AWSCredentialIdentity
from .canonical import (
    EMPTY_SHA256_HASH,
    canonicalize_header_names,
    canonicalize_headers,
    canonicalize_query_parameters,
    canonicalize_request,
    canonicalize_resource_path,
)
from .exceptions import (
    CanonicalizationError,
    KeyDerivationError,
    MissingExpectedParameterException,
    SignatureError,
)
from .interfaces.identity import SigningIdentity

logger = logging.getLogger(__name__)

SIGV4_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"
SIGV4_ALGORITHM: str = "AWS4-HMAC-SHA256"
SIGV4_TERMINATOR: str = "aws4_request"


class SigV4SigningProperties(TypedDict, total=False):
    region: Required[str]
    service: Required[str]
    date: str


@dataclass(kw_only=True, frozen=True)
class SigningResult:
    """Everything one signing pass produced.

    The signer never touches a caller's header collection. Use :py:meth:`apply` to
    write the added fields and the ``Authorization`` header onto one.
    """

    authorization: str
    """The value of the ``Authorization`` header."""

    signature: str
    """Lower-case hex HMAC-SHA256 of the string to sign."""

    signed_headers: str
    """The ``;``-joined lower-case names covered by the signature."""

    credential_scope: str
    """``<YYYYMMDD>/<region>/<service>/aws4_request``"""

    timestamp: str
    """The ``X-Amz-Date`` value the signature is bound to."""

    fields: tuple[Field, ...]
    """Fields the signer added before canonicalizing, in insertion order."""

    def apply(self, fields: Fields) -> None:
        """Set the added fields and ``Authorization`` on ``fields``.

        These headers must be transmitted exactly as signed.
        """
        for field in self.fields:
            fields.set_field(Field(name=field.name, values=field.values))
        fields.set_field(Field(name="Authorization", values=[self.authorization]))


class SigV4Signer:
    """Request signer for applying the AWS Signature Version 4 algorithm.

    Instances hold no state and may be shared between threads.
    """

    def sign(
        self,
        *,
        properties: SigV4SigningProperties,
        request: SigningRequest,
        identity: AWSCredentialIdentity,
    ) -> SigningRequest:
        """Generate and apply a SigV4 Signature to a copy of the supplied request.

        :param properties: SigV4SigningProperties to define signing primitives
            such as the target service, region, and date.
        :param request: A SigningRequest to sign prior to sending to the service.
        :param identity: A set of credentials representing an AWS Identity or role
            capacity.
        """
        result = self.compute_signature(
            properties=properties, request=request, identity=identity
        )
        new_request = deepcopy(request)
        result.apply(new_request.fields)
        return new_request

    def compute_signature(
        self,
        *,
        properties: SigV4SigningProperties,
        request: SigningRequest,
        identity: AWSCredentialIdentity,
    ) -> SigningResult:
        """Run one signing pass over ``request`` without modifying it.

        :param properties: SigV4SigningProperties to define signing primitives
            such as the target service, region, and date.
        :param request: The request to sign.
        :param identity: Credentials to sign with.
        """
        self._validate_identity(identity=identity)
        self._validate_request(request=request)
        timestamp = self._timestamp(properties=properties)

        # X-Amz-Date goes in before Host. Both are signed and must be sent.
        signing_fields = deepcopy(request.fields)
        added = [
            Field(name="X-Amz-Date", values=[timestamp]),
            Field(name="Host", values=[request.destination.host_header]),
        ]
        if (
            identity.session_token is not None
            and "X-Amz-Security-Token" not in signing_fields
        ):
            added.append(
                Field(name="X-Amz-Security-Token", values=[identity.session_token])
            )
        for field in added:
            signing_fields.set_field(field)

        headers = signing_fields.as_mapping()
        signed_headers = canonicalize_header_names(headers)
        canonical_request = self.canonical_request(
            method=request.method,
            path=request.destination.path,
            query=request.destination.query,
            headers=headers,
            body_hash=request.body_hash,
        )
        logger.debug("Canonical request: %r", canonical_request)

        string_to_sign = self.string_to_sign(
            canonical_request=canonical_request,
            timestamp=timestamp,
            properties=properties,
        )
        logger.debug("String to sign: %r", string_to_sign)

        signature = self._signature(
            string_to_sign=string_to_sign,
            secret_key=identity.secret_access_key,
            timestamp=timestamp,
            properties=properties,
        )
        credential_scope = self._scope(timestamp=timestamp, properties=properties)
        authorization = self.generate_authorization_value(
            credential=f"{identity.access_key_id}/{credential_scope}",
            signed_headers=signed_headers,
            signature=signature,
        )
        return SigningResult(
            authorization=authorization,
            signature=signature,
            signed_headers=signed_headers,
            credential_scope=credential_scope,
            timestamp=timestamp,
            fields=tuple(added),
        )

    def canonical_request(
        self,
        *,
        method: str,
        path: str | None,
        query: str | None,
        headers: dict[str, str],
        body_hash: str,
    ) -> str:
        """The canonical request is a standardized string laying out the components used
        in the SigV4 signing algorithm. This is useful to quickly compare inputs to find
        signature mismatches and unintended variances.

        :param method: The HTTP method.
        :param path: The decoded resource path.
        :param query: The already percent-encoded query string.
        :param headers: Every header that will be sent, including ``Host`` and
            ``X-Amz-Date``.
        :param body_hash: Hex SHA-256 of the request body.
        """
        try:
            return canonicalize_request(
                method.upper(),
                canonicalize_resource_path(path),
                canonicalize_query_parameters(query),
                canonicalize_headers(headers),
                canonicalize_header_names(headers),
                body_hash,
            )
        except CanonicalizationError:
            raise
        except (TypeError, ValueError, AttributeError) as e:
            raise CanonicalizationError(str(e)) from e

    def string_to_sign(
        self,
        *,
        canonical_request: str,
        timestamp: str,
        properties: SigV4SigningProperties,
    ) -> str:
        """The string to sign concatenates the formal identifier of the signing
        algorithm, the signing DateTime, the scope of the credentials, and a hash of
        the canonical request.

        The SigV4 specification defines the string to sign as:
            Algorithm \\n
            RequestDateTime \\n
            CredentialScope  \\n
            HashedCanonicalRequest
        """
        try:
            digest = sha256(canonical_request.encode("utf-8")).hexdigest()
        except (TypeError, ValueError) as e:
            raise SignatureError(f"Unable to hash the canonical request: {e}") from e
        return (
            f"{SIGV4_ALGORITHM}\n"
            f"{timestamp}\n"
            f"{self._scope(timestamp=timestamp, properties=properties)}\n"
            f"{digest}"
        )

    def generate_authorization_value(
        self, *, credential: str, signed_headers: str, signature: str
    ) -> str:
        """Generate the value of the ``Authorization`` header.

        :param credential:
            Credential scope string for generating the Authorization header.
            Defined as:
                <access_key>/<date>/<region>/<service>/<request_type>
        :param signed_headers:
            The ``;``-joined field names used in signing.
        :param signature:
            Final hash of the SigV4 signing algorithm generated from the
            canonical request and string to sign.
        """
        return (
            f"{SIGV4_ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )

    def _signature(
        self,
        *,
        string_to_sign: str,
        secret_key: str,
        timestamp: str,
        properties: SigV4SigningProperties,
    ) -> str:
        """Sign the string to sign with a key scoped to a date, region and service."""
        signing_key = derive_signing_key(
            secret_key=secret_key,
            region=properties["region"],
            date=timestamp[0:8],
            service=properties["service"],
        )
        try:
            return compute_keyed_hash(signing_key, string_to_sign).hex()
        except KeyDerivationError as e:
            raise SignatureError(str(e)) from e

    def _scope(self, *, timestamp: str, properties: SigV4SigningProperties) -> str:
        formatted_date = timestamp[0:8]
        region = properties["region"]
        service = properties["service"]
        # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
        return f"{formatted_date}/{region}/{service}/{SIGV4_TERMINATOR}"

    def _timestamp(self, *, properties: SigV4SigningProperties) -> str:
        for key in ("region", "service"):
            if not properties.get(key):
                raise MissingExpectedParameterException(
                    f"Cannot sign without a {key} in the signing properties. "
                    f"Current value: {properties.get(key)}"
                )
        date = properties.get("date")
        if date is not None:
            return date
        date_obj = datetime.datetime.now(datetime.UTC)
        return date_obj.strftime(SIGV4_TIMESTAMP_FORMAT)

    def _validate_identity(self, *, identity: AWSCredentialIdentity) -> None:
        """Perform runtime and expiration checks before attempting signing."""
        if not isinstance(identity, SigningIdentity):  # pyright: ignore
            raise MissingExpectedParameterException(
                "Received unexpected value for identity parameter. Expected "
                f"AWSCredentialIdentity but received {type(identity)}."
            )
        elif identity.is_expired:
            raise MissingExpectedParameterException(
                f"Provided identity expired at {identity.expiration}. Please "
                "refresh the credentials or update the expiration parameter."
            )

    def _validate_request(self, *, request: SigningRequest) -> None:
        if not request.method:
            raise MissingExpectedParameterException(
                "Cannot sign a request without an HTTP method."
            )
        if request.destination is None or not request.destination.host:
            raise MissingExpectedParameterException(
                "Cannot sign a request without a destination host."
            )


def compute_keyed_hash(key: bytes | bytearray, data: bytes | str) -> bytes:
    """Apply HMAC-SHA256 once.

    A new HMAC object is created on every call, so no hashing state is shared.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    elif not isinstance(data, bytes | bytearray):
        raise KeyDerivationError(
            f"HMAC-SHA256 input must be bytes or str but received {type(data)}."
        )
    try:
        return hmac.new(key=key, msg=data, digestmod=sha256).digest()
    except (TypeError, ValueError) as e:
        raise KeyDerivationError(f"HMAC-SHA256 rejected its input: {e}") from e


def derive_signing_key(
    *, secret_key: str, region: str, date: str, service: str
) -> bytes:
    """Compute the signing key scoped to a date, region and service.

    The raw secret only keys the first step and is zeroed right after it.
    """
    # Components of Signing Key Calculation
    #
    # DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
    # DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
    # DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
    # SigningKey = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
    if not isinstance(secret_key, str):
        raise KeyDerivationError(
            f"The secret key must be a str but received {type(secret_key)}."
        )
    secret = bytearray(f"AWS4{secret_key}".encode())
    try:
        k_date = compute_keyed_hash(secret, date)
    finally:
        secret[:] = bytes(len(secret))
    k_region = compute_keyed_hash(k_date, region)
    k_service = compute_keyed_hash(k_region, service)
    return compute_keyed_hash(k_service, SIGV4_TERMINATOR)


def hash_payload(payload: bytes | str | None) -> str:
    """Hex SHA-256 of a request body, as expected by ``X-Amz-Content-SHA256``."""
    if not payload:
        return EMPTY_SHA256_HASH
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return sha256(payload).hexdigest()
