import copy
import re
import typing
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time
from s3_sigv4 import (
    EMPTY_SHA256_HASH,
    URI,
    AWSCredentialIdentity,
    Field,
    Fields,
    SigningRequest,
    SigV4Signer,
    SigV4SigningProperties,
)
from s3_sigv4.exceptions import (
    CanonicalizationError,
    KeyDerivationError,
    MissingExpectedParameterException,
    SigningError,
)
from s3_sigv4.signers import compute_keyed_hash, derive_signing_key, hash_payload

SIGV4_RE = re.compile(
    r"AWS4-HMAC-SHA256 "
    r"Credential=(?P<access_key>\w+)/(?P<date>\d{8})/"
    r"(?P<signing_region>[a-z0-9-]+)/(?P<service>[a-z0-9]+)/aws4_request, "
    r"SignedHeaders=(?P<signed_headers>[a-z0-9;-]+), "
    r"Signature=(?P<signature>[0-9a-f]{64})$"
)


@pytest.fixture(scope="module")
def aws_identity() -> AWSCredentialIdentity:
    return AWSCredentialIdentity(
        access_key_id="AKID123456",
        secret_access_key="EXAMPLE1234SECRET",
    )


@pytest.fixture(scope="module")
def signing_properties() -> SigV4SigningProperties:
    return SigV4SigningProperties(region="us-west-2", service="s3")


@pytest.fixture
def aws_request() -> SigningRequest:
    return SigningRequest(
        destination=URI(
            scheme="https",
            host="127.0.0.1",
            port=8000,
            path="/bucket/key.txt",
        ),
        method="GET",
        fields=Fields([Field(name="Content-Type", values=["text/plain"])]),
    )


class TestSigV4Signer:
    SIGNER = SigV4Signer()

    def test_sign(
        self,
        aws_identity: AWSCredentialIdentity,
        aws_request: SigningRequest,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        signed_request = self.SIGNER.sign(
            properties=signing_properties,
            request=aws_request,
            identity=aws_identity,
        )
        assert isinstance(signed_request, SigningRequest)
        assert signed_request is not aws_request
        assert "authorization" in signed_request.fields
        authorization_field = signed_request.fields["authorization"]
        match = SIGV4_RE.match(authorization_field.as_string())
        assert match
        assert match.group("access_key") == "AKID123456"
        assert match.group("signing_region") == "us-west-2"
        assert match.group("signed_headers") == "content-type;host;x-amz-date"

    def test_sign_doesnt_modify_original_request(
        self,
        aws_identity: AWSCredentialIdentity,
        aws_request: SigningRequest,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        original_request = copy.deepcopy(aws_request)
        signed_request = self.SIGNER.sign(
            properties=signing_properties,
            request=aws_request,
            identity=aws_identity,
        )
        assert aws_request.fields == original_request.fields
        assert signed_request.fields != aws_request.fields
        assert "X-Amz-Date" not in aws_request.fields

    def test_host_includes_non_default_port(
        self,
        aws_identity: AWSCredentialIdentity,
        aws_request: SigningRequest,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        signed_request = self.SIGNER.sign(
            properties=signing_properties,
            request=aws_request,
            identity=aws_identity,
        )
        assert signed_request.fields["Host"].as_string() == "127.0.0.1:8000"

    @pytest.mark.parametrize(
        "scheme,port", [("https", 443), ("http", 80), ("https", None)]
    )
    def test_host_omits_default_port(
        self,
        scheme: str,
        port: int | None,
        aws_identity: AWSCredentialIdentity,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        request = SigningRequest(
            destination=URI(scheme=scheme, host="examplebucket.s3.amazonaws.com", port=port),
            method="GET",
        )
        result = self.SIGNER.compute_signature(
            properties=signing_properties, request=request, identity=aws_identity
        )
        host_field = result.fields[1]
        assert host_field.name == "Host"
        assert host_field.as_string() == "examplebucket.s3.amazonaws.com"

    def test_existing_date_and_host_are_replaced(
        self,
        aws_identity: AWSCredentialIdentity,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        request = SigningRequest(
            destination=URI(host="examplebucket.s3.amazonaws.com"),
            method="GET",
            fields=Fields.from_mapping(
                {"x-amz-date": "19700101T000000Z", "host": "stale.example.com"}
            ),
        )
        properties = SigV4SigningProperties(
            region="us-west-2", service="s3", date="20240102T030405Z"
        )
        signed = self.SIGNER.sign(
            properties=properties, request=request, identity=aws_identity
        )
        assert len(signed.fields) == 3
        assert signed.fields["X-Amz-Date"].as_string() == "20240102T030405Z"
        assert signed.fields["Host"].as_string() == "examplebucket.s3.amazonaws.com"

    def test_session_token_is_signed(
        self, aws_request: SigningRequest, signing_properties: SigV4SigningProperties
    ) -> None:
        identity = AWSCredentialIdentity(
            access_key_id="AKID123456",
            secret_access_key="EXAMPLE1234SECRET",
            session_token="X123456SESSION",
        )
        result = self.SIGNER.compute_signature(
            properties=signing_properties, request=aws_request, identity=identity
        )
        assert result.signed_headers == (
            "content-type;host;x-amz-date;x-amz-security-token"
        )
        assert result.fields[2].as_string() == "X123456SESSION"

    def test_multi_valued_header_is_signed_as_sent(
        self, aws_identity: AWSCredentialIdentity
    ) -> None:
        properties = SigV4SigningProperties(
            region="us-west-2", service="s3", date="20240102T030405Z"
        )
        destination = URI(host="examplebucket.s3.amazonaws.com", path="/k")
        multi = SigningRequest(
            destination=destination,
            method="PUT",
            fields=Fields([Field(name="X-Amz-Meta-A", values=["a,b", " c "])]),
        )
        # A server folds the repeated lines into one comma-joined value.
        folded = SigningRequest(
            destination=destination,
            method="PUT",
            fields=Fields.from_mapping({"X-Amz-Meta-A": "a,b,c"}),
        )

        signed = self.SIGNER.sign(
            properties=properties, request=multi, identity=aws_identity
        )
        assert signed.fields["X-Amz-Meta-A"].as_tuples() == [
            ("X-Amz-Meta-A", "a,b"),
            ("X-Amz-Meta-A", " c "),
        ]
        headers = signed.fields.as_mapping()
        assert headers["X-Amz-Meta-A"] == "a,b,c"
        assert "x-amz-meta-a:a,b,c\n" in self.SIGNER.canonical_request(
            method="PUT",
            path="/k",
            query=None,
            headers=headers,
            body_hash=EMPTY_SHA256_HASH,
        )
        assert (
            self.SIGNER.compute_signature(
                properties=properties, request=multi, identity=aws_identity
            ).signature
            == self.SIGNER.compute_signature(
                properties=properties, request=folded, identity=aws_identity
            ).signature
        )

    def test_method_is_signed_as_sent(
        self, aws_identity: AWSCredentialIdentity
    ) -> None:
        properties = SigV4SigningProperties(
            region="us-west-2", service="s3", date="20240102T030405Z"
        )
        lower = SigningRequest(destination=URI(host="example.com"), method="put")
        upper = SigningRequest(destination=URI(host="example.com"), method="PUT")

        signed = self.SIGNER.sign(
            properties=properties, request=lower, identity=aws_identity
        )
        assert signed.method == "PUT"
        assert (
            signed.fields["Authorization"].as_string()
            == self.SIGNER.compute_signature(
                properties=properties, request=upper, identity=aws_identity
            ).authorization
        )

    @typing.no_type_check
    def test_sign_with_invalid_identity(
        self, aws_request: SigningRequest, signing_properties: SigV4SigningProperties
    ) -> None:
        """Ignore typing as we're testing an invalid input state."""
        identity = object()
        assert not isinstance(identity, AWSCredentialIdentity)
        with pytest.raises(ValueError):
            self.SIGNER.sign(
                properties=signing_properties,
                request=aws_request,
                identity=identity,
            )

    def test_sign_with_expired_identity(
        self, aws_request: SigningRequest, signing_properties: SigV4SigningProperties
    ) -> None:
        identity = AWSCredentialIdentity(
            access_key_id="AKID123456",
            secret_access_key="EXAMPLE1234SECRET",
            expiration=datetime(1970, 1, 1, tzinfo=UTC),
        )
        with pytest.raises(ValueError):
            self.SIGNER.sign(
                properties=signing_properties,
                request=aws_request,
                identity=identity,
            )

    def test_sign_without_method(
        self,
        aws_identity: AWSCredentialIdentity,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        request = SigningRequest(destination=URI(host="example.com"), method="")
        with pytest.raises(MissingExpectedParameterException):
            self.SIGNER.sign(
                properties=signing_properties, request=request, identity=aws_identity
            )

    def test_sign_without_host(
        self,
        aws_identity: AWSCredentialIdentity,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        request = SigningRequest(destination=URI(host=""), method="GET")
        with pytest.raises(MissingExpectedParameterException):
            self.SIGNER.sign(
                properties=signing_properties, request=request, identity=aws_identity
            )

    @typing.no_type_check
    def test_sign_without_region(
        self, aws_identity: AWSCredentialIdentity, aws_request: SigningRequest
    ) -> None:
        with pytest.raises(MissingExpectedParameterException):
            self.SIGNER.sign(
                properties={"service": "s3"},
                request=aws_request,
                identity=aws_identity,
            )

    def test_canonicalization_failure_names_stage(
        self,
        aws_identity: AWSCredentialIdentity,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        request = SigningRequest(
            destination=URI(host="example.com"),
            method="GET",
            fields=Fields([Field(name="Content-Length", values=[12])]),  # type: ignore
        )
        with pytest.raises(CanonicalizationError) as exc_info:
            self.SIGNER.compute_signature(
                properties=signing_properties, request=request, identity=aws_identity
            )
        assert isinstance(exc_info.value, SigningError)
        assert exc_info.value.stage == "canonicalization"
        assert str(exc_info.value).startswith("canonicalization failed")

    def test_repeated_signing_moves_timestamp_only(
        self,
        aws_identity: AWSCredentialIdentity,
        aws_request: SigningRequest,
        signing_properties: SigV4SigningProperties,
    ) -> None:
        with freeze_time("2024-03-01 12:00:00") as frozen:
            first = self.SIGNER.sign(
                properties=signing_properties,
                request=aws_request,
                identity=aws_identity,
            )
            frozen.tick(timedelta(seconds=1))
            second = self.SIGNER.sign(
                properties=signing_properties,
                request=aws_request,
                identity=aws_identity,
            )

        assert first.fields["X-Amz-Date"].as_string() == "20240301T120000Z"
        assert second.fields["X-Amz-Date"].as_string() == "20240301T120001Z"
        first_match = SIGV4_RE.match(first.fields["Authorization"].as_string())
        second_match = SIGV4_RE.match(second.fields["Authorization"].as_string())
        assert first_match and second_match
        assert first_match.group("signature") != second_match.group("signature")
        assert first_match.group("signed_headers") == second_match.group(
            "signed_headers"
        )

    def test_concurrent_signing_matches_sequential(
        self, aws_identity: AWSCredentialIdentity
    ) -> None:
        properties = SigV4SigningProperties(
            region="eu-west-1", service="s3", date="20240301T120000Z"
        )

        def build(index: int) -> SigningRequest:
            return SigningRequest(
                destination=URI(host="bucket.s3.amazonaws.com", path=f"/obj-{index}"),
                method="PUT" if index % 2 else "GET",
                fields=Fields.from_mapping({"X-Amz-Meta-Index": str(index)}),
                body_hash=hash_payload(f"payload {index}"),
            )

        def sign(index: int) -> str:
            return self.SIGNER.compute_signature(
                properties=properties, request=build(index), identity=aws_identity
            ).authorization

        count = 64
        expected = [sign(index) for index in range(count)]
        with ThreadPoolExecutor(max_workers=8) as executor:
            actual = list(executor.map(sign, range(count)))

        assert actual == expected
        assert len(set(actual)) == count


class TestKeyDerivation:
    BASE = {
        "secret_key": "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY",
        "region": "us-east-1",
        "date": "20130524",
        "service": "s3",
    }

    def test_s3_example_key(self) -> None:
        assert derive_signing_key(**self.BASE).hex() == (
            "dbb893acc010964918f1fd433add87c70e8b0db6be30c1fbeafefa5ec6ba8378"
        )

    def test_is_deterministic(self) -> None:
        first = derive_signing_key(**self.BASE)
        second = derive_signing_key(**self.BASE)
        assert first == second
        assert len(first) == 32

    @pytest.mark.parametrize(
        "name,value",
        [
            ("secret_key", "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEZ"),
            ("region", "us-east-2"),
            ("date", "20130525"),
            ("service", "s4"),
        ],
    )
    def test_changes_with_each_input(self, name: str, value: str) -> None:
        changed = {**self.BASE, name: value}
        assert derive_signing_key(**changed) != derive_signing_key(**self.BASE)

    @typing.no_type_check
    def test_rejects_invalid_secret(self) -> None:
        with pytest.raises(KeyDerivationError):
            derive_signing_key(**{**self.BASE, "secret_key": None})

    @typing.no_type_check
    def test_rejects_invalid_scope_component(self) -> None:
        with pytest.raises(KeyDerivationError) as exc_info:
            derive_signing_key(**{**self.BASE, "region": None})
        assert exc_info.value.stage == "key-derivation"

    @typing.no_type_check
    def test_keyed_hash_rejects_invalid_key(self) -> None:
        with pytest.raises(KeyDerivationError):
            compute_keyed_hash(None, "data")

    def test_keyed_hash_accepts_text_and_bytes(self) -> None:
        assert compute_keyed_hash(b"key", "data") == compute_keyed_hash(
            bytearray(b"key"), b"data"
        )


@pytest.mark.parametrize(
    "payload,expected",
    [
        (None, EMPTY_SHA256_HASH),
        (b"", EMPTY_SHA256_HASH),
        ("", EMPTY_SHA256_HASH),
        (
            b"Welcome to Amazon S3.",
            "44ce7dd67c959e0d3524ffac1771dfbba87d2b6b4b4e99e42034a8b803f8b072",
        ),
        (
            "Welcome to Amazon S3.",
            "44ce7dd67c959e0d3524ffac1771dfbba87d2b6b4b4e99e42034a8b803f8b072",
        ),
    ],
)
def test_hash_payload(payload: bytes | str | None, expected: str) -> None:
    assert hash_payload(payload) == expected
