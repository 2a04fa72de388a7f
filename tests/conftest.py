"""Pytest configuration and shared fixtures for SD-JWT tests."""

from typing import Any, Dict

import pytest

from sd_jwt_codec import json_utils
from sd_jwt_codec.disclosable import DisclosableObject, ObjectBuilder, sd_jwt
from sd_jwt_codec.disclosure import SeededDecoyGenerator, SeededSaltGenerator
from sd_jwt_codec.issuer import SdJwtFactory
from sd_jwt_codec.jws import ES256Signer, ES256Verifier, generate_es256_key_pair


@pytest.fixture
def address() -> Dict[str, Any]:
    """The address used throughout the SD-JWT draft examples."""
    return {
        "street_address": "Schulstr. 12",
        "locality": "Schulpforta",
        "region": "Sachsen-Anhalt",
        "country": "DE",
    }


@pytest.fixture
def base_claims() -> Dict[str, Any]:
    """Plain registered claims."""
    return {
        "iss": "https://example.com/issuer",
        "iat": 1683000000,
        "exp": 1883000000,
        "sub": "6c5c0a49-b589-431d-bae7-219122a9ec2c",
    }


def _with_base(builder: ObjectBuilder, base_claims: Dict[str, Any]) -> ObjectBuilder:
    for name, value in base_claims.items():
        builder.claim(name, value)
    return builder


@pytest.fixture
def flat_address_tree(base_claims, address) -> DisclosableObject:
    """``address`` disclosed as a whole."""
    return sd_jwt(lambda b: _with_base(b, base_claims).sd_claim("address", address))


@pytest.fixture
def structured_address_tree(base_claims, address) -> DisclosableObject:
    """``address`` plain, each of its properties disclosable."""

    def address_properties(a: ObjectBuilder) -> None:
        for name, value in address.items():
            a.sd_claim(name, value)

    return sd_jwt(lambda b: _with_base(b, base_claims).obj_claim("address", address_properties))


@pytest.fixture
def recursive_address_tree(base_claims, address) -> DisclosableObject:
    """``address`` disclosable as a whole and property by property."""

    def address_properties(a: ObjectBuilder) -> None:
        for name, value in address.items():
            a.sd_claim(name, value)

    return sd_jwt(lambda b: _with_base(b, base_claims).sd_obj_claim("address", address_properties))


@pytest.fixture
def salt_generator() -> SeededSaltGenerator:
    """Deterministic salts."""
    return SeededSaltGenerator(seed=42)


@pytest.fixture
def decoy_generator() -> SeededDecoyGenerator:
    """Deterministic decoys."""
    return SeededDecoyGenerator(seed=7)


@pytest.fixture
def factory(salt_generator, decoy_generator) -> SdJwtFactory:
    """Factory with deterministic providers and no decoy padding."""
    return SdJwtFactory(salt_generator=salt_generator, decoy_generator=decoy_generator)


@pytest.fixture(scope="session")
def es256_keys() -> tuple[bytes, bytes, bytes]:
    """Generate an ES256 key pair for testing."""
    return generate_es256_key_pair()


@pytest.fixture
def es256_signer(es256_keys) -> ES256Signer:
    return ES256Signer(es256_keys[0])


@pytest.fixture
def es256_verifier(es256_keys) -> ES256Verifier:
    return ES256Verifier(es256_keys[1], es256_keys[2])


def decode_disclosure(disclosure: str) -> list:
    """Decode the JSON array inside a disclosure."""
    return json_utils.decode(json_utils.b64url_decode(disclosure).decode("utf-8"))


@pytest.fixture
def decode():
    """Provide the disclosure decoder to tests."""
    return decode_disclosure


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "requires_crypto: mark test as requiring cryptographic operations")
