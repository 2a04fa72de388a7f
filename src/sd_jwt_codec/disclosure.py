"""Disclosures, digests and the salt and decoy providers behind them."""

import hashlib
import logging
import random
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, Union

from . import json_utils
from .disclosable import ARRAY_DIGEST_KEY, CLAIM_SD
from .errors import InvalidDisclosureError, UnsupportedHashAlgorithmError

logger = logging.getLogger(__name__)

DEFAULT_SALT_LENGTH = 16


class HashAlgorithm(Enum):
    """Hash algorithms accepted as ``_sd_alg``."""

    SHA_256 = "sha-256"
    SHA_384 = "sha-384"
    SHA_512 = "sha-512"

    @property
    def identifier(self) -> str:
        return self.value

    @classmethod
    def from_identifier(cls, identifier: Any) -> "HashAlgorithm":
        """Look up an algorithm by its ``_sd_alg`` identifier.

        Raises:
            UnsupportedHashAlgorithmError: If the identifier is unknown
        """
        for alg in cls:
            if alg.value == identifier:
                return alg
        raise UnsupportedHashAlgorithmError(f"Unsupported hash algorithm: {identifier!r}")

    def hash(self, data: bytes) -> bytes:
        if self is HashAlgorithm.SHA_256:
            return hashlib.sha256(data).digest()
        elif self is HashAlgorithm.SHA_384:
            return hashlib.sha384(data).digest()
        return hashlib.sha512(data).digest()


class SaltGenerator(Protocol):
    """Protocol for generating cryptographic salts for disclosures."""

    def generate_salt(self, length: int = DEFAULT_SALT_LENGTH) -> bytes:
        """Generate a cryptographic salt.

        Args:
            length: Salt length in bytes (default 16 for 128 bits)

        Returns:
            Random salt bytes
        """


class SecureSaltGenerator:
    """Cryptographically secure salt generator using secrets module."""

    def generate_salt(self, length: int = DEFAULT_SALT_LENGTH) -> bytes:
        return secrets.token_bytes(length)


class SeededSaltGenerator:
    """Deterministic salt generator for testing purposes.

    WARNING: This generator is NOT cryptographically secure and should
    only be used for testing and reproducible examples.
    """

    def __init__(self, seed: int = 42):
        self._random = random.Random(seed)

    def generate_salt(self, length: int = DEFAULT_SALT_LENGTH) -> bytes:
        return bytes(self._random.getrandbits(8) for _ in range(length))


def new_salt(salt_generator: SaltGenerator, length: int = DEFAULT_SALT_LENGTH) -> str:
    """Generate a salt and encode it as base64url text."""
    return json_utils.b64url_encode(salt_generator.generate_salt(length))


@dataclass(frozen=True)
class Disclosure:
    """A salted disclosure, identified by its wire form.

    Two disclosures are equal when their wire forms are equal.

    Attributes:
        value: base64url (no padding) of the JSON array ``[salt, name, value]``
            or ``[salt, value]``
        salt: The salt
        name: Claim name for object properties, None for array elements
        claim_value: The disclosed value
    """

    value: str
    salt: str = field(compare=False, repr=False)
    name: Optional[str] = field(compare=False, repr=False)
    claim_value: Any = field(compare=False, repr=False)

    def __str__(self) -> str:
        return self.value

    @property
    def is_object_property(self) -> bool:
        return self.name is not None

    @property
    def is_array_element(self) -> bool:
        return self.name is None

    def claim(self) -> tuple[Optional[str], Any]:
        """Return the ``(name, value)`` pair this disclosure reveals."""
        return self.name, self.claim_value

    def digest(self, hash_alg: "HashAlgorithm" = HashAlgorithm.SHA_256) -> str:
        return digest(hash_alg, self)

    @classmethod
    def object_property(
        cls, salt: str, name: str, claim_value: Any, allow_nested_digests: bool = False
    ) -> "Disclosure":
        """Create the disclosure of an object property.

        Args:
            salt: Salt text, unique per disclosure
            name: The claim name
            claim_value: The claim value
            allow_nested_digests: Accept an object value carrying its own
                ``_sd`` list (recursive disclosure)

        Raises:
            InvalidDisclosureError: If the name is reserved or the value is invalid
        """
        if not isinstance(name, str):
            raise InvalidDisclosureError(f"Claim name must be a string, got {name!r}")
        if name in (CLAIM_SD, ARRAY_DIGEST_KEY):
            raise InvalidDisclosureError(f"Claim name {name!r} cannot be selectively disclosed")
        _check_value(claim_value, allow_nested_digests)
        return cls(_encode([salt, name, claim_value]), salt, name, claim_value)

    @classmethod
    def array_element(cls, salt: str, claim_value: Any, allow_nested_digests: bool = False) -> "Disclosure":
        """Create the disclosure of an array element.

        Raises:
            InvalidDisclosureError: If the value is invalid
        """
        _check_value(claim_value, allow_nested_digests)
        return cls(_encode([salt, claim_value]), salt, None, claim_value)

    @classmethod
    def parse(cls, value: str) -> "Disclosure":
        """Decode and validate the wire form of a disclosure.

        Nested ``_sd`` lists are accepted, since they are produced by
        recursive disclosure.

        Raises:
            InvalidDisclosureError: If the wire form cannot be decoded or
                breaks a disclosure rule
        """
        if not isinstance(value, str) or not value:
            raise InvalidDisclosureError(f"Disclosure must be a non-empty string, got {value!r}")
        try:
            decoded = json_utils.decode(json_utils.b64url_decode(value).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidDisclosureError(f"Disclosure {value!r} is not base64url encoded JSON: {e}") from e

        if not isinstance(decoded, list) or len(decoded) not in (2, 3):
            raise InvalidDisclosureError("Was expecting a JSON array of 3 or 2 elements")
        salt = decoded[0]
        if not isinstance(salt, str):
            raise InvalidDisclosureError("Disclosure salt must be a string")

        if len(decoded) == 3:
            parsed = cls.object_property(salt, decoded[1], decoded[2], allow_nested_digests=True)
        else:
            parsed = cls.array_element(salt, decoded[1], allow_nested_digests=True)
        # Keep the presented encoding, which is what the issuer hashed.
        return cls(value, parsed.salt, parsed.name, parsed.claim_value)


def _check_value(claim_value: Any, allow_nested_digests: bool) -> None:
    if claim_value is None:
        raise InvalidDisclosureError("Disclosed value cannot be null")
    if not json_utils.is_json_value(claim_value):
        raise InvalidDisclosureError(f"Disclosed value is not JSON: {type(claim_value).__name__}")
    if isinstance(claim_value, dict) and CLAIM_SD in claim_value and not allow_nested_digests:
        raise InvalidDisclosureError("Disclosed object cannot contain _sd")


def _encode(disclosure_array: list[Any]) -> str:
    return json_utils.b64url_encode(json_utils.encode(disclosure_array).encode("utf-8"))


def digest(hash_alg: HashAlgorithm, disclosure: Union[Disclosure, str]) -> str:
    """Compute the digest of a disclosure.

    Args:
        hash_alg: The hash algorithm
        disclosure: A disclosure or its wire form

    Returns:
        base64url (no padding) of the hash of the ASCII wire form
    """
    value = disclosure.value if isinstance(disclosure, Disclosure) else disclosure
    return json_utils.b64url_encode(hash_alg.hash(value.encode("ascii")))


class DecoyGenerator(Protocol):
    """Protocol for producing decoy digests."""

    def generate_decoy(self, hash_alg: HashAlgorithm) -> str:
        """Return a digest that no disclosure backs."""


class RandomDecoyGenerator:
    """Decoys are hashes of fresh random salts of 12 to 23 bytes."""

    def __init__(self, salt_generator: Optional[SaltGenerator] = None):
        self._salt_generator = salt_generator or SecureSaltGenerator()

    def generate_decoy(self, hash_alg: HashAlgorithm) -> str:
        length = 12 + secrets.randbelow(12)
        return digest(hash_alg, new_salt(self._salt_generator, length))


class SeededDecoyGenerator:
    """Deterministic decoy generator for tests."""

    def __init__(self, seed: int = 7):
        self._salts = SeededSaltGenerator(seed)

    def generate_decoy(self, hash_alg: HashAlgorithm) -> str:
        return digest(hash_alg, new_salt(self._salts, 16))


def generate_decoys(decoy_generator: DecoyGenerator, hash_alg: HashAlgorithm, count: int) -> list[str]:
    """Generate ``count`` decoy digests; non-positive counts give none."""
    if count < 1:
        return []
    logger.debug("Generating %d decoy digest(s)", count)
    return [decoy_generator.generate_decoy(hash_alg) for _ in range(count)]
