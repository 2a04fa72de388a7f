"""Compact JWS signing and verification with pluggable signers and verifiers.

The payload handed to :func:`jws_sign` is the rendered SD-JWT claim set; the
codec never looks inside the signature.
"""

from typing import Any, Optional, Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, utils

from . import json_utils
from .errors import SignatureError

SD_JWT_TYPE = "vc+sd-jwt"


class Signer(Protocol):
    """Protocol for JWS signers."""

    def sign(self, message: bytes) -> bytes:
        """Sign a message and return the signature.

        Args:
            message: The JWS signing input

        Returns:
            The signature bytes, in the JWS encoding of the algorithm
        """

    @property
    def algorithm(self) -> str:
        """Get the JWS algorithm name (e.g. ``ES256``)."""


class Verifier(Protocol):
    """Protocol for JWS verifiers."""

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a signature on a message.

        Returns:
            True if signature is valid, False otherwise
        """


def jws_sign(payload: dict[str, Any], signer: Signer, header: Optional[dict[str, Any]] = None) -> str:
    """Create a compact JWS over a JSON payload.

    Args:
        payload: The claim set to sign
        signer: A signer object that implements the sign method
        header: Additional protected header parameters; ``alg`` is set
            from the signer and ``typ`` defaults to ``vc+sd-jwt``

    Returns:
        The compact serialization ``header.payload.signature``
    """
    protected = {"typ": SD_JWT_TYPE}
    if header:
        protected.update(header)
    protected["alg"] = signer.algorithm

    encoded_header = json_utils.b64url_encode(json_utils.encode(protected).encode("utf-8"))
    encoded_payload = json_utils.b64url_encode(json_utils.encode(payload).encode("utf-8"))
    signing_input = f"{encoded_header}.{encoded_payload}".encode("ascii")
    signature = signer.sign(signing_input)
    return f"{encoded_header}.{encoded_payload}.{json_utils.b64url_encode(signature)}"


def _decode_segment(segment: str, what: str) -> Any:
    try:
        return json_utils.decode(json_utils.b64url_decode(segment).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise SignatureError(f"Malformed JWS {what}: {e}") from e


def jws_header(token: str) -> dict[str, Any]:
    """Decode the protected header of a compact JWS without verifying it."""
    parts = token.split(".")
    if len(parts) != 3:
        raise SignatureError("A compact JWS has exactly three parts")
    header = _decode_segment(parts[0], "header")
    if not isinstance(header, dict):
        raise SignatureError("JWS header must be a JSON object")
    return header


def jws_verify(token: str, verifier: Verifier) -> dict[str, Any]:
    """Verify a compact JWS and return its JSON payload.

    Args:
        token: The compact JWS
        verifier: A verifier object that implements the verify method

    Returns:
        The verified payload

    Raises:
        SignatureError: If the token is malformed or the signature is invalid
    """
    jws_header(token)
    encoded_header, encoded_payload, encoded_signature = token.split(".")
    try:
        signature = json_utils.b64url_decode(encoded_signature)
    except ValueError as e:
        raise SignatureError(f"Malformed JWS signature: {e}") from e

    payload = _decode_segment(encoded_payload, "payload")
    signing_input = f"{encoded_header}.{encoded_payload}".encode("ascii")
    if not verifier.verify(signing_input, signature):
        raise SignatureError("JWS signature verification failed")

    if not isinstance(payload, dict):
        raise SignatureError("JWS payload must be a JSON object")
    return payload


class ES256Signer:
    """ECDSA P-256 SHA-256 signer implementation."""

    def __init__(self, private_key_bytes: bytes):
        """Initialize ES256 signer with private key.

        Args:
            private_key_bytes: The private key bytes (32 bytes for P-256)
        """
        private_value = int.from_bytes(private_key_bytes, byteorder="big")
        self.private_key = ec.derive_private_key(private_value, ec.SECP256R1())

    def sign(self, message: bytes) -> bytes:
        """Sign a message with ES256."""
        signature_der = self.private_key.sign(message, ec.ECDSA(hashes.SHA256()))

        # JWS uses the raw r||s form
        r, s = utils.decode_dss_signature(signature_der)
        return r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")

    @property
    def algorithm(self) -> str:
        return "ES256"


class ES256Verifier:
    """ECDSA P-256 SHA-256 verifier implementation."""

    def __init__(self, public_key_x: bytes, public_key_y: bytes):
        """Initialize ES256 verifier with public key coordinates.

        Args:
            public_key_x: X coordinate of public key (32 bytes)
            public_key_y: Y coordinate of public key (32 bytes)
        """
        x = int.from_bytes(public_key_x, byteorder="big")
        y = int.from_bytes(public_key_y, byteorder="big")
        self.public_key = ec.EllipticCurvePublicNumbers(x, y, ec.SECP256R1()).public_key()

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a signature with ES256."""
        if len(signature) != 64:
            return False
        r = int.from_bytes(signature[:32], byteorder="big")
        s = int.from_bytes(signature[32:], byteorder="big")
        try:
            self.public_key.verify(utils.encode_dss_signature(r, s), message, ec.ECDSA(hashes.SHA256()))
            return True
        except InvalidSignature:
            return False


def generate_es256_key_pair() -> tuple[bytes, bytes, bytes]:
    """Generate an ES256 (ECDSA P-256) key pair.

    Returns:
        Tuple of (private_key_bytes, public_key_x, public_key_y)
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_key_bytes = private_key.private_numbers().private_value.to_bytes(32, byteorder="big")

    public_numbers = private_key.public_key().public_numbers()
    public_key_x = public_numbers.x.to_bytes(32, byteorder="big")
    public_key_y = public_numbers.y.to_bytes(32, byteorder="big")
    return private_key_bytes, public_key_x, public_key_y


def jws_unverified_payload(token: str) -> dict[str, Any]:
    """Decode the payload of a compact JWS without checking the signature.

    Raises:
        SignatureError: If the token is malformed
    """
    jws_header(token)
    payload = _decode_segment(token.split(".")[1], "payload")
    if not isinstance(payload, dict):
        raise SignatureError("JWS payload must be a JSON object")
    return payload
