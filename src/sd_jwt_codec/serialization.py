"""Combined serialization ``<jwt>~<disclosure 1>~...~<disclosure n>~``."""

from typing import Iterable, Union

from .disclosure import Disclosure
from .errors import SerializationError

SEPARATOR = "~"


def serialize(jwt: str, disclosures: Iterable[Union[Disclosure, str]]) -> str:
    """Join a signed JWT and its disclosures.

    Args:
        jwt: The compact JWS
        disclosures: Disclosures, parsed or in wire form

    Returns:
        The combined form, always ending with ``~``
    """
    parts = [jwt] + [str(d) for d in disclosures]
    return SEPARATOR.join(parts) + SEPARATOR


def parse(serialized: str) -> tuple[str, tuple[str, ...]]:
    """Split the combined form into the JWT and the disclosures.

    Disclosures are returned in wire form and are not decoded here.

    Raises:
        SerializationError: If the input is empty or lacks the trailing ``~``
    """
    if not isinstance(serialized, str) or not serialized.endswith(SEPARATOR):
        raise SerializationError("SD-JWT must end with '~'")
    jwt, *disclosures = serialized[:-1].split(SEPARATOR)
    if not jwt:
        raise SerializationError("SD-JWT is missing the issuer-signed JWT")
    if any(not d for d in disclosures):
        raise SerializationError("SD-JWT contains an empty disclosure")
    return jwt, tuple(disclosures)
