"""Exception hierarchy for the SD-JWT codec.

All errors derive from ``ValueError`` so callers that only catch
``ValueError`` keep working.
"""

from typing import Any


class SdJwtError(ValueError):
    """Base class for every error raised by this package."""


class ConstructionError(SdJwtError):
    """A tree, definition or claim path violates a structural rule."""


class InvalidDisclosureError(SdJwtError):
    """A disclosure cannot be decoded or breaks the disclosure rules."""


class UnsupportedHashAlgorithmError(SdJwtError):
    """The ``_sd_alg`` identifier is not one of the supported algorithms."""


class PathSelectionError(SdJwtError):
    """A claim path element does not fit the JSON value it is applied to."""


class SerializationError(SdJwtError):
    """The combined ``<jwt>~<disclosure>~`` form is malformed."""


class SignatureError(SdJwtError):
    """A compact JWS is malformed or its signature does not verify."""


class ReconstructionError(SdJwtError):
    """Claim reconstruction found one or more consistency issues.

    Attributes:
        issues: Every issue found, in the order it was detected
    """

    def __init__(self, issues: list[Any]):
        self.issues = list(issues)
        details = "; ".join(str(issue) for issue in self.issues)
        super().__init__(f"Inconsistent disclosures ({len(self.issues)} issue(s)): {details}")
