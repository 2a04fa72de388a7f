"""Simple APIs for the SD-JWT workflow: issue, present, verify."""

import logging
from typing import Iterable, Optional, Union

from . import serialization
from .claim_path import ClaimPath
from .definition import SdJwtDefinition
from .disclosable import DisclosableObject
from .disclosure import Disclosure
from .issuer import SdJwt, SdJwtFactory
from .jws import Signer, Verifier, jws_sign, jws_unverified_payload, jws_verify
from .presentation import select_disclosures
from .recreate import RecreatedClaims, recreate_claims
from .resolvers import TypeMetadataResolver
from .type_metadata import definition_from_type_metadata
from .validator import ValidationResult, validate_sd_jwt_vc

logger = logging.getLogger(__name__)


class SdJwtIssuer:
    """Issues signed SD-JWTs in combined serialization."""

    def __init__(self, signer: Signer, factory: Optional[SdJwtFactory] = None):
        """Initialize the issuer.

        Args:
            signer: Signs the rendered payload
            factory: Renders disclosure trees (default settings if None)
        """
        self.signer = signer
        self.factory = factory or SdJwtFactory()

    def issue(self, tree: DisclosableObject) -> str:
        """Render, sign and serialize a disclosure tree.

        Returns:
            ``<jwt>~<disclosure>~...~``
        """
        sd_jwt = self.factory.create(tree)
        jwt = jws_sign(sd_jwt.payload, self.signer)
        return serialization.serialize(jwt, sd_jwt.disclosures)


class SdJwtHolder:
    """Derives presentations from an issued SD-JWT.

    The issuer signature is not checked; the holder received the token
    from the issuer directly.
    """

    def present(self, serialized: str, targets: Iterable[Union[ClaimPath, list]]) -> str:
        """Keep only the disclosures needed to reveal ``targets``.

        Args:
            serialized: The issued SD-JWT in combined serialization
            targets: Claim paths to reveal

        Returns:
            The presentation in combined serialization
        """
        jwt, disclosures = serialization.parse(serialized)
        payload = jws_unverified_payload(jwt)
        issued = SdJwt(payload, tuple(Disclosure.parse(d) for d in disclosures))
        presented = select_disclosures(issued, targets)
        return serialization.serialize(jwt, presented.disclosures)


class SdJwtVerifier:
    """Verifies SD-JWTs and reconstructs the claims they reveal."""

    def __init__(self, verifier: Verifier, allow_undisclosed_digests: bool = True):
        """Initialize the verifier.

        Args:
            verifier: Checks the issuer signature
            allow_undisclosed_digests: Accept digests without a matching
                disclosure (normal for presentations)
        """
        self.verifier = verifier
        self.allow_undisclosed_digests = allow_undisclosed_digests

    def verify(self, serialized: str) -> RecreatedClaims:
        """Verify the signature and reconstruct the revealed claims.

        Raises:
            SerializationError: If the combined form is malformed
            SignatureError: If the signature does not verify
            ReconstructionError: If the disclosures are inconsistent
        """
        jwt, disclosures = serialization.parse(serialized)
        payload = jws_verify(jwt, self.verifier)
        return recreate_claims(payload, disclosures, allow_undisclosed_digests=self.allow_undisclosed_digests)

    def verify_against(
        self,
        serialized: str,
        definition: Union[SdJwtDefinition, TypeMetadataResolver],
    ) -> ValidationResult:
        """Verify the signature and validate the credential against its type.

        Args:
            serialized: The SD-JWT VC in combined serialization
            definition: The type definition, or a resolver used to look up
                type metadata by the payload's ``vct``

        Raises:
            SerializationError: If the combined form is malformed
            SignatureError: If the signature does not verify
        """
        jwt, disclosures = serialization.parse(serialized)
        payload = jws_verify(jwt, self.verifier)
        if not isinstance(definition, SdJwtDefinition):
            definition = definition_from_type_metadata(definition(payload.get("vct")))
        result = validate_sd_jwt_vc(definition, payload, disclosures)
        logger.debug("Validated %s: %s", definition.metadata.vct, type(result).__name__)
        return result

