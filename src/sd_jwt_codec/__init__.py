"""SD-JWT codec: selective disclosure for JSON claim sets."""

# Hide module imports
from . import (
    claim_path,
    definition,
    disclosable,
    disclosure,
    errors,
    issuer,
    jws,
    presentation,
    recreate,
    resolvers,
    serialization,
    simple_api,
    traversal,
    type_metadata,
    validator,
)
from .claim_path import ClaimPath, select_path
from .definition import (
    AltDefinition,
    ArrayDefinition,
    AttributeMetadata,
    IdDefinition,
    ObjectDefinition,
    SdJwtDefinition,
    VctMetadata,
    definition_from_disclosable,
    find_element,
)
from .disclosable import (
    AlwaysSelectively,
    ArrayBuilder,
    DisclosableArray,
    DisclosableObject,
    Leaf,
    NeverSelectively,
    ObjectBuilder,
    always,
    never,
    sd_jwt,
)
from .disclosure import (
    DecoyGenerator,
    Disclosure,
    HashAlgorithm,
    RandomDecoyGenerator,
    SaltGenerator,
    SecureSaltGenerator,
    SeededDecoyGenerator,
    SeededSaltGenerator,
)
from .errors import (
    ConstructionError,
    InvalidDisclosureError,
    ReconstructionError,
    SdJwtError,
    SerializationError,
    SignatureError,
)
from .issuer import SdJwt, SdJwtFactory, create_sd_jwt
from .jws import ES256Signer, ES256Verifier, Signer, Verifier, generate_es256_key_pair
from .presentation import select_disclosures
from .recreate import RecreatedClaims, recreate_claims
from .resolvers import static_type_metadata_resolver
from .simple_api import SdJwtHolder, SdJwtIssuer, SdJwtVerifier
from .traversal import fold, map_values
from .type_metadata import ClaimMetadata, TypeMetadata, definition_from_type_metadata
from .validator import Invalid, Valid, validate, validate_sd_jwt_vc

del (
    claim_path,
    definition,
    disclosable,
    disclosure,
    errors,
    issuer,
    jws,
    presentation,
    recreate,
    resolvers,
    serialization,
    simple_api,
    traversal,
    type_metadata,
    validator,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Claim paths
    "ClaimPath",
    "select_path",
    # Disclosure tree and traversal
    "AlwaysSelectively",
    "NeverSelectively",
    "Leaf",
    "DisclosableObject",
    "DisclosableArray",
    "ObjectBuilder",
    "ArrayBuilder",
    "always",
    "never",
    "sd_jwt",
    "fold",
    "map_values",
    # Disclosures, salts and decoys
    "Disclosure",
    "HashAlgorithm",
    "SaltGenerator",
    "SecureSaltGenerator",
    "SeededSaltGenerator",
    "DecoyGenerator",
    "RandomDecoyGenerator",
    "SeededDecoyGenerator",
    # Issuance, reconstruction and presentation
    "SdJwt",
    "SdJwtFactory",
    "create_sd_jwt",
    "RecreatedClaims",
    "recreate_claims",
    "select_disclosures",
    # Definitions and validation
    "SdJwtDefinition",
    "ObjectDefinition",
    "ArrayDefinition",
    "IdDefinition",
    "AltDefinition",
    "AttributeMetadata",
    "VctMetadata",
    "find_element",
    "definition_from_disclosable",
    "ClaimMetadata",
    "TypeMetadata",
    "definition_from_type_metadata",
    "validate",
    "validate_sd_jwt_vc",
    "Valid",
    "Invalid",
    # Errors
    "SdJwtError",
    "ConstructionError",
    "InvalidDisclosureError",
    "ReconstructionError",
    "SerializationError",
    "SignatureError",
    # JWS signers and verifiers
    "Signer",
    "Verifier",
    "ES256Signer",
    "ES256Verifier",
    "generate_es256_key_pair",
    # Resolvers
    "static_type_metadata_resolver",
    # Simple APIs for the SD-JWT workflow
    "SdJwtIssuer",
    "SdJwtHolder",
    "SdJwtVerifier",
]
