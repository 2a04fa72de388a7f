"""Validation of SD-JWT credentials against a definition.

The payload is first reconstructed with the presented disclosures. The
revealed claims are then walked together with the definition, collecting
every violation instead of stopping at the first one:

* claims absent from the definition are unknown;
* a claim needing more disclosures than its parent was selectively
  disclosed, which must agree with the declared policy;
* the JSON type of a claim must agree with the declared shape.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from .claim_path import ClaimPath
from .definition import (
    AltDefinition,
    ArrayDefinition,
    DefinitionElement,
    ElementDefinition,
    IdDefinition,
    ObjectDefinition,
    SdJwtDefinition,
    WELL_KNOWN_CLAIMS,
)
from .disclosable import AlwaysSelectively
from .disclosure import Disclosure
from .errors import ConstructionError, ReconstructionError
from .recreate import DisclosuresPerClaim, recreate_claims

logger = logging.getLogger(__name__)

VCT = "vct"
ISSUER = "iss"


@dataclass(frozen=True)
class DisclosureInconsistencies:
    """The disclosures could not be matched against the payload."""

    cause: ReconstructionError


@dataclass(frozen=True)
class InvalidVct:
    expected: str
    actual: str


@dataclass(frozen=True)
class MissingRequiredClaim:
    claim_path: ClaimPath


@dataclass(frozen=True)
class UnknownClaim:
    claim_path: ClaimPath


@dataclass(frozen=True)
class WrongClaimType:
    claim_path: ClaimPath


@dataclass(frozen=True)
class IncorrectlyDisclosedClaim:
    claim_path: ClaimPath


DefinitionViolation = Union[
    DisclosureInconsistencies,
    InvalidVct,
    MissingRequiredClaim,
    UnknownClaim,
    WrongClaimType,
    IncorrectlyDisclosedClaim,
]


@dataclass(frozen=True)
class Valid:
    recreated_credential: dict[str, Any]
    disclosures_per_claim: DisclosuresPerClaim


@dataclass(frozen=True)
class Invalid:
    errors: tuple[DefinitionViolation, ...]

    def __post_init__(self):
        object.__setattr__(self, "errors", tuple(self.errors))
        if not self.errors:
            raise ConstructionError("errors must not be empty")


ValidationResult = Union[Valid, Invalid]


def _shape_accepts(definition: ElementDefinition, value: Any) -> bool:
    match definition:
        case ObjectDefinition():
            return isinstance(value, dict)
        case ArrayDefinition():
            return isinstance(value, list)
        case _:
            return True


class _DefinitionWalk:
    def __init__(self, per_claim: DisclosuresPerClaim, exempt_claims: frozenset = frozenset()):
        self.per_claim = per_claim
        # Top-level names skipped when the definition does not declare them
        self.exempt_claims = exempt_claims
        self.errors: list[DefinitionViolation] = []

    def is_selectively_disclosed(self, path: ClaimPath) -> bool:
        parent = path.parent()
        parent_count = len(self.per_claim.get(parent, ())) if parent is not None else 0
        return len(self.per_claim.get(path, ())) > parent_count

    def run(self, claims: dict[str, Any], definition: Union[SdJwtDefinition, ObjectDefinition]) -> list:
        # Tasks: ("object", path, value, definition) or ("claim", path, value, shape, tag or None)
        stack: list[tuple] = [("object", None, claims, definition)]
        while stack:
            task = stack.pop()
            if task[0] == "object":
                _, path, value, obj_definition = task
                pending = self.visit_object(path, value, obj_definition)
            else:
                _, path, value, shape, element = task
                pending = self.visit_claim(path, value, shape, element)
            stack.extend(reversed(pending))
        return self.errors

    def visit_object(self, parent: Optional[ClaimPath], value: dict[str, Any], definition) -> list[tuple]:
        pending = []
        for name, claim_value in value.items():
            path = ClaimPath.of_claim(name) if parent is None else parent.claim(name)
            element = definition.content.get(name)
            if element is None:
                if parent is None and name in self.exempt_claims:
                    continue
                self.errors.append(UnknownClaim(path))
            else:
                pending.append(("claim", path, claim_value, element.value, element))
        return pending

    def visit_claim(
        self, path: ClaimPath, value: Any, shape: ElementDefinition, element: Optional[DefinitionElement]
    ) -> list[tuple]:
        if element is not None:
            disclosed = self.is_selectively_disclosed(path)
            if disclosed != isinstance(element, AlwaysSelectively):
                self.errors.append(IncorrectlyDisclosedClaim(path))

        if value is None:
            return []
        match shape:
            case IdDefinition():
                return []
            case ObjectDefinition():
                if not isinstance(value, dict):
                    self.errors.append(WrongClaimType(path))
                    return []
                return [("object", path, value, shape)]
            case ArrayDefinition(element=element_definition):
                if not isinstance(value, list):
                    self.errors.append(WrongClaimType(path))
                    return []
                if isinstance(element_definition.value, AltDefinition):
                    # Mixed element types are not checked element by element.
                    return []
                return [
                    ("claim", path.array_element(index), item, element_definition.value, element_definition)
                    for index, item in enumerate(value)
                ]
            case AltDefinition(alternatives=alternatives):
                for alternative in alternatives:
                    if _shape_accepts(alternative.value, value):
                        return [("claim", path, value, alternative.value, None)]
                self.errors.append(WrongClaimType(path))
                return []
        return []


def validate(
    definition: Union[SdJwtDefinition, ObjectDefinition],
    jwt_payload: Mapping[str, Any],
    disclosures: Iterable[Union[Disclosure, str]],
) -> ValidationResult:
    """Validate a payload and its disclosures against a definition.

    Args:
        definition: The credential definition
        jwt_payload: The verified payload
        disclosures: The presented disclosures

    Returns:
        :class:`Valid` with the reconstructed claims, or :class:`Invalid`
        with every violation found
    """
    return _validate(definition, jwt_payload, disclosures, frozenset())


def _validate(definition, jwt_payload, disclosures, exempt_claims: frozenset) -> ValidationResult:
    try:
        recreated = recreate_claims(jwt_payload, disclosures)
    except ReconstructionError as e:
        return Invalid((DisclosureInconsistencies(e),))

    errors = _DefinitionWalk(recreated.disclosures_per_claim, exempt_claims).run(recreated.claims, definition)
    if errors:
        logger.debug("Definition validation found %d violation(s)", len(errors))
        return Invalid(tuple(errors))
    return Valid(recreated.claims, recreated.disclosures_per_claim)


def _required_string(jwt_payload: Mapping[str, Any], name: str, errors: list) -> Optional[str]:
    value = jwt_payload.get(name)
    if value is None:
        errors.append(MissingRequiredClaim(ClaimPath.of_claim(name)))
        return None
    if not isinstance(value, str):
        errors.append(WrongClaimType(ClaimPath.of_claim(name)))
        return None
    return value


def validate_sd_jwt_vc(
    definition: SdJwtDefinition,
    jwt_payload: Mapping[str, Any],
    disclosures: Iterable[Union[Disclosure, str]],
) -> ValidationResult:
    """Validate an SD-JWT VC against its type definition.

    On top of :func:`validate`, ``vct`` and ``iss`` must be plain string
    claims of the payload, ``vct`` must name the definition's type, and the
    registered claims must not be selectively disclosed. Registered claims
    such as ``sub`` or ``iat`` are not reported unknown when the definition
    leaves them out.
    """
    errors: list[DefinitionViolation] = []
    vct = _required_string(jwt_payload, VCT, errors)
    if vct is not None and vct != definition.metadata.vct:
        errors.append(InvalidVct(definition.metadata.vct, vct))
    issuer = _required_string(jwt_payload, ISSUER, errors)
    if issuer is not None and not issuer.strip():
        errors.append(MissingRequiredClaim(ClaimPath.of_claim(ISSUER)))

    result = _validate(
        definition.plus_never_selectively_disclosable_claims(), jwt_payload, disclosures, frozenset(WELL_KNOWN_CLAIMS)
    )
    if not errors:
        return result
    if isinstance(result, Invalid):
        return Invalid(tuple(errors) + result.errors)
    return Invalid(tuple(errors))
