"""Credential definitions: the declared shape and disclosure policy of claims.

A definition mirrors a disclosure tree, but carries metadata instead of
values. Each node is tagged :class:`AlwaysSelectively` or
:class:`NeverSelectively` to state whether the claim must be selectively
disclosed.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

from .claim_path import AllArrayElements, Claim, ClaimPath
from .disclosable import AlwaysSelectively, DisclosableObject, NeverSelectively
from .errors import ConstructionError
from .traversal import fold, map_values

# Registered claims that SD-JWT VC forbids to disclose selectively
NEVER_SELECTIVELY_DISCLOSABLE_CLAIMS = ("iss", "nbf", "exp", "cnf", "vct", "vct#integrity", "status")

# Registered claims an SD-JWT VC may carry without its type declaring them
WELL_KNOWN_CLAIMS = ("iss", "sub", "iat", "nbf", "exp", "cnf", "vct", "vct#integrity", "status")


@dataclass(frozen=True)
class ClaimDisplay:
    """Display information for a claim, in one language."""

    lang: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_json(cls, value: Mapping[str, Any]) -> "ClaimDisplay":
        return cls(value.get("lang") or value.get("locale"), value.get("label"), value.get("description"))


@dataclass(frozen=True)
class DisplayMetadata:
    """Display information for a credential type, in one language."""

    lang: str
    name: str
    description: Optional[str] = None

    @classmethod
    def from_json(cls, value: Mapping[str, Any]) -> "DisplayMetadata":
        return cls(value.get("lang") or value.get("locale"), value["name"], value.get("description"))


@dataclass(frozen=True)
class AttributeMetadata:
    display: tuple[ClaimDisplay, ...] = ()
    svg_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "display", tuple(self.display))


@dataclass(frozen=True)
class VctMetadata:
    """Metadata of the credential type a definition describes."""

    vct: str
    name: Optional[str] = None
    description: Optional[str] = None
    display: tuple[DisplayMetadata, ...] = ()
    schemas: tuple[Mapping[str, Any], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "display", tuple(self.display))
        object.__setattr__(self, "schemas", tuple(self.schemas))


@dataclass(frozen=True)
class IdDefinition:
    """A claim of any JSON type that is not described further."""

    metadata: AttributeMetadata = field(default_factory=AttributeMetadata)


@dataclass(frozen=True)
class ObjectDefinition:
    content: Mapping[str, "DefinitionElement"]
    metadata: AttributeMetadata = field(default_factory=AttributeMetadata)

    def __post_init__(self):
        object.__setattr__(self, "content", _checked_content(self.content))


@dataclass(frozen=True)
class ArrayDefinition:
    """An array whose elements all follow ``element``."""

    element: "DefinitionElement"
    metadata: AttributeMetadata = field(default_factory=AttributeMetadata)

    def __post_init__(self):
        _check_definition(self.element, "array element")


@dataclass(frozen=True)
class AltDefinition:
    """A claim that may follow any of several definitions."""

    alternatives: tuple["DefinitionElement", ...]

    def __post_init__(self):
        alternatives = tuple(self.alternatives)
        if len(alternatives) < 2:
            raise ConstructionError(f"Alternatives need at least two definitions, got {len(alternatives)}")
        for alternative in alternatives:
            _check_definition(alternative, "alternative")
        object.__setattr__(self, "alternatives", alternatives)


ElementDefinition = Union[IdDefinition, ObjectDefinition, ArrayDefinition, AltDefinition]
DefinitionElement = Union[AlwaysSelectively[ElementDefinition], NeverSelectively[ElementDefinition]]


def _check_definition(element: Any, where: str) -> None:
    if not isinstance(element, (AlwaysSelectively, NeverSelectively)):
        raise ConstructionError(f"Definition of {where} must be tagged, got {type(element).__name__}")
    if not isinstance(element.value, (IdDefinition, ObjectDefinition, ArrayDefinition, AltDefinition)):
        raise ConstructionError(f"Definition of {where} has unexpected shape {type(element.value).__name__}")


def _checked_content(content: Mapping[str, Any]) -> Mapping[str, DefinitionElement]:
    copied = dict(content)
    for name, element in copied.items():
        if not isinstance(name, str):
            raise ConstructionError(f"Claim names must be strings, got {name!r}")
        _check_definition(element, repr(name))
    return MappingProxyType(copied)


@dataclass(frozen=True)
class SdJwtDefinition:
    """Definition of a whole SD-JWT VC credential type."""

    content: Mapping[str, DefinitionElement]
    metadata: VctMetadata

    def __post_init__(self):
        object.__setattr__(self, "content", _checked_content(self.content))

    def plus_never_selectively_disclosable_claims(self) -> "SdJwtDefinition":
        """Return a copy where registered SD-JWT VC claims are never selectively disclosable.

        Claims missing from the definition are added as plain leaves.
        """
        content = dict(self.content)
        for name in NEVER_SELECTIVELY_DISCLOSABLE_CLAIMS:
            existing = content.get(name)
            content[name] = NeverSelectively(existing.value if existing is not None else IdDefinition())
        return SdJwtDefinition(content, self.metadata)


def attribute_metadata(definition: ElementDefinition) -> Optional[AttributeMetadata]:
    """Return the metadata attached to a definition node, None for alternatives."""
    if isinstance(definition, AltDefinition):
        return None
    return definition.metadata


def find_element(
    definition: Union[SdJwtDefinition, ObjectDefinition], claim_path: ClaimPath
) -> Optional[DefinitionElement]:
    """Find the definition of the claim at ``claim_path``.

    Object levels are addressed by claim name and array levels only by the
    all-elements wildcard.

    Returns:
        The tagged definition, or None if the path leads nowhere
    """
    container: Any = definition
    found: Optional[DefinitionElement] = None
    for element in claim_path:
        match container, element:
            case (SdJwtDefinition() | ObjectDefinition()), Claim(name):
                found = container.content.get(name)
            case ArrayDefinition(), AllArrayElements():
                found = container.element
            case _:
                return None
        if found is None:
            return None
        container = found.value
    return found


class _DefinitionHandlers:
    def __init__(self, keyed: bool):
        self._keyed = keyed

    def _emit(self, key, element):
        return (key, element) if self._keyed else element

    def if_always_leaf(self, path, key, value):
        return self._emit(key, AlwaysSelectively(IdDefinition(value)))

    def if_always_object(self, path, key, folded):
        return self._emit(key, AlwaysSelectively(folded))

    if_always_array = if_always_object

    def if_never_leaf(self, path, key, value):
        return self._emit(key, NeverSelectively(IdDefinition(value)))

    def if_never_object(self, path, key, folded):
        return self._emit(key, NeverSelectively(folded))

    if_never_array = if_never_object


def _array_definition(elements: list[DefinitionElement]) -> ArrayDefinition:
    distinct: list[DefinitionElement] = []
    for element in elements:
        if element not in distinct:
            distinct.append(element)
    if not distinct:
        return ArrayDefinition(NeverSelectively(IdDefinition()))
    if len(distinct) == 1:
        return ArrayDefinition(distinct[0])
    tag = AlwaysSelectively if all(isinstance(e, AlwaysSelectively) for e in distinct) else NeverSelectively
    return ArrayDefinition(tag(AltDefinition(tuple(distinct))))


def _add_entry(acc: dict, entry: tuple) -> dict:
    name, element = entry
    acc[name] = element
    return acc


def definition_from_disclosable(
    tree: DisclosableObject,
    vct_metadata: VctMetadata,
    metadata_of: Callable[[Any], AttributeMetadata] = lambda value: AttributeMetadata(),
) -> SdJwtDefinition:
    """Derive a definition from a disclosure tree.

    Every claim keeps its tag as the declared policy. Arrays whose elements
    differ in shape or tag get an :class:`AltDefinition` element.

    Args:
        tree: A disclosure tree with sample values
        vct_metadata: Metadata of the credential type
        metadata_of: Builds the metadata of a leaf from its value

    Returns:
        The definition
    """
    projected = map_values(tree, metadata_of)
    content = fold(
        projected,
        object_handlers=_DefinitionHandlers(keyed=True),
        array_handlers=_DefinitionHandlers(keyed=False),
        initial=lambda node, path: {},
        combine=_add_entry,
        finish_array=lambda node, path, elements: _array_definition(elements),
        finish_object=lambda node, path, acc: acc if path is None else ObjectDefinition(acc),
    )
    return SdJwtDefinition(content, vct_metadata)
