"""SD-JWT VC type metadata and its conversion into a credential definition."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, TypeVar

from .claim_path import AllArrayElements, ArrayElement, Claim, ClaimPath
from .definition import (
    ArrayDefinition,
    AttributeMetadata,
    ClaimDisplay,
    DefinitionElement,
    DisplayMetadata,
    IdDefinition,
    ObjectDefinition,
    SdJwtDefinition,
    VctMetadata,
)
from .disclosable import AlwaysSelectively, NeverSelectively
from .errors import ConstructionError

D = TypeVar("D")


class ClaimSelectivelyDisclosable(Enum):
    ALWAYS = "always"
    ALLOWED = "allowed"
    NEVER = "never"


@dataclass(frozen=True)
class ClaimMetadata:
    """Metadata of one claim, addressed by its claim path."""

    path: ClaimPath
    display: tuple[ClaimDisplay, ...] = ()
    sd: Optional[ClaimSelectivelyDisclosable] = None
    svg_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "display", tuple(self.display))

    @property
    def selectively_disclosable_or_default(self) -> ClaimSelectivelyDisclosable:
        return self.sd or ClaimSelectivelyDisclosable.ALLOWED

    @classmethod
    def from_json(cls, value: Mapping[str, Any]) -> "ClaimMetadata":
        sd = value.get("sd")
        return cls(
            path=ClaimPath.from_json(value["path"]),
            display=tuple(ClaimDisplay.from_json(d) for d in value.get("display", [])),
            sd=ClaimSelectivelyDisclosable(sd) if sd is not None else None,
            svg_id=value.get("svg_id"),
        )


@dataclass(frozen=True)
class TypeMetadata:
    """Resolved type metadata of an SD-JWT VC credential type."""

    vct: str
    name: Optional[str] = None
    description: Optional[str] = None
    display: tuple[DisplayMetadata, ...] = ()
    claims: tuple[ClaimMetadata, ...] = ()
    schemas: tuple[Mapping[str, Any], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "display", tuple(self.display))
        object.__setattr__(self, "claims", tuple(self.claims))
        object.__setattr__(self, "schemas", tuple(self.schemas))

    @classmethod
    def from_json(cls, value: Mapping[str, Any]) -> "TypeMetadata":
        """Parse a type metadata document.

        Raises:
            KeyError: If ``vct`` is missing
            ConstructionError: If a claim path is malformed
        """
        schemas = list(value.get("schemas", []))
        if "schema" in value:
            schemas.append(value["schema"])
        return cls(
            vct=value["vct"],
            name=value.get("name"),
            description=value.get("description"),
            display=tuple(DisplayMetadata.from_json(d) for d in value.get("display", [])),
            claims=tuple(ClaimMetadata.from_json(c) for c in value.get("claims", [])),
            schemas=tuple(schemas),
        )


def _sort_key(path: ClaimPath) -> str:
    match path.last():
        case AllArrayElements():
            return ""
        case ArrayElement(index):
            return str(index)
        case Claim(name):
            return name
    return ""


class _Converter:
    def __init__(self, metadata: TypeMetadata, selectively_disclose_when_allowed: bool):
        self.by_path: dict[ClaimPath, ClaimMetadata] = {claim.path: claim for claim in metadata.claims}
        self.when_allowed = selectively_disclose_when_allowed
        children: dict[Optional[ClaimPath], list[ClaimPath]] = {}
        for claim_path in self.by_path:
            current: Optional[ClaimPath] = claim_path
            while current is not None:
                parent = current.parent()
                children.setdefault(parent, []).append(current)
                current = parent
        self.children = {parent: sorted(set(paths), key=_sort_key) for parent, paths in children.items()}

    def is_sd(self, sd: Optional[ClaimSelectivelyDisclosable], missing: bool) -> bool:
        match sd:
            case ClaimSelectivelyDisclosable.ALWAYS:
                return True
            case ClaimSelectivelyDisclosable.NEVER:
                return False
            case ClaimSelectivelyDisclosable.ALLOWED:
                return self.when_allowed
        return missing

    def object_content(self, child_paths: list[ClaimPath]) -> dict[str, DefinitionElement]:
        content = {}
        for child_path in child_paths:
            last = child_path.last()
            if not isinstance(last, Claim):
                raise ConstructionError(
                    f"Expected a claim name for object attribute, but got {last} for path {child_path}"
                )
            content[last.name] = self.element(child_path)
        return content

    def array_definition(self, elements_path: ClaimPath, container: Optional[ClaimMetadata],
                         metadata: AttributeMetadata) -> ArrayDefinition:
        if not self.children.get(elements_path):
            # Elements are primitives
            element_metadata = AttributeMetadata(
                display=container.display if container else (),
                svg_id=container.svg_id if container else None,
            )
            declared = self.by_path.get(elements_path)
            sd = declared.selectively_disclosable_or_default if declared else None
            tag = AlwaysSelectively if self.is_sd(sd, missing=False) else NeverSelectively
            return ArrayDefinition(tag(IdDefinition(element_metadata)), metadata)
        return ArrayDefinition(self.element(elements_path), metadata)

    def element(self, path: ClaimPath) -> DefinitionElement:
        declared = self.by_path.get(path)
        sd = declared.selectively_disclosable_or_default if declared else None
        tag = AlwaysSelectively if self.is_sd(sd, missing=True) else NeverSelectively
        metadata = AttributeMetadata(
            display=declared.display if declared else (),
            svg_id=declared.svg_id if declared else None,
        )

        child_paths = self.children.get(path, [])
        if not child_paths:
            return tag(IdDefinition(metadata))
        if all(isinstance(child.last(), (AllArrayElements, ArrayElement)) for child in child_paths):
            return tag(self.array_definition(path.all_array_elements(), declared, metadata))
        return tag(ObjectDefinition(self.object_content(child_paths), metadata))

    def definition(self, build: Callable[[dict[str, DefinitionElement]], D]) -> D:
        return build(self.object_content(self.children.get(None, [])))


def definition_from_type_metadata(
    metadata: TypeMetadata, selectively_disclose_when_allowed: bool = True
) -> SdJwtDefinition:
    """Convert type metadata into a definition.

    Declared claim paths are grouped by parent. A node is an array when all
    of its children are addressed by index or wildcard; the element definition
    is built from the paths under the wildcard.

    Args:
        metadata: The resolved type metadata
        selectively_disclose_when_allowed: Policy for claims whose ``sd`` is
            ``allowed`` (the default when ``sd`` is absent)

    Returns:
        The definition of the credential type

    Raises:
        ConstructionError: If an object child is not addressed by name, which
            includes a node mixing named and positional children
    """
    converter = _Converter(metadata, selectively_disclose_when_allowed)
    vct_metadata = VctMetadata(
        vct=metadata.vct,
        name=metadata.name,
        description=metadata.description,
        display=metadata.display,
        schemas=metadata.schemas,
    )
    return converter.definition(lambda content: SdJwtDefinition(content, vct_metadata))
