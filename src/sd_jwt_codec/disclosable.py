"""Disclosure tree: which claims are always visible and which are disclosable.

A tree node has one of three shapes: a :class:`Leaf` holding a plain value, a
:class:`DisclosableObject` keyed by claim name, or a :class:`DisclosableArray`
of positional elements. Every node is wrapped in exactly one tag,
:class:`AlwaysSelectively` or :class:`NeverSelectively`. Tags are per node:
a never-disclosable object may hold selectively disclosable children and vice
versa. An always-disclosable container whose children are also tagged
always-disclosable yields recursive disclosure.

Trees are immutable once built.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Generic, Mapping, Optional, Sequence, TypeVar, Union

from .errors import ConstructionError

T = TypeVar("T")
A = TypeVar("A")

CLAIM_SD = "_sd"
CLAIM_SD_ALG = "_sd_alg"
ARRAY_DIGEST_KEY = "..."
RESERVED_CLAIM_NAMES = frozenset({CLAIM_SD, CLAIM_SD_ALG, ARRAY_DIGEST_KEY})


@dataclass(frozen=True)
class AlwaysSelectively(Generic[T]):
    """Tag for a node that becomes a single disclosure."""

    value: T


@dataclass(frozen=True)
class NeverSelectively(Generic[T]):
    """Tag for a node that is emitted as-is; its children are tagged on their own."""

    value: T


Disclosable = Union[AlwaysSelectively[T], NeverSelectively[T]]


def check_minimum_digests(minimum_digests: Optional[int]) -> None:
    """Validate a minimum-digests hint.

    Raises:
        ConstructionError: If the hint is present but not a positive integer
    """
    if minimum_digests is None:
        return
    if isinstance(minimum_digests, bool) or not isinstance(minimum_digests, int) or minimum_digests < 1:
        raise ConstructionError(f"Minimum digests must be a positive integer, got {minimum_digests!r}")


@dataclass(frozen=True)
class Leaf(Generic[A]):
    """A plain JSON value."""

    value: A


@dataclass(frozen=True)
class DisclosableObject:
    """Keyed container of tagged elements.

    Attributes:
        content: Read-only mapping of claim name to tagged element
        minimum_digests: Optional lower bound for the size of this object's
            ``_sd`` digest list
    """

    content: Mapping[str, Disclosable]
    minimum_digests: Optional[int] = None

    def __post_init__(self):
        check_minimum_digests(self.minimum_digests)
        content = dict(self.content)
        for name, element in content.items():
            if not isinstance(name, str):
                raise ConstructionError(f"Claim names must be strings, got {name!r}")
            if name in RESERVED_CLAIM_NAMES:
                raise ConstructionError(f"Claim name {name!r} is reserved")
            _check_tagged(element, name)
        object.__setattr__(self, "content", MappingProxyType(content))


@dataclass(frozen=True)
class DisclosableArray:
    """Positional container of tagged elements.

    Attributes:
        content: Tuple of tagged elements
        minimum_digests: Optional lower bound for the number of
            ``{"...": digest}`` entries in the rendered array
    """

    content: tuple[Disclosable, ...]
    minimum_digests: Optional[int] = None

    def __post_init__(self):
        check_minimum_digests(self.minimum_digests)
        content = tuple(self.content)
        for index, element in enumerate(content):
            _check_tagged(element, index)
        object.__setattr__(self, "content", content)


DisclosableValue = Union[Leaf, DisclosableObject, DisclosableArray]
DisclosableElement = Disclosable[DisclosableValue]


def _check_tagged(element: Any, where: Union[str, int]) -> None:
    if not isinstance(element, (AlwaysSelectively, NeverSelectively)):
        raise ConstructionError(
            f"Element at {where!r} must be tagged AlwaysSelectively or NeverSelectively, "
            f"got {type(element).__name__}"
        )
    if not isinstance(element.value, (Leaf, DisclosableObject, DisclosableArray)):
        raise ConstructionError(
            f"Element at {where!r} must wrap a Leaf, DisclosableObject or DisclosableArray, "
            f"got {type(element.value).__name__}"
        )
    if isinstance(element, AlwaysSelectively) and isinstance(element.value, Leaf):
        if element.value.value is None:
            raise ConstructionError(f"Selectively disclosable claim at {where!r} cannot be null")
    if isinstance(element.value, Leaf):
        _check_plain_value(element.value.value, where)


def _check_plain_value(value: Any, where: Union[str, int]) -> None:
    # Digest markers at any depth would be taken for digests when the payload is reconstructed
    stack = [value]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            if CLAIM_SD in current or ARRAY_DIGEST_KEY in current:
                raise ConstructionError(f"Value at {where!r} cannot carry {CLAIM_SD!r} or {ARRAY_DIGEST_KEY!r}")
            stack.extend(current.values())
        elif isinstance(current, (list, tuple)):
            stack.extend(current)


def _shape(value: Any) -> DisclosableValue:
    if isinstance(value, (Leaf, DisclosableObject, DisclosableArray)):
        return value
    return Leaf(value)


def always(value: Any) -> AlwaysSelectively:
    """Tag a value as selectively disclosable; plain values become leaves."""
    return AlwaysSelectively(_shape(value))


def never(value: Any) -> NeverSelectively:
    """Tag a value as always visible; plain values become leaves."""
    return NeverSelectively(_shape(value))


ObjectAction = Callable[["ObjectBuilder"], Any]
ArrayAction = Callable[["ArrayBuilder"], Any]


def _build_object(spec: Union[DisclosableObject, ObjectAction], minimum_digests: Optional[int]) -> DisclosableObject:
    if isinstance(spec, DisclosableObject):
        return spec
    builder = ObjectBuilder(minimum_digests)
    spec(builder)
    return builder.build()


def _build_array(spec: Union[DisclosableArray, ArrayAction], minimum_digests: Optional[int]) -> DisclosableArray:
    if isinstance(spec, DisclosableArray):
        return spec
    builder = ArrayBuilder(minimum_digests)
    spec(builder)
    return builder.build()


class ObjectBuilder:
    """Fluent builder for a :class:`DisclosableObject`.

    Example:
        >>> tree = (ObjectBuilder()
        ...     .claim("iss", "https://issuer.example")
        ...     .sd_obj_claim("address", lambda a: a.sd_claim("country", "DE"))
        ...     .build())
    """

    def __init__(self, minimum_digests: Optional[int] = None):
        check_minimum_digests(minimum_digests)
        self._content: dict[str, Disclosable] = {}
        self._minimum_digests = minimum_digests

    def put(self, name: str, element: Disclosable) -> "ObjectBuilder":
        """Add an already tagged element.

        Raises:
            ConstructionError: If ``name`` is reserved or already present
        """
        if name in self._content:
            raise ConstructionError(f"Claim {name!r} has already been added")
        if name in RESERVED_CLAIM_NAMES:
            raise ConstructionError(f"Claim name {name!r} is reserved")
        _check_tagged(element, name)
        self._content[name] = element
        return self

    def claim(self, name: str, value: Any) -> "ObjectBuilder":
        return self.put(name, NeverSelectively(Leaf(value)))

    def sd_claim(self, name: str, value: Any) -> "ObjectBuilder":
        return self.put(name, AlwaysSelectively(Leaf(value)))

    def obj_claim(self, name: str, spec: Union[DisclosableObject, ObjectAction],
                  minimum_digests: Optional[int] = None) -> "ObjectBuilder":
        return self.put(name, NeverSelectively(_build_object(spec, minimum_digests)))

    def sd_obj_claim(self, name: str, spec: Union[DisclosableObject, ObjectAction],
                     minimum_digests: Optional[int] = None) -> "ObjectBuilder":
        return self.put(name, AlwaysSelectively(_build_object(spec, minimum_digests)))

    def arr_claim(self, name: str, spec: Union[DisclosableArray, ArrayAction],
                  minimum_digests: Optional[int] = None) -> "ObjectBuilder":
        return self.put(name, NeverSelectively(_build_array(spec, minimum_digests)))

    def sd_arr_claim(self, name: str, spec: Union[DisclosableArray, ArrayAction],
                     minimum_digests: Optional[int] = None) -> "ObjectBuilder":
        return self.put(name, AlwaysSelectively(_build_array(spec, minimum_digests)))

    def build(self) -> DisclosableObject:
        return DisclosableObject(self._content, self._minimum_digests)


class ArrayBuilder:
    """Fluent builder for a :class:`DisclosableArray`."""

    def __init__(self, minimum_digests: Optional[int] = None):
        check_minimum_digests(minimum_digests)
        self._content: list[Disclosable] = []
        self._minimum_digests = minimum_digests

    def add(self, element: Disclosable) -> "ArrayBuilder":
        _check_tagged(element, len(self._content))
        self._content.append(element)
        return self

    def element(self, value: Any) -> "ArrayBuilder":
        return self.add(NeverSelectively(Leaf(value)))

    def sd_element(self, value: Any) -> "ArrayBuilder":
        return self.add(AlwaysSelectively(Leaf(value)))

    def obj_element(self, spec: Union[DisclosableObject, ObjectAction],
                    minimum_digests: Optional[int] = None) -> "ArrayBuilder":
        return self.add(NeverSelectively(_build_object(spec, minimum_digests)))

    def sd_obj_element(self, spec: Union[DisclosableObject, ObjectAction],
                       minimum_digests: Optional[int] = None) -> "ArrayBuilder":
        return self.add(AlwaysSelectively(_build_object(spec, minimum_digests)))

    def arr_element(self, spec: Union[DisclosableArray, ArrayAction],
                    minimum_digests: Optional[int] = None) -> "ArrayBuilder":
        return self.add(NeverSelectively(_build_array(spec, minimum_digests)))

    def sd_arr_element(self, spec: Union[DisclosableArray, ArrayAction],
                       minimum_digests: Optional[int] = None) -> "ArrayBuilder":
        return self.add(AlwaysSelectively(_build_array(spec, minimum_digests)))

    def build(self) -> DisclosableArray:
        return DisclosableArray(tuple(self._content), self._minimum_digests)


def sd_jwt(action: Optional[ObjectAction] = None, minimum_digests: Optional[int] = None) -> DisclosableObject:
    """Build the root object of an SD-JWT.

    Args:
        action: Callable receiving an :class:`ObjectBuilder` to populate
        minimum_digests: Optional minimum size of the top-level ``_sd`` list

    Returns:
        The root disclosable object
    """
    builder = ObjectBuilder(minimum_digests)
    if action is not None:
        action(builder)
    return builder.build()


def plain(value: Any) -> DisclosableValue:
    """Convert plain JSON into a tree where every node is never-disclosable.

    Objects and arrays become containers, anything else becomes a leaf.
    """
    # Containers are built bottom-up with an explicit stack.
    if not isinstance(value, (dict, list)):
        return Leaf(value)
    results: dict[int, DisclosableValue] = {}
    stack: list[tuple[Any, bool]] = [(value, False)]
    while stack:
        node, expanded = stack.pop()
        if not expanded:
            stack.append((node, True))
            children = node.values() if isinstance(node, dict) else node
            for child in children:
                if isinstance(child, (dict, list)):
                    stack.append((child, False))
            continue

        def converted(child: Any) -> NeverSelectively:
            if isinstance(child, (dict, list)):
                return NeverSelectively(results[id(child)])
            return NeverSelectively(Leaf(child))

        if isinstance(node, dict):
            results[id(node)] = DisclosableObject({k: converted(v) for k, v in node.items()})
        else:
            results[id(node)] = DisclosableArray(tuple(converted(v) for v in node))
    return results[id(value)]
