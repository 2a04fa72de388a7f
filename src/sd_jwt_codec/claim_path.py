"""Claim paths addressing claims inside a reconstructed claim set.

A claim path is a non-empty sequence of elements. Each element is a claim
name, an array index, or the wildcard selecting all array elements. The JSON
form is an array of strings, non-negative integers and ``null``.
"""

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union

from .errors import ConstructionError, PathSelectionError


@dataclass(frozen=True)
class Claim:
    """Selects a named claim of a JSON object."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayElement:
    """Selects the element at ``index`` of a JSON array."""

    index: int

    def __post_init__(self):
        if isinstance(self.index, bool) or not isinstance(self.index, int) or self.index < 0:
            raise ConstructionError(f"Array index must be a non-negative integer, got {self.index!r}")

    def __str__(self) -> str:
        return str(self.index)


@dataclass(frozen=True)
class AllArrayElements:
    """Selects every element of a JSON array."""

    def __str__(self) -> str:
        return "null"


ClaimPathElement = Union[Claim, ArrayElement, AllArrayElements]

ALL_ARRAY_ELEMENTS = AllArrayElements()


def element_contains(this: ClaimPathElement, that: ClaimPathElement) -> bool:
    """Check whether ``this`` element selects everything ``that`` selects."""
    match this:
        case AllArrayElements():
            return isinstance(that, (AllArrayElements, ArrayElement))
        case _:
            return this == that


@dataclass(frozen=True)
class ClaimPath:
    """An immutable, non-empty path of claim path elements."""

    elements: tuple[ClaimPathElement, ...]

    def __post_init__(self):
        if not self.elements:
            raise ConstructionError("Claim path must not be empty")
        object.__setattr__(self, "elements", tuple(self.elements))

    @classmethod
    def of_claim(cls, name: str) -> "ClaimPath":
        """Create a single-element path for a top-level claim."""
        return cls((Claim(name),))

    @classmethod
    def of(cls, *items: Union[str, int, None]) -> "ClaimPath":
        """Create a path from names, indices and ``None`` wildcards.

        Example:
            ``ClaimPath.of("degrees", None, "type")``
        """
        return cls.from_json(list(items))

    @classmethod
    def from_json(cls, value: list[Any]) -> "ClaimPath":
        """Parse the JSON array form of a claim path.

        Args:
            value: List of strings, non-negative integers and ``None``

        Returns:
            The claim path

        Raises:
            ConstructionError: If the list is empty or holds another type
        """
        if not isinstance(value, (list, tuple)):
            raise ConstructionError(f"Claim path must be a JSON array, got {type(value).__name__}")
        elements: list[ClaimPathElement] = []
        for item in value:
            if item is None:
                elements.append(ALL_ARRAY_ELEMENTS)
            elif isinstance(item, str):
                elements.append(Claim(item))
            elif isinstance(item, int) and not isinstance(item, bool):
                elements.append(ArrayElement(item))
            else:
                raise ConstructionError(f"Invalid claim path element: {item!r}")
        return cls(tuple(elements))

    def to_json(self) -> list[Union[str, int, None]]:
        """Return the JSON array form of this path."""
        result: list[Union[str, int, None]] = []
        for element in self.elements:
            match element:
                case Claim(name):
                    result.append(name)
                case ArrayElement(index):
                    result.append(index)
                case AllArrayElements():
                    result.append(None)
        return result

    def __iter__(self) -> Iterator[ClaimPathElement]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def __str__(self) -> str:
        return "[" + ", ".join(str(e) for e in self.elements) + "]"

    def __add__(self, other: Union["ClaimPath", ClaimPathElement]) -> "ClaimPath":
        if isinstance(other, ClaimPath):
            return ClaimPath(self.elements + other.elements)
        return ClaimPath(self.elements + (other,))

    def claim(self, name: str) -> "ClaimPath":
        return self + Claim(name)

    def array_element(self, index: int) -> "ClaimPath":
        return self + ArrayElement(index)

    def all_array_elements(self) -> "ClaimPath":
        return self + ALL_ARRAY_ELEMENTS

    def parent(self) -> Optional["ClaimPath"]:
        """Return the path without its last element, or None at the top level."""
        if len(self.elements) == 1:
            return None
        return ClaimPath(self.elements[:-1])

    def head(self) -> ClaimPathElement:
        return self.elements[0]

    def tail(self) -> Optional["ClaimPath"]:
        if len(self.elements) == 1:
            return None
        return ClaimPath(self.elements[1:])

    def last(self) -> ClaimPathElement:
        return self.elements[-1]

    def ancestors(self) -> list["ClaimPath"]:
        """Return every prefix of this path, shortest first, including itself."""
        return [ClaimPath(self.elements[: i + 1]) for i in range(len(self.elements))]

    def contains(self, other: "ClaimPath") -> bool:
        """Check whether every element of this path contains ``other``'s element.

        ``other`` may be longer than this path; only the common prefix is
        compared.
        """
        if len(other.elements) < len(self.elements):
            return False
        return all(element_contains(a, b) for a, b in zip(self.elements, other.elements))

    def __contains__(self, other: "ClaimPath") -> bool:
        return self.contains(other)

    def matches(self, other: "ClaimPath") -> bool:
        """Check containment between paths of the same length."""
        return len(self.elements) == len(other.elements) and self.contains(other)

    def has_wildcard(self) -> bool:
        return any(isinstance(e, AllArrayElements) for e in self.elements)


def select_path(json_value: Any, path: ClaimPath) -> Any:
    """Select the value a claim path addresses.

    The wildcard selects every element of an array and applies the rest of
    the path to each one.

    Args:
        json_value: A decoded JSON value
        path: The path to follow

    Returns:
        The selected value, or None if the path does not exist

    Raises:
        PathSelectionError: If a path element does not fit the JSON type
    """
    current = json_value
    elements = path.elements
    for position, element in enumerate(elements):
        match element:
            case Claim(name):
                if not isinstance(current, dict):
                    raise PathSelectionError(
                        f"Path element is {element}. Was expecting a JSON object, found {current!r}"
                    )
                current = current.get(name)
            case ArrayElement(index):
                if not isinstance(current, list):
                    raise PathSelectionError(
                        f"Path element is {element}. Was expecting a JSON array, found {current!r}"
                    )
                current = current[index] if index < len(current) else None
            case AllArrayElements():
                if not isinstance(current, list):
                    raise PathSelectionError(
                        f"Path element is {element}. Was expecting a JSON array, found {current!r}"
                    )
                rest = elements[position + 1:]
                if not rest:
                    return current
                return [select_path(item, ClaimPath(rest)) for item in current]
        if current is None:
            return None
    return current
