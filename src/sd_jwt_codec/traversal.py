"""Map and fold over disclosure trees.

Both operators walk the tree with an explicit stack of frames, so the Python
call stack does not grow with the depth of the tree.

A fold is post-order: a container is folded completely before the handler
for the element holding it is called. Every element dispatches to one of
six handlers, selected by its tag (always or never) and its shape (leaf,
object or array), on the handler set of its parent container.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar, Union

from .claim_path import ClaimPath
from .disclosable import (
    AlwaysSelectively,
    DisclosableArray,
    DisclosableObject,
    Leaf,
    NeverSelectively,
)
from .errors import ConstructionError

A = TypeVar("A")
R = TypeVar("R")


class ObjectFoldHandlers(Protocol[A, R]):
    """Handlers for the elements of a disclosable object.

    ``path`` is the claim path of the element itself and ``key`` its claim
    name. Container handlers receive the already folded container.
    """

    def if_always_leaf(self, path: ClaimPath, key: str, value: A) -> R:
        ...

    def if_always_object(self, path: ClaimPath, key: str, folded: R) -> R:
        ...

    def if_always_array(self, path: ClaimPath, key: str, folded: R) -> R:
        ...

    def if_never_leaf(self, path: ClaimPath, key: str, value: A) -> R:
        ...

    def if_never_object(self, path: ClaimPath, key: str, folded: R) -> R:
        ...

    def if_never_array(self, path: ClaimPath, key: str, folded: R) -> R:
        ...


class ArrayFoldHandlers(Protocol[A, R]):
    """Handlers for the elements of a disclosable array.

    ``path`` ends with the all-elements wildcard and ``index`` is the
    element's position.
    """

    def if_always_leaf(self, path: ClaimPath, index: int, value: A) -> R:
        ...

    def if_always_object(self, path: ClaimPath, index: int, folded: R) -> R:
        ...

    def if_always_array(self, path: ClaimPath, index: int, folded: R) -> R:
        ...

    def if_never_leaf(self, path: ClaimPath, index: int, value: A) -> R:
        ...

    def if_never_object(self, path: ClaimPath, index: int, folded: R) -> R:
        ...

    def if_never_array(self, path: ClaimPath, index: int, folded: R) -> R:
        ...


def dispatch(handlers: Any, path: ClaimPath, key: Union[str, int], element: Any, folded: Any = None) -> Any:
    """Call the handler matching the tag and shape of ``element``."""
    match element:
        case AlwaysSelectively(Leaf(value)):
            return handlers.if_always_leaf(path, key, value)
        case AlwaysSelectively(DisclosableObject()):
            return handlers.if_always_object(path, key, folded)
        case AlwaysSelectively(DisclosableArray()):
            return handlers.if_always_array(path, key, folded)
        case NeverSelectively(Leaf(value)):
            return handlers.if_never_leaf(path, key, value)
        case NeverSelectively(DisclosableObject()):
            return handlers.if_never_object(path, key, folded)
        case NeverSelectively(DisclosableArray()):
            return handlers.if_never_array(path, key, folded)
    raise ConstructionError(f"Unexpected element at {path}: {type(element).__name__}")


@dataclass
class _Frame(Generic[R]):
    node: Union[DisclosableObject, DisclosableArray]
    path: Optional[ClaimPath]
    children: list[tuple[Union[str, int], Any]]
    acc: Any = None
    results: list[R] = field(default_factory=list)
    position: int = 0

    @property
    def is_object(self) -> bool:
        return isinstance(self.node, DisclosableObject)

    def child_path(self, key: Union[str, int]) -> ClaimPath:
        if self.is_object:
            return ClaimPath.of_claim(key) if self.path is None else self.path.claim(key)
        return self.path.all_array_elements()


def fold(
    root: DisclosableObject,
    object_handlers: ObjectFoldHandlers[A, R],
    array_handlers: ArrayFoldHandlers[A, R],
    initial: Callable[[DisclosableObject, Optional[ClaimPath]], R],
    combine: Callable[[R, R], R],
    finish_array: Callable[[DisclosableArray, ClaimPath, list[R]], R],
    finish_object: Optional[Callable[[DisclosableObject, Optional[ClaimPath], R], R]] = None,
) -> R:
    """Fold a disclosure tree into a single result.

    Args:
        root: The root object
        object_handlers: Handlers for elements of objects
        array_handlers: Handlers for elements of arrays
        initial: Creates the starting accumulator of an object, given the
            object and its path (None for the root)
        combine: Merges an element result into an object accumulator
        finish_array: Builds an array result from its node, its path and the
            element results in order
        finish_object: Optional post-processing of a completed object
            accumulator

    Returns:
        The folded result of the root object
    """

    def open_frame(node, path: Optional[ClaimPath]) -> _Frame:
        if isinstance(node, DisclosableObject):
            return _Frame(node, path, list(node.content.items()), acc=initial(node, path))
        return _Frame(node, path, list(enumerate(node.content)))

    def accept(frame: _Frame, result: Any) -> None:
        if frame.is_object:
            frame.acc = combine(frame.acc, result)
        else:
            frame.results.append(result)
        frame.position += 1

    def close(frame: _Frame) -> Any:
        if frame.is_object:
            if finish_object is None:
                return frame.acc
            return finish_object(frame.node, frame.path, frame.acc)
        return finish_array(frame.node, frame.path, frame.results)

    stack = [open_frame(root, None)]
    while True:
        frame = stack[-1]
        if frame.position < len(frame.children):
            key, element = frame.children[frame.position]
            handlers = object_handlers if frame.is_object else array_handlers
            if isinstance(element.value, Leaf):
                accept(frame, dispatch(handlers, frame.child_path(key), key, element))
            else:
                stack.append(open_frame(element.value, frame.child_path(key)))
            continue

        stack.pop()
        folded = close(frame)
        if not stack:
            return folded
        parent = stack[-1]
        key, element = parent.children[parent.position]
        handlers = object_handlers if parent.is_object else array_handlers
        accept(parent, dispatch(handlers, parent.child_path(key), key, element, folded))


class _MapHandlers:
    """Rebuilds every element with the same tag, transforming leaf values."""

    def __init__(self, fn: Callable[[Any], Any], keyed: bool):
        self._fn = fn
        self._keyed = keyed

    def _emit(self, key, element):
        return (key, element) if self._keyed else element

    def if_always_leaf(self, path, key, value):
        return self._emit(key, AlwaysSelectively(Leaf(self._fn(value))))

    def if_always_object(self, path, key, folded):
        return self._emit(key, AlwaysSelectively(folded))

    def if_always_array(self, path, key, folded):
        return self._emit(key, AlwaysSelectively(folded))

    def if_never_leaf(self, path, key, value):
        return self._emit(key, NeverSelectively(Leaf(self._fn(value))))

    def if_never_object(self, path, key, folded):
        return self._emit(key, NeverSelectively(folded))

    def if_never_array(self, path, key, folded):
        return self._emit(key, NeverSelectively(folded))


def _collect_entry(acc: dict, entry: tuple) -> dict:
    key, element = entry
    acc[key] = element
    return acc


def map_values(root: DisclosableObject, fn: Callable[[Any], Any]) -> DisclosableObject:
    """Return a tree of the same shape and tags with every leaf value mapped.

    Args:
        root: The tree to transform
        fn: Function applied to each leaf value

    Returns:
        A new tree; minimum-digest hints are preserved
    """
    return fold(
        root,
        object_handlers=_MapHandlers(fn, keyed=True),
        array_handlers=_MapHandlers(fn, keyed=False),
        initial=lambda node, path: {},
        combine=_collect_entry,
        finish_array=lambda node, path, elements: DisclosableArray(tuple(elements), node.minimum_digests),
        finish_object=lambda node, path, content: DisclosableObject(content, node.minimum_digests),
    )


class _PathHandlers:
    def if_always_leaf(self, path, key, value):
        return [path]

    if_never_leaf = if_always_leaf

    def if_always_object(self, path, key, folded):
        return [path] + folded

    if_always_array = if_never_object = if_never_array = if_always_object


def _extend(acc: list, paths: list) -> list:
    acc.extend(paths)
    return acc


def collect_claim_paths(root: DisclosableObject) -> list[ClaimPath]:
    """List the claim path of every element in the tree, in pre-order.

    Array elements are reported with the wildcard path, so an array of
    several elements contributes its element path once per element.
    """
    handlers = _PathHandlers()
    return fold(
        root,
        object_handlers=handlers,
        array_handlers=handlers,
        initial=lambda node, path: [],
        combine=_extend,
        finish_array=lambda node, path, results: [p for paths in results for p in paths],
    )
