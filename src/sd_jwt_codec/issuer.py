"""SD-JWT issuance: from a disclosure tree to a payload and its disclosures.

Every selectively disclosable node becomes one salted disclosure whose
digest replaces the node in its parent: as an ``_sd`` entry in objects, or as
a ``{"...": digest}`` wrapper in arrays. Containers are rendered before the
node holding them, so an always-disclosable container discloses its already
rendered content (recursive disclosure).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .disclosable import ARRAY_DIGEST_KEY, CLAIM_SD, CLAIM_SD_ALG, DisclosableObject, check_minimum_digests
from .disclosure import (
    DecoyGenerator,
    Disclosure,
    HashAlgorithm,
    RandomDecoyGenerator,
    SaltGenerator,
    SecureSaltGenerator,
    generate_decoys,
    new_salt,
)
from .traversal import fold

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SdJwt:
    """A payload together with the disclosures that reveal its hidden claims.

    Attributes:
        payload: The signable claim set, with ``_sd`` lists, array wrappers
            and ``_sd_alg``
        disclosures: Disclosures in the order they were produced
    """

    payload: dict[str, Any]
    disclosures: tuple[Disclosure, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "disclosures", tuple(self.disclosures))


@dataclass
class _Fragment:
    """Partial result of rendering one element or container."""

    claims: dict[str, Any] = field(default_factory=dict)
    digests: list[str] = field(default_factory=list)
    disclosures: list[Disclosure] = field(default_factory=list)
    element: Any = None
    wrapped: bool = False
    decoys: int = 0


def _merge(acc: _Fragment, part: _Fragment) -> _Fragment:
    acc.claims.update(part.claims)
    acc.digests.extend(part.digests)
    acc.disclosures.extend(part.disclosures)
    acc.decoys += part.decoys
    return acc


class SdJwtFactory:
    """Creates SD-JWT payloads and disclosures from disclosure trees.

    Args:
        hash_alg: Hash algorithm for digests (default sha-256)
        salt_generator: Source of disclosure salts (secure random if None)
        decoy_generator: Source of decoy digests (secure random if None)
        fallback_minimum_digests: Minimum digest count for containers that
            carry no hint of their own; None means no padding
    """

    def __init__(
        self,
        hash_alg: HashAlgorithm = HashAlgorithm.SHA_256,
        salt_generator: Optional[SaltGenerator] = None,
        decoy_generator: Optional[DecoyGenerator] = None,
        fallback_minimum_digests: Optional[int] = None,
    ):
        check_minimum_digests(fallback_minimum_digests)
        self.hash_alg = hash_alg
        self.salt_generator = salt_generator or SecureSaltGenerator()
        self.decoy_generator = decoy_generator or RandomDecoyGenerator()
        self.fallback_minimum_digests = fallback_minimum_digests

    def create(self, tree: DisclosableObject) -> SdJwt:
        """Render a disclosure tree.

        Args:
            tree: The root object

        Returns:
            The payload and the disclosures, in the order they were produced

        Raises:
            InvalidDisclosureError: If a disclosable value cannot be disclosed
        """
        rendered = fold(
            tree,
            object_handlers=_ObjectHandlers(self),
            array_handlers=_ArrayHandlers(self),
            initial=lambda node, path: _Fragment(),
            combine=_merge,
            finish_array=self._finish_array,
            finish_object=self._finish_object,
        )
        payload = rendered.element
        if rendered.disclosures or rendered.decoys:
            payload[CLAIM_SD_ALG] = self.hash_alg.identifier
        logger.debug(
            "Issued SD-JWT with %d disclosure(s) and %d decoy(s) using %s",
            len(rendered.disclosures),
            rendered.decoys,
            self.hash_alg.identifier,
        )
        return SdJwt(payload, tuple(rendered.disclosures))

    def _minimum_for(self, hint: Optional[int]) -> int:
        if hint is not None:
            return hint
        return self.fallback_minimum_digests or 0

    def _finish_object(self, node: DisclosableObject, path, acc: _Fragment) -> _Fragment:
        decoys = generate_decoys(
            self.decoy_generator, self.hash_alg, self._minimum_for(node.minimum_digests) - len(acc.digests)
        )
        rendered = dict(acc.claims)
        digests = sorted(acc.digests + decoys)
        if digests:
            rendered[CLAIM_SD] = digests
        return _Fragment(element=rendered, disclosures=acc.disclosures, decoys=acc.decoys + len(decoys))

    def _finish_array(self, node, path, parts: list[_Fragment]) -> _Fragment:
        elements = [part.element for part in parts]
        wrapped = sum(1 for part in parts if part.wrapped)
        decoys = generate_decoys(self.decoy_generator, self.hash_alg, self._minimum_for(node.minimum_digests) - wrapped)
        elements.extend({ARRAY_DIGEST_KEY: decoy} for decoy in decoys)
        disclosures = [d for part in parts for d in part.disclosures]
        return _Fragment(
            element=elements,
            disclosures=disclosures,
            decoys=sum(part.decoys for part in parts) + len(decoys),
        )

    def object_property(self, name: str, value: Any) -> Disclosure:
        return Disclosure.object_property(new_salt(self.salt_generator), name, value, allow_nested_digests=True)

    def array_element(self, value: Any) -> Disclosure:
        return Disclosure.array_element(new_salt(self.salt_generator), value, allow_nested_digests=True)


class _ObjectHandlers:
    def __init__(self, factory: SdJwtFactory):
        self._factory = factory

    def _disclosed(self, key: str, value: Any, inner: list[Disclosure], decoys: int = 0) -> _Fragment:
        disclosure = self._factory.object_property(key, value)
        return _Fragment(
            digests=[disclosure.digest(self._factory.hash_alg)],
            disclosures=inner + [disclosure],
            decoys=decoys,
        )

    def if_always_leaf(self, path, key, value):
        return self._disclosed(key, value, [])

    def if_always_object(self, path, key, folded):
        return self._disclosed(key, folded.element, folded.disclosures, folded.decoys)

    if_always_array = if_always_object

    def if_never_leaf(self, path, key, value):
        return _Fragment(claims={key: value})

    def if_never_object(self, path, key, folded):
        return _Fragment(claims={key: folded.element}, disclosures=folded.disclosures, decoys=folded.decoys)

    if_never_array = if_never_object


class _ArrayHandlers:
    def __init__(self, factory: SdJwtFactory):
        self._factory = factory

    def _disclosed(self, value: Any, inner: list[Disclosure], decoys: int = 0) -> _Fragment:
        disclosure = self._factory.array_element(value)
        return _Fragment(
            element={ARRAY_DIGEST_KEY: disclosure.digest(self._factory.hash_alg)},
            disclosures=inner + [disclosure],
            wrapped=True,
            decoys=decoys,
        )

    def if_always_leaf(self, path, index, value):
        return self._disclosed(value, [])

    def if_always_object(self, path, index, folded):
        return self._disclosed(folded.element, folded.disclosures, folded.decoys)

    if_always_array = if_always_object

    def if_never_leaf(self, path, index, value):
        return _Fragment(element=value)

    def if_never_object(self, path, index, folded):
        return _Fragment(element=folded.element, disclosures=folded.disclosures, decoys=folded.decoys)

    if_never_array = if_never_object


def create_sd_jwt(
    tree: DisclosableObject,
    hash_alg: HashAlgorithm = HashAlgorithm.SHA_256,
    salt_generator: Optional[SaltGenerator] = None,
    decoy_generator: Optional[DecoyGenerator] = None,
    fallback_minimum_digests: Optional[int] = None,
) -> SdJwt:
    """Render a disclosure tree with a one-off :class:`SdJwtFactory`."""
    factory = SdJwtFactory(hash_alg, salt_generator, decoy_generator, fallback_minimum_digests)
    return factory.create(tree)
