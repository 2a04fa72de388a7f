"""Claim reconstruction and disclosure consistency checks.

Given a payload whose signature has already been verified and the presented
disclosures, rebuild the claim set the holder revealed. Each digest that has
a matching disclosure is replaced by the disclosed claim; digests without a
disclosure stay hidden (or are decoys) and simply disappear.

Every consistency problem is collected and reported at once through
:class:`~sd_jwt_codec.errors.ReconstructionError`; a partially reconstructed
claim set is never returned.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union

from .claim_path import ClaimPath
from .disclosable import ARRAY_DIGEST_KEY, CLAIM_SD, CLAIM_SD_ALG
from .disclosure import Disclosure, HashAlgorithm
from .errors import InvalidDisclosureError, ReconstructionError, SdJwtError, UnsupportedHashAlgorithmError

logger = logging.getLogger(__name__)


class IssueKind(Enum):
    """Kinds of consistency issues found while reconstructing claims."""

    INVALID_DISCLOSURE = "invalid_disclosure"
    UNSUPPORTED_HASH_ALGORITHM = "unsupported_hash_algorithm"
    DUPLICATE_DISCLOSURE = "duplicate_disclosure"
    NON_UNIQUE_DIGEST = "non_unique_digest"
    DUPLICATE_DIGEST = "duplicate_digest"
    MISPLACED_DISCLOSURE = "misplaced_disclosure"
    CLAIM_ALREADY_PRESENT = "claim_already_present"
    MALFORMED_DIGESTS = "malformed_digests"
    MISSING_DIGEST = "missing_digest"
    UNDISCLOSED_DIGEST = "undisclosed_digest"


@dataclass(frozen=True)
class ReconstructionIssue:
    kind: IssueKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


DisclosuresPerClaim = Mapping[ClaimPath, tuple[Disclosure, ...]]


@dataclass(frozen=True)
class RecreatedClaims:
    """Result of a successful reconstruction.

    Attributes:
        claims: The revealed claim set, without ``_sd``, ``_sd_alg`` and
            array wrappers
        disclosures_per_claim: For every claim path of ``claims``, the
            disclosures needed to reveal that claim, outermost first
    """

    claims: dict[str, Any]
    disclosures_per_claim: DisclosuresPerClaim


def hash_algorithm_of(payload: Mapping[str, Any]) -> HashAlgorithm:
    """Read ``_sd_alg`` from a payload, defaulting to sha-256.

    Raises:
        UnsupportedHashAlgorithmError: If the declared algorithm is unknown
    """
    if CLAIM_SD_ALG not in payload:
        return HashAlgorithm.SHA_256
    return HashAlgorithm.from_identifier(payload[CLAIM_SD_ALG])


def array_element_digest(element: Any) -> Optional[str]:
    """Return the digest of a ``{"...": digest}`` wrapper, or None for anything else."""
    if isinstance(element, dict) and len(element) == 1:
        digest = element.get(ARRAY_DIGEST_KEY)
        if isinstance(digest, str):
            return digest
    return None


class _Reconstruction:
    def __init__(self, by_digest: dict[str, Disclosure], allow_undisclosed_digests: bool):
        self.by_digest = by_digest
        self.allow_undisclosed_digests = allow_undisclosed_digests
        self.used: set[str] = set()
        self.seen_digests: set[str] = set()
        self.issues: list[ReconstructionIssue] = []
        self.per_claim: dict[ClaimPath, tuple[Disclosure, ...]] = {}

    def issue(self, kind: IssueKind, message: str) -> None:
        self.issues.append(ReconstructionIssue(kind, message))

    def lookup(self, digest: str, where: str) -> Optional[Disclosure]:
        if digest in self.seen_digests:
            self.issue(IssueKind.DUPLICATE_DIGEST, f"Digest {digest} appears more than once ({where})")
            return None
        self.seen_digests.add(digest)
        disclosure = self.by_digest.get(digest)
        if disclosure is None:
            if not self.allow_undisclosed_digests:
                self.issue(IssueKind.UNDISCLOSED_DIGEST, f"No disclosure for digest {digest} ({where})")
            return None
        self.used.add(digest)
        return disclosure

    def run(self, root: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        # Each task: source value, its path, its disclosures, target container, target key
        stack: list[tuple[Any, Optional[ClaimPath], tuple[Disclosure, ...], Any, Any]] = []
        holder = {"root": result}
        stack.append((root, None, (), holder, "root"))
        while stack:
            source, path, inherited, target, slot = stack.pop()
            if isinstance(source, dict):
                entries = self.object_entries(source, path)
                rendered: Union[dict, list] = {}
                target[slot] = rendered
                children = []
                for name, value, disclosure in entries:
                    child_path = ClaimPath.of_claim(name) if path is None else path.claim(name)
                    children.append((name, value, child_path, disclosure))
                    rendered[name] = value
            else:
                entries = self.array_entries(source, path)
                rendered = [value for value, _ in entries]
                target[slot] = rendered
                children = [
                    (index, value, path.array_element(index), disclosure)
                    for index, (value, disclosure) in enumerate(entries)
                ]

            pending = []
            for key, value, child_path, disclosure in children:
                disclosures = inherited + (disclosure,) if disclosure is not None else inherited
                self.per_claim[child_path] = disclosures
                if isinstance(value, (dict, list)):
                    pending.append((value, child_path, disclosures, rendered, key))
            stack.extend(reversed(pending))
        return holder["root"]

    def object_entries(self, source: dict[str, Any], path: Optional[ClaimPath]) -> list[tuple[str, Any, Any]]:
        where = "top level" if path is None else f"at {path}"
        entries = [(name, value, None) for name, value in source.items() if name != CLAIM_SD]
        if CLAIM_SD not in source:
            return entries
        digests = source[CLAIM_SD]
        if not isinstance(digests, list) or not all(isinstance(d, str) for d in digests):
            self.issue(IssueKind.MALFORMED_DIGESTS, f"_sd must be an array of strings ({where})")
            return entries

        present = set(source)
        for digest in digests:
            disclosure = self.lookup(digest, where)
            if disclosure is None:
                continue
            if disclosure.is_array_element:
                self.issue(
                    IssueKind.MISPLACED_DISCLOSURE,
                    f"Found array element disclosure {disclosure.value} within _sd claim ({where})",
                )
                continue
            if disclosure.name in present:
                self.issue(
                    IssueKind.CLAIM_ALREADY_PRESENT,
                    f"Failed to embed disclosure with key {disclosure.name}. Already present ({where})",
                )
                continue
            present.add(disclosure.name)
            entries.append((disclosure.name, disclosure.claim_value, disclosure))
        return entries

    def array_entries(self, source: list[Any], path: ClaimPath) -> list[tuple[Any, Any]]:
        entries = []
        for index, element in enumerate(source):
            digest = array_element_digest(element)
            if digest is None:
                entries.append((element, None))
                continue
            disclosure = self.lookup(digest, f"at {path.array_element(index)}")
            if disclosure is None:
                continue
            if disclosure.is_object_property:
                self.issue(
                    IssueKind.MISPLACED_DISCLOSURE,
                    f"Found object property disclosure {disclosure.value} within an array element at {path}",
                )
                continue
            entries.append((disclosure.claim_value, disclosure))
        return entries


def _parse_all(disclosures: Iterable[Union[Disclosure, str]], issues: list[ReconstructionIssue]) -> list[Disclosure]:
    parsed = []
    for item in disclosures:
        if isinstance(item, Disclosure):
            parsed.append(item)
            continue
        try:
            parsed.append(Disclosure.parse(item))
        except InvalidDisclosureError as e:
            issues.append(ReconstructionIssue(IssueKind.INVALID_DISCLOSURE, str(e)))
    return parsed


def _index(
    disclosures: list[Disclosure], hash_alg: HashAlgorithm, issues: list[ReconstructionIssue]
) -> dict[str, Disclosure]:
    by_digest: dict[str, Disclosure] = {}
    seen: set[str] = set()
    for disclosure in disclosures:
        if disclosure.value in seen:
            issues.append(ReconstructionIssue(IssueKind.DUPLICATE_DISCLOSURE, f"Disclosure {disclosure.value} is repeated"))
            continue
        seen.add(disclosure.value)
        digest = disclosure.digest(hash_alg)
        if digest in by_digest:
            issues.append(
                ReconstructionIssue(IssueKind.NON_UNIQUE_DIGEST, f"Digest {digest} matches more than one disclosure")
            )
            continue
        by_digest[digest] = disclosure
    return by_digest


def recreate_claims(
    payload: Mapping[str, Any],
    disclosures: Iterable[Union[Disclosure, str]],
    *,
    allow_undisclosed_digests: bool = True,
) -> RecreatedClaims:
    """Reconstruct the claims revealed by a set of disclosures.

    Args:
        payload: The verified payload, with ``_sd`` lists and array wrappers
        disclosures: The presented disclosures, parsed or in wire form
        allow_undisclosed_digests: When False, every digest without a
            matching disclosure is an issue. Use it to check a complete
            issuance that was created without decoys.

    Returns:
        The revealed claims and the disclosures needed for each claim path

    Raises:
        ReconstructionError: If any consistency issue is found
        SdJwtError: If the payload is not a JSON object
    """
    if not isinstance(payload, Mapping):
        raise SdJwtError(f"Payload must be a JSON object, got {type(payload).__name__}")

    issues: list[ReconstructionIssue] = []
    parsed = _parse_all(disclosures, issues)
    try:
        hash_alg = hash_algorithm_of(payload)
    except UnsupportedHashAlgorithmError as e:
        issues.append(ReconstructionIssue(IssueKind.UNSUPPORTED_HASH_ALGORITHM, str(e)))
        raise ReconstructionError(issues) from e
    logger.debug("Reconstructing claims from %d disclosure(s) using %s", len(parsed), hash_alg.identifier)

    reconstruction = _Reconstruction(_index(parsed, hash_alg, issues), allow_undisclosed_digests)
    reconstruction.issues = issues
    root = {name: value for name, value in payload.items() if name != CLAIM_SD_ALG}
    claims = reconstruction.run(root)

    unused = [d.value for digest, d in reconstruction.by_digest.items() if digest not in reconstruction.used]
    if unused:
        issues.append(
            ReconstructionIssue(IssueKind.MISSING_DIGEST, f"Could not find digests for disclosures {unused}")
        )

    if issues:
        logger.debug("Claim reconstruction failed with %d issue(s)", len(issues))
        raise ReconstructionError(issues)
    return RecreatedClaims(claims, MappingProxyType(reconstruction.per_claim))
