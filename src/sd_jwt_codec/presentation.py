"""Presentation: keep only the disclosures needed to reveal chosen claims."""

import logging
from typing import Callable, Iterable, Optional, Union

from .claim_path import ClaimPath
from .disclosure import Disclosure
from .issuer import SdJwt
from .recreate import DisclosuresPerClaim, recreate_claims

logger = logging.getLogger(__name__)


def _matching_paths(target: ClaimPath, per_claim: DisclosuresPerClaim) -> list[ClaimPath]:
    if not target.has_wildcard():
        return [target] if target in per_claim else []
    return [path for path in per_claim if target.matches(path)]


def disclosures_for(
    targets: Iterable[ClaimPath],
    per_claim: DisclosuresPerClaim,
    issued: Optional[Iterable[Disclosure]] = None,
) -> tuple[Disclosure, ...]:
    """Compute the disclosures required to reveal ``targets``.

    A claim needs the disclosure of every ancestor that is itself
    selectively disclosed, plus its own. Targets that are plain or absent
    need nothing.

    Args:
        targets: Claim paths to reveal; the wildcard matches any index
        per_claim: Disclosures per claim path, as produced by reconstruction
        issued: Optional issuance order to sort the result by

    Returns:
        The deduplicated disclosures
    """
    required: dict[Disclosure, None] = {}
    for target in targets:
        for path in _matching_paths(target, per_claim):
            for disclosure in per_claim[path]:
                required[disclosure] = None
    if issued is None:
        return tuple(required)
    return tuple(d for d in issued if d in required)


def select_disclosures(issued: SdJwt, targets: Iterable[Union[ClaimPath, list]]) -> SdJwt:
    """Create a presentation that reveals only ``targets``.

    Args:
        issued: A fully disclosed issuance
        targets: Claim paths to reveal, as :class:`ClaimPath` or JSON arrays

    Returns:
        An SD-JWT with the same payload and a reduced set of disclosures

    Raises:
        ReconstructionError: If the issuance itself is inconsistent
    """
    paths = [t if isinstance(t, ClaimPath) else ClaimPath.from_json(t) for t in targets]
    recreated = recreate_claims(issued.payload, issued.disclosures)
    selected = disclosures_for(paths, recreated.disclosures_per_claim, issued.disclosures)
    logger.debug("Selected %d of %d disclosure(s)", len(selected), len(issued.disclosures))
    return SdJwt(issued.payload, selected)


def present(issued: SdJwt, predicate: Callable[[ClaimPath], bool]) -> SdJwt:
    """Create a presentation revealing every claim whose path satisfies ``predicate``."""
    recreated = recreate_claims(issued.payload, issued.disclosures)
    paths = [path for path in recreated.disclosures_per_claim if predicate(path)]
    selected = disclosures_for(paths, recreated.disclosures_per_claim, issued.disclosures)
    return SdJwt(issued.payload, selected)
