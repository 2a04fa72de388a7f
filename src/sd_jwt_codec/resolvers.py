"""Resolvers for SD-JWT VC type metadata.

A resolver maps a credential type identifier (``vct``) to its type
metadata. Only in-memory resolution is provided; fetching metadata over the
network is left to the caller.
"""

from typing import Any, Callable, Mapping, Union

from .type_metadata import TypeMetadata

TypeMetadataResolver = Callable[[str], TypeMetadata]


def static_type_metadata_resolver(
    documents: Mapping[str, Union[TypeMetadata, Mapping[str, Any]]],
) -> TypeMetadataResolver:
    """Create a resolver over a fixed set of type metadata documents.

    Args:
        documents: Mapping of vct to parsed :class:`TypeMetadata` or to the
            raw JSON document

    Returns:
        Resolver function that takes a vct and returns its type metadata

    Raises:
        ValueError: If resolver is called with a vct that is not known
    """
    vct_to_metadata: dict[str, TypeMetadata] = {}
    for vct, document in documents.items():
        metadata = document if isinstance(document, TypeMetadata) else TypeMetadata.from_json(document)
        if metadata.vct != vct:
            raise ValueError(f"Type metadata for {vct} declares vct {metadata.vct}")
        vct_to_metadata[vct] = metadata

    def resolve_type_metadata(requested_vct: str) -> TypeMetadata:
        """Resolve type metadata by vct.

        Raises:
            ValueError: If the vct is not found in the lookup table
        """
        if requested_vct not in vct_to_metadata:
            raise ValueError(
                f"vct not found: {requested_vct}. Available: {', '.join(sorted(vct_to_metadata))}"
            )
        return vct_to_metadata[requested_vct]

    return resolve_type_metadata
