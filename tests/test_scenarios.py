"""Issuance, reconstruction and presentation scenarios from the SD-JWT draft."""

import itertools

import pytest

from sd_jwt_codec.claim_path import ClaimPath
from sd_jwt_codec.definition import IdDefinition, SdJwtDefinition, VctMetadata
from sd_jwt_codec.disclosable import (
    AlwaysSelectively,
    DisclosableArray,
    DisclosableObject,
    Leaf,
    NeverSelectively,
    sd_jwt,
)
from sd_jwt_codec.disclosure import SeededDecoyGenerator, SeededSaltGenerator
from sd_jwt_codec.errors import ReconstructionError
from sd_jwt_codec.issuer import SdJwtFactory
from sd_jwt_codec.presentation import select_disclosures
from sd_jwt_codec.recreate import recreate_claims
from sd_jwt_codec.validator import IncorrectlyDisclosedClaim, Invalid, validate

SAMPLE = {"a": 1, "b": {"c": "x", "d": [3, {"e": True}]}}
SAMPLE_PATHS = [("a",), ("b",), ("b", "c"), ("b", "d"), ("b", "d", 0), ("b", "d", 1), ("b", "d", 1, "e")]


def _tagged(value, path: tuple, always_paths: set):
    if isinstance(value, dict):
        shape = DisclosableObject({k: _tagged(v, path + (k,), always_paths) for k, v in value.items()})
    elif isinstance(value, list):
        shape = DisclosableArray(tuple(_tagged(v, path + (i,), always_paths) for i, v in enumerate(value)))
    else:
        shape = Leaf(value)
    return AlwaysSelectively(shape) if path in always_paths else NeverSelectively(shape)


def _sample_tree(always_paths: set) -> DisclosableObject:
    return DisclosableObject({k: _tagged(v, (k,), always_paths) for k, v in SAMPLE.items()})


def _all_taggings():
    for mask in range(2 ** len(SAMPLE_PATHS)):
        yield {path for bit, path in enumerate(SAMPLE_PATHS) if mask & (1 << bit)}


class TestAddressScenarios:
    """The address examples of the SD-JWT draft."""

    @pytest.mark.unit
    def test_flat_address(self, factory: SdJwtFactory, flat_address_tree, base_claims, address, decode) -> None:
        """Scenario 1: the whole address is one disclosure."""
        issued = factory.create(flat_address_tree)
        assert len(issued.payload["_sd"]) == 1
        assert len(issued.disclosures) == 1
        salt, name, value = decode(issued.disclosures[0].value)
        assert isinstance(salt, str)
        assert name == "address"
        assert value == address
        for claim, expected in base_claims.items():
            assert issued.payload[claim] == expected

    @pytest.mark.unit
    def test_structured_address(self, factory: SdJwtFactory, structured_address_tree, address) -> None:
        """Scenario 2: each address property is disclosed on its own."""
        issued = factory.create(structured_address_tree)
        assert "_sd" not in issued.payload
        assert len(issued.payload["address"]["_sd"]) == 4
        assert set(issued.payload["address"]) == {"_sd"}
        recreated = recreate_claims(issued.payload, issued.disclosures)
        assert recreated.claims["address"] == address

    @pytest.mark.unit
    def test_recursive_address(self, factory: SdJwtFactory, recursive_address_tree, address, decode) -> None:
        """Scenario 3: the disclosed address carries digests of its properties."""
        issued = factory.create(recursive_address_tree)
        (top,) = issued.payload["_sd"]
        address_disclosure = next(d for d in issued.disclosures if d.digest() == top)
        _, name, value = decode(address_disclosure.value)
        assert name == "address"
        assert set(value) == {"_sd"}
        assert len(value["_sd"]) == 4
        remaining = [d for d in issued.disclosures if d is not address_disclosure]
        assert sorted(d.digest() for d in remaining) == value["_sd"]
        assert recreate_claims(issued.payload, issued.disclosures).claims["address"] == address

    @pytest.mark.unit
    def test_present_nested_claims(self, factory: SdJwtFactory, base_claims, address) -> None:
        """Scenario 4: revealing region and country needs the address disclosure too."""

        def address_properties(a) -> None:
            for name, value in address.items():
                if name in ("region", "country"):
                    a.sd_claim(name, value)
                else:
                    a.claim(name, value)

        def credential(b) -> None:
            for name, value in base_claims.items():
                b.claim(name, value)
            b.sd_obj_claim("address", address_properties)

        issued = factory.create(sd_jwt(credential))
        presented = select_disclosures(
            issued, [ClaimPath.of("address", "region"), ClaimPath.of("address", "country")]
        )
        assert len(presented.disclosures) == 3
        assert {d.name for d in presented.disclosures} == {"address", "region", "country"}

    @pytest.mark.unit
    def test_plain_claim_defined_always(self, factory: SdJwtFactory) -> None:
        """Scenario 5: a claim declared always disclosable but issued in plain text."""
        definition = SdJwtDefinition(
            {"family_name": AlwaysSelectively(IdDefinition())}, VctMetadata("https://example.com/pid")
        )
        issued = factory.create(sd_jwt(lambda b: b.claim("family_name", "Doe")))
        result = validate(definition, issued.payload, issued.disclosures)
        assert result == Invalid((IncorrectlyDisclosedClaim(ClaimPath.of("family_name")),))


class TestProperties:
    """Laws that hold for every issuance."""

    @pytest.mark.unit
    def test_round_trip_every_tagging(self) -> None:
        """Reconstruction with all disclosures yields the plain claims."""
        for always_paths in _all_taggings():
            factory = SdJwtFactory(
                salt_generator=SeededSaltGenerator(len(always_paths)),
                decoy_generator=SeededDecoyGenerator(),
                fallback_minimum_digests=2,
            )
            issued = factory.create(_sample_tree(always_paths))
            recreated = recreate_claims(issued.payload, issued.disclosures)
            assert recreated.claims == SAMPLE, sorted(always_paths, key=str)
            assert len(issued.disclosures) == len(always_paths)

    @pytest.mark.unit
    @pytest.mark.parametrize("minimum,real", list(itertools.product(range(1, 5), range(0, 6))))
    def test_digest_count_floor(self, factory: SdJwtFactory, minimum: int, real: int) -> None:
        tree = sd_jwt(lambda b: [b.sd_claim(f"c{i}", i) for i in range(real)], minimum_digests=minimum)
        assert len(factory.create(tree).payload["_sd"]) == max(minimum, real)

    @pytest.mark.unit
    def test_selecting_an_ancestor_changes_nothing(self, factory: SdJwtFactory, recursive_address_tree) -> None:
        issued = factory.create(recursive_address_tree)
        country = ClaimPath.of("address", "country")
        alone = select_disclosures(issued, [country])
        with_parent = select_disclosures(issued, [country, country.parent()])
        assert alone.disclosures == with_parent.disclosures

    @pytest.mark.unit
    def test_presentations_are_subsets(self, factory: SdJwtFactory, recursive_address_tree) -> None:
        issued = factory.create(recursive_address_tree)
        candidates = [
            ClaimPath.of("iss"),
            ClaimPath.of("address"),
            ClaimPath.of("address", "country"),
            ClaimPath.of("address", "locality"),
            ClaimPath.of("unknown"),
        ]
        for size in range(len(candidates) + 1):
            for targets in itertools.combinations(candidates, size):
                presented = select_disclosures(issued, targets)
                assert set(presented.disclosures) <= set(issued.disclosures)
                recreate_claims(presented.payload, presented.disclosures)

    @pytest.mark.unit
    def test_duplicate_disclosures_always_fail(self, factory: SdJwtFactory, recursive_address_tree) -> None:
        issued = factory.create(recursive_address_tree)
        for disclosure in issued.disclosures:
            with pytest.raises(ReconstructionError):
                recreate_claims(issued.payload, issued.disclosures + (disclosure,))

    @pytest.mark.unit
    def test_unmatched_disclosure_always_fails(self, factory: SdJwtFactory, flat_address_tree) -> None:
        issued = factory.create(flat_address_tree)
        stranger = factory.object_property("given_name", "John")
        with pytest.raises(ReconstructionError):
            recreate_claims(issued.payload, issued.disclosures + (stranger,))
