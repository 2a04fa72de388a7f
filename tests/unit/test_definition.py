"""Unit tests for credential definitions."""

import pytest

from sd_jwt_codec.claim_path import ClaimPath
from sd_jwt_codec.definition import (
    AltDefinition,
    ArrayDefinition,
    AttributeMetadata,
    ClaimDisplay,
    DisplayMetadata,
    IdDefinition,
    ObjectDefinition,
    SdJwtDefinition,
    VctMetadata,
    attribute_metadata,
    definition_from_disclosable,
    find_element,
)
from sd_jwt_codec.disclosable import AlwaysSelectively, NeverSelectively, sd_jwt
from sd_jwt_codec.errors import ConstructionError

VCT = VctMetadata(vct="https://credentials.example.com/identity_credential", name="Identity Credential")


@pytest.fixture
def identity_definition() -> SdJwtDefinition:
    """A definition with an object, an array of objects and an array of primitives."""
    degree = ObjectDefinition({"type": AlwaysSelectively(IdDefinition()), "year": NeverSelectively(IdDefinition())})
    return SdJwtDefinition(
        {
            "given_name": AlwaysSelectively(IdDefinition(AttributeMetadata((ClaimDisplay("en", "Given name"),)))),
            "address": AlwaysSelectively(ObjectDefinition({"country": AlwaysSelectively(IdDefinition())})),
            "degrees": NeverSelectively(ArrayDefinition(AlwaysSelectively(degree))),
            "nationalities": NeverSelectively(ArrayDefinition(AlwaysSelectively(IdDefinition()))),
        },
        VCT,
    )


class TestDefinitionTypes:
    """Structural rules of definition nodes."""

    @pytest.mark.unit
    def test_alternatives_need_two_definitions(self) -> None:
        with pytest.raises(ConstructionError):
            AltDefinition((NeverSelectively(IdDefinition()),))
        with pytest.raises(ConstructionError):
            AltDefinition(())
        alt = AltDefinition([NeverSelectively(IdDefinition()), AlwaysSelectively(IdDefinition())])
        assert isinstance(alt.alternatives, tuple)

    @pytest.mark.unit
    def test_untagged_content_rejected(self) -> None:
        with pytest.raises(ConstructionError):
            ObjectDefinition({"a": IdDefinition()})
        with pytest.raises(ConstructionError):
            ArrayDefinition(IdDefinition())
        with pytest.raises(ConstructionError):
            SdJwtDefinition({"a": NeverSelectively("text")}, VCT)

    @pytest.mark.unit
    def test_attribute_metadata(self) -> None:
        metadata = AttributeMetadata((ClaimDisplay("en", "Name"),), svg_id="name")
        assert attribute_metadata(IdDefinition(metadata)) is metadata
        alt = AltDefinition((NeverSelectively(IdDefinition()), NeverSelectively(ArrayDefinition(NeverSelectively(IdDefinition())))))
        assert attribute_metadata(alt) is None

    @pytest.mark.unit
    def test_display_from_json(self) -> None:
        assert ClaimDisplay.from_json({"lang": "de", "label": "Vorname"}) == ClaimDisplay("de", "Vorname")
        assert ClaimDisplay.from_json({"locale": "en"}).lang == "en"
        assert DisplayMetadata.from_json({"lang": "en", "name": "Identity"}) == DisplayMetadata("en", "Identity")

    @pytest.mark.unit
    def test_never_selectively_disclosable_claims(self, identity_definition: SdJwtDefinition) -> None:
        definition = SdJwtDefinition(
            {**identity_definition.content, "exp": AlwaysSelectively(IdDefinition())}, VCT
        )
        extended = definition.plus_never_selectively_disclosable_claims()
        for name in ("iss", "nbf", "exp", "cnf", "vct", "vct#integrity", "status"):
            assert isinstance(extended.content[name], NeverSelectively)
        assert extended.content["given_name"] == identity_definition.content["given_name"]
        assert extended.metadata is VCT
        assert isinstance(definition.content["exp"], AlwaysSelectively)


class TestFindElement:
    """Looking up definitions by claim path."""

    @pytest.mark.unit
    def test_find_object_members(self, identity_definition: SdJwtDefinition) -> None:
        found = find_element(identity_definition, ClaimPath.of("address", "country"))
        assert found == AlwaysSelectively(IdDefinition())
        assert find_element(identity_definition, ClaimPath.of("given_name")) is identity_definition.content["given_name"]

    @pytest.mark.unit
    def test_find_array_elements_by_wildcard(self, identity_definition: SdJwtDefinition) -> None:
        found = find_element(identity_definition, ClaimPath.of("degrees", None, "year"))
        assert found == NeverSelectively(IdDefinition())
        assert find_element(identity_definition, ClaimPath.of("nationalities", None)) == AlwaysSelectively(IdDefinition())

    @pytest.mark.unit
    def test_index_does_not_address_definitions(self, identity_definition: SdJwtDefinition) -> None:
        assert find_element(identity_definition, ClaimPath.of("degrees", 0, "year")) is None

    @pytest.mark.unit
    def test_missing_paths(self, identity_definition: SdJwtDefinition) -> None:
        assert find_element(identity_definition, ClaimPath.of("unknown")) is None
        assert find_element(identity_definition, ClaimPath.of("given_name", "x")) is None
        assert find_element(identity_definition, ClaimPath.of("address", None)) is None


class TestDefinitionFromDisclosable:
    """Deriving a definition from a disclosure tree."""

    @pytest.mark.unit
    def test_tags_become_policy(self) -> None:
        tree = sd_jwt(
            lambda b: b.claim("iss", "x")
            .sd_claim("given_name", "John")
            .sd_obj_claim("address", lambda a: a.sd_claim("country", "DE").claim("locality", "Berlin"))
            .arr_claim("nationalities", lambda a: a.sd_element("DE").sd_element("FR"))
        )
        definition = definition_from_disclosable(tree, VCT)
        assert definition.metadata is VCT
        assert definition.content["iss"] == NeverSelectively(IdDefinition())
        assert definition.content["given_name"] == AlwaysSelectively(IdDefinition())
        address = definition.content["address"]
        assert isinstance(address, AlwaysSelectively)
        assert address.value.content["country"] == AlwaysSelectively(IdDefinition())
        assert address.value.content["locality"] == NeverSelectively(IdDefinition())
        assert definition.content["nationalities"] == NeverSelectively(
            ArrayDefinition(AlwaysSelectively(IdDefinition()))
        )

    @pytest.mark.unit
    def test_mixed_array_becomes_alternatives(self) -> None:
        tree = sd_jwt(lambda b: b.arr_claim("mixed", lambda a: a.sd_element("x").obj_element(lambda o: o.claim("k", 1))))
        array = definition_from_disclosable(tree, VCT).content["mixed"].value
        assert isinstance(array.element, NeverSelectively)
        assert isinstance(array.element.value, AltDefinition)
        assert len(array.element.value.alternatives) == 2

    @pytest.mark.unit
    def test_empty_array(self) -> None:
        tree = sd_jwt(lambda b: b.arr_claim("empty", lambda a: None))
        assert definition_from_disclosable(tree, VCT).content["empty"] == NeverSelectively(
            ArrayDefinition(NeverSelectively(IdDefinition()))
        )

    @pytest.mark.unit
    def test_metadata_from_values(self) -> None:
        tree = sd_jwt(lambda b: b.sd_claim("given_name", "John"))
        definition = definition_from_disclosable(
            tree, VCT, metadata_of=lambda value: AttributeMetadata((ClaimDisplay("en", str(value)),))
        )
        assert definition.content["given_name"].value.metadata.display[0].label == "John"
