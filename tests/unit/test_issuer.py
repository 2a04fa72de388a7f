"""Unit tests for SD-JWT issuance."""

import pytest

from sd_jwt_codec.disclosable import sd_jwt
from sd_jwt_codec.disclosure import HashAlgorithm, SeededDecoyGenerator, SeededSaltGenerator
from sd_jwt_codec.errors import ConstructionError, InvalidDisclosureError
from sd_jwt_codec.issuer import SdJwt, SdJwtFactory, create_sd_jwt


def _seeded_factory(**kwargs) -> SdJwtFactory:
    return SdJwtFactory(salt_generator=SeededSaltGenerator(1), decoy_generator=SeededDecoyGenerator(2), **kwargs)


class TestSdJwtFactory:
    """Payload and disclosure generation."""

    @pytest.mark.unit
    def test_plain_claims_untouched(self, factory: SdJwtFactory, base_claims) -> None:
        """Without disclosable claims there is no _sd and no _sd_alg."""
        tree = sd_jwt(lambda b: [b.claim(k, v) for k, v in base_claims.items()])
        issued = factory.create(tree)
        assert issued.payload == base_claims
        assert issued.disclosures == ()

    @pytest.mark.unit
    def test_object_property_digest_replaces_claim(self, factory: SdJwtFactory, decode) -> None:
        tree = sd_jwt(lambda b: b.claim("iss", "https://issuer.example").sd_claim("given_name", "John"))
        issued = factory.create(tree)
        assert "given_name" not in issued.payload
        assert issued.payload["iss"] == "https://issuer.example"
        assert issued.payload["_sd_alg"] == "sha-256"
        (disclosure,) = issued.disclosures
        assert issued.payload["_sd"] == [disclosure.digest()]
        salt, name, value = decode(disclosure.value)
        assert (name, value) == ("given_name", "John")
        assert salt == disclosure.salt

    @pytest.mark.unit
    def test_digests_sorted(self, factory: SdJwtFactory) -> None:
        tree = sd_jwt(lambda b: [b.sd_claim(f"claim{i}", i) for i in range(8)])
        digests = factory.create(tree).payload["_sd"]
        assert len(digests) == 8
        assert digests == sorted(digests)

    @pytest.mark.unit
    def test_array_elements_wrapped_in_place(self, factory: SdJwtFactory, decode) -> None:
        tree = sd_jwt(lambda b: b.arr_claim("nationalities", lambda a: a.sd_element("DE").element("FR")))
        issued = factory.create(tree)
        (disclosure,) = issued.disclosures
        assert issued.payload["nationalities"] == [{"...": disclosure.digest()}, "FR"]
        assert decode(disclosure.value)[1] == "DE"
        assert "_sd" not in issued.payload

    @pytest.mark.unit
    def test_subtree_disclosures_precede_their_container(self, factory: SdJwtFactory, decode) -> None:
        tree = sd_jwt(lambda b: b.sd_arr_claim("nationalities", lambda a: a.sd_element("DE")))
        issued = factory.create(tree)
        element, container = issued.disclosures
        assert element.is_array_element
        assert container.claim() == ("nationalities", [{"...": element.digest()}])
        assert issued.payload["_sd"] == [container.digest()]

    @pytest.mark.unit
    def test_hash_algorithm_is_declared(self) -> None:
        factory = _seeded_factory(hash_alg=HashAlgorithm.SHA_512)
        issued = factory.create(sd_jwt(lambda b: b.sd_claim("a", 1)))
        assert issued.payload["_sd_alg"] == "sha-512"
        assert issued.payload["_sd"] == [issued.disclosures[0].digest(HashAlgorithm.SHA_512)]
        assert len(issued.payload["_sd"][0]) == 86

    @pytest.mark.unit
    def test_seeded_issuance_is_reproducible(self, structured_address_tree) -> None:
        first = _seeded_factory().create(structured_address_tree)
        second = _seeded_factory().create(structured_address_tree)
        assert first == second

    @pytest.mark.unit
    def test_non_json_value_fails_generation(self, factory: SdJwtFactory) -> None:
        with pytest.raises(InvalidDisclosureError):
            factory.create(sd_jwt(lambda b: b.sd_claim("a", object())))

    @pytest.mark.unit
    def test_invalid_fallback_rejected(self) -> None:
        with pytest.raises(ConstructionError):
            SdJwtFactory(fallback_minimum_digests=0)

    @pytest.mark.unit
    def test_create_sd_jwt_helper(self) -> None:
        issued = create_sd_jwt(sd_jwt(lambda b: b.sd_claim("a", 1)), salt_generator=SeededSaltGenerator())
        assert isinstance(issued, SdJwt)
        assert len(issued.disclosures) == 1


class TestDecoys:
    """Minimum digest counts and decoy padding."""

    @pytest.mark.unit
    def test_object_padded_to_minimum(self, factory: SdJwtFactory) -> None:
        tree = sd_jwt(lambda b: b.sd_claim("a", 1).sd_claim("b", 2), minimum_digests=5)
        issued = factory.create(tree)
        digests = issued.payload["_sd"]
        assert len(digests) == 5
        assert digests == sorted(digests)
        real = {d.digest() for d in issued.disclosures}
        assert real <= set(digests)

    @pytest.mark.unit
    def test_no_padding_once_minimum_met(self, factory: SdJwtFactory) -> None:
        tree = sd_jwt(lambda b: [b.sd_claim(f"c{i}", i) for i in range(6)], minimum_digests=5)
        assert len(factory.create(tree).payload["_sd"]) == 6

    @pytest.mark.unit
    def test_nested_object_has_own_minimum(self, factory: SdJwtFactory) -> None:
        tree = sd_jwt(
            lambda b: b.sd_claim("top", 1).obj_claim("address", lambda a: a.sd_claim("country", "DE"), minimum_digests=4)
        )
        issued = factory.create(tree)
        assert len(issued.payload["_sd"]) == 1
        assert len(issued.payload["address"]["_sd"]) == 4

    @pytest.mark.unit
    def test_array_padded_with_wrappers(self, factory: SdJwtFactory) -> None:
        tree = sd_jwt(
            lambda b: b.arr_claim("nationalities", lambda a: a.sd_element("DE").element("FR"), minimum_digests=3)
        )
        issued = factory.create(tree)
        rendered = issued.payload["nationalities"]
        assert len(rendered) == 4
        assert rendered[1] == "FR"
        wrappers = [e for e in rendered if isinstance(e, dict)]
        assert len(wrappers) == 3
        assert all(list(w) == ["..."] for w in wrappers)
        assert rendered[0] == {"...": issued.disclosures[0].digest()}
        assert "_sd" not in issued.payload

    @pytest.mark.unit
    def test_fallback_applies_to_every_container(self) -> None:
        factory = _seeded_factory(fallback_minimum_digests=3)
        tree = sd_jwt(
            lambda b: b.claim("iss", "x")
            .obj_claim("address", lambda a: a.sd_claim("country", "DE"))
            .arr_claim("tags", lambda a: a.element("x"))
        )
        issued = factory.create(tree)
        assert len(issued.payload["_sd"]) == 3
        assert len(issued.payload["address"]["_sd"]) == 3
        assert len(issued.payload["tags"]) == 4
        assert issued.payload["_sd_alg"] == "sha-256"

    @pytest.mark.unit
    def test_own_hint_overrides_fallback(self) -> None:
        factory = _seeded_factory(fallback_minimum_digests=6)
        tree = sd_jwt(lambda b: b.sd_claim("a", 1), minimum_digests=2)
        assert len(factory.create(tree).payload["_sd"]) == 2

    @pytest.mark.unit
    def test_decoys_only_payload_declares_algorithm(self, factory: SdJwtFactory) -> None:
        issued = factory.create(sd_jwt(lambda b: b.claim("iss", "x"), minimum_digests=2))
        assert issued.disclosures == ()
        assert len(issued.payload["_sd"]) == 2
        assert issued.payload["_sd_alg"] == "sha-256"
