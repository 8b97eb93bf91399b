"""Tests for payload decoding and canonical record assembly."""

import asyncio

import pytest

from housepulse.core.errors import InvalidJSONError, MissingFieldsError, NormalizationError
from housepulse.schemas import BEDROOM_BUCKETS, Demographics, Locality, StateCode
from housepulse.services.calculations import yields_consistent
from housepulse.services.normalizer import (
    CurrentPayload,
    LegacyPayload,
    SchemaNormalizer,
    build_record,
    decode_payload,
    parse_pasted_json,
)

from conftest import FixedClock


def normalize(gazetteer, payload, existing=None, now="2024-01-01T00:00:00.000Z"):
    return asyncio.run(SchemaNormalizer(gazetteer, clock=FixedClock(now)).normalize(payload, existing))


class TestDecode:
    def test_missing_fields_named(self):
        with pytest.raises(MissingFieldsError) as exc:
            decode_payload({"suburb": "Bondi", "state": " "})
        assert exc.value.missing == ["state", "postcode"]
        assert "state, postcode" in str(exc.value)

    def test_not_an_object(self):
        with pytest.raises(NormalizationError):
            decode_payload(["Bondi"])

    def test_current_variant(self, richmond_payload):
        decoded = decode_payload(richmond_payload)
        assert isinstance(decoded, CurrentPayload)
        assert decoded.state == "VIC"

    def test_legacy_variant(self, bondi_legacy_payload):
        assert isinstance(decode_payload(bondi_legacy_payload), LegacyPayload)

    def test_house_only_is_current(self):
        decoded = decode_payload({"suburb": "Bondi", "state": "NSW", "postcode": "2026",
                                  "house": {"bedrooms": {"2": {"buyPrice": 1500000, "rentPrice": 900}}}})
        assert isinstance(decoded, CurrentPayload)
        assert decoded.unit is None

    def test_malformed_current_is_rejected(self):
        with pytest.raises(NormalizationError) as exc:
            decode_payload({"suburb": "Bondi", "state": "NSW", "postcode": "2026", "house": "cheap"})
        assert not isinstance(exc.value, MissingFieldsError)

    def test_legacy_shaped_error_names_the_bad_field(self):
        with pytest.raises(NormalizationError) as exc:
            decode_payload({"suburb": "Bondi", "state": "NSW", "postcode": "2026", "isHot": "maybe"})
        assert "isHot" in str(exc.value) or "is_hot" in str(exc.value)
        assert "house/unit" not in str(exc.value)

    def test_unknown_state(self):
        with pytest.raises(NormalizationError, match="Unknown state"):
            decode_payload({"suburb": "Auckland", "state": "NZ", "postcode": "1010"})

    def test_numeric_postcode(self):
        assert decode_payload({"suburb": "Darwin City", "state": "nt", "postcode": 800}).postcode == "0800"


class TestPastedJson:
    def test_parses_object(self):
        assert parse_pasted_json('{"suburb": "Bondi"}') == {"suburb": "Bondi"}

    def test_invalid(self):
        with pytest.raises(InvalidJSONError, match="Invalid JSON"):
            parse_pasted_json("{suburb: Bondi")

    def test_not_an_object(self):
        with pytest.raises(InvalidJSONError):
            parse_pasted_json("[1, 2]")


class TestNormalize:
    def test_richmond_scenario(self, gazetteer, richmond_payload):
        record = normalize(gazetteer, richmond_payload)
        assert record.id == "richmond-3121-vic"
        assert record.state == StateCode.VIC
        assert record.house.yields["2"] == pytest.approx(4.0)
        assert round(record.house.yields["3"], 2) == 3.76
        assert record.house.yields["4+"] == 0
        assert record.distance_to_capital == pytest.approx(3.2, abs=0.2)
        assert record.demographics is None
        assert record.date_added == record.last_updated == "2024-01-01T00:00:00.000Z"

    def test_bondi_legacy_scenario(self, gazetteer, bondi_legacy_payload):
        record = normalize(gazetteer, bondi_legacy_payload)
        assert record.house.bedrooms["3"].buy_price == 2000000
        assert record.house.bedrooms["3"].rent_price == 1200
        assert round(record.house.yields["3"], 2) == 3.12
        for b in BEDROOM_BUCKETS:
            assert record.unit.bedrooms[b].buy_price == 0
            assert record.unit.bedrooms[b].rent_price == 0
            assert record.unit.yields[b] == 0

    def test_legacy_renormalize_is_idempotent(self, gazetteer, bondi_legacy_payload):
        first = normalize(gazetteer, bondi_legacy_payload)
        second = normalize(gazetteer, first.to_json(), now="2024-06-01T00:00:00.000Z")
        assert second.house == first.house
        assert second.unit == first.unit
        assert yields_consistent(second.house)
        assert second.id == first.id
        assert second.date_added == first.date_added

    def test_all_buckets_exist(self, gazetteer):
        record = normalize(gazetteer, {"suburb": "Bondi", "state": "NSW", "postcode": "2026",
                                       "house": {"bedrooms": {"3": {"buyPrice": 1, "rentPrice": 1}}}})
        for data in (record.house, record.unit):
            assert set(data.bedrooms) == set(BEDROOM_BUCKETS)
            assert set(data.yields) == set(BEDROOM_BUCKETS)

    def test_supplied_yield_accepted_provisionally(self, gazetteer, richmond_payload):
        richmond_payload["house"]["yield"] = {"2": 5.5}
        record = normalize(gazetteer, richmond_payload)
        assert record.house.yields["2"] == 5.5
        assert record.house.yields["3"] == pytest.approx(650 * 52 / 900000 * 100)
        assert not yields_consistent(record.house)

    def test_scraped_text_values(self, gazetteer):
        record = normalize(gazetteer, {"suburb": "Bondi", "state": "NSW", "postcode": "2026",
                                       "house": {"bedrooms": {"2": {"buyPrice": "$1.5m", "rentPrice": "$950 per week"},
                                                              "3": {"buyPrice": "Contact agent", "rentPrice": None}}}})
        assert record.house.bedrooms["2"].buy_price == pytest.approx(1500000)
        assert record.house.bedrooms["2"].rent_price == 950
        assert record.house.bedrooms["3"].buy_price == 0
        assert record.house.bedrooms["3"].rent_price == 0

    def test_manual_entry_values(self, gazetteer):
        record = normalize(gazetteer, {"suburb": "Bondi", "state": "NSW", "postcode": "2026",
                                       "house": {"bedrooms": {"2": {"buyPrice": ".95m", "rentPrice": "700"},
                                                              "3": {"buyPrice": "1,250K", "rentPrice": 800}}}})
        assert record.house.bedrooms["2"].buy_price == pytest.approx(950000)
        assert record.house.bedrooms["3"].buy_price == pytest.approx(1250000)

    def test_negative_numbers_clamped(self, gazetteer):
        record = normalize(gazetteer, {"suburb": "Bondi", "state": "NSW", "postcode": "2026",
                                       "bedrooms": {"2": {"salePrice": -5, "rent": 400}}})
        assert record.house.bedrooms["2"].buy_price == 0
        assert record.house.yields["2"] == 0

    def test_supplied_id_kept(self, gazetteer, richmond_payload):
        richmond_payload["id"] = "custom-id"
        assert normalize(gazetteer, richmond_payload).id == "custom-id"

    def test_prefetched_demographics_pass_through(self, gazetteer, richmond_payload):
        demo = {"medianIncome": 62400, "medianAge": 33, "mainLanguage": "English",
                "occupationType": "Professionals", "censusYear": 2021, "source": "abs-api"}
        record = normalize(gazetteer, {**richmond_payload, "demographics": demo})
        assert record.demographics == Demographics.model_validate(demo)

    def test_at_capital_distance_is_zero(self, gazetteer):
        record = normalize(gazetteer, {"suburb": "Melbourne", "state": "VIC", "postcode": "3000", "bedrooms": {}})
        assert record.distance_to_capital == 0.0


class TestEditSemantics:
    def test_date_added_never_overwritten(self, gazetteer, richmond_payload):
        first = normalize(gazetteer, richmond_payload, now="2024-01-01T00:00:00.000Z")
        payload = {**richmond_payload, "dateAdded": "1999-01-01T00:00:00.000Z"}
        second = normalize(gazetteer, payload, existing=first, now="2024-05-01T00:00:00.000Z")
        assert second.date_added == "2024-01-01T00:00:00.000Z"
        assert second.last_updated == "2024-05-01T00:00:00.000Z"

    def test_lookup_miss_retains_prior_distance(self, gazetteer):
        payload = {"suburb": "Unknownville", "state": "VIC", "postcode": "3999", "bedrooms": {}}
        existing = normalize(gazetteer, {**payload, "distanceToCapital": 42.5})
        assert existing.distance_to_capital == 42.5
        edited = normalize(gazetteer, payload, existing=existing)
        assert edited.distance_to_capital == 42.5

    def test_lookup_miss_without_history_is_zero(self, gazetteer):
        record = normalize(gazetteer, {"suburb": "Unknownville", "state": "VIC", "postcode": "3999"})
        assert record.distance_to_capital == 0

    def test_unsupplied_flags_inherit_existing(self, gazetteer, richmond_payload):
        existing = normalize(gazetteer, {**richmond_payload, "isHot": True, "nominatedFor": ["Hot 100"]})
        edited = normalize(gazetteer, richmond_payload, existing=existing)
        assert edited.is_hot is True
        assert edited.nominated_for == ["Hot 100"]
        cleared = normalize(gazetteer, {**richmond_payload, "isHot": False}, existing=existing)
        assert cleared.is_hot is False


def test_build_record_without_locality(richmond_payload):
    record = build_record(decode_payload(richmond_payload), locality=None, now="2024-01-01T00:00:00.000Z")
    assert record.distance_to_capital == 0


def test_build_record_locality_without_coordinates(richmond_payload):
    loc = Locality(name="Richmond", state="VIC", postcode="3121")
    record = build_record(decode_payload({**richmond_payload, "distanceToCapital": 3.1}), locality=loc)
    assert record.distance_to_capital == 3.1
