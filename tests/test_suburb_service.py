import asyncio

import pytest

from housepulse.core.errors import InvalidJSONError, MissingFieldsError, RecordNotFoundError
from housepulse.data.census_client import HttpCensus
from housepulse.data.store import InMemoryStore
from housepulse.schemas import DemographicsStatus, FilterCriteria, SortDirection, SortField, StateCode
from housepulse.services.suburb_service import build_service


def run(coro):
    return asyncio.run(coro)


class TestSave:
    def test_upsert_by_identity(self, service, store, richmond_payload):
        first = run(service.save(richmond_payload))
        second = run(service.save({**richmond_payload, "suburb": "  richmond ", "state": "VIC"}))
        assert first.id == second.id == "richmond-3121-vic"
        assert len(run(store.list())) == 1
        assert second.date_added == "2024-01-01T00:00:00.000Z"
        assert second.last_updated == "2024-02-01T00:00:00.000Z"

    def test_edit_keeps_hot_flag(self, service, richmond_payload):
        run(service.save({**richmond_payload, "isHot": True}))
        assert run(service.save(richmond_payload)).is_hot is True

    def test_save_pasted(self, service):
        record = run(service.save_pasted('{"suburb": "Bondi", "state": "NSW", "postcode": "2026", "bedrooms": {}}'))
        assert record.id == "bondi-2026-nsw"

    def test_save_pasted_invalid(self, service, store):
        with pytest.raises(InvalidJSONError):
            run(service.save_pasted("not json"))
        assert run(store.list()) == []

    def test_missing_fields_not_stored(self, service, store):
        with pytest.raises(MissingFieldsError):
            run(service.save({"suburb": "Bondi"}))
        assert run(store.list()) == []


class TestQueries:
    def test_get_missing(self, service):
        with pytest.raises(RecordNotFoundError):
            run(service.get("nope"))

    def test_list_filters_and_sorts(self, service, richmond_payload, bondi_legacy_payload):
        run(service.save(richmond_payload))
        run(service.save(bondi_legacy_payload))
        names = [r.suburb for r in run(service.list_records(sort=SortField.YIELD, direction=SortDirection.DESC))]
        assert names == ["Richmond", "Bondi"]
        nsw = run(service.list_records(FilterCriteria(states={StateCode.NSW})))
        assert [r.suburb for r in nsw] == ["Bondi"]

    def test_etag_changes_with_content(self, service, richmond_payload):
        run(service.save(richmond_payload))
        payload, etag = run(service.list_with_etag())
        assert payload[0]["id"] == "richmond-3121-vic"
        assert run(service.list_with_etag())[1] == etag
        run(service.set_hot("richmond-3121-vic", True))
        assert run(service.list_with_etag())[1] != etag

    def test_export(self, service, richmond_payload):
        run(service.save(richmond_payload))
        lines = run(service.export()).splitlines()
        assert len(lines) == 1 + 6


class TestMutations:
    def test_set_hot(self, service, richmond_payload):
        run(service.save(richmond_payload))
        updated = run(service.set_hot("richmond-3121-vic", True))
        assert updated.is_hot is True
        assert updated.last_updated == "2024-02-01T00:00:00.000Z"
        assert run(service.get("richmond-3121-vic")).is_hot is True

    def test_set_hot_missing(self, service):
        with pytest.raises(RecordNotFoundError):
            run(service.set_hot("nope", True))

    def test_delete_and_clear(self, service, store, richmond_payload, bondi_legacy_payload):
        run(service.save(richmond_payload))
        run(service.save(bondi_legacy_payload))
        run(service.delete("richmond-3121-vic"))
        assert [r.id for r in run(store.list())] == ["bondi-2026-nsw"]
        run(service.clear())
        assert run(store.list()) == []


class TestEnrich:
    def test_success_persists(self, service, census, richmond_payload):
        run(service.save(richmond_payload))
        assert run(service.demographics_state("richmond-3121-vic")).status == DemographicsStatus.NOT_REQUESTED

        state = run(service.enrich("richmond-3121-vic"))
        assert state.status == DemographicsStatus.AVAILABLE
        assert state.data.median_income == 62400

        stored = run(service.get("richmond-3121-vic"))
        assert stored.demographics == state.data
        assert stored.last_updated == "2024-02-01T00:00:00.000Z"

    def test_already_enriched_never_refetched(self, service, census, richmond_payload):
        run(service.save(richmond_payload))
        run(service.enrich("richmond-3121-vic"))
        again = run(service.enrich("richmond-3121-vic"))
        assert again.status == DemographicsStatus.AVAILABLE
        assert census.calls == ["3121"]
        assert run(service.demographics_state("richmond-3121-vic")).status == DemographicsStatus.AVAILABLE

    def test_gazetteer_miss_skips_fetch(self, service, census):
        run(service.save({"suburb": "Unknownville", "state": "VIC", "postcode": "3999"}))
        state = run(service.enrich("unknownville-3999-vic"))
        assert state.status == DemographicsStatus.NOT_REQUESTED
        assert census.calls == []

    def test_failure_is_reported_and_not_stored(self, service, census, bondi_legacy_payload):
        run(service.save(bondi_legacy_payload))
        state = run(service.enrich("bondi-2026-nsw"))
        assert state.status == DemographicsStatus.FAILED
        assert run(service.get("bondi-2026-nsw")).demographics is None
        assert run(service.demographics_state("bondi-2026-nsw")).status == DemographicsStatus.FAILED

        # Failures are retried on the next request
        run(service.enrich("bondi-2026-nsw"))
        assert census.calls == ["2026", "2026"]

    def test_missing_record(self, service):
        with pytest.raises(RecordNotFoundError):
            run(service.enrich("nope"))


def test_default_service_queries_abs():
    svc = build_service(store=InMemoryStore())
    assert isinstance(svc.demographics.client.census, HttpCensus)


class TestDerived:
    def test_recompute_yields_replaces_supplied(self, service, richmond_payload):
        richmond_payload["house"]["yield"] = {"2": 5.5}
        run(service.save(richmond_payload))
        updated = run(service.recompute_yields("richmond-3121-vic"))
        assert updated.house.yields["2"] == pytest.approx(4.0)
        assert updated.last_updated == "2024-02-01T00:00:00.000Z"
        assert run(service.get("richmond-3121-vic")).house.yields["2"] == pytest.approx(4.0)

    def test_recompute_yields_missing(self, service):
        with pytest.raises(RecordNotFoundError):
            run(service.recompute_yields("nope"))

    def test_links(self, service, richmond_payload):
        run(service.save(richmond_payload))
        links = run(service.links("richmond-3121-vic"))
        assert links.buy == "https://www.realestate.com.au/buy/property-Richmond-in-vic/list-1"
