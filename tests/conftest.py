import json

import pytest

from housepulse.data.base import CensusMedians
from housepulse.data.gazetteer import GazetteerLoader
from housepulse.data.lookup_tables import PostcodeLookup
from housepulse.data.store import InMemoryStore
from housepulse.services.demographics import DemographicsClient, DemographicsTracker
from housepulse.services.suburb_service import SuburbService

GAZETTEER = [
    {"suburb": "Richmond", "state": "vic", "postcode": "3121", "ssc_code": "SAL22170",
     "lat": -37.8230, "lng": 144.9980, "population": 28587, "median_income": 79300},
    {"suburb": "Richmond", "state": "NSW", "postcode": "2753", "lat": -33.5998, "lng": 150.7514},
    {"suburb": "Bondi", "state": "NSW", "postcode": "2026", "lat": -33.8932, "lng": 151.2628},
    {"name": "Melbourne", "state": "VIC", "postcode": 3000, "lat": -37.8136, "lng": 144.9631},
    {"suburb": "Darwin City", "state": "NT", "postcode": 800, "lat": -12.4634, "lng": 130.8456},
    {"suburb": "Nowhere", "state": "SA", "postcode": "5999"},
]


class StubCensus:
    """Counts calls; returns canned medians or raises."""
    def __init__(self, medians=None, error=None):
        self.medians_by_postcode = medians or {}
        self.error = error
        self.calls = []

    async def medians(self, postcode):
        self.calls.append(postcode)
        if self.error is not None:
            raise self.error
        return self.medians_by_postcode.get(postcode, CensusMedians())


class FixedClock:
    def __init__(self, *stamps):
        self.stamps = list(stamps) or ["2024-01-01T00:00:00.000Z"]

    def __call__(self):
        if len(self.stamps) > 1:
            return self.stamps.pop(0)
        return self.stamps[0]


@pytest.fixture
def gazetteer_path(tmp_path):
    path = tmp_path / "suburbs.json"
    path.write_text(json.dumps({"data": GAZETTEER}), encoding="utf-8")
    return path


@pytest.fixture
def gazetteer(gazetteer_path):
    return GazetteerLoader(str(gazetteer_path))


@pytest.fixture
def lookup_paths(tmp_path):
    lang = tmp_path / "census-language.json"
    occ = tmp_path / "census-occupation.json"
    lang.write_text(json.dumps({"3121": "English", "3000": "Mandarin"}), encoding="utf-8")
    occ.write_text(json.dumps({"3121": "Professionals"}), encoding="utf-8")
    return lang, occ


@pytest.fixture
def census():
    return StubCensus({
        "3121": CensusMedians(median_age=33, median_weekly_income=1200),
        "3000": CensusMedians(median_age=28, median_weekly_income=700),
        "2026": CensusMedians(median_age=35, median_weekly_income=None),
    })


@pytest.fixture
def demographics_client(census, lookup_paths):
    lang, occ = lookup_paths
    return DemographicsClient(census, PostcodeLookup(str(lang)), PostcodeLookup(str(occ)), census_year=2021)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return FixedClock("2024-01-01T00:00:00.000Z", "2024-02-01T00:00:00.000Z", "2024-03-01T00:00:00.000Z")


@pytest.fixture
def service(store, gazetteer, demographics_client, clock):
    return SuburbService(store, gazetteer, DemographicsTracker(demographics_client), clock=clock)


def zero_property():
    return {"bedrooms": {b: {"buyPrice": 0, "rentPrice": 0} for b in ("2", "3", "4+")}}


@pytest.fixture
def richmond_payload():
    return {
        "suburb": "Richmond",
        "state": "vic",
        "postcode": "3121",
        "house": {"bedrooms": {
            "2": {"buyPrice": 650000, "rentPrice": 500},
            "3": {"buyPrice": 900000, "rentPrice": 650},
            "4+": {"buyPrice": 0, "rentPrice": 0},
        }},
        "unit": zero_property(),
    }


@pytest.fixture
def bondi_legacy_payload():
    return {
        "suburb": "Bondi",
        "state": "NSW",
        "postcode": "2026",
        "bedrooms": {"3": {"salePrice": 2000000, "rent": 1200}},
    }
