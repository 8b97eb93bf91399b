from typing import Any, Optional
from .base import CensusClient, CensusMedians
from ..core.config import settings
from ..core.utils import fnv1a_32, seeded_rand
import httpx

# Codes in the first series dimension of C21_G02_POA
MEDIAN_AGE_CODE = "1"
MEDIAN_WEEKLY_INCOME_CODE = "2"

class MockCensus(CensusClient):
    """
    Deterministic stand-in for the ABS API: same postcode, same medians.
    Opt-in only (CENSUS_PROVIDER=mock); results are tagged "fallback".
    """
    async def medians(self, postcode: str) -> CensusMedians:
        seed = fnv1a_32(f"poa:{postcode}")
        age = 30 + round(seeded_rand(seed, 1)[0] * 20)             # 30..50
        weekly = 600 + round(seeded_rand(seed + 1, 1)[0] * 900)    # $600..$1500
        return CensusMedians(median_age=age, median_weekly_income=weekly, source="fallback")

def parse_sdmx_value(payload: dict, metric_id: str) -> Optional[float]:
    """
    Pull one observation out of an SDMX-JSON data message.

    Series keys look like "0:0:0:0"; the first index points into the first
    series dimension (the metric). Returns None when the metric or its
    observation is absent.
    """
    data = payload.get("data") or {}
    data_sets = data.get("dataSets") or []
    structures = data.get("structures") or []
    if not data_sets or not structures:
        return None
    series = data_sets[0].get("series")
    if not series:
        return None
    dimensions = (structures[0].get("dimensions") or {}).get("series") or []
    if not dimensions:
        return None
    values = dimensions[0].get("values") or []
    target = next((i for i, v in enumerate(values) if v.get("id") == metric_id), None)
    if target is None:
        return None
    for key, series_data in series.items():
        if int(key.split(":")[0]) != target:
            continue
        observations = list((series_data.get("observations") or {}).values())
        if observations and observations[0]:
            value: Any = observations[0][0]
            return float(value) if value is not None else None
        return None
    return None

class HttpCensus(CensusClient):
    """
    ABS Data API (SDMX) client for Census 2021 G02 medians by postal area.
    Raises on HTTP/transport errors; the demographics layer degrades.
    """
    def __init__(self, base_url: str, timeout: float = settings.CENSUS_TIMEOUT_SECONDS,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def medians(self, postcode: str) -> CensusMedians:
        url = f"{self.base_url}/C21_G02_POA/{MEDIAN_AGE_CODE}+{MEDIAN_WEEKLY_INCOME_CODE}.{postcode}...2021"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.get(
                url,
                params={"format": "jsondata"},
                headers={"Accept": "application/vnd.sdmx.data+json"},
            )
            r.raise_for_status()
            j = r.json()
            return CensusMedians(
                median_age=parse_sdmx_value(j, MEDIAN_AGE_CODE),
                median_weekly_income=parse_sdmx_value(j, MEDIAN_WEEKLY_INCOME_CODE),
            )

def census_client() -> CensusClient:
    """
    ABS over HTTP unless the mock is explicitly requested.
    """
    if settings.CENSUS_PROVIDER == "mock":
        return MockCensus()
    return HttpCensus(settings.CENSUS_BASE_URL)
