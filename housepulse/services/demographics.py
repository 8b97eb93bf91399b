"""Census demographics for a postcode: ABS medians plus two static tables.

Policy: a successful result is cached for the life of the client and never
fetched again; a failure caches nothing, so the next call hits the network
again. No retries, no backoff.
"""

import asyncio
import logging
from typing import Optional

from ..core.cache import PermanentCache
from ..core.config import settings
from ..core.metrics import DEMOGRAPHICS_FETCHES
from ..data.base import CensusClient
from ..data.census_client import census_client
from ..data.lookup_tables import PostcodeLookup, language_lookup, occupation_lookup
from ..schemas import Demographics, DemographicsState, DemographicsStatus

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "Not available"


class DemographicsClient:
    def __init__(self, census: CensusClient, languages: PostcodeLookup, occupations: PostcodeLookup,
                 cache: PermanentCache | None = None, census_year: int = settings.CENSUS_YEAR):
        self.census = census
        self.languages = languages
        self.occupations = occupations
        self.cache = cache if cache is not None else PermanentCache()
        self.census_year = census_year

    @staticmethod
    def cache_key(postcode: str) -> str:
        return f"poa_{postcode}"

    def cached(self, postcode: str) -> Optional[Demographics]:
        return self.cache.get(self.cache_key(postcode))

    async def fetch(self, stat_area_code: Optional[str], postcode: str,
                    known_median_income: Optional[float] = None,
                    known_population: Optional[int] = None) -> Optional[Demographics]:
        """
        Demographics for `postcode`, or None when unavailable. Never raises.

        `stat_area_code`, `known_median_income` and `known_population` are
        accepted for callers holding gazetteer hints; queries go by postcode.
        """
        key = self.cache_key(postcode)
        hit = self.cache.get(key)
        if hit is not None:
            DEMOGRAPHICS_FETCHES.labels(outcome="cache_hit").inc()
            return hit

        try:
            medians, language, occupation = await asyncio.gather(
                self.census.medians(postcode),
                self.languages.get(postcode),
                self.occupations.get(postcode),
            )
            if not medians.complete:
                DEMOGRAPHICS_FETCHES.labels(outcome="incomplete").inc()
                logger.warning("Incomplete census medians for postcode %s", postcode)
                return None
            demographics = Demographics(
                median_income=medians.median_weekly_income * 52,
                median_age=medians.median_age,
                main_language=language or NOT_AVAILABLE,
                occupation_type=occupation or NOT_AVAILABLE,
                census_year=self.census_year,
                source=medians.source,
            )
        except Exception:
            DEMOGRAPHICS_FETCHES.labels(outcome="error").inc()
            logger.warning("Failed to fetch demographics for postcode %s", postcode, exc_info=True)
            return None

        self.cache.set(key, demographics)
        DEMOGRAPHICS_FETCHES.labels(outcome="success").inc()
        return demographics


class DemographicsTracker:
    """
    Tracks the enrichment state per postcode so callers can tell
    "never asked" from "in flight" from "failed" from "have data".

    Concurrent requests for the same postcode share one in-flight fetch.
    """
    def __init__(self, client: DemographicsClient):
        self.client = client
        self._failed: set[str] = set()
        self._inflight: dict[str, asyncio.Task] = {}

    def state(self, postcode: str) -> DemographicsState:
        data = self.client.cached(postcode)
        if data is not None:
            return DemographicsState.available(data)
        if postcode in self._inflight:
            return DemographicsState(status=DemographicsStatus.PENDING)
        if postcode in self._failed:
            return DemographicsState(status=DemographicsStatus.FAILED)
        return DemographicsState()

    async def resolve(self, postcode: str, stat_area_code: Optional[str] = None,
                      known_median_income: Optional[float] = None,
                      known_population: Optional[int] = None) -> DemographicsState:
        task = self._inflight.get(postcode)
        if task is None:
            task = asyncio.ensure_future(self.client.fetch(
                stat_area_code, postcode, known_median_income, known_population,
            ))
            self._inflight[postcode] = task
            task.add_done_callback(lambda _t: self._inflight.pop(postcode, None))
        data = await asyncio.shield(task)
        if data is None:
            self._failed.add(postcode)
            return DemographicsState(status=DemographicsStatus.FAILED)
        self._failed.discard(postcode)
        return DemographicsState.available(data)


def demographics_client() -> DemographicsClient:
    return DemographicsClient(census_client(), language_lookup(), occupation_lookup())
