import json
import logging
from typing import Any, Callable, List, Optional

from ..core.errors import RecordNotFoundError
from ..core.utils import utc_now_iso, weak_etag
from ..data.base import RecordStore
from ..data.gazetteer import GazetteerLoader
from ..data.store import record_store
from ..schemas import (
    DemographicsState,
    FilterCriteria,
    SortDirection,
    SortField,
    SuburbLinks,
    SuburbRecord,
)
from .demographics import DemographicsTracker, demographics_client
from .calculations import recompute_yields
from .export import export_csv
from .filters import apply_view
from .links import suburb_links
from .normalizer import SchemaNormalizer, decode_payload, parse_pasted_json

logger = logging.getLogger(__name__)


class SuburbService:
    """
    Orchestrates:
      raw payload → normalize (gazetteer + distance + yields) → store
      record → (on demand) demographics backfill → store
      store → filter/sort → list or CSV
    Store failures propagate; enrichment failures become a FAILED state.
    """
    def __init__(self, store: RecordStore, gazetteer: GazetteerLoader,
                 demographics: DemographicsTracker, clock: Callable[[], str] = utc_now_iso):
        self.store = store
        self.gazetteer = gazetteer
        self.demographics = demographics
        self.clock = clock
        self.normalizer = SchemaNormalizer(gazetteer, clock=clock)

    # ----- Queries -----

    async def get(self, record_id: str) -> SuburbRecord:
        record = await self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    async def list_records(self, criteria: Optional[FilterCriteria] = None,
                           sort: Optional[SortField] = None,
                           direction: SortDirection = SortDirection.ASC) -> List[SuburbRecord]:
        return apply_view(await self.store.list(), criteria, sort, direction)

    async def list_with_etag(self, criteria: Optional[FilterCriteria] = None,
                             sort: Optional[SortField] = None,
                             direction: SortDirection = SortDirection.ASC) -> tuple[list[dict], str]:
        payload = [r.to_json() for r in await self.list_records(criteria, sort, direction)]
        etag = weak_etag(json.dumps(payload, separators=(',', ':')).encode("utf-8"))
        return payload, etag

    async def links(self, record_id: str) -> SuburbLinks:
        return suburb_links(await self.get(record_id))

    async def export(self, criteria: Optional[FilterCriteria] = None,
                     sort: Optional[SortField] = None,
                     direction: SortDirection = SortDirection.ASC) -> str:
        return export_csv(await self.list_records(criteria, sort, direction))

    # ----- Mutations -----

    async def save(self, payload: Any) -> SuburbRecord:
        """Normalize and upsert. Same (suburb, state, postcode) → same record."""
        decoded = decode_payload(payload)
        existing = await self.store.get(decoded.record_id)
        record = await self.normalizer.normalize(payload, existing=existing)
        await self.store.upsert(record)
        return record

    async def save_pasted(self, text: str) -> SuburbRecord:
        return await self.save(parse_pasted_json(text))

    async def set_hot(self, record_id: str, is_hot: bool) -> SuburbRecord:
        record = await self.get(record_id)
        updated = record.model_copy(update={"is_hot": is_hot, "last_updated": self.clock()})
        await self.store.upsert(updated)
        return updated

    async def recompute_yields(self, record_id: str) -> SuburbRecord:
        """Replace any supplied yields with ones derived from the stored prices."""
        record = await self.get(record_id)
        updated = record.model_copy(update={
            "house": recompute_yields(record.house),
            "unit": recompute_yields(record.unit),
            "last_updated": self.clock(),
        })
        await self.store.upsert(updated)
        return updated

    async def delete(self, record_id: str) -> None:
        await self.store.remove(record_id)

    async def clear(self) -> None:
        await self.store.clear()

    # ----- Demographics -----

    async def demographics_state(self, record_id: str) -> DemographicsState:
        record = await self.get(record_id)
        if record.demographics is not None:
            return DemographicsState.available(record.demographics)
        return self.demographics.state(record.postcode)

    async def enrich(self, record_id: str) -> DemographicsState:
        """
        Backfill demographics for a stored record. Records already carrying
        data are never re-fetched; a gazetteer miss means no fetch at all.
        """
        record = await self.get(record_id)
        if record.demographics is not None:
            return DemographicsState.available(record.demographics)

        locality = await self.gazetteer.find_details(record.suburb, record.state.value, record.postcode)
        if locality is None:
            logger.info("Skipping demographics for %s: no gazetteer match", record.id)
            return self.demographics.state(record.postcode)

        state = await self.demographics.resolve(
            record.postcode,
            stat_area_code=locality.stat_area_code,
            known_median_income=locality.median_income,
            known_population=locality.population,
        )
        if state.data is not None:
            # Re-read: the record may have changed while the fetch was in flight
            current = await self.store.get(record_id)
            if current is not None and current.demographics is None:
                await self.store.upsert(current.model_copy(update={
                    "demographics": state.data,
                    "last_updated": self.clock(),
                }))
        return state


def build_service(store: RecordStore | None = None, gazetteer: GazetteerLoader | None = None,
                  demographics: DemographicsTracker | None = None) -> SuburbService:
    """Wire the default collaborators from settings."""
    return SuburbService(
        store=store or record_store(),
        gazetteer=gazetteer or GazetteerLoader(),
        demographics=demographics or DemographicsTracker(demographics_client()),
    )
