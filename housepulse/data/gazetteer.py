"""Suburb gazetteer: the static reference list of known localities.

The bundled dataset has gone through several shapes over time, so each raw
entry is normalized field by field before it becomes a :class:`Locality`.
"""

import asyncio
import logging
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from ..core.config import settings
from ..core.utils import coerce_postcode
from ..schemas import Locality
from .sources import read_json_source

logger = logging.getLogger(__name__)

# Equivalent source field names, first present wins
NAME_FIELDS = ("suburb", "name", "locality")
POSTCODE_FIELDS = ("postcode", "zip")
STAT_AREA_FIELDS = ("statAreaCode", "stat_area_code", "ssc_code", "sscCode", "sal_code", "sa2_code")
LAT_FIELDS = ("lat", "latitude")
LNG_FIELDS = ("lng", "lon", "long", "longitude")
POPULATION_FIELDS = ("population",)
INCOME_FIELDS = ("medianIncome", "median_income")


def _first(item: dict, fields: Iterable[str]) -> Any:
    for f in fields:
        value = item.get(f)
        if value is not None and value != "":
            return value
    return None


def normalize_entry(item: dict) -> Optional[Locality]:
    """Raw gazetteer entry → Locality, or None when name/state are unusable."""
    name = _first(item, NAME_FIELDS)
    state = item.get("state")
    if not name or not state:
        return None
    postcode = _first(item, POSTCODE_FIELDS)
    stat_area = _first(item, STAT_AREA_FIELDS)
    try:
        return Locality(
            name=str(name).strip(),
            state=str(state).strip().upper(),
            postcode=coerce_postcode(postcode) if postcode is not None else "",
            stat_area_code=str(stat_area) if stat_area is not None else None,
            lat=_first(item, LAT_FIELDS),
            lng=_first(item, LNG_FIELDS),
            population=_first(item, POPULATION_FIELDS),
            median_income=_first(item, INCOME_FIELDS),
        )
    except (ValidationError, TypeError):
        return None


class GazetteerLoader:
    """
    Loads the gazetteer once per instance and answers exact lookups.

    A successful load is memoized; a failed one returns [] and is not, so the
    next call tries again.
    """
    def __init__(self, source: str = settings.GAZETTEER_SOURCE):
        self.source = source
        self._localities: List[Locality] | None = None
        self._index: dict[tuple[str, str, str], Locality] = {}
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._localities is not None

    async def load(self) -> List[Locality]:
        if self._localities is not None:
            return self._localities
        async with self._lock:
            if self._localities is not None:
                return self._localities
            try:
                raw = await read_json_source(self.source)
                entries = raw.get("data", raw) if isinstance(raw, dict) else raw
                localities = [loc for loc in map(normalize_entry, entries) if loc is not None]
            except Exception:
                logger.warning("Failed to load gazetteer from %s", self.source, exc_info=True)
                return []
            skipped = len(entries) - len(localities)
            if skipped:
                logger.warning("Skipped %d unusable gazetteer entries", skipped)
            self._index = {}
            for loc in localities:
                # Duplicate keys: first entry wins
                self._index.setdefault(loc.key, loc)
            self._localities = localities
            logger.info("Loaded %d localities from %s", len(localities), self.source)
            return localities

    async def find_details(self, name: str, state: str, postcode: str) -> Optional[Locality]:
        """Exact match on (case-insensitive name, state, postcode). No fuzzing."""
        await self.load()
        key = (name.strip().lower(), state.strip().upper(), coerce_postcode(postcode))
        return self._index.get(key)

    async def by_state(self, state: str) -> List[Locality]:
        state = state.upper()
        return [loc for loc in await self.load() if loc.state == state]

    async def search(self, query: str, state: str | None = None, limit: int = 20) -> List[Locality]:
        """Substring match on name, prefix match on postcode."""
        q = query.strip().lower()
        if not q:
            return []
        out: List[Locality] = []
        for loc in await self.load():
            if state and loc.state != state.upper():
                continue
            if q in loc.name.lower() or loc.postcode.startswith(q):
                out.append(loc)
                if len(out) >= limit:
                    break
        return out

    def reset(self) -> None:
        self._localities = None
        self._index = {}
