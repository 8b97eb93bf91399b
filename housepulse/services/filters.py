"""Filtering and ordering of suburb records for display. Pure, no I/O."""

import locale
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..schemas import (
    BEDROOM_BUCKETS,
    PROPERTY_TYPES,
    FilterCriteria,
    SortDirection,
    SortField,
    SuburbRecord,
)


@dataclass(frozen=True)
class Combination:
    """One priced (property type, bedroom bucket) cell of a record."""
    property_type: str
    bedrooms: str
    buy_price: float
    rent_price: float
    yield_pct: float


def surfaced_combinations(record: SuburbRecord, criteria: FilterCriteria) -> List[Combination]:
    """
    Priced combinations within the criteria's type/bedroom restriction that
    satisfy its price and yield bounds.
    """
    types = [t for t in PROPERTY_TYPES if not criteria.property_types or t in criteria.property_types]
    beds = [b for b in BEDROOM_BUCKETS if not criteria.bedrooms or b in criteria.bedrooms]
    out = []
    for t in types:
        data = record.property_type(t)
        for b in beds:
            price = data.price(b)
            yield_pct = data.yields.get(b, 0.0)
            if not price.is_priced:
                continue
            if criteria.max_price is not None and price.buy_price > criteria.max_price:
                continue
            if criteria.min_yield is not None and yield_pct < criteria.min_yield:
                continue
            out.append(Combination(t, b, price.buy_price, price.rent_price, yield_pct))
    return out


def matches(record: SuburbRecord, criteria: FilterCriteria) -> bool:
    if criteria.states and record.state not in criteria.states:
        return False
    if criteria.hot_only and not record.is_hot:
        return False
    if not criteria.requires_priced_combination:
        # Unfiltered, or hotOnly alone: hot-but-unpriced leads still surface
        return True
    return bool(surfaced_combinations(record, criteria))


def filter_records(records: Iterable[SuburbRecord], criteria: Optional[FilterCriteria] = None) -> List[SuburbRecord]:
    criteria = criteria or FilterCriteria()
    return [r for r in records if matches(r, criteria)]


def best_combination(record: SuburbRecord, criteria: Optional[FilterCriteria] = None) -> Optional[Combination]:
    """Highest-yield surfaced combination; first in type/bed order on ties."""
    best = None
    for combo in surfaced_combinations(record, criteria or FilterCriteria()):
        if best is None or combo.yield_pct > best.yield_pct:
            best = combo
    return best


def sort_records(records: Iterable[SuburbRecord], field: SortField = SortField.SUBURB,
                 direction: SortDirection = SortDirection.ASC,
                 criteria: Optional[FilterCriteria] = None) -> List[SuburbRecord]:
    """
    Stable sort by suburb name, best yield, or the best combination's price.
    Records with nothing surfaced sort as yield 0 / price 0.
    """
    criteria = criteria or FilterCriteria()

    def key(r: SuburbRecord):
        if field == SortField.SUBURB:
            # Process LC_COLLATE; the default "C" locale is code-point order
            return locale.strxfrm(r.suburb)
        combo = best_combination(r, criteria)
        if combo is None:
            return 0.0
        return combo.yield_pct if field == SortField.YIELD else combo.buy_price

    return sorted(records, key=key, reverse=direction == SortDirection.DESC)


def apply_view(records: Iterable[SuburbRecord], criteria: Optional[FilterCriteria] = None,
               field: Optional[SortField] = None,
               direction: SortDirection = SortDirection.ASC) -> List[SuburbRecord]:
    filtered = filter_records(records, criteria)
    if field is None:
        return filtered
    return sort_records(filtered, field, direction, criteria)
