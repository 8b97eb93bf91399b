"""Derived metrics: rental yield and distance to the state capital."""

import math
from typing import Mapping, Optional

from ..schemas import BEDROOM_BUCKETS, BedroomPrice, PropertyTypeData

EARTH_RADIUS_KM = 6371

# (lat, lng) of each state/territory capital
STATE_CAPITALS: dict[str, tuple[float, float]] = {
    "NSW": (-33.8688, 151.2093),   # Sydney
    "VIC": (-37.8136, 144.9631),   # Melbourne
    "QLD": (-27.4698, 153.0251),   # Brisbane
    "WA": (-31.9505, 115.8605),    # Perth
    "SA": (-34.9285, 138.6007),    # Adelaide
    "TAS": (-42.8821, 147.3272),   # Hobart
    "ACT": (-35.2809, 149.1300),   # Canberra
    "NT": (-12.4634, 130.8456),    # Darwin
}


def rental_yield(weekly_rent: float, buy_price: float) -> float:
    """Gross annual yield in percent. Unpriced (buy_price <= 0) → 0."""
    if buy_price <= 0:
        return 0.0
    return (weekly_rent * 52 / buy_price) * 100


def bedroom_yields(bedrooms: Mapping[str, BedroomPrice]) -> dict[str, float]:
    out = {}
    for b in BEDROOM_BUCKETS:
        price = bedrooms.get(b) or BedroomPrice()
        out[b] = rental_yield(price.rent_price, price.buy_price)
    return out


def recompute_yields(data: PropertyTypeData) -> PropertyTypeData:
    return data.model_copy(update={"yields": bedroom_yields(data.bedrooms)})


def yields_consistent(data: PropertyTypeData, tolerance: float = 1e-9) -> bool:
    """True when the stored yield map equals the one derived from prices."""
    expected = bedroom_yields(data.bedrooms)
    return all(abs(data.yields.get(b, 0.0) - expected[b]) <= tolerance for b in BEDROOM_BUCKETS)


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def round_km(km: float) -> float:
    """One decimal, halves rounded up (2.25 → 2.3)."""
    return math.floor(km * 10 + 0.5) / 10


def distance_to_capital(state: str, lat: Optional[float], lng: Optional[float]) -> Optional[float]:
    """
    Great-circle km to the state's capital, 1 decimal.
    None means unknown (no coordinates or unrecognised state); 0.0 means
    co-located with the capital.
    """
    capital = STATE_CAPITALS.get((state or "").upper())
    if capital is None or lat is None or lng is None:
        return None
    return round_km(haversine_km(lat, lng, capital[0], capital[1]))
