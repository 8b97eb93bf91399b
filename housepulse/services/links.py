"""Outbound research links for a suburb: realestate.com.au and Google Maps."""

from urllib.parse import quote

from ..schemas import SuburbLinks, SuburbRecord

REA_BASE = "https://www.realestate.com.au"
MAPS_SEARCH = "https://www.google.com/maps/search/?api=1&query="


def _component(value: str) -> str:
    # Same escaping as a browser's encodeURIComponent
    return quote(value, safe="!*'()")


def rea_suburb_url(suburb: str, state: str, postcode: str) -> str:
    slug = "-".join(suburb.strip().lower().split())
    return f"{REA_BASE}/{state.lower()}/{slug}-{postcode}/"


def rea_buy_url(suburb: str, state: str) -> str:
    return f"{REA_BASE}/buy/property-{_component(suburb)}-in-{state.lower()}/list-1"


def rea_rent_url(suburb: str, state: str) -> str:
    return f"{REA_BASE}/rent/property-{_component(suburb)}-in-{state.lower()}/list-1"


def google_maps_url(suburb: str, state: str, postcode: str) -> str:
    return MAPS_SEARCH + _component(f"{suburb}, {state}, {postcode}")


def suburb_links(record: SuburbRecord) -> SuburbLinks:
    state = record.state.value
    return SuburbLinks(
        realestate=rea_suburb_url(record.suburb, state, record.postcode),
        buy=rea_buy_url(record.suburb, state),
        rent=rea_rent_url(record.suburb, state),
        maps=google_maps_url(record.suburb, state, record.postcode),
    )
