"""Raw suburb payloads → canonical :class:`SuburbRecord`.

Input arrives in three shapes: manual form fields, JSON pasted from the
scraping bookmarklet, and existing records being edited. They decode into one
of two tagged variants:

* ``current``: carries ``house`` and/or ``unit`` property blocks;
* ``legacy``: one flat ``bedrooms`` map of ``salePrice``/``rent`` that predates
  the house/unit split. It always converts to house pricing with an empty unit.

Current decode is attempted first; a payload that fits neither variant is a
validation error.
"""

import json
import logging
from typing import Any, Callable, Literal, Mapping, Optional, Union

from pydantic import Field, ValidationError, field_validator, model_validator

from ..core.errors import InvalidJSONError, MissingFieldsError, NormalizationError
from ..core.metrics import NORMALIZATION_FAILURES
from ..core.utils import (
    coerce_postcode,
    parse_price_string,
    parse_price_text,
    parse_rent_text,
    suburb_id,
    utc_now_iso,
)
from ..data.gazetteer import GazetteerLoader
from ..schemas import (
    BEDROOM_BUCKETS,
    BedroomPrice,
    CamelModel,
    Demographics,
    Locality,
    PropertyTypeData,
    StateCode,
    SuburbRecord,
    best_effort_number,
)
from .calculations import bedroom_yields, distance_to_capital

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("suburb", "state", "postcode")


# ----- Decoded payload variants -----

class _PayloadBase(CamelModel):
    id: Optional[str] = None
    suburb: str
    state: str
    postcode: str
    is_hot: bool = False
    nominated_for: list[str] = Field(default_factory=list)
    distance_to_capital: Optional[float] = None
    demographics: Optional[Demographics] = None
    date_added: Optional[str] = None

    @field_validator("suburb", "state", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("state", mode="after")
    @classmethod
    def _upper_state(cls, v: str) -> str:
        return v.upper()

    @field_validator("postcode", mode="before")
    @classmethod
    def _postcode(cls, v: Any) -> str:
        return coerce_postcode(v)

    @field_validator("is_hot", mode="before")
    @classmethod
    def _hot(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("nominated_for", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(t).strip() for t in v if t is not None and str(t).strip()]

    @field_validator("distance_to_capital", mode="before")
    @classmethod
    def _distance(cls, v: Any) -> Any:
        try:
            return float(v) if v not in (None, "") else None
        except (TypeError, ValueError):
            return None

    @property
    def record_id(self) -> str:
        return self.id or suburb_id(self.suburb, self.state, self.postcode)


class RawPropertyData(CamelModel):
    """A house/unit block as supplied; yields are provisional."""
    bedrooms: dict[str, BedroomPrice] = Field(default_factory=dict)
    yields: Optional[dict[str, Optional[float]]] = Field(default=None, alias="yield")

    @field_validator("bedrooms", mode="before")
    @classmethod
    def _known_buckets(cls, v: Any) -> Any:
        if not isinstance(v, Mapping):
            return {}
        return {b: v[b] for b in BEDROOM_BUCKETS if isinstance(v.get(b), Mapping)}

    @field_validator("yields", mode="before")
    @classmethod
    def _numeric_yields(cls, v: Any) -> Any:
        if not isinstance(v, Mapping):
            return None
        out = {}
        for b in BEDROOM_BUCKETS:
            try:
                out[b] = float(v[b]) if v.get(b) is not None else None
            except (TypeError, ValueError):
                out[b] = None
        return out


class CurrentPayload(_PayloadBase):
    kind: Literal["current"] = "current"
    house: Optional[RawPropertyData] = None
    unit: Optional[RawPropertyData] = None

    @model_validator(mode="before")
    @classmethod
    def _has_property_blocks(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "house" not in data and "unit" not in data:
            raise ValueError("no house/unit blocks")
        return data


class LegacyBedroom(CamelModel):
    sale_price: float = 0
    rent: float = 0

    @field_validator("sale_price", mode="before")
    @classmethod
    def _sale(cls, v: Any) -> float:
        return best_effort_number(v, parse_price_text, parse_price_string)

    @field_validator("rent", mode="before")
    @classmethod
    def _rent(cls, v: Any) -> float:
        return best_effort_number(v, parse_rent_text)


class LegacyPayload(_PayloadBase):
    kind: Literal["legacy"] = "legacy"
    bedrooms: dict[str, LegacyBedroom] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _flat_shape(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and ("house" in data or "unit" in data):
            raise ValueError("house/unit blocks belong to the current schema")
        return data

    @field_validator("bedrooms", mode="before")
    @classmethod
    def _known_buckets(cls, v: Any) -> Any:
        if not isinstance(v, Mapping):
            return {}
        return {b: v[b] for b in BEDROOM_BUCKETS if isinstance(v.get(b), Mapping)}


DecodedPayload = Union[CurrentPayload, LegacyPayload]


# ----- Decode -----

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_pasted_json(text: str) -> dict:
    """Bookmarklet output pasted as text → payload dict."""
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        NORMALIZATION_FAILURES.labels(reason="invalid_json").inc()
        raise InvalidJSONError() from exc
    if not isinstance(data, dict):
        NORMALIZATION_FAILURES.labels(reason="invalid_json").inc()
        raise InvalidJSONError("expected an object")
    return data


def decode_payload(payload: Any) -> DecodedPayload:
    if not isinstance(payload, Mapping):
        NORMALIZATION_FAILURES.labels(reason="invalid_payload").inc()
        raise NormalizationError("Payload must be a JSON object")

    missing = [f for f in REQUIRED_FIELDS if _is_blank(payload.get(f))]
    if missing:
        NORMALIZATION_FAILURES.labels(reason="missing_fields").inc()
        raise MissingFieldsError(missing)

    errors = []
    for variant in (CurrentPayload, LegacyPayload):
        try:
            decoded = variant.model_validate(payload)
            break
        except ValidationError as exc:
            errors.append(exc)
    else:
        NORMALIZATION_FAILURES.labels(reason="invalid_payload").inc()
        # Report the variant the payload was shaped for
        shaped_legacy = "house" not in payload and "unit" not in payload
        first = errors[1 if shaped_legacy else 0].errors()[0]
        loc = ".".join(str(p) for p in first["loc"]) or "payload"
        raise NormalizationError(f"Invalid suburb payload: {loc}: {first['msg']}")

    if decoded.state not in StateCode.__members__:
        NORMALIZATION_FAILURES.labels(reason="invalid_payload").inc()
        raise NormalizationError(f"Unknown state: {decoded.state}")
    return decoded


# ----- Build -----

def _property_data(raw: Optional[RawPropertyData]) -> PropertyTypeData:
    if raw is None:
        return PropertyTypeData()
    bedrooms = {b: raw.bedrooms.get(b) or BedroomPrice() for b in BEDROOM_BUCKETS}
    computed = bedroom_yields(bedrooms)
    supplied = raw.yields or {}
    yields = {b: supplied[b] if supplied.get(b) is not None else computed[b] for b in BEDROOM_BUCKETS}
    return PropertyTypeData(bedrooms=bedrooms, yields=yields)


def _legacy_house(bedrooms: Mapping[str, LegacyBedroom]) -> PropertyTypeData:
    converted = {}
    for b in BEDROOM_BUCKETS:
        old = bedrooms.get(b) or LegacyBedroom()
        converted[b] = BedroomPrice(buy_price=old.sale_price, rent_price=old.rent)
    return PropertyTypeData(bedrooms=converted, yields=bedroom_yields(converted))


def build_record(decoded: DecodedPayload, locality: Optional[Locality] = None,
                 existing: Optional[SuburbRecord] = None, now: Optional[str] = None) -> SuburbRecord:
    """
    Assemble the canonical record. `existing` is the stored record with the
    same id (edits/upserts); `now` is the ISO timestamp to stamp.
    """
    now = now or utc_now_iso()
    supplied = decoded.model_fields_set

    if isinstance(decoded, CurrentPayload):
        house, unit = _property_data(decoded.house), _property_data(decoded.unit)
    else:
        house, unit = _legacy_house(decoded.bedrooms), PropertyTypeData()

    distance = None
    if locality is not None:
        distance = distance_to_capital(decoded.state, locality.lat, locality.lng)
    if distance is None:
        # Unknown now: keep whatever was known before
        if decoded.distance_to_capital is not None:
            distance = decoded.distance_to_capital
        elif existing is not None:
            distance = existing.distance_to_capital
        else:
            distance = 0.0

    is_hot = decoded.is_hot
    if "is_hot" not in supplied and existing is not None:
        is_hot = existing.is_hot
    nominated_for = decoded.nominated_for
    if "nominated_for" not in supplied and existing is not None:
        nominated_for = list(existing.nominated_for)

    demographics = decoded.demographics
    if demographics is None and existing is not None:
        demographics = existing.demographics

    if existing is not None:
        date_added = existing.date_added
    else:
        date_added = decoded.date_added or now

    return SuburbRecord(
        id=decoded.record_id,
        suburb=decoded.suburb,
        state=StateCode(decoded.state),
        postcode=decoded.postcode,
        is_hot=is_hot,
        distance_to_capital=distance,
        nominated_for=nominated_for,
        demographics=demographics,
        house=house,
        unit=unit,
        date_added=date_added,
        last_updated=now,
    )


class SchemaNormalizer:
    """Decode + gazetteer lookup + build, with an injectable clock."""
    def __init__(self, gazetteer: GazetteerLoader, clock: Callable[[], str] = utc_now_iso):
        self.gazetteer = gazetteer
        self.clock = clock

    async def normalize(self, payload: Any, existing: Optional[SuburbRecord] = None) -> SuburbRecord:
        decoded = decode_payload(payload)
        locality = await self.gazetteer.find_details(decoded.suburb, decoded.state, decoded.postcode)
        if locality is None:
            logger.info("No gazetteer match for %s %s %s", decoded.suburb, decoded.state, decoded.postcode)
        return build_record(decoded, locality=locality, existing=existing, now=self.clock())

