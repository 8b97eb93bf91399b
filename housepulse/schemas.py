from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .core.utils import parse_price_string, parse_price_text, parse_rent_text

BEDROOM_BUCKETS: tuple[str, ...] = ("2", "3", "4+")
PROPERTY_TYPES: tuple[str, ...] = ("house", "unit")


class StateCode(str, Enum):
    NSW = "NSW"
    VIC = "VIC"
    QLD = "QLD"
    WA = "WA"
    SA = "SA"
    TAS = "TAS"
    ACT = "ACT"
    NT = "NT"


STATE_NAMES: dict[StateCode, str] = {
    StateCode.NSW: "New South Wales",
    StateCode.VIC: "Victoria",
    StateCode.QLD: "Queensland",
    StateCode.WA: "Western Australia",
    StateCode.SA: "South Australia",
    StateCode.TAS: "Tasmania",
    StateCode.ACT: "Australian Capital Territory",
    StateCode.NT: "Northern Territory",
}


def state_name(code: str) -> str:
    try:
        return STATE_NAMES[StateCode(code.upper())]
    except ValueError:
        return code


class CamelModel(BaseModel):
    """Persisted JSON uses camelCase keys; Python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----- Record shapes -----

class BedroomPrice(CamelModel):
    buy_price: float = Field(default=0, ge=0)
    rent_price: float = Field(default=0, ge=0)   # weekly

    @field_validator("buy_price", mode="before")
    @classmethod
    def _parse_buy(cls, v: Any) -> float:
        return best_effort_number(v, parse_price_text, parse_price_string)

    @field_validator("rent_price", mode="before")
    @classmethod
    def _parse_rent(cls, v: Any) -> float:
        return best_effort_number(v, parse_rent_text)

    @property
    def is_priced(self) -> bool:
        return self.buy_price > 0


def best_effort_number(v: Any, text_parser, entry_parser=None) -> float:
    """
    Numbers pass through, junk → 0. Text is read as a manual form entry first
    (".95m"), then as scraped text ("Offers over $1.2m").
    """
    if v is None or isinstance(v, bool):
        return 0
    if isinstance(v, (int, float)):
        return max(0, v)
    if isinstance(v, str):
        return (entry_parser(v) if entry_parser else 0) or text_parser(v)
    return 0


def empty_bedrooms() -> dict[str, BedroomPrice]:
    return {b: BedroomPrice() for b in BEDROOM_BUCKETS}


def empty_yields() -> dict[str, float]:
    return {b: 0.0 for b in BEDROOM_BUCKETS}


class PropertyTypeData(CamelModel):
    bedrooms: dict[str, BedroomPrice] = Field(default_factory=empty_bedrooms)
    # Serialised as "yield"; `yield` is a Python keyword
    yields: dict[str, float] = Field(default_factory=empty_yields, alias="yield")

    @field_validator("bedrooms", mode="after")
    @classmethod
    def _all_buckets(cls, v: dict[str, BedroomPrice]) -> dict[str, BedroomPrice]:
        # Unpriced buckets still exist, at zero
        return {b: v.get(b) or BedroomPrice() for b in BEDROOM_BUCKETS}

    def price(self, bucket: str) -> BedroomPrice:
        return self.bedrooms.get(bucket) or BedroomPrice()


class Demographics(CamelModel):
    median_income: float            # annual
    median_age: float
    main_language: str
    occupation_type: str
    census_year: int
    source: Literal["abs-api", "fallback"] = "abs-api"


class SuburbRecord(CamelModel):
    id: str
    suburb: str
    state: StateCode
    postcode: str
    is_hot: bool = False
    distance_to_capital: float = 0
    nominated_for: list[str] = Field(default_factory=list)
    demographics: Demographics | None = None
    house: PropertyTypeData = Field(default_factory=PropertyTypeData)
    unit: PropertyTypeData = Field(default_factory=PropertyTypeData)
    date_added: str
    last_updated: str

    def property_type(self, name: str) -> PropertyTypeData:
        if name == "house":
            return self.house
        if name == "unit":
            return self.unit
        raise KeyError(name)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ----- Reference data -----

class Locality(CamelModel):
    """One gazetteer entry. Immutable for the life of a load."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    state: str
    postcode: str
    stat_area_code: str | None = None
    lat: float | None = None
    lng: float | None = None
    population: int | None = None
    median_income: float | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.name.lower(), self.state, self.postcode)


# ----- Demographics state -----

class DemographicsStatus(str, Enum):
    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    FAILED = "failed"
    AVAILABLE = "available"


class DemographicsState(CamelModel):
    status: DemographicsStatus = DemographicsStatus.NOT_REQUESTED
    data: Demographics | None = None

    @classmethod
    def available(cls, data: Demographics) -> "DemographicsState":
        return cls(status=DemographicsStatus.AVAILABLE, data=data)


# ----- Query shapes -----

class FilterCriteria(CamelModel):
    states: set[StateCode] = Field(default_factory=set)
    bedrooms: set[Literal["2", "3", "4+"]] = Field(default_factory=set)
    property_types: set[Literal["house", "unit"]] = Field(default_factory=set)
    max_price: float | None = Field(default=None, ge=0)
    min_yield: float | None = Field(default=None, ge=0)
    hot_only: bool = False

    @property
    def requires_priced_combination(self) -> bool:
        """Everything except no criteria at all, or hotOnly on its own."""
        return bool(
            self.states
            or self.bedrooms
            or self.property_types
            or self.max_price is not None
            or self.min_yield is not None
        )


class SortField(str, Enum):
    SUBURB = "suburb"
    YIELD = "yield"
    PRICE = "price"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ----- API shapes -----

class HotFlagRequest(CamelModel):
    is_hot: bool


class StateInfo(BaseModel):
    code: StateCode
    name: str


class SuburbLinks(BaseModel):
    realestate: str
    buy: str
    rent: str
    maps: str
