from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_serializer, field_validator

# Single-letter fare codes used by the search form
CABIN_CODES = {
    "M": "ECONOMY",
    "W": "PREMIUM_ECONOMY",
    "C": "BUSINESS",
    "F": "FIRST",
}


class Cabin(str, Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"

    @classmethod
    def parse(cls, value) -> "Cabin":
        """Map a fare code or cabin name to a Cabin, defaulting to economy."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().upper().replace(" ", "_").replace("-", "_")
        key = CABIN_CODES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.ECONOMY


class SearchQuery(BaseModel):
    """One concrete query against the flight-offer API."""

    origin: str = Field(pattern=r"^[A-Z]{3}$")
    destination: str = Field(pattern=r"^[A-Z]{3}$")
    depart_date: date
    return_date: date | None = None
    adults: int = 1
    cabin: Cabin = Cabin.ECONOMY
    currency: str = "USD"
    max_results: int = Field(50, ge=1, le=250)

    model_config = {"frozen": True}

    @field_validator("origin", "destination", mode="before")
    @classmethod
    def _normalize_code(cls, v):
        return str(v or "").strip().upper()

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, v):
        return str(v).strip().upper() if v else "USD"

    @field_validator("return_date")
    @classmethod
    def _repair_return_date(cls, v, info):
        # A return before departure means "one-way", not an invalid query
        depart = info.data.get("depart_date")
        if v is not None and depart is not None and v < depart:
            return None
        return v

    @field_validator("adults", mode="before")
    @classmethod
    def _clamp_adults(cls, v):
        try:
            return max(1, int(v))
        except (TypeError, ValueError):
            return 1

    @field_validator("cabin", mode="before")
    @classmethod
    def _parse_cabin(cls, v):
        return Cabin.parse(v)

    def with_changes(self, **changes) -> "SearchQuery":
        """Return a re-validated copy with some fields replaced."""
        return SearchQuery.model_validate({**self.model_dump(), **changes})

    def describe(self) -> str:
        text = f"{self.origin}→{self.destination} on {self.depart_date.isoformat()}"
        if self.return_date:
            text += f", returning {self.return_date.isoformat()}"
        return text


class RankedResult(BaseModel):
    price: Decimal
    duration_text: str
    stop_count: int = Field(ge=0)
    route_text: str
    carriers: list[str]
    source_offer_id: str | None = None

    model_config = {"frozen": True}

    @field_serializer("price")
    def _serialize_price(self, v: Decimal) -> float:
        return float(v)


class SearchOutcome(BaseModel):
    results: list[RankedResult] = []
    used_query: SearchQuery
    expanded_by_fallback: bool = False
    note: str | None = None


class FlightSearchRequest(BaseModel):
    """HTTP payload: structured fields, or free text in `query`."""

    origin: str | None = Field(None, alias="from")
    destination: str | None = Field(None, alias="to")
    depart: str | None = None
    ret: str | None = Field(None, alias="return")
    adults: int | None = None
    cabin: str | None = None
    currency: str | None = None
    query: str | None = None
    expand: bool = True

    model_config = {"populate_by_name": True}
