# app/schemas/pydantic_.py
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import DEFAULT_LIMIT, MAX_LIMIT
from app.core.errors import ValidationError


class QueryKind(str, Enum):
    AUTOCOMPLETE = "autocomplete"
    STREET = "street"
    CITY = "city"
    COUNTRY = "country"
    ADDRESS = "address"

    @property
    def min_length(self) -> int:
        return 3 if self is QueryKind.AUTOCOMPLETE else 2

    @property
    def is_suggestion(self) -> bool:
        return self in (QueryKind.STREET, QueryKind.CITY, QueryKind.COUNTRY)


SEARCH_KINDS = frozenset(
    {QueryKind.STREET, QueryKind.CITY, QueryKind.COUNTRY, QueryKind.ADDRESS}
)


def norm_text(value: Optional[str]) -> str:
    value = (value or "").strip().lower()
    return " ".join(value.split())


def parse_limit(raw: Any, default: int = DEFAULT_LIMIT) -> int:
    """Lenient limit parsing: garbage falls back to the default, numbers are clamped."""
    try:
        limit = int(str(raw).strip()) if raw is not None else default
    except ValueError:
        limit = default
    return max(1, min(MAX_LIMIT, limit))


class GeoQuery(BaseModel):
    """A validated, trimmed geocoding query."""

    model_config = ConfigDict(frozen=True)

    text: str
    kind: QueryKind
    limit: int = DEFAULT_LIMIT
    country: Optional[str] = None
    city: Optional[str] = None

    @classmethod
    def build(
        cls,
        text: Optional[str],
        kind: QueryKind,
        limit: Any = None,
        country: Optional[str] = None,
        city: Optional[str] = None,
        *,
        missing_message: Optional[str] = None,
    ) -> "GeoQuery":
        too_short = f"Query must be at least {kind.min_length} characters long"
        if text is None or not text.strip():
            raise ValidationError(missing_message or too_short)

        text = text.strip()
        if len(text) < kind.min_length:
            raise ValidationError(too_short)

        return cls(
            text=text,
            kind=kind,
            limit=parse_limit(limit),
            country=(country or "").strip() or None,
            city=(city or "").strip() or None,
        )

    @property
    def cache_key(self) -> str:
        return ":".join(
            [
                "geocoding",
                self.kind.value,
                norm_text(self.text),
                str(self.limit),
                norm_text(self.country) or "none",
                norm_text(self.city) or "none",
            ]
        )


class AutocompleteResult(BaseModel):
    formatted: str
    street: Optional[str] = None
    house_number: Optional[str] = Field(default=None, serialization_alias="houseNumber")
    city: Optional[str] = None
    postcode: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = Field(default=None, serialization_alias="countryCode")
    lat: float
    lon: float
    place_id: str = Field(serialization_alias="placeId")
    result_type: str = Field(serialization_alias="resultType")


class AddressResult(BaseModel):
    lat: float
    lng: float
    display_name: str = Field(serialization_alias="displayName")
    address: Optional[Dict[str, Any]] = None


class ReverseComponents(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = Field(default=None, serialization_alias="countryCode")


class ReverseResult(BaseModel):
    formatted: str
    raw_formatted: Optional[str] = Field(default=None, serialization_alias="rawFormatted")
    components: ReverseComponents = Field(default_factory=ReverseComponents)
    lat: float
    lon: float


def dump(model: BaseModel) -> Dict[str, Any]:
    """Wire shape: camelCase keys, unset optionals omitted."""
    return model.model_dump(by_alias=True, exclude_none=True)
