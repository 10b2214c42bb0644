"""Typed views over raw map-tool payloads.

Each data type has its own model holding only the fields the normalizer and
the extractor read. Parsing never fails: a missing field, or one of the wrong
JSON type, comes back empty. Non-object list entries become empty entries so
that positions in the list are preserved.
"""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


class DataType(str, Enum):
    """Semantic shape of a geo payload."""

    POI = "poi"
    WEATHER = "weather"
    ROUTE = "route"
    GEO = "geo"
    REGEOCODE = "regeocode"
    IP_LOCATION = "ip_location"
    DISTANCE = "distance"
    UNKNOWN = "unknown"


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_optional_list(value: Any) -> list[Any] | None:
    return value if isinstance(value, list) else None


LenientStr = Annotated[str, BeforeValidator(_as_str)]


class _Lenient(BaseModel):
    """Base for payload views: ignores unknown keys, accepts non-objects."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _coerce_object(cls, data: Any) -> Any:
        if isinstance(data, BaseModel):
            return data
        return data if isinstance(data, dict) else {}


class PoiEntry(_Lenient):
    id: LenientStr = ""
    name: LenientStr = ""
    address: LenientStr = ""
    type: LenientStr = ""
    typecode: LenientStr = ""
    cityname: LenientStr = ""
    tel: LenientStr = ""


class WeatherForecast(_Lenient):
    date: LenientStr = ""
    dayweather: LenientStr = ""
    nightweather: LenientStr = ""
    daytemp: LenientStr = ""
    nighttemp: LenientStr = ""


class RoutePath(_Lenient):
    distance: LenientStr = ""
    duration: LenientStr = ""
    steps: Annotated[list[Any] | None, BeforeValidator(_as_optional_list)] = None


class DistanceResult(_Lenient):
    distance: LenientStr = ""
    duration: LenientStr = ""


class PoiPayload(_Lenient):
    """Text search, around search and POI detail responses."""

    data_type: Literal[DataType.POI] = DataType.POI
    city: LenientStr = ""
    pois: Annotated[list[PoiEntry], BeforeValidator(_as_list)] = Field(default_factory=list)


class WeatherPayload(_Lenient):
    data_type: Literal[DataType.WEATHER] = DataType.WEATHER
    city: LenientStr = ""
    forecasts: Annotated[list[WeatherForecast], BeforeValidator(_as_list)] = Field(
        default_factory=list
    )


class RoutePayload(_Lenient):
    data_type: Literal[DataType.ROUTE] = DataType.ROUTE
    origin: LenientStr = ""
    destination: LenientStr = ""
    paths: Annotated[list[RoutePath], BeforeValidator(_as_list)] = Field(default_factory=list)


class RegionPayload(_Lenient):
    """Geocoding and reverse geocoding responses."""

    data_type: Literal[DataType.GEO, DataType.REGEOCODE] = DataType.GEO
    province: LenientStr = ""
    city: LenientStr = ""
    district: LenientStr = ""


class DistancePayload(_Lenient):
    data_type: Literal[DataType.DISTANCE] = DataType.DISTANCE
    results: Annotated[list[DistanceResult], BeforeValidator(_as_list)] = Field(
        default_factory=list
    )


class IpLocationPayload(_Lenient):
    data_type: Literal[DataType.IP_LOCATION] = DataType.IP_LOCATION
    province: LenientStr = ""
    city: LenientStr = ""
    adcode: LenientStr = ""


class UnknownPayload(_Lenient):
    data_type: Literal[DataType.UNKNOWN] = DataType.UNKNOWN


GeoPayload = Annotated[
    PoiPayload
    | WeatherPayload
    | RoutePayload
    | RegionPayload
    | DistancePayload
    | IpLocationPayload
    | UnknownPayload,
    Field(discriminator="data_type"),
]
