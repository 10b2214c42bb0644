"""Structured field extraction from geo payloads."""

import time
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from geovec.geodata.models import (
    DistancePayload,
    GeoPayload,
    PoiPayload,
    RegionPayload,
    RoutePayload,
    WeatherPayload,
)

DEFAULT_SUMMARY = "map data"


class ExtractedAttributes(BaseModel):
    """Fields derived from a payload alongside its text representation.

    Attributes:
        geo_info: Free-text locator used as an exact-match filter.
        summary: Short human-readable synopsis.
        attributes: Bounded, type-specific scalar fields.
        id: Record identifier.
    """

    model_config = ConfigDict(frozen=True)

    geo_info: str = Field(default="", description="Geographic locator")
    summary: str = Field(default=DEFAULT_SUMMARY, description="Content synopsis")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Type attributes")
    id: str = Field(description="Record identifier")


def extract(payload: GeoPayload, now: datetime | None = None) -> ExtractedAttributes:
    """Derive geo info, summary, attributes and id from a payload.

    ``geo_info``, ``summary`` and ``attributes`` depend on the payload only.
    The id depends on ``now`` for weather and route payloads, and on the
    nanosecond clock when the payload carries no natural key.

    Args:
        payload: Typed payload view.
        now: Ingestion time (defaults to the current local time).

    Returns:
        The extracted fields.
    """
    now = now or datetime.now()
    return ExtractedAttributes(
        geo_info=extract_geo_info(payload),
        summary=extract_summary(payload),
        attributes=extract_attributes(payload),
        id=generate_record_id(payload, now),
    )


def extract_geo_info(payload: GeoPayload) -> str:
    if isinstance(payload, PoiPayload):
        if payload.city:
            return payload.city
        if payload.pois:
            first = payload.pois[0]
            return first.cityname or first.address
        return ""
    if isinstance(payload, WeatherPayload):
        return payload.city
    if isinstance(payload, RegionPayload):
        if not payload.province:
            return ""
        if payload.city:
            return f"{payload.province} {payload.city}"
        return payload.province
    if isinstance(payload, RoutePayload):
        if not payload.origin:
            return ""
        if payload.destination:
            return f"{payload.origin} -> {payload.destination}"
        return payload.origin
    return ""


def extract_summary(payload: GeoPayload) -> str:
    if isinstance(payload, PoiPayload):
        count = len(payload.pois)
        if count == 1 and payload.pois[0].name:
            return f"POI: {payload.pois[0].name}"
        if count > 1:
            return f"{count} POI results"
    elif isinstance(payload, WeatherPayload):
        if payload.city:
            return f"{payload.city} weather"
    elif isinstance(payload, RoutePayload):
        if payload.paths and payload.paths[0].distance:
            path = payload.paths[0]
            if path.duration:
                return f"route length {path.distance} m, duration {path.duration} s"
            return f"route length {path.distance} m"
    elif isinstance(payload, DistancePayload):
        if payload.results and payload.results[0].distance:
            return f"distance: {payload.results[0].distance} m"
    return DEFAULT_SUMMARY


def extract_attributes(payload: GeoPayload) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    if isinstance(payload, PoiPayload) and payload.pois:
        poi = payload.pois[0]
        candidates = {
            "name": poi.name,
            "address": poi.address,
            "tel": poi.tel,
            "type": poi.type,
            "typecode": poi.typecode,
        }
        attributes = {key: value for key, value in candidates.items() if value}
    elif isinstance(payload, WeatherPayload) and payload.forecasts:
        forecast = payload.forecasts[0]
        candidates = {
            "date": forecast.date,
            "dayweather": forecast.dayweather,
            "nightweather": forecast.nightweather,
            "daytemp": forecast.daytemp,
            "nighttemp": forecast.nighttemp,
        }
        attributes = {key: value for key, value in candidates.items() if value}
    elif isinstance(payload, RoutePayload) and payload.paths:
        path = payload.paths[0]
        if path.distance:
            attributes["distance"] = path.distance
        if path.duration:
            attributes["duration"] = path.duration
        if path.steps is not None:
            attributes["steps_count"] = len(path.steps)
    return attributes


def generate_record_id(payload: GeoPayload, now: datetime) -> str:
    """Build the record id.

    POIs are keyed by their native id, weather by city and day, routes by
    endpoints and second. Everything else falls back to a nanosecond
    timestamp, which is neither idempotent nor collision resistant.
    """
    data_type = payload.data_type.value

    if isinstance(payload, PoiPayload):
        if payload.pois and payload.pois[0].id:
            return f"{data_type}_{payload.pois[0].id}"
    elif isinstance(payload, WeatherPayload):
        if payload.city:
            return f"{data_type}_{payload.city}_{now.strftime('%Y%m%d')}"
    elif isinstance(payload, RoutePayload):
        if payload.origin and payload.destination:
            origin = payload.origin.replace(",", "_")
            destination = payload.destination.replace(",", "_")
            return f"{data_type}_{origin}_{destination}_{int(now.timestamp())}"

    return f"{data_type}_{time.time_ns()}"
