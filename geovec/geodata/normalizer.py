"""Text representation of geo payloads.

The string produced here is the only input to the embedding model, so the
clause layout per data type is fixed: header clauses first, then the
type-specific clauses, all joined with ". ".
"""

from geovec.geodata.models import (
    DistancePayload,
    GeoPayload,
    IpLocationPayload,
    PoiPayload,
    RegionPayload,
    RoutePayload,
    WeatherPayload,
)

# Entries beyond this many are left out of the text.
MAX_LISTED_ENTRIES = 3

CLAUSE_SEPARATOR = ". "


def normalize(payload: GeoPayload, source_tool: str) -> str:
    """Build the deterministic text summary of a payload.

    Args:
        payload: Typed payload view.
        source_tool: Tool that produced the payload.

    Returns:
        Summary starting with ``data type: <T>. tool: <source_tool>``.
    """
    parts = [
        f"data type: {payload.data_type.value}",
        f"tool: {source_tool}",
    ]
    parts.extend(_type_clauses(payload))
    return CLAUSE_SEPARATOR.join(parts)


def _type_clauses(payload: GeoPayload) -> list[str]:
    if isinstance(payload, PoiPayload):
        return _poi_clauses(payload)
    if isinstance(payload, WeatherPayload):
        return _weather_clauses(payload)
    if isinstance(payload, RoutePayload):
        return _route_clauses(payload)
    if isinstance(payload, RegionPayload):
        return _labelled(
            ("province", payload.province),
            ("city", payload.city),
            ("district", payload.district),
        )
    if isinstance(payload, DistancePayload):
        return _distance_clauses(payload)
    if isinstance(payload, IpLocationPayload):
        return _labelled(
            ("province", payload.province),
            ("city", payload.city),
            ("area code", payload.adcode),
        )
    return []


def _labelled(*pairs: tuple[str, str]) -> list[str]:
    return [f"{label}: {value}" for label, value in pairs if value]


def _poi_clauses(payload: PoiPayload) -> list[str]:
    clauses = []
    for position, poi in enumerate(payload.pois[:MAX_LISTED_ENTRIES], start=1):
        fields = _labelled(
            ("name", poi.name),
            ("address", poi.address),
            ("type code", poi.typecode),
        )
        if fields:
            clauses.append(f"POI {position}: {', '.join(fields)}")
    return clauses


def _weather_clauses(payload: WeatherPayload) -> list[str]:
    clauses = _labelled(("city", payload.city))
    if payload.forecasts:
        forecast = payload.forecasts[0]
        clauses += _labelled(
            ("date", forecast.date),
            ("day weather", forecast.dayweather),
            ("night weather", forecast.nightweather),
        )
        if forecast.daytemp and forecast.nighttemp:
            clauses.append(f"temperature: {forecast.nighttemp}-{forecast.daytemp}°C")
    return clauses


def _route_clauses(payload: RoutePayload) -> list[str]:
    clauses = _labelled(
        ("origin", payload.origin),
        ("destination", payload.destination),
    )
    if payload.paths:
        path = payload.paths[0]
        if path.distance:
            clauses.append(f"distance: {path.distance} m")
        if path.duration:
            clauses.append(f"duration: {path.duration} s")
    return clauses


def _distance_clauses(payload: DistancePayload) -> list[str]:
    clauses = []
    for position, result in enumerate(payload.results[:MAX_LISTED_ENTRIES], start=1):
        if not result.distance:
            continue
        clause = f"route {position}: distance {result.distance} m"
        if result.duration:
            clause += f", duration {result.duration} s"
        clauses.append(clause)
    return clauses
