"""Map-tool identifier to data type classification."""

from collections.abc import Mapping
from typing import Any

from pydantic import TypeAdapter

from geovec.geodata.models import DataType, GeoPayload

TOOL_DATA_TYPES: dict[str, DataType] = {
    "maps_text_search": DataType.POI,
    "maps_around_search": DataType.POI,
    "maps_search_detail": DataType.POI,
    "maps_geo": DataType.GEO,
    "maps_regeocode": DataType.REGEOCODE,
    "maps_weather": DataType.WEATHER,
    "maps_direction_driving": DataType.ROUTE,
    "maps_direction_walking": DataType.ROUTE,
    "maps_direction_bicycling": DataType.ROUTE,
    "maps_direction_transit_integrated": DataType.ROUTE,
    "maps_distance": DataType.DISTANCE,
    "maps_ip_location": DataType.IP_LOCATION,
}

_payload_adapter: TypeAdapter[GeoPayload] = TypeAdapter(GeoPayload)


def classify(source_tool: str) -> DataType:
    """Map a tool identifier to its data type; unknown tools map to UNKNOWN."""
    return TOOL_DATA_TYPES.get(source_tool, DataType.UNKNOWN)


def parse_payload(data_type: DataType, raw: Mapping[str, Any] | Any) -> GeoPayload:
    """Parse a raw response into the typed view for ``data_type``.

    Never raises: anything that is not a mapping parses as an empty payload.
    """
    fields = dict(raw) if isinstance(raw, Mapping) else {}
    fields["data_type"] = data_type
    return _payload_adapter.validate_python(fields)


def classify_payload(source_tool: str, raw: Mapping[str, Any] | Any) -> GeoPayload:
    """Classify ``source_tool`` and parse ``raw`` in one step."""
    return parse_payload(classify(source_tool), raw)
