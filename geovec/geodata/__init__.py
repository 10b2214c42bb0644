"""Geo payload classification, normalization and extraction."""

from geovec.geodata.classifier import (
    TOOL_DATA_TYPES,
    classify,
    classify_payload,
    parse_payload,
)
from geovec.geodata.extractor import ExtractedAttributes, extract
from geovec.geodata.models import (
    DataType,
    DistancePayload,
    GeoPayload,
    IpLocationPayload,
    PoiPayload,
    RegionPayload,
    RoutePayload,
    UnknownPayload,
    WeatherPayload,
)
from geovec.geodata.normalizer import normalize
from geovec.geodata.tool_result import parse_tool_result

__all__ = [
    "TOOL_DATA_TYPES",
    "DataType",
    "DistancePayload",
    "ExtractedAttributes",
    "GeoPayload",
    "IpLocationPayload",
    "PoiPayload",
    "RegionPayload",
    "RoutePayload",
    "UnknownPayload",
    "WeatherPayload",
    "classify",
    "classify_payload",
    "extract",
    "normalize",
    "parse_payload",
    "parse_tool_result",
]
