# src/atlas/utils/geometry.py
"""
Boundary handling for zones.

A boundary is an open ring of ``[longitude, latitude]`` pairs in WGS84
degrees: at least three distinct points, the first point implicitly
closing the ring. Validation goes through shapely so the self-intersection
rules match what GEOS considers a valid polygon.

The interchange format is a GeoJSON-style Polygon feature with a closed
outer ring; parsing of anything richer (KML, multipolygons, holes) is left
to external tooling.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Optional, Sequence, Tuple

from shapely.geometry import Polygon, box
from shapely.validation import explain_validity

from src.atlas.utils.errors import InvalidGeometry

Ring = list[list[float]]
BBox = Tuple[float, float, float, float]  # min_lon, min_lat, max_lon, max_lat

# Mean earth radius used by the spherical area approximation (metres)
EARTH_RADIUS_M = 6_371_008.8


def _coerce_point(raw: Any, index: int) -> list[float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise InvalidGeometry(f"Point {index} must be a [longitude, latitude] pair")
    try:
        lon, lat = float(raw[0]), float(raw[1])
    except (TypeError, ValueError):
        raise InvalidGeometry(f"Point {index} has non-numeric coordinates")
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise InvalidGeometry(f"Point {index} has non-finite coordinates")
    if not -180.0 <= lon <= 180.0:
        raise InvalidGeometry(f"Point {index} longitude {lon} is outside [-180, 180]")
    if not -90.0 <= lat <= 90.0:
        raise InvalidGeometry(f"Point {index} latitude {lat} is outside [-90, 90]")
    return [lon, lat]


def normalize_ring(points: Iterable[Any]) -> Ring:
    """Coerce to float pairs and drop an explicit closing point."""
    if points is None:
        raise InvalidGeometry("Boundary is required")
    ring = [_coerce_point(p, i) for i, p in enumerate(points)]
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return ring


def validate_boundary(points: Iterable[Any]) -> Ring:
    """
    Return the normalised open ring, or raise InvalidGeometry.

    Checks: >= 3 distinct points, coordinate ranges, non-zero area and
    no self-intersection.
    """
    ring = normalize_ring(points)
    if len(ring) < 3:
        raise InvalidGeometry("Boundary needs at least 3 points")
    if len({(lon, lat) for lon, lat in ring}) < 3:
        raise InvalidGeometry("Boundary needs at least 3 distinct points")

    poly = Polygon(ring)
    if poly.area == 0:
        raise InvalidGeometry("Boundary encloses zero area")
    if not poly.is_valid:
        raise InvalidGeometry(f"Boundary is not a simple polygon: {explain_validity(poly)}")
    return ring


def to_polygon(ring: Sequence[Sequence[float]]) -> Polygon:
    return Polygon([(float(lon), float(lat)) for lon, lat in ring])


def bounding_box(ring: Sequence[Sequence[float]]) -> BBox:
    lons = [p[0] for p in ring]
    lats = [p[1] for p in ring]
    return min(lons), min(lats), max(lons), max(lats)


def approximate_area_m2(ring: Sequence[Sequence[float]]) -> float:
    """
    Area on a spherical earth, in square metres.

    Uses the line-integral form from Chamberlain & Duquette, "Some
    Algorithms for Polygons on a Sphere" (2007); good enough for sorting.
    """
    n = len(ring)
    if n < 3:
        return 0.0
    total = 0.0
    for i in range(n):
        lon1, lat1 = ring[i]
        lon2, lat2 = ring[(i + 1) % n]
        total += math.radians(lon2 - lon1) * (
            2 + math.sin(math.radians(lat1)) + math.sin(math.radians(lat2))
        )
    return abs(total * EARTH_RADIUS_M * EARTH_RADIUS_M / 2.0)


def bbox_polygon(bbox: Sequence[float]) -> Polygon:
    if len(bbox) != 4:
        raise InvalidGeometry("Bounding box needs min_lon, min_lat, max_lon, max_lat")
    min_lon, min_lat, max_lon, max_lat = (float(v) for v in bbox)
    _coerce_point([min_lon, min_lat], 0)
    _coerce_point([max_lon, max_lat], 1)
    if min_lon > max_lon or min_lat > max_lat:
        raise InvalidGeometry("Bounding box minimum exceeds maximum")
    return box(min_lon, min_lat, max_lon, max_lat)


def intersects(ring: Sequence[Sequence[float]], other: Polygon) -> bool:
    return to_polygon(ring).intersects(other)


# -----------------------------------------------------------------------------
# Interchange (GeoJSON-style Polygon feature)
# -----------------------------------------------------------------------------
def closed_ring(ring: Sequence[Sequence[float]]) -> Ring:
    out = [[float(lon), float(lat)] for lon, lat in ring]
    if out and out[0] != out[-1]:
        out.append(list(out[0]))
    return out


def to_feature(ring: Sequence[Sequence[float]], properties: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [closed_ring(ring)]},
        "properties": dict(properties or {}),
    }


def from_feature(payload: Any) -> tuple[Ring, dict[str, Any]]:
    """
    Accept a Polygon Feature (or a bare Polygon geometry) and return the
    validated open ring plus the feature properties.
    """
    if not isinstance(payload, dict):
        raise InvalidGeometry("Expected a GeoJSON object")

    properties: dict[str, Any] = {}
    geometry = payload
    if payload.get("type") == "Feature":
        geometry = payload.get("geometry") or {}
        properties = payload.get("properties") or {}
        if not isinstance(properties, dict):
            raise InvalidGeometry("Feature properties must be an object")

    if not isinstance(geometry, dict) or geometry.get("type") != "Polygon":
        raise InvalidGeometry("Only Polygon geometries are supported")

    rings = geometry.get("coordinates")
    if not isinstance(rings, list) or not rings:
        raise InvalidGeometry("Polygon has no coordinates")
    if len(rings) > 1:
        raise InvalidGeometry("Polygons with holes are not supported")

    return validate_boundary(rings[0]), properties
