"""
Location helpers:
parsing "lat,lon" strings,
great-circle (haversine) distance,
proximity/time filtering of reports around a point.
"""
import math
from datetime import datetime, timezone
from typing import Optional, Tuple, List, Dict, Any

EARTH_RADIUS_KM = 6371.0

Coords = Tuple[float, float]


def parse_location(location_text) -> Optional[Coords]:
    """Parse a "lat,lon" string into a (lat, lon) tuple, or None if it is not one."""
    if not isinstance(location_text, str):
        return None
    parts = [p.strip() for p in location_text.split(",")]
    if len(parts) != 2:
        return None
    try:
        lat = float(parts[0])
        lng = float(parts[1])
    except ValueError:
        return None
    if math.isnan(lat) or math.isnan(lng):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    return lat, lng


def format_location(lat: float, lng: float) -> str:
    return f"{lat},{lng}"


def haversine_km(coord1: Coords, coord2: Coords) -> float:
    """
    Calculate the distance between two coordinates using Haversine formula
    Returns distance in kilometers
    """
    lat1, lon1 = coord1
    lat2, lon2 = coord2

    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    lat1 = math.radians(lat1)
    lat2 = math.radians(lat2)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    a = max(0.0, min(1.0, a))  # Clamp a to [0, 1]
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_KM * c


def parse_timestamp(value) -> Optional[datetime]:
    """Coerce a Firestore timestamp, datetime or ISO string into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def filter_nearby(
    reports: List[Dict[str, Any]],
    center: Coords,
    radius_km: float,
    max_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Filter reports based on proximity to a point and, optionally, time since reported.
    Returned copies carry a `distance_km` field and are sorted nearest first.
    """
    now = now or datetime.now(timezone.utc)
    nearby = []

    for report in reports:
        coords = parse_location(report.get("location", ""))
        if not coords:
            continue

        distance = haversine_km(center, coords)
        if distance > radius_km:
            continue

        if max_hours is not None:
            reported_at = parse_timestamp(report.get("complaintTime"))
            if reported_at is None:
                continue
            if (now - reported_at).total_seconds() > max_hours * 3600:
                continue

        item = dict(report)
        item["distance_km"] = round(distance, 2)
        nearby.append(item)

    nearby.sort(key=lambda r: r["distance_km"])
    return nearby
