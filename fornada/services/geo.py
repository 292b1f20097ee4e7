"""Great-circle distance helpers for the establishment directory."""

import math
from collections.abc import Iterable
from typing import Any

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in kilometres between two coordinates."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def sort_by_distance(
    items: Iterable[Any], lat: float, lng: float
) -> list[tuple[Any, float | None]]:
    """Pair items having ``latitude``/``longitude`` with their distance, nearest first.

    Items without coordinates are kept at the end, in their original order.
    """
    located = []
    unlocated = []
    for item in items:
        if item.latitude is None or item.longitude is None:
            unlocated.append((item, None))
        else:
            located.append((item, haversine_km(lat, lng, item.latitude, item.longitude)))

    located.sort(key=lambda pair: pair[1])
    return located + unlocated
