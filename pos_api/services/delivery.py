from __future__ import annotations

import logging
import re
from typing import Any

import httpx
from sqlalchemy.orm import Session

from pos_api.core.config import settings
from pos_api.core.errors import (
    AddressNotFound,
    GeocodingFailed,
    InvalidPolygon,
    OutsideDeliveryArea,
)
from pos_api.db.models import DeliveryZone
from pos_api.schemas.pricing import DeliveryZoneRef

logger = logging.getLogger(__name__)

_WKT_RE = re.compile(r"^\s*POLYGON\s*\(\s*\((?P<ring>[^()]*)\)", re.IGNORECASE)


class GeocoderClient:
    """Address -> (lat, lng) through a DaData-compatible suggest API."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self.url = settings.GEOCODER_URL
        self.token = settings.GEOCODER_TOKEN
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        h: dict[str, str] = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            h["Authorization"] = f"Token {self.token}"
        return h

    def geocode(self, address: str, timeout_s: float = 10.0) -> tuple[float, float]:
        payload: dict[str, Any] = {"query": address, "count": 1, "locations": [{"country": "*"}]}
        try:
            with httpx.Client(timeout=timeout_s, transport=self.transport) as c:
                r = c.post(self.url, json=payload, headers=self._headers())
            r.raise_for_status()
            data = r.json()
        except Exception as e:
            raise GeocodingFailed(f"geocoding failed: {e}") from e

        suggestions = data.get("suggestions") if isinstance(data, dict) else None
        if not suggestions:
            raise AddressNotFound(f"address not found: {address}")

        geo = suggestions[0].get("data") or {}
        lat, lng = geo.get("geo_lat"), geo.get("geo_lon")
        if not lat or not lng:
            raise AddressNotFound(f"no coordinates for address: {address}")
        return float(lat), float(lng)


def parse_wkt_polygon(wkt: str) -> list[tuple[float, float]]:
    """Outer ring of a WKT POLYGON as (lng, lat) pairs."""
    m = _WKT_RE.match(wkt or "")
    if not m:
        raise InvalidPolygon("polygon must be WKT: POLYGON((lng lat, ...))")
    ring: list[tuple[float, float]] = []
    for pair in m.group("ring").split(","):
        parts = pair.split()
        if len(parts) != 2:
            raise InvalidPolygon(f"bad coordinate pair: {pair.strip()!r}")
        try:
            ring.append((float(parts[0]), float(parts[1])))
        except ValueError as e:
            raise InvalidPolygon(f"bad coordinate pair: {pair.strip()!r}") from e
    if len(ring) < 3:
        raise InvalidPolygon("polygon needs at least 3 points")
    return ring


def point_in_polygon(x: float, y: float, ring: list[tuple[float, float]]) -> bool:
    # ray casting; x = lng, y = lat
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def find_zone_for_point(db: Session, restaurant_id: str, lat: float, lng: float) -> DeliveryZone | None:
    zones = (
        db.query(DeliveryZone)
        .filter(DeliveryZone.restaurant_id == restaurant_id)
        .order_by(DeliveryZone.priority.asc(), DeliveryZone.created_at.asc())
        .all()
    )
    for z in zones:
        try:
            ring = parse_wkt_polygon(z.polygon)
        except InvalidPolygon:
            logger.warning(f"[delivery] zone {z.id} has an unreadable polygon, skipped")
            continue
        if point_in_polygon(lng, lat, ring):
            return z
    return None


def resolve_zone_for_address(
    db: Session, geocoder: GeocoderClient, restaurant_id: str, address: str
) -> tuple[float, float, DeliveryZone]:
    lat, lng = geocoder.geocode(address)
    zone = find_zone_for_point(db, restaurant_id, lat, lng)
    if zone is None:
        raise OutsideDeliveryArea("address is outside every delivery zone")
    logger.info(f"[delivery] '{address}' -> zone {zone.title} ({zone.price})")
    return lat, lng, zone


def to_zone_ref(zone: DeliveryZone) -> DeliveryZoneRef:
    return DeliveryZoneRef(id=zone.id, title=zone.title, price=zone.price, min_order=zone.min_order)


def next_priority(db: Session, restaurant_id: str) -> int:
    last = (
        db.query(DeliveryZone)
        .filter(DeliveryZone.restaurant_id == restaurant_id)
        .order_by(DeliveryZone.priority.desc())
        .first()
    )
    return (last.priority + 1) if last else 0
