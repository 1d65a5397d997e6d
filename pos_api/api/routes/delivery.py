from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pos_api.api.deps import get_db, get_geocoder
from pos_api.core.errors import OutsideDeliveryArea
from pos_api.core.security import require_admin_key
from pos_api.db.models import DeliveryZone, Restaurant
from pos_api.schemas.delivery import DeliveryZoneCreate, DeliveryZoneOut, ZoneResolution
from pos_api.services import delivery
from pos_api.services.delivery import GeocoderClient
from pos_api.core.clock import utcnow

router = APIRouter(dependencies=[Depends(require_admin_key)])

def _get_restaurant(db: Session, restaurant_id: str) -> Restaurant:
    r = db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()
    if not r:
        raise HTTPException(status_code=404, detail="restaurant not found")
    return r

@router.get("/restaurants/{restaurant_id}/delivery-zones", response_model=list[DeliveryZoneOut])
def list_zones(restaurant_id: str, db: Session = Depends(get_db)):
    _get_restaurant(db, restaurant_id)
    return (
        db.query(DeliveryZone)
        .filter(DeliveryZone.restaurant_id == restaurant_id)
        .order_by(DeliveryZone.priority.asc())
        .all()
    )

@router.post("/restaurants/{restaurant_id}/delivery-zones", response_model=DeliveryZoneOut)
def create_zone(restaurant_id: str, body: DeliveryZoneCreate, db: Session = Depends(get_db)):
    _get_restaurant(db, restaurant_id)
    delivery.parse_wkt_polygon(body.polygon)

    z = DeliveryZone(
        restaurant_id=restaurant_id,
        title=body.title,
        price=body.price,
        min_order=body.min_order,
        polygon=body.polygon.strip(),
        priority=body.priority if body.priority is not None else delivery.next_priority(db, restaurant_id),
        created_at=utcnow(),
    )
    db.add(z)
    db.commit()
    db.refresh(z)
    return z

@router.get("/restaurants/{restaurant_id}/delivery-zones/resolve", response_model=ZoneResolution)
def resolve_zone(
    restaurant_id: str,
    address: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
    db: Session = Depends(get_db),
    geocoder: GeocoderClient = Depends(get_geocoder),
):
    _get_restaurant(db, restaurant_id)
    if address:
        lat, lng, zone = delivery.resolve_zone_for_address(db, geocoder, restaurant_id, address)
    elif lat is not None and lng is not None:
        zone = delivery.find_zone_for_point(db, restaurant_id, lat, lng)
        if zone is None:
            raise OutsideDeliveryArea("point is outside every delivery zone")
    else:
        raise HTTPException(status_code=400, detail="address or lat/lng required")
    return ZoneResolution(lat=lat, lng=lng, zone=DeliveryZoneOut.model_validate(zone))
