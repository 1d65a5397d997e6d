"""Restaurant working hours and the "can we take an order now" gate.

Hours are stored per weekday in the restaurant's local time. A shift whose
close time is earlier than its open time runs past midnight into the next day.
A restaurant with no hours configured at all is treated as always open.
"""
from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from sqlalchemy.orm import Session

from pos_api.core.clock import as_utc, utcnow
from pos_api.core.errors import RestaurantClosed, ValidationFailed
from pos_api.db.models import Restaurant, RestaurantWorkingHours
from pos_api.schemas.catalog import WorkingHoursIn

logger = logging.getLogger(__name__)

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def local_time(restaurant: Restaurant, now: datetime) -> datetime:
    return now + timedelta(minutes=restaurant.utc_offset_minutes or 0)


def _overnight(h: RestaurantWorkingHours) -> bool:
    return h.close_time < h.open_time


def _has_times(h: RestaurantWorkingHours | None) -> bool:
    return h is not None and h.is_working and h.open_time is not None and h.close_time is not None


def _hm(t: time) -> str:
    return t.strftime("%H:%M")


def restaurant_status(restaurant: Restaurant, now: datetime | None = None) -> tuple[bool, str]:
    """(is_open, human readable reason) at `now` (naive UTC)."""
    hours = {h.weekday: h for h in restaurant.working_hours}
    if not hours:
        return True, "no working hours set"

    local = local_time(restaurant, now or utcnow())
    t = local.time()
    today = hours.get(local.weekday())
    yesterday = hours.get((local.weekday() - 1) % 7)

    # tail of last night's shift
    if _has_times(yesterday) and _overnight(yesterday) and t <= yesterday.close_time:
        return True, f"open until {_hm(yesterday.close_time)}"

    day = WEEKDAYS[local.weekday()]
    if today is None or not today.is_working:
        return False, f"closed on {day}"
    if not _has_times(today):
        return False, f"working hours for {day} are not set"
    if t < today.open_time:
        return False, f"opens at {_hm(today.open_time)}"
    if not _overnight(today) and t > today.close_time:
        return False, f"closed at {_hm(today.close_time)}"
    return True, f"open until {_hm(today.close_time)}"


def ensure_accepting(restaurant: Restaurant, scheduled_at: datetime | None, now: datetime | None = None) -> None:
    """Orders for now need an open restaurant; scheduled ones must be in the future."""
    now = now or utcnow()
    if scheduled_at is not None:
        if as_utc(scheduled_at) < now:
            raise ValidationFailed("scheduled time is in the past")
        return
    is_open, reason = restaurant_status(restaurant, now)
    if not is_open:
        raise RestaurantClosed(f"'{restaurant.title}' is closed: {reason}; schedule the order instead")


def set_working_hours(db: Session, restaurant: Restaurant, days: list[WorkingHoursIn]) -> Restaurant:
    """Replace the whole weekly schedule."""
    weekdays = [d.weekday for d in days]
    if len(weekdays) != len(set(weekdays)):
        raise ValidationFailed("each weekday may appear only once")

    db.query(RestaurantWorkingHours).filter(RestaurantWorkingHours.restaurant_id == restaurant.id).delete()
    db.flush()
    db.add_all([
        RestaurantWorkingHours(restaurant_id=restaurant.id, **d.model_dump())
        for d in days
    ])
    db.commit()
    db.refresh(restaurant)
    logger.info(f"[schedule] {len(days)} working days set for restaurant {restaurant.id}")
    return restaurant
