"""Booking overlap queries used to flag vehicle availability."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Set

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from fleet.models import BLOCKING_BOOKING_STATUSES, Booking, Vehicle


@dataclass(frozen=True)
class Interval:
    """Half-open ``[start, end)`` datetime range."""

    start: datetime
    end: datetime


def _parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        parsed = parse_datetime(value)
        if parsed is not None:
            return parsed.date()
        return parse_date(value)
    except ValueError:
        return None


def _start_of(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.min))


def today_interval() -> Interval:
    today = timezone.localdate()
    return Interval(_start_of(today), _start_of(today + timedelta(days=1)))


def resolve_interval(start: Optional[str], end: Optional[str]) -> Interval:
    """
    Build the interval covering whole days ``start`` through ``end``.

    Falls back to today when either bound is missing, unparsable, or the
    range is not strictly increasing.
    """
    start_day = _parse_day(start)
    end_day = _parse_day(end)
    if start_day is None or end_day is None or end_day <= start_day:
        return today_interval()
    return Interval(_start_of(start_day), _start_of(end_day + timedelta(days=1)))


def overlapping_bookings(interval: Interval):
    return Booking.objects.filter(
        status__in=BLOCKING_BOOKING_STATUSES,
        start_date__lt=interval.end,
        end_date__gt=interval.start,
    )


def booked_vehicle_ids(interval: Interval) -> Set[int]:
    return set(overlapping_bookings(interval).values_list("vehicle_id", flat=True))


def booked_ranges(vehicle: Vehicle):
    """Confirmed and active booking ranges for ``vehicle``, earliest first."""
    return [
        {"start_date": start, "end_date": end}
        for start, end in vehicle.bookings.filter(
            status__in=BLOCKING_BOOKING_STATUSES
        )
        .order_by("start_date")
        .values_list("start_date", "end_date")
    ]
