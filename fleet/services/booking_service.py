import logging
import time
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from fleet.exceptions import BookingError
from fleet.models import Booking, Vehicle

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["start_date", "end_date", "total_price", "payment_method", "vehicle_id"]


def _parse_moment(value: Any, label: str):
    if isinstance(value, str):
        try:
            parsed = parse_datetime(value)
            if parsed is None:
                day = parse_date(value)
                if day is not None:
                    parsed = datetime.combine(day, datetime.min.time())
        except ValueError:
            parsed = None
        if parsed is not None:
            if timezone.is_naive(parsed):
                parsed = timezone.make_aware(parsed)
            return parsed
    raise BookingError(f"Invalid {label}")


def _parse_price(value: Any):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise BookingError("Invalid total price")
    if not price.is_finite():
        raise BookingError("Invalid total price")
    return price


class BookingService:
    @staticmethod
    def _check_payment_method(method):
        if method not in Booking.PaymentMethod.values:
            raise BookingError(
                'Invalid payment method. Must be either "cash" or "card"'
            )

    @staticmethod
    def _check_window(start, end):
        if end <= start:
            raise BookingError("End date must be after start date")

    @staticmethod
    def _check_price(price):
        if price <= 0:
            raise BookingError("Total price must be greater than 0")

    @classmethod
    def create(cls, user, payload: Dict[str, Any]) -> Booking:
        missing = [field for field in REQUIRED_FIELDS if not payload.get(field)]
        if missing:
            raise BookingError(f"Missing required fields: {', '.join(REQUIRED_FIELDS)}")

        cls._check_payment_method(payload["payment_method"])
        start = _parse_moment(payload["start_date"], "start date")
        end = _parse_moment(payload["end_date"], "end date")
        cls._check_window(start, end)
        price = _parse_price(payload["total_price"])
        cls._check_price(price)

        try:
            vehicle = Vehicle.objects.get(pk=payload["vehicle_id"])
        except (Vehicle.DoesNotExist, ValueError, TypeError):
            raise BookingError("Vehicle not found", status=404)

        booking = Booking(
            user=user,
            vehicle=vehicle,
            device_id=payload.get("device_id") or f"web-{int(time.time() * 1000)}",
            start_date=start,
            end_date=end,
            total_price=price,
            payment_method=payload["payment_method"],
            status=Booking.Status.ACTIVE,
            payment_status=Booking.PaymentStatus.PENDING,
        )
        if payload.get("pickup_location"):
            booking.pickup_location = payload["pickup_location"]
        if payload.get("dropoff_location"):
            booking.dropoff_location = payload["dropoff_location"]
        if payload.get("notes"):
            booking.notes = payload["notes"]
        if isinstance(payload.get("addons"), list):
            booking.addons = payload["addons"]
        booking.save()

        logger.info(
            f"Booking {booking.pk} created for vehicle {vehicle.slug} "
            f"({booking.payment_method})"
        )
        return booking

    @classmethod
    def update(cls, booking: Booking, user, payload: Dict[str, Any]) -> Booking:
        if "payment_method" in payload:
            cls._check_payment_method(payload["payment_method"])
        if "payment_status" in payload and (
            payload["payment_status"] not in Booking.PaymentStatus.values
        ):
            raise BookingError(
                "Invalid payment status. Must be one of: "
                + ", ".join(Booking.PaymentStatus.values)
            )
        if "status" in payload and payload["status"] not in Booking.Status.values:
            raise BookingError("Invalid booking status")

        start = booking.start_date
        end = booking.end_date
        if payload.get("start_date"):
            start = _parse_moment(payload["start_date"], "start date")
        if payload.get("end_date"):
            end = _parse_moment(payload["end_date"], "end date")
        cls._check_window(start, end)

        price = booking.total_price
        if payload.get("total_price") is not None:
            price = _parse_price(payload["total_price"])
            cls._check_price(price)

        if payload.get("status") and booking.is_completed:
            raise BookingError("Cannot update completed booking")
        if not (user.is_staff or booking.vehicle.owner_id == user.pk):
            raise BookingError("Not authorized to update this booking", status=403)

        booking.start_date = start
        booking.end_date = end
        booking.total_price = price
        for field in ["status", "payment_status", "payment_method", "notes"]:
            if field in payload:
                setattr(booking, field, payload[field])
        if isinstance(payload.get("addons"), list):
            booking.addons = payload["addons"]
        booking.save()
        return booking
