import logging
import math
import re
import string
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.crypto import get_random_string
from django.utils.dateparse import parse_datetime

from fleet.exceptions import DeviceError, describe_validation_error
from fleet.models import (
    DEVICE_ID_PATTERN,
    DeviceLocation,
    DevicePurchase,
    SiteSettings,
    Vehicle,
)
from fleet.services.vehicle_service import parse_coordinates

logger = logging.getLogger(__name__)

GENERATED_ID_LENGTH = 12
GENERATED_ID_CHARS = string.ascii_uppercase + string.digits
# What a purchaser may still change on their own device
OWNER_EDITABLE_FIELDS = {"address", "install_location"}


def generate_device_id() -> str:
    for _ in range(5):
        device_id = get_random_string(GENERATED_ID_LENGTH, GENERATED_ID_CHARS)
        if not DevicePurchase.objects.filter(device_id=device_id).exists():
            return device_id
    raise DeviceError("Could not allocate a device ID", status=503)


def normalize_device_id(value: Any) -> str:
    device_id = str(value).strip().upper()
    if not re.fullmatch(DEVICE_ID_PATTERN, device_id):
        raise DeviceError("Device ID must be 8-20 alphanumeric chars")
    return device_id


def parse_address(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise DeviceError("Address must be an object")
    return {
        name: str(value[name]).strip()
        for name in DevicePurchase.ADDRESS_FIELDS
        if value.get(name)
    }


def _parse_price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise DeviceError("Invalid price")
    if not price.is_finite() or price <= 0:
        raise DeviceError("Price must be greater than 0")
    return price


def _check_choice(value: Any, choices, label: str) -> None:
    if value not in choices.values:
        raise DeviceError(
            f"Invalid {label}. Must be one of: {', '.join(choices.values)}"
        )


class DeviceService:
    @staticmethod
    def _apply_install_details(device: DevicePurchase, payload: Dict[str, Any]) -> None:
        if "address" in payload:
            device.address = parse_address(payload["address"] or {})
        coordinates = parse_coordinates(payload.get("install_location"), DeviceError)
        if coordinates is not None:
            device.install_longitude, device.install_latitude = coordinates

    @staticmethod
    def _persist(device: DevicePurchase) -> DevicePurchase:
        try:
            device.full_clean(exclude=["user", "vehicle"])
        except ValidationError as e:
            raise DeviceError(describe_validation_error(e))
        device.save()
        return device

    @staticmethod
    def _device_id_taken(device_id: str, exclude_pk=None) -> bool:
        queryset = DevicePurchase.objects.filter(device_id=device_id)
        if exclude_pk is not None:
            queryset = queryset.exclude(pk=exclude_pk)
        return queryset.exists()

    @classmethod
    def create(cls, user, payload: Dict[str, Any]) -> DevicePurchase:
        vehicle_id = payload.get("vehicle_id")
        if not vehicle_id:
            raise DeviceError("Vehicle ID is required")
        try:
            vehicle = Vehicle.objects.get(pk=vehicle_id)
        except (Vehicle.DoesNotExist, ValueError, TypeError):
            raise DeviceError("Vehicle not found", status=404)
        if not (user.is_staff or vehicle.owner_id == user.pk):
            raise DeviceError(
                "Not authorized to buy a device for this vehicle", status=403
            )

        _check_choice(
            payload.get("payment_method"), DevicePurchase.PaymentMethod, "payment method"
        )
        if cls.active_for_vehicle(vehicle.pk) is not None:
            raise DeviceError("Vehicle already has a tracking device")

        if payload.get("device_id"):
            device_id = normalize_device_id(payload["device_id"])
            if cls._device_id_taken(device_id):
                raise DeviceError("Device ID already registered")
        else:
            device_id = generate_device_id()

        if payload.get("price") not in (None, ""):
            price = _parse_price(payload["price"])
        else:
            price = SiteSettings.load().device_price

        device = DevicePurchase(
            user=user,
            vehicle=vehicle,
            device_id=device_id,
            payment_method=payload["payment_method"],
            price=price,
        )
        cls._apply_install_details(device, payload)
        device = cls._persist(device)
        logger.info(f"Device {device.device_id} ordered for vehicle {vehicle.slug}")
        return device

    @classmethod
    def update(cls, device: DevicePurchase, user, payload: Dict[str, Any]) -> DevicePurchase:
        if not (user.is_staff or device.user_id == user.pk):
            raise DeviceError("Not authorized to update this device", status=403)
        if not user.is_staff:
            if device.status == DevicePurchase.Status.CANCELLED:
                raise DeviceError("Cannot update cancelled device")
            if set(payload) - OWNER_EDITABLE_FIELDS:
                raise DeviceError(
                    "Only staff can change device status or billing", status=403
                )

        if payload.get("device_id"):
            device_id = normalize_device_id(payload["device_id"])
            if cls._device_id_taken(device_id, exclude_pk=device.pk):
                raise DeviceError("Device ID already registered")
            device.device_id = device_id
        if payload.get("price") not in (None, ""):
            device.price = _parse_price(payload["price"])
        if "status" in payload:
            _check_choice(payload["status"], DevicePurchase.Status, "device status")
            device.status = payload["status"]
            if device.status == DevicePurchase.Status.ACTIVE and not device.activation_date:
                device.activation_date = timezone.now()
        if "payment_method" in payload:
            _check_choice(
                payload["payment_method"], DevicePurchase.PaymentMethod, "payment method"
            )
            device.payment_method = payload["payment_method"]
        if "payment_status" in payload:
            _check_choice(
                payload["payment_status"], DevicePurchase.PaymentStatus, "payment status"
            )
            device.payment_status = payload["payment_status"]
        cls._apply_install_details(device, payload)
        return cls._persist(device)

    @staticmethod
    def active_for_vehicle(vehicle_id) -> Optional[DevicePurchase]:
        """Most recent device of ``vehicle_id`` that has not been cancelled."""
        return (
            DevicePurchase.objects.filter(vehicle_id=vehicle_id)
            .exclude(status=DevicePurchase.Status.CANCELLED)
            .order_by("-created_at")
            .first()
        )


def _parse_coordinate(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise DeviceError("Invalid coordinates format")
    if not math.isfinite(number):
        raise DeviceError("Invalid coordinates format")
    return number


def _parse_timestamp(value: Any):
    if value in (None, ""):
        return timezone.now()
    try:
        moment = parse_datetime(str(value))
    except ValueError:
        moment = None
    if moment is None:
        raise DeviceError("Invalid timestamp")
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    if moment > timezone.now():
        raise DeviceError("Timestamp cannot be in the future")
    return moment


def record_location(payload: Dict[str, Any]) -> DeviceLocation:
    """Store a position pushed by a registered tracking device."""
    device_id = payload.get("device_id")
    if not device_id:
        raise DeviceError("Device ID is required")
    latitude = payload.get("latitude")
    longitude = payload.get("longitude")
    if latitude in (None, "") or longitude in (None, ""):
        raise DeviceError("Latitude and longitude are required")

    device_id = str(device_id).strip().upper()
    registered = (
        DevicePurchase.objects.filter(device_id=device_id)
        .exclude(status=DevicePurchase.Status.CANCELLED)
        .exists()
    )
    if not registered:
        raise DeviceError("Unknown device", status=404)

    location = DeviceLocation(
        device_id=device_id,
        latitude=_parse_coordinate(latitude),
        longitude=_parse_coordinate(longitude),
        recorded_at=_parse_timestamp(payload.get("timestamp")),
    )
    try:
        location.full_clean()
    except ValidationError as e:
        raise DeviceError(describe_validation_error(e))
    location.save()
    logger.debug(
        f"Location for device {device_id}: {location.latitude}, {location.longitude}"
    )
    return location


def latest_location(device_id: str) -> Optional[DeviceLocation]:
    return (
        DeviceLocation.objects.filter(device_id=device_id.upper())
        .order_by("-recorded_at")
        .first()
    )
