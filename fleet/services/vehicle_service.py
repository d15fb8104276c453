import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple, Type

from django.core.exceptions import ValidationError
from django.utils import timezone

from fleet.exceptions import ServiceError, VehicleError, describe_validation_error
from fleet.models import LICENSE_PLATE_PATTERN, Vehicle, VehicleType
from fleet.slugs import SlugError

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = [
    "title",
    "image",
    "description",
    "seats",
    "bags",
    "transmission",
    "fuel_type",
    "available",
    "location",
    "pickup_address",
    "year",
    "model",
    "brand",
    "mileage",
    "color",
    "license_plate",
]


def parse_coordinates(
    value: Any, error: Type[ServiceError] = VehicleError
) -> Optional[Tuple[float, float]]:
    """
    Accept ``[lng, lat]`` as a list, a JSON array string or ``"lng, lat"``.

    Returns ``(longitude, latitude)`` or None when nothing was supplied.
    """
    if value in (None, ""):
        return None
    try:
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                value = json.loads(value)
            else:
                value = [part.strip() for part in value.split(",")]
        longitude, latitude = (float(part) for part in value)
    except (TypeError, ValueError):
        raise error("Invalid coordinates format")
    return longitude, latitude


def parse_features(value: Any) -> Dict[str, bool]:
    if not isinstance(value, dict):
        raise VehicleError("Features must be an object of flags")
    features = {}
    for name in Vehicle.FEATURE_FLAGS:
        if name in value:
            flag = value[name]
            if isinstance(flag, str):
                flag = flag.lower() == "true"
            features[name] = bool(flag)
    return features


def _to_decimal(value: Any, label: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise VehicleError(f"Invalid {label}")
    if not number.is_finite():
        raise VehicleError(f"Invalid {label}")
    return number


def _to_int(value: Any, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise VehicleError(f"Invalid {label}")


class VehicleService:
    @staticmethod
    def validate_core(payload: Dict[str, Any], partial: bool) -> None:
        """Checks applied before any field is written."""
        price = payload.get("price_per_day")
        if price is not None or not partial:
            if price is None or _to_decimal(price, "price per day") <= 0:
                raise VehicleError("Price per day must be greater than 0")

        year = payload.get("year")
        if year is not None or not partial:
            year = _to_int(year, "vehicle year")
            if year < 1900 or year > timezone.now().year:
                raise VehicleError("Invalid vehicle year")

        plate = payload.get("license_plate")
        if plate is not None or not partial:
            if not isinstance(plate, str) or not re.fullmatch(LICENSE_PLATE_PATTERN, plate):
                raise VehicleError("Invalid license plate format")

    @staticmethod
    def _resolve_vehicle_type(value: Any) -> Optional[VehicleType]:
        if value in (None, "", "null", "undefined"):
            return None
        try:
            return VehicleType.objects.get(pk=int(value))
        except (TypeError, ValueError, VehicleType.DoesNotExist):
            raise VehicleError("Invalid vehicle type id")

    @classmethod
    def apply(cls, vehicle: Vehicle, payload: Dict[str, Any]) -> Vehicle:
        for field in EDITABLE_FIELDS:
            if field in payload:
                setattr(vehicle, field, payload[field])
        if "price_per_day" in payload:
            vehicle.price_per_day = _to_decimal(payload["price_per_day"], "price per day")
        if "vehicle_type" in payload:
            vehicle.vehicle_type = cls._resolve_vehicle_type(payload["vehicle_type"])
        if "features" in payload:
            vehicle.features = parse_features(payload["features"])
        coordinates = parse_coordinates(payload.get("coordinates"))
        if coordinates is not None:
            vehicle.pickup_longitude, vehicle.pickup_latitude = coordinates
        return vehicle

    @staticmethod
    def _persist(vehicle: Vehicle) -> Vehicle:
        try:
            vehicle.full_clean(exclude=["slug", "owner"])
        except ValidationError as e:
            raise VehicleError(describe_validation_error(e))
        try:
            vehicle.save()
        except SlugError as e:
            raise VehicleError(str(e))
        return vehicle

    @classmethod
    def create(cls, owner, payload: Dict[str, Any]) -> Vehicle:
        cls.validate_core(payload, partial=False)
        vehicle = cls.apply(Vehicle(owner=owner), payload)
        vehicle = cls._persist(vehicle)
        logger.info(f"Vehicle {vehicle.pk} listed as {vehicle.slug}")
        return vehicle

    @classmethod
    def update(cls, vehicle: Vehicle, user, payload: Dict[str, Any]) -> Vehicle:
        if not (user.is_staff or vehicle.owner_id == user.pk):
            raise VehicleError("Not authorized to update this vehicle", status=403)
        cls.validate_core(payload, partial=True)
        return cls._persist(cls.apply(vehicle, payload))

    @staticmethod
    def delete(vehicle: Vehicle, user) -> None:
        if not (user.is_staff or vehicle.owner_id == user.pk):
            raise VehicleError("Not authorized to delete this vehicle", status=403)
        vehicle.delete()
