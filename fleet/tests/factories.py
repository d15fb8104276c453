import itertools
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from fleet.models import Booking, Vehicle

User = get_user_model()

_plates = itertools.count(1)


def create_user(username, staff=False):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="pass123",
        is_staff=staff,
    )


def vehicle_payload(**overrides):
    data = {
        "title": "Toyota Camry",
        "price_per_day": "55.00",
        "image": "/uploads/camry.jpg",
        "description": "Comfortable hybrid sedan",
        "seats": 5,
        "bags": 2,
        "transmission": "Auto",
        "fuel_type": "Hybrid",
        "location": "Colombo",
        "pickup_address": "12 Galle Road",
        "year": 2021,
        "model": "Camry",
        "brand": "Toyota",
        "mileage": 12000,
        "color": "White",
        "license_plate": f"TST-{next(_plates):04d}",
    }
    data.update(overrides)
    return data


def create_vehicle(owner, **overrides):
    return Vehicle.objects.create(owner=owner, **vehicle_payload(**overrides))


def create_booking(user, vehicle, start=None, days=2, **overrides):
    start = start or timezone.now() - timedelta(hours=1)
    data = {
        "user": user,
        "vehicle": vehicle,
        "device_id": "test-device",
        "start_date": start,
        "end_date": start + timedelta(days=days),
        "total_price": "110.00",
        "payment_method": Booking.PaymentMethod.CASH,
        "status": Booking.Status.ACTIVE,
    }
    data.update(overrides)
    return Booking.objects.create(**data)
