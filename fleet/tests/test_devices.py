import json
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from fleet.models import DeviceLocation, DevicePurchase, SiteSettings

from .factories import create_user, create_vehicle


def _post_json(client, url, data):
    return client.post(url, data=json.dumps(data), content_type="application/json")


def _put_json(client, url, data):
    return client.put(url, data=json.dumps(data), content_type="application/json")


def create_device(user, vehicle, **overrides):
    data = {
        "user": user,
        "vehicle": vehicle,
        "device_id": "GPS00000001",
        "payment_method": DevicePurchase.PaymentMethod.CASH,
        "price": Decimal("1000.00"),
    }
    data.update(overrides)
    return DevicePurchase.objects.create(**data)


class DevicePurchaseTests(TestCase):
    def setUp(self):
        self.owner = create_user("owner")
        self.stranger = create_user("stranger")
        self.staff = create_user("staff", staff=True)
        self.vehicle = create_vehicle(self.owner, title="Toyota Camry")
        self.url = reverse("fleet:device_list")

    def test_order_requires_login(self):
        resp = _post_json(self.client, self.url, {"vehicle_id": self.vehicle.id})
        self.assertEqual(resp.status_code, 401)

    def test_owner_orders_device_at_site_price(self):
        site = SiteSettings.load()
        site.device_price = Decimal("2500.00")
        site.save()
        self.client.force_login(self.owner)

        resp = _post_json(
            self.client,
            self.url,
            {
                "vehicle_id": self.vehicle.id,
                "payment_method": "bank",
                "address": {"street": "12 Galle Road", "city": "Colombo", "country": "LK"},
                "install_location": [79.85, 6.92],
            },
        )

        self.assertEqual(resp.status_code, 201)
        device = resp.json()["device"]
        self.assertRegex(device["device_id"], r"^[A-Z0-9]{12}$")
        self.assertEqual(Decimal(device["price"]), Decimal("2500"))
        self.assertEqual(device["status"], "pending")
        self.assertEqual(device["address"], {"street": "12 Galle Road", "city": "Colombo"})
        self.assertEqual(device["install_location"], [79.85, 6.92])
        self.assertEqual(device["vehicle"]["slug"], "toyota-camry")

    def test_given_device_id_is_normalized(self):
        self.client.force_login(self.owner)
        resp = _post_json(
            self.client,
            self.url,
            {"vehicle_id": self.vehicle.id, "payment_method": "cash", "device_id": " gps12345 "},
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(DevicePurchase.objects.get().device_id, "GPS12345")

    def test_malformed_device_id_rejected(self):
        self.client.force_login(self.owner)
        resp = _post_json(
            self.client,
            self.url,
            {"vehicle_id": self.vehicle.id, "payment_method": "cash", "device_id": "gps-1"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Device ID must be 8-20 alphanumeric chars")

    def test_stranger_cannot_order_for_vehicle(self):
        self.client.force_login(self.stranger)
        resp = _post_json(
            self.client, self.url, {"vehicle_id": self.vehicle.id, "payment_method": "cash"}
        )
        self.assertEqual(resp.status_code, 403)
        self.assertFalse(DevicePurchase.objects.exists())

    def test_unknown_vehicle_is_404(self):
        self.client.force_login(self.owner)
        resp = _post_json(self.client, self.url, {"vehicle_id": 999, "payment_method": "cash"})
        self.assertEqual(resp.status_code, 404)

    def test_invalid_payment_method_rejected(self):
        self.client.force_login(self.owner)
        resp = _post_json(
            self.client, self.url, {"vehicle_id": self.vehicle.id, "payment_method": "cheque"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Invalid payment method", resp.json()["message"])

    def test_one_live_device_per_vehicle(self):
        create_device(self.owner, self.vehicle)
        self.client.force_login(self.owner)

        resp = _post_json(
            self.client, self.url, {"vehicle_id": self.vehicle.id, "payment_method": "cash"}
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Vehicle already has a tracking device")

    def test_cancelled_device_can_be_replaced(self):
        create_device(self.owner, self.vehicle, status=DevicePurchase.Status.CANCELLED)
        self.client.force_login(self.owner)

        resp = _post_json(
            self.client, self.url, {"vehicle_id": self.vehicle.id, "payment_method": "cash"}
        )
        self.assertEqual(resp.status_code, 201)

    def test_duplicate_device_id_rejected(self):
        other = create_vehicle(self.owner, title="Honda Fit")
        create_device(self.owner, other, device_id="GPS12345")
        self.client.force_login(self.owner)

        resp = _post_json(
            self.client,
            self.url,
            {"vehicle_id": self.vehicle.id, "payment_method": "cash", "device_id": "GPS12345"},
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Device ID already registered")

    def test_list_is_staff_only(self):
        create_device(self.owner, self.vehicle)

        self.client.force_login(self.owner)
        self.assertEqual(self.client.get(self.url).status_code, 403)

        self.client.force_login(self.staff)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()), 1)


class DeviceDetailTests(TestCase):
    def setUp(self):
        self.owner = create_user("owner")
        self.stranger = create_user("stranger")
        self.staff = create_user("staff", staff=True)
        self.vehicle = create_vehicle(self.owner)
        self.device = create_device(self.owner, self.vehicle)
        self.url = reverse("fleet:device_detail", args=[self.device.id])

    def test_purchaser_sees_device(self):
        self.client.force_login(self.owner)
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["device_id"], "GPS00000001")

    def test_stranger_gets_404(self):
        self.client.force_login(self.stranger)
        self.assertEqual(self.client.get(self.url).status_code, 404)

    def test_purchaser_updates_install_address(self):
        self.client.force_login(self.owner)
        resp = _put_json(self.client, self.url, {"address": {"city": "Kandy"}})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["address"], {"city": "Kandy"})

    def test_purchaser_cannot_activate(self):
        self.client.force_login(self.owner)
        resp = _put_json(self.client, self.url, {"status": "active"})
        self.assertEqual(resp.status_code, 403)
        self.device.refresh_from_db()
        self.assertEqual(self.device.status, "pending")

    def test_purchaser_cannot_touch_cancelled_device(self):
        self.device.status = DevicePurchase.Status.CANCELLED
        self.device.save()
        self.client.force_login(self.owner)

        resp = _put_json(self.client, self.url, {"address": {"city": "Kandy"}})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Cannot update cancelled device")

    def test_staff_activation_stamps_date(self):
        self.client.force_login(self.staff)
        resp = _put_json(
            self.client, self.url, {"status": "active", "payment_status": "completed"}
        )
        self.assertEqual(resp.status_code, 200)
        self.device.refresh_from_db()
        self.assertEqual(self.device.status, "active")
        self.assertEqual(self.device.payment_status, "completed")
        self.assertIsNotNone(self.device.activation_date)

    def test_staff_invalid_status_rejected(self):
        self.client.force_login(self.staff)
        resp = _put_json(self.client, self.url, {"status": "lost"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Invalid device status", resp.json()["message"])

    def test_delete_is_staff_only(self):
        self.client.force_login(self.owner)
        self.assertEqual(self.client.delete(self.url).status_code, 403)

        self.client.force_login(self.staff)
        resp = self.client.delete(self.url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Device removed")
        self.assertFalse(DevicePurchase.objects.exists())

    def test_vehicle_lookup(self):
        url = reverse("fleet:device_by_vehicle", args=[self.vehicle.id])
        resp = self.client.get(url)
        self.assertEqual(
            resp.json(), {"has_device": True, "device_id": "GPS00000001", "status": "pending"}
        )

        other = create_vehicle(self.owner, title="Honda Fit")
        url = reverse("fleet:device_by_vehicle", args=[other.id])
        self.assertEqual(self.client.get(url).json(), {"has_device": False})


class DeviceLocationTests(TestCase):
    def setUp(self):
        self.owner = create_user("owner")
        self.stranger = create_user("stranger")
        self.vehicle = create_vehicle(self.owner)
        self.device = create_device(self.owner, self.vehicle)
        self.url = reverse("fleet:location_ingest")

    def test_device_posts_position_without_login(self):
        resp = _post_json(
            self.client,
            self.url,
            {"device_id": "gps00000001", "latitude": "6.9271", "longitude": 79.8612},
        )

        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["coordinates"], [79.8612, 6.9271])
        self.assertEqual(DeviceLocation.objects.get().device_id, "GPS00000001")

    def test_unknown_device_rejected(self):
        resp = _post_json(
            self.client, self.url, {"device_id": "NOPE0000", "latitude": 6.9, "longitude": 79.8}
        )
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(DeviceLocation.objects.exists())

    def test_cancelled_device_rejected(self):
        self.device.status = DevicePurchase.Status.CANCELLED
        self.device.save()
        resp = _post_json(
            self.client, self.url, {"device_id": "GPS00000001", "latitude": 6.9, "longitude": 79.8}
        )
        self.assertEqual(resp.status_code, 404)

    def test_missing_coordinates(self):
        resp = _post_json(self.client, self.url, {"device_id": "GPS00000001", "latitude": 6.9})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Latitude and longitude are required")

    def test_out_of_range_latitude(self):
        resp = _post_json(
            self.client, self.url, {"device_id": "GPS00000001", "latitude": 91, "longitude": 79.8}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("latitude", resp.json()["message"])

    def test_future_timestamp_rejected(self):
        later = timezone.now() + timedelta(hours=2)
        resp = _post_json(
            self.client,
            self.url,
            {
                "device_id": "GPS00000001",
                "latitude": 6.9,
                "longitude": 79.8,
                "timestamp": later.isoformat(),
            },
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "Timestamp cannot be in the future")

    def test_latest_position_for_owner(self):
        earlier = timezone.now() - timedelta(hours=1)
        DeviceLocation.objects.create(
            device_id="GPS00000001", latitude=7.29, longitude=80.63, recorded_at=earlier
        )
        DeviceLocation.objects.create(device_id="GPS00000001", latitude=6.92, longitude=79.86)
        url = reverse("fleet:device_latest_location", args=["gps00000001"])

        self.client.force_login(self.owner)
        resp = self.client.get(url)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["coordinates"], [79.86, 6.92])

    def test_latest_position_hidden_from_stranger(self):
        DeviceLocation.objects.create(device_id="GPS00000001", latitude=6.92, longitude=79.86)
        url = reverse("fleet:device_latest_location", args=["GPS00000001"])

        self.client.force_login(self.stranger)
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_no_position_yet(self):
        url = reverse("fleet:device_latest_location", args=["GPS00000001"])
        self.client.force_login(self.owner)
        resp = self.client.get(url)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "No location found for this device")


class DevicePriceTests(TestCase):
    def test_public_price_uses_defaults(self):
        resp = self.client.get(reverse("fleet:device_price"))
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(Decimal(body["device_price"]), Decimal("1000"))
        self.assertEqual(body["currency"], "LKR")
