from unittest import mock

from django.db import IntegrityError
from django.test import TestCase

from fleet import slugs
from fleet.models import Vehicle, VehicleType
from fleet.slugs import (
    InvalidTitle,
    aassign_slug,
    amodel_slug_oracle,
    model_slug_oracle,
)

from .factories import create_user, create_vehicle, vehicle_payload


class VehicleSlugHookTests(TestCase):
    def setUp(self):
        self.owner = create_user("owner")

    def test_new_vehicle_gets_slug_from_title(self):
        vehicle = create_vehicle(self.owner, title="Toyota Camry!!")
        self.assertEqual(vehicle.slug, "toyota-camry")

    def test_same_title_twice_gets_suffix(self):
        first = create_vehicle(self.owner, title="Toyota Camry")
        second = create_vehicle(self.owner, title="Toyota Camry")

        self.assertEqual(first.slug, "toyota-camry")
        self.assertEqual(second.slug, "toyota-camry-1")

    def test_third_copy_takes_next_suffix(self):
        for _ in range(2):
            create_vehicle(self.owner, title="Nissan Leaf")
        third = create_vehicle(self.owner, title="Nissan Leaf")
        self.assertEqual(third.slug, "nissan-leaf-2")

    def test_unchanged_title_keeps_slug(self):
        """Updating other fields never recomputes the slug."""
        vehicle = create_vehicle(self.owner, title="Honda Fit")
        Vehicle.objects.filter(pk=vehicle.pk).update(slug="legacy-fit")

        vehicle = Vehicle.objects.get(pk=vehicle.pk)
        vehicle.price_per_day = "60.00"
        vehicle.save()

        vehicle.refresh_from_db()
        self.assertEqual(vehicle.slug, "legacy-fit")

    def test_unchanged_title_ignores_new_collision(self):
        first = create_vehicle(self.owner, title="Honda Fit")
        Vehicle.objects.filter(pk=first.pk).update(slug="shared")
        second = create_vehicle(self.owner, title="Shared")

        first = Vehicle.objects.get(pk=first.pk)
        first.mileage = 500
        first.save()

        self.assertEqual(first.slug, "shared")
        self.assertEqual(second.slug, "shared-1")

    def test_changed_title_recomputes_slug(self):
        vehicle = create_vehicle(self.owner, title="Honda Fit")
        create_vehicle(self.owner, title="Honda Jazz")

        vehicle = Vehicle.objects.get(pk=vehicle.pk)
        vehicle.title = "Honda Jazz"
        vehicle.save()

        self.assertEqual(vehicle.slug, "honda-jazz-1")

    def test_resaving_keeps_own_slug(self):
        vehicle = create_vehicle(self.owner, title="Kia Rio")
        vehicle.title = "Kia Rio!"
        vehicle.save()
        self.assertEqual(vehicle.slug, "kia-rio")

    def test_title_change_tracked_after_save(self):
        vehicle = create_vehicle(self.owner, title="Kia Rio")
        self.assertFalse(vehicle.title_changed())
        vehicle.title = "Kia Picanto"
        self.assertTrue(vehicle.title_changed())

    def test_deferred_title_keeps_slug(self):
        first = create_vehicle(self.owner, title="Honda Fit")
        second = create_vehicle(self.owner, title="Honda Fit")
        first.delete()

        vehicle = Vehicle.objects.defer("title").get(pk=second.pk)
        self.assertFalse(vehicle.title_changed())
        vehicle.mileage = 900
        vehicle.save()

        vehicle.refresh_from_db()
        self.assertEqual(vehicle.slug, "honda-fit-1")
        self.assertEqual(vehicle.mileage, 900)

    def test_deferred_title_read_then_saved_keeps_slug(self):
        first = create_vehicle(self.owner, title="Honda Fit")
        second = create_vehicle(self.owner, title="Honda Fit")
        first.delete()

        vehicle = Vehicle.objects.only("id", "slug", "mileage").get(pk=second.pk)
        self.assertEqual(vehicle.title, "Honda Fit")
        self.assertFalse(vehicle.title_changed())
        vehicle.save()

        self.assertEqual(Vehicle.objects.get(pk=second.pk).slug, "honda-fit-1")

    def test_deferred_title_assigned_recomputes_slug(self):
        vehicle = create_vehicle(self.owner, title="Honda Fit")

        vehicle = Vehicle.objects.defer("title").get(pk=vehicle.pk)
        vehicle.title = "Honda Civic"
        self.assertTrue(vehicle.title_changed())
        vehicle.save(update_fields=["title"])

        self.assertEqual(Vehicle.objects.get(pk=vehicle.pk).slug, "honda-civic")

    def test_update_fields_with_title_writes_slug(self):
        vehicle = create_vehicle(self.owner, title="Kia Rio")
        vehicle.title = "Kia Picanto"
        vehicle.save(update_fields=["title"])

        self.assertEqual(Vehicle.objects.get(pk=vehicle.pk).slug, "kia-picanto")

    def test_update_fields_without_title_leaves_slug(self):
        vehicle = create_vehicle(self.owner, title="Kia Rio")
        vehicle.title = "Kia Picanto"
        vehicle.mileage = 10
        vehicle.save(update_fields=["mileage"])

        stored = Vehicle.objects.get(pk=vehicle.pk)
        self.assertEqual((stored.title, stored.slug), ("Kia Rio", "kia-rio"))
        self.assertEqual(vehicle.slug, "kia-rio")
        # The unsaved title is still pending for the next full save
        self.assertTrue(vehicle.title_changed())
        vehicle.save()
        self.assertEqual(Vehicle.objects.get(pk=vehicle.pk).slug, "kia-picanto")

    def test_failed_retries_keep_title_snapshot(self):
        create_vehicle(self.owner, title="Toyota Camry")
        vehicle = create_vehicle(self.owner, title="Toyota Corolla")
        vehicle.title = "Toyota Camry"

        with self.settings(SLUG_SAVE_RETRIES=1):
            with mock.patch("fleet.signals.assign_slug", return_value="toyota-camry"):
                with self.assertRaises(IntegrityError):
                    vehicle.save()

        self.assertEqual(vehicle._loaded_title, "Toyota Corolla")
        self.assertTrue(vehicle.title_changed())
        self.assertEqual(
            Vehicle.objects.get(pk=vehicle.pk).slug, "toyota-corolla"
        )

    def test_degenerate_title_aborts_save(self):
        with self.assertRaises(InvalidTitle):
            create_vehicle(self.owner, title="!!!")
        self.assertFalse(Vehicle.objects.exists())

    def test_oracle_failure_aborts_save(self):
        def broken(slug, exclude_id):
            raise ConnectionError("database unavailable")

        with mock.patch("fleet.signals.model_slug_oracle", return_value=broken):
            with self.assertRaises(ConnectionError):
                create_vehicle(self.owner, title="Toyota Camry")
        self.assertFalse(Vehicle.objects.exists())

    def test_concurrent_slug_is_retried(self):
        """A slug claimed between lookup and insert is reassigned."""
        create_vehicle(self.owner, title="Toyota Camry")
        real_assign = slugs.assign_slug
        stale = iter(["toyota-camry"])

        def racing_assign(title, exclude_id, exists, max_attempts=None):
            # first lookup ran before the other writer committed
            slug = next(stale, None)
            if slug is not None:
                return slug
            return real_assign(title, exclude_id, exists, max_attempts)

        with mock.patch("fleet.signals.assign_slug", side_effect=racing_assign):
            vehicle = create_vehicle(self.owner, title="Toyota Camry")

        self.assertEqual(vehicle.slug, "toyota-camry-1")
        self.assertEqual(Vehicle.objects.count(), 2)

    def test_other_integrity_errors_propagate(self):
        create_vehicle(self.owner, title="Toyota Camry", license_plate="ABC-1234")
        with self.assertRaises(IntegrityError):
            create_vehicle(self.owner, title="Toyota Corolla", license_plate="ABC-1234")

    def test_model_oracle_excludes_record(self):
        vehicle = create_vehicle(self.owner, title="Mazda 3")
        exists = model_slug_oracle(Vehicle)

        self.assertTrue(exists("mazda-3", None))
        self.assertFalse(exists("mazda-3", vehicle.pk))
        self.assertFalse(exists("mazda-6", None))

    async def test_async_oracle_matches_sync(self):
        vehicle = await Vehicle.objects.acreate(
            owner=self.owner, **vehicle_payload(title="Mazda 3")
        )
        exists = amodel_slug_oracle(Vehicle)

        self.assertTrue(await exists("mazda-3", None))
        self.assertFalse(await exists("mazda-3", vehicle.pk))
        self.assertEqual(await aassign_slug("Mazda 3", None, exists), "mazda-3-1")


class VehicleTypeSeedTests(TestCase):
    def test_seed_defaults_is_idempotent(self):
        VehicleType.objects.create(name="car")

        self.assertEqual(VehicleType.seed_defaults(), 5)
        self.assertEqual(VehicleType.seed_defaults(), 0)
        self.assertEqual(VehicleType.objects.count(), 6)
