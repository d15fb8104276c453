"""
Management command to recompute vehicle slugs from their titles.

Usage:
    python manage.py regenerate_slugs              # Rewrite slugs that differ
    python manage.py regenerate_slugs --dry-run    # Preview without making changes
"""
from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from fleet.models import Vehicle
from fleet.slugs import SlugError, assign_slug, model_slug_oracle


class Command(BaseCommand):
    help = "Recompute every vehicle slug from its current title."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Preview changes without making them.",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        exists = model_slug_oracle(Vehicle)

        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN - no changes will be made"))

        changed = 0
        for vehicle in Vehicle.objects.order_by("id").only("id", "title", "slug"):
            try:
                slug = assign_slug(vehicle.title, vehicle.pk, exists)
            except SlugError as e:
                raise CommandError(f"Vehicle {vehicle.pk}: {e}")
            if slug == vehicle.slug:
                continue

            changed += 1
            if dry_run:
                self.stdout.write(f"Would change {vehicle.slug} -> {slug}")
            else:
                Vehicle.objects.filter(pk=vehicle.pk).update(slug=slug)
                self.stdout.write(f"Changed {vehicle.slug} -> {slug}")

        if changed == 0:
            self.stdout.write("All slugs are up to date")
        elif not dry_run:
            self.stdout.write(self.style.SUCCESS(f"Updated {changed} slugs"))
