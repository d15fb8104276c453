from django.core.management.base import BaseCommand

from fleet.models import VehicleType


class Command(BaseCommand):
    help = "Create the default vehicle types if they are missing."

    def handle(self, *args, **options):
        created = VehicleType.seed_defaults()
        self.stdout.write(
            self.style.SUCCESS(
                f"Vehicle types ready ({created} created, "
                f"{VehicleType.objects.count()} total)"
            )
        )
