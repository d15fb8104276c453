import logging

from django.http import JsonResponse

from fleet.models import VehicleType
from fleet.serializers import vehicle_type_to_dict

from .base import ApiStaffRequiredMixin, ApiView, message

logger = logging.getLogger(__name__)


class VehicleTypeCollectionView(ApiStaffRequiredMixin, ApiView):
    public_methods = ("get",)

    def get(self, request):
        if not VehicleType.objects.exists():
            created = VehicleType.seed_defaults()
            logger.info(f"Seeded {created} default vehicle types")
        return JsonResponse(
            [vehicle_type_to_dict(t) for t in VehicleType.objects.order_by("name")],
            safe=False,
        )

    def post(self, request):
        data = self.payload()
        name = (data.get("name") or "").strip()
        if not name:
            return message("Name is required", 400)
        if VehicleType.objects.filter(name__iexact=name).exists():
            return message("Type already exists", 409)

        vehicle_type = VehicleType.objects.create(
            name=name,
            description=data.get("description") or "",
            image=data.get("image") or "",
        )
        return JsonResponse(vehicle_type_to_dict(vehicle_type), status=201)


class VehicleTypeDetailView(ApiStaffRequiredMixin, ApiView):
    def get_object(self, pk):
        return VehicleType.objects.filter(pk=pk).first()

    def get(self, request, pk):
        vehicle_type = self.get_object(pk)
        if vehicle_type is None:
            return message("Not found", 404)
        return JsonResponse(vehicle_type_to_dict(vehicle_type))

    def put(self, request, pk):
        vehicle_type = self.get_object(pk)
        if vehicle_type is None:
            return message("Not found", 404)

        data = self.payload()
        name = (data.get("name") or "").strip()
        if name:
            clash = VehicleType.objects.filter(name__iexact=name).exclude(pk=pk)
            if clash.exists():
                return message("Type already exists", 409)
            vehicle_type.name = name
        if "description" in data:
            vehicle_type.description = data["description"] or ""
        if data.get("image"):
            vehicle_type.image = data["image"]
        vehicle_type.save()
        return JsonResponse(vehicle_type_to_dict(vehicle_type))

    def delete(self, request, pk):
        vehicle_type = self.get_object(pk)
        if vehicle_type is None:
            return message("Not found", 404)
        vehicle_type.delete()
        return message("Deleted", 200)
