from django.db.models import Q
from django.http import JsonResponse

from fleet.models import DevicePurchase
from fleet.serializers import device_to_dict, location_to_dict
from fleet.services import device_service
from fleet.services.device_service import DeviceService

from .base import ApiLoginRequiredMixin, ApiStaffRequiredMixin, ApiView, message


def _visible_devices(user):
    devices = DevicePurchase.objects.select_related("user", "vehicle")
    if user.is_staff:
        return devices
    return devices.filter(user=user)


class DeviceCollectionView(ApiStaffRequiredMixin, ApiView):
    """Staff list every device; any signed-in owner may order one."""

    public_methods = ("post",)

    def get(self, request):
        devices = _visible_devices(request.user)
        status = request.GET.get("status")
        if status:
            devices = devices.filter(status=status)
        return JsonResponse([device_to_dict(d) for d in devices], safe=False)

    def post(self, request):
        if not request.user.is_authenticated:
            return message("Not authorized", 401)
        device = DeviceService.create(request.user, self.payload())
        return JsonResponse(
            {"message": "Device purchase created", "device": device_to_dict(device)},
            status=201,
        )


class DeviceDetailView(ApiLoginRequiredMixin, ApiView):
    def get(self, request, pk):
        device = _visible_devices(request.user).filter(pk=pk).first()
        if device is None:
            return message("Device not found", 404)
        return JsonResponse(device_to_dict(device))

    def put(self, request, pk):
        device = DevicePurchase.objects.select_related("user", "vehicle").filter(pk=pk).first()
        if device is None:
            return message("Device not found", 404)
        device = DeviceService.update(device, request.user, self.payload())
        return JsonResponse(device_to_dict(device))

    def delete(self, request, pk):
        if not request.user.is_staff:
            return message("Staff access required", 403)
        deleted, _ = DevicePurchase.objects.filter(pk=pk).delete()
        if not deleted:
            return message("Device not found", 404)
        return message("Device removed", 200)


class DeviceByVehicleView(ApiView):
    def get(self, request, vehicle_id):
        device = DeviceService.active_for_vehicle(vehicle_id)
        if device is None:
            return JsonResponse({"has_device": False})
        return JsonResponse(
            {"has_device": True, "device_id": device.device_id, "status": device.status}
        )


class DeviceLocationIngestView(ApiView):
    """Positions pushed by the devices themselves."""

    def post(self, request):
        location = device_service.record_location(self.payload())
        return JsonResponse(
            {
                "success": True,
                "message": "Location saved successfully",
                "data": location_to_dict(location),
            },
            status=201,
        )


class DeviceLatestLocationView(ApiLoginRequiredMixin, ApiView):
    def get(self, request, device_id):
        device_id = device_id.upper()
        if not request.user.is_staff:
            owns = DevicePurchase.objects.filter(
                Q(user=request.user) | Q(vehicle__owner=request.user),
                device_id=device_id,
            ).exists()
            if not owns:
                return message("Device not found", 404)
        location = device_service.latest_location(device_id)
        if location is None:
            return message("No location found for this device", 404)
        return JsonResponse(location_to_dict(location))
