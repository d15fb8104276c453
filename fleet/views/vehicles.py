from django.http import JsonResponse

from fleet.models import Vehicle, WishlistItem
from fleet.serializers import vehicle_to_dict
from fleet.services import availability
from fleet.services.vehicle_service import VehicleService

from .base import ApiLoginRequiredMixin, ApiView, message

HOME_PAGE_LIMIT = 16


def _wishlisted_ids(user):
    if not user.is_authenticated:
        return None
    return set(
        WishlistItem.objects.filter(user=user).values_list("vehicle_id", flat=True)
    )


def _render(vehicle, wishlisted, **extra):
    data = vehicle_to_dict(vehicle)
    if wishlisted is not None:
        data["in_wishlist"] = vehicle.id in wishlisted
    data.update(extra)
    return data


def _find_vehicle(**lookup):
    try:
        return Vehicle.objects.select_related("vehicle_type").get(**lookup)
    except (Vehicle.DoesNotExist, ValueError):
        return None


class VehicleCollectionView(ApiLoginRequiredMixin, ApiView):
    """List every vehicle with availability flags, or list a new one."""

    public_methods = ("get",)

    def get(self, request):
        interval = availability.resolve_interval(
            request.GET.get("start_date"), request.GET.get("end_date")
        )
        booked = availability.booked_vehicle_ids(interval)
        wishlisted = _wishlisted_ids(request.user)

        vehicles = Vehicle.objects.select_related("vehicle_type")
        return JsonResponse(
            [
                _render(
                    vehicle,
                    wishlisted,
                    available_in_range=vehicle.id not in booked,
                    available_today=vehicle.id not in booked and vehicle.available,
                )
                for vehicle in vehicles
            ],
            safe=False,
        )

    def post(self, request):
        vehicle = VehicleService.create(request.user, self.payload())
        return JsonResponse(vehicle_to_dict(vehicle), status=201)


class AvailableVehicleListView(ApiView):
    """Cheapest unbooked vehicles for the requested range, for the home page."""

    def get(self, request):
        interval = availability.resolve_interval(
            request.GET.get("start_date"), request.GET.get("end_date")
        )
        booked = availability.booked_vehicle_ids(interval)
        wishlisted = _wishlisted_ids(request.user)

        vehicles = (
            Vehicle.objects.select_related("vehicle_type")
            .filter(available=True)
            .exclude(id__in=booked)
            .order_by("price_per_day")[:HOME_PAGE_LIMIT]
        )
        return JsonResponse(
            [_render(vehicle, wishlisted) for vehicle in vehicles], safe=False
        )


class VehicleBySlugView(ApiView):
    def get(self, request, slug):
        vehicle = _find_vehicle(slug=slug)
        if vehicle is None:
            return message("Vehicle not found", 404)

        booked_today = availability.booked_vehicle_ids(availability.today_interval())
        return JsonResponse(
            _render(
                vehicle,
                _wishlisted_ids(request.user),
                available_in_range=vehicle.id not in booked_today,
                booked_dates=availability.booked_ranges(vehicle),
            )
        )


class VehicleDetailView(ApiLoginRequiredMixin, ApiView):
    public_methods = ("get",)

    def get(self, request, pk):
        vehicle = _find_vehicle(pk=pk)
        if vehicle is None:
            return message("Vehicle not found", 404)

        booked_today = availability.booked_vehicle_ids(availability.today_interval())
        return JsonResponse(
            _render(
                vehicle,
                _wishlisted_ids(request.user),
                available_today=vehicle.id not in booked_today and vehicle.available,
                booked_dates=availability.booked_ranges(vehicle),
            )
        )

    def put(self, request, pk):
        vehicle = _find_vehicle(pk=pk)
        if vehicle is None:
            return message("Vehicle not found", 404)
        vehicle = VehicleService.update(vehicle, request.user, self.payload())
        return JsonResponse(vehicle_to_dict(vehicle))

    def delete(self, request, pk):
        vehicle = _find_vehicle(pk=pk)
        if vehicle is None:
            return message("Vehicle not found", 404)
        VehicleService.delete(vehicle, request.user)
        return message("Vehicle removed", 200)
