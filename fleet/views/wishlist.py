from django.db import IntegrityError, transaction
from django.http import JsonResponse

from fleet.models import Vehicle, WishlistItem
from fleet.serializers import vehicle_to_dict
from fleet.services import availability

from .base import ApiLoginRequiredMixin, ApiView, message


def _item_to_dict(item, booked_today):
    vehicle = item.vehicle
    data = vehicle_to_dict(vehicle)
    data["available_today"] = vehicle.id not in booked_today and vehicle.available
    return {"id": item.id, "created_at": item.created_at, "vehicle": data}


class WishlistView(ApiLoginRequiredMixin, ApiView):
    def get(self, request):
        items = WishlistItem.objects.filter(user=request.user).select_related(
            "vehicle", "vehicle__vehicle_type"
        )
        booked_today = availability.booked_vehicle_ids(availability.today_interval())
        return JsonResponse(
            [_item_to_dict(item, booked_today) for item in items], safe=False
        )

    def post(self, request):
        vehicle_id = self.payload().get("vehicle_id")
        if not vehicle_id:
            return message("Vehicle ID is required", 400)
        try:
            vehicle = Vehicle.objects.filter(pk=vehicle_id).first()
        except (TypeError, ValueError):
            vehicle = None
        if vehicle is None:
            return message("Vehicle not found", 404)

        try:
            with transaction.atomic():
                item = WishlistItem.objects.create(user=request.user, vehicle=vehicle)
        except IntegrityError:
            return message("Vehicle already in wishlist", 400)

        booked_today = availability.booked_vehicle_ids(availability.today_interval())
        return JsonResponse(
            {
                "message": "Vehicle added to wishlist",
                "wishlist_item": _item_to_dict(item, booked_today),
            },
            status=201,
        )


class WishlistItemView(ApiLoginRequiredMixin, ApiView):
    def delete(self, request, vehicle_id):
        deleted, _ = WishlistItem.objects.filter(
            user=request.user, vehicle_id=vehicle_id
        ).delete()
        if not deleted:
            return message("Vehicle not found in wishlist", 404)
        return message("Vehicle removed from wishlist", 200)
