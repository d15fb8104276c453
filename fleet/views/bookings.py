from django.db.models import Q
from django.http import JsonResponse

from fleet.models import Booking
from fleet.serializers import booking_to_dict
from fleet.services.booking_service import BookingService

from .base import ApiLoginRequiredMixin, ApiView, message


def _visible_bookings(user):
    bookings = Booking.objects.select_related("user", "vehicle")
    if user.is_staff:
        return bookings
    return bookings.filter(Q(user=user) | Q(vehicle__owner=user))


class BookingCollectionView(ApiLoginRequiredMixin, ApiView):
    def get(self, request):
        return JsonResponse(
            [booking_to_dict(b) for b in _visible_bookings(request.user)], safe=False
        )

    def post(self, request):
        booking = BookingService.create(request.user, self.payload())
        return JsonResponse(booking_to_dict(booking), status=201)


class BookingDetailView(ApiLoginRequiredMixin, ApiView):
    def get(self, request, pk):
        booking = _visible_bookings(request.user).filter(pk=pk).first()
        if booking is None:
            return message("Booking not found", 404)
        return JsonResponse(booking_to_dict(booking))

    def put(self, request, pk):
        booking = Booking.objects.select_related("user", "vehicle").filter(pk=pk).first()
        if booking is None:
            return message("Booking not found", 404)
        booking = BookingService.update(booking, request.user, self.payload())
        return JsonResponse(booking_to_dict(booking))

    def delete(self, request, pk):
        if not request.user.is_staff:
            return message("Staff access required", 403)
        booking = Booking.objects.filter(pk=pk).first()
        if booking is None:
            return message("Booking not found", 404)
        booking.delete()
        return message("Booking removed", 200)
