import stripe
from django.conf import settings
from django.http import JsonResponse

from fleet.models import Booking
from fleet.serializers import booking_to_dict

from ..services.payment_service import PaymentService
from .base import ApiLoginRequiredMixin, ApiView, message


class BookingCheckoutView(ApiLoginRequiredMixin, ApiView):
    """Start a Stripe Checkout session for a card booking."""

    def post(self, request, pk):
        booking = (
            Booking.objects.select_related("vehicle")
            .filter(pk=pk, user=request.user)
            .first()
        )
        if booking is None:
            return message("Booking not found", 404)
        if booking.payment_method != Booking.PaymentMethod.CARD:
            return message("Only card bookings can be paid online", 400)
        if booking.payment_status == Booking.PaymentStatus.PAID:
            return message("Booking is already paid", 400)

        try:
            url = PaymentService.create_checkout_session(booking, settings.SITE_URL)
        except stripe.StripeError:
            return message("Payment provider unavailable", 502)
        return JsonResponse({"url": url})


class PaymentSuccessView(ApiView):
    def get(self, request, *args, **kwargs):
        session_id = request.GET.get("session_id")
        booking_id = request.GET.get("booking_id")

        if not session_id or not booking_id:
            return message("Invalid payment session.", 400)

        success, booking = PaymentService.verify_payment(session_id, booking_id)
        if success:
            return JsonResponse(
                {
                    "message": "Payment successful! Your booking is confirmed.",
                    "booking": booking_to_dict(booking),
                }
            )
        return message("Payment verification failed.", 402)


class PaymentCancelView(ApiView):
    def get(self, request, *args, **kwargs):
        return JsonResponse(
            {
                "message": "Payment cancelled. Your booking is saved with payment pending.",
                "booking_id": request.GET.get("booking_id"),
            }
        )
