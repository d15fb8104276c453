import logging
from decimal import ROUND_HALF_UP, Decimal

import stripe
from django.conf import settings
from django.urls import reverse

from ..models import Booking

logger = logging.getLogger(__name__)


def _amount_in_cents(total: Decimal) -> int:
    return int((total * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:
    @staticmethod
    def create_checkout_session(booking: Booking, domain_url: str):
        stripe.api_key = settings.STRIPE_SECRET_KEY

        success_path = reverse("fleet:payment_success")
        cancel_path = reverse("fleet:payment_cancel")
        try:
            checkout_session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": settings.STRIPE_CURRENCY,
                            "unit_amount": _amount_in_cents(booking.total_price),
                            "product_data": {
                                "name": f"Rental: {booking.vehicle.title}",
                                "description": (
                                    f"{booking.start_date:%Y-%m-%d} to "
                                    f"{booking.end_date:%Y-%m-%d}"
                                ),
                            },
                        },
                        "quantity": 1,
                    },
                ],
                mode="payment",
                success_url=f"{domain_url}{success_path}?session_id={{CHECKOUT_SESSION_ID}}&booking_id={booking.id}",
                cancel_url=f"{domain_url}{cancel_path}?booking_id={booking.id}",
                metadata={"booking_id": booking.id},
            )
        except stripe.StripeError as e:
            logger.error(f"Checkout session failed for booking {booking.id}: {e}")
            raise

        booking.stripe_session_id = checkout_session.id
        booking.save(update_fields=["stripe_session_id", "updated_at"])
        return checkout_session.url

    @staticmethod
    def verify_payment(session_id: str, booking_id: str):
        stripe.api_key = settings.STRIPE_SECRET_KEY
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            logger.error(f"Could not retrieve checkout session {session_id}: {e}")
            return False, None

        if session.payment_status != "paid":
            return False, None
        try:
            booking = Booking.objects.get(id=booking_id)
        except (Booking.DoesNotExist, ValueError):
            logger.warning(f"Paid session {session_id} references unknown booking {booking_id}")
            return False, None

        metadata = session.metadata or {}
        if (
            str(metadata.get("booking_id")) != str(booking.id)
            and booking.stripe_session_id != session_id
        ):
            logger.warning(f"Session {session_id} does not belong to booking {booking.id}")
            return False, None

        if booking.payment_status != Booking.PaymentStatus.PAID:
            booking.payment_status = Booking.PaymentStatus.PAID
            booking.status = Booking.Status.CONFIRMED
            booking.stripe_payment_intent = session.payment_intent or ""
            booking.save()
            logger.info(f"Booking {booking.id} paid via session {session_id}")
        return True, booking
