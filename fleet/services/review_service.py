import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from fleet.exceptions import ReviewError
from fleet.models import Booking, Review, Vehicle

logger = logging.getLogger(__name__)


def refresh_vehicle_rating(vehicle_id) -> None:
    """Recompute the cached rating summary of a vehicle from its reviews."""
    stats = Review.objects.filter(booking__vehicle_id=vehicle_id).aggregate(
        average=Avg("rating"), count=Count("id")
    )
    if stats["count"]:
        average = Decimal(str(stats["average"])).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    else:
        average = Decimal("5")
    # update() keeps the slug hook out of a rating refresh
    Vehicle.objects.filter(pk=vehicle_id).update(
        average_rating=average, review_count=stats["count"]
    )


class ReviewService:
    @staticmethod
    def create(user, payload: Dict[str, Any]) -> Review:
        booking_id = payload.get("booking_id")
        rating = payload.get("rating")
        if not booking_id or rating in (None, ""):
            raise ReviewError("booking_id and rating are required")
        try:
            rating = int(rating)
        except (TypeError, ValueError):
            raise ReviewError("Rating must be between 1 and 5")
        if not 1 <= rating <= 5:
            raise ReviewError("Rating must be between 1 and 5")

        try:
            booking = Booking.objects.get(pk=booking_id)
        except (Booking.DoesNotExist, ValueError, TypeError):
            raise ReviewError("Booking not found", status=404)
        if booking.user_id != user.pk:
            raise ReviewError("Not authorized to review this booking", status=403)

        photos = payload.get("photos")
        if not isinstance(photos, list):
            photos = []
        try:
            with transaction.atomic():
                review = Review.objects.create(
                    booking=booking,
                    user=user,
                    rating=rating,
                    comment=payload.get("comment") or "",
                    photos=[str(photo) for photo in photos],
                )
        except IntegrityError:
            raise ReviewError("Booking already reviewed")

        refresh_vehicle_rating(booking.vehicle_id)
        logger.info(f"Review {review.pk} ({rating}/5) left for booking {booking.pk}")
        return review

    @staticmethod
    def visible(filters: Dict[str, Any]):
        """Reviews for one booking, or for every booking of one vehicle."""
        reviews = Review.objects.select_related("user")
        if filters.get("booking_id"):
            return reviews.filter(booking_id=filters["booking_id"])
        if filters.get("vehicle_id"):
            return reviews.filter(booking__vehicle_id=filters["vehicle_id"])
        return reviews
