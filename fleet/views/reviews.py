from django.http import JsonResponse

from fleet.serializers import review_to_dict
from fleet.services.review_service import ReviewService

from .base import ApiLoginRequiredMixin, ApiView


class ReviewCollectionView(ApiLoginRequiredMixin, ApiView):
    public_methods = ("get",)

    def get(self, request):
        reviews = ReviewService.visible(
            {
                "booking_id": request.GET.get("booking_id"),
                "vehicle_id": request.GET.get("vehicle_id"),
            }
        )
        return JsonResponse([review_to_dict(r) for r in reviews], safe=False)

    def post(self, request):
        review = ReviewService.create(request.user, self.payload())
        return JsonResponse(review_to_dict(review), status=201)
