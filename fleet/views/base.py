import json

from django.contrib.auth.mixins import AccessMixin
from django.http import JsonResponse
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from fleet.exceptions import ServiceError


def message(text, status):
    return JsonResponse({"message": text}, status=status)


class InvalidPayload(ServiceError):
    pass


class ApiView(View):
    """JSON endpoint base: parses request bodies and renders service errors."""

    @classmethod
    def as_view(cls, **initkwargs):
        return csrf_exempt(super().as_view(**initkwargs))

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except ServiceError as e:
            return message(e.message, e.status)

    def payload(self):
        if not self.request.body:
            return {}
        try:
            data = json.loads(self.request.body)
        except json.JSONDecodeError:
            raise InvalidPayload("Invalid JSON payload")
        if not isinstance(data, dict):
            raise InvalidPayload("Expected a JSON object")
        return data


class ApiLoginRequiredMixin(AccessMixin):
    """Answer 401 instead of redirecting anonymous users to a login page."""

    # Methods that stay public on views mixing this in
    public_methods = ()

    def dispatch(self, request, *args, **kwargs):
        if request.method.lower() not in self.public_methods and (
            not request.user.is_authenticated
        ):
            return self.handle_no_permission()
        return super().dispatch(request, *args, **kwargs)

    def handle_no_permission(self):
        return message("Not authorized", 401)


class ApiStaffRequiredMixin(ApiLoginRequiredMixin):
    def dispatch(self, request, *args, **kwargs):
        if (
            request.method.lower() not in self.public_methods
            and request.user.is_authenticated
            and not request.user.is_staff
        ):
            return message("Staff access required", 403)
        return super().dispatch(request, *args, **kwargs)
