import logging
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.http import JsonResponse

from fleet.exceptions import describe_validation_error
from fleet.models import SiteSettings
from fleet.serializers import site_settings_to_dict

from .base import ApiStaffRequiredMixin, ApiView, message

logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = (
    "site_name",
    "contact_email",
    "contact_phone",
    "address",
    "currency",
    "timezone",
)
BOOKING_SETTINGS = (
    "min_booking_hours",
    "max_booking_days",
    "cancellation_hours",
    "require_deposit",
    "deposit_percentage",
)


class SiteSettingsView(ApiStaffRequiredMixin, ApiView):
    def get(self, request):
        return JsonResponse(site_settings_to_dict(SiteSettings.load()))

    def put(self, request):
        data = self.payload()
        if not all(data.get(name) for name in REQUIRED_SETTINGS):
            return message("Please provide all required settings", 400)
        if data["currency"] not in SiteSettings.Currency.values:
            return message("Currency must be LKR, USD or EUR", 400)

        site = SiteSettings.load()
        for name in REQUIRED_SETTINGS:
            setattr(site, name, str(data[name]).strip())

        booking_settings = data.get("booking_settings") or {}
        if not isinstance(booking_settings, dict):
            return message("booking_settings must be an object", 400)
        for name in BOOKING_SETTINGS:
            if name in booking_settings:
                setattr(site, name, booking_settings[name])

        for name in ("device_price", "tax_rate"):
            if data.get(name) not in (None, ""):
                try:
                    setattr(site, name, Decimal(str(data[name])))
                except InvalidOperation:
                    return message(f"Invalid {name.replace('_', ' ')}", 400)

        try:
            site.full_clean()
        except ValidationError as e:
            return message(describe_validation_error(e), 400)
        site.save()
        logger.info(f"Site settings updated by {request.user}")
        return JsonResponse(site_settings_to_dict(site))


class SiteSettingsResetView(ApiStaffRequiredMixin, ApiView):
    def put(self, request):
        site = SiteSettings.reset()
        logger.warning(f"Site settings reset to defaults by {request.user}")
        return JsonResponse(
            {"message": "Settings reset to defaults", "settings": site_settings_to_dict(site)}
        )


class DevicePriceView(ApiView):
    def get(self, request):
        site = SiteSettings.load()
        return JsonResponse({"device_price": site.device_price, "currency": site.currency})
