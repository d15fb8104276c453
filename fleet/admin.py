from django.contrib import admin
from django.utils import timezone
from .models import (
    Booking,
    ContactMessage,
    DeviceLocation,
    DevicePurchase,
    Review,
    SiteSettings,
    Vehicle,
    VehicleType,
    WishlistItem,
)


@admin.register(VehicleType)
class VehicleTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "created_at"]
    search_fields = ["name"]


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = [
        "title",
        "slug",
        "brand",
        "model",
        "vehicle_type",
        "price_per_day",
        "available",
        "owner",
    ]
    list_filter = ["available", "vehicle_type", "transmission", "fuel_type"]
    search_fields = ["title", "slug", "brand", "model", "license_plate"]
    # Slugs are assigned on save from the title
    readonly_fields = ["slug", "created_at", "updated_at"]
    actions = ["mark_available", "mark_unavailable"]

    @admin.action(description="Mark selected vehicles available")
    def mark_available(self, request, queryset):
        queryset.update(available=True)

    @admin.action(description="Mark selected vehicles unavailable")
    def mark_unavailable(self, request, queryset):
        queryset.update(available=False)


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        "vehicle",
        "user",
        "start_date",
        "end_date",
        "total_price",
        "status",
        "payment_method",
        "payment_status",
    ]
    list_filter = ["status", "payment_method", "payment_status", "start_date"]
    search_fields = ["vehicle__title", "user__email", "device_id"]
    raw_id_fields = ["vehicle", "user"]
    actions = ["mark_confirmed", "mark_completed", "mark_cancelled"]

    @admin.action(description="Mark selected bookings confirmed")
    def mark_confirmed(self, request, queryset):
        queryset.update(status=Booking.Status.CONFIRMED)

    @admin.action(description="Mark selected bookings completed")
    def mark_completed(self, request, queryset):
        queryset.update(status=Booking.Status.COMPLETED)

    @admin.action(description="Mark selected bookings cancelled")
    def mark_cancelled(self, request, queryset):
        queryset.exclude(status=Booking.Status.COMPLETED).update(
            status=Booking.Status.CANCELLED
        )


@admin.register(WishlistItem)
class WishlistItemAdmin(admin.ModelAdmin):
    list_display = ["user", "vehicle", "created_at"]
    raw_id_fields = ["vehicle", "user"]


@admin.register(DevicePurchase)
class DevicePurchaseAdmin(admin.ModelAdmin):
    list_display = [
        "device_id",
        "vehicle",
        "user",
        "status",
        "price",
        "payment_status",
        "purchase_date",
    ]
    list_filter = ["status", "payment_method", "payment_status"]
    search_fields = ["device_id", "vehicle__title", "vehicle__license_plate", "user__email"]
    raw_id_fields = ["vehicle", "user"]
    actions = ["mark_active", "mark_cancelled"]

    @admin.action(description="Activate selected devices")
    def mark_active(self, request, queryset):
        for device in queryset.exclude(status=DevicePurchase.Status.ACTIVE):
            device.status = DevicePurchase.Status.ACTIVE
            device.activation_date = device.activation_date or timezone.now()
            device.save(update_fields=["status", "activation_date", "updated_at"])

    @admin.action(description="Cancel selected devices")
    def mark_cancelled(self, request, queryset):
        queryset.update(status=DevicePurchase.Status.CANCELLED)


@admin.register(DeviceLocation)
class DeviceLocationAdmin(admin.ModelAdmin):
    list_display = ["device_id", "latitude", "longitude", "recorded_at"]
    search_fields = ["device_id"]
    date_hierarchy = "recorded_at"


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["booking", "user", "rating", "created_at"]
    list_filter = ["rating"]
    raw_id_fields = ["booking", "user"]


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    list_display = ["subject", "email", "status", "agree_to_marketing", "created_at"]
    list_filter = ["status", "agree_to_marketing"]
    search_fields = ["email", "subject", "first_name", "last_name"]
    actions = ["mark_resolved"]

    @admin.action(description="Mark selected messages resolved")
    def mark_resolved(self, request, queryset):
        queryset.update(status=ContactMessage.Status.RESOLVED)


@admin.register(SiteSettings)
class SiteSettingsAdmin(admin.ModelAdmin):
    list_display = ["site_name", "currency", "device_price", "updated_at"]

    def has_add_permission(self, request):
        return not SiteSettings.objects.exists()
