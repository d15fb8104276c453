from django.urls import path
from . import views

app_name = "fleet"

urlpatterns = [
    # Vehicles
    path("vehicles/", views.VehicleCollectionView.as_view(), name="vehicle_list"),
    path(
        "vehicles/available/",
        views.AvailableVehicleListView.as_view(),
        name="vehicle_available",
    ),
    path(
        "vehicles/slug/<slug:slug>/",
        views.VehicleBySlugView.as_view(),
        name="vehicle_by_slug",
    ),
    path("vehicles/<int:pk>/", views.VehicleDetailView.as_view(), name="vehicle_detail"),
    # Vehicle types
    path(
        "vehicle-types/",
        views.VehicleTypeCollectionView.as_view(),
        name="vehicle_type_list",
    ),
    path(
        "vehicle-types/<int:pk>/",
        views.VehicleTypeDetailView.as_view(),
        name="vehicle_type_detail",
    ),
    # Bookings
    path("bookings/", views.BookingCollectionView.as_view(), name="booking_list"),
    path("bookings/<int:pk>/", views.BookingDetailView.as_view(), name="booking_detail"),
    path(
        "bookings/<int:pk>/checkout/",
        views.BookingCheckoutView.as_view(),
        name="booking_checkout",
    ),
    # Payment
    path(
        "payments/success/", views.PaymentSuccessView.as_view(), name="payment_success"
    ),
    path("payments/cancel/", views.PaymentCancelView.as_view(), name="payment_cancel"),
    # Wishlist
    path("wishlist/", views.WishlistView.as_view(), name="wishlist"),
    path(
        "wishlist/<int:vehicle_id>/",
        views.WishlistItemView.as_view(),
        name="wishlist_item",
    ),
    # Tracking devices
    path("devices/", views.DeviceCollectionView.as_view(), name="device_list"),
    path("devices/<int:pk>/", views.DeviceDetailView.as_view(), name="device_detail"),
    path(
        "devices/by-vehicle/<int:vehicle_id>/",
        views.DeviceByVehicleView.as_view(),
        name="device_by_vehicle",
    ),
    path(
        "locations/device/",
        views.DeviceLocationIngestView.as_view(),
        name="location_ingest",
    ),
    path(
        "locations/device/<str:device_id>/",
        views.DeviceLatestLocationView.as_view(),
        name="device_latest_location",
    ),
    # Reviews
    path("reviews/", views.ReviewCollectionView.as_view(), name="review_list"),
    # Contact
    path("contact/", views.ContactCollectionView.as_view(), name="contact_list"),
    path(
        "contact/<int:pk>/", views.ContactDetailView.as_view(), name="contact_detail"
    ),
    # System settings
    path("system/", views.SiteSettingsView.as_view(), name="site_settings"),
    path(
        "system/reset/",
        views.SiteSettingsResetView.as_view(),
        name="site_settings_reset",
    ),
    path(
        "system/device-price/", views.DevicePriceView.as_view(), name="device_price"
    ),
]
