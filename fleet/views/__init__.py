from .vehicles import (
    AvailableVehicleListView,
    VehicleBySlugView,
    VehicleCollectionView,
    VehicleDetailView,
)
from .vehicle_types import VehicleTypeCollectionView, VehicleTypeDetailView
from .bookings import BookingCollectionView, BookingDetailView
from .wishlist import WishlistItemView, WishlistView
from .payments import BookingCheckoutView, PaymentCancelView, PaymentSuccessView
from .devices import (
    DeviceByVehicleView,
    DeviceCollectionView,
    DeviceDetailView,
    DeviceLatestLocationView,
    DeviceLocationIngestView,
)
from .reviews import ReviewCollectionView
from .contact import ContactCollectionView, ContactDetailView
from .site_settings import DevicePriceView, SiteSettingsResetView, SiteSettingsView
