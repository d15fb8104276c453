import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import IntegrityError, models, transaction
from django.urls import reverse
from django.utils import timezone

logger = logging.getLogger(__name__)

LICENSE_PLATE_PATTERN = r"^[A-Z0-9-]{4,10}$"
DEVICE_ID_PATTERN = r"^[A-Z0-9]{8,20}$"
# Booking states that block a vehicle for the booked dates
BLOCKING_BOOKING_STATUSES = ("confirmed", "active")

# Snapshot marker for a title left out of the query by defer()/only()
_TITLE_DEFERRED = object()


class VehicleType(models.Model):
    """Vehicle category (Car, Van, SUV, ...)."""

    DEFAULT_NAMES = ["Car", "Van", "Lorry", "Bike", "SUV", "Bus"]

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    image = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    @classmethod
    def seed_defaults(cls) -> int:
        """Create any missing default types. Returns how many were added."""
        created = 0
        for name in cls.DEFAULT_NAMES:
            _, was_created = cls.objects.get_or_create(
                name__iexact=name, defaults={"name": name}
            )
            created += int(was_created)
        return created


class Vehicle(models.Model):
    """Rentable vehicle listed by an owner."""

    class Transmission(models.TextChoices):
        AUTO = "Auto", "Automatic"
        MANUAL = "Manual", "Manual"

    class FuelType(models.TextChoices):
        GASOLINE = "Gasoline", "Gasoline"
        DIESEL = "Diesel", "Diesel"
        HYBRID = "Hybrid", "Hybrid"
        ELECTRIC = "Electric", "Electric"

    FEATURE_FLAGS = [
        "gps_navigation",
        "bluetooth",
        "backup_camera",
        "leather_seats",
        "heated_seats",
        "sunroof",
        "usb_ports",
        "android_auto",
        "apple_carplay",
        "cruise_control",
        "parking_sensors",
        "child_seat",
        "air_conditioning",
    ]

    owner = models.ForeignKey(
        get_user_model(), on_delete=models.CASCADE, related_name="vehicles"
    )
    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=255, unique=True)
    vehicle_type = models.ForeignKey(
        VehicleType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="vehicles",
    )

    price_per_day = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(0)]
    )
    image = models.CharField(max_length=500)
    description = models.TextField()
    seats = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    bags = models.PositiveIntegerField(default=0)
    transmission = models.CharField(max_length=10, choices=Transmission.choices)
    fuel_type = models.CharField(max_length=10, choices=FuelType.choices)
    features = models.JSONField(default=dict, blank=True)
    available = models.BooleanField(default=True)

    location = models.CharField(max_length=200)
    pickup_address = models.CharField(max_length=300)
    pickup_latitude = models.FloatField(null=True, blank=True)
    pickup_longitude = models.FloatField(null=True, blank=True)

    year = models.PositiveIntegerField(validators=[MinValueValidator(1900)])
    model = models.CharField(max_length=100)
    brand = models.CharField(max_length=100)
    mileage = models.PositiveIntegerField(default=0)
    color = models.CharField(max_length=50)
    license_plate = models.CharField(
        max_length=10,
        unique=True,
        validators=[RegexValidator(LICENSE_PLATE_PATTERN)],
    )
    average_rating = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=5,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )
    review_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["available", "price_per_day"], name="vehicle_available_price_idx"),
            models.Index(fields=["brand", "model"], name="vehicle_brand_model_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.license_plate})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_title = instance.__dict__.get("title", _TITLE_DEFERRED)
        return instance

    def refresh_from_db(self, using=None, fields=None, **kwargs):
        super().refresh_from_db(using=using, fields=fields, **kwargs)
        # Also reached when a deferred title is first read
        if "title" in self.__dict__ and (fields is None or "title" in fields):
            self._loaded_title = self.title

    def title_changed(self) -> bool:
        """True when the title differs from the last loaded or saved value."""
        loaded = getattr(self, "_loaded_title", None)
        if loaded is _TITLE_DEFERRED:
            # Never read, so only a direct assignment can have changed it
            return "title" in self.__dict__
        return self.title != loaded

    def save(self, *args, **kwargs):
        # The pre_save hook picks the slug; a concurrent writer can still take
        # it first, in which case the unique index rejects the row and the
        # hook runs again with the newer state.
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            update_fields = set(update_fields)
            if "title" in update_fields:
                update_fields.add("slug")
            kwargs["update_fields"] = update_fields

        snapshot = getattr(self, "_loaded_title", None)
        retries = getattr(settings, "SLUG_SAVE_RETRIES", 3)
        attempt = 0
        while True:
            try:
                with transaction.atomic():
                    super().save(*args, **kwargs)
                break
            except IntegrityError:
                if attempt >= retries or not self._slug_held_elsewhere():
                    self._loaded_title = snapshot
                    raise
                attempt += 1
                logger.info(
                    "Slug %s was taken concurrently, retrying (%d/%d)",
                    self.slug,
                    attempt,
                    retries,
                )
                self._loaded_title = None
        if "title" in self.__dict__ and (
            update_fields is None or "title" in update_fields
        ):
            self._loaded_title = self.title
        else:
            self._loaded_title = snapshot

    def _slug_held_elsewhere(self) -> bool:
        queryset = Vehicle.objects.filter(slug=self.slug)
        if self.pk is not None:
            queryset = queryset.exclude(pk=self.pk)
        return queryset.exists()

    def get_absolute_url(self):
        return reverse("fleet:vehicle_by_slug", kwargs={"slug": self.slug})


class Booking(models.Model):
    """Rental of a vehicle over a date range."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        ACTIVE = "active", "Active"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        CARD = "card", "Card"

    user = models.ForeignKey(
        get_user_model(), on_delete=models.CASCADE, related_name="bookings"
    )
    vehicle = models.ForeignKey(
        Vehicle, on_delete=models.CASCADE, related_name="bookings"
    )
    device_id = models.CharField(max_length=100)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    total_price = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(0)]
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices)

    pickup_location = models.JSONField(
        null=True, blank=True, help_text="[longitude, latitude]"
    )
    dropoff_location = models.JSONField(
        null=True, blank=True, help_text="[longitude, latitude]"
    )
    notes = models.TextField(blank=True)
    addons = models.JSONField(
        default=list, blank=True, help_text="List of {id, name, price_per_day}"
    )

    stripe_session_id = models.CharField(max_length=255, blank=True)
    stripe_payment_intent = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="booking_status_idx"),
            models.Index(fields=["payment_method"], name="booking_payment_method_idx"),
            models.Index(fields=["start_date", "end_date"], name="booking_dates_idx"),
        ]

    def __str__(self):
        return f"{self.user} -> {self.vehicle.title} ({self.status})"

    @property
    def is_completed(self):
        return self.status == Booking.Status.COMPLETED


class WishlistItem(models.Model):
    """Vehicle saved by a user."""

    user = models.ForeignKey(
        get_user_model(), on_delete=models.CASCADE, related_name="wishlist_items"
    )
    vehicle = models.ForeignKey(
        Vehicle, on_delete=models.CASCADE, related_name="wishlist_items"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "vehicle"], name="unique_wishlist_user_vehicle"
            )
        ]

    def __str__(self):
        return f"{self.user} saved {self.vehicle.title}"


class DevicePurchase(models.Model):
    """GPS tracking device bought for, and installed in, a vehicle."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        ACTIVE = "active", "Active"
        EXPIRED = "expired", "Expired"
        CANCELLED = "cancelled", "Cancelled"

    class PaymentMethod(models.TextChoices):
        CREDIT = "credit", "Credit card"
        DEBIT = "debit", "Debit card"
        BANK = "bank", "Bank transfer"
        CASH = "cash", "Cash"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"

    ADDRESS_FIELDS = ["street", "city", "province", "postal_code"]

    user = models.ForeignKey(
        get_user_model(), on_delete=models.CASCADE, related_name="device_purchases"
    )
    vehicle = models.ForeignKey(
        Vehicle, on_delete=models.CASCADE, related_name="device_purchases"
    )
    device_id = models.CharField(
        max_length=20, unique=True, validators=[RegexValidator(DEVICE_ID_PATTERN)]
    )
    purchase_date = models.DateTimeField(default=timezone.now)
    activation_date = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
    )
    address = models.JSONField(
        default=dict, blank=True, help_text="{street, city, province, postal_code}"
    )
    install_latitude = models.FloatField(null=True, blank=True)
    install_longitude = models.FloatField(null=True, blank=True)
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["vehicle", "status"], name="device_vehicle_status_idx"),
        ]

    def __str__(self):
        return f"{self.device_id} ({self.status})"


class DeviceLocation(models.Model):
    """Position reported by a tracking device."""

    device_id = models.CharField(max_length=20)
    latitude = models.FloatField(
        validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.FloatField(
        validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )
    recorded_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-recorded_at"]
        indexes = [
            models.Index(
                fields=["device_id", "-recorded_at"], name="location_device_time_idx"
            ),
        ]

    def __str__(self):
        return f"{self.device_id} @ {self.latitude}, {self.longitude}"


class Review(models.Model):
    """Rating left by a renter for a booking."""

    booking = models.ForeignKey(
        Booking, on_delete=models.CASCADE, related_name="reviews"
    )
    user = models.ForeignKey(
        get_user_model(), on_delete=models.CASCADE, related_name="reviews"
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(blank=True)
    photos = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking", "user"], name="unique_review_booking_user"
            )
        ]

    def __str__(self):
        return f"{self.rating}/5 for booking {self.booking_id}"


class ContactMessage(models.Model):
    class Status(models.TextChoices):
        NEW = "new", "New"
        IN_PROGRESS = "in_progress", "In progress"
        RESOLVED = "resolved", "Resolved"

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=30, blank=True)
    subject = models.CharField(max_length=200)
    message = models.TextField()
    agree_to_marketing = models.BooleanField(default=False)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.NEW
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["email", "-created_at"], name="contact_email_idx"),
        ]

    def __str__(self):
        return f"{self.subject} ({self.email})"


class SiteSettings(models.Model):
    """Single row of operator-editable settings."""

    class Currency(models.TextChoices):
        LKR = "LKR", "Sri Lankan rupee"
        USD = "USD", "US dollar"
        EUR = "EUR", "Euro"

    site_name = models.CharField(max_length=200, default="Gamanata Vehicle Rental")
    contact_email = models.EmailField(default="info@gamanata.com")
    contact_phone = models.CharField(max_length=30, default="+94 11 234 5678")
    address = models.CharField(
        max_length=300, default="123 Main Street, Colombo, Sri Lanka"
    )
    currency = models.CharField(
        max_length=3, choices=Currency.choices, default=Currency.LKR
    )
    timezone = models.CharField(max_length=50, default="Asia/Colombo")

    min_booking_hours = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1)]
    )
    max_booking_days = models.PositiveIntegerField(
        default=30, validators=[MinValueValidator(1)]
    )
    cancellation_hours = models.PositiveIntegerField(default=24)
    require_deposit = models.BooleanField(default=True)
    deposit_percentage = models.PositiveIntegerField(
        default=20, validators=[MaxValueValidator(100)]
    )

    device_price = models.DecimalField(
        max_digits=10, decimal_places=2, default=1000, validators=[MinValueValidator(0)]
    )
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=15,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "site settings"
        verbose_name_plural = "site settings"

    def __str__(self):
        return self.site_name

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        settings_row, _ = cls.objects.get_or_create(pk=1)
        return settings_row

    @classmethod
    def reset(cls):
        cls.objects.all().delete()
        return cls.load()
