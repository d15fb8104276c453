"""Plain dict renderings of fleet records for JSON responses."""


def vehicle_type_to_dict(vehicle_type):
    return {
        "id": vehicle_type.id,
        "name": vehicle_type.name,
        "description": vehicle_type.description,
        "image": vehicle_type.image,
        "created_at": vehicle_type.created_at,
        "updated_at": vehicle_type.updated_at,
    }


def vehicle_to_dict(vehicle):
    vehicle_type = vehicle.vehicle_type
    return {
        "id": vehicle.id,
        "owner_id": vehicle.owner_id,
        "title": vehicle.title,
        "slug": vehicle.slug,
        "vehicle_type": (
            {"id": vehicle_type.id, "name": vehicle_type.name, "image": vehicle_type.image}
            if vehicle_type
            else None
        ),
        "price_per_day": vehicle.price_per_day,
        "image": vehicle.image,
        "description": vehicle.description,
        "seats": vehicle.seats,
        "bags": vehicle.bags,
        "transmission": vehicle.transmission,
        "fuel_type": vehicle.fuel_type,
        "features": vehicle.features,
        "available": vehicle.available,
        "location": vehicle.location,
        "pickup_address": vehicle.pickup_address,
        "pickup_location": (
            [vehicle.pickup_longitude, vehicle.pickup_latitude]
            if vehicle.pickup_longitude is not None
            else None
        ),
        "year": vehicle.year,
        "model": vehicle.model,
        "brand": vehicle.brand,
        "mileage": vehicle.mileage,
        "color": vehicle.color,
        "license_plate": vehicle.license_plate,
        "average_rating": vehicle.average_rating,
        "review_count": vehicle.review_count,
        "created_at": vehicle.created_at,
        "updated_at": vehicle.updated_at,
    }


def booking_to_dict(booking):
    user = booking.user
    vehicle = booking.vehicle
    return {
        "id": booking.id,
        "user": {
            "id": user.id,
            "username": user.get_username(),
            "name": user.get_full_name(),
            "email": user.email,
        },
        "vehicle": {
            "id": vehicle.id,
            "title": vehicle.title,
            "slug": vehicle.slug,
            "price_per_day": vehicle.price_per_day,
            "image": vehicle.image,
            "owner_id": vehicle.owner_id,
        },
        "device_id": booking.device_id,
        "start_date": booking.start_date,
        "end_date": booking.end_date,
        "total_price": booking.total_price,
        "status": booking.status,
        "payment_status": booking.payment_status,
        "payment_method": booking.payment_method,
        "pickup_location": booking.pickup_location,
        "dropoff_location": booking.dropoff_location,
        "notes": booking.notes,
        "addons": booking.addons,
        "created_at": booking.created_at,
        "updated_at": booking.updated_at,
    }


def device_to_dict(device):
    user = device.user
    vehicle = device.vehicle
    return {
        "id": device.id,
        "device_id": device.device_id,
        "user": {"id": user.id, "username": user.get_username(), "email": user.email},
        "vehicle": {
            "id": vehicle.id,
            "title": vehicle.title,
            "slug": vehicle.slug,
            "license_plate": vehicle.license_plate,
        },
        "purchase_date": device.purchase_date,
        "activation_date": device.activation_date,
        "status": device.status,
        "price": device.price,
        "address": device.address,
        "install_location": (
            [device.install_longitude, device.install_latitude]
            if device.install_longitude is not None
            else None
        ),
        "payment_method": device.payment_method,
        "payment_status": device.payment_status,
        "created_at": device.created_at,
        "updated_at": device.updated_at,
    }


def location_to_dict(location):
    return {
        "id": location.id,
        "device_id": location.device_id,
        "coordinates": [location.longitude, location.latitude],
        "recorded_at": location.recorded_at,
    }


def review_to_dict(review):
    user = review.user
    return {
        "id": review.id,
        "booking_id": review.booking_id,
        "user": {"id": user.id, "name": user.get_full_name() or user.get_username()},
        "rating": review.rating,
        "comment": review.comment,
        "photos": review.photos,
        "created_at": review.created_at,
    }


def contact_to_dict(contact):
    return {
        "id": contact.id,
        "first_name": contact.first_name,
        "last_name": contact.last_name,
        "email": contact.email,
        "phone": contact.phone,
        "subject": contact.subject,
        "message": contact.message,
        "agree_to_marketing": contact.agree_to_marketing,
        "status": contact.status,
        "created_at": contact.created_at,
        "updated_at": contact.updated_at,
    }


def site_settings_to_dict(site):
    return {
        "site_name": site.site_name,
        "contact_email": site.contact_email,
        "contact_phone": site.contact_phone,
        "address": site.address,
        "currency": site.currency,
        "timezone": site.timezone,
        "device_price": site.device_price,
        "booking_settings": {
            "min_booking_hours": site.min_booking_hours,
            "max_booking_days": site.max_booking_days,
            "cancellation_hours": site.cancellation_hours,
            "require_deposit": site.require_deposit,
            "deposit_percentage": site.deposit_percentage,
        },
    }
