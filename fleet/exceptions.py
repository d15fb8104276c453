"""Domain exceptions carrying the HTTP status the API should answer with."""

from __future__ import annotations


class ServiceError(Exception):
    """Raised when a request cannot be fulfilled as asked."""

    status = 400

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class VehicleError(ServiceError):
    pass


class BookingError(ServiceError):
    pass


class DeviceError(ServiceError):
    pass


class ReviewError(ServiceError):
    pass


def describe_validation_error(error) -> str:
    """Flatten a model ``ValidationError`` into one ``field: message`` line."""
    return "; ".join(
        f"{field}: {' '.join(messages)}" for field, messages in error.message_dict.items()
    )
