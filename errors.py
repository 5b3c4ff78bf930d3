# errors.py
"""
Domain errors raised by the services layer.

Each carries the HTTP status and a stable ``code`` string; app.py turns any
SeatPoolError into ``{"error": <message>, "code": <code>}``.
"""
from __future__ import annotations


class SeatPoolError(Exception):
    http_status = 500
    code = "error"

    def __init__(self, message: str | None = None, **details):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details

    def to_dict(self) -> dict:
        out = {"error": self.message, "code": self.code}
        if self.details:
            out["details"] = self.details
        return out


class ValidationError(SeatPoolError):
    http_status = 400
    code = "validation_error"


class InvalidSegment(SeatPoolError):
    """A segment endpoint is not a waypoint of its route (route/sub-trip drift)."""
    http_status = 422
    code = "invalid_segment"


class InsufficientCapacity(SeatPoolError):
    http_status = 409
    code = "insufficient_capacity"


class ConcurrentModification(SeatPoolError):
    """A conditional seat update lost the race with another writer."""
    http_status = 409
    code = "concurrent_modification"


class RouteNotFound(SeatPoolError):
    http_status = 404
    code = "route_not_found"


class TripNotFound(SeatPoolError):
    http_status = 404
    code = "trip_not_found"


class ReservationNotFound(SeatPoolError):
    http_status = 404
    code = "reservation_not_found"


class InvalidReservationState(SeatPoolError):
    http_status = 400
    code = "invalid_reservation_state"


class RouteInUse(SeatPoolError):
    http_status = 409
    code = "route_in_use"


class TripInUse(SeatPoolError):
    http_status = 409
    code = "trip_in_use"
