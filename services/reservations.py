# services/reservations.py
"""
Reservation lifecycle on top of the seat pool.

Public API:
  - create_reservation(trip_id, passengers, *, total_amount=None, phone=None,
                       email=None, notes=None, rid=None) -> Reservation
  - cancel_reservation(reservation_id, *, refund=False, rid=None) -> Reservation
  - transfer_reservation(reservation_id, target_trip_id, *, rid=None) -> Reservation
  - get_reservation(reservation_id) -> Reservation

Seat changes and the reservation rows they belong to commit together
(services.seat_inventory.apply_seat_changes with a `work` callback).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy import text

from db import db
from errors import (
    InvalidReservationState,
    ReservationNotFound,
    TripNotFound,
    ValidationError,
)
from models.reservation import Passenger, Reservation, ReservationStatus
from models.trip import Trip
from services.seat_inventory import apply_seat_changes
from utils.parsing import parse_amount

_RELEASE_STATUS = text("""
    UPDATE reservations
       SET status = :new_status, updated_at = :ts
     WHERE id = :id
       AND status = :confirmed
""")


# ---------- small utils ----------

def _clean_passengers(passengers: Iterable[dict]) -> List[dict]:
    out = []
    for i, p in enumerate(passengers or []):
        if not isinstance(p, dict):
            raise ValidationError(f"passenger #{i + 1} must be an object")
        first = str(p.get("first_name") or "").strip()
        last = str(p.get("last_name") or "").strip()
        if not first or not last:
            raise ValidationError(f"passenger #{i + 1} needs first_name and last_name")
        out.append({"first_name": first, "last_name": last})
    return out


def _release_status_no_commit(reservation_id: int, new_status: str) -> None:
    """Flip confirmed -> new_status; a concurrent cancel makes this fail."""
    res = db.session.execute(_RELEASE_STATUS, {
        "new_status": new_status,
        "ts": datetime.utcnow(),
        "id": reservation_id,
        "confirmed": ReservationStatus.CONFIRMED,
    })
    if res.rowcount != 1:
        raise InvalidReservationState(
            f"reservation {reservation_id} is no longer confirmed",
            reservation_id=reservation_id,
        )


def get_reservation(reservation_id: int) -> Reservation:
    r = db.session.get(Reservation, reservation_id)
    if r is None:
        raise ReservationNotFound(f"reservation {reservation_id} not found", reservation_id=reservation_id)
    return r


def _confirmed(reservation_id: int) -> Reservation:
    r = get_reservation(reservation_id)
    if r.status != ReservationStatus.CONFIRMED:
        raise InvalidReservationState(
            f"reservation {reservation_id} is already {r.status}",
            reservation_id=reservation_id,
            status=r.status,
        )
    return r


# ---------- public API ----------

def create_reservation(
    trip_id: int,
    passengers: Iterable[dict],
    *,
    total_amount=None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    notes: Optional[str] = None,
    rid: Optional[str] = None,
) -> Reservation:
    people = _clean_passengers(passengers)
    if not people:
        raise ValidationError("at least one passenger is required")

    trip = db.session.get(Trip, trip_id)
    if trip is None:
        raise TripNotFound(f"trip {trip_id} not found", trip_id=trip_id)

    if total_amount is None:
        amount = Decimal(trip.price or 0) * len(people)
    else:
        amount = parse_amount(total_amount, "total_amount")

    def _insert() -> Reservation:
        r = Reservation(
            trip_id=trip_id,
            total_amount=amount,
            phone=phone,
            email=email,
            notes=notes,
            status=ReservationStatus.CONFIRMED,
        )
        r.passengers = [Passenger(**p) for p in people]
        db.session.add(r)
        db.session.flush()
        return r

    _, reservation = apply_seat_changes([(trip_id, -len(people))], work=_insert, rid=rid)
    current_app.logger.info(
        "[reservations][%s] created id=%s trip=%s seats=%s",
        rid or "no-rid", reservation.id, trip_id, len(people),
    )
    return reservation


def cancel_reservation(reservation_id: int, *, refund: bool = False, rid: Optional[str] = None) -> Reservation:
    """
    Cancel and give the seats back. Refund bookkeeping lives elsewhere;
    `refund` only selects the canceledAndRefund status.
    """
    r = _confirmed(reservation_id)
    seats = r.seat_count
    trip_id = r.trip_id
    new_status = ReservationStatus.CANCELED_AND_REFUND if refund else ReservationStatus.CANCELED

    apply_seat_changes(
        [(trip_id, seats)],
        work=lambda: _release_status_no_commit(reservation_id, new_status),
        rid=rid,
    )
    current_app.logger.info(
        "[reservations][%s] canceled id=%s trip=%s released=%s status=%s",
        rid or "no-rid", reservation_id, trip_id, seats, new_status,
    )
    return get_reservation(reservation_id)


def transfer_reservation(reservation_id: int, target_trip_id: int, *, rid: Optional[str] = None) -> Reservation:
    """
    Move a booking to another trip record. The source is canceled and a new
    reservation (transferred_from_id = source) is booked on the target; seats
    are released on the source and taken on the target in the same
    transaction, so a full target leaves the source booking untouched.
    """
    src = _confirmed(reservation_id)
    if int(target_trip_id) == int(src.trip_id):
        raise ValidationError("target trip is the reservation's own trip")
    if db.session.get(Trip, target_trip_id) is None:
        raise TripNotFound(f"trip {target_trip_id} not found", trip_id=target_trip_id)

    source_trip_id = src.trip_id
    seats = src.seat_count
    people = [{"first_name": p.first_name, "last_name": p.last_name} for p in src.passengers]
    carried = {
        "total_amount": src.total_amount,
        "phone": src.phone,
        "email": src.email,
        "notes": src.notes,
    }

    def _move() -> Reservation:
        _release_status_no_commit(reservation_id, ReservationStatus.CANCELED)
        r = Reservation(
            trip_id=target_trip_id,
            status=ReservationStatus.CONFIRMED,
            transferred_from_id=reservation_id,
            **carried,
        )
        r.passengers = [Passenger(**p) for p in people]
        db.session.add(r)
        db.session.flush()
        return r

    _, moved = apply_seat_changes(
        [(source_trip_id, seats), (target_trip_id, -seats)],
        work=_move,
        rid=rid,
    )
    current_app.logger.info(
        "[reservations][%s] transferred id=%s trip %s -> %s as id=%s seats=%s",
        rid or "no-rid", reservation_id, source_trip_id, target_trip_id, moved.id, seats,
    )
    return moved
