# tests/test_reservations.py
from decimal import Decimal

import pytest

from conftest import DAY, pax, seats
from db import db
from errors import (
    InsufficientCapacity,
    InvalidReservationState,
    ReservationNotFound,
    TripNotFound,
    ValidationError,
)
from models.reservation import Reservation, ReservationStatus
from services.publishing import publish_trip
from services.reservations import cancel_reservation, create_reservation, transfer_reservation


def test_create_defaults_total_to_price_times_seats(run):
    r = create_reservation(run["AB"], pax(2), phone="555-0100")

    assert r.status == ReservationStatus.CONFIRMED
    assert r.total_amount == Decimal("200.00")
    assert r.seat_count == 2
    assert r.as_dict()["total_amount"] == "200.00"
    assert seats(run)["AC"] == 8


def test_explicit_total_is_kept(run):
    r = create_reservation(run["main"], pax(1), total_amount="75.5")
    assert r.total_amount == Decimal("75.50")


def test_cancel_restores_seats_once(run):
    r = create_reservation(run["BD"], pax(3))
    cancel_reservation(r.id)

    assert set(seats(run).values()) == {10}
    assert db.session.get(Reservation, r.id).status == ReservationStatus.CANCELED

    with pytest.raises(InvalidReservationState):
        cancel_reservation(r.id)
    assert set(seats(run).values()) == {10}


def test_cancel_with_refund_status(run):
    r = create_reservation(run["CD"], pax(1))
    out = cancel_reservation(r.id, refund=True)
    assert out.status == "canceledAndRefund"


@pytest.mark.parametrize("people", [[], [{"first_name": "Ana"}], ["Ana Ruiz"]])
def test_passengers_are_validated(run, people):
    with pytest.raises(ValidationError):
        create_reservation(run["AB"], people)
    assert set(seats(run).values()) == {10}


def test_negative_total_rejected(run):
    with pytest.raises(ValidationError):
        create_reservation(run["AB"], pax(1), total_amount=-1)


def test_unknown_reservation_and_trip(app):
    with pytest.raises(ReservationNotFound):
        cancel_reservation(404)
    with pytest.raises(TripNotFound):
        create_reservation(404, pax(1))


def test_transfer_moves_seats_between_segments(run):
    src = create_reservation(run["AB"], pax(4), email="rider@example.com")
    moved = transfer_reservation(src.id, run["CD"])

    assert moved.trip_id == run["CD"]
    assert moved.transferred_from_id == src.id
    assert moved.email == "rider@example.com"
    assert [p.first_name for p in moved.passengers] == [p["first_name"] for p in pax(4)]
    assert db.session.get(Reservation, src.id).status == ReservationStatus.CANCELED
    assert seats(run) == {"main": 6, "AB": 10, "AC": 10, "BD": 6, "CD": 6}


def test_transfer_to_full_trip_keeps_source(route, run):
    small = publish_trip(route_id=route.id, departure_date=DAY, capacity=2, price=100)
    small_id = small.id
    src = create_reservation(run["AB"], pax(4))
    before = seats(run)

    with pytest.raises(InsufficientCapacity):
        transfer_reservation(src.id, small_id)

    assert db.session.get(Reservation, src.id).status == ReservationStatus.CONFIRMED
    assert seats(run) == before
    assert seats({"small": small_id}) == {"small": 2}
    assert Reservation.query.count() == 1


def test_transfer_to_own_trip_rejected(run):
    src = create_reservation(run["AB"], pax(1))
    with pytest.raises(ValidationError):
        transfer_reservation(src.id, run["AB"])


def test_canceled_reservation_cannot_be_transferred(run):
    src = create_reservation(run["AB"], pax(1))
    cancel_reservation(src.id)
    with pytest.raises(InvalidReservationState):
        transfer_reservation(src.id, run["CD"])


@pytest.mark.parametrize("total", ["NaN", "Infinity", "abc", [1]])
def test_malformed_total_rejected(run, total):
    with pytest.raises(ValidationError):
        create_reservation(run["AB"], pax(1), total_amount=total)
    assert Reservation.query.count() == 0


@pytest.mark.parametrize("price", ["abc", "NaN", -5])
def test_malformed_publish_price_rejected(route, price):
    with pytest.raises(ValidationError):
        publish_trip(route_id=route.id, departure_date=DAY, capacity=2, price=price)
    with pytest.raises(ValidationError):
        publish_trip(
            route_id=route.id, departure_date=DAY, capacity=2, price=100,
            segments=[{"origin": "A", "destination": "B", "price": price}],
        )


def test_segment_price_defaults_to_trip_price(route):
    main = publish_trip(
        route_id=route.id, departure_date=DAY, capacity=2, price="120.50",
        segments=[{"origin": "A", "destination": "B"}, {"origin": "B", "destination": "D", "price": 80}],
    )
    prices = {s.segment_origin + s.segment_destination: s.price for s in main.sub_trips}
    assert prices == {"AB": Decimal("120.50"), "BD": Decimal("80")}
