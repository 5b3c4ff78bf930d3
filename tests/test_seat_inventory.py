# tests/test_seat_inventory.py
import pytest

import services.seat_inventory as seat_inventory
from conftest import pax, seats
from db import db
from errors import ConcurrentModification, InsufficientCapacity, InvalidSegment, TripNotFound
from models.reservation import Reservation, ReservationStatus
from models.trip import Trip
from services.reservations import create_reservation
from services.seat_inventory import apply_seat_changes, apply_seat_delta
from services.trip_hierarchy import TripHierarchy


def test_sub_trip_booking_moves_overlapping_records(run):
    apply_seat_delta(run["BD"], -3)

    assert seats(run) == {"main": 7, "AB": 10, "AC": 7, "BD": 7, "CD": 7}


def test_main_trip_booking_moves_every_record(run):
    apply_seat_delta(run["main"], -2)

    assert set(seats(run).values()) == {8}


def test_affected_set_of_first_leg(run):
    h = TripHierarchy.load(run["AB"])
    assert h.affected_ids(run["AB"]) == {run["AB"], run["main"], run["AC"]}


def test_affected_set_is_symmetric(run):
    h = TripHierarchy.load(run["main"])
    ids = [t.id for t in h.records()]
    for a in ids:
        for b in ids:
            assert (b in h.affected_ids(a)) == (a in h.affected_ids(b))


def test_book_then_release_restores_every_record(run):
    apply_seat_delta(run["AC"], -4)
    apply_seat_delta(run["AC"], 4)

    assert set(seats(run).values()) == {10}


def test_returns_new_seats_per_touched_row(run):
    out = apply_seat_delta(run["CD"], -1)
    assert out == {run["main"]: 9, run["BD"]: 9, run["CD"]: 9}


def test_overbooking_changes_nothing(run):
    apply_seat_delta(run["AC"], -8)
    before = seats(run)

    with pytest.raises(InsufficientCapacity) as exc:
        apply_seat_delta(run["BD"], -3)

    assert exc.value.details["requested"] == 3
    assert seats(run) == before


def test_unresolvable_sibling_segment_is_fatal(run):
    ab = db.session.get(Trip, run["AB"])
    ab.segment_origin = "X"
    db.session.commit()

    with pytest.raises(InvalidSegment):
        apply_seat_delta(run["BD"], -1)
    assert seats({"BD": run["BD"]}) == {"BD": 10}


def test_unknown_trip(app):
    with pytest.raises(TripNotFound):
        apply_seat_delta(999, -1)


def test_lost_race_is_retried_with_fresh_reads(app, run, monkeypatch):
    original = seat_inventory._lock_rows
    calls = []

    def _racing_lock(trip_ids):
        locked = original(trip_ids)
        calls.append(sorted(trip_ids))
        if len(calls) == 1:
            # another request books BD between our read and our write
            monkeypatch.setattr(seat_inventory, "_lock_rows", original)
            with app.app_context():
                create_reservation(run["BD"], pax(6))
            monkeypatch.setattr(seat_inventory, "_lock_rows", _racing_lock)
        return locked

    monkeypatch.setattr(seat_inventory, "_lock_rows", _racing_lock)

    with pytest.raises(InsufficientCapacity):
        create_reservation(run["AC"], pax(6))

    # first attempt loses the swap, the retry sees BD's booking
    assert len(calls) == 2
    assert calls[0] == calls[1] == sorted([run["main"], run["AB"], run["AC"], run["BD"]])
    assert seats(run)["main"] == 4
    confirmed = Reservation.query.filter(Reservation.status == ReservationStatus.CONFIRMED).all()
    assert [r.trip_id for r in confirmed] == [run["BD"]]


def test_gives_up_after_configured_attempts(app, run, monkeypatch):
    calls = []

    def _always_stale(net, locked, tag):
        calls.append(1)
        raise ConcurrentModification("stale")

    monkeypatch.setattr(seat_inventory, "_apply_no_commit", _always_stale)

    with pytest.raises(ConcurrentModification):
        apply_seat_delta(run["AB"], -1)

    assert len(calls) == app.config["SEAT_UPDATE_ATTEMPTS"] == 3
    assert set(seats(run).values()) == {10}


def test_failing_work_rolls_back_seat_changes(run):
    def _boom():
        raise RuntimeError("insert failed")

    with pytest.raises(RuntimeError):
        apply_seat_changes([(run["AB"], -2)], work=_boom)

    assert set(seats(run).values()) == {10}


def test_changes_inside_one_run_are_netted(run):
    # moving 2 seats from AB to CD leaves the main trip untouched
    out, _ = apply_seat_changes([(run["AB"], 2), (run["CD"], -2)])

    assert run["main"] not in out
    after = seats(run)
    assert after["BD"] == 8 and after["CD"] == 8
    assert after["AB"] == 12 and after["AC"] == 12
