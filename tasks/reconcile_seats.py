# tasks/reconcile_seats.py
from flask import current_app
from sqlalchemy import func, text

from db import db
from errors import SeatPoolError
from models.reservation import Passenger, Reservation, ReservationStatus
from models.trip import Trip
from services.trip_hierarchy import TripHierarchy

_FIX_ROW = text("""
    UPDATE trips
       SET available_seats = :seats, version = version + 1
     WHERE id = :id AND version = :v
""")


def _booked_seats(trip_ids):
    """{trip_id: passengers on confirmed reservations}"""
    rows = (
        db.session.query(Reservation.trip_id, func.count(Passenger.id))
        .join(Passenger, Passenger.reservation_id == Reservation.id)
        .filter(
            Reservation.trip_id.in_(trip_ids),
            Reservation.status == ReservationStatus.CONFIRMED,
        )
        .group_by(Reservation.trip_id)
        .all()
    )
    return {int(tid): int(n) for tid, n in rows}


def reconcile_seats(fix=False):
    """
    Recompute available_seats of every trip row from confirmed reservations
    and report rows that drifted. A row loses one seat per passenger booked
    on any record of its run whose segment overlaps its own; the relation is
    symmetric, so that is exactly affected_ids(row).
    """
    drift = []
    mains = Trip.query.filter(Trip.is_sub_trip.is_(False)).order_by(Trip.id.asc()).all()

    for main in mains:
        try:
            h = TripHierarchy.load(main.id)
            records = h.records()
            booked = _booked_seats([t.id for t in records])
            for t in records:
                consumed = sum(booked.get(o, 0) for o in h.affected_ids(t.id))
                expected = int(t.capacity) - consumed
                if expected != int(t.available_seats):
                    drift.append({
                        "trip_id": t.id,
                        "main_trip_id": main.id,
                        "available_seats": int(t.available_seats),
                        "expected": expected,
                        "version": int(t.version),
                    })
        except SeatPoolError as e:
            current_app.logger.error("[reconcile] run %s skipped: %s", main.id, e.message)
            drift.append({"trip_id": main.id, "main_trip_id": main.id, "error": e.code})

    if fix:
        for d in drift:
            if "expected" not in d:
                continue
            res = db.session.execute(_FIX_ROW, {"seats": max(d["expected"], 0), "id": d["trip_id"], "v": d["version"]})
            d["fixed"] = res.rowcount == 1
            if not d["fixed"]:
                current_app.logger.warning("[reconcile] trip %s changed while fixing; left as is", d["trip_id"])
        db.session.commit()

    current_app.logger.info("[reconcile] %s row(s) drifted (fix=%s)", len(drift), fix)
    return drift
