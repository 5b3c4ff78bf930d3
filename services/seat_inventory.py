# services/seat_inventory.py
"""
Seat-pool propagation across a trip hierarchy.

delta < 0 books seats, delta > 0 releases them.

Public API:
  - apply_seat_delta(trip_id: int, delta: int, rid: str | None = None)
  - apply_seat_changes(changes: list[(trip_id, delta)], work=None, rid: str | None = None)

Return values:
  - apply_seat_delta -> {trip_id: new_available_seats} for every touched row
  - apply_seat_changes -> ({trip_id: new_available_seats}, work() result)

One call is one transaction: resolve the affected rows, lock them in
ascending id order, check every booking row stays >= 0, then write each row
with a version compare-and-swap. A lost swap rolls everything back and the
cycle is retried with fresh reads (SEAT_UPDATE_ATTEMPTS); nothing is ever
committed partially.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from flask import current_app
from sqlalchemy import select, text

from db import db
from errors import ConcurrentModification, InsufficientCapacity, SeatPoolError, TripNotFound
from models.trip import Trip
from services.trip_hierarchy import TripHierarchy

T = TypeVar("T")

_CAS_UPDATE = text("""
    UPDATE trips
       SET available_seats = available_seats + :d,
           version = version + 1
     WHERE id = :id
       AND version = :v
       AND available_seats + :d >= 0
""")


# ---------- resolve / lock / check ----------

def _net_deltas(changes: Iterable[Tuple[int, int]]) -> Dict[int, int]:
    """
    Expand each (trip_id, delta) to its affected set and sum per row.
    Rows whose deltas cancel out (a transfer inside one run) are dropped.
    """
    net: Dict[int, int] = defaultdict(int)
    for trip_id, delta in changes:
        if delta == 0:
            continue
        hierarchy = TripHierarchy.load(trip_id)
        for tid in hierarchy.affected_ids(trip_id):
            net[tid] += delta
    return {tid: d for tid, d in net.items() if d != 0}


def _lock_rows(trip_ids: Iterable[int]) -> Dict[int, dict]:
    """SELECT ... FOR UPDATE the rows, ascending id. Returns {id: row}."""
    ids = sorted(set(trip_ids))
    rows = db.session.execute(
        select(Trip.id, Trip.available_seats, Trip.capacity, Trip.version)
        .where(Trip.id.in_(ids))
        .order_by(Trip.id.asc())
        .with_for_update()
    ).mappings().all()

    locked = {int(r["id"]): dict(r) for r in rows}
    missing = [tid for tid in ids if tid not in locked]
    if missing:
        raise TripNotFound(f"trip(s) {missing} disappeared during seat update", trip_ids=missing)
    return locked


def _check_capacity(net: Dict[int, int], locked: Dict[int, dict]) -> None:
    short = {
        tid: int(locked[tid]["available_seats"])
        for tid, d in net.items()
        if d < 0 and int(locked[tid]["available_seats"]) + d < 0
    }
    if short:
        requested = max(-d for d in net.values() if d < 0)
        raise InsufficientCapacity(
            f"not enough seats: {requested} requested",
            requested=requested,
            available={str(k): v for k, v in sorted(short.items())},
        )


def _apply_no_commit(net: Dict[int, int], locked: Dict[int, dict], tag: str) -> Dict[int, int]:
    """
    Conditional UPDATE per row, ascending id. DOES NOT commit.
    Raises ConcurrentModification when a row moved since it was read.
    """
    out: Dict[int, int] = {}
    for tid in sorted(net):
        d = net[tid]
        row = locked[tid]
        res = db.session.execute(_CAS_UPDATE, {"d": d, "id": tid, "v": int(row["version"])})
        if res.rowcount != 1:
            raise ConcurrentModification(f"trip {tid} changed during seat update", trip_id=tid)

        new_seats = int(row["available_seats"]) + d
        if d > 0 and new_seats > int(row["capacity"]):
            current_app.logger.warning(
                "[seats][%s] trip=%s released above capacity (%s > %s)",
                tag, tid, new_seats, row["capacity"],
            )
        out[tid] = new_seats
    return out


# ---------- public API ----------

def apply_seat_changes(
    changes: List[Tuple[int, int]],
    work: Optional[Callable[[], T]] = None,
    *,
    rid: Optional[str] = None,
) -> Tuple[Dict[int, int], Optional[T]]:
    """
    Apply several seat deltas (and an optional `work` callback, e.g. inserting
    the reservation) as one transaction.
    """
    tag = rid or "no-rid"
    changes = [(int(tid), int(d)) for tid, d in changes]
    attempts = int(current_app.config.get("SEAT_UPDATE_ATTEMPTS", 3) or 1)

    for attempt in range(1, attempts + 1):
        try:
            net = _net_deltas(changes)
            locked = _lock_rows(net.keys()) if net else {}
            _check_capacity(net, locked)
            seats = _apply_no_commit(net, locked, tag)
            result = work() if work is not None else None

            db.session.commit()
            current_app.logger.info("[seats][%s] changes=%s applied=%s", tag, changes, seats)
            return seats, result

        except ConcurrentModification as e:
            db.session.rollback()
            current_app.logger.warning(
                "[seats][%s] lost race (attempt %s/%s): %s", tag, attempt, attempts, e.message
            )
            continue
        except SeatPoolError as e:
            db.session.rollback()
            current_app.logger.info("[seats][%s] rejected changes=%s: %s", tag, changes, e.message)
            raise
        except Exception:
            db.session.rollback()
            current_app.logger.exception("[seats][%s] seat update failed changes=%s", tag, changes)
            raise

    raise ConcurrentModification(
        f"seat update abandoned after {attempts} attempts", attempts=attempts
    )


def apply_seat_delta(trip_id: int, delta: int, *, rid: Optional[str] = None) -> Dict[int, int]:
    seats, _ = apply_seat_changes([(trip_id, delta)], rid=rid)
    return seats
