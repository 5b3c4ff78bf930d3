# services/publishing.py
from __future__ import annotations

from datetime import date, time
from typing import Iterable, Optional

from flask import current_app

from db import db
from errors import InvalidSegment, RouteNotFound, TripInUse, TripNotFound, ValidationError
from models.reservation import Reservation
from models.route import Route
from models.trip import Trip
from utils.parsing import parse_amount
from utils.segments import city_matcher, find_segment, generate_segments


def sellable_segments(route: Route):
    """generate_segments() with the configured city separator."""
    sep = current_app.config.get("CITY_SEPARATOR", " - ")
    return generate_segments(route, same_place=city_matcher(sep))


def publish_trip(
    *,
    route_id: int,
    departure_date: date,
    capacity: int,
    departure_time: Optional[time] = None,
    arrival_time: Optional[time] = None,
    price=0,
    segments: Iterable[dict] = (),
    all_segments: bool = False,
) -> Trip:
    """
    Create the main trip and the chosen sub-trips as one run.

    Each entry of `segments` is a dict with origin/destination and optional
    price, departure_date, departure_time, arrival_time. Only pairs produced
    by generate_segments() are accepted; the full origin→destination pair is
    the main trip itself and is skipped. all_segments=True sells every
    sellable pair.
    """
    route = db.session.get(Route, route_id)
    if route is None:
        raise RouteNotFound(f"route {route_id} not found", route_id=route_id)
    if int(capacity) <= 0:
        raise ValidationError("capacity must be a positive integer")

    base_price = parse_amount(price, "price")
    sellable = sellable_segments(route)
    if all_segments:
        segments = [{"origin": s.origin, "destination": s.destination} for s in sellable]

    main = Trip(
        route_id=route.id,
        departure_date=departure_date,
        departure_time=departure_time,
        arrival_time=arrival_time,
        capacity=int(capacity),
        available_seats=int(capacity),
        price=base_price,
        is_sub_trip=False,
        version=0,
    )

    seen = set()
    for entry in segments:
        origin = entry.get("origin")
        destination = entry.get("destination")
        if (origin, destination) == (route.origin, route.destination):
            continue
        if find_segment(sellable, origin, destination) is None:
            raise InvalidSegment(
                f"{origin} → {destination} is not a sellable segment of route {route.id}",
                origin=origin,
                destination=destination,
            )
        if (origin, destination) in seen:
            continue
        seen.add((origin, destination))

        main.sub_trips.append(Trip(
            route_id=route.id,
            departure_date=entry.get("departure_date") or departure_date,
            departure_time=entry.get("departure_time") or departure_time,
            arrival_time=entry.get("arrival_time") or arrival_time,
            capacity=int(capacity),
            available_seats=int(capacity),
            price=base_price if entry.get("price") in (None, "") else parse_amount(entry["price"], "segment price"),
            is_sub_trip=True,
            segment_origin=origin,
            segment_destination=destination,
            version=0,
        ))

    try:
        db.session.add(main)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[publish] failed route=%s date=%s", route_id, departure_date)
        raise

    current_app.logger.info(
        "[publish] trip=%s route=%s date=%s capacity=%s sub_trips=%s",
        main.id, route.id, departure_date, capacity, len(seen),
    )
    return main


def delete_trip(trip_id: int) -> int:
    """
    Delete a main trip with its sub-trips, or a single sub-trip, as long as no
    reservation points at any deleted row. Returns the number of rows removed.
    """
    trip = db.session.get(Trip, trip_id)
    if trip is None:
        raise TripNotFound(f"trip {trip_id} not found", trip_id=trip_id)

    ids = [trip.id] + ([] if trip.is_sub_trip else [s.id for s in trip.sub_trips])
    booked = Reservation.query.filter(Reservation.trip_id.in_(ids)).count()
    if booked:
        raise TripInUse(f"trip {trip_id} has {booked} reservation(s)", trip_id=trip_id)

    try:
        db.session.delete(trip)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[publish] delete failed trip=%s", trip_id)
        raise

    current_app.logger.info("[publish] deleted trip=%s rows=%s", trip_id, len(ids))
    return len(ids)
