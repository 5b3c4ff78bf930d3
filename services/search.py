# services/search.py
"""
Read-only trip search for the booking screens.

Matching is case-insensitive substring matching on waypoint names:
  - origin or destination only: main trips whose route has a matching
    waypoint, plus sub-trips whose matching segment endpoint matches
  - both: sub-trips whose segment matches both win; when there are none,
    main trips whose route passes a matching origin before a matching
    destination. Any matching sub-trip hides every main trip, even one whose
    own endpoints match the query better: "Acapulco" -> "CDMX" returns the
    "Acapulco - Terminal" -> "CDMX - Norte" sub-trip and not the
    "Acapulco - Centro" -> "CDMX - Norte" main run.
  - company_id limits results to trips on that company's routes
Reads are not locked; availability reflects the store at read time.
"""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from flask import current_app
from sqlalchemy.orm import joinedload

from models.route import Route
from models.trip import Trip


def _has(name: Optional[str], needle: str) -> bool:
    return needle in (name or "").lower()


def _route_positions(trip: Trip, needle: str) -> List[int]:
    return [i for i, w in enumerate(trip.route.waypoints) if _has(w, needle)]


def _main_matches(trip: Trip, origin: str, destination: str) -> bool:
    if origin and destination:
        starts = _route_positions(trip, origin)
        ends = _route_positions(trip, destination)
        return any(s < e for s in starts for e in ends)
    if origin:
        # the last waypoint has nowhere to go
        return any(i < len(trip.route.waypoints) - 1 for i in _route_positions(trip, origin))
    return any(i > 0 for i in _route_positions(trip, destination))


def search_trips(
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    day: Optional[date] = None,
    seats: Optional[int] = None,
    company_id: Optional[str] = None,
) -> List[Trip]:
    origin = (origin or "").strip().lower()
    destination = (destination or "").strip().lower()
    seats = int(seats or 0)

    q = Trip.query.options(joinedload(Trip.route))
    if day is not None:
        q = q.filter(Trip.departure_date == day)
    if seats > 0:
        q = q.filter(Trip.available_seats >= seats)
    if company_id:
        q = q.filter(Trip.route.has(Route.company_id == company_id))
    trips = q.order_by(Trip.departure_date.asc(), Trip.departure_time.asc(), Trip.id.asc()).all()

    if origin and destination:
        exact = [
            t for t in trips
            if t.is_sub_trip and _has(t.segment_origin, origin) and _has(t.segment_destination, destination)
        ]
        if exact:
            trips = exact
        else:
            trips = [t for t in trips if not t.is_sub_trip and _main_matches(t, origin, destination)]
    elif origin or destination:
        out = []
        for t in trips:
            if not t.is_sub_trip:
                if _main_matches(t, origin, destination):
                    out.append(t)
            elif origin and _has(t.segment_origin, origin):
                out.append(t)
            elif destination and _has(t.segment_destination, destination):
                out.append(t)
        trips = out

    limit = int(current_app.config.get("SEARCH_LIMIT", 200) or 0)
    if limit > 0:
        trips = trips[:limit]
    return trips
