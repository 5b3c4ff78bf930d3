# services/trip_hierarchy.py
"""
One scheduled run: a main trip, its route and every sub-trip under it,
loaded together so overlap resolution is a local computation.

    h = TripHierarchy.load(trip_id)      # any record of the run
    h.affected_ids(trip_id)              # records sharing seats with it
"""
from __future__ import annotations

from typing import Dict, List, Set

from db import db
from errors import InvalidSegment, RouteNotFound, TripNotFound
from models.route import Route
from models.trip import Trip
from utils.overlap import overlaps, segment_interval
from utils.segments import Segment


class TripHierarchy:
    def __init__(self, main: Trip, route: Route, sub_trips: List[Trip]):
        self.main = main
        self.route = route
        self.sub_trips: Dict[int, Trip] = {t.id: t for t in sub_trips}

    # ---------- loading ----------

    @classmethod
    def load(cls, trip_id: int) -> "TripHierarchy":
        trip = db.session.get(Trip, trip_id)
        if trip is None:
            raise TripNotFound(f"trip {trip_id} not found", trip_id=trip_id)

        main = trip
        if trip.is_sub_trip:
            main = db.session.get(Trip, trip.parent_trip_id) if trip.parent_trip_id else None
            if main is None:
                raise TripNotFound(
                    f"parent trip of sub-trip {trip_id} not found",
                    trip_id=trip_id,
                    parent_trip_id=trip.parent_trip_id,
                )

        route = db.session.get(Route, main.route_id)
        if route is None:
            raise RouteNotFound(f"route {main.route_id} not found", route_id=main.route_id)

        subs = (
            Trip.query
            .filter(Trip.parent_trip_id == main.id, Trip.is_sub_trip.is_(True))
            .order_by(Trip.id.asc())
            .all()
        )
        return cls(main, route, subs)

    # ---------- lookups ----------

    @property
    def waypoints(self) -> List[str]:
        return self.route.waypoints

    def records(self) -> List[Trip]:
        return [self.main, *self.sub_trips.values()]

    def get(self, trip_id: int) -> Trip:
        if trip_id == self.main.id:
            return self.main
        trip = self.sub_trips.get(trip_id)
        if trip is None:
            raise TripNotFound(f"trip {trip_id} is not part of run {self.main.id}", trip_id=trip_id)
        return trip

    def segment_of(self, trip: Trip) -> Segment:
        if not trip.is_sub_trip:
            return Segment(self.route.origin, self.route.destination)
        if not (trip.segment_origin and trip.segment_destination):
            raise InvalidSegment(f"sub-trip {trip.id} has no segment", trip_id=trip.id)
        return Segment(trip.segment_origin, trip.segment_destination)

    def interval_of(self, trip: Trip) -> tuple[int, int]:
        return segment_interval(self.waypoints, self.segment_of(trip))

    # ---------- affected set ----------

    def affected_ids(self, trip_id: int) -> Set[int]:
        """
        Records whose available seats move together with a booking on trip_id:
          - main trip booked: the main trip and every sub-trip
          - sub-trip booked: itself, the main trip, and each sibling whose
            segment overlaps its own
        """
        booked = self.get(trip_id)
        if not booked.is_sub_trip:
            return {self.main.id, *self.sub_trips.keys()}

        booked_seg = self.segment_of(booked)
        # resolves the booked segment even when it has no siblings
        self.interval_of(booked)

        out = {booked.id, self.main.id}
        for sib in self.sub_trips.values():
            if sib.id == booked.id:
                continue
            if overlaps(self.route, booked_seg, self.segment_of(sib)):
                out.add(sib.id)
        return out

