#!/usr/bin/env python3
# seed.py

from datetime import date, time, timedelta

from app import create_app
from db import db
from models.route import Route
from models.trip import Trip
from services.publishing import publish_trip

# Demo route definition
ROUTE_NAME = "Acapulco - CDMX"
WAYPOINTS = [
    "Acapulco - Centro",
    "Chilpancingo - Terminal",
    "Cuernavaca - Centro",
    "CDMX - Norte",
]
CAPACITY = 40

def seed_demo():
    """
    Creates the demo route and publishes tomorrow's run with every sellable
    segment as a sub-trip.

    Safe to run repeatedly: the route is reused by name and the run is only
    published if none exists for that date.
    """
    app = create_app()
    with app.app_context():
        route = Route.query.filter_by(name=ROUTE_NAME).first()
        if not route:
            route = Route(
                name=ROUTE_NAME,
                origin=WAYPOINTS[0],
                stops=WAYPOINTS[1:-1],
                destination=WAYPOINTS[-1],
            )
            db.session.add(route)
            db.session.commit()
            print(f"➕ Created route `{ROUTE_NAME}` (id={route.id}).")

        day = date.today() + timedelta(days=1)
        exists = Trip.query.filter_by(route_id=route.id, departure_date=day, is_sub_trip=False).first()
        if exists:
            print(f"🔄 Trip {exists.id} already published for {day}.")
            return

        trip = publish_trip(
            route_id=route.id,
            departure_date=day,
            departure_time=time(7, 0),
            arrival_time=time(13, 30),
            capacity=CAPACITY,
            price=650,
            all_segments=True,
        )
        print(f"✅ Published trip {trip.id} with {len(trip.sub_trips)} sub-trip(s) for {day}.")

if __name__ == "__main__":
    seed_demo()
