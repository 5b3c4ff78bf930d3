# tests/test_search.py
from datetime import timedelta

import pytest

from conftest import DAY, pax
from db import db
from models.route import Route
from services.publishing import publish_trip
from services.reservations import create_reservation
from services.search import search_trips


def _ids(trips):
    return [t.id for t in trips]


def test_origin_only_matches_main_and_departing_segments(run):
    assert set(_ids(search_trips(origin="b"))) == {run["main"], run["BD"]}


def test_destination_only_matches_main_and_arriving_segments(run):
    assert set(_ids(search_trips(destination="C"))) == {run["main"], run["AC"]}


def test_last_stop_is_not_an_origin(run):
    assert _ids(search_trips(origin="d")) == []


@pytest.mark.parametrize("origin, destination, expected", [
    ("a", "c", ["AC"]),      # exact segment wins over the main trip
    ("b", "c", ["main"]),    # no B→C segment; the main trip passes both
    ("c", "b", []),          # wrong direction
])
def test_origin_and_destination(run, origin, destination, expected):
    found = search_trips(origin=origin, destination=destination)
    assert _ids(found) == [run[name] for name in expected]


def test_seat_filter_hides_short_records(run):
    create_reservation(run["AC"], pax(8))
    assert _ids(search_trips(seats=3)) == [run["CD"]]


def test_date_filter(run):
    assert len(search_trips(day=DAY)) == 5
    assert search_trips(day=DAY + timedelta(days=1)) == []


def test_result_limit(app, run):
    app.config["SEARCH_LIMIT"] = 2
    assert len(search_trips()) == 2


def test_company_filter(route, run):
    route.company_id = "estrella"
    db.session.commit()

    assert len(search_trips(company_id="estrella")) == 5
    assert search_trips(company_id="other") == []


def test_any_matching_sub_trip_hides_main_trips(app):
    route = Route(
        name="Acapulco - CDMX",
        origin="Acapulco - Centro",
        stops=["Acapulco - Terminal"],
        destination="CDMX - Norte",
    )
    db.session.add(route)
    db.session.commit()
    main = publish_trip(route_id=route.id, departure_date=DAY, capacity=4, all_segments=True)
    sub = main.sub_trips[0]

    found = search_trips(origin="acapulco", destination="cdmx")
    assert _ids(found) == [sub.id]
    assert sub.segment_origin == "Acapulco - Terminal"
