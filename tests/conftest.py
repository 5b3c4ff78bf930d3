# tests/conftest.py
from datetime import date, time

import pytest

from app import create_app
from config import TestingConfig
from db import db
from models.route import Route
from models.trip import Trip
from services.publishing import publish_trip

DAY = date(2025, 3, 1)


@pytest.fixture
def app(tmp_path):
    # file-backed so separate sessions get separate connections
    class _Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'seatpool.db'}"

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def route(app):
    r = Route(name="A to D", origin="A", stops=["B", "C"], destination="D")
    db.session.add(r)
    db.session.commit()
    return r


@pytest.fixture
def run(route):
    """
    Capacity-10 run over A-B-C-D with sub-trips AB, AC, BD, CD.
    Returns {"main": id, "AB": id, ...}.
    """
    main = publish_trip(
        route_id=route.id,
        departure_date=DAY,
        departure_time=time(8, 0),
        arrival_time=time(14, 0),
        capacity=10,
        price=100,
        segments=[
            {"origin": "A", "destination": "B"},
            {"origin": "A", "destination": "C"},
            {"origin": "B", "destination": "D"},
            {"origin": "C", "destination": "D"},
        ],
    )
    ids = {"main": main.id}
    for sub in main.sub_trips:
        ids[sub.segment_origin + sub.segment_destination] = sub.id
    return ids


def pax(n):
    return [{"first_name": f"Rider{i}", "last_name": "Test"} for i in range(n)]


def seats(ids):
    """Fresh available_seats per name in an id map."""
    db.session.expire_all()
    return {name: db.session.get(Trip, tid).available_seats for name, tid in ids.items()}
