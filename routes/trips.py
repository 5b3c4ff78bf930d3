# routes/trips.py
from __future__ import annotations

from flask import Blueprint, request, jsonify

from errors import ValidationError
from services.publishing import delete_trip, publish_trip
from services.search import search_trips
from services.trip_hierarchy import TripHierarchy
from utils.parsing import parse_date, parse_int, parse_time

trips_bp = Blueprint("trips", __name__, url_prefix="/trips")


def _read_segment_specs(raw) -> list[dict]:
    if raw in (None, ""):
        return []
    if not isinstance(raw, list):
        raise ValidationError("segments must be a list")
    out = []
    for i, s in enumerate(raw):
        if not isinstance(s, dict) or not s.get("origin") or not s.get("destination"):
            raise ValidationError(f"segment #{i + 1} needs origin and destination")
        out.append({
            "origin": str(s["origin"]).strip(),
            "destination": str(s["destination"]).strip(),
            "price": s.get("price"),
            "departure_date": parse_date(s["departure_date"], "departure_date") if s.get("departure_date") else None,
            "departure_time": parse_time(s.get("departure_time"), "departure_time"),
            "arrival_time": parse_time(s.get("arrival_time"), "arrival_time"),
        })
    return out


@trips_bp.route("", methods=["POST"])
def publish():
    """
    POST /trips
      {
        "route_id": 1,
        "departure_date": "2025-03-01",
        "departure_time": "08:00", "arrival_time": "14:30",
        "capacity": 40, "price": 650,
        "segments": [{"origin": "...", "destination": "...", "price": 300,
                      "departure_time": "10:15"}, ...]
        | "all_segments": true
      }
    """
    data = request.get_json(silent=True) or {}
    missing = [k for k in ("route_id", "departure_date", "capacity") if k not in data]
    if missing:
        return jsonify(error=f"Missing field(s): {', '.join(missing)}"), 400

    trip = publish_trip(
        route_id=parse_int(data["route_id"], "route_id"),
        departure_date=parse_date(data["departure_date"], "departure_date"),
        departure_time=parse_time(data.get("departure_time"), "departure_time"),
        arrival_time=parse_time(data.get("arrival_time"), "arrival_time"),
        capacity=parse_int(data["capacity"], "capacity", minimum=1),
        price=data.get("price") or 0,
        segments=_read_segment_specs(data.get("segments")),
        all_segments=str(data.get("all_segments", "")).strip().lower() in {"1", "true", "yes"},
    )

    payload = trip.as_dict(with_route=True)
    payload["sub_trips"] = [s.as_dict() for s in trip.sub_trips]
    return jsonify(payload), 201


@trips_bp.route("/search", methods=["GET"])
def search():
    """
    GET /trips/search?origin=&destination=&date=YYYY-MM-DD&seats=<int>&company_id=
    """
    day = request.args.get("date")
    seats = request.args.get("seats")
    trips = search_trips(
        origin=request.args.get("origin"),
        destination=request.args.get("destination"),
        day=parse_date(day, "date") if day else None,
        seats=parse_int(seats, "seats", minimum=0) if seats else None,
        company_id=(request.args.get("company_id") or "").strip() or None,
    )
    return jsonify([t.as_dict(with_route=True) for t in trips]), 200


@trips_bp.route("/<int:trip_id>", methods=["GET"])
def get_trip(trip_id: int):
    """The requested record plus its whole run (main trip and sub-trips)."""
    h = TripHierarchy.load(trip_id)
    trip = h.get(trip_id)
    payload = trip.as_dict(with_route=True)
    payload["main_trip"] = h.main.as_dict()
    payload["sub_trips"] = [s.as_dict() for s in h.sub_trips.values()]
    return jsonify(payload), 200


@trips_bp.route("/<int:trip_id>", methods=["DELETE"])
def remove_trip(trip_id: int):
    rows = delete_trip(trip_id)
    return jsonify(message="Trip successfully deleted", rows=rows), 200
