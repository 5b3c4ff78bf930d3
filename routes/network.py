# routes/network.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from db import db
from errors import RouteInUse, RouteNotFound
from models.route import Route
from models.trip import Trip
from services.publishing import sellable_segments
from utils.segments import group_segments_by_city

network_bp = Blueprint("network", __name__, url_prefix="/routes")


def _route_or_404(route_id: int) -> Route:
    route = db.session.get(Route, route_id)
    if route is None:
        raise RouteNotFound(f"route {route_id} not found", route_id=route_id)
    return route


def _read_route_payload(data: dict, *, partial: bool = False, current: Route | None = None):
    """
    Returns (fields, error). Waypoint names must be unique so each one has a
    single position in the route order.
    """
    fields = {}
    for key in ("name", "origin", "destination"):
        if key in data:
            val = str(data.get(key) or "").strip()
            if not val:
                return None, f"{key} must not be empty"
            fields[key] = val
        elif not partial:
            return None, f"Missing field: {key}"

    if "stops" in data:
        stops = data.get("stops") or []
        if not isinstance(stops, list):
            return None, "stops must be a list of names"
        stops = [str(s or "").strip() for s in stops]
        if any(not s for s in stops):
            return None, "stops must not contain empty names"
        fields["stops"] = stops
    elif not partial:
        fields["stops"] = []

    if "company_id" in data:
        fields["company_id"] = str(data.get("company_id") or "").strip() or None

    origin = fields.get("origin", current.origin if current else None)
    destination = fields.get("destination", current.destination if current else None)
    stops = fields.get("stops", list(current.stops or []) if current else [])
    waypoints = [origin, *stops, destination]
    if len(set(waypoints)) != len(waypoints):
        return None, "waypoint names must be unique within a route"
    return fields, None


@network_bp.route("", methods=["GET"])
def list_routes():
    q = Route.query
    company_id = (request.args.get("company_id") or "").strip()
    if company_id:
        q = q.filter(Route.company_id == company_id)
    return jsonify([r.as_dict() for r in q.order_by(Route.name.asc(), Route.id.asc()).all()]), 200


@network_bp.route("", methods=["POST"])
def create_route():
    data = request.get_json(silent=True) or {}
    fields, err = _read_route_payload(data)
    if err:
        return jsonify(error=err), 400

    route = Route(**fields)
    try:
        db.session.add(route)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[routes] create failed")
        return jsonify(error="Failed to create route"), 500

    current_app.logger.info("[routes] created id=%s waypoints=%s", route.id, len(route.waypoints))
    return jsonify(route.as_dict()), 201


@network_bp.route("/<int:route_id>", methods=["GET"])
def get_route(route_id: int):
    return jsonify(_route_or_404(route_id).as_dict()), 200


@network_bp.route("/<int:route_id>", methods=["PUT"])
def update_route(route_id: int):
    """
    Routes are frozen once a trip references them: sub-trips store waypoint
    names, and renaming or reordering stops would strand their segments.
    """
    route = _route_or_404(route_id)
    if Trip.query.filter(Trip.route_id == route.id).first() is not None:
        raise RouteInUse(f"route {route_id} has published trips", route_id=route_id)

    data = request.get_json(silent=True) or {}
    fields, err = _read_route_payload(data, partial=True, current=route)
    if err:
        return jsonify(error=err), 400

    for key, val in fields.items():
        setattr(route, key, val)
    db.session.commit()
    return jsonify(route.as_dict()), 200


@network_bp.route("/<int:route_id>", methods=["DELETE"])
def delete_route(route_id: int):
    route = _route_or_404(route_id)
    if Trip.query.filter(Trip.route_id == route.id).first() is not None:
        raise RouteInUse(f"route {route_id} has published trips", route_id=route_id)

    db.session.delete(route)
    db.session.commit()
    return jsonify(message="Route deleted"), 200


@network_bp.route("/<int:route_id>/segments", methods=["GET"])
def route_segments(route_id: int):
    """
    GET /routes/<id>/segments
      Every sellable origin→destination pair (same-city pairs excluded),
      flat and grouped by city pair.
    """
    route = _route_or_404(route_id)
    segments = sellable_segments(route)
    sep = current_app.config.get("CITY_SEPARATOR", " - ")

    return jsonify(
        route=route.as_dict(),
        segments=[{"origin": s.origin, "destination": s.destination} for s in segments],
        groups=[
            {
                "origin_city": g["origin_city"],
                "destination_city": g["destination_city"],
                "segments": [{"origin": s.origin, "destination": s.destination} for s in g["segments"]],
            }
            for g in group_segments_by_city(segments, sep)
        ],
    ), 200
