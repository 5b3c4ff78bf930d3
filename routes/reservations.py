# routes/reservations.py
from __future__ import annotations

import uuid

from flask import Blueprint, request, jsonify

from services.reservations import (
    cancel_reservation,
    create_reservation,
    get_reservation,
    transfer_reservation,
)
from utils.parsing import parse_int

reservations_bp = Blueprint("reservations", __name__, url_prefix="/reservations")


def _rid() -> str:
    """Request id for log correlation; honours an upstream X-Request-ID."""
    return (request.headers.get("X-Request-ID") or "").strip()[:64] or uuid.uuid4().hex[:12]


@reservations_bp.route("", methods=["POST"])
def create():
    """
    POST /reservations
      {
        "trip_id": 12,
        "passengers": [{"first_name": "Ana", "last_name": "Ruiz"}, ...],
        "phone": "...", "email": "...", "notes": "...",
        "total_amount": 1300          (optional; defaults to price × seats)
      }
    409 insufficient_capacity when any overlapping record is short.
    """
    data = request.get_json(silent=True) or {}
    if "trip_id" not in data:
        return jsonify(error="trip_id is required"), 400
    passengers = data.get("passengers")
    if not isinstance(passengers, list) or not passengers:
        return jsonify(error="passengers must be a non-empty list"), 400

    r = create_reservation(
        parse_int(data["trip_id"], "trip_id"),
        passengers,
        total_amount=data.get("total_amount"),
        phone=(data.get("phone") or None),
        email=(data.get("email") or None),
        notes=(data.get("notes") or None),
        rid=_rid(),
    )
    return jsonify(r.as_dict()), 201


@reservations_bp.route("/<int:reservation_id>", methods=["GET"])
def detail(reservation_id: int):
    r = get_reservation(reservation_id)
    payload = r.as_dict()
    payload["trip"] = r.trip.as_dict(with_route=True) if r.trip else None
    return jsonify(payload), 200


@reservations_bp.route("/<int:reservation_id>/cancel", methods=["POST"])
def cancel(reservation_id: int):
    r = cancel_reservation(reservation_id, rid=_rid())
    return jsonify(success=True, reservation=r.as_dict()), 200


@reservations_bp.route("/<int:reservation_id>/cancel-refund", methods=["POST"])
def cancel_refund(reservation_id: int):
    r = cancel_reservation(reservation_id, refund=True, rid=_rid())
    return jsonify(success=True, reservation=r.as_dict()), 200


@reservations_bp.route("/<int:reservation_id>/transfer", methods=["POST"])
def transfer(reservation_id: int):
    """
    POST /reservations/<id>/transfer   { "trip_id": <target trip> }
    Returns the new reservation; the original ends up canceled.
    """
    data = request.get_json(silent=True) or {}
    if "trip_id" not in data:
        return jsonify(error="trip_id is required"), 400

    moved = transfer_reservation(reservation_id, parse_int(data["trip_id"], "trip_id"), rid=_rid())
    return jsonify(moved.as_dict()), 201
