# models/trip.py
from datetime import datetime

from db import db


class Trip(db.Model):
    """
    One sellable record of a scheduled run.

    A main trip (is_sub_trip=False) covers the whole route; sub-trips point at
    it through parent_trip_id and pin a segment of the route. All records of a
    hierarchy share one physical seat pool, kept in step by
    services.seat_inventory.
    """
    __tablename__ = "trips"
    __table_args__ = (
        db.CheckConstraint("available_seats >= 0", name="ck_trips_available_seats_nonneg"),
    )

    id             = db.Column(db.Integer, primary_key=True)
    route_id       = db.Column(db.Integer, db.ForeignKey("routes.id"), nullable=False, index=True)
    departure_date = db.Column(db.Date, nullable=False, index=True)
    departure_time = db.Column(db.Time, nullable=True)
    arrival_time   = db.Column(db.Time, nullable=True)

    capacity        = db.Column(db.Integer, nullable=False)
    available_seats = db.Column(db.Integer, nullable=False)
    price           = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    is_sub_trip         = db.Column(db.Boolean, nullable=False, default=False)
    parent_trip_id      = db.Column(db.Integer, db.ForeignKey("trips.id", ondelete="CASCADE"), nullable=True, index=True)
    segment_origin      = db.Column(db.String(128), nullable=True)
    segment_destination = db.Column(db.String(128), nullable=True)

    # compare-and-swap token for seat updates
    version    = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    route = db.relationship("Route", back_populates="trips")

    sub_trips = db.relationship(
        "Trip",
        backref=db.backref("parent", remote_side=[id]),
        cascade="all, delete-orphan",
        order_by="Trip.id",
    )

    reservations = db.relationship("Reservation", back_populates="trip")

    def as_dict(self, *, with_route: bool = False) -> dict:
        out = {
            "id": self.id,
            "route_id": self.route_id,
            "departure_date": self.departure_date.isoformat() if self.departure_date else None,
            "departure_time": self.departure_time.strftime("%H:%M") if self.departure_time else None,
            "arrival_time": self.arrival_time.strftime("%H:%M") if self.arrival_time else None,
            "capacity": int(self.capacity),
            "available_seats": int(self.available_seats),
            "price": f"{self.price or 0:.2f}",
            "is_sub_trip": bool(self.is_sub_trip),
            "parent_trip_id": self.parent_trip_id,
            "segment_origin": self.segment_origin,
            "segment_destination": self.segment_destination,
        }
        if with_route and self.route is not None:
            out["route"] = self.route.as_dict()
            # effective endpoints for display; main trips span the route
            out["origin"] = self.segment_origin if self.is_sub_trip else self.route.origin
            out["destination"] = self.segment_destination if self.is_sub_trip else self.route.destination
        return out
