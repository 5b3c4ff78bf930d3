# models/reservation.py
from datetime import datetime

from db import db


class ReservationStatus:
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    CANCELED_AND_REFUND = "canceledAndRefund"

    ALL = (CONFIRMED, CANCELED, CANCELED_AND_REFUND)


class Reservation(db.Model):
    __tablename__ = "reservations"

    id           = db.Column(db.Integer, primary_key=True)
    # fixed at creation; a transfer books a new reservation instead
    trip_id      = db.Column(db.Integer, db.ForeignKey("trips.id"), nullable=False, index=True)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    phone        = db.Column(db.String(32), nullable=True)
    email        = db.Column(db.String(128), nullable=True)
    notes        = db.Column(db.Text, nullable=True)
    status       = db.Column(
        db.Enum(*ReservationStatus.ALL, name="reservation_status"),
        nullable=False,
        default=ReservationStatus.CONFIRMED,
        index=True,
    )
    transferred_from_id = db.Column(db.Integer, db.ForeignKey("reservations.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    trip = db.relationship("Trip", back_populates="reservations")
    passengers = db.relationship(
        "Passenger",
        back_populates="reservation",
        order_by="Passenger.id",
        cascade="all, delete-orphan",
    )

    @property
    def seat_count(self) -> int:
        return len(self.passengers)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "trip_id": self.trip_id,
            "total_amount": f"{self.total_amount or 0:.2f}",
            "phone": self.phone,
            "email": self.email,
            "notes": self.notes,
            "status": self.status,
            "transferred_from_id": self.transferred_from_id,
            "seats": self.seat_count,
            "passengers": [p.as_dict() for p in self.passengers],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Passenger(db.Model):
    __tablename__ = "passengers"

    id             = db.Column(db.Integer, primary_key=True)
    reservation_id = db.Column(db.Integer, db.ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name     = db.Column(db.String(64), nullable=False)
    last_name      = db.Column(db.String(64), nullable=False)

    reservation = db.relationship("Reservation", back_populates="passengers")

    def as_dict(self) -> dict:
        return {"id": self.id, "first_name": self.first_name, "last_name": self.last_name}
