# models/route.py
from __future__ import annotations
from datetime import datetime

from db import db


class Route(db.Model):
    __tablename__ = "routes"

    id          = db.Column(db.Integer, primary_key=True)
    name        = db.Column(db.String(128), nullable=False)
    origin      = db.Column(db.String(128), nullable=False)
    stops       = db.Column(db.JSON, nullable=False, default=list)   # ordered waypoint names
    destination = db.Column(db.String(128), nullable=False)
    company_id  = db.Column(db.String(64), nullable=True, index=True)
    created_at  = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    trips = db.relationship("Trip", back_populates="route")

    @property
    def waypoints(self) -> list[str]:
        """Canonical waypoint order: origin, stops..., destination."""
        return [self.origin, *(self.stops or []), self.destination]

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "origin": self.origin,
            "stops": list(self.stops or []),
            "destination": self.destination,
            "company_id": self.company_id,
        }
