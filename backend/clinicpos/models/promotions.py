from __future__ import annotations

from datetime import datetime

from ..extensions import db
from clinicpos.money import to_number
from clinicpos.time_utils import now, to_iso


class Promotion(db.Model):
    """
    Discount campaign.

    `discount` is a percentage when is_percent is set, otherwise a fixed
    amount. A promotion applies only while active and in its date window.
    """
    __tablename__ = "promotions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    discount = db.Column(db.Numeric(12, 2), nullable=False)
    is_percent = db.Column(db.Boolean, nullable=False, default=False)

    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    images = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=now)

    def is_in_window(self, at: datetime | None = None) -> bool:
        at = at or now()
        return bool(self.is_active) and self.start_date <= at <= self.end_date

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "discount": to_number(self.discount),
            "is_percent": self.is_percent,
            "start_date": to_iso(self.start_date),
            "end_date": to_iso(self.end_date),
            "is_active": self.is_active,
            "images": list(self.images or []),
            "created_at": to_iso(self.created_at),
        }
