from __future__ import annotations

from ..extensions import db
from clinicpos.time_utils import now, to_iso


class Customer(db.Model):
    """
    Patient/customer master data.

    Phone numbers are stored as bare digits and are unique. A customer
    that owns at least one sale cannot be deleted.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("phone", name="uq_customers_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(16), nullable=False, index=True)
    age = db.Column(db.Integer, nullable=True)

    # Address
    province = db.Column(db.String(128), nullable=True)
    district = db.Column(db.String(128), nullable=True)
    village = db.Column(db.String(128), nullable=True)

    image = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=now, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=now, onupdate=now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "age": self.age,
            "province": self.province,
            "district": self.district,
            "village": self.village,
            "image": self.image,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }
