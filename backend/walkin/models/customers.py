from __future__ import annotations

from ..extensions import db
from walkin.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer identity, keyed by canonical phone number.

    PHONE: stored only in canonical form (+<country><10 digits>) and unique.
    The phone never changes once set; the display name follows the most
    recent walk-in that supplied one (last writer wins, no history).

    Customers are never deleted by the queue; walk-ins keep their own
    customer_name snapshot.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("phone", name="uq_customers_phone"),
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    phone = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} phone={self.phone!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phone": self.phone,
            "name": self.name,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
