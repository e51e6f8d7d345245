from __future__ import annotations

import enum

from ..extensions import db
from walkin.time_utils import to_utc_z


class WalkInStatus(str, enum.Enum):
    """
    Queue ticket lifecycle.

    STATE MACHINE:
        waiting -> in-progress -> done

    done is terminal: a finished ticket is never moved or deleted.
    """
    WAITING = "waiting"
    IN_PROGRESS = "in-progress"
    DONE = "done"

    @classmethod
    def parse(cls, value) -> "WalkInStatus | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def successor(self) -> "WalkInStatus | None":
        order = list(WalkInStatus)
        idx = order.index(self)
        return order[idx + 1] if idx + 1 < len(order) else None


# Statuses that count as "in use" for deletion guards
ACTIVE_STATUSES = (WalkInStatus.WAITING.value, WalkInStatus.IN_PROGRESS.value)


class WalkIn(db.Model):
    """
    One queue ticket, from arrival to service completion.

    SERVICE REFERENCE:
    service_name is the point-in-time label shown on the ticket (free text,
    may join several services with " + "). service_id is set when the name
    resolves to a catalog service and is cleared if that service is later
    deleted; the name snapshot stays.

    customer_id is nullable for tickets created before customers were
    tracked; customer_name is always present.
    """
    __tablename__ = "walk_ins"
    __table_args__ = (
        db.Index("ix_walk_ins_status_created", "status", "created_at"),
        db.Index("ix_walk_ins_service_status", "service_name", "status"),
        db.Index("ix_walk_ins_staff_status", "staff_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(100), nullable=False)

    service_id = db.Column(db.Integer, db.ForeignKey("services.id", ondelete="SET NULL"), nullable=True, index=True)
    service_name = db.Column(db.String(255), nullable=False)

    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id", ondelete="SET NULL"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=WalkInStatus.WAITING.value)
    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("walk_ins", lazy=True))
    service = db.relationship("Service")
    staff = db.relationship("Staff", backref=db.backref("walk_ins", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def lifecycle_status(self) -> WalkInStatus:
        return WalkInStatus(self.status)

    def __repr__(self) -> str:
        return f"<WalkIn id={self.id} customer={self.customer_name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer.phone if self.customer else None,
            "service_id": self.service_id,
            "service_name": self.service_name,
            "staff_id": self.staff_id,
            "staff_name": self.staff.name if self.staff else None,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "started_at": to_utc_z(self.started_at),
            "completed_at": to_utc_z(self.completed_at),
            "updated_at": to_utc_z(self.updated_at),
        }
