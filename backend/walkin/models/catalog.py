from __future__ import annotations

from ..extensions import db
from walkin.time_utils import to_utc_z


class Category(db.Model):
    """
    Grouping for services.

    Deleting a category never cascades: its services are kept and their
    category_id is cleared.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.Index("ix_categories_display_order", "display_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    description = db.Column(db.String(200), nullable=True)
    icon = db.Column(db.String(64), nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self, service_count: int | None = None) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "display_order": self.display_order,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if service_count is not None:
            data["service_count"] = service_count
        return data


# Case-insensitive uniqueness is enforced by the store, not only by the pre-check
db.Index("uq_categories_name_lower", db.func.lower(Category.name), unique=True)


class Service(db.Model):
    """
    Catalog entry offered to walk-in customers.

    Names are unique case-insensitively. Walk-ins keep a service_name
    snapshot, so renaming a service does not relabel past tickets.
    """
    __tablename__ = "services"
    __table_args__ = (
        db.Index("ix_services_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    image_url = db.Column(db.String(500), nullable=True)
    thumbnail_url = db.Column(db.String(500), nullable=True)
    image_alt = db.Column(db.String(200), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    category = db.relationship("Category", backref=db.backref("services", lazy=True))

    def __repr__(self) -> str:
        return f"<Service id={self.id} name={self.name!r}>"

    def to_dict(self, include_staff: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "duration_minutes": self.duration_minutes,
            "is_active": self.is_active,
            "category_id": self.category_id,
            "image_url": self.image_url,
            "thumbnail_url": self.thumbnail_url,
            "image_alt": self.image_alt,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_staff:
            data["category"] = self.category.to_dict() if self.category else None
            data["staff"] = [
                {**a.staff.to_dict(), "is_primary": a.is_primary}
                for a in self.staff_assignments
            ]
        return data


db.Index("uq_services_name_lower", db.func.lower(Service.name), unique=True)


class Staff(db.Model):
    __tablename__ = "staff"
    __table_args__ = (
        db.Index("ix_staff_active_order", "is_active", "display_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(100), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    image_url = db.Column(db.String(500), nullable=True)
    bio = db.Column(db.String(300), nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Staff id={self.id} name={self.name!r} active={self.is_active}>"

    def to_dict(self, include_services: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "title": self.title,
            "email": self.email,
            "phone": self.phone,
            "image_url": self.image_url,
            "bio": self.bio,
            "display_order": self.display_order,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_services:
            assignments = sorted(self.service_assignments, key=lambda a: (not a.is_primary, a.service.name))
            data["services"] = [
                {**a.service.to_dict(), "is_primary": a.is_primary}
                for a in assignments
            ]
        return data


class StaffAssignment(db.Model):
    """
    Which services a staff member performs (many-to-many).

    is_primary marks the staff member's headline service; at most one is
    set per staff member by assign_services.
    """
    __tablename__ = "staff_services"
    __table_args__ = (
        db.UniqueConstraint("staff_id", "service_id", name="uq_staff_services_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    staff = db.relationship("Staff", backref=db.backref("service_assignments", lazy=True, passive_deletes=True))
    service = db.relationship("Service", backref=db.backref("staff_assignments", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "service_id": self.service_id,
            "is_primary": self.is_primary,
            "service": self.service.to_dict() if self.service else None,
        }
