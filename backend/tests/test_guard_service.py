# Overview: Pytest coverage for deletion guards on services, staff and categories.

import pytest

from walkin.models import Category, Service, Staff, StaffAssignment, WalkIn
from walkin.services.catalog_service import delete_category, delete_service, delete_staff
from walkin.services.guard_service import can_delete
from walkin.validation import GuardViolation, NotFoundError, ValidationError


class TestCanDelete:

    def test_service_counts_only_active_tickets(self, db_session, make_service, make_walkin):
        service = make_service(name="Haircut")
        make_walkin(service_name="Haircut", status="waiting")
        make_walkin(service_name="Haircut", status="in-progress")
        make_walkin(service_name="Haircut", status="done")
        make_walkin(service_name="Shave", status="waiting")

        result = can_delete("service", service.id)

        assert result.allowed is False
        assert result.blocking_count == 2

    def test_service_matched_by_id_after_rename(self, db_session, make_service, make_walkin):
        service = make_service(name="Haircut")
        make_walkin(service_name="Old Haircut Name", service_id=service.id)

        assert can_delete("service", service.id).blocking_count == 1

    def test_staff_counts_active_assignments(self, db_session, make_staff, make_walkin):
        staff = make_staff()
        make_walkin(staff_id=staff.id, status="waiting")
        make_walkin(staff_id=staff.id, status="done")

        result = can_delete("staff", staff.id)
        assert result.to_dict() == {"allowed": False, "blocking_count": 1}

    def test_idle_staff_allowed(self, db_session, make_staff):
        staff = make_staff()
        assert can_delete("staff", staff.id).allowed is True

    def test_category_always_allowed(self, db_session, make_category, make_service):
        category = make_category()
        make_service(category_id=category.id)

        result = can_delete("category", category.id)
        assert result.allowed is True
        assert result.blocking_count == 0

    def test_unknown_id(self, db_session):
        with pytest.raises(NotFoundError):
            can_delete("service", 999)

    def test_unknown_entity_type(self, db_session):
        with pytest.raises(ValidationError):
            can_delete("product", 1)


class TestGuardedDeletes:

    def test_service_in_use_refused_with_count(self, db_session, make_service, make_walkin):
        service = make_service(name="Haircut")
        make_walkin(service_name="Haircut", status="waiting")

        with pytest.raises(GuardViolation) as exc:
            delete_service(service.id)

        assert exc.value.blocking_count == 1
        assert exc.value.to_dict()["inUseCount"] == 1
        assert db_session.query(Service).count() == 1

    def test_service_with_history_only_is_deleted(self, db_session, make_service, make_staff, make_walkin):
        service = make_service(name="Haircut")
        staff = make_staff()
        db_session.add(StaffAssignment(staff_id=staff.id, service_id=service.id))
        db_session.commit()
        old = make_walkin(service_name="Haircut", service_id=service.id, status="done")

        delete_service(service.id)

        db_session.expire_all()
        assert db_session.query(Service).count() == 0
        assert db_session.query(StaffAssignment).count() == 0
        ticket = db_session.get(WalkIn, old.id)
        assert ticket.service_id is None
        assert ticket.service_name == "Haircut"

    def test_staff_in_use_refused_with_count(self, db_session, make_staff, make_walkin):
        staff = make_staff()
        make_walkin(staff_id=staff.id, status="in-progress")
        make_walkin(staff_id=staff.id, status="waiting")

        with pytest.raises(GuardViolation) as exc:
            delete_staff(staff.id)

        assert exc.value.to_dict()["activeWalkIns"] == 2
        assert db_session.query(Staff).count() == 1

    def test_idle_staff_deleted_and_history_detached(self, db_session, make_staff, make_walkin):
        staff = make_staff()
        old = make_walkin(staff_id=staff.id, status="done")

        delete_staff(staff.id)

        db_session.expire_all()
        assert db_session.query(Staff).count() == 0
        assert db_session.get(WalkIn, old.id).staff_id is None

    def test_category_delete_detaches_services(self, db_session, make_category, make_service):
        category = make_category()
        make_service(name="Haircut", category_id=category.id)
        make_service(name="Shave", category_id=category.id)
        make_service(name="Massage")

        detached = delete_category(category.id)

        db_session.expire_all()
        assert detached == 2
        assert db_session.query(Category).count() == 0
        assert db_session.query(Service).count() == 3
        assert db_session.query(Service).filter(Service.category_id.isnot(None)).count() == 0

    def test_delete_missing_rows(self, db_session):
        with pytest.raises(NotFoundError):
            delete_service(999)
        with pytest.raises(NotFoundError):
            delete_staff(999)
        with pytest.raises(NotFoundError):
            delete_category(999)
