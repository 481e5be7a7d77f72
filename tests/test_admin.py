"""
Tests for admin moderation, the audit log and notifications
"""

from datetime import date, datetime

import pytest

from app.models.audit_log import AuditAction, AuditLog
from app.models.group import GroupStatus
from app.models.user import UserRole
from app.services import admin_service, notification_service
from app.services.reservation_service import ReservationService
from app.utils.errors import ValidationFailed

from factories import make_experience, make_group, make_property, make_user


@pytest.fixture
def admin(db):
    return make_user(db, first_name="Ada", role=UserRole.ADMIN.value)


@pytest.fixture
def host(db):
    return make_user(db, first_name="Hana")


class TestPropertyModeration:

    def test_status_change_is_audited(self, db, admin, host):
        listing = make_property(db, host, status="pending")

        admin_service.update_property_status(db, admin, listing.id, "approved")

        entry = db.query(AuditLog).one()
        assert entry.action == AuditAction.PROPERTY_STATUS_UPDATE.value
        assert entry.admin_user_id == admin.id
        assert entry.resource_id == listing.id
        assert entry.before_json["status"] == "pending"
        assert entry.after_json["status"] == "approved"

    def test_unknown_status(self, db, admin, host):
        listing = make_property(db, host)
        with pytest.raises(ValidationFailed):
            admin_service.update_property_status(db, admin, listing.id, "glowing")
        assert db.query(AuditLog).count() == 0

    def test_endpoint_requires_admin(self, client, login, db, admin, host):
        listing = make_property(db, host, status="pending")

        login(host)
        denied = client.patch(f"/api/admin/properties/{listing.id}/status", json={"status": "approved"})
        assert denied.status_code == 403

        login(admin)
        response = client.patch(f"/api/admin/properties/{listing.id}/status", json={"status": "approved"})
        assert response.status_code == 200
        assert response.json()["status"] == "approved"


class TestGroupOverride:

    def test_lock_is_recorded_as_lock(self, db, admin, host):
        owner = make_user(db, first_name="Omar")
        group = make_group(db, owner, make_experience(db, host))
        group.expires_at = datetime(2025, 6, 1, 12, 0)
        db.commit()

        locked = admin_service.override_group(db, admin, group.id, status=GroupStatus.LOCKED.value)

        assert locked.status == GroupStatus.LOCKED.value
        entry = db.query(AuditLog).one()
        assert entry.action == AuditAction.GROUP_LOCK.value
        assert entry.before_json["status"] == GroupStatus.PENDING.value
        assert entry.before_json["expires_at"] == "2025-06-01T12:00:00"

    def test_rename_is_plain_update(self, db, admin, host):
        owner = make_user(db, first_name="Omar")
        group = make_group(db, owner, make_experience(db, host))

        admin_service.override_group(db, admin, group.id, name="Renamed")

        assert db.query(AuditLog).one().action == AuditAction.GROUP_UPDATE.value

    def test_audit_log_listing(self, client, login, db, admin, host):
        listing = make_property(db, host, status="pending")
        admin_service.update_property_status(db, admin, listing.id, "approved")
        admin_service.update_property_status(db, admin, listing.id, "live")
        login(admin)

        response = client.get("/api/admin/audit-logs", params={"resourceType": "property", "limit": 1})

        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 2
        assert len(body["items"]) == 1
        assert body["has_more"] is True


class TestNotifications:

    def _request_stay(self, db, host):
        guest = make_user(db, first_name="Gabi")
        listing = make_property(db, host)
        ReservationService(db).create(guest, listing.id, date(2025, 1, 10), date(2025, 1, 12))

    def test_unread_count_and_mark_all(self, db, host):
        self._request_stay(db, host)
        self._request_stay(db, host)

        assert notification_service.unread_count(db, host.id) == 2
        assert notification_service.mark_all_read(db, host.id) == 2
        assert notification_service.unread_count(db, host.id) == 0

    def test_mark_read_is_owner_scoped(self, db, host):
        self._request_stay(db, host)
        notification_id = notification_service.list_for_user(db, host.id)[0][0].id
        other = make_user(db)

        assert notification_service.mark_read(db, other.id, notification_id) is None
        assert notification_service.mark_read(db, host.id, notification_id).is_read is True

    def test_list_endpoint_pages(self, client, login, db, host):
        for _ in range(3):
            self._request_stay(db, host)
        login(host)

        body = client.get("/api/notifications", params={"limit": 2, "unreadOnly": True}).json()

        assert body["total"] == 3
        assert len(body["items"]) == 2
        assert body["has_more"] is True
        assert body["items"][0]["type"] == "reservation_request"

    def test_mark_missing_is_404(self, client, login, db, host):
        login(host)
        response = client.patch("/api/notifications/nope/read")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
