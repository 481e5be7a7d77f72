"""
Tests for the stay reservation lifecycle

Test Coverage:
1. Overlap denial on validate and on a racing confirm
2. Auto-expiry of a lapsed hold instead of the requested transition
3. Guest cancellation with the moderate refund and calendar release
4. Fallback pricing, permissions and the HTTP surface
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from app.models.availability import AvailabilityCell, BOOKED_NOTE
from app.models.notification import Notification, NotificationType
from app.models.property import CancellationPolicy
from app.models.reservation import Reservation, ReservationStatus
from app.services.calendar_ledger import CalendarLedger
from app.services.reservation_service import ReservationService
from app.services.reservation_status_updater import ReservationStatusUpdater
from app.utils.errors import Conflict, Forbidden, InvalidRange, NotFound, PolicyViolation

from factories import make_property, make_user

T0 = datetime(2025, 1, 1, 12, 0)


@pytest.fixture
def host(db):
    return make_user(db, first_name="Hana", last_name="Host")


@pytest.fixture
def guest_a(db):
    return make_user(db, first_name="Amine")


@pytest.fixture
def guest_b(db):
    return make_user(db, first_name="Binta")


@pytest.fixture
def listing(db, host):
    return make_property(db, host, nightly_price=100)


class TestOverlapDenial:

    def test_validate_reports_confirmed_overlap(self, db, host, guest_a, guest_b, listing):
        service = ReservationService(db)
        first = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        service.update_status(host, first.id, ReservationStatus.CONFIRMED.value, now=T0 + timedelta(hours=1))

        with pytest.raises(Conflict) as exc:
            service.validate_availability(listing.id, date(2025, 1, 11), date(2025, 1, 13))

        assert exc.value.status_code == 409
        assert exc.value.details["conflicts"] == 1
        assert exc.value.details["blocked"] == 0
        assert exc.value.details["ok"] is False

    def test_second_confirm_loses(self, db, host, guest_a, guest_b, listing):
        service = ReservationService(db)
        first = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        second = service.create(guest_b, listing.id, date(2025, 1, 11), date(2025, 1, 13), now=T0)

        service.update_status(host, first.id, ReservationStatus.CONFIRMED.value, now=T0)
        with pytest.raises(Conflict):
            service.update_status(host, second.id, ReservationStatus.CONFIRMED.value, now=T0)

        db.expire_all()
        assert db.get(Reservation, second.id).status == ReservationStatus.PENDING.value

    def test_confirm_closes_every_night(self, db, host, guest_a, listing):
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 13), now=T0)
        service.update_status(host, reservation.id, ReservationStatus.CONFIRMED.value, now=T0)

        cells = db.query(AvailabilityCell).filter(
            AvailabilityCell.property_id == listing.id
        ).order_by(AvailabilityCell.date).all()
        assert [c.date for c in cells] == [date(2025, 1, 10), date(2025, 1, 11), date(2025, 1, 12)]
        assert all(not c.is_available and c.notes == BOOKED_NOTE for c in cells)
        assert all(Decimal(str(c.price)) == Decimal("100") for c in cells)

    def test_host_block_counts_as_blocked(self, db, host, listing):
        CalendarLedger(db).block(listing.id, date(2025, 2, 1), date(2025, 2, 2), reason="Painting")
        db.commit()

        with pytest.raises(Conflict) as exc:
            ReservationService(db).validate_availability(listing.id, date(2025, 2, 1), date(2025, 2, 5))
        assert exc.value.details == {"ok": False, "conflicts": 0, "blocked": 2}

    def test_free_range_is_ok(self, db, listing):
        result = ReservationService(db).validate_availability(listing.id, date(2025, 5, 1), date(2025, 5, 3))
        assert result == {"ok": True}


class TestAutoExpiry:

    def test_lapsed_hold_expires_instead_of_confirming(self, db, host, guest_a, listing):
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        assert reservation.expires_at == T0 + timedelta(hours=24)

        change = service.update_status(
            host, reservation.id, ReservationStatus.CONFIRMED.value,
            now=T0 + timedelta(hours=24, seconds=1)
        )

        assert change.reservation.status == ReservationStatus.EXPIRED.value
        assert change.changed is True
        assert change.forced_expiry is True
        assert db.query(AvailabilityCell).filter(AvailabilityCell.property_id == listing.id).count() == 0

    def test_sweep_expires_and_completes(self, db, host, guest_a, listing):
        service = ReservationService(db)
        stale = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        stayed = service.create(guest_a, listing.id, date(2025, 1, 2), date(2025, 1, 4), now=T0)
        service.update_status(host, stayed.id, ReservationStatus.CONFIRMED.value, now=T0)

        result = ReservationStatusUpdater(db).run_all_auto_updates(now=datetime(2025, 1, 5, 9, 0))

        assert result["expired_count"] == 1
        assert result["completed_count"] == 1
        db.expire_all()
        assert db.get(Reservation, stale.id).status == ReservationStatus.EXPIRED.value
        assert db.get(Reservation, stayed.id).status == ReservationStatus.COMPLETED.value

    def test_sweep_is_idempotent(self, db, guest_a, listing):
        ReservationService(db).create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        updater = ReservationStatusUpdater(db)
        later = T0 + timedelta(days=2)

        assert updater.expire_pending(later) == 1
        assert updater.expire_pending(later) == 0


class TestGuestCancellation:

    def test_moderate_refund_and_release(self, db, host, guest_a):
        listing = make_property(db, host, nightly_price=150, policy=CancellationPolicy.MODERATE.value)
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        reservation.total_price = Decimal("300")
        CalendarLedger(db).mark_booked(listing.id, reservation.check_in, reservation.check_out, 150)
        db.commit()

        result = service.cancel(guest_a, reservation.id, now=datetime(2025, 1, 7, 0, 0))

        assert result.refund_amount == 150.0
        assert result.reason == "50% refund - cancelled 1-4 days before check-in"
        assert result.reservation.status == ReservationStatus.CANCELLED.value
        db.expire_all()
        cells = db.query(AvailabilityCell).filter(AvailabilityCell.property_id == listing.id).all()
        assert len(cells) == 2
        assert all(c.is_available for c in cells)

    def test_cancelling_overlapping_request_keeps_confirmed_nights(self, db, host, guest_a, guest_b, listing):
        service = ReservationService(db)
        kept = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        dropped = service.create(guest_b, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        service.update_status(host, kept.id, ReservationStatus.CONFIRMED.value, now=T0)

        service.cancel(guest_b, dropped.id, now=T0)

        db.expire_all()
        assert db.get(Reservation, kept.id).status == ReservationStatus.CONFIRMED.value
        cells = db.query(AvailabilityCell).filter(AvailabilityCell.property_id == listing.id).all()
        assert len(cells) == 2
        assert all(not c.is_available and c.notes == BOOKED_NOTE for c in cells)

    def test_cancel_leaves_host_block_closed(self, db, guest_a, listing):
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        CalendarLedger(db).block(listing.id, date(2025, 1, 11), date(2025, 1, 11), reason="Repairs")
        db.commit()

        service.cancel(guest_a, reservation.id, now=T0)

        db.expire_all()
        cell = db.query(AvailabilityCell).filter(AvailabilityCell.property_id == listing.id).one()
        assert cell.is_available is False
        assert cell.notes.endswith("Repairs")

    def test_cancel_inside_window_is_refused(self, db, guest_a, listing):
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)

        with pytest.raises(PolicyViolation) as exc:
            service.cancel(guest_a, reservation.id, now=datetime(2025, 1, 9, 18, 0))
        assert exc.value.details["reason"].startswith("No refund")

    def test_confirmed_reservation_cannot_be_cancelled_by_guest(self, db, host, guest_a, listing):
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        service.update_status(host, reservation.id, ReservationStatus.CONFIRMED.value, now=T0)

        with pytest.raises(PolicyViolation):
            service.cancel(guest_a, reservation.id, now=T0)

    def test_other_guest_gets_not_found(self, db, guest_a, guest_b, listing):
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)

        with pytest.raises(NotFound):
            service.cancel(guest_b, reservation.id, now=T0)


class TestCreateAndTransitions:

    def test_fallback_price_adds_two_percent_cleaning(self, db, guest_a, listing):
        reservation = ReservationService(db).create(
            guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0
        )
        assert Decimal(str(reservation.total_price)) == Decimal("202.00")
        assert reservation.status == ReservationStatus.PENDING.value

    def test_create_notifies_host(self, db, host, guest_a, listing):
        reservation = ReservationService(db).create(
            guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0
        )
        notification = db.query(Notification).filter(Notification.user_id == host.id).one()
        assert notification.type == NotificationType.RESERVATION_REQUEST.value
        assert notification.ref_id == reservation.id
        assert "Jan 10, 2025" in notification.message

    def test_inverted_range_rejected(self, db, guest_a, listing):
        with pytest.raises(InvalidRange):
            ReservationService(db).create(guest_a, listing.id, date(2025, 1, 12), date(2025, 1, 12), now=T0)

    def test_unapproved_property_not_bookable(self, db, host, guest_a):
        draft = make_property(db, host, status="pending")
        with pytest.raises(NotFound):
            ReservationService(db).create(guest_a, draft.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)

    def test_guest_cannot_confirm(self, db, guest_a, listing):
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        with pytest.raises(Forbidden):
            service.update_status(guest_a, reservation.id, ReservationStatus.CONFIRMED.value, now=T0)

    def test_terminal_status_is_a_no_op(self, db, host, guest_a, listing):
        service = ReservationService(db)
        reservation = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        service.update_status(host, reservation.id, ReservationStatus.REJECTED.value, now=T0)

        change = service.update_status(host, reservation.id, ReservationStatus.CONFIRMED.value, now=T0)
        assert change.changed is False
        assert change.reservation.status == ReservationStatus.REJECTED.value


class TestReservationEndpoints:

    def test_create_returns_201(self, client, login, guest_a, listing):
        login(guest_a)
        checkin = date.today() + timedelta(days=10)
        response = client.post(
            f"/api/apartment/property/{listing.id}",
            json={
                "checkIn": checkin.isoformat(),
                "checkOut": (checkin + timedelta(days=2)).isoformat(),
                "numGuests": 2,
                "note": "Late arrival <script>alert(1)</script>",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["num_guests"] == 2
        assert Decimal(body["total_price"]) == Decimal("202.00")
        assert "<script>" not in body["note"]

    def test_validate_conflict_body(self, client, login, db, host, guest_a, listing):
        service = ReservationService(db)
        first = service.create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        service.update_status(host, first.id, ReservationStatus.CONFIRMED.value, now=T0)

        login(guest_a)
        response = client.post(
            f"/api/apartment/property/{listing.id}/validate",
            json={"checkIn": "2025-01-11", "checkOut": "2025-01-13"},
        )

        assert response.status_code == 409
        assert response.json() == {
            "error": "conflict",
            "message": "Selected dates are not available",
            "ok": False,
            "conflicts": 1,
            "blocked": 0,
        }

    def test_inverted_range_is_400(self, client, login, guest_a, listing):
        login(guest_a)
        response = client.post(
            f"/api/apartment/property/{listing.id}",
            json={"checkIn": "2030-01-12", "checkOut": "2030-01-10"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_payload"

    def test_missing_field_is_422(self, client, login, guest_a, listing):
        login(guest_a)
        response = client.post(f"/api/apartment/property/{listing.id}", json={"checkIn": "2030-01-12"})
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_payload"

    def test_host_decision_and_inbox(self, client, login, db, host, guest_a, listing):
        reservation = ReservationService(db).create(
            guest_a, listing.id, date.today() + timedelta(days=5), date.today() + timedelta(days=7)
        )

        login(host)
        response = client.patch(f"/api/apartment/{reservation.id}/status", json={"status": "confirmed"})
        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

        inbox = client.get("/api/apartment/host", params={"status": "confirmed"})
        assert [r["id"] for r in inbox.json()] == [reservation.id]

    def test_guest_listing_is_private(self, client, login, guest_a, guest_b):
        login(guest_b)
        response = client.get(f"/api/reservations/user/{guest_a.id}")
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_expire_pending_requires_admin(self, client, login, db, guest_a, listing):
        lapsed = ReservationService(db).create(guest_a, listing.id, date(2025, 1, 10), date(2025, 1, 12), now=T0)
        login(guest_a)
        assert client.post("/api/apartment/expire-pending").status_code == 403

        login(make_user(db, role="admin"))
        response = client.post("/api/apartment/expire-pending")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "expired": 1}
        db.expire_all()
        assert db.get(Reservation, lapsed.id).status == ReservationStatus.EXPIRED.value

        assert client.post("/api/apartment/expire-pending").json() == {"ok": True, "expired": 0}
