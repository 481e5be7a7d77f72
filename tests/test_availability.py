"""
Tests for the per-night calendar of a property
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from app.models.availability import AvailabilityCell, BOOKED_NOTE, PropertyBlock
from app.models.reservation import ReservationStatus
from app.services.calendar_ledger import CalendarLedger, days_inclusive, nights_between
from app.services.pricing_engine import PricingEngine
from app.services.reservation_service import ReservationService
from app.utils.errors import Forbidden, ValidationFailed

from factories import make_property, make_user

T0 = datetime(2025, 3, 1, 12, 0)


@pytest.fixture
def host(db):
    return make_user(db, first_name="Hana")


@pytest.fixture
def listing(db, host):
    return make_property(db, host, nightly_price=80)


class TestDateHelpers:

    def test_nights_exclude_checkout(self):
        assert nights_between(date(2025, 1, 30), date(2025, 2, 2)) == [
            date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1)
        ]
        assert nights_between(date(2025, 1, 2), date(2025, 1, 2)) == []

    def test_days_inclusive(self):
        assert len(days_inclusive(date(2025, 1, 1), date(2025, 1, 1))) == 1


class TestReadRange:

    def test_missing_nights_are_open_at_base_price(self, db, listing):
        days = CalendarLedger(db).get_range(listing.id, date(2025, 4, 1), date(2025, 4, 3))

        assert [d["date"] for d in days] == ["2025-04-01", "2025-04-02", "2025-04-03"]
        assert all(d["is_available"] and d["id"] is None for d in days)
        assert all(d["price"] == 80.0 for d in days)

    def test_rule_base_price_wins(self, db, listing):
        PricingEngine(db).upsert_rule(listing.id, base_price=Decimal("95"))
        days = CalendarLedger(db).get_range(listing.id, date(2025, 4, 1), date(2025, 4, 1))
        assert days[0]["price"] == 95.0

    def test_inverted_range(self, db, listing):
        with pytest.raises(ValidationFailed):
            CalendarLedger(db).get_range(listing.id, date(2025, 4, 3), date(2025, 4, 1))


class TestHostEdits:

    def test_upsert_is_idempotent(self, db, listing):
        ledger = CalendarLedger(db)
        ledger.upsert(listing.id, date(2025, 4, 1), is_available=False, notes="Family visit")
        ledger.upsert(listing.id, date(2025, 4, 1), is_available=False, notes="Family visit")
        db.commit()

        cells = db.query(AvailabilityCell).filter(AvailabilityCell.property_id == listing.id).all()
        assert len(cells) == 1
        assert cells[0].notes == "Family visit"
        assert float(cells[0].price) == 80.0

    def test_bulk_replaces_range(self, db, listing):
        ledger = CalendarLedger(db)
        ledger.upsert(listing.id, date(2025, 4, 2), notes="old")
        db.commit()

        count = ledger.bulk_set(listing.id, date(2025, 4, 1), date(2025, 4, 5), {"price": Decimal("120"), "min_stay": 2})

        assert count == 5
        cells = db.query(AvailabilityCell).filter(AvailabilityCell.property_id == listing.id).all()
        assert len(cells) == 5
        assert all(c.min_stay == 2 and c.notes == "" for c in cells)

    def test_block_closes_every_day(self, db, listing):
        ledger = CalendarLedger(db)
        ledger.block(listing.id, date(2025, 4, 1), date(2025, 4, 3), reason="Repairs", is_maintenance=True)
        db.commit()

        days = ledger.get_range(listing.id, date(2025, 4, 1), date(2025, 4, 4))
        assert [d["is_available"] for d in days] == [False, False, False, True]
        assert days[0]["notes"].endswith("Repairs")
        assert db.query(PropertyBlock).count() == 1

    def test_release_only_touches_stay(self, db, listing):
        ledger = CalendarLedger(db)
        ledger.mark_booked(listing.id, date(2025, 4, 1), date(2025, 4, 4), 80)
        db.commit()

        assert ledger.release(listing.id, date(2025, 4, 1), date(2025, 4, 3)) == 2
        db.commit()
        days = ledger.get_range(listing.id, date(2025, 4, 1), date(2025, 4, 3))
        assert [d["is_available"] for d in days] == [True, True, False]

    def test_stranger_cannot_edit(self, db, listing):
        with pytest.raises(Forbidden):
            CalendarLedger(db).get_owned_property(make_user(db), listing.id)


class TestConfirmedNightsStayClosed:

    @pytest.fixture
    def confirmed(self, db, host, listing):
        service = ReservationService(db)
        reservation = service.create(make_user(db), listing.id, date(2025, 4, 2), date(2025, 4, 4), now=T0)
        service.update_status(host, reservation.id, ReservationStatus.CONFIRMED.value, now=T0)
        return reservation

    def _cells(self, db, listing):
        return {
            c.date: c for c in
            db.query(AvailabilityCell).filter(AvailabilityCell.property_id == listing.id).all()
        }

    def test_bulk_set_keeps_booked_nights(self, db, listing, confirmed):
        CalendarLedger(db).bulk_set(
            listing.id, date(2025, 4, 1), date(2025, 4, 5), {"is_available": True, "price": Decimal("90")}
        )

        cells = self._cells(db, listing)
        assert len(cells) == 5
        for day in (date(2025, 4, 2), date(2025, 4, 3)):
            assert cells[day].is_available is False
            assert cells[day].notes == BOOKED_NOTE
        assert cells[date(2025, 4, 1)].is_available is True
        assert float(cells[date(2025, 4, 2)].price) == 90.0

    def test_upsert_cannot_reopen_booked_night(self, db, listing, confirmed):
        cell = CalendarLedger(db).upsert(listing.id, date(2025, 4, 2), is_available=True, notes="open", min_stay=3)
        db.commit()

        assert cell.is_available is False
        assert cell.notes == BOOKED_NOTE
        assert cell.min_stay == 3

    def test_block_skips_booked_nights(self, db, listing, confirmed):
        CalendarLedger(db).block(listing.id, date(2025, 4, 1), date(2025, 4, 3), reason="Paint")
        db.commit()

        cells = self._cells(db, listing)
        assert cells[date(2025, 4, 1)].notes.endswith("Paint")
        assert cells[date(2025, 4, 2)].notes == BOOKED_NOTE
        assert cells[date(2025, 4, 3)].notes == BOOKED_NOTE

    def test_release_skips_confirmed_stay(self, db, listing, confirmed):
        assert CalendarLedger(db).release(listing.id, date(2025, 4, 1), date(2025, 4, 4)) == 0


class TestAvailabilityEndpoints:

    def test_public_range(self, client, listing):
        response = client.get(
            f"/api/availability/property/{listing.id}",
            params={"startDate": "2025-04-01", "endDate": "2025-04-02"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert len(response.json()["data"]) == 2

    def test_owner_upserts_night(self, client, login, host, listing):
        login(host)

        response = client.post(
            "/api/availability/property",
            json={"propertyId": listing.id, "date": "2025-04-01", "isAvailable": False, "checkInTime": "15:00"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["is_available"] is False
        assert data["check_in_time"] == "15:00"

    def test_bad_time_format(self, client, login, host, listing):
        login(host)
        response = client.post(
            "/api/availability/property",
            json={"propertyId": listing.id, "date": "2025-04-01", "checkInTime": "3pm"},
        )
        assert response.status_code == 422

    def test_block_endpoint(self, client, login, host, listing):
        login(host)

        response = client.post(
            "/api/availability/block",
            json={"propertyId": listing.id, "startDate": "2025-04-01", "endDate": "2025-04-02", "reason": "Paint"},
        )

        assert response.status_code == 200
        assert response.json()["reason"] == "Paint"
        blocks = client.get(f"/api/availability/blocks/{listing.id}").json()
        assert len(blocks) == 1
