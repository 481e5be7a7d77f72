"""
Tests for the stay pricing engine and the price calculator endpoint
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from app.services.pricing_engine import PricingEngine, fallback_total, money
from app.utils.errors import InvalidRange, MissingPricing, ValidationFailed

from factories import make_property, make_user

NOW = datetime(2025, 1, 1, 9, 0)


@pytest.fixture
def host(db):
    return make_user(db, first_name="Hana")


@pytest.fixture
def listing(db, host):
    return make_property(db, host, nightly_price=100)


@pytest.fixture
def engine_(db):
    return PricingEngine(db, weekend_days=[5, 6])


class TestLongStay:

    def test_weekly_substitution(self, db, listing, engine_):
        engine_.upsert_rule(
            listing.id,
            base_price=Decimal("100"),
            weekly_price=Decimal("70"),
            cleaning_fee=Decimal("20"),
            currency="XYZ",
        )

        breakdown = engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 11), now=NOW)

        assert breakdown.nights == 8
        assert breakdown.base_price == Decimal("590.00")
        assert breakdown.discount_amount == Decimal("210.00")
        assert breakdown.cleaning_fee == Decimal("20.00")
        assert breakdown.total_price == Decimal("610.00")
        assert breakdown.currency == "XYZ"

    def test_monthly_wins_over_weekly(self, db, listing, engine_):
        engine_.upsert_rule(
            listing.id,
            base_price=Decimal("100"),
            weekly_price=Decimal("80"),
            monthly_price=Decimal("50"),
        )

        breakdown = engine_.calculate(listing.id, date(2025, 3, 1), date(2025, 4, 2), now=NOW)

        assert breakdown.nights == 32
        assert breakdown.base_price == Decimal("1700.00")

    def test_same_inputs_same_breakdown(self, db, listing, engine_):
        engine_.upsert_rule(listing.id, base_price=Decimal("100"), weekend_price=Decimal("150"))

        first = engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 10), now=NOW)
        second = engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 10), now=NOW)

        assert first.to_dict() == second.to_dict()


class TestWeekendUplift:

    def test_uplift_only_on_weekend_nights(self, db, listing, engine_):
        engine_.upsert_rule(listing.id, base_price=Decimal("100"), weekend_price=Decimal("130"))

        # Friday to Monday: Saturday and Sunday nights are weekend nights
        breakdown = engine_.calculate(listing.id, date(2025, 1, 10), date(2025, 1, 13), now=NOW)

        assert breakdown.weekend_price == Decimal("60.00")
        assert breakdown.total_price == Decimal("360.00")

    def test_weekend_below_base_adds_nothing(self, db, listing, engine_):
        engine_.upsert_rule(listing.id, base_price=Decimal("100"), weekend_price=Decimal("80"))

        breakdown = engine_.calculate(listing.id, date(2025, 1, 10), date(2025, 1, 13), now=NOW)

        assert breakdown.weekend_price == Decimal("0.00")
        assert breakdown.total_price == Decimal("300.00")

    def test_custom_weekend_days(self, db, listing):
        engine = PricingEngine(db, weekend_days=[4])
        engine.upsert_rule(listing.id, base_price=Decimal("100"), weekend_price=Decimal("110"))

        breakdown = engine.calculate(listing.id, date(2025, 1, 10), date(2025, 1, 13), now=NOW)

        assert breakdown.weekend_price == Decimal("10.00")


class TestDiscountRules:

    def _rule(self, engine, listing):
        engine.upsert_rule(listing.id, base_price=Decimal("100"), service_fee=Decimal("5"))

    def test_percentage_and_fixed_stack(self, db, listing, engine_):
        self._rule(engine_, listing)
        engine_.create_discount(
            listing.id, "Spring", "percentage", Decimal("10"), date(2025, 3, 1), date(2025, 3, 31)
        )
        engine_.create_discount(
            listing.id, "Welcome", "fixed", Decimal("25"), date(2025, 3, 1), date(2025, 3, 31)
        )

        breakdown = engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 6), now=NOW)

        assert sorted(d.name for d in breakdown.applied_discounts) == ["Spring", "Welcome"]
        assert breakdown.rule_discount == Decimal("55.00")
        assert breakdown.total_price == Decimal("250.00")

    def test_window_must_cover_whole_stay(self, db, listing, engine_):
        self._rule(engine_, listing)
        engine_.create_discount(
            listing.id, "Short window", "percentage", Decimal("10"), date(2025, 3, 4), date(2025, 3, 31)
        )

        breakdown = engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 6), now=NOW)

        assert breakdown.applied_discounts == []

    def test_min_stay_and_inactive_rules_skipped(self, db, listing, engine_):
        self._rule(engine_, listing)
        engine_.create_discount(
            listing.id, "Long only", "percentage", Decimal("10"),
            date(2025, 3, 1), date(2025, 3, 31), min_stay=5
        )
        engine_.create_discount(
            listing.id, "Paused", "fixed", Decimal("10"),
            date(2025, 3, 1), date(2025, 3, 31), is_active=False
        )

        breakdown = engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 6), now=NOW)

        assert breakdown.applied_discounts == []
        assert breakdown.total_price == Decimal("305.00")

    def test_early_bird_and_last_minute(self, db, listing, engine_):
        self._rule(engine_, listing)
        engine_.create_discount(
            listing.id, "Early", "early_bird", Decimal("20"), date(2025, 1, 1), date(2025, 12, 31)
        )
        engine_.create_discount(
            listing.id, "Late", "last_minute", Decimal("30"), date(2025, 1, 1), date(2025, 12, 31)
        )

        far = engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 6), now=NOW)
        near = engine_.calculate(listing.id, date(2025, 1, 5), date(2025, 1, 8), now=NOW)

        assert [d.name for d in far.applied_discounts] == ["Early"]
        assert far.rule_discount == Decimal("60.00")
        assert [d.name for d in near.applied_discounts] == ["Late"]
        assert near.rule_discount == Decimal("90.00")

    def test_unknown_discount_type_rejected(self, db, listing, engine_):
        with pytest.raises(ValidationFailed):
            engine_.create_discount(
                listing.id, "Odd", "bogus", Decimal("5"), date(2025, 3, 1), date(2025, 3, 2)
            )


class TestPricingErrors:

    def test_missing_rule(self, db, listing, engine_):
        with pytest.raises(MissingPricing):
            engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 6), now=NOW)

    def test_zero_nights(self, db, listing, engine_):
        engine_.upsert_rule(listing.id, base_price=Decimal("100"))
        with pytest.raises(InvalidRange):
            engine_.calculate(listing.id, date(2025, 3, 3), date(2025, 3, 3), now=NOW)

    def test_fallback_total(self):
        assert fallback_total(100, 2) == Decimal("202.00")
        assert fallback_total(Decimal("99.99"), 1) == Decimal("101.99")

    def test_money_rounds_half_up(self):
        assert money("2.345") == Decimal("2.35")
        assert money(None) == Decimal("0.00")


class TestCalculatePriceEndpoint:

    def test_breakdown_is_camel_case(self, client, db, listing):
        PricingEngine(db).upsert_rule(
            listing.id, base_price=Decimal("100"), cleaning_fee=Decimal("15"), currency="MRU"
        )

        response = client.post(
            "/api/availability/calculate-price",
            json={"propertyId": listing.id, "startDate": "2030-03-04", "endDate": "2030-03-06"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["nights"] == 2
        assert body["basePrice"] == 200.0
        assert body["cleaningFee"] == 15.0
        assert body["currency"] == "MRU"
        assert body["appliedDiscounts"] == []

    def test_missing_pricing_is_404(self, client, listing):
        response = client.post(
            "/api/availability/calculate-price",
            json={"propertyId": listing.id, "startDate": "2030-03-04", "endDate": "2030-03-06"},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "missing_pricing"

    def test_only_owner_sets_rule(self, client, login, db, listing):
        stranger = make_user(db, first_name="Sami")
        login(stranger)

        response = client.post(
            "/api/availability/pricing",
            json={"propertyId": listing.id, "basePrice": "120"},
        )

        assert response.status_code == 403
