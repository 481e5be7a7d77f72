"""
Pricing Engine Service

Computes the price breakdown of a stay from the property's pricing rule:
- nightly base price with weekend uplift
- weekly / monthly long-stay substitution
- stacked discount rules (percentage, fixed, early bird, last minute)
- cleaning and service fees

The calculation is deterministic for unchanged inputs.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ..config import settings
from ..models.availability import PricingRule, DiscountRule, DiscountType
from ..utils.errors import InvalidRange, MissingPricing, ValidationFailed

CENT = Decimal("0.01")
FALLBACK_CLEANING_RATE = Decimal("0.02")
EARLY_BIRD_MIN_DAYS = 30
LAST_MINUTE_MAX_DAYS = 7

PRICING_RULE_FIELDS = (
    "base_price", "weekend_price", "weekly_price", "monthly_price",
    "cleaning_fee", "service_fee", "security_deposit", "currency",
)
DISCOUNT_TYPES = {t.value for t in DiscountType}


def money(value) -> Decimal:
    """Round to cents, half up"""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class AppliedDiscount:
    name: str
    type: str
    value: Decimal
    discount_amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "value": float(self.value),
            "discountAmount": float(self.discount_amount),
        }


@dataclass
class PriceBreakdown:
    """Result of a price calculation"""
    base_price: Decimal
    weekend_price: Decimal  # Uplift over base for weekend nights
    cleaning_fee: Decimal
    service_fee: Decimal
    security_deposit: Decimal
    discount_amount: Decimal  # Long-stay savings + rule discounts
    rule_discount: Decimal
    total_price: Decimal
    nights: int
    currency: str
    applied_discounts: List[AppliedDiscount] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "basePrice": float(self.base_price),
            "weekendPrice": float(self.weekend_price),
            "cleaningFee": float(self.cleaning_fee),
            "serviceFee": float(self.service_fee),
            "securityDeposit": float(self.security_deposit),
            "discountAmount": float(self.discount_amount),
            "appliedDiscounts": [d.to_dict() for d in self.applied_discounts],
            "totalPrice": float(self.total_price),
            "nights": self.nights,
            "currency": self.currency,
        }


def fallback_total(nightly_price, nights: int) -> Decimal:
    """
    Price of a stay for a property without a pricing rule:
    nightly x nights, plus 2% of one night as cleaning, no service fee.
    """
    nightly = Decimal(str(nightly_price or 0))
    base = nightly * max(nights, 1)
    cleaning = nightly * FALLBACK_CLEANING_RATE
    return money(base + cleaning)


class PricingEngine:
    """
    Stay pricing for properties with a PricingRule.

    Formula:
    1. base = nights x base_price (after long-stay substitution)
    2. weekend uplift = sum over weekend nights of max(0, weekend_price - base_price)
    3. rule discounts from active discount rules covering the stay
    4. total = base + uplift - rule discounts + cleaning + service
    """

    def __init__(self, db: Session, weekend_days: Optional[List[int]] = None):
        self.db = db
        self.weekend_days = weekend_days if weekend_days is not None else settings.weekend_day_numbers

    def get_rule(self, property_id: str) -> Optional[PricingRule]:
        return self.db.query(PricingRule).filter(PricingRule.property_id == property_id).first()

    def get_discount_rules(self, property_id: str, start: date, end: date) -> List[DiscountRule]:
        """Active rules whose window covers the whole stay, in creation order"""
        return self.db.query(DiscountRule).filter(
            DiscountRule.property_id == property_id,
            DiscountRule.is_active == True,
            DiscountRule.start_date <= start,
            DiscountRule.end_date >= end
        ).order_by(DiscountRule.created_at, DiscountRule.id).all()

    def is_weekend_day(self, check_date: date) -> bool:
        return check_date.weekday() in self.weekend_days

    def _long_stay_base(self, rule: PricingRule, nights: int, nightly: Decimal) -> Decimal:
        monthly = Decimal(str(rule.monthly_price or 0))
        weekly = Decimal(str(rule.weekly_price or 0))

        if nights >= 30 and monthly > 0:
            buckets, rest = divmod(nights, 30)
            return buckets * 30 * monthly + rest * nightly
        if nights >= 7 and weekly > 0:
            buckets, rest = divmod(nights, 7)
            return buckets * 7 * weekly + rest * nightly
        return nights * nightly

    def _rule_amount(self, rule: DiscountRule, base: Decimal, start: date, now: datetime) -> Optional[Decimal]:
        value = Decimal(str(rule.value or 0))
        days_until = (start - now.date()).days

        if rule.discount_type == DiscountType.PERCENTAGE.value:
            return base * value / 100
        if rule.discount_type == DiscountType.FIXED.value:
            return value
        if rule.discount_type == DiscountType.EARLY_BIRD.value:
            return base * value / 100 if days_until >= EARLY_BIRD_MIN_DAYS else None
        if rule.discount_type == DiscountType.LAST_MINUTE.value:
            return base * value / 100 if days_until <= LAST_MINUTE_MAX_DAYS else None
        return None

    def calculate(
        self,
        property_id: str,
        start: date,
        end: date,
        guests: int = 1,
        now: Optional[datetime] = None
    ) -> PriceBreakdown:
        """
        Price breakdown for a stay from start (check-in) to end (check-out).

        Raises:
            InvalidRange: fewer than one night
            MissingPricing: property has no pricing rule
        """
        nights = (end - start).days
        if nights < 1:
            raise InvalidRange("End date must be after start date")

        rule = self.get_rule(property_id)
        if rule is None:
            raise MissingPricing("Property pricing not found")

        now = now or datetime.utcnow()
        nightly = Decimal(str(rule.base_price or 0))

        # Weekend uplift
        weekend_uplift = Decimal("0")
        if rule.weekend_price is not None:
            extra = max(Decimal("0"), Decimal(str(rule.weekend_price)) - nightly)
            for offset in range(nights):
                day = start + timedelta(days=offset)
                if self.is_weekend_day(day):
                    weekend_uplift += extra

        # Long-stay substitution, monthly first
        plain_base = nights * nightly
        base = self._long_stay_base(rule, nights, nightly)
        discount_total = plain_base - base

        # Discount rules
        applied: List[AppliedDiscount] = []
        rule_discount = Decimal("0")
        for discount in self.get_discount_rules(property_id, start, end):
            if discount.min_stay and nights < discount.min_stay:
                continue
            if discount.max_stay and nights > discount.max_stay:
                continue
            amount = self._rule_amount(discount, base, start, now)
            if amount is None:
                continue
            amount = money(amount)
            rule_discount += amount
            applied.append(AppliedDiscount(
                name=discount.name,
                type=discount.discount_type,
                value=Decimal(str(discount.value or 0)),
                discount_amount=amount,
            ))
        discount_total += rule_discount

        cleaning = money(rule.cleaning_fee)
        service = money(rule.service_fee)
        total = base + weekend_uplift - rule_discount + cleaning + service

        return PriceBreakdown(
            base_price=money(base),
            weekend_price=money(weekend_uplift),
            cleaning_fee=cleaning,
            service_fee=service,
            security_deposit=money(rule.security_deposit),
            discount_amount=money(discount_total),
            rule_discount=money(rule_discount),
            total_price=money(total),
            nights=nights,
            currency=rule.currency or settings.default_currency,
            applied_discounts=applied,
        )

    def quote_total(self, property_id: str, nightly_price, start: date, end: date, guests: int = 1) -> Decimal:
        """Total for a reservation, falling back to the nightly price without a rule"""
        if self.get_rule(property_id) is None:
            return fallback_total(nightly_price, (end - start).days)
        return self.calculate(property_id, start, end, guests).total_price

    # ================================
    # RULE MANAGEMENT
    # ================================

    def upsert_rule(self, property_id: str, **fields) -> PricingRule:
        """Create or replace the property's pricing rule"""
        rule = self.get_rule(property_id)
        if rule is None:
            rule = PricingRule(property_id=property_id)
            self.db.add(rule)
        for key in PRICING_RULE_FIELDS:
            if key in fields and fields[key] is not None:
                setattr(rule, key, fields[key])
        if not rule.currency:
            rule.currency = settings.default_currency
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def list_discounts(self, property_id: str) -> List[DiscountRule]:
        return self.db.query(DiscountRule).filter(
            DiscountRule.property_id == property_id
        ).order_by(DiscountRule.created_at, DiscountRule.id).all()

    def create_discount(
        self,
        property_id: str,
        name: str,
        discount_type: str,
        value,
        start_date: date,
        end_date: date,
        min_stay: Optional[int] = None,
        max_stay: Optional[int] = None,
        is_active: bool = True
    ) -> DiscountRule:
        if discount_type not in DISCOUNT_TYPES:
            raise ValidationFailed(f"Unknown discount type '{discount_type}'")
        if end_date < start_date:
            raise InvalidRange("endDate must not be before startDate")
        if Decimal(str(value)) < 0:
            raise ValidationFailed("value must not be negative")

        discount = DiscountRule(
            property_id=property_id,
            name=name,
            discount_type=discount_type,
            value=value,
            start_date=start_date,
            end_date=end_date,
            min_stay=min_stay,
            max_stay=max_stay,
            is_active=is_active,
        )
        self.db.add(discount)
        self.db.commit()
        self.db.refresh(discount)
        return discount
