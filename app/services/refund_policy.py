"""
Refund Policy Calculator

Maps a reservation, its property's cancellation policy and the current
time to the refundable amount.
"""

import math
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal

from ..models.property import CancellationPolicy
from .pricing_engine import money

REASON_FULL_24H = "Full refund - cancelled 24+ hours before check-in"
REASON_NONE_24H = "No refund - cancelled less than 24 hours before check-in"
REASON_FULL_5D = "Full refund - cancelled 5+ days before check-in"
REASON_HALF_1_4D = "50% refund - cancelled 1-4 days before check-in"
REASON_HALF_7D = "50% refund - cancelled 7+ days before check-in"
REASON_NONE_7D = "No refund - cancelled less than 7 days before check-in"

HALF = Decimal("0.5")


@dataclass(frozen=True)
class RefundQuote:
    amount: Decimal
    allowed: bool
    reason: str


def days_until_check_in(check_in, now: datetime) -> int:
    """Whole days between now and midnight of the check-in date"""
    delta = datetime.combine(check_in, time.min) - now
    return math.floor(delta.total_seconds() / 3600 / 24)


def calculate_refund(total_price, check_in, policy: str, now: datetime) -> RefundQuote:
    total = money(total_price)
    days = days_until_check_in(check_in, now)

    if policy == CancellationPolicy.MODERATE.value:
        if days >= 5:
            return RefundQuote(total, True, REASON_FULL_5D)
        if days >= 1:
            return RefundQuote(money(total * HALF), True, REASON_HALF_1_4D)
        return RefundQuote(money(0), False, REASON_NONE_24H)

    if policy == CancellationPolicy.STRICT.value:
        if days >= 7:
            return RefundQuote(money(total * HALF), True, REASON_HALF_7D)
        return RefundQuote(money(0), False, REASON_NONE_7D)

    # flexible and anything unrecognised
    if days >= 1:
        return RefundQuote(total, True, REASON_FULL_24H)
    return RefundQuote(money(0), False, REASON_NONE_24H)


def calculate_reservation_refund(reservation, policy: str, now: datetime) -> RefundQuote:
    return calculate_refund(reservation.total_price, reservation.check_in, policy, now)
