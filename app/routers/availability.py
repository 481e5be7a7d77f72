"""
Availability & Pricing API

Host calendar editing, pricing/discount rules, blocks and the
public price calculator.
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import List
from datetime import date
import logging

from ..database import get_db
from ..models.user import User
from ..schemas.availability import (
    AvailabilityBulkUpdate,
    AvailabilityUpsert,
    BlockCreate,
    BlockResponse,
    DiscountCreate,
    DiscountResponse,
    PriceBreakdownOut,
    PriceCalculationRequest,
    PricingRuleResponse,
    PricingRuleUpsert,
)
from ..services.calendar_ledger import CalendarLedger, cell_to_dict
from ..services.pricing_engine import PricingEngine
from ..utils.dependencies import get_current_user
from ..utils.errors import MissingPricing
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/availability", tags=["Availability"])


# ================================
# CALENDAR
# ================================

@router.get("/property/{property_id}")
@limiter.limit(get_rate_limit("availability"))
def get_property_availability(
    request: Request,
    property_id: str,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db)
):
    """Every day in [startDate, endDate]; days without a row are open at the base price"""
    days = CalendarLedger(db).get_range(property_id, start_date, end_date)
    return {"success": True, "data": days}


@router.post("/property")
def upsert_availability(
    payload: AvailabilityUpsert,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ledger = CalendarLedger(db)
    ledger.get_owned_property(current_user, payload.property_id)
    cell = ledger.upsert(payload.property_id, payload.day, **payload.cell_fields())
    db.commit()
    db.refresh(cell)
    return {"success": True, "data": cell_to_dict(cell)}


@router.post("/property/bulk")
def bulk_update_availability(
    payload: AvailabilityBulkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ledger = CalendarLedger(db)
    ledger.get_owned_property(current_user, payload.property_id)
    count = ledger.bulk_set(payload.property_id, payload.start_date, payload.end_date, payload.cell_fields())
    return {"success": True, "count": count}


# ================================
# BLOCKS
# ================================

@router.post("/block", response_model=BlockResponse)
def block_dates(
    payload: BlockCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ledger = CalendarLedger(db)
    ledger.get_owned_property(current_user, payload.property_id)
    block = ledger.block(
        payload.property_id,
        payload.start_date,
        payload.end_date,
        reason=payload.reason,
        is_maintenance=payload.is_maintenance,
    )
    db.commit()
    db.refresh(block)
    return block


@router.get("/blocks/{property_id}", response_model=List[BlockResponse])
def list_blocks(
    property_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ledger = CalendarLedger(db)
    ledger.get_owned_property(current_user, property_id)
    return ledger.list_blocks(property_id)


# ================================
# PRICING RULES
# ================================

@router.get("/pricing/{property_id}", response_model=PricingRuleResponse)
def get_pricing_rule(property_id: str, db: Session = Depends(get_db)):
    rule = PricingEngine(db).get_rule(property_id)
    if rule is None:
        raise MissingPricing("Property pricing not found")
    return rule


@router.post("/pricing", response_model=PricingRuleResponse)
def upsert_pricing_rule(
    payload: PricingRuleUpsert,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    CalendarLedger(db).get_owned_property(current_user, payload.property_id)
    fields = payload.model_dump(exclude={"property_id"}, exclude_none=True)
    return PricingEngine(db).upsert_rule(payload.property_id, **fields)


@router.get("/discounts/{property_id}", response_model=List[DiscountResponse])
def list_discounts(property_id: str, db: Session = Depends(get_db)):
    return PricingEngine(db).list_discounts(property_id)


@router.post("/discounts", response_model=DiscountResponse)
def create_discount(
    payload: DiscountCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    CalendarLedger(db).get_owned_property(current_user, payload.property_id)
    return PricingEngine(db).create_discount(
        payload.property_id,
        name=payload.name,
        discount_type=payload.discount_type,
        value=payload.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        min_stay=payload.min_stay,
        max_stay=payload.max_stay,
        is_active=payload.is_active,
    )


# ================================
# PRICE CALCULATOR
# ================================

@router.post("/calculate-price", response_model=PriceBreakdownOut)
@limiter.limit(get_rate_limit("calculate_price"))
def calculate_price(
    request: Request,
    payload: PriceCalculationRequest,
    db: Session = Depends(get_db)
):
    breakdown = PricingEngine(db).calculate(
        payload.property_id, payload.start_date, payload.end_date, payload.guests
    )
    return breakdown.to_dict()
