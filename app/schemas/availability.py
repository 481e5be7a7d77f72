"""
Availability & Pricing Schemas

Request bodies use the camelCase keys the mobile clients send.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AvailabilityFields(BaseModel):
    is_available: Optional[bool] = Field(None, alias="isAvailable")
    price: Optional[Decimal] = Field(None, ge=0)
    min_stay: Optional[int] = Field(None, ge=1, alias="minStay")
    max_stay: Optional[int] = Field(None, ge=0, alias="maxStay")
    check_in_time: Optional[str] = Field(None, pattern=TIME_PATTERN, alias="checkInTime")
    check_out_time: Optional[str] = Field(None, pattern=TIME_PATTERN, alias="checkOutTime")
    notes: Optional[str] = Field(None, max_length=500)

    class Config:
        populate_by_name = True

    def cell_fields(self) -> dict:
        return self.model_dump(
            include={"is_available", "price", "min_stay", "max_stay",
                     "check_in_time", "check_out_time", "notes"},
            exclude_none=True,
        )


class AvailabilityUpsert(AvailabilityFields):
    property_id: str = Field(..., alias="propertyId")
    day: date = Field(..., alias="date")


class AvailabilityBulkUpdate(AvailabilityFields):
    property_id: str = Field(..., alias="propertyId")
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")


class BlockCreate(BaseModel):
    property_id: str = Field(..., alias="propertyId")
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    reason: Optional[str] = Field(None, max_length=255)
    is_maintenance: bool = Field(default=False, alias="isMaintenance")

    class Config:
        populate_by_name = True


class BlockResponse(BaseModel):
    id: str
    property_id: str
    start_date: date
    end_date: date
    reason: Optional[str] = None
    is_maintenance: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PricingRuleUpsert(BaseModel):
    property_id: str = Field(..., alias="propertyId")
    base_price: Decimal = Field(..., ge=0, alias="basePrice")
    weekend_price: Optional[Decimal] = Field(None, ge=0, alias="weekendPrice")
    weekly_price: Optional[Decimal] = Field(None, ge=0, alias="weeklyPrice")
    monthly_price: Optional[Decimal] = Field(None, ge=0, alias="monthlyPrice")
    cleaning_fee: Optional[Decimal] = Field(None, ge=0, alias="cleaningFee")
    service_fee: Optional[Decimal] = Field(None, ge=0, alias="serviceFee")
    security_deposit: Optional[Decimal] = Field(None, ge=0, alias="securityDeposit")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    class Config:
        populate_by_name = True

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if v else v


class PricingRuleResponse(BaseModel):
    id: str
    property_id: str
    base_price: Decimal
    weekend_price: Optional[Decimal] = None
    weekly_price: Optional[Decimal] = None
    monthly_price: Optional[Decimal] = None
    cleaning_fee: Optional[Decimal] = None
    service_fee: Optional[Decimal] = None
    security_deposit: Optional[Decimal] = None
    currency: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DiscountCreate(BaseModel):
    property_id: str = Field(..., alias="propertyId")
    name: str = Field(..., min_length=1, max_length=100)
    discount_type: str = Field(..., alias="discountType")
    value: Decimal = Field(..., ge=0)
    min_stay: Optional[int] = Field(None, ge=1, alias="minStay")
    max_stay: Optional[int] = Field(None, ge=1, alias="maxStay")
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    is_active: bool = Field(default=True, alias="isActive")

    class Config:
        populate_by_name = True


class DiscountResponse(BaseModel):
    id: str
    property_id: str
    name: str
    discount_type: str
    value: Decimal
    min_stay: Optional[int] = None
    max_stay: Optional[int] = None
    start_date: date
    end_date: date
    is_active: bool

    class Config:
        from_attributes = True


class PriceCalculationRequest(BaseModel):
    property_id: str = Field(..., alias="propertyId")
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    guests: int = Field(default=1, ge=1)

    class Config:
        populate_by_name = True


class AppliedDiscountOut(BaseModel):
    name: str
    type: str
    value: float
    discountAmount: float


class PriceBreakdownOut(BaseModel):
    basePrice: float
    weekendPrice: float
    cleaningFee: float
    serviceFee: float
    securityDeposit: float
    discountAmount: float
    appliedDiscounts: List[AppliedDiscountOut]
    totalPrice: float
    nights: int
    currency: str
