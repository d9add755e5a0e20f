"""Pydantic schemas for API request/response models."""

from __future__ import annotations
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any
from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────

class WeekdayPattern(str, Enum):
    MON_FRI = "mon-fri"
    MON_SAT = "mon-sat"


class DeliveryStatus(str, Enum):
    PENDING = "Pending"
    HOLIDAY = "Holiday"
    SCHEDULED = "Scheduled"
    PAUSED = "Paused"
    DELIVERED = "Delivered"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    NON_DELIVERY_DAY = "non delivery day"


class SubscriptionStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"


class SubOrderStatus(str, Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"


class PaymentType(str, Enum):
    COD = "COD"
    ONLINE = "ONLINE"
    FAILED = "FAILED"


class LocationType(str, Enum):
    HOME = "home"
    WORK = "work"
    OTHER = "other"


# ── Envelope ───────────────────────────────────────────────

class Envelope(BaseModel):
    success: bool = True
    message: str = ""
    data: Any = None


# ── Delivery Date Schemas ──────────────────────────────────

class DeliveryDateResponse(BaseModel):
    id: uuid.UUID
    date: str
    status: str
    description: str | None = None
    delivery_partner_id: uuid.UUID | None = None
    delivery_time: str | None = None
    rating: int = 0
    delivery_image: str | None = None
    amount_earned_by_delivery_partner: float | None = None
    is_box_collected: bool = False
    is_box_cleaned: bool = False

    class Config:
        from_attributes = True


class DeliveryUpdate(BaseModel):
    status: DeliveryStatus
    description: str | None = None
    delivery_time: str | None = None
    delivery_image: str | None = None
    delivery_partner_id: uuid.UUID | None = None
    amount_earned_by_delivery_partner: float | None = Field(None, ge=0)
    is_box_collected: bool | None = None
    is_box_cleaned: bool | None = None
    rating: int | None = Field(None, ge=0, le=5)


# ── Subscription Order Schemas ─────────────────────────────

class SubOrderCreate(BaseModel):
    subscription_id: uuid.UUID
    amount: float = Field(..., ge=0)
    start_date: date
    selected_type: int = Field(..., gt=0)
    days: WeekdayPattern


class SubscriptionOrderCreate(BaseModel):
    user_id: uuid.UUID
    final_amount: float = Field(..., gt=0)
    total_amount: float = Field(..., gt=0)
    orders: list[SubOrderCreate] = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    location_lat: float = Field(..., ge=-90, le=90)
    location_lng: float = Field(..., ge=-180, le=180)
    location_type: LocationType = LocationType.HOME
    flat_number: str = Field(..., min_length=1)
    building_name: str = Field(..., min_length=1)
    floor: str = Field(..., min_length=1)
    landmark: str = Field(..., min_length=1)
    gst_amount: float = 0
    delivery_fees: float = 0
    platform_fees: float = 0
    assigned_franchise_id: uuid.UUID
    payment_type: PaymentType = PaymentType.ONLINE


class SubOrderResponse(BaseModel):
    id: uuid.UUID
    subscription_id: uuid.UUID
    amount: float
    start_date: date
    selected_type: int
    days: str
    remaining_days: int
    status: str
    delivery_dates: list[DeliveryDateResponse]

    class Config:
        from_attributes = True


class SubscriptionOrderResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    final_amount: float
    total_amount: float
    gst_amount: float
    delivery_fees: float
    platform_fees: float
    address: str
    location_lat: float
    location_lng: float
    location_type: str
    subscription_status: str
    payment_type: str
    assigned_franchise_id: uuid.UUID | None
    created_at: datetime
    orders: list[SubOrderResponse]

    class Config:
        from_attributes = True


class SubscriptionStatusUpdate(BaseModel):
    status: SubscriptionStatus


class PauseRequest(BaseModel):
    user_id: uuid.UUID
    delivery_date_id: uuid.UUID


class BulkPauseRequest(BaseModel):
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    franchise_ids: list[str] = Field(..., min_length=1)  # UUIDs or "all"


class PartnerDeliveriesRequest(BaseModel):
    partner_id: uuid.UUID
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")


class AssignPartnerRequest(BaseModel):
    order_ids: list[uuid.UUID] = Field(..., min_length=1)  # sub-order ids


class ChangePartnerRequest(BaseModel):
    order_id: uuid.UUID
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    new_delivery_partner_id: uuid.UUID


# ── Franchise Schemas ──────────────────────────────────────

class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class FranchiseLocation(BaseModel):
    location_name: str | None = None
    lat: float | None = None
    lng: float | None = None


class FranchiseCreate(BaseModel):
    name: str = Field(..., min_length=1)
    city_name: str = Field(..., min_length=1)
    branch_name: str = Field(..., min_length=1)
    location: FranchiseLocation | None = None
    total_delivery_radius: float = Field(..., gt=0)
    free_delivery_radius: float = Field(..., gt=0)
    charge_per_extra_km: float = Field(..., gt=0)
    assigned_manager_id: uuid.UUID
    polygon_coordinates: list[LatLng] = Field(..., min_length=1)


class FranchiseResponse(BaseModel):
    id: uuid.UUID
    name: str
    city_name: str
    branch_name: str
    location: dict | None
    total_delivery_radius: float
    free_delivery_radius: float
    charge_per_extra_km: float
    assigned_manager_id: uuid.UUID | None
    polygon_coordinates: list[LatLng]

    class Config:
        from_attributes = True


class LocationQuery(BaseModel):
    user_lat: float = Field(..., ge=-90, le=90)
    user_lng: float = Field(..., ge=-180, le=180)


class FranchiseMatchResponse(BaseModel):
    id: uuid.UUID
    franchise: str
    city_name: str
    branch_name: str
    location: dict | None
    delivery_distance: float
    charge: float


class AssignManagerRequest(BaseModel):
    franchise_id: uuid.UUID
    manager_id: uuid.UUID


# ── Settings Schemas ───────────────────────────────────────

class AppSettingUpdate(BaseModel):
    delivery_timing: str | None = Field(None, max_length=50)
    max_subscription_update_or_cancel_time: str | None = Field(
        None, pattern=r"^\d{1,2}:\d{2}\s?(AM|PM|am|pm)$",
    )
    refer_reward: int | None = Field(None, ge=0)
    platform_fees: float | None = Field(None, ge=0)


class AppSettingResponse(BaseModel):
    delivery_timing: str
    max_subscription_update_or_cancel_time: str
    refer_reward: int
    platform_fees: float

    class Config:
        from_attributes = True
