"""SubscriptionOrder, SubOrder and DeliveryDate ORM models — per-day delivery calendar."""

import uuid
from datetime import date, datetime
from sqlalchemy import (
    String, Integer, Numeric, Boolean, Date, DateTime, ForeignKey, Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from db.database import Base


class SubscriptionOrder(Base):
    __tablename__ = "subscription_orders"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)

    # Amounts
    final_amount: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    total_amount: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    gst_amount: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    delivery_fees: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    platform_fees: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    bonus_used: Mapped[float] = mapped_column(Numeric(10, 2), default=0)

    # Location
    address: Mapped[str] = mapped_column(Text, nullable=False)
    location_lat: Mapped[float] = mapped_column(Numeric(10, 7), nullable=False)
    location_lng: Mapped[float] = mapped_column(Numeric(10, 7), nullable=False)
    location_type: Mapped[str] = mapped_column(String(10), default="home")  # home, work, other
    flat_number: Mapped[str] = mapped_column(String(50), default="")
    building_name: Mapped[str] = mapped_column(String(255), default="")
    floor: Mapped[str] = mapped_column(String(20), default="")
    landmark: Mapped[str] = mapped_column(String(255), default="")

    # Status
    subscription_status: Mapped[str] = mapped_column(String(20), default="Active")
    payment_type: Mapped[str] = mapped_column(String(10), default="ONLINE")
    assigned_franchise_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("franchises.id"), index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    orders: Mapped[list["SubOrder"]] = relationship(
        back_populates="subscription_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SubOrder.position",
    )
    franchise = relationship("Franchise", lazy="selectin")


class SubOrder(Base):
    __tablename__ = "sub_orders"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    subscription_order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("subscription_orders.id", ondelete="CASCADE"), nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    subscription_id: Mapped[uuid.UUID] = mapped_column(nullable=False)  # plan in the catalogue
    amount: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    selected_type: Mapped[int] = mapped_column(Integer, nullable=False)  # repeat multiplier
    days: Mapped[str] = mapped_column(String(10), nullable=False)  # mon-fri | mon-sat
    remaining_days: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="Active")

    # Relationships
    subscription_order: Mapped[SubscriptionOrder] = relationship(back_populates="orders")
    delivery_dates: Mapped[list["DeliveryDate"]] = relationship(
        back_populates="sub_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DeliveryDate.date",
    )


class DeliveryDate(Base):
    __tablename__ = "delivery_dates"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    sub_order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sub_orders.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    status: Mapped[str] = mapped_column(String(20), default="Pending")
    description: Mapped[str | None] = mapped_column(Text)
    delivery_partner_id: Mapped[uuid.UUID | None] = mapped_column(index=True)

    # Outcome metadata, filled after an attempt
    delivery_time: Mapped[str | None] = mapped_column(String(30))
    rating: Mapped[int] = mapped_column(Integer, default=0)
    delivery_image: Mapped[str | None] = mapped_column(Text)
    amount_earned_by_delivery_partner: Mapped[float | None] = mapped_column(Numeric(10, 2))
    is_box_collected: Mapped[bool] = mapped_column(Boolean, default=False)
    is_box_cleaned: Mapped[bool] = mapped_column(Boolean, default=False)

    # Relationships
    sub_order: Mapped[SubOrder] = relationship(back_populates="delivery_dates")
