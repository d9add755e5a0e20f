"""Franchise ORM model — service area polygon and delivery pricing."""

import uuid
from datetime import datetime
from sqlalchemy import String, Numeric, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class Franchise(Base):
    __tablename__ = "franchises"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    city_name: Mapped[str] = mapped_column(String(100), nullable=False)
    branch_name: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[dict | None] = mapped_column(JSON)  # {"location_name", "lat", "lng"}

    total_delivery_radius: Mapped[float] = mapped_column(Numeric(8, 2), nullable=False)  # km
    free_delivery_radius: Mapped[float] = mapped_column(Numeric(8, 2), nullable=False)   # km
    charge_per_extra_km: Mapped[float] = mapped_column(Numeric(8, 2), nullable=False)    # ₹

    assigned_manager_id: Mapped[uuid.UUID | None] = mapped_column(index=True)
    # Ordered ring of {"lat": float, "lng": float}; closing edge is implicit
    polygon_coordinates: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
