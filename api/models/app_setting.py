"""AppSetting ORM model — single-row business configuration."""

from datetime import datetime
from sqlalchemy import String, Integer, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from db.database import Base


class AppSetting(Base):
    __tablename__ = "app_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    delivery_timing: Mapped[str] = mapped_column(String(50), default="5:00 AM to 8:30 PM")
    # Latest time of day a delivery can still be paused, "H:MM AM/PM"
    max_subscription_update_or_cancel_time: Mapped[str] = mapped_column(String(10), default="8:30 PM")
    refer_reward: Mapped[int] = mapped_column(Integer, default=0)
    platform_fees: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
