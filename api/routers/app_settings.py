"""Business settings API — pause cutoff time and delivery window."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.app_setting import AppSetting
from schemas import AppSettingResponse, AppSettingUpdate, Envelope
from services.subscription_lifecycle import parse_cutoff_time
from config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_or_create(db: AsyncSession) -> AppSetting:
    setting = (await db.execute(select(AppSetting).limit(1))).scalar_one_or_none()
    if setting is None:
        setting = AppSetting(
            delivery_timing="5:00 AM to 8:30 PM",
            max_subscription_update_or_cancel_time=settings.default_cutoff_time,
            refer_reward=0,
            platform_fees=0,
        )
        db.add(setting)
        await db.commit()
        await db.refresh(setting)
    return setting


@router.get("/")
async def get_app_settings(db: AsyncSession = Depends(get_db)):
    setting = await _get_or_create(db)
    return Envelope(data=AppSettingResponse.model_validate(setting).model_dump(mode="json"))


@router.patch("/")
async def update_app_settings(data: AppSettingUpdate, db: AsyncSession = Depends(get_db)):
    """Partial update. The cutoff time is parsed up front so a bad value never lands."""
    if data.max_subscription_update_or_cancel_time:
        parse_cutoff_time(data.max_subscription_update_or_cancel_time)

    setting = await _get_or_create(db)
    for name, value in data.model_dump(exclude_none=True).items():
        setattr(setting, name, value)
    await db.commit()
    await db.refresh(setting)

    logger.info("Settings updated: %s", sorted(data.model_dump(exclude_none=True)))
    return Envelope(
        message="Settings updated",
        data=AppSettingResponse.model_validate(setting).model_dump(mode="json"),
    )
