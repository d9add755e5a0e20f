"""
Subscription Jobs

Nightly clean-up of cash-on-delivery subscriptions that were never paid:
any COD order with a sub-order already started is cancelled and its days
are marked Failed.
"""

import logging
from datetime import datetime

from sqlalchemy import select

from db.database import async_session_factory
from models.subscription_order import SubscriptionOrder
from schemas import PaymentType, SubscriptionStatus
from services.delivery_calendar import SCHEDULE_TZ
from services.subscription_lifecycle import cancel_stale_cod_order

logger = logging.getLogger(__name__)


async def cancel_stale_cod_orders() -> int:
    """Cancel unpaid COD subscriptions whose start date has passed. Returns orders changed."""
    today = datetime.now(SCHEDULE_TZ).date()
    cancelled = 0

    async with async_session_factory() as session:
        result = await session.execute(
            select(SubscriptionOrder).where(
                SubscriptionOrder.payment_type == PaymentType.COD.value,
                SubscriptionOrder.subscription_status != SubscriptionStatus.CANCELLED.value,
            )
        )
        for order in result.scalars().all():
            if cancel_stale_cod_order(order, today):
                await session.commit()
                cancelled += 1

    logger.info("Stale COD check for %s: %d orders cancelled", today, cancelled)
    return cancelled
