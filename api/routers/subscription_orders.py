"""Subscription order API endpoints — calendars, pause/resume, delivery updates."""

import logging
import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.app_setting import AppSetting
from models.subscription_order import SubscriptionOrder, SubOrder, DeliveryDate
from schemas import (
    SubscriptionOrderCreate, SubscriptionOrderResponse, DeliveryDateResponse,
    DeliveryUpdate, PauseRequest, BulkPauseRequest, PartnerDeliveriesRequest,
    AssignPartnerRequest, ChangePartnerRequest, Envelope, SubscriptionStatus, SubscriptionStatusUpdate,
)
from services.delivery_calendar import SCHEDULE_TZ
from services.delivery_assignment import (
    assign_partner, assign_partner_to_unassigned, change_partner_for_date,
    deliveries_for_partner, has_unassigned_days,
)
from services.errors import NotFound
from services.subscription_lifecycle import (
    ScheduleConfig, build_sub_order, find_delivery, franchise_filter, pause_all,
    pause_delivery, promote_cod_to_online, record_delivery_outcome, resume_delivery,
    set_subscription_status,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _ok(data=None, message: str = "") -> Envelope:
    return Envelope(data=data, message=message)


def _dump(order: SubscriptionOrder) -> dict:
    return SubscriptionOrderResponse.model_validate(order).model_dump(mode="json")


async def load_schedule_config(db: AsyncSession) -> ScheduleConfig:
    setting = (await db.execute(select(AppSetting).limit(1))).scalar_one_or_none()
    return ScheduleConfig.from_setting(setting)


async def _get_order(db: AsyncSession, order_id: uuid.UUID) -> SubscriptionOrder:
    result = await db.execute(select(SubscriptionOrder).where(SubscriptionOrder.id == order_id))
    order = result.scalar_one_or_none()
    if not order:
        raise NotFound("Order not found")
    return order


async def _get_order_by_delivery(
    db: AsyncSession, delivery_date_id: uuid.UUID, user_id: uuid.UUID | None = None,
) -> SubscriptionOrder:
    query = (
        select(SubscriptionOrder)
        .join(SubscriptionOrder.orders)
        .join(SubOrder.delivery_dates)
        .where(DeliveryDate.id == delivery_date_id)
    )
    if user_id is not None:
        query = query.where(SubscriptionOrder.user_id == user_id)
    order = (await db.execute(query)).scalars().first()
    if not order:
        raise NotFound("Subscription or delivery date not found")
    return order


# ── CRUD ───────────────────────────────────────────────────

@router.post("/", status_code=201)
async def create_subscription_order(data: SubscriptionOrderCreate, db: AsyncSession = Depends(get_db)):
    """Create a subscription order and generate every sub-order's calendar."""
    order = SubscriptionOrder(
        user_id=data.user_id,
        final_amount=data.final_amount,
        total_amount=data.total_amount,
        gst_amount=data.gst_amount,
        delivery_fees=data.delivery_fees,
        platform_fees=data.platform_fees,
        address=data.address,
        location_lat=data.location_lat,
        location_lng=data.location_lng,
        location_type=data.location_type.value,
        flat_number=data.flat_number,
        building_name=data.building_name,
        floor=data.floor,
        landmark=data.landmark,
        assigned_franchise_id=data.assigned_franchise_id,
        payment_type=data.payment_type.value,
        subscription_status=SubscriptionStatus.ACTIVE.value,
        orders=[build_sub_order(sub, position=i) for i, sub in enumerate(data.orders)],
    )
    db.add(order)
    await db.commit()
    order = await _get_order(db, order.id)

    logger.info(
        "Subscription order created: id=%s user=%s franchise=%s sub_orders=%d",
        order.id, order.user_id, order.assigned_franchise_id, len(order.orders),
    )
    return _ok(_dump(order), "Order created successfully!")


@router.get("/")
async def list_subscription_orders(
    status: str | None = None,
    skip: int = 0,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
):
    """List subscription orders, newest first."""
    query = select(SubscriptionOrder)
    if status:
        query = query.where(SubscriptionOrder.subscription_status == status)
    query = query.order_by(SubscriptionOrder.created_at.desc()).offset(skip).limit(limit)
    orders = (await db.execute(query)).scalars().all()
    return _ok([_dump(o) for o in orders])


@router.get("/user/{user_id}")
async def list_orders_by_user(user_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(SubscriptionOrder)
        .where(SubscriptionOrder.user_id == user_id)
        .order_by(SubscriptionOrder.created_at.desc())
    )
    return _ok([_dump(o) for o in result.scalars().all()])


@router.get("/subscription/{subscription_id}")
async def list_orders_by_plan(subscription_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Orders containing at least one sub-order for the given subscription plan."""
    result = await db.execute(
        select(SubscriptionOrder)
        .join(SubscriptionOrder.orders)
        .where(SubOrder.subscription_id == subscription_id)
        .distinct()
        .order_by(SubscriptionOrder.created_at.desc())
    )
    return _ok([_dump(o) for o in result.scalars().all()])


@router.get("/unassigned")
async def list_unassigned_orders(franchise_id: uuid.UUID = Query(...), db: AsyncSession = Depends(get_db)):
    """Active orders of a franchise with at least one day lacking a partner."""
    result = await db.execute(
        select(SubscriptionOrder).where(
            SubscriptionOrder.assigned_franchise_id == franchise_id,
            SubscriptionOrder.subscription_status == SubscriptionStatus.ACTIVE.value,
        )
    )
    orders = [o for o in result.scalars().all() if has_unassigned_days(o)]
    return _ok([_dump(o) for o in orders])


@router.get("/{order_id}")
async def get_subscription_order(order_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return _ok(_dump(await _get_order(db, order_id)))


@router.delete("/{order_id}")
async def delete_subscription_order(order_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    order = await _get_order(db, order_id)
    await db.delete(order)
    await db.commit()
    logger.info("Subscription order deleted: id=%s", order_id)
    return _ok(message="Order deleted successfully")


@router.patch("/{order_id}/status")
async def update_subscription_status(
    order_id: uuid.UUID,
    data: SubscriptionStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Set the order-level status (Active, Inactive, Cancelled, Expired)."""
    order = await _get_order(db, order_id)
    previous = order.subscription_status
    set_subscription_status(order, data.status)
    await db.commit()

    logger.info("Order %s status %s -> %s", order_id, previous, order.subscription_status)
    return _ok(_dump(order), "Subscription status updated successfully")


# ── Delivery days ──────────────────────────────────────────

@router.patch("/deliveries/{delivery_date_id}")
async def update_delivery(
    delivery_date_id: uuid.UUID,
    data: DeliveryUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update one delivery day's status and outcome metadata."""
    order = await _get_order_by_delivery(db, delivery_date_id)

    fields = data.model_dump(exclude={"status"}, exclude_none=True)
    entry = record_delivery_outcome(order, delivery_date_id, data.status, **fields)
    await db.commit()

    logger.info("Delivery %s on %s -> %s (order %s)", entry.id, entry.date, entry.status, order.id)
    return _ok(
        DeliveryDateResponse.model_validate(entry).model_dump(mode="json"),
        "Delivery status updated successfully",
    )


@router.post("/pause")
async def pause_subscription(data: PauseRequest, db: AsyncSession = Depends(get_db)):
    """Pause one delivery day before today's cutoff and add a makeup day."""
    order = await _get_order_by_delivery(db, data.delivery_date_id, data.user_id)
    config = await load_schedule_config(db)

    makeup = pause_delivery(order, data.delivery_date_id, datetime.now(SCHEDULE_TZ), config)
    await db.commit()

    logger.info(
        "Delivery %s paused for user %s, makeup day %s",
        data.delivery_date_id, data.user_id, makeup.date,
    )
    return _ok(
        {"delivery_date_id": str(data.delivery_date_id), "makeup_date": makeup.date},
        "Delivery paused successfully and new date added",
    )


@router.post("/resume")
async def resume_subscription(data: PauseRequest, db: AsyncSession = Depends(get_db)):
    """Resume a paused day and drop its makeup day if it is still the tail."""
    order = await _get_order_by_delivery(db, data.delivery_date_id, data.user_id)

    removed = resume_delivery(order, data.delivery_date_id)
    await db.commit()

    logger.info(
        "Delivery %s resumed for user %s, removed makeup day %s",
        data.delivery_date_id, data.user_id, removed.date if removed else None,
    )
    return _ok(
        {"delivery_date_id": str(data.delivery_date_id), "removed_date": removed.date if removed else None},
        "Subscription resumed successfully",
    )


@router.post("/pause-all")
async def pause_all_subscriptions(data: BulkPauseRequest, db: AsyncSession = Depends(get_db)):
    """
    Pause a date for every subscription served by the given franchises.

    Orders are committed one at a time; a failure part-way leaves the
    earlier orders paused.
    """
    config = await load_schedule_config(db)
    allowed = franchise_filter(data.franchise_ids)

    query = (
        select(SubscriptionOrder)
        .join(SubscriptionOrder.orders)
        .join(SubOrder.delivery_dates)
        .where(DeliveryDate.date == data.date)
        .distinct()
    )
    if allowed is not None:
        query = query.where(SubscriptionOrder.assigned_franchise_id.in_(list(allowed)))
    subscriptions = list((await db.execute(query)).scalars().all())

    pauses = pause_all(subscriptions, data.date, data.franchise_ids, datetime.now(SCHEDULE_TZ), config)
    if not subscriptions:
        raise NotFound("No matching subscriptions found for the given date and franchiseIds")

    paused = 0
    orders = 0
    for _, count in pauses:
        await db.commit()
        paused += count
        orders += 1

    logger.info("Bulk pause on %s: %d deliveries across %d orders", data.date, paused, orders)
    return _ok(
        {"date": data.date, "paused": paused, "orders": orders},
        f"Paused deliveries for {paused} subscriptions on {data.date}",
    )


# ── Delivery partners ──────────────────────────────────────

@router.post("/partner-deliveries")
async def get_partner_deliveries(data: PartnerDeliveriesRequest, db: AsyncSession = Depends(get_db)):
    """A delivery partner's run sheet for one day."""
    result = await db.execute(
        select(SubscriptionOrder)
        .join(SubscriptionOrder.orders)
        .join(SubOrder.delivery_dates)
        .where(DeliveryDate.delivery_partner_id == data.partner_id, DeliveryDate.date == data.date)
        .distinct()
    )
    deliveries = deliveries_for_partner(list(result.scalars().all()), data.partner_id, data.date)
    return _ok(deliveries)


async def _sub_orders(db: AsyncSession, sub_order_ids: list[uuid.UUID]) -> list[SubOrder]:
    result = await db.execute(select(SubOrder).where(SubOrder.id.in_(sub_order_ids)))
    return list(result.scalars().all())


@router.patch("/assign-delivery-partner/{partner_id}")
async def assign_delivery_partner(
    partner_id: uuid.UUID,
    data: AssignPartnerRequest,
    db: AsyncSession = Depends(get_db),
):
    """Assign a partner to every day of the given sub-orders."""
    sub_orders = await _sub_orders(db, data.order_ids)
    if not sub_orders:
        raise NotFound("No valid orders found to update.")

    for sub_order in sub_orders:
        assign_partner(sub_order, partner_id)
    await db.commit()

    updated = [str(o.id) for o in sub_orders]
    logger.info("Partner %s assigned to sub-orders %s", partner_id, updated)
    return _ok({"updated_order_ids": updated}, "Delivery partner assigned to specified orders successfully.")


@router.patch("/assign-delivery-partner-to-unassigned/{partner_id}")
async def assign_delivery_partner_to_unassigned(
    partner_id: uuid.UUID,
    data: AssignPartnerRequest,
    db: AsyncSession = Depends(get_db),
):
    """Assign a partner only to days that have none yet."""
    sub_orders = await _sub_orders(db, data.order_ids)
    updated = [str(o.id) for o in sub_orders if assign_partner_to_unassigned(o, partner_id)]
    if not updated:
        raise NotFound("No valid unassigned orders found to update.")

    await db.commit()
    logger.info("Partner %s assigned to unassigned days of %s", partner_id, updated)
    return _ok({"updated_order_ids": updated}, "Delivery partner assigned to unassigned orders successfully.")


@router.put("/change-delivery-partner")
async def change_delivery_partner(data: ChangePartnerRequest, db: AsyncSession = Depends(get_db)):
    """Hand one calendar date of an order to another partner."""
    order = await _get_order(db, data.order_id)
    if not change_partner_for_date(order, data.date, data.new_delivery_partner_id):
        raise NotFound(f"No delivery scheduled on {data.date}")
    await db.commit()
    return _ok(_dump(order), "Delivery partner changed")


# ── Payment ────────────────────────────────────────────────

@router.patch("/update-payment-type/{order_id}")
async def update_payment_type(order_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Mark a COD order as paid online."""
    order = await _get_order(db, order_id)
    promote_cod_to_online(order)
    await db.commit()
    logger.info("Order %s payment type -> ONLINE", order_id)
    return _ok(_dump(order), "Payment type updated to ONLINE")


@router.get("/deliveries/{delivery_date_id}")
async def get_delivery(delivery_date_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    order = await _get_order_by_delivery(db, delivery_date_id)
    _, entry = find_delivery(order, delivery_date_id)
    return _ok(DeliveryDateResponse.model_validate(entry).model_dump(mode="json"))
