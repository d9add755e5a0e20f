"""Delivery partner assignment over subscription calendars."""

from __future__ import annotations
import uuid

from models import SubOrder, SubscriptionOrder


def assign_partner(sub_order: SubOrder, partner_id: uuid.UUID) -> int:
    """Assign a partner to every day of a sub-order. Returns days touched."""
    for entry in sub_order.delivery_dates:
        entry.delivery_partner_id = partner_id
    return len(sub_order.delivery_dates)


def assign_partner_to_unassigned(sub_order: SubOrder, partner_id: uuid.UUID) -> int:
    """Fill in the partner only where no partner is set yet."""
    count = 0
    for entry in sub_order.delivery_dates:
        if entry.delivery_partner_id is None:
            entry.delivery_partner_id = partner_id
            count += 1
    return count


def change_partner_for_date(subscription: SubscriptionOrder, day: str, partner_id: uuid.UUID) -> int:
    """Re-assign one calendar date across all sub-orders of a subscription."""
    count = 0
    for sub_order in subscription.orders:
        for entry in sub_order.delivery_dates:
            if entry.date == day:
                entry.delivery_partner_id = partner_id
                count += 1
    return count


def has_unassigned_days(subscription: SubscriptionOrder) -> bool:
    return any(
        entry.delivery_partner_id is None
        for sub_order in subscription.orders
        for entry in sub_order.delivery_dates
    )


def deliveries_for_partner(
    subscriptions: list[SubscriptionOrder],
    partner_id: uuid.UUID,
    day: str,
) -> list[dict]:
    """Flatten the partner's run sheet for one day."""
    deliveries = []
    for subscription in subscriptions:
        for sub_order in subscription.orders:
            for entry in sub_order.delivery_dates:
                if entry.date != day or entry.delivery_partner_id != partner_id:
                    continue
                deliveries.append({
                    "order_id": str(subscription.id),
                    "user_id": str(subscription.user_id),
                    "sub_order_id": str(sub_order.id),
                    "subscription_id": str(sub_order.subscription_id),
                    "delivery_date_id": str(entry.id),
                    "delivery_date": entry.date,
                    "status": entry.status,
                    "delivery_time": entry.delivery_time,
                    "delivery_image": entry.delivery_image,
                    "is_box_collected": entry.is_box_collected,
                    "is_box_cleaned": entry.is_box_cleaned,
                    "amount_earned_by_delivery": (
                        float(entry.amount_earned_by_delivery_partner)
                        if entry.amount_earned_by_delivery_partner is not None else None
                    ),
                    "delivery_address": subscription.address,
                    "location": {
                        "lat": float(subscription.location_lat),
                        "lng": float(subscription.location_lng),
                        "type": subscription.location_type,
                        "flat_number": subscription.flat_number,
                        "building_name": subscription.building_name,
                        "floor": subscription.floor,
                        "landmark": subscription.landmark,
                    },
                })
    return deliveries


def orders_for_date(subscriptions: list[SubscriptionOrder], day: str) -> list[dict]:
    """Subscription orders reduced to the days scheduled on `day`."""
    result = []
    for subscription in subscriptions:
        orders = []
        for sub_order in subscription.orders:
            days = [e for e in sub_order.delivery_dates if e.date == day]
            if days:
                orders.append({"sub_order": sub_order, "delivery_dates": days})
        if orders:
            result.append({"subscription": subscription, "orders": orders})
    return result
