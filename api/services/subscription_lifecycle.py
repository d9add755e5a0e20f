"""
Subscription Lifecycle — pause, resume and delivery outcomes on a sub-order calendar.

Rules:
  - Pauses are only accepted before the daily cutoff (AppSetting, "H:MM AM/PM")
  - A paused day is made up by one "Scheduled" entry on the first delivery
    day after the latest date in the sub-order
  - Resume drops the latest-dated entry only if it was added by a pause,
    so pauses and resumes pair LIFO on the makeup tail
  - Delivered days consume remaining_days; a sub-order expires at zero
  - Failed days are made up by one "Pending" entry at the tail
  - Only pause and resume move a day into or out of "Paused"

The subscription document is mutated in memory; callers commit it.
"""

from __future__ import annotations
import re
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterator

from models import AppSetting, DeliveryDate, SubOrder, SubscriptionOrder
from schemas import DeliveryStatus, PaymentType, SubOrderCreate, SubOrderStatus, SubscriptionStatus
from services.delivery_calendar import (
    generate_delivery_dates, next_delivery_day, parse_schedule_date,
)
from services.errors import (
    AlreadyPaused, CutoffExceeded, InvalidInput, InvalidTransition, NotFound, NotPaused,
)
from config import settings


PAUSE_MARKER = "Added due to pause"
FAILED_MAKEUP_MARKER = "Added due to failed delivery"
PAUSED_DESCRIPTION = "Delivery paused"
RESUMED_DESCRIPTION = "Resumed delivery"

ALL_FRANCHISES = "all"

_S = DeliveryStatus

ALLOWED_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    _S.PENDING: frozenset({
        _S.SCHEDULED, _S.PAUSED, _S.DELIVERED, _S.FAILED, _S.CANCELLED, _S.NON_DELIVERY_DAY,
    }),
    _S.SCHEDULED: frozenset({
        _S.PENDING, _S.PAUSED, _S.DELIVERED, _S.FAILED, _S.CANCELLED, _S.NON_DELIVERY_DAY,
    }),
    _S.PAUSED: frozenset({_S.SCHEDULED, _S.CANCELLED}),
    _S.FAILED: frozenset({_S.SCHEDULED, _S.PENDING, _S.CANCELLED}),
    _S.HOLIDAY: frozenset({_S.NON_DELIVERY_DAY}),
    _S.NON_DELIVERY_DAY: frozenset({_S.HOLIDAY}),
    _S.DELIVERED: frozenset(),
    _S.CANCELLED: frozenset(),
}

_CUTOFF_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")


# ── Configuration ──────────────────────────────────────────

@dataclass(frozen=True)
class ScheduleConfig:
    cutoff_time: str = settings.default_cutoff_time

    @classmethod
    def from_setting(cls, setting: AppSetting | None) -> ScheduleConfig:
        if setting is None or not setting.max_subscription_update_or_cancel_time:
            return cls()
        return cls(cutoff_time=setting.max_subscription_update_or_cancel_time)


def parse_cutoff_time(value: str) -> time:
    """Parse "8:30 PM" style strings. 12 AM is midnight, 12 PM is noon."""
    match = _CUTOFF_RE.match(value or "")
    if not match:
        raise InvalidInput(f"Invalid cutoff time {value!r}, expected 'H:MM AM/PM'")

    hours, minutes, modifier = int(match.group(1)), int(match.group(2)), match.group(3).lower()
    if not 1 <= hours <= 12 or minutes > 59:
        raise InvalidInput(f"Invalid cutoff time {value!r}")

    if modifier == "pm" and hours < 12:
        hours += 12
    if modifier == "am" and hours == 12:
        hours = 0
    return time(hours, minutes)


def ensure_before_cutoff(now: datetime, config: ScheduleConfig) -> None:
    """Raise CutoffExceeded once today's cutoff has passed."""
    cutoff = parse_cutoff_time(config.cutoff_time)
    if now.time() > cutoff:
        raise CutoffExceeded(f"You can only pause subscription before {config.cutoff_time}")


# ── Status transitions ─────────────────────────────────────

def can_transition(current: DeliveryStatus | str, target: DeliveryStatus | str) -> bool:
    current, target = DeliveryStatus(current), DeliveryStatus(target)
    return current == target or target in ALLOWED_TRANSITIONS[current]


def transition(entry: DeliveryDate, target: DeliveryStatus) -> None:
    if not can_transition(entry.status, target):
        raise InvalidTransition(f"Cannot move delivery on {entry.date} from {entry.status} to {target.value}")
    entry.status = target.value


# ── Per-sub-order schedule ─────────────────────────────────

class DeliverySchedule:
    """Ordered view over one sub-order's delivery dates with tail operations."""

    def __init__(self, sub_order: SubOrder):
        self.sub_order = sub_order

    @property
    def entries(self) -> list[DeliveryDate]:
        return self.sub_order.delivery_dates

    def find(self, entry_id: uuid.UUID | str) -> DeliveryDate | None:
        entry_id = str(entry_id)
        for entry in self.entries:
            if str(entry.id) == entry_id:
                return entry
        return None

    def on_date(self, day: str) -> DeliveryDate | None:
        for entry in self.entries:
            if entry.date == day:
                return entry
        return None

    def latest(self) -> DeliveryDate | None:
        if not self.entries:
            return None
        return sorted(self.entries, key=lambda e: e.date)[-1]

    def append_makeup(
        self,
        status: DeliveryStatus,
        description: str,
        delivery_partner_id: uuid.UUID | None = None,
    ) -> DeliveryDate:
        latest = self.latest()
        if latest is None:
            raise NotFound("Sub-order has no delivery dates to extend")

        next_day = next_delivery_day(parse_schedule_date(latest.date), self.sub_order.days)
        entry = DeliveryDate(
            id=uuid.uuid4(),
            date=next_day.strftime("%Y-%m-%d"),
            status=status.value,
            description=description,
            delivery_partner_id=delivery_partner_id,
            rating=0,
            is_box_collected=False,
            is_box_cleaned=False,
        )
        self.entries.append(entry)
        return entry

    def remove_latest_if(self, description: str) -> DeliveryDate | None:
        latest = self.latest()
        if latest is None or latest.description != description:
            return None
        self.entries.remove(latest)
        return latest


def find_delivery(subscription: SubscriptionOrder, entry_id: uuid.UUID | str) -> tuple[SubOrder, DeliveryDate]:
    for sub_order in subscription.orders:
        entry = DeliverySchedule(sub_order).find(entry_id)
        if entry is not None:
            return sub_order, entry
    raise NotFound("Delivery date not found")


# ── Creation ───────────────────────────────────────────────

def build_sub_order(data: SubOrderCreate, position: int = 0) -> SubOrder:
    """Build a sub-order with its generated calendar."""
    calendar, active_days = generate_delivery_dates(data.start_date, data.selected_type, data.days)
    return SubOrder(
        id=uuid.uuid4(),
        position=position,
        subscription_id=data.subscription_id,
        amount=data.amount,
        start_date=data.start_date,
        selected_type=data.selected_type,
        days=data.days.value,
        remaining_days=active_days,
        status=SubOrderStatus.ACTIVE.value,
        delivery_dates=[
            DeliveryDate(
                id=uuid.uuid4(),
                date=entry.date,
                status=entry.status.value,
                description="",
                rating=0,
                is_box_collected=False,
                is_box_cleaned=False,
            )
            for entry in calendar
        ],
    )


# ── Pause / Resume ─────────────────────────────────────────

def _pause_entry(sub_order: SubOrder, entry: DeliveryDate) -> DeliveryDate:
    if entry.status == DeliveryStatus.PAUSED.value:
        raise AlreadyPaused("Already paused")
    transition(entry, DeliveryStatus.PAUSED)
    entry.description = PAUSED_DESCRIPTION

    schedule = DeliverySchedule(sub_order)
    return schedule.append_makeup(
        DeliveryStatus.SCHEDULED, PAUSE_MARKER, entry.delivery_partner_id,
    )


def pause_delivery(
    subscription: SubscriptionOrder,
    entry_id: uuid.UUID | str,
    now: datetime,
    config: ScheduleConfig,
) -> DeliveryDate:
    """
    Pause one delivery day and append its makeup day.

    Returns:
        The appended makeup entry
    """
    ensure_before_cutoff(now, config)
    sub_order, entry = find_delivery(subscription, entry_id)
    return _pause_entry(sub_order, entry)


def resume_delivery(subscription: SubscriptionOrder, entry_id: uuid.UUID | str) -> DeliveryDate | None:
    """
    Resume a paused day.

    Returns:
        The removed makeup entry, or None when the tail was not pause-generated
    """
    sub_order, entry = find_delivery(subscription, entry_id)
    if entry.status != DeliveryStatus.PAUSED.value:
        raise NotPaused("Delivery is not paused")

    transition(entry, DeliveryStatus.SCHEDULED)
    entry.description = RESUMED_DESCRIPTION
    return DeliverySchedule(sub_order).remove_latest_if(PAUSE_MARKER)


def franchise_filter(franchise_ids: list[str]) -> set[uuid.UUID] | None:
    """Parse a franchise id list. None means every franchise ("all")."""
    if ALL_FRANCHISES in franchise_ids:
        return None
    try:
        return {uuid.UUID(str(f)) for f in franchise_ids}
    except ValueError:
        raise InvalidInput("franchise_ids must be UUIDs or 'all'")


def serves_franchise(subscription: SubscriptionOrder, allowed: set[uuid.UUID] | None) -> bool:
    return allowed is None or subscription.assigned_franchise_id in allowed


def pause_on_date(subscription: SubscriptionOrder, day: str) -> int:
    """
    Pause `day` on every sub-order of one subscription.

    Each sub-order gets at most one pause + makeup pair. Days already
    paused, or in a state that cannot be paused, are skipped.

    Returns:
        Number of sub-orders paused
    """
    paused = 0
    for sub_order in subscription.orders:
        entry = DeliverySchedule(sub_order).on_date(day)
        if entry is None or entry.status == DeliveryStatus.PAUSED.value:
            continue
        if not can_transition(entry.status, DeliveryStatus.PAUSED):
            continue
        _pause_entry(sub_order, entry)
        paused += 1
    return paused


def pause_all(
    subscriptions: list[SubscriptionOrder],
    day: str,
    franchise_ids: list[str],
    now: datetime,
    config: ScheduleConfig,
) -> Iterator[tuple[SubscriptionOrder, int]]:
    """
    Pause `day` for every subscription served by `franchise_ids` ("all" = any).

    The cutoff and the franchise ids are checked immediately. Subscriptions
    are then paused lazily, one per step, so the caller can persist each
    document before the next one is touched.

    Yields:
        (subscription, pauses applied) for each subscription that changed
    """
    ensure_before_cutoff(now, config)
    allowed = franchise_filter(franchise_ids)
    return _pause_each(subscriptions, day, allowed)


def _pause_each(
    subscriptions: list[SubscriptionOrder],
    day: str,
    allowed: set[uuid.UUID] | None,
) -> Iterator[tuple[SubscriptionOrder, int]]:
    for subscription in subscriptions:
        if not serves_franchise(subscription, allowed):
            continue
        paused = pause_on_date(subscription, day)
        if paused:
            yield subscription, paused


# ── Delivery outcomes ──────────────────────────────────────

_OUTCOME_FIELDS = (
    "description", "delivery_time", "delivery_image", "delivery_partner_id",
    "amount_earned_by_delivery_partner", "is_box_collected", "is_box_cleaned", "rating",
)


def record_delivery_outcome(
    subscription: SubscriptionOrder,
    entry_id: uuid.UUID | str,
    status: DeliveryStatus,
    **outcome,
) -> DeliveryDate:
    """
    Apply a status update plus outcome metadata to one delivery day.

    Delivered consumes one remaining day; Failed appends a makeup day.
    Unknown keyword arguments are rejected; None values are ignored.
    Paused days only move through pause_delivery / resume_delivery.
    """
    unknown = set(outcome) - set(_OUTCOME_FIELDS)
    if unknown:
        raise InvalidInput(f"Unknown delivery fields: {', '.join(sorted(unknown))}")

    sub_order, entry = find_delivery(subscription, entry_id)
    previous = entry.status
    if DeliveryStatus.PAUSED in (DeliveryStatus(previous), status):
        raise InvalidTransition(
            f"Delivery on {entry.date} must be paused or resumed through /pause and /resume"
        )
    transition(entry, status)

    for name, value in outcome.items():
        if value is not None:
            setattr(entry, name, value)

    if previous == status.value:
        return entry

    if status == DeliveryStatus.DELIVERED:
        sub_order.remaining_days = max(0, (sub_order.remaining_days or 0) - 1)
        if sub_order.remaining_days == 0:
            sub_order.status = SubOrderStatus.EXPIRED.value
            if all(o.status == SubOrderStatus.EXPIRED.value for o in subscription.orders):
                subscription.subscription_status = SubscriptionStatus.EXPIRED.value
    elif status == DeliveryStatus.FAILED:
        DeliverySchedule(sub_order).append_makeup(
            DeliveryStatus.PENDING, FAILED_MAKEUP_MARKER, entry.delivery_partner_id,
        )

    return entry


# ── Payment / stale orders ─────────────────────────────────

def set_subscription_status(subscription: SubscriptionOrder, status: SubscriptionStatus) -> None:
    """Set the order-level status. Cancelled orders stay cancelled."""
    current = subscription.subscription_status
    if current == SubscriptionStatus.CANCELLED.value and status != SubscriptionStatus.CANCELLED:
        raise InvalidTransition("Cancelled subscription orders cannot be reopened")
    subscription.subscription_status = status.value


def promote_cod_to_online(subscription: SubscriptionOrder) -> None:
    if subscription.payment_type != PaymentType.COD.value:
        raise InvalidInput("Payment type is not COD")
    subscription.payment_type = PaymentType.ONLINE.value


def cancel_stale_cod_order(subscription: SubscriptionOrder, today: date) -> bool:
    """
    Cancel a COD order whose sub-orders started before today without payment.

    Every day of a stale sub-order is marked Failed. Returns True if the
    order changed.
    """
    if subscription.payment_type != PaymentType.COD.value:
        return False
    if subscription.subscription_status == SubscriptionStatus.CANCELLED.value:
        return False

    stale = [o for o in subscription.orders if o.start_date < today]
    if not stale:
        return False

    subscription.subscription_status = SubscriptionStatus.CANCELLED.value
    for sub_order in stale:
        for entry in sub_order.delivery_dates:
            if entry.status != DeliveryStatus.FAILED.value:
                entry.status = DeliveryStatus.FAILED.value
    return True
