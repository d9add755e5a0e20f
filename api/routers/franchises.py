"""Franchise API endpoints — service areas, location lookup, daily orders."""

import logging
import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_db
from models.franchise import Franchise
from models.subscription_order import SubscriptionOrder, SubOrder, DeliveryDate
from schemas import (
    FranchiseCreate, FranchiseResponse, FranchiseMatchResponse, LocationQuery,
    AssignManagerRequest, DeliveryDateResponse, Envelope,
)
from services.delivery_assignment import orders_for_date
from services.errors import NotFound
from services.geofence import resolve_franchises

logger = logging.getLogger(__name__)

router = APIRouter()


def _ok(data=None, message: str = "") -> Envelope:
    return Envelope(data=data, message=message)


def _dump(franchise: Franchise) -> dict:
    return FranchiseResponse.model_validate(franchise).model_dump(mode="json")


async def _get_franchise(db: AsyncSession, franchise_id: uuid.UUID) -> Franchise:
    result = await db.execute(select(Franchise).where(Franchise.id == franchise_id))
    franchise = result.scalar_one_or_none()
    if not franchise:
        raise NotFound("Franchise not found")
    return franchise


def _apply(franchise: Franchise, data: FranchiseCreate) -> None:
    franchise.name = data.name
    franchise.city_name = data.city_name
    franchise.branch_name = data.branch_name
    franchise.location = data.location.model_dump() if data.location else None
    franchise.total_delivery_radius = data.total_delivery_radius
    franchise.free_delivery_radius = data.free_delivery_radius
    franchise.charge_per_extra_km = data.charge_per_extra_km
    franchise.assigned_manager_id = data.assigned_manager_id
    franchise.polygon_coordinates = [p.model_dump() for p in data.polygon_coordinates]


# ── CRUD ───────────────────────────────────────────────────

@router.post("/", status_code=201)
async def create_franchise(data: FranchiseCreate, db: AsyncSession = Depends(get_db)):
    franchise = Franchise()
    _apply(franchise, data)
    db.add(franchise)
    await db.commit()
    await db.refresh(franchise)
    logger.info("Franchise created: id=%s name=%s vertices=%d", franchise.id, franchise.name, len(data.polygon_coordinates))
    return _ok(_dump(franchise), "Franchise created successfully")


@router.get("/")
async def list_franchises(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Franchise).order_by(Franchise.name))
    return _ok([_dump(f) for f in result.scalars().all()])


@router.get("/orders")
async def get_orders_by_date(
    franchise_id: uuid.UUID = Query(...),
    date: str = Query(..., pattern=r"^\d{4}-\d{2}-\d{2}$"),
    db: AsyncSession = Depends(get_db),
):
    """Subscription orders of a franchise, reduced to the days on `date`."""
    result = await db.execute(
        select(SubscriptionOrder)
        .join(SubscriptionOrder.orders)
        .join(SubOrder.delivery_dates)
        .where(SubscriptionOrder.assigned_franchise_id == franchise_id, DeliveryDate.date == date)
        .distinct()
    )
    data = [
        {
            "id": str(item["subscription"].id),
            "user_id": str(item["subscription"].user_id),
            "address": item["subscription"].address,
            "subscription_status": item["subscription"].subscription_status,
            "orders": [
                {
                    "id": str(o["sub_order"].id),
                    "subscription_id": str(o["sub_order"].subscription_id),
                    "days": o["sub_order"].days,
                    "delivery_dates": [
                        DeliveryDateResponse.model_validate(d).model_dump(mode="json")
                        for d in o["delivery_dates"]
                    ],
                }
                for o in item["orders"]
            ],
        }
        for item in orders_for_date(list(result.scalars().all()), date)
    ]
    return _ok(data)


@router.post("/by-location")
async def get_franchise_by_location(data: LocationQuery, db: AsyncSession = Depends(get_db)):
    """Every franchise whose service polygon contains the point, with the delivery charge."""
    franchises = (await db.execute(select(Franchise))).scalars().all()
    matches = resolve_franchises(data.user_lat, data.user_lng, list(franchises))

    logger.info(
        "Location %.5f,%.5f served by %s",
        data.user_lat, data.user_lng, [str(m.franchise.id) for m in matches],
    )
    return _ok([
        FranchiseMatchResponse(
            id=m.franchise.id,
            franchise=m.franchise.name,
            city_name=m.franchise.city_name,
            branch_name=m.franchise.branch_name,
            location=m.franchise.location,
            delivery_distance=m.distance_km,
            charge=m.charge,
        ).model_dump(mode="json")
        for m in matches
    ])


@router.post("/assign-manager")
async def assign_manager(data: AssignManagerRequest, db: AsyncSession = Depends(get_db)):
    franchise = await _get_franchise(db, data.franchise_id)
    franchise.assigned_manager_id = data.manager_id
    await db.commit()
    return _ok(_dump(franchise), "Manager assigned to franchise successfully")


@router.get("/manager/{manager_id}")
async def list_franchises_by_manager(manager_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Franchise).where(Franchise.assigned_manager_id == manager_id))
    franchises = result.scalars().all()
    if not franchises:
        raise NotFound("No franchises found for this manager")
    return _ok([_dump(f) for f in franchises])


@router.get("/{franchise_id}")
async def get_franchise(franchise_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return _ok(_dump(await _get_franchise(db, franchise_id)))


@router.put("/{franchise_id}")
async def update_franchise(franchise_id: uuid.UUID, data: FranchiseCreate, db: AsyncSession = Depends(get_db)):
    franchise = await _get_franchise(db, franchise_id)
    _apply(franchise, data)
    await db.commit()
    await db.refresh(franchise)
    logger.info("Franchise updated: id=%s", franchise_id)
    return _ok(_dump(franchise), "Franchise updated successfully")


@router.delete("/{franchise_id}")
async def delete_franchise(franchise_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    franchise = await _get_franchise(db, franchise_id)
    await db.delete(franchise)
    await db.commit()
    logger.info("Franchise deleted: id=%s", franchise_id)
    return _ok(message="Franchise deleted successfully")
