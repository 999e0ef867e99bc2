"""
Newsletter API Endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.database import get_db
from artgallery.core.security import require_admin
from artgallery.models.user import User
from artgallery.modules.shop.subscribers import SubscriberService

router = APIRouter()


class SubscribeRequest(BaseModel):
    email: EmailStr
    name: str | None = None
    source: str = "website"


class UnsubscribeRequest(BaseModel):
    email: EmailStr


@router.post("", status_code=201)
async def subscribe(
    request: SubscribeRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    _, reactivated = await SubscriberService(db).subscribe(
        request.email, name=request.name, source=request.source
    )
    return {
        "success": True,
        "message": "Subscription reactivated" if reactivated else "Subscribed successfully",
    }


@router.post("/unsubscribe")
async def unsubscribe(
    request: UnsubscribeRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await SubscriberService(db).unsubscribe(request.email)
    return {"success": True, "message": "Unsubscribed successfully"}


@router.get("")
async def list_subscribers(
    active: bool = Query(False, description="Only active subscribers"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    subscribers = await SubscriberService(db).list_subscribers(active_only=active)
    return {
        "success": True,
        "count": len(subscribers),
        "subscribers": [
            {
                "id": s.id,
                "name": s.name,
                "email": s.email,
                "is_active": s.is_active,
                "source": s.source,
                "created_at": s.created_at.isoformat() if s.created_at else None,
            }
            for s in subscribers
        ],
    }
