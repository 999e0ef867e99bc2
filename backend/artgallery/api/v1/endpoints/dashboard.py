"""
Admin Dashboard Endpoint.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.database import get_db
from artgallery.core.security import require_admin
from artgallery.models.user import User
from artgallery.modules.shop.dashboard import get_dashboard_stats

router = APIRouter()


@router.get("/stats")
async def dashboard_stats(
    recent: int = Query(5, ge=1, le=50),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return {"success": True, **await get_dashboard_stats(db, recent=recent)}
