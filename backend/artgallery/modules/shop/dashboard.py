"""
Admin dashboard statistics.
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from artgallery.models.shop import (
    Order,
    OrderStatus,
    PaymentStatus,
    Product,
    ProductStatus,
    Subscriber,
)
from artgallery.models.user import User, UserRole


async def get_dashboard_stats(db: AsyncSession, recent: int = 5) -> dict[str, Any]:
    """Counts, revenue, order breakdown, low stock and recent orders."""
    users = await db.scalar(select(func.count(User.id)).where(User.role == UserRole.USER))
    products = await db.scalar(
        select(func.count(Product.id)).where(Product.status == ProductStatus.ACTIVE)
    )
    orders = await db.scalar(select(func.count(Order.id)))
    subscribers = await db.scalar(
        select(func.count(Subscriber.id)).where(Subscriber.is_active.is_(True))
    )
    revenue = await db.scalar(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            Order.payment_status == PaymentStatus.PAID
        )
    )

    by_status_rows = await db.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )
    by_status = {status.value: 0 for status in OrderStatus}
    for status, count in by_status_rows.all():
        by_status[status.value] = count

    low_stock = await db.execute(
        select(Product)
        .where(
            Product.status == ProductStatus.ACTIVE,
            Product.stock > 0,
            Product.stock <= Product.low_stock_threshold,
        )
        .order_by(Product.stock)
    )

    recent_orders = await db.execute(
        select(Order)
        .options(selectinload(Order.user), selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(recent)
    )

    return {
        "counts": {
            "users": users or 0,
            "products": products or 0,
            "orders": orders or 0,
            "subscribers": subscribers or 0,
        },
        "revenue": float(revenue or 0),
        "orders_by_status": by_status,
        "low_stock_products": [
            {"id": p.id, "name": p.name, "sku": p.sku, "stock": p.stock}
            for p in low_stock.scalars().all()
        ],
        "recent_orders": [
            {
                "id": o.id,
                "order_number": o.order_number,
                "customer": o.user.name if o.user else None,
                "status": o.status.value,
                "payment_status": o.payment_status.value,
                "total_amount": float(o.total_amount),
                "created_at": o.created_at.isoformat(),
            }
            for o in recent_orders.scalars().all()
        ],
    }
