"""
Newsletter subscribers.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from artgallery.core.errors import ConflictError, NotFoundError
from artgallery.models.shop import Subscriber


class SubscriberService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def subscribe(
        self,
        email: str,
        name: str | None = None,
        source: str = "website",
    ) -> tuple[Subscriber, bool]:
        """
        Subscribe an e-mail address.

        Returns:
            (subscriber, True if it was re-activated rather than created)
        """
        email = email.strip().lower()
        subscriber = await self.db.scalar(select(Subscriber).where(Subscriber.email == email))

        if subscriber:
            if subscriber.is_active:
                raise ConflictError("Email is already subscribed")
            subscriber.is_active = True
            if name:
                subscriber.name = name
            await self.db.flush()
            return subscriber, True

        subscriber = Subscriber(email=email, name=name, source=source, is_active=True)
        self.db.add(subscriber)
        await self.db.flush()
        return subscriber, False

    async def unsubscribe(self, email: str) -> None:
        subscriber = await self.db.scalar(
            select(Subscriber).where(Subscriber.email == email.strip().lower())
        )
        if not subscriber or not subscriber.is_active:
            raise NotFoundError("Subscriber not found")
        subscriber.is_active = False
        await self.db.flush()

    async def list_subscribers(self, active_only: bool = False) -> list[Subscriber]:
        query = select(Subscriber).order_by(Subscriber.created_at.desc())
        if active_only:
            query = query.where(Subscriber.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())
