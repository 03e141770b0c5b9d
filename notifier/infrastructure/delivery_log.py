"""
Delivery attempt log.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from notifier.domain.messages import DeliveryLog
from notifier.utils.time import utc_now


class DeliveryLogRepository:
    """Appends and lists delivery attempts."""
    
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
    
    async def record(
        self,
        category: str,
        record_id: int,
        recipient: Optional[str],
        sent: bool,
        error: Optional[str] = None,
        worker_id: Optional[str] = None,
    ) -> None:
        async with self.session_factory() as session:
            session.add(DeliveryLog(
                category=category,
                record_id=record_id,
                recipient=recipient,
                status="sent" if sent else "failed",
                error=error[:1000] if error else None,
                worker_id=worker_id,
                attempted_at=utc_now(),
            ))
            await session.commit()
    
    async def recent(self, limit: int = 100) -> List[DeliveryLog]:
        """Most recent attempts, newest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(DeliveryLog)
                .order_by(DeliveryLog.attempted_at.desc(), DeliveryLog.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
