"""
Atomic claim/update operations over the shared record set.

Each operation is a single statement in its own transaction, so the
storage engine decides every race between processes.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker

from notifier.domain.errors import TransientStoreError
from notifier.domain.messages import (
    AppointmentQueueEntry,
    MessagePhase,
    MessageStatus,
    QUEUE_NATURAL_KEY,
)
from notifier.utils.time import utc_now

logger = logging.getLogger(__name__)


@contextmanager
def translate_store_errors(operation: str):
    """Re-raise connectivity and lock errors as ``TransientStoreError``."""
    try:
        yield
    except (OperationalError, InterfaceError, OSError) as e:
        raise TransientStoreError(f"{operation} failed: {e}") from e


class ClaimStore:
    """Claim, finalize, dedup-insert and stale-reset operations."""
    
    def __init__(self, session_factory: async_sessionmaker, max_retries: int = 3):
        self.session_factory = session_factory
        self.max_retries = max_retries
    
    def claimable(self, phase: MessagePhase, stale_before: datetime):
        """Eligibility predicate shared by the claim subquery and update."""
        return or_(
            phase.status == MessageStatus.PENDING,
            and_(
                phase.status == MessageStatus.FAILED,
                phase.retry_count < self.max_retries,
            ),
            and_(
                phase.status == MessageStatus.PROCESSING,
                phase.claimed_at < stale_before,
            ),
        )
    
    async def claim_batch(
        self,
        phase: MessagePhase,
        owner_id: str,
        batch_size: int,
        stale_timeout: timedelta,
        criteria: Iterable[Any] = (),
        now: Optional[datetime] = None,
    ) -> List[Any]:
        """
        Atomically move up to ``batch_size`` eligible rows to PROCESSING.
        
        Args:
            phase: Delivery phase to claim
            owner_id: Worker identity stamped on the claimed rows
            batch_size: Maximum rows to claim
            stale_timeout: Age after which another owner's claim is abandoned
            criteria: Extra category-specific conditions
            now: Claim time (defaults to now)
        
        Returns:
            Exactly the rows this call transitioned
        """
        now = now or utc_now()
        criteria = list(criteria)
        eligible = self.claimable(phase, now - stale_timeout)
        
        candidates = (
            select(phase.id_column)
            .where(eligible, *criteria)
            .order_by(phase.id_column)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
            .correlate(None)
        )
        stmt = (
            update(phase.model)
            .where(phase.id_column.in_(candidates), eligible, *criteria)
            .values({
                phase.status: MessageStatus.PROCESSING,
                phase.owner_id: owner_id,
                phase.claimed_at: now,
            })
            .returning(phase.model)
            .execution_options(synchronize_session=False)
        )
        
        with translate_store_errors(f"claim {phase.name}"):
            async with self.session_factory() as session:
                result = await session.scalars(stmt)
                claimed = list(result.all())
                await session.commit()
        
        return claimed
    
    async def finalize_status(
        self,
        phase: MessagePhase,
        record_id: int,
        new_status: MessageStatus,
        owner_id: str,
    ) -> int:
        """
        Finalize a claimed row to SENT or FAILED.
        
        Only applies while the row is still PROCESSING under ``owner_id``.
        FAILED increments the retry count in the same statement.
        
        Returns:
            Rows affected; 0 means another worker owns or finished the row
        """
        if new_status not in (MessageStatus.SENT, MessageStatus.FAILED):
            raise ValueError(f"Cannot finalize to {new_status!r}")
        
        values = {phase.status: new_status}
        if new_status == MessageStatus.FAILED:
            values[phase.retry_count] = phase.retry_count + 1
        
        stmt = (
            update(phase.model)
            .where(
                phase.id_column == record_id,
                phase.status == MessageStatus.PROCESSING,
                phase.owner_id == owner_id,
            )
            .values(values)
            .execution_options(synchronize_session=False)
        )
        
        with translate_store_errors(f"finalize {phase.name}"):
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = result.rowcount
                await session.commit()
        
        return rows
    
    async def insert_if_absent(self, entry: dict) -> bool:
        """
        Insert an appointment queue entry unless its natural key exists.
        
        Returns:
            True if a new row was stored
        """
        with translate_store_errors("insert queue entry"):
            async with self.session_factory() as session:
                dialect = postgresql if session.bind.dialect.name == "postgresql" else sqlite
                stmt = (
                    dialect.insert(AppointmentQueueEntry)
                    .values(**entry)
                    .on_conflict_do_nothing(index_elements=list(QUEUE_NATURAL_KEY))
                )
                result = await session.execute(stmt)
                rows = result.rowcount
                await session.commit()
        
        return rows == 1
    
    async def reset_stale(
        self,
        phase: MessagePhase,
        stale_timeout: timedelta,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Return abandoned PROCESSING rows to PENDING.
        
        Retry counts are left alone: a crashed worker is not a failed delivery.
        
        Returns:
            Number of rows reset
        """
        now = now or utc_now()
        stmt = (
            update(phase.model)
            .where(
                phase.status == MessageStatus.PROCESSING,
                phase.claimed_at < now - stale_timeout,
            )
            .values({
                phase.status: MessageStatus.PENDING,
                phase.owner_id: None,
                phase.claimed_at: None,
            })
            .execution_options(synchronize_session=False)
        )
        
        with translate_store_errors(f"reset stale {phase.name}"):
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = result.rowcount
                await session.commit()
        
        return rows
