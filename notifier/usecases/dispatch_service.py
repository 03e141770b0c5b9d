"""
Dispatch engine shared by every notification category.

A tick ingests new work (appointment categories), claims a bounded batch,
then renders, sends and finalizes each claimed record in turn. Claims are
owned by this worker's identity; a finalize that touches no row means
another worker reclaimed the record and is logged, not treated as failure.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Protocol

from notifier.config.reminder_settings import ReminderSettingsStore
from notifier.domain.errors import TransientStoreError, ValidationFailure
from notifier.domain.messages import MessageStatus, SendResult, TickReport
from notifier.infrastructure.claim_store import ClaimStore
from notifier.infrastructure.delivery_log import DeliveryLogRepository
from notifier.infrastructure.profile_cache import ProfileCache
from notifier.usecases.categories import Category
from notifier.usecases.ingestion import AppointmentIngestor
from notifier.utils.time import utc_now

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def send(self, recipient: str, content: str) -> SendResult: ...


class DispatchService:
    """Runs dispatch ticks for any category."""
    
    def __init__(
        self,
        store: ClaimStore,
        transport: Transport,
        profiles: ProfileCache,
        reminder_settings: ReminderSettingsStore,
        ingestor: AppointmentIngestor,
        worker_id: str,
        batch_size: int = 10,
        stale_timeout: timedelta = timedelta(minutes=5),
        country_code: str = "966",
        delivery_log: Optional[DeliveryLogRepository] = None,
    ):
        self.store = store
        self.transport = transport
        self.profiles = profiles
        self.reminder_settings = reminder_settings
        self.ingestor = ingestor
        self.worker_id = worker_id
        self.batch_size = batch_size
        self.stale_timeout = stale_timeout
        self.country_code = country_code
        self.delivery_log = delivery_log
    
    async def run_tick(self, category: Category, now: Optional[datetime] = None) -> TickReport:
        """
        Run one dispatch tick for a category.
        
        Args:
            category: Category to dispatch
            now: Tick time (defaults to now)
        
        Returns:
            TickReport with counts for this tick
        """
        now = now or utc_now()
        report = TickReport(category=category.kind)
        
        window_hours = None
        if category.windowed:
            window_hours = self.reminder_settings.load().window_hours
        
        criteria = category.claim_criteria(now, window_hours)
        if criteria is None:
            logger.debug(f"{category.kind.value} dispatch disabled, skipping tick")
            report.skipped = True
            return report
        
        try:
            if category.ingests:
                report.ingested = await self.ingestor.ingest(now)
            
            profile = await self.profiles.get()
            
            claimed = await self.store.claim_batch(
                category.phase,
                self.worker_id,
                self.batch_size,
                self.stale_timeout,
                criteria=criteria,
                now=now,
            )
        except TransientStoreError as e:
            logger.error(f"Store unavailable, skipping {category.kind.value} tick: {e}")
            report.skipped = True
            return report
        
        report.claimed = len(claimed)
        if not claimed:
            return report
        
        logger.info(
            f"Claimed {len(claimed)} {category.kind.value} record(s) for processing "
            f"(Worker: {self.worker_id})"
        )
        
        for record in claimed:
            await self._process_record(category, record, profile, now, window_hours, report)
        
        return report
    
    async def _process_record(
        self,
        category: Category,
        record: Any,
        profile: Any,
        now: datetime,
        window_hours: Optional[float],
        report: TickReport,
    ) -> None:
        recipient = None
        try:
            if not category.gate(record, now, window_hours):
                # Left in PROCESSING; the claim goes stale and is retried later
                report.deferred += 1
                logger.warning(f"{category.kind.value} record {record.id} claimed outside its window")
                return
            
            recipient = category.recipient(record, self.country_code)
            content = category.render(record, profile)
            
            logger.info(f"Sending {category.kind.value} message for record {record.id} to {recipient}")
            result = await self.transport.send(recipient, content)
            
            if result.success:
                await self._finalize(category, record, MessageStatus.SENT, report)
            else:
                logger.error(
                    f"Failed to send {category.kind.value} message for record {record.id}: "
                    f"{result.error} (will retry)"
                )
                await self._finalize(category, record, MessageStatus.FAILED, report)
            
            await self._log_attempt(category, record, recipient, result)
        
        except ValidationFailure as e:
            logger.warning(f"Invalid {category.kind.value} record {record.id}: {e}")
            await self._finalize_after_error(category, record, report)
        
        except Exception as e:
            logger.exception(f"Error processing {category.kind.value} record {record.id}: {e}")
            await self._finalize_after_error(category, record, report)
    
    async def _finalize(
        self,
        category: Category,
        record: Any,
        status: MessageStatus,
        report: TickReport,
    ) -> None:
        rows = await self.store.finalize_status(category.phase, record.id, status, self.worker_id)
        
        if rows == 0:
            report.lost_races += 1
            logger.warning(
                f"{category.kind.value} record {record.id} was not updated to {status.name}; "
                f"another worker has claimed or finished it"
            )
        elif status == MessageStatus.SENT:
            report.sent += 1
            logger.info(f"{category.kind.value} message for record {record.id} sent")
        else:
            report.failed += 1
    
    async def _finalize_after_error(self, category: Category, record: Any, report: TickReport) -> None:
        try:
            await self._finalize(category, record, MessageStatus.FAILED, report)
        except Exception as e:
            logger.error(f"Failed to mark {category.kind.value} record {record.id} as FAILED: {e}")
    
    async def _log_attempt(self, category: Category, record: Any, recipient: str, result: SendResult) -> None:
        if self.delivery_log is None:
            return
        try:
            await self.delivery_log.record(
                category=category.kind.value,
                record_id=record.id,
                recipient=recipient,
                sent=result.success,
                error=result.error,
                worker_id=self.worker_id,
            )
        except Exception as e:
            logger.warning(f"Could not write delivery log for record {record.id}: {e}")
