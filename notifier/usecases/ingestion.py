"""
Appointment queue ingestion.

Scans booked appointments and creates at most one queue entry per
(patient, doctor, date, time), however many ticks observe the same row.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, exists, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from notifier.domain.messages import (
    Appointment,
    AppointmentQueueEntry,
    Doctor,
    Patient,
    Specialty,
)
from notifier.infrastructure.claim_store import ClaimStore, translate_store_errors
from notifier.utils.phone import normalize_phone_number
from notifier.utils.time import ingest_cutoff_date, parse_db_datetime, utc_now

logger = logging.getLogger(__name__)


class AppointmentIngestor:
    """Feeds new appointments into the appointment queue."""
    
    def __init__(
        self,
        session_factory: async_sessionmaker,
        store: ClaimStore,
        timezone: str,
        country_code: str = "966",
        lookback_days: int = 0,
    ):
        self.session_factory = session_factory
        self.store = store
        self.timezone = timezone
        self.country_code = country_code
        self.lookback_days = lookback_days
    
    def _source_query(self, cutoff: int):
        already_queued = exists().where(
            AppointmentQueueEntry.patient_id == Appointment.patient_id,
            AppointmentQueueEntry.doctor_id == Appointment.doctor_id,
            AppointmentQueueEntry.appointment_date == Appointment.the_date,
            AppointmentQueueEntry.appointment_time == Appointment.the_time,
        )
        return (
            select(
                Appointment,
                Doctor.id,
                Patient.name,
                Patient.number,
                Doctor.arb_name,
                Specialty.arb_name,
            )
            .outerjoin(Doctor, and_(
                Doctor.doctor_id == Appointment.doctor_id,
                Doctor.branch_id == Appointment.branch_id,
            ))
            .outerjoin(Specialty, Specialty.id == Doctor.specialty_id)
            .outerjoin(Patient, and_(
                Patient.patient_id == Appointment.patient_id,
                Patient.branch_id == Appointment.branch_id,
            ))
            .where(Appointment.the_date >= cutoff, ~already_queued)
            .order_by(Appointment.id)
        )
    
    async def ingest(self, now: Optional[datetime] = None) -> int:
        """
        Queue appointments not yet present in the appointment queue.
        
        Rows missing a phone number or a patient/doctor reference, and rows
        dated before the cutoff, are skipped.
        
        Returns:
            Number of new queue entries
        """
        now = now or utc_now()
        cutoff = ingest_cutoff_date(self.timezone, self.lookback_days, now)
        
        with translate_store_errors("scan appointments"):
            async with self.session_factory() as session:
                result = await session.execute(self._source_query(cutoff))
                rows = result.all()
        
        inserted = 0
        for appointment, doctor_row_id, patient_name, number, doctor_name, specialty_name in rows:
            if appointment.patient_id is None or appointment.doctor_id is None:
                logger.warning(f"Skipping appointment {appointment.id}: missing patient or doctor id")
                continue
            
            if doctor_row_id is None:
                logger.warning(f"Skipping appointment {appointment.id}: unknown doctor {appointment.doctor_id}")
                continue
            
            recipient = normalize_phone_number(number, self.country_code)
            if not recipient:
                logger.warning(f"Skipping appointment {appointment.id}: patient {appointment.patient_id} has no phone number")
                continue
            
            try:
                appointment_at = parse_db_datetime(appointment.the_date, appointment.the_time, self.timezone)
            except ValueError as e:
                logger.warning(f"Skipping appointment {appointment.id}: {e}")
                continue
            
            created = await self.store.insert_if_absent({
                "patient_id": appointment.patient_id,
                "doctor_id": appointment.doctor_id,
                "appointment_date": appointment.the_date,
                "appointment_time": appointment.the_time,
                "branch_id": appointment.branch_id,
                "appointment_at": appointment_at,
                "recipient": recipient,
                "patient_name": patient_name,
                "doctor_name": doctor_name,
                "specialty_name": specialty_name,
                "created_at": now,
            })
            if created:
                inserted += 1
                logger.info(
                    f"Queued appointment for patient {appointment.patient_id} "
                    f"on {appointment.the_date} at {appointment.the_time}"
                )
        
        return inserted
