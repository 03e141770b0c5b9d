"""
Message rendering for each notification category.
"""

from typing import Optional

from notifier.domain.messages import AppointmentQueueEntry, CompanyProfile, Patient
from notifier.utils.time import format_db_date, format_db_time

UNKNOWN = "غير محدد"


def _clinic_lines(profile: Optional[CompanyProfile]) -> str:
    lines = []
    if profile is not None and profile.arb_name:
        lines.append(f"في *{profile.arb_name}*")
    if profile is not None and profile.arb_address:
        lines.append(f"📍 العنوان: {profile.arb_address}")
    if profile is not None and profile.arb_tel:
        lines.append(f"📞 الهاتف: {profile.arb_tel}")
    return "\n".join(lines)


def _appointment_message(entry: AppointmentQueueEntry, profile: Optional[CompanyProfile], lead: str) -> str:
    message = f"مرحباً {entry.patient_name or 'مريض'}،\n\n"
    message += (
        f"{lead} مع الدكتور/ة {entry.doctor_name or UNKNOWN} "
        f"في قسم {entry.specialty_name or UNKNOWN}.\n"
    )
    message += f"📅 التاريخ: {format_db_date(entry.appointment_date)}\n"
    message += f"⏰ الوقت: {format_db_time(entry.appointment_time)}\n"
    
    clinic = _clinic_lines(profile)
    if clinic:
        message += f"{clinic}\n"
    
    message += "\nنتمنى لك الصحة والعافية 🌹"
    return message


def render_welcome(patient: Patient, profile: Optional[CompanyProfile]) -> str:
    """Welcome message for a newly registered patient."""
    clinic_name = (profile.arb_name if profile is not None else None) or "العيادة"
    address = (profile.arb_address if profile is not None else None) or "غير متوفر"
    
    message = f"مرحباً {patient.name or 'مريض'}،\n\n"
    message += f"يسعدنا انضمامكم إلى *{clinic_name}*\n"
    message += f"📍 العنوان: {address}\n"
    if profile is not None and profile.arb_tel:
        message += f"📞 الهاتف: {profile.arb_tel}\n"
    message += "\n✅ تم إنشاء حسابكم بنجاح.\n"
    message += f"🔖 رقم الملف: {patient.patient_id}\n"
    message += "\nنشكر لكم ثقتكم ونتمنى لكم دوام الصحة والعافية 🌹"
    return message


def render_confirmation(entry: AppointmentQueueEntry, profile: Optional[CompanyProfile]) -> str:
    """Booking confirmation for a queued appointment."""
    return _appointment_message(entry, profile, "تم حجز موعدك بنجاح")


def render_reminder(entry: AppointmentQueueEntry, profile: Optional[CompanyProfile]) -> str:
    """Reminder for an upcoming appointment."""
    return _appointment_message(entry, profile, "تذكير: لديك موعد قادم")
