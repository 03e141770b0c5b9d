"""
Pytest configuration and fixtures for Clinic WhatsApp Notifier tests.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from notifier.config.reminder_settings import ReminderSettings, ReminderSettingsStore
from notifier.domain.messages import CompanyProfile
from notifier.infrastructure.claim_store import ClaimStore
from notifier.infrastructure.database import create_engine_for, create_session_factory, init_database
from notifier.infrastructure.delivery_log import DeliveryLogRepository
from notifier.infrastructure.profile_cache import ProfileCache
from notifier.usecases.dispatch_service import DispatchService
from notifier.usecases.ingestion import AppointmentIngestor
from tests.helpers import TEST_TIMEZONE


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Create a file-backed test database engine.
    
    A file (not :memory:) is used so that concurrent sessions get their
    own connections, as separate worker processes would.
    """
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await init_database(engine)
    
    yield engine
    
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


@pytest.fixture
def store(session_factory) -> ClaimStore:
    return ClaimStore(session_factory, max_retries=3)


@pytest.fixture
def reminder_settings_store(tmp_path) -> ReminderSettingsStore:
    settings_store = ReminderSettingsStore(str(tmp_path / "reminder-settings.json"))
    settings_store.save(ReminderSettings(reminder_type="1day", custom_hours=24, enabled=True))
    return settings_store


@pytest.fixture
def make_dispatcher(session_factory, store, reminder_settings_store):
    """Build a DispatchService for a given worker identity and transport."""
    
    def _make(worker_id: str, transport, batch_size: int = 10) -> DispatchService:
        return DispatchService(
            store=store,
            transport=transport,
            profiles=ProfileCache(session_factory),
            reminder_settings=reminder_settings_store,
            ingestor=AppointmentIngestor(session_factory, store, timezone=TEST_TIMEZONE),
            worker_id=worker_id,
            batch_size=batch_size,
            stale_timeout=timedelta(minutes=5),
            delivery_log=DeliveryLogRepository(session_factory),
        )
    
    return _make


@pytest_asyncio.fixture
async def company_profile(session_factory) -> CompanyProfile:
    """Store a clinic profile."""
    profile = CompanyProfile(
        arb_name="عيادة الشفاء",
        eng_name="Al Shifa Clinic",
        arb_address="الرياض",
        eng_address="Riyadh",
        arb_tel="0112345678",
        eng_tel="0112345678",
    )
    async with session_factory() as session:
        session.add(profile)
        await session.commit()
    return profile


@pytest.fixture
def mock_settings():
    """Mock application settings for testing."""
    mock = MagicMock()
    mock.twilio_account_sid = "ACtest123"
    mock.twilio_auth_token = "test_token"
    mock.twilio_whatsapp_number = "whatsapp:+14155238886"
    mock.debug = False
    mock.timezone = TEST_TIMEZONE
    mock.default_country_code = "966"
    mock.batch_size = 10
    mock.max_retries = 3
    mock.stale_timeout_minutes = 5
    mock.welcome_interval_seconds = 1.0
    mock.confirmation_interval_seconds = 30.0
    mock.reminder_interval_seconds = 30.0
    mock.reclaim_interval_minutes = 10
    return mock
