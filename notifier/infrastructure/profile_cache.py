"""
Cached clinic profile lookup.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from notifier.domain.messages import CompanyProfile
from notifier.infrastructure.claim_store import translate_store_errors

logger = logging.getLogger(__name__)


class ProfileCache:
    """Fetches the clinic profile once and serves it until refreshed."""
    
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._profile: Optional[CompanyProfile] = None
    
    async def get(self) -> Optional[CompanyProfile]:
        """Return the cached profile, fetching it on first use."""
        if self._profile is not None:
            return self._profile
        
        with translate_store_errors("fetch company profile"):
            async with self.session_factory() as session:
                result = await session.execute(
                    select(CompanyProfile).order_by(CompanyProfile.id).limit(1)
                )
                profile = result.scalar_one_or_none()
        
        if profile is None:
            logger.warning("Company profile not found")
            return None
        
        self._profile = profile
        return profile
    
    async def refresh(self) -> Optional[CompanyProfile]:
        """Drop the cached profile and fetch it again."""
        self._profile = None
        return await self.get()
