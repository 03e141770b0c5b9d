"""
Stale claim reclaimer.

Returns PROCESSING records abandoned by a crashed worker to PENDING.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

from notifier.domain.errors import TransientStoreError
from notifier.domain.messages import ALL_PHASES, MessagePhase
from notifier.infrastructure.claim_store import ClaimStore

logger = logging.getLogger(__name__)


class StaleReclaimer:
    """Periodic sweep over every delivery phase."""
    
    def __init__(
        self,
        store: ClaimStore,
        stale_timeout: timedelta = timedelta(minutes=5),
        phases: Iterable[MessagePhase] = ALL_PHASES,
    ):
        self.store = store
        self.stale_timeout = stale_timeout
        self.phases = tuple(phases)
    
    async def run(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Reset stale claims in every phase.
        
        Returns:
            Rows reset per phase name
        """
        counts: Dict[str, int] = {}
        for phase in self.phases:
            try:
                counts[phase.name] = await self.store.reset_stale(phase, self.stale_timeout, now=now)
            except TransientStoreError as e:
                logger.error(f"Store unavailable, skipping stale cleanup for {phase.name}: {e}")
                counts[phase.name] = 0
        
        if any(counts.values()):
            summary = ", ".join(f"{count} {name}" for name, count in counts.items())
            logger.info(f"Cleaned up stale records: {summary}")
        
        return counts
