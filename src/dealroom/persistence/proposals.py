"""
Proposal status — the one piece of proposal state the chat core touches.

The marketplace owns the proposal lifecycle; exchanging the first message only
moves a proposal from UNDER_REVIEW to NEGOTIATING.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dealroom.errors import PersistenceError
from dealroom.persistence.entities import ProposalEntity

logger = logging.getLogger(__name__)

UNDER_REVIEW = "UNDER_REVIEW"
NEGOTIATING = "NEGOTIATING"
FUNDED = "FUNDED"
STATUSES = (UNDER_REVIEW, NEGOTIATING, FUNDED)


class ProposalStatusTracker:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def promote_on_engagement(self, proposal_id: int) -> Optional[str]:
        """Return the new status if the proposal moved, else None."""
        stmt = (
            update(ProposalEntity)
            .where(ProposalEntity.id == proposal_id, ProposalEntity.status == UNDER_REVIEW)
            .values(status=NEGOTIATING)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to update proposal status") from e
        if result.rowcount:
            logger.info("Proposal %s moved to %s", proposal_id, NEGOTIATING)
            return NEGOTIATING
        return None

    async def status_of(self, proposal_id: int) -> Optional[str]:
        try:
            async with self._session_factory() as session:
                return (
                    await session.execute(select(ProposalEntity.status).where(ProposalEntity.id == proposal_id))
                ).scalar()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load proposal status") from e
