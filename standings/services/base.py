"""
Base service class for the standings engine.

Provides async database session management, retry logic for storage fetches
and the membership lookup every mutating service runs through the
permission gate.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional, Tuple, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from standings.config import Config
from standings.data_models.membership import MembershipCapabilities
from standings.database.models import AuditLog, Tournament, TournamentMembership
from standings.utils.leaderboard_exceptions import PermissionDeniedError, TournamentNotFoundError

logger = logging.getLogger(__name__)

class BaseService:
    """Base class for all services with async database session management."""

    def __init__(self, session_factory):
        """
        Initialize base service with session factory.

        Args:
            session_factory: Async session factory from Database class
        """
        self.session_factory = session_factory

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for async database operations."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def execute_with_retry(
        self,
        func: Callable[[], Awaitable[Any]],
        max_retries: Optional[int] = None,
        retry_on: Tuple[Type[BaseException], ...] = (SQLAlchemyError,)
    ) -> Any:
        """Execute a storage fetch with retry and exponential backoff on database errors."""
        attempts = max_retries or Config.FETCH_MAX_RETRIES
        for attempt in range(attempts):
            try:
                return await func()
            except retry_on as e:
                if attempt == attempts - 1:
                    raise
                logger.warning(f"Retry attempt {attempt + 1} for {func.__name__}: {e}")
                await asyncio.sleep(0.1 * (2 ** attempt))  # Exponential backoff

    async def require_tournament(self, session: AsyncSession, tournament_id: int) -> Tournament:
        tournament = await session.get(Tournament, tournament_id)
        if tournament is None:
            raise TournamentNotFoundError(tournament_id)
        return tournament

    async def load_membership(
        self, session: AsyncSession, tournament_id: int, player_id: int
    ) -> Optional[MembershipCapabilities]:
        """Fetch a player's capability set in a tournament, or None if never a member."""
        membership = await session.get(TournamentMembership, (tournament_id, player_id))
        return membership.to_capabilities() if membership else None

    async def require_capability(
        self,
        session: AsyncSession,
        tournament_id: int,
        player_id: int,
        capability: str,
        check: Callable[[Optional[MembershipCapabilities]], bool]
    ) -> MembershipCapabilities:
        """
        Run a permission gate predicate against the acting player's membership.

        Raises:
            PermissionDeniedError: If the gate rejects the membership
        """
        membership = await self.load_membership(session, tournament_id, player_id)
        if not check(membership):
            logger.info(f"Denied '{capability}' to player {player_id} in tournament {tournament_id}")
            raise PermissionDeniedError(player_id, capability)
        return membership

    def add_audit_entry(
        self, session: AsyncSession, tournament_id: int, player_id: int, action: str, details: dict
    ) -> None:
        """Record a mutation in the audit trail (committed with the session)."""
        session.add(AuditLog(
            tournament_id=tournament_id,
            player_id=player_id,
            action=action,
            details=json.dumps(details, default=str),
        ))
