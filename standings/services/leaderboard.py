"""
Leaderboard service: the storage side of leaderboard computation.

Reads a tournament's roster, teams, games and formulas inside a single
session, hands the resulting snapshot to the pure leaderboard operations and
optionally records daily position snapshots used for movement indicators.
"""

import json
import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from standings.config import Config
from standings.constants import LeaderboardConstants
from standings.data_models.formula import FormulaConfig, FormulaRecord
from standings.data_models.leaderboard import Leaderboard
from standings.data_models.snapshot import (
    EntityKind, EntityRef, GameRecord, MemberRecord, ParticipantRecord, ResultWindow,
    TeamRecord, TournamentSnapshot
)
from standings.database.models import (
    Formula, Game, LeaderboardSnapshotRow, Team, TournamentMembership, utcnow
)
from standings.operations.leaderboard_operations import LeaderboardOperations
from standings.services.base import BaseService
from standings.utils.leaderboard_exceptions import FormulaValidationError

logger = logging.getLogger(__name__)


def _window_filter(window: Optional[ResultWindow]):
    """Match snapshot rows captured over exactly this window."""
    start = window.start if window is not None else None
    end = window.end if window is not None else None
    return (
        LeaderboardSnapshotRow.window_start == start,
        LeaderboardSnapshotRow.window_end == end,
    )


def formula_to_record(formula: Formula) -> FormulaRecord:
    """Convert a stored formula row into the immutable record the engine ranks with."""
    try:
        data = json.loads(formula.config)
    except ValueError:
        raise FormulaValidationError(f"Stored configuration of formula {formula.id} is not valid JSON")
    return FormulaRecord(
        formula_id=formula.id,
        tournament_id=formula.tournament_id,
        name=formula.name,
        config=FormulaConfig.from_dict(data),
        is_active=bool(formula.is_active),
    )


class LeaderboardService(BaseService):
    """Service for computing, snapshotting and annotating tournament leaderboards."""

    async def _load_snapshot(self, session: AsyncSession, tournament_id: int) -> TournamentSnapshot:
        """Read everything the engine needs for one tournament in the given session."""
        await self.require_tournament(session, tournament_id)

        memberships = (await session.execute(
            select(TournamentMembership)
            .options(selectinload(TournamentMembership.player))
            .where(TournamentMembership.tournament_id == tournament_id)
        )).scalars().all()

        teams = (await session.execute(
            select(Team)
            .options(selectinload(Team.members))
            .where(Team.tournament_id == tournament_id)
        )).scalars().all()

        games = (await session.execute(
            select(Game)
            .options(selectinload(Game.participants))
            .where(Game.tournament_id == tournament_id)
            .order_by(Game.id)
        )).scalars().all()

        formulas = (await session.execute(
            select(Formula).where(Formula.tournament_id == tournament_id).order_by(Formula.id)
        )).scalars().all()

        return TournamentSnapshot(
            tournament_id=tournament_id,
            players=[
                MemberRecord(m.player_id, m.player.display_name, m.removed_at)
                for m in memberships
            ],
            teams=[
                TeamRecord(t.id, t.name, frozenset(tm.player_id for tm in t.members))
                for t in teams
            ],
            games=[
                GameRecord(
                    game_id=g.id,
                    tournament_id=g.tournament_id,
                    played_at=g.played_at,
                    participants=[
                        ParticipantRecord(p.entity, p.outcome, p.result_value, p.placement)
                        for p in g.participants
                    ],
                    recorded_by=g.recorded_by,
                )
                for g in games
            ],
            formulas=[formula_to_record(f) for f in formulas],
        )

    async def get_snapshot(self, tournament_id: int) -> TournamentSnapshot:
        """Load a consistent point-in-time snapshot, retrying transient database errors."""
        async def load_tournament_snapshot():
            async with self.get_session() as session:
                return await self._load_snapshot(session, tournament_id)

        return await self.execute_with_retry(load_tournament_snapshot)

    async def get_leaderboard(
        self,
        tournament_id: int,
        formula_id: Optional[int] = None,
        window: Optional[ResultWindow] = None
    ) -> Leaderboard:
        """Compute the current leaderboard of a tournament."""
        snapshot = await self.get_snapshot(tournament_id)
        return LeaderboardOperations.compute_leaderboard(snapshot, formula_id, window)

    async def capture_snapshot(
        self,
        tournament_id: int,
        formula_id: Optional[int] = None,
        window: Optional[ResultWindow] = None,
        today: Optional[date] = None
    ) -> bool:
        """
        Persist today's positions for movement tracking.

        At most one snapshot is kept per tournament, formula, window and day.

        Returns:
            True if a snapshot was written, False if today's already exists
        """
        today = today or utcnow().date()
        async with self.get_session() as session:
            snapshot = await self._load_snapshot(session, tournament_id)
            leaderboard = LeaderboardOperations.compute_leaderboard(snapshot, formula_id, window)

            existing = await session.scalar(
                select(func.count(LeaderboardSnapshotRow.id)).where(
                    LeaderboardSnapshotRow.tournament_id == tournament_id,
                    LeaderboardSnapshotRow.formula_id == leaderboard.formula_id,
                    LeaderboardSnapshotRow.captured_on == today,
                    *_window_filter(window),
                )
            )
            if existing:
                logger.debug(f"Snapshot for tournament {tournament_id} on {today} already captured")
                return False

            for view in LeaderboardConstants.VIEWS:
                for entry in leaderboard.entries_for(view):
                    session.add(LeaderboardSnapshotRow(
                        tournament_id=tournament_id,
                        formula_id=leaderboard.formula_id,
                        view=view,
                        entity_kind=entry.entity.kind.value,
                        entity_id=entry.entity.id,
                        rank=entry.rank,
                        score=str(entry.score),
                        window_start=window.start if window is not None else None,
                        window_end=window.end if window is not None else None,
                        captured_on=today,
                    ))

        logger.info(
            f"Captured leaderboard snapshot for tournament {tournament_id} "
            f"(formula {leaderboard.formula_id}) on {today}"
        )
        return True

    async def _previous_ranks(
        self,
        session: AsyncSession,
        tournament_id: int,
        formula_id: int,
        view: str,
        window: Optional[ResultWindow],
        before: date
    ) -> Dict[EntityRef, int]:
        """Ranks from the latest same-window snapshot captured strictly before the given day."""
        latest = await session.scalar(
            select(func.max(LeaderboardSnapshotRow.captured_on)).where(
                LeaderboardSnapshotRow.tournament_id == tournament_id,
                LeaderboardSnapshotRow.formula_id == formula_id,
                LeaderboardSnapshotRow.view == view,
                LeaderboardSnapshotRow.captured_on < before,
                *_window_filter(window),
            )
        )
        if latest is None:
            return {}

        rows = (await session.execute(
            select(LeaderboardSnapshotRow)
            .where(
                LeaderboardSnapshotRow.tournament_id == tournament_id,
                LeaderboardSnapshotRow.formula_id == formula_id,
                LeaderboardSnapshotRow.view == view,
                LeaderboardSnapshotRow.captured_on == latest,
                *_window_filter(window),
            )
            .order_by(LeaderboardSnapshotRow.rank)
            .limit(Config.SNAPSHOT_HISTORY_LIMIT)
        )).scalars().all()

        return {EntityRef(EntityKind(row.entity_kind), row.entity_id): row.rank for row in rows}

    async def get_leaderboard_with_movement(
        self,
        tournament_id: int,
        formula_id: Optional[int] = None,
        window: Optional[ResultWindow] = None,
        today: Optional[date] = None
    ) -> Leaderboard:
        """Compute the leaderboard and annotate each entry with its movement since the last snapshot."""
        today = today or utcnow().date()
        async with self.get_session() as session:
            snapshot = await self._load_snapshot(session, tournament_id)
            leaderboard = LeaderboardOperations.compute_leaderboard(snapshot, formula_id, window)

            annotated: Dict[str, List] = {}
            for view in LeaderboardConstants.VIEWS:
                entries = leaderboard.entries_for(view)
                if not entries:
                    annotated[view] = []
                    continue
                previous = await self._previous_ranks(
                    session, tournament_id, leaderboard.formula_id, view, window, today
                )
                annotated[view] = LeaderboardOperations.apply_movement(entries, previous)

        return Leaderboard(
            tournament_id=leaderboard.tournament_id,
            formula_id=leaderboard.formula_id,
            individual=tuple(annotated[LeaderboardConstants.VIEW_INDIVIDUAL]),
            team=tuple(annotated[LeaderboardConstants.VIEW_TEAM]),
        )
