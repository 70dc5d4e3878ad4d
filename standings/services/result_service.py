"""
Result service: recording, editing and deleting finalized games.

Mutations require PermissionGate.can_record_result. A game is checked with
the same rules the aggregator applies, against the roster as it stands when
the game is written, so a malformed game is refused instead of breaking the
leaderboard later.
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from standings.data_models.snapshot import (
    EntityKind, GameRecord, MemberRecord, ParticipantRecord, TeamRecord
)
from standings.database.models import Game, GameParticipant, Team, TournamentMembership, utcnow
from standings.services.base import BaseService
from standings.utils.aggregation import ResultAggregator
from standings.utils.leaderboard_exceptions import GameNotFoundError
from standings.utils.permissions import PermissionGate

logger = logging.getLogger(__name__)

RECORD_RESULTS = "record_results"


def game_to_record(game: Game) -> GameRecord:
    return GameRecord(
        game_id=game.id,
        tournament_id=game.tournament_id,
        played_at=game.played_at,
        participants=[
            ParticipantRecord(p.entity, p.outcome, p.result_value, p.placement)
            for p in game.participants
        ],
        recorded_by=game.recorded_by,
    )


def _participant_row(participant: ParticipantRecord) -> GameParticipant:
    entity = participant.entity
    return GameParticipant(
        player_id=entity.id if entity.kind is EntityKind.PLAYER else None,
        team_id=entity.id if entity.kind is EntityKind.TEAM else None,
        outcome=participant.outcome,
        result_value=str(participant.result_value),
        placement=participant.placement,
    )


class ResultService(BaseService):
    """Write side of game results."""

    async def _roster(
        self, session: AsyncSession, tournament_id: int
    ) -> Tuple[Dict[int, MemberRecord], Dict[int, TeamRecord]]:
        memberships = (await session.execute(
            select(TournamentMembership)
            .options(selectinload(TournamentMembership.player))
            .where(TournamentMembership.tournament_id == tournament_id)
        )).scalars().all()
        teams = (await session.execute(
            select(Team).where(Team.tournament_id == tournament_id)
        )).scalars().all()

        players = {
            m.player_id: MemberRecord(m.player_id, m.player.display_name, m.removed_at)
            for m in memberships
        }
        return players, {t.id: TeamRecord(t.id, t.name) for t in teams}

    async def _get_game(self, session: AsyncSession, tournament_id: int, game_id: int) -> Game:
        game = (await session.execute(
            select(Game).options(selectinload(Game.participants)).where(Game.id == game_id)
        )).scalar_one_or_none()
        if game is None or game.tournament_id != tournament_id:
            raise GameNotFoundError(game_id)
        return game

    async def _check_game(self, session: AsyncSession, record: GameRecord):
        players, teams = await self._roster(session, record.tournament_id)
        ResultAggregator.validate_game(record, players, teams)

    async def record_game(
        self,
        tournament_id: int,
        actor_id: int,
        participants: Sequence[ParticipantRecord],
        played_at: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> GameRecord:
        """
        Record a finalized game.

        Raises:
            TournamentNotFoundError: If the tournament does not exist
            PermissionDeniedError: If the actor may not record results
            MalformedGameError: If the game would not aggregate
        """
        played_at = played_at or utcnow()
        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            await self.require_capability(
                session, tournament_id, actor_id, RECORD_RESULTS, PermissionGate.can_record_result
            )
            await self._check_game(session, GameRecord(
                game_id=None,
                tournament_id=tournament_id,
                played_at=played_at,
                participants=participants,
                recorded_by=actor_id,
            ))

            game = Game(
                tournament_id=tournament_id,
                played_at=played_at,
                recorded_by=actor_id,
                notes=notes,
                participants=[_participant_row(p) for p in participants],
            )
            session.add(game)
            await session.flush()
            record = game_to_record(game)

        logger.info(
            f"Player {actor_id} recorded game {record.game_id} in tournament {tournament_id} "
            f"with {len(record.participants)} participants"
        )
        return record

    async def update_game(
        self,
        tournament_id: int,
        actor_id: int,
        game_id: int,
        participants: Optional[Sequence[ParticipantRecord]] = None,
        played_at: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> GameRecord:
        """Correct a recorded game. Omitted fields keep their stored values."""
        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            await self.require_capability(
                session, tournament_id, actor_id, RECORD_RESULTS, PermissionGate.can_record_result
            )
            game = await self._get_game(session, tournament_id, game_id)
            current = game_to_record(game)

            await self._check_game(session, GameRecord(
                game_id=game_id,
                tournament_id=tournament_id,
                played_at=played_at or current.played_at,
                participants=participants if participants is not None else current.participants,
                recorded_by=current.recorded_by,
            ))

            if participants is not None:
                game.participants = [_participant_row(p) for p in participants]
            if played_at is not None:
                game.played_at = played_at
            if notes is not None:
                game.notes = notes
            await session.flush()
            record = game_to_record(game)

        logger.info(f"Player {actor_id} updated game {game_id} in tournament {tournament_id}")
        return record

    async def delete_game(self, tournament_id: int, actor_id: int, game_id: int) -> None:
        """Delete a recorded game and its participant rows."""
        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            await self.require_capability(
                session, tournament_id, actor_id, RECORD_RESULTS, PermissionGate.can_record_result
            )
            game = await self._get_game(session, tournament_id, game_id)
            await session.delete(game)

        logger.info(f"Player {actor_id} deleted game {game_id} in tournament {tournament_id}")
