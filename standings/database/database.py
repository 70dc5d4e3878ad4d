from datetime import datetime
from typing import Iterable, Optional
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from standings.config import Config
from standings.database.models import (
    Base, Player, Team, TeamMembership, Tournament, TournamentMembership, utcnow
)
from standings.utils.logger import setup_logger

class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url or Config.DATABASE_URL
        self.engine = None
        self.async_session = None

    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")
        Config.validate()

        # Convert sqlite URL to async if needed
        database_url = self.database_url
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')

        self.engine = create_async_engine(
            database_url,
            echo=Config.DEBUG,
        )

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

    async def close(self):
        """Dispose of the engine and its connection pool"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session that commits on success"""
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # Setup helpers. Tournament, player and team CRUD belongs to the surrounding
    # application; these exist so a deployment (or a test) can seed data.

    async def create_tournament(self, name: str, game_type: str,
                                start_date: Optional[datetime] = None,
                                end_date: Optional[datetime] = None) -> Tournament:
        async with self.get_session() as session:
            tournament = Tournament(
                name=name,
                game_type=game_type,
                start_date=start_date or utcnow(),
                end_date=end_date,
            )
            session.add(tournament)
            await session.flush()
            self.logger.info(f"Created tournament {tournament.id} ({name})")
            return tournament

    async def create_player(self, display_name: str, profile_image: Optional[str] = None) -> Player:
        async with self.get_session() as session:
            player = Player(display_name=display_name, profile_image=profile_image)
            session.add(player)
            await session.flush()
            return player

    async def add_membership(self, tournament_id: int, player_id: int,
                             is_administrator: bool = False,
                             can_record_results: bool = False,
                             can_manage_formulas: bool = False) -> TournamentMembership:
        async with self.get_session() as session:
            membership = TournamentMembership(
                tournament_id=tournament_id,
                player_id=player_id,
                is_administrator=is_administrator,
                can_record_results=can_record_results,
                can_manage_formulas=can_manage_formulas,
            )
            session.add(membership)
            await session.flush()
            return membership

    async def create_team(self, tournament_id: int, name: str,
                          member_ids: Iterable[int] = (),
                          description: Optional[str] = None) -> Team:
        async with self.get_session() as session:
            team = Team(tournament_id=tournament_id, name=name, description=description)
            session.add(team)
            await session.flush()
            for player_id in member_ids:
                session.add(TeamMembership(team_id=team.id, player_id=player_id))
            return team
