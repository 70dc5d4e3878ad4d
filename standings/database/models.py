from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Boolean, Text,
    ForeignKey, Enum as SQLEnum, UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship

from standings.data_models.membership import MembershipCapabilities
from standings.data_models.snapshot import EntityRef, Outcome

Base = declarative_base()

def utcnow() -> datetime:
    """Naive UTC timestamp, matching how SQLite stores DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

class Tournament(Base):
    __tablename__ = 'tournaments'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    game_type = Column(String(100), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime, nullable=False, default=utcnow)
    end_date = Column(DateTime, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    memberships = relationship("TournamentMembership", back_populates="tournament", cascade="all, delete-orphan")
    teams = relationship("Team", back_populates="tournament", cascade="all, delete-orphan")
    games = relationship("Game", back_populates="tournament", cascade="all, delete-orphan")
    formulas = relationship("Formula", back_populates="tournament", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Tournament(id={self.id}, name='{self.name}', game_type='{self.game_type}')>"

class Player(Base):
    __tablename__ = 'players'

    id = Column(Integer, primary_key=True)
    display_name = Column(String(100), nullable=False)
    profile_image = Column(String(500), nullable=True)  # Reference to an uploaded photo

    # Metadata
    created_at = Column(DateTime, default=utcnow)

    memberships = relationship("TournamentMembership", back_populates="player")

    def __repr__(self):
        return f"<Player(id={self.id}, display_name='{self.display_name}')>"

class TournamentMembership(Base):
    """Per-tournament membership with its explicit capability flags."""
    __tablename__ = 'tournament_memberships'

    tournament_id = Column(Integer, ForeignKey('tournaments.id'), primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id'), primary_key=True)

    # Capability flags (required, never NULL)
    is_administrator = Column(Boolean, default=False, nullable=False)
    can_record_results = Column(Boolean, default=False, nullable=False)
    can_manage_formulas = Column(Boolean, default=False, nullable=False)

    joined_at = Column(DateTime, default=utcnow, nullable=False)
    removed_at = Column(DateTime, nullable=True)  # Set on removal; results before it stay valid

    tournament = relationship("Tournament", back_populates="memberships")
    player = relationship("Player", back_populates="memberships")

    def to_capabilities(self) -> MembershipCapabilities:
        return MembershipCapabilities(
            tournament_id=self.tournament_id,
            player_id=self.player_id,
            is_administrator=bool(self.is_administrator),
            can_record_results=bool(self.can_record_results),
            can_manage_formulas=bool(self.can_manage_formulas),
            removed_at=self.removed_at,
        )

    def __repr__(self):
        return (f"<TournamentMembership(tournament={self.tournament_id}, player={self.player_id}, "
                f"admin={self.is_administrator})>")

class Team(Base):
    __tablename__ = 'teams'

    id = Column(Integer, primary_key=True)
    tournament_id = Column(Integer, ForeignKey('tournaments.id'), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    tournament = relationship("Tournament", back_populates="teams")
    members = relationship("TeamMembership", back_populates="team", cascade="all, delete-orphan")

    __table_args__ = (UniqueConstraint('tournament_id', 'name'),)

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}')>"

class TeamMembership(Base):
    __tablename__ = 'team_memberships'

    team_id = Column(Integer, ForeignKey('teams.id'), primary_key=True)
    player_id = Column(Integer, ForeignKey('players.id'), primary_key=True)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    team = relationship("Team", back_populates="members")
    player = relationship("Player")

class Game(Base):
    __tablename__ = 'games'

    id = Column(Integer, primary_key=True)
    tournament_id = Column(Integer, ForeignKey('tournaments.id'), nullable=False, index=True)
    played_at = Column(DateTime, nullable=False, default=utcnow)
    recorded_by = Column(Integer, ForeignKey('players.id'), nullable=True)
    notes = Column(Text, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    tournament = relationship("Tournament", back_populates="games")
    participants = relationship("GameParticipant", back_populates="game", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Game(id={self.id}, tournament={self.tournament_id}, played_at={self.played_at})>"

class GameParticipant(Base):
    """One player's or team's result in a game (exactly one of player_id / team_id)."""
    __tablename__ = 'game_participants'

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey('games.id'), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey('players.id'), nullable=True)
    team_id = Column(Integer, ForeignKey('teams.id'), nullable=True)

    outcome = Column(SQLEnum(Outcome), nullable=False)
    result_value = Column(String(50), nullable=False, default="0")  # Decimal as text, kept exact
    placement = Column(Integer, nullable=True)  # 1st place = 1, 2nd = 2, etc. Null for two-party games

    game = relationship("Game", back_populates="participants")

    __table_args__ = (
        CheckConstraint(
            '(player_id IS NULL) != (team_id IS NULL)',
            name='ck_participant_single_entity'
        ),
    )

    @property
    def entity(self) -> EntityRef:
        if self.team_id is not None:
            return EntityRef.team(self.team_id)
        return EntityRef.player(self.player_id)

    def __repr__(self):
        return f"<GameParticipant(game={self.game_id}, entity={self.entity}, outcome={self.outcome})>"

class Formula(Base):
    __tablename__ = 'formulas'

    id = Column(Integer, primary_key=True)
    tournament_id = Column(Integer, ForeignKey('tournaments.id'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    config = Column(Text, nullable=False)  # JSON-encoded FormulaConfig
    is_active = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey('players.id'), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    tournament = relationship("Tournament", back_populates="formulas")

    def __repr__(self):
        return f"<Formula(id={self.id}, name='{self.name}', active={self.is_active})>"

class LeaderboardSnapshotRow(Base):
    """Captured leaderboard position, used only to compute movement."""
    __tablename__ = 'leaderboard_snapshots'

    id = Column(Integer, primary_key=True)
    tournament_id = Column(Integer, ForeignKey('tournaments.id'), nullable=False)
    formula_id = Column(Integer, ForeignKey('formulas.id'), nullable=False)
    view = Column(String(20), nullable=False)  # "individual" or "team"
    entity_kind = Column(String(20), nullable=False)
    entity_id = Column(Integer, nullable=False)
    rank = Column(Integer, nullable=False)
    score = Column(String(50), nullable=False)  # Decimal as text, kept exact
    # Result window the positions were ranked over, both null for all games
    window_start = Column(DateTime, nullable=True)
    window_end = Column(DateTime, nullable=True)
    captured_on = Column(Date, nullable=False)
    captured_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint('tournament_id', 'formula_id', 'view', 'entity_kind', 'entity_id',
                         'window_start', 'window_end', 'captured_on',
                         name='uq_snapshot_entity_day'),
        Index('ix_snapshot_lookup', 'tournament_id', 'formula_id', 'view',
              'window_start', 'window_end', 'captured_on'),
    )

class AuditLog(Base):
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    tournament_id = Column(Integer, ForeignKey('tournaments.id'), nullable=True)
    player_id = Column(Integer, ForeignKey('players.id'), nullable=True)  # Acting player
    action = Column(String(50), nullable=False)
    details = Column(Text)  # JSON
    created_at = Column(DateTime, default=utcnow)
