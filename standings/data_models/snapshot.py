"""
Snapshot data models for the leaderboard engine.

Provides immutable records describing a point-in-time view of one tournament:
its roster, teams, recorded games and formulas. The engine only ever reads
these; loading them consistently is the caller's job.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from standings.data_models.formula import FormulaRecord


def to_decimal(value) -> Decimal:
    """
    Convert a numeric value to an exact Decimal.

    Floats go through their shortest repr so 0.1 becomes Decimal('0.1')
    rather than its binary expansion.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            result = Decimal(repr(value))
        elif isinstance(value, (int, str)):
            result = Decimal(value.strip() if isinstance(value, str) else value)
        else:
            raise ValueError(f"Expected a number, got {value!r}")
    except InvalidOperation:
        raise ValueError(f"Expected a number, got {value!r}")
    if not result.is_finite():
        raise ValueError(f"Expected a finite number, got {value!r}")
    return result


class Outcome(Enum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


class EntityKind(Enum):
    PLAYER = "player"
    TEAM = "team"


@dataclass(frozen=True)
class EntityRef:
    """Reference to a ranked unit: a player or a team."""
    kind: EntityKind
    id: int

    @classmethod
    def player(cls, player_id: int) -> "EntityRef":
        return cls(EntityKind.PLAYER, player_id)

    @classmethod
    def team(cls, team_id: int) -> "EntityRef":
        return cls(EntityKind.TEAM, team_id)

    def sort_key(self) -> Tuple[str, str]:
        return (self.kind.value, str(self.id))

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class ParticipantRecord:
    """One entity's result within a single game."""
    entity: EntityRef
    outcome: Outcome
    result_value: Decimal = Decimal(0)
    placement: Optional[int] = None  # 1 = first place; None for two-party games

    def __post_init__(self):
        object.__setattr__(self, 'result_value', to_decimal(self.result_value))
        if not isinstance(self.outcome, Outcome):
            object.__setattr__(self, 'outcome', Outcome(self.outcome))


@dataclass(frozen=True)
class GameRecord:
    """A finalized game with all of its participants."""
    game_id: int
    tournament_id: int
    played_at: datetime
    participants: Tuple[ParticipantRecord, ...]
    recorded_by: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'participants', tuple(self.participants))


@dataclass(frozen=True)
class MemberRecord:
    """A player on the tournament roster, including closed memberships."""
    player_id: int
    display_name: str
    removed_at: Optional[datetime] = None

    def was_member_at(self, when: datetime) -> bool:
        return self.removed_at is None or when < self.removed_at


@dataclass(frozen=True)
class TeamRecord:
    team_id: int
    name: str
    member_ids: FrozenSet[int] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, 'member_ids', frozenset(self.member_ids))


@dataclass(frozen=True)
class ResultWindow:
    """Restricts aggregation to games played in [start, end)."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if self.start and self.end and self.end <= self.start:
            raise ValueError("ResultWindow end must be after start")

    def contains(self, when: datetime) -> bool:
        if self.start is not None and when < self.start:
            return False
        if self.end is not None and when >= self.end:
            return False
        return True

    @classmethod
    def for_year(cls, year: int) -> "ResultWindow":
        return cls(datetime(year, 1, 1), datetime(year + 1, 1, 1))

    @classmethod
    def for_month(cls, year: int, month: int) -> "ResultWindow":
        if not 1 <= month <= 12:
            raise ValueError("month must be between 1 and 12")
        if month == 12:
            return cls(datetime(year, 12, 1), datetime(year + 1, 1, 1))
        return cls(datetime(year, month, 1), datetime(year, month + 1, 1))


@dataclass(frozen=True)
class TournamentSnapshot:
    """Everything the engine needs to rank one tournament."""
    tournament_id: int
    players: Tuple[MemberRecord, ...] = ()
    teams: Tuple[TeamRecord, ...] = ()
    games: Tuple[GameRecord, ...] = ()
    formulas: Tuple["FormulaRecord", ...] = ()

    def __post_init__(self):
        for name in ('players', 'teams', 'games', 'formulas'):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    def player_index(self) -> Dict[int, MemberRecord]:
        return {member.player_id: member for member in self.players}

    def team_index(self) -> Dict[int, TeamRecord]:
        return {team.team_id: team for team in self.teams}

    def tournament_games(self) -> Tuple[GameRecord, ...]:
        return tuple(game for game in self.games if game.tournament_id == self.tournament_id)
