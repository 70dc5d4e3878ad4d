"""
Leaderboard data models

Provides immutable data transfer objects for aggregated statistics and the
ranked leaderboard output.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from standings.constants import LeaderboardConstants
from standings.data_models.snapshot import EntityRef


@dataclass(frozen=True)
class EntityStats:
    """Cumulative statistics for one entity. Instances combine with +."""
    games_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    result_sum: Decimal = Decimal(0)
    placement_sum: Decimal = Decimal(0)
    bonus_sum: Decimal = Decimal(0)
    bonus_events: Tuple[Tuple[str, int], ...] = ()  # (rule id, hits), sorted by rule id

    def __add__(self, other: "EntityStats") -> "EntityStats":
        if not isinstance(other, EntityStats):
            return NotImplemented
        hits: Dict[str, int] = dict(self.bonus_events)
        for rule_id, count in other.bonus_events:
            hits[rule_id] = hits.get(rule_id, 0) + count
        return EntityStats(
            games_played=self.games_played + other.games_played,
            wins=self.wins + other.wins,
            draws=self.draws + other.draws,
            losses=self.losses + other.losses,
            result_sum=self.result_sum + other.result_sum,
            placement_sum=self.placement_sum + other.placement_sum,
            bonus_sum=self.bonus_sum + other.bonus_sum,
            bonus_events=tuple(sorted(hits.items())),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'games_played': self.games_played,
            'wins': self.wins,
            'draws': self.draws,
            'losses': self.losses,
            'result_sum': str(self.result_sum),
            'placement_sum': str(self.placement_sum),
            'bonus_sum': str(self.bonus_sum),
            'bonus_events': dict(self.bonus_events),
        }


@dataclass(frozen=True)
class Movement:
    """Position change versus the previous captured snapshot."""
    direction: str
    positions: int


@dataclass(frozen=True)
class LeaderboardEntry:
    """Single leaderboard row."""
    rank: int
    entity: EntityRef
    display_name: str
    score: Decimal
    stats: EntityStats
    member_count: Optional[int] = None
    movement: Optional[Movement] = None

    @property
    def games_played(self) -> int:
        return self.stats.games_played

    @property
    def wins(self) -> int:
        return self.stats.wins

    @property
    def draws(self) -> int:
        return self.stats.draws

    @property
    def losses(self) -> int:
        return self.stats.losses

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'rank': self.rank,
            'entity': str(self.entity),
            'display_name': self.display_name,
            'score': str(self.score),
            'stats': self.stats.to_dict(),
            'member_count': self.member_count,
        }
        if self.movement is not None:
            data['movement'] = {
                'direction': self.movement.direction,
                'positions': self.movement.positions,
            }
        return data


@dataclass(frozen=True)
class Leaderboard:
    """Individual and team rankings computed with one formula."""
    tournament_id: int
    formula_id: int
    individual: Tuple[LeaderboardEntry, ...] = ()
    team: Tuple[LeaderboardEntry, ...] = ()

    def entries_for(self, view: str) -> Tuple[LeaderboardEntry, ...]:
        if view == LeaderboardConstants.VIEW_INDIVIDUAL:
            return self.individual
        if view == LeaderboardConstants.VIEW_TEAM:
            return self.team
        raise ValueError(f"Unknown leaderboard view: {view}")

    @property
    def is_empty(self) -> bool:
        return not self.individual and not self.team

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tournament_id': self.tournament_id,
            'formula_id': self.formula_id,
            'individual': [entry.to_dict() for entry in self.individual],
            'team': [entry.to_dict() for entry in self.team],
        }
