"""
Shared ranking utilities for individual and team leaderboards.

Orders scored entities into a strict total order and assigns standard
competition ranks ("1224" ranking): entities tied on every key share a rank
and the next distinct entity skips ahead by the size of the tie.

Ordering keys, in priority order:
1. score, descending
2. wins, descending
3. result sum, descending
4. games played, ascending
5. display name, ascending, case-insensitive
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from standings.data_models.leaderboard import EntityStats, LeaderboardEntry
from standings.data_models.snapshot import EntityRef


@dataclass(frozen=True)
class ScoredEntity:
    """An entity with its statistics and evaluated score, ready to rank."""
    entity: EntityRef
    display_name: str
    stats: EntityStats
    score: Decimal
    member_count: Optional[int] = None


class RankingUtility:
    """Tie-break resolution and rank assignment."""

    @staticmethod
    def tie_break_key(candidate: ScoredEntity) -> Tuple:
        """Full ranking key; equal keys mean the entities share a rank."""
        return (
            -candidate.score,
            -candidate.stats.wins,
            -candidate.stats.result_sum,
            candidate.stats.games_played,
            candidate.display_name.casefold(),
        )

    @staticmethod
    def order(candidates: Iterable[ScoredEntity]) -> List[ScoredEntity]:
        """Sort candidates; fully tied entities fall back to entity reference order."""
        return sorted(
            candidates,
            key=lambda c: (RankingUtility.tie_break_key(c), c.entity.sort_key())
        )

    @staticmethod
    def assign_ranks(ordered: List[ScoredEntity]) -> List[LeaderboardEntry]:
        """Attach competition ranks to an already ordered list."""
        entries: List[LeaderboardEntry] = []
        previous_key = None
        rank = 0
        for position, candidate in enumerate(ordered, start=1):
            key = RankingUtility.tie_break_key(candidate)
            if key != previous_key:
                rank = position
                previous_key = key
            entries.append(LeaderboardEntry(
                rank=rank,
                entity=candidate.entity,
                display_name=candidate.display_name,
                score=candidate.score,
                stats=candidate.stats,
                member_count=candidate.member_count,
            ))
        return entries

    @staticmethod
    def rank(candidates: Iterable[ScoredEntity]) -> List[LeaderboardEntry]:
        return RankingUtility.assign_ranks(RankingUtility.order(candidates))

    @staticmethod
    def validate_ranks(entries: List[LeaderboardEntry]) -> bool:
        """Check that ranks follow standard competition ranking."""
        for position, entry in enumerate(entries, start=1):
            if position == 1:
                if entry.rank != 1:
                    return False
            elif entry.rank != entries[position - 2].rank and entry.rank != position:
                return False
        return True
