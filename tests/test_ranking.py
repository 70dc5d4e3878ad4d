"""
Tests for RankingUtility tie-break resolution and competition ranks.
"""

import random
from dataclasses import replace
from decimal import Decimal

from standings.data_models.leaderboard import EntityStats
from standings.data_models.snapshot import EntityRef
from standings.utils.ranking import RankingUtility, ScoredEntity


def scored(entity_id, name, score, wins=0, result_sum=0, games_played=1):
    return ScoredEntity(
        entity=EntityRef.player(entity_id),
        display_name=name,
        stats=EntityStats(games_played=games_played, wins=wins, result_sum=Decimal(result_sum)),
        score=Decimal(score),
    )


class TestTieBreaks:

    def test_score_orders_first(self):
        entries = RankingUtility.rank([scored(1, "a", 1), scored(2, "b", 5), scored(3, "c", 3)])
        assert [e.entity.id for e in entries] == [2, 3, 1]
        assert [e.rank for e in entries] == [1, 2, 3]

    def test_wins_break_score_ties(self):
        entries = RankingUtility.rank([scored(1, "a", 6, wins=1), scored(2, "b", 6, wins=2)])
        assert [e.entity.id for e in entries] == [2, 1]

    def test_result_sum_breaks_win_ties(self):
        entries = RankingUtility.rank([
            scored(1, "a", 6, wins=2, result_sum=10),
            scored(2, "b", 6, wins=2, result_sum=12),
        ])
        assert [e.entity.id for e in entries] == [2, 1]

    def test_fewer_games_ranks_higher(self):
        entries = RankingUtility.rank([
            scored(1, "a", 6, wins=2, games_played=4),
            scored(2, "b", 6, wins=2, games_played=3),
        ])
        assert [e.entity.id for e in entries] == [2, 1]
        assert [e.rank for e in entries] == [1, 2]

    def test_display_name_is_case_insensitive(self):
        entries = RankingUtility.rank([scored(1, "bravo", 6), scored(2, "Alpha", 6)])
        assert [e.display_name for e in entries] == ["Alpha", "bravo"]
        assert [e.rank for e in entries] == [1, 2]


class TestCompetitionRanks:

    def test_full_ties_share_rank_and_skip(self):
        entries = RankingUtility.rank([
            scored(1, "Sam", 9),
            scored(2, "sam", 9),
            scored(3, "Zed", 4),
        ])
        assert [e.rank for e in entries] == [1, 1, 3]
        # Identical keys fall back to entity reference order
        assert [e.entity.id for e in entries] == [1, 2, 3]
        assert RankingUtility.validate_ranks(entries)

    def test_ranks_are_contiguous_from_one(self):
        rng = random.Random(7)
        candidates = [
            scored(i, f"player{i}", rng.randint(0, 5), wins=rng.randint(0, 2))
            for i in range(1, 40)
        ]
        entries = RankingUtility.rank(candidates)
        assert entries[0].rank == 1
        assert RankingUtility.validate_ranks(entries)
        for previous, current in zip(entries, entries[1:]):
            assert current.rank >= previous.rank

    def test_input_order_is_irrelevant(self):
        candidates = [scored(i, f"p{i % 3}", i % 4, wins=i % 2) for i in range(1, 13)]
        expected = RankingUtility.rank(candidates)
        rng = random.Random(42)
        for _ in range(25):
            shuffled = list(candidates)
            rng.shuffle(shuffled)
            assert RankingUtility.rank(shuffled) == expected

    def test_validate_ranks_detects_gaps(self):
        entries = RankingUtility.rank([scored(1, "a", 3), scored(2, "b", 2)])
        broken = [entries[0], replace(entries[1], rank=3)]
        assert not RankingUtility.validate_ranks(broken)

    def test_empty(self):
        assert RankingUtility.rank([]) == []
        assert RankingUtility.validate_ranks([])
