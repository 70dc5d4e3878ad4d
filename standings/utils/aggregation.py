"""
Result Aggregation for Tournament Leaderboards

Folds the per-game participant records of one tournament snapshot into
cumulative per-entity statistics (games, wins, draws, losses, result sum,
placement points, bonus points).

Key properties:
- Every contribution is an EntityStats and the fold is a plain sum, so the
  result does not depend on game or participant order
- All amounts are Decimals, which keeps the sums exact
- A single malformed game fails the whole aggregation (no partial standings)
"""

from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

from standings.data_models.formula import FormulaConfig, TeamMode
from standings.data_models.leaderboard import EntityStats
from standings.data_models.snapshot import (
    EntityKind, EntityRef, GameRecord, MemberRecord, Outcome,
    ParticipantRecord, ResultWindow, TeamRecord, TournamentSnapshot
)
from standings.utils.leaderboard_exceptions import MalformedGameError
from standings.utils.logger import setup_logger

logger = setup_logger(__name__)


class ResultAggregator:
    """Builds per-entity statistics from a tournament snapshot."""

    @staticmethod
    def select_games(
        snapshot: TournamentSnapshot,
        window: Optional[ResultWindow] = None
    ) -> Tuple[GameRecord, ...]:
        """Games owned by the snapshot's tournament, optionally limited to a window."""
        games = snapshot.tournament_games()
        if window is not None:
            games = tuple(game for game in games if window.contains(game.played_at))
        return games

    @staticmethod
    def validate_game(
        game: GameRecord,
        players: Dict[int, MemberRecord],
        teams: Dict[int, TeamRecord]
    ) -> None:
        """
        Check that a game can be aggregated.

        Raises:
            MalformedGameError: If the game has fewer than two participants,
                repeats an entity, carries an invalid placement, or references
                an entity outside the tournament at game time
        """
        if len(game.participants) < 2:
            raise MalformedGameError(
                game.game_id, f"{len(game.participants)} participant(s), at least 2 required"
            )

        seen = set()
        for participant in game.participants:
            entity = participant.entity
            if entity in seen:
                raise MalformedGameError(game.game_id, f"{entity} is listed more than once")
            seen.add(entity)

            placement = participant.placement
            if placement is not None and (isinstance(placement, bool)
                                          or not isinstance(placement, int)
                                          or placement < 1):
                raise MalformedGameError(game.game_id, f"{entity} has invalid placement {placement!r}")

            if entity.kind is EntityKind.PLAYER:
                member = players.get(entity.id)
                if member is None or not member.was_member_at(game.played_at):
                    raise MalformedGameError(
                        game.game_id, f"{entity} was not a tournament member at game time"
                    )
            elif entity.id not in teams:
                raise MalformedGameError(game.game_id, f"{entity} does not belong to the tournament")

    @staticmethod
    def bonus_awards(game: GameRecord, config: FormulaConfig) -> Dict[EntityRef, Tuple[str, Decimal]]:
        """
        Find the first bonus rule matching a decided two-party game.

        Returns:
            Mapping of entity to (rule id, points) for each side the
            rule awards points to; empty when no rule applies
        """
        if not config.bonus_rules or len(game.participants) != 2:
            return {}

        by_outcome = {p.outcome: p for p in game.participants}
        winner = by_outcome.get(Outcome.WIN)
        loser = by_outcome.get(Outcome.LOSS)
        if winner is None or loser is None:
            return {}

        for rule in config.bonus_rules:
            if rule.matches(winner.result_value, loser.result_value):
                awards = {}
                if rule.winner_points:
                    awards[winner.entity] = (rule.rule_id, rule.winner_points)
                if rule.loser_points:
                    awards[loser.entity] = (rule.rule_id, rule.loser_points)
                return awards
        return {}

    @staticmethod
    def participant_stats(
        participant: ParticipantRecord,
        config: FormulaConfig,
        bonus: Optional[Tuple[str, Decimal]] = None
    ) -> EntityStats:
        """Statistics contributed by one participant row in one game."""
        placement_points = Decimal(0)
        if config.placement_points and participant.placement is not None:
            placement_points = config.placement_points.get(participant.placement, placement_points)

        bonus_sum = Decimal(0)
        bonus_events = ()
        if bonus is not None:
            rule_id, points = bonus
            bonus_sum = points
            bonus_events = ((rule_id, 1),)

        return EntityStats(
            games_played=1,
            wins=1 if participant.outcome is Outcome.WIN else 0,
            draws=1 if participant.outcome is Outcome.DRAW else 0,
            losses=1 if participant.outcome is Outcome.LOSS else 0,
            result_sum=participant.result_value,
            placement_sum=placement_points,
            bonus_sum=bonus_sum,
            bonus_events=bonus_events,
        )

    @staticmethod
    def distribution_targets(
        game: GameRecord,
        team: TeamRecord,
        players: Dict[int, MemberRecord]
    ) -> Tuple[EntityRef, ...]:
        """
        Members credited with a team's row when team results are distributed.

        A member qualifies if they were a tournament member when the game was
        played and are not listed in the same game on their own.
        """
        listed = {participant.entity for participant in game.participants}
        targets = []
        for member_id in sorted(team.member_ids):
            ref = EntityRef.player(member_id)
            member = players.get(member_id)
            if ref in listed or member is None or not member.was_member_at(game.played_at):
                continue
            targets.append(ref)
        return tuple(targets)

    @staticmethod
    def aggregate(
        snapshot: TournamentSnapshot,
        config: FormulaConfig,
        window: Optional[ResultWindow] = None
    ) -> Dict[EntityRef, EntityStats]:
        """
        Fold every participant row of the tournament into per-entity stats.

        Player rows and team rows are kept under their own references; team
        totals are derived separately by team_totals().
        With distribute_team_results set, each team row is also credited to
        the members returned by distribution_targets().

        Raises:
            MalformedGameError: If any considered game is malformed
        """
        games = ResultAggregator.select_games(snapshot, window)
        players = snapshot.player_index()
        teams = snapshot.team_index()

        # Validate everything first so a bad record never yields partial stats
        for game in games:
            ResultAggregator.validate_game(game, players, teams)

        stats: Dict[EntityRef, EntityStats] = {}

        def credit(entity: EntityRef, contribution: EntityStats):
            current = stats.get(entity)
            stats[entity] = contribution if current is None else current + contribution

        for game in games:
            awards = ResultAggregator.bonus_awards(game, config)
            for participant in game.participants:
                contribution = ResultAggregator.participant_stats(
                    participant, config, awards.get(participant.entity)
                )
                credit(participant.entity, contribution)
                if config.distribute_team_results and participant.entity.kind is EntityKind.TEAM:
                    for member in ResultAggregator.distribution_targets(
                        game, teams[participant.entity.id], players
                    ):
                        credit(member, contribution)

        logger.debug(
            f"Aggregated {len(games)} games into {len(stats)} entities "
            f"for tournament {snapshot.tournament_id}"
        )
        return stats

    @staticmethod
    def player_totals(stats: Dict[EntityRef, EntityStats]) -> Dict[EntityRef, EntityStats]:
        return {ref: value for ref, value in stats.items() if ref.kind is EntityKind.PLAYER}

    @staticmethod
    def team_totals(
        stats: Dict[EntityRef, EntityStats],
        teams: Iterable[TeamRecord],
        mode: TeamMode
    ) -> Dict[EntityRef, EntityStats]:
        """
        Derive team statistics according to the formula's team mode.

        DIRECT uses the team's own participant rows, MEMBERS sums the
        individual statistics of the team's current members, COMBINED adds
        both. Teams without games are omitted.
        """
        totals: Dict[EntityRef, EntityStats] = {}
        for team in teams:
            ref = EntityRef.team(team.team_id)
            total = EntityStats()
            if mode in (TeamMode.DIRECT, TeamMode.COMBINED):
                total = total + stats.get(ref, EntityStats())
            if mode in (TeamMode.MEMBERS, TeamMode.COMBINED):
                for member_id in sorted(team.member_ids):
                    total = total + stats.get(EntityRef.player(member_id), EntityStats())
            if total.games_played > 0:
                totals[ref] = total
        return totals
