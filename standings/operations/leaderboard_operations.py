"""
Leaderboard Operations Module

Assembles ranked leaderboards from a tournament snapshot. This is the only
entry point the service layer needs:

- compute_leaderboard(): aggregate -> evaluate -> rank, for the individual
  and/or team view selected by the formula's scope
- validate_formula(): parse and check a formula configuration before it can
  be stored or activated
- apply_movement(): annotate entries with their position change against a
  previously captured snapshot

All functions are pure: same snapshot in, equal leaderboard out. Nothing here
touches storage, logs errors or retries; failures are raised as typed
exceptions for the caller.
"""

from dataclasses import replace
from decimal import localcontext
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from standings.constants import FormulaConstants, MovementConstants
from standings.data_models.formula import FormulaConfig, FormulaRecord
from standings.data_models.leaderboard import EntityStats, Leaderboard, LeaderboardEntry, Movement
from standings.data_models.snapshot import EntityRef, ResultWindow, TournamentSnapshot
from standings.utils.aggregation import ResultAggregator
from standings.utils.leaderboard_exceptions import (
    AmbiguousActiveFormulaError, FormulaNotFoundError, NoActiveFormulaError
)
from standings.utils.logger import setup_logger
from standings.utils.ranking import RankingUtility, ScoredEntity
from standings.utils.scoring import FormulaEvaluator

logger = setup_logger(__name__)


class LeaderboardOperations:
    """Pure leaderboard assembly over tournament snapshots."""

    @staticmethod
    def select_formula(snapshot: TournamentSnapshot, formula_id: Optional[int] = None) -> FormulaRecord:
        """
        Pick the formula to rank with.

        An explicit formula_id wins; otherwise the tournament's single active
        formula is used. There is no implicit fallback formula.

        Raises:
            FormulaNotFoundError: If formula_id is not a formula of this tournament
            NoActiveFormulaError: If no formula_id was given and none is active
            AmbiguousActiveFormulaError: If more than one formula is active
        """
        formulas = [f for f in snapshot.formulas if f.tournament_id == snapshot.tournament_id]

        if formula_id is not None:
            for formula in formulas:
                if formula.formula_id == formula_id:
                    return formula
            raise FormulaNotFoundError(formula_id, snapshot.tournament_id)

        active = [f for f in formulas if f.is_active]
        if not active:
            raise NoActiveFormulaError(snapshot.tournament_id)
        if len(active) > 1:
            raise AmbiguousActiveFormulaError(
                snapshot.tournament_id, sorted(f.formula_id for f in active)
            )
        return active[0]

    @staticmethod
    def _score(
        totals: Dict[EntityRef, EntityStats],
        names: Mapping[EntityRef, str],
        config: FormulaConfig,
        member_counts: Optional[Mapping[EntityRef, int]] = None
    ) -> List[ScoredEntity]:
        return [
            ScoredEntity(
                entity=ref,
                display_name=names[ref],
                stats=stats,
                score=FormulaEvaluator.evaluate(stats, config),
                member_count=member_counts.get(ref) if member_counts is not None else None,
            )
            for ref, stats in totals.items()
            if stats.games_played > 0
        ]

    @staticmethod
    def compute_leaderboard(
        snapshot: TournamentSnapshot,
        formula_id: Optional[int] = None,
        window: Optional[ResultWindow] = None
    ) -> Leaderboard:
        """
        Compute the ranked leaderboard(s) for a tournament snapshot.

        Args:
            snapshot: Consistent point-in-time view of the tournament
            formula_id: Formula to use; defaults to the active formula
            window: Optional [start, end) restriction on game timestamps

        Sums and scores are computed with FormulaConstants.DECIMAL_PRECISION
        significant digits.

        Returns:
            Leaderboard with individual and team entries; the view the
            formula's scope excludes is empty, and a tournament without
            qualifying games yields empty lists

        Raises:
            FormulaError: If no usable formula can be selected or it is invalid
            MalformedGameError: If any considered game is malformed
        """
        formula = LeaderboardOperations.select_formula(snapshot, formula_id)
        config = FormulaEvaluator.validate(formula.config)

        with localcontext() as ctx:
            ctx.prec = FormulaConstants.DECIMAL_PRECISION
            stats = ResultAggregator.aggregate(snapshot, config, window)

            individual: List[LeaderboardEntry] = []
            if config.scope.includes_individual:
                names = {
                    EntityRef.player(member.player_id): member.display_name
                    for member in snapshot.players
                }
                totals = ResultAggregator.player_totals(stats)
                individual = RankingUtility.rank(LeaderboardOperations._score(totals, names, config))

            team: List[LeaderboardEntry] = []
            if config.scope.includes_team:
                names = {EntityRef.team(t.team_id): t.name for t in snapshot.teams}
                member_counts = {EntityRef.team(t.team_id): len(t.member_ids) for t in snapshot.teams}
                totals = ResultAggregator.team_totals(stats, snapshot.teams, config.team_mode)
                team = RankingUtility.rank(
                    LeaderboardOperations._score(totals, names, config, member_counts)
                )

        logger.debug(
            f"Leaderboard for tournament {snapshot.tournament_id} with formula "
            f"{formula.formula_id}: {len(individual)} individual, {len(team)} team entries"
        )
        return Leaderboard(
            tournament_id=snapshot.tournament_id,
            formula_id=formula.formula_id,
            individual=tuple(individual),
            team=tuple(team),
        )

    @staticmethod
    def validate_formula(config: Union[FormulaConfig, Dict[str, Any]]) -> FormulaConfig:
        """
        Validate a formula configuration (parsed or raw JSON object).

        Returns:
            The parsed, validated configuration

        Raises:
            FormulaValidationError: If the configuration is malformed
            DegenerateFormulaError: If the configuration cannot rank anything
        """
        if not isinstance(config, FormulaConfig):
            config = FormulaConfig.from_dict(config)
        return FormulaEvaluator.validate(config)

    @staticmethod
    def apply_movement(
        entries: Sequence[LeaderboardEntry],
        previous_ranks: Mapping[EntityRef, int]
    ) -> List[LeaderboardEntry]:
        """
        Annotate entries with their movement since a previous snapshot.

        A lower rank number is better, so moving from 3 to 1 is "up" by 2.
        Entities missing from the previous snapshot get no movement.
        """
        annotated = []
        for entry in entries:
            previous = previous_ranks.get(entry.entity)
            if previous is None:
                annotated.append(entry)
                continue
            change = previous - entry.rank
            if change > 0:
                movement = Movement(MovementConstants.UP, change)
            elif change < 0:
                movement = Movement(MovementConstants.DOWN, -change)
            else:
                movement = Movement(MovementConstants.SAME, 0)
            annotated.append(replace(entry, movement=movement))
        return annotated


compute_leaderboard = LeaderboardOperations.compute_leaderboard
validate_formula = LeaderboardOperations.validate_formula
apply_movement = LeaderboardOperations.apply_movement
