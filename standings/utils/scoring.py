"""
Formula Evaluation for Leaderboard Scores

Turns one entity's cumulative statistics into a single score using the
tournament's formula:

    score = wins*win + draws*draw + losses*loss + result_sum*result
            + placement_sum*placement + bonus_sum

Terms are added in exactly that order and all arithmetic is Decimal, so the
same statistics and formula always give the same score.
"""

from decimal import Decimal
from typing import Optional

from standings.data_models.formula import FormulaConfig, PrimaryStatistic, TeamMode
from standings.data_models.leaderboard import EntityStats
from standings.utils.leaderboard_exceptions import DegenerateFormulaError, FormulaValidationError

ZERO = Decimal(0)


def _weight(value: Optional[Decimal]) -> Decimal:
    return ZERO if value is None else value


class FormulaEvaluator:
    """Pure scoring and validation of formula configurations."""

    @staticmethod
    def evaluate(stats: EntityStats, config: FormulaConfig) -> Decimal:
        """
        Calculate the score for one entity.

        Args:
            stats: Cumulative statistics of the entity
            config: Formula configuration; unset weights count as zero

        Returns:
            The entity's score
        """
        score = ZERO
        score += stats.wins * _weight(config.win)
        score += stats.draws * _weight(config.draw)
        score += stats.losses * _weight(config.loss)
        score += stats.result_sum * _weight(config.result)
        score += stats.placement_sum * _weight(config.placement)
        score += stats.bonus_sum
        return score

    @staticmethod
    def validate(config: FormulaConfig) -> FormulaConfig:
        """
        Reject formulas that cannot rank anything meaningfully.

        Args:
            config: Parsed formula configuration

        Returns:
            The same configuration when it is valid

        Raises:
            DegenerateFormulaError: If every weight is zero, or a weight the
                formula relies on is missing or zero
            FormulaValidationError: If a team view has no explicit team mode,
                or team results are distributed into a member-based team view
        """
        if config.scope.includes_team and config.team_mode is None:
            raise FormulaValidationError(
                "Team leaderboards need an explicit team_mode (direct, members or combined)"
            )
        if (config.distribute_team_results and config.scope.includes_team
                and config.team_mode in (TeamMode.MEMBERS, TeamMode.COMBINED)):
            raise FormulaValidationError(
                "distribute_team_results cannot be combined with a members or combined team_mode"
            )

        if config.placement_points and config.placement is None:
            raise DegenerateFormulaError("A placement table is configured but the placement weight is missing")

        # Bonus rules alone never make a formula usable
        if all(_weight(weight) == ZERO for _, weight in config.weights()):
            raise DegenerateFormulaError("All formula weights are zero")

        primary = config.primary_statistic
        if primary is PrimaryStatistic.WINS and _weight(config.win) == ZERO:
            raise DegenerateFormulaError("A wins-based formula needs a non-zero win weight")
        if primary is PrimaryStatistic.POINTS and _weight(config.result) == ZERO:
            raise DegenerateFormulaError("A points-based formula needs a non-zero result weight")
        if primary is PrimaryStatistic.GAMES and all(
            _weight(weight) == ZERO for weight in (config.win, config.draw, config.loss)
        ):
            raise DegenerateFormulaError("A games-based formula needs at least one non-zero outcome weight")

        return config
