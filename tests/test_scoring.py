"""
Tests for FormulaEvaluator and formula configuration parsing.
"""

from decimal import Decimal

import pytest

from standings.config import Config
from standings.data_models.formula import (
    BonusRule, FormulaConfig, FormulaScope, PrimaryStatistic, TeamMode
)
from standings.data_models.leaderboard import EntityStats
from standings.utils.leaderboard_exceptions import DegenerateFormulaError, FormulaValidationError
from standings.utils.scoring import FormulaEvaluator


class TestEvaluate:

    def test_weighted_sum(self):
        stats = EntityStats(games_played=5, wins=2, draws=1, losses=2, result_sum=Decimal("31.5"))
        config = FormulaConfig(win=3, draw=1, loss=-1, result="0.1")
        assert FormulaEvaluator.evaluate(stats, config) == Decimal("8.15")

    def test_unset_weights_count_as_zero(self):
        stats = EntityStats(games_played=1, wins=1, result_sum=Decimal(12), placement_sum=Decimal(5))
        assert FormulaEvaluator.evaluate(stats, FormulaConfig(win=2)) == Decimal(2)

    def test_placement_and_bonus_terms(self):
        stats = EntityStats(games_played=2, wins=1, losses=1, placement_sum=Decimal(16),
                            bonus_sum=Decimal("1.5"))
        config = FormulaConfig(win=1, placement="0.5", placement_points={1: 10, 2: 6})
        assert FormulaEvaluator.evaluate(stats, config) == Decimal("10.5")

    def test_float_weights_are_exact(self):
        stats = EntityStats(games_played=3, wins=3)
        assert FormulaEvaluator.evaluate(stats, FormulaConfig(win=0.1)) == Decimal("0.3")


class TestValidate:

    def test_scenario_formula_is_valid(self):
        config = FormulaConfig(win=3, draw=1, loss=0, result=0)
        assert FormulaEvaluator.validate(config) is config

    def test_all_zero_weights_rejected(self):
        with pytest.raises(DegenerateFormulaError):
            FormulaEvaluator.validate(FormulaConfig(win=0, draw=0, loss=0, result=0, placement=0))

    def test_unconfigured_formula_rejected(self):
        with pytest.raises(DegenerateFormulaError):
            FormulaEvaluator.validate(FormulaConfig())

    @pytest.mark.parametrize("primary", ["games", "points", "wins"])
    def test_bonus_rules_alone_are_degenerate(self, primary):
        rule = BonusRule("r1", "winner_score", "greater_than", 0, winner_points=1)
        config = FormulaConfig(win=0, draw=0, loss=0, primary_statistic=primary, bonus_rules=(rule,))
        with pytest.raises(DegenerateFormulaError, match="All formula weights are zero"):
            FormulaEvaluator.validate(config)

    def test_wins_primary_needs_win_weight(self):
        with pytest.raises(DegenerateFormulaError):
            FormulaEvaluator.validate(FormulaConfig(win=0, draw=1, primary_statistic="wins"))

    def test_points_primary_needs_result_weight(self):
        with pytest.raises(DegenerateFormulaError):
            FormulaEvaluator.validate(FormulaConfig(win=3, primary_statistic=PrimaryStatistic.POINTS))
        config = FormulaConfig(result=1, primary_statistic=PrimaryStatistic.POINTS)
        assert FormulaEvaluator.validate(config) is config

    def test_placement_table_without_weight(self):
        with pytest.raises(DegenerateFormulaError):
            FormulaEvaluator.validate(FormulaConfig(win=3, placement_points={1: 10}))

    def test_team_scope_requires_team_mode(self):
        with pytest.raises(FormulaValidationError) as exc_info:
            FormulaEvaluator.validate(FormulaConfig(win=3, scope=FormulaScope.BOTH))
        assert not isinstance(exc_info.value, DegenerateFormulaError)

        config = FormulaConfig(win=3, scope="team", team_mode="members")
        assert FormulaEvaluator.validate(config).team_mode is TeamMode.MEMBERS

    @pytest.mark.parametrize("team_mode", ["members", "combined"])
    def test_distribution_conflicts_with_member_rollups(self, team_mode):
        config = FormulaConfig(win=3, scope="both", team_mode=team_mode, distribute_team_results=True)
        with pytest.raises(FormulaValidationError, match="distribute_team_results"):
            FormulaEvaluator.validate(config)

    def test_distribution_with_direct_team_mode(self):
        config = FormulaConfig(win=3, scope="both", team_mode="direct", distribute_team_results=True)
        assert FormulaEvaluator.validate(config) is config
        individual = FormulaConfig(win=3, team_mode="members", distribute_team_results=True)
        assert FormulaEvaluator.validate(individual) is individual


class TestFormulaParsing:

    def test_missing_outcome_weights_use_configured_defaults(self):
        config = FormulaConfig.from_dict({'result': '0.5'})
        default_win, default_draw, default_loss = Config.get_default_weights()
        assert config.win == Decimal(default_win)
        assert config.draw == Decimal(default_draw)
        assert config.loss == Decimal(default_loss)
        assert config.result == Decimal("0.5")
        assert config.placement is None

    def test_dict_round_trip(self):
        data = {
            'win': '3', 'draw': '1', 'loss': '0', 'result': '0.25', 'placement': '1',
            'placement_points': {'1': '10', '2': '6'},
            'primary_statistic': 'games', 'scope': 'both', 'team_mode': 'combined',
            'bonus_rules': [{
                'id': 'shutout',
                'condition': {'type': 'loser_score', 'operator': 'equals', 'value': '0'},
                'winner_points': '2', 'loser_points': '0', 'description': 'Clean sheet',
            }],
        }
        config = FormulaConfig.from_dict(data)
        assert config.placement_points == {1: Decimal(10), 2: Decimal(6)}
        assert FormulaConfig.from_dict(config.to_dict()) == config

    def test_distribution_flag_defaults_off_and_round_trips(self):
        assert FormulaConfig.from_dict({}).distribute_team_results is False
        config = FormulaConfig.from_dict({'win': 3, 'distribute_team_results': True})
        assert config.distribute_team_results is True
        assert config.to_dict()['distribute_team_results'] is True
        assert FormulaConfig.from_dict(config.to_dict()) == config

    @pytest.mark.parametrize("data", [
        {'win': 'three'},
        {'win': True},
        {'win': 'NaN'},
        {'scope': 'everyone'},
        {'team_mode': 'average'},
        {'primary_statistic': 'elo'},
        {'placement_points': {'0': 5}},
        {'placement_points': {'first': 5}},
        {'placement_points': [10, 6]},
        {'bonus_rules': {'id': 'x'}},
        {'distribute_team_results': 'yes'},
    ])
    def test_malformed_configurations(self, data):
        with pytest.raises(FormulaValidationError):
            FormulaConfig.from_dict(data)

    def test_not_an_object(self):
        with pytest.raises(FormulaValidationError):
            FormulaConfig.from_dict(["win", 3])


class TestBonusRule:

    @pytest.mark.parametrize("operator, value, expected", [
        ("equals", 5, True),
        ("greater_than", 5, False),
        ("less_than", 6, True),
        ("greater_than_or_equal", 5, True),
        ("less_than_or_equal", 4, False),
        ("between", [3, 5], True),
    ])
    def test_operators_on_differential(self, operator, value, expected):
        rule = BonusRule.from_dict({
            'id': 'r', 'condition': {'type': 'score_differential', 'operator': operator, 'value': value},
            'winner_points': 1,
        })
        assert rule.matches(Decimal(10), Decimal(5)) is expected

    def test_condition_types(self):
        def rule(condition_type):
            return BonusRule("r", condition_type, "equals", 7)
        assert rule("winner_score").matches(Decimal(7), Decimal(2))
        assert rule("loser_score").matches(Decimal(9), Decimal(7))
        assert rule("total_score").matches(Decimal(4), Decimal(3))

    def test_between_needs_ordered_pair(self):
        with pytest.raises(FormulaValidationError):
            BonusRule("r", "total_score", "between", [5])
        with pytest.raises(FormulaValidationError):
            BonusRule("r", "total_score", "between", [9, 1])

    def test_unknown_operator_and_type(self):
        with pytest.raises(FormulaValidationError):
            BonusRule("r", "total_score", "roughly", 5)
        with pytest.raises(FormulaValidationError):
            BonusRule("r", "elo_gap", "equals", 5)

    def test_rule_ids_must_be_unique(self):
        rule = BonusRule("dup", "total_score", "equals", 1, winner_points=1)
        with pytest.raises(FormulaValidationError):
            FormulaConfig(win=1, bonus_rules=(rule, rule))
