"""
Formula data models: the declarative scoring configuration organizers edit.

A FormulaConfig is parsed from the JSON stored with each formula and is
immutable afterwards. Structural problems (unknown enum values, non-numeric
weights, malformed bonus rules) are rejected while parsing; semantic checks
such as degenerate weights live in the formula evaluator.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from standings.config import Config
from standings.constants import FormulaConstants
from standings.data_models.snapshot import to_decimal
from standings.utils.leaderboard_exceptions import FormulaValidationError


class PrimaryStatistic(Enum):
    GAMES = "games"
    POINTS = "points"
    WINS = "wins"


class FormulaScope(Enum):
    INDIVIDUAL = "individual"
    TEAM = "team"
    BOTH = "both"

    @property
    def includes_individual(self) -> bool:
        return self is not FormulaScope.TEAM

    @property
    def includes_team(self) -> bool:
        return self is not FormulaScope.INDIVIDUAL


class TeamMode(Enum):
    DIRECT = "direct"        # team-vs-team participant rows only
    MEMBERS = "members"      # sum of current members' individual stats
    COMBINED = "combined"    # both of the above


def _parse_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise FormulaValidationError(f"{field_name} must be one of: {allowed} (got {value!r})")


def _parse_number(value, field_name: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError:
        raise FormulaValidationError(f"{field_name} must be a number (got {value!r})")


@dataclass(frozen=True)
class BonusRule:
    """Extra points for a decided two-party game whose scores match a condition."""
    rule_id: str
    condition_type: str
    operator: str
    value: Tuple[Decimal, ...]
    winner_points: Decimal = Decimal(0)
    loser_points: Decimal = Decimal(0)
    description: Optional[str] = None

    def __post_init__(self):
        if not self.rule_id:
            raise FormulaValidationError("Bonus rules need an id")
        if self.condition_type not in FormulaConstants.CONDITION_TYPES:
            raise FormulaValidationError(
                f"Bonus rule '{self.rule_id}' has unknown condition type {self.condition_type!r}"
            )
        if self.operator not in FormulaConstants.OPERATORS:
            raise FormulaValidationError(
                f"Bonus rule '{self.rule_id}' has unknown operator {self.operator!r}"
            )
        raw = self.value if isinstance(self.value, (list, tuple)) else (self.value,)
        value = tuple(_parse_number(v, f"Bonus rule '{self.rule_id}' value") for v in raw)
        expected = 2 if self.operator == "between" else 1
        if len(value) != expected:
            raise FormulaValidationError(
                f"Bonus rule '{self.rule_id}' operator '{self.operator}' needs {expected} value(s)"
            )
        if expected == 2 and value[0] > value[1]:
            raise FormulaValidationError(f"Bonus rule '{self.rule_id}' range is reversed")
        object.__setattr__(self, 'value', value)
        object.__setattr__(self, 'winner_points', _parse_number(self.winner_points, 'winner_points'))
        object.__setattr__(self, 'loser_points', _parse_number(self.loser_points, 'loser_points'))

    def matches(self, winner_score: Decimal, loser_score: Decimal) -> bool:
        """Check the rule condition against one decided game's scores."""
        if self.condition_type == "winner_score":
            subject = winner_score
        elif self.condition_type == "loser_score":
            subject = loser_score
        elif self.condition_type == "total_score":
            subject = winner_score + loser_score
        else:
            subject = winner_score - loser_score

        target = self.value[0]
        if self.operator == "equals":
            return subject == target
        if self.operator == "greater_than":
            return subject > target
        if self.operator == "less_than":
            return subject < target
        if self.operator == "greater_than_or_equal":
            return subject >= target
        if self.operator == "less_than_or_equal":
            return subject <= target
        low, high = self.value
        return low <= subject <= high

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BonusRule":
        if not isinstance(data, dict):
            raise FormulaValidationError("Each bonus rule must be an object")
        condition = data.get('condition') or {}
        return cls(
            rule_id=str(data.get('id') or ''),
            condition_type=condition.get('type', 'score_differential'),
            operator=condition.get('operator', ''),
            value=condition.get('value'),
            winner_points=data.get('winner_points', 0),
            loser_points=data.get('loser_points', 0),
            description=data.get('description'),
        )

    def to_dict(self) -> Dict[str, Any]:
        value = [str(v) for v in self.value]
        return {
            'id': self.rule_id,
            'condition': {
                'type': self.condition_type,
                'operator': self.operator,
                'value': value if self.operator == "between" else value[0],
            },
            'winner_points': str(self.winner_points),
            'loser_points': str(self.loser_points),
            'description': self.description,
        }


@dataclass(frozen=True)
class FormulaConfig:
    """Weights and options of one scoring formula. None means "not configured"."""
    win: Optional[Decimal] = None
    draw: Optional[Decimal] = None
    loss: Optional[Decimal] = None
    result: Optional[Decimal] = None
    placement: Optional[Decimal] = None
    placement_points: Dict[int, Decimal] = field(default_factory=dict)
    primary_statistic: PrimaryStatistic = PrimaryStatistic.GAMES
    scope: FormulaScope = FormulaScope.INDIVIDUAL
    team_mode: Optional[TeamMode] = None
    bonus_rules: Tuple[BonusRule, ...] = ()
    distribute_team_results: bool = False  # credit team rows to members individually

    def __post_init__(self):
        for name in ('win', 'draw', 'loss', 'result', 'placement'):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _parse_number(value, f"{name} weight"))

        table = {}
        for key, points in dict(self.placement_points).items():
            try:
                position = int(key)
            except (TypeError, ValueError):
                raise FormulaValidationError(f"Placement {key!r} must be an integer")
            if not 1 <= position <= FormulaConstants.MAX_PLACEMENT:
                raise FormulaValidationError(
                    f"Placement {position} must be between 1 and {FormulaConstants.MAX_PLACEMENT}"
                )
            table[position] = _parse_number(points, f"placement {position} points")
        object.__setattr__(self, 'placement_points', dict(sorted(table.items())))

        object.__setattr__(self, 'primary_statistic',
                           _parse_enum(PrimaryStatistic, self.primary_statistic, 'primary_statistic'))
        object.__setattr__(self, 'scope', _parse_enum(FormulaScope, self.scope, 'scope'))
        if not isinstance(self.distribute_team_results, bool):
            raise FormulaValidationError(
                f"distribute_team_results must be true or false (got {self.distribute_team_results!r})"
            )
        if self.team_mode is not None:
            object.__setattr__(self, 'team_mode', _parse_enum(TeamMode, self.team_mode, 'team_mode'))

        rules = tuple(self.bonus_rules)
        if len(rules) > FormulaConstants.MAX_BONUS_RULES:
            raise FormulaValidationError(
                f"At most {FormulaConstants.MAX_BONUS_RULES} bonus rules are allowed"
            )
        rule_ids = [rule.rule_id for rule in rules]
        if len(set(rule_ids)) != len(rule_ids):
            raise FormulaValidationError("Bonus rule ids must be unique")
        object.__setattr__(self, 'bonus_rules', rules)

    def weights(self) -> Iterator[Tuple[str, Optional[Decimal]]]:
        """Yield (name, weight) in the fixed summation order."""
        yield 'win', self.win
        yield 'draw', self.draw
        yield 'loss', self.loss
        yield 'result', self.result
        yield 'placement', self.placement

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormulaConfig":
        """
        Parse a stored formula configuration.

        Outcome weights missing from the stored config fall back to the
        configured defaults (Config.DEFAULT_*_WEIGHT). The result and
        placement weights have no default.

        Raises:
            FormulaValidationError: If the configuration is structurally invalid
        """
        if not isinstance(data, dict):
            raise FormulaValidationError("Formula configuration must be an object")

        default_win, default_draw, default_loss = Config.get_default_weights()
        rules = data.get('bonus_rules') or []
        if not isinstance(rules, list):
            raise FormulaValidationError("bonus_rules must be a list")
        placement_points = data.get('placement_points') or {}
        if not isinstance(placement_points, dict):
            raise FormulaValidationError("placement_points must be an object")

        return cls(
            win=data.get('win', default_win),
            draw=data.get('draw', default_draw),
            loss=data.get('loss', default_loss),
            result=data.get('result'),
            placement=data.get('placement'),
            placement_points=placement_points,
            primary_statistic=data.get('primary_statistic', PrimaryStatistic.GAMES.value),
            scope=data.get('scope', FormulaScope.INDIVIDUAL.value),
            team_mode=data.get('team_mode'),
            bonus_rules=tuple(BonusRule.from_dict(rule) for rule in rules),
            distribute_team_results=data.get('distribute_team_results', False),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            name: (str(weight) if weight is not None else None)
            for name, weight in self.weights()
        }
        data.update({
            'placement_points': {str(k): str(v) for k, v in self.placement_points.items()},
            'primary_statistic': self.primary_statistic.value,
            'scope': self.scope.value,
            'team_mode': self.team_mode.value if self.team_mode else None,
            'bonus_rules': [rule.to_dict() for rule in self.bonus_rules],
            'distribute_team_results': self.distribute_team_results,
        })
        return data


@dataclass(frozen=True)
class FormulaRecord:
    """A stored formula as seen in a snapshot."""
    formula_id: int
    tournament_id: int
    name: str
    config: FormulaConfig
    is_active: bool = False
