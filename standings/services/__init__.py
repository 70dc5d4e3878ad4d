"""
Services package for the standings engine.

Storage adapters around the pure leaderboard operations: snapshot loading,
permission checks and persistence.
"""

from .base import BaseService
from .formula_service import FormulaService
from .leaderboard import LeaderboardService
from .membership import MembershipService
from .result_service import ResultService

__all__ = ['BaseService', 'FormulaService', 'LeaderboardService', 'MembershipService', 'ResultService']
