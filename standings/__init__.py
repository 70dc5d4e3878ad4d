"""
Tournament standings engine.

Turns recorded game results into deterministic, tie-broken player and team
leaderboards driven by per-tournament scoring formulas.
"""

from standings.operations import compute_leaderboard, validate_formula

__all__ = ['compute_leaderboard', 'validate_formula']
