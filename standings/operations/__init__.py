"""
Operations Layer

This package provides the pure computation core of the standings engine.
Operations compose the aggregation, scoring and ranking utilities into the
workflows the service layer calls, without touching storage.

Architecture:
- Database layer: ORM models and session management
- Services layer: snapshot loading, permission checks, persistence
- Operations layer: leaderboard assembly and formula validation

Each operations module focuses on a specific domain:
- LeaderboardOperations: leaderboard computation, formula validation, movement
"""

from .leaderboard_operations import (
    LeaderboardOperations, apply_movement, compute_leaderboard, validate_formula
)

__all__ = ['LeaderboardOperations', 'apply_movement', 'compute_leaderboard', 'validate_formula']
