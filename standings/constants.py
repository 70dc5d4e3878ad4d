"""
Engine-wide constants for tournament standings.

This module contains the fixed vocabulary used by formula configurations,
leaderboard views and movement tracking.
"""

class FormulaConstants:
    """Constants related to formula configuration and bonus rules."""
    
    # Values a bonus rule condition can be evaluated against
    CONDITION_TYPES = ("score_differential", "winner_score", "loser_score", "total_score")
    
    # Comparison operators accepted by bonus rule conditions
    OPERATORS = (
        "equals",
        "greater_than",
        "less_than",
        "greater_than_or_equal",
        "less_than_or_equal",
        "between",
    )
    
    # Upper bounds to keep stored configurations reasonable
    MAX_BONUS_RULES = 25
    MAX_PLACEMENT = 128

    # Significant digits for score arithmetic, wider than the 28-digit default
    DECIMAL_PRECISION = 50

class LeaderboardConstants:
    """Constants for leaderboard views and snapshots."""
    
    VIEW_INDIVIDUAL = "individual"
    VIEW_TEAM = "team"
    VIEWS = (VIEW_INDIVIDUAL, VIEW_TEAM)

class MovementConstants:
    """Direction labels for position changes between snapshots."""
    
    UP = "up"
    DOWN = "down"
    SAME = "same"
