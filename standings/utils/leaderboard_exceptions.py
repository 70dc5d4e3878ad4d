"""
Custom exceptions for the standings engine with user-friendly error messages.
"""

class LeaderboardException(Exception):
    """Base exception for leaderboard-related errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class MalformedGameError(LeaderboardException):
    """Raised when a game cannot be aggregated; the whole computation fails closed."""
    def __init__(self, game_id, reason: str):
        self.game_id = game_id
        self.reason = reason
        super().__init__(
            f"Game {game_id} is malformed: {reason}",
            f"❌ A recorded game could not be counted ({reason}). Fix or delete it to restore the leaderboard."
        )

class FormulaError(LeaderboardException):
    """Base class for formula selection and validation failures."""

class FormulaValidationError(FormulaError):
    """Raised when a formula configuration is structurally invalid."""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            f"Invalid formula configuration: {reason}",
            f"❌ {reason}"
        )

class DegenerateFormulaError(FormulaValidationError):
    """Raised when a formula cannot produce a meaningful score."""

class NoActiveFormulaError(FormulaError):
    """Raised when a leaderboard is requested without any formula to apply."""
    def __init__(self, tournament_id):
        self.tournament_id = tournament_id
        super().__init__(
            f"Tournament {tournament_id} has no active formula",
            "❌ This tournament has no active scoring formula yet!"
        )

class AmbiguousActiveFormulaError(FormulaError):
    """Raised when more than one formula is marked active for a tournament."""
    def __init__(self, tournament_id, formula_ids):
        self.tournament_id = tournament_id
        self.formula_ids = tuple(formula_ids)
        super().__init__(
            f"Tournament {tournament_id} has {len(self.formula_ids)} active formulas: {list(self.formula_ids)}",
            "❌ More than one scoring formula is active. Activate exactly one."
        )

class FormulaNotFoundError(FormulaError):
    """Raised when an explicitly requested formula does not belong to the tournament."""
    def __init__(self, formula_id, tournament_id=None):
        self.formula_id = formula_id
        self.tournament_id = tournament_id
        super().__init__(
            f"Formula {formula_id} not found for tournament {tournament_id}",
            "❌ That scoring formula does not exist in this tournament!"
        )

class PermissionDeniedError(LeaderboardException):
    """Raised when a membership lacks the capability an operation requires."""
    def __init__(self, player_id, capability: str):
        self.player_id = player_id
        self.capability = capability
        super().__init__(
            f"Player {player_id} lacks capability '{capability}'",
            "❌ You don't have permission to do that in this tournament."
        )

class TournamentNotFoundError(LeaderboardException):
    """Raised when a tournament does not exist."""
    def __init__(self, tournament_id):
        self.tournament_id = tournament_id
        super().__init__(
            f"Tournament {tournament_id} not found",
            "❌ Tournament not found!"
        )

class GameNotFoundError(LeaderboardException):
    """Raised when a game does not exist in the given tournament."""
    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(
            f"Game {game_id} not found",
            "❌ Game not found!"
        )

class MembershipNotFoundError(LeaderboardException):
    """Raised when a player has no open membership in the tournament."""
    def __init__(self, tournament_id, player_id):
        self.tournament_id = tournament_id
        self.player_id = player_id
        super().__init__(
            f"Player {player_id} is not a member of tournament {tournament_id}",
            "❌ That player is not a member of this tournament!"
        )
