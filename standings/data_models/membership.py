"""
Membership data model consumed by the permission gate.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class MembershipCapabilities:
    """The explicit three-flag capability set of one tournament membership."""
    tournament_id: int
    player_id: int
    is_administrator: bool
    can_record_results: bool
    can_manage_formulas: bool
    removed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.removed_at is None
