"""
Permission gate for tournament mutations.

Pure predicates over a membership's capability flags. Looking the membership
up is the caller's job; a missing or closed membership grants nothing.
"""

from typing import Optional

from standings.data_models.membership import MembershipCapabilities


class PermissionGate:
    """Stateless authorization checks consulted before accepting mutations."""

    @staticmethod
    def can_manage_formula(membership: Optional[MembershipCapabilities]) -> bool:
        if membership is None or not membership.is_open:
            return False
        return membership.is_administrator or membership.can_manage_formulas

    @staticmethod
    def can_record_result(membership: Optional[MembershipCapabilities]) -> bool:
        if membership is None or not membership.is_open:
            return False
        return membership.is_administrator or membership.can_record_results

    @staticmethod
    def can_manage_members(membership: Optional[MembershipCapabilities]) -> bool:
        if membership is None or not membership.is_open:
            return False
        return membership.is_administrator


can_manage_formula = PermissionGate.can_manage_formula
can_record_result = PermissionGate.can_record_result
