"""
Membership service: joining tournaments and managing capability flags.

Removal closes a membership instead of deleting it. The removed_at stamp
keeps the player's earlier games valid while the cleared flags revoke every
capability.
"""

import logging
from typing import Optional

from standings.data_models.membership import MembershipCapabilities
from standings.database.models import Player, TournamentMembership, utcnow
from standings.services.base import BaseService
from standings.utils.leaderboard_exceptions import MembershipNotFoundError
from standings.utils.permissions import PermissionGate

logger = logging.getLogger(__name__)

MANAGE_MEMBERS = "manage_members"


class MembershipService(BaseService):
    """Tournament membership lifecycle and permission administration."""

    async def join_tournament(self, tournament_id: int, player_id: int) -> MembershipCapabilities:
        """
        Add a player to a tournament with no capabilities.

        Joining while already a member returns the existing membership; a
        previously removed player is re-admitted with cleared flags.
        """
        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            if await session.get(Player, player_id) is None:
                raise MembershipNotFoundError(tournament_id, player_id)

            membership = await session.get(TournamentMembership, (tournament_id, player_id))
            if membership is None:
                membership = TournamentMembership(
                    tournament_id=tournament_id,
                    player_id=player_id,
                    is_administrator=False,
                    can_record_results=False,
                    can_manage_formulas=False,
                )
                session.add(membership)
                logger.info(f"Player {player_id} joined tournament {tournament_id}")
            elif membership.removed_at is not None:
                membership.removed_at = None
                membership.joined_at = utcnow()
                logger.info(f"Player {player_id} rejoined tournament {tournament_id}")
            await session.flush()
            return membership.to_capabilities()

    async def set_permissions(
        self,
        tournament_id: int,
        actor_id: int,
        player_id: int,
        is_administrator: Optional[bool] = None,
        can_record_results: Optional[bool] = None,
        can_manage_formulas: Optional[bool] = None
    ) -> MembershipCapabilities:
        """
        Change a member's capability flags. Only administrators may do this.

        Flags passed as None keep their current value.

        Raises:
            PermissionDeniedError: If the actor is not an open administrator
            MembershipNotFoundError: If the target has no open membership
        """
        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            await self.require_capability(
                session, tournament_id, actor_id, MANAGE_MEMBERS, PermissionGate.can_manage_members
            )
            membership = await session.get(TournamentMembership, (tournament_id, player_id))
            if membership is None or membership.removed_at is not None:
                raise MembershipNotFoundError(tournament_id, player_id)

            before = membership.to_capabilities()
            if is_administrator is not None:
                membership.is_administrator = is_administrator
            if can_record_results is not None:
                membership.can_record_results = can_record_results
            if can_manage_formulas is not None:
                membership.can_manage_formulas = can_manage_formulas
            after = membership.to_capabilities()

            self.add_audit_entry(session, tournament_id, actor_id, "permissions_changed", {
                'player_id': player_id,
                'old': _flags(before),
                'new': _flags(after),
            })

        logger.info(f"Player {actor_id} changed permissions of player {player_id} in tournament {tournament_id}")
        return after

    async def remove_member(self, tournament_id: int, actor_id: int, player_id: int) -> MembershipCapabilities:
        """
        Close a membership. Administrators may remove anyone; players may leave.

        Games played before removal keep counting toward the leaderboard.
        """
        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            if actor_id != player_id:
                await self.require_capability(
                    session, tournament_id, actor_id, MANAGE_MEMBERS, PermissionGate.can_manage_members
                )
            membership = await session.get(TournamentMembership, (tournament_id, player_id))
            if membership is None or membership.removed_at is not None:
                raise MembershipNotFoundError(tournament_id, player_id)

            membership.removed_at = utcnow()
            membership.is_administrator = False
            membership.can_record_results = False
            membership.can_manage_formulas = False

            self.add_audit_entry(session, tournament_id, actor_id, "member_removed", {
                'player_id': player_id,
            })
            capabilities = membership.to_capabilities()

        logger.info(f"Player {actor_id} removed player {player_id} from tournament {tournament_id}")
        return capabilities

    async def get_membership(self, tournament_id: int, player_id: int) -> Optional[MembershipCapabilities]:
        async with self.get_session() as session:
            return await self.load_membership(session, tournament_id, player_id)


def _flags(capabilities: MembershipCapabilities) -> dict:
    return {
        'is_administrator': capabilities.is_administrator,
        'can_record_results': capabilities.can_record_results,
        'can_manage_formulas': capabilities.can_manage_formulas,
    }
