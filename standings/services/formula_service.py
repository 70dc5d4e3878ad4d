"""
Formula service: storage and activation of per-tournament scoring formulas.

Every mutation is gated by PermissionGate.can_manage_formula, validated
before anything is written and recorded in the audit log. Activation is a
single transaction, so a rejected formula never disturbs the formula that is
currently active.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from standings.data_models.formula import FormulaConfig, FormulaRecord
from standings.database.models import Formula
from standings.operations.leaderboard_operations import LeaderboardOperations
from standings.services.base import BaseService
from standings.services.leaderboard import formula_to_record
from standings.utils.leaderboard_exceptions import FormulaNotFoundError, FormulaValidationError
from standings.utils.permissions import PermissionGate

logger = logging.getLogger(__name__)

MANAGE_FORMULAS = "manage_formulas"


class FormulaService(BaseService):
    """Create, edit, activate and list scoring formulas."""

    async def _get_formula(self, session: AsyncSession, tournament_id: int, formula_id: int) -> Formula:
        formula = await session.get(Formula, formula_id)
        if formula is None or formula.tournament_id != tournament_id:
            raise FormulaNotFoundError(formula_id, tournament_id)
        return formula

    async def _deactivate_others(self, session: AsyncSession, tournament_id: int, formula_id: int):
        await session.execute(
            update(Formula)
            .where(Formula.tournament_id == tournament_id, Formula.id != formula_id)
            .values(is_active=False)
        )

    async def create_formula(
        self,
        tournament_id: int,
        actor_id: int,
        name: str,
        config: Union[FormulaConfig, Dict[str, Any]],
        activate: bool = False
    ) -> FormulaRecord:
        """
        Store a new formula, optionally making it the active one.

        Raises:
            TournamentNotFoundError: If the tournament does not exist
            PermissionDeniedError: If the actor may not manage formulas
            FormulaValidationError: If the configuration is invalid or degenerate
        """
        if not name or not name.strip():
            raise FormulaValidationError("Formula name cannot be empty")

        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            await self.require_capability(
                session, tournament_id, actor_id, MANAGE_FORMULAS, PermissionGate.can_manage_formula
            )
            validated = LeaderboardOperations.validate_formula(config)

            formula = Formula(
                tournament_id=tournament_id,
                name=name.strip(),
                config=json.dumps(validated.to_dict()),
                is_active=activate,
                created_by=actor_id,
            )
            session.add(formula)
            await session.flush()

            if activate:
                await self._deactivate_others(session, tournament_id, formula.id)

            self.add_audit_entry(session, tournament_id, actor_id, "formula_created", {
                'formula_id': formula.id,
                'name': formula.name,
                'activated': activate,
                'config': validated.to_dict(),
            })
            record = formula_to_record(formula)

        logger.info(f"Player {actor_id} created formula {record.formula_id} in tournament {tournament_id}")
        return record

    async def update_formula(
        self,
        tournament_id: int,
        actor_id: int,
        formula_id: int,
        config: Optional[Union[FormulaConfig, Dict[str, Any]]] = None,
        name: Optional[str] = None
    ) -> FormulaRecord:
        """
        Replace a formula's configuration and/or name.

        An invalid configuration is rejected and the stored formula, active
        or not, is left untouched.
        """
        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            await self.require_capability(
                session, tournament_id, actor_id, MANAGE_FORMULAS, PermissionGate.can_manage_formula
            )
            formula = await self._get_formula(session, tournament_id, formula_id)

            changes: Dict[str, Any] = {}
            if config is not None:
                validated = LeaderboardOperations.validate_formula(config)
                changes['old_config'] = json.loads(formula.config)
                changes['new_config'] = validated.to_dict()
                formula.config = json.dumps(validated.to_dict())
            if name is not None:
                if not name.strip():
                    raise FormulaValidationError("Formula name cannot be empty")
                changes['old_name'] = formula.name
                changes['new_name'] = name.strip()
                formula.name = name.strip()

            changes['formula_id'] = formula_id
            self.add_audit_entry(session, tournament_id, actor_id, "formula_updated", changes)
            record = formula_to_record(formula)

        logger.info(f"Player {actor_id} updated formula {formula_id} in tournament {tournament_id}")
        return record

    async def activate_formula(self, tournament_id: int, actor_id: int, formula_id: int) -> FormulaRecord:
        """
        Make a formula the tournament's single active formula.

        The stored configuration is re-validated first; on failure the
        previously active formula stays active.
        """
        async with self.get_session() as session:
            await self.require_tournament(session, tournament_id)
            await self.require_capability(
                session, tournament_id, actor_id, MANAGE_FORMULAS, PermissionGate.can_manage_formula
            )
            formula = await self._get_formula(session, tournament_id, formula_id)
            record = formula_to_record(formula)
            LeaderboardOperations.validate_formula(record.config)

            await self._deactivate_others(session, tournament_id, formula_id)
            formula.is_active = True
            self.add_audit_entry(session, tournament_id, actor_id, "formula_activated", {
                'formula_id': formula_id,
            })

        logger.info(f"Player {actor_id} activated formula {formula_id} in tournament {tournament_id}")
        return FormulaRecord(
            formula_id=record.formula_id,
            tournament_id=record.tournament_id,
            name=record.name,
            config=record.config,
            is_active=True,
        )

    async def list_formulas(self, tournament_id: int) -> List[FormulaRecord]:
        """All formulas of a tournament, oldest first."""
        async def load_formulas():
            async with self.get_session() as session:
                await self.require_tournament(session, tournament_id)
                result = await session.execute(
                    select(Formula).where(Formula.tournament_id == tournament_id).order_by(Formula.id)
                )
                return [formula_to_record(f) for f in result.scalars().all()]

        return await self.execute_with_retry(load_formulas)
