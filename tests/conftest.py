"""
Shared fixtures for the standings test suite.

Core tests run against in-memory snapshots; service tests get a fresh SQLite
file database per test.
"""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from standings.data_models.formula import FormulaConfig, FormulaRecord
from standings.data_models.snapshot import (
    EntityRef, GameRecord, MemberRecord, Outcome, ParticipantRecord, TeamRecord, TournamentSnapshot
)
from standings.database.database import Database

TOURNAMENT_ID = 1
PLAYER_A, PLAYER_B, PLAYER_C = 1, 2, 3
TEAM_X, TEAM_Y = 10, 20
START = datetime(2025, 6, 1, 12, 0)


def player(player_id):
    return EntityRef.player(player_id)


def game(game_id, *participants, played_at=None, tournament_id=TOURNAMENT_ID):
    return GameRecord(
        game_id=game_id,
        tournament_id=tournament_id,
        played_at=played_at or START + timedelta(hours=game_id),
        participants=participants,
    )


def win(entity, score=0, placement=None):
    return ParticipantRecord(entity, Outcome.WIN, Decimal(score), placement)


def loss(entity, score=0, placement=None):
    return ParticipantRecord(entity, Outcome.LOSS, Decimal(score), placement)


def draw(entity, score=0, placement=None):
    return ParticipantRecord(entity, Outcome.DRAW, Decimal(score), placement)


def formula(formula_id=1, is_active=True, **config):
    return FormulaRecord(
        formula_id=formula_id,
        tournament_id=TOURNAMENT_ID,
        name=f"Formula {formula_id}",
        config=FormulaConfig(**config),
        is_active=is_active,
    )


def standard_formula(formula_id=1, is_active=True, **overrides):
    config = dict(win=3, draw=1, loss=0, result=0)
    config.update(overrides)
    return formula(formula_id, is_active, **config)


@pytest.fixture
def roster():
    return (
        MemberRecord(PLAYER_A, "Alice"),
        MemberRecord(PLAYER_B, "Bob"),
        MemberRecord(PLAYER_C, "Carol"),
    )


@pytest.fixture
def teams():
    return (
        TeamRecord(TEAM_X, "Xylophones", {PLAYER_A, PLAYER_B}),
        TeamRecord(TEAM_Y, "Yaks", {PLAYER_C}),
    )


@pytest.fixture
def scenario_games():
    """A beats B 10-5, B beats C 7-3, A draws C 4-4."""
    return (
        game(1, win(player(PLAYER_A), 10), loss(player(PLAYER_B), 5)),
        game(2, win(player(PLAYER_B), 7), loss(player(PLAYER_C), 3)),
        game(3, draw(player(PLAYER_A), 4), draw(player(PLAYER_C), 4)),
    )


@pytest.fixture
def scenario(roster, teams, scenario_games):
    return TournamentSnapshot(
        tournament_id=TOURNAMENT_ID,
        players=roster,
        teams=teams,
        games=scenario_games,
        formulas=(standard_formula(),),
    )


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'standings_test.db'}")
    await db.initialize()
    yield db
    await db.close()
