"""Pytest configuration and fixtures for match engine tests."""

from datetime import datetime, timedelta, timezone as dt_timezone
from types import SimpleNamespace

import pytest

from matches.models import (
    Card, Game, GameRoster, GameStatus, Goal, Player, RosterStatus, Substitution, Team
)


KICKOFF = datetime(2025, 3, 1, 15, 0, tzinfo=dt_timezone.utc)


def at(seconds):
    """Creation timestamp `seconds` after kickoff, for ordering ties"""
    return KICKOFF + timedelta(seconds=seconds)


@pytest.fixture
def team(db):
    return Team.objects.create(name='Squad FC', short_name='SFC')


@pytest.fixture
def players(team):
    return [
        Player.objects.create(full_name=f'Player {n}', kit_number=n, team=team)
        for n in range(1, 17)
    ]


@pytest.fixture
def game(team):
    return Game.objects.create(team=team, opponent='Rivals United', date=KICKOFF, status=GameStatus.PLAYED)


@pytest.fixture
def roster(game, players):
    """11 starters, 4 on the bench and one unavailable player"""
    starters, bench, unavailable = players[:11], players[11:15], players[15]
    for player in starters:
        GameRoster.objects.create(game=game, player=player, status=RosterStatus.STARTING_LINEUP)
    for player in bench:
        GameRoster.objects.create(game=game, player=player, status=RosterStatus.BENCH)
    GameRoster.objects.create(game=game, player=unavailable, status=RosterStatus.UNAVAILABLE)
    return SimpleNamespace(starters=starters, bench=bench, unavailable=unavailable)


@pytest.fixture
def add_goal(game):
    def _add(minute, scorer=None, assister=None, opponent=False, created=0):
        return Goal.objects.create(
            game=game,
            minute=minute,
            scorer=scorer,
            assisted_by=assister,
            is_opponent_goal=opponent,
            created_at=at(created),
        )
    return _add


@pytest.fixture
def add_card(game):
    def _add(minute, player, card_type, created=0):
        return Card.objects.create(game=game, player=player, card_type=card_type, minute=minute, created_at=at(created))
    return _add


@pytest.fixture
def add_substitution(game):
    def _add(minute, player_out, player_in, created=0):
        return Substitution.objects.create(
            game=game, player_out=player_out, player_in=player_in, minute=minute, created_at=at(created)
        )
    return _add
