"""
Read-only access to the events and roster of a match
Every query error is re-raised as StoreError so callers can tell an
infrastructure failure apart from a rejected event
"""

import functools
import logging
from typing import Dict, List, Set

from django.db import DatabaseError

from matches.models import Card, Game, GameRoster, Goal, RosterStatus, Substitution


logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The event store could not be read (database down, malformed rows, ...)"""

    def __init__(self, message, match_id=None, operation=None):
        super().__init__(message)
        self.match_id = match_id
        self.operation = operation


class MatchNotFound(StoreError):
    pass


def store_operation(func):
    """Translate database errors raised by a store read into StoreError"""
    @functools.wraps(func)
    def wrapper(self, match_id, *args, **kwargs):
        try:
            return func(self, match_id, *args, **kwargs)
        except StoreError:
            raise
        except DatabaseError as e:
            logger.error("Store read '%s' failed for match %s: %s", func.__name__, match_id, e)
            raise StoreError(
                f"Could not read {func.__name__} for match {match_id}: {e}",
                match_id=match_id,
                operation=func.__name__,
            ) from e
    return wrapper


class EventStore:
    """Fetches goals, cards, substitutions and roster entries by match id"""

    @store_operation
    def goals(self, match_id) -> List[Goal]:
        return list(
            Goal.objects.filter(game_id=match_id)
            .prefetch_related('involvements')
            .order_by('minute', 'created_at', 'pk')
        )

    @store_operation
    def cards(self, match_id) -> List[Card]:
        return list(Card.objects.filter(game_id=match_id).order_by('minute', 'created_at', 'pk'))

    @store_operation
    def substitutions(self, match_id) -> List[Substitution]:
        return list(Substitution.objects.filter(game_id=match_id).order_by('minute', 'created_at', 'pk'))

    @store_operation
    def roster(self, match_id) -> Dict[int, str]:
        """player_id -> roster status, for every roster row of the match"""
        return dict(GameRoster.objects.filter(game_id=match_id).values_list('player_id', 'status'))

    @store_operation
    def match_duration(self, match_id) -> int:
        try:
            game = Game.objects.get(pk=match_id)
        except Game.DoesNotExist:
            raise MatchNotFound(f"Game {match_id} not found", match_id=match_id, operation='match_duration')
        return game.total_match_duration

    def starting_lineup(self, match_id) -> Set[int]:
        return starting_lineup_from(self.roster(match_id))

    def squad(self, match_id) -> Dict[int, str]:
        return squad_from(self.roster(match_id))

    def rostered_players(self, match_id) -> Set[int]:
        return set(self.roster(match_id))


def starting_lineup_from(roster: Dict[int, str]) -> Set[int]:
    return {pid for pid, status in roster.items() if status == RosterStatus.STARTING_LINEUP}


def squad_from(roster: Dict[int, str]) -> Dict[int, str]:
    """Players available for the match: starting lineup and bench"""
    return {
        pid: status for pid, status in roster.items()
        if status in (RosterStatus.STARTING_LINEUP, RosterStatus.BENCH)
    }


default_store = EventStore()
