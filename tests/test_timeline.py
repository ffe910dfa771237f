"""Tests for the unified match timeline."""

import pytest
from django.db import DatabaseError

from matches.engine.store import EventStore, StoreError
from matches.engine.timeline import (
    CardEvent,
    EventKind,
    GoalEvent,
    SubstitutionEvent,
    get_timeline,
    merge_events,
    player_ids_in,
)
from matches.models import CardType

from tests.conftest import at


class TestMergeEvents:
    """Ordering of normalized events."""

    def test_sorted_by_minute_then_timestamp(self) -> None:
        """Events are ordered by minute, then creation time."""
        late_goal = GoalEvent(id=1, minute=70, timestamp=at(1), scorer_id=9)
        early_card = CardEvent(id=2, minute=10, timestamp=at(5), player_id=4, card_type=CardType.YELLOW)
        same_minute_sub = SubstitutionEvent(id=3, minute=10, timestamp=at(2), player_out_id=4, player_in_id=12)

        timeline = merge_events([early_card], [late_goal], [same_minute_sub])

        assert [e.id for e in timeline] == [3, 2, 1]
        keys = [e.sort_key for e in timeline]
        assert keys == sorted(keys)

    def test_identical_keys_keep_input_order(self) -> None:
        """Stable sort: a full tie resolves cards, goals, then substitutions."""
        card = CardEvent(id=1, minute=30, timestamp=at(0), player_id=4, card_type=CardType.RED)
        goal = GoalEvent(id=1, minute=30, timestamp=at(0), scorer_id=5)
        sub = SubstitutionEvent(id=1, minute=30, timestamp=at(0), player_out_id=6, player_in_id=12)

        timeline = merge_events([card], [goal], [sub])

        assert [e.kind for e in timeline] == [EventKind.CARD, EventKind.GOAL, EventKind.SUBSTITUTION]

    def test_empty(self) -> None:
        """No events, empty timeline."""
        assert merge_events([], [], []) == []


class TestPlayerIds:
    """Player references carried by each event kind."""

    def test_goal_ids_skip_missing(self) -> None:
        """Own goals without scorer contribute no id."""
        goal = GoalEvent(id=1, minute=5, timestamp=at(0), scorer_id=None, assister_id=7, contributor_ids=(3,))
        assert player_ids_in(goal) == (7, 3)

    def test_substitution_ids(self) -> None:
        """Both players of a substitution are referenced."""
        sub = SubstitutionEvent(id=1, minute=5, timestamp=at(0), player_out_id=2, player_in_id=14)
        assert player_ids_in(sub) == (2, 14)


@pytest.mark.django_db
class TestGetTimeline:
    """Timeline built from stored events."""

    def test_match_without_events(self, game) -> None:
        """A match without events yields an empty timeline."""
        assert get_timeline(game.pk) == []

    def test_normalizes_all_event_kinds(self, roster, add_goal, add_card, add_substitution, game) -> None:
        """Goals, cards and substitutions are merged into one ordered list."""
        scorer, assister = roster.starters[9], roster.starters[8]
        add_substitution(60, roster.starters[10], roster.bench[0], created=3)
        add_goal(25, scorer=scorer, assister=assister, created=2)
        add_card(25, roster.starters[3], CardType.YELLOW, created=1)
        add_goal(80, opponent=True, created=4)

        timeline = get_timeline(game.pk)

        assert [type(e) for e in timeline] == [CardEvent, GoalEvent, SubstitutionEvent, GoalEvent]
        goal = timeline[1]
        assert goal.scorer_id == scorer.pk
        assert goal.assister_id == assister.pk
        assert timeline[0].card_type is CardType.YELLOW
        assert timeline[-1].is_opponent_goal
        assert timeline[-1].scorer_id is None

    def test_rebuilt_on_every_call(self, roster, add_card, game) -> None:
        """New events are visible immediately; nothing is cached."""
        assert get_timeline(game.pk) == []
        add_card(12, roster.starters[0], CardType.YELLOW)
        assert len(get_timeline(game.pk)) == 1

    def test_store_failure_raises_store_error(self, game) -> None:
        """Database errors surface as StoreError, not as an empty timeline."""

        class BrokenStore(EventStore):
            def cards(self, match_id):
                raise StoreError('connection lost', match_id=match_id, operation='cards')

        with pytest.raises(StoreError) as excinfo:
            get_timeline(game.pk, store=BrokenStore())
        assert excinfo.value.match_id == game.pk

    def test_database_error_is_wrapped(self, game, monkeypatch) -> None:
        """A DatabaseError raised by a query becomes a StoreError with the operation name."""
        from matches.models import Substitution

        def explode(*args, **kwargs):
            raise DatabaseError('no such table')

        monkeypatch.setattr(Substitution.objects, 'filter', explode)

        with pytest.raises(StoreError) as excinfo:
            get_timeline(game.pk)
        assert excinfo.value.operation == 'substitutions'
