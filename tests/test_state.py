"""Tests for player state reconstruction."""

from matches.engine.state import PlayerState, apply_event, describe_state, state_at
from matches.engine.timeline import CardEvent, GoalEvent, SubstitutionEvent, merge_events
from matches.models import CardType

from tests.conftest import at


STARTERS = {1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11}
SQUAD = {pid: 'x' for pid in list(STARTERS) + [12, 13, 14]}


def sub(minute, out_id, in_id, created=0):
    return SubstitutionEvent(id=minute, minute=minute, timestamp=at(created), player_out_id=out_id, player_in_id=in_id)


def card(minute, player_id, card_type, created=0):
    return CardEvent(id=minute, minute=minute, timestamp=at(created), player_id=player_id, card_type=card_type)


class TestInitialState:
    """State before any event is replayed."""

    def test_starter_on_pitch(self) -> None:
        assert state_at([], 1, 0, STARTERS, SQUAD) is PlayerState.ON_PITCH

    def test_bench_player(self) -> None:
        assert state_at([], 12, 45, STARTERS, SQUAD) is PlayerState.BENCH

    def test_not_in_squad(self) -> None:
        """A player outside the squad is NOT_IN_SQUAD whatever happened."""
        timeline = [sub(20, 1, 99)]
        assert state_at(timeline, 99, 90, STARTERS, SQUAD) is PlayerState.NOT_IN_SQUAD


class TestTransitions:
    """Substitutions and cards moving players between states."""

    def test_substitution_swaps_players(self) -> None:
        timeline = [sub(60, 9, 12)]
        assert state_at(timeline, 9, 59, STARTERS, SQUAD) is PlayerState.ON_PITCH
        assert state_at(timeline, 9, 60, STARTERS, SQUAD) is PlayerState.SUBSTITUTED_OUT
        assert state_at(timeline, 12, 60, STARTERS, SQUAD) is PlayerState.ON_PITCH

    def test_rolling_substitution_back_on(self) -> None:
        """A substituted-out player can come back on."""
        timeline = merge_events([sub(30, 2, 12), sub(70, 12, 2)])
        assert state_at(timeline, 2, 50, STARTERS, SQUAD) is PlayerState.SUBSTITUTED_OUT
        assert state_at(timeline, 2, 75, STARTERS, SQUAD) is PlayerState.ON_PITCH
        assert state_at(timeline, 12, 75, STARTERS, SQUAD) is PlayerState.SUBSTITUTED_OUT

    def test_yellow_does_not_change_state(self) -> None:
        timeline = [card(20, 4, CardType.YELLOW)]
        assert state_at(timeline, 4, 90, STARTERS, SQUAD) is PlayerState.ON_PITCH

    def test_red_sends_off(self) -> None:
        timeline = [card(40, 4, CardType.RED)]
        assert state_at(timeline, 4, 39, STARTERS, SQUAD) is PlayerState.ON_PITCH
        assert state_at(timeline, 4, 40, STARTERS, SQUAD) is PlayerState.SENT_OFF

    def test_second_yellow_from_bench_sends_off(self) -> None:
        """Bench misconduct still ends the player's match."""
        timeline = [card(50, 13, CardType.SECOND_YELLOW)]
        assert state_at(timeline, 13, 90, STARTERS, SQUAD) is PlayerState.SENT_OFF

    def test_sent_off_is_terminal(self) -> None:
        """A later substitution in cannot bring a sent-off player back."""
        timeline = merge_events([card(40, 12, CardType.RED)], [sub(70, 3, 12)])
        assert state_at(timeline, 12, 90, STARTERS, SQUAD) is PlayerState.SENT_OFF

    def test_red_then_substitution_same_minute(self) -> None:
        """The earlier-created red wins; the substitution still brings the replacement on."""
        timeline = merge_events([card(50, 4, CardType.RED, created=10)], [sub(50, 4, 12, created=20)])
        assert isinstance(timeline[0], CardEvent)
        assert state_at(timeline, 4, 49, STARTERS, SQUAD) is PlayerState.ON_PITCH
        assert state_at(timeline, 4, 50, STARTERS, SQUAD) is PlayerState.SENT_OFF
        assert state_at(timeline, 12, 50, STARTERS, SQUAD) is PlayerState.ON_PITCH

    def test_substitution_then_red_same_minute(self) -> None:
        """A red after the substitution still sends the substituted player off."""
        timeline = merge_events([card(50, 4, CardType.RED, created=20)], [sub(50, 4, 12, created=10)])
        assert isinstance(timeline[0], SubstitutionEvent)
        assert apply_event(PlayerState.ON_PITCH, timeline[0], 4) is PlayerState.SUBSTITUTED_OUT
        assert state_at(timeline, 4, 50, STARTERS, SQUAD) is PlayerState.SENT_OFF
        assert state_at(timeline, 12, 50, STARTERS, SQUAD) is PlayerState.ON_PITCH

    def test_same_timestamp_puts_cards_first(self) -> None:
        timeline = merge_events([card(50, 4, CardType.RED)], [sub(50, 4, 12)])
        assert [type(event) for event in timeline] == [CardEvent, SubstitutionEvent]

    def test_goals_never_change_state(self) -> None:
        goal = GoalEvent(id=1, minute=10, timestamp=at(0), scorer_id=9)
        assert apply_event(PlayerState.ON_PITCH, goal, 9) is PlayerState.ON_PITCH


class TestReplayProperties:
    """Replay is pure and monotone once sent off."""

    def test_idempotent(self) -> None:
        timeline = merge_events([card(40, 4, CardType.RED)], [sub(60, 9, 12)])
        first = [state_at(timeline, pid, 65, STARTERS, SQUAD) for pid in SQUAD]
        second = [state_at(timeline, pid, 65, STARTERS, SQUAD) for pid in SQUAD]
        assert first == second

    def test_sent_off_monotone(self) -> None:
        timeline = merge_events([card(40, 4, CardType.RED)], [sub(60, 4, 12), sub(80, 12, 4)])
        states = [state_at(timeline, 4, minute, STARTERS, SQUAD) for minute in range(40, 121)]
        assert set(states) == {PlayerState.SENT_OFF}

    def test_unsorted_input_filters_by_minute(self) -> None:
        """Events after the target minute are ignored even if listed first."""
        timeline = [sub(80, 9, 12), card(10, 4, CardType.YELLOW)]
        assert state_at(timeline, 9, 45, STARTERS, SQUAD) is PlayerState.ON_PITCH


def test_describe_state() -> None:
    assert describe_state(PlayerState.SENT_OFF) == 'sent off'
    assert describe_state(PlayerState.BENCH) == 'on bench'
    assert describe_state(PlayerState.SUBSTITUTED_OUT) == 'substituted out'
