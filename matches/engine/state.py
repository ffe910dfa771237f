"""
Player state at a given minute, reconstructed by replaying the timeline
"""

from enum import Enum
from typing import Container, Iterable, Mapping

from matches.engine.timeline import CardEvent, GoalEvent, SubstitutionEvent, TimelineEvent


class PlayerState(str, Enum):
    NOT_IN_SQUAD = 'NOT_IN_SQUAD'        # Not in the game roster
    BENCH = 'BENCH'                      # On the bench
    ON_PITCH = 'ON_PITCH'                # Currently playing
    SUBSTITUTED_OUT = 'SUBSTITUTED_OUT'  # Can come back on (rolling subs)
    SENT_OFF = 'SENT_OFF'                # Terminal for the rest of the match


STATE_DESCRIPTIONS = {
    PlayerState.NOT_IN_SQUAD: 'not in squad',
    PlayerState.BENCH: 'on bench',
    PlayerState.ON_PITCH: 'on the pitch',
    PlayerState.SUBSTITUTED_OUT: 'substituted out',
    PlayerState.SENT_OFF: 'sent off',
}


def describe_state(state: PlayerState) -> str:
    return STATE_DESCRIPTIONS[state]


def apply_event(state: PlayerState, event: TimelineEvent, player_id) -> PlayerState:
    """Transition for a single event; events not involving the player leave state unchanged"""
    if state is PlayerState.SENT_OFF:
        return state

    if isinstance(event, SubstitutionEvent):
        if event.player_out_id == player_id and state is PlayerState.ON_PITCH:
            state = PlayerState.SUBSTITUTED_OUT
        if event.player_in_id == player_id and state in (PlayerState.BENCH, PlayerState.SUBSTITUTED_OUT):
            state = PlayerState.ON_PITCH
        return state

    if isinstance(event, CardEvent):
        # Misconduct off the ball or from the bench still sends the player off
        if event.player_id == player_id and event.sends_off:
            return PlayerState.SENT_OFF
        return state

    if isinstance(event, GoalEvent):
        return state

    raise TypeError(f"Unknown timeline event: {event!r}")


def state_at(
    timeline: Iterable[TimelineEvent],
    player_id,
    target_minute: int,
    starting_lineup: Container,
    squad: Mapping,
) -> PlayerState:
    """
    Replay every event with minute <= target_minute, in timeline order.

    Args:
        timeline: Chronologically sorted events (see get_timeline)
        player_id: Player to track
        target_minute: Minute the state is wanted at (inclusive)
        starting_lineup: Player ids that started the match
        squad: Player ids in the matchday squad (starting lineup + bench)

    Returns:
        The PlayerState after all qualifying events. Pure and idempotent.
    """
    if player_id not in squad:
        return PlayerState.NOT_IN_SQUAD

    state = PlayerState.ON_PITCH if player_id in starting_lineup else PlayerState.BENCH

    for event in timeline:
        if event.minute > target_minute:
            continue
        state = apply_event(state, event, player_id)

    return state
