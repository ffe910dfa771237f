"""
Eligibility rules for new match events

Every validator returns a ValidationResult. A rule violation is never raised:
it comes back as valid=False with a message that is safe to show to the user.
Only infrastructure failures (StoreError) are raised.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, NamedTuple, Optional, Set

from matches.engine.state import PlayerState, describe_state, state_at
from matches.engine.store import default_store, squad_from, starting_lineup_from
from matches.engine.timeline import TimelineEvent, get_timeline
from matches.models import CardType


logger = logging.getLogger(__name__)


class ValidationResult(NamedTuple):
    valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls):
        return cls(True, None)

    @classmethod
    def reject(cls, error):
        return cls(False, error)


@dataclass
class MatchContext:
    """Timeline and squad of one match, loaded once per validation"""
    timeline: List[TimelineEvent] = field(default_factory=list)
    starting_lineup: Set[int] = field(default_factory=set)
    squad: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def load(cls, match_id, store=None):
        store = store or default_store
        roster = store.roster(match_id)
        return cls(
            timeline=get_timeline(match_id, store=store),
            starting_lineup=starting_lineup_from(roster),
            squad=squad_from(roster),
        )

    def in_squad(self, player_id):
        return player_id in self.squad

    def state_of(self, player_id, minute) -> PlayerState:
        return state_at(self.timeline, player_id, minute, self.starting_lineup, self.squad)

    def without(self, kind, event_id):
        """Same context minus one stored event, for re-validating an edit"""
        timeline = [e for e in self.timeline if not (e.kind is kind and e.id == event_id)]
        return replace(self, timeline=timeline)


# ============================================================================
# GOALS
# ============================================================================

def check_goal(context: MatchContext, scorer_id, assister_id, minute) -> ValidationResult:
    if not context.in_squad(scorer_id):
        return ValidationResult.reject('Scorer must be in the game squad (starting lineup or bench)')

    scorer_state = context.state_of(scorer_id, minute)
    if scorer_state is not PlayerState.ON_PITCH:
        return ValidationResult.reject(
            f"Scorer must be on the pitch. Current state: {describe_state(scorer_state)}"
        )

    if assister_id is not None:
        if assister_id == scorer_id:
            return ValidationResult.reject('Assister cannot be the same as scorer')

        if not context.in_squad(assister_id):
            return ValidationResult.reject('Assister must be in the game squad (starting lineup or bench)')

        assister_state = context.state_of(assister_id, minute)
        if assister_state is not PlayerState.ON_PITCH:
            return ValidationResult.reject(
                f"Assister must be on the pitch. Current state: {describe_state(assister_state)}"
            )

    return ValidationResult.ok()


def validate_goal(match_id, scorer_id, assister_id, minute, is_opponent_goal=False, store=None) -> ValidationResult:
    """
    Scorer and assister must be on the pitch at the goal minute.

    Opponent goals and own goals without a scorer skip the player checks.
    """
    if is_opponent_goal or scorer_id is None:
        return ValidationResult.ok()

    context = MatchContext.load(match_id, store=store)
    return check_goal(context, scorer_id, assister_id, minute)


def validate_goal_involvement(scorer_id, assister_id, contributor_ids: Iterable) -> ValidationResult:
    """Extra contributors can't repeat each other, the scorer or the assister"""
    seen = set()
    for player_id in contributor_ids:
        if scorer_id is not None and player_id == scorer_id:
            return ValidationResult.reject('Goal involvement cannot include the scorer')
        if assister_id is not None and player_id == assister_id:
            return ValidationResult.reject('Goal involvement cannot include the assister')
        if player_id in seen:
            return ValidationResult.reject('Goal involvement lists the same player twice')
        seen.add(player_id)
    return ValidationResult.ok()


# ============================================================================
# SUBSTITUTIONS
# ============================================================================

def check_substitution(context: MatchContext, player_out_id, player_in_id, minute) -> ValidationResult:
    if not context.in_squad(player_out_id):
        return ValidationResult.reject('Player leaving field must be in the game squad')

    if not context.in_squad(player_in_id):
        return ValidationResult.reject('Player entering field must be in the game squad')

    out_state = context.state_of(player_out_id, minute)
    in_state = context.state_of(player_in_id, minute)

    if out_state is PlayerState.SENT_OFF:
        return ValidationResult.reject('Cannot substitute a player who has been sent off')

    if out_state is not PlayerState.ON_PITCH:
        return ValidationResult.reject(
            f"Player leaving field must be on the pitch. Current state: {describe_state(out_state)}"
        )

    if in_state is PlayerState.SENT_OFF:
        return ValidationResult.reject('Cannot substitute in a player who has been sent off')

    if in_state is PlayerState.ON_PITCH:
        return ValidationResult.reject('Player entering field is already on the pitch')

    # SUBSTITUTED_OUT is allowed: rolling substitutions
    if in_state not in (PlayerState.BENCH, PlayerState.SUBSTITUTED_OUT):
        return ValidationResult.reject(
            f"Player entering field must be on bench or previously substituted out. "
            f"Current state: {describe_state(in_state)}"
        )

    return ValidationResult.ok()


def validate_substitution(match_id, player_out_id, player_in_id, minute, store=None) -> ValidationResult:
    if player_out_id == player_in_id:
        return ValidationResult.reject('Player out and player in must be different')

    context = MatchContext.load(match_id, store=store)
    return check_substitution(context, player_out_id, player_in_id, minute)


# ============================================================================
# CARDS
# ============================================================================

def check_card(context: MatchContext, player_id, minute) -> ValidationResult:
    if not context.in_squad(player_id):
        return ValidationResult.reject(
            'Player must be in the game squad (starting lineup or bench) to receive a card'
        )

    state = context.state_of(player_id, minute)

    if state is PlayerState.SENT_OFF:
        return ValidationResult.reject('Cannot give a card to a player who has already been sent off')

    # Bench players can be booked for misconduct too
    if state not in (PlayerState.ON_PITCH, PlayerState.BENCH):
        return ValidationResult.reject(
            f"Player must be on the pitch or on the bench to receive a card. "
            f"Current state: {describe_state(state)}"
        )

    return ValidationResult.ok()


def validate_card(match_id, player_id, minute, store=None) -> ValidationResult:
    context = MatchContext.load(match_id, store=store)
    return check_card(context, player_id, minute)


def can_receive_card(existing_card_types: Iterable, new_card_type) -> ValidationResult:
    """
    Card sequencing for one player in one match

    - Clean slate: yellow or red, never a second yellow
    - One yellow: second yellow or straight red, not another yellow
    - Sent off (red or second yellow): nothing else
    """
    existing = [CardType(card_type) for card_type in existing_card_types]
    yellow_count = existing.count(CardType.YELLOW)

    if any(card_type.sends_off for card_type in existing):
        return ValidationResult.reject('Player has already been sent off and cannot receive additional cards')

    try:
        new_card_type = CardType(new_card_type)
    except ValueError:
        return ValidationResult.reject(f"Invalid card type: {new_card_type}")

    if new_card_type is CardType.YELLOW:
        if yellow_count == 0:
            return ValidationResult.ok()
        return ValidationResult.reject('Player already has a yellow card. Use "Second Yellow" instead')

    if new_card_type is CardType.SECOND_YELLOW:
        if yellow_count == 1:
            return ValidationResult.ok()
        if yellow_count == 0:
            return ValidationResult.reject('Player must have a yellow card before receiving a second yellow')
        return ValidationResult.reject('Player already has multiple yellow cards or has been sent off')

    return ValidationResult.ok()
