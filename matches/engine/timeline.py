"""
Unified match timeline
Goals, cards and substitutions live in separate tables; the timeline merges
them into one chronologically ordered list. It is rebuilt on every call and
never cached, so callers always see the events as currently stored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Iterable, List, Optional, Tuple, Union

from matches.engine.store import StoreError, default_store
from matches.models import CardType, GoalType, MatchState, SubstitutionReason


logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    GOAL = 'goal'
    CARD = 'card'
    SUBSTITUTION = 'substitution'


@dataclass(frozen=True)
class GoalEvent:
    id: int
    minute: int
    timestamp: datetime
    scorer_id: Optional[int] = None
    assister_id: Optional[int] = None
    contributor_ids: Tuple[int, ...] = ()
    is_opponent_goal: bool = False
    goal_type: GoalType = GoalType.OPEN_PLAY
    goal_number: Optional[int] = None
    match_state: Optional[MatchState] = None

    kind: ClassVar[EventKind] = EventKind.GOAL

    @property
    def sort_key(self):
        return (self.minute, self.timestamp)


@dataclass(frozen=True)
class CardEvent:
    id: int
    minute: int
    timestamp: datetime
    player_id: int
    card_type: CardType
    reason: str = ''

    kind: ClassVar[EventKind] = EventKind.CARD

    @property
    def sort_key(self):
        return (self.minute, self.timestamp)

    @property
    def sends_off(self):
        return self.card_type.sends_off


@dataclass(frozen=True)
class SubstitutionEvent:
    id: int
    minute: int
    timestamp: datetime
    player_out_id: int
    player_in_id: int
    reason: SubstitutionReason = SubstitutionReason.TACTICAL
    match_state: MatchState = MatchState.DRAWING
    tactical_note: str = ''

    kind: ClassVar[EventKind] = EventKind.SUBSTITUTION

    @property
    def sort_key(self):
        return (self.minute, self.timestamp)


TimelineEvent = Union[GoalEvent, CardEvent, SubstitutionEvent]


# ============================================================================
# NORMALIZATION
# ============================================================================

def normalize_goal(goal) -> GoalEvent:
    return GoalEvent(
        id=goal.pk,
        minute=goal.minute,
        timestamp=goal.created_at,
        scorer_id=goal.scorer_id,
        assister_id=goal.assisted_by_id,
        contributor_ids=tuple(inv.player_id for inv in goal.involvements.all()),
        is_opponent_goal=goal.is_opponent_goal,
        goal_type=GoalType(goal.goal_type),
        goal_number=goal.goal_number,
        match_state=MatchState(goal.match_state) if goal.match_state else None,
    )


def normalize_card(card) -> CardEvent:
    return CardEvent(
        id=card.pk,
        minute=card.minute,
        timestamp=card.created_at,
        player_id=card.player_id,
        card_type=CardType(card.card_type),
        reason=card.reason or '',
    )


def normalize_substitution(sub) -> SubstitutionEvent:
    return SubstitutionEvent(
        id=sub.pk,
        minute=sub.minute,
        timestamp=sub.created_at,
        player_out_id=sub.player_out_id,
        player_in_id=sub.player_in_id,
        reason=SubstitutionReason(sub.reason),
        match_state=MatchState(sub.match_state),
        tactical_note=sub.tactical_note or '',
    )


# ============================================================================
# TIMELINE
# ============================================================================

def merge_events(*event_lists: Iterable[TimelineEvent]) -> List[TimelineEvent]:
    """
    Merge already-normalized events and sort by (minute, timestamp)

    The sort is stable: events with identical keys keep the order they were
    passed in (cards, then goals, then substitutions by convention).
    """
    merged = [event for events in event_lists for event in events]
    return sorted(merged, key=lambda event: event.sort_key)


def build_timeline(goals, cards, substitutions) -> List[TimelineEvent]:
    """Pure projection of the three stored event collections onto one ordered list"""
    return merge_events(
        [normalize_card(card) for card in cards],
        [normalize_goal(goal) for goal in goals],
        [normalize_substitution(sub) for sub in substitutions],
    )


def get_timeline(match_id, store=None) -> List[TimelineEvent]:
    """
    Fetch every event of a match and return the chronological timeline

    Raises StoreError if the store cannot be read or holds rows that do not
    normalize (unknown card type, etc.). A match without events yields [].
    """
    store = store or default_store
    cards = store.cards(match_id)
    goals = store.goals(match_id)
    substitutions = store.substitutions(match_id)

    try:
        return build_timeline(goals, cards, substitutions)
    except ValueError as e:
        logger.error("Malformed event data for match %s: %s", match_id, e)
        raise StoreError(
            f"Malformed event data for match {match_id}: {e}",
            match_id=match_id,
            operation='get_timeline',
        ) from e


def player_ids_in(event: TimelineEvent) -> Tuple[int, ...]:
    """Every player id referenced by an event"""
    if isinstance(event, GoalEvent):
        ids = (event.scorer_id, event.assister_id) + event.contributor_ids
    elif isinstance(event, CardEvent):
        ids = (event.player_id,)
    elif isinstance(event, SubstitutionEvent):
        ids = (event.player_out_id, event.player_in_id)
    else:
        raise TypeError(f"Unknown timeline event: {event!r}")
    return tuple(pid for pid in ids if pid is not None)
