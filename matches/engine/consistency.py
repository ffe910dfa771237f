"""
Future-consistency guard

Events can be entered out of order when a coach corrects history. A red card
or a substitution out at minute T must not contradict what is already
recorded for the same player after T (a goal, a substitution in, ...).
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from matches.engine.rules import ValidationResult
from matches.engine.timeline import (
    CardEvent,
    EventKind,
    GoalEvent,
    SubstitutionEvent,
    TimelineEvent,
    get_timeline,
)
from matches.models import CardType


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FutureEventCandidate:
    """A state-terminating event about to be created"""
    kind: EventKind
    minute: int
    player_id: Optional[int] = None       # cards
    player_out_id: Optional[int] = None   # substitutions
    card_type: Optional[CardType] = None

    @property
    def target_player_id(self):
        if self.kind is EventKind.CARD:
            return self.player_id
        if self.kind is EventKind.SUBSTITUTION:
            return self.player_out_id
        return None

    @property
    def terminates_presence(self):
        if self.kind is EventKind.CARD:
            return self.card_type is not None and CardType(self.card_type).sends_off
        if self.kind is EventKind.SUBSTITUTION:
            return self.player_out_id is not None
        return False

    def describe(self):
        if self.kind is EventKind.CARD:
            return f"receive a {CardType(self.card_type).value} card"
        return 'be substituted out'


def find_future_conflicts(timeline: Iterable[TimelineEvent], player_id, minute) -> List[str]:
    """Readable list of the facts recorded for player_id strictly after minute"""
    conflicts = []
    for event in timeline:
        if event.minute <= minute:
            continue

        if isinstance(event, GoalEvent):
            if event.scorer_id == player_id:
                conflicts.append(f"scored a goal at minute {event.minute}")
            if event.assister_id == player_id:
                conflicts.append(f"assisted a goal at minute {event.minute}")

        elif isinstance(event, SubstitutionEvent):
            if event.player_out_id == player_id:
                conflicts.append(f"was substituted out at minute {event.minute}")
            if event.player_in_id == player_id:
                conflicts.append(f"was substituted in at minute {event.minute}")

        elif isinstance(event, CardEvent):
            # A later yellow doesn't need the player on the pitch
            if event.player_id == player_id and event.sends_off:
                conflicts.append(f"received a {event.card_type.value} card at minute {event.minute}")

    return conflicts


def validate_future_consistency(match_id, candidate: FutureEventCandidate, store=None) -> ValidationResult:
    """
    Reject a red/second-yellow card or a substitution out at minute T when the
    same player already has later events on the timeline.

    Yellow cards, substitutions without a player out and other kinds are not
    checked.
    """
    if not candidate.terminates_presence:
        return ValidationResult.ok()

    player_id = candidate.target_player_id
    if player_id is None:
        return ValidationResult.ok()

    timeline = get_timeline(match_id, store=store)
    conflicts = find_future_conflicts(timeline, player_id, candidate.minute)
    if not conflicts:
        return ValidationResult.ok()

    logger.info(
        "Future-consistency conflict for player %s in match %s at minute %s: %s",
        player_id, match_id, candidate.minute, conflicts
    )
    return ValidationResult.reject(
        f"Cannot {candidate.describe()} at minute {candidate.minute} because the player "
        f"{', '.join(conflicts)}. Please delete or modify the conflicting events first."
    )
