"""
Minutes played, from the match timeline

Session algorithm: every starter opens a session [0, total). A substitution
closes the outgoing player's session and opens one for the incoming player;
a red or second-yellow card closes the carded player's session. Minutes are
the sum of session lengths.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from django.db import transaction
from django.utils import timezone

from matches.conf import get_setting
from matches.engine.store import default_store, starting_lineup_from
from matches.engine.timeline import CardEvent, SubstitutionEvent, TimelineEvent, get_timeline
from matches.models import GameRoster, PlayerMatchStats


logger = logging.getLogger(__name__)


@dataclass
class Session:
    start: int
    end: Optional[int] = None  # None while the player is still on the pitch

    @property
    def is_open(self):
        return self.end is None

    def length(self, total_duration):
        end = total_duration if self.end is None else self.end
        return max(0, end - self.start)


@dataclass
class MinutesReport:
    minutes: Dict[int, int] = field(default_factory=dict)
    appeared: Set[int] = field(default_factory=set)


def _open_session(sessions: List[Session]) -> Optional[Session]:
    for session in sessions:
        if session.is_open:
            return session
    return None


def _close_session(sessions_by_player, player_id, minute, reason):
    session = _open_session(sessions_by_player.get(player_id, []))
    if session is None:
        logger.warning("Player %s not on the pitch at minute %s (%s) - ignoring", player_id, minute, reason)
        return
    session.end = max(session.start, minute)


def compute_minutes(
    timeline: Iterable[TimelineEvent],
    starting_lineup: Iterable,
    rostered_players: Iterable,
    total_duration: int,
) -> MinutesReport:
    """
    Pure session accounting over substitutions and sending-off cards.

    Goals and yellow cards are ignored. Event minutes are clamped to
    [0, total_duration]. Every rostered player is present in the result,
    with 0 when they never held a session.
    """
    sessions_by_player: Dict[int, List[Session]] = {}
    for player_id in starting_lineup:
        sessions_by_player[player_id] = [Session(start=0)]

    for event in timeline:
        if isinstance(event, SubstitutionEvent):
            minute = min(max(event.minute, 0), total_duration)
            _close_session(sessions_by_player, event.player_out_id, minute, 'substitution')

            incoming = sessions_by_player.setdefault(event.player_in_id, [])
            if _open_session(incoming) is not None:
                logger.warning(
                    "Player %s subbed in at minute %s while already on the pitch - ignoring",
                    event.player_in_id, minute
                )
            else:
                incoming.append(Session(start=minute))

        elif isinstance(event, CardEvent) and event.sends_off:
            minute = min(max(event.minute, 0), total_duration)
            _close_session(sessions_by_player, event.player_id, minute, f"{event.card_type.value} card")

    report = MinutesReport()
    for player_id, sessions in sessions_by_player.items():
        if not sessions:
            continue
        total = sum(session.length(total_duration) for session in sessions)
        report.minutes[player_id] = int(round(total))
        report.appeared.add(player_id)

    for player_id in rostered_players:
        report.minutes.setdefault(player_id, 0)

    return report


def minutes_report(match_id, store=None) -> MinutesReport:
    store = store or default_store
    total_duration = store.match_duration(match_id)
    roster = store.roster(match_id)
    starting_lineup = starting_lineup_from(roster)
    timeline = get_timeline(match_id, store=store)

    expected = get_setting('MATCHES_EXPECTED_STARTERS')
    if not starting_lineup:
        logger.warning("No starting lineup found for game %s", match_id)
    elif len(starting_lineup) != expected:
        logger.warning(
            "Starting lineup has %s players (expected %s) for game %s",
            len(starting_lineup), expected, match_id
        )

    logger.debug(
        "Calculating minutes for game %s: %s starters, %s events, %s minutes",
        match_id, len(starting_lineup), len(timeline), total_duration
    )
    return compute_minutes(timeline, sorted(starting_lineup), roster.keys(), total_duration)


def calculate_minutes(match_id, store=None) -> Dict[int, int]:
    """player_id -> minutes played, for every player on the match roster"""
    return minutes_report(match_id, store=store).minutes


def recalculate_player_minutes(match_id, store=None) -> Dict[int, int]:
    """
    Recompute minutes and persist them to PlayerMatchStats and
    GameRoster.appeared_in_match. Safe to run repeatedly.
    """
    report = minutes_report(match_id, store=store)
    now = timezone.now()

    with transaction.atomic():
        for player_id, minutes in report.minutes.items():
            PlayerMatchStats.objects.update_or_create(
                game_id=match_id,
                player_id=player_id,
                defaults={'minutes_played': minutes, 'minutes_calculated_at': now},
            )

        rosters = GameRoster.objects.filter(game_id=match_id)
        rosters.exclude(player_id__in=report.appeared).update(appeared_in_match=False)
        rosters.filter(player_id__in=report.appeared).update(appeared_in_match=True)

    logger.info("Recalculated minutes for %s players in game %s", len(report.minutes), match_id)
    return report.minutes
