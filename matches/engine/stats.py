"""
Goals and assists per player, counted from the team's goals
"""

import logging
from typing import Dict, NamedTuple

from django.db import transaction
from django.utils import timezone

from matches.engine.timeline import GoalEvent, get_timeline
from matches.models import PlayerMatchStats


logger = logging.getLogger(__name__)


class GoalContribution(NamedTuple):
    goals: int = 0
    assists: int = 0


def count_goals_assists(timeline) -> Dict[int, GoalContribution]:
    counts: Dict[int, GoalContribution] = {}
    for event in timeline:
        if not isinstance(event, GoalEvent) or event.is_opponent_goal:
            continue
        if event.scorer_id is not None:
            current = counts.get(event.scorer_id, GoalContribution())
            counts[event.scorer_id] = current._replace(goals=current.goals + 1)
        if event.assister_id is not None:
            current = counts.get(event.assister_id, GoalContribution())
            counts[event.assister_id] = current._replace(assists=current.assists + 1)
    return counts


def calculate_goals_assists(match_id, store=None) -> Dict[int, GoalContribution]:
    return count_goals_assists(get_timeline(match_id, store=store))


def recalculate_goals_assists(match_id, store=None) -> Dict[int, GoalContribution]:
    """Persist goals/assists; players no longer credited are reset to zero"""
    counts = calculate_goals_assists(match_id, store=store)
    now = timezone.now()

    with transaction.atomic():
        PlayerMatchStats.objects.filter(game_id=match_id).exclude(player_id__in=counts.keys()).update(
            goals=0, assists=0, goals_calculated_at=now
        )
        for player_id, contribution in counts.items():
            PlayerMatchStats.objects.update_or_create(
                game_id=match_id,
                player_id=player_id,
                defaults={
                    'goals': contribution.goals,
                    'assists': contribution.assists,
                    'goals_calculated_at': now,
                },
            )

    logger.info("Recalculated goals/assists for %s players in game %s", len(counts), match_id)
    return counts
