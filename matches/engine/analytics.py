"""
Match analytics, calculated when a game is marked as Done

Each goal gets its chronological number and the match state (winning,
drawing, losing from our point of view) just before it was scored.
Each substitution gets the match state at its minute.
"""

import logging
from typing import Dict

from django.db import transaction

from matches.engine.timeline import GoalEvent, SubstitutionEvent, get_timeline
from matches.models import Goal, MatchState, Substitution


logger = logging.getLogger(__name__)


def match_state_for(our_goals: int, opponent_goals: int) -> MatchState:
    if our_goals > opponent_goals:
        return MatchState.WINNING
    if our_goals < opponent_goals:
        return MatchState.LOSING
    return MatchState.DRAWING


def goal_analytics(timeline) -> Dict[int, tuple]:
    """goal id -> (goal_number, match_state), walking goals in timeline order"""
    analytics = {}
    ours = theirs = 0
    number = 0
    for event in timeline:
        if not isinstance(event, GoalEvent):
            continue
        number += 1
        analytics[event.id] = (number, match_state_for(ours, theirs))
        if event.is_opponent_goal:
            theirs += 1
        else:
            ours += 1
    return analytics


def recalculate_goal_analytics(match_id, store=None) -> Dict[int, tuple]:
    analytics = goal_analytics(get_timeline(match_id, store=store))
    if not analytics:
        logger.info("No goals to recalculate for game %s", match_id)
        return analytics

    with transaction.atomic():
        for goal_id, (number, state) in analytics.items():
            Goal.objects.filter(pk=goal_id).update(goal_number=number, match_state=state)

    logger.info("Recalculated analytics for %s goals in game %s", len(analytics), match_id)
    return analytics


def substitution_analytics(timeline) -> Dict[int, MatchState]:
    """
    substitution id -> match state from the score at the substitution minute

    Goals scored in the same minute as the substitution count towards that
    score.
    """
    goals = [event for event in timeline if isinstance(event, GoalEvent)]
    analytics = {}
    for event in timeline:
        if not isinstance(event, SubstitutionEvent):
            continue
        scored = [goal for goal in goals if goal.minute <= event.minute]
        theirs = sum(1 for goal in scored if goal.is_opponent_goal)
        analytics[event.id] = match_state_for(len(scored) - theirs, theirs)
    return analytics


def recalculate_substitution_analytics(match_id, store=None) -> Dict[int, MatchState]:
    analytics = substitution_analytics(get_timeline(match_id, store=store))
    if not analytics:
        logger.info("No substitutions to recalculate for game %s", match_id)
        return analytics

    with transaction.atomic():
        for substitution_id, state in analytics.items():
            Substitution.objects.filter(pk=substitution_id).update(match_state=state)

    logger.info("Recalculated analytics for %s substitutions in game %s", len(analytics), match_id)
    return analytics
