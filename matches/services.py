"""
Event mutations for a match: goals, cards, substitutions and game lifecycle

Every mutation runs in one transaction holding a lock on the Game row, so
validate-then-write is serialised per match. Rejected events raise
InvalidEventError; successful ones enqueue the statistics recalculation.
"""

import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from matches.conf import get_setting
from matches.engine.analytics import recalculate_goal_analytics, recalculate_substitution_analytics
from matches.engine.consistency import FutureEventCandidate, validate_future_consistency
from matches.engine.rules import (
    MatchContext,
    can_receive_card,
    check_card,
    check_goal,
    check_substitution,
    validate_goal_involvement,
)
from matches.engine.timeline import EventKind
from matches.jobs import submit_recalc_job
from matches.models import (
    Card,
    CardType,
    Game,
    GameRoster,
    GameStatus,
    Goal,
    GoalInvolvement,
    GoalType,
    MatchState,
    Player,
    RecalcJob,
    RosterStatus,
    Substitution,
    SubstitutionReason,
)


logger = logging.getLogger(__name__)

UNSET = object()


class InvalidEventError(Exception):
    """The event breaks a match rule; the message is safe to show to the user"""


class EventNotFound(Exception):
    pass


def _lock_game(game_id):
    try:
        return Game.objects.select_for_update().get(pk=game_id)
    except Game.DoesNotExist:
        raise EventNotFound(f"Game {game_id} not found")


def _get_event(model, game_id, event_id):
    try:
        return model.objects.get(pk=event_id, game_id=game_id)
    except model.DoesNotExist:
        raise EventNotFound(f"{model._meta.verbose_name} {event_id} not found")


def _require(result, prefix):
    if not result.valid:
        raise InvalidEventError(f"{prefix}: {result.error}")


def _clean(instance):
    try:
        instance.full_clean()
    except ValidationError as e:
        raise InvalidEventError('; '.join(e.messages))


# ============================================================================
# GOALS
# ============================================================================

def _check_team_goal(context, scorer_id, assister_id, minute, goal_type, involvements):
    if scorer_id is None and goal_type != GoalType.OWN_GOAL:
        raise InvalidEventError('Scorer is required for team goals')

    _require(
        validate_goal_involvement(scorer_id, assister_id, [player_id for player_id, _ in involvements]),
        'Invalid goal assignment'
    )
    if scorer_id is not None:
        _require(check_goal(context, scorer_id, assister_id, minute), 'Invalid goal assignment')


def _replace_involvements(goal, involvements):
    goal.involvements.all().delete()
    for player_id, contribution_type in involvements:
        involvement = GoalInvolvement(goal=goal, player_id=player_id, contribution_type=contribution_type)
        _clean(involvement)
        involvement.save()


def create_goal(game_id, minute, scorer_id=None, assister_id=None, is_opponent_goal=False,
                goal_type=GoalType.OPEN_PLAY, involvements=()):
    """
    Record a goal. involvements is a sequence of (player_id, contribution_type).

    Opponent goals carry no players; goal_number and match_state are left for
    the analytics pass when the game is marked as Done.
    """
    involvements = list(involvements)
    with transaction.atomic():
        _lock_game(game_id)

        if is_opponent_goal:
            goal = Goal(game_id=game_id, minute=minute, is_opponent_goal=True, goal_type=goal_type)
            involvements = []
        else:
            goal = Goal(
                game_id=game_id,
                minute=minute,
                scorer_id=scorer_id,
                assisted_by_id=assister_id,
                goal_type=goal_type,
            )
        _clean(goal)

        if not is_opponent_goal:
            context = MatchContext.load(game_id)
            _check_team_goal(context, scorer_id, assister_id, minute, goal_type, involvements)

        goal.save()
        _replace_involvements(goal, involvements)
        submit_recalc_job(game_id, RecalcJob.Kind.RECALC_GOALS_ASSISTS)

    logger.info("Goal %s recorded at minute %s in game %s", goal.pk, minute, game_id)
    return goal


def update_goal(game_id, goal_id, minute=UNSET, scorer_id=UNSET, assister_id=UNSET,
                goal_type=UNSET, involvements=UNSET):
    with transaction.atomic():
        _lock_game(game_id)
        goal = _get_event(Goal, game_id, goal_id)

        if minute is not UNSET:
            goal.minute = minute
        if goal_type is not UNSET:
            goal.goal_type = goal_type
        if not goal.is_opponent_goal:
            if scorer_id is not UNSET:
                goal.scorer_id = scorer_id
            if assister_id is not UNSET:
                goal.assisted_by_id = assister_id
        _clean(goal)

        if involvements is UNSET:
            involvements = list(goal.involvements.values_list('player_id', 'contribution_type'))
        elif goal.is_opponent_goal:
            involvements = []
        else:
            involvements = list(involvements)

        if not goal.is_opponent_goal:
            context = MatchContext.load(game_id).without(EventKind.GOAL, goal.pk)
            _check_team_goal(context, goal.scorer_id, goal.assisted_by_id, goal.minute, goal.goal_type, involvements)

        goal.save()
        _replace_involvements(goal, involvements)
        submit_recalc_job(game_id, RecalcJob.Kind.RECALC_GOALS_ASSISTS)

    return goal


def delete_goal(game_id, goal_id):
    with transaction.atomic():
        _lock_game(game_id)
        goal = _get_event(Goal, game_id, goal_id)
        goal.delete()
        submit_recalc_job(game_id, RecalcJob.Kind.RECALC_GOALS_ASSISTS)

    logger.info("Goal %s deleted from game %s", goal_id, game_id)


# ============================================================================
# CARDS
# ============================================================================

def _existing_card_types(game_id, player_id, exclude_id=None):
    cards = Card.objects.filter(game_id=game_id, player_id=player_id)
    if exclude_id is not None:
        cards = cards.exclude(pk=exclude_id)
    return list(cards.values_list('card_type', flat=True))


def _check_card_sequence(card, exclude_id=None):
    _require(
        can_receive_card(_existing_card_types(card.game_id, card.player_id, exclude_id), card.card_type),
        'Invalid card assignment'
    )


def _check_card(context, card):
    _check_card_sequence(card)
    _require(check_card(context, card.player_id, card.minute), 'Invalid card assignment')


def create_card(game_id, player_id, card_type, minute, reason=''):
    with transaction.atomic():
        _lock_game(game_id)
        card = Card(game_id=game_id, player_id=player_id, card_type=card_type, minute=minute, reason=reason)
        _clean(card)

        _check_card(MatchContext.load(game_id), card)

        if card.sends_off:
            _require(
                validate_future_consistency(
                    game_id,
                    FutureEventCandidate(
                        kind=EventKind.CARD,
                        minute=minute,
                        player_id=player_id,
                        card_type=CardType(card_type),
                    ),
                ),
                'Invalid card assignment'
            )

        card.save()
        if card.sends_off:
            submit_recalc_job(game_id)

    logger.info("%s card %s recorded at minute %s in game %s", card_type, card.pk, minute, game_id)
    return card


def update_card(game_id, card_id, card_type=UNSET, minute=UNSET, reason=UNSET):
    """
    Edit a card. The card sequence is re-checked only when the type changes,
    player eligibility only when the minute changes; a reason-only edit is
    always accepted.
    """
    with transaction.atomic():
        _lock_game(game_id)
        card = _get_event(Card, game_id, card_id)
        was_sending_off = card.sends_off
        type_changed = card_type is not UNSET and card_type != card.card_type
        minute_changed = minute is not UNSET and minute != card.minute

        if card_type is not UNSET:
            card.card_type = card_type
        if minute is not UNSET:
            card.minute = minute
        if reason is not UNSET:
            card.reason = reason
        _clean(card)

        if type_changed:
            _check_card_sequence(card, exclude_id=card.pk)
        if minute_changed:
            context = MatchContext.load(game_id).without(EventKind.CARD, card.pk)
            _require(check_card(context, card.player_id, card.minute), 'Invalid card assignment')

        card.save()
        if was_sending_off != card.sends_off or (card.sends_off and minute_changed):
            submit_recalc_job(game_id)

    return card


def delete_card(game_id, card_id):
    with transaction.atomic():
        _lock_game(game_id)
        card = _get_event(Card, game_id, card_id)
        sends_off = card.sends_off
        card.delete()
        if sends_off:
            submit_recalc_job(game_id)

    logger.info("Card %s deleted from game %s", card_id, game_id)


# ============================================================================
# SUBSTITUTIONS
# ============================================================================

def create_substitution(game_id, player_out_id, player_in_id, minute,
                        reason=SubstitutionReason.TACTICAL, match_state=MatchState.DRAWING, tactical_note=''):
    with transaction.atomic():
        _lock_game(game_id)
        substitution = Substitution(
            game_id=game_id,
            player_out_id=player_out_id,
            player_in_id=player_in_id,
            minute=minute,
            reason=reason,
            match_state=match_state,
            tactical_note=tactical_note,
        )
        _clean(substitution)

        context = MatchContext.load(game_id)
        _require(check_substitution(context, player_out_id, player_in_id, minute), 'Invalid substitution')
        _require(
            validate_future_consistency(
                game_id,
                FutureEventCandidate(kind=EventKind.SUBSTITUTION, minute=minute, player_out_id=player_out_id),
            ),
            'Invalid substitution'
        )

        substitution.save()
        submit_recalc_job(game_id)

    logger.info("Substitution %s recorded at minute %s in game %s", substitution.pk, minute, game_id)
    return substitution


def update_substitution(game_id, substitution_id, player_out_id=UNSET, player_in_id=UNSET, minute=UNSET,
                        reason=UNSET, match_state=UNSET, tactical_note=UNSET):
    with transaction.atomic():
        _lock_game(game_id)
        substitution = _get_event(Substitution, game_id, substitution_id)

        changes = {
            'player_out_id': player_out_id,
            'player_in_id': player_in_id,
            'minute': minute,
            'reason': reason,
            'match_state': match_state,
            'tactical_note': tactical_note,
        }
        for attr, value in changes.items():
            if value is not UNSET:
                setattr(substitution, attr, value)
        _clean(substitution)

        context = MatchContext.load(game_id).without(EventKind.SUBSTITUTION, substitution.pk)
        _require(
            check_substitution(context, substitution.player_out_id, substitution.player_in_id, substitution.minute),
            'Invalid substitution'
        )

        substitution.save()
        submit_recalc_job(game_id)

    return substitution


def delete_substitution(game_id, substitution_id):
    with transaction.atomic():
        _lock_game(game_id)
        substitution = _get_event(Substitution, game_id, substitution_id)
        substitution.delete()
        submit_recalc_job(game_id)

    logger.info("Substitution %s deleted from game %s", substitution_id, game_id)


# ============================================================================
# GAME LIFECYCLE
# ============================================================================

def start_game(game_id, roster):
    """
    Move a Scheduled game to Played and create its roster.

    roster maps player_id -> RosterStatus. Starters are marked as appeared
    straight away; bench players only once the minutes recalculation sees
    them come on.
    """
    if not roster:
        raise InvalidEventError('A roster is required to start a game')

    with transaction.atomic():
        game = _lock_game(game_id)
        if game.status != GameStatus.SCHEDULED:
            raise InvalidEventError('Can only start games with status "Scheduled"')

        game.status = GameStatus.PLAYED
        game.save(update_fields=['status'])

        rosters = []
        for player_id, status in roster.items():
            try:
                status = RosterStatus(status)
            except ValueError:
                raise InvalidEventError(f"Invalid roster status: {status}")

            if not Player.objects.filter(pk=player_id).exists():
                logger.warning("Player %s not found, skipping roster entry for game %s", player_id, game_id)
                continue

            entry, _ = GameRoster.objects.update_or_create(
                game=game,
                player_id=player_id,
                defaults={
                    'status': status,
                    'appeared_in_match': status == RosterStatus.STARTING_LINEUP,
                },
            )
            rosters.append(entry)

        submit_recalc_job(game_id)

    logger.info("Game %s started with %s roster entries", game_id, len(rosters))
    return game, rosters


def _run_match_analytics(game_id):
    try:
        with transaction.atomic():
            recalculate_goal_analytics(game_id)
    except Exception:
        logger.exception("Goal analytics failed for game %s", game_id)

    try:
        with transaction.atomic():
            recalculate_substitution_analytics(game_id)
    except Exception:
        logger.exception("Substitution analytics failed for game %s", game_id)


def change_game_status(game_id, status, our_score=None, opponent_score=None):
    """
    Set the game status (and final score when given).

    Entering Played or Done queues a minutes recalculation; entering Done
    also numbers the goals and stamps the match state on goals and
    substitutions. A failure in the analytics is logged only.
    """
    try:
        status = GameStatus(status)
    except ValueError:
        raise InvalidEventError(f"Invalid game status: {status}")

    with transaction.atomic():
        game = _lock_game(game_id)
        previous = game.status

        game.status = status
        if our_score is not None:
            game.our_score = our_score
        if opponent_score is not None:
            game.opponent_score = opponent_score
        game.save(update_fields=['status', 'our_score', 'opponent_score'])

        if status != previous and status in (GameStatus.PLAYED, GameStatus.DONE):
            submit_recalc_job(game_id)

        if status == GameStatus.DONE and previous != GameStatus.DONE:
            _run_match_analytics(game_id)

    logger.info("Game %s status %s -> %s", game_id, previous, status)
    return game


def update_match_duration(game_id, regular_time=None, first_half_extra_time=0, second_half_extra_time=0):
    max_extra = get_setting('MATCHES_MAX_EXTRA_TIME')
    if regular_time is None:
        regular_time = get_setting('MATCHES_DEFAULT_MATCH_DURATION')

    if regular_time <= 0:
        raise InvalidEventError('Regular time must be a positive number of minutes')
    if not 0 <= first_half_extra_time <= max_extra:
        raise InvalidEventError(f"First half extra time must be between 0 and {max_extra} minutes")
    if not 0 <= second_half_extra_time <= max_extra:
        raise InvalidEventError(f"Second half extra time must be between 0 and {max_extra} minutes")

    with transaction.atomic():
        game = _lock_game(game_id)
        game.regular_time = regular_time
        game.first_half_extra_time = first_half_extra_time
        game.second_half_extra_time = second_half_extra_time
        game.save(update_fields=['regular_time', 'first_half_extra_time', 'second_half_extra_time'])
        submit_recalc_job(game_id)

    logger.info("Game %s duration set to %s minutes", game_id, game.total_match_duration)
    return game
