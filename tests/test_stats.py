"""Tests for goals/assists and match analytics."""

import pytest

from matches.engine.analytics import (
    match_state_for,
    recalculate_goal_analytics,
    recalculate_substitution_analytics,
)
from matches.engine.stats import calculate_goals_assists, recalculate_goals_assists
from matches.models import Goal, GoalType, MatchState, PlayerMatchStats, Substitution


@pytest.mark.django_db
class TestGoalsAssists:
    """Team goals credited to scorers and assisters."""

    def test_counts_team_goals_only(self, roster, add_goal, game) -> None:
        striker, winger = roster.starters[9], roster.starters[10]
        add_goal(10, scorer=striker, assister=winger)
        add_goal(30, scorer=striker)
        add_goal(50, opponent=True)
        add_goal(70, scorer=None)  # own goal in our favour

        counts = calculate_goals_assists(game.pk)

        assert counts[striker.pk] == (2, 0)
        assert counts[winger.pk] == (0, 1)
        assert len(counts) == 2

    def test_persisted_and_reset(self, roster, add_goal, game) -> None:
        striker = roster.starters[9]
        goal = add_goal(10, scorer=striker)
        recalculate_goals_assists(game.pk)
        assert PlayerMatchStats.objects.get(game=game, player=striker).goals == 1

        goal.delete()
        recalculate_goals_assists(game.pk)

        stats = PlayerMatchStats.objects.get(game=game, player=striker)
        assert stats.goals == 0
        assert stats.goals_calculated_at is not None


def test_match_state_for() -> None:
    assert match_state_for(1, 0) == MatchState.WINNING
    assert match_state_for(1, 1) == MatchState.DRAWING
    assert match_state_for(0, 2) == MatchState.LOSING


@pytest.mark.django_db
class TestGoalAnalytics:
    """goal_number and match_state stamped in timeline order."""

    def test_numbers_and_states(self, roster, add_goal, game) -> None:
        striker = roster.starters[9]
        first = add_goal(10, opponent=True)
        second = add_goal(20, scorer=striker)
        third = add_goal(60, scorer=striker)
        fourth = add_goal(85, opponent=True)

        recalculate_goal_analytics(game.pk)

        expected = [
            (first, 1, MatchState.DRAWING),
            (second, 2, MatchState.LOSING),
            (third, 3, MatchState.DRAWING),
            (fourth, 4, MatchState.WINNING),
        ]
        for goal, number, state in expected:
            goal.refresh_from_db()
            assert goal.goal_number == number
            assert goal.match_state == state

    def test_no_goals(self, game) -> None:
        assert recalculate_goal_analytics(game.pk) == {}

    def test_own_goal_numbered(self, roster, game) -> None:
        goal = Goal.objects.create(game=game, minute=5, goal_type=GoalType.OWN_GOAL)
        recalculate_goal_analytics(game.pk)
        goal.refresh_from_db()
        assert goal.goal_number == 1


@pytest.mark.django_db
class TestSubstitutionAnalytics:
    """match_state stamped on substitutions from the score at their minute."""

    def test_states_follow_the_score(self, roster, add_goal, add_substitution, game) -> None:
        striker = roster.starters[9]
        add_goal(10, opponent=True)
        early = add_substitution(10, roster.starters[1], roster.bench[0])
        add_goal(30, scorer=striker)
        half_time = add_substitution(45, roster.starters[2], roster.bench[1])
        add_goal(60, scorer=striker)
        late = add_substitution(75, roster.starters[3], roster.bench[2])

        analytics = recalculate_substitution_analytics(game.pk)

        assert len(analytics) == 3
        expected = [
            (early, MatchState.LOSING),
            (half_time, MatchState.DRAWING),
            (late, MatchState.WINNING),
        ]
        for substitution, state in expected:
            substitution.refresh_from_db()
            assert substitution.match_state == state

    def test_goalless_game_is_drawing(self, roster, add_substitution, game) -> None:
        substitution = add_substitution(60, roster.starters[1], roster.bench[0])
        Substitution.objects.filter(pk=substitution.pk).update(match_state=MatchState.WINNING)

        recalculate_substitution_analytics(game.pk)

        substitution.refresh_from_db()
        assert substitution.match_state == MatchState.DRAWING

    def test_no_substitutions(self, roster, add_goal, game) -> None:
        add_goal(10, scorer=roster.starters[9])
        assert recalculate_substitution_analytics(game.pk) == {}
