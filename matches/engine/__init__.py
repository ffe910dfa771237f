from matches.engine.analytics import recalculate_goal_analytics, recalculate_substitution_analytics
from matches.engine.consistency import FutureEventCandidate, validate_future_consistency
from matches.engine.minutes import calculate_minutes, compute_minutes, recalculate_player_minutes
from matches.engine.rules import (
    ValidationResult,
    can_receive_card,
    validate_card,
    validate_goal,
    validate_goal_involvement,
    validate_substitution,
)
from matches.engine.state import PlayerState, state_at
from matches.engine.stats import calculate_goals_assists, recalculate_goals_assists
from matches.engine.store import EventStore, MatchNotFound, StoreError
from matches.engine.timeline import (
    CardEvent,
    EventKind,
    GoalEvent,
    SubstitutionEvent,
    build_timeline,
    get_timeline,
)


def __getattr__(name):
    # matches.jobs imports the engine, so the queue entry point is resolved lazily
    if name == 'submit_recalc_job':
        from matches.jobs import submit_recalc_job
        return submit_recalc_job
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
