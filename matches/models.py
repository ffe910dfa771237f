"""
Django models for match management
Teams, players and games are consumed as lookups; goals, cards and
substitutions are the raw events the timeline is projected from.
"""

from datetime import timedelta

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models, transaction
from django.utils import timezone

from matches.conf import default_max_retries, get_setting


MINUTE_VALIDATORS = [MinValueValidator(1), MaxValueValidator(120)]


# ============================================================================
# CLOSED ENUMERATIONS
# ============================================================================

class GameStatus(models.TextChoices):
    SCHEDULED = 'Scheduled', 'Scheduled'
    PLAYED = 'Played', 'Played'
    DONE = 'Done', 'Done'
    POSTPONED = 'Postponed', 'Postponed'


class RosterStatus(models.TextChoices):
    STARTING_LINEUP = 'Starting Lineup', 'Starting Lineup'
    BENCH = 'Bench', 'Bench'
    UNAVAILABLE = 'Unavailable', 'Unavailable'
    NOT_IN_SQUAD = 'Not in Squad', 'Not in Squad'


class CardType(models.TextChoices):
    YELLOW = 'yellow', 'Yellow'
    RED = 'red', 'Red'
    SECOND_YELLOW = 'second-yellow', 'Second Yellow'

    @property
    def sends_off(self):
        return self in (CardType.RED, CardType.SECOND_YELLOW)


class GoalType(models.TextChoices):
    OPEN_PLAY = 'open-play', 'Open Play'
    SET_PIECE = 'set-piece', 'Set Piece'
    PENALTY = 'penalty', 'Penalty'
    COUNTER_ATTACK = 'counter-attack', 'Counter Attack'
    OWN_GOAL = 'own-goal', 'Own Goal'


class MatchState(models.TextChoices):
    WINNING = 'winning', 'Winning'
    DRAWING = 'drawing', 'Drawing'
    LOSING = 'losing', 'Losing'


class SubstitutionReason(models.TextChoices):
    TACTICAL = 'tactical', 'Tactical'
    TIRED = 'tired', 'Tired'
    INJURY = 'injury', 'Injury'
    YELLOW_CARD_RISK = 'yellow-card-risk', 'Yellow Card Risk'
    POOR_PERFORMANCE = 'poor-performance', 'Poor Performance'
    OTHER = 'other', 'Other'


class ContributionType(models.TextChoices):
    PRE_ASSIST = 'pre-assist', 'Pre-assist'
    SPACE_CREATION = 'space-creation', 'Space Creation'
    DEFENSIVE_ACTION = 'defensive-action', 'Defensive Action'
    SET_PIECE_DELIVERY = 'set-piece-delivery', 'Set Piece Delivery'
    PRESSING_ACTION = 'pressing-action', 'Pressing Action'
    OTHER = 'other', 'Other'


# ============================================================================
# TEAMS, PLAYERS, GAMES
# ============================================================================

class Team(models.Model):
    """Equipo"""
    name = models.CharField(max_length=200)
    short_name = models.CharField(max_length=50, blank=True, default='')

    class Meta:
        db_table = 'teams'
        verbose_name = 'Team'
        verbose_name_plural = 'Teams'

    def __str__(self):
        return self.name


class Player(models.Model):
    """Jugador individual"""
    full_name = models.CharField(max_length=200)
    kit_number = models.IntegerField(null=True, blank=True)
    position = models.CharField(max_length=20, blank=True, default='')  # GK, DF, MF, FW
    team = models.ForeignKey(Team, on_delete=models.SET_NULL, null=True, blank=True, related_name='players')

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'players'
        verbose_name = 'Player'
        verbose_name_plural = 'Players'

    def __str__(self):
        return f"{self.full_name} ({self.position})" if self.position else self.full_name


class Game(models.Model):
    """Partido"""
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name='games')
    opponent = models.CharField(max_length=200)
    date = models.DateTimeField(default=timezone.now, db_index=True)
    status = models.CharField(max_length=20, choices=GameStatus.choices, default=GameStatus.SCHEDULED)

    # Resultado
    our_score = models.IntegerField(null=True, blank=True)
    opponent_score = models.IntegerField(null=True, blank=True)

    # Duración (tiempo reglamentario + añadido)
    regular_time = models.PositiveIntegerField(default=90)
    first_half_extra_time = models.PositiveIntegerField(default=0)
    second_half_extra_time = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'games'
        verbose_name = 'Game'
        verbose_name_plural = 'Games'
        indexes = [
            models.Index(fields=['status', 'date'], name='games_status_date_idx'),
        ]

    def __str__(self):
        return f"{self.team.name} vs {self.opponent} ({self.date.date()})"

    @property
    def total_match_duration(self):
        """Regular time plus stoppage time of both halves"""
        regular = self.regular_time or get_setting('MATCHES_DEFAULT_MATCH_DURATION')
        return regular + (self.first_half_extra_time or 0) + (self.second_half_extra_time or 0)

    @property
    def final_score_display(self):
        if self.our_score is None or self.opponent_score is None:
            return None
        return f"{self.our_score} - {self.opponent_score}"


class GameRoster(models.Model):
    """Convocatoria de un jugador para un partido"""
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name='rosters')
    player = models.ForeignKey(Player, on_delete=models.CASCADE, related_name='game_rosters')
    status = models.CharField(max_length=20, choices=RosterStatus.choices, default=RosterStatus.NOT_IN_SQUAD)

    # Written only by the minutes recalculation
    appeared_in_match = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'game_rosters'
        verbose_name = 'Game Roster'
        verbose_name_plural = 'Game Rosters'
        unique_together = [['game', 'player']]
        indexes = [
            models.Index(fields=['game', 'status'], name='game_rosters_game_status_idx'),
        ]

    def __str__(self):
        return f"{self.player.full_name} - {self.status}"


# ============================================================================
# MATCH EVENTS
# ============================================================================

class Goal(models.Model):
    """Gol (propio o del rival)"""
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name='goals')
    minute = models.IntegerField(validators=MINUTE_VALIDATORS)

    scorer = models.ForeignKey(
        Player,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='goals_scored',
        help_text='Empty for opponent goals and own goals'
    )
    assisted_by = models.ForeignKey(
        Player,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='goals_assisted'
    )
    is_opponent_goal = models.BooleanField(default=False)
    goal_type = models.CharField(max_length=20, choices=GoalType.choices, default=GoalType.OPEN_PLAY)

    # Calculated when the game is marked as Done
    goal_number = models.PositiveIntegerField(null=True, blank=True)
    match_state = models.CharField(max_length=10, choices=MatchState.choices, null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'goals'
        verbose_name = 'Goal'
        verbose_name_plural = 'Goals'
        ordering = ['game', 'minute', 'created_at']
        indexes = [
            models.Index(fields=['game', 'minute'], name='goals_game_minute_idx'),
            models.Index(fields=['game', 'goal_number'], name='goals_game_goal_number_idx'),
        ]

    def __str__(self):
        if self.is_opponent_goal:
            return f"{self.minute}' opponent goal"
        scorer = self.scorer.full_name if self.scorer else 'Own goal'
        return f"{self.minute}' {scorer}"

    def clean(self):
        if self.scorer_id and self.assisted_by_id and self.scorer_id == self.assisted_by_id:
            raise ValidationError('Scorer and assister cannot be the same player')
        if self.is_opponent_goal and (self.scorer_id or self.assisted_by_id):
            raise ValidationError('Opponent goals cannot reference our players')


class GoalInvolvement(models.Model):
    """Contribución adicional a un gol (pre-asistencia, presión, etc.)"""
    goal = models.ForeignKey(Goal, on_delete=models.CASCADE, related_name='involvements')
    player = models.ForeignKey(Player, on_delete=models.CASCADE, related_name='goal_involvements')
    contribution_type = models.CharField(max_length=30, choices=ContributionType.choices)

    class Meta:
        db_table = 'goal_involvements'
        verbose_name = 'Goal Involvement'
        verbose_name_plural = 'Goal Involvements'
        unique_together = [['goal', 'player']]

    def __str__(self):
        return f"{self.player.full_name} ({self.contribution_type})"


class Card(models.Model):
    """Tarjeta amarilla, roja o segunda amarilla"""
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name='cards')
    player = models.ForeignKey(Player, on_delete=models.CASCADE, related_name='cards')
    card_type = models.CharField(max_length=20, choices=CardType.choices)
    minute = models.IntegerField(validators=MINUTE_VALIDATORS)
    reason = models.CharField(max_length=200, blank=True, default='')

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cards'
        verbose_name = 'Card'
        verbose_name_plural = 'Cards'
        ordering = ['game', 'minute', 'created_at']
        indexes = [
            models.Index(fields=['game', 'minute'], name='cards_game_minute_idx'),
            models.Index(fields=['game', 'player'], name='cards_game_player_idx'),
        ]

    def __str__(self):
        return f"{self.minute}' {self.player.full_name} - {self.card_type}"

    @property
    def sends_off(self):
        return CardType(self.card_type).sends_off


class Substitution(models.Model):
    """Cambio: un jugador sale y otro entra"""
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name='substitutions')
    player_out = models.ForeignKey(Player, on_delete=models.CASCADE, related_name='substitutions_out')
    player_in = models.ForeignKey(Player, on_delete=models.CASCADE, related_name='substitutions_in')
    minute = models.IntegerField(validators=MINUTE_VALIDATORS)

    # Contexto
    reason = models.CharField(max_length=20, choices=SubstitutionReason.choices, default=SubstitutionReason.TACTICAL)
    match_state = models.CharField(max_length=10, choices=MatchState.choices, default=MatchState.DRAWING)
    tactical_note = models.CharField(max_length=500, blank=True, default='')

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'substitutions'
        verbose_name = 'Substitution'
        verbose_name_plural = 'Substitutions'
        ordering = ['game', 'minute', 'created_at']
        indexes = [
            models.Index(fields=['game', 'minute'], name='substitutions_game_minute_idx'),
        ]

    def __str__(self):
        return f"{self.minute}' {self.player_out.full_name} -> {self.player_in.full_name}"

    def clean(self):
        if self.player_out_id and self.player_out_id == self.player_in_id:
            raise ValidationError('Player coming in and going out cannot be the same')


# ============================================================================
# DERIVED STATISTICS
# ============================================================================

class PlayerMatchStats(models.Model):
    """Estadísticas derivadas de los eventos de un partido"""
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name='player_stats')
    player = models.ForeignKey(Player, on_delete=models.CASCADE, related_name='match_stats')

    minutes_played = models.IntegerField(default=0)
    goals = models.IntegerField(default=0)
    assists = models.IntegerField(default=0)

    # Metadata
    minutes_calculated_at = models.DateTimeField(null=True, blank=True)
    goals_calculated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'player_match_stats'
        verbose_name = 'Player Match Statistics'
        verbose_name_plural = 'Player Match Statistics'
        unique_together = [['game', 'player']]

    def __str__(self):
        return f"{self.player.full_name} - {self.game}"


# ============================================================================
# RECALCULATION QUEUE
# ============================================================================

class RecalcJob(models.Model):
    """
    Background recalculation job
    Polled by the worker; claimed atomically so two workers never run the same job
    """

    class Kind(models.TextChoices):
        RECALC_MINUTES = 'recalc-minutes', 'Recalculate minutes'
        RECALC_GOALS_ASSISTS = 'recalc-goals-assists', 'Recalculate goals and assists'

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        RUNNING = 'running', 'Running'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'

    kind = models.CharField(max_length=30, choices=Kind.choices, db_index=True)
    payload = models.JSONField(default=dict)  # {"game_id": 42}
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )

    # Retry tracking
    retry_count = models.PositiveIntegerField(default=0)
    max_retries = models.PositiveIntegerField(default=default_max_retries)
    last_error = models.TextField(null=True, blank=True)

    # Scheduling
    run_at = models.DateTimeField(default=timezone.now, db_index=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'recalc_jobs'
        verbose_name = 'Recalculation Job'
        verbose_name_plural = 'Recalculation Jobs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'run_at'], name='recalc_jobs_status_run_at_idx'),
            models.Index(fields=['kind', 'status'], name='recalc_jobs_kind_status_idx'),
        ]

    def __str__(self):
        return f"Job {self.id} - {self.kind} - {self.status}"

    @property
    def game_id(self):
        return self.payload.get('game_id')

    @classmethod
    def claim_next(cls, now=None):
        """
        Claim the oldest pending job whose run_at has passed.

        The row is locked with SKIP LOCKED and then flipped with a conditional
        UPDATE on status, so only one caller can move it to running.
        Returns None when nothing is claimable.
        """
        now = now or timezone.now()
        with transaction.atomic():
            candidate = (
                cls.objects.select_for_update(skip_locked=True)
                .filter(status=cls.Status.PENDING, run_at__lte=now)
                .order_by('run_at', 'created_at', 'pk')
                .first()
            )
            if candidate is None:
                return None

            claimed = cls.objects.filter(
                pk=candidate.pk,
                status=cls.Status.PENDING
            ).update(status=cls.Status.RUNNING, started_at=now, updated_at=now)

            if not claimed:
                return None

        candidate.refresh_from_db()
        return candidate

    def mark_completed(self):
        self.status = self.Status.COMPLETED
        self.completed_at = timezone.now()
        self.save(update_fields=['status', 'completed_at', 'updated_at'])

    def mark_failed(self, error, base_backoff_seconds=None):
        """Count a failed attempt; reschedule with exponential backoff or give up"""
        if base_backoff_seconds is None:
            base_backoff_seconds = get_setting('MATCHES_JOB_BASE_BACKOFF_SECONDS')

        now = timezone.now()
        self.retry_count += 1
        self.last_error = str(error) or error.__class__.__name__

        if self.retry_count >= self.max_retries:
            self.status = self.Status.FAILED
            self.completed_at = now
        else:
            backoff = base_backoff_seconds * (2 ** (self.retry_count - 1))
            self.status = self.Status.PENDING
            self.run_at = now + timedelta(seconds=backoff)
            self.started_at = None

        self.save(update_fields=[
            'retry_count', 'last_error', 'status', 'completed_at',
            'run_at', 'started_at', 'updated_at'
        ])
