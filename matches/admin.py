from django.contrib import admin
from django.utils import timezone
from django.utils.html import format_html

from .models import (
    Card, Game, GameRoster, Goal, GoalInvolvement, Player, PlayerMatchStats,
    RecalcJob, Substitution, Team
)


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ('name', 'short_name')
    search_fields = ('name', 'short_name')
    ordering = ('name',)


@admin.register(Player)
class PlayerAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'kit_number', 'position', 'team')
    list_filter = ('position', 'team')
    search_fields = ('full_name',)
    list_select_related = ('team',)
    ordering = ('full_name',)


class GameRosterInline(admin.TabularInline):
    model = GameRoster
    extra = 0
    fields = ('player', 'status', 'appeared_in_match')
    readonly_fields = ('appeared_in_match',)


@admin.register(Game)
class GameAdmin(admin.ModelAdmin):
    list_display = ('get_game_info', 'date', 'status', 'get_score', 'get_duration')
    list_filter = ('status', 'team', ('date', admin.DateFieldListFilter))
    search_fields = ('team__name', 'opponent')
    date_hierarchy = 'date'
    list_select_related = ('team',)
    ordering = ('-date',)
    inlines = [GameRosterInline]

    fieldsets = (
        ('Game Information', {
            'fields': ('team', 'opponent', 'date', 'status')
        }),
        ('Score', {
            'fields': (('our_score', 'opponent_score'),)
        }),
        ('Duration', {
            'fields': ('regular_time', ('first_half_extra_time', 'second_half_extra_time'))
        }),
    )

    def get_game_info(self, obj):
        return f"{obj.team.name} vs {obj.opponent}"
    get_game_info.short_description = 'Game'

    def get_score(self, obj):
        score = obj.final_score_display
        if score is None:
            return '-'
        return format_html('<strong>{}</strong>', score)
    get_score.short_description = 'Score'

    def get_duration(self, obj):
        return f"{obj.total_match_duration}'"
    get_duration.short_description = 'Duration'


class GoalInvolvementInline(admin.TabularInline):
    model = GoalInvolvement
    extra = 0


@admin.register(Goal)
class GoalAdmin(admin.ModelAdmin):
    list_display = ('game', 'minute', 'scorer', 'assisted_by', 'is_opponent_goal', 'goal_type', 'goal_number', 'match_state')
    list_filter = ('is_opponent_goal', 'goal_type', 'match_state')
    search_fields = ('scorer__full_name', 'assisted_by__full_name', 'game__opponent')
    list_select_related = ('game', 'game__team', 'scorer', 'assisted_by')
    readonly_fields = ('goal_number', 'match_state', 'created_at')
    inlines = [GoalInvolvementInline]


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = ('game', 'minute', 'player', 'get_card')
    list_filter = ('card_type',)
    search_fields = ('player__full_name', 'game__opponent')
    list_select_related = ('game', 'game__team', 'player')
    readonly_fields = ('created_at',)

    def get_card(self, obj):
        color = 'red' if obj.sends_off else 'goldenrod'
        return format_html('<span style="color: {};">{}</span>', color, obj.get_card_type_display())
    get_card.short_description = 'Card'


@admin.register(Substitution)
class SubstitutionAdmin(admin.ModelAdmin):
    list_display = ('game', 'minute', 'player_out', 'player_in', 'reason', 'match_state')
    list_filter = ('reason', 'match_state')
    search_fields = ('player_out__full_name', 'player_in__full_name', 'game__opponent')
    list_select_related = ('game', 'game__team', 'player_out', 'player_in')
    readonly_fields = ('created_at',)


@admin.register(PlayerMatchStats)
class PlayerMatchStatsAdmin(admin.ModelAdmin):
    list_display = ('player', 'game', 'minutes_played', 'goals', 'assists', 'minutes_calculated_at')
    search_fields = ('player__full_name', 'game__opponent')
    list_select_related = ('player', 'game', 'game__team')
    readonly_fields = ('minutes_calculated_at', 'goals_calculated_at')


@admin.register(RecalcJob)
class RecalcJobAdmin(admin.ModelAdmin):
    list_display = ('id', 'kind', 'get_game', 'get_status', 'retry_count', 'max_retries', 'run_at', 'completed_at')
    list_filter = ('status', 'kind')
    ordering = ('-created_at',)
    readonly_fields = ('started_at', 'completed_at', 'created_at', 'updated_at', 'last_error')
    actions = ['requeue_jobs']

    def get_game(self, obj):
        return obj.game_id
    get_game.short_description = 'Game'

    def get_status(self, obj):
        colors = {
            RecalcJob.Status.PENDING: 'gray',
            RecalcJob.Status.RUNNING: 'blue',
            RecalcJob.Status.COMPLETED: 'green',
            RecalcJob.Status.FAILED: 'red',
        }
        return format_html('<span style="color: {};">{}</span>', colors.get(obj.status, 'black'), obj.status)
    get_status.short_description = 'Status'

    def requeue_jobs(self, request, queryset):
        updated = queryset.exclude(status=RecalcJob.Status.PENDING).update(
            status=RecalcJob.Status.PENDING,
            retry_count=0,
            run_at=timezone.now(),
            started_at=None,
            completed_at=None,
        )
        self.message_user(request, f"{updated} job(s) requeued")
    requeue_jobs.short_description = 'Requeue selected jobs'
