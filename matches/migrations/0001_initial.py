import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import matches.conf


MINUTE_VALIDATORS = [
    django.core.validators.MinValueValidator(1),
    django.core.validators.MaxValueValidator(120),
]

MATCH_STATE_CHOICES = [('winning', 'Winning'), ('drawing', 'Drawing'), ('losing', 'Losing')]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Team',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('short_name', models.CharField(blank=True, default='', max_length=50)),
            ],
            options={
                'verbose_name': 'Team',
                'verbose_name_plural': 'Teams',
                'db_table': 'teams',
            },
        ),
        migrations.CreateModel(
            name='Player',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('full_name', models.CharField(max_length=200)),
                ('kit_number', models.IntegerField(blank=True, null=True)),
                ('position', models.CharField(blank=True, default='', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('team', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='players', to='matches.team')),
            ],
            options={
                'verbose_name': 'Player',
                'verbose_name_plural': 'Players',
                'db_table': 'players',
            },
        ),
        migrations.CreateModel(
            name='Game',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('opponent', models.CharField(max_length=200)),
                ('date', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('status', models.CharField(choices=[('Scheduled', 'Scheduled'), ('Played', 'Played'), ('Done', 'Done'), ('Postponed', 'Postponed')], default='Scheduled', max_length=20)),
                ('our_score', models.IntegerField(blank=True, null=True)),
                ('opponent_score', models.IntegerField(blank=True, null=True)),
                ('regular_time', models.PositiveIntegerField(default=90)),
                ('first_half_extra_time', models.PositiveIntegerField(default=0)),
                ('second_half_extra_time', models.PositiveIntegerField(default=0)),
                ('team', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='games', to='matches.team')),
            ],
            options={
                'verbose_name': 'Game',
                'verbose_name_plural': 'Games',
                'db_table': 'games',
                'indexes': [models.Index(fields=['status', 'date'], name='games_status_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='GameRoster',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('Starting Lineup', 'Starting Lineup'), ('Bench', 'Bench'), ('Unavailable', 'Unavailable'), ('Not in Squad', 'Not in Squad')], default='Not in Squad', max_length=20)),
                ('appeared_in_match', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('game', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rosters', to='matches.game')),
                ('player', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='game_rosters', to='matches.player')),
            ],
            options={
                'verbose_name': 'Game Roster',
                'verbose_name_plural': 'Game Rosters',
                'db_table': 'game_rosters',
                'indexes': [models.Index(fields=['game', 'status'], name='game_rosters_game_status_idx')],
                'unique_together': {('game', 'player')},
            },
        ),
        migrations.CreateModel(
            name='Goal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('minute', models.IntegerField(validators=MINUTE_VALIDATORS)),
                ('is_opponent_goal', models.BooleanField(default=False)),
                ('goal_type', models.CharField(choices=[('open-play', 'Open Play'), ('set-piece', 'Set Piece'), ('penalty', 'Penalty'), ('counter-attack', 'Counter Attack'), ('own-goal', 'Own Goal')], default='open-play', max_length=20)),
                ('goal_number', models.PositiveIntegerField(blank=True, null=True)),
                ('match_state', models.CharField(blank=True, choices=MATCH_STATE_CHOICES, max_length=10, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assisted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='goals_assisted', to='matches.player')),
                ('game', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='goals', to='matches.game')),
                ('scorer', models.ForeignKey(blank=True, help_text='Empty for opponent goals and own goals', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='goals_scored', to='matches.player')),
            ],
            options={
                'verbose_name': 'Goal',
                'verbose_name_plural': 'Goals',
                'db_table': 'goals',
                'ordering': ['game', 'minute', 'created_at'],
                'indexes': [
                    models.Index(fields=['game', 'minute'], name='goals_game_minute_idx'),
                    models.Index(fields=['game', 'goal_number'], name='goals_game_goal_number_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='GoalInvolvement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('contribution_type', models.CharField(choices=[('pre-assist', 'Pre-assist'), ('space-creation', 'Space Creation'), ('defensive-action', 'Defensive Action'), ('set-piece-delivery', 'Set Piece Delivery'), ('pressing-action', 'Pressing Action'), ('other', 'Other')], max_length=30)),
                ('goal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='involvements', to='matches.goal')),
                ('player', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='goal_involvements', to='matches.player')),
            ],
            options={
                'verbose_name': 'Goal Involvement',
                'verbose_name_plural': 'Goal Involvements',
                'db_table': 'goal_involvements',
                'unique_together': {('goal', 'player')},
            },
        ),
        migrations.CreateModel(
            name='Card',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('card_type', models.CharField(choices=[('yellow', 'Yellow'), ('red', 'Red'), ('second-yellow', 'Second Yellow')], max_length=20)),
                ('minute', models.IntegerField(validators=MINUTE_VALIDATORS)),
                ('reason', models.CharField(blank=True, default='', max_length=200)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('game', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cards', to='matches.game')),
                ('player', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cards', to='matches.player')),
            ],
            options={
                'verbose_name': 'Card',
                'verbose_name_plural': 'Cards',
                'db_table': 'cards',
                'ordering': ['game', 'minute', 'created_at'],
                'indexes': [
                    models.Index(fields=['game', 'minute'], name='cards_game_minute_idx'),
                    models.Index(fields=['game', 'player'], name='cards_game_player_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Substitution',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('minute', models.IntegerField(validators=MINUTE_VALIDATORS)),
                ('reason', models.CharField(choices=[('tactical', 'Tactical'), ('tired', 'Tired'), ('injury', 'Injury'), ('yellow-card-risk', 'Yellow Card Risk'), ('poor-performance', 'Poor Performance'), ('other', 'Other')], default='tactical', max_length=20)),
                ('match_state', models.CharField(choices=MATCH_STATE_CHOICES, default='drawing', max_length=10)),
                ('tactical_note', models.CharField(blank=True, default='', max_length=500)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('game', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='substitutions', to='matches.game')),
                ('player_in', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='substitutions_in', to='matches.player')),
                ('player_out', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='substitutions_out', to='matches.player')),
            ],
            options={
                'verbose_name': 'Substitution',
                'verbose_name_plural': 'Substitutions',
                'db_table': 'substitutions',
                'ordering': ['game', 'minute', 'created_at'],
                'indexes': [models.Index(fields=['game', 'minute'], name='substitutions_game_minute_idx')],
            },
        ),
        migrations.CreateModel(
            name='PlayerMatchStats',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('minutes_played', models.IntegerField(default=0)),
                ('goals', models.IntegerField(default=0)),
                ('assists', models.IntegerField(default=0)),
                ('minutes_calculated_at', models.DateTimeField(blank=True, null=True)),
                ('goals_calculated_at', models.DateTimeField(blank=True, null=True)),
                ('game', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='player_stats', to='matches.game')),
                ('player', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='match_stats', to='matches.player')),
            ],
            options={
                'verbose_name': 'Player Match Statistics',
                'verbose_name_plural': 'Player Match Statistics',
                'db_table': 'player_match_stats',
                'unique_together': {('game', 'player')},
            },
        ),
        migrations.CreateModel(
            name='RecalcJob',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('recalc-minutes', 'Recalculate minutes'), ('recalc-goals-assists', 'Recalculate goals and assists')], db_index=True, max_length=30)),
                ('payload', models.JSONField(default=dict)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('running', 'Running'), ('completed', 'Completed'), ('failed', 'Failed')], db_index=True, default='pending', max_length=20)),
                ('retry_count', models.PositiveIntegerField(default=0)),
                ('max_retries', models.PositiveIntegerField(default=matches.conf.default_max_retries)),
                ('last_error', models.TextField(blank=True, null=True)),
                ('run_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Recalculation Job',
                'verbose_name_plural': 'Recalculation Jobs',
                'db_table': 'recalc_jobs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'run_at'], name='recalc_jobs_status_run_at_idx'),
                    models.Index(fields=['kind', 'status'], name='recalc_jobs_kind_status_idx'),
                ],
            },
        ),
    ]
