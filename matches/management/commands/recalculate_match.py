"""
Recalculate derived statistics (minutes, goals, assists) for games
Usage: python manage.py recalculate_match --games 12,15 [--enqueue]
"""

from django.core.management.base import BaseCommand, CommandError

from matches.engine.minutes import recalculate_player_minutes
from matches.engine.stats import recalculate_goals_assists
from matches.engine.store import StoreError
from matches.jobs import submit_recalc_job
from matches.models import Game, GameStatus, RecalcJob


class Command(BaseCommand):
    help = 'Recalcula minutos, goles y asistencias de los partidos indicados'

    def add_arguments(self, parser):
        parser.add_argument(
            '--games',
            type=str,
            help='IDs de partidos separados por coma (ej: 12,15). Si no se especifica, todos los Played/Done'
        )
        parser.add_argument(
            '--skip-minutes',
            action='store_true',
            help='Saltar recálculo de minutos'
        )
        parser.add_argument(
            '--skip-goals',
            action='store_true',
            help='Saltar recálculo de goles y asistencias'
        )
        parser.add_argument(
            '--enqueue',
            action='store_true',
            help='Encolar jobs para el worker en lugar de recalcular aquí'
        )

    def handle(self, *args, **options):
        self.stdout.write("")
        self.stdout.write("="*70)
        self.stdout.write(self.style.SUCCESS('RECÁLCULO DE ESTADÍSTICAS DE PARTIDO'))
        self.stdout.write("="*70)
        self.stdout.write("")

        if options['games']:
            try:
                game_ids = [int(g) for g in options['games'].split(',') if g.strip()]
            except ValueError:
                raise CommandError(f"Invalid --games value: {options['games']}")
        else:
            game_ids = list(
                Game.objects.filter(status__in=[GameStatus.PLAYED, GameStatus.DONE])
                .order_by('date')
                .values_list('pk', flat=True)
            )

        self.stdout.write(f"Partidos a procesar: {len(game_ids)}")
        self.stdout.write("")

        failed = 0
        for game_id in game_ids:
            if options['enqueue']:
                self._enqueue(game_id, options)
                continue

            try:
                if not options['skip_minutes']:
                    minutes = recalculate_player_minutes(game_id)
                    self.stdout.write(f"  Game {game_id}: minutos de {len(minutes)} jugadores")
                if not options['skip_goals']:
                    contributions = recalculate_goals_assists(game_id)
                    self.stdout.write(f"  Game {game_id}: goles/asistencias de {len(contributions)} jugadores")
            except StoreError as e:
                failed += 1
                self.stdout.write(self.style.ERROR(f"  Game {game_id}: {e}"))

        self.stdout.write("")
        self.stdout.write("="*70)
        if failed:
            self.stdout.write(self.style.WARNING(f'FINALIZADO CON {failed} ERRORES'))
        else:
            self.stdout.write(self.style.SUCCESS('PROCESO COMPLETO FINALIZADO'))
        self.stdout.write("="*70)

    def _enqueue(self, game_id, options):
        kinds = []
        if not options['skip_minutes']:
            kinds.append(RecalcJob.Kind.RECALC_MINUTES)
        if not options['skip_goals']:
            kinds.append(RecalcJob.Kind.RECALC_GOALS_ASSISTS)

        for kind in kinds:
            job = submit_recalc_job(game_id, kind)
            if job is None:
                self.stdout.write(self.style.ERROR(f"  Game {game_id}: no se pudo encolar {kind}"))
            else:
                self.stdout.write(f"  Game {game_id}: job {job.pk} ({kind}) encolado")
