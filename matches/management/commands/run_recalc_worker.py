"""
Recalculation worker: polls the job queue and reruns derived statistics
Usage: python manage.py run_recalc_worker [--interval 5] [--once]
"""
from django.core.management.base import BaseCommand

from matches.conf import get_setting
from matches.jobs import process_next_job, run_worker
from matches.models import RecalcJob


class Command(BaseCommand):
    help = 'Run the background worker that processes recalculation jobs'

    def add_arguments(self, parser):
        parser.add_argument(
            '--interval',
            type=float,
            default=None,
            help='Seconds to wait between polls when the queue is empty (default: MATCHES_WORKER_POLL_INTERVAL)'
        )
        parser.add_argument(
            '--once',
            action='store_true',
            help='Process at most one job and exit'
        )

    def handle(self, *args, **options):
        if options['once']:
            job = process_next_job()
            if job is None:
                self.stdout.write('No pending jobs')
            elif job.status == RecalcJob.Status.COMPLETED:
                self.stdout.write(self.style.SUCCESS(f'Job {job.pk} ({job.kind}) completed'))
            else:
                self.stdout.write(self.style.ERROR(
                    f'Job {job.pk} ({job.kind}) failed: {job.last_error} [status: {job.status}]'
                ))
            return

        interval = options['interval']
        if interval is None:
            interval = get_setting('MATCHES_WORKER_POLL_INTERVAL')

        self.stdout.write(self.style.SUCCESS(f'Recalculation worker started (interval {interval}s)'))
        try:
            processed = run_worker(poll_interval=interval)
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('Worker stopped'))
            return
        self.stdout.write(self.style.SUCCESS(f'Worker finished, {processed} jobs processed'))
