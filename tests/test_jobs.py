"""Tests for the recalculation queue and worker."""

from datetime import timedelta

import pytest
from django.utils import timezone

from matches import jobs
from matches.jobs import JobError, process_next_job, run_job, run_worker, submit_recalc_job
from matches.models import PlayerMatchStats, RecalcJob


@pytest.mark.django_db
class TestSubmit:
    """Job submission."""

    def test_creates_pending_job(self, game) -> None:
        job = submit_recalc_job(game.pk)

        assert job.kind == RecalcJob.Kind.RECALC_MINUTES
        assert job.status == RecalcJob.Status.PENDING
        assert job.payload == {'game_id': game.pk}
        assert job.retry_count == 0
        assert job.max_retries == 5

    def test_failure_is_swallowed(self, game, monkeypatch, caplog) -> None:
        """A broken queue never fails the caller."""
        def explode(*args, **kwargs):
            raise RuntimeError('queue down')

        monkeypatch.setattr(RecalcJob.objects, 'create', explode)

        assert submit_recalc_job(game.pk) is None
        assert 'Could not submit' in caplog.text


@pytest.mark.django_db
class TestClaim:
    """Atomic claim of the next eligible job."""

    def test_claims_oldest_due_job(self, game) -> None:
        now = timezone.now()
        later = RecalcJob.objects.create(kind=RecalcJob.Kind.RECALC_MINUTES, payload={'game_id': game.pk}, run_at=now)
        older = RecalcJob.objects.create(
            kind=RecalcJob.Kind.RECALC_MINUTES, payload={'game_id': game.pk}, run_at=now - timedelta(minutes=5)
        )

        job = RecalcJob.claim_next(now=now)

        assert job.pk == older.pk
        assert job.status == RecalcJob.Status.RUNNING
        assert job.started_at is not None
        later.refresh_from_db()
        assert later.status == RecalcJob.Status.PENDING

    def test_future_jobs_not_claimed(self, game) -> None:
        now = timezone.now()
        RecalcJob.objects.create(
            kind=RecalcJob.Kind.RECALC_MINUTES, payload={'game_id': game.pk}, run_at=now + timedelta(minutes=1)
        )
        assert RecalcJob.claim_next(now=now) is None

    def test_claimed_once(self, game) -> None:
        submit_recalc_job(game.pk)
        assert RecalcJob.claim_next() is not None
        assert RecalcJob.claim_next() is None


@pytest.mark.django_db
class TestMarkFailed:
    """Retry with exponential backoff, then give up."""

    def test_backoff_doubles(self, game) -> None:
        job = submit_recalc_job(game.pk)
        delays = []
        for _ in range(3):
            before = timezone.now()
            job.mark_failed(RuntimeError('boom'), base_backoff_seconds=60)
            delays.append((job.run_at - before).total_seconds())

        assert job.status == RecalcJob.Status.PENDING
        assert job.retry_count == 3
        assert job.started_at is None
        assert [round(d / 60) for d in delays] == [1, 2, 4]

    def test_failed_after_max_retries(self, game) -> None:
        job = submit_recalc_job(game.pk)
        for _ in range(job.max_retries):
            job.mark_failed(RuntimeError('database unavailable'))

        job.refresh_from_db()
        assert job.status == RecalcJob.Status.FAILED
        assert job.retry_count == 5
        assert job.last_error == 'database unavailable'
        assert job.completed_at is not None

    def test_failed_job_never_claimed(self, game) -> None:
        job = submit_recalc_job(game.pk)
        job.max_retries = 1
        job.save()
        job.mark_failed(RuntimeError('boom'))

        assert RecalcJob.claim_next(now=timezone.now() + timedelta(days=1)) is None


@pytest.mark.django_db
class TestProcessNextJob:
    """Dispatch by kind."""

    def test_runs_minutes_recalculation(self, roster, add_substitution, game) -> None:
        add_substitution(45, roster.starters[8], roster.bench[0])
        submit_recalc_job(game.pk)

        job = process_next_job()

        assert job.status == RecalcJob.Status.COMPLETED
        assert job.completed_at is not None
        assert PlayerMatchStats.objects.get(game=game, player=roster.bench[0]).minutes_played == 45

    def test_runs_goals_assists(self, roster, add_goal, game) -> None:
        add_goal(10, scorer=roster.starters[9])
        submit_recalc_job(game.pk, RecalcJob.Kind.RECALC_GOALS_ASSISTS)

        process_next_job()

        assert PlayerMatchStats.objects.get(game=game, player=roster.starters[9]).goals == 1

    def test_empty_queue(self, db) -> None:
        assert process_next_job() is None

    def test_missing_game_is_rescheduled(self, db) -> None:
        RecalcJob.objects.create(kind=RecalcJob.Kind.RECALC_MINUTES, payload={'game_id': 999999})

        job = process_next_job()

        assert job.status == RecalcJob.Status.PENDING
        assert job.retry_count == 1
        assert 'not found' in job.last_error
        assert job.run_at > timezone.now()

    def test_unknown_kind_fails(self, game) -> None:
        job = RecalcJob.objects.create(kind='recalc-everything', payload={'game_id': game.pk})
        with pytest.raises(JobError):
            run_job(job)

        processed = process_next_job()
        assert processed.retry_count == 1
        assert 'Unknown job kind' in processed.last_error

    def test_missing_payload(self, db) -> None:
        job = RecalcJob.objects.create(kind=RecalcJob.Kind.RECALC_MINUTES, payload={})
        with pytest.raises(JobError):
            run_job(job)


@pytest.mark.django_db
class TestRunWorker:
    """Polling loop."""

    def test_drains_queue_and_sleeps_when_idle(self, roster, game) -> None:
        submit_recalc_job(game.pk)
        submit_recalc_job(game.pk, RecalcJob.Kind.RECALC_GOALS_ASSISTS)
        sleeps = []

        processed = run_worker(poll_interval=0.5, max_iterations=4, sleep=sleeps.append)

        assert processed == 2
        assert sleeps == [0.5]
        assert not RecalcJob.objects.exclude(status=RecalcJob.Status.COMPLETED).exists()

    def test_job_error_does_not_stop_loop(self, roster, game, monkeypatch) -> None:
        calls = []

        def flaky(game_id):
            calls.append(game_id)
            if len(calls) == 1:
                raise RuntimeError('transient')

        monkeypatch.setitem(jobs.JOB_HANDLERS, RecalcJob.Kind.RECALC_MINUTES, flaky)
        submit_recalc_job(game.pk)
        submit_recalc_job(game.pk)

        processed = run_worker(poll_interval=0, max_iterations=2, sleep=lambda s: None)

        assert processed == 2
        statuses = sorted(RecalcJob.objects.values_list('status', flat=True))
        assert statuses == [RecalcJob.Status.COMPLETED, RecalcJob.Status.PENDING]
