"""
Recalculation queue: submission, dispatch and the polling worker

Mutations enqueue a RecalcJob and return immediately; the worker picks jobs
up, reruns the derived-statistics calculation and retries with exponential
backoff when it fails.
"""

import logging
import time

from django.db import transaction

from matches.conf import get_setting
from matches.engine.minutes import recalculate_player_minutes
from matches.engine.stats import recalculate_goals_assists
from matches.models import RecalcJob


logger = logging.getLogger(__name__)


JOB_HANDLERS = {
    RecalcJob.Kind.RECALC_MINUTES: recalculate_player_minutes,
    RecalcJob.Kind.RECALC_GOALS_ASSISTS: recalculate_goals_assists,
}


class JobError(Exception):
    """A job can't be run as submitted (unknown kind, bad payload)"""


def submit_recalc_job(game_id, kind=RecalcJob.Kind.RECALC_MINUTES):
    """
    Enqueue a recalculation for a game.

    Never raises: a failed submission is logged and None is returned, so the
    event mutation that triggered it still succeeds. The insert runs in a
    savepoint, which keeps an enclosing transaction usable after a failure.
    """
    try:
        with transaction.atomic():
            job = RecalcJob.objects.create(kind=kind, payload={'game_id': game_id})
    except Exception:
        logger.exception("Could not submit %s job for game %s", kind, game_id)
        return None

    logger.info("Submitted %s job %s for game %s", kind, job.pk, game_id)
    return job


def run_job(job):
    handler = JOB_HANDLERS.get(job.kind)
    if handler is None:
        raise JobError(f"Unknown job kind: {job.kind}")

    game_id = job.game_id
    if game_id is None:
        raise JobError(f"Job {job.pk} has no game_id in its payload")

    return handler(game_id)


def process_next_job(now=None):
    """
    Claim and run one job.

    Returns the job that was processed, or None when the queue had nothing
    claimable. Exceptions from the job go to mark_failed and are not raised.
    """
    try:
        job = RecalcJob.claim_next(now=now)
    except Exception:
        logger.exception("Could not claim a job")
        return None

    if job is None:
        return None

    logger.info("Running %s job %s (attempt %s)", job.kind, job.pk, job.retry_count + 1)
    try:
        run_job(job)
    except Exception as e:
        logger.exception("Job %s failed", job.pk)
        _record_failure(job, e)
        return job

    try:
        job.mark_completed()
    except Exception:
        # Left in running; an operator can requeue it from the admin
        logger.exception("Job %s ran but could not be marked completed", job.pk)
        return job

    logger.info("Job %s completed", job.pk)
    return job


def _record_failure(job, error):
    try:
        job.mark_failed(error)
    except Exception:
        logger.exception("Could not record failure of job %s", job.pk)
        return

    if job.status == RecalcJob.Status.FAILED:
        logger.error("Job %s gave up after %s attempts: %s", job.pk, job.retry_count, job.last_error)
    else:
        logger.warning("Job %s rescheduled for %s", job.pk, job.run_at)


def run_worker(poll_interval=None, max_iterations=None, sleep=time.sleep):
    """
    Poll the queue until stopped (or for max_iterations polls).

    Jobs are drained back to back; the worker only sleeps after a poll that
    found nothing to do. Returns the number of jobs processed.
    """
    if poll_interval is None:
        poll_interval = get_setting('MATCHES_WORKER_POLL_INTERVAL')

    processed = 0
    iterations = 0
    logger.info("Recalculation worker started (poll interval %ss)", poll_interval)

    while max_iterations is None or iterations < max_iterations:
        iterations += 1
        job = process_next_job()
        if job is not None:
            processed += 1
            continue

        if max_iterations is None or iterations < max_iterations:
            sleep(poll_interval)

    logger.info("Recalculation worker stopped after %s jobs", processed)
    return processed
