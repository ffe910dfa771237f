"""
App settings with defaults
Override any of these in the Django settings module
"""

from django.conf import settings


DEFAULTS = {
    # Job queue
    'MATCHES_JOB_MAX_RETRIES': 5,
    'MATCHES_JOB_BASE_BACKOFF_SECONDS': 60,
    'MATCHES_WORKER_POLL_INTERVAL': 5,

    # Match rules
    'MATCHES_DEFAULT_MATCH_DURATION': 90,
    'MATCHES_EXPECTED_STARTERS': 11,
    'MATCHES_MAX_EXTRA_TIME': 15,
}


def get_setting(name):
    """Read a setting from django.conf.settings, falling back to DEFAULTS"""
    return getattr(settings, name, DEFAULTS[name])


def default_max_retries():
    return get_setting('MATCHES_JOB_MAX_RETRIES')
