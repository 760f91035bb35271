# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# scheduled background jobs.
#
# Components:
# - celery_app.py: Celery application and lifecycle logging
# - tasks.py: Task definitions (trend alerts, maintenance reminders)
# - config.py: Worker settings and the beat schedule
#
# Usage:
#   # Start worker with the embedded beat scheduler
#   celery -A workers.celery_app worker -B --loglevel=info
#
#   # Trigger a run by hand (from API or shell)
#   from workers.tasks import run_daily_trend_analysis
#   result = run_daily_trend_analysis.delay(dry_run=True)
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
