#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Celery Worker Entry Point
# =============================================================================
# Starts a Celery worker with the embedded beat scheduler, consuming both the
# default and ai_tasks queues.
#
# Usage:
#   # Start worker (development)
#   poetry run python scripts/start_worker.py
#
#   # Or use Celery CLI directly
#   poetry run celery -A workers.celery_app worker -B -Q default,ai_tasks --loglevel=info
#
# Prerequisites:
#   - Redis must be running (brew services start redis)
#   - Environment variables must be set (.env file)
# =============================================================================

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app


def main():
    """Start the Celery worker."""
    print("=" * 60)
    print("AquaBotAI Celery Worker")
    print("=" * 60)
    print()
    print("Queues: default, ai_tasks")
    print("Beat schedule: trend analysis 06:00 UTC, reminders every 15 min")
    print("Press Ctrl+C to stop")
    print()

    celery_app.worker_main([
        "worker",
        "--beat",
        "--loglevel=info",
        "--concurrency=2",
        "--queues=default,ai_tasks",
    ])


if __name__ == "__main__":
    main()
