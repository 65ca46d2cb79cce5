"""
Background scheduler for periodic refreshes.

Refresh is normally pull-based: incoming requests trigger it. When
REFRESH_INTERVAL_MINUTES is set together with a default observer location,
this scheduler also refreshes that observer's working set on an interval so
the snapshot stays warm between requests.
"""
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from logging_config import get_logger
from models import Observer
from utils.exceptions import TrackerError

logger = get_logger(__name__)

scheduler = BackgroundScheduler(daemon=True)

# Track refresh statistics
refresh_stats = {
    'last_refresh': None,
    'total_refreshes': 0,
    'failed_refreshes': 0,
    'last_error': None,
}

REFRESH_JOB_ID = 'observer_refresh'
MANUAL_JOB_ID = 'manual_refresh'


def default_observer(app):
    """The configured default observer, or None if not configured."""
    lat = app.config.get('DEFAULT_OBSERVER_LAT')
    lon = app.config.get('DEFAULT_OBSERVER_LON')
    if lat is None or lon is None:
        return None
    return Observer(latitude=float(lat), longitude=float(lon))


def refresh_job(app):
    """
    Background job: refresh the working set for the default observer.
    Failures are counted and logged; the next run tries again.
    """
    observer = default_observer(app)
    if observer is None:
        logger.warning("[Scheduler] No default observer configured, skipping refresh")
        return

    tracker = app.extensions['tracker']
    timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
    logger.info(f"[Scheduler] Starting refresh at {timestamp}")

    try:
        result = tracker.refresh(observer, force=True)
    except TrackerError as e:
        refresh_stats['failed_refreshes'] += 1
        refresh_stats['last_error'] = str(e)
        logger.error(f"[Scheduler] Refresh failed: {e}")
        return

    refresh_stats['last_refresh'] = timestamp
    refresh_stats['total_refreshes'] += 1
    refresh_stats['last_error'] = None
    logger.info(f"[Scheduler] Refresh complete: {len(result.selection)} satellites selected")


def get_scheduler_status():
    """Get current scheduler status and statistics."""
    return {
        'running': scheduler.running,
        'last_refresh': refresh_stats['last_refresh'],
        'total_refreshes': refresh_stats['total_refreshes'],
        'failed_refreshes': refresh_stats['failed_refreshes'],
        'last_error': refresh_stats['last_error'],
        'jobs': [
            {
                'id': job.id,
                'next_run': str(job.next_run_time) if job.next_run_time else None,
                'trigger': str(job.trigger)
            }
            for job in scheduler.get_jobs()
        ]
    }


def initialize_scheduler(app):
    """
    Start the periodic refresh job if it is configured.

    Args:
        app: Flask application instance

    Returns:
        True if the scheduler was started
    """
    interval = int(app.config.get('REFRESH_INTERVAL_MINUTES') or 0)
    if interval <= 0:
        logger.info("[Scheduler] Periodic refresh disabled (REFRESH_INTERVAL_MINUTES=0)")
        return False
    if default_observer(app) is None:
        logger.warning("[Scheduler] Periodic refresh needs DEFAULT_OBSERVER_LAT/LON, not starting")
        return False

    scheduler.add_job(
        refresh_job,
        'interval',
        minutes=interval,
        args=[app],
        id=REFRESH_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    if not scheduler.running:
        scheduler.start()
    logger.info(f"[Scheduler] Started: refresh every {interval} min for the default observer")
    return True


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("[Scheduler] Shutdown complete")


def trigger_manual_refresh(app):
    """Queue an immediate one-off refresh of the default observer."""
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(
        refresh_job,
        'date',
        args=[app],
        id=MANUAL_JOB_ID,
        replace_existing=True
    )
