from apscheduler.schedulers.background import BackgroundScheduler
import atexit
from datetime import datetime
from app.extensions import db
from app.services.booking_service import (
    complete_finished_bookings,
    expire_stale_pending_bookings,
)

scheduler = BackgroundScheduler()


def run_booking_maintenance(now=None):
    """Complete finished bookings and expire pending ones. Needs an app context."""
    now = now or datetime.now()
    return {
        "completed": complete_finished_bookings(now),
        "expired": expire_stale_pending_bookings(now),
    }


def init_scheduler(app):
    """Initialize the APScheduler scheduler with Flask app context."""
    interval = app.config.get("SCHEDULER_INTERVAL_MINUTES", 5)

    def scheduled_task():
        current_time = datetime.now()
        current_time_str = current_time.strftime("%Y-%m-%d %H:%M:%S")

        with app.app_context():
            try:
                counts = run_booking_maintenance(current_time)
                if counts["completed"] or counts["expired"]:
                    print(
                        f"[SCHEDULER] {current_time_str} - Auto-completed {counts['completed']} "
                        f"booking(s), expired {counts['expired']} pending request(s)"
                    )
                else:
                    print(f"[SCHEDULER] {current_time_str} - Nothing to update")

            except Exception as e:
                print(f"[SCHEDULER] {current_time_str} - Error updating bookings: {e}")
                db.session.rollback()

    scheduler.add_job(
        scheduled_task,
        "interval",
        minutes=interval,
        id="booking_maintenance",
        replace_existing=True,
    )

    if not scheduler.running:
        scheduler.start()
        print(f"[SCHEDULER] Scheduler started (every {interval} min)")
    else:
        print("[SCHEDULER] Scheduler already running (skipping duplicate start)")

    # Shut down the scheduler when exiting the app
    atexit.register(lambda: scheduler.shutdown(wait=False) if scheduler.running else None)
