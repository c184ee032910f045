"""
Periodic sweep over preventive maintenance schedules.

Spawns work orders for schedules inside their lead window and flags schedules
whose due date has passed. Runs daily through APScheduler and on demand
through the API.
"""
import logging
from datetime import date
from typing import Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from cmms.config import settings
from cmms.database import SessionLocal
from cmms.models import PreventiveMaintenance
from cmms.services.recurrence import is_generation_due, is_overdue
from cmms.services.work_orders import has_open_work_order, work_order_from_pm

logger = logging.getLogger(__name__)

ACTION_SWEEP = "PM_SWEEP"

scheduler: Optional[BackgroundScheduler] = None


def generate_due_work_orders(db: Session, today: date, company_id: Optional[int] = None) -> Dict[str, int]:
    """
    Run one sweep as of `today`.

    Args:
        db: Database session
        today: Reference date for lead windows and overdue checks
        company_id: Restrict the sweep to one tenant (all tenants when None)

    Returns:
        Counts of work orders created and schedules marked overdue
    """
    query = db.query(PreventiveMaintenance).filter(
        PreventiveMaintenance.status != "completed",
        PreventiveMaintenance.is_standalone.isnot(True)
    )
    if company_id is not None:
        query = query.filter(PreventiveMaintenance.company_id == company_id)

    created = 0
    overdue = 0
    try:
        for pm in query.all():
            if is_generation_due(pm, today) and not has_open_work_order(db, pm.id):
                db.add(work_order_from_pm(pm))
                created += 1
            if is_overdue(pm, today):
                pm.status = "overdue"
                overdue += 1
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(f"PM sweep failed: {exc}", extra={"action": ACTION_SWEEP})
        raise

    logger.info(
        f"PM sweep as of {today}: {created} work orders created, {overdue} schedules overdue",
        extra={"action": ACTION_SWEEP}
    )
    return {"work_orders_created": created, "marked_overdue": overdue}


def run_scheduled_sweep():
    db = SessionLocal()
    try:
        generate_due_work_orders(db, date.today())
    except Exception as exc:
        logger.error(f"Scheduled PM sweep aborted: {exc}", extra={"action": ACTION_SWEEP})
    finally:
        db.close()


def start_scheduler() -> BackgroundScheduler:
    global scheduler
    if scheduler is None:
        scheduler = BackgroundScheduler()
        # Daily, shortly after midnight by default
        scheduler.add_job(
            func=run_scheduled_sweep,
            trigger="cron",
            hour=settings.pm_sweep_hour,
            minute=settings.pm_sweep_minute,
            id="pm_sweep",
            replace_existing=True
        )
        scheduler.start()
        logger.info(
            f"PM sweep scheduled daily at {settings.pm_sweep_hour:02d}:{settings.pm_sweep_minute:02d}",
            extra={"action": ACTION_SWEEP}
        )
    return scheduler


def shutdown_scheduler():
    global scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
