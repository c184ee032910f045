"""
Business logic for work orders.

Work orders always reference a preventive maintenance record. Standalone work
orders get a one-off placeholder schedule created in the same transaction.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from cmms.models import PreventiveMaintenance, User, WorkOrder
from cmms.schemas import WorkOrderComplete, WorkOrderCreate, WorkOrderUpdate
from cmms.services.pm_validation import WORK_ORDER_PRIORITIES
from cmms.services.recurrence import advance_schedule, pm_status_for_work_order, skip_cycle
from cmms.services.tenant import ensure_references, get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

WORK_ORDER_STATUSES = ("pending", "inProgress", "completed", "cancelled")
OPEN_WORK_ORDER_STATUSES = ("pending", "inProgress")
SORTABLE_FIELDS = ("created_at", "due_date", "title", "status", "priority")

ACTION_CREATE = "WO_CREATE"
ACTION_UPDATE = "WO_UPDATE"
ACTION_COMPLETE = "WO_COMPLETE"
ACTION_DELETE = "WO_DELETE"


# ============ Serialization ============

def work_order_to_response(wo: WorkOrder) -> dict:
    return {
        "id": wo.id,
        "company_id": wo.company_id,
        "title": wo.title,
        "description": wo.description,
        "status": wo.status,
        "priority": wo.priority,
        "due_date": wo.due_date,
        "completed_at": wo.completed_at,
        "completion_notes": wo.completion_notes,
        "assigned_to_id": wo.assigned_to_id,
        "asset_id": wo.asset_id,
        "preventive_maintenance_id": wo.preventive_maintenance_id,
        "assigned_to": {"id": wo.assigned_to.id, "name": wo.assigned_to.name} if wo.assigned_to else None,
        "asset": {"id": wo.asset.id, "name": wo.asset.name} if wo.asset else None,
        "preventive_maintenance": {
            "id": wo.preventive_maintenance.id,
            "title": wo.preventive_maintenance.title
        } if wo.preventive_maintenance else None,
        "created_at": wo.created_at,
        "updated_at": wo.updated_at,
    }


# ============ Helpers ============

def validate_work_order_enums(status_value: Optional[str], priority: Optional[str]):
    if status_value is not None and status_value not in WORK_ORDER_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Must be one of: {', '.join(WORK_ORDER_STATUSES)}"
        )
    if priority is not None and priority not in WORK_ORDER_PRIORITIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid priority. Must be one of: {', '.join(WORK_ORDER_PRIORITIES)}"
        )


def latest_work_order(db: Session, pm_id: int) -> Optional[WorkOrder]:
    """Most recently created work order of a PM, the one PM updates propagate to"""
    return db.query(WorkOrder).filter(
        WorkOrder.preventive_maintenance_id == pm_id
    ).order_by(WorkOrder.created_at.desc(), WorkOrder.id.desc()).first()


def has_open_work_order(db: Session, pm_id: int) -> bool:
    return db.query(WorkOrder.id).filter(
        WorkOrder.preventive_maintenance_id == pm_id,
        WorkOrder.status.in_(OPEN_WORK_ORDER_STATUSES)
    ).first() is not None


def work_order_from_pm(pm: PreventiveMaintenance) -> WorkOrder:
    """Build (not persist) a pending work order from the PM's template fields"""
    return WorkOrder(
        company_id=pm.company_id,
        title=pm.work_order_title or pm.title,
        description=pm.work_order_description,
        priority=pm.work_order_priority or "medium",
        status="pending",
        due_date=pm.next_due_date,
        assigned_to_id=pm.assigned_to_id,
        asset_id=pm.asset_id,
        preventive_maintenance=pm,
    )


def build_standalone_pm(title: str, user: User, company_id: int, today: date) -> PreventiveMaintenance:
    """One-off placeholder schedule backing a work order created without one"""
    return PreventiveMaintenance(
        company_id=company_id,
        title=f"Work order: {title}",
        description="Automatically created schedule for a standalone work order",
        schedule_type="regularInterval",
        frequency=1,
        time_unit="day",
        start_date=today,
        next_due_date=today,
        status="pending",
        is_standalone=True,
        created_by_id=user.id,
    )


def is_current_cycle(wo: WorkOrder, pm: PreventiveMaintenance) -> bool:
    """Only the work order of the current cycle moves the schedule"""
    return wo.due_date is None or wo.due_date >= pm.next_due_date


def _apply_status_change(wo: WorkOrder, new_status: str, completed_on: Optional[date] = None):
    """Record a status transition and mirror it onto the parent PM"""
    previous_status = wo.status
    wo.status = new_status
    pm = wo.preventive_maintenance

    if new_status == "completed" and previous_status != "completed":
        completed_on = completed_on or date.today()
        wo.completed_at = datetime.utcnow()
        if pm is None:
            return
        if pm.is_standalone:
            pm.last_completed_date = completed_on
            pm.status = "completed"
        elif is_current_cycle(wo, pm):
            advance_schedule(pm, completed_on)
        return

    if pm is None or pm.status == "completed":
        return
    if new_status == "cancelled" and previous_status in OPEN_WORK_ORDER_STATUSES and is_current_cycle(wo, pm):
        # Cancelling the current cycle skips it, nothing is recorded as completed
        if pm.is_standalone:
            pm.status = "completed"
        else:
            skip_cycle(pm, date.today())
        return

    implied = pm_status_for_work_order(new_status)
    if implied:
        pm.status = implied
    elif new_status in ("pending", "cancelled") and pm.status == "inProgress":
        pm.status = "pending"


# ============ Operations ============

def list_work_orders(
    db: Session,
    company_id: int,
    status_filter: Optional[str] = None,
    priority: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = "desc"
) -> Tuple[List[WorkOrder], int]:
    query = scoped_query(db, WorkOrder, company_id)
    if status_filter:
        query = query.filter(WorkOrder.status == status_filter)
    if priority:
        query = query.filter(WorkOrder.priority == priority)

    total = query.count()

    if sort_by not in SORTABLE_FIELDS:
        sort_by = "created_at"
    column = getattr(WorkOrder, sort_by)
    ordering = column.asc() if sort_order == "asc" else column.desc()

    work_orders = query.options(
        joinedload(WorkOrder.assigned_to),
        joinedload(WorkOrder.asset),
        joinedload(WorkOrder.preventive_maintenance)
    ).order_by(ordering, WorkOrder.id.desc()).all()
    return work_orders, total


def get_work_order(db: Session, company_id: int, wo_id: int) -> WorkOrder:
    return get_scoped_or_404(db, WorkOrder, wo_id, company_id, "Work order")


def create_work_order(db: Session, company_id: int, data: WorkOrderCreate, user: User) -> WorkOrder:
    """
    Create a work order, creating a placeholder PM when none is referenced.

    The placeholder PM and the work order are committed together.

    Raises:
        HTTPException 400: Missing title or invalid status/priority
        HTTPException 404: Referenced asset, user or PM not in this company
        HTTPException 500: Persistence failure (nothing is written)
    """
    if not data.title or not data.title.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Work order title is required")
    validate_work_order_enums(data.status, data.priority)
    ensure_references(
        db, company_id,
        asset_id=data.asset_id,
        assigned_to_id=data.assigned_to_id
    )
    pm = None
    if data.preventive_maintenance_id is not None:
        pm = get_scoped_or_404(db, PreventiveMaintenance, data.preventive_maintenance_id, company_id,
                               "Preventive maintenance")

    title = data.title.strip()
    requested_status = data.status or "pending"
    try:
        if pm is None:
            pm = build_standalone_pm(title, user, company_id, date.today())
            db.add(pm)
            db.flush()
            logger.info(f"Standalone PM {pm.id} created for work order '{title}'", extra={"action": ACTION_CREATE})

        wo = WorkOrder(
            company_id=company_id,
            title=title,
            description=data.description,
            status="pending",
            priority=data.priority or "medium",
            due_date=data.due_date,
            assigned_to_id=data.assigned_to_id,
            asset_id=data.asset_id,
            preventive_maintenance=pm,
        )
        if requested_status == "cancelled":
            wo.status = "cancelled"
        elif requested_status != "pending":
            # Created as in progress or completed: the schedule follows as on an update
            _apply_status_change(wo, requested_status)
        db.add(wo)
        db.commit()
        db.refresh(wo)
    except Exception as exc:
        db.rollback()
        logger.error(f"Error creating work order: {exc}", extra={"action": ACTION_CREATE})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating work order"
        )

    logger.info(f"Work order {wo.id} created by {user.email}", extra={"action": ACTION_CREATE})
    return wo


def update_work_order(db: Session, company_id: int, wo_id: int, data: WorkOrderUpdate, user: User) -> WorkOrder:
    wo = get_work_order(db, company_id, wo_id)

    update_data = data.model_dump(exclude_unset=True)
    if "title" in update_data and (not update_data["title"] or not update_data["title"].strip()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Work order title is required")
    validate_work_order_enums(update_data.get("status"), update_data.get("priority"))
    ensure_references(
        db, company_id,
        asset_id=update_data.get("asset_id"),
        assigned_to_id=update_data.get("assigned_to_id")
    )

    try:
        new_status = update_data.pop("status", None)
        for field, value in update_data.items():
            if field == "priority" and value is None:
                continue
            if field == "title":
                value = value.strip()
            setattr(wo, field, value)
        if new_status and new_status != wo.status:
            _apply_status_change(wo, new_status)

        db.commit()
        db.refresh(wo)
    except Exception as exc:
        db.rollback()
        logger.error(f"Error updating work order {wo_id}: {exc}", extra={"action": ACTION_UPDATE})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating work order"
        )

    logger.info(f"Work order {wo.id} updated by {user.email}", extra={"action": ACTION_UPDATE})
    return wo


def complete_work_order(db: Session, company_id: int, wo_id: int, data: WorkOrderComplete, user: User) -> WorkOrder:
    """Mark a work order completed and roll its schedule to the next cycle"""
    wo = get_work_order(db, company_id, wo_id)

    if wo.status == "completed":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Work order already completed")
    if wo.status == "cancelled":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot complete a cancelled work order")

    try:
        wo.completion_notes = data.completion_notes
        _apply_status_change(wo, "completed", completed_on=data.completed_on)
        db.commit()
        db.refresh(wo)
    except Exception as exc:
        db.rollback()
        logger.error(f"Error completing work order {wo_id}: {exc}", extra={"action": ACTION_COMPLETE})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error completing work order"
        )

    logger.info(f"Work order {wo.id} completed by {user.email}", extra={"action": ACTION_COMPLETE})
    return wo


def delete_work_order(db: Session, company_id: int, wo_id: int, user: User):
    wo = get_work_order(db, company_id, wo_id)

    try:
        db.delete(wo)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(f"Error deleting work order {wo_id}: {exc}", extra={"action": ACTION_DELETE})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting work order"
        )

    logger.info(f"Work order {wo_id} deleted by {user.email}", extra={"action": ACTION_DELETE})
