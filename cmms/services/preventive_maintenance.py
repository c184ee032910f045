"""
Business logic for preventive maintenance schedules.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from cmms.models import PreventiveMaintenance, User
from cmms.schemas import PreventiveMaintenancePayload
from cmms.services.pm_validation import PM_STATUSES, coerce_pm_fields, raise_for_invalid_pm
from cmms.services.recurrence import refresh_schedule_status
from cmms.services.tenant import ensure_references, get_scoped_or_404, scoped_query
from cmms.services.work_orders import latest_work_order, work_order_from_pm, work_order_to_response

logger = logging.getLogger(__name__)

ACTION_CREATE = "PM_CREATE"
ACTION_UPDATE = "PM_UPDATE"
ACTION_DELETE = "PM_DELETE"

# Stored columns that take part in validation when an update is merged
SCHEDULE_FIELDS = (
    "title", "description", "schedule_type", "frequency", "time_unit",
    "create_wos_days_before_due", "start_date", "next_due_date", "end_date",
    "work_order_title", "work_order_description", "work_order_priority",
)
TEMPLATE_FIELDS = ("work_order_title", "work_order_description", "work_order_priority")


def pm_to_response(pm: PreventiveMaintenance, include_work_orders: bool = False) -> dict:
    response = {
        "id": pm.id,
        "company_id": pm.company_id,
        "title": pm.title,
        "description": pm.description,
        "schedule_type": pm.schedule_type,
        "frequency": pm.frequency,
        "time_unit": pm.time_unit,
        "create_wos_days_before_due": pm.create_wos_days_before_due,
        "start_date": pm.start_date,
        "next_due_date": pm.next_due_date,
        "end_date": pm.end_date,
        "last_completed_date": pm.last_completed_date,
        "status": pm.status,
        "is_standalone": bool(pm.is_standalone),
        "work_order_title": pm.work_order_title,
        "work_order_description": pm.work_order_description,
        "work_order_priority": pm.work_order_priority,
        "asset_id": pm.asset_id,
        "assigned_to_id": pm.assigned_to_id,
        "created_by_id": pm.created_by_id,
        "asset": {"id": pm.asset.id, "name": pm.asset.name} if pm.asset else None,
        "assigned_to": {"id": pm.assigned_to.id, "name": pm.assigned_to.name} if pm.assigned_to else None,
        "created_by": {
            "id": pm.created_by.id,
            "name": pm.created_by.name,
            "email": pm.created_by.email
        } if pm.created_by else None,
        "created_at": pm.created_at,
        "updated_at": pm.updated_at,
    }
    if include_work_orders:
        response["work_orders"] = [work_order_to_response(wo) for wo in pm.work_orders]
    return response


def _stored_values(pm: PreventiveMaintenance) -> Dict[str, Any]:
    return {field: getattr(pm, field) for field in SCHEDULE_FIELDS}


def list_pms(db: Session, company_id: int, status_filter: Optional[str] = None) -> List[PreventiveMaintenance]:
    if status_filter and status_filter not in PM_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Must be one of: {', '.join(PM_STATUSES)}"
        )

    query = scoped_query(db, PreventiveMaintenance, company_id).options(
        joinedload(PreventiveMaintenance.asset),
        joinedload(PreventiveMaintenance.created_by),
        joinedload(PreventiveMaintenance.assigned_to)
    )
    if status_filter:
        query = query.filter(PreventiveMaintenance.status == status_filter)
    return query.order_by(PreventiveMaintenance.next_due_date.asc(), PreventiveMaintenance.id.asc()).all()


def get_pm(db: Session, company_id: int, pm_id: int) -> PreventiveMaintenance:
    return get_scoped_or_404(db, PreventiveMaintenance, pm_id, company_id, "Preventive maintenance")


def create_pm(db: Session, company_id: int, payload: PreventiveMaintenancePayload, user: User) -> PreventiveMaintenance:
    """
    Create a PM schedule and, when requested, its first work order.

    Both rows are committed together; a failure leaves neither behind.

    Raises:
        HTTPException 400: Validation failed (detail lists every error)
        HTTPException 404: Asset or assignee not in this company
        HTTPException 500: Persistence failure
    """
    data = payload.model_dump()
    raise_for_invalid_pm(data)
    ensure_references(db, company_id, asset_id=payload.asset_id, assigned_to_id=payload.assigned_to_id)

    try:
        pm = PreventiveMaintenance(
            company_id=company_id,
            status="pending",
            asset_id=payload.asset_id,
            assigned_to_id=payload.assigned_to_id,
            created_by_id=user.id,
            work_order_title=payload.work_order_title,
            work_order_description=payload.work_order_description,
            work_order_priority=payload.work_order_priority,
            **coerce_pm_fields(data)
        )
        db.add(pm)

        if payload.create_work_order_now and payload.work_order_title:
            db.add(work_order_from_pm(pm))

        db.commit()
        db.refresh(pm)
    except Exception as exc:
        db.rollback()
        logger.error(f"Error creating preventive maintenance: {exc}", extra={"action": ACTION_CREATE})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating preventive maintenance"
        )

    logger.info(f"Preventive maintenance {pm.id} created by {user.email}", extra={"action": ACTION_CREATE})
    return pm


def update_pm(
    db: Session,
    company_id: int,
    pm_id: int,
    payload: PreventiveMaintenancePayload,
    user: User
) -> PreventiveMaintenance:
    """
    Update a PM schedule and propagate template changes.

    Provided fields are merged over the stored record and the merged record is
    validated as a whole; an explicit null clears a nullable field. An overdue
    or completed status is re-derived from the new dates. The newest existing
    work order receives the provided template fields; its status and due date
    are left alone. A work order is only created when none exists yet and
    create_work_order_now is set.
    """
    pm = get_pm(db, company_id, pm_id)

    # Explicit nulls clear nullable columns; on required ones they fail validation
    provided = payload.model_dump(exclude_unset=True)
    provided.pop("create_work_order_now", None)
    merged = _stored_values(pm)
    merged.update(provided)
    merged["create_work_order_now"] = payload.create_work_order_now
    raise_for_invalid_pm(merged)
    ensure_references(
        db, company_id,
        asset_id=provided.get("asset_id"),
        assigned_to_id=provided.get("assigned_to_id")
    )

    try:
        for field, value in coerce_pm_fields(merged).items():
            setattr(pm, field, value)
        for field in TEMPLATE_FIELDS:
            if field in provided:
                setattr(pm, field, provided[field])
        if "asset_id" in provided:
            pm.asset_id = provided["asset_id"]
        if "assigned_to_id" in provided:
            pm.assigned_to_id = provided["assigned_to_id"]
        refresh_schedule_status(pm, date.today())

        existing = latest_work_order(db, pm.id)
        if existing:
            if provided.get("work_order_title"):
                existing.title = provided["work_order_title"]
            if "work_order_description" in provided:
                existing.description = provided["work_order_description"]
            if provided.get("work_order_priority"):
                existing.priority = provided["work_order_priority"]
            if "assigned_to_id" in provided:
                existing.assigned_to_id = provided["assigned_to_id"]
            if "asset_id" in provided:
                existing.asset_id = provided["asset_id"]
        elif payload.create_work_order_now and pm.work_order_title:
            db.add(work_order_from_pm(pm))

        db.commit()
        db.refresh(pm)
    except Exception as exc:
        db.rollback()
        logger.error(f"Error updating preventive maintenance {pm_id}: {exc}", extra={"action": ACTION_UPDATE})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating preventive maintenance"
        )

    logger.info(f"Preventive maintenance {pm.id} updated by {user.email}", extra={"action": ACTION_UPDATE})
    return pm


def delete_pm(db: Session, company_id: int, pm_id: int, user: User):
    pm = get_pm(db, company_id, pm_id)

    try:
        db.delete(pm)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(f"Error deleting preventive maintenance {pm_id}: {exc}", extra={"action": ACTION_DELETE})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting preventive maintenance"
        )

    logger.info(f"Preventive maintenance {pm_id} deleted by {user.email}", extra={"action": ACTION_DELETE})
