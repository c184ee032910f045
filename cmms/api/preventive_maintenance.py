"""
Preventive Maintenance API
Recurring maintenance schedules and the work orders spawned from them
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
import logging

from cmms.database import get_db
from cmms.models import User
from cmms.schemas import GenerateDueRequest, PreventiveMaintenancePayload
from cmms.services.dependency import require_company_access
from cmms.services.pm_scheduler import generate_due_work_orders
from cmms.services.preventive_maintenance import (
    create_pm, delete_pm, get_pm, list_pms, pm_to_response, update_pm
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/companies/{company_id}/preventive-maintenance")
async def list_preventive_maintenance(
    company_id: int,
    status_filter: Optional[str] = Query(None, alias="status"),
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """List the company's PM schedules, optionally filtered by status"""
    pms = list_pms(db, company_id, status_filter)
    return {"data": [pm_to_response(pm) for pm in pms], "total": len(pms)}


@router.post("/companies/{company_id}/preventive-maintenance", status_code=status.HTTP_201_CREATED)
async def create_preventive_maintenance(
    company_id: int,
    payload: PreventiveMaintenancePayload,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """
    Create a PM schedule.

    When create_work_order_now is set with a work order title, the first work
    order is created in the same transaction.

    Raises:
        HTTPException 400: Validation failed, detail.errors lists every problem
        HTTPException 404: Asset or assignee not found in this company
        HTTPException 500: Unexpected error
    """
    try:
        pm = create_pm(db, company_id, payload, user)
        return {
            "message": "Preventive maintenance created successfully",
            "data": pm_to_response(pm, include_work_orders=True)
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating preventive maintenance: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating preventive maintenance"
        )


@router.post("/companies/{company_id}/preventive-maintenance/generate-due")
async def generate_due(
    company_id: int,
    data: Optional[GenerateDueRequest] = None,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """Run the PM sweep for this company now"""
    as_of = data.as_of if data and data.as_of else date.today()
    try:
        result = generate_due_work_orders(db, as_of, company_id=company_id)
    except Exception as e:
        logger.error(f"On-demand PM sweep failed for company {company_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error generating work orders"
        )
    return {"success": True, "as_of": as_of, **result}


@router.get("/companies/{company_id}/preventive-maintenance/{pm_id}")
async def get_preventive_maintenance(
    company_id: int,
    pm_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    pm = get_pm(db, company_id, pm_id)
    return pm_to_response(pm, include_work_orders=True)


@router.put("/companies/{company_id}/preventive-maintenance/{pm_id}")
async def update_preventive_maintenance(
    company_id: int,
    pm_id: int,
    payload: PreventiveMaintenancePayload,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    try:
        pm = update_pm(db, company_id, pm_id, payload, user)
        return {
            "message": "Preventive maintenance updated successfully",
            "data": pm_to_response(pm, include_work_orders=True)
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating preventive maintenance {pm_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating preventive maintenance"
        )


@router.delete("/companies/{company_id}/preventive-maintenance/{pm_id}")
async def delete_preventive_maintenance(
    company_id: int,
    pm_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    delete_pm(db, company_id, pm_id, user)
    return {"success": True, "message": "Preventive maintenance deleted"}
