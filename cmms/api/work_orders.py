"""
Work Order API
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional
import logging

from cmms.database import get_db
from cmms.models import User
from cmms.schemas import WorkOrderComplete, WorkOrderCreate, WorkOrderUpdate
from cmms.services.dependency import require_company_access
from cmms.services.work_orders import (
    complete_work_order, create_work_order, delete_work_order, get_work_order,
    list_work_orders, update_work_order, work_order_to_response
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/companies/{company_id}/work-orders")
async def get_work_orders(
    company_id: int,
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    sort_by: Optional[str] = "created_at",
    sort_order: Optional[str] = Query("desc", pattern="^(asc|desc)$"),
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """List work orders with optional status and priority filters"""
    work_orders, total = list_work_orders(db, company_id, status_filter, priority, sort_by, sort_order)
    return {"data": [work_order_to_response(wo) for wo in work_orders], "total": total}


@router.get("/companies/{company_id}/work-orders/{wo_id}")
async def get_single_work_order(
    company_id: int,
    wo_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    return work_order_to_response(get_work_order(db, company_id, wo_id))


@router.post("/companies/{company_id}/work-orders", status_code=status.HTTP_201_CREATED)
async def create_new_work_order(
    company_id: int,
    data: WorkOrderCreate,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """
    Create a work order.

    Without preventive_maintenance_id a one-off schedule is created for it in
    the same transaction.
    """
    try:
        wo = create_work_order(db, company_id, data, user)
        return work_order_to_response(wo)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating work order: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating work order"
        )


@router.put("/companies/{company_id}/work-orders/{wo_id}")
async def update_existing_work_order(
    company_id: int,
    wo_id: int,
    data: WorkOrderUpdate,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    try:
        wo = update_work_order(db, company_id, wo_id, data, user)
        return work_order_to_response(wo)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating work order {wo_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error updating work order"
        )


@router.post("/companies/{company_id}/work-orders/{wo_id}/complete")
async def complete_existing_work_order(
    company_id: int,
    wo_id: int,
    data: Optional[WorkOrderComplete] = None,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """Complete a work order and advance its schedule"""
    wo = complete_work_order(db, company_id, wo_id, data or WorkOrderComplete(), user)
    return work_order_to_response(wo)


@router.delete("/companies/{company_id}/work-orders/{wo_id}")
async def delete_existing_work_order(
    company_id: int,
    wo_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    delete_work_order(db, company_id, wo_id, user)
    return {"success": True, "message": "Work order deleted"}
