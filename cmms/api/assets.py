from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import func
import logging

from cmms.database import get_db
from cmms.models import User, Asset, PreventiveMaintenance, WorkOrder
from cmms.schemas import AssetCreate, AssetUpdate
from cmms.services.dependency import require_company_access
from cmms.services.tenant import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


def asset_to_response(asset: Asset, pm_count: int = None, work_order_count: int = None) -> dict:
    response = {
        "id": asset.id,
        "company_id": asset.company_id,
        "name": asset.name,
        "description": asset.description,
        "model": asset.model,
        "serial_number": asset.serial_number,
        "barcode": asset.barcode,
        "purchase_price": float(asset.purchase_price) if asset.purchase_price is not None else None,
        "purchase_date": asset.purchase_date,
        "residual_value": float(asset.residual_value) if asset.residual_value is not None else None,
        "useful_life": asset.useful_life,
        "useful_life_unit": asset.useful_life_unit,
        "placed_in_service_date": asset.placed_in_service_date,
        "warranty_expiration_date": asset.warranty_expiration_date,
        "additional_information": asset.additional_information,
        "worker_id": asset.worker_id,
        "worker": {"id": asset.worker.id, "name": asset.worker.name} if asset.worker else None,
        "parts": [{"id": p.id, "name": p.name} for p in asset.parts],
        "created_at": asset.created_at,
        "updated_at": asset.updated_at,
    }
    if pm_count is not None:
        response["preventive_maintenance_count"] = pm_count
    if work_order_count is not None:
        response["work_order_count"] = work_order_count
    return response


def _count_by_asset(db: Session, model, company_id: int) -> dict:
    rows = db.query(model.asset_id, func.count(model.id)).filter(
        model.company_id == company_id,
        model.asset_id.isnot(None)
    ).group_by(model.asset_id).all()
    return dict(rows)


@router.get("/companies/{company_id}/assets")
async def list_assets(
    company_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """List assets of the company with PM and work order counts"""
    assets = scoped_query(db, Asset, company_id).order_by(Asset.name).all()
    pm_counts = _count_by_asset(db, PreventiveMaintenance, company_id)
    wo_counts = _count_by_asset(db, WorkOrder, company_id)

    return {
        "data": [
            asset_to_response(a, pm_counts.get(a.id, 0), wo_counts.get(a.id, 0))
            for a in assets
        ],
        "total": len(assets)
    }


@router.get("/companies/{company_id}/assets/{asset_id}")
async def get_asset(
    company_id: int,
    asset_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    asset = get_scoped_or_404(db, Asset, asset_id, company_id, "Asset")
    return asset_to_response(asset)


@router.post("/companies/{company_id}/assets", status_code=status.HTTP_201_CREATED)
async def create_asset(
    company_id: int,
    data: AssetCreate,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """Create a new asset"""
    if data.worker_id is not None:
        get_scoped_or_404(db, User, data.worker_id, company_id, "Worker")

    asset = Asset(company_id=company_id, **data.model_dump(exclude_none=True))
    asset.name = asset.name.strip()

    db.add(asset)
    db.commit()
    db.refresh(asset)

    logger.info(f"Asset '{asset.name}' created by '{user.email}'")
    return asset_to_response(asset)


@router.put("/companies/{company_id}/assets/{asset_id}")
async def update_asset(
    company_id: int,
    asset_id: int,
    data: AssetUpdate,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """Update an asset"""
    asset = get_scoped_or_404(db, Asset, asset_id, company_id, "Asset")

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("name") is None:
        update_data.pop("name", None)
    if update_data.get("worker_id") is not None:
        get_scoped_or_404(db, User, update_data["worker_id"], company_id, "Worker")

    for field, value in update_data.items():
        setattr(asset, field, value)

    db.commit()
    db.refresh(asset)

    logger.info(f"Asset '{asset.name}' updated by '{user.email}'")
    return asset_to_response(asset)


@router.delete("/companies/{company_id}/assets/{asset_id}")
async def delete_asset(
    company_id: int,
    asset_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """Delete an asset, detaching it from schedules and work orders"""
    asset = get_scoped_or_404(db, Asset, asset_id, company_id, "Asset")
    name = asset.name

    try:
        db.query(PreventiveMaintenance).filter(
            PreventiveMaintenance.company_id == company_id,
            PreventiveMaintenance.asset_id == asset_id
        ).update({PreventiveMaintenance.asset_id: None}, synchronize_session=False)
        db.query(WorkOrder).filter(
            WorkOrder.company_id == company_id,
            WorkOrder.asset_id == asset_id
        ).update({WorkOrder.asset_id: None}, synchronize_session=False)
        asset.parts = []
        db.delete(asset)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting asset {asset_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error deleting asset"
        )

    logger.info(f"Asset '{name}' deleted by '{user.email}'")
    return {"success": True, "message": f"Asset '{name}' has been deleted"}
