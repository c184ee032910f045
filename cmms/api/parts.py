from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from cmms.database import get_db
from cmms.models import User, Asset, Part
from cmms.schemas import PartCreate, PartUpdate
from cmms.services.dependency import require_company_access
from cmms.services.tenant import get_scoped_or_404, scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


def part_to_response(part: Part) -> dict:
    return {
        "id": part.id,
        "company_id": part.company_id,
        "name": part.name,
        "part_number": part.part_number,
        "description": part.description,
        "is_critical": bool(part.is_critical),
        "is_non_stock": bool(part.is_non_stock),
        "minimum_quantity": part.minimum_quantity,
        "additional_information": part.additional_information,
        "asset_ids": [a.id for a in part.assets],
        "assets": [{"id": a.id, "name": a.name} for a in part.assets],
        "created_at": part.created_at,
        "updated_at": part.updated_at,
    }


def resolve_assets(db: Session, company_id: int, asset_ids: List[int]) -> List[Asset]:
    """Load the referenced assets, 404 if any is missing or belongs to another company"""
    unique_ids = set(asset_ids)
    assets = scoped_query(db, Asset, company_id).filter(Asset.id.in_(unique_ids)).all()
    if len(assets) != len(unique_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")
    return assets


@router.get("/companies/{company_id}/parts")
async def list_parts(
    company_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    parts = scoped_query(db, Part, company_id).order_by(Part.name).all()
    return {"data": [part_to_response(p) for p in parts], "total": len(parts)}


@router.get("/companies/{company_id}/parts/{part_id}")
async def get_part(
    company_id: int,
    part_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    part = get_scoped_or_404(db, Part, part_id, company_id, "Part")
    return part_to_response(part)


@router.post("/companies/{company_id}/parts", status_code=status.HTTP_201_CREATED)
async def create_part(
    company_id: int,
    data: PartCreate,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """Create a spare part, optionally linked to assets"""
    part_data = data.model_dump(exclude={"asset_ids"}, exclude_none=True)
    assets = resolve_assets(db, company_id, data.asset_ids) if data.asset_ids else []

    part = Part(company_id=company_id, **part_data)
    part.name = part.name.strip()
    part.assets = assets

    db.add(part)
    db.commit()
    db.refresh(part)

    logger.info(f"Part '{part.name}' created by '{user.email}'")
    return part_to_response(part)


@router.put("/companies/{company_id}/parts/{part_id}")
async def update_part(
    company_id: int,
    part_id: int,
    data: PartUpdate,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    part = get_scoped_or_404(db, Part, part_id, company_id, "Part")

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("name") is None:
        update_data.pop("name", None)
    asset_ids = update_data.pop("asset_ids", None)
    if asset_ids is not None:
        part.assets = resolve_assets(db, company_id, asset_ids) if asset_ids else []

    for field, value in update_data.items():
        setattr(part, field, value)

    db.commit()
    db.refresh(part)

    logger.info(f"Part '{part.name}' updated by '{user.email}'")
    return part_to_response(part)


@router.delete("/companies/{company_id}/parts/{part_id}")
async def delete_part(
    company_id: int,
    part_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    part = get_scoped_or_404(db, Part, part_id, company_id, "Part")
    name = part.name

    part.assets = []
    db.delete(part)
    db.commit()

    logger.info(f"Part '{name}' deleted by '{user.email}'")
    return {"success": True, "message": f"Part '{name}' has been deleted"}
