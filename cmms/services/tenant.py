"""
Tenant-scoped lookups.

Every lookup filters on the primary key and company_id in one query, so an
id owned by another company is reported exactly like a missing id.
"""
from typing import Optional, Type, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from cmms.database import Base
from cmms.models import Asset, User

ModelT = TypeVar("ModelT", bound=Base)


def scoped_query(db: Session, model: Type[ModelT], company_id: int):
    return db.query(model).filter(model.company_id == company_id)


def get_scoped(db: Session, model: Type[ModelT], entity_id: int, company_id: int) -> Optional[ModelT]:
    return db.query(model).filter(
        model.id == entity_id,
        model.company_id == company_id
    ).first()


def get_scoped_or_404(db: Session, model: Type[ModelT], entity_id: int, company_id: int, label: str) -> ModelT:
    entity = get_scoped(db, model, entity_id, company_id)
    if not entity:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return entity


def ensure_references(
    db: Session,
    company_id: int,
    asset_id: Optional[int] = None,
    assigned_to_id: Optional[int] = None
):
    """Resolve optional foreign references inside the tenant, 404 when any is foreign or missing"""
    if asset_id is not None:
        get_scoped_or_404(db, Asset, asset_id, company_id, "Asset")
    if assigned_to_id is not None:
        get_scoped_or_404(db, User, assigned_to_id, company_id, "Assigned user")
