from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from cmms.database import get_db
from cmms.models import User, Company, Asset, PreventiveMaintenance, WorkOrder
from cmms.schemas import CompanyUpdate
from cmms.services.dependency import require_company_access
from cmms.services.tenant import scoped_query

logger = logging.getLogger(__name__)

router = APIRouter()


def company_to_response(company: Company, db: Session) -> dict:
    return {
        "id": company.id,
        "name": company.name,
        "is_active": company.is_active,
        "asset_count": scoped_query(db, Asset, company.id).count(),
        "preventive_maintenance_count": scoped_query(db, PreventiveMaintenance, company.id).count(),
        "work_order_count": scoped_query(db, WorkOrder, company.id).count(),
        "created_at": company.created_at,
        "updated_at": company.updated_at,
    }


@router.get("/companies/{company_id}")
async def get_company(
    company_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """Get the caller's company with entity counts"""
    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company_to_response(company, db)


@router.patch("/companies/{company_id}")
async def update_company(
    company_id: int,
    data: CompanyUpdate,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    """Rename the company"""
    if not data.name or not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Company name is required")

    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    company.name = data.name.strip()
    db.commit()
    db.refresh(company)

    logger.info(f"Company {company.id} renamed to '{company.name}' by '{user.email}'")
    return company_to_response(company, db)


@router.get("/companies/{company_id}/users")
async def list_company_users(
    company_id: int,
    user: User = Depends(require_company_access),
    db: Session = Depends(get_db)
):
    users = scoped_query(db, User, company_id).order_by(User.name).all()
    return [
        {
            "id": u.id,
            "email": u.email,
            "name": u.name,
            "role": u.role,
            "is_active": u.is_active,
        }
        for u in users
    ]
