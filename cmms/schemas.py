from pydantic import BaseModel, EmailStr, Field, ConfigDict
from datetime import date
from decimal import Decimal
from typing import Optional, List, Any


# ============ Auth ============

class RegisterRequest(BaseModel):
    """Register a new user together with the company they administer"""
    name: str = Field(..., min_length=1, description="Display name of the user")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="User password, minimum 8 characters")
    company_name: str = Field(..., min_length=1, description="Name for the company")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    """User info returned with tokens"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    role: Optional[str] = None
    company_id: int
    is_active: bool


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Access token expiry in seconds
    user: Optional[UserInfo] = None


# ============ Company ============

class CompanyUpdate(BaseModel):
    name: Optional[str] = None


# ============ Assets & Parts ============

class AssetBase(BaseModel):
    description: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    barcode: Optional[str] = None
    purchase_price: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    residual_value: Optional[Decimal] = None
    useful_life: Optional[int] = Field(None, ge=0)
    useful_life_unit: Optional[str] = None
    placed_in_service_date: Optional[date] = None
    warranty_expiration_date: Optional[date] = None
    additional_information: Optional[str] = None
    worker_id: Optional[int] = None


class AssetCreate(AssetBase):
    name: str = Field(..., min_length=1)


class AssetUpdate(AssetBase):
    name: Optional[str] = Field(None, min_length=1)


class PartBase(BaseModel):
    part_number: Optional[str] = None
    description: Optional[str] = None
    is_critical: Optional[bool] = None
    is_non_stock: Optional[bool] = None
    minimum_quantity: Optional[int] = Field(None, ge=0)
    additional_information: Optional[str] = None
    asset_ids: Optional[List[int]] = None


class PartCreate(PartBase):
    name: str = Field(..., min_length=1)


class PartUpdate(PartBase):
    name: Optional[str] = Field(None, min_length=1)


# ============ Preventive Maintenance ============

class PreventiveMaintenancePayload(BaseModel):
    """
    Raw create/update payload for a preventive maintenance schedule.

    Fields stay loose (strings and untyped numbers); the schedule validator
    reports every problem in a single response.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    schedule_type: Optional[str] = None
    frequency: Optional[Any] = None
    time_unit: Optional[str] = None
    create_wos_days_before_due: Optional[Any] = None
    start_date: Optional[str] = None
    next_due_date: Optional[str] = None
    end_date: Optional[str] = None
    asset_id: Optional[int] = None
    assigned_to_id: Optional[int] = None

    # Work order template
    create_work_order_now: bool = False
    work_order_title: Optional[str] = None
    work_order_description: Optional[str] = None
    work_order_priority: Optional[str] = None


class GenerateDueRequest(BaseModel):
    as_of: Optional[date] = None


# ============ Work Orders ============

class WorkOrderCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[date] = None
    assigned_to_id: Optional[int] = None
    asset_id: Optional[int] = None
    preventive_maintenance_id: Optional[int] = None


class WorkOrderUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[date] = None
    assigned_to_id: Optional[int] = None
    asset_id: Optional[int] = None


class WorkOrderComplete(BaseModel):
    completed_on: Optional[date] = None
    completion_notes: Optional[str] = None
