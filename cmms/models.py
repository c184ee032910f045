from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey, Date, Numeric, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from cmms.database import Base


# Association table for Part-Asset many-to-many relationship
asset_parts = Table(
    'asset_parts',
    Base.metadata,
    Column('asset_id', Integer, ForeignKey('assets.id', ondelete='CASCADE'), primary_key=True),
    Column('part_id', Integer, ForeignKey('parts.id', ondelete='CASCADE'), primary_key=True),
    Column('assigned_at', DateTime, default=func.now())
)


class Company(Base):
    """Company/Organization - the tenant root"""
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    users = relationship("User", back_populates="company")
    assets = relationship("Asset", back_populates="company")
    parts = relationship("Part", back_populates="company")
    preventive_maintenances = relationship("PreventiveMaintenance", back_populates="company")
    work_orders = relationship("WorkOrder", back_populates="company")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)

    # Multi-tenant fields
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    role = Column(String, default="admin")  # admin, technician

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship("Company", back_populates="users")


class RefreshToken(Base):
    """Refresh tokens for JWT authentication"""
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String, unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    is_revoked = Column(Boolean, default=False)
    created_at = Column(DateTime, default=func.now())
    revoked_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", backref="refresh_tokens")


class Asset(Base):
    """Physical equipment unit tracked by a company"""
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    model = Column(String, nullable=True)
    serial_number = Column(String, nullable=True)
    barcode = Column(String, nullable=True, index=True)

    # Financials
    purchase_price = Column(Numeric(12, 2), nullable=True)
    purchase_date = Column(Date, nullable=True)
    residual_value = Column(Numeric(12, 2), nullable=True)
    useful_life = Column(Integer, nullable=True)
    useful_life_unit = Column(String, nullable=True)  # month, year
    placed_in_service_date = Column(Date, nullable=True)
    warranty_expiration_date = Column(Date, nullable=True)

    additional_information = Column(Text, nullable=True)

    # Primary worker responsible for the asset
    worker_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship("Company", back_populates="assets")
    worker = relationship("User")
    parts = relationship("Part", secondary=asset_parts, back_populates="assets")
    preventive_maintenances = relationship("PreventiveMaintenance", back_populates="asset")
    work_orders = relationship("WorkOrder", back_populates="asset")


class Part(Base):
    """Spare part reference data"""
    __tablename__ = "parts"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    part_number = Column(String, nullable=True, index=True)
    description = Column(Text, nullable=True)
    is_critical = Column(Boolean, default=False)
    is_non_stock = Column(Boolean, default=False)
    minimum_quantity = Column(Integer, default=0)
    additional_information = Column(Text, nullable=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship("Company", back_populates="parts")
    assets = relationship("Asset", secondary=asset_parts, back_populates="parts")


class PreventiveMaintenance(Base):
    """
    Recurring maintenance schedule definition.
    Work orders are spawned from the template fields when the schedule comes due.
    """
    __tablename__ = "preventive_maintenances"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Recurrence
    schedule_type = Column(String, nullable=False)  # regularInterval, afterCompletion
    frequency = Column(Integer, nullable=False)
    time_unit = Column(String, nullable=False)  # day, week, month, year
    create_wos_days_before_due = Column(Integer, nullable=True)  # Lead time for work order creation

    start_date = Column(Date, nullable=False)
    next_due_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    last_completed_date = Column(Date, nullable=True)

    status = Column(String, default="pending")  # pending, inProgress, completed, overdue
    is_standalone = Column(Boolean, default=False)  # Placeholder behind a standalone work order, never recurs

    # Template for spawned work orders
    work_order_title = Column(String, nullable=True)
    work_order_description = Column(Text, nullable=True)
    work_order_priority = Column(String, nullable=True)  # none, low, medium, high

    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship("Company", back_populates="preventive_maintenances")
    asset = relationship("Asset", back_populates="preventive_maintenances")
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    work_orders = relationship(
        "WorkOrder",
        back_populates="preventive_maintenance",
        cascade="all, delete-orphan",
        order_by=lambda: [WorkOrder.created_at.desc(), WorkOrder.id.desc()]
    )


class WorkOrder(Base):
    """Actionable maintenance task, always attached to a preventive maintenance record"""
    __tablename__ = "work_orders"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Priority and status
    status = Column(String, default="pending")  # pending, inProgress, completed, cancelled
    priority = Column(String, default="medium")  # none, low, medium, high

    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completion_notes = Column(Text, nullable=True)

    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=True)
    preventive_maintenance_id = Column(Integer, ForeignKey("preventive_maintenances.id"), nullable=False, index=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    company = relationship("Company", back_populates="work_orders")
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    asset = relationship("Asset", back_populates="work_orders")
    preventive_maintenance = relationship("PreventiveMaintenance", back_populates="work_orders")
