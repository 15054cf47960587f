import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Float, Boolean, Text, DateTime, ForeignKey,
    Enum as SAEnum, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
import enum

__all__ = [
    "Org", "User", "OrgMember", "RoleName", "Project", "ProjectStatus",
    "Subcontractor", "SubcontractorProject", "Worker", "WorkerRole",
    "ProjectAssignment", "AuditLog", "gen_uuid",
]


class ProjectStatus(str, enum.Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class RoleName(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ORG_ADMIN = "org_admin"
    PM = "pm"
    FIELD_LEAD = "field_lead"
    CREW_MEMBER = "crew_member"


class WorkerRole(str, enum.Enum):
    WORKER = "worker"
    FOREMAN = "foreman"


def gen_uuid():
    return str(uuid.uuid4())


class Org(Base):
    __tablename__ = "orgs"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = relationship("OrgMember", back_populates="org", cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    memberships = relationship("OrgMember", back_populates="user", cascade="all, delete-orphan")


class OrgMember(Base):
    __tablename__ = "org_members"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    org_id = Column(UUID(as_uuid=False), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(SAEnum(RoleName, name="role_name_enum"), nullable=False, default=RoleName.CREW_MEMBER)
    created_at = Column(DateTime, default=datetime.utcnow)

    org = relationship("Org", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("org_id", "user_id", name="uq_org_user"),
    )


class Project(Base):
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    org_id = Column(UUID(as_uuid=False), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SAEnum(ProjectStatus, name="project_status_enum"), default=ProjectStatus.PLANNING)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    org = relationship("Org")

    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_project_org_name"),
    )


class Subcontractor(Base):
    __tablename__ = "subcontractors"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    org_id = Column(UUID(as_uuid=False), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    contract_amount = Column(Float, nullable=True)
    foreman = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    contact = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    trade = Column(String(100), nullable=True)
    contractor_license_no = Column(String(100), nullable=True)
    specialty_license_no = Column(String(100), nullable=True)
    federal_tax_id = Column(String(50), nullable=True)
    motor_carrier_permit_no = Column(String(100), nullable=True)
    is_union = Column(Boolean, nullable=False, default=False)
    is_self_insured = Column(Boolean, nullable=False, default=False)
    workers_comp_policy = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    org = relationship("Org")
    project_links = relationship(
        "SubcontractorProject", back_populates="subcontractor",
        cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_subcontractor_org_name"),
        Index("idx_subcontractor_org_created", "org_id", "created_at"),
    )


class SubcontractorProject(Base):
    __tablename__ = "subcontractor_projects"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    subcontractor_id = Column(UUID(as_uuid=False), ForeignKey("subcontractors.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(UUID(as_uuid=False), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    assigned_by = Column(String(255), nullable=True)
    assigned_by_id = Column(UUID(as_uuid=False), nullable=True)
    assigned_at = Column(DateTime, default=datetime.utcnow)

    subcontractor = relationship("Subcontractor", back_populates="project_links")
    project = relationship("Project")

    __table_args__ = (
        UniqueConstraint("subcontractor_id", "project_id", name="uq_subcontractor_project"),
        Index("idx_subcontractor_project_project", "project_id"),
    )


class Worker(Base):
    __tablename__ = "workers"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    org_id = Column(UUID(as_uuid=False), ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    subcontractor_id = Column(UUID(as_uuid=False), ForeignKey("subcontractors.id", ondelete="SET NULL"), nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    code = Column(String(6), nullable=False)
    role = Column(SAEnum(WorkerRole, name="worker_role_enum"), nullable=False, default=WorkerRole.WORKER)
    rate = Column(Float, nullable=True)
    language = Column(String(10), default="en")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    org = relationship("Org")
    subcontractor = relationship("Subcontractor")
    assignments = relationship("ProjectAssignment", back_populates="worker", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("code", name="uq_worker_code"),
        UniqueConstraint("org_id", "email", name="uq_worker_org_email"),
    )


class ProjectAssignment(Base):
    __tablename__ = "project_assignments"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    worker_id = Column(UUID(as_uuid=False), ForeignKey("workers.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(UUID(as_uuid=False), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(50), nullable=False, default="worker")
    assigned_by = Column(String(255), nullable=True)
    assigned_by_id = Column(UUID(as_uuid=False), nullable=True)
    assigned_at = Column(DateTime, default=datetime.utcnow)

    worker = relationship("Worker", back_populates="assignments")
    project = relationship("Project")

    __table_args__ = (
        UniqueConstraint("worker_id", "project_id", name="uq_worker_project"),
    )


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    user_id = Column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False)
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_created", "created_at"),
    )
