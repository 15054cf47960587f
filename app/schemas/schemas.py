from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ProjectCreate(CamelModel):
    name: str
    description: Optional[str] = None
    status: Optional[str] = None


class ProjectResponse(CamelModel):
    id: str
    org_id: str
    name: str
    description: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SubcontractorFields(CamelModel):
    name: Optional[str] = None
    contract_amount: Optional[float] = None
    foreman: Optional[str] = None
    address: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    trade: Optional[str] = None
    contractor_license_no: Optional[str] = None
    specialty_license_no: Optional[str] = None
    federal_tax_id: Optional[str] = None
    motor_carrier_permit_no: Optional[str] = None
    is_union: Optional[bool] = None
    is_self_insured: Optional[bool] = None
    workers_comp_policy: Optional[str] = None

    @field_validator("contract_amount", mode="before")
    @classmethod
    def _parse_amount(cls, value):
        if isinstance(value, str):
            cleaned = value.replace("$", "").replace(",", "").strip()
            return cleaned or None
        return value


class SubcontractorCreate(SubcontractorFields):
    project_ids: Optional[list[str]] = None
    foreman_email: Optional[str] = None


class SubcontractorUpdate(SubcontractorCreate):
    id: Optional[str] = None


class SubcontractorResponse(CamelModel):
    id: str
    org_id: str
    name: str
    contract_amount: Optional[float] = None
    foreman: Optional[str] = None
    address: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    trade: Optional[str] = None
    contractor_license_no: Optional[str] = None
    specialty_license_no: Optional[str] = None
    federal_tax_id: Optional[str] = None
    motor_carrier_permit_no: Optional[str] = None
    is_union: bool = False
    is_self_insured: bool = False
    workers_comp_policy: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    project_ids: list[str] = []
    project_names: list[str] = []


class SubcontractorEnvelope(CamelModel):
    success: bool
    subcontractor: SubcontractorResponse


class PaginationInfo(CamelModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class SubcontractorListResponse(CamelModel):
    subcontractors: list[SubcontractorResponse]
    pagination: PaginationInfo


class DeleteResponse(CamelModel):
    success: bool
    message: str


class WorkerResponse(CamelModel):
    id: str
    org_id: str
    subcontractor_id: Optional[str] = None
    first_name: str
    last_name: str
    email: str
    code: str
    role: str
    rate: Optional[float] = None
    created_at: Optional[datetime] = None


class ForemanGap(CamelModel):
    id: str
    name: str
    foreman: str


class ForemanProvisionRequest(CamelModel):
    foreman_email: Optional[str] = None


class ForemanProvisionResponse(CamelModel):
    success: bool
    worker: Optional[WorkerResponse] = None
