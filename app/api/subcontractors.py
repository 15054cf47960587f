import math
from fastapi import APIRouter, Depends, Query, Body
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from app.core.auth import Actor, get_current_actor
from app.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.db.session import get_db
from app.models.models import Worker
from app.schemas.schemas import (
    SubcontractorCreate, SubcontractorUpdate, SubcontractorResponse,
    SubcontractorEnvelope, SubcontractorListResponse, PaginationInfo,
    DeleteResponse, WorkerResponse, ForemanGap, ForemanProvisionRequest,
    ForemanProvisionResponse,
)
from app.services import subcontractor_service
from app.services.errors import ValidationFailedError
from app.services.import_service import bulk_create_subcontractors

router = APIRouter(prefix="/api/subcontractors", tags=["subcontractors"])

WRITE_ONLY_FIELDS = {"id", "project_ids", "foreman_email"}


def _subcontractor_response(sub, projects) -> SubcontractorResponse:
    return SubcontractorResponse(
        id=sub.id, org_id=sub.org_id, name=sub.name,
        contract_amount=sub.contract_amount, foreman=sub.foreman,
        address=sub.address, contact=sub.contact, email=sub.email, phone=sub.phone,
        trade=sub.trade, contractor_license_no=sub.contractor_license_no,
        specialty_license_no=sub.specialty_license_no,
        federal_tax_id=sub.federal_tax_id,
        motor_carrier_permit_no=sub.motor_carrier_permit_no,
        is_union=bool(sub.is_union), is_self_insured=bool(sub.is_self_insured),
        workers_comp_policy=sub.workers_comp_policy,
        created_at=sub.created_at, updated_at=sub.updated_at,
        project_ids=[project_id for project_id, _ in projects],
        project_names=[name for _, name in projects],
    )


def _worker_response(w: Worker) -> WorkerResponse:
    return WorkerResponse(
        id=w.id, org_id=w.org_id, subcontractor_id=w.subcontractor_id,
        first_name=w.first_name, last_name=w.last_name, email=w.email,
        code=w.code, role=w.role.value, rate=w.rate, created_at=w.created_at
    )


def _parse(model, payload, row_num: int | None = None):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        prefix = f"Row {row_num}: " if row_num is not None else ""
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationFailedError(f"{prefix}Invalid value for {field}: {first.get('msg')}")


@router.get("", response_model=SubcontractorListResponse)
def list_subcontractors(
    search: str = Query(None),
    project_id: str = Query(None, alias="projectId"),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, alias="pageSize"),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    rows, total = subcontractor_service.list_subcontractors(
        db, actor.org_id, search=search, project_id=project_id, page=page, page_size=page_size
    )
    total_pages = math.ceil(total / page_size) if total else 0
    return SubcontractorListResponse(
        subcontractors=[_subcontractor_response(s, projects) for s, projects in rows],
        pagination=PaginationInfo(
            page=page, page_size=page_size, total=total, total_pages=total_pages,
            has_next_page=page < total_pages, has_previous_page=page > 1
        )
    )


@router.post("")
def create_subcontractors(
    payload: dict = Body(...),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    if "subcontractors" in payload:
        raw = payload["subcontractors"]
        if not isinstance(raw, list):
            raise ValidationFailedError("Subcontractors must be an array")
        records = []
        for row_num, item in enumerate(raw, start=1):
            if not isinstance(item, dict):
                raise ValidationFailedError(f"Row {row_num}: expected an object")
            records.append(_parse(SubcontractorCreate, item, row_num).model_dump(exclude_unset=True))

        result = bulk_create_subcontractors(db, actor, records)
        if not result.created and result.errors:
            return JSONResponse(status_code=409, content={"success": False, "errors": result.errors})

        body = {
            "success": True,
            "created": len(result.created),
            "skipped": result.skipped_count + len(result.errors),
            "subcontractors": [
                _subcontractor_response(s, projects)
                for s, projects in subcontractor_service.attach_projects(db, result.created)
            ],
        }
        if result.errors:
            body["warnings"] = result.errors
        return body

    data = _parse(SubcontractorCreate, payload)
    sub = subcontractor_service.create_subcontractor(
        db, actor,
        data.model_dump(exclude_unset=True, exclude=WRITE_ONLY_FIELDS),
        project_tokens=data.project_ids,
        foreman_email=data.foreman_email,
    )
    sub, projects = subcontractor_service.attach_projects(db, [sub])[0]
    return SubcontractorEnvelope(success=True, subcontractor=_subcontractor_response(sub, projects))


@router.put("", response_model=SubcontractorEnvelope)
def update_subcontractor(
    data: SubcontractorUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    if not data.id:
        raise ValidationFailedError("Subcontractor ID is required")
    project_tokens = None
    if "project_ids" in data.model_fields_set:
        project_tokens = data.project_ids or []
    sub = subcontractor_service.update_subcontractor(
        db, actor, data.id,
        data.model_dump(exclude_unset=True, exclude=WRITE_ONLY_FIELDS),
        project_tokens=project_tokens,
        foreman_email=data.foreman_email,
    )
    sub, projects = subcontractor_service.attach_projects(db, [sub])[0]
    return SubcontractorEnvelope(success=True, subcontractor=_subcontractor_response(sub, projects))


@router.delete("", response_model=DeleteResponse)
def delete_subcontractor(
    id: str = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    if not id:
        raise ValidationFailedError("Subcontractor ID is required")
    subcontractor_service.delete_subcontractor(db, actor, id)
    return DeleteResponse(success=True, message="Subcontractor deleted successfully")


@router.get("/foreman-gaps", response_model=list[ForemanGap])
def list_foreman_gaps(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    subs = subcontractor_service.list_foreman_gaps(db, actor.org_id)
    return [ForemanGap(id=s.id, name=s.name, foreman=s.foreman) for s in subs]


@router.get("/{subcontractor_id}", response_model=SubcontractorEnvelope)
def get_subcontractor(
    subcontractor_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    sub, projects = subcontractor_service.get_subcontractor(db, actor.org_id, subcontractor_id)
    return SubcontractorEnvelope(success=True, subcontractor=_subcontractor_response(sub, projects))


@router.post("/{subcontractor_id}/foreman", response_model=ForemanProvisionResponse)
def provision_foreman(
    subcontractor_id: str,
    data: ForemanProvisionRequest = Body(default=None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    foreman_email = data.foreman_email if data else None
    worker = subcontractor_service.reprovision_foreman(db, actor, subcontractor_id, foreman_email)
    return ForemanProvisionResponse(
        success=worker is not None,
        worker=_worker_response(worker) if worker else None
    )
