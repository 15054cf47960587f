import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.core.auth import Actor, get_current_actor
from app.models.models import Project, ProjectStatus, AuditLog
from app.schemas.schemas import ProjectCreate, ProjectResponse
from app.services.errors import is_unique_violation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])

VALID_PROJECT_STATUSES = [s.value for s in ProjectStatus]


def _project_response(p: Project) -> ProjectResponse:
    return ProjectResponse(
        id=p.id, org_id=p.org_id, name=p.name, description=p.description,
        status=p.status.value if p.status else ProjectStatus.PLANNING.value,
        created_at=p.created_at, updated_at=p.updated_at
    )


@router.get("", response_model=list[ProjectResponse])
def list_projects(
    status: str = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    q = db.query(Project).filter(Project.org_id == actor.org_id)
    if status:
        q = q.filter(Project.status == status)
    projects = q.order_by(Project.name).all()
    return [_project_response(p) for p in projects]


@router.post("", response_model=ProjectResponse)
def create_project(
    data: ProjectCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Missing required field: name")
    if data.status and data.status not in VALID_PROJECT_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status. Must be one of: {VALID_PROJECT_STATUSES}")
    existing = db.query(Project.id).filter(Project.org_id == actor.org_id, Project.name == name).first()
    if existing:
        raise HTTPException(status_code=409, detail="Project name already exists in your company")

    project = Project(
        org_id=actor.org_id, name=name, description=data.description,
        status=ProjectStatus(data.status) if data.status else ProjectStatus.PLANNING
    )
    db.add(project)
    db.flush()
    db.add(AuditLog(user_id=actor.user_id, action="create", entity_type="project", entity_id=project.id))
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            raise HTTPException(status_code=409, detail="Project name already exists in your company")
        logger.exception("Create project failed")
        raise HTTPException(status_code=500, detail="Database error while creating project")
    db.refresh(project)
    return _project_response(project)
