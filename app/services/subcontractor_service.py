"""
Subcontractor repository.

Owns subcontractor rows and their project links. Each step (row write, link
write, foreman provisioning) commits on its own; a later step failing does
not undo an earlier one. Link replacement is clear-and-replace, never a diff.
"""

import logging
from sqlalchemy import func, distinct, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.auth import Actor
from app.models.models import (
    Subcontractor, SubcontractorProject, Project, Worker, WorkerRole, AuditLog
)
from app.services.errors import (
    DuplicateNameError, NotFoundError, ValidationFailedError, StorageError,
    is_unique_violation, violated_constraint,
)
from app.services.foreman_service import adopt_orphaned_foreman, provision_foreman
from app.services.project_resolver import looks_like_id, resolve_project_id, resolve_project_ids

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "Subcontractor name already exists in your company"
NOT_FOUND_MESSAGE = "Subcontractor not found or access denied"

SUBCONTRACTOR_FIELDS = (
    "name", "contract_amount", "foreman", "address", "contact", "email",
    "phone", "trade", "contractor_license_no", "specialty_license_no",
    "federal_tax_id", "motor_carrier_permit_no", "is_union",
    "is_self_insured", "workers_comp_policy",
)
BOOLEAN_FIELDS = ("is_union", "is_self_insured")


def clean_fields(fields: dict) -> dict:
    """Keep known columns only; trim strings, blank strings become None."""
    values = {}
    for key, value in fields.items():
        if key not in SUBCONTRACTOR_FIELDS:
            continue
        if key in BOOLEAN_FIELDS:
            value = bool(value)
        elif isinstance(value, str):
            value = value.strip() or None
        values[key] = value
    return values


def _name_taken(db: Session, org_id: str, name: str, exclude_id: str | None = None) -> bool:
    q = db.query(Subcontractor.id).filter(
        Subcontractor.org_id == org_id,
        Subcontractor.name == name
    )
    if exclude_id:
        q = q.filter(Subcontractor.id != exclude_id)
    return q.first() is not None


def _commit_primary(db: Session, what: str):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            logger.info("%s rejected by constraint %s", what, violated_constraint(e))
            raise DuplicateNameError(DUPLICATE_NAME_MESSAGE) from e
        logger.exception("%s failed", what)
        raise StorageError(f"{what} failed") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("%s failed", what)
        raise StorageError(f"{what} failed") from e


def _get_owned(db: Session, org_id: str, subcontractor_id: str) -> Subcontractor:
    if not subcontractor_id or not looks_like_id(str(subcontractor_id)):
        raise NotFoundError(NOT_FOUND_MESSAGE)
    sub = db.query(Subcontractor).filter(
        Subcontractor.id == subcontractor_id,
        Subcontractor.org_id == org_id
    ).first()
    if sub is None:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return sub


def insert_subcontractor(db: Session, actor: Actor, values: dict, action: str = "create") -> Subcontractor:
    """Insert one subcontractor row plus its audit entry and commit."""
    sub = Subcontractor(org_id=actor.org_id, **values)
    try:
        db.add(sub)
        db.flush()
        db.add(AuditLog(
            user_id=actor.user_id, action=action, entity_type="subcontractor",
            entity_id=sub.id, details=f"name={sub.name}"
        ))
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            raise DuplicateNameError(DUPLICATE_NAME_MESSAGE) from e
        raise StorageError("Create subcontractor failed") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Create subcontractor failed")
        raise StorageError("Create subcontractor failed") from e
    _commit_primary(db, "Create subcontractor")
    db.refresh(sub)
    return sub


def _link_rows(subcontractor_id: str, project_ids: list[str], actor: Actor) -> list[SubcontractorProject]:
    return [
        SubcontractorProject(
            subcontractor_id=subcontractor_id,
            project_id=project_id,
            assigned_by=actor.name,
            assigned_by_id=actor.user_id,
        )
        for project_id in project_ids
    ]


def link_projects(db: Session, subcontractor_id: str, project_ids: list[str], actor: Actor) -> bool:
    """Insert links for a freshly created subcontractor. Failures are logged only."""
    if not project_ids:
        return True
    try:
        db.add_all(_link_rows(subcontractor_id, project_ids, actor))
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not link subcontractor %s to projects %s",
                       subcontractor_id, project_ids, exc_info=True)
        return False


def replace_project_links(db: Session, subcontractor_id: str, project_ids: list[str], actor: Actor):
    """Delete every link of the subcontractor, then insert ``project_ids``."""
    try:
        db.query(SubcontractorProject).filter(
            SubcontractorProject.subcontractor_id == subcontractor_id
        ).delete(synchronize_session=False)
        db.add_all(_link_rows(subcontractor_id, project_ids, actor))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Replacing project links for subcontractor %s failed", subcontractor_id)
        raise StorageError("Failed to update project assignments") from e


def load_project_links(db: Session, subcontractor_ids: list[str]) -> dict[str, list[tuple[str, str]]]:
    """One query for the links of many subcontractors: id -> [(project_id, name)]."""
    links = {sid: [] for sid in subcontractor_ids}
    if not subcontractor_ids:
        return links
    rows = db.query(
        SubcontractorProject.subcontractor_id, Project.id, Project.name
    ).join(
        Project, SubcontractorProject.project_id == Project.id
    ).filter(
        SubcontractorProject.subcontractor_id.in_(subcontractor_ids)
    ).order_by(SubcontractorProject.assigned_at, Project.name).all()
    for subcontractor_id, project_id, project_name in rows:
        links.setdefault(subcontractor_id, []).append((project_id, project_name))
    return links


def attach_projects(db: Session, subs: list[Subcontractor]) -> list[tuple[Subcontractor, list[tuple[str, str]]]]:
    links = load_project_links(db, [s.id for s in subs])
    return [(s, links.get(s.id, [])) for s in subs]


def _first_linked_project(db: Session, subcontractor_id: str) -> str | None:
    link = db.query(SubcontractorProject.project_id).filter(
        SubcontractorProject.subcontractor_id == subcontractor_id
    ).order_by(SubcontractorProject.assigned_at).first()
    return link.project_id if link else None


def provision_subcontractor_foreman(
    db: Session, actor: Actor, sub: Subcontractor,
    project_id: str | None, foreman_email: str | None = None
) -> Worker | None:
    worker = provision_foreman(
        db,
        foreman_name=sub.foreman,
        subcontractor_name=sub.name,
        org_id=actor.org_id,
        foreman_email=foreman_email,
        project_id=project_id,
        actor_name=actor.name,
        actor_id=actor.user_id,
        subcontractor_id=sub.id,
    )
    if worker is None and sub.foreman:
        logger.warning("No foreman account provisioned for subcontractor '%s' (%s)", sub.name, sub.id)
    return worker


def create_subcontractor(
    db: Session, actor: Actor, fields: dict,
    project_tokens: list[str] | None = None, foreman_email: str | None = None
) -> Subcontractor:
    values = clean_fields(fields)
    name = values.get("name")
    if not name:
        raise ValidationFailedError("Missing required field: name")
    if _name_taken(db, actor.org_id, name):
        raise DuplicateNameError(DUPLICATE_NAME_MESSAGE)

    sub = insert_subcontractor(db, actor, values)

    project_ids = resolve_project_ids(db, actor.org_id, project_tokens)
    link_projects(db, sub.id, project_ids, actor)

    if sub.foreman:
        provision_subcontractor_foreman(db, actor, sub, project_ids[0] if project_ids else None, foreman_email)

    db.refresh(sub)
    return sub


def update_subcontractor(
    db: Session, actor: Actor, subcontractor_id: str, changes: dict,
    project_tokens: list[str] | None = None, foreman_email: str | None = None
) -> Subcontractor:
    """Apply only the keys present in ``changes``.

    ``project_tokens=None`` leaves links alone; a list (even empty) replaces them.
    """
    sub = _get_owned(db, actor.org_id, subcontractor_id)
    values = clean_fields(changes)

    if "name" in values:
        if not values["name"]:
            raise ValidationFailedError("Missing required field: name")
        if values["name"] != sub.name and _name_taken(db, actor.org_id, values["name"], exclude_id=sub.id):
            raise DuplicateNameError(DUPLICATE_NAME_MESSAGE)

    for key, value in values.items():
        setattr(sub, key, value)
    db.add(AuditLog(
        user_id=actor.user_id, action="update", entity_type="subcontractor",
        entity_id=sub.id, details=", ".join(sorted(values)) or None
    ))
    _commit_primary(db, "Update subcontractor")

    project_ids = None
    if project_tokens is not None:
        project_ids = resolve_project_ids(db, actor.org_id, project_tokens)
        replace_project_links(db, sub.id, project_ids, actor)

    if values.get("foreman"):
        if project_ids is None:
            target = _first_linked_project(db, sub.id)
        else:
            target = project_ids[0] if project_ids else None
        provision_subcontractor_foreman(db, actor, sub, target, foreman_email)

    db.refresh(sub)
    return sub


def delete_subcontractor(db: Session, actor: Actor, subcontractor_id: str):
    sub = _get_owned(db, actor.org_id, subcontractor_id)
    name = sub.name
    db.delete(sub)
    db.add(AuditLog(
        user_id=actor.user_id, action="delete", entity_type="subcontractor",
        entity_id=subcontractor_id, details=f"name={name}"
    ))
    _commit_primary(db, "Delete subcontractor")


def get_subcontractor(db: Session, org_id: str, subcontractor_id: str):
    sub = _get_owned(db, org_id, subcontractor_id)
    return attach_projects(db, [sub])[0]


def list_subcontractors(
    db: Session, org_id: str, search: str | None = None, project_id: str | None = None,
    page: int = 1, page_size: int = 50
):
    """Return ``(rows, total)``; rows are ``(subcontractor, [(project_id, name)])``."""
    q = db.query(Subcontractor).filter(Subcontractor.org_id == org_id)
    if search and search.strip():
        q = q.filter(Subcontractor.name.ilike(f"%{search.strip()}%"))
    if project_id:
        resolved = resolve_project_id(db, org_id, project_id)
        if resolved is None:
            return [], 0
        q = q.join(
            SubcontractorProject, SubcontractorProject.subcontractor_id == Subcontractor.id
        ).filter(SubcontractorProject.project_id == resolved)

    total = q.with_entities(func.count(distinct(Subcontractor.id))).scalar() or 0
    subs = q.order_by(Subcontractor.created_at.desc(), Subcontractor.id).offset((page - 1) * page_size).limit(page_size).all()
    return attach_projects(db, subs), total


def list_foreman_gaps(db: Session, org_id: str) -> list[Subcontractor]:
    """Subcontractors naming a foreman that has no foreman account behind it."""
    provisioned = select(Worker.subcontractor_id).where(
        Worker.org_id == org_id,
        Worker.role == WorkerRole.FOREMAN,
        Worker.subcontractor_id.isnot(None)
    )
    return db.query(Subcontractor).filter(
        Subcontractor.org_id == org_id,
        Subcontractor.foreman.isnot(None),
        Subcontractor.foreman != "",
        Subcontractor.id.notin_(provisioned)
    ).order_by(Subcontractor.name).all()


def reprovision_foreman(
    db: Session, actor: Actor, subcontractor_id: str, foreman_email: str | None = None
) -> Worker | None:
    sub = _get_owned(db, actor.org_id, subcontractor_id)
    if not sub.foreman:
        raise ValidationFailedError("Subcontractor has no foreman")
    adopted = adopt_orphaned_foreman(
        db, sub.foreman, sub.name, actor.org_id, sub.id, foreman_email
    )
    if adopted is not None:
        return adopted
    return provision_subcontractor_foreman(
        db, actor, sub, _first_linked_project(db, sub.id), foreman_email
    )
