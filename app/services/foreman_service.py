"""
Foreman account provisioning.

A subcontractor's free-text ``foreman`` field is turned into a worker login
account with role ``foreman``. Provisioning is a side effect of subcontractor
writes: it returns ``None`` instead of raising, and callers carry on.
"""

import logging
import re
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import FOREMAN_DEFAULT_RATE
from app.models.models import Worker, WorkerRole, ProjectAssignment
from app.services.code_service import generate_unique_code
from app.services.errors import ExhaustedRetriesError, violated_constraint

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DEFAULT_LAST_NAME = "User"
FOREMAN_EMAIL_TLD = "foreman"


def split_foreman_name(foreman_name: str) -> tuple[str, str]:
    parts = foreman_name.split()
    first_name = parts[0]
    last_name = " ".join(parts[1:]) or DEFAULT_LAST_NAME
    return first_name, last_name


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (value or "").lower())


def synthesize_foreman_email(first_name: str, last_name: str, subcontractor_name: str) -> str:
    local = ".".join(p for p in (slugify(first_name), slugify(last_name)) if p) or "foreman"
    domain = slugify(subcontractor_name) or "subcontractor"
    return f"{local}@{domain}.{FOREMAN_EMAIL_TLD}"


def resolve_foreman_email(
    foreman_email: str | None,
    first_name: str,
    last_name: str,
    subcontractor_name: str,
) -> str:
    if foreman_email and foreman_email.strip():
        candidate = foreman_email.strip().lower()
        if EMAIL_PATTERN.match(candidate):
            return candidate
        logger.warning(
            "Foreman email '%s' for subcontractor '%s' is malformed, using a generated address",
            foreman_email, subcontractor_name
        )
    return synthesize_foreman_email(first_name, last_name, subcontractor_name)


def provision_foreman(
    db: Session,
    foreman_name: str | None,
    subcontractor_name: str,
    org_id: str,
    foreman_email: str | None = None,
    project_id: str | None = None,
    actor_name: str | None = None,
    actor_id: str | None = None,
    subcontractor_id: str | None = None,
) -> Worker | None:
    """Create the foreman worker account for a subcontractor.

    Returns the new worker, or ``None`` when the name is blank, an account
    with the same email already exists in the org, or the insert failed.
    A failed project assignment does not affect the returned worker.
    """
    if not foreman_name or not foreman_name.strip():
        return None

    first_name, last_name = split_foreman_name(foreman_name.strip())
    email = resolve_foreman_email(foreman_email, first_name, last_name, subcontractor_name)

    try:
        existing = db.query(Worker.id).filter(
            Worker.org_id == org_id,
            Worker.email == email
        ).first()
        if existing is not None:
            logger.info("Foreman account %s already exists in org %s, skipping", email, org_id)
            return None

        worker = Worker(
            org_id=org_id,
            subcontractor_id=subcontractor_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            code=generate_unique_code(db),
            role=WorkerRole.FOREMAN,
            rate=FOREMAN_DEFAULT_RATE,
            language="en",
        )
        db.add(worker)
        db.commit()
        db.refresh(worker)
    except ExhaustedRetriesError as e:
        db.rollback()
        logger.warning("Foreman '%s' for '%s' not created: %s", foreman_name, subcontractor_name, e)
        return None
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(
            "Foreman '%s' for '%s' not created (constraint=%s): %s",
            foreman_name, subcontractor_name, violated_constraint(e), e
        )
        return None

    logger.info("Created foreman %s %s (%s) for subcontractor '%s'",
                first_name, last_name, worker.code, subcontractor_name)

    if project_id and actor_name and actor_id:
        _assign_to_project(db, worker, project_id, actor_name, actor_id)

    return worker


def _assign_to_project(db: Session, worker: Worker, project_id: str, actor_name: str, actor_id: str):
    try:
        db.add(ProjectAssignment(
            worker_id=worker.id,
            project_id=project_id,
            role=WorkerRole.FOREMAN.value,
            assigned_by=actor_name,
            assigned_by_id=actor_id,
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not assign foreman %s to project %s", worker.id, project_id, exc_info=True)


def adopt_orphaned_foreman(
    db: Session,
    foreman_name: str | None,
    subcontractor_name: str,
    org_id: str,
    subcontractor_id: str,
    foreman_email: str | None = None,
) -> Worker | None:
    """Relink a foreman account whose subcontractor was deleted.

    Matches on the email ``provision_foreman`` would use. Only workers with
    role ``foreman`` and no subcontractor are taken over.
    """
    if not foreman_name or not foreman_name.strip():
        return None

    first_name, last_name = split_foreman_name(foreman_name.strip())
    email = resolve_foreman_email(foreman_email, first_name, last_name, subcontractor_name)
    worker = db.query(Worker).filter(
        Worker.org_id == org_id,
        Worker.email == email,
        Worker.role == WorkerRole.FOREMAN,
        Worker.subcontractor_id.is_(None)
    ).first()
    if worker is None:
        return None

    try:
        worker.subcontractor_id = subcontractor_id
        db.commit()
        db.refresh(worker)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not relink foreman %s to subcontractor %s",
                       email, subcontractor_id, exc_info=True)
        return None

    logger.info("Relinked foreman %s to subcontractor '%s'", email, subcontractor_name)
    return worker
