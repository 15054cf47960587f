import logging
import re
from sqlalchemy.orm import Session
from app.models.models import Project

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def looks_like_id(token: str) -> bool:
    return bool(UUID_PATTERN.match(token))


def resolve_project_id(db: Session, org_id: str, token: str | None) -> str | None:
    """Map a project id or project name to a project id within ``org_id``.

    Id-shaped tokens are lower-cased and passed through without a lookup;
    the junction foreign key decides whether they exist.
    """
    if token is None:
        return None
    token = str(token).strip()
    if not token:
        return None
    if looks_like_id(token):
        return token.lower()

    project = db.query(Project.id).filter(
        Project.org_id == org_id,
        Project.name == token
    ).first()
    return project.id if project else None


def resolve_project_ids(db: Session, org_id: str, tokens) -> list[str]:
    resolved = []
    for token in tokens or []:
        project_id = resolve_project_id(db, org_id, token)
        if project_id is None:
            logger.warning("Project '%s' not found in org %s, skipping link", token, org_id)
            continue
        if project_id not in resolved:
            resolved.append(project_id)
    return resolved
