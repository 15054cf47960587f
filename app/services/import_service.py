import logging
from dataclasses import dataclass, field
from typing import List, Dict
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.auth import Actor
from app.core.config import MAX_BULK_RECORDS
from app.models.models import Subcontractor
from app.services.errors import ProvisioningError, ValidationFailedError
from app.services.project_resolver import resolve_project_ids
from app.services import subcontractor_service

logger = logging.getLogger(__name__)


@dataclass
class BulkImportResult:
    created: List[Subcontractor] = field(default_factory=list)
    skipped_count: int = 0
    errors: List[str] = field(default_factory=list)


def _validate_batch(records: List[Dict]):
    """Whole-batch checks: any failure here rejects every record."""
    if not records:
        raise ValidationFailedError("Subcontractors array is required and must not be empty")
    if len(records) > MAX_BULK_RECORDS:
        raise ValidationFailedError(f"Import exceeds maximum of {MAX_BULK_RECORDS} subcontractors")
    for row_num, record in enumerate(records, start=1):
        name = record.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationFailedError(f"Row {row_num}: Missing required field: name")


def _existing_names(db: Session, org_id: str) -> set:
    rows = db.query(func.lower(Subcontractor.name)).filter(Subcontractor.org_id == org_id).all()
    return {name for (name,) in rows}


def bulk_create_subcontractors(db: Session, actor: Actor, records: List[Dict]) -> BulkImportResult:
    """
    Create many subcontractors, one row at a time.

    Records whose name (case-insensitive) already exists are skipped without
    an error. A failing record is reported in ``errors`` and the rest of the
    batch continues. Links and foremen are handled once all rows are in.
    """
    _validate_batch(records)

    result = BulkImportResult()
    existing = _existing_names(db, actor.org_id)
    inserted = []

    for row_num, record in enumerate(records, start=1):
        name = record["name"].strip()
        key = name.lower()
        if key in existing:
            result.skipped_count += 1
            continue

        values = subcontractor_service.clean_fields(record)
        try:
            sub = subcontractor_service.insert_subcontractor(db, actor, values, action="bulk_create")
        except ProvisioningError as e:
            result.errors.append(f"Row {row_num} ({name}): {e.message}")
            logger.warning("Bulk import row %d (%s) failed: %s", row_num, name, e.message)
            continue
        except SQLAlchemyError as e:
            db.rollback()
            result.errors.append(f"Row {row_num} ({name}): {e.__class__.__name__}")
            logger.warning("Bulk import row %d (%s) failed", row_num, name, exc_info=True)
            continue

        existing.add(key)
        inserted.append((sub, record))

    for sub, record in inserted:
        project_ids = resolve_project_ids(db, actor.org_id, record.get("project_ids"))
        subcontractor_service.link_projects(db, sub.id, project_ids, actor)
        if sub.foreman:
            subcontractor_service.provision_subcontractor_foreman(
                db, actor, sub, project_ids[0] if project_ids else None, record.get("foreman_email")
            )
        result.created.append(sub)

    logger.info(
        "Bulk import for org %s: %d created, %d skipped, %d errors",
        actor.org_id, len(result.created), result.skipped_count, len(result.errors)
    )
    return result
