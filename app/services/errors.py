from sqlalchemy.exc import IntegrityError

PG_UNIQUE_VIOLATION = "23505"


class ProvisioningError(Exception):
    """Base for errors the subcontractor routes turn into a JSON failure."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DuplicateNameError(ProvisioningError):
    status_code = 409


class NotFoundError(ProvisioningError):
    status_code = 404


class ValidationFailedError(ProvisioningError):
    status_code = 400


class StorageError(ProvisioningError):
    status_code = 500


class ExhaustedRetriesError(ProvisioningError):
    """No unused worker code was found within the attempt budget."""


def is_unique_violation(exc: Exception) -> bool:
    if not isinstance(exc, IntegrityError):
        return False
    orig = exc.orig
    if getattr(orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig) or "duplicate key value" in str(orig)


def violated_constraint(exc: Exception) -> str | None:
    """Best-effort name of the constraint behind an IntegrityError."""
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name
    text = str(orig) if orig is not None else str(exc)
    if "UNIQUE constraint failed:" in text:
        return text.split("UNIQUE constraint failed:", 1)[1].strip()
    return None
