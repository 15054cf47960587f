import logging
import secrets
import string
from sqlalchemy.orm import Session
from app.models.models import Worker
from app.services.errors import ExhaustedRetriesError

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 10


def _draw_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def generate_unique_code(db: Session) -> str:
    """Return a worker login code that no existing worker holds.

    The check does not reserve the code; ``uq_worker_code`` settles races.
    """
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        code = _draw_code()
        taken = db.query(Worker.id).filter(Worker.code == code).first()
        if taken is None:
            return code
        logger.debug("Worker code %s already taken (attempt %d)", code, attempt)

    raise ExhaustedRetriesError(
        f"Unable to generate a unique worker code after {MAX_CODE_ATTEMPTS} attempts"
    )
