from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from repro_tracker.core.errors import ConflictError, InternalError
from repro_tracker.database import SessionLocal


@contextmanager
def unit_of_work(
    db: Optional[Session] = None,
    *,
    conflict_message: str = "Conflicting concurrent update",
) -> Iterator[Session]:
    """
    If db is provided, this will NOT commit/close. Caller owns the transaction.
    If db is None, a session is opened, committed on success and rolled back
    on any failure.

    Unique-index violations surface as ConflictError, other storage failures
    as InternalError.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        yield db
        if owns_db:
            db.commit()
    except IntegrityError as exc:
        if owns_db:
            db.rollback()
        raise ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        if owns_db:
            db.rollback()
        raise InternalError("Storage failure") from exc
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()
