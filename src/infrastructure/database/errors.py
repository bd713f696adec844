"""Translation of SQLAlchemy failures into application exceptions."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from core.exceptions import AppException, SchemaUnsupportedError, TransientRepositoryError

UNDEFINED_TABLE_SQLSTATE = "42P01"


def _error_text(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc).lower()


def is_missing_relation(exc: SQLAlchemyError) -> bool:
    """True for "relation does not exist" (Postgres) and "no such table" (SQLite)."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == UNDEFINED_TABLE_SQLSTATE:
        return True
    text = _error_text(exc)
    return "no such table" in text or ("relation" in text and "does not exist" in text)


def is_unique_violation(exc: IntegrityError) -> bool:
    text = _error_text(exc)
    return "unique" in text or "duplicate" in text


@contextmanager
def translate_db_errors(relation: str) -> Iterator[None]:
    """Re-raise database errors as SchemaUnsupportedError or TransientRepositoryError."""
    try:
        yield
    except AppException:
        raise
    except DBAPIError as exc:
        if is_missing_relation(exc):
            raise SchemaUnsupportedError(relation) from exc
        raise TransientRepositoryError(cause=type(exc).__name__) from exc
    except SQLAlchemyError as exc:
        raise TransientRepositoryError(cause=type(exc).__name__) from exc
