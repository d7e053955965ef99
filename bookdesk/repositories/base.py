import math
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..utils.errors import DataAccessError
from ..utils.serializers import to_int

DEFAULT_LIMIT = 10
MAX_LIMIT = 1000


@contextmanager
def transaction(action):
    """
    Unit of work around repository calls.

    Repositories only flush; whoever opens the transaction commits it. Any
    failure rolls back everything done inside the block.
    """
    try:
        yield db.session
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning(f"Rolled back {action}: integrity error")
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Rolled back {action}: {e}")
        raise DataAccessError(f"Error {action}") from e
    except Exception:
        db.session.rollback()
        current_app.logger.warning(f"Rolled back {action}")
        raise


def clamp_page(page, limit, default_limit=DEFAULT_LIMIT):
    """Clamp page to >= 1 and limit to [1, MAX_LIMIT]."""
    page = max(1, to_int(page, 1))
    limit = max(1, min(MAX_LIMIT, to_int(limit, default_limit)))
    return page, limit, (page - 1) * limit


def pagination(total, page, limit, offset):
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "offset": offset,
        "totalPages": math.ceil(total / limit) if total else 1,
        "currentPage": page,
    }


def like(term):
    return f"%{term.strip()}%"
