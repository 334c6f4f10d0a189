import logging
from contextlib import contextmanager
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from . import db
from .errors import Conflict, StorageFailure

logger = logging.getLogger(__name__)


@contextmanager
def atomic(conflict_message=None):
    """Run the block and commit it as one transaction, translating store errors.

    Unique constraint violations become ``Conflict``; anything else the
    driver raises becomes an opaque ``StorageFailure``. The session is rolled
    back on any failure, so nothing from the block is left pending.
    """
    try:
        yield
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("integrity error on commit: %s", e.orig)
        raise Conflict(conflict_message) from e
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("storage failure on commit")
        raise StorageFailure() from e
    except Exception:
        db.session.rollback()
        raise


def commit(conflict_message=None):
    with atomic(conflict_message):
        pass
