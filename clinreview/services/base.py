import logging
from contextlib import contextmanager
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinreview.core.exceptions import DataAccessError


class BaseService:
    """
    Common plumbing for domain services: the request's DB session, an
    optional process-wide entity store and a per-class logger.
    """

    def __init__(self, db: Session, store=None):
        self.db = db
        self.store = store
        self._logger = logging.getLogger(self.__class__.__module__)

    @contextmanager
    def transaction(self, action: str):
        """Commit on success; roll back and propagate on any failure."""
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._logger.error(f"{action} failed: {e}")
            raise DataAccessError(f"Failed to {action}: {e.__class__.__name__}") from e
        except Exception:
            self.db.rollback()
            raise

    def log_info(self, message: str):
        self._logger.info(message)

    def log_warning(self, message: str):
        self._logger.warning(message)

    def log_error(self, message: str):
        self._logger.error(message)
