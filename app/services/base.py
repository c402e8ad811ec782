import logging
from datetime import date
from typing import Callable

from sqlalchemy.orm import Session


class BaseService:
    """
    Common plumbing for database-backed services: the session, a logger named
    after the concrete service and an injectable calendar clock.
    """

    def __init__(self, db: Session, today: Callable[[], date] = date.today):
        self.db = db
        self.today = today
        self._logger = logging.getLogger(f"app.services.{type(self).__name__}")

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)
