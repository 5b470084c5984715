"""Create all tables. Run on app startup."""
import logging

from bizops.db.base import Base
from bizops.db.session import engine
from bizops.models import user, client, product, order  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
    logger.info("[DB] Tables ready")
