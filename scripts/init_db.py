import logging

from scripts._path import add_root

add_root()

from sqlalchemy.exc import OperationalError

import models  # noqa: F401
from core.env import env_float, env_int
from database import Base, engine
from services.db_retry import run_with_retry

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BOOTSTRAP_RETRIES = env_int("INIT_DB_RETRIES", 7, minimum=1)
BOOTSTRAP_DELAY = env_float("INIT_DB_RETRY_DELAY", 3.0, minimum=0.0)


def init_db() -> None:
    logger.info("Creating campaign tables.")
    try:
        run_with_retry(
            lambda: Base.metadata.create_all(bind=engine),
            attempts=BOOTSTRAP_RETRIES,
            base_delay=BOOTSTRAP_DELAY,
            description="create campaign tables",
        )
    except OperationalError as exc:
        logger.error("Database initialization failed: %s", exc, exc_info=True)
        raise
    logger.info("Campaign tables ensured: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    init_db()
