import logging

from app.database import Base, engine
import app.models  # noqa: F401

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def recreate_database():
    """Drop every table known to the models and create them again (development only)."""
    logger.info(f"Dropping tables: {', '.join(t.name for t in reversed(Base.metadata.sorted_tables))}")
    Base.metadata.drop_all(bind=engine)

    logger.info("Creating tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database recreated successfully")


if __name__ == "__main__":
    recreate_database()
