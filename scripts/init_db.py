"""
Database initialisation script (creates all tables)
"""
import sys
import os

# project root on the import path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config.settings import settings
from src.utils.logger import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


def init_database(drop: bool = False):
    """Create every table (optionally dropping them first)"""
    from src.db.connection import db_manager
    
    try:
        if drop:
            db_manager.drop_all()
            logger.warning("Existing tables dropped")
        db_manager.create_all()
        logger.info(f"Database initialised: {settings.database_url.split('@')[-1]}")
    except Exception as e:
        logger.error(f"Database initialisation failed: {str(e)}")
        raise
    finally:
        db_manager.close()


if __name__ == "__main__":
    init_database(drop="--drop" in sys.argv[1:])
