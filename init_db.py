"""
Database initialization script
Creates all tables and seeds the first MANAGER account
"""
import logging
import os

from hardware_store.config import Settings
from hardware_store.core.passwords import hash_password, validate_password_strength
from hardware_store.database import Database
from hardware_store.models.user import Role, User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_manager(database: Database, username: str, password: str) -> bool:
    """Create the bootstrap manager unless an account with that username exists"""
    strength = validate_password_strength(password)
    if not strength.valid:
        raise ValueError(f"Bootstrap password rejected: {'; '.join(strength.violations)}")

    with database.unit_of_work() as db:
        if db.query(User).filter(User.username == username).first():
            logger.info(f"User {username} already exists, skipping")
            return False
        db.add(User(
            username=username,
            password_hash=hash_password(password),
            role=Role.MANAGER.value,
            active=True,
        ))
    logger.info(f"Manager account {username} created")
    return True


def init_db(settings: Settings = None):
    """Initialize database with all tables"""
    settings = settings or Settings.from_env()
    database = Database(settings.database_url)
    try:
        logger.info("Creating all database tables...")
        database.create_all()
        logger.info("Database tables created successfully")

        username = os.getenv("BOOTSTRAP_MANAGER_USERNAME")
        password = os.getenv("BOOTSTRAP_MANAGER_PASSWORD")
        if username and password:
            seed_manager(database, username.strip(), password)
        else:
            logger.warning("BOOTSTRAP_MANAGER_USERNAME/PASSWORD not set; no manager account seeded")

        logger.info("Database initialization complete!")
    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}")
        raise
    finally:
        database.dispose()


if __name__ == "__main__":
    init_db()
