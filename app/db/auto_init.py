"""
Startup initialization: create missing tables and make sure an Admin exists.
"""
# app/db/auto_init.py
from sqlalchemy import inspect

from app.db.enums import UserRole
from app.db.init_db import init_db
from app.db.session import Database
from app.logger import get_logger
from app.services.user_service import UserService

logger = get_logger(__name__)

DEFAULT_ADMIN = {
    "name": "Administrator",
    "email": "admin@precast.local",
    "password": "Admin123!",
}


def check_tables_exist(database: Database) -> bool:
    inspector = inspect(database.engine)
    return "users" in inspector.get_table_names()


def check_admin_user_exists(database: Database) -> bool:
    db = database.session()
    try:
        return bool(UserService(db).list_active_by_role(UserRole.Admin))
    finally:
        db.close()


def create_admin_user(database: Database, *, bcrypt_rounds: int = 12) -> None:
    db = database.session()
    try:
        user_service = UserService(db, bcrypt_rounds=bcrypt_rounds)
        if user_service.get_user_by_email(DEFAULT_ADMIN["email"]):
            logger.info("Default admin account already present, skipping")
            return

        user_service.create_user(role=UserRole.Admin, **DEFAULT_ADMIN)
        db.commit()
        logger.info(f"Default admin created: {DEFAULT_ADMIN['email']} (change the password after first login)")
    except Exception:
        db.rollback()
        logger.exception("Failed to create the default admin")
        raise
    finally:
        db.close()


def auto_init(database: Database, *, bcrypt_rounds: int = 12) -> None:
    """
    Create the schema when the database is empty and seed an Admin when
    no active Admin exists.
    """
    if not check_tables_exist(database):
        logger.info("Tables missing, creating schema")
        init_db(database)
    else:
        logger.info("Tables present")

    if not check_admin_user_exists(database):
        logger.info("No active admin, seeding the default account")
        create_admin_user(database, bcrypt_rounds=bcrypt_rounds)

    logger.info("Database initialization check complete")


if __name__ == "__main__":
    import os
    from dotenv import load_dotenv

    load_dotenv()
    handle = Database(os.getenv("DATABASE_URL", "sqlite:///job_tracker.db"))
    try:
        auto_init(handle)
    finally:
        handle.dispose()
