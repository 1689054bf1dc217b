import logging
import os
import uuid

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from headway.db.session import SessionLocal
from headway.core.security import hash_password
from headway.models.user import User

logger = logging.getLogger(__name__)


def ensure_user(db: Session, email: str, password: str, role: str, name: str) -> bool:
    if db.query(User).filter(User.email == email).first():
        return False
    db.add(
        User(
            id=str(uuid.uuid4()),
            email=email,
            full_name=name,
            role=role,
            password_hash=hash_password(password),
            is_active=True,
        )
    )
    db.commit()
    return True


def run(db=None):
    """Create the first back-office admin from ADMIN_SEED_EMAIL / ADMIN_SEED_PASSWORD."""
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except ProgrammingError:
            db.rollback()
            logger.warning("users table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        email = os.getenv("ADMIN_SEED_EMAIL", "").strip().lower()
        password = os.getenv("ADMIN_SEED_PASSWORD", "")
        if not email or not password:
            logger.info("ADMIN_SEED_EMAIL/ADMIN_SEED_PASSWORD not set, no admin seeded")
            return
        if ensure_user(db, email, password, "admin", "Admin"):
            logger.info("Seeded admin user %s", email)
    finally:
        db.close()


if __name__ == "__main__":
    from headway.core.logging import configure_logging
    configure_logging()
    run()
