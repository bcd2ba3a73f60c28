"""
Bootstrap an admin user.

    cd backend && ADMIN_EMAIL=coach@club.test python init_admin.py

Run after `alembic upgrade head`.
"""

import logging
import os

from app.database import SessionLocal
from app.models.generated import Users

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin")


def ensure_admin(db, email: str, name: str = "Admin") -> Users:
    """Create the user if missing and grant admin. Idempotent."""
    user = db.query(Users).filter(Users.email == email).first()

    if not user:
        user = Users(name=name, email=email, is_admin=1)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"[BOOTSTRAP] Admin created (email={email}, id={user.id})")
    elif not user.is_admin:
        user.is_admin = 1
        db.commit()
        logger.info(f"[BOOTSTRAP] Admin role granted (email={email}, id={user.id})")
    else:
        logger.info("[BOOTSTRAP] Admin already exists, nothing to do")

    return user


def main():
    if not ADMIN_EMAIL:
        raise RuntimeError("ADMIN_EMAIL is not set")

    db = SessionLocal()
    try:
        ensure_admin(db, ADMIN_EMAIL, ADMIN_NAME)
    finally:
        db.close()


if __name__ == "__main__":
    main()
