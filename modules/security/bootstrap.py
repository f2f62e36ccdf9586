# modules/security/bootstrap.py
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config.settings import settings
from modules.security.model import User, UserRole
from modules.security.passwords import hash_password

logger = logging.getLogger(__name__)


def ensure_default_admin(db: Session,
                         email: Optional[str] = None,
                         password: Optional[str] = None,
                         name: Optional[str] = None) -> Optional[User]:
    """
    Create the first administrator from ADMIN_EMAIL / ADMIN_PASSWORD if it does not exist yet.
    - signup only ever creates Client accounts, so this is how an Admin comes to exist
    - an existing account with that email is promoted to Admin
    """
    email = (email or settings.ADMIN_EMAIL or "").strip().lower()
    password = password or settings.ADMIN_PASSWORD
    if not email or not password:
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set; skipping admin bootstrap")
        return None

    user = db.query(User).filter(func.lower(User.email) == email).first()
    if user:
        if user.role != UserRole.ADMIN:
            user.role = UserRole.ADMIN
            db.commit()
            logger.info("Promoted %s to Admin", email)
        return user

    user = User(
        name=name or settings.ADMIN_NAME,
        email=email,
        password_hash=hash_password(password),
        role=UserRole.ADMIN,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created default admin %s", email)
    return user
