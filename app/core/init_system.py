import logging
from app.core.config import settings
from app.database import SessionLocal
from app.models.user import User, UserRole
from app.services import auth as auth_service

logger = logging.getLogger(__name__)

def init_system_data(session_factory=SessionLocal):
    """
    Creates the first admin account from ADMIN_EMAIL/ADMIN_PASSWORD when no
    admin exists yet. Does nothing when those settings are absent.
    """
    if not settings.admin_email or not settings.admin_password:
        logger.info("System initialization skipped: no bootstrap admin configured.")
        return

    db = session_factory()
    try:
        admin_count = db.query(User).filter(User.role == UserRole.ADMIN).count()
        if admin_count:
            logger.info(f"System initialization check: {admin_count} admin(s) found.")
            return

        email = settings.admin_email.lower()
        if db.query(User).filter(User.email == email).first():
            logger.warning(f"Bootstrap admin email {email} belongs to a non-admin user; leaving it unchanged.")
            return

        db.add(User(
            email=email,
            hashed_password=auth_service.get_password_hash(settings.admin_password),
            first_name="System",
            last_name="Admin",
            role=UserRole.ADMIN,
            is_active=True,
            is_email_verified=True,
        ))
        db.commit()
        logger.info(f"Created bootstrap admin: {email}")
    except Exception:
        db.rollback()
        logger.error("Error during system initialization", exc_info=True)
        raise
    finally:
        db.close()
