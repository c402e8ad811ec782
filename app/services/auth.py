"""
Credential checks. Session issuance lives in session_service.
"""
import logging
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.models.user import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Password verification failed on a malformed hash")
        return False


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Return the user when the credentials match and the account may sign in.
    Inactive or unverified accounts are treated like bad credentials.
    """
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not verify_password(password, user.hashed_password):
        return None
    if not user.is_active or not user.is_email_verified:
        logger.info("Login refused for inactive or unverified account", extra={"user_id": user.id})
        return None
    return user
