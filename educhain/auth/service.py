
import logging
from datetime import datetime, timedelta
from sqlalchemy import select, delete
from sqlalchemy.orm import Session
from educhain.ledger.keys import Ed25519Keypair
from educhain.models.auth_session import UserSession
from educhain.models.user import User, ROLE_ISSUER, ROLE_STUDENT
from educhain.schemas.auth import SignupIn
from educhain.utils.security import (
    hash_password,
    verify_password,
    generate_session_token,
    hash_session_token,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 5


class SignupError(Exception):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


def register_user(db: Session, body: SignupIn) -> User:
    if body.password != body.confirm_password:
        raise SignupError("Passwords do not match", "confirm_password")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise SignupError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", "password")

    email = body.email.strip().lower()
    if db.scalar(select(User.id).where(User.email == email).limit(1)) is not None:
        raise SignupError("Email already in use", "email")

    keypair = Ed25519Keypair.generate()
    user = User(
        email=email,
        password_hash=hash_password(body.password),
        full_name=body.full_name or body.institution_name or "",
        role=ROLE_ISSUER if body.is_issuer else ROLE_STUDENT,
        address=keypair.secret_key(),
        institution_name=(body.institution_name or "") if body.is_issuer else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("registered %s user %s", user.role, user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = db.scalar(select(User).where(User.email == email.strip().lower()).limit(1))
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_session(db: Session, user: User, ttl_hours: int) -> str:
    """Persists a new session and returns the raw token; only its hash is stored."""
    token = generate_session_token()
    db.add(UserSession(
        id=hash_session_token(token),
        user_id=user.id,
        expires_at=datetime.utcnow() + timedelta(hours=ttl_hours),
    ))
    db.commit()
    return token


def delete_session(db: Session, token: str) -> None:
    db.execute(delete(UserSession).where(UserSession.id == hash_session_token(token)))
    db.commit()
