import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from sqlmodel import Session, select

from .config import SESSION_EXPIRE_DAYS
from .models import User, Session as SessionModel
from .timeutils import utcnow


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt. Truncates to 72 bytes for bcrypt compatibility."""
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))


def create_session(db: Session, user_id: int) -> str:
    """Create a new session for a user and return the session token."""
    session_token = secrets.token_urlsafe(32)
    user_session = SessionModel(
        user_id=user_id,
        session_token=session_token,
        expires_at=utcnow() + timedelta(days=SESSION_EXPIRE_DAYS)
    )
    db.add(user_session)
    db.commit()

    return session_token


def get_user_by_session_token(db: Session, session_token: str) -> Optional[User]:
    """Get user by session token if session is valid."""
    statement = select(SessionModel).where(SessionModel.session_token == session_token)
    user_session = db.exec(statement).first()

    if not user_session:
        return None

    if user_session.expires_at < utcnow():
        db.delete(user_session)
        db.commit()
        return None

    return db.get(User, user_session.user_id)


def delete_session(db: Session, session_token: str) -> None:
    """Delete a session (logout)."""
    statement = select(SessionModel).where(SessionModel.session_token == session_token)
    user_session = db.exec(statement).first()
    if user_session:
        db.delete(user_session)
        db.commit()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    statement = select(User).where(User.email == email)
    return db.exec(statement).first()


def create_user(
    db: Session,
    email: str,
    password: str,
    display_name: str,
    is_admin: bool = False
) -> User:
    """Create a new user."""
    user = User(
        email=email,
        password_hash=hash_password(password),
        display_name=display_name,
        is_admin=is_admin
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user by email and password."""
    user = get_user_by_email(db, email)

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user
