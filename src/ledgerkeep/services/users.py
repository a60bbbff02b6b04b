"""Local user profile management."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ..infra.database import SessionFactory
from ..models.user import User

LOCAL_USERNAME = "local"


def get_user_by_username(username: str, session_factory: SessionFactory) -> Optional[User]:
    """Fetch a user by username."""
    username = username.strip()
    with session_factory() as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if user:
            session.expunge(user)
        return user


def ensure_local_user(session_factory: SessionFactory, username: str = LOCAL_USERNAME) -> User:
    """Create or return the profile that owns this ledger."""

    username = username.strip() or LOCAL_USERNAME
    with session_factory() as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if user:
            session.expunge(user)
            return user
        user = User(username=username)
        session.add(user)
        session.flush()
        session.refresh(user)
        session.expunge(user)
        return user
