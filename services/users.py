"""User accounts. Identity lives with the hosted OAuth provider; this keeps the
profile and the virtual cash balance the ledger trades against."""
from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.user import User
from services.errors import ConflictError, NotFoundError, StorageError

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise NotFoundError("User not found", {"userId": user_id})
    return user


def create_user(
    db: Session,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    identity_id: Optional[str] = None,
) -> User:
    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("User with this email already exists", {"email": email})
    now = datetime.utcnow()
    user = User(
        user_id=str(uuid.uuid4()),
        email=email,
        first_name=first_name,
        last_name=last_name,
        identity_id=identity_id,
        virtual_balance=settings.STARTING_BALANCE,
        version=0,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with another sign-up for the same email or identity
        db.rollback()
        raise ConflictError("User already exists", {"email": email})
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError("Failed to create user", str(e))
    db.refresh(user)
    logger.info("Created user %s", user.user_id)
    return user


def sign_in(
    db: Session,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    identity_id: Optional[str] = None,
) -> Tuple[User, bool]:
    """Return (user, created). Looks up by identity subject first, then email."""
    email = email.strip().lower()
    user = None
    if identity_id:
        user = db.query(User).filter(User.identity_id == identity_id).first()
    if user is None:
        user = db.query(User).filter(User.email == email).first()
        if user is not None and identity_id and not user.identity_id:
            user.identity_id = identity_id
            user.updated_at = datetime.utcnow()
            try:
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StorageError("Failed to link identity", str(e))
    if user is not None:
        return user, False
    return create_user(db, email, first_name, last_name, identity_id), True
