"""Principal resolution: bearer token -> verified claims -> shadow user."""

from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.orm import Session
import logging

from app.core.database import get_db
from app.core.errors import AuthenticationError, UpstreamFailure
from app.core.principal import Principal
from app.core.security import verify_token, role_from_claims
from app.models.user import User

logger = logging.getLogger(__name__)


def resolve_principal(db: Session, authorization: Optional[str]) -> Principal:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Missing token")

    claims = verify_token(authorization[len("Bearer "):])
    if claims is None:
        raise AuthenticationError("Invalid token")

    email = claims.get("email")
    if not email:
        raise AuthenticationError("Token carries no email")

    role = role_from_claims(claims)
    try:
        user = sync_shadow_user(db, email, role.value)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Shadow user sync failed: {e}")
        raise UpstreamFailure("Failed to resolve user") from e

    return Principal(id=user.id, role=role, email=user.email)


def sync_shadow_user(db: Session, email: str, role: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, role=role)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # created concurrently by another request
            db.rollback()
            return db.query(User).filter(User.email == email).one()
        db.refresh(user)
        logger.info(f"Created shadow user {user.id} ({role})")
    elif user.role != role:
        user.role = role
        db.commit()
    return user


def get_current_principal(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(None),
) -> Principal:
    return resolve_principal(db, authorization)
