from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_principal
from app.core.config import settings
from app.core.database import get_db
from app.core.principal import Principal
from app.core.security import create_access_token
from app.models.user import User
from app.schemas.user import UserResponse, LoginRequest, TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=UserResponse)
def me(db: Session = Depends(get_db), principal: Principal = Depends(get_current_principal)):
    """Shadow record of the authenticated caller"""
    return db.query(User).filter(User.id == principal.id).one()


@router.post("/dev-login", response_model=TokenResponse)
def dev_login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Local login for development; production tokens come from the identity provider."""
    if not settings.DEV_LOGIN_ENABLED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    user = db.query(User).filter(User.email == credentials.email).first()
    if not user or not user.verify_password(credentials.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    return {
        "access_token": create_access_token(user.id, user.email, user.role),
        "token_type": "bearer",
        "role": user.role,
        "user_id": user.id,
    }
