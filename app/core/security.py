from datetime import timedelta
from typing import Optional
from jose import JWTError, jwt

from app.core.calendar import utcnow
from app.core.config import settings
from app.core.principal import Role


def create_access_token(user_id: int, email: str, role: str) -> str:
    """Local token issuance (dev login and tests). Production tokens come from the IdP."""
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "exp": utcnow() + timedelta(minutes=settings.JWT_EXPIRE_MIN),
        "type": "access",
    }
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=options,
        )
    except JWTError:
        return None


def role_from_claims(claims: dict) -> Role:
    explicit = claims.get("role")
    if explicit in Role.__members__:
        return Role(explicit)

    # OIDC realm roles, most privileged first
    realm_roles = (claims.get("realm_access") or {}).get("roles") or []
    for candidate in (Role.PROJECT_MANAGER, Role.MANAGER, Role.OPERATOR):
        if candidate.value in realm_roles:
            return candidate
    return Role.OPERATOR
