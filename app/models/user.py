from sqlalchemy import Column, Integer, String, DateTime
import bcrypt

from app.core.calendar import utcnow
from app.core.config import settings
from app.core.database import Base


class User(Base):
    """Local shadow of an identity-provider account, keyed by email."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    role = Column(String, nullable=False, default="OPERATOR")
    # only set for locally provisioned accounts
    password_hash = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def set_password(self, password: str):
        salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
        self.password_hash = bcrypt.hashpw(password.encode(), salt).decode()

    def verify_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return bcrypt.checkpw(password.encode(), self.password_hash.encode())
