from os import getenv


def _flag(name: str, default: str = "false") -> bool:
    return getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    DATABASE_URL = getenv("DATABASE_URL", "postgresql+psycopg://flowbit:flowbit@db:5432/flowbit")
    LOG_LEVEL = getenv("LOG_LEVEL", "INFO")

    # tokens are issued by the identity provider, verified here
    JWT_SECRET = getenv("JWT_SECRET", "dev-secret-change-in-prod")
    JWT_ALGORITHM = getenv("JWT_ALGORITHM", "HS256")
    JWT_AUDIENCE = getenv("JWT_AUDIENCE") or None
    JWT_ISSUER = getenv("JWT_ISSUER") or None
    JWT_EXPIRE_MIN = int(getenv("JWT_EXPIRE_MIN", "15"))

    DEV_LOGIN_ENABLED = _flag("DEV_LOGIN_ENABLED")
    BCRYPT_ROUNDS = int(getenv("BCRYPT_ROUNDS", "10"))

    REMINDER_WINDOW_DAYS = int(getenv("REMINDER_WINDOW_DAYS", "3"))
    DEFAULT_SNOOZE_HOURS = int(getenv("DEFAULT_SNOOZE_HOURS", "24"))

    # Supabase-compatible object storage
    STORAGE_URL = getenv("STORAGE_URL", "")
    STORAGE_KEY = getenv("STORAGE_KEY", "")
    STORAGE_TIMEOUT = int(getenv("STORAGE_TIMEOUT", "30"))
    MANAGER_FILES_BUCKET = getenv("MANAGER_FILES_BUCKET", "ManagerFiles")
    OPERATOR_FILES_BUCKET = getenv("OPERATOR_FILES_BUCKET", "OperationsDocuments")


settings = Settings()
