from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from app.core.config import settings
from app.core.database import engine, Base
from app.core.errors import CoreError, AuthenticationError, VALIDATION, NOT_FOUND, FORBIDDEN, CONFLICT, UPSTREAM_FAILURE
from app.models import user, employee, task, work_log, comment, reminder  # noqa: F401  (table registration)
from app.routers import health, auth, tasks, comments, reminders, employees, project_manager

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    VALIDATION: 400,
    NOT_FOUND: 404,
    FORBIDDEN: 403,
    CONFLICT: 409,
    UPSTREAM_FAILURE: 502,
}

# Init DB
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Flowbit Tasks API",
    version="1.0.0"
)


@app.exception_handler(CoreError)
async def core_error_handler(request: Request, exc: CoreError):
    if exc.kind == UPSTREAM_FAILURE:
        logger.warning(f"{request.method} {request.url.path} failed upstream: {exc.message}")
    body = {"detail": exc.message, "kind": exc.kind}
    body.update(exc.payload)
    return JSONResponse(status_code=STATUS_BY_KIND.get(exc.kind, 500), content=body)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"detail": str(exc), "kind": "UNAUTHENTICATED"})


# Routes
app.include_router(health.router, prefix="/health")
app.include_router(auth.router)
app.include_router(tasks.router)
app.include_router(comments.router)
app.include_router(reminders.router)
app.include_router(employees.router)
app.include_router(project_manager.router)
