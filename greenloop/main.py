from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from greenloop.db.base import get_db
from greenloop.core.config import settings
from greenloop.core.logging import configure_logging
from greenloop.routers import actions as actions_router
from greenloop.routers import admin_actions as admin_actions_router
from greenloop.routers import rewards as rewards_router
from greenloop.routers import admin_rewards as admin_rewards_router
from greenloop.routers import users as users_router
from greenloop.core.errors import (
    GreenLoopException,
    greenloop_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="GreenLoop API",
    description=(
        "**GreenLoop engagement ledger**\n\n"
        "Users log sustainability actions, earn points and CO2 credit, and claim "
        "level rewards; admins review logs, submissions and claims.\n\n"
        "Successful responses are wrapped as `{data}`; errors as "
        "`{error: {code, message, details}}`."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(GreenLoopException, greenloop_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(actions_router.router)
app.include_router(admin_actions_router.router)
app.include_router(rewards_router.router)
app.include_router(admin_rewards_router.router)
app.include_router(users_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
