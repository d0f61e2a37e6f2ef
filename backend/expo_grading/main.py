import logging
from typing import Dict

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings
from .db.session import get_engine
from .grading_routes import router as grading_router
from .group_routes import router as group_router
from .logging_config import configure_logging
from .system_routes import router as system_router
from .user_routes import router as user_router


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="CS Expo Grading Backend", version="0.1.0")

settings_snapshot = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings_snapshot.cors_origins.split(",") if origin.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("Backend starting with persistence mode: %s", settings_snapshot.persistence_mode)
logger.info("Database URL configured: %s", bool(settings_snapshot.database_url))

app.include_router(user_router)
app.include_router(group_router)
app.include_router(grading_router)
app.include_router(system_router)


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "persistence_mode": settings.persistence_mode}


@app.get("/healthz/database")
def database_health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    if settings.persistence_mode == "memory":
        return {"status": "ok", "persistence_mode": settings.persistence_mode}
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except (RuntimeError, SQLAlchemyError) as exc:
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"status": "ok", "persistence_mode": settings.persistence_mode}
