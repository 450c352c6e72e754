import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from sessionauth.config import settings
from sessionauth.core.clock import Clock
from sessionauth.core.errors import register_error_handlers
from sessionauth.core.middleware import AccessLogMiddleware, RequestIDMiddleware
from sessionauth.dependencies import engine, get_clock, get_db
from sessionauth.routers import sessions, user, users

logger = logging.getLogger("sessionauth")


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create database tables on startup if they don't exist."""
    from sessionauth.models.base import Base
    import sessionauth.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified/created")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Last added = outermost. RequestID sits innermost so it can turn unhandled
# errors into a 500 carrying the request ID; AccessLog sees that response;
# CORS wraps everything so error responses get the headers too.
app.add_middleware(RequestIDMiddleware)
app.add_middleware(AccessLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-request-id"],
)

register_error_handlers(app)

app.include_router(users.router)
app.include_router(user.router)
app.include_router(sessions.router)


@app.get("/status")
async def status(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    await db.execute(text("SELECT 1"))
    return {
        "updated_at": clock().isoformat(),
        "dependencies": {
            "database": {
                "status": "healthy",
                "dialect": db.get_bind().dialect.name,
            },
        },
    }
