"""
Movie Night API — FastAPI application entry point.

Routers are registered here. Each resource lives in app/api/.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import auth, movies, nights, users, watched, watchlist
from app.core.config import settings
from app.core.logging import configure_logging

configure_logging()

app = FastAPI(
    title="Movie Night API",
    description="Backend for the group movie-night app: watchlist, roulette picks and ratings.",
    version="0.1.0",
    docs_url="/docs" if settings.ENABLE_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_DOCS else None,
)

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(auth.router,      prefix="/auth",      tags=["auth"])
app.include_router(users.router,     prefix="/users",     tags=["users"])
app.include_router(movies.router,    prefix="/movies",    tags=["movies"])
app.include_router(watchlist.router, prefix="/watchlist", tags=["watchlist"])
app.include_router(nights.router,    prefix="/nights",    tags=["nights"])
app.include_router(watched.router,   prefix="/watched",   tags=["watched"])


# ── Health check ──────────────────────────────────────────────────────────────
@app.get("/health", tags=["system"])
def health_check() -> dict:
    """Liveness probe. Returns 200 when the server is up."""
    return {"status": "ok", "version": app.version, "env": settings.APP_ENV}
