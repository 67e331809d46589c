import os
from fastapi import FastAPI, HTTPException, Request
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import Base, engine
from .logging import setup_logging, RequestIdMiddleware, structlog
from .auth.router import router as auth_router
from .routes.users import router as users_router
from .routes.buildings import router as buildings_router
from .routes.catalog import router as catalog_router
from .routes.tasks import router as tasks_router
from .routes.shifts import router as shifts_router
from .routes.requests import router as requests_router
from .routes.notifications import router as notifications_router
from .routes.dashboard import router as dashboard_router


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        structlog.get_logger("shiftdesk.api").error(
            "unhandled_error",
            method=request.method,
            path=request.url.path,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(buildings_router)
    app.include_router(catalog_router)
    app.include_router(tasks_router)
    app.include_router(shifts_router)
    app.include_router(requests_router)
    app.include_router(notifications_router)
    app.include_router(dashboard_router)

    # Metrics
    if settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        log = structlog.get_logger("shiftdesk.startup")
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            log.info("tables_verified", tables=len(Base.metadata.tables))

    # React frontend (SPA): serve the build and fall back to index.html for client-side routes
    front_dist = settings.frontend_dist
    assets_dir = os.path.join(front_dist, "assets")
    if os.path.isdir(assets_dir):
        app.mount("/assets", StaticFiles(directory=assets_dir), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    def spa_fallback(full_path: str):
        if full_path.startswith("api") or full_path == "metrics":
            raise HTTPException(status_code=404, detail="Not Found")
        index_path = os.path.join(front_dist, "index.html")
        if not os.path.exists(index_path):
            raise HTTPException(status_code=404, detail="Not Found")
        candidate = os.path.join(front_dist, full_path)
        if full_path and os.path.isfile(candidate) and os.path.commonpath([os.path.abspath(candidate), os.path.abspath(front_dist)]) == os.path.abspath(front_dist):
            return FileResponse(candidate)
        return FileResponse(index_path, headers={"Cache-Control": "no-cache, no-store, must-revalidate"})

    return app


app = create_app()
