# backend/papermate/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .database import create_db_engine, create_session_factory, get_app_settings
from .exception_handler import setup_exception_handlers

from .apps.catalog.router import router as catalog_router
from .apps.inventory.router import router as inventory_router
from .apps.purchasing.router import router as purchasing_router
from .apps.production.router import router as production_router
from .apps.sales.router import router as sales_router


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_db_engine(settings)
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        try:
            yield
        finally:
            engine.dispose()

    app = FastAPI(title="PaperMate API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings

    allow_credentials = "*" not in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)

    @app.get("/", tags=["health"])
    def read_root():
        return {"status": "ok", "message": "PaperMate backend is running"}

    @app.get("/api/health", tags=["health"])
    def health(app_settings: Settings = Depends(get_app_settings)):
        return {"ok": True, "env": app_settings.environment}

    app.include_router(catalog_router)
    app.include_router(inventory_router)
    app.include_router(purchasing_router)
    app.include_router(production_router)
    app.include_router(sales_router)
    return app
