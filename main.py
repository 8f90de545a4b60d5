import logging
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, get_settings
from database import create_session_factory, create_store, init_db
from errors import register_exception_handlers
from logging_config import configure_logging
from middleware import register_middlewares
from routers import auth, bookings, data, events, rooming_lists

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    The engine (connection pool) is built once here and shared through
    app.state; request handlers reach it via the get_session dependency.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

    engine = create_store(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    register_exception_handlers(app)
    app.state.rate_limiter = register_middlewares(app, settings)

    # Added last so preflight requests are answered before rate limiting
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for module in (auth, rooming_lists, bookings, data, events):
        app.include_router(module.router, prefix=settings.API_PREFIX)

    @app.get("/health", tags=["health"])
    async def health():
        return {
            "status": "OK",
            "message": "Rooming List Manager API is running",
            "database": engine.dialect.name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.on_event("startup")
    async def on_startup():
        await init_db(engine)
        logger.info("API available under %s (CORS origin %s)", settings.API_PREFIX, settings.FRONTEND_URL)

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT)
