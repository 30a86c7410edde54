import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from archgraph.api.routes import router
from archgraph.config import CORS_ORIGINS, LOG_LEVEL
from archgraph.db.models import Base
from archgraph.db.session import engine
from archgraph.graph.errors import GraphOperationError, StaleVersionError
from archgraph.layout.elk import LayoutError, LayoutTimeoutError
from archgraph.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StaleVersionError)
    async def stale_version(request: Request, exc: StaleVersionError):
        return JSONResponse(status_code=409, content={"error": exc.to_dict()})

    @app.exception_handler(GraphOperationError)
    async def graph_operation_failed(request: Request, exc: GraphOperationError):
        return JSONResponse(status_code=422, content={"error": exc.to_dict()})

    @app.exception_handler(LayoutTimeoutError)
    async def layout_timed_out(request: Request, exc: LayoutTimeoutError):
        return JSONResponse(status_code=504, content={"error": {"code": "LAYOUT_TIMEOUT", "message": str(exc)}})

    @app.exception_handler(LayoutError)
    async def layout_failed(request: Request, exc: LayoutError):
        return JSONResponse(status_code=502, content={"error": {"code": "LAYOUT_FAILED", "message": str(exc)}})


def create_app(init_db: bool = True) -> FastAPI:
    configure_logging(LOG_LEVEL)

    app = FastAPI(
        title="Architecture Graph Service",
        version="0.1.0",
    )

    # Middleware FIRST
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes AFTER middleware
    app.include_router(router)
    _register_error_handlers(app)

    if init_db:
        @app.on_event("startup")
        def startup():
            retries = 5
            delay = 2

            for attempt in range(retries):
                try:
                    Base.metadata.create_all(bind=engine)
                    logger.info("[STARTUP] Database connected")
                    return
                except OperationalError:
                    logger.warning("[STARTUP] Waiting for database... (%d/%d)", attempt + 1, retries)
                    time.sleep(delay)

            # Do not crash the app
            logger.error("[STARTUP] Database not ready, graph sessions will fail until it is")

    return app


app = create_app()
