import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pos_api.core.config import settings
from pos_api.core.errors import PosError
from pos_api.api.routes import api_router
from pos_api.db.session import engine
from pos_api.db.base import Base

logger = logging.getLogger(__name__)

def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Restaurant POS API",
        version="0.1.0",
        openapi_url="/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.include_router(api_router, prefix="/api/v1")

    @app.exception_handler(PosError)
    def on_pos_error(request: Request, exc: PosError):
        if exc.status_code >= 500:
            logger.error(f"[{exc.code}] {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"[{exc.code}] {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.on_event("startup")
    def on_startup():
        # demo convenience: create tables when asked
        if settings.CREATE_TABLES:
            Base.metadata.create_all(bind=engine)

    return app

app = create_app()
