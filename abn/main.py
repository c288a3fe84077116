import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from abn.core.database import init_db
from abn.core.errors import ServiceError
from abn.routers import health, tasks, props, views, scripts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Init DB
    init_db()
    yield


app = FastAPI(
    title="abn task API",
    version="0.1.0",
    lifespan=lifespan,
)


# Les erreurs de service deviennent un corps JSON = message lisible
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.message)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"{request.method} {request.url.path} storage error: {exc}")
    return JSONResponse(status_code=500, content="Internal server error")


# Routes
app.include_router(health.router, prefix="/health")
app.include_router(tasks.router)
app.include_router(props.router)
app.include_router(views.router)
app.include_router(scripts.router)
