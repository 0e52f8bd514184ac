import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.api.endpoints import router
from app.api.routes import health
from app.core.tracing import instrument_app, setup_tracing, shutdown_tracing
from app.shared.correlation import CorrelationMiddleware
from app.shared.errors import get_correlation_id, internal_error, register_exception_handlers
from app.shared.logging_config import setup_logging

SERVICE_NAME = "recruit-document-service"

setup_logging(service_name=SERVICE_NAME)
setup_tracing(SERVICE_NAME)

logger = logging.getLogger("Recruit.Main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Recruit document service starting")
    yield
    shutdown_tracing()


app = FastAPI(
    title="Recruit Document Service",
    description="Document storage, retrieval and extraction for the recruitment platform",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationMiddleware)
register_exception_handlers(app)
instrument_app(app)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return internal_error(correlation_id=get_correlation_id(request))


app.include_router(router, prefix="/api/v1")
app.include_router(health.router)


@app.get("/")
async def root():
    return {"message": "Recruit Document Service Running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
