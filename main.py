from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from routers import api_router
from config import settings
from database import engine, Base
from endpoints.logs import log_error
from endpoints.responses import create_error_response
from services.errors import ServiceError
import models  # noqa: F401  ensure model registration
import os
import logging

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

app = FastAPI(title=settings.PROJECT_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Production schemas come from Alembic (`alembic upgrade head`); only SQLite/test
# databases are created on the fly.
if os.environ.get("TESTING") or engine.url.get_backend_name() == "sqlite" or os.environ.get("DEV_AUTO_CREATE") == "1":
    Base.metadata.create_all(bind=engine)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        log_error(f"{request.method} {request.url.path} failed", exc, correlation_id=_correlation_id(request), context={"details": exc.details})
    return create_error_response(exc.status_code, exc.message, exc.details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return create_error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return create_error_response(400, "Invalid request", exc.errors())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log_error(f"{request.method} {request.url.path} failed", exc, correlation_id=_correlation_id(request))
    return create_error_response(500, "Internal server error", str(exc))


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
async def root():
    return {"message": "Welcome to the Stock Buster API!"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
