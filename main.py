import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import close_db, init_db
from api.applications import router as applications_router
from api.dashboard import router as dashboard_router
from services.errors import AppError
from utils.dates import utcnow
from utils.validation import format_validation_errors

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

_started = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("%s started in %s mode", settings.app_name, settings.environment)
    yield
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Loan application management and dashboard statistics API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(applications_router)
app.include_router(dashboard_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.__cause__ or exc)
    else:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    content = {"success": False, "message": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = format_validation_errors(exc.errors())
    logger.warning("%s %s -> 400: invalid fields %s", request.method, request.url.path, ", ".join(errors))
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Not Found - {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"success": False, "message": "Something went wrong"}
    if settings.is_development:
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.get("/api/health")
async def health():
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": utcnow().isoformat(),
        "uptime": round(time.monotonic() - _started, 3),
    }


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": app.version,
        "endpoints": {
            "applications": "/api/applications",
            "dashboard": "/api/dashboard",
            "health": "/api/health",
        },
    }
