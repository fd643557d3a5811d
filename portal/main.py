from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from portal.config import settings
from portal.exceptions import PortalError
from portal.services.scheduler import start_scheduler, stop_scheduler
from portal.utils.responses import error_body

# Enable logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Init app
app = FastAPI(title="Recruitment Portal")

origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600
)

# Route Registrations
from portal.routes import applications_router, admin_review_router, health_router  # noqa: E402

routers = [
    applications_router,
    admin_review_router,
    health_router,
]

for router in routers:
    app.include_router(router)
    logger.info(f"Included router: {router.prefix}")


@app.get("/", include_in_schema=False)
async def root():
    return {
        "status": "ok",
        "message": "Recruitment Portal API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": [
            "/api/applications/* - Applicant applications and payments",
            "/api/admin/* - Review, selection, merit list and cron",
            "/api/health - System health check"
        ]
    }


# Exception handlers render the {success, message, errors?} envelope
@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_body("Validation failed", errors))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    message = str(exc) if settings.DEBUG else "Internal server error"
    return JSONResponse(status_code=500, content=error_body(message))


# Startup event
@app.on_event("startup")
async def startup_event():
    logger.info("Recruitment Portal starting up...")
    logger.info(f"CORS enabled for origins: {origins}")
    start_scheduler()
    logger.info("Server is ready to handle requests")


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()
    logger.info("Recruitment Portal shutting down...")
