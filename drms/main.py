from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from drms import __version__
from drms.core.config import settings
from drms.core.database import close_engine
from drms.core.envelope import error_content
from drms.core.exceptions import AppException
from drms.core.logging_config import configure_logging
from drms.core.middleware import RequestContextMiddleware
from drms.domains.auth import auth_router
from drms.domains.users import users_router
from drms.domains.entities import entities_router
from drms.domains.incidents import incidents_router
from drms.domains.assessments import assessments_router
from drms.domains.responses import responses_router
from drms.domains.donors import donors_router, commitments_router
from drms.domains.dashboard import dashboard_router, donor_insights_router
from drms.domains.verification.router import router as verification_router


configure_logging()
logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(exc.error_code, exc.message, exc.details),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_content("VALIDATION_ERROR", "Request validation failed", details),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_content(f"HTTP_{exc.status_code}", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_content(
            "INTERNAL_ERROR",
            "Internal server error",
            str(exc) if settings.debug else None,
        ),
    )


def register_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(AppException, app_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(StarletteHTTPException, http_exception_handler)
    application.add_exception_handler(Exception, general_exception_handler)


app = FastAPI(
    title="DRMS API",
    description="Disaster Response Management System API",
    version=__version__,
    docs_url=None,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)


api_router_v1 = FastAPI(
    title="DRMS API",
    description="Disaster Response Management System API",
    version=__version__,
)
register_exception_handlers(api_router_v1)
api_router_v1.include_router(auth_router)
api_router_v1.include_router(users_router)
api_router_v1.include_router(entities_router)
api_router_v1.include_router(incidents_router)
api_router_v1.include_router(assessments_router)
api_router_v1.include_router(verification_router)
api_router_v1.include_router(responses_router)
api_router_v1.include_router(donors_router)
api_router_v1.include_router(commitments_router)
api_router_v1.include_router(dashboard_router)
api_router_v1.include_router(donor_insights_router)

app.mount(settings.api_prefix, api_router_v1)


@app.on_event("shutdown")
async def shutdown_event():
    await close_engine()
    logger.info("Database engine disposed")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    return {
        "name": "DRMS API",
        "version": __version__,
        "docs": f"{settings.api_prefix}/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("drms.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
