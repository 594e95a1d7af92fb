"""
SafetyNet Claims - mutual-aid claim review & settlement
FastAPI Backend Application Entry Point
"""

from fastapi import FastAPI, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import uvicorn

from database.connection import Database
from controllers import auth_controller, claims_controller, membership_controller
from services.claim_workflow import ClaimWorkflow
from services.membership_service import MembershipService
from utils.auth import get_current_user
from utils.clock import utcnow
from utils.config import WorkflowSettings
from utils.errors import ClaimWorkflowError
from utils.logging import setup_logging, get_logger

logger = get_logger(__name__)


def create_app(settings: Optional[WorkflowSettings] = None) -> FastAPI:
    settings = settings or WorkflowSettings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    database = Database(settings.database_url, echo=settings.echo_sql)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        await database.create_all()
        logger.info("SafetyNet claims backend started (%s)", settings.environment)
        yield
        # Shutdown
        await database.dispose()
        logger.info("SafetyNet claims backend shut down")

    app = FastAPI(
        title="SafetyNet Claims API",
        description="Claim submission, validator review, community voting and settlement",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.workflow = ClaimWorkflow(database, settings)
    app.state.membership_service = MembershipService(database)

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health Check
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "timestamp": utcnow().isoformat(),
            "version": "1.0.0",
            "service": "SafetyNet Claims Backend",
            "environment": settings.environment,
        }

    # Authentication Routes
    app.include_router(auth_controller.router, prefix="/auth", tags=["Authentication"])

    # Claims Routes
    app.include_router(
        claims_controller.router,
        prefix="/claims",
        tags=["Claims"],
        dependencies=[Depends(get_current_user)],
    )

    # Membership Routes
    app.include_router(
        membership_controller.router,
        prefix="/memberships",
        tags=["Memberships"],
        dependencies=[Depends(get_current_user)],
    )

    # Error Handlers
    @app.exception_handler(ClaimWorkflowError)
    async def workflow_error_handler(request: Request, exc: ClaimWorkflowError):
        logger.warning(
            "%s %s rejected: %s %s",
            request.method,
            request.url.path,
            exc.error_type.value,
            exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.to_dict()},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning("%s %s rejected: invalid request", request.method, request.url.path)
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": {
                    "type": "VALIDATION_ERROR",
                    "message": "Invalid request",
                    "details": {"errors": jsonable_encoder(exc.errors())},
                },
            },
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {
                    "type": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": {},
                },
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
