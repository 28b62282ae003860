"""
Loan Tracker API Application Factory
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .loans import router as loans_router
from .middleware import RequestLogger
from .. import __version__
from ..config import get_config
from ..exceptions import InternalError, NotFoundError, ValidationError
from ..logging_config import get_logger, setup_logging


GENERIC_SERVER_ERROR = "An unexpected error occurred"


def _failure(status_code: int, error) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format)
    logger = get_logger("loan_tracker.api")

    app = FastAPI(
        title="Loan Tracker API",
        description="Customer loans, partial payments and PDF receipts/reports",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(RequestLogger(log_bodies=config.log_request_bodies))

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return _failure(400, exc.messages[0] if len(exc.messages) == 1 else exc.messages)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        return _failure(400, messages)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _failure(404, str(exc))

    async def handle_server_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}",
                     exc_info=(type(exc), exc, exc.__traceback__))
        return _failure(500, str(exc) if get_config().is_development else GENERIC_SERVER_ERROR)

    app.add_exception_handler(InternalError, handle_server_error)
    app.add_exception_handler(Exception, handle_server_error)

    app.include_router(loans_router, prefix=config.api_prefix, tags=["Loans"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "loan_tracker_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Loan Tracker API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "loans": config.api_prefix,
                "date_range": f"{config.api_prefix}/date-range",
                "generate_pdf": f"{config.api_prefix}/generate-pdf",
            }
        }

    return app


def run_server(host: str = None, port: int = None, debug: bool = False):
    """Run the API with uvicorn"""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "loan_tracker.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
