"""
UPI Banking API Application Factory
"""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .transactions import router as transactions_router
from .fraud_alerts import router as fraud_alerts_router
from .accounts import router as accounts_router
from .transfers import router as transfers_router
from .customers import router as customers_router
from .users import router as users_router
from .chat import router as chat_router
from .. import __version__
from ..config import get_config
from ..exceptions import BankingError, ValidationError
from ..logging_config import get_logger, log_action, setup_logging


logger = get_logger("upi_banking.api")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    config = get_config()
    setup_logging(config.log_level, fmt=config.log_format, log_file=config.log_file)

    app = FastAPI(
        title="UPI Banking API",
        description="Demo banking backend with atomic UPI transfers",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BankingError)
    async def banking_error_handler(request: Request, exc: BankingError):
        level = "error" if exc.status_code >= 500 else "warning"
        log_action(
            logger, level, f"{request.method} {request.url.path} failed: {exc.message}",
            action="http_error", resource=request.url.path,
            extra={"code": exc.code, "status": exc.status_code}
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "code": exc.code}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"] if part != "body")
        message = f"{field}: {first['msg']}" if field else first["msg"]
        log_action(
            logger, "warning", f"{request.method} {request.url.path} rejected: {message}",
            action="http_error", resource=request.url.path,
            extra={"code": ValidationError.code, "status": ValidationError.status_code}
        )
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"error": message, "code": ValidationError.code}
        )

    # Include routers
    app.include_router(users_router, prefix="/api", tags=["Users"])
    app.include_router(transactions_router, prefix="/api", tags=["Transactions"])
    app.include_router(fraud_alerts_router, prefix="/api", tags=["Fraud Alerts"])
    app.include_router(accounts_router, prefix="/api", tags=["Accounts"])
    app.include_router(transfers_router, prefix="/api", tags=["Transfers"])
    app.include_router(customers_router, prefix="/api", tags=["Customers"])
    app.include_router(chat_router, prefix="/api", tags=["Chat"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "upi_banking_api",
            "version": __version__
        }

    # Root endpoint
    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "UPI Banking API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "register": "/api/register",
                "login": "/api/login",
                "user": "/api/user",
                "transactions": "/api/transactions/{user_id}",
                "fraud-alerts": "/api/fraud-alerts/{user_id}",
                "active-fraud-alerts": "/api/fraud-alerts",
                "accounts": "/api/accounts/upi/{upi_id}",
                "transfer": "/api/transfer",
                "customers": "/api/customers",
                "chat": "/api/chat",
            }
        }

    return app


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "upi_banking.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
