"""
SecureBank API Application Factory
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .accounts import router as accounts_router
from .auth import router as auth_router
from .transactions import router as transactions_router
from .statements import router as statements_router
from .. import __version__
from ..banking import BankingSystem
from ..errors import (
    AuthError,
    BankingError,
    InsufficientFunds,
    NotFound,
    ValidationError,
)


# Most specific first; InvalidAmount is a ValidationError
ERROR_STATUS = [
    (AuthError, 401),
    (NotFound, 404),
    (InsufficientFunds, 409),
    (ValidationError, 422),
]


def status_for(error: BankingError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 400


async def banking_error_handler(request: Request, exc: BankingError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": str(exc)})


def create_app(system: Optional[BankingSystem] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="SecureBank API",
        description="Account registry and ledger service",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.banking_system = system or BankingSystem()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BankingError, banking_error_handler)

    # Include routers
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/accounts", tags=["Transactions"])
    app.include_router(statements_router, prefix="/accounts", tags=["Statements"])
    app.include_router(auth_router, prefix="/auth", tags=["Auth"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "secure_bank_api",
            "version": __version__
        }

    return app
