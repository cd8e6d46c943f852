"""
Lending Ledger API Application Factory
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .borrowers import router as borrowers_router
from .loans import router as loans_router
from .payments import router as payments_router
from .reports import router as reports_router
from .system import LedgerSystem, get_ledger_system


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Lending Ledger API",
        description="Borrowers, loans and repayment schedules for informal lending",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(borrowers_router, prefix="/borrowers", tags=["Borrowers"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(payments_router, prefix="/payments", tags=["Payments"])
    app.include_router(reports_router, prefix="/reports", tags=["Reports"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "loan_ledger_api",
            "version": "1.0.0"
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Lending Ledger API",
            "version": "1.0.0",
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "borrowers": "/borrowers",
                "loans": "/loans",
                "payments": "/payments",
                "reports": "/reports"
            }
        }

    return app


app = create_app()

__all__ = ['app', 'create_app', 'LedgerSystem', 'get_ledger_system']
