"""HTTP report endpoints for the dashboard UI.

Every route is a thin wrapper around a report routine: it reads the query
parameters, awaits the routine with the application's OdooClient and returns
its JSON payload. Errors are mapped to status codes by the exception handlers
registered in ``create_app``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from odoo_dashboard import __version__, reports
from odoo_dashboard.client import OdooClient
from odoo_dashboard.exceptions import CompanyNotFoundError, OdooError, ValidationError

logger = logging.getLogger(__name__)

INTERNAL_ERROR = {"error": "Error interno"}


def get_client(request: Request) -> OdooClient:
    """Provide the application's OdooClient, created on first use."""
    state = request.app.state
    if state.client is None:
        state.client = OdooClient()
        state.owns_client = True
    return state.client


# =============================================================================
# Exception handlers
# =============================================================================


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query parameters (e.g. a non-numeric limit)."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'][1:])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Parámetros inválidos: {problems}"})


async def company_not_found_handler(request: Request, exc: CompanyNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": exc.message})


async def odoo_error_handler(request: Request, exc: OdooError) -> JSONResponse:
    logger.error(f"{request.url.path} failed: {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=500, content=INTERNAL_ERROR)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.url.path} failed with an unexpected error")
    return JSONResponse(status_code=500, content=INTERNAL_ERROR)


# =============================================================================
# Application
# =============================================================================


def create_app(client: OdooClient | None = None) -> FastAPI:
    """Build the dashboard API.

    Args:
        client: Optional OdooClient to serve from. When omitted, a client is
            built from environment variables on the first request and closed
            on shutdown.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if app.state.owns_client and app.state.client is not None:
            await app.state.client.close()
            logger.info("Odoo client closed")

    app = FastAPI(
        title="Odoo Dashboard API",
        description="Financial, CRM, HR and subscription reports from Odoo",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.client = client
    app.state.owns_client = False

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(CompanyNotFoundError, company_not_found_handler)
    app.add_exception_handler(OdooError, odoo_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # -------------------------------------------------------------------------
    # Financial
    # -------------------------------------------------------------------------

    @app.get("/api/financial/summary")
    async def financial_summary(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        """Profit and loss split into operating and financial results."""
        return await reports.profit_and_loss(client, date_from, date_to, company)

    @app.get("/api/financial/cashflow")
    async def financial_cashflow(
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        """Treasury, open receivables and payables."""
        return await reports.cash_position(client, company)

    @app.get("/api/financial/dso")
    async def financial_dso(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        """Days sales outstanding."""
        return await reports.days_sales_outstanding(client, date_from, date_to, company)

    @app.get("/api/financial/overdue")
    async def financial_overdue(
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        """Overdue customer invoices."""
        return await reports.overdue_invoices(client, company)

    @app.get("/api/financial/top-companies")
    async def financial_top_companies(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        """Income per company."""
        return await reports.top_companies(client, date_from, date_to, company)

    @app.get("/api/financial/treasury")
    async def financial_treasury(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        """Month-end treasury balances."""
        return await reports.treasury_history(client, date_from, date_to, company)

    @app.get("/api/invoices")
    async def invoices(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        move_type: str = Query("out_invoice", alias="type"),
        limit: int = 50,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        """Sales or purchase invoices of a period."""
        return await reports.invoice_list(
            client, date_from, date_to, company, move_type=move_type, limit=limit
        )

    # -------------------------------------------------------------------------
    # CRM
    # -------------------------------------------------------------------------

    @app.get("/api/crm/summary")
    async def crm_summary(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.crm_summary(client, date_from, date_to, company)

    @app.get("/api/crm/pipeline")
    async def crm_pipeline(
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.crm_pipeline(client, company)

    @app.get("/api/crm/top-deals")
    async def crm_top_deals(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.crm_top_deals(client, company, date_from, date_to)

    # -------------------------------------------------------------------------
    # HR
    # -------------------------------------------------------------------------

    @app.get("/api/hr/summary")
    async def hr_summary(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.hr_summary(client, date_from, date_to, company)

    @app.get("/api/hr/attendance")
    async def hr_attendance(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.hr_attendance(client, date_from, date_to, company)

    @app.get("/api/hr/departments")
    async def hr_departments(
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.hr_departments(client, company)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    @app.get("/api/subscriptions/summary")
    async def subscriptions_summary(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.subscription_summary(client, date_from, date_to, company)

    @app.get("/api/subscriptions/list")
    async def subscriptions_list(
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.subscription_list(client, company)

    @app.get("/api/subscriptions/mrr-history")
    async def subscriptions_mrr_history(
        date_from: str | None = None,
        date_to: str | None = None,
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        return await reports.mrr_history(client, date_from, date_to, company)

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    @app.get("/api/alerts/count")
    async def alerts_count(
        company: str | None = None,
        client: OdooClient = Depends(get_client),
    ) -> dict[str, Any]:
        """Overdue and critically overdue customer invoice counts."""
        return await reports.overdue_alert_counts(client, company)

    # -------------------------------------------------------------------------
    # Directory and health
    # -------------------------------------------------------------------------

    @app.get("/api/companies")
    async def companies(client: OdooClient = Depends(get_client)) -> dict[str, Any]:
        """Company directory for the company filter."""
        return {"companies": [c.to_dict() for c in await client.list_companies()]}

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app
