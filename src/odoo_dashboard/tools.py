"""MCP tools over the Odoo report layer for the dashboard chat assistant.

This module defines the FastMCP server instance and the tools:
- get_financial_summary: Operating and financial P&L of a company for a period
- get_cashflow: Treasury balance of a company
- get_employee_count: Active employees of a company
- get_crm_summary: Active opportunities and pipeline value
- list_companies: Companies the caller may query

When ODOO_ALLOWED_COMPANIES is set, data tools only answer for those
companies and require an explicit company argument.
"""

import logging
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from odoo_dashboard.accounting import round2
from odoo_dashboard.client import OdooClient
from odoo_dashboard.companies import CompanyResolver, company_label, is_company_allowed
from odoo_dashboard.config import setup_logging
from odoo_dashboard.exceptions import OdooError
from odoo_dashboard.reports.common import parse_date_range
from odoo_dashboard.reports.crm import OPEN_OPPORTUNITY
from odoo_dashboard.reports.financial import load_profit_and_loss, treasury_balance
from odoo_dashboard.reports.hr import count_active_employees

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP(
    name="odoo-dashboard",
    instructions="Read-only access to the group's Odoo financial, HR and CRM figures",
)

# Lazy-initialized client (created on first tool call)
_client: OdooClient | None = None


def get_client() -> OdooClient:
    """Get or create the OdooClient instance.

    Returns:
        Configured OdooClient.
    """
    global _client
    if _client is None:
        _client = OdooClient()
    return _client


def allowed_companies() -> list[str]:
    settings = get_client().settings
    return settings.allowed_companies if settings else []


def check_company_access(company: str | None, allowed: list[str]) -> dict[str, str] | None:
    """Error dict if the caller may not query ``company``, else None."""
    if not allowed:
        return None
    labels = ", ".join(company_label(alias) for alias in allowed)
    if not company or not company.strip():
        return {"error": f"Debes especificar una empresa. Solo tienes acceso a: {labels}"}
    if not is_company_allowed(company, allowed):
        return {"error": f'No tienes acceso a la empresa "{company}". Solo puedes consultar: {labels}'}
    return None


def unexpected_error(e: Exception) -> dict[str, str]:
    logger.error(f"Unexpected error: {e}")
    return {"error": str(e), "action": "Check server logs for details"}


@mcp.tool()
async def get_financial_summary(
    date_from: str,
    date_to: str,
    company: str | None = None,
) -> dict[str, Any]:
    """Get the P&L (income, expenses, result) of a company for a period.

    Income and expenses are split into operating results (groups 6 and 7)
    and financial results (subgroups 66, 67, 76 and 77).

    Args:
        date_from: Start date (YYYY-MM-DD).
        date_to: End date (YYYY-MM-DD).
        company: Company name or alias (e.g., "SMD", "Samarluan").

    Returns:
        Dictionary with operating income, expenses and result, financial
        result and result before tax.

    Example:
        >>> await get_financial_summary("2025-01-01", "2025-03-31", "SMD")
        {
            "empresa": "SMD Consultores, S.L.",
            "ingresos_explotacion": 120000.0,
            "gastos_explotacion": -80000.0,
            "resultado_explotacion": 40000.0,
            "resultado_financiero": -1500.0,
            "resultado_antes_impuestos": 38500.0
        }
    """
    try:
        if denied := check_company_access(company, allowed_companies()):
            return denied

        start, end = parse_date_range(date_from, date_to)
        client = get_client()
        resolved = await CompanyResolver(client).resolve_one(company)
        pnl = await load_profit_and_loss(client, start, end, resolved.domain())
        return pnl.to_tool_dict(resolved.label)
    except OdooError as e:
        logger.error(f"Error getting financial summary: {e.message}")
        return e.to_dict()
    except Exception as e:
        return unexpected_error(e)


@mcp.tool()
async def get_cashflow(company: str | None = None) -> dict[str, Any]:
    """Get the treasury balance (bank and cash accounts) of a company.

    Args:
        company: Company name or alias.

    Returns:
        Dictionary with 'empresa' and 'tesoreria'.
    """
    try:
        if denied := check_company_access(company, allowed_companies()):
            return denied

        client = get_client()
        resolved = await CompanyResolver(client).resolve_one(company)
        treasury = await treasury_balance(client, resolved.domain())
        return {"empresa": resolved.label, "tesoreria": round2(treasury)}
    except OdooError as e:
        logger.error(f"Error getting cashflow: {e.message}")
        return e.to_dict()
    except Exception as e:
        return unexpected_error(e)


@mcp.tool()
async def get_employee_count(company: str | None = None) -> dict[str, Any]:
    """Count the active employees of a company.

    Args:
        company: Company name or alias.

    Returns:
        Dictionary with 'empresa' and 'empleados_activos'.
    """
    try:
        if denied := check_company_access(company, allowed_companies()):
            return denied

        client = get_client()
        resolved = await CompanyResolver(client).resolve_one(company)
        count = await count_active_employees(client, resolved.domain())
        return {"empresa": resolved.label, "empleados_activos": count}
    except OdooError as e:
        logger.error(f"Error counting employees: {e.message}")
        return e.to_dict()
    except Exception as e:
        return unexpected_error(e)


@mcp.tool()
async def get_crm_summary(
    date_from: str,
    date_to: str,
    company: str | None = None,
) -> dict[str, Any]:
    """Get active opportunities, pipeline value and deals won in a period.

    Args:
        date_from: Start date (YYYY-MM-DD).
        date_to: End date (YYYY-MM-DD).
        company: Company name or alias.

    Returns:
        Dictionary with 'empresa', 'oportunidades', 'pipeline_value' and
        'ganadas'.
    """
    try:
        if denied := check_company_access(company, allowed_companies()):
            return denied

        start, end = parse_date_range(date_from, date_to)
        client = get_client()
        resolved = await CompanyResolver(client).resolve_one(company)
        domain = [*OPEN_OPPORTUNITY, *resolved.domain()]

        count = await client.search_count("crm.lead", domain)
        pipeline = await client.read_total("crm.lead", domain, "expected_revenue")
        won = await client.search_count("crm.lead", [
            *domain,
            ("stage_id.is_won", "=", True),
            ("date_closed", ">=", start.isoformat()),
            ("date_closed", "<=", end.isoformat()),
        ])
        return {
            "empresa": resolved.label,
            "oportunidades": count,
            "pipeline_value": round2(pipeline),
            "ganadas": won,
        }
    except OdooError as e:
        logger.error(f"Error getting CRM summary: {e.message}")
        return e.to_dict()
    except Exception as e:
        return unexpected_error(e)


@mcp.tool()
async def list_companies() -> dict[str, Any]:
    """List the companies of the group.

    A restricted caller only sees its allowed companies (by alias and legal
    name); otherwise the full directory from Odoo is returned.

    Returns:
        Dictionary with an 'empresas' list.
    """
    try:
        allowed = allowed_companies()
        if allowed:
            return {
                "empresas": [
                    {"alias": alias, "nombre": company_label(alias)} for alias in allowed
                ]
            }

        companies = await get_client().list_companies()
        return {"empresas": [{"id": c.id, "nombre": c.name} for c in companies]}
    except OdooError as e:
        logger.error(f"Error listing companies: {e.message}")
        return e.to_dict()
    except Exception as e:
        return unexpected_error(e)


def main() -> None:
    """Run the MCP server with stdio transport."""
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    mcp.run()


if __name__ == "__main__":
    main()
