"""Financial report routines: P&L, cash position, DSO, overdue invoices,
income per company, treasury history and invoice lists.
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Any

from odoo_dashboard.accounting import PL_ACCOUNT_TYPES, ProfitAndLoss, round2
from odoo_dashboard.client import Domain, OdooClient
from odoo_dashboard.companies import CompanyResolver
from odoo_dashboard.exceptions import ValidationError
from odoo_dashboard.models import (
    CashPosition,
    ChartPoint,
    ChartSlice,
    DsoSummary,
    InvoiceLine,
    OverdueInvoice,
    many2one_name,
)
from odoo_dashboard.reports.common import (
    chart_color,
    clamp,
    gather_limited,
    month_ends,
    parse_date_range,
    period_label,
)

logger = logging.getLogger(__name__)

OPEN_PAYMENT_STATES = ["not_paid", "partial"]
CUSTOMER_MOVE_TYPES = ["out_invoice", "out_refund"]
VENDOR_MOVE_TYPES = ["in_invoice", "in_refund"]

INVOICE_TYPE_LABELS = {
    "out_invoice": "Ventas",
    "in_invoice": "Compras",
}

OVERDUE_LIMIT = 50
CRITICAL_OVERDUE_DAYS = 60
TOP_COMPANIES_LIMIT = 10


# =============================================================================
# Query helpers
# =============================================================================


async def load_profit_and_loss(
    client: OdooClient,
    start: date,
    end: date,
    company_domain: Domain,
) -> ProfitAndLoss:
    """Classify posted P&L balances of a period.

    Args:
        client: Odoo client.
        start: First day of the period.
        end: Last day of the period.
        company_domain: Company filter to append to the ledger query.

    Returns:
        ProfitAndLoss with the four accumulated totals.
    """
    accounts = await client.search_read(
        "account.account",
        [("account_type", "in", list(PL_ACCOUNT_TYPES))],
        ["id", "code", "name", "account_type"],
    )
    codes = {a["id"]: str(a.get("code") or "") for a in accounts}

    rows = await client.read_group(
        "account.move.line",
        [
            ("account_id", "in", list(codes)),
            ("parent_state", "=", "posted"),
            ("date", ">=", start.isoformat()),
            ("date", "<=", end.isoformat()),
            *company_domain,
        ],
        ["balance"],
        ["account_id"],
    )

    pnl = ProfitAndLoss()
    for row in rows:
        code = codes.get(row.group_id("account_id"))
        if code is None:
            continue
        pnl.add(code, row.value("balance"))
    return pnl


async def cash_account_ids(client: OdooClient) -> list[int]:
    """Ids of the bank and cash accounts (PGC group 57)."""
    return await client.search_ids("account.account", [("account_type", "=", "asset_cash")])


async def treasury_balance(
    client: OdooClient,
    company_domain: Domain,
    until: date | None = None,
) -> float:
    """Posted balance of the bank and cash accounts.

    Args:
        client: Odoo client.
        company_domain: Company filter.
        until: Optional last date to include.

    Returns:
        Sum of the balances.
    """
    bank_ids = await cash_account_ids(client)
    domain: Domain = [
        ("account_id", "in", bank_ids),
        ("parent_state", "=", "posted"),
    ]
    if until is not None:
        domain.append(("date", "<=", until.isoformat()))
    domain.extend(company_domain)

    rows = await client.read_group("account.move.line", domain, ["balance"], ["account_id"])
    return sum(row.value("balance") for row in rows)


def overdue_domain(today: date, company_domain: Domain) -> Domain:
    """Posted customer invoices still open after their due date."""
    return [
        ("move_type", "=", "out_invoice"),
        ("state", "=", "posted"),
        ("payment_state", "in", OPEN_PAYMENT_STATES),
        ("invoice_date_due", "<", today.isoformat()),
        *company_domain,
    ]


async def open_residuals(
    client: OdooClient,
    move_types: list[str],
    company_domain: Domain,
) -> list[float]:
    """Amounts still due on posted, unpaid or partially paid documents."""
    records = await client.search_read(
        "account.move",
        [
            ("move_type", "in", move_types),
            ("state", "=", "posted"),
            ("payment_state", "in", OPEN_PAYMENT_STATES),
            *company_domain,
        ],
        ["amount_residual"],
    )
    return [float(r.get("amount_residual") or 0) for r in records]


# =============================================================================
# Report routines
# =============================================================================


async def profit_and_loss(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """P&L statement split into operating and financial results.

    Args:
        client: Odoo client.
        date_from: Start date (YYYY-MM-DD), required.
        date_to: End date (YYYY-MM-DD), required.
        company: Optional comma-separated company names or aliases.

    Returns:
        Dictionary with 'empresa', 'periodo', 'explotacion', 'financiero'
        and 'resultado_antes_impuestos'.

    Example:
        >>> await profit_and_loss(client, "2025-01-01", "2025-03-31", "smd")
        {
            "empresa": "SMD Consultores, S.L.",
            "periodo": "2025-01-01 a 2025-03-31",
            "explotacion": {"ingresos": 1000.0, "gastos": -500.0, "resultado": 500.0},
            "financiero": {"ingresos": 200.0, "gastos": 0.0, "resultado": 200.0},
            "resultado_antes_impuestos": 700.0
        }
    """
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)

    pnl = await load_profit_and_loss(client, start, end, selection.domain())
    return pnl.to_dict(selection.label, period_label(start, end))


async def cash_position(client: OdooClient, company: str | None = None) -> dict[str, Any]:
    """Treasury, open receivables and payables and the resulting net position."""
    selection = await CompanyResolver(client).resolve_many(company)
    company_domain = selection.domain()

    treasury, receivables, payables = await asyncio.gather(
        treasury_balance(client, company_domain),
        open_residuals(client, CUSTOMER_MOVE_TYPES, company_domain),
        open_residuals(client, VENDOR_MOVE_TYPES, company_domain),
    )

    return CashPosition(
        company=selection.label,
        treasury=treasury,
        receivables=sum(receivables),
        receivables_count=len(receivables),
        payables=sum(payables),
        payables_count=len(payables),
    ).to_dict()


async def days_sales_outstanding(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """DSO = open receivables / period sales x days in the period.

    The day count includes both ends of the range. DSO is 0 when there were
    no sales.
    """
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)
    company_domain = selection.domain()

    sales, receivables = await asyncio.gather(
        client.read_total(
            "account.move",
            [
                ("move_type", "=", "out_invoice"),
                ("state", "=", "posted"),
                ("invoice_date", ">=", start.isoformat()),
                ("invoice_date", "<=", end.isoformat()),
                *company_domain,
            ],
            "amount_total_signed",
        ),
        open_residuals(client, CUSTOMER_MOVE_TYPES, company_domain),
    )

    open_amount = sum(receivables)
    days = (end - start).days + 1
    dso = open_amount / sales * days if sales > 0 else 0.0

    return DsoSummary(
        company=selection.label,
        dso=dso,
        period_sales=sales,
        receivables=open_amount,
    ).to_dict()


async def overdue_invoices(
    client: OdooClient,
    company: str | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Open customer invoices past their due date, oldest first."""
    selection = await CompanyResolver(client).resolve_many(company)
    today = today or date.today()

    records = await client.search_read(
        "account.move",
        overdue_domain(today, selection.domain()),
        ["partner_id", "amount_residual", "invoice_date_due", "name"],
        order="invoice_date_due asc",
        limit=OVERDUE_LIMIT,
    )

    invoices: list[OverdueInvoice] = []
    for record in records:
        due_date = str(record.get("invoice_date_due") or "")
        days_overdue = (today - date.fromisoformat(due_date)).days if due_date else 0
        invoices.append(OverdueInvoice(
            partner=many2one_name(record.get("partner_id"), "Sin cliente"),
            amount=float(record.get("amount_residual") or 0),
            due_date=due_date,
            days_overdue=days_overdue,
            invoice=str(record.get("name") or ""),
        ))

    items = [inv.to_dict() for inv in invoices]
    return {
        "total": round2(sum(inv.amount for inv in invoices)),
        "count": len(items),
        "facturas": items,
    }


async def overdue_alert_counts(
    client: OdooClient,
    company: str | None = None,
    today: date | None = None,
) -> dict[str, int]:
    """Count overdue customer invoices for the alert badge.

    An invoice is critical when it is more than 60 days past due.

    Args:
        client: Odoo client.
        company: Optional comma-separated company names or aliases.
        today: Reference date (defaults to today).

    Returns:
        Dictionary with 'count' (all overdue) and 'critical'.
    """
    selection = await CompanyResolver(client).resolve_many(company)
    today = today or date.today()
    critical_before = today - timedelta(days=CRITICAL_OVERDUE_DAYS)

    domain = overdue_domain(today, selection.domain())
    count, critical = await asyncio.gather(
        client.search_count("account.move", domain),
        client.search_count(
            "account.move",
            [*domain, ("invoice_date_due", "<", critical_before.isoformat())],
        ),
    )
    return {"count": count, "critical": critical}


async def top_companies(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """Posted income per company, largest first (top 10)."""
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)

    income_ids = await client.search_ids(
        "account.account", [("account_type", "in", ["income", "income_other"])]
    )
    rows = await client.read_group(
        "account.move.line",
        [
            ("account_id", "in", income_ids),
            ("parent_state", "=", "posted"),
            ("date", ">=", start.isoformat()),
            ("date", "<=", end.isoformat()),
            *selection.domain(),
        ],
        ["balance"],
        ["company_id"],
    )

    totals = [
        (row.group_name("company_id", "Desconocida"), abs(row.value("balance")))
        for row in rows
    ]
    totals = sorted((t for t in totals if t[1] > 0), key=lambda t: t[1], reverse=True)

    return {
        "data": [
            ChartSlice(name=name, value=round2(value), color=chart_color(i)).to_dict()
            for i, (name, value) in enumerate(totals[:TOP_COMPANIES_LIMIT])
        ]
    }


async def treasury_history(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """Treasury balance at the close of each month of the range."""
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)
    company_domain = selection.domain()

    months = month_ends(start, end)
    balances = await gather_limited(
        treasury_balance(client, company_domain, until=month_end)
        for _, month_end in months
    )

    return {
        "data": [
            ChartPoint(label=label, value=balance).to_dict()
            for (label, _), balance in zip(months, balances)
        ]
    }


async def invoice_list(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
    move_type: str = "out_invoice",
    limit: int = 50,
) -> dict[str, Any]:
    """Posted sales or purchase invoices of a period, newest first.

    Args:
        client: Odoo client.
        date_from: Start date (YYYY-MM-DD), required.
        date_to: End date (YYYY-MM-DD), required.
        company: Optional single company name or alias.
        move_type: 'out_invoice' (sales) or 'in_invoice' (purchases).
        limit: Maximum number of invoices (1-500, default 50).

    Returns:
        Dictionary with totals and the invoice list.
    """
    start, end = parse_date_range(date_from, date_to)
    if move_type not in INVOICE_TYPE_LABELS:
        raise ValidationError(
            f"Tipo de factura inválido: {move_type}",
            "Use 'out_invoice' or 'in_invoice'",
        )
    limit = clamp(limit, 1, 500)

    resolved = await CompanyResolver(client).resolve_one(company)

    records = await client.search_read(
        "account.move",
        [
            ("move_type", "=", move_type),
            ("state", "=", "posted"),
            ("invoice_date", ">=", start.isoformat()),
            ("invoice_date", "<=", end.isoformat()),
            *resolved.domain(),
        ],
        [
            "name", "partner_id", "invoice_date", "invoice_date_due",
            "amount_total_signed", "amount_residual", "payment_state", "currency_id",
        ],
        order="invoice_date desc",
        limit=limit,
    )

    invoices = [
        InvoiceLine(
            id=record.get("id", 0),
            number=str(record.get("name") or ""),
            customer=many2one_name(record.get("partner_id"), "Sin cliente"),
            date=str(record.get("invoice_date") or ""),
            due_date=record.get("invoice_date_due") or None,
            total=abs(float(record.get("amount_total_signed") or 0)),
            pending=float(record.get("amount_residual") or 0),
            payment_state=str(record.get("payment_state") or ""),
            currency=many2one_name(record.get("currency_id"), "EUR"),
        ).to_dict()
        for record in records
    ]

    return {
        "empresa": resolved.label,
        "periodo": period_label(start, end),
        "tipo": INVOICE_TYPE_LABELS[move_type],
        "count": len(invoices),
        "total_facturado": round2(sum(inv["total"] for inv in invoices)),
        "total_pendiente": round2(sum(inv["pendiente"] for inv in invoices)),
        "facturas": invoices,
    }
