"""Subscription report routines over subscription sale orders."""

import asyncio
import logging
from typing import Any

from odoo_dashboard.client import Domain, OdooClient
from odoo_dashboard.companies import CompanyResolver
from odoo_dashboard.exceptions import RpcFaultError
from odoo_dashboard.models import (
    ChartPoint,
    SubscriptionLine,
    SubscriptionSummary,
    many2one_name,
)
from odoo_dashboard.reports.common import gather_limited, month_ends, parse_date_range

logger = logging.getLogger(__name__)

IN_PROGRESS_STATE = "3_progress"
ACTIVE_STATES = ["3_progress", "4_paused"]
CHURN_STATES = ["5_close", "6_churn"]

STATE_LABELS = {
    "1_draft": "Borrador",
    "2_renewal": "Renovación",
    "3_progress": "Activa",
    "4_paused": "Pausada",
    "5_close": "Cerrada",
    "6_churn": "Baja",
}

SUBSCRIPTION_LIST_LIMIT = 200

IS_SUBSCRIPTION: Domain = [("is_subscription", "=", True)]


async def monthly_recurring_revenue(
    client: OdooClient,
    company_domain: Domain,
    until: str | None = None,
) -> float:
    """Sum of ``recurring_monthly`` over in-progress subscriptions.

    Args:
        client: Odoo client.
        company_domain: Company filter.
        until: Optional date (YYYY-MM-DD); only orders placed on or before it.
    """
    domain: Domain = [*IS_SUBSCRIPTION, ("subscription_state", "=", IN_PROGRESS_STATE)]
    if until is not None:
        domain.append(("date_order", "<=", until))
    domain.extend(company_domain)
    return await client.read_total("sale.order", domain, "recurring_monthly")


async def count_churned(
    client: OdooClient,
    date_from: str,
    date_to: str,
    company_domain: Domain,
) -> int:
    """Subscriptions closed or churned in a period.

    Counted on ``end_date``; databases without that field fault, in which
    case the count falls back to ``write_date``.
    """
    def churned_in(field: str) -> Domain:
        return [
            *IS_SUBSCRIPTION,
            ("subscription_state", "in", CHURN_STATES),
            (field, ">=", date_from),
            (field, "<=", date_to),
            *company_domain,
        ]

    try:
        return await client.search_count("sale.order", churned_in("end_date"))
    except RpcFaultError as e:
        logger.warning(f"Churn query on end_date failed, falling back to write_date: {e.message}")
        return await client.search_count("sale.order", churned_in("write_date"))


async def subscription_summary(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """MRR, active, new and churned subscriptions with the churn rate."""
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)
    company_domain = selection.domain()
    date_from, date_to = start.isoformat(), end.isoformat()

    active, mrr, new, churned = await asyncio.gather(
        client.search_count("sale.order", [
            *IS_SUBSCRIPTION,
            ("subscription_state", "in", ACTIVE_STATES),
            *company_domain,
        ]),
        monthly_recurring_revenue(client, company_domain),
        client.search_count("sale.order", [
            *IS_SUBSCRIPTION,
            ("subscription_state", "in", ACTIVE_STATES),
            ("date_order", ">=", date_from),
            ("date_order", "<=", date_to),
            *company_domain,
        ]),
        count_churned(client, date_from, date_to, company_domain),
    )

    return SubscriptionSummary(
        company=selection.label,
        mrr=mrr,
        active=active,
        new=new,
        churned=churned,
    ).to_dict()


async def subscription_list(client: OdooClient, company: str | None = None) -> dict[str, Any]:
    """Subscriptions by descending MRR (at most 200)."""
    selection = await CompanyResolver(client).resolve_many(company)

    orders = await client.search_read(
        "sale.order",
        [*IS_SUBSCRIPTION, *selection.domain()],
        [
            "name", "partner_id", "recurring_monthly",
            "date_order", "next_invoice_date", "subscription_state",
        ],
        order="recurring_monthly desc",
        limit=SUBSCRIPTION_LIST_LIMIT,
    )

    subscriptions = []
    for order in orders:
        state = order.get("subscription_state") or "unknown"
        subscriptions.append(SubscriptionLine(
            name=order.get("name") or "Sin nombre",
            partner=many2one_name(order.get("partner_id"), "Sin cliente"),
            mrr=float(order.get("recurring_monthly") or 0),
            start_date=order.get("date_order") or "",
            next_invoice=order.get("next_invoice_date") or "",
            status=state,
            status_label=STATE_LABELS.get(state, state),
        ).to_dict())

    return {"subscriptions": subscriptions}


async def mrr_history(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """MRR of in-progress subscriptions at the close of each month."""
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)
    company_domain = selection.domain()

    months = month_ends(start, end)
    values = await gather_limited(
        monthly_recurring_revenue(client, company_domain, until=month_end.isoformat())
        for _, month_end in months
    )

    return {
        "data": [
            ChartPoint(label=label, value=value).to_dict()
            for (label, _), value in zip(months, values)
        ]
    }
