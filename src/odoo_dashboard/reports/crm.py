"""CRM report routines over ``crm.lead`` opportunities."""

import asyncio
import logging
from typing import Any

from odoo_dashboard.accounting import round2
from odoo_dashboard.client import Domain, OdooClient
from odoo_dashboard.companies import CompanyResolver
from odoo_dashboard.models import ChartSlice, ClubDeal, CrmSummary, many2one_id, many2one_name
from odoo_dashboard.reports.common import chart_color, parse_date_range

logger = logging.getLogger(__name__)

# Pipeline stages (crm.stage id, name) in sequence order
CRM_STAGES: tuple[tuple[int, str], ...] = (
    (15, "Forms"),
    (13, "BBDD / Potenciales clientes"),
    (12, "Negociando Oportunidad"),
    (14, "Contrato en preparación"),
    (6, "Contrato enviado"),
    (2, "Firmados + Proceso Onboarding + MKT"),
    (4, "Arrancado"),
    (19, "Impagos"),
    (11, "Posible baja"),
    (17, "Standby"),
    (5, "No interesados"),
    (18, "Perdidos"),
    (16, "Clubes sin respuesta"),
)
STAGE_NAMES = dict(CRM_STAGES)

UNPAID_STAGE_ID = 19
POSSIBLE_CANCELLATION_STAGE_ID = 11
ACTIVE_CLUB_STAGE_IDS = [2, 4, 11, 19]

# Custom fields on crm.lead
SIGN_UP_DATE_FIELD = "x_studio_fecha_firma_alta"
CANCELLATION_DATE_FIELD = "x_studio_fecha_baja"

PIPELINE_COLORS = (
    "#3b82f6", "#06b6d4", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899",
    "#14b8a6", "#f97316", "#6366f1", "#a855f7", "#e11d48", "#84cc16",
)

OPEN_OPPORTUNITY: Domain = [("active", "=", True), ("type", "=", "opportunity")]


async def crm_summary(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """Opportunity funnel counters for a period.

    Won and lost are counted on ``date_closed``; sign-ups and cancellations
    on the custom sign-up and cancellation date fields. The stage counters
    (unpaid, possible cancellations, active clubs) are a snapshot.
    """
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)
    company_domain = selection.domain()
    date_from, date_to = start.isoformat(), end.isoformat()

    def in_period(field: str) -> Domain:
        return [(field, ">=", date_from), (field, "<=", date_to)]

    active_domain = [*OPEN_OPPORTUNITY, *company_domain]

    (
        active,
        pipeline_value,
        won,
        lost,
        sign_ups,
        cancellations,
        unpaid,
        possible_cancellations,
        active_clubs,
    ) = await asyncio.gather(
        client.search_count("crm.lead", active_domain),
        client.read_total("crm.lead", active_domain, "expected_revenue"),
        client.search_count("crm.lead", [
            *OPEN_OPPORTUNITY,
            ("stage_id.is_won", "=", True),
            *in_period("date_closed"),
            *company_domain,
        ]),
        client.search_count("crm.lead", [
            ("active", "=", False),
            ("type", "=", "opportunity"),
            *in_period("date_closed"),
            *company_domain,
        ]),
        client.search_count("crm.lead", [
            ("type", "=", "opportunity"),
            *in_period(SIGN_UP_DATE_FIELD),
            *company_domain,
        ]),
        client.search_count("crm.lead", [
            ("type", "=", "opportunity"),
            *in_period(CANCELLATION_DATE_FIELD),
            *company_domain,
        ]),
        client.search_count("crm.lead", [
            *OPEN_OPPORTUNITY, ("stage_id", "=", UNPAID_STAGE_ID), *company_domain,
        ]),
        client.search_count("crm.lead", [
            *OPEN_OPPORTUNITY, ("stage_id", "=", POSSIBLE_CANCELLATION_STAGE_ID), *company_domain,
        ]),
        client.search_count("crm.lead", [
            *OPEN_OPPORTUNITY, ("stage_id", "in", ACTIVE_CLUB_STAGE_IDS), *company_domain,
        ]),
    )

    return CrmSummary(
        company=selection.label,
        active_opportunities=active,
        pipeline_value=pipeline_value,
        won=won,
        lost=lost,
        sign_ups=sign_ups,
        cancellations=cancellations,
        unpaid=unpaid,
        possible_cancellations=possible_cancellations,
        active_clubs=active_clubs,
    ).to_dict()


async def crm_pipeline(client: OdooClient, company: str | None = None) -> dict[str, Any]:
    """Expected revenue and opportunity count per stage, empty stages included."""
    selection = await CompanyResolver(client).resolve_many(company)

    rows = await client.read_group(
        "crm.lead",
        [
            *OPEN_OPPORTUNITY,
            ("stage_id", "in", [stage_id for stage_id, _ in CRM_STAGES]),
            *selection.domain(),
        ],
        ["expected_revenue"],
        ["stage_id"],
    )
    by_stage = {row.group_id("stage_id"): row for row in rows}

    stages = []
    for i, (stage_id, name) in enumerate(CRM_STAGES):
        row = by_stage.get(stage_id)
        stages.append(ChartSlice(
            name=name,
            value=round2(row.value("expected_revenue")) if row else 0.0,
            color=chart_color(i, PIPELINE_COLORS),
            count=row.count if row else 0,
        ).to_dict())

    return {"stages": stages}


async def crm_top_deals(
    client: OdooClient,
    company: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
) -> dict[str, Any]:
    """Active opportunities sorted by invoiced revenue.

    Revenue is the untaxed total of the partner's posted customer invoices
    in the period; without a period every deal reports 0.

    Args:
        client: Odoo client.
        company: Optional comma-separated company names or aliases.
        date_from: Optional start date (YYYY-MM-DD).
        date_to: Optional end date (YYYY-MM-DD); required if date_from is set.

    Returns:
        Dictionary with a 'clubs' list.
    """
    period = parse_date_range(date_from, date_to) if (date_from or date_to) else None
    selection = await CompanyResolver(client).resolve_many(company)
    company_domain = selection.domain()

    leads = await client.search_read(
        "crm.lead",
        [*OPEN_OPPORTUNITY, *company_domain],
        ["name", "partner_id", "stage_id", SIGN_UP_DATE_FIELD],
        order="stage_id asc",
    )

    revenue_by_partner: dict[int, float] = {}
    partner_ids = sorted({
        pid for pid in (many2one_id(lead.get("partner_id")) for lead in leads) if pid is not None
    })
    if period and partner_ids:
        start, end = period
        rows = await client.read_group(
            "account.move",
            [
                ("partner_id", "in", partner_ids),
                ("move_type", "=", "out_invoice"),
                ("state", "=", "posted"),
                ("invoice_date", ">=", start.isoformat()),
                ("invoice_date", "<=", end.isoformat()),
                *company_domain,
            ],
            ["amount_untaxed"],
            ["partner_id"],
        )
        for row in rows:
            partner_id = row.group_id("partner_id")
            if partner_id is not None:
                revenue_by_partner[partner_id] = row.value("amount_untaxed")

    deals: list[ClubDeal] = []
    for lead in leads:
        stage_id = many2one_id(lead.get("stage_id")) or 0
        partner_id = many2one_id(lead.get("partner_id"))
        deals.append(ClubDeal(
            name=lead.get("name") or "Sin nombre",
            partner=many2one_name(lead.get("partner_id"), "Sin cliente"),
            stage=STAGE_NAMES.get(stage_id) or many2one_name(lead.get("stage_id"), "Sin etapa"),
            stage_id=stage_id,
            signed_on=lead.get(SIGN_UP_DATE_FIELD) or None,
            revenue=revenue_by_partner.get(partner_id, 0.0) if partner_id else 0.0,
        ))

    deals.sort(key=lambda d: round2(d.revenue), reverse=True)
    return {"clubs": [deal.to_dict() for deal in deals]}
