"""Data models for the Odoo dashboard service.

This module contains dataclasses representing the typed views of raw Odoo
results (many2one values, read_group rows, companies) and the report
payloads returned by the aggregation routines.
"""

from dataclasses import dataclass, field
from typing import Any

from odoo_dashboard.accounting import round2
from odoo_dashboard.exceptions import ResponseDecodeError


@dataclass(frozen=True)
class Many2one:
    """A many2one field value as returned by Odoo: ``[id, display_name]``.

    Args:
        id: Referenced record id.
        name: Display name of the referenced record.
    """

    id: int
    name: str

    @classmethod
    def parse(cls, value: Any) -> "Many2one | None":
        """Parse a raw many2one value.

        Odoo encodes an empty many2one as ``False``.

        Returns:
            Many2one or None if the field is empty or not a many2one pair.
        """
        if isinstance(value, (list, tuple)) and len(value) == 2 and isinstance(value[0], int):
            return cls(id=value[0], name=str(value[1]))
        return None


def many2one_name(value: Any, default: str) -> str:
    """Display name of a raw many2one value, or ``default`` when empty."""
    parsed = Many2one.parse(value)
    return parsed.name if parsed else default


def many2one_id(value: Any) -> int | None:
    """Record id of a raw many2one value, or None when empty."""
    parsed = Many2one.parse(value)
    return parsed.id if parsed else None


def as_number(value: Any) -> float:
    """Coerce an Odoo numeric field to float (``False``/None become 0)."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    raise ValueError(f"Not a number: {value!r}")


@dataclass
class ReadGroupRow:
    """One group of a ``read_group`` call with ``lazy=False``.

    Args:
        groups: Raw values of the groupby fields (many2one pairs, etc.).
        aggregates: Aggregated numeric fields.
        count: Number of records in the group.
    """

    groups: dict[str, Any] = field(default_factory=dict)
    aggregates: dict[str, float] = field(default_factory=dict)
    count: int = 0

    def value(self, name: str) -> float:
        """Aggregated value of a field (0 if absent)."""
        return self.aggregates.get(name, 0.0)

    def group_id(self, name: str) -> int | None:
        return many2one_id(self.groups.get(name))

    def group_name(self, name: str, default: str) -> str:
        return many2one_name(self.groups.get(name), default)

    @classmethod
    def parse_rows(
        cls,
        raw: Any,
        model: str,
        fields: list[str],
        groupby: list[str],
    ) -> list["ReadGroupRow"]:
        """Validate and convert a raw ``read_group`` result.

        Args:
            raw: Raw XML-RPC result.
            model: Model name (for error messages).
            fields: Aggregated fields requested.
            groupby: Groupby fields requested.

        Returns:
            List of ReadGroupRow.

        Raises:
            ResponseDecodeError: If the result is not a list of dicts or an
                aggregate is not numeric.
        """
        if not isinstance(raw, list):
            raise ResponseDecodeError(model, "read_group", f"expected list, got {type(raw).__name__}")

        rows: list[ReadGroupRow] = []
        for item in raw:
            if not isinstance(item, dict):
                raise ResponseDecodeError(model, "read_group", "group is not a mapping")

            aggregates: dict[str, float] = {}
            for name in fields:
                # "balance:sum" style specs aggregate into the bare field name
                key = name.split(":")[0]
                if key in groupby:
                    continue
                try:
                    aggregates[key] = as_number(item.get(key))
                except ValueError as e:
                    raise ResponseDecodeError(model, "read_group", str(e)) from e

            count = item.get("__count")
            if count is None and groupby:
                count = item.get(f"{groupby[0]}_count")
            rows.append(cls(
                groups={name: item.get(name) for name in groupby},
                aggregates=aggregates,
                count=int(count or 0),
            ))
        return rows


@dataclass(frozen=True)
class Company:
    """A legal entity (``res.company``) in the Odoo database.

    Args:
        id: Internal company id.
        name: Full legal name (e.g., "SMD Consultores, S.L.").
    """

    id: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "name": self.name}


# =============================================================================
# Financial Report Models
# =============================================================================


@dataclass
class CashPosition:
    """Treasury plus open receivables and payables.

    Args:
        company: Label of the selected companies.
        treasury: Posted balance of cash and bank accounts.
        receivables: Open amount of customer invoices and refunds.
        receivables_count: Number of open customer documents.
        payables: Open amount of vendor bills and refunds.
        payables_count: Number of open vendor documents.
    """

    company: str
    treasury: float
    receivables: float
    receivables_count: int
    payables: float
    payables_count: int

    @property
    def net_position(self) -> float:
        return self.treasury + self.receivables - self.payables

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "empresa": self.company,
            "tesoreria": round2(self.treasury),
            "cobros_pendientes": round2(self.receivables),
            "cobros_count": self.receivables_count,
            "pagos_pendientes": round2(self.payables),
            "pagos_count": self.payables_count,
            "posicion_neta": round2(self.net_position),
        }


@dataclass
class DsoSummary:
    """Days sales outstanding for a period.

    Args:
        company: Label of the selected companies.
        dso: Days sales outstanding.
        period_sales: Posted customer invoice total in the period.
        receivables: Currently open receivable amount.
    """

    company: str
    dso: float
    period_sales: float
    receivables: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "empresa": self.company,
            "dso": round2(self.dso),
            "ventas_periodo": round2(self.period_sales),
            "cuentas_cobrar": round2(self.receivables),
        }


@dataclass
class OverdueInvoice:
    """A posted customer invoice past its due date.

    Args:
        partner: Customer name.
        amount: Amount still due.
        due_date: Due date (ISO format YYYY-MM-DD).
        days_overdue: Days since the due date.
        invoice: Invoice number.
    """

    partner: str
    amount: float
    due_date: str
    days_overdue: int
    invoice: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "partner": self.partner,
            "amount": round2(self.amount),
            "due_date": self.due_date,
            "days_overdue": self.days_overdue,
            "invoice": self.invoice,
        }


@dataclass
class InvoiceLine:
    """One invoice in the invoice list report."""

    id: int
    number: str
    customer: str
    date: str
    due_date: str | None
    total: float
    pending: float
    payment_state: str
    currency: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "numero": self.number,
            "cliente": self.customer,
            "fecha": self.date,
            "vencimiento": self.due_date,
            "total": round2(self.total),
            "pendiente": round2(self.pending),
            "estado": self.payment_state,
            "moneda": self.currency,
        }


@dataclass
class ChartPoint:
    """A point of a time series chart.

    Args:
        label: Period label (e.g., "Ene 25").
        value: Value at the end of the period.
    """

    label: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"fecha": self.label, "valor": round2(self.value)}


@dataclass
class ChartSlice:
    """A named value of a bar/pie chart with its display colour."""

    name: str
    value: float
    color: str
    count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"name": self.name, "value": self.value, "color": self.color}
        if self.count is not None:
            result["count"] = self.count
        return result


# =============================================================================
# CRM Report Models
# =============================================================================


@dataclass
class CrmSummary:
    """Opportunity funnel counters for a period.

    Args:
        company: Label of the selected companies.
        active_opportunities: Active opportunities right now.
        pipeline_value: Expected revenue of active opportunities.
        won: Opportunities won in the period.
        lost: Opportunities lost (archived) in the period.
        sign_ups: Clubs signed in the period.
        cancellations: Clubs cancelled in the period.
        unpaid: Opportunities in the unpaid stage.
        possible_cancellations: Opportunities in the possible-cancellation stage.
        active_clubs: Opportunities in a live customer stage.
    """

    company: str
    active_opportunities: int
    pipeline_value: float
    won: int
    lost: int
    sign_ups: int
    cancellations: int
    unpaid: int
    possible_cancellations: int
    active_clubs: int

    @property
    def conversion_rate(self) -> float:
        closed = self.won + self.lost
        return self.won / closed * 100 if closed > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "empresa": self.company,
            "oportunidades_activas": self.active_opportunities,
            "pipeline_value": round2(self.pipeline_value),
            "ganadas": self.won,
            "perdidas": self.lost,
            "tasa_conversion": round2(self.conversion_rate),
            "altas": self.sign_ups,
            "bajas": self.cancellations,
            "impagos": self.unpaid,
            "posibles_bajas": self.possible_cancellations,
            "clubs_activos": self.active_clubs,
        }


@dataclass
class ClubDeal:
    """An active opportunity with its invoiced revenue."""

    name: str
    partner: str
    stage: str
    stage_id: int
    signed_on: str | None
    revenue: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "partner": self.partner,
            "stage": self.stage,
            "stage_id": self.stage_id,
            "fecha_alta": self.signed_on,
            "ingreso": round2(self.revenue),
        }


# =============================================================================
# HR Report Models
# =============================================================================


@dataclass
class HrSummary:
    """Headcount and labour cost for a period."""

    company: str
    active_employees: int
    new_hires: int
    hours: float
    payroll_cost: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "empresa": self.company,
            "empleados_activos": self.active_employees,
            "nuevas_altas": self.new_hires,
            "horas_mes": round2(self.hours),
            "coste_nomina": round2(self.payroll_cost),
        }


@dataclass
class EmployeeAttendance:
    """Worked and overtime hours of one employee."""

    name: str
    worked_hours: float
    overtime_hours: float
    department: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "nombre": self.name,
            "horas_trabajadas": round2(self.worked_hours),
            "horas_extra": round2(self.overtime_hours),
            "departamento": self.department,
        }


# =============================================================================
# Subscription Report Models
# =============================================================================


@dataclass
class SubscriptionSummary:
    """Recurring revenue and churn for a period.

    Args:
        company: Label of the selected companies.
        mrr: Monthly recurring revenue of in-progress subscriptions.
        active: Subscriptions in progress or paused.
        new: Active subscriptions started in the period.
        churned: Subscriptions closed or churned in the period.
    """

    company: str
    mrr: float
    active: int
    new: int
    churned: int

    @property
    def churn_rate(self) -> float:
        if self.active <= 0:
            return 0.0
        return self.churned / (self.active + self.churned) * 100

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "empresa": self.company,
            "mrr": round2(self.mrr),
            "activas": self.active,
            "nuevas": self.new,
            "bajas": self.churned,
            "churn_rate": round2(self.churn_rate),
        }


@dataclass
class SubscriptionLine:
    """One subscription sale order."""

    name: str
    partner: str
    mrr: float
    start_date: str
    next_invoice: str
    status: str
    status_label: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "partner": self.partner,
            "mrr": round2(self.mrr),
            "start_date": self.start_date,
            "next_invoice": self.next_invoice,
            "status": self.status,
            "status_label": self.status_label,
        }
