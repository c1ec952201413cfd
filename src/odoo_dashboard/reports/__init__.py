"""Report routines: each one turns query parameters into a dashboard payload."""

from odoo_dashboard.reports.crm import crm_pipeline, crm_summary, crm_top_deals
from odoo_dashboard.reports.financial import (
    cash_position,
    days_sales_outstanding,
    invoice_list,
    overdue_alert_counts,
    overdue_invoices,
    profit_and_loss,
    top_companies,
    treasury_history,
)
from odoo_dashboard.reports.hr import hr_attendance, hr_departments, hr_summary
from odoo_dashboard.reports.subscriptions import (
    mrr_history,
    subscription_list,
    subscription_summary,
)

__all__ = [
    "cash_position",
    "crm_pipeline",
    "crm_summary",
    "crm_top_deals",
    "days_sales_outstanding",
    "hr_attendance",
    "hr_departments",
    "hr_summary",
    "invoice_list",
    "mrr_history",
    "overdue_alert_counts",
    "overdue_invoices",
    "profit_and_loss",
    "subscription_list",
    "subscription_summary",
    "top_companies",
    "treasury_history",
]
