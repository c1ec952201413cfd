"""Odoo Dashboard.

An async reporting service that reads financial, CRM, HR and subscription
data from Odoo over XML-RPC and serves dashboard aggregates as JSON, plus
MCP tools for the dashboard's chat assistant.
"""

__version__ = "0.1.0"

from odoo_dashboard.client import OdooClient

__all__ = ["OdooClient", "__version__"]
