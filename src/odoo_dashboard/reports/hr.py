"""HR report routines: headcount, hires, hours, payroll and attendance."""

import asyncio
import logging
from typing import Any

from odoo_dashboard.client import Domain, OdooClient
from odoo_dashboard.companies import CompanyResolver
from odoo_dashboard.models import ChartSlice, EmployeeAttendance, HrSummary
from odoo_dashboard.reports.common import chart_color, parse_date_range

logger = logging.getLogger(__name__)

# PGC 640 "Sueldos y salarios"
PAYROLL_ACCOUNT_PATTERN = "640%"

DEPARTMENT_COLORS = (
    "#8b5cf6", "#06b6d4", "#10b981", "#f59e0b",
    "#ef4444", "#ec4899", "#3b82f6", "#f97316",
)


async def count_active_employees(client: OdooClient, company_domain: Domain) -> int:
    return await client.search_count("hr.employee", [("active", "=", True), *company_domain])


async def payroll_cost(
    client: OdooClient,
    date_from: str,
    date_to: str,
    company_domain: Domain,
) -> float:
    """Posted debit on the wage accounts (640x) in a period."""
    account_ids = await client.search_ids(
        "account.account", [("code", "=like", PAYROLL_ACCOUNT_PATTERN)]
    )
    rows = await client.read_group(
        "account.move.line",
        [
            ("account_id", "in", account_ids),
            ("parent_state", "=", "posted"),
            ("date", ">=", date_from),
            ("date", "<=", date_to),
            *company_domain,
        ],
        ["debit"],
        ["account_id"],
    )
    return sum(row.value("debit") for row in rows)


async def hr_summary(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """Active employees, new hires, logged project hours and payroll cost.

    A new hire is an employee (archived ones included) whose first contract
    starts in the period or, lacking a contract date, who was created in
    the period.
    """
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)
    company_domain = selection.domain()
    date_from, date_to = start.isoformat(), end.isoformat()

    new_hires_domain: Domain = [
        ("active", "in", [True, False]),
        "|",
        "&", ("first_contract_date", ">=", date_from), ("first_contract_date", "<=", date_to),
        "&", ("first_contract_date", "=", False),
        "&", ("create_date", ">=", f"{date_from} 00:00:00"), ("create_date", "<=", f"{date_to} 23:59:59"),
        *company_domain,
    ]
    hours_domain: Domain = [
        ("date", ">=", date_from),
        ("date", "<=", date_to),
        ("project_id", "!=", False),
        *company_domain,
    ]

    active, new_hires, hours, payroll = await asyncio.gather(
        count_active_employees(client, company_domain),
        client.search_count("hr.employee", new_hires_domain),
        client.read_total("account.analytic.line", hours_domain, "unit_amount"),
        payroll_cost(client, date_from, date_to, company_domain),
    )

    return HrSummary(
        company=selection.label,
        active_employees=active,
        new_hires=new_hires,
        hours=hours,
        payroll_cost=payroll,
    ).to_dict()


async def hr_attendance(
    client: OdooClient,
    date_from: str | None,
    date_to: str | None,
    company: str | None = None,
) -> dict[str, Any]:
    """Worked and overtime hours per employee, highest first."""
    start, end = parse_date_range(date_from, date_to)
    selection = await CompanyResolver(client).resolve_many(company)

    rows = await client.read_group(
        "hr.attendance",
        [
            ("check_in", ">=", f"{start.isoformat()} 00:00:00"),
            ("check_in", "<=", f"{end.isoformat()} 23:59:59"),
            *selection.domain("employee_id.company_id"),
        ],
        ["worked_hours", "overtime_hours"],
        ["employee_id"],
    )

    employee_ids = [eid for eid in (row.group_id("employee_id") for row in rows) if eid is not None]
    departments: dict[int, str] = {}
    if employee_ids:
        employees = await client.search_read(
            "hr.employee",
            [("id", "in", employee_ids)],
            ["id", "name", "department_id"],
        )
        for employee in employees:
            department = employee.get("department_id")
            if isinstance(department, list) and len(department) == 2:
                departments[employee["id"]] = str(department[1])

    attendance = [
        EmployeeAttendance(
            name=row.group_name("employee_id", "Desconocido"),
            worked_hours=row.value("worked_hours"),
            overtime_hours=row.value("overtime_hours"),
            department=departments.get(row.group_id("employee_id"), "Sin departamento"),
        )
        for row in rows
    ]
    attendance.sort(key=lambda a: a.worked_hours, reverse=True)

    return {"empleados": [a.to_dict() for a in attendance]}


async def hr_departments(client: OdooClient, company: str | None = None) -> dict[str, Any]:
    """Active headcount per department, largest first."""
    selection = await CompanyResolver(client).resolve_many(company)

    rows = await client.read_group(
        "hr.employee",
        [("active", "=", True), *selection.domain()],
        ["department_id"],
        ["department_id"],
    )

    counts = [
        (row.group_name("department_id", "Sin departamento"), row.count)
        for row in rows
        if row.count > 0
    ]
    counts.sort(key=lambda c: c[1], reverse=True)

    return {
        "data": [
            ChartSlice(name=name, value=count, color=chart_color(i, DEPARTMENT_COLORS)).to_dict()
            for i, (name, count) in enumerate(counts)
        ]
    }
