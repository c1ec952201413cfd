"""Tests for P&L classification and rounding."""

from decimal import Decimal

import pytest

from odoo_dashboard.accounting import (
    EXPENSE,
    FINANCIAL,
    INCOME,
    OPERATING,
    ProfitAndLoss,
    classify_balance,
    round2,
)


class TestClassifyBalance:
    """Test cases for classify_balance."""

    def test_operating_income(self):
        """A credit balance on group 7 is operating income."""
        result = classify_balance("700001", -1000)
        assert (result.bucket, result.kind, result.amount) == (OPERATING, INCOME, Decimal(1000))

    def test_operating_expense(self):
        """A debit balance on group 6 is operating expense."""
        result = classify_balance("600001", 500)
        assert (result.bucket, result.kind, result.amount) == (OPERATING, EXPENSE, Decimal(500))

    def test_financial_income_prefix_76(self):
        """Prefix 76 with a credit balance is financial income."""
        result = classify_balance("760001", -200)
        assert (result.bucket, result.kind, result.amount) == (FINANCIAL, INCOME, Decimal(200))

    def test_financial_expense_prefixes_66_67(self):
        """Prefixes 66 and 67 are financial."""
        assert classify_balance("662000", 10).bucket == FINANCIAL
        assert classify_balance("678000", 10).bucket == FINANCIAL

    def test_prefix_77_is_financial(self):
        """Prefix 77 counts as financial, not operating."""
        assert classify_balance("771000", -50).bucket == FINANCIAL

    def test_group_7_debit_is_expense(self):
        """A debit balance on an income account reduces income as expense."""
        result = classify_balance("705000", 80)
        assert (result.kind, result.amount) == (EXPENSE, Decimal(80))

    def test_group_6_credit_is_income(self):
        """A credit balance on an expense account counts as income."""
        result = classify_balance("629000", -30)
        assert (result.kind, result.amount) == (INCOME, Decimal(30))

    def test_other_groups_ignored(self):
        """Balance sheet groups are not part of the P&L."""
        assert classify_balance("572000", 100) is None
        assert classify_balance("", 100) is None


class TestProfitAndLoss:
    """Test cases for the ProfitAndLoss accumulator."""

    def test_operating_result(self):
        """Income 1000 and expense 500 give an operating result of 500."""
        pnl = ProfitAndLoss.from_balances([("700001", -1000), ("600001", 500)])
        assert pnl.operating_result == Decimal(500)

    def test_financial_result(self):
        """Financial income flows into the result before tax."""
        pnl = ProfitAndLoss.from_balances([
            ("700001", -1000), ("600001", 500), ("760001", -200),
        ])
        assert pnl.financial_result == Decimal(200)
        assert pnl.result_before_tax == Decimal(700)

    def test_order_independent(self):
        """Accumulation order does not change any total."""
        balances = [("700001", -0.1), ("700002", -0.2), ("600001", 0.3), ("760000", -1e-2)]
        forward = ProfitAndLoss.from_balances(balances)
        backward = ProfitAndLoss.from_balances(reversed(balances))
        assert forward == backward
        assert forward.operating_income == Decimal("0.3")

    def test_to_dict_reports_negative_expenses(self):
        """Dashboard payload shows expenses as negative numbers."""
        pnl = ProfitAndLoss.from_balances([("700001", -1000), ("600001", 500), ("760001", -200)])
        assert pnl.to_dict("Todas", "2025-01-01 a 2025-01-31") == {
            "empresa": "Todas",
            "periodo": "2025-01-01 a 2025-01-31",
            "explotacion": {"ingresos": 1000.0, "gastos": -500.0, "resultado": 500.0},
            "financiero": {"ingresos": 200.0, "gastos": 0.0, "resultado": 200.0},
            "resultado_antes_impuestos": 700.0,
        }

    def test_to_tool_dict(self):
        """Chat payload uses flat keys."""
        pnl = ProfitAndLoss.from_balances([("700001", -1000), ("600001", 500), ("669000", 20)])
        assert pnl.to_tool_dict("SMD Consultores, S.L.") == {
            "empresa": "SMD Consultores, S.L.",
            "ingresos_explotacion": 1000.0,
            "gastos_explotacion": -500.0,
            "resultado_explotacion": 500.0,
            "resultado_financiero": -20.0,
            "resultado_antes_impuestos": 480.0,
        }


class TestRound2:
    """Test cases for round2."""

    @pytest.mark.parametrize("value,expected", [
        (1.005, 1.01),
        (2.675, 2.68),
        (-1.005, -1.01),
        (10, 10.0),
        (None, 0.0),
        (Decimal("3.14159"), 3.14),
    ])
    def test_half_up(self, value, expected):
        """Ties round away from zero at the cent."""
        assert round2(value) == expected

    def test_idempotent(self):
        """Rounding twice equals rounding once."""
        for value in (0.125, 1234.5678, -0.005, 99.999, 1e-9):
            assert round2(round2(value)) == round2(value)

    def test_negative_zero_normalised(self):
        """Tiny negatives round to plain 0.0."""
        assert str(round2(-0.001)) == "0.0"

    def test_sum_matches_control_total(self):
        """Summing many cents stays within a cent of the exact total."""
        pnl = ProfitAndLoss.from_balances([("700000", -0.01)] * 1000)
        assert round2(pnl.operating_income) == 10.0
