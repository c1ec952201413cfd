"""Profit and loss classification for the Spanish chart of accounts (PGC).

Ledger balances are classified purely from the account code:

- Group 7 (income family): prefixes 76 and 77 are financial, the rest of the
  group is operating. A negative (credit) balance is income, a positive one
  is expense.
- Group 6 (expense family): prefixes 66 and 67 are financial, the rest is
  operating. A positive (debit) balance is expense, a negative one is income.
- Any other group is not part of the P&L and is ignored.

Every P&L figure in the service goes through ProfitAndLoss so the dashboard
and the chat tools can never disagree.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

# Odoo account types that carry P&L balances
PL_ACCOUNT_TYPES = (
    "income",
    "income_other",
    "expense",
    "expense_depreciation",
    "expense_direct_cost",
)

OPERATING = "operating"
FINANCIAL = "financial"

INCOME = "income"
EXPENSE = "expense"

FINANCIAL_PREFIXES = {
    "7": frozenset({"76", "77"}),
    "6": frozenset({"66", "67"}),
}

CENT = Decimal("0.01")


def to_decimal(value: float | int | Decimal | None) -> Decimal:
    """Convert a float from Odoo to Decimal via its shortest repr."""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(repr(value)) if isinstance(value, float) else Decimal(value)


def round2(value: float | int | Decimal | None) -> float:
    """Round a monetary amount to cents, half up.

    Idempotent: ``round2(round2(x)) == round2(x)``.
    """
    rounded = float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))
    return rounded or 0.0  # normalise -0.0


@dataclass(frozen=True)
class LedgerClassification:
    """Where a ledger balance lands in the P&L.

    Args:
        bucket: OPERATING or FINANCIAL.
        kind: INCOME or EXPENSE.
        amount: Absolute amount contributed.
    """

    bucket: str
    kind: str
    amount: Decimal


def classify_balance(code: str, balance: float | Decimal) -> LedgerClassification | None:
    """Classify the balance of one account.

    Args:
        code: Account code (e.g., "700001").
        balance: Debit minus credit for the account.

    Returns:
        LedgerClassification, or None if the account is outside groups 6/7.
    """
    code = (code or "").strip()
    family = code[:1]
    if family not in FINANCIAL_PREFIXES:
        return None

    amount = to_decimal(balance)
    bucket = FINANCIAL if code[:2] in FINANCIAL_PREFIXES[family] else OPERATING

    if family == "7":
        kind = INCOME if amount < 0 else EXPENSE
    else:
        kind = EXPENSE if amount > 0 else INCOME

    return LedgerClassification(bucket=bucket, kind=kind, amount=abs(amount))


@dataclass
class ProfitAndLoss:
    """Accumulates classified balances into the four P&L totals.

    Accumulation uses Decimal, so the totals do not depend on input order.
    """

    operating_income: Decimal = field(default_factory=Decimal)
    operating_expense: Decimal = field(default_factory=Decimal)
    financial_income: Decimal = field(default_factory=Decimal)
    financial_expense: Decimal = field(default_factory=Decimal)

    def add(self, code: str, balance: float | Decimal) -> LedgerClassification | None:
        """Classify one balance and add it to the matching total."""
        classification = classify_balance(code, balance)
        if classification is None:
            return None

        attribute = f"{classification.bucket}_{classification.kind}"
        setattr(self, attribute, getattr(self, attribute) + classification.amount)
        return classification

    @classmethod
    def from_balances(cls, balances: Iterable[tuple[str, float]]) -> "ProfitAndLoss":
        """Build from (account code, balance) pairs."""
        pnl = cls()
        for code, balance in balances:
            pnl.add(code, balance)
        return pnl

    @property
    def operating_result(self) -> Decimal:
        return self.operating_income - self.operating_expense

    @property
    def financial_result(self) -> Decimal:
        return self.financial_income - self.financial_expense

    @property
    def result_before_tax(self) -> Decimal:
        return self.operating_result + self.financial_result

    def to_dict(self, label: str, period: str) -> dict[str, Any]:
        """Dashboard payload. Expenses are shown as negative amounts."""
        return {
            "empresa": label,
            "periodo": period,
            "explotacion": {
                "ingresos": round2(self.operating_income),
                "gastos": round2(-self.operating_expense),
                "resultado": round2(self.operating_result),
            },
            "financiero": {
                "ingresos": round2(self.financial_income),
                "gastos": round2(-self.financial_expense),
                "resultado": round2(self.financial_result),
            },
            "resultado_antes_impuestos": round2(self.result_before_tax),
        }

    def to_tool_dict(self, label: str) -> dict[str, Any]:
        """Flat payload for the chat tools."""
        return {
            "empresa": label,
            "ingresos_explotacion": round2(self.operating_income),
            "gastos_explotacion": round2(-self.operating_expense),
            "resultado_explotacion": round2(self.operating_result),
            "resultado_financiero": round2(self.financial_result),
            "resultado_antes_impuestos": round2(self.result_before_tax),
        }
