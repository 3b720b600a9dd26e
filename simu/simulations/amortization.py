"""
Fixed-rate amortization (constant monthly payment) calculator.

Formula: PMT = C * r / (1 - (1 + r)^-n), with r = annual rate / 100 / 12.

Interest and balances are carried at full Decimal precision and only the
emitted figures are rounded to cents (ROUND_HALF_UP). The final month repays
whatever capital is left, so the table always closes at exactly zero.
Because each row rounds the exact running balance, a row's remaining_balance
can differ by a cent from the previous row's balance minus its capital_share.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import List, NamedTuple

from simu.simulations.schemas import DepreciationLine

CENT = Decimal("0.01")
ZERO = Decimal("0")


class AmortizationSchedule(NamedTuple):
    monthly_amount: Decimal
    lines: List[DepreciationLine]


def round_currency(value: Decimal) -> Decimal:
    """Rounds a monetary value to cents, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_rate(annual_rate: Decimal) -> Decimal:
    return Decimal(annual_rate) / 100 / 12


def monthly_payment(capital: Decimal, duration: int, annual_rate: Decimal) -> Decimal:
    """Unrounded constant payment. A zero rate splits the capital evenly."""
    if duration <= 0:
        raise ValueError(f"duration must be a positive number of months, got {duration}")

    rate = monthly_rate(annual_rate)
    if rate == 0:
        return Decimal(capital) / duration

    return Decimal(capital) * rate / (1 - (1 + rate) ** -duration)


def generate_schedule(capital: Decimal, duration: int, annual_rate: Decimal) -> AmortizationSchedule:
    """
    Builds the month-by-month depreciation table.

    Every line satisfies interest_share + capital_share == monthly_amount, and
    the last line's remaining_balance is exactly zero.
    """
    capital = Decimal(capital)
    rate = monthly_rate(annual_rate)
    payment = monthly_payment(capital, duration, annual_rate)
    monthly_amount = round_currency(payment)

    lines: List[DepreciationLine] = []
    balance = capital

    for month in range(1, duration + 1):
        interest = balance * rate

        if month < duration:
            balance -= payment - interest
            interest_share = round_currency(interest)
            capital_share = monthly_amount - interest_share
            remaining_balance = round_currency(balance)
        else:
            # Final month absorbs rounding drift
            capital_share = round_currency(balance)
            interest_share = monthly_amount - capital_share
            remaining_balance = ZERO
            balance = ZERO

        lines.append(DepreciationLine(
            monthly_amount=monthly_amount,
            interest_share=interest_share,
            capital_share=capital_share,
            remaining_balance=remaining_balance
        ))

    return AmortizationSchedule(monthly_amount=monthly_amount, lines=lines)
