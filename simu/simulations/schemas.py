"""
Pydantic schemas for credit simulations.
The same models are used for the HTTP payloads and the cached JSON snapshot.
"""
from decimal import Decimal
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class CreditType(str, Enum):
    """Credit products a simulation can be run for."""
    FIXED = "Fixed"


class SimulationRequest(BaseModel):
    """Simulation request payload. Shape checks only; business bounds live in the strategies."""
    capital: Decimal = Field(..., description="Requested capital (€)")
    duration: int = Field(..., gt=0, description="Loan duration in months")
    annual_income: Decimal = Field(..., description="Borrower's annual income (€)")
    credit_type: CreditType = Field(default=CreditType.FIXED, description="Credit product")

    model_config = ConfigDict(frozen=True)


class DepreciationLine(BaseModel):
    """One month of the depreciation table. Position in the table is the month number."""
    monthly_amount: Decimal = Field(..., description="Amount paid this month")
    interest_share: Decimal = Field(..., description="Part of the payment covering interest")
    capital_share: Decimal = Field(..., description="Part of the payment repaying capital")
    remaining_balance: Decimal = Field(..., description="Capital still owed after this month")

    model_config = ConfigDict(frozen=True)


class SimulationResult(BaseModel):
    """Simulation outcome, freshly computed or read back from the cache."""
    fixed_annual_rate: Decimal = Field(..., description="Annual interest rate (%)")
    monthly_amount: Decimal = Field(..., description="Fixed monthly payment")
    depreciation_table_lines: List[DepreciationLine] = Field(
        default_factory=list, description="Month-by-month depreciation table"
    )

    model_config = ConfigDict(frozen=True)
