"""
Credit product strategies.
Each strategy owns its eligibility rules, rate table and amortization rule;
the resolver maps a credit type to the strategy instance.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from simu.core.logger import logger
from simu.simulations.amortization import generate_schedule
from simu.simulations.exceptions import UnsupportedCreditTypeError
from simu.simulations.rules import (
    FIXED_RATE_TIERS,
    ConstraintValidator,
    RateSelector,
    fixed_constraint_validator,
)
from simu.simulations.schemas import CreditType, SimulationResult


class CreditStrategy(ABC):
    """Abstract credit product. Enforces the Strategy Pattern."""

    credit_type: CreditType

    @abstractmethod
    def validate_constraints(self, capital: Decimal, duration: int, annual_income: Decimal) -> None:
        """Raises SimulationError listing every violated product constraint."""

    @abstractmethod
    def generate_simulation(self, capital: Decimal, duration: int, annual_income: Decimal) -> SimulationResult:
        """Computes the simulation. Inputs are expected to have passed validate_constraints."""

    def describe(self) -> Dict[str, Any]:
        return {"credit_type": self.credit_type.value}


class FixedCreditStrategy(CreditStrategy):
    """Fixed-rate product: the rate is chosen once from the borrower's income and never changes."""

    credit_type = CreditType.FIXED

    def __init__(
        self,
        validator: Optional[ConstraintValidator] = None,
        rate_selector: Optional[RateSelector] = None
    ):
        self.validator = validator or fixed_constraint_validator()
        self.rate_selector = rate_selector or RateSelector(FIXED_RATE_TIERS)

    def validate_constraints(self, capital: Decimal, duration: int, annual_income: Decimal) -> None:
        self.validator.validate(capital, duration, annual_income)

    def generate_simulation(self, capital: Decimal, duration: int, annual_income: Decimal) -> SimulationResult:
        annual_rate = self.rate_selector.select_rate(annual_income)
        schedule = generate_schedule(capital, duration, annual_rate)

        logger.info(
            f"Fixed simulation generated: capital={capital}, duration={duration}, "
            f"rate={annual_rate}, monthly_amount={schedule.monthly_amount}"
        )

        return SimulationResult(
            fixed_annual_rate=annual_rate,
            monthly_amount=schedule.monthly_amount,
            depreciation_table_lines=schedule.lines
        )

    def describe(self) -> Dict[str, Any]:
        description = super().describe()
        description.update({
            "constraints": [rule.describe() for rule in self.validator.rules],
            "rate_tiers": self.rate_selector.describe(),
        })
        return description


class CreditStrategyResolver:
    """Registry of credit strategies keyed by credit type."""

    def __init__(self, strategies: Optional[Iterable[CreditStrategy]] = None):
        self._strategies: Dict[CreditType, CreditStrategy] = {}
        for strategy in strategies if strategies is not None else [FixedCreditStrategy()]:
            self.register(strategy)

    def register(self, strategy: CreditStrategy) -> None:
        self._strategies[strategy.credit_type] = strategy

    @property
    def strategies(self) -> Iterable[CreditStrategy]:
        return list(self._strategies.values())

    def resolve(self, credit_type: Any) -> CreditStrategy:
        try:
            key = CreditType(credit_type)
        except ValueError:
            raise UnsupportedCreditTypeError(credit_type)

        strategy = self._strategies.get(key)
        if strategy is None:
            raise UnsupportedCreditTypeError(credit_type)
        return strategy
