"""
Eligibility rules and rate tiers for credit products.
Each product composes its own constraint rules and its own income-based rate table.
"""
from bisect import bisect_left
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence

from simu.core.logger import logger
from simu.simulations.exceptions import SimulationError


def format_amount(value: Decimal) -> str:
    """Renders a bound for messages: thousands separator, no trailing zeros (20000 -> '20,000')."""
    return f"{value.normalize():,f}"


class ConstraintRule:
    """Base class for eligibility rules. Each rule checks a single input field."""

    def __init__(self, name: str, field: str, message: str):
        self.name = name
        self.field = field
        self.message = message

    def is_satisfied(self, value: Any) -> bool:
        """Returns True when the value complies with the rule."""
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "field": self.field, "message": self.message}


class RangeRule(ConstraintRule):
    """Inclusive [minimum, maximum] bound on a numeric field."""

    def __init__(self, name: str, field: str, minimum: Any, maximum: Any, message: str):
        super().__init__(name=name, field=field, message=message)
        self.minimum = minimum
        self.maximum = maximum

    def is_satisfied(self, value: Any) -> bool:
        return self.minimum <= value <= self.maximum

    def describe(self) -> Dict[str, Any]:
        description = super().describe()
        description.update({"minimum": self.minimum, "maximum": self.maximum})
        return description


class CapitalRangeRule(RangeRule):
    """Requested capital must fall within the product's lending bounds."""

    def __init__(self, minimum: Decimal, maximum: Decimal):
        super().__init__(
            name="CAPITAL_RANGE",
            field="capital",
            minimum=minimum,
            maximum=maximum,
            message=f"The capital must be between {format_amount(minimum)}€ and {format_amount(maximum)}€."
        )


class DurationRangeRule(RangeRule):
    """Loan duration (months) must fall within the product's term bounds."""

    def __init__(self, minimum: int, maximum: int):
        super().__init__(
            name="DURATION_RANGE",
            field="duration",
            minimum=minimum,
            maximum=maximum,
            message=f"The duration must be between {minimum} and {maximum} months."
        )


class IncomeRangeRule(RangeRule):
    """Annual income must not exceed the product's eligibility ceiling."""

    def __init__(self, minimum: Decimal, maximum: Decimal):
        super().__init__(
            name="INCOME_RANGE",
            field="annual_income",
            minimum=minimum,
            maximum=maximum,
            message=f"The income must be between {format_amount(minimum)}€ and {format_amount(maximum)}€ per year."
        )


class ConstraintValidator:
    """
    Runs every rule and reports all violations at once.
    Messages are joined in rule registration order.
    """

    def __init__(self, rules: Iterable[ConstraintRule]):
        self.rules: List[ConstraintRule] = list(rules)

    def validate(self, capital: Decimal, duration: int, annual_income: Decimal) -> None:
        values: Dict[str, Any] = {
            "capital": capital,
            "duration": duration,
            "annual_income": annual_income,
        }
        violations: List[str] = []

        for rule in self.rules:
            if not rule.is_satisfied(values[rule.field]):
                violations.append(rule.message)
                logger.info(f"Constraint violated: {rule.name} ({rule.field}={values[rule.field]})")

        if violations:
            raise SimulationError(violations)


@dataclass(frozen=True)
class RateTier:
    """Incomes up to and including income_upper_bound get annual_rate."""
    income_upper_bound: Decimal
    annual_rate: Decimal


class RateSelector:
    """Maps an annual income to the rate of the first tier whose upper bound covers it."""

    def __init__(self, tiers: Iterable[RateTier]):
        self.tiers: List[RateTier] = sorted(tiers, key=lambda tier: tier.income_upper_bound)
        self._bounds: List[Decimal] = [tier.income_upper_bound for tier in self.tiers]

    def select_rate(self, annual_income: Decimal) -> Decimal:
        index = bisect_left(self._bounds, annual_income)
        if index == len(self.tiers):
            raise SimulationError([f"No rate tier covers an annual income of {format_amount(annual_income)}€."])
        return self.tiers[index].annual_rate

    def describe(self) -> List[Dict[str, Decimal]]:
        return [
            {"income_upper_bound": tier.income_upper_bound, "annual_rate": tier.annual_rate}
            for tier in self.tiers
        ]


# Fixed-rate product tables
FIXED_MIN_CAPITAL = Decimal("20000")
FIXED_MAX_CAPITAL = Decimal("310000")
FIXED_MIN_DURATION = 180
FIXED_MAX_DURATION = 360
FIXED_MAX_INCOME = Decimal("53900")

FIXED_RATE_TIERS: Sequence[RateTier] = (
    RateTier(Decimal("16400"), Decimal("1.70")),
    RateTier(Decimal("19700"), Decimal("1.90")),
    RateTier(Decimal("23000"), Decimal("2.10")),
    RateTier(Decimal("27800"), Decimal("2.30")),
    RateTier(Decimal("32700"), Decimal("2.50")),
    RateTier(Decimal("43200"), Decimal("2.70")),
    RateTier(Decimal("53900"), Decimal("2.90")),
)


def fixed_constraint_validator() -> ConstraintValidator:
    return ConstraintValidator([
        CapitalRangeRule(FIXED_MIN_CAPITAL, FIXED_MAX_CAPITAL),
        DurationRangeRule(FIXED_MIN_DURATION, FIXED_MAX_DURATION),
        IncomeRangeRule(Decimal("0"), FIXED_MAX_INCOME),
    ])
