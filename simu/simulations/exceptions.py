"""
Domain exceptions raised by the simulation engine.
"""
from typing import Any, List


class SimulationError(Exception):
    """Business-constraint failure. Aggregates every violated rule into one message."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__(" ".join(self.violations))


class UnsupportedCreditTypeError(ValueError):
    """The credit-type identifier does not match any registered strategy."""

    def __init__(self, credit_type: Any):
        self.credit_type = credit_type
        super().__init__(f"Unsupported credit type: {credit_type!r}")
