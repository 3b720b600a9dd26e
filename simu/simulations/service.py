"""
Cache-aside orchestration of credit simulations.
A cached request is answered without resolving, validating or computing anything.
"""
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from simu.cache.service import CacheService
from simu.core.logger import audit_log, logger
from simu.simulations.schemas import SimulationRequest, SimulationResult
from simu.simulations.strategies import CreditStrategyResolver

# Part of the observable contract: changing either reshapes existing cache entries
CACHE_KEY_PREFIX = "Simulation"
CACHE_TTL = timedelta(days=1)


def _format_key_amount(value: Decimal) -> str:
    """Canonical rendering so 100000, 100000.0 and 1E+5 share one key."""
    return f"{Decimal(value).normalize():f}"


def build_cache_key(request: SimulationRequest) -> str:
    """Simulation_{capital}_{annual_income}_{duration}"""
    return (
        f"{CACHE_KEY_PREFIX}_{_format_key_amount(request.capital)}"
        f"_{_format_key_amount(request.annual_income)}_{request.duration}"
    )


class SimulationHandler:
    """Runs a simulation request through the cache and the resolved credit strategy."""

    def __init__(self, cache: CacheService, resolver: CreditStrategyResolver):
        self.cache = cache
        self.resolver = resolver

    async def handle(self, request: SimulationRequest, correlation_id: Optional[str] = None) -> SimulationResult:
        cache_key = build_cache_key(request)

        cached: Optional[str] = await self.cache.get(cache_key)
        if cached:
            logger.info(f"Simulation cache hit: key={cache_key}", extra={"correlation_id": correlation_id or "N/A"})
            return SimulationResult.model_validate_json(cached)

        logger.info(f"Simulation cache miss: key={cache_key}", extra={"correlation_id": correlation_id or "N/A"})

        strategy = self.resolver.resolve(request.credit_type)
        strategy.validate_constraints(request.capital, request.duration, request.annual_income)
        result = strategy.generate_simulation(request.capital, request.duration, request.annual_income)

        await self.cache.set(cache_key, result.model_dump_json(), CACHE_TTL)

        audit_log(
            action="credit_simulation",
            user="system",
            resource=cache_key,
            details={
                "correlation_id": correlation_id,
                "credit_type": strategy.credit_type.value,
                "fixed_annual_rate": result.fixed_annual_rate,
                "monthly_amount": result.monthly_amount
            }
        )

        return result
