"""
FastAPI Router for credit simulation endpoints.
"""
from typing import Annotated, Any, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Header, HTTPException

from simu.cache.service import CacheService, get_cache_service
from simu.core.logger import get_logger_with_correlation
from simu.simulations.exceptions import SimulationError, UnsupportedCreditTypeError
from simu.simulations.schemas import SimulationRequest, SimulationResult
from simu.simulations.service import SimulationHandler
from simu.simulations.strategies import CreditStrategyResolver

router = APIRouter(tags=["Simulations"])

# Strategies are stateless; one registry serves every request
strategy_resolver = CreditStrategyResolver()


def get_strategy_resolver() -> CreditStrategyResolver:
    return strategy_resolver


def get_simulation_handler(
    cache: CacheService = Depends(get_cache_service),
    resolver: CreditStrategyResolver = Depends(get_strategy_resolver)
) -> SimulationHandler:
    return SimulationHandler(cache, resolver)


@router.post("", response_model=SimulationResult)
async def start_simulation(
    data: SimulationRequest,
    handler: SimulationHandler = Depends(get_simulation_handler),
    x_correlation_id: Annotated[Optional[str], Header()] = None
) -> SimulationResult:
    """
    Runs a credit simulation.

    - **capital**: Requested capital (€)
    - **duration**: Duration in months
    - **annual_income**: Borrower's annual income (€)
    - **credit_type**: Credit product (default: Fixed)

    **Returns:**
    - Fixed annual rate (%)
    - Monthly payment
    - Full depreciation table
    """
    correlation_id = x_correlation_id or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)

    logger.info(f"Starting simulation: {data.model_dump()}")

    try:
        result = await handler.handle(data, correlation_id=correlation_id)
    except SimulationError as e:
        logger.info(f"Simulation rejected: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except UnsupportedCreditTypeError as e:
        logger.warning(str(e))
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Simulation completed: monthly_amount={result.monthly_amount}")
    return result


@router.get("/products", response_model=dict[str, Any])
def list_products(resolver: CreditStrategyResolver = Depends(get_strategy_resolver)) -> dict[str, Any]:
    """
    Exposes the registered credit products with their constraints and rate tiers.
    """
    products = [strategy.describe() for strategy in resolver.strategies]
    return {"total_products": len(products), "products": products}
