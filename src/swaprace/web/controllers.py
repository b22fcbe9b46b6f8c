"""HTTP controllers over the swap engine."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from swaprace import __version__
from swaprace.engine import EngineState, SwapEngine
from swaprace.models import Quote
from swaprace.registry import LiFiRegistry
from swaprace.web.contracts import (
    AutoRefreshRequest,
    ChainListResponse,
    ChainModel,
    PinRequest,
    QuoteModel,
    QuoteRequest,
    QuotesResponse,
    SetRequestBody,
    StateResponse,
    SwapResponse,
    TokenListResponse,
    TokenModel,
)

health_router = APIRouter(tags=["Health"])
router = APIRouter(prefix="/api/v1", tags=["Swap"])


def get_engine(request: Request) -> SwapEngine:
    return request.app.state.engine


def get_registry(request: Request) -> LiFiRegistry:
    return request.app.state.registry


def _quote_model(quote: Optional[Quote]) -> Optional[QuoteModel]:
    return QuoteModel.from_quote(quote) if quote else None


def _state_response(state: EngineState) -> StateResponse:
    data = state.to_dict()
    data["quotes"] = [QuoteModel.from_quote(q) for q in state.quotes]
    data["best_quote"] = _quote_model(state.best_quote)
    data["selected_quote"] = _quote_model(state.selected_quote)
    return StateResponse(**data)


@health_router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "swaprace"}


@health_router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info."""
    engine = get_engine(request)
    return {
        "status": "healthy",
        "service": "swaprace",
        "version": __version__,
        "providers": engine.aggregator.provider_names,
        "simulated": engine.simulated,
        "wallet_connected": engine.wallet is not None,
        "config": request.app.state.settings.get_safe_dict(),
    }


@router.post("/quotes", response_model=QuotesResponse)
async def get_quotes(body: QuoteRequest, engine: SwapEngine = Depends(get_engine)) -> QuotesResponse:
    """Query every provider once and return the ranked set.

    Does not touch the engine's current request or selection.
    """
    request = body.to_swap_request()
    if not request.is_quotable:
        raise HTTPException(status_code=400, detail="Amount must be a positive integer")

    result = await engine.aggregator.get_all_quotes(request)
    return QuotesResponse(
        success=result.best_quote is not None,
        quotes=[QuoteModel.from_quote(q) for q in result.quotes],
        best_quote=_quote_model(result.best_quote),
        error=result.error,
    )


@router.get("/state", response_model=StateResponse)
async def get_state(engine: SwapEngine = Depends(get_engine)) -> StateResponse:
    return _state_response(engine.state)


@router.post("/request", response_model=StateResponse)
async def set_request(
    body: SetRequestBody,
    wait: bool = False,
    engine: SwapEngine = Depends(get_engine),
) -> StateResponse:
    """Update the trade input.

    With `wait=true` the response is sent after the debounced
    aggregation completed.
    """
    engine.set_request(**body.changes())
    if wait:
        await engine.wait_until_idle()
    return _state_response(engine.state)


@router.post("/pin", response_model=StateResponse)
async def pin_provider(body: PinRequest, engine: SwapEngine = Depends(get_engine)) -> StateResponse:
    if not engine.pin(body.provider):
        raise HTTPException(status_code=400, detail=f"No usable quote from {body.provider}")
    return _state_response(engine.state)


@router.delete("/pin", response_model=StateResponse)
async def clear_pin(engine: SwapEngine = Depends(get_engine)) -> StateResponse:
    engine.clear_pin()
    return _state_response(engine.state)


@router.post("/auto-refresh", response_model=StateResponse)
async def set_auto_refresh(
    body: AutoRefreshRequest,
    engine: SwapEngine = Depends(get_engine),
) -> StateResponse:
    engine.toggle_auto_refresh(body.enabled)
    return _state_response(engine.state)


@router.post("/swap", response_model=SwapResponse)
async def execute_swap(engine: SwapEngine = Depends(get_engine)) -> SwapResponse:
    """Execute the selected quote with the server-side wallet session."""
    result = await engine.execute_swap()
    return SwapResponse(
        success=result.success,
        status=result.status.value,
        tx_hash=result.tx_hash,
        approval_tx_hash=result.approval_tx_hash,
        error=result.message,
        warnings=result.warnings,
        simulated=result.simulated,
    )


@router.get("/chains", response_model=ChainListResponse)
async def list_chains(registry: LiFiRegistry = Depends(get_registry)) -> ChainListResponse:
    chains = await registry.list_chains()
    return ChainListResponse(
        success=bool(chains),
        chains=[
            ChainModel(
                id=c.id,
                name=c.name,
                native_token=TokenModel.from_token(c.native_token),
                logo_uri=c.logo_uri,
            )
            for c in chains
        ],
    )


@router.get("/tokens/{chain_id}", response_model=TokenListResponse)
async def list_tokens(chain_id: int, registry: LiFiRegistry = Depends(get_registry)) -> TokenListResponse:
    tokens = await registry.list_tokens(chain_id)
    return TokenListResponse(
        success=bool(tokens),
        chain_id=chain_id,
        tokens=[TokenModel.from_token(t) for t in tokens],
    )
