"""REST API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from app.services.signal_service import SignalService
from core.models import PerformanceOutcome, SignalPerformanceRecord

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/response models
class PerformanceUpdate(BaseModel):
    """Batch of performance records for a weight update."""

    records: list[SignalPerformanceRecord]


class OutcomeReport(BaseModel):
    """External outcome for a tracked signal."""

    signal_id: str
    outcome: PerformanceOutcome
    realized_return: float = 0.0


class WeightsResponse(BaseModel):
    weights: dict[str, float]
    stats: dict


def get_service(request: Request) -> SignalService:
    service = getattr(request.app.state, "signal_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Signal service not started")
    return service


@router.get("/signals")
async def list_signals(
    timeframe: Optional[str] = Query(None, description="Filter by timeframe"),
    service: SignalService = Depends(get_service),
):
    """Latest signal for every cached (symbol, timeframe)."""
    return [s.model_dump(mode="json") for s in service.get_signals(timeframe=timeframe)]


@router.get("/signals/{symbol:path}")
async def get_signals(
    symbol: str,
    timeframe: Optional[str] = Query(None, description="Filter by timeframe"),
    service: SignalService = Depends(get_service),
):
    """Latest signals for one symbol (e.g. BTC/USDT)."""
    signals = service.get_signals(symbol, timeframe)
    if not signals:
        raise HTTPException(status_code=404, detail=f"No signals for {symbol}")
    return [s.model_dump(mode="json") for s in signals]


@router.get("/weights", response_model=WeightsResponse)
async def get_weights(service: SignalService = Depends(get_service)):
    """Current indicator weight vector."""
    weights = service.get_current_weights()
    return WeightsResponse(
        weights={k.value: v for k, v in weights.items()},
        stats=service.scheduler.weight_manager.get_stats(),
    )


@router.get("/regime/{symbol:path}")
async def get_regime(symbol: str, service: SignalService = Depends(get_service)):
    """Detected market regime for a symbol."""
    return service.get_market_regime(symbol).model_dump(mode="json")


@router.post("/performance", response_model=WeightsResponse)
async def update_performance(
    update: PerformanceUpdate,
    service: SignalService = Depends(get_service),
):
    """Feed resolved performance records into the weight manager."""
    weights = service.update_weights_from_performance(update.records)
    return WeightsResponse(
        weights={k.value: v for k, v in weights.items()},
        stats=service.scheduler.weight_manager.get_stats(),
    )


@router.post("/outcomes")
async def report_outcome(report: OutcomeReport, service: SignalService = Depends(get_service)):
    """Resolve a tracked signal from an external outcome tracker."""
    if report.outcome == PerformanceOutcome.PENDING:
        raise HTTPException(status_code=422, detail="Outcome must be SUCCESS or FAILURE")
    record = await service.report_outcome(
        report.signal_id, report.outcome, report.realized_return
    )
    if record is None:
        raise HTTPException(status_code=404, detail=f"Signal {report.signal_id} is not pending")
    return record.model_dump(mode="json")


@router.get("/status")
async def get_status(service: SignalService = Depends(get_service)):
    """Scheduler, cache, weight and tracker status."""
    return service.get_status()
