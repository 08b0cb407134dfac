from __future__ import annotations
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import Field

from ..health import (
    HealthHeuristic,
    HealthMetrics,
    HealthPrediction,
    HealthSampleBuffer,
    HealthWeights,
    TrendReport,
    analyze_trend,
)
from ..schemas import CamelModel
from ..settings import settings


router = APIRouter(prefix="/monitoring", tags=["monitoring"])

logger = logging.getLogger(__name__)


class SampleOut(CamelModel):
    timestamp: datetime
    metrics: HealthMetrics
    prediction: HealthPrediction


class HealthReport(CamelModel):
    current: Optional[SampleOut] = None
    trend: TrendReport


class HistoryOut(CamelModel):
    samples: List[SampleOut] = Field(default_factory=list)
    count: int = 0
    capacity: int


def build_heuristic() -> HealthHeuristic:
    weights = HealthWeights(
        error_rate=settings.health_weight_error,
        response_time=settings.health_weight_response,
        memory=settings.health_weight_memory,
    )
    return HealthHeuristic(weights, max_response_ms=settings.health_max_response_ms)


def get_health_buffer(request: Request) -> HealthSampleBuffer:
    return request.app.state.health_buffer


def get_health_heuristic(request: Request) -> HealthHeuristic:
    return request.app.state.health_heuristic


def _sample_out(sample) -> SampleOut:
    return SampleOut(timestamp=sample.timestamp, metrics=sample.metrics, prediction=sample.prediction)


@router.post("/evaluate", response_model=HealthPrediction)
def evaluate(metrics: HealthMetrics, heuristic: HealthHeuristic = Depends(get_health_heuristic)):
    return heuristic.predict(metrics)


@router.post("/samples", response_model=SampleOut, status_code=201)
def record_sample(
    metrics: HealthMetrics,
    heuristic: HealthHeuristic = Depends(get_health_heuristic),
    buffer: HealthSampleBuffer = Depends(get_health_buffer),
):
    sample = buffer.record(heuristic, metrics)
    if sample.prediction.status.value != "healthy":
        logger.warning("Health sample scored %d (%s)", sample.prediction.health_score, sample.prediction.status.value)
    return _sample_out(sample)


@router.get("/health", response_model=HealthReport)
def health_report(buffer: HealthSampleBuffer = Depends(get_health_buffer)):
    samples = buffer.snapshot()
    current = _sample_out(samples[-1]) if samples else None
    return HealthReport(current=current, trend=analyze_trend(samples))


@router.get("/trend", response_model=TrendReport)
def trend(buffer: HealthSampleBuffer = Depends(get_health_buffer)):
    return analyze_trend(buffer.snapshot())


@router.get("/history", response_model=HistoryOut)
def history(buffer: HealthSampleBuffer = Depends(get_health_buffer)):
    samples = buffer.snapshot()
    return HistoryOut(samples=[_sample_out(s) for s in samples], count=len(samples), capacity=buffer.max_size)
