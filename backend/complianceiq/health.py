"""Rule-based system health monitor.

The score is a fixed weighted formula over a handful of operational counters,
banded into healthy / degraded / critical. Recent samples are kept in a small
ring buffer owned by the application so a trend can be derived from them.
"""

from __future__ import annotations

import math
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from fractions import Fraction
from typing import Deque, Dict, List, Optional, Sequence

from pydantic import Field

from .schemas import CamelModel
from .scoring import as_fraction, round_half_up


HEALTHY_AT = 80
DEGRADED_AT = 50
MAX_RECOMMENDATIONS = 5
PROJECTION_STEPS = (1, 6, 24)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class HealthMetrics(CamelModel):
    error_rate: float = Field(default=0.0, ge=0, le=1, allow_inf_nan=False)
    response_time_ms: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    requests_per_sec: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    memory_util: float = Field(default=0.0, ge=0, le=1, allow_inf_nan=False)


class HealthPrediction(CamelModel):
    health_score: int
    status: HealthStatus
    risk_factors: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class TrendReport(CamelModel):
    trend: TrendDirection
    trend_score: float
    samples: int
    key_changes: List[str] = Field(default_factory=list)
    projections: Dict[str, int] = Field(default_factory=dict)


@dataclass(frozen=True)
class HealthWeights:
    """Weights for the health formula; must sum to 1."""
    error_rate: float = 0.55
    response_time: float = 0.25
    memory: float = 0.20

    def __post_init__(self) -> None:
        if min(self.error_rate, self.response_time, self.memory) < 0:
            raise ValueError("health weights must be non-negative")
        if not math.isclose(self.error_rate + self.response_time + self.memory, 1.0, abs_tol=1e-6):
            raise ValueError("health weights must sum to 1")


@dataclass(frozen=True)
class HealthSample:
    timestamp: datetime
    metrics: HealthMetrics
    prediction: HealthPrediction


def _clamp(value: Fraction, low: int = 0, high: int = 1) -> Fraction:
    return max(low, min(high, value))


class HealthHeuristic:
    """Scores operational counters against fixed weights and bands."""

    def __init__(self, weights: Optional[HealthWeights] = None, *, max_response_ms: float = 2000.0):
        if max_response_ms <= 0:
            raise ValueError("max_response_ms must be positive")
        self.weights = weights or HealthWeights()
        self.max_response_ms = max_response_ms

    def normalize_response_time(self, response_time_ms: float) -> Fraction:
        return _clamp(as_fraction(response_time_ms) / as_fraction(self.max_response_ms))

    def score(self, metrics: HealthMetrics) -> int:
        error_rate = _clamp(as_fraction(metrics.error_rate))
        memory = _clamp(as_fraction(metrics.memory_util))
        raw = (
            as_fraction(self.weights.error_rate) * (1 - error_rate)
            + as_fraction(self.weights.response_time) * (1 - self.normalize_response_time(metrics.response_time_ms))
            + as_fraction(self.weights.memory) * (1 - memory)
        )
        return max(0, min(100, round_half_up(100 * raw)))

    @staticmethod
    def status_for(health_score: int) -> HealthStatus:
        if health_score >= HEALTHY_AT:
            return HealthStatus.HEALTHY
        if health_score >= DEGRADED_AT:
            return HealthStatus.DEGRADED
        return HealthStatus.CRITICAL

    def risk_factors(self, metrics: HealthMetrics) -> List[str]:
        risks: List[str] = []
        if metrics.error_rate >= 0.05:
            risks.append("High Error Rate")
        if self.normalize_response_time(metrics.response_time_ms) >= 0.5:
            risks.append("API Performance Degradation")
        if metrics.memory_util >= 0.85:
            risks.append("Memory Pressure")
        if metrics.requests_per_sec == 0:
            risks.append("No Traffic Observed")
        return risks

    def recommendations(self, metrics: HealthMetrics, status: HealthStatus) -> List[str]:
        recommendations: List[str] = []
        if metrics.error_rate >= 0.01:
            recommendations.append("Error rate is elevated - investigate error logs")
        if self.normalize_response_time(metrics.response_time_ms) >= 0.3:
            recommendations.append("Optimize API response times - consider caching or query optimization")
        if metrics.memory_util >= 0.7:
            recommendations.append("Monitor memory usage - consider memory optimization")
        if metrics.requests_per_sec == 0:
            recommendations.append("No requests recorded - verify the service is reachable")

        if status is HealthStatus.CRITICAL:
            recommendations.insert(0, "CRITICAL: Immediate attention required for system stability")
        elif status is HealthStatus.DEGRADED:
            recommendations.insert(0, "WARNING: Proactive monitoring and optimization recommended")
        return recommendations[:MAX_RECOMMENDATIONS]

    def predict(self, metrics: HealthMetrics) -> HealthPrediction:
        health_score = self.score(metrics)
        status = self.status_for(health_score)
        return HealthPrediction(
            health_score=health_score,
            status=status,
            risk_factors=self.risk_factors(metrics),
            recommendations=self.recommendations(metrics, status),
        )


class HealthSampleBuffer:
    """Bounded, thread-safe history of recent health samples."""

    def __init__(self, max_size: int = 24):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._samples: Deque[HealthSample] = deque(maxlen=max_size)
        self._lock = threading.Lock()

    def append(self, sample: HealthSample) -> None:
        with self._lock:
            self._samples.append(sample)

    def record(self, heuristic: HealthHeuristic, metrics: HealthMetrics, *, timestamp: Optional[datetime] = None) -> HealthSample:
        sample = HealthSample(
            timestamp=timestamp or datetime.now(timezone.utc),
            metrics=metrics,
            prediction=heuristic.predict(metrics),
        )
        self.append(sample)
        return sample

    def snapshot(self) -> List[HealthSample]:
        with self._lock:
            return list(self._samples)

    def latest(self) -> Optional[HealthSample]:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)


def slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index."""
    n = len(values)
    if n < 2:
        return 0.0
    mean_x = (n - 1) / 2
    mean_y = sum(values) / n
    numerator = sum((i - mean_x) * (y - mean_y) for i, y in enumerate(values))
    denominator = sum((i - mean_x) ** 2 for i in range(n))
    return numerator / denominator


def key_changes(samples: Sequence[HealthSample]) -> List[str]:
    if len(samples) < 2:
        return ["Insufficient data for change analysis"]
    previous, latest = samples[-2].metrics, samples[-1].metrics
    changes: List[str] = []

    delta = latest.response_time_ms - previous.response_time_ms
    if abs(delta) > 50:
        changes.append(f"Response time {'increased' if delta > 0 else 'decreased'} by {abs(delta):.0f}ms")
    delta = latest.error_rate - previous.error_rate
    if abs(delta) > 0.01:
        changes.append(f"Error rate {'increased' if delta > 0 else 'decreased'} by {abs(delta) * 100:.1f}%")
    delta = latest.memory_util - previous.memory_util
    if abs(delta) > 0.05:
        changes.append(f"Memory utilization {'increased' if delta > 0 else 'decreased'} by {abs(delta) * 100:.1f}%")
    delta = latest.requests_per_sec - previous.requests_per_sec
    if abs(delta) > 0.25 * max(previous.requests_per_sec, 1.0):
        changes.append(f"Throughput {'increased' if delta > 0 else 'decreased'} by {abs(delta):.1f} req/s")
    return changes or ["No significant changes detected"]


def analyze_trend(samples: Sequence[HealthSample]) -> TrendReport:
    """Direction of the health score over the given samples (oldest first)."""
    scores = [sample.prediction.health_score for sample in samples]
    if len(scores) < 2:
        return TrendReport(
            trend=TrendDirection.FLAT,
            trend_score=0.0,
            samples=len(scores),
            key_changes=["Insufficient data for trend analysis"],
        )

    trend_slope = slope(scores)
    if trend_slope > 1e-9:
        direction = TrendDirection.UP
    elif trend_slope < -1e-9:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.FLAT

    projections = {
        f"next{steps}": max(0, min(100, round_half_up(scores[-1] + trend_slope * steps)))
        for steps in PROJECTION_STEPS
    }
    return TrendReport(
        trend=direction,
        trend_score=round(trend_slope, 4),
        samples=len(scores),
        key_changes=key_changes(samples),
        projections=projections,
    )
