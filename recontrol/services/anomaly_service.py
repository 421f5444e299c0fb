"""Threshold-based anomaly detection for the operator dashboard.

Both detectors are pure: they read only their arguments, never raise on
well-formed input, and return anomalies in input order. Out-of-range values
(negative rates or token counts) are not validated; whatever the arithmetic
yields is reported.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from recontrol.core.config import AnomalySettings
from recontrol.schemas.anomaly import (
    Anomaly,
    AnomalyReport,
    MarketOpsSnapshot,
    WorkspaceUsageSnapshot,
)


@dataclass(frozen=True)
class AnomalyThresholds:
    """Detector thresholds.

    Attributes:
        usage_spike_ratio: current/avg ratio that must be exceeded to report a spike.
        usage_critical_ratio: ratio that must be exceeded for a critical spike.
        sense_failure_threshold: success rate (percent) below which a market is flagged.
        sense_critical_threshold: success rate below which the flag is critical.
    """

    usage_spike_ratio: float = 2.0
    usage_critical_ratio: float = 3.0
    sense_failure_threshold: float = 85.0
    sense_critical_threshold: float = 50.0

    @classmethod
    def from_settings(cls, anomaly_settings: AnomalySettings) -> "AnomalyThresholds":
        return cls(
            usage_spike_ratio=anomaly_settings.usage_spike_ratio,
            usage_critical_ratio=anomaly_settings.usage_critical_ratio,
            sense_failure_threshold=anomaly_settings.sense_failure_threshold,
            sense_critical_threshold=anomaly_settings.sense_critical_threshold,
        )


DEFAULT_THRESHOLDS = AnomalyThresholds()


def _non_finite_text(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def _round_half_up(value: float) -> str:
    # Dashboard percentages round .5 upwards, not to even.
    if not math.isfinite(value):
        return _non_finite_text(value)
    return str(math.floor(value + 0.5))


def _one_decimal(value: float) -> str:
    # Exact ties round away from zero; Decimal(value) is the exact binary value.
    if not math.isfinite(value):
        return _non_finite_text(value)
    if abs(value) >= 1e21:
        return repr(value)
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def detect_usage_spikes(
    snapshots: Iterable[WorkspaceUsageSnapshot],
    thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS,
) -> list[Anomaly]:
    """Flag workspaces whose current usage spikes above their 7-day average.

    Snapshots without a baseline (average absent or 0) are skipped.

    Args:
        snapshots: Usage snapshots, one per workspace (duplicates are kept).
        thresholds: Spike ratios; defaults to >2x warning, >3x critical.

    Returns:
        One ``usage_spike`` anomaly per breaching snapshot, in input order.
    """
    anomalies: list[Anomaly] = []

    for snapshot in snapshots:
        if not snapshot.avg_tokens_7d:
            continue

        ratio = snapshot.current_tokens / snapshot.avg_tokens_7d
        if not ratio > thresholds.usage_spike_ratio:
            continue

        increase_pct = _round_half_up((ratio - 1) * 100)
        anomalies.append(
            Anomaly(
                kind="usage_spike",
                severity="critical" if ratio > thresholds.usage_critical_ratio else "warning",
                message=f"Token spike +{increase_pct}% vs 7d avg",
                subject_id=snapshot.workspace_id,
                subject_name=snapshot.workspace_name,
                metric_name="tokens",
                metric_value=snapshot.current_tokens,
            )
        )

    return anomalies


def detect_sense_anomalies(
    snapshots: Iterable[MarketOpsSnapshot],
    thresholds: AnomalyThresholds = DEFAULT_THRESHOLDS,
) -> list[Anomaly]:
    """Flag Sense markets whose 24h job success rate is too low.

    Args:
        snapshots: Market ops snapshots.
        thresholds: Success-rate thresholds; defaults to <85 warning, <50 critical.

    Returns:
        One ``sense_failure`` anomaly per breaching market, in input order.
    """
    anomalies: list[Anomaly] = []

    for snapshot in snapshots:
        rate = snapshot.success_rate_24h
        if not rate < thresholds.sense_failure_threshold:
            continue

        failure_pct = _one_decimal(100 - rate)
        anomalies.append(
            Anomaly(
                kind="sense_failure",
                severity="critical" if rate < thresholds.sense_critical_threshold else "warning",
                message=f"{snapshot.market_name} - Job failure rate {failure_pct}% (last 24h)",
                subject_id=snapshot.market_id,
                subject_name=snapshot.market_name,
                metric_name="success_rate",
                metric_value=rate,
            )
        )

    return anomalies


def build_report(anomalies: list[Anomaly]) -> AnomalyReport:
    """Wrap detector output with per-severity counts."""
    return AnomalyReport(
        anomalies=anomalies,
        critical_count=sum(1 for a in anomalies if a.severity == "critical"),
        warning_count=sum(1 for a in anomalies if a.severity == "warning"),
    )
