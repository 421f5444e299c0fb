"""Pydantic schemas for dashboard anomaly detection."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

AnomalyKind = Literal["usage_spike", "sense_failure", "workspace_inactive"]
AnomalySeverity = Literal["warning", "critical"]


class WorkspaceUsageSnapshot(BaseModel):
    """Current-period token usage of a workspace with its trailing baseline."""

    workspace_id: str
    workspace_name: str
    current_tokens: float = Field(..., description="Tokens consumed in the current period.")
    avg_tokens_7d: float | None = Field(
        default=None,
        description="Trailing 7-day average; absent or 0 means no baseline.",
    )


class MarketOpsSnapshot(BaseModel):
    """Rolling job success rate of a Sense market."""

    market_id: str
    market_name: str
    success_rate_24h: float = Field(..., description="Job success rate over the last 24h (0-100).")


class Anomaly(BaseModel):
    """A threshold breach to surface on the operator dashboard.

    ``workspace_inactive`` is reserved; no detector emits it yet.
    """

    kind: AnomalyKind
    severity: AnomalySeverity
    message: str
    subject_id: str | None = Field(
        default=None,
        description="Workspace or market id for drill-down links.",
    )
    subject_name: str | None = None
    metric_name: str | None = Field(default=None, description="Name of the observed metric.")
    metric_value: float | None = Field(default=None, description="Observed metric value.")


class AnomalyDetectRequest(BaseModel):
    workspaces: list[WorkspaceUsageSnapshot] = Field(default_factory=list)
    markets: list[MarketOpsSnapshot] = Field(default_factory=list)


class AnomalyReport(BaseModel):
    """Detector output plus severity counts for the alert banner."""

    anomalies: list[Anomaly]
    critical_count: int
    warning_count: int
