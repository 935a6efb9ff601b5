"""Session and extraction models.

``ExtractedFragments`` is the bundle handed over by the extraction layer at
the end of a workflow phase. ``SessionSummary`` records which patterns a
session touched; it is kept for traceability only.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import DecisionImpact, RiskSeverity, RiskStatus, Scope


class Decision(BaseModel):
    """A decision taken during a phase."""

    what: str = Field(..., min_length=1)
    why: str = ""
    impact: DecisionImpact = DecisionImpact.MEDIUM


class Challenge(BaseModel):
    """A problem encountered and how it was resolved."""

    problem: str = Field(..., min_length=1)
    resolution: str = ""


class Risk(BaseModel):
    """An identified risk."""

    description: str = Field(..., min_length=1)
    severity: RiskSeverity = RiskSeverity.P2
    status: RiskStatus = RiskStatus.NEW


class ExtractedFragments(BaseModel):
    """Semantic fragments extracted from one completed phase."""

    accomplishment: str | None = Field(None, description="What the phase achieved")
    key_insight: str | None = Field(None, description="Main lesson learned")
    decisions: list[Decision] = Field(default_factory=list)
    challenges: list[Challenge] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    approaches: list[str] = Field(default_factory=list)
    tools_used: list[str] = Field(default_factory=list)
    sequential_deps: list[str] = Field(
        default_factory=list, description="Steps that had to run in order"
    )
    parallel_successes: list[str] = Field(
        default_factory=list, description="Tasks that ran concurrently and succeeded"
    )
    parallel_tasks: int | None = Field(
        None, ge=1, description="Number of tasks run in parallel"
    )
    success_rate: float | None = Field(
        None, ge=0.0, le=1.0, description="Applied to every pattern from this bundle"
    )
    completed_at: datetime | None = Field(
        None, description="Observation time (defaults to now)"
    )

    def is_empty(self) -> bool:
        """True when the bundle would produce no patterns."""
        return not (
            self.accomplishment
            or self.decisions
            or self.challenges
            or self.risks
            or self.approaches
            or self.tools_used
            or self.sequential_deps
            or self.parallel_successes
        )


class SessionSummary(BaseModel):
    """Summary of one recorded session."""

    session_id: str
    start_time: datetime
    end_time: datetime
    scopes: list[Scope] = Field(default_factory=list)
    pattern_ids: list[str] = Field(default_factory=list)
    total_patterns: int = Field(default=0, ge=0)
