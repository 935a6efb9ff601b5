"""Enumeration types for Metacortex domain models."""

from enum import Enum


class Scope(str, Enum):
    """Workflow phase under which patterns are tracked independently."""

    PLANNING = "planning"
    DESIGN = "design"
    IMPLEMENTATION = "implementation"
    OPERATION = "operation"


class PatternType(str, Enum):
    """Kind of observation a pattern records."""

    SEQUENTIAL_DEP = "sequential-dep"  # Must run in order
    PARALLEL_SUCCESS = "parallel-success"  # Ran concurrently and succeeded
    ACCOMPLISHMENT = "accomplishment"
    RISK = "risk"
    DECISION = "decision"
    APPROACH = "approach"
    TOOL_USAGE = "tool-usage"
    ANTI_PATTERN = "anti-pattern"  # Failure mode to avoid


class DecayAlgorithm(str, Enum):
    """Algorithm used to compute a pattern's decay score."""

    EXPONENTIAL = "exponential"  # Aggressive recency bias
    LINEAR = "linear"  # Hard cutoff at twice the half-life
    HYBRID = "hybrid"  # Weighted recency + frequency + success


class RiskSeverity(str, Enum):
    """Risk priority (P0 is most severe)."""

    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class RiskStatus(str, Enum):
    """Lifecycle status of a risk."""

    NEW = "new"
    MITIGATED = "mitigated"
    ESCALATED = "escalated"
    ACCEPTED = "accepted"


class DecisionImpact(str, Enum):
    """Impact level of a decision."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
