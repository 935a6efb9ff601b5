"""Domain models for Metacortex.

This package provides all domain models, organized by concern:
- enums: Scope, PatternType, DecayAlgorithm, risk/decision enums
- pattern: Pattern, Cluster
- config: PatternConfig and its sections
- session: ExtractedFragments, SessionSummary
- results: IngestResult, EvolutionResult, EvictionResult, etc.
"""

from .config import (
    CapacityConfig,
    ClusteringConfig,
    DecayConfig,
    DecayWeights,
    DeduplicationConfig,
    EvictionConfig,
    ExportConfig,
    PatternConfig,
)
from .enums import (
    DecayAlgorithm,
    DecisionImpact,
    PatternType,
    RiskSeverity,
    RiskStatus,
    Scope,
)
from .pattern import MAX_EXAMPLES, Cluster, Pattern
from .results import (
    DependencyValidationResult,
    EvictedPattern,
    EvictionPreview,
    EvictionResult,
    EvolutionResult,
    IngestResult,
    StoreStats,
)
from .session import (
    Challenge,
    Decision,
    ExtractedFragments,
    Risk,
    SessionSummary,
)

__all__ = [
    # Enums
    "Scope",
    "PatternType",
    "DecayAlgorithm",
    "RiskSeverity",
    "RiskStatus",
    "DecisionImpact",
    # Core models
    "Pattern",
    "Cluster",
    "MAX_EXAMPLES",
    # Configuration
    "PatternConfig",
    "CapacityConfig",
    "DecayConfig",
    "DecayWeights",
    "ClusteringConfig",
    "DeduplicationConfig",
    "EvictionConfig",
    "ExportConfig",
    # Session models
    "ExtractedFragments",
    "Decision",
    "Challenge",
    "Risk",
    "SessionSummary",
    # Result models
    "IngestResult",
    "EvictedPattern",
    "EvictionResult",
    "EvictionPreview",
    "EvolutionResult",
    "StoreStats",
    "DependencyValidationResult",
]
