"""Hippocampus module - Pattern Consolidation & Forgetting.

The hippocampus is crucial for:
- Consolidating short-term to long-term memory
- Deciding what fades and what is retained

In Metacortex, this module handles:
- Confidence scoring (frequency + recency)
- Decay scoring (exponential, linear, hybrid)
- Capacity-bound eviction with protection rules
"""

from .dynamics import ConfidenceScorer, DecayScorer, days_until_below, decay_factor
from .forgetting import Evictor

__all__ = [
    "ConfidenceScorer",
    "DecayScorer",
    "Evictor",
    "decay_factor",
    "days_until_below",
]
