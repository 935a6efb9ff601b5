"""Brain-inspired cognitive modules for Metacortex.

This package organizes the pattern lifecycle using neuroscience-inspired
naming:

## Module Structure

### hippocampus/ - Consolidation & Forgetting
- Confidence scoring (frequency + recency)
- Decay scoring (exponential, linear, hybrid)
- Capacity-bound eviction with protection rules

### neocortex/ - Pattern Recognition & Abstraction
- Hashed embeddings and cosine similarity
- TF-IDF deduplication
- Agglomerative clustering

## Design Philosophy

Each module is a set of pure computations over in-memory patterns. None of
them reads or writes the store; persistence is the job of ``infra`` and the
evolution pipeline.
"""

from .hippocampus import ConfidenceScorer, DecayScorer, Evictor
from .neocortex import Clusterer, Deduplicator

__all__ = [
    "ConfidenceScorer",
    "DecayScorer",
    "Evictor",
    "Clusterer",
    "Deduplicator",
]
