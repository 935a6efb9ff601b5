"""Neocortex module - Similarity, Deduplication & Abstraction.

The neocortex is responsible for:
- Recognizing that two experiences are the same
- Grouping related knowledge into higher-level structures

In Metacortex, this module handles:
- Hashed embeddings, cosine and TF-IDF similarity
- Deduplication of near-identical patterns
- Clustering of related patterns
"""

from .clustering import Clusterer, build_cluster
from .deduplication import Deduplicator
from .similarity import (
    TfidfVectorizer,
    cosine_similarity,
    embed,
    extract_tags,
    semantic_hash,
    tokenize,
)

__all__ = [
    "Clusterer",
    "Deduplicator",
    "TfidfVectorizer",
    "build_cluster",
    "cosine_similarity",
    "embed",
    "extract_tags",
    "semantic_hash",
    "tokenize",
]
