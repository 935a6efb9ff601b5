"""Pattern Clustering - Group semantically related patterns.

Agglomerative single pass over the patterns that carry an embedding:
each pattern joins the first existing cluster whose *average* cosine
similarity to its members reaches the threshold, otherwise it starts a new
cluster. Assignment is first-fit, not best-fit, so membership depends on
input order (and is fully determined by it).

Clusters reference members by ID only. Patterns carry a ``cluster_id``
back-reference that ``assign_cluster_ids`` keeps in sync.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

import numpy as np

from ...domain.exceptions import ValidationError
from ...domain.identifiers import generate_cluster_id
from ...domain.models import Cluster, Pattern, Scope
from .similarity import cosine_similarity

logger = logging.getLogger(__name__)


class Clusterer:
    """Clusters the patterns of one scope."""

    def __init__(
        self,
        similarity_threshold: float = 0.75,
        max_clusters: int | None = None,
    ) -> None:
        """Initialize the clusterer.

        Args:
            similarity_threshold: Minimum average similarity to join a cluster
            max_clusters: Keep at most this many clusters (largest first)
        """
        self.similarity_threshold = similarity_threshold
        self.max_clusters = max_clusters

    def cluster(self, scope: Scope, patterns: Sequence[Pattern]) -> list[Cluster]:
        """Cluster patterns in input order.

        Patterns without an embedding are skipped.

        Raises:
            ValidationError: If a pattern belongs to another scope.
        """
        scope = Scope(scope)
        foreign = [p.id for p in patterns if p.scope != scope]
        if foreign:
            raise ValidationError(
                f"Cannot cluster across scopes: {foreign[0]} is not in '{scope.value}'"
            )

        candidates = [p for p in patterns if p.embedding]
        groups: list[list[Pattern]] = []

        for pattern in candidates:
            for members in groups:
                similarities = [
                    cosine_similarity(pattern.embedding, m.embedding) for m in members
                ]
                if sum(similarities) / len(similarities) >= self.similarity_threshold:
                    members.append(pattern)
                    break
            else:
                groups.append([pattern])

        if self.max_clusters is not None and len(groups) > self.max_clusters:
            dropped = len(groups) - self.max_clusters
            # Stable sort: equal sizes keep their creation order
            groups = sorted(groups, key=len, reverse=True)[: self.max_clusters]
            logger.info(
                f"Scope '{scope.value}': dropped {dropped} smallest clusters "
                f"(limit {self.max_clusters})"
            )

        return [build_cluster(scope, members) for members in groups]

    def prune(
        self, clusters: Iterable[Cluster], patterns: Iterable[Pattern]
    ) -> list[Cluster]:
        """Drop members that no longer exist and rebuild derived fields.

        Clusters left without members are removed.
        """
        by_id = {p.id: p for p in patterns}
        pruned: list[Cluster] = []
        for cluster in clusters:
            members = [by_id[pid] for pid in cluster.pattern_ids if pid in by_id]
            if members:
                pruned.append(build_cluster(cluster.scope, members))
        return pruned

    @staticmethod
    def assign_cluster_ids(
        patterns: Iterable[Pattern], clusters: Iterable[Cluster]
    ) -> list[Pattern]:
        """Return pattern copies whose ``cluster_id`` matches ``clusters``.

        Patterns not in any cluster get ``cluster_id = None``.
        """
        owner: dict[str, str] = {}
        for cluster in clusters:
            for pattern_id in cluster.pattern_ids:
                owner[pattern_id] = cluster.id
        return [p.model_copy(update={"cluster_id": owner.get(p.id)}) for p in patterns]

    @staticmethod
    def find_related(pattern_id: str, clusters: Iterable[Cluster]) -> list[str]:
        """IDs of the other members of the cluster containing ``pattern_id``."""
        for cluster in clusters:
            if pattern_id in cluster.pattern_ids:
                return [pid for pid in cluster.pattern_ids if pid != pattern_id]
        return []


def build_cluster(scope: Scope, members: Sequence[Pattern]) -> Cluster:
    """Build a cluster and its derived fields from its members.

    - id: hash of the sorted member IDs
    - representative: highest frequency, ties broken by member order
    - centroid: mean of member embeddings of the common width
    - avg_confidence: mean member confidence
    """
    pattern_ids = [m.id for m in members]
    representative = max(members, key=lambda m: m.frequency)

    centroid: list[float] = []
    embeddings = [m.embedding for m in members if m.embedding]
    if embeddings:
        width = len(embeddings[0])
        matrix = np.array([e for e in embeddings if len(e) == width], dtype=float)
        centroid = matrix.mean(axis=0).tolist()

    avg_confidence = sum(m.confidence for m in members) / len(members)
    return Cluster(
        id=generate_cluster_id(pattern_ids),
        scope=scope,
        pattern_ids=pattern_ids,
        representative_id=representative.id,
        centroid=centroid,
        avg_confidence=min(1.0, max(0.0, avg_confidence)),
    )

