"""Deduplication - Merge near-identical patterns.

Each pass compares a pattern only against the representatives accepted
so far (same scope and type). The first-seen pattern in input order is
always the representative, so the result depends on input order. Passes
repeat until one merges nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from ...domain.models import MAX_EXAMPLES, Pattern
from .similarity import TfidfVectorizer

logger = logging.getLogger(__name__)

SimilarityFn = Callable[[Pattern, Pattern], float]


def merge_examples(first: Sequence[str], second: Sequence[str]) -> list[str]:
    """Order-preserving de-duplicated union, capped at ``MAX_EXAMPLES``."""
    merged: list[str] = []
    for example in [*first, *second]:
        if example not in merged:
            merged.append(example)
    return merged[:MAX_EXAMPLES]


def merge_patterns(representative: Pattern, absorbed: Pattern) -> Pattern:
    """Fold ``absorbed`` into a copy of ``representative``."""
    tags = list(representative.tags)
    tags.extend(t for t in absorbed.tags if t not in tags)
    return representative.model_copy(
        update={
            "frequency": representative.frequency + absorbed.frequency,
            "confidence": max(representative.confidence, absorbed.confidence),
            "score": max(representative.score, absorbed.score),
            "first_seen": min(representative.first_seen, absorbed.first_seen),
            "last_seen": max(representative.last_seen, absorbed.last_seen),
            "examples": merge_examples(representative.examples, absorbed.examples),
            "tags": tags,
        }
    )


class Deduplicator:
    """Merges patterns whose content similarity reaches a threshold."""

    def __init__(
        self,
        similarity_threshold: float = 0.9,
        similarity_fn: SimilarityFn | None = None,
    ) -> None:
        """Initialize the deduplicator.

        Args:
            similarity_threshold: Minimum similarity to merge two patterns
            similarity_fn: Optional custom similarity. When omitted, TF-IDF
                similarity over a vocabulary built from each input is used.
        """
        self.similarity_threshold = similarity_threshold
        self.similarity_fn = similarity_fn

    def _similarity_for(self, patterns: Sequence[Pattern]) -> SimilarityFn:
        if self.similarity_fn is not None:
            return self.similarity_fn
        vectorizer = TfidfVectorizer().build_vocabulary(p.content for p in patterns)
        return lambda a, b: vectorizer.similarity(a.content, b.content)

    def deduplicate(self, patterns: Sequence[Pattern]) -> list[Pattern]:
        """Merge duplicates; inputs are never mutated.

        First-fit passes repeat over the merged output until a pass merges
        nothing. The TF-IDF vocabulary is rebuilt for every pass, so the
        result is a fixed point: deduplicating it again changes nothing.

        Returns:
            Representatives (with absorbed metadata) in first-seen order.
        """
        current = [p.model_copy() for p in patterns]
        passes = 0
        while len(current) >= 2:
            merged = self._merge_pass(current)
            passes += 1
            if len(merged) == len(current):
                break
            current = merged

        absorbed = len(patterns) - len(current)
        if absorbed:
            logger.info(
                f"Deduplication merged {absorbed} of {len(patterns)} patterns "
                f"in {passes} passes"
            )
        return current

    def _merge_pass(self, patterns: Sequence[Pattern]) -> list[Pattern]:
        similarity = self._similarity_for(patterns)
        accepted: list[Pattern] = []

        for pattern in patterns:
            for index, existing in enumerate(accepted):
                if existing.type != pattern.type or existing.scope != pattern.scope:
                    continue
                if similarity(existing, pattern) >= self.similarity_threshold:
                    accepted[index] = merge_patterns(existing, pattern)
                    logger.debug(f"Merged {pattern.id} into {existing.id}")
                    break
            else:
                accepted.append(pattern)
        return accepted

    def find_duplicates(self, patterns: Sequence[Pattern]) -> list[list[Pattern]]:
        """Group duplicates for analysis, without merging.

        Each group starts with its representative; only groups with two or
        more members are returned.
        """
        if len(patterns) < 2:
            return []

        similarity = self._similarity_for(patterns)
        groups: list[list[Pattern]] = []
        for pattern in patterns:
            for group in groups:
                head = group[0]
                if (
                    head.type == pattern.type
                    and head.scope == pattern.scope
                    and similarity(head, pattern) >= self.similarity_threshold
                ):
                    group.append(pattern)
                    break
            else:
                groups.append([pattern])
        return [g for g in groups if len(g) > 1]
