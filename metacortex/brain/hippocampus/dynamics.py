"""Pattern Dynamics - Confidence and decay scoring.

Implements the two scores the evolution pipeline keeps on every pattern:
- confidence: how much a pattern can be trusted (frequency + recency)
- score: decay score / vitality used to rank and evict patterns

Both are pure functions of the pattern, an injected "now" and the decay
configuration. Recomputing them with unchanged inputs always yields the
same value.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timezone

from ...domain.models import DecayAlgorithm, DecayConfig, Pattern

SECONDS_PER_DAY = 86400.0

# Frequency saturates at this many observations
FREQUENCY_SATURATION = 10.0
FREQUENCY_WEIGHT = 0.7
RECENCY_WEIGHT = 0.3

# (max age in days, recency score) buckets, checked in order
RECENCY_BUCKETS: tuple[tuple[float, float], ...] = (
    (7.0, 1.0),
    (30.0, 0.8),
    (90.0, 0.5),
)
STALE_RECENCY = 0.3


def age_in_days(last_seen: datetime, now: datetime | None = None) -> float:
    """Days elapsed since ``last_seen``.

    Timestamps in the future count as age 0.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if last_seen.tzinfo is None:
        last_seen = last_seen.replace(tzinfo=timezone.utc)
    return max(0.0, (now - last_seen).total_seconds() / SECONDS_PER_DAY)


def decay_factor(age_days: float, half_life_days: float) -> float:
    """Half-life decay factor ``0.5^(age / half_life)`` in (0, 1]."""
    if half_life_days <= 0:
        return 0.0
    return math.pow(0.5, max(0.0, age_days) / half_life_days)


def days_until_below(score: float, threshold: float, half_life_days: float) -> float:
    """Estimate days until ``score`` decays below ``threshold``.

    Solves ``threshold = score * 0.5^(days / half_life)``.

    Returns:
        Days remaining, or 0.0 when the score is already at or below the
        threshold (or the threshold is not positive).
    """
    if score <= threshold or threshold <= 0:
        return 0.0
    return max(0.0, half_life_days * math.log2(score / threshold))


class ConfidenceScorer:
    """Computes pattern confidence.

    confidence = 0.7 * min(frequency / 10, 1) + 0.3 * recency bucket
    """

    def compute_recency_score(self, age_days: float) -> float:
        """Step function over the age of the last observation."""
        for limit, value in RECENCY_BUCKETS:
            if age_days < limit:
                return value
        return STALE_RECENCY

    def compute_confidence(self, pattern: Pattern, now: datetime) -> float:
        """Compute confidence for a single pattern.

        Args:
            pattern: Pattern to score
            now: Reference time

        Returns:
            Confidence between 0.0 and 1.0
        """
        frequency_score = min(pattern.frequency / FREQUENCY_SATURATION, 1.0)
        recency_score = self.compute_recency_score(age_in_days(pattern.last_seen, now))
        confidence = FREQUENCY_WEIGHT * frequency_score + RECENCY_WEIGHT * recency_score
        return min(1.0, max(0.0, confidence))

    def apply(self, patterns: Iterable[Pattern], now: datetime) -> list[Pattern]:
        """Return copies of ``patterns`` with refreshed confidence."""
        return [
            p.model_copy(update={"confidence": self.compute_confidence(p, now)})
            for p in patterns
        ]


class DecayScorer:
    """Computes the decay score of a pattern.

    Algorithms:
    - exponential: frequency * 0.5^(age/half_life) * success_rate
    - linear: frequency * max(0, 1 - age/(2*half_life)) * success_rate
    - hybrid: w_r * 0.5^(age/half_life) + w_f * log2(frequency+1) + w_s * success_rate
    """

    def __init__(self, config: DecayConfig | None = None) -> None:
        """Initialize decay scorer.

        Args:
            config: Decay settings (algorithm, half-life, hybrid weights)
        """
        self.config = config or DecayConfig()

    def compute_score(self, pattern: Pattern, now: datetime) -> float:
        """Compute the decay score for a single pattern.

        Never raises for zero frequency or zero success rate; the result is
        always >= 0.
        """
        age = age_in_days(pattern.last_seen, now)
        return self.score_components(pattern.frequency, pattern.success_rate, age)

    def score_components(
        self, frequency: float, success_rate: float, age_days: float
    ) -> float:
        """Decay score from raw components."""
        half_life = self.config.half_life_days
        frequency = max(0.0, frequency)
        success_rate = max(0.0, success_rate)
        age_days = max(0.0, age_days)
        algorithm = self.config.algorithm

        if algorithm == DecayAlgorithm.EXPONENTIAL:
            score = frequency * decay_factor(age_days, half_life) * success_rate
        elif algorithm == DecayAlgorithm.LINEAR:
            remaining = max(0.0, 1.0 - age_days / (2.0 * half_life))
            score = frequency * remaining * success_rate
        else:
            weights = self.config.weights
            score = (
                weights.recency * decay_factor(age_days, half_life)
                + weights.frequency * math.log2(frequency + 1.0)
                + weights.success_rate * success_rate
            )
        return max(0.0, score)

    def apply(self, patterns: Iterable[Pattern], now: datetime) -> list[Pattern]:
        """Return copies of ``patterns`` with refreshed decay scores."""
        return [
            p.model_copy(update={"score": self.compute_score(p, now)})
            for p in patterns
        ]
