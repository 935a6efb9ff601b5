"""Similarity Engine - Hashed embeddings, cosine similarity and TF-IDF.

Two similarity measures are provided:
- ``embed`` + ``cosine_similarity``: a corpus-free, fixed-width bag of words
  used by clustering.
- ``TfidfVectorizer``: corpus-aware weighting used by deduplication. Its
  vocabulary must be built explicitly for every corpus.

Embeddings are plain ``list[float]`` of fixed length, both in memory and
on disk.
"""

from __future__ import annotations

import hashlib
import math
import re
from collections import Counter
from collections.abc import Iterable, Sequence

import numpy as np

from ...domain.models import PatternType, Scope

DEFAULT_DIMENSIONS = 100
MIN_TOKEN_LENGTH = 3
MIN_TAG_LENGTH = 4
MAX_KEYWORD_TAGS = 5
SEMANTIC_HASH_LENGTH = 16

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

STOP_WORDS = frozenset(
    {
        "the",
        "and",
        "for",
        "are",
        "but",
        "not",
        "you",
        "all",
        "any",
        "can",
        "was",
        "its",
        "has",
        "had",
        "our",
        "into",
        "than",
        "then",
        "them",
        "they",
        "that",
        "this",
        "with",
        "from",
        "have",
        "been",
        "were",
        "their",
        "there",
        "would",
        "about",
        "which",
        "these",
        "should",
        "could",
    }
)


def _words(text: str) -> list[str]:
    return [w for w in _NON_ALNUM.sub("", text.lower()).split() if w not in STOP_WORDS]


def tokenize(text: str) -> list[str]:
    """Lower-case, strip punctuation, drop stop words and tokens under 3 chars."""
    return [w for w in _words(text) if len(w) >= MIN_TOKEN_LENGTH]


def string_hash(token: str) -> int:
    """Deterministic 32-bit polynomial hash (``h = h*31 + c``), non-negative.

    Independent of ``PYTHONHASHSEED``, so bucket assignment is stable across
    processes.
    """
    h = 0
    for char in token:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def embed(text: str, dimensions: int = DEFAULT_DIMENSIONS) -> list[float]:
    """Map text to a fixed-width, L2-normalized term-frequency vector.

    Each token is assigned to bucket ``string_hash(token) % dimensions``.
    Text without any usable token yields the zero vector.
    """
    vector = np.zeros(dimensions, dtype=float)
    for token, count in Counter(tokenize(text)).items():
        vector[string_hash(token) % dimensions] += count

    magnitude = np.linalg.norm(vector)
    if magnitude > 0:
        vector /= magnitude
    return vector.tolist()


def cosine_similarity(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Cosine similarity clamped to [0, 1].

    Returns 0.0 for missing, empty, zero-magnitude or dimension-mismatched
    vectors instead of raising.
    """
    if a is None or b is None or len(a) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    if math.isnan(similarity):
        return 0.0
    return min(1.0, max(0.0, similarity))


def semantic_hash(text: str) -> str:
    """Order- and case-insensitive content fingerprint.

    SHA-256 over the sorted, de-duplicated token set, truncated to 16 hex
    characters.
    """
    canonical = " ".join(sorted(set(tokenize(text))))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:SEMANTIC_HASH_LENGTH]


def extract_tags(scope: Scope, pattern_type: PatternType, content: str) -> list[str]:
    """Derive search tags: scope, type and up to five content keywords."""
    tags = [Scope(scope).value, PatternType(pattern_type).value]
    keywords: list[str] = []
    for word in _words(content):
        if len(word) >= MIN_TAG_LENGTH and word not in keywords:
            keywords.append(word)
        if len(keywords) == MAX_KEYWORD_TAGS:
            break
    tags.extend(k for k in keywords if k not in tags)
    return tags


class TfidfVectorizer:
    """Corpus-aware TF-IDF similarity.

    Usage:
        vectorizer = TfidfVectorizer()
        vectorizer.build_vocabulary(texts)
        vectorizer.similarity(texts[0], texts[1])

    IDF is smoothed (``ln((1 + N) / (1 + df)) + 1``) so terms present in every
    document still carry weight. Vocabulary state is never reused implicitly:
    calling ``similarity`` before ``build_vocabulary`` raises ``RuntimeError``.
    """

    def __init__(self) -> None:
        self._idf: dict[str, float] | None = None
        self._document_count = 0

    @property
    def is_built(self) -> bool:
        return self._idf is not None

    @property
    def vocabulary(self) -> list[str]:
        return sorted(self._idf or {})

    def build_vocabulary(self, texts: Iterable[str]) -> TfidfVectorizer:
        """Compute document frequencies over ``texts``, replacing any prior state."""
        document_frequency: Counter[str] = Counter()
        count = 0
        for text in texts:
            document_frequency.update(set(tokenize(text)))
            count += 1

        self._document_count = count
        self._idf = {
            term: math.log((1 + count) / (1 + df)) + 1.0
            for term, df in document_frequency.items()
        }
        return self

    def _idf_for(self, term: str) -> float:
        if self._idf is None:
            raise RuntimeError("TF-IDF vocabulary not built; call build_vocabulary()")
        if term in self._idf:
            return self._idf[term]
        # Unseen term: document frequency 0
        return math.log(1 + self._document_count) + 1.0

    def weights(self, text: str) -> dict[str, float]:
        """TF-IDF weights of ``text`` (term frequency normalized by length)."""
        if self._idf is None:
            raise RuntimeError("TF-IDF vocabulary not built; call build_vocabulary()")
        tokens = tokenize(text)
        if not tokens:
            return {}
        total = len(tokens)
        return {
            term: (count / total) * self._idf_for(term)
            for term, count in Counter(tokens).items()
        }

    def similarity(self, a: str, b: str) -> float:
        """Cosine similarity of the TF-IDF vectors of two texts, in [0, 1]."""
        wa = self.weights(a)
        wb = self.weights(b)
        if not wa or not wb:
            return 0.0

        terms = sorted(set(wa) | set(wb))
        va = np.array([wa.get(t, 0.0) for t in terms])
        vb = np.array([wb.get(t, 0.0) for t in terms])
        return cosine_similarity(va, vb)
