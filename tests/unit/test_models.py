"""Unit tests for domain models and identifiers."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from metacortex.domain.identifiers import (
    generate_cluster_id,
    generate_pattern_id,
    generate_session_id,
    hash_content,
    parse_pattern_id,
)
from metacortex.domain.models import (
    Cluster,
    DecayAlgorithm,
    DecayWeights,
    ExtractedFragments,
    Pattern,
    PatternConfig,
    PatternType,
    Scope,
)


class TestPatternModel:
    """Tests for Pattern validation."""

    def test_defaults(self, make_pattern):
        pattern = make_pattern()

        assert pattern.frequency == 1
        assert pattern.success_rate == 1.0
        assert pattern.cluster_id is None
        assert pattern.data == {}

    def test_last_seen_before_first_seen_rejected(self, now):
        with pytest.raises(PydanticValidationError):
            Pattern(
                id="x",
                semantic_hash="h",
                scope=Scope.DESIGN,
                type=PatternType.RISK,
                content="Vendor lock-in",
                first_seen=now,
                last_seen=now - timedelta(days=1),
            )

    def test_too_many_examples_rejected(self, make_pattern):
        with pytest.raises(PydanticValidationError):
            make_pattern(examples=[f"s{i}" for i in range(6)])

    @pytest.mark.parametrize(
        "overrides",
        [
            {"frequency": 0},
            {"success_rate": 1.5},
            {"confidence": -0.1},
            {"score": -1.0},
            {"content": ""},
        ],
    )
    def test_out_of_range_fields_rejected(self, make_pattern, overrides):
        with pytest.raises(PydanticValidationError):
            make_pattern(**overrides)

    def test_naive_datetimes_become_utc(self):
        naive = datetime(2026, 1, 1, 9, 30)
        pattern = Pattern(
            id="x",
            semantic_hash="h",
            scope=Scope.DESIGN,
            type=PatternType.RISK,
            content="Vendor lock-in",
            first_seen=naive,
            last_seen=naive,
        )
        assert pattern.first_seen.tzinfo == timezone.utc

    def test_export_dict_omits_embedding(self, make_pattern):
        exported = make_pattern().to_export_dict()

        assert "embedding" not in exported
        assert exported["scope"] == "implementation"
        assert exported["type"] == "approach"

    def test_cluster_size(self):
        cluster = Cluster(
            id="cluster-abc",
            scope=Scope.DESIGN,
            pattern_ids=["a", "b", "c"],
            representative_id="a",
        )
        assert cluster.size == 3

    def test_cluster_requires_members(self):
        with pytest.raises(PydanticValidationError):
            Cluster(id="c", scope=Scope.DESIGN, pattern_ids=[], representative_id="a")


class TestPatternConfig:
    """Tests for the immutable pattern configuration."""

    def test_defaults(self):
        config = PatternConfig()

        assert config.capacity.max_patterns_per_scope == {s: 100 for s in Scope}
        assert config.capacity.max_session_files == 10
        assert config.decay.algorithm == DecayAlgorithm.HYBRID
        assert config.decay.half_life_days == 90
        assert config.clustering.similarity_threshold == 0.75
        assert config.deduplication.similarity_threshold == 0.9
        assert config.eviction.protect_frequency == 5
        assert config.eviction.protect_recent_days == 7
        assert config.embedding_dimensions == 100

    def test_frozen(self):
        config = PatternConfig()
        with pytest.raises(PydanticValidationError):
            config.embedding_dimensions = 50

    @pytest.mark.parametrize(
        "data",
        [
            {"decay": {"half_life_days": 0}},
            {"decay": {"half_life_days": -5}},
            {"clustering": {"similarity_threshold": 1.5}},
            {"deduplication": {"similarity_threshold": -0.1}},
            {"decay": {"weights": {"recency": 2.0}}},
            {"capacity": {"max_patterns_per_scope": {"design": 0}}},
            {"unknown_section": {}},
        ],
    )
    def test_invalid_values_rejected(self, data):
        with pytest.raises(PydanticValidationError):
            PatternConfig.model_validate(data)

    def test_weight_sum_only_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            weights = DecayWeights(recency=0.5, frequency=0.5, success_rate=0.5)

        assert weights.recency == 0.5
        assert "expected 1.0" in caplog.text

    def test_merged_is_deep(self):
        config = PatternConfig().merged({"decay": {"half_life_days": 30}})

        assert config.decay.half_life_days == 30
        assert config.decay.weights == DecayWeights()
        assert config.decay.algorithm == DecayAlgorithm.HYBRID

    def test_json_round_trip(self):
        config = PatternConfig().merged(
            {"capacity": {"max_patterns_per_scope": {"design": 40}}}
        )
        restored = PatternConfig.model_validate_json(config.model_dump_json())

        assert restored == config
        assert restored.capacity.limit_for(Scope.DESIGN) == 40


class TestExtractedFragments:
    """Tests for the extraction bundle."""

    def test_empty_bundle(self):
        assert ExtractedFragments().is_empty()

    def test_non_empty_bundle(self):
        assert not ExtractedFragments(tools_used=["pytest"]).is_empty()


class TestIdentifiers:
    """Tests for ID generation."""

    def test_pattern_id_format(self):
        pattern_id = generate_pattern_id(
            Scope.PLANNING, PatternType.SEQUENTIAL_DEP, "Gather requirements"
        )
        assert pattern_id == (
            f"planning:sequential-dep:{hash_content('Gather requirements')}"
        )
        assert len(pattern_id.rsplit(":", 1)[1]) == 12

    def test_pattern_id_is_stable(self):
        a = generate_pattern_id(Scope.DESIGN, PatternType.RISK, "Vendor lock-in")
        b = generate_pattern_id(Scope.DESIGN, PatternType.RISK, "Vendor lock-in")
        assert a == b

    def test_parse_pattern_id(self):
        pattern_id = generate_pattern_id(Scope.DESIGN, PatternType.RISK, "x")
        scope, pattern_type, digest = parse_pattern_id(pattern_id)

        assert scope == Scope.DESIGN
        assert pattern_type == PatternType.RISK
        assert len(digest) == 12

    @pytest.mark.parametrize("bad", ["", "a:b", "nowhere:risk:abc", "design:nope:abc"])
    def test_parse_malformed_id(self, bad):
        assert parse_pattern_id(bad) is None

    def test_cluster_id_ignores_member_order(self):
        assert generate_cluster_id(["b", "a", "c"]) == generate_cluster_id(
            ["c", "b", "a"]
        )
        assert generate_cluster_id(["a"]) != generate_cluster_id(["a", "b"])

    def test_session_id_format(self):
        session_id = generate_session_id(
            datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
        )
        assert session_id.startswith("2026-03-04-050607-")
        assert len(session_id) == len("2026-03-04-050607-") + 4
