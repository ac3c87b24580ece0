"""Tests du module config."""

import json
from pathlib import Path

import pytest

from lareprise import ConfigError, ConfigFileError, LaRepriseError
from lareprise.config import DEFAULT_SEVERITIES, ConflictPolicy, EngineConfig
from lareprise.schema import ConflictType, Dimension, Severity


def test_defaults() -> None:
    config = EngineConfig()
    assert config.confidence_threshold == 80.0
    assert config.ambiguity_margin == 5.0
    assert config.max_candidates == 20
    assert config.search_radius_m == 500.0
    assert config.go_threshold == 75.0
    assert config.no_go_threshold == 50.0
    assert config.policy.severity_for("coordinates_far") is Severity.CRITICAL
    assert config.reliability_for(ConflictType.POPULATION_POI_MISMATCH)["demographic"] == 95.0


def test_from_dict_empty_equals_defaults() -> None:
    config = EngineConfig.from_dict({})
    assert config.dimension_weights == EngineConfig().dimension_weights
    assert config.policy.severities == DEFAULT_SEVERITIES


def test_from_dict_overrides() -> None:
    config = EngineConfig.from_dict(
        {
            "confidence_threshold": 70,
            "dimension_weights": {"location": 0.4, "market": 0.2, "operational": 0.2, "financial": 0.2},
            "policy": {"coordinates_far_m": 300, "severities": {"places_not_found": "high"}},
        }
    )
    assert config.confidence_threshold == 70.0
    assert config.dimension_weights[Dimension.LOCATION] == 0.4
    assert config.policy.coordinates_far_m == 300.0
    assert config.policy.severity_for("places_not_found") is Severity.HIGH


def test_weights_must_sum_to_one() -> None:
    with pytest.raises(ConfigError, match="somme"):
        EngineConfig.from_dict({"dimension_weights": {"location": 0.5}})


def test_unknown_dimension() -> None:
    with pytest.raises(ConfigError, match="dimension invalide"):
        EngineConfig.from_dict({"dimension_weights": {"hype": 0.1}})


def test_threshold_out_of_range() -> None:
    with pytest.raises(ConfigError, match="confidence_threshold"):
        EngineConfig.from_dict({"confidence_threshold": 150})


def test_thresholds_order() -> None:
    with pytest.raises(ConfigError, match="seuils invalides"):
        EngineConfig.from_dict({"go_threshold": 40, "no_go_threshold": 60})


def test_negative_value() -> None:
    with pytest.raises(ConfigError, match=">= 0"):
        EngineConfig.from_dict({"ambiguity_margin": -1})


def test_non_numeric_value() -> None:
    with pytest.raises(ConfigError, match="numérique"):
        EngineConfig.from_dict({"max_candidates": "beaucoup"})


def test_unknown_conflict_type() -> None:
    with pytest.raises(ConfigError, match="type de conflit invalide"):
        EngineConfig.from_dict({"source_reliability": {"WEATHER_MISMATCH": {"a": 50}}})


def test_reliability_out_of_range() -> None:
    with pytest.raises(ConfigError, match="entre 0 et 100"):
        EngineConfig.from_dict({"source_reliability": {"CSP_PRICING_MISMATCH": {"places": 120}}})


def test_policy_unknown_rule() -> None:
    with pytest.raises(ConfigError, match="règle invalide"):
        ConflictPolicy.from_dict({"severities": {"moon_phase": "high"}})


def test_policy_invalid_severity() -> None:
    with pytest.raises(ConfigError, match="sévérité invalide"):
        ConflictPolicy.from_dict({"severities": {"coordinates_far": "apocalyptic"}})


def test_policy_drift_above_far() -> None:
    with pytest.raises(ConfigError, match="coordinates_drift_m"):
        ConflictPolicy.from_dict({"coordinates_drift_m": 500})


def test_config_error_is_value_error() -> None:
    assert issubclass(ConfigError, ValueError)
    assert issubclass(ConfigError, LaRepriseError)


def test_load(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"max_poi": 10, "policy": {"works_heavy": 40000}}), encoding="utf-8")
    config = EngineConfig.load(path)
    assert config.max_poi == 10
    assert config.policy.works_heavy == 40000.0


def test_load_file_not_found(tmp_path: Path) -> None:
    """EngineConfig.load() lève ConfigFileError si le fichier n'existe pas."""
    with pytest.raises(ConfigFileError, match="introuvable"):
        EngineConfig.load(tmp_path / "inexistant.json")


def test_load_invalid_json(tmp_path: Path) -> None:
    """EngineConfig.load() lève ConfigFileError si le JSON est invalide."""
    bad_json = tmp_path / "config.json"
    bad_json.write_text("{ invalid json }", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="JSON invalide"):
        EngineConfig.load(bad_json)


def test_load_not_dict(tmp_path: Path) -> None:
    """EngineConfig.load() lève ConfigFileError si le JSON n'est pas un objet."""
    bad_config = tmp_path / "config.json"
    bad_config.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ConfigFileError, match="objet JSON"):
        EngineConfig.load(bad_config)


def test_load_invalid_content(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"max_poi": 0}), encoding="utf-8")
    with pytest.raises(ConfigError, match="max_poi"):
        EngineConfig.load(path)
