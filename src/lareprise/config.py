"""Configuration du moteur et chargement du fichier config JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lareprise.schema import ConflictType, Dimension, Severity

DEFAULT_DIMENSION_WEIGHTS: dict[Dimension, float] = {
    Dimension.LOCATION: 0.30,
    Dimension.MARKET: 0.25,
    Dimension.OPERATIONAL: 0.25,
    Dimension.FINANCIAL: 0.20,
}

# Règles de détection dont la sévérité est fournie par la politique
DEFAULT_SEVERITIES: dict[str, Severity] = {
    "population_without_poi": Severity.HIGH,
    "dense_poi_low_population": Severity.MEDIUM,
    "high_csp_discount_pricing": Severity.MEDIUM,
    "low_csp_premium_pricing": Severity.MEDIUM,
    "high_rating_poor_photos": Severity.HIGH,
    "low_rating_excellent_photos": Severity.MEDIUM,
    "coordinates_far": Severity.CRITICAL,
    "coordinates_drift": Severity.MEDIUM,
    "potential_heavy_works": Severity.MEDIUM,
    "places_not_found": Severity.MEDIUM,
    "observation_divergence": Severity.MEDIUM,
}
VALID_RULES = frozenset(DEFAULT_SEVERITIES)

# Fiabilité (0-100) des sources, par type de conflit
DEFAULT_SOURCE_RELIABILITY: dict[ConflictType, dict[str, float]] = {
    ConflictType.POPULATION_POI_MISMATCH: {"demographic": 95.0, "competitor": 75.0},
    ConflictType.CSP_PRICING_MISMATCH: {"places": 75.0, "demographic": 70.0},
    ConflictType.RATING_PHOTOS_MISMATCH: {"photo": 85.0, "places": 85.0},
    ConflictType.GEOGRAPHIC_MISMATCH: {"geocoding": 85.0, "places": 80.0, "registry": 70.0},
    ConflictType.SCORE_MISMATCH: {"demographic": 80.0, "photo": 60.0},
    ConflictType.DATA_INCONSISTENCY: {
        "geocoding": 87.5,
        "demographic": 85.0,
        "places": 82.0,
        "competitor": 80.0,
        "photo": 75.0,
    },
}


class LaRepriseError(Exception):
    """Exception de base pour LaReprise."""


class ConfigError(LaRepriseError, ValueError):
    """Erreur de validation de la configuration."""


class ConfigFileError(LaRepriseError):
    """Erreur de chargement du fichier de configuration (fichier absent, JSON invalide)."""


class InputError(LaRepriseError):
    """Donnée d'entrée inexploitable pour un champ donné."""

    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


class MissingInputError(InputError):
    """Champ amont requis absent."""


class MalformedInputError(InputError):
    """Champ présent mais illisible."""


def _positive(d: dict[str, Any], key: str, default: float) -> float:
    try:
        value = float(d.get(key, default))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} doit être numérique (got {d.get(key)!r})") from e
    if value < 0:
        raise ConfigError(f"{key} doit être >= 0 (got {value})")
    return value


@dataclass
class ConflictPolicy:
    """
    Seuils et sévérités des règles de détection de conflits.

    Les valeurs par défaut reproduisent les règles historiques ; chaque seuil et
    chaque sévérité peut être remplacé par la configuration.
    """

    population_high: float = 3000.0  # habitants à 500 m
    population_low: float = 500.0
    poi_dense: int = 10
    rating_high: float = 4.0
    rating_low: float = 3.0
    photo_poor: float = 5.0  # note /10
    photo_excellent: float = 8.0
    price_discount: int = 1
    price_premium: int = 3
    coordinates_drift_m: float = 100.0
    coordinates_far_m: float = 200.0
    demographic_score_high: float = 75.0
    works_heavy: float = 50000.0  # euros, fourchette haute
    observation_tolerance: float = 0.10  # écart relatif toléré entre sources
    severities: dict[str, Severity] = field(default_factory=lambda: dict(DEFAULT_SEVERITIES))

    def severity_for(self, rule: str) -> Severity:
        return self.severities[rule]

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ConflictPolicy:
        severities = dict(DEFAULT_SEVERITIES)
        for rule, sev in d.get("severities", {}).items():
            if rule not in VALID_RULES:
                raise ConfigError(f"règle invalide: {rule!r}. Valides: {sorted(VALID_RULES)}")
            try:
                severities[rule] = Severity(str(sev).upper())
            except ValueError as e:
                raise ConfigError(f"sévérité invalide pour {rule}: {sev!r}") from e

        policy = cls(
            population_high=_positive(d, "population_high", cls.population_high),
            population_low=_positive(d, "population_low", cls.population_low),
            poi_dense=int(_positive(d, "poi_dense", cls.poi_dense)),
            rating_high=_positive(d, "rating_high", cls.rating_high),
            rating_low=_positive(d, "rating_low", cls.rating_low),
            photo_poor=_positive(d, "photo_poor", cls.photo_poor),
            photo_excellent=_positive(d, "photo_excellent", cls.photo_excellent),
            price_discount=int(_positive(d, "price_discount", cls.price_discount)),
            price_premium=int(_positive(d, "price_premium", cls.price_premium)),
            coordinates_drift_m=_positive(d, "coordinates_drift_m", cls.coordinates_drift_m),
            coordinates_far_m=_positive(d, "coordinates_far_m", cls.coordinates_far_m),
            demographic_score_high=_positive(d, "demographic_score_high", cls.demographic_score_high),
            works_heavy=_positive(d, "works_heavy", cls.works_heavy),
            observation_tolerance=_positive(d, "observation_tolerance", cls.observation_tolerance),
            severities=severities,
        )
        if policy.coordinates_drift_m > policy.coordinates_far_m:
            raise ConfigError("coordinates_drift_m doit être <= coordinates_far_m")
        if policy.rating_low > policy.rating_high:
            raise ConfigError("rating_low doit être <= rating_high")
        return policy


@dataclass
class EngineConfig:
    """Configuration principale du moteur de décision."""

    confidence_threshold: float = 80.0  # score composite minimal d'un match confiant
    ambiguity_margin: float = 5.0
    max_candidates: int = 20
    search_radius_m: float = 500.0
    max_poi: int = 20
    go_threshold: float = 75.0  # inclusif
    no_go_threshold: float = 50.0  # exclusif
    dimension_weights: dict[Dimension, float] = field(default_factory=lambda: dict(DEFAULT_DIMENSION_WEIGHTS))
    policy: ConflictPolicy = field(default_factory=ConflictPolicy)
    source_reliability: dict[ConflictType, dict[str, float]] = field(
        default_factory=lambda: {t: dict(s) for t, s in DEFAULT_SOURCE_RELIABILITY.items()}
    )

    def reliability_for(self, conflict_type: ConflictType) -> dict[str, float]:
        return self.source_reliability.get(conflict_type, {})

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> EngineConfig:
        confidence_threshold = _positive(d, "confidence_threshold", 80.0)
        ambiguity_margin = _positive(d, "ambiguity_margin", 5.0)
        max_candidates = int(_positive(d, "max_candidates", 20))
        search_radius_m = _positive(d, "search_radius_m", 500.0)
        max_poi = int(_positive(d, "max_poi", 20))

        if not 0 <= confidence_threshold <= 100:
            raise ConfigError(f"confidence_threshold doit être entre 0 et 100 (got {confidence_threshold})")
        if max_candidates < 1:
            raise ConfigError(f"max_candidates doit être >= 1 (got {max_candidates})")
        if max_poi < 1:
            raise ConfigError(f"max_poi doit être >= 1 (got {max_poi})")
        if search_radius_m == 0:
            raise ConfigError("search_radius_m doit être > 0")

        go_threshold = _positive(d, "go_threshold", 75.0)
        no_go_threshold = _positive(d, "no_go_threshold", 50.0)
        if not 0 <= no_go_threshold <= go_threshold <= 100:
            raise ConfigError(
                f"seuils invalides: il faut 0 <= no_go_threshold ({no_go_threshold}) "
                f"<= go_threshold ({go_threshold}) <= 100"
            )

        weights = dict(DEFAULT_DIMENSION_WEIGHTS)
        for dim_name, w in d.get("dimension_weights", {}).items():
            try:
                dim = Dimension(str(dim_name).upper())
            except ValueError as e:
                raise ConfigError(
                    f"dimension invalide: {dim_name!r}. Valides: {[x.value for x in Dimension]}"
                ) from e
            weights[dim] = _positive({dim_name: w}, dim_name, 0.0)
        if abs(sum(weights.values()) - 1.0) > 1e-9:
            raise ConfigError(f"la somme des dimension_weights doit valoir 1.0 (got {sum(weights.values()):.4f})")

        reliability = {t: dict(s) for t, s in DEFAULT_SOURCE_RELIABILITY.items()}
        for type_name, scores in d.get("source_reliability", {}).items():
            try:
                conflict_type = ConflictType(type_name)
            except ValueError as e:
                raise ConfigError(
                    f"type de conflit invalide: {type_name!r}. Valides: {sorted(t.value for t in ConflictType)}"
                ) from e
            if not isinstance(scores, dict):
                raise ConfigError(f"source_reliability.{type_name} doit être un objet")
            ranking: dict[str, float] = {}
            for source, score in scores.items():
                value = _positive({source: score}, source, 0.0)
                if value > 100:
                    raise ConfigError(f"fiabilité de {source} doit être entre 0 et 100 (got {score})")
                ranking[str(source)] = value
            reliability[conflict_type] = ranking

        return cls(
            confidence_threshold=confidence_threshold,
            ambiguity_margin=ambiguity_margin,
            max_candidates=max_candidates,
            search_radius_m=search_radius_m,
            max_poi=max_poi,
            go_threshold=go_threshold,
            no_go_threshold=no_go_threshold,
            dimension_weights=weights,
            policy=ConflictPolicy.from_dict(d.get("policy", {})),
            source_reliability=reliability,
        )

    @classmethod
    def load(cls, path: str | Path) -> EngineConfig:
        """
        Charge la configuration depuis un fichier JSON.

        Raises:
            ConfigFileError: Si le fichier est absent ou le JSON invalide.
            ConfigError: Si la configuration est invalide.
        """
        path = Path(path).resolve()
        if not path.exists():
            raise ConfigFileError(f"Fichier de configuration introuvable: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                d = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"JSON invalide dans {path}: {e}") from e
        except OSError as e:
            raise ConfigFileError(f"Impossible de lire {path}: {e}") from e

        if not isinstance(d, dict):
            raise ConfigFileError(f"Fichier de configuration invalide: {path} doit contenir un objet JSON")

        return cls.from_dict(d)
