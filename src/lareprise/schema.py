"""Types du domaine : énumérations fermées et enregistrements partagés entre étapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class ConflictType(str, Enum):
    """Les six familles de conflits entre sources."""

    POPULATION_POI_MISMATCH = "POPULATION_POI_MISMATCH"
    CSP_PRICING_MISMATCH = "CSP_PRICING_MISMATCH"
    RATING_PHOTOS_MISMATCH = "RATING_PHOTOS_MISMATCH"
    DATA_INCONSISTENCY = "DATA_INCONSISTENCY"
    SCORE_MISMATCH = "SCORE_MISMATCH"
    GEOGRAPHIC_MISMATCH = "GEOGRAPHIC_MISMATCH"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# Points retirés du score de risque, par sévérité
SEVERITY_DEDUCTIONS: Mapping[Severity, int] = MappingProxyType(
    {
        Severity.CRITICAL: 25,
        Severity.HIGH: 15,
        Severity.MEDIUM: 8,
        Severity.LOW: 3,
    }
)


class Bucket(str, Enum):
    """Classe d'impact d'un POI voisin."""

    A = "A"  # concurrent direct
    B = "B"  # locomotive de trafic
    C = "C"  # services / horeca


class Impact(str, Enum):
    NEGATIVE = "negative"
    VERY_POSITIVE = "very_positive"
    POSITIVE = "positive"


class Dimension(str, Enum):
    LOCATION = "LOCATION"
    MARKET = "MARKET"
    OPERATIONAL = "OPERATIONAL"
    FINANCIAL = "FINANCIAL"


class Strategy(str, Enum):
    """Stratégies d'arbitrage, dans leur ordre d'essai."""

    SOURCE_TRUST = "source_trust"
    CONFIDENCE_WEIGHTED = "confidence_weighted"
    MAJORITY_VOTE = "majority_vote"
    MOST_RECENT = "most_recent"


class Label(str, Enum):
    GO = "GO"
    GO_WITH_RESERVES = "GO_WITH_RESERVES"
    NO_GO = "NO-GO"


class Status(str, Enum):
    """Statut porté par chaque sortie d'étape."""

    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float


@dataclass(frozen=True)
class BusinessRecord:
    """Commerce cible, tel que fourni par le registre (entrée immuable)."""

    name: str
    registry_id: str = ""
    address: str = ""
    postal_code: str = ""
    coordinates: Coordinates | None = None
    activity_code: str = ""  # code NAF
    is_active: bool | None = None


@dataclass(frozen=True)
class CandidatePOI:
    """Point d'intérêt issu d'une recherche de proximité."""

    id: str
    name: str = ""
    coordinates: Coordinates | None = None
    types: tuple[str, ...] = ()
    rating: float | None = None
    user_rating_count: int = 0
    price_level: int | None = None  # 1-4
    business_status: str | None = None  # OPERATIONAL, CLOSED_TEMPORARILY, CLOSED_PERMANENTLY
    address: str = ""


@dataclass(frozen=True)
class SourceValue:
    """Valeur rapportée par une source, avec sa confiance et sa date éventuelles."""

    value: Any
    confidence: float | None = None  # 0-1
    observed_at: datetime | None = None


@dataclass(frozen=True)
class ArbitrationResolution:
    conflict_id: str
    resolved_value: Any
    strategy: Strategy
    confidence: float
    chosen_source: str | None = None


@dataclass(frozen=True)
class Conflict:
    """
    Désaccord structuré entre deux faits dérivés indépendamment.

    type et sources ne changent jamais ; resolved et resolution ne sont posés
    qu'une fois, par l'arbitre, sur une copie.
    """

    id: str
    type: ConflictType
    severity: Severity
    fact: str
    sources: Mapping[str, SourceValue]
    description: str
    detected_at: datetime
    resolved: bool = False
    resolution: ArbitrationResolution | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.sources, MappingProxyType):
            object.__setattr__(self, "sources", MappingProxyType(dict(self.sources)))

    def __repr__(self) -> str:
        state = "resolved" if self.resolved else "open"
        return f"Conflict({self.type.value}, {self.severity.value}, {state})"


@dataclass(frozen=True)
class DimensionScore:
    dimension: Dimension
    raw_score: float
    weight: float
    breakdown: Mapping[str, float] = field(default_factory=dict)
    degraded: bool = False
    issues: tuple[str, ...] = ()

    @property
    def weighted(self) -> float:
        return self.raw_score * self.weight


@dataclass(frozen=True)
class RiskItem:
    category: Dimension
    severity: Severity
    description: str = ""

    @property
    def point_deduction(self) -> int:
        return SEVERITY_DEDUCTIONS[self.severity]


@dataclass(frozen=True)
class Recommendation:
    """Recommandation finale : une seule par exécution, terminale."""

    label: Label
    composite_score: float
    risk_score: float
    coherence_score: float
    decision_score: float
    dimension_scores: tuple[DimensionScore, ...]
    blocking_conflicts: tuple[Conflict, ...]
    resolved_conflicts: tuple[Conflict, ...]
    risk_items: tuple[RiskItem, ...] = ()
    degraded_dimensions: tuple[Dimension, ...] = ()
    status: Status = Status.SUCCESS
    reasons: tuple[str, ...] = ()

    def dimension(self, dimension: Dimension) -> DimensionScore:
        for d in self.dimension_scores:
            if d.dimension is dimension:
                return d
        raise KeyError(dimension)
