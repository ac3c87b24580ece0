"""Schémas et types pour le rapprochement d'identité."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MatchTier(str, Enum):
    """Palier de similarité de nom ayant déclenché le score."""

    EXACT = "exact"
    SUBSTRING = "substring"
    PARTIAL = "partial"
    NONE = "none"


class MatchStatus(str, Enum):
    MATCHED = "matched"
    AMBIGUOUS = "ambiguous"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class MatchFactors:
    """Décomposition du score composite (0-100)."""

    name: int
    distance: int
    category: int
    secondary: int

    @property
    def total(self) -> int:
        return self.name + self.distance + self.category + self.secondary

    def as_dict(self) -> dict[str, float]:
        return {
            "name": self.name,
            "distance": self.distance,
            "category": self.category,
            "secondary": self.secondary,
        }


@dataclass(frozen=True)
class MatchCandidate:
    """Un candidat évalué contre le commerce cible."""

    poi_id: str
    score: int
    factors: MatchFactors
    tier: MatchTier
    distance_m: float | None = None
    address_similarity: float = 0.0

    def __repr__(self) -> str:
        return f"MatchCandidate(poi={self.poi_id}, score={self.score})"


@dataclass(frozen=True)
class MatchResult:
    """Résultat du rapprochement pour un commerce cible."""

    candidates: tuple[MatchCandidate, ...]
    best_score: int
    status: MatchStatus
    is_confident: bool
    is_ambiguous: bool
    chosen_poi_id: str | None = None
    explanation: str = ""

    @property
    def best(self) -> MatchCandidate | None:
        return self.candidates[0] if self.candidates else None

    @property
    def tier(self) -> MatchTier:
        best = self.best
        return best.tier if best is not None else MatchTier.NONE

    @property
    def breakdown(self) -> dict[str, float]:
        best = self.best
        return best.factors.as_dict() if best is not None else {}
