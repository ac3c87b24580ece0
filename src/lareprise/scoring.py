"""Score multidimensionnel, éléments de risque et score de décision."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from loguru import logger

from lareprise.conflicts import CROSS_CHECKED_FACTS
from lareprise.config import DEFAULT_DIMENSION_WEIGHTS
from lareprise.finance import Trend, TrendAnalysis
from lareprise.inputs import Snapshot
from lareprise.matching.schema import MatchResult, MatchStatus
from lareprise.poi import DensityTier, PoiSummary
from lareprise.schema import SEVERITY_DEDUCTIONS, Conflict, Dimension, DimensionScore, RiskItem, Severity, Status

NEUTRAL_SCORE = 50.0
WEAK_DIMENSION = 50.0
DECISION_WEIGHTS = {"composite": 0.50, "risk": 0.30, "coherence": 0.20}

# (population minimale, points)
TRADE_AREA_TIERS: tuple[tuple[float, int], ...] = ((5000, 30), (3000, 25), (1500, 20), (800, 15), (400, 10))
TRADE_AREA_FLOOR = 5
# (nombre d'avis minimal, points)
REVIEW_TIERS: tuple[tuple[int, int], ...] = ((100, 20), (50, 17), (20, 14), (10, 10), (5, 7))
REVIEW_FLOOR = 3
COMPETITION_POINTS: dict[DensityTier, int] = {
    DensityTier.VERY_LOW: 40,
    DensityTier.LOW: 35,
    DensityTier.MODERATE: 25,
    DensityTier.HIGH: 15,
    DensityTier.VERY_HIGH: 5,
}
# (coût haut maximal en euros, points)
RENOVATION_TIERS: tuple[tuple[float, int], ...] = (
    (10_000, 40),
    (25_000, 32),
    (50_000, 24),
    (75_000, 16),
    (100_000, 8),
)
TREND_POINTS: dict[Trend | None, int] = {
    Trend.CROISSANCE: 20,
    Trend.STABLE: 12,
    Trend.DECLIN: 4,
    None: 10,
}


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def _tier_at_least(value: float, tiers: Sequence[tuple[float, int]], floor: int) -> int:
    for minimum, points in tiers:
        if value >= minimum:
            return points
    return floor


def _tier_at_most(value: float, tiers: Sequence[tuple[float, int]], floor: int) -> int:
    for maximum, points in tiers:
        if value <= maximum:
            return points
    return floor


def potential_points(demographic_score: float, cost_high: float) -> int:
    """Ratio potentiel / investissement, sur 40 points."""
    if demographic_score >= 75 and cost_high <= 25_000:
        return 40
    if demographic_score >= 75 and cost_high <= 50_000:
        return 32
    if demographic_score >= 60 and cost_high <= 50_000:
        return 28
    if demographic_score >= 50 and cost_high <= 75_000:
        return 20
    if demographic_score >= 40:
        return 12
    return 4


def _degraded(dimension: Dimension, weight: float, snapshot: Snapshot, sections: Sequence[str]) -> DimensionScore:
    issues = tuple(
        f"{i.field}: {i.kind.value}"
        for i in snapshot.issues
        if any(i.field == s or i.field.startswith(s + ".") for s in sections)
    )
    logger.warning("dimension {} dégradée ({})", dimension.value, ", ".join(issues) or "données absentes")
    return DimensionScore(
        dimension=dimension,
        raw_score=NEUTRAL_SCORE,
        weight=weight,
        degraded=True,
        issues=issues or tuple(f"{s}: absent" for s in sections),
    )


def score_location(snapshot: Snapshot, match: MatchResult | None, weight: float) -> DimensionScore:
    demo = snapshot.demographics
    if demo is None:
        return _degraded(Dimension.LOCATION, weight, snapshot, ["demographics"])
    match_points = 0.0
    if match is not None and match.status is not MatchStatus.NO_MATCH:
        match_points = match.best_score / 100 * 30
    breakdown = {
        "demographic_fit": demo.score / 100 * 40,
        "trade_area": float(_tier_at_least(demo.trade_area, TRADE_AREA_TIERS, TRADE_AREA_FLOOR)),
        "geographic_match": match_points,
    }
    return DimensionScore(Dimension.LOCATION, clamp(sum(breakdown.values())), weight, breakdown)


def score_market(snapshot: Snapshot, poi: PoiSummary, weight: float) -> DimensionScore:
    places = snapshot.places
    if places is None or not places.found or places.rating is None:
        return _degraded(Dimension.MARKET, weight, snapshot, ["places"])
    breakdown = {
        "reputation": places.rating / 5 * 40,
        "review_volume": float(_tier_at_least(places.user_rating_count, REVIEW_TIERS, REVIEW_FLOOR)),
        "competition": float(COMPETITION_POINTS[poi.competitor_density]),
    }
    return DimensionScore(Dimension.MARKET, clamp(sum(breakdown.values())), weight, breakdown)


def score_operational(snapshot: Snapshot, weight: float) -> DimensionScore:
    photo = snapshot.photo
    if photo is None:
        return _degraded(Dimension.OPERATIONAL, weight, snapshot, ["photo"])
    breakdown = {
        "physical_condition": photo.note_globale / 10 * 60,
        "renovation_burden": float(_tier_at_most(photo.cost_high, RENOVATION_TIERS, 0)),
    }
    return DimensionScore(Dimension.OPERATIONAL, clamp(sum(breakdown.values())), weight, breakdown)


def data_coherence(snapshot: Snapshot, conflicts: Sequence[Conflict]) -> float:
    """Part (0-1) des faits évalués sans conflit non résolu."""
    facts = set(CROSS_CHECKED_FACTS) | set(snapshot.observations)
    facts |= {c.fact for c in conflicts}
    disputed = {c.fact for c in conflicts if not c.resolved}
    return 1 - len(disputed) / len(facts)


def score_financial(
    snapshot: Snapshot,
    conflicts: Sequence[Conflict],
    trends: TrendAnalysis | None,
    weight: float,
) -> DimensionScore:
    demo, photo = snapshot.demographics, snapshot.photo
    if demo is None or photo is None:
        return _degraded(Dimension.FINANCIAL, weight, snapshot, ["demographics", "photo"])
    breakdown = {
        "data_coherence": data_coherence(snapshot, conflicts) * 40,
        "potential_ratio": float(potential_points(demo.score, photo.cost_high)),
        "accounting_trend": float(TREND_POINTS[trends.trend if trends is not None else None]),
    }
    return DimensionScore(Dimension.FINANCIAL, clamp(sum(breakdown.values())), weight, breakdown)


def composite_score(dimensions: Sequence[DimensionScore]) -> float:
    return clamp(sum(d.weighted for d in dimensions))


def risk_items(
    snapshot: Snapshot,
    poi: PoiSummary,
    dimensions: Sequence[DimensionScore],
    composite: float,
) -> list[RiskItem]:
    """Éléments de risque par catégorie, dans l'ordre des dimensions."""
    by_dim = {d.dimension: d for d in dimensions}
    items: list[RiskItem] = []

    def add(dim: Dimension, severity: Severity, description: str) -> None:
        items.append(RiskItem(dim, severity, description))

    def weak(dim: Dimension, severity: Severity, label: str) -> None:
        d = by_dim.get(dim)
        if d is not None and not d.degraded and d.raw_score < WEAK_DIMENSION:
            add(dim, severity, f"{label} faible ({d.raw_score:.1f}/100)")

    weak(Dimension.LOCATION, Severity.HIGH, "Score localisation")
    demo = snapshot.demographics
    if demo is not None and demo.trade_area < 1000:
        add(Dimension.LOCATION, Severity.MEDIUM, f"Zone de chalandise réduite ({demo.trade_area:.0f} hab.)")
    if snapshot.places is not None and not snapshot.places.found:
        add(Dimension.LOCATION, Severity.MEDIUM, "Établissement introuvable dans Google Places")

    weak(Dimension.MARKET, Severity.HIGH, "Score marché")
    if poi.density is DensityTier.VERY_HIGH:
        add(Dimension.MARKET, Severity.HIGH, "Densité commerciale très élevée")
    elif poi.density is DensityTier.HIGH:
        add(Dimension.MARKET, Severity.MEDIUM, "Densité commerciale élevée")
    places = snapshot.places
    if places is not None and places.rating is not None and places.rating < 3.5:
        add(Dimension.MARKET, Severity.HIGH, f"Réputation faible ({places.rating}/5)")

    weak(Dimension.OPERATIONAL, Severity.HIGH, "Score opérationnel")
    photo = snapshot.photo
    if photo is not None:
        if photo.cost_high > 75_000:
            add(Dimension.OPERATIONAL, Severity.CRITICAL, f"Budget travaux très élevé ({photo.cost_high:.0f} €)")
        elif photo.cost_high > 50_000:
            add(Dimension.OPERATIONAL, Severity.HIGH, f"Budget travaux élevé ({photo.cost_high:.0f} €)")
        elif photo.cost_high > 25_000:
            add(Dimension.OPERATIONAL, Severity.MEDIUM, f"Budget travaux modéré ({photo.cost_high:.0f} €)")

    weak(Dimension.FINANCIAL, Severity.CRITICAL, "Score financier")
    if composite < WEAK_DIMENSION:
        add(Dimension.FINANCIAL, Severity.CRITICAL, f"Potentiel global insuffisant ({composite:.1f}/100)")
    return items


def risk_score(conflicts: Sequence[Conflict], items: Sequence[RiskItem]) -> float:
    """100 moins les déductions de chaque conflit (résolu ou non) et de chaque élément de risque."""
    deductions = sum(SEVERITY_DEDUCTIONS[c.severity] for c in conflicts)
    deductions += sum(i.point_deduction for i in items)
    return clamp(100.0 - deductions)


def coherence_score(conflicts: Sequence[Conflict]) -> float:
    """100 × conflits résolus / conflits ; 100 sans conflit."""
    if not conflicts:
        return 100.0
    return 100.0 * sum(1 for c in conflicts if c.resolved) / len(conflicts)


def decision_score(composite: float, risk: float, coherence: float) -> float:
    return clamp(
        DECISION_WEIGHTS["composite"] * composite
        + DECISION_WEIGHTS["risk"] * risk
        + DECISION_WEIGHTS["coherence"] * coherence
    )


@dataclass(frozen=True)
class ScoreCard:
    dimensions: tuple[DimensionScore, ...]
    composite: float
    risk_items: tuple[RiskItem, ...]
    risk: float
    coherence: float
    decision: float

    @property
    def degraded(self) -> tuple[Dimension, ...]:
        return tuple(d.dimension for d in self.dimensions if d.degraded)

    @property
    def status(self) -> Status:
        degraded = self.degraded
        if degraded and len(degraded) == len(self.dimensions):
            return Status.ERROR
        return Status.PARTIAL if degraded else Status.SUCCESS


def score(
    snapshot: Snapshot,
    match: MatchResult | None,
    poi: PoiSummary,
    conflicts: Sequence[Conflict],
    trends: TrendAnalysis | None = None,
    weights: Mapping[Dimension, float] | None = None,
) -> ScoreCard:
    """Calcule les quatre dimensions puis les scores composite, de risque, de cohérence et de décision."""
    weights = weights or DEFAULT_DIMENSION_WEIGHTS
    dimensions = (
        score_location(snapshot, match, weights[Dimension.LOCATION]),
        score_market(snapshot, poi, weights[Dimension.MARKET]),
        score_operational(snapshot, weights[Dimension.OPERATIONAL]),
        score_financial(snapshot, conflicts, trends, weights[Dimension.FINANCIAL]),
    )
    composite = composite_score(dimensions)
    items = tuple(risk_items(snapshot, poi, dimensions, composite))
    risk = risk_score(conflicts, items)
    coherence = coherence_score(conflicts)
    card = ScoreCard(
        dimensions=dimensions,
        composite=composite,
        risk_items=items,
        risk=risk,
        coherence=coherence,
        decision=decision_score(composite, risk, coherence),
    )
    logger.debug(
        "scores: composite={:.1f} risque={:.1f} cohérence={:.1f} décision={:.1f}",
        card.composite,
        card.risk,
        card.coherence,
        card.decision,
    )
    return card
