"""Coordinateur : enchaîne les étapes par enregistrements immuables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from loguru import logger

from lareprise.arbitration import ArbitrationOutcome, Arbitrator
from lareprise.conflicts import Clock, ConflictSummary, IdFactory, detect_conflicts, summarize
from lareprise.config import EngineConfig
from lareprise.decision import recommend
from lareprise.finance import TrendAnalysis, analyze_trends
from lareprise.inputs import Snapshot
from lareprise.matching import IdentityMatcher, MatchResult
from lareprise.poi import PoiSummary, classify
from lareprise.schema import Conflict, Recommendation
from lareprise.scoring import ScoreCard, score


@dataclass(frozen=True, eq=False)
class Evaluation:
    """Sorties de toutes les étapes d'une exécution."""

    snapshot: Snapshot
    match: MatchResult
    poi: PoiSummary
    trends: TrendAnalysis | None
    detected: tuple[Conflict, ...]
    conflict_summary: ConflictSummary
    arbitration: ArbitrationOutcome
    scores: ScoreCard
    recommendation: Recommendation


def run(
    snapshot: Snapshot | Mapping[str, Any],
    config: EngineConfig | None = None,
    *,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> Evaluation:
    """
    Exécute le moteur complet sur un instantané.

    Les problèmes de données dégradent les dimensions concernées ; seule une
    configuration invalide peut lever, et elle l'a fait au chargement.
    """
    config = config or EngineConfig()
    if not isinstance(snapshot, Snapshot):
        snapshot = Snapshot.from_dict(snapshot)

    # Rapprochement et classification POI sont indépendants
    match = IdentityMatcher(config).match(snapshot.business, snapshot.candidates)
    poi = classify(
        snapshot.nearby_poi,
        snapshot.reference_coordinates,
        radius_m=config.search_radius_m,
        max_poi=config.max_poi,
    )
    trends = analyze_trends(snapshot.accounting)

    detected = tuple(detect_conflicts(snapshot, poi, config.policy, id_factory=id_factory, clock=clock))
    outcome = Arbitrator(config).resolve_all(detected)
    card = score(snapshot, match, poi, outcome.conflicts, trends, config.dimension_weights)
    recommendation = recommend(
        card,
        outcome,
        go_threshold=config.go_threshold,
        no_go_threshold=config.no_go_threshold,
        has_input_issues=bool(snapshot.issues),
    )
    logger.info(
        "{}: {} (décision={:.1f})",
        snapshot.business.name or "<sans nom>",
        recommendation.label.value,
        recommendation.decision_score,
    )
    return Evaluation(
        snapshot=snapshot,
        match=match,
        poi=poi,
        trends=trends,
        detected=detected,
        conflict_summary=summarize(outcome.conflicts),
        arbitration=outcome,
        scores=card,
        recommendation=recommendation,
    )


def evaluate(
    snapshot: Snapshot | Mapping[str, Any],
    config: EngineConfig | None = None,
    *,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> Recommendation:
    """Retourne l'unique recommandation de l'exécution."""
    return run(snapshot, config, id_factory=id_factory, clock=clock).recommendation
