"""Moteur de décision : seuils, dérogation CRITICAL, recommandation finale."""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from lareprise.arbitration import ArbitrationOutcome
from lareprise.schema import Conflict, Label, Recommendation, Severity, Status
from lareprise.scoring import ScoreCard

GO_THRESHOLD = 75.0
NO_GO_THRESHOLD = 50.0


def decide_label(
    decision_score: float,
    unresolved: Sequence[Conflict],
    *,
    go_threshold: float = GO_THRESHOLD,
    no_go_threshold: float = NO_GO_THRESHOLD,
) -> tuple[Label, tuple[str, ...]]:
    """
    Applique les règles de décision.

    - NO-GO si un conflit CRITICAL reste non résolu (prioritaire) ou si le
      score de décision est < no_go_threshold.
    - GO si le score est >= go_threshold et qu'aucun conflit ne reste non résolu.
    - GO_WITH_RESERVES sinon.

    Returns:
        (label, raisons) ; les raisons sont des textes types, dans un ordre fixe.
    """
    critical = [c for c in unresolved if c.severity is Severity.CRITICAL]
    if critical:
        ids = ", ".join(c.id for c in critical)
        return Label.NO_GO, (f"Conflit CRITIQUE non résolu ({ids}) : dérogation NO-GO",)
    if decision_score < no_go_threshold:
        return Label.NO_GO, (f"Score de décision {decision_score:.1f} < {no_go_threshold:g}",)
    if decision_score >= go_threshold and not unresolved:
        return Label.GO, (f"Score de décision {decision_score:.1f} >= {go_threshold:g}, aucun conflit bloquant",)

    reasons: list[str] = []
    if decision_score < go_threshold:
        reasons.append(f"Score de décision {decision_score:.1f} entre {no_go_threshold:g} et {go_threshold:g}")
    if unresolved:
        reasons.append(f"{len(unresolved)} conflit(s) non résolu(s) à arbitrer")
    return Label.GO_WITH_RESERVES, tuple(reasons)


def recommend(
    card: ScoreCard,
    outcome: ArbitrationOutcome,
    *,
    go_threshold: float = GO_THRESHOLD,
    no_go_threshold: float = NO_GO_THRESHOLD,
    has_input_issues: bool = False,
) -> Recommendation:
    """Construit l'unique recommandation de l'exécution."""
    unresolved = outcome.unresolved
    label, reasons = decide_label(
        card.decision,
        unresolved,
        go_threshold=go_threshold,
        no_go_threshold=no_go_threshold,
    )
    degraded = card.degraded
    if degraded:
        reasons += (f"Dimension(s) dégradée(s) : {', '.join(d.value for d in degraded)}",)

    status = card.status
    if status is Status.SUCCESS and has_input_issues:
        status = Status.PARTIAL

    logger.debug("décision: {} (score={:.1f}, statut={})", label.value, card.decision, status.value)
    return Recommendation(
        label=label,
        composite_score=card.composite,
        risk_score=card.risk,
        coherence_score=card.coherence,
        decision_score=card.decision,
        dimension_scores=card.dimensions,
        blocking_conflicts=unresolved,
        resolved_conflicts=outcome.resolved,
        risk_items=card.risk_items,
        degraded_dimensions=degraded,
        status=status,
        reasons=reasons,
    )
