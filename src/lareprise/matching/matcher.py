"""Moteur de rapprochement : classement, seuil de confiance, ambiguïté."""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from lareprise.config import EngineConfig
from lareprise.matching.schema import MatchCandidate, MatchResult, MatchStatus
from lareprise.matching.scorers import address_similarity, score_candidate
from lareprise.schema import BusinessRecord, CandidatePOI


class IdentityMatcher:
    """Rapproche un commerce cible de ses candidats lieux/registre."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        config = config or EngineConfig()
        self.confidence_threshold = config.confidence_threshold
        self.ambiguity_margin = config.ambiguity_margin
        self.max_candidates = config.max_candidates

    def rank(self, business: BusinessRecord, candidates: Sequence[CandidatePOI]) -> list[MatchCandidate]:
        """
        Évalue et classe les candidats.

        Tri par score décroissant, puis par similarité d'adresse décroissante,
        puis dans l'ordre d'arrivée (tri stable). Seuls les max_candidates
        premiers candidats reçus sont évalués.
        """
        scored: list[MatchCandidate] = []
        for poi in list(candidates)[: self.max_candidates]:
            factors, tier, distance_m = score_candidate(business, poi)
            scored.append(
                MatchCandidate(
                    poi_id=poi.id,
                    score=factors.total,
                    factors=factors,
                    tier=tier,
                    distance_m=distance_m,
                    address_similarity=address_similarity(business.address, poi.address),
                )
            )
        scored.sort(key=lambda c: (c.score, c.address_similarity), reverse=True)
        return scored

    def match(self, business: BusinessRecord, candidates: Sequence[CandidatePOI]) -> MatchResult:
        """
        Rapproche le commerce de ses candidats.

        Returns:
            MatchResult au statut matched, ambiguous ou no_match.
        """
        ranked = self.rank(business, candidates)
        best_score = ranked[0].score if ranked else 0
        confident = [c for c in ranked if c.score >= self.confidence_threshold]
        is_confident = bool(confident)
        is_ambiguous = len(confident) >= 2 and (confident[0].score - confident[1].score) < self.ambiguity_margin

        if not is_confident:
            status = MatchStatus.NO_MATCH
            chosen = None
            explanation = (
                f"Sous le seuil (score={best_score})" if ranked else "Aucun candidat"
            )
        elif is_ambiguous:
            status = MatchStatus.AMBIGUOUS
            chosen = confident[0].poi_id
            explanation = f"Ambigu (Δ={confident[0].score - confident[1].score})"
        else:
            status = MatchStatus.MATCHED
            chosen = confident[0].poi_id
            explanation = f"Match confiant score={best_score}"

        logger.debug(
            "identity match: {} candidat(s), best={} status={}",
            len(ranked),
            best_score,
            status.value,
        )
        return MatchResult(
            candidates=tuple(ranked),
            best_score=best_score,
            status=status,
            is_confident=is_confident,
            is_ambiguous=is_ambiguous,
            chosen_poi_id=chosen,
            explanation=explanation,
        )
