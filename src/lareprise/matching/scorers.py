"""Calcul des facteurs de score d'un candidat."""

from __future__ import annotations

from typing import Iterable

from rapidfuzz import fuzz, utils

from lareprise.activities import matches_family
from lareprise.geo import distance_between, score_distance
from lareprise.matching.schema import MatchFactors, MatchTier
from lareprise.normalize import name_words, norm_text, normalize_name
from lareprise.schema import BusinessRecord, CandidatePOI

NAME_POINTS: dict[MatchTier, int] = {
    MatchTier.EXACT: 30,
    MatchTier.SUBSTRING: 20,
    MatchTier.PARTIAL: 10,
    MatchTier.NONE: 0,
}
CATEGORY_POINTS = 20
SECONDARY_POINTS = 10
JACCARD_THRESHOLD = 0.5

_OPEN_STATUSES = frozenset({"OPERATIONAL"})
_CLOSED_STATUSES = frozenset({"CLOSED_TEMPORARILY", "CLOSED_PERMANENTLY"})


def name_tier(a: str | None, b: str | None) -> MatchTier:
    """
    Palier de similarité entre deux noms.

    exact si les formes normalisées sont égales, substring si l'une contient
    l'autre, partial si la similarité de Jaccard sur les mots de plus de deux
    lettres dépasse 0.5, none sinon ou si l'un des noms manque.
    """
    na = normalize_name(a)
    nb = normalize_name(b)
    if not na or not nb:
        return MatchTier.NONE
    if na == nb:
        return MatchTier.EXACT
    if na in nb or nb in na:
        return MatchTier.SUBSTRING

    words_a = name_words(na)
    words_b = name_words(nb)
    union = words_a | words_b
    if not union:
        return MatchTier.NONE
    if len(words_a & words_b) / len(union) > JACCARD_THRESHOLD:
        return MatchTier.PARTIAL
    return MatchTier.NONE


def score_name(a: str | None, b: str | None) -> int:
    """Points de nom (0, 10, 20 ou 30). Symétrique en a et b."""
    return NAME_POINTS[name_tier(a, b)]


def score_category(activity_code: str | None, types: Iterable[str]) -> int:
    """20 si un type du candidat relève de la famille d'activité du code NAF, sinon 0."""
    return CATEGORY_POINTS if matches_family(activity_code, types) else 0


def _candidate_is_open(status: str | None) -> bool | None:
    if not status:
        return None
    s = status.upper()
    if s in _OPEN_STATUSES:
        return True
    if s in _CLOSED_STATUSES:
        return False
    return None


def score_secondary(business: BusinessRecord, candidate: CandidatePOI) -> int:
    """
    Cohérence ouvert/fermé entre le registre et le candidat.

    10 si les deux états concordent ou si l'un est inconnu, 0 s'ils divergent.
    """
    registry_open = business.is_active
    candidate_open = _candidate_is_open(candidate.business_status)
    if registry_open is None or candidate_open is None:
        return SECONDARY_POINTS
    return SECONDARY_POINTS if registry_open == candidate_open else 0


def address_similarity(a: str | None, b: str | None) -> float:
    """Similarité (0-100) entre deux adresses normalisées, 0 si l'une manque."""
    sa = norm_text(a, remove_diacritics=True)
    sb = norm_text(b, remove_diacritics=True)
    if not sa or not sb:
        return 0.0
    return float(fuzz.token_set_ratio(sa, sb, processor=utils.default_process))


def score_candidate(
    business: BusinessRecord,
    candidate: CandidatePOI,
) -> tuple[MatchFactors, MatchTier, float | None]:
    """
    Calcule les quatre facteurs d'un candidat.

    Returns:
        (facteurs, palier de nom, distance en mètres ou None)
    """
    tier = name_tier(business.name, candidate.name)
    distance_m = distance_between(business.coordinates, candidate.coordinates)
    factors = MatchFactors(
        name=NAME_POINTS[tier],
        distance=score_distance(distance_m),
        category=score_category(business.activity_code, candidate.types),
        secondary=score_secondary(business, candidate),
    )
    return factors, tier, distance_m
