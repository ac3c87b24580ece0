"""Détection des conflits entre sources : six contrôles croisés indépendants."""

from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence

from loguru import logger

from lareprise.config import ConflictPolicy
from lareprise.geo import distance_between, proximity_level
from lareprise.inputs import Snapshot
from lareprise.poi import PoiSummary
from lareprise.schema import Conflict, ConflictType, Severity, SourceValue

IdFactory = Callable[[], str]
Clock = Callable[[], datetime]

URGENT_RECOMMENDATION = "Arbitrage URGENT requis : conflits bloquants détectés"
RECOMMENDATIONS: dict[ConflictType, str] = {
    ConflictType.GEOGRAPHIC_MISMATCH: "Vérifier coordonnées GPS et matching Google Places",
    ConflictType.POPULATION_POI_MISMATCH: "Revalider recherche POI ou coordonnées géographiques",
    ConflictType.RATING_PHOTOS_MISMATCH: "Possibilité de confusion établissement - vérifier matching",
    ConflictType.CSP_PRICING_MISMATCH: "Analyser opportunité repositionnement pricing",
    ConflictType.SCORE_MISMATCH: "Évaluer impact travaux sur ROI global",
    ConflictType.DATA_INCONSISTENCY: "Recouper les données divergentes auprès des sources",
}


def sequential_ids(prefix: str = "conflict") -> IdFactory:
    """Fabrique d'identifiants déterministes : conflict_1, conflict_2..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}_{next(counter)}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Finding:
    """Divergence constatée par un contrôle, avant attribution d'id et de date."""

    type: ConflictType
    rule: str
    fact: str
    sources: Mapping[str, SourceValue]
    description: str


Check = Callable[[Snapshot, PoiSummary, ConflictPolicy], list[Finding]]

# Faits recoupés par les contrôles à règle fixe
CROSS_CHECKED_FACTS = (
    "population_vs_poi",
    "csp_vs_price_level",
    "rating_vs_condition",
    "places_presence",
    "potential_vs_works",
    "coordinates",
)


def _sv(value: Any) -> SourceValue:
    return SourceValue(value=value)


def check_population_poi(snapshot: Snapshot, poi: PoiSummary, policy: ConflictPolicy) -> list[Finding]:
    demo = snapshot.demographics
    if demo is None:
        return []
    population = demo.population
    sources = {"demographic": _sv(population), "competitor": _sv(poi.total)}
    if population > policy.population_high and poi.total == 0:
        return [
            Finding(
                ConflictType.POPULATION_POI_MISMATCH,
                "population_without_poi",
                "population_vs_poi",
                sources,
                f"Population élevée ({population:.0f} hab.) mais aucun commerce à proximité",
            )
        ]
    if population < policy.population_low and poi.total > policy.poi_dense:
        return [
            Finding(
                ConflictType.POPULATION_POI_MISMATCH,
                "dense_poi_low_population",
                "population_vs_poi",
                sources,
                f"Faible population ({population:.0f} hab.) mais forte densité commerciale ({poi.total} POI)",
            )
        ]
    return []


def check_csp_pricing(snapshot: Snapshot, poi: PoiSummary, policy: ConflictPolicy) -> list[Finding]:
    demo, places = snapshot.demographics, snapshot.places
    if demo is None or places is None or not demo.csp_dominant or places.price_level is None:
        return []
    csp, price = demo.csp_dominant, places.price_level
    sources = {"demographic": _sv(csp), "places": _sv(price)}
    if csp == "high" and price == policy.price_discount:
        return [
            Finding(
                ConflictType.CSP_PRICING_MISMATCH,
                "high_csp_discount_pricing",
                "csp_vs_price_level",
                sources,
                f"CSP élevée mais positionnement prix bas (niveau {price})",
            )
        ]
    if csp == "low" and price >= policy.price_premium:
        return [
            Finding(
                ConflictType.CSP_PRICING_MISMATCH,
                "low_csp_premium_pricing",
                "csp_vs_price_level",
                sources,
                f"CSP modeste mais positionnement prix élevé (niveau {price})",
            )
        ]
    return []


def check_rating_photos(snapshot: Snapshot, poi: PoiSummary, policy: ConflictPolicy) -> list[Finding]:
    places, photo = snapshot.places, snapshot.photo
    if places is None or photo is None or places.rating is None:
        return []
    rating, note = places.rating, photo.note_globale
    sources = {"places": _sv(rating), "photo": _sv(note)}
    if rating > policy.rating_high and note < policy.photo_poor:
        return [
            Finding(
                ConflictType.RATING_PHOTOS_MISMATCH,
                "high_rating_poor_photos",
                "rating_vs_condition",
                sources,
                f"Excellente note clients ({rating}/5) mais état physique dégradé ({note}/10)",
            )
        ]
    if rating < policy.rating_low and note > policy.photo_excellent:
        return [
            Finding(
                ConflictType.RATING_PHOTOS_MISMATCH,
                "low_rating_excellent_photos",
                "rating_vs_condition",
                sources,
                f"Note clients faible ({rating}/5) malgré un bon état physique ({note}/10)",
            )
        ]
    return []


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _diverges(a: Any, b: Any, tolerance: float) -> bool:
    if _numeric(a) and _numeric(b):
        scale = max(abs(a), abs(b))
        return scale > 0 and abs(a - b) / scale > tolerance
    return str(a).strip().lower() != str(b).strip().lower()


def check_data_inconsistency(snapshot: Snapshot, poi: PoiSummary, policy: ConflictPolicy) -> list[Finding]:
    """
    Fiche lieux introuvable malgré des coordonnées, et faits rapportés par
    plusieurs sources qui divergent au-delà de la tolérance.

    Un fait divergent donne un seul conflit portant toutes ses sources, pour
    que l'arbitre tranche le fait en entier. Un fait diverge dès qu'une paire
    de sources diverge : ajouter une source ne fait jamais disparaître le conflit.
    """
    findings: list[Finding] = []
    reference = snapshot.reference_coordinates
    if snapshot.places is not None and not snapshot.places.found and reference is not None:
        findings.append(
            Finding(
                ConflictType.DATA_INCONSISTENCY,
                "places_not_found",
                "places_presence",
                {"geocoding": _sv(reference), "places": _sv(False)},
                "Établissement introuvable dans Google Places malgré des coordonnées valides",
            )
        )

    for fact, by_source in snapshot.observations.items():
        divergent = any(
            _diverges(a.value, b.value, policy.observation_tolerance)
            for a, b in itertools.combinations(by_source.values(), 2)
        )
        if divergent:
            reported = ", ".join(f"{name}={sv.value!r}" for name, sv in by_source.items())
            findings.append(
                Finding(
                    ConflictType.DATA_INCONSISTENCY,
                    "observation_divergence",
                    fact,
                    dict(by_source),
                    f"{fact}: sources divergentes ({reported})",
                )
            )
    return findings


def check_score(snapshot: Snapshot, poi: PoiSummary, policy: ConflictPolicy) -> list[Finding]:
    demo, photo = snapshot.demographics, snapshot.photo
    if demo is None or photo is None:
        return []
    if demo.score > policy.demographic_score_high and photo.cost_high > policy.works_heavy:
        return [
            Finding(
                ConflictType.SCORE_MISMATCH,
                "potential_heavy_works",
                "potential_vs_works",
                {"demographic": _sv(demo.score), "photo": _sv(photo.cost_high)},
                f"Fort potentiel ({demo.score:.0f}/100) mais travaux lourds ({photo.cost_high:.0f} €)",
            )
        ]
    return []


def check_geographic(snapshot: Snapshot, poi: PoiSummary, policy: ConflictPolicy) -> list[Finding]:
    """Compare chaque position secondaire à la position géocodée de référence."""
    if snapshot.coordinates is not None:
        ref_name, reference = "geocoding", snapshot.coordinates
    elif snapshot.business.coordinates is not None:
        ref_name, reference = "registry", snapshot.business.coordinates
    else:
        return []

    others: dict[str, Any] = {}
    if snapshot.places is not None and snapshot.places.location is not None:
        others["places"] = snapshot.places.location
    if ref_name != "registry" and snapshot.business.coordinates is not None:
        others["registry"] = snapshot.business.coordinates
    for name, coords in snapshot.coordinate_sources.items():
        others.setdefault(name, coords)

    findings: list[Finding] = []
    for name, coords in others.items():
        distance_m = distance_between(reference, coords)
        if distance_m is None or distance_m <= policy.coordinates_drift_m:
            continue
        rule = "coordinates_far" if distance_m > policy.coordinates_far_m else "coordinates_drift"
        findings.append(
            Finding(
                ConflictType.GEOGRAPHIC_MISMATCH,
                rule,
                "coordinates",
                {ref_name: _sv(reference), name: _sv(coords)},
                f"Écart de {distance_m:.0f} m entre {ref_name} et {name} "
                f"(proximité {proximity_level(distance_m).value})",
            )
        )
    return findings


# Ordre de fusion des résultats, indépendant de l'ordre d'exécution
CHECKS: tuple[tuple[ConflictType, Check], ...] = (
    (ConflictType.POPULATION_POI_MISMATCH, check_population_poi),
    (ConflictType.CSP_PRICING_MISMATCH, check_csp_pricing),
    (ConflictType.RATING_PHOTOS_MISMATCH, check_rating_photos),
    (ConflictType.DATA_INCONSISTENCY, check_data_inconsistency),
    (ConflictType.SCORE_MISMATCH, check_score),
    (ConflictType.GEOGRAPHIC_MISMATCH, check_geographic),
)


def detect_conflicts(
    snapshot: Snapshot,
    poi: PoiSummary,
    policy: ConflictPolicy | None = None,
    *,
    id_factory: IdFactory | None = None,
    clock: Clock | None = None,
) -> list[Conflict]:
    """
    Exécute les six contrôles et matérialise les conflits.

    La sévérité de chaque conflit vient de la politique, pas du contrôle.
    """
    policy = policy or ConflictPolicy()
    id_factory = id_factory or sequential_ids()
    clock = clock or utc_now

    findings = {conflict_type: check(snapshot, poi, policy) for conflict_type, check in CHECKS}
    conflicts = [
        Conflict(
            id=id_factory(),
            type=f.type,
            severity=policy.severity_for(f.rule),
            fact=f.fact,
            sources=f.sources,
            description=f.description,
            detected_at=clock(),
        )
        for conflict_type, _ in CHECKS
        for f in findings[conflict_type]
    ]
    logger.debug("conflits: {} détecté(s)", len(conflicts))
    return conflicts


@dataclass(frozen=True)
class ConflictSummary:
    total: int
    by_type: Mapping[ConflictType, int]
    by_severity: Mapping[Severity, int]
    blocking: bool
    recommendations: tuple[str, ...]


def summarize(conflicts: Sequence[Conflict]) -> ConflictSummary:
    """
    Comptes par type et sévérité, drapeau bloquant (CRITICAL + HIGH > 0) et
    recommandations types, dans l'ordre fixe des types.
    """
    by_type = Counter(c.type for c in conflicts)
    by_severity = Counter(c.severity for c in conflicts)
    blocking = by_severity[Severity.CRITICAL] + by_severity[Severity.HIGH] > 0

    recommendations: list[str] = [URGENT_RECOMMENDATION] if blocking else []
    recommendations.extend(RECOMMENDATIONS[t] for t, _ in CHECKS if by_type[t])
    return ConflictSummary(
        total=len(conflicts),
        by_type={t: by_type[t] for t in ConflictType},
        by_severity={s: by_severity[s] for s in Severity},
        blocking=blocking,
        recommendations=tuple(recommendations),
    )
