"""Classification des POI voisins en classes d'impact et agrégats de densité."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from loguru import logger

from lareprise.geo import Proximity, distance_between, proximity_level
from lareprise.schema import Bucket, CandidatePOI, Coordinates, Impact

BUCKET_TYPES: dict[Bucket, tuple[str, ...]] = {
    Bucket.A: ("tobacco_shop", "newsstand", "convenience_store", "vape_shop"),
    Bucket.B: ("bakery", "pharmacy", "supermarket", "grocery_store", "market", "food_market"),
    Bucket.C: (
        "restaurant",
        "cafe",
        "bar",
        "bank",
        "atm",
        "hair_care",
        "beauty_salon",
        "clothing_store",
        "shoe_store",
        "electronics_store",
        "furniture_store",
        "florist",
        "book_store",
    ),
}
BUCKET_IMPACT: dict[Bucket, Impact] = {
    Bucket.A: Impact.NEGATIVE,
    Bucket.B: Impact.VERY_POSITIVE,
    Bucket.C: Impact.POSITIVE,
}
FALLBACK_LABEL = "other"
DOMINANT_TYPES = 5


class DensityTier(str, Enum):
    VERY_LOW = "very_low"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"


class CompetitionIntensity(str, Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERY_STRONG = "very_strong"


@dataclass(frozen=True)
class ClassifiedPOI:
    """POI enrichi de sa classe d'impact (le CandidatePOI d'origine n'est pas modifié)."""

    poi: CandidatePOI
    bucket: Bucket
    impact: Impact
    label: str
    distance_meters: float | None = None
    proximity: Proximity | None = None


@dataclass(frozen=True)
class PoiSummary:
    """Agrégats du paysage concurrentiel."""

    pois: tuple[ClassifiedPOI, ...] = ()
    counts: dict[Bucket, int] = field(default_factory=lambda: {b: 0 for b in Bucket})
    density: DensityTier = DensityTier.VERY_LOW
    competitor_density: DensityTier = DensityTier.VERY_LOW
    competition: CompetitionIntensity = CompetitionIntensity.WEAK
    immediate_count: int = 0
    very_close_count: int = 0
    dominant_types: tuple[tuple[str, int], ...] = ()
    average_price_level: float | None = None
    average_rating: float | None = None
    total_reviews: int = 0

    @property
    def total(self) -> int:
        return len(self.pois)

    @property
    def competitor_ratio(self) -> float:
        return self.counts[Bucket.A] / self.total if self.total else 0.0


def bucket_for(types: Iterable[str]) -> tuple[Bucket, str]:
    """
    Classe d'un POI selon ses types, par priorité A > B > C.

    Returns:
        (bucket, label) ; label est le type ayant déclenché la classe,
        ou "other" pour un POI sans type reconnu (rangé en C).
    """
    tags = list(types)
    for bucket in (Bucket.A, Bucket.B, Bucket.C):
        for tag in tags:
            if tag in BUCKET_TYPES[bucket]:
                return bucket, tag
    return Bucket.C, FALLBACK_LABEL


def classify_poi(poi: CandidatePOI, origin: Coordinates | None = None) -> ClassifiedPOI:
    bucket, label = bucket_for(poi.types)
    distance_m = distance_between(origin, poi.coordinates)
    return ClassifiedPOI(
        poi=poi,
        bucket=bucket,
        impact=BUCKET_IMPACT[bucket],
        label=label,
        distance_meters=distance_m,
        proximity=proximity_level(distance_m) if distance_m is not None else None,
    )


def density_tier(count: int) -> DensityTier:
    """0 → very_low, ≤4 → low, ≤9 → moderate, ≤14 → high, sinon very_high."""
    if count <= 0:
        return DensityTier.VERY_LOW
    if count <= 4:
        return DensityTier.LOW
    if count <= 9:
        return DensityTier.MODERATE
    if count <= 14:
        return DensityTier.HIGH
    return DensityTier.VERY_HIGH


def competition_intensity(ratio: float) -> CompetitionIntensity:
    """Intensité concurrentielle selon la part de concurrents directs."""
    if ratio < 0.2:
        return CompetitionIntensity.WEAK
    if ratio < 0.4:
        return CompetitionIntensity.MODERATE
    if ratio < 0.6:
        return CompetitionIntensity.STRONG
    return CompetitionIntensity.VERY_STRONG


def _mean(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


def classify(
    pois: Sequence[CandidatePOI],
    origin: Coordinates | None = None,
    *,
    radius_m: float = 500.0,
    max_poi: int = 20,
) -> PoiSummary:
    """
    Classe les POI voisins et calcule les agrégats.

    Les POI situés au-delà du rayon de recherche sont ignorés ; ceux dont la
    distance est inconnue sont conservés. L'ensemble est limité à max_poi
    éléments, dans l'ordre reçu.
    """
    kept: list[ClassifiedPOI] = []
    for poi in pois:
        c = classify_poi(poi, origin)
        if c.distance_meters is not None and c.distance_meters > radius_m:
            continue
        kept.append(c)
        if len(kept) >= max_poi:
            break

    counts = {b: 0 for b in Bucket}
    for c in kept:
        counts[c.bucket] += 1

    type_counts: Counter[str] = Counter(t for c in kept for t in c.poi.types)
    prices = [float(c.poi.price_level) for c in kept if c.poi.price_level is not None]
    ratings = [float(c.poi.rating) for c in kept if c.poi.rating is not None]
    total = len(kept)

    summary = PoiSummary(
        pois=tuple(kept),
        counts=counts,
        density=density_tier(total),
        competitor_density=density_tier(counts[Bucket.A]),
        competition=competition_intensity(counts[Bucket.A] / total if total else 0.0),
        immediate_count=sum(1 for c in kept if c.proximity is Proximity.IMMEDIATE),
        very_close_count=sum(1 for c in kept if c.proximity is Proximity.VERY_CLOSE),
        dominant_types=tuple(type_counts.most_common(DOMINANT_TYPES)),
        average_price_level=_mean(prices),
        average_rating=_mean(ratings),
        total_reviews=sum(c.poi.user_rating_count for c in kept),
    )
    logger.debug(
        "poi: {} retenus A={} B={} C={} densité={}",
        total,
        counts[Bucket.A],
        counts[Bucket.B],
        counts[Bucket.C],
        summary.density.value,
    )
    return summary
